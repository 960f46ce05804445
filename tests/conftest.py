"""
Pytest fixtures for assure tests

No real browser: FakeConnection answers CDP calls from an in-memory page
(title, URL, readyState and a selector -> FakeElement map) and records every
call so tests can assert on what the engine sent.
"""
import asyncio
import itertools

import pytest

from assure.config import EngineConfig
from assure.errors import ProtocolError, TransportClosed
from assure.interaction import CLEAR_VALUE_JS
from assure.locator import ELEMENT_STATE_JS, RENDERED_TEXT_JS, STYLE_VISIBLE_JS, TEXT_CONTENT_JS
from assure.session import Session

# States the element-state check reports whether or not clickability is required
VISIBILITY_STATES = ("hidden", "zero-size", "outside viewport")

_node_ids = itertools.count(100)


class FakeElement:
    """One DOM node. `state` is what ELEMENT_STATE_JS would return for it."""

    def __init__(self, text="", rendered_text=None, value="", state="ok",
                 style_visible=True, quad=None):
        self.node_id = next(_node_ids)
        self.text = text
        self.rendered_text = rendered_text
        self.value = value
        self.state = state
        self.style_visible = style_visible
        self.quad = quad or [10, 20, 110, 20, 110, 60, 10, 60]


class FakePage:

    def __init__(self, url="about:blank", title="", ready_state="complete"):
        self.url = url
        self.title = title
        self.ready_state = ready_state
        self.titles = {}
        self.elements = {}
        self.invalid_selectors = set()


class FakeConnection:
    """Stands in for CDPConnection: send / once / close."""

    def __init__(self, page=None):
        self.page = page or FakePage()
        self.calls = []
        self.mouse_events = []
        self.key_events = []
        self.focused = None
        self.fail_methods = {}
        self.navigate_error = None
        self.fire_load = True
        self.close_error = None
        self.closed = False
        self._listeners = {}

    # --- CDPConnection surface ---

    async def send(self, method, params=None, timeout=None):
        if self.closed:
            raise TransportClosed(f"Cannot send {method}: connection closed")
        params = params or {}
        self.calls.append((method, params))
        if method in self.fail_methods:
            raise self.fail_methods[method]
        if method.endswith(".enable"):
            return {}
        handler = getattr(self, "_" + method.replace(".", "_"), None)
        if handler is None:
            raise ProtocolError(method, f"'{method}' wasn't found", -32601)
        return handler(params)

    def once(self, event):
        future = asyncio.get_running_loop().create_future()
        self._listeners.setdefault(event, []).append(future)
        return future

    async def close(self):
        self.closed = True
        if self.close_error:
            raise self.close_error

    def emit(self, event, params=None):
        for future in self._listeners.pop(event, []):
            if not future.done():
                future.set_result(params or {})

    def methods(self):
        return [method for method, _ in self.calls]

    # --- helpers ---

    def _element_by_node(self, node_id, method):
        for element in self.page.elements.values():
            if element.node_id == node_id:
                return element
        raise ProtocolError(method, "Could not find node with given id", -32000)

    def _element_by_object(self, object_id, method):
        return self._element_by_node(int(object_id.split("-", 1)[1]), method)

    @staticmethod
    def _value(value):
        return {"result": {"type": type(value).__name__, "value": value}}

    # --- Page ---

    def _Page_navigate(self, params):
        if self.navigate_error:
            return {"frameId": "F1", "errorText": self.navigate_error}
        self.page.url = params["url"]
        self.page.title = self.page.titles.get(self.page.url, self.page.title)
        if self.fire_load:
            asyncio.get_running_loop().call_soon(self.emit, "Page.loadEventFired", {"timestamp": 1.0})
        return {"frameId": "F1", "loaderId": "L1"}

    # --- Runtime ---

    def _Runtime_evaluate(self, params):
        expression = params["expression"]
        if expression == "document.title":
            return self._value(self.page.title)
        if expression == "window.location.href":
            return self._value(self.page.url)
        if expression == "document.readyState":
            return self._value(self.page.ready_state)
        return {
            "result": {"type": "object", "subtype": "error"},
            "exceptionDetails": {"text": "Uncaught", "exception": {
                "type": "object", "description": f"ReferenceError: {expression} is not defined"}},
        }

    def _Runtime_callFunctionOn(self, params):
        element = self._element_by_object(params["objectId"], "Runtime.callFunctionOn")
        declaration = params["functionDeclaration"]
        arguments = [arg["value"] for arg in params.get("arguments", [])]

        if declaration == ELEMENT_STATE_JS:
            require_clickable = arguments[0] if arguments else False
            if require_clickable or element.state in VISIBILITY_STATES:
                return self._value(element.state)
            return self._value("ok")
        if declaration == STYLE_VISIBLE_JS:
            return self._value(element.style_visible)
        if declaration == TEXT_CONTENT_JS:
            return self._value(element.text)
        if declaration == RENDERED_TEXT_JS:
            return self._value(element.rendered_text if element.rendered_text is not None else element.text)
        if declaration == CLEAR_VALUE_JS:
            element.value = ""
            self.focused = element
            return {"result": {"type": "undefined"}}
        return {"result": {"type": "undefined"}}

    # --- DOM ---

    def _DOM_getDocument(self, params):
        return {"root": {"nodeId": 1, "backendNodeId": 1, "nodeName": "#document"}}

    def _DOM_querySelector(self, params):
        selector = params["selector"]
        if selector in self.page.invalid_selectors:
            raise ProtocolError("DOM.querySelector", "DOM Error while querying", -32000)
        element = self.page.elements.get(selector)
        return {"nodeId": element.node_id if element else 0}

    def _DOM_getBoxModel(self, params):
        element = self._element_by_node(params["nodeId"], "DOM.getBoxModel")
        quad = element.quad
        return {"model": {"content": quad, "padding": quad, "border": quad, "margin": quad,
                          "width": quad[2] - quad[0], "height": quad[5] - quad[1]}}

    def _DOM_resolveNode(self, params):
        element = self._element_by_node(params["nodeId"], "DOM.resolveNode")
        return {"object": {"type": "object", "subtype": "node", "objectId": f"obj-{element.node_id}"}}

    def _DOM_focus(self, params):
        self.focused = self._element_by_node(params["nodeId"], "DOM.focus")
        return {}

    # --- Input ---

    def _Input_dispatchMouseEvent(self, params):
        self.mouse_events.append(params)
        return {}

    def _Input_dispatchKeyEvent(self, params):
        self.key_events.append(params)
        if params["type"] == "char" and self.focused is not None:
            self.focused.value += params["text"]
        return {}


class FakeProcess:
    """Minimal subprocess.Popen stand-in."""

    def __init__(self, cmd=None, returncode=None, terminate_error=None, **kwargs):
        self.cmd = cmd
        self.returncode = returncode
        self.terminate_error = terminate_error
        self.terminated = False
        self.killed = False

    def poll(self):
        return self.returncode

    def terminate(self):
        if self.terminate_error:
            raise self.terminate_error
        self.terminated = True
        self.returncode = -15

    def wait(self, timeout=None):
        return self.returncode

    def kill(self):
        self.killed = True
        self.returncode = -9


def fast_config(**overrides):
    """Engine config with every delay near zero and short wait budgets."""
    values = dict(
        startup_delay=0,
        connect_attempts=3,
        connect_backoff=0,
        navigation_timeout=1.0,
        element_timeout=0.3,
        text_timeout=0.3,
        url_timeout=0.3,
        network_idle_timeout=0.2,
        element_poll_interval=0.02,
        text_poll_interval=0.02,
        network_idle_grace=0,
        network_idle_settle=0,
        click_settle=0,
        key_delay=0,
    )
    values.update(overrides)
    return EngineConfig(**values)


@pytest.fixture
def page():
    return FakePage(url="about:blank")


@pytest.fixture
def connection(page):
    return FakeConnection(page)


@pytest.fixture
def config():
    return fast_config()


@pytest.fixture
def session(connection, config):
    """Session bound to the fake connection, no browser process."""
    return Session(connection=connection, config=config)


@pytest.fixture
def add_element(page):
    """Register a FakeElement under `selector` on the fake page and return it."""
    def _add(selector, **kwargs):
        element = FakeElement(**kwargs)
        page.elements[selector] = element
        return element
    return _add


@pytest.fixture
def make_config():
    return fast_config


@pytest.fixture
def make_process():
    return FakeProcess


@pytest.fixture
def make_connection():
    return FakeConnection
