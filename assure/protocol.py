"""
protocol.py - Typed clients for the CDP domains the engine uses

Each domain wrapper declares the calls it issues and parses the replies into
pydantic models, so the rest of the engine never reads a raw payload.

  Page     enable, navigate, loadEventFired (event)
  Runtime  enable, evaluate, callFunctionOn
  DOM      enable, getDocument, querySelector, getBoxModel, resolveNode, focus
  Input    dispatchMouseEvent, dispatchKeyEvent
  Network  enable
"""

from typing import Any, List, Optional

from pydantic import BaseModel, ConfigDict, Field


# === Payload models ===

class CDPModel(BaseModel):
    model_config = ConfigDict(populate_by_name=True, extra="ignore")


class RemoteObject(CDPModel):
    type: str = "undefined"
    subtype: Optional[str] = None
    value: Any = None
    object_id: Optional[str] = Field(default=None, alias="objectId")
    description: Optional[str] = None


class ExceptionDetails(CDPModel):
    text: str = ""
    exception: Optional[RemoteObject] = None
    line_number: int = Field(default=0, alias="lineNumber")

    @property
    def message(self) -> str:
        if self.exception and self.exception.description:
            return self.exception.description
        return self.text


class EvaluateResult(CDPModel):
    result: RemoteObject = Field(default_factory=RemoteObject)
    exception_details: Optional[ExceptionDetails] = Field(default=None, alias="exceptionDetails")


class Node(CDPModel):
    node_id: int = Field(alias="nodeId")
    backend_node_id: Optional[int] = Field(default=None, alias="backendNodeId")
    node_name: str = Field(default="", alias="nodeName")


class BoxModel(CDPModel):
    content: List[float]
    padding: List[float] = Field(default_factory=list)
    border: List[float] = Field(default_factory=list)
    margin: List[float] = Field(default_factory=list)
    width: float = 0
    height: float = 0


class NavigateResult(CDPModel):
    frame_id: str = Field(default="", alias="frameId")
    loader_id: Optional[str] = Field(default=None, alias="loaderId")
    error_text: Optional[str] = Field(default=None, alias="errorText")


# === Domain clients ===

class Domain:
    """A protocol domain bound to a connection. `name` is the CDP prefix."""

    name = ""

    def __init__(self, connection):
        self._conn = connection

    async def enable(self):
        await self._conn.send(f"{self.name}.enable")

    async def _call(self, method, params=None, timeout=None):
        return await self._conn.send(f"{self.name}.{method}", params, timeout=timeout)


class PageDomain(Domain):
    name = "Page"

    async def navigate(self, url: str) -> NavigateResult:
        return NavigateResult.model_validate(await self._call("navigate", {"url": url}))

    def load_event_fired(self):
        """Future resolved by the next Page.loadEventFired."""
        return self._conn.once("Page.loadEventFired")


class RuntimeDomain(Domain):
    name = "Runtime"

    async def evaluate(self, expression: str, return_by_value=True, await_promise=False) -> EvaluateResult:
        reply = await self._call("evaluate", {
            "expression": expression,
            "returnByValue": return_by_value,
            "awaitPromise": await_promise,
        })
        return EvaluateResult.model_validate(reply)

    async def call_function_on(self, object_id: str, declaration: str, arguments=None,
                               return_by_value=True) -> EvaluateResult:
        params = {
            "objectId": object_id,
            "functionDeclaration": declaration,
            "returnByValue": return_by_value,
        }
        if arguments:
            params["arguments"] = [{"value": value} for value in arguments]
        return EvaluateResult.model_validate(await self._call("callFunctionOn", params))


class DOMDomain(Domain):
    name = "DOM"

    async def get_document(self) -> Node:
        reply = await self._call("getDocument", {"depth": 0})
        return Node.model_validate(reply["root"])

    async def query_selector(self, node_id: int, selector: str) -> int:
        reply = await self._call("querySelector", {"nodeId": node_id, "selector": selector})
        return int(reply.get("nodeId", 0))

    async def get_box_model(self, node_id: int) -> BoxModel:
        reply = await self._call("getBoxModel", {"nodeId": node_id})
        return BoxModel.model_validate(reply["model"])

    async def resolve_node(self, node_id: int) -> RemoteObject:
        reply = await self._call("resolveNode", {"nodeId": node_id})
        return RemoteObject.model_validate(reply.get("object", {}))

    async def focus(self, node_id: int):
        await self._call("focus", {"nodeId": node_id})


class InputDomain(Domain):
    name = "Input"

    async def enable(self):
        # Input has no enable call; it is always live.
        pass

    async def dispatch_mouse_event(self, event_type: str, x: float, y: float, button="left", click_count=1):
        await self._call("dispatchMouseEvent", {
            "type": event_type, "x": x, "y": y,
            "button": button, "clickCount": click_count,
        })

    async def dispatch_key_event(self, event_type: str, text: Optional[str] = None, key: Optional[str] = None):
        params = {"type": event_type}
        if text is not None:
            params["text"] = text
        if key is not None:
            params["key"] = key
        await self._call("dispatchKeyEvent", params)


class NetworkDomain(Domain):
    name = "Network"
