"""
locator.py -- Selector resolution and element readiness
=======================================================

Three levels of "found", each stricter than the last:

  query_selector                            present in the DOM right now (or None)
  wait_for_selector                         present and visible in the viewport
  wait_for_element_visible_and_clickable    ...and enabled, and not covered

The clickable level is the precondition for every interaction (CLICK, TYPE,
OTP): dynamic UIs render elements before they can take input, and clicking
through an overlay or a disabled button is the classic flaky-test source.

ElementHandle is a node id, nothing more. When the document reloads or the
node is removed the id stops resolving and calls raise StaleElementError.
"""

import logging
from dataclasses import dataclass
from typing import Optional

from .errors import ElementNotFound, EvaluationError, ProtocolError, StaleElementError, WaitTimeout
from .polling import WaitCondition

logger = logging.getLogger(__name__)

# Returns "ok" or the first unmet condition. Off-screen elements are scrolled
# to the center of the viewport before the viewport check.
ELEMENT_STATE_JS = """
function(requireClickable) {
    const style = window.getComputedStyle(this);
    if (style.display === 'none' || style.visibility === 'hidden' || style.opacity === '0') {
        return 'hidden';
    }
    let rect = this.getBoundingClientRect();
    if (rect.width === 0 || rect.height === 0) {
        return 'zero-size';
    }
    const inViewport = r => r.bottom > 0 && r.right > 0
        && r.top < window.innerHeight && r.left < window.innerWidth;
    if (!inViewport(rect)) {
        this.scrollIntoView({block: 'center', inline: 'center'});
        rect = this.getBoundingClientRect();
        if (!inViewport(rect)) {
            return 'outside viewport';
        }
    }
    if (!requireClickable) {
        return 'ok';
    }
    if (this.disabled || this.getAttribute('aria-disabled') === 'true') {
        return 'disabled';
    }
    const hit = document.elementFromPoint(rect.left + rect.width / 2, rect.top + rect.height / 2);
    if (!hit || (hit !== this && !this.contains(hit))) {
        return 'occluded';
    }
    return 'ok';
}
"""

# Style-only check used by EXPECT VISIBLE (no viewport or hit test)
STYLE_VISIBLE_JS = """
function() {
    const style = window.getComputedStyle(this);
    return style.display !== 'none' && style.visibility !== 'hidden' && style.opacity !== '0';
}
"""

TEXT_CONTENT_JS = "function() { return this.textContent || this.innerText || ''; }"
RENDERED_TEXT_JS = "function() { return this.innerText || this.textContent || ''; }"


@dataclass(frozen=True)
class ElementHandle:
    node_id: int
    selector: str


async def query_selector(session, selector) -> Optional[ElementHandle]:
    """Single lookup from the document root. Absence returns None, not an error."""
    root = await session.dom.get_document()
    node_id = await session.dom.query_selector(root.node_id, selector)
    if not node_id:
        return None
    return ElementHandle(node_id=node_id, selector=selector)


async def call_on(session, handle: ElementHandle, declaration, *arguments):
    """Run a JS function with `this` bound to the element; return its JSON value."""
    try:
        remote = await session.dom.resolve_node(handle.node_id)
    except ProtocolError as e:
        raise StaleElementError(handle.selector, handle.node_id) from e
    if not remote.object_id:
        raise StaleElementError(handle.selector, handle.node_id)

    try:
        reply = await session.runtime.call_function_on(remote.object_id, declaration, arguments)
    except ProtocolError as e:
        raise StaleElementError(handle.selector, handle.node_id) from e
    if reply.exception_details:
        raise EvaluationError(f'Script on "{handle.selector}" failed: {reply.exception_details.message}')
    return reply.result.value


async def element_text(session, handle: ElementHandle, rendered=False) -> str:
    value = await call_on(session, handle, RENDERED_TEXT_JS if rendered else TEXT_CONTENT_JS)
    return value or ""


async def element_state(session, handle: ElementHandle, require_clickable=False) -> str:
    return await call_on(session, handle, ELEMENT_STATE_JS, require_clickable)


async def _wait_for_element(session, selector, timeout, visible, clickable):
    config = session.config
    timeout = config.element_timeout if timeout is None else timeout
    reason = "not present"

    async def check():
        nonlocal reason
        try:
            handle = await query_selector(session, selector)
            if handle is None:
                reason = "not present"
                return None
            if not visible:
                return handle
            state = await element_state(session, handle, require_clickable=clickable)
            if state != "ok":
                reason = state
                return None
            return handle
        except Exception as e:
            reason = str(e)
            raise

    condition = WaitCondition(check, config.element_poll_interval, timeout, f'element "{selector}"')
    try:
        return await condition.wait()
    except WaitTimeout as e:
        raise ElementNotFound(selector, timeout, reason) from e


async def wait_for_selector(session, selector, timeout=None, visible=True) -> ElementHandle:
    """
    Poll until `selector` is present and (unless visible=False) visible in the viewport.

    Raises:
        ElementNotFound: with the selector, the timeout, and the last unmet condition.
    """
    return await _wait_for_element(session, selector, timeout, visible=visible, clickable=False)


async def wait_for_element_visible_and_clickable(session, selector, timeout=None) -> ElementHandle:
    """
    Poll until `selector` is visible, enabled, and the point at its center hits it.

    Raises:
        ElementNotFound: with the selector, the timeout, and the last unmet
        condition (not present / hidden / disabled / occluded ...).
    """
    return await _wait_for_element(session, selector, timeout, visible=True, clickable=True)
