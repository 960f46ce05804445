"""
interaction.py -- Pointer and keyboard input
============================================

Clicks and keystrokes go through CDP's Input domain rather than JavaScript
.click() / .value = ... so that pages see real user events. The flow:
  1. Wait until the element is visible and clickable
  2. Click: take the center of its content box, dispatch mousePressed +
     mouseReleased there, pause briefly for the page to react
  3. Type: focus it, clear its value, then one "char" key event per
     character with a small delay between keys
"""

import asyncio
import logging

from .errors import AssureError, ProtocolError, StaleElementError, TransportClosed
from .locator import (
    STYLE_VISIBLE_JS,
    call_on,
    element_text,
    query_selector,
    wait_for_element_visible_and_clickable,
    wait_for_selector,
)

logger = logging.getLogger(__name__)

CLEAR_VALUE_JS = """
function() {
    this.value = '';
    this.dispatchEvent(new Event('input', {bubbles: true}));
    this.focus();
}
"""


def content_box_center(quad):
    """
    Center of a CDP content quad [x0,y0, x1,y1, x2,y2, x3,y3] (clockwise from top-left).

    The midpoint of the top-left / bottom-right diagonal.
    """
    return (quad[0] + quad[4]) / 2, (quad[1] + quad[5]) / 2


async def click(session, selector):
    """Click the center of `selector` once it is visible and clickable."""
    handle = await wait_for_element_visible_and_clickable(session, selector)
    try:
        box = await session.dom.get_box_model(handle.node_id)
    except ProtocolError as e:
        raise StaleElementError(handle.selector, handle.node_id) from e

    x, y = content_box_center(box.content)
    await session.input.dispatch_mouse_event("mousePressed", x, y)
    await session.input.dispatch_mouse_event("mouseReleased", x, y)
    logger.debug(f"Clicked {selector} at ({x:.1f}, {y:.1f})")

    # Let navigation / DOM updates triggered by the click start
    await asyncio.sleep(session.config.click_settle)


async def type_text(session, selector, text, key_delay=None):
    """
    Replace the value of `selector` with `text`, one key event per character.

    The field is cleared first, so typing twice leaves only the second text.
    """
    delay = session.config.key_delay if key_delay is None else key_delay
    handle = await wait_for_element_visible_and_clickable(session, selector)
    try:
        await session.dom.focus(handle.node_id)
    except ProtocolError as e:
        raise StaleElementError(handle.selector, handle.node_id) from e
    await call_on(session, handle, CLEAR_VALUE_JS)

    for char in text:
        await session.input.dispatch_key_event("char", text=char)
        if delay:
            await asyncio.sleep(delay)


async def get_text_content(session, selector) -> str:
    """Text of `selector` once present (visibility not required)."""
    handle = await wait_for_selector(session, selector, visible=False)
    return await element_text(session, handle)


async def is_visible(session, selector) -> bool:
    """Single-shot style check (display / visibility / opacity). Never waits."""
    try:
        handle = await query_selector(session, selector)
        if handle is None:
            return False
        return await call_on(session, handle, STYLE_VISIBLE_JS) is True
    except TransportClosed:
        raise
    except AssureError as e:
        logger.debug(f"Visibility check for {selector} failed: {e}")
        return False
