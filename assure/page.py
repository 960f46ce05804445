"""
page.py - Navigation and page-context evaluation
"""

import asyncio
import logging

from .errors import EvaluationError, NavigationError

logger = logging.getLogger(__name__)


async def navigate(session, url):
    """
    Navigate to `url` and wait for Page.loadEventFired.

    Only the load event is awaited. Pages that keep loading content after it
    need wait_for_network_idle() on top.

    Raises:
        NavigationError: the browser refused the navigation, or no load event
        arrived within config.navigation_timeout.
    """
    loaded = session.page.load_event_fired()
    try:
        result = await session.page.navigate(url)
    except Exception:
        loaded.cancel()
        raise

    if result.error_text:
        loaded.cancel()
        raise NavigationError(f"Navigation to {url} failed: {result.error_text}")

    timeout = session.config.navigation_timeout
    try:
        await asyncio.wait_for(loaded, timeout)
    except asyncio.TimeoutError:
        raise NavigationError(f"No load event for {url} within {int(timeout * 1000)}ms") from None
    logger.debug(f"Loaded {url}")


async def evaluate(session, expression):
    """Run `expression` in the page and return its JSON value."""
    reply = await session.runtime.evaluate(expression)
    if reply.exception_details:
        raise EvaluationError(f"{expression}: {reply.exception_details.message}")
    return reply.result.value


async def get_title(session):
    return await evaluate(session, "document.title") or ""


async def get_url(session):
    return await evaluate(session, "window.location.href") or ""


async def sleep(seconds):
    await asyncio.sleep(seconds)
