"""
waits.py - Text, URL and network-idle waits built on poll_until

Default budgets (EngineConfig): text / URL 10s polled every 0.2s,
network idle 5s. Element waits live in locator.py.
"""

import asyncio
import logging

from .errors import WaitTimeout
from .locator import element_text, query_selector
from .page import evaluate, get_url
from .polling import WaitCondition, poll_until

logger = logging.getLogger(__name__)

__all__ = ["poll_until", "WaitCondition", "wait_for_text", "wait_for_url", "wait_for_network_idle"]


async def wait_for_text(session, selector, substring, timeout=None):
    """Wait until the rendered text of `selector` contains `substring` (case-sensitive)."""
    config = session.config
    timeout = config.text_timeout if timeout is None else timeout

    async def check():
        handle = await query_selector(session, selector)
        if handle is None:
            return False
        return substring in await element_text(session, handle, rendered=True)

    condition = WaitCondition(check, config.text_poll_interval, timeout,
                              f'text "{substring}" in "{selector}"')
    return await condition.wait()


async def wait_for_url(session, substring, timeout=None):
    """Wait until the current URL contains `substring`."""
    config = session.config
    timeout = config.url_timeout if timeout is None else timeout

    async def check():
        return substring in await get_url(session)

    condition = WaitCondition(check, config.text_poll_interval, timeout, f'URL containing "{substring}"')
    return await condition.wait()


async def wait_for_network_idle(session, timeout=None) -> bool:
    """
    Best-effort settle: grace delay, poll document.readyState, settle delay.

    readyState is a proxy, not in-flight request tracking. Never fails on
    timeout; returns False instead of True and carries on.
    """
    config = session.config
    timeout = config.network_idle_timeout if timeout is None else timeout

    await asyncio.sleep(config.network_idle_grace)

    async def document_complete():
        return await evaluate(session, "document.readyState") == "complete"

    idle = True
    try:
        await poll_until(document_complete, config.text_poll_interval, timeout, "document.readyState complete")
    except WaitTimeout:
        logger.info(f"Page still loading after {timeout}s, continuing")
        idle = False

    await asyncio.sleep(config.network_idle_settle)
    return idle
