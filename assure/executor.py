"""
executor.py -- Sequential command execution
===========================================

Runs decoded commands one after another against a Session. Fail-fast: the
first command that raises is reported with its line number and raw text, and
the original exception is re-raised unchanged; nothing after it runs.

    ✓ Line 1: OPEN "https://example.com"
    ✓ Line 2: EXPECT TITLE EQUALS "Example Domain"
    ❌ Error at line 3: CLICK "#nonexistent"
       Element "#nonexistent" not found within 10000ms (not present)
"""

import asyncio
import logging
from typing import Dict, List, Optional

from .commands import Click, Command, Expect, Invalid, Open, Otp, TestLabel, Type, Wait, WaitFor, decode_all
from .errors import AssertionFailed, UnknownCommand
from .interaction import click, get_text_content, is_visible, type_text
from .locator import wait_for_selector
from .otp import OTPProvider, OTPSourceKind, provider_for, read_code
from .page import get_title, get_url, navigate, sleep
from .waits import wait_for_network_idle, wait_for_text, wait_for_url

logger = logging.getLogger(__name__)

EXPECT_LABELS = {"TITLE": "title", "URL": "URL", "TEXT": "text"}


def _compare(label, condition, expected, actual, strip=False):
    """Raise AssertionFailed unless `actual` CONTAINS / EQUALS `expected`."""
    if condition == "CONTAINS":
        if expected not in actual:
            raise AssertionFailed(f'Expected {label} to contain "{expected}", but got "{actual}"',
                                  expected=expected, actual=actual)
        return

    left, right = (actual.strip(), expected.strip()) if strip else (actual, expected)
    if left != right:
        raise AssertionFailed(f'Expected {label} to equal "{expected}", but got "{actual}"',
                              expected=expected, actual=actual)


class Executor:
    """
    Dispatches typed actions to the engine.

    Args:
        session: live Session from create_session / open_session
        otp_providers: per-source overrides, e.g. {OTPSourceKind.EMAIL: MyInbox()}
    """

    def __init__(self, session, otp_providers: Optional[Dict[OTPSourceKind, OTPProvider]] = None):
        self.session = session
        self.otp_providers = dict(otp_providers or {})
        self.handlers = {
            Open: self._open,
            Click: self._click,
            Type: self._type,
            Wait: self._wait,
            Expect: self._expect,
            Otp: self._otp,
            WaitFor: self._wait_for,
            TestLabel: self._test_label,
            Invalid: self._invalid,
        }

    async def run(self, commands: List[Command]) -> int:
        """Execute `commands` in order. Returns how many ran; raises on the first failure."""
        executed = 0
        for command, action in decode_all(commands):
            try:
                await self.dispatch(action)
            except Exception as e:
                logger.error(f"❌ Error at line {command.line_number}: {command.text}")
                logger.error(f"   {e}")
                raise
            executed += 1
            if not isinstance(action, TestLabel):
                logger.info(f"✓ Line {command.line_number}: {command.text}")
        return executed

    async def dispatch(self, action):
        handler = self.handlers.get(type(action))
        if handler is None:
            raise UnknownCommand(f"Unknown command: {type(action).__name__}")
        await handler(action)

    # === Handlers ===

    async def _open(self, action: Open):
        await navigate(self.session, action.url)
        await wait_for_network_idle(self.session)

    async def _click(self, action: Click):
        await click(self.session, action.selector)

    async def _type(self, action: Type):
        await type_text(self.session, action.selector, action.text)

    async def _wait(self, action: Wait):
        await sleep(action.seconds)

    async def _expect(self, action: Expect):
        if action.target == "VISIBLE":
            if not await is_visible(self.session, action.selector):
                raise AssertionFailed(f'Expected element "{action.selector}" to be visible',
                                      expected="visible", actual="not visible")
            return

        if action.target == "TITLE":
            actual = await get_title(self.session)
        elif action.target == "URL":
            actual = await get_url(self.session)
        else:
            actual = await get_text_content(self.session, action.selector)

        _compare(EXPECT_LABELS[action.target], action.condition, action.expected, actual,
                 strip=action.target == "TEXT")

    async def _otp(self, action: Otp):
        # The field has to be there before a code is worth fetching
        await wait_for_selector(self.session, action.selector)

        provider = self.otp_providers.get(action.source) or provider_for(
            action.source, code=action.code, path=action.path)
        loop = asyncio.get_running_loop()
        code = await loop.run_in_executor(None, read_code, provider)
        logger.info(f"✓ OTP from {action.source.value}: {code}")

        await type_text(self.session, action.selector, code)

    async def _wait_for(self, action: WaitFor):
        if action.kind == "ELEMENT":
            await wait_for_selector(self.session, action.selector)
        elif action.kind == "TEXT":
            await wait_for_text(self.session, action.selector, action.text)
        elif action.kind == "URL":
            await wait_for_url(self.session, action.url)
        else:
            await wait_for_network_idle(self.session)

    async def _test_label(self, action: TestLabel):
        logger.info(f"🧪 {action.label}")

    async def _invalid(self, action: Invalid):
        raise action.error


async def execute(commands, session, otp_providers=None) -> int:
    """Run `commands` against `session`. See Executor.run."""
    return await Executor(session, otp_providers).run(commands)
