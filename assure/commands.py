"""
commands.py - Command model and typed actions

A Command is what the parser emits: the upper-cased action, its quote-stripped
arguments and the 1-indexed source line. decode() turns it, once, into one of
the typed actions below; the executor dispatches on the action type.

    OPEN url
    CLICK selector
    TYPE selector text...
    WAIT seconds
    EXPECT TITLE|URL CONTAINS|EQUALS value...
    EXPECT TEXT selector CONTAINS|EQUALS value...
    EXPECT VISIBLE selector
    OTP FROM EMAIL|SMS|CLIPBOARD [selector]
    OTP FROM FILE path [selector]
    OTP MANUAL code [selector]
    WAIT FOR ELEMENT selector | TEXT selector text... | URL substring | NETWORK [IDLE]
    TEST label...

Keywords (actions, targets, conditions, sources) are case-insensitive;
values are not.
"""

import math
from dataclasses import dataclass, field
from typing import Optional, Tuple, Union

from .config import DEFAULT_OTP_SELECTOR
from .errors import AssureError, InvalidArgument, UnknownCommand
from .otp import OTPSourceKind, is_valid_code


@dataclass(frozen=True)
class Command:
    action: str
    args: Tuple[str, ...] = ()
    line_number: int = 1
    raw: str = field(default="", compare=False)

    def __post_init__(self):
        if self.line_number < 1:
            raise ValueError(f"line_number must be >= 1, got {self.line_number}")

    @property
    def text(self):
        """Source text for diagnostics (the raw line when the parser kept it)."""
        return self.raw or " ".join((self.action,) + tuple(self.args))


# === Typed actions ===

@dataclass(frozen=True)
class Open:
    url: str


@dataclass(frozen=True)
class Click:
    selector: str


@dataclass(frozen=True)
class Type:
    selector: str
    text: str


@dataclass(frozen=True)
class Wait:
    seconds: float


@dataclass(frozen=True)
class Expect:
    target: str                      # TITLE | URL | TEXT | VISIBLE
    condition: Optional[str] = None  # CONTAINS | EQUALS (None for VISIBLE)
    expected: str = ""
    selector: Optional[str] = None


@dataclass(frozen=True)
class Otp:
    source: OTPSourceKind
    selector: str = DEFAULT_OTP_SELECTOR
    code: Optional[str] = None
    path: Optional[str] = None


@dataclass(frozen=True)
class WaitFor:
    kind: str                        # ELEMENT | TEXT | URL | NETWORK
    selector: Optional[str] = None
    text: Optional[str] = None
    url: Optional[str] = None


@dataclass(frozen=True)
class TestLabel:
    __test__ = False

    label: str


@dataclass(frozen=True)
class Invalid:
    """A command that failed to decode. Raised when its line is reached."""
    error: AssureError


Action = Union[Open, Click, Type, Wait, Expect, Otp, WaitFor, TestLabel, Invalid]

CONDITIONS = ("CONTAINS", "EQUALS")
OTP_SOURCES = {
    "EMAIL": OTPSourceKind.EMAIL,
    "SMS": OTPSourceKind.SMS,
    "CLIPBOARD": OTPSourceKind.CLIPBOARD,
    "FILE": OTPSourceKind.FILE,
}


# === Decoders ===

def _decode_open(args):
    if not args:
        raise InvalidArgument("OPEN command requires a URL")
    return Open(url=args[0])


def _decode_click(args):
    if not args:
        raise InvalidArgument("CLICK command requires a selector")
    return Click(selector=args[0])


def _decode_type(args):
    if len(args) < 2:
        raise InvalidArgument("TYPE command requires a selector and text")
    return Type(selector=args[0], text=" ".join(args[1:]))


def _decode_wait(args):
    if not args:
        raise InvalidArgument("WAIT command requires a valid number, got: ")
    try:
        seconds = float(args[0])
    except ValueError:
        raise InvalidArgument(f"WAIT command requires a valid number, got: {args[0]}") from None
    if not math.isfinite(seconds):
        raise InvalidArgument(f"WAIT command requires a valid number, got: {args[0]}")
    # Negative waits return at once
    return Wait(seconds=max(seconds, 0.0))


def _condition(target, keyword):
    condition = keyword.upper()
    if condition not in CONDITIONS:
        raise InvalidArgument(f"Unknown condition for {target}: {keyword}")
    return condition


def _decode_expect(args):
    if len(args) < 2:
        raise InvalidArgument("EXPECT command requires at least 2 arguments")

    target = args[0].upper()
    if target in ("TITLE", "URL"):
        return Expect(target=target, condition=_condition(target, args[1]), expected=" ".join(args[2:]))

    if target == "TEXT":
        if len(args) < 4:
            raise InvalidArgument("EXPECT TEXT requires a selector, condition, and value")
        return Expect(target=target, selector=args[1], condition=_condition(target, args[2]),
                      expected=" ".join(args[3:]))

    if target == "VISIBLE":
        return Expect(target=target, selector=args[1])

    raise InvalidArgument(f"Unknown EXPECT target: {args[0]}")


def _decode_otp(args):
    if len(args) < 2:
        raise InvalidArgument("OTP command requires: OTP FROM <source> [selector] or OTP MANUAL <code> [selector]")

    mode = args[0].upper()
    if mode == "MANUAL":
        code = args[1]
        if not is_valid_code(code):
            raise InvalidArgument(f"Invalid OTP code: {code}. OTP should be 4-8 digits")
        selector = args[2] if len(args) > 2 else DEFAULT_OTP_SELECTOR
        return Otp(source=OTPSourceKind.MANUAL, code=code, selector=selector)

    if mode != "FROM":
        raise InvalidArgument(f"Unknown OTP action: {args[0]}. Use FROM or MANUAL")

    source = OTP_SOURCES.get(args[1].upper())
    if source is None:
        raise InvalidArgument(f"Unknown OTP source: {args[1]}. Use EMAIL, SMS, CLIPBOARD, or FILE")

    if source is OTPSourceKind.FILE:
        if len(args) < 3:
            raise InvalidArgument("OTP FROM FILE requires a file path")
        selector = args[3] if len(args) > 3 else DEFAULT_OTP_SELECTOR
        return Otp(source=source, path=args[2], selector=selector)

    selector = args[2] if len(args) > 2 else DEFAULT_OTP_SELECTOR
    return Otp(source=source, selector=selector)


def _decode_wait_for(args):
    if not args:
        raise InvalidArgument("WAIT FOR command requires a condition and value")

    kind = args[0].upper()
    if kind == "NETWORK":
        if len(args) > 1 and args[1].upper() != "IDLE":
            raise InvalidArgument(f"Unknown WAIT FOR NETWORK state: {args[1]}")
        return WaitFor(kind=kind)

    if len(args) < 2:
        raise InvalidArgument("WAIT FOR command requires a condition and value")

    if kind == "ELEMENT":
        return WaitFor(kind=kind, selector=args[1])
    if kind == "TEXT":
        if len(args) < 3:
            raise InvalidArgument("WAIT FOR TEXT requires a selector and text")
        return WaitFor(kind=kind, selector=args[1], text=" ".join(args[2:]))
    if kind == "URL":
        return WaitFor(kind=kind, url=args[1])

    raise InvalidArgument(f"Unknown WAIT FOR condition: {args[0]}")


DECODERS = {
    "OPEN": _decode_open,
    "CLICK": _decode_click,
    "TYPE": _decode_type,
    "EXPECT": _decode_expect,
    "OTP": _decode_otp,
    "WAIT-FOR": _decode_wait_for,
}


def decode(command: Command) -> Action:
    """
    Decode a Command into its typed action.

    Raises:
        UnknownCommand: unrecognized action name.
        InvalidArgument: recognized action, malformed arguments.
    """
    action = command.action.upper()
    args = command.args

    if action == "WAIT":
        # Two-token spelling: WAIT FOR ...
        if args and args[0].upper() == "FOR":
            return _decode_wait_for(args[1:])
        return _decode_wait(args)

    if action == "TEST":
        return TestLabel(label=" ".join(args))

    decoder = DECODERS.get(action)
    if decoder is None:
        raise UnknownCommand(f"Unknown command: {command.action} at line {command.line_number}")
    return decoder(args)


def decode_all(commands):
    """Decode every command up front; failures become Invalid actions at their own line."""
    decoded = []
    for command in commands:
        try:
            decoded.append((command, decode(command)))
        except AssureError as e:
            decoded.append((command, Invalid(e)))
    return decoded
