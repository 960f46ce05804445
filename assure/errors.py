"""
errors.py - Exception hierarchy for the assure engine

Fatal (abort before or outside command execution):
  LaunchError, ExecutableNotFound, ConnectionFailed

Command-level (halt the run at the failing line):
  ElementNotFound, WaitTimeout, StaleElementError, AssertionFailed,
  UnknownCommand, InvalidArgument, OTPUnavailable, NavigationError,
  EvaluationError

Transport:
  ProtocolError, TransportClosed
"""


class AssureError(Exception):
    """Base class for every error raised by the engine."""
    pass


# === Session ===

class LaunchError(AssureError):
    """Browser executable missing, spawn failure, or domain enablement failure."""
    pass


class ExecutableNotFound(LaunchError):
    pass


class ConnectionFailed(AssureError):
    """Connection retry budget exhausted."""

    def __init__(self, message, attempts=0):
        super().__init__(message)
        self.attempts = attempts


# === Transport ===

class ProtocolError(AssureError):
    """The browser answered a call with an error object."""

    def __init__(self, method, message, code=None):
        super().__init__(f"{method}: {message}")
        self.method = method
        self.code = code
        self.remote_message = message


class TransportClosed(AssureError):
    pass


# === Page ===

class NavigationError(AssureError):
    pass


class EvaluationError(AssureError):
    """A script evaluated in page context threw."""
    pass


# === Elements and waits ===

class ElementNotFound(AssureError):

    def __init__(self, selector, timeout, reason=None):
        message = f'Element "{selector}" not found within {int(round(timeout * 1000))}ms'
        if reason:
            message += f" ({reason})"
        super().__init__(message)
        self.selector = selector
        self.timeout = timeout
        self.reason = reason


class WaitTimeout(AssureError, TimeoutError):
    """A polling wait ran out of time. The last tick's exception, if any, is the __cause__."""

    def __init__(self, description, timeout):
        super().__init__(f"Timed out after {int(round(timeout * 1000))}ms waiting for {description}")
        self.description = description
        self.timeout = timeout


class StaleElementError(AssureError):
    """The node behind an ElementHandle is gone (document reloaded or node removed)."""

    def __init__(self, selector, node_id):
        super().__init__(f'Element "{selector}" (node {node_id}) is no longer attached to the document')
        self.selector = selector
        self.node_id = node_id


# === Commands ===

class AssertionFailed(AssureError):

    def __init__(self, message, expected=None, actual=None):
        super().__init__(message)
        self.expected = expected
        self.actual = actual


class UnknownCommand(AssureError):
    pass


class InvalidArgument(AssureError):
    pass


class OTPUnavailable(AssureError):
    """An OTP source produced no code (unsupported source or nothing found)."""
    pass
