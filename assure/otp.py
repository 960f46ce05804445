"""
otp.py - One-time-password sources

Each provider produces a digit string or None ("nothing found" / "not
supported"). Email and SMS are integration points: they need a mailbox or
SMS gateway and return None until one is plugged in through
Executor(otp_providers=...).
"""

import logging
import re
import subprocess
import sys
from enum import Enum
from typing import Optional

from .errors import OTPUnavailable

logger = logging.getLogger(__name__)

OTP_CODE_RE = re.compile(r"^\d{4,8}$")
OTP_CANDIDATE_RE = re.compile(r"\d{4,8}")

CLIPBOARD_COMMANDS = {
    "darwin": [["pbpaste"]],
    "linux": [["xclip", "-selection", "clipboard", "-o"], ["xsel", "--clipboard", "--output"]],
    "win32": [["powershell", "-command", "Get-Clipboard"]],
}


class OTPSourceKind(Enum):
    EMAIL = "email"
    SMS = "sms"
    CLIPBOARD = "clipboard"
    MANUAL = "manual"
    FILE = "file"


def extract_otp(text) -> Optional[str]:
    """Longest run of 4-8 digits in `text` (first one on ties), or None."""
    candidates = OTP_CANDIDATE_RE.findall(text or "")
    if not candidates:
        return None
    return max(candidates, key=len)


def is_valid_code(code) -> bool:
    return bool(code) and OTP_CODE_RE.match(code) is not None


class OTPProvider:
    kind: OTPSourceKind

    def read(self) -> Optional[str]:
        raise NotImplementedError


class ManualOTPProvider(OTPProvider):
    kind = OTPSourceKind.MANUAL

    def __init__(self, code):
        self.code = code

    def read(self):
        return self.code if is_valid_code(self.code) else None


class FileOTPProvider(OTPProvider):
    kind = OTPSourceKind.FILE

    def __init__(self, path):
        self.path = path

    def read(self):
        try:
            with open(self.path, "r", encoding="utf-8") as f:
                content = f.read()
        except OSError as e:
            raise OTPUnavailable(f"Failed to read OTP from file: {self.path}") from e
        return extract_otp(content.strip())


class ClipboardOTPProvider(OTPProvider):
    kind = OTPSourceKind.CLIPBOARD

    def read(self):
        platform = "linux" if sys.platform.startswith("linux") else sys.platform
        for cmd in CLIPBOARD_COMMANDS.get(platform, []):
            try:
                result = subprocess.run(cmd, capture_output=True, text=True, timeout=2)
            except (OSError, subprocess.TimeoutExpired) as e:
                logger.debug(f"Clipboard command {cmd[0]} unavailable: {e}")
                continue
            if result.returncode == 0 and result.stdout.strip():
                return extract_otp(result.stdout.strip())
        return None


class EmailOTPProvider(OTPProvider):
    kind = OTPSourceKind.EMAIL

    def read(self):
        logger.warning("Email OTP reading requires email service integration")
        return None


class SmsOTPProvider(OTPProvider):
    kind = OTPSourceKind.SMS

    def read(self):
        logger.warning("SMS OTP reading requires SMS service integration")
        return None


def provider_for(kind: OTPSourceKind, code=None, path=None) -> OTPProvider:
    if kind is OTPSourceKind.MANUAL:
        return ManualOTPProvider(code)
    if kind is OTPSourceKind.FILE:
        return FileOTPProvider(path)
    if kind is OTPSourceKind.CLIPBOARD:
        return ClipboardOTPProvider()
    if kind is OTPSourceKind.EMAIL:
        return EmailOTPProvider()
    return SmsOTPProvider()


UNAVAILABLE_HINTS = {
    OTPSourceKind.EMAIL: "Could not read OTP from email. Use OTP FROM FILE or OTP MANUAL instead.",
    OTPSourceKind.SMS: "Could not read OTP from SMS. Use OTP FROM FILE or OTP MANUAL instead.",
    OTPSourceKind.CLIPBOARD: "Could not read OTP from clipboard. Make sure OTP is copied to clipboard.",
    OTPSourceKind.MANUAL: "Invalid OTP code. OTP should be 4-8 digits",
}


def read_code(provider: OTPProvider) -> str:
    """Run a provider; turn "nothing found" into OTPUnavailable."""
    code = provider.read()
    if not code:
        if provider.kind is OTPSourceKind.FILE:
            raise OTPUnavailable(f"Could not extract OTP from file: {provider.path}")
        raise OTPUnavailable(UNAVAILABLE_HINTS.get(provider.kind, "Failed to get OTP code"))
    return code
