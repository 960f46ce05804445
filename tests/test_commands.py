"""
Tests for command decoding (assure/commands.py)
"""
import pytest

from assure.commands import (
    Click, Command, Expect, Invalid, Open, Otp, TestLabel, Type, Wait, WaitFor, decode, decode_all,
)
from assure.config import DEFAULT_OTP_SELECTOR
from assure.errors import InvalidArgument, UnknownCommand
from assure.otp import OTPSourceKind


def cmd(action, *args, line=1):
    return Command(action=action, args=tuple(args), line_number=line)


class TestCommand:
    """Test the Command record"""

    def test_line_number_must_be_positive(self):
        """Test line numbers are 1-indexed"""
        with pytest.raises(ValueError):
            Command(action="OPEN", args=("x",), line_number=0)

    def test_frozen(self):
        """Test commands are immutable"""
        command = cmd("OPEN", "https://example.com")
        with pytest.raises(AttributeError):
            command.action = "CLICK"

    def test_text_without_raw(self):
        """Test diagnostics text falls back to action + args"""
        assert cmd("WAIT", "2").text == "WAIT 2"


class TestDecodeBasic:
    """Test OPEN / CLICK / TYPE / WAIT / TEST"""

    def test_open(self):
        assert decode(cmd("OPEN", "https://example.com")) == Open("https://example.com")

    def test_click(self):
        assert decode(cmd("CLICK", "#go")) == Click("#go")

    def test_type_joins_remaining_args(self):
        """Test TYPE text is every arg after the selector joined by spaces"""
        assert decode(cmd("TYPE", "#q", "hello", "world")) == Type("#q", "hello world")

    def test_type_requires_text(self):
        with pytest.raises(InvalidArgument):
            decode(cmd("TYPE", "#q"))

    def test_wait_number(self):
        assert decode(cmd("WAIT", "1.5")) == Wait(1.5)

    @pytest.mark.parametrize("value", ["soon", "nan", "inf"])
    def test_wait_rejects_non_numbers(self, value):
        """Test WAIT needs a finite number"""
        with pytest.raises(InvalidArgument, match=f"WAIT command requires a valid number, got: {value}"):
            decode(cmd("WAIT", value))

    def test_wait_negative_clamped(self):
        """Test a negative WAIT sleeps for no time instead of failing"""
        assert decode(cmd("WAIT", "-1")) == Wait(0.0)
        assert decode(cmd("WAIT", "-0.5")).seconds == 0.0

    def test_test_label(self):
        assert decode(cmd("TEST", "Login", "flow")) == TestLabel("Login flow")

    def test_lowercase_action(self):
        """Test action names are matched case-insensitively"""
        assert decode(cmd("open", "https://example.com")) == Open("https://example.com")

    def test_unknown_command(self):
        with pytest.raises(UnknownCommand, match="Unknown command: HOVER"):
            decode(cmd("HOVER", "#menu", line=4))


class TestDecodeExpect:
    """Test EXPECT targets and conditions"""

    def test_title_contains(self):
        assert decode(cmd("EXPECT", "TITLE", "CONTAINS", "Welcome")) == Expect("TITLE", "CONTAINS", "Welcome")

    def test_keywords_case_insensitive(self):
        """Test target and condition keywords ignore case, the value does not"""
        action = decode(cmd("EXPECT", "url", "equals", "https://Example.com/"))
        assert action == Expect("URL", "EQUALS", "https://Example.com/")

    def test_text_with_selector(self):
        action = decode(cmd("EXPECT", "TEXT", "#msg", "CONTAINS", "Signed", "in"))
        assert action == Expect("TEXT", "CONTAINS", "Signed in", "#msg")

    def test_text_needs_value(self):
        with pytest.raises(InvalidArgument):
            decode(cmd("EXPECT", "TEXT", "#msg", "CONTAINS"))

    def test_visible(self):
        assert decode(cmd("EXPECT", "VISIBLE", "#banner")) == Expect("VISIBLE", selector="#banner")

    def test_unknown_condition(self):
        with pytest.raises(InvalidArgument, match="Unknown condition for TITLE: STARTS"):
            decode(cmd("EXPECT", "TITLE", "STARTS", "x"))

    def test_unknown_target(self):
        with pytest.raises(InvalidArgument, match="Unknown EXPECT target"):
            decode(cmd("EXPECT", "COOKIE", "CONTAINS", "x"))


class TestDecodeOtp:
    """Test OTP sources and selectors"""

    def test_manual_default_selector(self):
        action = decode(cmd("OTP", "MANUAL", "123456"))
        assert action == Otp(OTPSourceKind.MANUAL, DEFAULT_OTP_SELECTOR, code="123456")

    def test_manual_rejects_bad_code(self):
        with pytest.raises(InvalidArgument, match="Invalid OTP code: 12ab. OTP should be 4-8 digits"):
            decode(cmd("OTP", "MANUAL", "12ab"))

    def test_from_file_with_selector(self):
        action = decode(cmd("OTP", "FROM", "FILE", "/tmp/otp.txt", "#code"))
        assert action == Otp(OTPSourceKind.FILE, "#code", path="/tmp/otp.txt")

    def test_from_clipboard(self):
        assert decode(cmd("OTP", "from", "clipboard", "#otp")) == Otp(OTPSourceKind.CLIPBOARD, "#otp")

    def test_unknown_source(self):
        with pytest.raises(InvalidArgument, match="Unknown OTP source: PIGEON"):
            decode(cmd("OTP", "FROM", "PIGEON"))


class TestDecodeWaitFor:
    """Test both WAIT FOR spellings"""

    def test_two_token_spelling(self):
        assert decode(cmd("WAIT", "FOR", "ELEMENT", "#list")) == WaitFor("ELEMENT", selector="#list")

    def test_hyphen_spelling(self):
        assert decode(cmd("WAIT-FOR", "URL", "/dashboard")) == WaitFor("URL", url="/dashboard")

    def test_text(self):
        action = decode(cmd("WAIT", "FOR", "TEXT", "#status", "Done", "!"))
        assert action == WaitFor("TEXT", selector="#status", text="Done !")

    def test_network_idle_optional(self):
        """Test NETWORK works with and without IDLE"""
        assert decode(cmd("WAIT", "FOR", "NETWORK", "IDLE")) == WaitFor("NETWORK")
        assert decode(cmd("WAIT", "FOR", "NETWORK")) == WaitFor("NETWORK")

    def test_unknown_condition(self):
        with pytest.raises(InvalidArgument, match="Unknown WAIT FOR condition"):
            decode(cmd("WAIT", "FOR", "COOKIE", "x"))


class TestDecodeAll:
    """Test up-front decoding"""

    def test_failures_become_invalid_actions(self):
        """Test a bad command does not stop decoding of the others"""
        decoded = decode_all([cmd("OPEN", "https://a.test", line=1), cmd("WAIT", "x", line=2),
                              cmd("CLICK", "#b", line=3)])

        actions = [action for _, action in decoded]
        assert actions[0] == Open("https://a.test")
        assert isinstance(actions[1], Invalid)
        assert isinstance(actions[1].error, InvalidArgument)
        assert actions[2] == Click("#b")
        assert [c.line_number for c, _ in decoded] == [1, 2, 3]
