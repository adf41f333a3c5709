"""
Logging Test Suite

Coverage:
  - SanitizingFormatter strips terminal escapes from caller-supplied values
  - StakeXLogHighlighter marks addresses, amounts and event names
"""

import logging
import os
import sys

from rich.text import Text

# ── Path setup ────────────────────────────────────────────────────────
ROOT = os.path.dirname(os.path.dirname(os.path.abspath(__file__)))
if ROOT not in sys.path:
    sys.path.insert(0, ROOT)

from stakex.logger import SanitizingFormatter, StakeXLogHighlighter, get_logger


ADDRESS = "0x" + "a1" * 20


def make_record(msg):
    return logging.LogRecord(
        name="stakex.test", level=logging.INFO, pathname="", lineno=0,
        msg=msg, args=(), exc_info=None,
    )


class TestSanitizingFormatter:

    def test_strips_ansi_and_controls(self):
        formatter = SanitizingFormatter(fmt="%(message)s")
        out = formatter.format(make_record("Stake by \x1b[31mevil\x1b[0m\r\x07 done"))
        assert out == "Stake by evil done"

    def test_keeps_tabs_and_newlines(self):
        assert SanitizingFormatter.sanitize("a\tb\nc") == "a\tb\nc"

    def test_empty_text(self):
        assert SanitizingFormatter.sanitize("") == ""


class TestHighlighter:

    def styles(self, message):
        text = Text(message)
        StakeXLogHighlighter().highlight(text)
        return {message[span.start:span.end]: span.style for span in text.spans}

    def test_address_amount_and_event(self):
        styles = self.styles(f"Staked: {ADDRESS} staked 12.5 STX")
        assert styles[ADDRESS] == "stakex.address"
        assert styles["12.5"] == "stakex.amount"
        assert styles["Staked"] == "stakex.event"

    def test_plain_numbers_are_not_amounts(self):
        assert "42" not in self.styles("attempt 42 of 50")


def test_get_logger_returns_named_logger():
    logger = get_logger("stakex.example")
    assert logger.name == "stakex.example"
    assert logging.getLogger().handlers
