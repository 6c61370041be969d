"""
Console output utilities for consistent user messaging.

Provides standardized formatting for headers, status lines and labelled fields.
These are for direct user interaction and should NOT be replaced with logger calls.
"""

from __future__ import annotations

import dataclasses
import os
import sys
from dataclasses import dataclass, field
from typing import TextIO

RED = "\033[0;31m"
GREEN = "\033[0;32m"
YELLOW = "\033[1;33m"
BLUE = "\033[0;34m"
RESET = "\033[0m"

RULE = "━" * 58


def paint(text: str, color: str, enabled: bool) -> str:
    """Wrap text in an ANSI color code when enabled."""
    if not enabled:
        return text
    return f"{color}{text}{RESET}"


def format_field(label: str, value: object, color: bool = False) -> str:
    """Format a "label: value" line with the label padded to 20 columns."""
    padded = f"{label + ':':<20}"
    return f"  {paint(padded, BLUE, color)} {value}"


def format_list_item(text: str) -> str:
    return f"    - {text}"


def format_remainder(count: int, noun: str = "more") -> str:
    """Suffix line for a truncated list."""
    return f"    ... and {count} {noun}"


def color_supported(stream: TextIO) -> bool:
    """Check whether ANSI colors should be emitted on a stream."""
    if os.environ.get("NO_COLOR"):
        return False
    isatty = getattr(stream, "isatty", None)
    return bool(isatty and isatty())


@dataclass(frozen=True)
class Console:
    """Stateless writer for report output.

    Holds only its configuration: whether to emit colors, and which streams
    regular output and errors go to.
    """

    color: bool = False
    out: TextIO = field(default_factory=lambda: sys.stdout)
    err: TextIO = field(default_factory=lambda: sys.stderr)

    @classmethod
    def for_terminal(cls, color: bool = True, stream: TextIO | None = None) -> Console:
        """Build a console writing regular output to stream (stdout by default).

        Colors follow whether that stream is a terminal.
        """
        stream = stream or sys.stdout
        return cls(color=color and color_supported(stream), out=stream)

    def to_stderr(self) -> Console:
        """Return a console that writes regular output to the error stream."""
        return dataclasses.replace(self, out=self.err)

    def line(self, text: str = "") -> None:
        print(text, file=self.out)

    def header(self, title: str) -> None:
        self.line(paint(title, YELLOW, self.color))
        self.line(paint(RULE, BLUE, self.color))

    def success(self, message: str) -> None:
        self.line(paint(f"✓ {message}", GREEN, self.color))

    def error(self, message: str, detail: str | None = None) -> None:
        print(paint(f"✗ {message}", RED, self.color), file=self.err)
        if detail:
            print(paint(f"  {detail}", RED, self.color), file=self.err)

    def warning(self, message: str) -> None:
        self.line(paint(f"⚠ {message}", YELLOW, self.color))

    def note(self, message: str, color: str = YELLOW) -> None:
        """Indented secondary line under a status message."""
        self.line(paint(f"  {message}", color, self.color))

    def field(self, label: str, value: object) -> None:
        self.line(format_field(label, value, self.color))

    def banner(self, lines: list[str], color: str = GREEN) -> None:
        """Print lines inside a double-ruled box."""
        width = 60
        self.line(paint("╔" + "═" * width + "╗", color, self.color))
        for text in lines:
            self.line(paint(f"║{text:^{width}}║", color, self.color))
        self.line(paint("╚" + "═" * width + "╝", color, self.color))
