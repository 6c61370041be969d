"""Tests for ExecutionContext."""

import threading

from slsa_verify.config import Settings
from slsa_verify.console import Console
from slsa_verify.context import ExecutionContext


def test_context_creation():
    """Test ExecutionContext creation with defaults."""
    ctx = ExecutionContext()

    assert isinstance(ctx.settings, Settings)
    assert isinstance(ctx.console, Console)
    assert callable(ctx.on_progress)
    assert isinstance(ctx.cancel_event, threading.Event)


def test_context_with_values():
    """Test ExecutionContext creation with values."""
    cancel_event = threading.Event()
    settings = Settings(packages_shown=3)
    console = Console(color=True)

    ctx = ExecutionContext(
        settings=settings,
        console=console,
        cancel_event=cancel_event,
    )

    assert ctx.settings.packages_shown == 3
    assert ctx.console.color is True
    assert ctx.cancel_event is cancel_event


def test_progress_callback():
    """Test progress reporting."""
    progress_calls = []

    def on_progress(fraction, message):
        progress_calls.append((fraction, message))

    ctx = ExecutionContext(on_progress=on_progress)

    ctx.progress(0.5, "Verifying SLSA provenance")
    ctx.progress(1.0, "Verification complete")

    assert len(progress_calls) == 2
    assert progress_calls[0] == (0.5, "Verifying SLSA provenance")
    assert progress_calls[1] == (1.0, "Verification complete")


def test_default_progress_is_silent():
    ExecutionContext().progress(0.5, "ignored")


def test_cancellation():
    """Test cancellation detection."""
    ctx = ExecutionContext()

    assert not ctx.is_cancelled

    ctx.cancel_event.set()

    assert ctx.is_cancelled
