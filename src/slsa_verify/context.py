"""Execution context passed to every plugin run."""

from __future__ import annotations

import threading
from dataclasses import dataclass, field
from typing import Callable

from slsa_verify.config import Settings
from slsa_verify.console import Console


@dataclass
class ExecutionContext:
    """Context provided to plugins during execution.

    Attributes:
        settings: Resolved configuration (environment + config file).
        console: Where report output goes and whether it is colored.
        on_progress: Callback to report progress. Called with (fraction, message)
                     where fraction is 0.0-1.0.
        cancel_event: Threading event that is set when cancellation is requested.
                      The pipeline checks it between stages.
    """

    settings: Settings = field(default_factory=Settings)
    console: Console = field(default_factory=Console)
    on_progress: Callable[[float, str], None] = field(default=lambda f, m: None)
    cancel_event: threading.Event = field(default_factory=threading.Event)

    def progress(self, fraction: float, message: str) -> None:
        """Report progress. Convenience wrapper around on_progress."""
        self.on_progress(fraction, message)

    @property
    def is_cancelled(self) -> bool:
        """Check if cancellation has been requested."""
        return self.cancel_event.is_set()
