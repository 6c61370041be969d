"""Plugin protocol that every verification tool implements."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import TYPE_CHECKING, Any, Literal, Protocol, runtime_checkable

if TYPE_CHECKING:
    from slsa_verify.context import ExecutionContext


class ResultStatus(Enum):
    """Outcome of a tool run."""

    SUCCESS = "success"
    FAILURE = "failure"
    CANCELLED = "cancelled"


@dataclass(frozen=True)
class ToolResult:
    """Returned by every plugin run.

    Attributes:
        status: Overall outcome.
        summary: Human-readable one-line summary.
        data: Structured output (must be JSON-serializable).
        artifacts: Mapping of artifact name to file path for any files
                   the tool wrote (raw cosign output, etc.).
    """

    status: ResultStatus
    summary: str
    data: dict[str, Any] = field(default_factory=dict)
    artifacts: dict[str, str] = field(default_factory=dict)


ParamType = Literal["str", "int", "bool", "path"]


@dataclass(frozen=True)
class ToolParam:
    """Declares a parameter that the tool accepts.

    Used by the CLI to build argparse arguments.

    Attributes:
        name: Parameter name (CLI flag --name, or positional metavar).
        description: Help text.
        type: Python type name: "str", "int", "bool", or "path".
        required: Whether the parameter must be provided.
        default: Default value if not required.
        choices: Optional list of allowed values.
        positional: Declare as a positional argument instead of a --flag.
    """

    name: str
    description: str
    type: ParamType = "str"
    required: bool = False
    default: Any = None
    choices: list[str] | None = None
    positional: bool = False

    @property
    def key(self) -> str:
        """Key under which the parsed value appears in the args dict."""
        return self.name.replace("-", "_")


@runtime_checkable
class ToolPlugin(Protocol):
    """Protocol that every verification tool implements.

    A tool plugin provides:
    - Metadata (name, description, version)
    - Parameter declarations (so the CLI can build its parser)
    - A run method that does the actual work
    """

    name: str
    description: str
    version: str

    def get_params(self) -> list[ToolParam]:
        """Declare the parameters this tool accepts."""
        ...

    def run(self, args: dict[str, Any], ctx: ExecutionContext) -> ToolResult:
        """Execute the tool.

        Args:
            args: Dictionary of parameter values keyed by ToolParam.key.
            ctx: Execution context providing settings, console output,
                 progress reporting and cancellation.

        Returns:
            ToolResult with status, summary, optional data and artifacts.
        """
        ...
