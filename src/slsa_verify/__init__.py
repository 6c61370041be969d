"""slsa-verify: SLSA L3 attestation verification for container images."""

__version__ = "0.1.0"

from slsa_verify.context import ExecutionContext
from slsa_verify.plugin import ResultStatus, ToolParam, ToolPlugin, ToolResult

__all__ = [
    "__version__",
    "ExecutionContext",
    "ResultStatus",
    "ToolParam",
    "ToolPlugin",
    "ToolResult",
]
