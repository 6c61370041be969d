"""Error taxonomy for the verification stages."""

from __future__ import annotations


class VerifyError(RuntimeError):
    """Base class for all slsa-verify errors."""


class ToolMissing(VerifyError):
    """One or more required external binaries are not on PATH."""

    def __init__(self, tools: list[str], hints: dict[str, str] | None = None) -> None:
        self.tools = list(tools)
        self.hints = dict(hints or {})
        super().__init__(f"Missing required tools: {', '.join(self.tools)}")


class VerificationFailed(VerifyError):
    """cosign rejected the image for a stage (no attestation, wrong identity or issuer)."""

    def __init__(self, stage: str, detail: str = "") -> None:
        self.stage = stage
        self.detail = detail.strip()
        message = f"{stage} verification failed"
        if self.detail:
            message = f"{message}: {self.detail}"
        super().__init__(message)


class ExtractionFailed(VerifyError):
    """Verified output could not be parsed into the expected shape."""

    def __init__(self, what: str, detail: str = "") -> None:
        self.what = what
        self.detail = detail
        message = f"Could not extract {what}"
        if detail:
            message = f"{message}: {detail}"
        super().__init__(message)


class LookupNotFound(VerifyError):
    """A transparency-log entry or image digest could not be found."""

    def __init__(self, what: str) -> None:
        self.what = what
        super().__init__(what)
