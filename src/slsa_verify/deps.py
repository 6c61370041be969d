"""Check external tool dependencies."""

from __future__ import annotations

import shutil
from dataclasses import dataclass

from slsa_verify.errors import ToolMissing

# Every external binary any stage may call
KNOWN_TOOLS = ["cosign", "rekor-cli", "docker", "crane"]

INSTALL_HINTS: dict[str, str] = {
    "cosign": "brew install cosign or visit https://docs.sigstore.dev/cosign/installation/",
    "rekor-cli": "go install github.com/sigstore/rekor/cmd/rekor-cli@latest",
    "docker": "https://docs.docker.com/get-docker/",
    "crane": "go install github.com/google/go-containerregistry/cmd/crane@latest",
}


@dataclass(frozen=True)
class DependencyCheck:
    """Result of checking a required external tool."""

    name: str
    available: bool
    path: str | None


def check_dependencies(required: list[str]) -> list[DependencyCheck]:
    """Check that all required CLI tools are installed.

    Args:
        required: List of tool names (e.g. ["cosign", "rekor-cli"]).

    Returns:
        List of DependencyCheck results.
    """
    results = []
    for tool in required:
        path = shutil.which(tool)
        results.append(DependencyCheck(name=tool, available=path is not None, path=path))
    return results


def is_available(tool: str) -> bool:
    """Check if a CLI tool is available on PATH."""
    return shutil.which(tool) is not None


def assert_dependencies(required: list[str]) -> None:
    """Check dependencies and raise if any are missing.

    Raises:
        ToolMissing: With the missing tools and an install hint for each.
    """
    checks = check_dependencies(required)
    missing = [c.name for c in checks if not c.available]
    if missing:
        raise ToolMissing(missing, {t: INSTALL_HINTS[t] for t in missing if t in INSTALL_HINTS})
