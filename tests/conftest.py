"""Pytest configuration and fixtures."""

from __future__ import annotations

import base64
import io
import json
from pathlib import Path
from unittest.mock import Mock, patch

import pytest

FIXTURES = Path(__file__).parent / "fixtures"

DIGEST = "sha256:" + "a" * 64
REKOR_UUID = "24296fb24b8ad77a" + "3" * 64


def load_fixture(name: str):
    return json.loads((FIXTURES / name).read_text())


def fixture_text(name: str) -> str:
    return (FIXTURES / name).read_text()


def envelope(statement: dict) -> str:
    """Encode an in-toto statement as one line of cosign verify-attestation output."""
    payload = base64.b64encode(json.dumps(statement).encode()).decode()
    return json.dumps({
        "payloadType": "application/vnd.in-toto+json",
        "payload": payload,
        "signatures": [{"keyid": "", "sig": "MEUCIQ=="}],
    }) + "\n"


def sbom_envelope(predicate) -> str:
    return envelope({
        "_type": "https://in-toto.io/Statement/v0.1",
        "predicateType": "https://spdx.dev/Document",
        "predicate": predicate,
    })


def completed(returncode: int = 0, stdout: str = "", stderr: str = "") -> Mock:
    return Mock(returncode=returncode, stdout=stdout, stderr=stderr)


class FakeTools:
    """Stands in for subprocess.run and shutil.which.

    Responses are keyed by the first two argv words, or by
    "cosign verify-attestation <type>" for attestation lookups. Unknown commands
    fail with a non-zero exit.
    """

    def __init__(self) -> None:
        self.responses: dict[str, Mock] = {}
        self.installed = {"cosign", "rekor-cli", "docker", "crane"}
        self.calls: list[list[str]] = []

    @staticmethod
    def key(args: list[str]) -> str:
        if args[:2] == ["cosign", "verify-attestation"]:
            return f"cosign verify-attestation {args[args.index('--type') + 1]}"
        return " ".join(args[:2])

    def set(self, key: str, returncode: int = 0, stdout: str = "", stderr: str = "") -> None:
        self.responses[key] = completed(returncode, stdout, stderr)

    def run(self, args, **kwargs) -> Mock:
        self.calls.append(list(args))
        return self.responses.get(
            self.key(args), completed(1, "", f"unexpected command: {' '.join(args)}")
        )

    def which(self, tool: str) -> str | None:
        return f"/usr/local/bin/{tool}" if tool in self.installed else None

    def called(self, key: str) -> bool:
        return any(self.key(call) == key for call in self.calls)


@pytest.fixture
def fake_tools():
    """FakeTools with nothing configured; every external command fails."""
    tools = FakeTools()
    with patch("slsa_verify.common.subprocess.run", side_effect=tools.run), \
         patch("slsa_verify.deps.shutil.which", side_effect=tools.which):
        yield tools


@pytest.fixture
def happy_tools(fake_tools):
    """FakeTools where every stage succeeds."""
    fake_tools.set("cosign verify", stdout=fixture_text("cosign_verify.json"))
    fake_tools.set(
        "cosign verify-attestation slsaprovenance",
        stdout=envelope(load_fixture("provenance_v0_2.json")),
    )
    fake_tools.set(
        "cosign verify-attestation spdx",
        stdout=sbom_envelope(load_fixture("sbom_spdx.json")),
    )
    fake_tools.set("rekor-cli get", stdout=fixture_text("rekor_get.json"))
    fake_tools.set("docker inspect", stdout=f"ghcr.io/acme/app@{DIGEST}\n")
    fake_tools.set("rekor-cli search", stdout=f"Found matching entries (listed by UUID):\n{REKOR_UUID}\n")
    return fake_tools


@pytest.fixture
def settings():
    from slsa_verify.config import Settings

    return Settings()


@pytest.fixture
def console():
    """Colorless console writing to in-memory buffers."""
    from slsa_verify.console import Console

    return Console(color=False, out=io.StringIO(), err=io.StringIO())


@pytest.fixture
def ctx(settings, console):
    from slsa_verify.context import ExecutionContext

    return ExecutionContext(settings=settings, console=console)


@pytest.fixture
def target():
    from slsa_verify.models import VerificationTarget

    return VerificationTarget(
        image="ghcr.io/acme/app:v1.2.0",
        identity_pattern="https://github.com/acme/app/.github/workflows/.*@.*",
        oidc_issuer="https://token.actions.githubusercontent.com",
    )


@pytest.fixture
def mock_plugin():
    """Mock plugin for testing."""
    from slsa_verify.plugin import ResultStatus, ToolParam, ToolResult

    class MockPlugin:
        name = "mock"
        description = "Mock plugin for testing"
        version = "0.1.0"

        def get_params(self):
            return [
                ToolParam(name="input", description="Input value", required=True, positional=True),
                ToolParam(name="json", description="JSON output", type="bool"),
            ]

        def run(self, args, ctx):
            return ToolResult(
                status=ResultStatus.SUCCESS,
                summary=f"Processed: {args['input']}",
                data={"input": args["input"]},
            )

    return MockPlugin()
