"""Shared helpers: subprocess calls, per-run temp files and payload decoding."""

from __future__ import annotations

import base64
import binascii
import json
import logging
import subprocess
import tempfile
from contextlib import contextmanager
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Iterator

from slsa_verify.errors import ExtractionFailed

logger = logging.getLogger(__name__)

NA = "N/A"


def run_cmd(args: list[str], timeout: int | None = None) -> tuple[bool, str, str]:
    """Run a command and return (success, stdout, stderr).

    With timeout=None the command may block for as long as the tool itself allows.
    """
    logger.debug("Running: %s", " ".join(args))
    try:
        result = subprocess.run(
            args, capture_output=True, text=True, timeout=timeout
        )
        return result.returncode == 0, result.stdout, result.stderr
    except subprocess.TimeoutExpired:
        return False, "", "timeout"
    except OSError as e:
        return False, "", str(e)


@contextmanager
def temp_workspace() -> Iterator[Path]:
    """Yield a temporary directory that is removed on every exit path."""
    with tempfile.TemporaryDirectory(prefix="slsa-verify-") as tmp:
        yield Path(tmp)


@contextmanager
def stage_output(outfile: str | Path | None, default_name: str) -> Iterator[Path]:
    """Yield the file a stage writes its raw tool output to.

    A caller-supplied outfile is kept (its parent directories are created);
    otherwise the file lives in a temporary directory scoped to the block.
    """
    if outfile:
        path = Path(outfile)
        path.parent.mkdir(parents=True, exist_ok=True)
        yield path
        return
    with temp_workspace() as tmp:
        yield tmp / default_name


def read_json_documents(path: Path) -> list[Any]:
    """Read a file holding either one JSON document or one document per line.

    cosign verify emits a JSON array; cosign verify-attestation emits one
    envelope per line.
    """
    text = path.read_text()
    if not text.strip():
        return []
    try:
        doc = json.loads(text)
        return doc if isinstance(doc, list) else [doc]
    except json.JSONDecodeError:
        pass

    docs = []
    for line in text.splitlines():
        if not line.strip():
            continue
        try:
            docs.append(json.loads(line))
        except json.JSONDecodeError:
            logger.debug("Skipping non-JSON line in %s", path)
    return docs


def decode_payload(envelope: dict[str, Any]) -> dict[str, Any]:
    """Decode the base64 JSON payload of a DSSE envelope.

    Raises:
        ExtractionFailed: If the payload is missing or is not base64 JSON.
    """
    payload_b64 = envelope.get("payload") or envelope.get("Payload")
    if not payload_b64:
        raise ExtractionFailed("payload", "envelope has no payload field")
    try:
        payload_json = base64.b64decode(payload_b64).decode("utf-8")
        payload = json.loads(payload_json)
    except (binascii.Error, UnicodeDecodeError, json.JSONDecodeError) as e:
        raise ExtractionFailed("payload", str(e)) from e
    if not isinstance(payload, dict):
        raise ExtractionFailed("payload", "decoded payload is not an object")
    return payload


def dig(data: Any, *path: str | int, default: Any = NA) -> Any:
    """Walk nested dicts/lists, returning default if any step is missing or null."""
    current = data
    for key in path:
        if isinstance(current, dict):
            current = current.get(key)
        elif isinstance(current, list) and isinstance(key, int) and -len(current) <= key < len(current):
            current = current[key]
        else:
            return default
        if current is None:
            return default
    return current


def first_of(data: Any, *paths: tuple[str | int, ...], default: Any = NA) -> Any:
    """Return the value at the first path that resolves."""
    for path in paths:
        value = dig(data, *path, default=None)
        if value is not None:
            return value
    return default


def format_timestamp(timestamp: int | str | None) -> str:
    """Format a Unix timestamp as 'YYYY-MM-DD HH:MM:SS UTC'."""
    if timestamp is None or timestamp == "" or timestamp == NA:
        return NA
    try:
        moment = datetime.fromtimestamp(int(timestamp), tz=timezone.utc)
    except (TypeError, ValueError, OverflowError, OSError):
        return str(timestamp)
    return moment.strftime("%Y-%m-%d %H:%M:%S UTC")


def as_int(value: Any) -> int | None:
    """Coerce a JSON number or numeric string to int, else None."""
    if isinstance(value, bool):
        return None
    if isinstance(value, int):
        return value
    if isinstance(value, str) and value.strip().isdigit():
        return int(value.strip())
    return None
