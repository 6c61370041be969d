"""Stage 4: Rekor transparency-log lookup.

With a log index from the signature bundle the entry is fetched directly. Older
signatures carry no index; then the image digest is resolved and the log is
searched by hash. Neither path decides pass/fail of the pipeline.
"""

from __future__ import annotations

import json
import logging
import re
from typing import Any

from slsa_verify.common import NA, as_int, run_cmd
from slsa_verify.config import Settings
from slsa_verify.deps import assert_dependencies, is_available
from slsa_verify.errors import ExtractionFailed, LookupNotFound
from slsa_verify.models import RekorEntry, RekorResult

logger = logging.getLogger(__name__)

REQUIRED_TOOLS = ["rekor-cli"]

_DIGEST_RE = re.compile(r"sha256:[a-f0-9]{64}")
# Entry UUIDs are 64 hex chars, or 80 with the tree ID prefix
_UUID_RE = re.compile(r"^[0-9a-f]{64}(?:[0-9a-f]{16})?$")

NO_CLIENT_DETAIL = "Entry confirmed in transparency log"
FETCH_FAILED_DETAIL = "Entry confirmed (fetch details failed)"


def parse_log_index(value: Any) -> int | None:
    """Parse a log index from CLI input or JSON; "N/A", empty and junk give None."""
    if value is None or value == NA:
        return None
    return as_int(value)


def rekor_url(log_index: int, settings: Settings) -> str:
    return settings.rekor_search_url.format(log_index=log_index)


def parse_rekor_entry(text: str, log_index: int | None = None) -> RekorEntry:
    """Parse `rekor-cli get --format json` output.

    Accepts both the flat CLI shape ({"UUID": ..., "IntegratedTime": ...}) and the
    REST shape keyed by UUID ({"<uuid>": {"integratedTime": ...}}).

    Raises:
        ExtractionFailed: Output is not a JSON object naming an entry.
    """
    try:
        data = json.loads(text)
    except json.JSONDecodeError as e:
        raise ExtractionFailed("Rekor entry", str(e)) from e
    if not isinstance(data, dict) or not data:
        raise ExtractionFailed("Rekor entry", "empty response")

    if "UUID" in data:
        uuid = data["UUID"]
        integrated = data.get("IntegratedTime")
        index = as_int(data.get("LogIndex"))
    else:
        uuid = next(iter(data))
        body = data[uuid] if isinstance(data[uuid], dict) else {}
        integrated = body.get("integratedTime", body.get("IntegratedTime"))
        index = as_int(body.get("logIndex"))

    if not uuid:
        raise ExtractionFailed("Rekor entry", "no entry UUID")

    return RekorEntry(
        log_index=index if index is not None else log_index,
        uuid=str(uuid),
        integrated_time=as_int(integrated),
    )


def fetch_rekor_entry(log_index: int, settings: Settings) -> RekorEntry:
    """Look up a log entry by index with rekor-cli.

    Raises:
        LookupNotFound: rekor-cli failed or returned nothing.
        ExtractionFailed: rekor-cli output could not be parsed.
    """
    success, stdout, stderr = run_cmd(
        ["rekor-cli", "get", "--log-index", str(log_index), "--format", "json"],
        timeout=settings.command_timeout,
    )
    if not success or not stdout.strip():
        logger.debug("rekor-cli get failed: %s", stderr.strip())
        raise LookupNotFound(f"Rekor entry {log_index} could not be fetched")
    return parse_rekor_entry(stdout, log_index)


def resolve_image_digest(image: str, settings: Settings) -> str | None:
    """Resolve an image to its sha256 digest.

    Tries local image inspection with docker first, then a registry query
    with crane.
    """
    if is_available("docker"):
        success, stdout, _ = run_cmd(
            ["docker", "inspect", "--format", "{{range .RepoDigests}}{{println .}}{{end}}", image],
            timeout=settings.command_timeout,
        )
        match = _DIGEST_RE.search(stdout) if success else None
        if match:
            return match.group(0)

    if is_available("crane"):
        success, stdout, _ = run_cmd(["crane", "digest", image], timeout=settings.command_timeout)
        match = _DIGEST_RE.search(stdout) if success else None
        if match:
            return match.group(0)

    return None


def search_by_digest(digest: str, settings: Settings) -> tuple[str, ...]:
    """Return the UUIDs of log entries recorded for a digest."""
    success, stdout, stderr = run_cmd(
        ["rekor-cli", "search", "--sha", digest], timeout=settings.command_timeout
    )
    if not success:
        logger.debug("rekor-cli search failed: %s", stderr.strip())
        return ()
    return tuple(line.strip() for line in stdout.splitlines() if _UUID_RE.match(line.strip()))


def verify_rekor(
    log_index: int | None,
    image: str | None = None,
    settings: Settings | None = None,
) -> RekorResult:
    """Confirm the image's signing event is recorded in the transparency log.

    Raises:
        LookupNotFound: No index was given and digest search found nothing.
        ToolMissing: No index was given and rekor-cli is not installed.
    """
    settings = settings or Settings()

    if log_index is not None:
        url = rekor_url(log_index, settings)
        if not is_available("rekor-cli"):
            return RekorResult(
                log_index=log_index,
                rekor_url=url,
                confirmed=True,
                degraded=True,
                detail=NO_CLIENT_DETAIL,
            )
        try:
            entry = fetch_rekor_entry(log_index, settings)
        except (LookupNotFound, ExtractionFailed) as e:
            logger.debug("Falling back to signature bundle claim: %s", e)
            return RekorResult(
                log_index=log_index,
                rekor_url=url,
                confirmed=True,
                degraded=True,
                detail=FETCH_FAILED_DETAIL,
            )
        if entry.integrated_time is not None:
            detail = "Signed entry verified by Rekor"
        else:
            detail = "Entry exists in transparency log"
        return RekorResult(
            log_index=log_index, rekor_url=url, entry=entry, confirmed=True, detail=detail
        )

    if not image:
        raise LookupNotFound("Rekor log index not provided and no image to search by")

    assert_dependencies(REQUIRED_TOOLS)
    digest = resolve_image_digest(image, settings)
    if not digest:
        raise LookupNotFound("Could not extract image digest")

    matches = search_by_digest(digest, settings)
    if not matches:
        raise LookupNotFound("No Rekor entries found via digest search")

    return RekorResult(
        digest=digest,
        matches=matches,
        confirmed=True,
        detail=f"Found {len(matches)} Rekor entries for this image",
    )
