"""Stage 3: SPDX SBOM attestation verification."""

from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import Any

from slsa_verify.common import NA, dig, stage_output
from slsa_verify.config import Settings
from slsa_verify.errors import ExtractionFailed
from slsa_verify.models import SbomPackage, SbomResult, VerificationTarget
from slsa_verify.stages.attestation import fetch_attestation, read_statement

logger = logging.getLogger(__name__)

REQUIRED_TOOLS = ["cosign"]

ATTESTATION_TYPE = "spdx"

ENABLE_HINT = "Set 'enable-sbom: true' in your workflow configuration"


def normalize_predicate(raw: Any) -> dict[str, Any]:
    """Return the SPDX document as a parsed mapping.

    The predicate arrives as a parsed object, as a string holding encoded JSON,
    or wrapped in cosign's legacy {"Data": ..., "Timestamp": ...} envelope.

    Raises:
        ExtractionFailed: The predicate is neither an object nor a JSON string.
    """
    if isinstance(raw, str):
        try:
            raw = json.loads(raw)
        except json.JSONDecodeError as e:
            raise ExtractionFailed("SBOM predicate", f"not valid JSON: {e}") from e
        # A string inside a string: unwrap once more
        if isinstance(raw, str):
            return normalize_predicate(raw)

    if isinstance(raw, dict):
        if "Data" in raw and "spdxVersion" not in raw:
            return normalize_predicate(raw["Data"])
        return raw

    raise ExtractionFailed("SBOM predicate", f"unexpected type {type(raw).__name__}")


def _unique(values: list[str]) -> tuple[str, ...]:
    return tuple(dict.fromkeys(values))


def parse_sbom(document: dict[str, Any]) -> SbomResult:
    """Extract summary fields from a normalized SPDX document."""
    packages = document.get("packages")
    packages = packages if isinstance(packages, list) else []
    files = document.get("files")
    files = files if isinstance(files, list) else []

    creators = dig(document, "creationInfo", "creators", default=[])
    if not isinstance(creators, list):
        creators = [creators]

    named = []
    ecosystems = set()
    for pkg in packages:
        if not isinstance(pkg, dict):
            continue
        if pkg.get("name"):
            named.append(
                SbomPackage(name=str(pkg["name"]), version_info=str(pkg.get("versionInfo") or "unknown"))
            )
        for ref in pkg.get("externalRefs") or []:
            if isinstance(ref, dict) and ref.get("referenceType"):
                ecosystems.add(str(ref["referenceType"]))

    return SbomResult(
        spdx_version=str(document.get("spdxVersion") or NA),
        name=str(document.get("name") or NA),
        created=str(dig(document, "creationInfo", "created")),
        creators=_unique([str(c) for c in creators]),
        package_count=len(packages),
        file_count=len(files),
        packages=tuple(named),
        ecosystems=tuple(sorted(ecosystems)),
    )


def verify_sbom(
    target: VerificationTarget,
    outfile: str | Path | None = None,
    settings: Settings | None = None,
) -> SbomResult:
    """Verify the SPDX attestation and summarize its contents.

    Raises:
        VerificationFailed: No SBOM attestation, or identity/issuer mismatch.
        ExtractionFailed: The attestation predicate could not be decoded.
    """
    settings = settings or Settings()
    with stage_output(outfile, "sbom.json") as path:
        fetch_attestation(
            target, ATTESTATION_TYPE, path, "SBOM attestation",
            timeout=settings.command_timeout,
        )
        statement = read_statement(path)
        document = normalize_predicate(statement.get("predicate"))
        return parse_sbom(document)
