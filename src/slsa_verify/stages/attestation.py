"""cosign verify-attestation invocation shared by the provenance and SBOM stages."""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Any

from slsa_verify.common import decode_payload, read_json_documents, run_cmd
from slsa_verify.errors import ExtractionFailed, VerificationFailed
from slsa_verify.models import VerificationTarget

logger = logging.getLogger(__name__)


def cosign_attestation_args(target: VerificationTarget, attestation_type: str) -> list[str]:
    return [
        "cosign", "verify-attestation",
        "--type", attestation_type,
        f"--certificate-identity-regexp={target.identity_pattern}",
        f"--certificate-oidc-issuer={target.oidc_issuer}",
        target.image,
    ]


def fetch_attestation(
    target: VerificationTarget,
    attestation_type: str,
    path: Path,
    stage: str,
    timeout: int | None = None,
) -> None:
    """Verify an attestation with cosign and write the envelopes to path.

    Raises:
        VerificationFailed: cosign could not verify an attestation of this type.
    """
    success, stdout, stderr = run_cmd(
        cosign_attestation_args(target, attestation_type), timeout=timeout
    )
    if not success:
        raise VerificationFailed(stage, stderr)
    path.write_text(stdout)


def read_statement(path: Path) -> dict[str, Any]:
    """Decode the in-toto statement from the first envelope in path.

    Raises:
        ExtractionFailed: No envelope, or its payload is not base64 JSON.
    """
    envelopes = [doc for doc in read_json_documents(path) if isinstance(doc, dict)]
    if not envelopes:
        raise ExtractionFailed("attestation", f"no envelopes in {path.name}")
    if len(envelopes) > 1:
        logger.debug("%d attestations found, using the first", len(envelopes))
    return decode_payload(envelopes[0])
