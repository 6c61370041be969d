"""Stage 1: keyless signature verification with cosign."""

from __future__ import annotations

import logging
from pathlib import Path

from slsa_verify.common import NA, as_int, dig, read_json_documents, run_cmd, stage_output
from slsa_verify.config import Settings
from slsa_verify.errors import VerificationFailed
from slsa_verify.models import SignatureResult, VerificationTarget

logger = logging.getLogger(__name__)

REQUIRED_TOOLS = ["cosign"]


def cosign_verify_args(target: VerificationTarget) -> list[str]:
    return [
        "cosign", "verify",
        f"--certificate-identity-regexp={target.identity_pattern}",
        f"--certificate-oidc-issuer={target.oidc_issuer}",
        target.image,
    ]


def verify_signature(
    target: VerificationTarget,
    outfile: str | Path | None = None,
    settings: Settings | None = None,
) -> SignatureResult:
    """Verify the image signature and extract signer metadata.

    The raw cosign JSON is written to outfile (or a temporary file) and the
    result is extracted from that file.

    Raises:
        VerificationFailed: No signature, or identity/issuer mismatch.
    """
    settings = settings or Settings()
    with stage_output(outfile, "signature.json") as path:
        success, stdout, stderr = run_cmd(
            cosign_verify_args(target), timeout=settings.command_timeout
        )
        if not success:
            raise VerificationFailed("Signature", stderr)
        path.write_text(stdout)
        return parse_signature_output(path)


def parse_signature_output(path: Path) -> SignatureResult:
    """Extract signer identity, timestamp and Rekor index from cosign verify output.

    cosign prints a JSON array of verified payloads; the first one is used.
    Missing fields degrade to N/A rather than failing the stage.
    """
    docs = read_json_documents(path)
    if not docs or not isinstance(docs[0], dict):
        logger.warning("cosign verify output had no parseable payloads")
        return SignatureResult(verified=True)

    first = docs[0]
    bundle_payload = dig(first, "optional", "Bundle", "Payload", default={})

    return SignatureResult(
        verified=True,
        certificate_identity=str(dig(first, "optional", "Subject")),
        certificate_issuer=str(dig(first, "optional", "Issuer")),
        signed_at=as_int(dig(bundle_payload, "integratedTime", default=None)),
        rekor_log_index=as_int(dig(bundle_payload, "logIndex", default=None)),
        manifest_digest=str(
            dig(first, "critical", "image", "docker-manifest-digest", default=NA)
        ),
    )
