"""Verification stages, in pipeline order."""

from slsa_verify.stages.provenance import verify_provenance
from slsa_verify.stages.rekor import verify_rekor
from slsa_verify.stages.sbom import verify_sbom
from slsa_verify.stages.signature import verify_signature

__all__ = [
    "verify_provenance",
    "verify_rekor",
    "verify_sbom",
    "verify_signature",
]
