"""Records produced by the verification stages.

Every stage returns its own immutable result; the pipeline only aggregates them.
"""

from __future__ import annotations

import dataclasses
from dataclasses import dataclass
from enum import Enum
from typing import Any

from slsa_verify.common import NA


class ProvenanceSchema(str, Enum):
    """Provenance predicate layouts, selected from the predicateType."""

    V0_2 = "v0.2"
    V1 = "v1"


class Confidence(str, Enum):
    """How much of the pipeline was confirmed."""

    FULL = "full"
    DEGRADED = "degraded"


class PipelineState(str, Enum):
    SIGNATURE_PENDING = "SIGNATURE_PENDING"
    SIGNATURE_OK = "SIGNATURE_OK"
    PROVENANCE_OK = "PROVENANCE_OK"
    SBOM_OK = "SBOM_OK"
    SBOM_SKIPPED = "SBOM_SKIPPED"
    REKOR_OK = "REKOR_OK"
    REKOR_WARN = "REKOR_WARN"
    SUMMARY = "SUMMARY"
    FAILED = "FAILED"
    CANCELLED = "CANCELLED"


@dataclass(frozen=True)
class VerificationTarget:
    """Image plus the certificate identity/issuer every stage checks against."""

    image: str
    identity_pattern: str
    oidc_issuer: str


@dataclass(frozen=True)
class SignatureResult:
    """Details of a verified cosign signature.

    A failed verification raises VerificationFailed instead of returning, so
    verified is always True here. It is kept so the JSON output states it.
    """

    verified: bool
    certificate_identity: str = NA
    certificate_issuer: str = NA
    signed_at: int | None = None
    rekor_log_index: int | None = None
    manifest_digest: str = NA


@dataclass(frozen=True)
class Material:
    uri: str
    digest: str = NA


@dataclass(frozen=True)
class ProvenanceResult:
    """Fields extracted from a SLSA provenance predicate.

    materials keeps every entry; display code truncates.
    """

    schema_version: ProvenanceSchema
    predicate_type: str = NA
    slsa_version: str = NA
    builder_id: str = NA
    build_type: str = NA
    source_repo_uri: str = NA
    source_commit_sha: str = NA
    entry_point: str = NA
    build_trigger: str = NA
    build_ref: str = NA
    build_sha: str = NA
    materials: tuple[Material, ...] = ()


@dataclass(frozen=True)
class SbomPackage:
    name: str
    version_info: str = "unknown"


@dataclass(frozen=True)
class SbomResult:
    spdx_version: str = NA
    name: str = NA
    created: str = NA
    creators: tuple[str, ...] = ()
    package_count: int = 0
    file_count: int = 0
    packages: tuple[SbomPackage, ...] = ()
    ecosystems: tuple[str, ...] = ()


@dataclass(frozen=True)
class RekorEntry:
    log_index: int | None
    uuid: str
    integrated_time: int | None = None


@dataclass(frozen=True)
class RekorResult:
    """Outcome of the transparency-log stage.

    Attributes:
        confirmed: The log holds an entry for this image (possibly only on the
                   signature bundle's word, see degraded).
        degraded: Confirmation rests on the signature's claim alone; entry
                  details could not be fetched.
        matches: Entry UUIDs found by digest search (index-unknown path).
    """

    log_index: int | None = None
    rekor_url: str = NA
    entry: RekorEntry | None = None
    digest: str = NA
    matches: tuple[str, ...] = ()
    confirmed: bool = False
    degraded: bool = False
    detail: str = ""


@dataclass(frozen=True)
class PipelineReport:
    target: VerificationTarget
    state: PipelineState
    history: tuple[PipelineState, ...] = ()
    signature: SignatureResult | None = None
    provenance: ProvenanceResult | None = None
    sbom: SbomResult | None = None
    rekor: RekorResult | None = None
    confidence: Confidence | None = None
    warnings: tuple[str, ...] = ()
    failure: str | None = None

    @property
    def passed(self) -> bool:
        return self.state == PipelineState.SUMMARY


def to_data(record: Any) -> dict[str, Any]:
    """Convert a result dataclass to JSON-serializable data."""
    return _jsonable(dataclasses.asdict(record))


def _jsonable(value: Any) -> Any:
    if isinstance(value, Enum):
        return value.value
    if isinstance(value, dict):
        return {k: _jsonable(v) for k, v in value.items()}
    if isinstance(value, (list, tuple)):
        return [_jsonable(v) for v in value]
    return value
