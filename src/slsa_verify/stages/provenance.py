"""Stage 2: SLSA provenance attestation verification.

The predicate layout differs between provenance versions, so parsing is a
tagged union: detect_schema() picks a ProvenanceSchema from the predicateType and
each schema has its own field-path table and parser.
"""

from __future__ import annotations

import logging
import re
from pathlib import Path
from typing import Any, Callable

from slsa_verify.common import NA, first_of, stage_output
from slsa_verify.config import Settings
from slsa_verify.errors import ExtractionFailed
from slsa_verify.models import Material, ProvenanceResult, ProvenanceSchema, VerificationTarget
from slsa_verify.stages.attestation import fetch_attestation, read_statement

logger = logging.getLogger(__name__)

REQUIRED_TOOLS = ["cosign"]

ATTESTATION_TYPE = "slsaprovenance"

_VERSION_RE = re.compile(r"v[0-9.]+")

FieldPath = tuple[str, ...]

# Paths are relative to .predicate
V0_2_FIELDS: dict[str, tuple[FieldPath, ...]] = {
    "builder_id": (("builder", "id"),),
    "build_type": (("buildType",),),
    "source_repo_uri": (("invocation", "configSource", "uri"),),
    "source_commit_sha": (("invocation", "configSource", "digest", "sha1"),),
    "entry_point": (("invocation", "configSource", "entryPoint"),),
    "build_trigger": (("invocation", "environment", "github_event_name"),),
    "build_ref": (("invocation", "environment", "github_ref"),),
    "build_sha": (("invocation", "environment", "github_sha1"),),
    "materials": (("materials",),),
}

V1_FIELDS: dict[str, tuple[FieldPath, ...]] = {
    "builder_id": (("builder", "id"), ("runDetails", "builder", "id")),
    "build_type": (("buildType",), ("buildDefinition", "buildType")),
    "source_repo_uri": (
        ("invocation", "configSource", "uri"),
        ("buildDefinition", "externalParameters", "source", "repository"),
    ),
    "source_commit_sha": (("invocation", "configSource", "digest", "sha1"),),
    "entry_point": (("invocation", "configSource", "entryPoint"),),
    # Build context is read from buildConfig only
    "build_trigger": (("buildConfig", "eventName"),),
    "build_ref": (("buildConfig", "ref"),),
    "build_sha": (("buildConfig", "sha"),),
    "materials": (("materials",), ("buildDefinition", "resolvedDependencies")),
}


def detect_schema(predicate_type: str) -> ProvenanceSchema:
    """Select the predicate layout: v0.2 if the type names it, v1 otherwise."""
    if "v0.2" in predicate_type:
        return ProvenanceSchema.V0_2
    return ProvenanceSchema.V1


def slsa_version(predicate_type: str) -> str:
    match = _VERSION_RE.search(predicate_type)
    return match.group(0) if match else NA


def _material_digest(digest: Any) -> str:
    if not isinstance(digest, dict) or not digest:
        return NA
    if digest.get("sha1"):
        return str(digest["sha1"])
    alg, value = next(iter(digest.items()))
    return f"{alg}:{value}"


def parse_materials(items: Any) -> tuple[Material, ...]:
    if not isinstance(items, list):
        return ()
    materials = []
    for item in items:
        if not isinstance(item, dict):
            continue
        uri = item.get("uri") or item.get("name") or NA
        materials.append(Material(uri=str(uri), digest=_material_digest(item.get("digest"))))
    return tuple(materials)


def _extract(
    schema: ProvenanceSchema,
    fields: dict[str, tuple[FieldPath, ...]],
    statement: dict[str, Any],
) -> ProvenanceResult:
    predicate = statement.get("predicate") or {}
    predicate_type = str(statement.get("predicateType") or NA)

    values = {
        name: str(first_of(predicate, *paths))
        for name, paths in fields.items()
        if name != "materials"
    }
    materials = parse_materials(first_of(predicate, *fields["materials"], default=None))

    return ProvenanceResult(
        schema_version=schema,
        predicate_type=predicate_type,
        slsa_version=slsa_version(predicate_type),
        materials=materials,
        **values,
    )


def parse_v0_2(statement: dict[str, Any]) -> ProvenanceResult:
    return _extract(ProvenanceSchema.V0_2, V0_2_FIELDS, statement)


def parse_v1(statement: dict[str, Any]) -> ProvenanceResult:
    return _extract(ProvenanceSchema.V1, V1_FIELDS, statement)


PARSERS: dict[ProvenanceSchema, Callable[[dict[str, Any]], ProvenanceResult]] = {
    ProvenanceSchema.V0_2: parse_v0_2,
    ProvenanceSchema.V1: parse_v1,
}


def parse_provenance(statement: dict[str, Any]) -> ProvenanceResult:
    """Parse an in-toto provenance statement with the parser for its schema."""
    schema = detect_schema(str(statement.get("predicateType") or ""))
    logger.debug("Provenance predicate schema: %s", schema.value)
    return PARSERS[schema](statement)


def verify_provenance(
    target: VerificationTarget,
    outfile: str | Path | None = None,
    settings: Settings | None = None,
) -> ProvenanceResult:
    """Verify the SLSA provenance attestation and extract build metadata.

    Raises:
        VerificationFailed: No provenance attestation, or identity/issuer mismatch.
    """
    settings = settings or Settings()
    with stage_output(outfile, "provenance.json") as path:
        fetch_attestation(
            target, ATTESTATION_TYPE, path, "SLSA provenance",
            timeout=settings.command_timeout,
        )
        try:
            statement = read_statement(path)
        except ExtractionFailed as e:
            logger.warning("%s; reporting provenance fields as N/A", e)
            return ProvenanceResult(schema_version=detect_schema(""))
        return parse_provenance(statement)
