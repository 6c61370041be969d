"""Tests for the provenance stage."""

from __future__ import annotations

import pytest

from conftest import envelope, load_fixture
from slsa_verify.common import NA
from slsa_verify.errors import VerificationFailed
from slsa_verify.models import Material, ProvenanceSchema
from slsa_verify.stages.provenance import (
    detect_schema,
    parse_materials,
    parse_provenance,
    slsa_version,
    verify_provenance,
)


class TestDetectSchema:
    def test_v0_2(self) -> None:
        assert detect_schema("https://slsa.dev/provenance/v0.2") == ProvenanceSchema.V0_2

    def test_v1(self) -> None:
        assert detect_schema("https://slsa.dev/provenance/v1") == ProvenanceSchema.V1

    def test_unknown_falls_back_to_v1(self) -> None:
        assert detect_schema("") == ProvenanceSchema.V1

    def test_slsa_version(self) -> None:
        assert slsa_version("https://slsa.dev/provenance/v0.2") == "v0.2"
        assert slsa_version("https://slsa.dev/provenance/v1") == "v1"
        assert slsa_version("no version") == NA


class TestParseV02:
    def test_fields(self) -> None:
        result = parse_provenance(load_fixture("provenance_v0_2.json"))

        assert result.schema_version == ProvenanceSchema.V0_2
        assert result.slsa_version == "v0.2"
        assert result.builder_id.endswith("generator_container_slsa3.yml@refs/tags/v1.9.0")
        assert result.build_type == "https://github.com/slsa-framework/slsa-github-generator/container@v1"
        assert result.source_repo_uri == "git+https://github.com/acme/app@refs/tags/v1.2.0"
        assert result.source_commit_sha == "0123456789abcdef0123456789abcdef01234567"
        assert result.entry_point == ".github/workflows/release.yml"
        assert result.build_trigger == "push"
        assert result.build_ref == "refs/tags/v1.2.0"
        assert result.build_sha == "0123456789abcdef0123456789abcdef01234567"

    def test_materials_keep_every_entry(self) -> None:
        result = parse_provenance(load_fixture("provenance_v0_2.json"))

        assert len(result.materials) == 7
        assert result.materials[0].digest == "0123456789abcdef0123456789abcdef01234567"
        assert result.materials[1].digest == "sha256:bbbb"
        assert result.materials[2] == Material(uri="alpine-base")


class TestParseV1:
    def test_build_ref_from_build_config(self) -> None:
        result = parse_provenance(load_fixture("provenance_v1.json"))

        assert result.schema_version == ProvenanceSchema.V1
        assert result.build_ref == "refs/heads/main"
        assert result.build_trigger == "workflow_dispatch"
        assert result.build_sha == "fedcba9876543210fedcba9876543210fedcba98"

    def test_falls_back_to_v1_locations(self) -> None:
        result = parse_provenance(load_fixture("provenance_v1.json"))

        assert result.builder_id.endswith("docker-build-slsa.yml@refs/heads/main")
        assert result.build_type.endswith("workflow/v1")
        assert result.source_repo_uri == "https://github.com/acme/app"
        assert result.materials == (
            Material(
                uri="git+https://github.com/acme/app@refs/heads/main",
                digest="gitCommit:fedcba9876543210fedcba9876543210fedcba98",
            ),
        )

    def test_v1_ignores_v0_2_environment(self) -> None:
        statement = load_fixture("provenance_v0_2.json")
        statement["predicateType"] = "https://slsa.dev/provenance/v1"

        result = parse_provenance(statement)

        assert result.build_ref == NA
        assert result.builder_id.endswith("generator_container_slsa3.yml@refs/tags/v1.9.0")

    def test_source_ref_is_not_a_build_ref(self) -> None:
        statement = {
            "predicateType": "https://slsa.dev/provenance/v1",
            "predicate": {
                "buildDefinition": {
                    "externalParameters": {
                        "source": {
                            "repository": "https://github.com/acme/app",
                            "ref": "refs/tags/v1.2.0",
                        },
                    },
                },
            },
        }

        result = parse_provenance(statement)

        assert result.source_repo_uri == "https://github.com/acme/app"
        assert result.build_ref == NA

    def test_empty_predicate(self) -> None:
        result = parse_provenance({"predicateType": "https://slsa.dev/provenance/v1"})

        assert result.builder_id == NA
        assert result.materials == ()


def test_parse_materials_ignores_non_list():
    assert parse_materials({"uri": "x"}) == ()
    assert parse_materials(["not a dict", {"uri": "u"}]) == (Material(uri="u"),)


class TestVerifyProvenance:
    def test_success(self, fake_tools, target) -> None:
        fake_tools.set(
            "cosign verify-attestation slsaprovenance",
            stdout=envelope(load_fixture("provenance_v1.json")),
        )

        result = verify_provenance(target)

        assert result.build_ref == "refs/heads/main"
        call = fake_tools.calls[0]
        assert call[:4] == ["cosign", "verify-attestation", "--type", "slsaprovenance"]

    def test_missing_attestation_raises(self, fake_tools, target) -> None:
        fake_tools.set(
            "cosign verify-attestation slsaprovenance",
            returncode=1,
            stderr="Error: none of the attestations matched the predicate type",
        )

        with pytest.raises(VerificationFailed, match="SLSA provenance verification failed"):
            verify_provenance(target)

    def test_unreadable_payload_degrades(self, fake_tools, target) -> None:
        fake_tools.set("cosign verify-attestation slsaprovenance", stdout="garbage\n")

        result = verify_provenance(target)

        assert result.builder_id == NA
        assert result.build_ref == NA

    def test_is_repeatable(self, happy_tools, target) -> None:
        assert verify_provenance(target) == verify_provenance(target)
