"""Render stage results and the final verdict to a Console."""

from __future__ import annotations

from slsa_verify.common import NA, format_timestamp
from slsa_verify.config import Settings
from slsa_verify.console import BLUE, YELLOW, Console, format_list_item, format_remainder, paint
from slsa_verify.errors import VerifyError
from slsa_verify.models import (
    Confidence,
    PipelineReport,
    PipelineState,
    ProvenanceResult,
    RekorResult,
    SbomResult,
    SignatureResult,
)
from slsa_verify.stages.rekor import NO_CLIENT_DETAIL
from slsa_verify.stages.sbom import ENABLE_HINT

COMPLIANCE_VERDICT = "Image is SLSA Level 3 compliant"

STAGE_TITLES = {
    "signature": "[1/4] Verifying Image Signature",
    "provenance": "[2/4] Verifying SLSA Provenance",
    "sbom": "[3/4] Verifying SBOM Attestation",
    "rekor": "[4/4] Verifying Rekor Transparency Log",
}


def render_signature(console: Console, result: SignatureResult) -> None:
    console.success("Signature verification passed")
    console.line()
    console.field("Certificate Identity", result.certificate_identity)
    console.field("Certificate Issuer", result.certificate_issuer)
    console.field("Signed At", format_timestamp(result.signed_at))
    if result.rekor_log_index is not None:
        console.field("Rekor Log Index", result.rekor_log_index)
    if result.manifest_digest != NA:
        console.field("Signed Digest", result.manifest_digest)
    console.line()


def render_signature_failure(console: Console, error: VerifyError) -> None:
    console.error(
        "Signature verification failed",
        "The image signature could not be verified against the expected workflow",
    )


def _short_sha(sha: str) -> str:
    if sha == NA:
        return NA
    return f"{sha[:12]}..."


def render_provenance(console: Console, result: ProvenanceResult, settings: Settings) -> None:
    console.success("SLSA provenance verification passed")
    console.line()
    console.field("SLSA Version", result.slsa_version)
    console.field("Builder", result.builder_id)
    console.field("Build Type", result.build_type)
    console.line()
    console.field("Source Repository", result.source_repo_uri)
    console.field("Source Digest", result.source_commit_sha)
    console.field("Entry Point", result.entry_point)
    console.line()
    console.field("Build Trigger", result.build_trigger)
    console.field("Build Ref", result.build_ref)
    console.field("Build SHA", _short_sha(result.build_sha))
    console.line()

    if result.materials:
        shown = settings.materials_shown
        console.field("Build Materials", f"{len(result.materials)} dependencies")
        for material in result.materials[:shown]:
            console.line(format_list_item(material.uri))
        if len(result.materials) > shown:
            console.line(format_remainder(len(result.materials) - shown))


def render_provenance_failure(console: Console, error: VerifyError) -> None:
    console.error(
        "SLSA provenance verification failed",
        "The SLSA provenance attestation could not be verified",
    )


def render_sbom(console: Console, result: SbomResult, settings: Settings) -> None:
    console.success("SBOM attestation verification passed")
    console.line()
    console.field("SPDX Version", result.spdx_version)
    console.field("SBOM Name", result.name)
    console.field("Created", result.created)
    console.field("Creators", ",".join(result.creators) or NA)
    console.line()
    console.field("Total Packages", result.package_count)
    console.field("Total Files", result.file_count)
    console.line()

    shown = settings.packages_shown
    console.field("Key Packages", "")
    for package in result.packages[:shown]:
        console.line(format_list_item(f"{package.name} ({package.version_info})"))
    if result.package_count > shown:
        console.line(format_remainder(result.package_count - shown, "more packages"))
    console.line()

    if result.ecosystems:
        console.field("Package Ecosystems", ", ".join(result.ecosystems))


def render_sbom_failure(console: Console, error: VerifyError) -> None:
    console.warning("SBOM attestation not found or verification failed")
    console.note("This may indicate SBOM generation is not enabled in the build workflow")
    console.note(ENABLE_HINT)


def render_missing_index(console: Console) -> None:
    console.warning("Rekor log index not provided or not found")
    console.note("Note: Older signatures may not include embedded log index")
    console.line()
    console.note("Attempting search by image digest...", BLUE)


def render_rekor(console: Console, result: RekorResult, settings: Settings) -> None:
    if result.log_index is None:
        # Digest-search path
        console.success(result.detail)
        console.field("Image Digest", result.digest)
        for uuid in result.matches[: settings.rekor_matches_shown]:
            console.line(format_list_item(uuid))
        return

    console.success("Rekor transparency log entry found")
    console.line()
    console.field("Log Index", result.log_index)
    console.field("Rekor URL", result.rekor_url)
    if result.entry is not None:
        console.field("Entry UUID", result.entry.uuid)
        if result.entry.integrated_time is not None:
            console.field("Integrated Time", format_timestamp(result.entry.integrated_time))
    console.field("Verification", result.detail)

    if result.detail == NO_CLIENT_DETAIL:
        console.line()
        console.warning("Install rekor-cli for detailed entry information")
        console.note("go install github.com/sigstore/rekor/cmd/rekor-cli@latest")


def render_rekor_warning(console: Console, error: VerifyError) -> None:
    console.warning(str(error))


def render_opening(console: Console, image: str, repo: str) -> None:
    console.banner(["SLSA Level 3 Image Verification Suite"])
    console.line()
    console.line(f"{paint('Image:', BLUE, console.color)}      {image}")
    console.line(f"{paint('Repository:', BLUE, console.color)} {repo}")
    console.line()


def summary_bullets(report: PipelineReport) -> list[str]:
    """Describe what the run actually confirmed."""
    bullets = [
        "Image signature verified with keyless signing",
        "SLSA L3 provenance attestation validated",
    ]
    if PipelineState.SBOM_OK in report.history:
        bullets.append("Software Bill of Materials (SBOM) verified")
    else:
        bullets.append("Software Bill of Materials (SBOM) not verified")

    rekor = report.rekor
    if rekor is not None and rekor.confirmed and not rekor.degraded:
        bullets.append("Transparency log entry confirmed")
    elif rekor is not None and rekor.confirmed:
        bullets.append("Transparency log entry confirmed from signature bundle only")
    else:
        bullets.append("Transparency log entry not confirmed")
    return bullets


def trust_statement(confidence: Confidence | None) -> str:
    if confidence == Confidence.FULL:
        return "High - All SLSA L3 requirements satisfied"
    return "Reduced - Signature and provenance verified; SBOM or transparency log only partially confirmed"


def render_summary(console: Console, report: PipelineReport) -> None:
    console.line()
    console.banner(["✓ Verification Complete", COMPLIANCE_VERDICT])
    console.line()
    console.line(paint("Summary:", BLUE, console.color))
    for bullet in summary_bullets(report):
        console.line(f"  • {bullet}")
    for warning in report.warnings:
        console.line(paint(f"  ⚠ {warning}", YELLOW, console.color))
    console.line()
    console.line(f"{paint('Image:', BLUE, console.color)} {report.target.image}")
    console.line(f"{paint('Confidence:', BLUE, console.color)} {report.confidence.value if report.confidence else NA}")
    console.line(f"{paint('Trust:', BLUE, console.color)} {trust_statement(report.confidence)}")
