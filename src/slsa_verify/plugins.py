"""ToolPlugin implementations for each verification command."""

from __future__ import annotations

import logging
import re
from pathlib import Path
from typing import Any

from slsa_verify import __version__, report
from slsa_verify.context import ExecutionContext
from slsa_verify.deps import assert_dependencies
from slsa_verify.errors import ExtractionFailed, LookupNotFound, VerificationFailed
from slsa_verify.models import PipelineState, VerificationTarget, to_data
from slsa_verify.pipeline import VerificationPipeline
from slsa_verify.plugin import ResultStatus, ToolParam, ToolPlugin, ToolResult
from slsa_verify.stages import provenance, rekor, sbom, signature

logger = logging.getLogger(__name__)

REPO_RE = re.compile(r"^[\w.-]+/[\w.-]+$")


def _output_params() -> list[ToolParam]:
    return [
        ToolParam(
            name="json",
            description="Print the structured result as JSON",
            type="bool",
        ),
        ToolParam(
            name="verbose",
            description="Log external commands and show progress on stderr",
            type="bool",
        ),
    ]


def _stage_params(default_identity: str) -> list[ToolParam]:
    """Parameters shared by the signature, provenance and SBOM commands."""
    return [
        ToolParam(
            name="image",
            description="Container image reference (registry/name:tag or @digest)",
            required=True,
            positional=True,
        ),
        ToolParam(
            name="outfile",
            description="Keep the raw cosign JSON output at this path",
            type="path",
            positional=True,
        ),
        ToolParam(
            name="identity",
            description=f"Certificate identity regex (default: {default_identity})",
        ),
        *_output_params(),
    ]


def _target(args: dict[str, Any], ctx: ExecutionContext, default_identity: str) -> VerificationTarget:
    return VerificationTarget(
        image=args["image"],
        identity_pattern=args.get("identity") or default_identity,
        oidc_issuer=ctx.settings.oidc_issuer,
    )


def _artifacts(outfile: Path | str | None) -> dict[str, str]:
    if not outfile:
        return {}
    return {"output": str(Path(outfile).resolve())}


class SignaturePlugin:
    """Verify the keyless signature and print its Rekor log index.

    The human-readable report goes to stderr so stdout carries only the log
    index (or N/A), for capture by shell callers.
    """

    name = "signature"
    description = "Verify an image's keyless cosign signature"
    version = __version__
    report_to_stderr = True

    def get_params(self) -> list[ToolParam]:
        return _stage_params("signature_identity setting")

    def run(self, args: dict[str, Any], ctx: ExecutionContext) -> ToolResult:
        assert_dependencies(signature.REQUIRED_TOOLS)
        target = _target(args, ctx, ctx.settings.signature_identity)
        console = ctx.console.to_stderr()
        outfile = args.get("outfile")

        console.header(report.STAGE_TITLES["signature"])
        ctx.progress(0.0, f"Verifying signature of {target.image}")
        try:
            result = signature.verify_signature(target, outfile, ctx.settings)
        except VerificationFailed as e:
            report.render_signature_failure(console, e)
            return ToolResult(status=ResultStatus.FAILURE, summary=str(e))

        report.render_signature(console, result)
        ctx.progress(1.0, "Signature verified")
        log_index = result.rekor_log_index
        return ToolResult(
            status=ResultStatus.SUCCESS,
            summary="Signature verification passed",
            data={
                "output": str(log_index) if log_index is not None else "N/A",
                "signature": to_data(result),
            },
            artifacts=_artifacts(outfile),
        )


class ProvenancePlugin:
    """Verify the SLSA provenance attestation and print what it records."""

    name = "provenance"
    description = "Verify an image's SLSA provenance attestation"
    version = __version__

    def get_params(self) -> list[ToolParam]:
        return _stage_params("provenance_identity setting")

    def run(self, args: dict[str, Any], ctx: ExecutionContext) -> ToolResult:
        assert_dependencies(provenance.REQUIRED_TOOLS)
        target = _target(args, ctx, ctx.settings.provenance_identity)
        outfile = args.get("outfile")

        ctx.console.header(report.STAGE_TITLES["provenance"])
        ctx.progress(0.0, f"Verifying provenance of {target.image}")
        try:
            result = provenance.verify_provenance(target, outfile, ctx.settings)
        except VerificationFailed as e:
            report.render_provenance_failure(ctx.console, e)
            return ToolResult(status=ResultStatus.FAILURE, summary=str(e))

        report.render_provenance(ctx.console, result, ctx.settings)
        ctx.progress(1.0, "Provenance verified")
        return ToolResult(
            status=ResultStatus.SUCCESS,
            summary=f"SLSA provenance verified ({result.slsa_version})",
            data={"provenance": to_data(result)},
            artifacts=_artifacts(outfile),
        )


class SbomPlugin:
    name = "sbom"
    description = "Verify an image's SPDX SBOM attestation"
    version = __version__

    def get_params(self) -> list[ToolParam]:
        return _stage_params("signature_identity setting")

    def run(self, args: dict[str, Any], ctx: ExecutionContext) -> ToolResult:
        assert_dependencies(sbom.REQUIRED_TOOLS)
        target = _target(args, ctx, ctx.settings.signature_identity)
        outfile = args.get("outfile")

        ctx.console.header(report.STAGE_TITLES["sbom"])
        ctx.progress(0.0, f"Verifying SBOM of {target.image}")
        try:
            result = sbom.verify_sbom(target, outfile, ctx.settings)
        except (VerificationFailed, ExtractionFailed) as e:
            report.render_sbom_failure(ctx.console, e)
            return ToolResult(status=ResultStatus.FAILURE, summary=str(e))

        report.render_sbom(ctx.console, result, ctx.settings)
        ctx.progress(1.0, "SBOM verified")
        return ToolResult(
            status=ResultStatus.SUCCESS,
            summary=f"SBOM attestation verified ({result.package_count} packages)",
            data={"sbom": to_data(result)},
            artifacts=_artifacts(outfile),
        )


class RekorPlugin:
    """Look up the transparency-log entry by index, or by image digest."""

    name = "rekor"
    description = "Confirm an image's entry in the Rekor transparency log"
    version = __version__

    def get_params(self) -> list[ToolParam]:
        return [
            ToolParam(
                name="log-index",
                description="Rekor log index from the signature (N/A to search by digest)",
                required=True,
                positional=True,
            ),
            ToolParam(
                name="image",
                description="Image to search by digest when no log index is known",
                positional=True,
            ),
            *_output_params(),
        ]

    def run(self, args: dict[str, Any], ctx: ExecutionContext) -> ToolResult:
        log_index = rekor.parse_log_index(args.get("log_index"))
        image = args.get("image")

        ctx.console.header(report.STAGE_TITLES["rekor"])
        if log_index is None:
            report.render_missing_index(ctx.console)

        ctx.progress(0.0, "Querying transparency log")
        try:
            result = rekor.verify_rekor(log_index, image, ctx.settings)
        except LookupNotFound as e:
            report.render_rekor_warning(ctx.console, e)
            return ToolResult(status=ResultStatus.FAILURE, summary=str(e))

        report.render_rekor(ctx.console, result, ctx.settings)
        ctx.progress(1.0, "Transparency log checked")
        return ToolResult(
            status=ResultStatus.SUCCESS,
            summary=result.detail,
            data={"rekor": to_data(result)},
        )


_STATE_STATUS = {
    PipelineState.SUMMARY: ResultStatus.SUCCESS,
    PipelineState.CANCELLED: ResultStatus.CANCELLED,
}


class ImagePlugin:
    """Run the full signature → provenance → SBOM → Rekor pipeline."""

    name = "image"
    description = "Run the full SLSA Level 3 verification suite on an image"
    version = __version__

    def get_params(self) -> list[ToolParam]:
        return [
            ToolParam(
                name="image",
                description="Container image reference",
                required=True,
                positional=True,
            ),
            ToolParam(
                name="repo",
                description="GitHub org/repo whose workflows signed the image",
                required=True,
                positional=True,
            ),
            *_output_params(),
        ]

    def run(self, args: dict[str, Any], ctx: ExecutionContext) -> ToolResult:
        image = args["image"]
        repo = args["repo"]
        if not REPO_RE.match(repo):
            return ToolResult(
                status=ResultStatus.FAILURE,
                summary=f"Invalid repository '{repo}': expected org/repo",
            )

        target = VerificationTarget(
            image=image,
            identity_pattern=ctx.settings.identity_for_repo(repo),
            oidc_issuer=ctx.settings.oidc_issuer,
        )
        report.render_opening(ctx.console, image, repo)

        pipeline_report = VerificationPipeline(target, ctx).run()
        status = _STATE_STATUS.get(pipeline_report.state, ResultStatus.FAILURE)

        if pipeline_report.passed:
            summary = (
                f"{report.COMPLIANCE_VERDICT} "
                f"(confidence: {pipeline_report.confidence.value})"
            )
        else:
            summary = pipeline_report.failure or "Verification failed"

        data = to_data(pipeline_report)
        data["repository"] = repo
        data["passed"] = pipeline_report.passed
        return ToolResult(status=status, summary=summary, data=data)


def builtin_plugins() -> dict[str, ToolPlugin]:
    """Return every command keyed by its name."""
    plugins: list[ToolPlugin] = [
        SignaturePlugin(),
        ProvenancePlugin(),
        SbomPlugin(),
        RekorPlugin(),
        ImagePlugin(),
    ]
    return {p.name: p for p in plugins}
