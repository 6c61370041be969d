"""Run the four verification stages in order and aggregate their results."""

from __future__ import annotations

import dataclasses
import logging

from slsa_verify import report
from slsa_verify.common import temp_workspace
from slsa_verify.context import ExecutionContext
from slsa_verify.deps import assert_dependencies
from slsa_verify.errors import ExtractionFailed, LookupNotFound, ToolMissing, VerificationFailed
from slsa_verify.models import (
    Confidence,
    PipelineReport,
    PipelineState,
    RekorResult,
    VerificationTarget,
)
from slsa_verify.stages import verify_provenance, verify_rekor, verify_sbom, verify_signature

logger = logging.getLogger(__name__)

# docker resolves digests for the index-less Rekor search; crane is optional
REQUIRED_TOOLS = ["cosign", "docker"]


def confidence_for(history: tuple[PipelineState, ...], rekor: RekorResult | None) -> Confidence:
    """Full confidence needs a verified SBOM and a Rekor entry with fetched details."""
    if (
        PipelineState.SBOM_OK in history
        and PipelineState.REKOR_OK in history
        and rekor is not None
        and not rekor.degraded
    ):
        return Confidence.FULL
    return Confidence.DEGRADED


class VerificationPipeline:
    """Signature → provenance → SBOM → Rekor → summary.

    Signature and provenance are required; SBOM and Rekor problems only add
    warnings and lower the confidence. The cancel event is checked between
    stages.
    """

    def __init__(self, target: VerificationTarget, ctx: ExecutionContext) -> None:
        self.target = target
        self.ctx = ctx
        self._report = PipelineReport(
            target=target,
            state=PipelineState.SIGNATURE_PENDING,
            history=(PipelineState.SIGNATURE_PENDING,),
        )

    @property
    def state(self) -> PipelineState:
        return self._report.state

    def _advance(self, state: PipelineState, **changes) -> None:
        logger.debug("Pipeline %s -> %s", self._report.state.value, state.value)
        self._report = dataclasses.replace(
            self._report,
            state=state,
            history=self._report.history + (state,),
            **changes,
        )

    def _warn(self, message: str) -> None:
        self._report = dataclasses.replace(
            self._report, warnings=self._report.warnings + (message,)
        )

    def _cancelled(self) -> bool:
        if self.ctx.is_cancelled:
            self._advance(PipelineState.CANCELLED, failure="Cancelled by user")
            return True
        return False

    def run(self) -> PipelineReport:
        """Run every stage and return the final report.

        Raises:
            ToolMissing: cosign or docker is not installed.
        """
        assert_dependencies(REQUIRED_TOOLS)
        console = self.ctx.console
        settings = self.ctx.settings

        with temp_workspace() as workspace:
            # Stage 1: signature (required)
            self.ctx.progress(0.0, "Verifying image signature")
            console.header(report.STAGE_TITLES["signature"])
            try:
                signature = verify_signature(
                    self.target, workspace / "signature.json", settings
                )
            except VerificationFailed as e:
                if self._cancelled():
                    return self._report
                report.render_signature_failure(console, e)
                self._advance(PipelineState.FAILED, failure=str(e))
                return self._report
            report.render_signature(console, signature)
            self._advance(PipelineState.SIGNATURE_OK, signature=signature)
            if self._cancelled():
                return self._report

            # Stage 2: provenance (required)
            self.ctx.progress(0.25, "Verifying SLSA provenance")
            console.header(report.STAGE_TITLES["provenance"])
            try:
                provenance = verify_provenance(
                    self.target, workspace / "provenance.json", settings
                )
            except VerificationFailed as e:
                if self._cancelled():
                    return self._report
                report.render_provenance_failure(console, e)
                self._advance(PipelineState.FAILED, failure=str(e))
                return self._report
            report.render_provenance(console, provenance, settings)
            self._advance(PipelineState.PROVENANCE_OK, provenance=provenance)
            console.line()
            if self._cancelled():
                return self._report

            # Stage 3: SBOM (best effort)
            self.ctx.progress(0.5, "Verifying SBOM attestation")
            console.header(report.STAGE_TITLES["sbom"])
            try:
                sbom = verify_sbom(self.target, workspace / "sbom.json", settings)
            except (VerificationFailed, ExtractionFailed) as e:
                logger.debug("SBOM stage failed: %s", e)
                report.render_sbom_failure(console, e)
                self._warn("SBOM attestation not verified")
                self._advance(PipelineState.SBOM_SKIPPED)
            else:
                report.render_sbom(console, sbom, settings)
                self._advance(PipelineState.SBOM_OK, sbom=sbom)
            console.line()
            if self._cancelled():
                return self._report

            # Stage 4: Rekor (best effort)
            self.ctx.progress(0.75, "Verifying Rekor transparency log")
            console.header(report.STAGE_TITLES["rekor"])
            self._run_rekor(signature.rekor_log_index)
            console.line()
            if self._cancelled():
                return self._report

        confidence = confidence_for(self._report.history, self._report.rekor)
        self._advance(PipelineState.SUMMARY, confidence=confidence)
        self.ctx.progress(1.0, "Verification complete")
        report.render_summary(console, self._report)
        return self._report

    def _run_rekor(self, log_index: int | None) -> None:
        console = self.ctx.console
        if log_index is None:
            report.render_missing_index(console)
        try:
            rekor = verify_rekor(log_index, self.target.image, self.ctx.settings)
        except (LookupNotFound, ToolMissing) as e:
            logger.debug("Rekor stage failed: %s", e)
            report.render_rekor_warning(console, e)
            self._warn(str(e))
            self._advance(PipelineState.REKOR_WARN)
            return

        report.render_rekor(console, rekor, self.ctx.settings)
        if rekor.degraded:
            self._warn(rekor.detail)
            self._advance(PipelineState.REKOR_WARN, rekor=rekor)
        else:
            self._advance(PipelineState.REKOR_OK, rekor=rekor)
