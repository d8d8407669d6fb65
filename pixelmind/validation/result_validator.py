"""
Result Validator
================

Judges whether an executed tool's *visible effect* matches what the tool
is supposed to do.

Architectural Role
------------------
Sits after the ToolExecutionAdapter. The orchestrator treats an attempt
as successful only when this validator reports a valid result with a
quality score at or above `min_quality_score`. Over- and under-change
issues are marked auto-fixable so the failure classifier can turn the
tool's strength parameter.

Quality starts at 100 and loses points for file-size growth, dimension
mismatches, corruption and failed operation checks.
"""

from __future__ import annotations

from typing import List, Optional
import logging

import numpy as np

from ..analysis.analyzer import load_rgba, sharpness_score
from ..analysis.comparison import compare_pixels, translucent_pixel_count
from ..config import PipelineConfig
from ..models import ChangeMetrics, IssueCode, IssueSeverity, ResultIssue, ResultValidation
from ..tools.names import ToolName
from ..tools.schema import DimensionChange, EditIntent, Tool

logger = logging.getLogger(__name__)

_INTENT_CODES = (
    IssueCode.OVER_CHANGE,
    IssueCode.UNDER_CHANGE,
    IssueCode.DIMENSION_MISMATCH,
    IssueCode.OPERATION_CHECK,
)


class ResultValidator:

    def __init__(self, config: Optional[PipelineConfig] = None) -> None:
        self._config = config or PipelineConfig()

    # ============================================================
    # PUBLIC API
    # ============================================================

    def validate_result(
        self,
        before: bytes,
        after: Optional[bytes],
        tool: Tool,
        intent: Optional[EditIntent] = None,
    ) -> ResultValidation:

        cfg = self._config
        intent = intent or tool.intent

        if intent.is_info_only:
            return ResultValidation(
                is_valid=True,
                quality_score=100.0,
                reasoning=f"{tool.name.value} returns information only; no image checks",
            )

        before_rgba = self._decode(before)
        after_rgba = self._decode(after) if after else None

        if before_rgba is None or after_rgba is None:
            issue = ResultIssue(
                IssueCode.CORRUPTED,
                IssueSeverity.CRITICAL,
                "Result image is missing or cannot be decoded"
                if before_rgba is not None
                else "Source image cannot be decoded",
            )
            return self._build(tool, ChangeMetrics(), [issue], 100.0 - cfg.corruption_penalty)

        metrics = compare_pixels(
            before_rgba,
            after_rgba,
            threshold=cfg.change_threshold,
            significant_percentage=cfg.significant_change_percentage,
        )

        issues: List[ResultIssue] = []
        quality = 100.0

        # -------------------------------
        # Change volume
        # -------------------------------

        if intent.localized and metrics.percentage_changed > cfg.over_change_percentage:
            issues.append(ResultIssue(
                IssueCode.OVER_CHANGE,
                IssueSeverity.MAJOR,
                f"{metrics.percentage_changed:.1f}% of pixels changed; "
                "the operation affected almost the entire image",
                auto_fixable=True,
            ))

        if intent.expects_visible_change and metrics.percentage_changed < cfg.under_change_percentage:
            issues.append(ResultIssue(
                IssueCode.UNDER_CHANGE,
                IssueSeverity.MAJOR,
                f"Only {metrics.percentage_changed:.2f}% of pixels changed; "
                "the operation had no visible effect",
                auto_fixable=True,
            ))

        # -------------------------------
        # File size
        # -------------------------------

        if before:
            ratio = len(after) / len(before)
            if ratio > cfg.file_size_explosion_ratio:
                quality -= cfg.file_size_explosion_penalty
                issues.append(ResultIssue(
                    IssueCode.FILE_SIZE_EXPLOSION,
                    IssueSeverity.MAJOR,
                    f"File size grew {ratio:.1f}x ({len(before)} -> {len(after)} bytes)",
                ))
            elif ratio > cfg.file_size_warning_ratio:
                quality -= cfg.file_size_warning_penalty
                issues.append(ResultIssue(
                    IssueCode.FILE_SIZE_GROWTH,
                    IssueSeverity.MINOR,
                    f"File size grew {ratio:.1f}x",
                ))

        # -------------------------------
        # Dimensions
        # -------------------------------

        mismatch = self._dimension_mismatch(before_rgba, after_rgba, intent.dimensions)
        if mismatch:
            quality -= cfg.dimension_mismatch_penalty
            issues.append(ResultIssue(IssueCode.DIMENSION_MISMATCH, IssueSeverity.MAJOR, mismatch))

        # -------------------------------
        # Operation specific
        # -------------------------------

        if intent.adds_transparency:
            before_count = translucent_pixel_count(before_rgba)
            after_count = translucent_pixel_count(after_rgba)
            if after_count <= before_count:
                quality -= cfg.operation_check_penalty
                issues.append(ResultIssue(
                    IssueCode.OPERATION_CHECK,
                    IssueSeverity.MAJOR,
                    f"Expected added transparency but transparent pixels went "
                    f"{before_count} -> {after_count}",
                ))

        issues.extend(self._advisories(tool, metrics, before_rgba, after_rgba))

        return self._build(tool, metrics, issues, quality)

    # ============================================================
    # INTERNALS
    # ============================================================

    @staticmethod
    def _decode(data: Optional[bytes]) -> Optional[np.ndarray]:
        if not data:
            return None
        try:
            return load_rgba(data)
        except Exception as e:
            logger.warning(f"[RESULT] Failed to decode image: {e}")
            return None

    def _dimension_mismatch(
        self,
        before: np.ndarray,
        after: np.ndarray,
        expectation: DimensionChange,
    ) -> Optional[str]:

        bh, bw = before.shape[:2]
        ah, aw = after.shape[:2]
        found = f"{bw}x{bh} -> {aw}x{ah}"

        if expectation is DimensionChange.PRESERVED:
            drift = max(abs(aw - bw) / max(bw, 1), abs(ah - bh) / max(bh, 1))
            if drift > self._config.max_dimension_drift:
                return f"Dimensions should be preserved but changed {found}"

        elif expectation is DimensionChange.ENLARGED:
            ratio = self._config.min_upscale_ratio
            if aw < bw * ratio or ah < bh * ratio:
                return f"Dimensions should grow at least {ratio:g}x but went {found}"

        elif expectation is DimensionChange.REDUCED:
            if aw > bw or ah > bh:
                return f"Dimensions should not grow but went {found}"

        return None

    @staticmethod
    def _advisories(
        tool: Tool,
        metrics: ChangeMetrics,
        before: np.ndarray,
        after: np.ndarray,
    ) -> List[ResultIssue]:

        notes: List[str] = []

        if tool.name is ToolName.UPSCALER:
            drop = sharpness_score(before) - sharpness_score(after)
            if drop > 10:
                notes.append(f"Sharpness dropped by {drop:.0f} after upscaling")

        elif tool.name is ToolName.RECOLOR_IMAGE:
            if metrics.pixels_changed and metrics.color_shift < 20:
                notes.append(f"Recolor shifted colors only slightly (shift {metrics.color_shift:.0f})")

        elif tool.name is ToolName.BACKGROUND_REMOVER:
            if metrics.percentage_changed < 10:
                notes.append(f"Background removal changed only {metrics.percentage_changed:.1f}% of pixels")

        elif tool.name is ToolName.TEXTURE_CUT:
            if metrics.percentage_changed < 5:
                notes.append(f"Texture cut affected only {metrics.percentage_changed:.1f}% of pixels")

        return [ResultIssue(IssueCode.ADVISORY, IssueSeverity.MINOR, n) for n in notes]

    @staticmethod
    def _build(
        tool: Tool,
        metrics: ChangeMetrics,
        issues: List[ResultIssue],
        quality: float,
    ) -> ResultValidation:

        blocking = [i for i in issues if i.is_blocking]
        is_valid = not blocking
        matches_intent = not any(i.code in _INTENT_CODES for i in issues)

        if is_valid:
            reasoning = (
                f"{tool.name.value} changed {metrics.percentage_changed:.1f}% of pixels "
                f"as expected"
            )
        else:
            reasoning = "; ".join(i.message for i in blocking)

        result = ResultValidation(
            is_valid=is_valid,
            quality_score=quality,
            metrics=metrics,
            issues=tuple(issues),
            matches_intent=matches_intent,
            reasoning=reasoning,
        )

        logger.info(
            f"[RESULT] {tool.name.value} | valid={result.is_valid} "
            f"quality={result.quality_score:.0f} changed={metrics.percentage_changed:.1f}%"
        )
        return result


def format_validation_summary(result: ResultValidation) -> str:
    m = result.metrics
    lines = [
        f"Result: {'VALID' if result.is_valid else 'INVALID'} "
        f"(quality {result.quality_score:.0f}/100)",
        f"Matches intent: {'yes' if result.matches_intent else 'no'}",
        f"Pixels changed: {m.pixels_changed}/{m.total_pixels} ({m.percentage_changed:.1f}%)",
        f"Delta: max {m.max_delta:.1f}, avg {m.avg_delta:.1f}, color shift {m.color_shift:.1f}",
    ]

    if result.issues:
        lines.append("Issues:")
        for issue in result.issues:
            fix = " [auto-fixable]" if issue.auto_fixable else ""
            lines.append(f"  - {issue.severity.value.upper()}: {issue.message}{fix}")

    return "\n".join(lines)
