from __future__ import annotations

from typing import Any, Dict, List, Mapping, Optional, Tuple
import logging

from pydantic import ValidationError

from ..config import PipelineConfig
from ..models import CheckStage, Finding, FindingCode, ImageAnalysis, Severity, ValidationResult
from ..tools.schema import Tool
from .ground_truth import GroundTruthChecker
from .historical import HistoricalChecker

logger = logging.getLogger(__name__)

# pydantic error type -> constraint key carrying the bound
_RANGE_ERRORS = {
    "greater_than_equal": "ge",
    "less_than_equal": "le",
}


class ParameterValidator:
    """
    Three-pass validation of a proposed tool call.

    1. Schema: the tool's pydantic model (types, ranges, enums, required
       and unknown fields).
    2. Ground truth: tool-specific rules against the measured image.
    3. History: numeric parameters against what succeeded on similar images.

    All passes run and their findings accumulate, so a single result can
    carry a schema clamp and a color substitution at the same time. The
    validator never raises; failure is expressed as `is_valid=False`.
    """

    def __init__(self, config: Optional[PipelineConfig] = None) -> None:
        self._config = config or PipelineConfig()
        self._ground_truth = GroundTruthChecker(self._config)
        self._history = HistoricalChecker(self._config)

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    def validate(
        self,
        tool: Tool,
        parameters: Mapping[str, Any],
        analysis: ImageAnalysis,
        learning_store=None,
    ) -> ValidationResult:

        raw = dict(parameters)
        schema_findings, normalized = self._check_schema(tool, raw)

        # ground-truth rules see defaults even when the schema check failed
        effective = normalized if normalized is not None else {**tool.defaults(), **raw}

        ground_findings = self._ground_truth.check(tool.name, effective, analysis)

        historical_findings, historical_confidence, medians = self._history.check(
            tool.name.value, effective, analysis, learning_store
        )

        findings = schema_findings + ground_findings + historical_findings
        confidence = self._confidence(schema_findings, ground_findings, historical_findings)
        is_valid = not any(f.is_error for f in findings)

        result = ValidationResult(
            is_valid=is_valid,
            confidence=confidence,
            findings=tuple(findings),
            reasoning=self._reasoning(is_valid, confidence, findings),
            adjusted_parameters={**effective, **medians} if medians else None,
            historical_confidence=historical_confidence,
            normalized_parameters=normalized,
        )

        logger.info(
            f"[VALIDATOR] {tool.name.value} | valid={result.is_valid} "
            f"confidence={result.confidence:.0f} errors={len(result.errors)} "
            f"warnings={len(result.warnings)}"
        )
        return result

    # ------------------------------------------------------------------
    # Schema
    # ------------------------------------------------------------------

    def _check_schema(
        self, tool: Tool, raw: Dict[str, Any]
    ) -> Tuple[List[Finding], Optional[Dict[str, Any]]]:

        try:
            return [], tool.normalize(raw)
        except ValidationError as e:
            return [self._schema_finding(err) for err in e.errors()], None

    @staticmethod
    def _schema_finding(err: Dict[str, Any]) -> Finding:
        loc = err.get("loc") or ()
        parameter = ".".join(str(part) for part in loc) or None
        message = f"{parameter}: {err.get('msg')}" if parameter else str(err.get("msg"))

        bound_key = _RANGE_ERRORS.get(err.get("type"))
        ctx = err.get("ctx") or {}

        if bound_key and len(loc) == 1 and bound_key in ctx:
            return Finding(
                FindingCode.SCHEMA_RANGE,
                Severity.ERROR,
                CheckStage.SCHEMA,
                message,
                parameter,
                ctx[bound_key],
            )

        return Finding(FindingCode.SCHEMA_INVALID, Severity.ERROR, CheckStage.SCHEMA, message, parameter)

    # ------------------------------------------------------------------
    # Scoring
    # ------------------------------------------------------------------

    def _confidence(
        self,
        schema_findings: List[Finding],
        ground_findings: List[Finding],
        historical_findings: List[Finding],
    ) -> float:
        cfg = self._config

        if schema_findings:
            return cfg.schema_error_confidence

        confidence = 100.0

        error_categories = {f.code for f in ground_findings if f.is_error}
        confidence -= cfg.ground_truth_error_penalty * len(error_categories)

        if any(not f.is_error for f in ground_findings):
            confidence -= cfg.ground_truth_warning_penalty

        if historical_findings:
            confidence -= cfg.historical_outlier_penalty

        return max(0.0, min(100.0, confidence))

    @staticmethod
    def _reasoning(is_valid: bool, confidence: float, findings: List[Finding]) -> str:
        if not findings:
            return f"Parameters consistent with schema, image and history (confidence {confidence:.0f})"

        errors = [f.message for f in findings if f.is_error]
        warnings = [f.message for f in findings if not f.is_error]

        parts = ["Valid" if is_valid else "Invalid", f"(confidence {confidence:.0f})"]
        if errors:
            parts.append("errors: " + "; ".join(errors))
        if warnings:
            parts.append("warnings: " + "; ".join(warnings))
        return " ".join(parts)
