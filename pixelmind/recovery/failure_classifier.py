from __future__ import annotations

from typing import Any, Dict, List, Mapping, Optional, Tuple

from ..config import PipelineConfig
from ..models import (
    CheckStage,
    ErrorKind,
    FailureAnalysis,
    FailureMode,
    Finding,
    FindingCode,
    FixAction,
    ImageAnalysis,
    IssueCode,
    ResultValidation,
    SuggestedFix,
    ValidationResult,
)
from ..tools.schema import Tool

# Keyword families checked in order against lower-cased execution errors.
_RESOURCE_KEYWORDS = ("memory", "heap")
_RATE_LIMIT_KEYWORDS = ("rate limit", "429", "too many requests")
_NETWORK_KEYWORDS = ("network", "fetch", "econnrefused", "enotfound", "connection")
_TIMEOUT_KEYWORDS = ("timeout", "timed out", "etimedout")

# Validation finding -> fix action; earlier entries win for the primary fix.
_FIXABLE: Tuple[Tuple[FindingCode, FixAction], ...] = (
    (FindingCode.COLOR_NOT_FOUND, FixAction.REPLACE),
    (FindingCode.PALETTE_INDEX_OUT_OF_RANGE, FixAction.TRIM),
    (FindingCode.COORDINATES_OUT_OF_BOUNDS, FixAction.CLAMP),
    (FindingCode.OUTPUT_TOO_LARGE, FixAction.CLAMP),
    (FindingCode.SCHEMA_RANGE, FixAction.CLAMP),
    (FindingCode.TOO_MANY_MAPPINGS, FixAction.TRIM),
    (FindingCode.TOLERANCE_TOO_LOW, FixAction.INCREASE),
    (FindingCode.TOLERANCE_TOO_HIGH, FixAction.DECREASE),
)


def _contains(text: str, keywords) -> bool:
    return any(k in text for k in keywords)


class FailureClassifier:
    """
    Turns a failed attempt into a structured `FailureAnalysis`.

    Evidence is considered in a fixed priority order: execution error
    text, then validation findings, then result-quality issues. The first
    matching rule decides the mode, the error kind and whether a retry
    can help; concrete parameter fixes are attached where one exists.
    """

    def __init__(self, config: Optional[PipelineConfig] = None) -> None:
        self._config = config or PipelineConfig()

    # ------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------

    def analyze_failure(
        self,
        execution_error: Optional[str] = None,
        validation: Optional[ValidationResult] = None,
        result_validation: Optional[ResultValidation] = None,
        *,
        parameters: Optional[Mapping[str, Any]] = None,
        tool: Optional[Tool] = None,
        analysis: Optional[ImageAnalysis] = None,
    ) -> FailureAnalysis:

        params = dict(parameters or {})

        if execution_error:
            return self._classify_execution_error(execution_error)

        if validation is not None and not validation.is_valid:
            return self._classify_validation(validation, params)

        if result_validation is not None:
            return self._classify_quality(result_validation, params, tool)

        return self._unknown("Attempt failed without a recognisable cause")

    # ------------------------------------------------------------
    # Execution errors
    # ------------------------------------------------------------

    def _classify_execution_error(self, error: str) -> FailureAnalysis:
        text = error.lower()
        cfg = self._config

        if _contains(text, _RESOURCE_KEYWORDS):
            return self._gated(
                FailureMode.EXECUTION,
                ErrorKind.RESOURCE_EXHAUSTED,
                f"Tool ran out of memory: {error}",
            )

        if _contains(text, _RATE_LIMIT_KEYWORDS):
            return FailureAnalysis(
                FailureMode.API_ERROR,
                ErrorKind.RATE_LIMITED,
                f"Rate limited by the tool backend: {error}",
                recoverable=True,
                retry_delay=cfg.rate_limit_delay,
            )

        if _contains(text, _NETWORK_KEYWORDS):
            return FailureAnalysis(
                FailureMode.API_ERROR,
                ErrorKind.TRANSIENT_NETWORK,
                f"Transient network failure: {error}",
                recoverable=True,
                retry_delay=cfg.backoff_base_delay,
            )

        if _contains(text, _TIMEOUT_KEYWORDS):
            return FailureAnalysis(
                FailureMode.TIMEOUT,
                ErrorKind.TIMEOUT,
                f"Tool execution timed out: {error}",
                recoverable=True,
                retry_delay=cfg.backoff_base_delay,
            )

        return self._gated(FailureMode.EXECUTION, ErrorKind.UNKNOWN, f"Execution failed: {error}")

    # ------------------------------------------------------------
    # Validation findings
    # ------------------------------------------------------------

    def _classify_validation(
        self,
        validation: ValidationResult,
        params: Dict[str, Any],
    ) -> FailureAnalysis:

        errors = [f for f in validation.findings if f.is_error]
        warnings = [f for f in validation.findings if not f.is_error]

        kind = (
            ErrorKind.SCHEMA
            if any(f.stage is CheckStage.SCHEMA for f in errors)
            else ErrorKind.GROUND_TRUTH_MISMATCH
        )

        error_fixes = self._fixes_for(errors, params)
        warning_fixes = self._fixes_for(warnings, params)

        fixed_codes = {code for code, _ in error_fixes}
        recoverable = bool(errors) and all(f.code in fixed_codes for f in errors)

        fixes = self._dedupe([fix for _, fix in error_fixes + warning_fixes])

        return FailureAnalysis(
            FailureMode.VALIDATION,
            kind,
            "; ".join(validation.errors) or validation.reasoning,
            recoverable=recoverable and bool(fixes),
            suggested_fixes=tuple(fixes),
        )

    def _fixes_for(
        self,
        findings: List[Finding],
        params: Dict[str, Any],
    ) -> List[Tuple[FindingCode, SuggestedFix]]:

        fixes: List[Tuple[FindingCode, SuggestedFix]] = []

        for code, action in _FIXABLE:
            for finding in findings:
                if finding.code is not code or finding.suggested_value is None:
                    continue
                if not finding.parameter:
                    continue

                fixes.append((code, SuggestedFix(
                    parameter=finding.parameter,
                    current_value=self._current(params, finding.parameter),
                    suggested_value=finding.suggested_value,
                    reason=finding.message,
                    action=action,
                )))

        return fixes

    @staticmethod
    def _current(params: Dict[str, Any], parameter: str) -> Any:
        if parameter == "position":
            return {"x": params.get("x"), "y": params.get("y")}
        return params.get(parameter)

    @staticmethod
    def _dedupe(fixes: List[SuggestedFix]) -> List[SuggestedFix]:
        seen = set()
        unique = []
        for fix in fixes:
            if fix.parameter in seen:
                continue
            seen.add(fix.parameter)
            unique.append(fix)
        return unique

    # ------------------------------------------------------------
    # Result quality
    # ------------------------------------------------------------

    def _classify_quality(
        self,
        result: ResultValidation,
        params: Dict[str, Any],
        tool: Optional[Tool],
    ) -> FailureAnalysis:

        if result.has(IssueCode.OVER_CHANGE):
            return self._strength_fix(result, params, tool, decrease=True)

        if result.has(IssueCode.UNDER_CHANGE):
            return self._strength_fix(result, params, tool, decrease=False)

        return self._gated(
            FailureMode.QUALITY,
            ErrorKind.QUALITY_DEFECT,
            result.reasoning or f"Result quality {result.quality_score:.0f} below threshold",
        )

    def _strength_fix(
        self,
        result: ResultValidation,
        params: Dict[str, Any],
        tool: Optional[Tool],
        decrease: bool,
    ) -> FailureAnalysis:

        kind = ErrorKind.QUALITY_OVER_CHANGE if decrease else ErrorKind.QUALITY_UNDER_CHANGE
        cause = (
            f"{'Over' if decrease else 'Under'}-change: "
            f"{result.metrics.percentage_changed:.1f}% of pixels changed"
        )

        name = tool.intent.strength_parameter if tool else None
        adjustment = self._config.adjustment_for(name) if name else None

        if adjustment is None:
            return FailureAnalysis(
                FailureMode.QUALITY, kind, cause + " and no strength parameter to adjust",
                recoverable=False,
            )

        current = params.get(name)
        if current is None and tool is not None:
            current = tool.defaults().get(name)

        if isinstance(current, bool) or not isinstance(current, (int, float)):
            return FailureAnalysis(
                FailureMode.QUALITY, kind, cause + f" and '{name}' is not numeric",
                recoverable=False,
            )

        if decrease:
            suggested = min(current, adjustment.decrease(current))
        else:
            suggested = max(current, adjustment.increase(current))
        suggested = round(suggested, 4)

        if suggested == current:
            limit = "floor" if decrease else "cap"
            return FailureAnalysis(
                FailureMode.QUALITY, kind,
                cause + f" and '{name}' is already at its {limit} ({current:g})",
                recoverable=False,
            )

        fix = SuggestedFix(
            parameter=name,
            current_value=current,
            suggested_value=suggested,
            reason=f"{'Decrease' if decrease else 'Increase'} {name} {current:g} -> {suggested:g}",
            action=FixAction.DECREASE if decrease else FixAction.INCREASE,
        )
        return FailureAnalysis(FailureMode.QUALITY, kind, cause, recoverable=True, suggested_fixes=(fix,))

    # ------------------------------------------------------------
    # Fallbacks
    # ------------------------------------------------------------

    def _gated(self, mode: FailureMode, kind: ErrorKind, cause: str) -> FailureAnalysis:
        """Not recoverable unless the kind is explicitly whitelisted."""
        return FailureAnalysis(
            mode,
            kind,
            cause,
            recoverable=kind.value in self._config.recoverable_whitelist,
        )

    def _unknown(self, cause: str) -> FailureAnalysis:
        return self._gated(FailureMode.UNKNOWN, ErrorKind.UNKNOWN, cause)
