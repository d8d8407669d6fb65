import pytest

from pixelmind.config import PipelineConfig
from pixelmind.models import (
    ChangeMetrics,
    CheckStage,
    ErrorKind,
    FailureMode,
    Finding,
    FindingCode,
    FixAction,
    IssueCode,
    IssueSeverity,
    ResultIssue,
    ResultValidation,
    Severity,
    ValidationResult,
)
from pixelmind.recovery import FailureClassifier
from pixelmind.tools.builtin import COLOR_KNOCKOUT_TOOL, PICK_COLOR_AT_POSITION_TOOL, UPSCALER_TOOL


@pytest.fixture
def classifier(config):
    return FailureClassifier(config)


def invalid(*findings):
    return ValidationResult(is_valid=False, confidence=0, findings=findings)


def finding(code, parameter=None, suggested=None, severity=Severity.ERROR, stage=CheckStage.GROUND_TRUTH):
    return Finding(code, severity, stage, f"{code.value} on {parameter}", parameter, suggested)


def quality(*codes, changed=50.0):
    issues = [ResultIssue(code, IssueSeverity.MAJOR, code.value, auto_fixable=True) for code in codes]
    return ResultValidation(
        is_valid=not issues,
        quality_score=100,
        metrics=ChangeMetrics(percentage_changed=changed),
        issues=issues,
    )


# --- Execution errors ---

@pytest.mark.parametrize(
    "error, mode, kind, recoverable",
    [
        ("JavaScript heap out of memory", FailureMode.EXECUTION, ErrorKind.RESOURCE_EXHAUSTED, False),
        ("Rate limit exceeded (429)", FailureMode.API_ERROR, ErrorKind.RATE_LIMITED, True),
        ("Too Many Requests", FailureMode.API_ERROR, ErrorKind.RATE_LIMITED, True),
        ("ConnectionError: ECONNREFUSED", FailureMode.API_ERROR, ErrorKind.TRANSIENT_NETWORK, True),
        ("fetch failed", FailureMode.API_ERROR, ErrorKind.TRANSIENT_NETWORK, True),
        ("Execution timed out after 60s", FailureMode.TIMEOUT, ErrorKind.TIMEOUT, True),
        ("segfault in filter", FailureMode.EXECUTION, ErrorKind.UNKNOWN, False),
    ],
)
def test_execution_errors(classifier, error, mode, kind, recoverable):
    failure = classifier.analyze_failure(execution_error=error)

    assert failure.mode is mode
    assert failure.kind is kind
    assert failure.recoverable is recoverable
    assert error in failure.root_cause


def test_rate_limit_carries_delay(classifier):
    failure = classifier.analyze_failure(execution_error="429")
    assert failure.retry_delay == 5


def test_whitelist_opens_gated_kinds():
    classifier = FailureClassifier(PipelineConfig(recoverable_whitelist={"resource_exhausted"}))

    assert classifier.analyze_failure(execution_error="out of memory").recoverable
    assert not classifier.analyze_failure(execution_error="boom").recoverable


def test_execution_error_takes_priority(classifier):
    failure = classifier.analyze_failure(
        execution_error="network down",
        validation=invalid(finding(FindingCode.COLOR_NOT_FOUND, "colors", [{"hex": "#ffffff"}])),
    )
    assert failure.kind is ErrorKind.TRANSIENT_NETWORK


# --- Validation failures ---

def test_missing_color_is_replaced(classifier):
    substitute = [{"hex": "#ffffff", "r": 255, "g": 255, "b": 255}]
    failure = classifier.analyze_failure(
        validation=invalid(finding(FindingCode.COLOR_NOT_FOUND, "colors", substitute)),
        parameters={"colors": [{"hex": "#ffff00"}], "tolerance": 30},
    )

    assert failure.mode is FailureMode.VALIDATION
    assert failure.kind is ErrorKind.GROUND_TRUTH_MISMATCH
    assert failure.recoverable
    fix = failure.primary_fix
    assert fix.action is FixAction.REPLACE
    assert fix.current_value == [{"hex": "#ffff00"}]
    assert fix.suggested_value == substitute


def test_schema_range_is_clamped(classifier):
    failure = classifier.analyze_failure(
        validation=invalid(finding(FindingCode.SCHEMA_RANGE, "tolerance", 100, stage=CheckStage.SCHEMA)),
        parameters={"tolerance": 150},
    )

    assert failure.kind is ErrorKind.SCHEMA
    assert failure.recoverable
    assert failure.primary_fix.action is FixAction.CLAMP
    assert failure.primary_fix.suggested_value == 100


def test_unfixable_error_blocks_recovery(classifier):
    failure = classifier.analyze_failure(
        validation=invalid(
            finding(FindingCode.COLOR_NOT_FOUND, "colors", [{"hex": "#ffffff"}]),
            finding(FindingCode.UNSUPPORTED_OPTION, "textureType"),
        ),
    )

    assert not failure.recoverable
    assert len(failure.suggested_fixes) == 1


def test_schema_error_without_suggestion(classifier):
    failure = classifier.analyze_failure(
        validation=invalid(finding(FindingCode.SCHEMA_INVALID, "colors", stage=CheckStage.SCHEMA)),
    )

    assert failure.kind is ErrorKind.SCHEMA
    assert not failure.recoverable
    assert failure.suggested_fixes == ()


def test_error_fixes_precede_warning_fixes(classifier):
    failure = classifier.analyze_failure(
        validation=invalid(
            finding(FindingCode.TOLERANCE_TOO_LOW, "tolerance", 35, severity=Severity.WARNING),
            finding(FindingCode.OUTPUT_TOO_LARGE, "scaleFactor", 4.0),
        ),
        parameters={"scaleFactor": 8, "tolerance": 10},
    )

    assert [f.parameter for f in failure.suggested_fixes] == ["scaleFactor", "tolerance"]
    assert failure.suggested_fixes[1].action is FixAction.INCREASE


def test_fixes_are_unique_per_parameter(classifier):
    failure = classifier.analyze_failure(
        validation=invalid(
            finding(FindingCode.PALETTE_INDEX_OUT_OF_RANGE, "colorMappings", [{"originalIndex": 0}]),
            finding(FindingCode.TOO_MANY_MAPPINGS, "colorMappings", [], severity=Severity.WARNING),
        ),
    )

    assert len(failure.suggested_fixes) == 1
    assert failure.primary_fix.action is FixAction.TRIM


def test_position_reports_both_coordinates(classifier):
    failure = classifier.analyze_failure(
        validation=invalid(finding(FindingCode.COORDINATES_OUT_OF_BOUNDS, "position", {"x": 99, "y": 20})),
        parameters={"x": 150, "y": 20},
        tool=PICK_COLOR_AT_POSITION_TOOL,
    )

    assert failure.primary_fix.current_value == {"x": 150, "y": 20}
    assert failure.primary_fix.action is FixAction.CLAMP


# --- Quality failures ---

def test_over_change_lowers_tolerance(classifier):
    failure = classifier.analyze_failure(
        result_validation=quality(IssueCode.OVER_CHANGE, changed=96.0),
        parameters={"tolerance": 50},
        tool=COLOR_KNOCKOUT_TOOL,
    )

    assert failure.mode is FailureMode.QUALITY
    assert failure.kind is ErrorKind.QUALITY_OVER_CHANGE
    assert failure.recoverable
    fix = failure.primary_fix
    assert (fix.parameter, fix.current_value, fix.suggested_value) == ("tolerance", 50, 40)
    assert fix.action is FixAction.DECREASE


def test_under_change_uses_default_when_parameter_absent(classifier):
    failure = classifier.analyze_failure(
        result_validation=quality(IssueCode.UNDER_CHANGE, changed=0.0),
        parameters={"colors": [{"hex": "#ff0000"}]},
        tool=COLOR_KNOCKOUT_TOOL,
    )

    assert failure.kind is ErrorKind.QUALITY_UNDER_CHANGE
    assert failure.primary_fix.current_value == 30
    assert failure.primary_fix.suggested_value == 40


def test_strength_at_its_limit_is_final(classifier):
    failure = classifier.analyze_failure(
        result_validation=quality(IssueCode.OVER_CHANGE, changed=99.0),
        parameters={"tolerance": 10},
        tool=COLOR_KNOCKOUT_TOOL,
    )

    assert not failure.recoverable
    assert "floor" in failure.root_cause


def test_tool_without_strength_parameter(classifier):
    failure = classifier.analyze_failure(
        result_validation=quality(IssueCode.UNDER_CHANGE, changed=0.0),
        parameters={"scaleFactor": 2},
        tool=UPSCALER_TOOL,
    )

    assert failure.kind is ErrorKind.QUALITY_UNDER_CHANGE
    assert not failure.recoverable


def test_other_quality_defects_are_gated(classifier):
    failure = classifier.analyze_failure(
        result_validation=quality(IssueCode.FILE_SIZE_EXPLOSION),
        tool=COLOR_KNOCKOUT_TOOL,
    )

    assert failure.kind is ErrorKind.QUALITY_DEFECT
    assert not failure.recoverable


def test_no_evidence_is_unknown(classifier):
    failure = classifier.analyze_failure()

    assert failure.mode is FailureMode.UNKNOWN
    assert failure.kind is ErrorKind.UNKNOWN
    assert not failure.recoverable
