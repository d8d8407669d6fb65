import pytest

from pixelmind.models import ErrorKind, FailureAnalysis, FailureMode, FixAction, SuggestedFix
from pixelmind.recovery import RetryStrategyEngine


@pytest.fixture
def engine(config):
    return RetryStrategyEngine(config)


def failure(kind=ErrorKind.GROUND_TRUTH_MISMATCH, recoverable=True, *fixes, mode=FailureMode.VALIDATION):
    return FailureAnalysis(mode, kind, "test failure", recoverable=recoverable, suggested_fixes=fixes)


def fix(parameter, current, suggested, action=FixAction.REPLACE):
    return SuggestedFix(parameter, current, suggested, f"adjust {parameter}", action)


def test_applies_only_the_primary_fix(engine):
    plan = engine.plan_retry(
        failure(
            ErrorKind.GROUND_TRUTH_MISMATCH,
            True,
            fix("colors", [{"hex": "#ffff00"}], [{"hex": "#ffffff"}]),
            fix("tolerance", 10, 35, FixAction.INCREASE),
        ),
        {"colors": [{"hex": "#ffff00"}], "tolerance": 10},
    )

    assert plan.should_retry
    assert plan.adjusted_parameters == {"colors": [{"hex": "#ffffff"}], "tolerance": 10}
    assert plan.retry_delay == 0
    assert plan.reasoning == "adjust colors"


def test_input_parameters_are_not_mutated(engine):
    params = {"colors": [{"hex": "#ffff00"}]}
    suggestion = [{"hex": "#ffffff"}]

    plan = engine.plan_retry(failure(ErrorKind.GROUND_TRUTH_MISMATCH, True, fix("colors", None, suggestion)), params)
    plan.adjusted_parameters["colors"][0]["hex"] = "#000000"

    assert params == {"colors": [{"hex": "#ffff00"}]}
    assert suggestion == [{"hex": "#ffffff"}]


def test_position_fix_updates_both_coordinates(engine):
    plan = engine.plan_retry(
        failure(ErrorKind.GROUND_TRUTH_MISMATCH, True, fix("position", {"x": 150, "y": 20}, {"x": 99, "y": 20}, FixAction.CLAMP)),
        {"x": 150, "y": 20},
    )

    assert plan.adjusted_parameters == {"x": 99, "y": 20}


def test_unrecoverable_failures_are_not_retried(engine):
    plan = engine.plan_retry(failure(ErrorKind.UNKNOWN, False), {"tolerance": 30})

    assert not plan.should_retry
    assert plan.adjusted_parameters is None
    assert "not recoverable" in plan.reasoning


def test_budget_is_enforced(engine):
    recoverable = failure(ErrorKind.TIMEOUT, True, mode=FailureMode.TIMEOUT)

    assert engine.plan_retry(recoverable, {}, attempt_index=2).should_retry
    assert not engine.plan_retry(recoverable, {}, attempt_index=3).should_retry
    assert not engine.plan_retry(recoverable, {}, attempt_index=0, max_retries=0).should_retry


@pytest.mark.parametrize(
    "kind, attempt_index, delay",
    [
        (ErrorKind.RATE_LIMITED, 0, 5.0),
        (ErrorKind.RATE_LIMITED, 2, 5.0),
        (ErrorKind.TRANSIENT_NETWORK, 0, 1.0),
        (ErrorKind.TRANSIENT_NETWORK, 2, 4.0),
        (ErrorKind.TIMEOUT, 1, 2.0),
    ],
)
def test_waiting_recoveries_retry_unchanged(engine, kind, attempt_index, delay):
    params = {"scaleFactor": 2}

    plan = engine.plan_retry(failure(kind, True, mode=FailureMode.API_ERROR), params, attempt_index=attempt_index)

    assert plan.should_retry
    assert plan.retry_delay == delay
    assert plan.adjusted_parameters == params


def test_movement_in_the_wrong_direction_is_refused(engine):
    wrong = failure(
        ErrorKind.QUALITY_OVER_CHANGE, True, fix("tolerance", 40, 40, FixAction.DECREASE), mode=FailureMode.QUALITY
    )

    plan = engine.plan_retry(wrong, {"tolerance": 40})

    assert not plan.should_retry
    assert "cannot decrease" in plan.reasoning


def test_fix_that_changes_nothing_is_refused(engine):
    same = failure(ErrorKind.GROUND_TRUTH_MISMATCH, True, fix("colors", [{"hex": "#ffffff"}], [{"hex": "#ffffff"}]))

    plan = engine.plan_retry(same, {"colors": [{"hex": "#ffffff"}]})

    assert not plan.should_retry
