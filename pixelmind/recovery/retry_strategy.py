from __future__ import annotations

from typing import Any, Dict, Mapping, Optional
import copy
import logging

from ..config import PipelineConfig
from ..models import ErrorKind, FailureAnalysis, FixAction, ImageAnalysis, RetryStrategy, SuggestedFix

logger = logging.getLogger(__name__)

_BACKOFF_KINDS = (ErrorKind.TRANSIENT_NETWORK, ErrorKind.TIMEOUT)


class RetryStrategyEngine:
    """
    Decides whether and how to retry after a classified failure.

    Only the primary suggested fix is applied per retry, so every retry
    changes one parameter family and its effect can be observed in
    isolation on the next attempt.
    """

    def __init__(self, config: Optional[PipelineConfig] = None) -> None:
        self._config = config or PipelineConfig()

    def plan_retry(
        self,
        failure: FailureAnalysis,
        parameters: Mapping[str, Any],
        analysis: Optional[ImageAnalysis] = None,
        attempt_index: int = 0,
        max_retries: Optional[int] = None,
    ) -> RetryStrategy:
        """
        Parameters
        ----------
        attempt_index : int
            Retries already performed for this tool call (0 before the
            first retry).
        """

        max_retries = self._config.max_retries if max_retries is None else max_retries

        if not failure.recoverable:
            return self._refuse(f"{failure.kind.value} is not recoverable: {failure.root_cause}")

        if attempt_index >= max_retries:
            return self._refuse(f"Retry budget exhausted ({attempt_index}/{max_retries})")

        params = copy.deepcopy(dict(parameters))
        fix = failure.primary_fix

        if fix is None:
            delay = self._delay(failure, attempt_index)
            logger.info(
                f"[RETRY] {failure.kind.value} | retrying unchanged after {delay:.1f}s "
                f"(retry {attempt_index + 1}/{max_retries})"
            )
            return RetryStrategy(
                should_retry=True,
                retry_delay=delay,
                adjusted_parameters=params,
                reasoning=f"Retry unchanged after {failure.kind.value}",
            )

        problem = self._check_movement(fix)
        if problem:
            return self._refuse(problem)

        adjusted = self._apply(fix, params)
        if adjusted == params:
            return self._refuse(f"Fix for '{fix.parameter}' does not change the parameters")

        delay = self._delay(failure, attempt_index)
        logger.info(
            f"[RETRY] {failure.kind.value} | {fix.action.value} {fix.parameter} "
            f"(retry {attempt_index + 1}/{max_retries}, delay {delay:.1f}s)"
        )

        return RetryStrategy(
            should_retry=True,
            retry_delay=delay,
            adjusted_parameters=adjusted,
            reasoning=fix.reason,
        )

    # ------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------

    @staticmethod
    def _apply(fix: SuggestedFix, params: Dict[str, Any]) -> Dict[str, Any]:
        adjusted = dict(params)
        if fix.parameter == "position" and isinstance(fix.suggested_value, dict):
            adjusted.update(fix.suggested_value)
        else:
            adjusted[fix.parameter] = copy.deepcopy(fix.suggested_value)
        return adjusted

    @staticmethod
    def _check_movement(fix: SuggestedFix) -> Optional[str]:
        current, suggested = fix.current_value, fix.suggested_value

        if fix.action not in (FixAction.INCREASE, FixAction.DECREASE):
            return None

        if not all(isinstance(v, (int, float)) and not isinstance(v, bool) for v in (current, suggested)):
            return None

        if fix.action is FixAction.INCREASE and suggested <= current:
            return f"'{fix.parameter}' cannot increase beyond {current}"
        if fix.action is FixAction.DECREASE and suggested >= current:
            return f"'{fix.parameter}' cannot decrease below {current}"
        return None

    def _delay(self, failure: FailureAnalysis, attempt_index: int) -> float:
        cfg = self._config
        if failure.kind is ErrorKind.RATE_LIMITED:
            return cfg.rate_limit_delay
        if failure.kind in _BACKOFF_KINDS:
            return cfg.backoff_base_delay * (2 ** attempt_index)
        return cfg.adjustment_delay

    @staticmethod
    def _refuse(reason: str) -> RetryStrategy:
        logger.info(f"[RETRY] Not retrying: {reason}")
        return RetryStrategy(should_retry=False, reasoning=reason)
