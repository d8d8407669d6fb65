from __future__ import annotations

from statistics import median
from typing import Any, Dict, List, Mapping, Optional, Tuple
import logging

from ..config import PipelineConfig
from ..models import CheckStage, Finding, FindingCode, ImageAnalysis, Severity, ToolExecutionRecord

logger = logging.getLogger(__name__)


def _numeric(value: Any) -> Optional[float]:
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        return None
    return float(value)


class HistoricalChecker:
    """
    Compares numeric parameters against what worked on similar images.

    A value outside the widened [min, max] band of comparable successful
    executions is reported as an outlier warning with the historical
    median as the suggestion. Without enough comparable history the
    check is silent and historical confidence stays neutral.
    """

    def __init__(self, config: Optional[PipelineConfig] = None) -> None:
        self._config = config or PipelineConfig()

    def check(
        self,
        tool_name: str,
        params: Mapping[str, Any],
        analysis: ImageAnalysis,
        learning_store=None,
    ) -> Tuple[List[Finding], float, Dict[str, Any]]:
        """
        Returns
        -------
        (findings, historical_confidence, adjusted_parameters)
        """
        cfg = self._config
        neutral = cfg.neutral_historical_confidence

        if learning_store is None:
            return [], neutral, {}

        try:
            records = learning_store.find_similar(
                tool_name,
                analysis,
                limit=cfg.historical_limit,
                min_similarity=cfg.min_comparable_similarity,
            )
        except Exception as e:
            logger.warning(f"[HISTORY] Learning store lookup failed for {tool_name}: {e}")
            return [], neutral, {}

        if len(records) < cfg.min_comparable_records:
            logger.debug(
                f"[HISTORY] {len(records)} comparable records for {tool_name}; "
                f"need {cfg.min_comparable_records}"
            )
            return [], neutral, {}

        findings: List[Finding] = []
        adjusted: Dict[str, Any] = {}

        for key, value in params.items():
            current = _numeric(value)
            if current is None:
                continue

            past = self._values(records, key)
            if len(past) < cfg.min_comparable_records:
                continue

            low, high = min(past), max(past)
            mid = median(past)
            margin = max(0.1 * (high - low), 0.1 * abs(mid))

            if low - margin <= current <= high + margin:
                continue

            suggested = int(mid) if isinstance(value, int) and float(mid).is_integer() else mid
            adjusted[key] = suggested
            findings.append(Finding(
                FindingCode.HISTORICAL_OUTLIER,
                Severity.WARNING,
                CheckStage.HISTORICAL,
                f"{key}={current:g} is outside the range that worked on similar images "
                f"({low:g}-{high:g}, median {mid:g})",
                key,
                suggested,
            ))

        avg_confidence = sum(r.confidence for r in records) / len(records)
        return findings, max(0.0, min(100.0, avg_confidence)), adjusted

    @staticmethod
    def _values(records: List[ToolExecutionRecord], key: str) -> List[float]:
        values = []
        for r in records:
            v = _numeric(r.parameters.get(key))
            if v is not None:
                values.append(v)
        return values
