from typing import Iterable, Optional

NEUTRAL_HISTORICAL_CONFIDENCE = 75.0

VALIDATION_WEIGHT = 0.4
EXECUTION_WEIGHT = 0.4
HISTORICAL_WEIGHT = 0.2

BATCH_PENALTY = 5
BATCH_PENALTY_THRESHOLD = 2


def _clamp(value: float) -> int:
    return int(max(0, min(100, round(value))))


def aggregate(
    validation_confidence: float,
    execution_success: bool,
    historical_confidence: Optional[float] = None,
) -> int:
    """
    Overall confidence of one tool call in [0, 100].

    0.4 x validation + 0.4 x (100 on success, else 0) + 0.2 x history,
    where missing history counts as neutral (75).
    """
    if historical_confidence is None:
        historical_confidence = NEUTRAL_HISTORICAL_CONFIDENCE

    score = (
        VALIDATION_WEIGHT * validation_confidence
        + EXECUTION_WEIGHT * (100.0 if execution_success else 0.0)
        + HISTORICAL_WEIGHT * historical_confidence
    )
    return _clamp(score)


def combine(confidences: Iterable[float]) -> int:
    """
    Batch confidence: the weakest call decides, with a small penalty for
    batches of more than two calls. An empty batch scores 0.
    """
    scores = list(confidences)
    if not scores:
        return 0

    score = min(scores)
    if len(scores) > BATCH_PENALTY_THRESHOLD:
        score -= BATCH_PENALTY
    return _clamp(score)
