from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, Optional, Tuple


class FailureMode(str, Enum):
    VALIDATION = "validation"
    EXECUTION = "execution"
    QUALITY = "quality"
    TIMEOUT = "timeout"
    API_ERROR = "api_error"
    UNKNOWN = "unknown"


class ErrorKind(str, Enum):
    """
    Error taxonomy. Kinds describe *what went wrong*, independent of the
    layer that noticed it, and drive the retry policy.
    """

    SCHEMA = "schema"
    GROUND_TRUTH_MISMATCH = "ground_truth_mismatch"
    QUALITY_OVER_CHANGE = "quality_over_change"
    QUALITY_UNDER_CHANGE = "quality_under_change"
    QUALITY_DEFECT = "quality_defect"
    TIMEOUT = "timeout"
    RATE_LIMITED = "rate_limited"
    TRANSIENT_NETWORK = "transient_network"
    RESOURCE_EXHAUSTED = "resource_exhausted"
    UNKNOWN = "unknown"


class FixAction(str, Enum):
    REPLACE = "replace"
    INCREASE = "increase"
    DECREASE = "decrease"
    CLAMP = "clamp"
    TRIM = "trim"


@dataclass(frozen=True)
class SuggestedFix:
    parameter: str
    current_value: Any
    suggested_value: Any
    reason: str
    action: FixAction = FixAction.REPLACE

    def to_dict(self) -> Dict[str, Any]:
        return {
            "parameter": self.parameter,
            "current_value": self.current_value,
            "suggested_value": self.suggested_value,
            "reason": self.reason,
            "action": self.action.value,
        }


@dataclass(frozen=True)
class FailureAnalysis:
    """
    Classified failure of one attempt.

    `suggested_fixes` is ordered by relevance; the retry engine applies
    only the first one per retry.

    `retry_delay` is a hint in seconds for waiting-style recoveries (rate
    limits, backoff). None when the fix is a parameter adjustment.
    """

    mode: FailureMode
    kind: ErrorKind
    root_cause: str
    recoverable: bool
    suggested_fixes: Tuple[SuggestedFix, ...] = field(default_factory=tuple)
    retry_delay: Optional[float] = None

    def __post_init__(self):
        object.__setattr__(self, "suggested_fixes", tuple(self.suggested_fixes))

    @property
    def primary_fix(self) -> Optional[SuggestedFix]:
        return self.suggested_fixes[0] if self.suggested_fixes else None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "mode": self.mode.value,
            "kind": self.kind.value,
            "root_cause": self.root_cause,
            "recoverable": self.recoverable,
            "suggested_fixes": [f.to_dict() for f in self.suggested_fixes],
            "retry_delay": self.retry_delay,
        }

    def __repr__(self) -> str:
        return (
            f"FailureAnalysis(mode={self.mode.value}, kind={self.kind.value}, "
            f"recoverable={self.recoverable}, fixes={len(self.suggested_fixes)})"
        )


@dataclass(frozen=True)
class RetryStrategy:
    should_retry: bool
    retry_delay: float = 0.0
    adjusted_parameters: Optional[Dict[str, Any]] = None
    reasoning: str = ""

    def to_dict(self) -> Dict[str, Any]:
        return {
            "should_retry": self.should_retry,
            "retry_delay": self.retry_delay,
            "adjusted_parameters": self.adjusted_parameters,
            "reasoning": self.reasoning,
        }
