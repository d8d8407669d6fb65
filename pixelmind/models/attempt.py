from dataclasses import dataclass, field
from typing import Any, Dict, Optional, Tuple

from .execution import ExecutionOutcome
from .failure import FailureAnalysis, FailureMode
from .result_validation import ResultValidation
from .validation import ValidationResult


@dataclass(frozen=True)
class RetryAttempt:
    """
    One pass through the orchestration loop.

    A bounded sequence of these is the audit trail of a tool call.
    """

    attempt: int
    """1-based attempt number."""

    parameters: Dict[str, Any]
    success: bool
    quality_score: Optional[float] = None
    error: Optional[str] = None
    duration_ms: int = 0
    failure_mode: Optional[FailureMode] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "attempt": self.attempt,
            "parameters": self.parameters,
            "success": self.success,
            "quality_score": self.quality_score,
            "error": self.error,
            "duration_ms": self.duration_ms,
            "failure_mode": self.failure_mode.value if self.failure_mode else None,
        }


@dataclass(frozen=True)
class ToolCallResult:
    """
    Terminal outcome of one tool call.

    Exactly one of `final_result` (on success) or `final_error` (on
    failure) is set. Intermediate failures appear only in `attempts`.
    """

    success: bool
    tool_name: str
    attempts: Tuple[RetryAttempt, ...]
    confidence: int
    final_result: Optional[ExecutionOutcome] = None
    final_error: Optional[FailureAnalysis] = None
    validation: Optional[ValidationResult] = None
    result_validation: Optional[ResultValidation] = None
    proposal_id: str = ""

    def __post_init__(self):
        object.__setattr__(self, "attempts", tuple(self.attempts))
        object.__setattr__(self, "confidence", int(max(0, min(100, self.confidence))))

    @property
    def final_parameters(self) -> Dict[str, Any]:
        return dict(self.attempts[-1].parameters) if self.attempts else {}

    def statistics(self) -> Dict[str, Any]:
        """Attempt counts, success rate and timings for monitoring."""
        total = len(self.attempts)
        successful = sum(1 for a in self.attempts if a.success)
        total_time = sum(a.duration_ms for a in self.attempts)

        return {
            "total_attempts": total,
            "successful_attempts": successful,
            "failed_attempts": total - successful,
            "success_rate": round(successful / total * 100) if total else 0,
            "avg_duration_ms": round(total_time / total) if total else 0,
            "total_duration_ms": total_time,
        }

    def to_dict(self) -> Dict[str, Any]:
        return {
            "success": self.success,
            "tool_name": self.tool_name,
            "proposal_id": self.proposal_id,
            "confidence": self.confidence,
            "final_result": self.final_result.to_dict() if self.final_result else None,
            "final_error": self.final_error.to_dict() if self.final_error else None,
            "attempts": [a.to_dict() for a in self.attempts],
            "validation": self.validation.to_dict() if self.validation else None,
            "result_validation": (
                self.result_validation.to_dict() if self.result_validation else None
            ),
        }


@dataclass(frozen=True)
class BatchResult:
    results: Tuple[ToolCallResult, ...] = field(default_factory=tuple)
    confidence: int = 0

    def __post_init__(self):
        object.__setattr__(self, "results", tuple(self.results))

    @property
    def success(self) -> bool:
        return bool(self.results) and all(r.success for r in self.results)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "success": self.success,
            "confidence": self.confidence,
            "results": [r.to_dict() for r in self.results],
        }
