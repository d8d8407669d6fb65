from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, Tuple


class IssueSeverity(str, Enum):
    CRITICAL = "critical"
    MAJOR = "major"
    MINOR = "minor"


class IssueCode(str, Enum):
    CORRUPTED = "corrupted"
    OVER_CHANGE = "over_change"
    UNDER_CHANGE = "under_change"
    FILE_SIZE_EXPLOSION = "file_size_explosion"
    FILE_SIZE_GROWTH = "file_size_growth"
    DIMENSION_MISMATCH = "dimension_mismatch"
    OPERATION_CHECK = "operation_check"
    ADVISORY = "advisory"


@dataclass(frozen=True)
class ChangeMetrics:
    """
    Pixel-level before/after comparison.

    `max_delta` and `avg_delta` are Euclidean RGBA distances (0–510);
    `color_shift` is the mean RGB distance across changed pixels only.
    """

    pixels_changed: int = 0
    total_pixels: int = 0
    percentage_changed: float = 0.0
    significant_change: bool = False
    max_delta: float = 0.0
    avg_delta: float = 0.0
    color_shift: float = 0.0

    def to_dict(self) -> Dict[str, Any]:
        return {
            "pixels_changed": self.pixels_changed,
            "total_pixels": self.total_pixels,
            "percentage_changed": self.percentage_changed,
            "significant_change": self.significant_change,
            "max_delta": self.max_delta,
            "avg_delta": self.avg_delta,
            "color_shift": self.color_shift,
        }


@dataclass(frozen=True)
class ResultIssue:
    code: IssueCode
    severity: IssueSeverity
    message: str
    auto_fixable: bool = False

    @property
    def is_blocking(self) -> bool:
        return self.severity in (IssueSeverity.CRITICAL, IssueSeverity.MAJOR)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "code": self.code.value,
            "severity": self.severity.value,
            "message": self.message,
            "auto_fixable": self.auto_fixable,
        }


@dataclass(frozen=True)
class ResultValidation:
    """
    Verdict on an executed tool's visible effect.

    A result is valid when it carries no critical or major issue.
    """

    is_valid: bool
    quality_score: float
    metrics: ChangeMetrics = field(default_factory=ChangeMetrics)
    issues: Tuple[ResultIssue, ...] = field(default_factory=tuple)
    matches_intent: bool = True
    reasoning: str = ""

    def __post_init__(self):
        object.__setattr__(self, "issues", tuple(self.issues))
        object.__setattr__(
            self, "quality_score", max(0.0, min(100.0, float(self.quality_score)))
        )

    def has(self, code: IssueCode) -> bool:
        return any(i.code is code for i in self.issues)

    @property
    def blocking_issues(self) -> Tuple[ResultIssue, ...]:
        return tuple(i for i in self.issues if i.is_blocking)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "is_valid": self.is_valid,
            "quality_score": self.quality_score,
            "metrics": self.metrics.to_dict(),
            "issues": [i.to_dict() for i in self.issues],
            "matches_intent": self.matches_intent,
            "reasoning": self.reasoning,
        }
