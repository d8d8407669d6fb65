from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, Optional, Tuple


class Severity(str, Enum):
    ERROR = "error"
    WARNING = "warning"


class CheckStage(str, Enum):
    """Which of the three validation passes produced a finding."""

    SCHEMA = "schema"
    GROUND_TRUTH = "ground_truth"
    HISTORICAL = "historical"


class FindingCode(str, Enum):
    # schema
    SCHEMA_INVALID = "schema_invalid"
    SCHEMA_RANGE = "schema_range"
    # ground truth
    COLOR_NOT_FOUND = "color_not_found"
    COLOR_WEAK_MATCH = "color_weak_match"
    COLOR_RARE = "color_rare"
    TOLERANCE_TOO_LOW = "tolerance_too_low"
    TOLERANCE_TOO_HIGH = "tolerance_too_high"
    COORDINATES_OUT_OF_BOUNDS = "coordinates_out_of_bounds"
    PALETTE_INDEX_OUT_OF_RANGE = "palette_index_out_of_range"
    TOO_MANY_MAPPINGS = "too_many_mappings"
    OUTPUT_TOO_LARGE = "output_too_large"
    UNSUPPORTED_OPTION = "unsupported_option"
    IMAGE_ADVISORY = "image_advisory"
    # history
    HISTORICAL_OUTLIER = "historical_outlier"


@dataclass(frozen=True)
class Finding:
    """
    One structured observation from the parameter validator.

    `parameter` names the wire parameter at fault (e.g. "tolerance",
    "colors"). `suggested_value`, when present, is a concrete replacement
    the retry engine may apply without another proposal round-trip.
    """

    code: FindingCode
    severity: Severity
    stage: CheckStage
    message: str
    parameter: Optional[str] = None
    suggested_value: Any = None

    @property
    def is_error(self) -> bool:
        return self.severity is Severity.ERROR

    def to_dict(self) -> Dict[str, Any]:
        return {
            "code": self.code.value,
            "severity": self.severity.value,
            "stage": self.stage.value,
            "message": self.message,
            "parameter": self.parameter,
            "suggested_value": self.suggested_value,
        }


@dataclass(frozen=True)
class ValidationResult:
    """
    Outcome of validating one proposed tool call against its schema, the
    image's ground truth and historical executions.

    Invariants
    ----------
    • confidence ∈ [0, 100]
    • is_valid=False implies at least one error finding
    """

    is_valid: bool
    confidence: float
    findings: Tuple[Finding, ...] = field(default_factory=tuple)
    reasoning: str = ""
    adjusted_parameters: Optional[Dict[str, Any]] = None
    historical_confidence: float = 75.0
    normalized_parameters: Optional[Dict[str, Any]] = None

    def __post_init__(self):
        object.__setattr__(self, "findings", tuple(self.findings))
        object.__setattr__(self, "confidence", max(0.0, min(100.0, float(self.confidence))))

        if not self.is_valid and not self.errors:
            raise ValueError("An invalid ValidationResult must carry at least one error.")

    # ------------------------------------------------------------------
    # Convenience Views
    # ------------------------------------------------------------------

    @property
    def errors(self) -> Tuple[str, ...]:
        return tuple(f.message for f in self.findings if f.severity is Severity.ERROR)

    @property
    def warnings(self) -> Tuple[str, ...]:
        return tuple(f.message for f in self.findings if f.severity is Severity.WARNING)

    def has(self, code: FindingCode) -> bool:
        return any(f.code is code for f in self.findings)

    def findings_for(self, *codes: FindingCode) -> Tuple[Finding, ...]:
        return tuple(f for f in self.findings if f.code in codes)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "is_valid": self.is_valid,
            "confidence": self.confidence,
            "errors": list(self.errors),
            "warnings": list(self.warnings),
            "findings": [f.to_dict() for f in self.findings],
            "reasoning": self.reasoning,
            "adjusted_parameters": self.adjusted_parameters,
            "historical_confidence": self.historical_confidence,
        }
