from .ground_truth import GroundTruthChecker
from .historical import HistoricalChecker
from .parameter_validator import ParameterValidator
from .result_validator import ResultValidator, format_validation_summary

__all__ = [
    "GroundTruthChecker",
    "HistoricalChecker",
    "ParameterValidator",
    "ResultValidator",
    "format_validation_summary",
]
