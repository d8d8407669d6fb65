"""
Core runtime data models for the PixelMind pipeline.

These dataclasses define the structured information packets that move
between the analyzer, validators, execution adapter, retry engine and
learning store. Every failure is represented as one of these values
rather than as a raised exception.
"""

from .image_analysis import DominantColor, ImageAnalysis, ImageSnapshot
from .tool_call import ToolCallProposal
from .execution import ExecutionOutcome
from .validation import CheckStage, Finding, FindingCode, Severity, ValidationResult
from .result_validation import (
    ChangeMetrics,
    IssueCode,
    IssueSeverity,
    ResultIssue,
    ResultValidation,
)
from .failure import (
    ErrorKind,
    FailureAnalysis,
    FailureMode,
    FixAction,
    RetryStrategy,
    SuggestedFix,
)
from .attempt import BatchResult, RetryAttempt, ToolCallResult
from .record import ResultMetrics, ToolExecutionRecord

__all__ = [
    "DominantColor",
    "ImageAnalysis",
    "ImageSnapshot",
    "ToolCallProposal",
    "ExecutionOutcome",
    "CheckStage",
    "Finding",
    "FindingCode",
    "Severity",
    "ValidationResult",
    "ChangeMetrics",
    "IssueCode",
    "IssueSeverity",
    "ResultIssue",
    "ResultValidation",
    "ErrorKind",
    "FailureAnalysis",
    "FailureMode",
    "FixAction",
    "RetryStrategy",
    "SuggestedFix",
    "BatchResult",
    "RetryAttempt",
    "ToolCallResult",
    "ResultMetrics",
    "ToolExecutionRecord",
]
