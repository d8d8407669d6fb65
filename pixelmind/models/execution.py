from dataclasses import dataclass
from typing import Any, Dict, Optional


@dataclass(frozen=True)
class ExecutionOutcome:
    """
    Immutable record of one call through the tool execution adapter.

    Attributes
    ----------
    success : bool
        Whether the connector returned without error.

    result_image : Optional[bytes]
        Encoded result image. None for info-only tools or on failure.

    output : Optional[Dict[str, Any]]
        Structured tool output (palette entries, picked color, ...).

    error : Optional[str]
        Normalised error message when success is False.

    duration_ms : int
        Wall-clock execution time (monotonic).
    """

    success: bool
    result_image: Optional[bytes] = None
    output: Optional[Dict[str, Any]] = None
    error: Optional[str] = None
    duration_ms: int = 0

    def __post_init__(self):
        object.__setattr__(self, "duration_ms", max(0, int(self.duration_ms)))
        if not self.success and not self.error:
            object.__setattr__(self, "error", "Unknown execution failure")

    @property
    def is_success(self) -> bool:
        return self.success

    @property
    def has_image(self) -> bool:
        return bool(self.result_image)

    def to_dict(self) -> Dict[str, Any]:
        """
        JSON-safe view. The image itself is summarised by its size.
        """
        return {
            "success": self.success,
            "result_image_bytes": len(self.result_image) if self.result_image else 0,
            "output": self.output,
            "error": self.error,
            "duration_ms": self.duration_ms,
        }

    def __repr__(self) -> str:
        status = "success" if self.success else f"failure({self.error})"
        return f"ExecutionOutcome({status}, {self.duration_ms}ms)"
