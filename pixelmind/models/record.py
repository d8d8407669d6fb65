from dataclasses import dataclass, field
from typing import Any, Dict
import time
import uuid

from .image_analysis import ImageSnapshot


@dataclass(frozen=True)
class ResultMetrics:
    pixels_changed: int = 0
    percentage_changed: float = 0.0
    duration_ms: int = 0
    quality_score: float = 0.0

    def to_dict(self) -> Dict[str, Any]:
        return {
            "pixels_changed": self.pixels_changed,
            "percentage_changed": self.percentage_changed,
            "duration_ms": self.duration_ms,
            "quality_score": self.quality_score,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "ResultMetrics":
        return cls(
            pixels_changed=int(data.get("pixels_changed", 0)),
            percentage_changed=float(data.get("percentage_changed", 0.0)),
            duration_ms=int(data.get("duration_ms", 0)),
            quality_score=float(data.get("quality_score", 0.0)),
        )


@dataclass(frozen=True)
class ToolExecutionRecord:
    """
    Persisted memory of a successful, high-confidence execution.

    Records are append-only. Stores refuse anything that is not a
    success with confidence of at least 70, so every record read back
    satisfies that bound.
    """

    tool_name: str
    parameters: Dict[str, Any]
    success: bool
    confidence: float
    metrics: ResultMetrics
    image: ImageSnapshot
    timestamp: float = field(default_factory=time.time)
    record_id: str = field(default_factory=lambda: str(uuid.uuid4()))

    def to_dict(self) -> Dict[str, Any]:
        return {
            "record_id": self.record_id,
            "tool_name": self.tool_name,
            "parameters": self.parameters,
            "success": self.success,
            "confidence": self.confidence,
            "metrics": self.metrics.to_dict(),
            "image": self.image.to_dict(),
            "timestamp": self.timestamp,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "ToolExecutionRecord":
        return cls(
            tool_name=data["tool_name"],
            parameters=dict(data.get("parameters", {})),
            success=bool(data.get("success", False)),
            confidence=float(data.get("confidence", 0.0)),
            metrics=ResultMetrics.from_dict(data.get("metrics", {})),
            image=ImageSnapshot.from_dict(data.get("image", {})),
            timestamp=float(data.get("timestamp", 0.0)),
            record_id=data.get("record_id") or str(uuid.uuid4()),
        )
