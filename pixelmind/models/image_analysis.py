from dataclasses import dataclass, field
from typing import Any, Dict, Optional, Tuple
import time


@dataclass(frozen=True)
class DominantColor:
    """One palette entry: color plus its share of the opaque pixels."""

    hex: str
    rgb: Tuple[int, int, int]
    percentage: float

    def to_dict(self) -> Dict[str, Any]:
        r, g, b = self.rgb
        return {"hex": self.hex, "r": r, "g": g, "b": b, "percentage": self.percentage}


@dataclass(frozen=True)
class ImageSnapshot:
    """
    Reduced view of an ImageAnalysis kept alongside learning records.

    Only the features used for similarity scoring are retained, so the
    persisted history stays small and does not depend on palette data.
    """

    width: int
    height: int
    aspect_ratio: str
    format: str
    has_transparency: bool
    unique_color_count: int
    sharpness_score: float
    noise_level: float
    is_print_ready: bool

    def to_dict(self) -> Dict[str, Any]:
        return {
            "width": self.width,
            "height": self.height,
            "aspect_ratio": self.aspect_ratio,
            "format": self.format,
            "has_transparency": self.has_transparency,
            "unique_color_count": self.unique_color_count,
            "sharpness_score": self.sharpness_score,
            "noise_level": self.noise_level,
            "is_print_ready": self.is_print_ready,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "ImageSnapshot":
        return cls(
            width=int(data.get("width", 0)),
            height=int(data.get("height", 0)),
            aspect_ratio=str(data.get("aspect_ratio", "0:0")),
            format=str(data.get("format", "unknown")),
            has_transparency=bool(data.get("has_transparency", False)),
            unique_color_count=int(data.get("unique_color_count", 0)),
            sharpness_score=float(data.get("sharpness_score", 0.0)),
            noise_level=float(data.get("noise_level", 0.0)),
            is_print_ready=bool(data.get("is_print_ready", False)),
        )


@dataclass(frozen=True)
class ImageAnalysis:
    """
    Immutable ground-truth snapshot of one image.

    Produced once per image per request by the GroundTruthAnalyzer and
    shared by reference between concurrent tool-call loops. Nothing
    downstream mutates it.

    Attributes
    ----------
    dominant_colors : Tuple[DominantColor, ...]
        Ordered by descending prominence.

    dpi : Optional[float]
        Resolution from file metadata. None when the file carries none.

    max_print_size : Tuple[float, float]
        Printable (width, height) in inches at the effective DPI.

    confidence : float
        0–100. Lowered when individual measurements failed.
    """

    width: int
    height: int
    aspect_ratio: str
    dpi: Optional[float]
    file_size: int
    format: str
    has_transparency: bool
    dominant_colors: Tuple[DominantColor, ...]
    color_depth: int
    unique_color_count: int
    sharpness_score: float
    noise_level: float
    is_blurry: bool
    is_print_ready: bool
    max_print_size: Tuple[float, float]
    confidence: float
    analyzed_at: float = field(default_factory=time.time)

    def __post_init__(self):
        object.__setattr__(self, "confidence", max(0.0, min(100.0, float(self.confidence))))
        object.__setattr__(self, "dominant_colors", tuple(self.dominant_colors))

    # ------------------------------------------------------------------
    # Derived
    # ------------------------------------------------------------------

    @property
    def megapixels(self) -> float:
        return (self.width * self.height) / 1_000_000

    @property
    def top_color(self) -> Optional[DominantColor]:
        return self.dominant_colors[0] if self.dominant_colors else None

    def snapshot(self) -> ImageSnapshot:
        return ImageSnapshot(
            width=self.width,
            height=self.height,
            aspect_ratio=self.aspect_ratio,
            format=self.format,
            has_transparency=self.has_transparency,
            unique_color_count=self.unique_color_count,
            sharpness_score=self.sharpness_score,
            noise_level=self.noise_level,
            is_print_ready=self.is_print_ready,
        )

    # ------------------------------------------------------------------
    # Serialization
    # ------------------------------------------------------------------

    def to_dict(self) -> Dict[str, Any]:
        return {
            "width": self.width,
            "height": self.height,
            "aspect_ratio": self.aspect_ratio,
            "dpi": self.dpi,
            "file_size": self.file_size,
            "format": self.format,
            "has_transparency": self.has_transparency,
            "dominant_colors": [c.to_dict() for c in self.dominant_colors],
            "color_depth": self.color_depth,
            "unique_color_count": self.unique_color_count,
            "sharpness_score": self.sharpness_score,
            "noise_level": self.noise_level,
            "is_blurry": self.is_blurry,
            "is_print_ready": self.is_print_ready,
            "max_print_size": list(self.max_print_size),
            "confidence": self.confidence,
            "analyzed_at": self.analyzed_at,
        }

    def __repr__(self) -> str:
        return (
            f"ImageAnalysis({self.width}x{self.height}, colors={len(self.dominant_colors)}, "
            f"sharpness={self.sharpness_score:.0f}, noise={self.noise_level:.0f}, "
            f"confidence={self.confidence:.0f})"
        )
