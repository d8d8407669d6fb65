"""
Image builders, canned analyses and scriptable connectors shared by the tests.
"""

import io
from typing import Any, Callable, Dict, Optional

import numpy as np
from PIL import Image

from pixelmind.connectors.base import ExecutionConnector
from pixelmind.models import DominantColor, ImageAnalysis, ImageSnapshot, ResultMetrics, ToolExecutionRecord

RED = (255, 0, 0)
BLUE = (0, 0, 255)
WHITE = (255, 255, 255)


# --- Image builders ---

def encode_png(rgba: np.ndarray, dpi=None) -> bytes:
    buffer = io.BytesIO()
    kwargs = {"dpi": dpi} if dpi else {}
    Image.fromarray(rgba.astype(np.uint8), "RGBA").save(buffer, format="PNG", **kwargs)
    return buffer.getvalue()


def decode_png(data: bytes) -> np.ndarray:
    return np.array(Image.open(io.BytesIO(data)).convert("RGBA"))


def banded_rgba(size: int = 100) -> np.ndarray:
    """Rows: 45% red, 35% blue, 20% white (for size 100)."""
    rgba = np.full((size, size, 4), 255, dtype=np.uint8)
    red_end = int(size * 0.45)
    blue_end = int(size * 0.80)
    rgba[:red_end, :, :3] = RED
    rgba[red_end:blue_end, :, :3] = BLUE
    rgba[blue_end:, :, :3] = WHITE
    return rgba


def clear_rows(data: bytes, rows: int) -> bytes:
    """Make the first `rows` rows fully transparent."""
    rgba = decode_png(data)
    rgba[:rows, :, 3] = 0
    return encode_png(rgba)


def make_analysis(**overrides) -> ImageAnalysis:
    values = dict(
        width=100,
        height=100,
        aspect_ratio="1:1",
        dpi=None,
        file_size=1000,
        format="png",
        has_transparency=False,
        dominant_colors=(
            DominantColor("#ff0000", RED, 45.0),
            DominantColor("#0000ff", BLUE, 35.0),
            DominantColor("#ffffff", WHITE, 20.0),
        ),
        color_depth=24,
        unique_color_count=3,
        sharpness_score=60.0,
        noise_level=20.0,
        is_blurry=False,
        is_print_ready=False,
        max_print_size=(1.4, 1.4),
        confidence=100.0,
    )
    values.update(overrides)
    return ImageAnalysis(**values)


def make_record(tool_name: str, parameters: Dict[str, Any], snapshot: ImageSnapshot,
                confidence: float = 90.0, timestamp: Optional[float] = None) -> ToolExecutionRecord:
    extra = {"timestamp": timestamp} if timestamp is not None else {}
    return ToolExecutionRecord(
        tool_name=tool_name,
        parameters=parameters,
        success=True,
        confidence=confidence,
        metrics=ResultMetrics(pixels_changed=10, percentage_changed=10.0, duration_ms=5, quality_score=100),
        image=snapshot,
        **extra,
    )


# --- Connectors ---

class ScriptedConnector(ExecutionConnector):
    """Delegates to a plain function and remembers every call."""

    def __init__(self, handler: Callable[..., Any]):
        self.handler = handler
        self.calls = []

    def execute(self, tool, parameters, image, timeout):
        self.calls.append((tool.name.value, dict(parameters)))
        return self.handler(tool, parameters, image)


def knockout_by_tolerance(tool, parameters, image):
    """Wide tolerance eats almost the whole image; otherwise only the red band."""
    if tool.intent.is_info_only:
        return {"palette": ["#ff0000", "#0000ff", "#ffffff"]}
    rows = 96 if parameters.get("tolerance", 30) >= 50 else 45
    return clear_rows(image, rows)


