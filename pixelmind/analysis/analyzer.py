from __future__ import annotations

import io
import logging
import math
from typing import List, Optional, Tuple

import numpy as np
from PIL import Image
from scipy import ndimage

from ..config import PipelineConfig
from ..models import DominantColor, ImageAnalysis
from .color import rgb_to_hex

logger = logging.getLogger(__name__)


LAPLACIAN = np.array([
    [0, 1, 0],
    [1, -4, 1],
    [0, 1, 0],
], dtype=np.float64)

LUMA_WEIGHTS = np.array([0.299, 0.587, 0.114])

COMMON_RATIOS: Tuple[Tuple[float, str], ...] = (
    (1.0, "1:1"),
    (4 / 3, "4:3"),
    (3 / 2, "3:2"),
    (16 / 9, "16:9"),
    (16 / 10, "16:10"),
    (21 / 9, "21:9"),
    (2 / 3, "2:3"),
    (9 / 16, "9:16"),
)

# alpha below this counts as "empty" for color statistics
OPAQUE_ALPHA = 10

# pixel cap for palette quantization
MAX_PALETTE_PIXELS = 250_000


# ============================================================
# DECODING HELPERS
# ============================================================

def open_image(data: bytes) -> Image.Image:
    """Decode image bytes, raising on anything Pillow cannot read."""
    img = Image.open(io.BytesIO(data))
    img.load()
    return img


def to_rgba(img: Image.Image) -> np.ndarray:
    return np.asarray(img.convert("RGBA"), dtype=np.uint8)


def load_rgba(data: bytes) -> np.ndarray:
    return to_rgba(open_image(data))


def luminance(rgba: np.ndarray) -> np.ndarray:
    return rgba[..., :3].astype(np.float64) @ LUMA_WEIGHTS


# ============================================================
# MEASUREMENTS
# ============================================================

def sharpness_score(rgba: np.ndarray) -> float:
    """
    Variance of the absolute Laplacian response over the central
    10–90% of the image, capped at 100.
    """
    height, width = rgba.shape[:2]
    gray = luminance(rgba)

    response = np.abs(ndimage.convolve(gray, LAPLACIAN, mode="nearest"))

    y0, y1 = int(height * 0.1), int(height * 0.9)
    x0, x1 = int(width * 0.1), int(width * 0.9)
    region = response[y0:y1, x0:x1]

    if region.size == 0:
        return 0.0

    return float(max(0.0, min(100.0, region.var())))


def noise_level(
    rgba: np.ndarray,
    samples: int = 20,
    region_size: int = 16,
    seed: Optional[int] = None,
) -> float:
    """
    Mean luminance variance of small sampled regions, normalised so a
    variance of 200 maps to 100.
    """
    height, width = rgba.shape[:2]
    gray = luminance(rgba)
    rng = np.random.default_rng(seed)

    # keep samples 10px away from every edge when the image allows it
    margin = 10
    size_y = min(region_size, height)
    size_x = min(region_size, width)
    span_y = height - size_y - 2 * margin
    span_x = width - size_x - 2 * margin

    variances: List[float] = []
    for _ in range(samples):
        y = int(rng.integers(0, span_y)) + margin if span_y > 0 else 0
        x = int(rng.integers(0, span_x)) + margin if span_x > 0 else 0
        variances.append(float(gray[y:y + size_y, x:x + size_x].var()))

    if not variances:
        return 0.0

    avg = sum(variances) / len(variances)
    return float(max(0.0, min(100.0, avg / 200.0 * 100.0)))


def count_unique_colors(rgba: np.ndarray) -> int:
    """
    Approximate unique colors after 4-level channel quantization,
    sampling every 8th pixel on large images and every 4th otherwise.
    """
    flat = rgba.reshape(-1, 4)
    rate = 8 if flat.shape[0] > 100_000 else 4

    sampled = flat[::rate]
    sampled = sampled[sampled[:, 3] >= OPAQUE_ALPHA]
    if sampled.size == 0:
        return 0

    q = (np.round(sampled[:, :3] / 4.0) * 4).astype(np.int64)
    keys = q[:, 0] * 66049 + q[:, 1] * 257 + q[:, 2]

    return int(round(len(np.unique(keys)) * math.sqrt(rate)))


def dominant_colors(rgba: np.ndarray, palette_size: int = 9) -> Tuple[DominantColor, ...]:
    """
    Median-cut palette over opaque pixels, ordered by coverage.
    """
    flat = rgba.reshape(-1, 4)
    opaque = flat[flat[:, 3] >= OPAQUE_ALPHA][:, :3]
    if opaque.shape[0] == 0:
        return ()

    if opaque.shape[0] > MAX_PALETTE_PIXELS:
        stride = int(math.ceil(opaque.shape[0] / MAX_PALETTE_PIXELS))
        opaque = opaque[::stride]

    strip = Image.fromarray(np.ascontiguousarray(opaque.reshape(-1, 1, 3)), "RGB")
    quantized = strip.quantize(colors=palette_size, method=Image.Quantize.MEDIANCUT)

    palette = quantized.getpalette() or []
    counts = np.bincount(np.asarray(quantized).ravel(), minlength=palette_size)
    total = float(counts.sum())

    colors: List[DominantColor] = []
    for index in np.argsort(-counts, kind="stable"):
        count = int(counts[index])
        if count == 0:
            continue
        rgb = tuple(int(c) for c in palette[index * 3:index * 3 + 3])
        colors.append(
            DominantColor(
                hex=rgb_to_hex(rgb),
                rgb=rgb,
                percentage=round(count / total * 100.0, 2),
            )
        )

    return tuple(colors[:palette_size])


def aspect_ratio(width: int, height: int) -> str:
    if width == 0 or height == 0:
        return "0:0"

    ratio = width / height
    for value, name in COMMON_RATIOS:
        if abs(ratio - value) / value < 0.01:
            return name

    divisor = math.gcd(width, height)
    return f"{width // divisor}:{height // divisor}"


def read_dpi(img: Image.Image) -> Optional[float]:
    dpi = img.info.get("dpi")
    if not dpi:
        return None

    value = float(dpi[0] if isinstance(dpi, (tuple, list)) else dpi)
    return value if value > 0 else None


# ============================================================
# ANALYZER
# ============================================================

class GroundTruthAnalyzer:
    """
    Extracts measurable facts from raw pixel data.

    The analyzer never raises. Each measurement is attempted
    independently; a failed measurement falls back to a safe default and
    caps the overall confidence (DPI 95, colors 85, sharpness and noise
    90). If the image cannot be decoded at all, a zero-confidence
    analysis is returned.
    """

    def __init__(self, config: Optional[PipelineConfig] = None) -> None:
        self._config = config or PipelineConfig()

    def analyze(self, image_bytes: bytes) -> ImageAnalysis:
        cfg = self._config
        confidence = 100.0

        try:
            img = open_image(image_bytes)
            rgba = to_rgba(img)
        except Exception as e:
            logger.error(f"[ANALYZER] Failed to decode image: {e}")
            return self.fallback_analysis(len(image_bytes or b""))

        height, width = rgba.shape[:2]
        fmt = (img.format or "unknown").lower()

        logger.info(f"[ANALYZER] Decoded {width}x{height} {fmt}")

        # ------------------------------------------------------------
        # DPI
        # ------------------------------------------------------------
        dpi: Optional[float] = None
        try:
            dpi = read_dpi(img)
        except Exception as e:
            logger.warning(f"[ANALYZER] DPI detection failed: {e}")
            confidence = min(confidence, 95)

        # ------------------------------------------------------------
        # Colors
        # ------------------------------------------------------------
        has_transparency = False
        palette: Tuple[DominantColor, ...] = ()
        unique_colors = 0
        try:
            has_transparency = bool((rgba[..., 3] < 255).any())
            palette = dominant_colors(rgba, cfg.palette_size)
            unique_colors = count_unique_colors(rgba)
        except Exception as e:
            logger.warning(f"[ANALYZER] Color analysis failed: {e}")
            confidence = min(confidence, 85)

        # ------------------------------------------------------------
        # Quality metrics
        # ------------------------------------------------------------
        sharpness = 0.0
        try:
            sharpness = sharpness_score(rgba)
        except Exception as e:
            logger.warning(f"[ANALYZER] Sharpness calculation failed: {e}")
            confidence = min(confidence, 90)

        noise = 0.0
        try:
            noise = noise_level(
                rgba,
                samples=cfg.noise_samples,
                region_size=cfg.noise_region_size,
                seed=cfg.noise_seed,
            )
        except Exception as e:
            logger.warning(f"[ANALYZER] Noise detection failed: {e}")
            confidence = min(confidence, 90)

        # ------------------------------------------------------------
        # Print readiness
        # ------------------------------------------------------------
        effective_dpi = dpi or cfg.default_dpi
        print_w = width / effective_dpi
        print_h = height / effective_dpi

        is_print_ready = (
            effective_dpi >= cfg.min_print_dpi
            and print_w >= cfg.min_print_inches
            and print_h >= cfg.min_print_inches
            and sharpness >= cfg.min_print_sharpness
        )

        analysis = ImageAnalysis(
            width=width,
            height=height,
            aspect_ratio=aspect_ratio(width, height),
            dpi=dpi,
            file_size=len(image_bytes),
            format=fmt,
            has_transparency=has_transparency,
            dominant_colors=palette,
            color_depth=32 if has_transparency else 24,
            unique_color_count=unique_colors,
            sharpness_score=round(sharpness),
            noise_level=round(noise),
            is_blurry=sharpness < cfg.blurry_threshold,
            is_print_ready=is_print_ready,
            max_print_size=(round(print_w, 1), round(print_h, 1)),
            confidence=confidence,
        )

        logger.info(f"[ANALYZER] {analysis!r}")
        return analysis

    @staticmethod
    def fallback_analysis(file_size: int = 0) -> ImageAnalysis:
        return ImageAnalysis(
            width=0,
            height=0,
            aspect_ratio="0:0",
            dpi=None,
            file_size=file_size,
            format="unknown",
            has_transparency=False,
            dominant_colors=(),
            color_depth=0,
            unique_color_count=0,
            sharpness_score=0,
            noise_level=100,
            is_blurry=True,
            is_print_ready=False,
            max_print_size=(0.0, 0.0),
            confidence=0,
        )


def format_analysis_summary(analysis: ImageAnalysis) -> str:
    """Human-readable report, suitable for prompting or logs."""
    lines = [
        "=== IMAGE ANALYSIS ===",
        "",
        "DIMENSIONS:",
        f"  Size: {analysis.width} x {analysis.height} pixels",
        f"  Aspect Ratio: {analysis.aspect_ratio}",
        f"  DPI: {analysis.dpi if analysis.dpi else 'unknown (assuming 72)'}",
        f"  File Size: {analysis.file_size / 1024:.1f} KB ({analysis.format})",
        "",
        "COLORS:",
        f"  Transparency: {'Yes' if analysis.has_transparency else 'No'}",
        f"  Color Depth: {analysis.color_depth}-bit",
        f"  Unique Colors: ~{analysis.unique_color_count}",
    ]

    for i, color in enumerate(analysis.dominant_colors):
        lines.append(f"  [{i}] {color.hex} ({color.percentage:.1f}%)")

    lines += [
        "",
        "QUALITY:",
        f"  Sharpness: {analysis.sharpness_score:.0f}/100{' (blurry)' if analysis.is_blurry else ''}",
        f"  Noise: {analysis.noise_level:.0f}/100",
        "",
        "PRINT:",
        f'  Printable Size: {analysis.max_print_size[0]}" x {analysis.max_print_size[1]}"',
        f"  Print Ready: {'YES' if analysis.is_print_ready else 'NO'}",
        "",
        f"Analysis Confidence: {analysis.confidence:.0f}%",
    ]

    return "\n".join(lines)
