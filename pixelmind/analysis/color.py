"""
Color conversions and perceptual distance.

Distances are CIE76 ΔE in Lab space: ~2.3 is a just-noticeable
difference, values above ~50 mean clearly different colors.
"""

from typing import Iterable, Optional, Sequence, Tuple
import re

import numpy as np

from ..models import DominantColor

RGB = Tuple[int, int, int]

_HEX_RE = re.compile(r"^#?([0-9a-fA-F]{6}|[0-9a-fA-F]{3})$")

# D65 reference white
_WHITE = np.array([0.95047, 1.0, 1.08883])

_RGB_TO_XYZ = np.array([
    [0.4124564, 0.3575761, 0.1804375],
    [0.2126729, 0.7151522, 0.0721750],
    [0.0193339, 0.1191920, 0.9503041],
])


def is_hex_color(value: str) -> bool:
    return isinstance(value, str) and bool(_HEX_RE.match(value.strip()))


def normalize_hex(value: str) -> str:
    match = _HEX_RE.match(value.strip()) if isinstance(value, str) else None
    if not match:
        raise ValueError(f"Invalid hex color: {value!r}")

    digits = match.group(1)
    if len(digits) == 3:
        digits = "".join(ch * 2 for ch in digits)
    return f"#{digits.lower()}"


def hex_to_rgb(value: str) -> RGB:
    digits = normalize_hex(value)[1:]
    return int(digits[0:2], 16), int(digits[2:4], 16), int(digits[4:6], 16)


def rgb_to_hex(rgb: Sequence[int]) -> str:
    r, g, b = (int(max(0, min(255, round(c)))) for c in rgb[:3])
    return f"#{r:02x}{g:02x}{b:02x}"


def rgb_to_lab(rgb: Sequence[float]) -> np.ndarray:
    """Convert an sRGB triple (0–255) to CIE Lab."""
    c = np.asarray(rgb[:3], dtype=np.float64) / 255.0
    c = np.where(c > 0.04045, ((c + 0.055) / 1.055) ** 2.4, c / 12.92)

    xyz = _RGB_TO_XYZ @ c / _WHITE
    f = np.where(xyz > 0.008856, np.cbrt(xyz), 7.787 * xyz + 16.0 / 116.0)

    return np.array([
        116.0 * f[1] - 16.0,
        500.0 * (f[0] - f[1]),
        200.0 * (f[1] - f[2]),
    ])


def delta_e(a: Sequence[float], b: Sequence[float]) -> float:
    """Perceptual distance between two RGB colors."""
    return float(np.linalg.norm(rgb_to_lab(a) - rgb_to_lab(b)))


def nearest_color(
    rgb: Sequence[float],
    palette: Iterable[DominantColor],
) -> Tuple[Optional[DominantColor], float]:
    """
    Closest palette entry and its distance. (None, inf) for an empty palette.
    """
    best: Optional[DominantColor] = None
    best_distance = float("inf")

    for entry in palette:
        distance = delta_e(rgb, entry.rgb)
        if distance < best_distance:
            best, best_distance = entry, distance

    return best, best_distance


def color_param_rgb(color: dict) -> RGB:
    """
    RGB of a color parameter `{hex, r?, g?, b?}`.

    The hex value is authoritative; channel values are used only when
    the hex is missing.
    """
    hex_value = color.get("hex")
    if isinstance(hex_value, str) and is_hex_color(hex_value):
        return hex_to_rgb(hex_value)
    return int(color.get("r", 0)), int(color.get("g", 0)), int(color.get("b", 0))


def color_param(entry: DominantColor) -> dict:
    r, g, b = entry.rgb
    return {"hex": entry.hex, "r": r, "g": g, "b": b}
