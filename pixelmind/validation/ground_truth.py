"""
Ground-truth rules: proposed parameters checked against measured image facts.

Rules read the *raw* parameters defensively (merged over the tool's
defaults) so they still run when the schema check has already failed.
"""

from __future__ import annotations

import logging
import math
from typing import Any, Callable, Dict, List, Mapping, Optional

from ..analysis.color import color_param, color_param_rgb, delta_e, hex_to_rgb, is_hex_color, nearest_color
from ..config import PipelineConfig
from ..models import CheckStage, Finding, FindingCode, ImageAnalysis, Severity
from ..tools.names import ToolName

logger = logging.getLogger(__name__)


def _number(params: Mapping[str, Any], key: str) -> Optional[float]:
    value = params.get(key)
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        return None
    return float(value)


def _error(code: FindingCode, message: str, parameter: str = None, suggested: Any = None) -> Finding:
    return Finding(code, Severity.ERROR, CheckStage.GROUND_TRUTH, message, parameter, suggested)


def _warning(code: FindingCode, message: str, parameter: str = None, suggested: Any = None) -> Finding:
    return Finding(code, Severity.WARNING, CheckStage.GROUND_TRUTH, message, parameter, suggested)


Rule = Callable[[Mapping[str, Any], ImageAnalysis], List[Finding]]


class GroundTruthChecker:
    """
    Per-tool plausibility rules. Each rule returns a list of findings and
    never raises on malformed input; malformed values are the schema
    check's concern.
    """

    def __init__(self, config: Optional[PipelineConfig] = None) -> None:
        self._config = config or PipelineConfig()
        self._rules: Dict[ToolName, Rule] = {
            ToolName.COLOR_KNOCKOUT: self._color_knockout,
            ToolName.EXTRACT_COLOR_PALETTE: self._extract_palette,
            ToolName.RECOLOR_IMAGE: self._recolor,
            ToolName.TEXTURE_CUT: self._texture_cut,
            ToolName.BACKGROUND_REMOVER: self._background_remover,
            ToolName.UPSCALER: self._upscaler,
            ToolName.PICK_COLOR_AT_POSITION: self._pick_color,
            ToolName.AUTO_CROP: self._auto_crop,
            ToolName.CROP_WITH_SPACING: self._crop_with_spacing,
            ToolName.ROTATE_FLIP: lambda params, analysis: [],
            ToolName.SMART_RESIZE: self._smart_resize,
            ToolName.GENERATE_MOCKUP: self._mockup,
        }

    def check(self, tool_name: ToolName, params: Mapping[str, Any], analysis: ImageAnalysis) -> List[Finding]:
        return self._rules[tool_name](params, analysis)

    # ============================================================
    # SHARED RULES
    # ============================================================

    def _colors_exist(self, params: Mapping[str, Any], analysis: ImageAnalysis) -> List[Finding]:
        cfg = self._config
        colors = params.get("colors")
        if not isinstance(colors, list):
            return []

        palette = analysis.dominant_colors
        if not palette:
            return [_warning(
                FindingCode.IMAGE_ADVISORY,
                "Image palette unavailable; colors could not be verified",
                "colors",
            )]

        top = palette[:cfg.top_color_substitutes]
        findings: List[Finding] = []
        substitutes: List[dict] = []
        missing = False

        for color in colors:
            hex_value = color.get("hex") if isinstance(color, dict) else None
            if not isinstance(hex_value, str) or not is_hex_color(hex_value):
                continue

            try:
                rgb = color_param_rgb(color)
            except (TypeError, ValueError) as e:
                logger.debug(f"[VALIDATOR] Skipping unreadable color {color!r}: {e}")
                continue
            label = color.get("hex")
            closest, distance = nearest_color(rgb, palette)

            if distance > cfg.color_error_distance:
                missing = True
                replacement, _ = nearest_color(rgb, top)
                substitutes.append(color_param(replacement))
                findings.append(_error(
                    FindingCode.COLOR_NOT_FOUND,
                    f"Color {label} not found in image "
                    f"(closest {closest.hex}, distance {distance:.1f})",
                    "colors",
                ))
                continue

            substitutes.append(dict(color))

            if distance > cfg.color_warning_distance:
                findings.append(_warning(
                    FindingCode.COLOR_WEAK_MATCH,
                    f"Color {label} only loosely matches {closest.hex} (distance {distance:.1f})",
                    "colors",
                ))
            elif closest.percentage < cfg.rare_color_percentage:
                findings.append(_warning(
                    FindingCode.COLOR_RARE,
                    f"Color {label} covers only {closest.percentage:.1f}% of the image",
                    "colors",
                ))

        if missing:
            # one suggested list for the whole family, duplicates collapsed
            unique: List[dict] = []
            seen = set()
            for entry in substitutes:
                key = str(entry.get("hex", "")).lower()
                if key not in seen:
                    seen.add(key)
                    unique.append(entry)
            findings = [
                _error(f.code, f.message, f.parameter, unique) if f.code is FindingCode.COLOR_NOT_FOUND else f
                for f in findings
            ]

        return findings

    def _tolerance_vs_noise(self, params: Mapping[str, Any], analysis: ImageAnalysis) -> List[Finding]:
        cfg = self._config
        tolerance = _number(params, "tolerance")
        if tolerance is None:
            return []

        noise = analysis.noise_level

        if noise > cfg.noisy_threshold and tolerance < cfg.min_tolerance_for_noise:
            severe = noise > 2 * cfg.noisy_threshold and tolerance < cfg.min_tolerance_for_noise / 2.5
            make = _error if severe else _warning
            return [make(
                FindingCode.TOLERANCE_TOO_LOW,
                f"Tolerance {tolerance:g} is too low for a noisy image (noise {noise:.0f}); "
                f"use at least {cfg.min_tolerance_for_noise:g}",
                "tolerance",
                max(tolerance, cfg.noisy_tolerance_target),
            )]

        if noise < cfg.clean_threshold and tolerance > cfg.max_tolerance_for_clean:
            severe = noise < cfg.clean_threshold / 3 and tolerance > cfg.max_tolerance_for_clean * 1.75
            make = _error if severe else _warning
            return [make(
                FindingCode.TOLERANCE_TOO_HIGH,
                f"Tolerance {tolerance:g} is too high for a clean image (noise {noise:.0f}); "
                f"15-35 is usually enough",
                "tolerance",
                min(tolerance, cfg.clean_tolerance_target),
            )]

        return []

    # ============================================================
    # PER-TOOL RULES
    # ============================================================

    def _color_knockout(self, params, analysis) -> List[Finding]:
        return self._colors_exist(params, analysis) + self._tolerance_vs_noise(params, analysis)

    def _extract_palette(self, params, analysis) -> List[Finding]:
        if params.get("paletteSize") == 36 and analysis.unique_color_count < 100:
            return [_warning(
                FindingCode.IMAGE_ADVISORY,
                f"Image has only ~{analysis.unique_color_count} unique colors; "
                "a 36-color palette will contain near-duplicates",
                "paletteSize",
                9,
            )]
        return []

    def _recolor(self, params, analysis) -> List[Finding]:
        cfg = self._config
        findings: List[Finding] = []
        palette = analysis.dominant_colors
        mappings = params.get("colorMappings")

        if isinstance(mappings, list):
            valid = []
            for mapping in mappings:
                if not isinstance(mapping, dict):
                    continue
                index = mapping.get("originalIndex")
                if not isinstance(index, int) or isinstance(index, bool):
                    continue

                if index < 0 or index >= len(palette):
                    findings.append(_error(
                        FindingCode.PALETTE_INDEX_OUT_OF_RANGE,
                        f"Palette index {index} is out of range (palette has {len(palette)} colors)",
                        "colorMappings",
                    ))
                    continue

                valid.append(mapping)
                new_color = mapping.get("newColor")
                if is_hex_color(new_color):
                    if delta_e(hex_to_rgb(new_color), palette[index].rgb) < 5:
                        findings.append(_warning(
                            FindingCode.IMAGE_ADVISORY,
                            f"New color {new_color} is nearly identical to {palette[index].hex}",
                            "colorMappings",
                        ))

            if any(f.code is FindingCode.PALETTE_INDEX_OUT_OF_RANGE for f in findings):
                suggestion = valid or None
                findings = [
                    _error(f.code, f.message, f.parameter, suggestion)
                    if f.code is FindingCode.PALETTE_INDEX_OUT_OF_RANGE else f
                    for f in findings
                ]

            if palette and len(valid) > len(palette):
                limit = min(9, len(palette))
                findings.append(_warning(
                    FindingCode.TOO_MANY_MAPPINGS,
                    f"{len(valid)} mappings for {len(palette)} dominant colors",
                    "colorMappings",
                    valid[:limit],
                ))

        tolerance = _number(params, "tolerance")
        if tolerance is not None:
            if analysis.unique_color_count > 10000 and tolerance < 20:
                findings.append(_warning(
                    FindingCode.IMAGE_ADVISORY,
                    "Complex image with low tolerance; gradients may recolor unevenly",
                    "tolerance",
                ))
            elif analysis.unique_color_count < 1000 and tolerance > 40:
                findings.append(_warning(
                    FindingCode.IMAGE_ADVISORY,
                    "Simple image with high tolerance; neighbouring colors may bleed",
                    "tolerance",
                ))

        top = analysis.top_color
        if params.get("blendMode") == "multiply" and top is not None and top.percentage > 80:
            findings.append(_warning(
                FindingCode.IMAGE_ADVISORY,
                f"Multiply blend on a near-monochrome image ({top.percentage:.0f}% {top.hex})",
                "blendMode",
            ))

        return findings + self._tolerance_vs_noise(params, analysis)

    def _texture_cut(self, params, analysis) -> List[Finding]:
        findings: List[Finding] = []

        if params.get("textureType") == "custom":
            findings.append(_error(
                FindingCode.UNSUPPORTED_OPTION,
                "Custom textures require an uploaded pattern and are not supported",
                "textureType",
            ))

        amount = _number(params, "amount")
        if amount is not None and (amount < 0.1 or amount > 0.9):
            findings.append(_warning(
                FindingCode.IMAGE_ADVISORY,
                f"Amount {amount:g} is extreme; the texture will be barely visible or overwhelming",
                "amount",
            ))

        scale = _number(params, "scale")
        short_side = min(analysis.width, analysis.height)
        long_side = max(analysis.width, analysis.height)
        if scale is not None:
            if scale > 3 and 0 < short_side < 500:
                findings.append(_warning(
                    FindingCode.IMAGE_ADVISORY,
                    f"Texture scale {scale:g} is large for a {analysis.width}x{analysis.height} image",
                    "scale",
                ))
            elif scale < 0.3 and long_side > 3000:
                findings.append(_warning(
                    FindingCode.IMAGE_ADVISORY,
                    f"Texture scale {scale:g} will be too fine to see on a large image",
                    "scale",
                ))

        return findings

    def _background_remover(self, params, analysis) -> List[Finding]:
        findings: List[Finding] = []

        if analysis.megapixels > 25:
            findings.append(_warning(
                FindingCode.IMAGE_ADVISORY,
                f"Large image ({analysis.megapixels:.1f} MP); processing may be slow",
            ))

        top = analysis.top_color
        if analysis.unique_color_count > 50000 and top is not None and top.percentage < 20:
            findings.append(_warning(
                FindingCode.IMAGE_ADVISORY,
                "Busy image without a clear background color; edges may be imprecise",
            ))

        if analysis.has_transparency:
            findings.append(_warning(
                FindingCode.IMAGE_ADVISORY,
                "Image already has transparency; the background may already be removed",
            ))

        return findings

    def _upscaler(self, params, analysis) -> List[Finding]:
        cfg = self._config
        findings: List[Finding] = []
        scale = _number(params, "scaleFactor")

        if scale is not None and analysis.width and analysis.height:
            output_mp = analysis.width * scale * analysis.height * scale / 1_000_000
            if output_mp > cfg.max_upscale_megapixels:
                fitting = math.floor(
                    math.sqrt(cfg.max_upscale_megapixels / analysis.megapixels) * 10
                ) / 10
                findings.append(_error(
                    FindingCode.OUTPUT_TOO_LARGE,
                    f"Output would be {output_mp:.1f} MP (limit {cfg.max_upscale_megapixels:g} MP)",
                    "scaleFactor",
                    fitting if fitting >= 1 else None,
                ))

            if scale > 4 and analysis.width < 500:
                findings.append(_warning(
                    FindingCode.IMAGE_ADVISORY,
                    f"Upscaling a {analysis.width}px image by {scale:g}x may invent detail",
                    "scaleFactor",
                ))

        if analysis.sharpness_score < 40:
            findings.append(_warning(
                FindingCode.IMAGE_ADVISORY,
                f"Source is blurry (sharpness {analysis.sharpness_score:.0f}); upscaling amplifies blur",
            ))

        if analysis.noise_level > 50:
            findings.append(_warning(
                FindingCode.IMAGE_ADVISORY,
                f"Source is noisy (noise {analysis.noise_level:.0f}); upscaling amplifies noise",
            ))

        return findings

    def _pick_color(self, params, analysis) -> List[Finding]:
        x = _number(params, "x")
        y = _number(params, "y")
        if x is None or y is None:
            return []

        if 0 <= x < analysis.width and 0 <= y < analysis.height:
            return []

        clamped = {
            "x": int(max(0, min(analysis.width - 1, x))),
            "y": int(max(0, min(analysis.height - 1, y))),
        }
        return [_error(
            FindingCode.COORDINATES_OUT_OF_BOUNDS,
            f"Position ({x:g}, {y:g}) is outside the {analysis.width}x{analysis.height} image",
            "position",
            clamped if analysis.width and analysis.height else None,
        )]

    def _auto_crop(self, params, analysis) -> List[Finding]:
        if params.get("backgroundColor") == "transparent" and not analysis.has_transparency:
            return [_warning(
                FindingCode.IMAGE_ADVISORY,
                "Trimming transparent space on an image without transparency",
                "backgroundColor",
                "auto",
            )]
        return []

    def _crop_with_spacing(self, params, analysis) -> List[Finding]:
        spacing = _number(params, "spacing")
        if spacing is None:
            return []

        if params.get("unit") == "inches":
            spacing *= _number(params, "dpi") or 300

        short_side = min(analysis.width, analysis.height)
        if short_side and spacing * 2 >= short_side:
            return [_warning(
                FindingCode.IMAGE_ADVISORY,
                f"Spacing of {spacing:.0f}px leaves no room for a {analysis.width}x{analysis.height} design",
                "spacing",
            )]
        return []

    def _smart_resize(self, params, analysis) -> List[Finding]:
        width = _number(params, "width")
        height = _number(params, "height")

        if params.get("unit") == "percent":
            factor = max(width or 0, height or 0) / 100
        else:
            factors = []
            if width and analysis.width:
                factors.append(width / analysis.width)
            if height and analysis.height:
                factors.append(height / analysis.height)
            factor = max(factors) if factors else 0

        if factor > 2:
            return [_warning(
                FindingCode.IMAGE_ADVISORY,
                f"Resizing to {factor:.1f}x the original degrades quality; consider the upscaler",
            )]
        return []

    def _mockup(self, params, analysis) -> List[Finding]:
        color = params.get("color")
        custom = params.get("customColor")

        if custom and color != "custom":
            return [_warning(
                FindingCode.IMAGE_ADVISORY,
                "customColor is ignored unless color is 'custom'",
                "color",
                "custom",
            )]
        if color == "custom" and not custom:
            return [_warning(
                FindingCode.IMAGE_ADVISORY,
                "color 'custom' without customColor falls back to white",
                "customColor",
            )]
        return []
