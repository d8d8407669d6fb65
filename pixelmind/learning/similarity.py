from typing import Dict

from ..config import SimilarityWeights
from ..models import ImageSnapshot


def feature_scores(a: ImageSnapshot, b: ImageSnapshot) -> Dict[str, float]:
    """
    Per-feature closeness in [0, 100] between two image snapshots.
    """

    max_w = max(a.width, b.width)
    max_h = max(a.height, b.height)
    if max_w and max_h:
        diff = abs(a.width - b.width) / max_w + abs(a.height - b.height) / max_h
        dimensions = max(0.0, 100.0 - diff * 50.0)
    else:
        dimensions = 100.0 if max_w == max_h == 0 else 0.0

    max_colors = max(a.unique_color_count, b.unique_color_count)
    if max_colors:
        unique_colors = 100.0 - abs(a.unique_color_count - b.unique_color_count) / max_colors * 100.0
    else:
        unique_colors = 100.0

    return {
        "dimensions": dimensions,
        "aspect_ratio": 100.0 if a.aspect_ratio == b.aspect_ratio else 0.0,
        "transparency": 100.0 if a.has_transparency == b.has_transparency else 0.0,
        "unique_colors": unique_colors,
        "sharpness": max(0.0, 100.0 - abs(a.sharpness_score - b.sharpness_score)),
        "print_ready": 100.0 if a.is_print_ready == b.is_print_ready else 0.0,
    }


def image_similarity(
    a: ImageSnapshot,
    b: ImageSnapshot,
    weights: SimilarityWeights = SimilarityWeights(),
) -> float:
    """Weighted similarity in [0, 100]."""
    scores = feature_scores(a, b)

    total = (
        scores["dimensions"] * weights.dimensions
        + scores["aspect_ratio"] * weights.aspect_ratio
        + scores["transparency"] * weights.transparency
        + scores["unique_colors"] * weights.unique_colors
        + scores["sharpness"] * weights.sharpness
        + scores["print_ready"] * weights.print_ready
    ) / weights.total

    return round(max(0.0, min(100.0, total)), 2)
