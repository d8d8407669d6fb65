import numpy as np

from ..models import ChangeMetrics


def compare_pixels(
    before: np.ndarray,
    after: np.ndarray,
    threshold: float = 10.0,
    significant_percentage: float = 1.0,
) -> ChangeMetrics:
    """
    Pixel-by-pixel RGBA comparison of two decoded images.

    A pixel counts as changed when its Euclidean RGBA delta exceeds
    `threshold`, which ignores compression noise. Images with different
    dimensions are reported as fully changed.
    """
    bh, bw = before.shape[:2]
    ah, aw = after.shape[:2]

    if (bh, bw) != (ah, aw):
        total = max(bh * bw, ah * aw)
        return ChangeMetrics(
            pixels_changed=total,
            total_pixels=total,
            percentage_changed=100.0,
            significant_change=True,
            max_delta=255.0,
            avg_delta=128.0,
            color_shift=0.0,
        )

    diff = after.astype(np.int32) - before.astype(np.int32)
    delta = np.sqrt((diff ** 2).sum(axis=-1))
    changed = delta > threshold

    total = int(bh * bw)
    pixels_changed = int(changed.sum())

    if pixels_changed:
        color_delta = np.sqrt((diff[..., :3] ** 2).sum(axis=-1))
        max_delta = float(delta[changed].max())
        avg_delta = float(delta[changed].mean())
        color_shift = float(color_delta[changed].mean())
    else:
        max_delta = avg_delta = color_shift = 0.0

    percentage = (pixels_changed / total * 100.0) if total else 0.0

    return ChangeMetrics(
        pixels_changed=pixels_changed,
        total_pixels=total,
        percentage_changed=round(percentage, 2),
        significant_change=percentage >= significant_percentage,
        max_delta=round(max_delta, 1),
        avg_delta=round(avg_delta, 1),
        color_shift=round(color_shift, 1),
    )


def translucent_pixel_count(rgba: np.ndarray) -> int:
    """Pixels whose alpha is below fully opaque."""
    return int((rgba[..., 3] < 255).sum())
