import numpy as np

from helpers import banded_rgba
from pixelmind.analysis.comparison import compare_pixels, translucent_pixel_count


def test_identical_images_have_no_change():
    rgba = banded_rgba()
    metrics = compare_pixels(rgba, rgba.copy())

    assert metrics.pixels_changed == 0
    assert metrics.percentage_changed == 0
    assert metrics.significant_change is False


def test_alpha_only_change_is_counted():
    before = banded_rgba()
    after = before.copy()
    after[:45, :, 3] = 0

    metrics = compare_pixels(before, after)

    assert metrics.pixels_changed == 4500
    assert metrics.percentage_changed == 45.0
    assert metrics.significant_change is True
    assert metrics.color_shift == 0
    assert metrics.max_delta == 255.0


def test_small_deltas_are_ignored():
    before = banded_rgba()
    after = before.astype(np.int16)
    after[..., 2] = np.clip(after[..., 2] - 5, 0, 255)

    metrics = compare_pixels(before, after.astype(np.uint8))

    assert metrics.pixels_changed == 0


def test_dimension_change_counts_as_full_change():
    metrics = compare_pixels(banded_rgba(100), banded_rgba(50))

    assert metrics.percentage_changed == 100.0
    assert metrics.total_pixels == 10000


def test_translucent_pixel_count():
    rgba = banded_rgba()
    rgba[:3, :, 3] = 200
    assert translucent_pixel_count(rgba) == 300
