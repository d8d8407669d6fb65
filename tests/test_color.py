import pytest

from pixelmind.analysis.color import (
    color_param,
    color_param_rgb,
    delta_e,
    hex_to_rgb,
    is_hex_color,
    nearest_color,
    normalize_hex,
    rgb_to_hex,
)
from pixelmind.models import DominantColor


def test_hex_normalisation():
    assert normalize_hex("#FFF") == "#ffffff"
    assert normalize_hex("00FF00") == "#00ff00"
    assert is_hex_color("#abc")
    assert not is_hex_color("#abcd")
    assert not is_hex_color(None)

    with pytest.raises(ValueError):
        normalize_hex("red")


def test_hex_rgb_conversions():
    assert hex_to_rgb("#ff8000") == (255, 128, 0)
    assert rgb_to_hex((255, 128, 0)) == "#ff8000"
    assert rgb_to_hex((300, -5, 12.4)) == "#ff000c"


def test_delta_e_orders_perceptual_distance():
    assert delta_e((10, 10, 10), (10, 10, 10)) == pytest.approx(0)
    near = delta_e((255, 0, 0), (250, 5, 5))
    far = delta_e((255, 0, 0), (0, 0, 255))
    assert near < 5
    assert far > 100


def test_yellow_is_not_close_to_any_primary_band():
    palette = [
        DominantColor("#ff0000", (255, 0, 0), 45),
        DominantColor("#0000ff", (0, 0, 255), 35),
        DominantColor("#ffffff", (255, 255, 255), 20),
    ]

    closest, distance = nearest_color((255, 255, 0), palette)

    assert closest.hex == "#ffffff"
    assert distance > 50


def test_nearest_color_on_empty_palette():
    closest, distance = nearest_color((1, 2, 3), [])
    assert closest is None
    assert distance == float("inf")


def test_color_params():
    assert color_param_rgb({"hex": "#010203", "r": 9, "g": 9, "b": 9}) == (1, 2, 3)
    assert color_param_rgb({"r": 9, "g": 8, "b": 7}) == (9, 8, 7)
    assert color_param(DominantColor("#0a0b0c", (10, 11, 12), 5)) == {
        "hex": "#0a0b0c", "r": 10, "g": 11, "b": 12,
    }
