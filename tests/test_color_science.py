import numpy as np
import pytest

from dmcmatch.core.color_science import (
    hex_to_rgb, rgb_array_to_lab, rgb_to_hex, rgb_to_lab, srgb_to_linear,
)


def test_white_is_l100():
    L, a, b = rgb_to_lab(255, 255, 255)
    assert L == pytest.approx(100.0, abs=0.01)
    assert a == pytest.approx(0.0, abs=0.01)
    assert b == pytest.approx(0.0, abs=0.01)


def test_black_is_origin():
    assert rgb_to_lab(0, 0, 0) == pytest.approx((0.0, 0.0, 0.0), abs=0.01)


def test_pure_red():
    L, a, b = rgb_to_lab(255, 0, 0)
    assert L == pytest.approx(53.24, abs=0.05)
    assert a == pytest.approx(80.09, abs=0.05)
    assert b == pytest.approx(67.20, abs=0.05)


def test_gray_is_neutral():
    L, a, b = rgb_to_lab(128, 128, 128)
    assert 50 < L < 56
    assert abs(a) < 0.01
    assert abs(b) < 0.01


def test_linearization_breakpoint():
    values = srgb_to_linear(np.array([0.0, 0.04, 1.0]))
    assert values[0] == 0.0
    assert values[1] == pytest.approx(0.04 / 12.92)
    assert values[2] == pytest.approx(1.0)


def test_array_variant_matches_scalar():
    rgb = np.array([[255, 0, 0], [0, 128, 255], [12, 34, 56]], dtype=np.float64)
    labs = rgb_array_to_lab(rgb)
    assert labs.shape == (3, 3)
    for row, lab in zip(rgb, labs):
        assert tuple(lab) == pytest.approx(rgb_to_lab(*row))


def test_hex_roundtrip_and_case():
    assert rgb_to_hex(255, 0, 10) == "#FF000A"
    assert hex_to_rgb("#ff000a") == (255, 0, 10)
    assert hex_to_rgb("C72B3B") == (199, 43, 59)


@pytest.mark.parametrize("bad", ["", "#12345", "#GGGGGG", "red"])
def test_hex_rejects_malformed(bad):
    with pytest.raises(ValueError):
        hex_to_rgb(bad)
