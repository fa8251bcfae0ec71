import json

import pytest

from dmcmatch.core.color_science import rgb_to_lab
from dmcmatch.utils.palette_loader import PaletteLoadError, load_palette


def write_palette(path, colors):
    path.write_text(json.dumps({"name": "test", "colors": colors}), encoding="utf-8")
    return path


def test_bundled_sample_palette_loads():
    palette = load_palette("dmc_sample.json")
    assert len(palette) > 20
    ids = [entry.id for entry in palette]
    assert "310" in ids and "B5200" in ids
    black = palette[ids.index("310")]
    assert black.rgb == (0, 0, 0)
    assert black.lab == pytest.approx((0.0, 0.0, 0.0), abs=0.01)


def test_missing_lab_is_filled(tmp_path):
    path = write_palette(tmp_path / "p.json", [
        {"id": "666", "name": "Bright Red", "hex": "#ff0000", "rgb": [255, 0, 0]},
        {"id": "1", "name": "Given", "hex": "#000000", "rgb": [0, 0, 0], "lab": [1.0, 2.0, 3.0]},
    ])
    red, given = load_palette(path)
    assert red.hex == "#FF0000"
    assert red.lab == pytest.approx(rgb_to_lab(255, 0, 0))
    # 已给出的 Lab 不重新校验
    assert given.lab == (1.0, 2.0, 3.0)


def test_legacy_field_names(tmp_path):
    path = write_palette(tmp_path / "p.json", [
        {"dmc_id": "321", "name_en": "Red", "hex": "#C72B3B"},
    ])
    (entry,) = load_palette(path)
    assert entry.id == "321"
    assert entry.name == "Red"
    assert entry.rgb == (199, 43, 59)


def test_missing_file(tmp_path):
    with pytest.raises(PaletteLoadError):
        load_palette("does_not_exist.json")


def test_invalid_json(tmp_path):
    path = tmp_path / "bad.json"
    path.write_text("{not json", encoding="utf-8")
    with pytest.raises(PaletteLoadError):
        load_palette(path)


@pytest.mark.parametrize("payload", [
    {"name": "x"},
    {"colors": {"id": "1"}},
    {"colors": ["oops"]},
    {"colors": [{"name": "no id", "hex": "#000000"}]},
    {"colors": [{"id": "1", "rgb": [1, 2]}]},
    {"colors": [{"id": "1", "hex": "#zzzzzz"}]},
    {"colors": [{"id": "1"}]},
])
def test_structurally_broken_records(tmp_path, payload):
    path = tmp_path / "broken.json"
    path.write_text(json.dumps(payload), encoding="utf-8")
    with pytest.raises(PaletteLoadError):
        load_palette(path)
