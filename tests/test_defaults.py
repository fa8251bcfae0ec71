import json

import pytest

from dmcmatch.core.data_types import AppSettings
from dmcmatch.utils import defaults
from dmcmatch.utils.defaults import clear_settings_cache, load_app_settings


@pytest.fixture(autouse=True)
def fresh_cache():
    clear_settings_cache()
    yield
    clear_settings_cache()


def test_falls_back_to_builtin(tmp_path):
    settings = load_app_settings([tmp_path / "missing.json"])
    assert settings == AppSettings()


def test_reads_first_existing_file(tmp_path):
    first = tmp_path / "user.json"
    second = tmp_path / "package.json"
    first.write_text(json.dumps({"match_limit": 5, "label_offset": [10, -10], "unknown": 1}), encoding="utf-8")
    second.write_text(json.dumps({"match_limit": 9}), encoding="utf-8")
    settings = load_app_settings([tmp_path / "missing.json", first, second])
    assert settings.match_limit == 5
    assert settings.label_offset == (10, -10)
    assert settings.max_zoom == 16.0


def test_broken_file_is_skipped(tmp_path):
    broken = tmp_path / "broken.json"
    broken.write_text("{", encoding="utf-8")
    good = tmp_path / "good.json"
    good.write_text(json.dumps({"drag_threshold": 7}), encoding="utf-8")
    assert load_app_settings([broken, good]).drag_threshold == 7


def test_non_object_file_falls_back(tmp_path):
    bad = tmp_path / "list.json"
    bad.write_text(json.dumps([1, 2]), encoding="utf-8")
    assert load_app_settings([bad]) == AppSettings()


@pytest.mark.parametrize("payload", [
    {"default_aperture": 2},
    {"aperture_sizes": [1, 4], "default_aperture": 1},
    {"aperture_sizes": []},
    {"min_zoom": 8.0, "max_zoom": 2.0},
    {"min_zoom": 0},
])
def test_invalid_values_are_skipped(tmp_path, payload):
    bad = tmp_path / "bad.json"
    bad.write_text(json.dumps(payload), encoding="utf-8")
    good = tmp_path / "good.json"
    good.write_text(json.dumps({"match_limit": 4}), encoding="utf-8")
    assert load_app_settings([bad]) == AppSettings()
    assert load_app_settings([bad, good]).match_limit == 4


def test_from_dict_rejects_non_object():
    with pytest.raises(ValueError):
        AppSettings.from_dict(["default_aperture", 1])


def test_default_search_is_cached(monkeypatch, tmp_path):
    monkeypatch.setattr(defaults, "_candidate_paths", lambda: [tmp_path / "none.json"])
    first = load_app_settings()
    assert load_app_settings() is first


def test_bundled_defaults_match_builtin():
    from dmcmatch.utils.app_paths import get_data_dir
    path = get_data_dir("config") / "defaults" / "default.json"
    assert load_app_settings([path]) == AppSettings()


def test_settings_round_trip():
    settings = AppSettings(match_limit=4, aperture_sizes=(1, 3))
    assert AppSettings.from_dict(settings.to_dict()) == settings
