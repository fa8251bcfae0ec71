import json
from datetime import datetime, timezone

from dmcmatch.core.data_types import Pin, RGBColor
from dmcmatch.utils.history_storage import HISTORY_KEY, PinHistoryStorage


def make_pin(pin_id, palette_id="666"):
    return Pin(
        id=pin_id,
        palette_id=palette_id,
        name="Bright Red",
        sampled_color=RGBColor(250, 3, 7),
        matched_color=RGBColor(227, 29, 66),
        delta_e=4.25,
        image_x=12,
        image_y=34,
        created_at=datetime(2024, 5, 6, 7, 8, 9, tzinfo=timezone.utc),
    )


def test_missing_file_loads_empty(history_storage):
    assert history_storage.load_pins() == []


def test_round_trip_record_shape(history_storage):
    pins = [make_pin(2, "321"), make_pin(1)]
    assert history_storage.save_pins(pins)

    data = json.loads(history_storage.file_path.read_text(encoding="utf-8"))
    record = data[HISTORY_KEY][1]
    assert set(record) == {
        "id", "paletteId", "name", "matchedHex", "matchedRgb", "sampledHex",
        "sampledRgb", "deltaE", "imageX", "imageY", "timestamp",
    }
    assert record["matchedHex"] == "#E31D42"
    assert record["sampledRgb"] == [250, 3, 7]
    assert record["timestamp"] == "2024-05-06T07:08:09+00:00"

    assert history_storage.load_pins() == pins


def test_other_keys_are_preserved(history_storage):
    history_storage.file_path.write_text(json.dumps({"theme": "dark"}), encoding="utf-8")
    history_storage.save_pins([make_pin(1)])
    data = json.loads(history_storage.file_path.read_text(encoding="utf-8"))
    assert data["theme"] == "dark"
    assert len(data[HISTORY_KEY]) == 1


def test_corrupt_records_are_skipped(history_storage):
    good = make_pin(1).to_dict()
    zulu = dict(make_pin(3).to_dict(), timestamp="2024-05-06T07:08:09Z")
    payload = {HISTORY_KEY: [good, {"id": 2}, "junk", zulu, dict(good)]}
    history_storage.file_path.write_text(json.dumps(payload), encoding="utf-8")
    pins = history_storage.load_pins()
    assert [p.id for p in pins] == [1, 3]
    assert pins[1].created_at == datetime(2024, 5, 6, 7, 8, 9, tzinfo=timezone.utc)


def test_unreadable_file_loads_empty(history_storage):
    history_storage.file_path.write_text("[[[", encoding="utf-8")
    assert history_storage.load_pins() == []
    # 写入时覆盖损坏的文件
    assert history_storage.save_pins([make_pin(1)])
    assert len(history_storage.load_pins()) == 1


def test_write_failure_returns_false(tmp_path):
    blocker = tmp_path / "not_a_dir"
    blocker.write_text("x", encoding="utf-8")
    storage = PinHistoryStorage(blocker / "history.json")
    assert storage.save_pins([make_pin(1)]) is False


def test_clear(history_storage):
    history_storage.save_pins([make_pin(1)])
    assert history_storage.clear()
    assert history_storage.load_pins() == []
