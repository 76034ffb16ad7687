import json

from controls_editor import options_cache


def _groups():
    return [{"device_type": "joystick", "instance": 1, "options": [{"name": "flight_move_pitch", "invert": True}]}]


def test_write_persists_atomically(tmp_path):
    path = tmp_path / "nested" / options_cache.OPTIONS_CACHE_FILENAME
    cache = options_cache.OptionsCache(path)
    assert cache.write(_groups()) is True

    raw = json.loads(path.read_text(encoding="utf-8"))
    assert raw["version"] == 1
    assert raw["control_options"] == _groups()
    assert raw["unsaved"] is True
    assert isinstance(raw["last_updated"], float)
    assert not path.with_suffix(".json.tmp").exists()


def test_reload_reads_previous_state(tmp_path):
    path = tmp_path / options_cache.OPTIONS_CACHE_FILENAME
    options_cache.OptionsCache(path).write(_groups(), unsaved=False)

    cache = options_cache.OptionsCache(path)
    assert cache.control_options() == _groups()
    assert cache.unsaved is False


def test_control_options_returns_copies(tmp_path):
    cache = options_cache.OptionsCache(tmp_path / "cache.json")
    cache.write(_groups())
    snapshot = cache.control_options()
    snapshot[0]["options"].clear()
    assert cache.control_options() == _groups()


def test_malformed_cache_files_load_as_empty(tmp_path):
    path = tmp_path / "cache.json"
    for content in ("{broken", "[]", json.dumps({"control_options": "nope"})):
        path.write_text(content, encoding="utf-8")
        state = options_cache.load_options_cache(path)
        assert state["control_options"] == []
        assert state["unsaved"] is False


def test_missing_cache_file_loads_as_empty(tmp_path):
    state = options_cache.load_options_cache(tmp_path / "absent.json")
    assert state == {"version": 1, "control_options": [], "unsaved": False}


def test_non_dict_groups_are_filtered(tmp_path):
    path = tmp_path / "cache.json"
    path.write_text(json.dumps({"version": 1, "control_options": [_groups()[0], "junk", 3]}), encoding="utf-8")
    assert options_cache.load_options_cache(path)["control_options"] == _groups()


def test_reset_clears_state(tmp_path):
    path = tmp_path / "cache.json"
    cache = options_cache.OptionsCache(path)
    cache.write(_groups())
    assert cache.reset() is True
    assert cache.control_options() == []
    assert json.loads(path.read_text(encoding="utf-8"))["control_options"] == []


def test_write_failure_returns_false(tmp_path):
    blocker = tmp_path / "blocker"
    blocker.write_text("file, not a directory", encoding="utf-8")
    cache = options_cache.OptionsCache(blocker / "cache.json")
    assert cache.write(_groups()) is False
    assert cache.control_options() == []


def test_resolve_cache_path(tmp_path):
    assert options_cache.resolve_cache_path(tmp_path) == tmp_path / options_cache.OPTIONS_CACHE_FILENAME
