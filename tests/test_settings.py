import json

import pytest

from stepsort.errors import ConfigurationError
from stepsort.settings import DEFAULTS, load_settings


@pytest.fixture(autouse=True)
def in_tmp(tmp_path, monkeypatch):
    monkeypatch.chdir(tmp_path)
    return tmp_path


def test_defaults_without_a_file():
    assert load_settings() == DEFAULTS
    assert DEFAULTS["speed"] is None
    assert DEFAULTS["min_delay_ms"] >= 10


def test_working_directory_file_is_picked_up(in_tmp):
    (in_tmp / "stepsort.json").write_text(json.dumps({"units": 4, "speed": 70}))
    s = load_settings()
    assert s["units"] == 4
    assert s["speed"] == 70


def test_overrides_win_and_none_is_ignored(in_tmp):
    (in_tmp / "stepsort.json").write_text(json.dumps({"size": 64}))
    s = load_settings(size=10, units=None)
    assert s["size"] == 10
    assert s["units"] == DEFAULTS["units"]


def test_explicit_path(in_tmp):
    path = in_tmp / "other.json"
    path.write_text(json.dumps({"operations_per_step": 3}))
    assert load_settings(str(path))["operations_per_step"] == 3
    with pytest.raises(ConfigurationError):
        load_settings(str(in_tmp / "missing.json"))


@pytest.mark.parametrize("content", [
    "{not json",
    "[1, 2]",
    json.dumps({"colour": "red"}),
    json.dumps({"operations_per_step": 0}),
    json.dumps({"min_delay_ms": 1}),
    json.dumps({"units": 99}),
])
def test_bad_files_are_rejected(in_tmp, content):
    (in_tmp / "stepsort.json").write_text(content)
    with pytest.raises(ConfigurationError):
        load_settings()
