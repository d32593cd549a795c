import json
import logging

import pytest

from stepsort.cli import main


@pytest.fixture(autouse=True)
def isolated(tmp_path, monkeypatch):
    monkeypatch.chdir(tmp_path)
    yield tmp_path
    # the CLI installs handlers bound to the captured stderr
    logging.getLogger("stepsort").handlers.clear()


def test_list(capsys):
    assert main(["list"]) == 0
    out = capsys.readouterr().out
    assert "bubble" in out
    assert "multi-unit" in out


def test_run_prints_result_and_metrics(capsys):
    assert main(["run", "--algorithm", "insertion", "--values", "5,3,8,1,9,2"]) == 0
    lines = capsys.readouterr().out.splitlines()
    assert lines[0] == "1 2 3 5 8 9"
    assert lines[1] == "comparisons=11 swaps=0 accesses=18"


def test_run_json_summary(capsys):
    code = main(["run", "-a", "merge", "--size", "40", "--seed", "3", "--units", "3", "--json"])
    assert code == 0
    summary = json.loads(capsys.readouterr().out)
    assert summary["sorted"] is True
    assert summary["units"] == 3
    assert summary["strategy"] == "range"
    assert summary["output"] == sorted(summary["input"])
    assert summary["events"]["sorting_complete"] == 1


def test_run_events_stream(capsys):
    assert main(["run", "-a", "bubble", "--values", "2,1", "--events"]) == 0
    events = [json.loads(line) for line in capsys.readouterr().out.splitlines()]
    assert events[-1]["type"] == "sorting_complete"
    assert any(e["type"] == "operation_update" and e["operation"] == "swap" for e in events)


def test_unknown_algorithm_fails(capsys):
    assert main(["run", "-a", "bogus", "--values", "1,2"]) == 1
    assert "Unknown algorithm" in capsys.readouterr().err


def test_config_file(isolated, capsys):
    cfg = isolated / "cfg.json"
    cfg.write_text(json.dumps({"units": 2}))
    assert main(["--config", str(cfg), "run", "-a", "quick", "--values", "4,3,2,1", "--json"]) == 0
    assert json.loads(capsys.readouterr().out)["strategy"] == "pivot"


def test_bad_config_is_reported(isolated, capsys):
    (isolated / "stepsort.json").write_text("{broken")
    assert main(["run", "-a", "quick", "--values", "1"]) == 1
    assert "settings" in capsys.readouterr().err
