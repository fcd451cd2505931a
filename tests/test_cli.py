import json
import logging
from pathlib import Path

from biathlon_core.cli import main, replay
from biathlon_core.validation import load_config

CONFIG = {
    "laps": 2,
    "lapLen": 3600,
    "penaltyLen": 50,
    "firingLines": 1,
    "start": "09:30:00",
    "startDelta": "00:00:30",
}

EVENTS = """\
[09:05:59.867] 1 1
[09:06:00.000] 1 2
[09:06:01.000] 1 3
[09:15:00.841] 2 1 09:30:00.000
[09:15:01.000] 2 2 09:30:30.000
[09:15:02.000] 2 3 09:31:00.000
[09:29:45.734] 3 1
[09:30:01.005] 4 1
[09:30:35.000] 4 2
[09:32:00.000] 4 3
[09:49:31.659] 5 1 1
[09:49:33.123] 6 1 1
[09:49:34.650] 6 1 2
[09:49:35.937] 6 1 4
[09:49:37.364] 6 1 5
[09:49:38.339] 7 1
[09:49:55.915] 8 1
[09:50:00.000] 5 2 1
[09:50:01.000] 6 2 1
[09:50:02.000] 6 2 2
[09:50:03.000] 6 2 3
[09:50:04.000] 6 2 4
[09:50:05.000] 6 2 5
[09:50:06.000] 7 2
[09:50:35.000] 10 2
[09:51:48.391] 9 1

[09:59:03.872] 10 1
[09:59:05.321] 11 1 Lost in the forest
[10:10:35.000] 10 2
"""


def _setup(tmp_path, events=EVENTS, config=CONFIG):
    config_path = tmp_path / "config.json"
    config_path.write_text(json.dumps(config), encoding="utf-8")
    events_path = tmp_path / "events"
    events_path.write_text(events, encoding="utf-8")
    return config_path, events_path, tmp_path / "resulting_table"


def _argv(config_path, events_path, output_path):
    return [
        "--config",
        str(config_path),
        "--events",
        str(events_path),
        "--output",
        str(output_path),
    ]


def test_full_race_writes_ranked_table(tmp_path):
    config_path, events_path, output_path = _setup(tmp_path)
    assert main(_argv(config_path, events_path, output_path)) == 0
    assert output_path.read_text(encoding="utf-8") == (
        "{NotStarted} 3 [{,}] [] 0/5\n"
        "{NotFinished} 1 [{00:29:02.867, 2.066}, {,}] [{00:01:52.476, 0.445}] 4/5\n"
        "00:40:00.000 2 [{00:20:00.000, 3.000}, {00:20:00.000, 3.000}] [] 5/5\n"
    )


def test_malformed_event_aborts_without_output(tmp_path, caplog):
    config_path, events_path, output_path = _setup(
        tmp_path, events="[09:05:59.867] 1 1\n[09:51:48.391] 9 1\n"
    )
    with caplog.at_level(logging.ERROR):
        assert main(_argv(config_path, events_path, output_path)) == 1
    assert not output_path.exists()
    assert ":2:" in caplog.text


def test_missing_event_log_is_fatal(tmp_path):
    config_path, _, output_path = _setup(tmp_path)
    assert main(_argv(config_path, tmp_path / "nope", output_path)) == 1
    assert not output_path.exists()


def test_bad_configuration_is_fatal(tmp_path):
    config_path, events_path, output_path = _setup(
        tmp_path, config={**CONFIG, "startDelta": "soon"}
    )
    assert main(_argv(config_path, events_path, output_path)) == 1
    assert not output_path.exists()


def test_unwritable_output_is_fatal(tmp_path):
    config_path, events_path, _ = _setup(tmp_path)
    output_path = tmp_path / "missing-dir" / "resulting_table"
    assert main(_argv(config_path, events_path, output_path)) == 1


def test_unknown_event_kind_is_logged_and_skipped(tmp_path, caplog):
    config_path, events_path, output_path = _setup(
        tmp_path,
        events="[10:00:00.000] 1 1\n[10:00:00.000] 4 1\n[10:05:00.000] 42 1\n",
        config={**CONFIG, "laps": 1, "start": "10:00:00"},
    )
    with caplog.at_level(logging.WARNING):
        assert main(_argv(config_path, events_path, output_path)) == 0
    assert "Unknown event code: 42" in caplog.text
    assert output_path.read_text(encoding="utf-8") == "{NotFinished} 1 [{,}] [] 0/5\n"


def test_undecodable_bytes_do_not_drop_events(tmp_path):
    config_path, events_path, output_path = _setup(
        tmp_path, config={**CONFIG, "laps": 1, "start": "10:00:00"}
    )
    events_path.write_bytes(
        b"[10:00:00.000] 4 1\n[10:01:00.000] 11 2 Bless\xe9\n[10:30:00.000] 10 1\n"
    )
    assert main(_argv(config_path, events_path, output_path)) == 0
    assert output_path.read_text(encoding="utf-8") == (
        "{NotFinished} 2 [] [] 0/5\n"
        "00:30:00.000 1 [{00:30:00.000, 2.000}] [] 0/5\n"
    )
    ledger = replay(events_path, load_config(config_path))
    assert ledger["2"].comment == "Bless\ufffd"


class _FailingLog:
    """File stand-in that yields some lines, then fails like a bad disk."""

    def __init__(self, lines):
        self._lines = lines

    def __enter__(self):
        return self

    def __exit__(self, *exc_info):
        return False

    def __iter__(self):
        yield from self._lines
        raise OSError(5, "Input/output error")


def test_read_error_after_open_keeps_events_read_so_far(tmp_path, monkeypatch, caplog):
    config_path, events_path, output_path = _setup(
        tmp_path, config={**CONFIG, "laps": 1, "start": "10:00:00"}
    )
    real_open = Path.open

    def fake_open(self, *args, **kwargs):
        if self == events_path:
            return _FailingLog(["[10:00:00.000] 4 1\n", "[10:30:00.000] 10 1\n"])
        return real_open(self, *args, **kwargs)

    monkeypatch.setattr(Path, "open", fake_open)
    with caplog.at_level(logging.ERROR):
        assert main(_argv(config_path, events_path, output_path)) == 0
    assert "Error reading" in caplog.text
    assert output_path.read_text(encoding="utf-8") == (
        "00:30:00.000 1 [{00:30:00.000, 2.000}] [] 0/5\n"
    )
