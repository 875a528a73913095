"""Tests for cipher_game.py: settings handling and the command line."""

from __future__ import annotations

import json

import pytest

from cipher_game import (
    Settings, load_settings, main, sanitize_grid_size, sanitize_seed,
    save_settings,
)
from timescipher import DEFAULT_GRID_SIZE, DEFAULT_SEED

HELLO_WORLD_12_1 = "12x12 6x12 6x7 6x7 3x9 1x10 1x10 1x11 7x10 9x11 7x12 8x10"


@pytest.mark.parametrize("value, expected", [
    ("10", 10), (15, 15), ("8", 8), ("20", 20),
    ("7", DEFAULT_GRID_SIZE), ("21", DEFAULT_GRID_SIZE), ("-4", DEFAULT_GRID_SIZE),
    ("abc", DEFAULT_GRID_SIZE), ("", DEFAULT_GRID_SIZE), (None, DEFAULT_GRID_SIZE),
])
def test_sanitize_grid_size(value, expected):
    assert sanitize_grid_size(value) == expected


@pytest.mark.parametrize("value, expected", [
    ("42", 42), ("-5", -5), (7, 7), ("x", DEFAULT_SEED), (None, DEFAULT_SEED),
])
def test_sanitize_seed(value, expected):
    assert sanitize_seed(value) == expected


def test_load_settings_missing_file(tmp_path):
    assert load_settings(tmp_path / "nope.json") == Settings()


def test_settings_round_trip(tmp_path):
    path = tmp_path / "settings.json"
    settings = Settings(grid_size=9, seed=-12, encode_input="Hi there!", decode_input="1x1")
    save_settings(settings, path)
    assert load_settings(path) == settings


def test_load_settings_sanitizes_values(tmp_path):
    path = tmp_path / "settings.json"
    path.write_text(json.dumps({"grid_size": 99, "seed": "oops", "encode_input": "abc"}))
    settings = load_settings(path)
    assert settings.grid_size == DEFAULT_GRID_SIZE
    assert settings.seed == DEFAULT_SEED
    assert settings.encode_input == "abc"
    assert settings.decode_input == ""


@pytest.mark.parametrize("content", ["{not json", "[1, 2, 3]"])
def test_load_settings_bad_file(tmp_path, content):
    path = tmp_path / "settings.json"
    path.write_text(content)
    with pytest.raises(SystemExit):
        load_settings(path)


def test_main_encode_saves_settings(tmp_path, capsys):
    path = tmp_path / "settings.json"
    assert main(["--encode", "Hello, World", "--settings", str(path)]) == 0
    out = capsys.readouterr().out
    assert f"Encoded:   {HELLO_WORLD_12_1}" in out
    stored = json.loads(path.read_text())
    assert stored["encode_input"] == "Hello, World"
    assert stored["grid_size"] == 12
    assert stored["seed"] == 1


def test_main_decode_uses_stored_settings(tmp_path, capsys):
    path = tmp_path / "settings.json"
    save_settings(Settings(grid_size=12, seed=1), path)
    assert main(["--decode", "12x12 6x12", "--settings", str(path), "--no-save"]) == 0
    assert "Decoded:   HE" in capsys.readouterr().out


def test_main_reruns_stored_inputs(tmp_path, capsys):
    path = tmp_path / "settings.json"
    save_settings(Settings(encode_input="Hello, World", decode_input=HELLO_WORLD_12_1), path)
    assert main(["--settings", str(path)]) == 0
    out = capsys.readouterr().out
    assert f"Encoded:   {HELLO_WORLD_12_1}" in out
    assert "Decoded:   HELLO  WORLD" in out


def test_main_grid_key_stats_no_save(tmp_path, capsys):
    path = tmp_path / "settings.json"
    assert main(["--grid-size", "8", "--seed", "1", "--grid", "--key", "--stats",
                 "--settings", str(path), "--no-save"]) == 0
    out = capsys.readouterr().out
    assert "WORKSHEET: GRID 8x8, SEED 1" in out
    assert "KEY: GRID 8x8, SEED 1" in out
    assert "Missing letters: none" in out
    assert not path.exists()


def test_main_out_of_range_grid_size(tmp_path, capsys):
    path = tmp_path / "settings.json"
    assert main(["--grid-size", "25", "--grid", "--settings", str(path)]) == 0
    captured = capsys.readouterr()
    assert "outside" in captured.err
    assert f"GRID {DEFAULT_GRID_SIZE}x{DEFAULT_GRID_SIZE}" in captured.out
    assert json.loads(path.read_text())["grid_size"] == DEFAULT_GRID_SIZE


def test_main_nothing_to_do(tmp_path, capsys):
    path = tmp_path / "settings.json"
    assert main(["--settings", str(path), "--no-save"]) == 0
    assert "Nothing to do" in capsys.readouterr().out
