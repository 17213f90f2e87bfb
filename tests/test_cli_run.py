from __future__ import annotations

import json
from pathlib import Path

import yaml
from typer.testing import CliRunner

from apps.cli.main import app

runner = CliRunner()

BOOK = """\
shapes:
  - name: Song
    fields:
      Name: string
      Artist: string
    templates:
      - play {Name} by {Artist}
      - play {Name} from {Artist}
      - from {Artist} play {Name}
  - name: Reminder
    fields:
      Text: string
      At: timestamp
    templates:
      - remind me to {Text} at {At}
    timestamp_zone: UTC
"""


def _write_book(path: Path, text: str = BOOK) -> Path:
    path.write_text(text, encoding="utf-8")
    return path


def test_cli_tokenize_prints_tokens() -> None:
    result = runner.invoke(app, ["tokenize", "play {Name} by {Artist}"])

    assert result.exit_code == 0
    assert json.loads(result.stdout) == [
        {"placeholder": False, "text": "play"},
        {"placeholder": True, "text": "Name"},
        {"placeholder": False, "text": "by"},
        {"placeholder": True, "text": "Artist"},
    ]


def test_cli_tokenize_empty_text_fails() -> None:
    result = runner.invoke(app, ["tokenize", "   "])

    assert result.exit_code == 1
    assert "ERROR:" in result.stdout


def test_cli_check_lists_shapes(tmp_path: Path) -> None:
    book = _write_book(tmp_path / "shapes.yaml")

    result = runner.invoke(app, ["check", "--shapes", str(book)])

    assert result.exit_code == 0
    assert result.stdout.splitlines() == [
        "Song: 2 fields, 3 templates",
        "Reminder: 2 fields, 1 templates",
        "OK",
    ]


def test_cli_check_reports_mistyped_template(tmp_path: Path) -> None:
    book = _write_book(
        tmp_path / "shapes.yaml",
        "shapes:\n  - name: Song\n    fields: {Name: string}\n    templates: ['play {Title}']\n",
    )

    result = runner.invoke(app, ["check", "--shapes", str(book)])

    assert result.exit_code == 1
    assert "ERROR: template#0: mistyped field 'Title'" in result.stdout


def test_cli_check_reports_invalid_book(tmp_path: Path) -> None:
    book = _write_book(tmp_path / "shapes.yaml", "shapes: []\n")

    result = runner.invoke(app, ["check", "--shapes", str(book)])

    assert result.exit_code == 1
    assert "Invalid shape book schema" in result.stdout


def test_cli_parse_prints_record(tmp_path: Path) -> None:
    book = _write_book(tmp_path / "shapes.yaml")

    result = runner.invoke(
        app, ["parse", "play King by Lauren Aquilina", "--shapes", str(book)]
    )

    assert result.exit_code == 0
    assert json.loads(result.stdout) == {
        "shape": "Song",
        "record": {"Name": "King", "Artist": "Lauren Aquilina"},
    }


def test_cli_parse_serializes_timestamps(tmp_path: Path) -> None:
    book = _write_book(tmp_path / "shapes.yaml")

    result = runner.invoke(
        app,
        ["parse", "remind me to stretch at 03-01-2025_9:15am", "--shapes", str(book)],
    )

    assert result.exit_code == 0
    payload = json.loads(result.stdout)
    assert payload["shape"] == "Reminder"
    assert payload["record"]["Text"] == "stretch"
    assert payload["record"]["At"].startswith("2025-03-01T09:15:00")


def test_cli_parse_writes_yaml_out(tmp_path: Path) -> None:
    book = _write_book(tmp_path / "shapes.yaml")
    out = tmp_path / "out" / "record.yaml"

    result = runner.invoke(
        app,
        ["parse", "play King by Lauren Aquilina", "--shapes", str(book), "--out", str(out)],
    )

    assert result.exit_code == 0
    assert yaml.safe_load(out.read_text(encoding="utf-8")) == {
        "shape": "Song",
        "record": {"Name": "King", "Artist": "Lauren Aquilina"},
    }


def test_cli_parse_refuses_existing_out_without_force(tmp_path: Path) -> None:
    book = _write_book(tmp_path / "shapes.yaml")
    out = tmp_path / "record.json"
    out.write_text("{}", encoding="utf-8")

    result = runner.invoke(
        app,
        ["parse", "play King by Lauren Aquilina", "--shapes", str(book), "--out", str(out)],
    )

    assert result.exit_code == 1
    assert "output already exists" in result.stdout
    assert out.read_text(encoding="utf-8") == "{}"


def test_cli_parse_overwrites_out_with_force(tmp_path: Path) -> None:
    book = _write_book(tmp_path / "shapes.yaml")
    out = tmp_path / "record.json"
    out.write_text("{}", encoding="utf-8")

    result = runner.invoke(
        app,
        [
            "parse",
            "play King by Lauren Aquilina",
            "--shapes",
            str(book),
            "--out",
            str(out),
            "--force",
        ],
    )

    assert result.exit_code == 0
    assert json.loads(out.read_text(encoding="utf-8"))["record"]["Name"] == "King"


def test_cli_parse_requires_existing_shapes_file(tmp_path: Path) -> None:
    result = runner.invoke(
        app, ["parse", "play King", "--shapes", str(tmp_path / "missing.yaml")]
    )

    assert result.exit_code == 2
