from __future__ import annotations

import dataclasses
from datetime import datetime, timezone
from pathlib import Path

import pytest

from core.shapes.models import ValueKind
from core.shapes.shape_loader import build_processor, build_record_type, load_shape_book
from core.utils.errors import MistypedFieldError

BOOK = """\
shapes:
  - name: Song
    fields:
      Name: string
      Artist: string
    templates:
      - play {Name} by {Artist}
      - play {Name} from {Artist}
  - name: Reminder
    fields:
      Text: string
      At: timestamp
      Every: duration
    templates:
      - remind me to {Text} at {At}
      - remind me to {Text} every {Every}
    timestamp_zone: UTC
"""


def _write(tmp_path: Path, text: str) -> Path:
    path = tmp_path / "shapes.yaml"
    path.write_text(text, encoding="utf-8")
    return path


def test_load_shape_book_keeps_declaration_order(tmp_path: Path) -> None:
    book = load_shape_book(_write(tmp_path, BOOK))

    assert [shape.name for shape in book.shapes] == ["Song", "Reminder"]
    reminder = book.shapes[1]
    assert list(reminder.fields) == ["Text", "At", "Every"]
    assert reminder.fields["At"] is ValueKind.TIMESTAMP
    assert reminder.timestamp_zone == "UTC"
    assert reminder.timestamp_format is None


def test_build_record_type_declares_fields_in_order(tmp_path: Path) -> None:
    book = load_shape_book(_write(tmp_path, BOOK))

    record_type = build_record_type(book.shapes[1])

    assert record_type.__name__ == "Reminder"
    assert [item.name for item in dataclasses.fields(record_type)] == ["Text", "At", "Every"]


def test_build_processor_applies_shape_options(tmp_path: Path) -> None:
    processor = build_processor(load_shape_book(_write(tmp_path, BOOK)))

    song, reminder = processor.shapes
    assert song.learned and reminder.learned
    assert str(reminder.timestamp_zone) == "UTC"

    record = reminder.fit("remind me to stretch at 03-01-2025_9:15am")
    assert record.Text == "stretch"
    assert record.At == datetime(2025, 3, 1, 9, 15, tzinfo=timezone.utc)


def test_load_shape_book_missing_file(tmp_path: Path) -> None:
    with pytest.raises(ValueError, match="Shape book not found"):
        load_shape_book(tmp_path / "missing.yaml")


def test_load_shape_book_invalid_yaml(tmp_path: Path) -> None:
    with pytest.raises(ValueError, match="Invalid YAML"):
        load_shape_book(_write(tmp_path, "shapes: [\n"))


def test_load_shape_book_requires_mapping(tmp_path: Path) -> None:
    with pytest.raises(ValueError, match="must contain a mapping"):
        load_shape_book(_write(tmp_path, "- Song\n"))


@pytest.mark.parametrize(
    "book",
    [
        "shapes: []\n",
        "shapes:\n  - name: Song\n    fields: {Name: text}\n    templates: ['{Name}']\n",
        "shapes:\n  - name: class\n    fields: {Name: string}\n    templates: ['{Name}']\n",
        "shapes:\n  - name: Song\n    fields: {_Name: string}\n    templates: ['{Name}']\n",
        "shapes:\n  - name: Song\n    fields: {Name: string}\n    templates: []\n",
        "shapes:\n  - name: Song\n    fields: {Name: string}\n    templates: ['{Name}']\n"
        "    layout: x\n",
    ],
)
def test_load_shape_book_rejects_invalid_schema(tmp_path: Path, book: str) -> None:
    with pytest.raises(ValueError, match="Invalid shape book schema"):
        load_shape_book(_write(tmp_path, book))


def test_build_processor_reports_mistyped_template(tmp_path: Path) -> None:
    book = load_shape_book(
        _write(
            tmp_path,
            "shapes:\n  - name: Song\n    fields: {Name: string}\n"
            "    templates: ['play {Title}']\n",
        )
    )

    with pytest.raises(MistypedFieldError, match="Title"):
        build_processor(book)
