"""CLI I/O helpers for record serialization and atomic output writing."""

from __future__ import annotations

import dataclasses
import importlib
import json
import os
import tempfile
from pathlib import Path
from typing import Any

from pydantic import BaseModel
from pydantic_core import to_jsonable_python

from core.shapes.registry import RecordShape

yaml = importlib.import_module("yaml")

_YAML_SUFFIXES = {".yaml", ".yml"}


def record_payload(record: Any) -> dict[str, Any]:
    """Return ``{"shape": name, "record": values}`` with JSON-safe values.

    Timestamps render as ISO 8601 strings, durations as ISO 8601 durations.
    """

    if isinstance(record, BaseModel):
        values = record.model_dump(mode="json")
    else:
        values = to_jsonable_python(dataclasses.asdict(record))
    return {"shape": type(record).__name__, "record": values}


def shape_summary(shape: RecordShape) -> dict[str, Any]:
    """Describe one registered shape for CLI/API metadata output."""

    return {
        "name": shape.name,
        "fields": {spec.name: spec.kind.value for spec in shape.fields},
        "templates": len(shape.raw_templates),
        "timestamp_format": shape.timestamp_format,
        "timestamp_zone": str(shape.timestamp_zone),
    }


def write_payload_atomic(path: Path, payload: dict[str, Any]) -> None:
    """Write payload atomically; ``.yaml``/``.yml`` paths get YAML, others JSON."""

    path.parent.mkdir(parents=True, exist_ok=True)
    if path.suffix.lower() in _YAML_SUFFIXES:
        _atomic_write_yaml(path, payload)
    else:
        _atomic_write_json(path, payload)


def _atomic_write_json(path: Path, payload: dict[str, Any]) -> None:
    with tempfile.NamedTemporaryFile(
        mode="w",
        encoding="utf-8",
        dir=path.parent,
        delete=False,
        prefix=f"{path.name}.",
        suffix=".tmp",
    ) as tmp:
        tmp_path = Path(tmp.name)
        json.dump(payload, tmp, ensure_ascii=False, sort_keys=True, separators=(",", ":"))

    tmp_path.replace(path)


def _atomic_write_yaml(path: Path, payload: dict[str, Any]) -> None:
    fd, raw_tmp_path = tempfile.mkstemp(
        dir=path.parent,
        prefix=f"{path.name}.",
        suffix=".tmp",
    )
    os.close(fd)
    tmp_path = Path(raw_tmp_path)

    try:
        with tmp_path.open("w", encoding="utf-8") as handle:
            yaml.safe_dump(payload, handle, allow_unicode=True, sort_keys=False)
        tmp_path.replace(path)
    except Exception:
        if tmp_path.exists():
            tmp_path.unlink(missing_ok=True)
        raise
