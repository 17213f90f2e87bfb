from __future__ import annotations

import logging
from pathlib import Path

import httpx
import pytest

from apps.api.main import app

BOOK = """\
shapes:
  - name: Song
    fields:
      Name: string
      Artist: string
    templates:
      - play {Name} by {Artist}
"""


async def _post(body: object) -> httpx.Response:
    transport = httpx.ASGITransport(app=app)
    async with httpx.AsyncClient(transport=transport, base_url="http://testserver") as client:
        return await client.post("/v1/process", json=body)


def _api_messages(caplog: pytest.LogCaptureFixture) -> list[str]:
    return [record.message for record in caplog.records if record.name == "shapefill.api"]


@pytest.mark.anyio
async def test_api_logs_request_id_for_success(
    caplog: pytest.LogCaptureFixture, monkeypatch: pytest.MonkeyPatch, tmp_path: Path
) -> None:
    caplog.set_level(logging.INFO, logger="shapefill.api")
    path = tmp_path / "shapes.yaml"
    path.write_text(BOOK, encoding="utf-8")
    monkeypatch.setenv("SHAPEFILL_SHAPES_PATH", str(path))

    response = await _post({"text": "play King by Lauren Aquilina"})

    assert response.status_code == 200
    request_id = response.headers["X-Shapefill-Request-Id"]
    messages = _api_messages(caplog)
    assert any('"event":"start"' in message and request_id in message for message in messages)
    assert any(
        '"event":"done"' in message and request_id in message and '"shape":"Song"' in message
        for message in messages
    )


@pytest.mark.anyio
async def test_api_logs_request_id_and_error_code_for_failure(
    caplog: pytest.LogCaptureFixture, monkeypatch: pytest.MonkeyPatch
) -> None:
    caplog.set_level(logging.INFO, logger="shapefill.api")
    monkeypatch.delenv("SHAPEFILL_SHAPES_PATH", raising=False)

    response = await _post({"text": "play King by Lauren Aquilina"})

    assert response.status_code == 503
    request_id = response.headers["X-Shapefill-Request-Id"]
    messages = _api_messages(caplog)
    assert any(
        '"event":"error"' in message
        and request_id in message
        and '"error_code":"SHAPES_NOT_CONFIGURED"' in message
        and '"failure_stage":"load_shapes"' in message
        for message in messages
    )
