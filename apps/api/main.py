"""FastAPI wrapper for the shapefill processing pipeline."""

from __future__ import annotations

import importlib.metadata
import json
import logging
import os
import threading
import time
import uuid
from pathlib import Path
from typing import Any

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse
from pydantic import BaseModel, ConfigDict, ValidationError

from apps.cli.io import record_payload, shape_summary
from core.orchestrator.pipeline import NaturalLanguageProcessor
from core.shapes.shape_loader import build_processor, load_shape_book
from core.utils.log_events import log_event

app = FastAPI(title="shapefill API", version="0.1.0")
logger = logging.getLogger("shapefill.api")

_REQUEST_ID_HEADER = "X-Shapefill-Request-Id"
_DEFAULT_MAX_TEXT_CHARS = 10_000


class ProcessRequest(BaseModel):
    """Body of ``POST /v1/process``."""

    model_config = ConfigDict(extra="forbid")

    text: str


class ApiRequestError(Exception):
    def __init__(
        self,
        *,
        status_code: int,
        error_code: str,
        message: str,
        detail: dict[str, Any] | None = None,
    ) -> None:
        super().__init__(message)
        self.status_code = status_code
        self.error_code = error_code
        self.message = message
        self.detail = detail or {}


_processor_lock = threading.Lock()
_processor_cache: tuple[str, NaturalLanguageProcessor] | None = None


@app.middleware("http")
async def request_id_middleware(request: Request, call_next):
    """Ensure every response has a request id header."""

    request_id = uuid.uuid4().hex
    request.state.request_id = request_id
    try:
        response = await call_next(request)
    except Exception:  # noqa: BLE001
        _log_event(
            logging.ERROR,
            "error",
            request_id,
            error_code="INTERNAL_ERROR",
            status_code=500,
            failure_stage="middleware",
        )
        response = _error_response(
            status_code=500,
            error_code="INTERNAL_ERROR",
            message="internal server error",
            request_id=request_id,
            detail={"path": request.url.path},
        )
    response.headers.setdefault(_REQUEST_ID_HEADER, request_id)
    return response


@app.get("/healthz")
async def healthz() -> dict[str, str]:
    """Liveness endpoint."""

    return {"status": "ok"}


@app.get("/v1/meta", response_model=None)
async def meta_v1(request: Request) -> JSONResponse:
    """Registered shapes, their field kinds and the service version."""

    request_id = _request_id_from_request(request)
    if not _meta_enabled():
        return _error_response(
            status_code=404,
            error_code="NOT_FOUND",
            message="meta endpoint is disabled",
            request_id=request_id,
            detail={"path": request.url.path},
        )

    try:
        processor = _get_processor()
    except ApiRequestError as exc:
        return _error_response(
            status_code=exc.status_code,
            error_code=exc.error_code,
            message=exc.message,
            request_id=request_id,
            detail=exc.detail,
        )

    payload = {
        "shapes": [shape_summary(shape) for shape in processor.shapes],
        "version": app.version,
        "build": {"version": _package_version()},
    }
    return JSONResponse(status_code=200, headers={_REQUEST_ID_HEADER: request_id}, content=payload)


@app.post("/v1/process", response_model=None)
async def process_v1(request: Request) -> JSONResponse:
    """Classify one utterance and return the filled record."""

    request_started = time.perf_counter()
    request_id = _request_id_from_request(request)
    failure_stage = "init"

    try:
        failure_stage = "load_shapes"
        processor = _get_processor()

        failure_stage = "validate_body"
        body = await _load_process_request(request)

        _log_event(logging.INFO, "start", request_id, text_chars=len(body.text))

        failure_stage = "process"
        payload = record_payload(processor.process(body.text))

        _log_event(
            logging.INFO,
            "done",
            request_id,
            shape=payload["shape"],
            total_ms=_elapsed_ms(request_started),
        )
        return JSONResponse(
            status_code=200, headers={_REQUEST_ID_HEADER: request_id}, content=payload
        )
    except ApiRequestError as exc:
        _log_event(
            logging.ERROR,
            "error",
            request_id,
            error_code=exc.error_code,
            status_code=exc.status_code,
            failure_stage=failure_stage,
        )
        return _error_response(
            status_code=exc.status_code,
            error_code=exc.error_code,
            message=exc.message,
            request_id=request_id,
            detail=exc.detail,
        )
    except Exception as exc:  # noqa: BLE001
        _log_event(
            logging.ERROR,
            "error",
            request_id,
            error_code="INTERNAL_ERROR",
            status_code=500,
            failure_stage=failure_stage,
        )
        return _error_response(
            status_code=500,
            error_code="INTERNAL_ERROR",
            message="internal server error",
            request_id=request_id,
            detail={"error": str(exc), "total_ms": _elapsed_ms(request_started)},
        )


def _request_id_from_request(request: Request) -> str:
    request_id = getattr(request.state, "request_id", None)
    if isinstance(request_id, str) and request_id:
        return request_id
    generated = uuid.uuid4().hex
    request.state.request_id = generated
    return generated


async def _load_process_request(request: Request) -> ProcessRequest:
    raw_body = await request.body()
    try:
        raw = json.loads(raw_body)
    except (json.JSONDecodeError, UnicodeDecodeError) as exc:
        raise ApiRequestError(
            status_code=400,
            error_code="INVALID_JSON",
            message="request body must be valid JSON",
        ) from exc

    try:
        body = ProcessRequest.model_validate(raw)
    except ValidationError as exc:
        raise ApiRequestError(
            status_code=422,
            error_code="INVALID_BODY",
            message="request body must be {\"text\": string}",
            detail={"errors": exc.errors(include_url=False, include_context=False)},
        ) from exc

    max_chars = _max_text_chars()
    if len(body.text) > max_chars:
        raise ApiRequestError(
            status_code=413,
            error_code="TEXT_TOO_LONG",
            message="text exceeds the configured limit",
            detail={"max_text_chars": max_chars, "text_chars": len(body.text)},
        )
    return body


def _get_processor() -> NaturalLanguageProcessor:
    global _processor_cache

    raw_path = os.getenv("SHAPEFILL_SHAPES_PATH", "").strip()
    if not raw_path:
        raise ApiRequestError(
            status_code=503,
            error_code="SHAPES_NOT_CONFIGURED",
            message="shape book is not configured",
            detail={"env": "SHAPEFILL_SHAPES_PATH"},
        )

    with _processor_lock:
        if _processor_cache is not None and _processor_cache[0] == raw_path:
            return _processor_cache[1]
        try:
            processor = build_processor(load_shape_book(Path(raw_path)))
        except ValueError as exc:
            raise ApiRequestError(
                status_code=503,
                error_code="SHAPES_NOT_CONFIGURED",
                message="shape book could not be loaded",
                detail={"env": "SHAPEFILL_SHAPES_PATH", "error": str(exc)},
            ) from exc
        _processor_cache = (raw_path, processor)
        return processor


def _meta_enabled() -> bool:
    raw = os.getenv("SHAPEFILL_ENABLE_META", "1").strip().lower()
    return raw not in {"0", "false", "off", "no"}


def _max_text_chars() -> int:
    raw = os.getenv("SHAPEFILL_MAX_TEXT_CHARS")
    if raw is None:
        return _DEFAULT_MAX_TEXT_CHARS
    try:
        parsed = int(raw)
    except ValueError:
        return _DEFAULT_MAX_TEXT_CHARS
    return parsed if parsed > 0 else _DEFAULT_MAX_TEXT_CHARS


def _package_version() -> str:
    try:
        return importlib.metadata.version("shapefill")
    except importlib.metadata.PackageNotFoundError:
        return "unknown"


def _error_response(
    *,
    status_code: int,
    error_code: str,
    message: str,
    request_id: str,
    detail: dict[str, Any] | None = None,
) -> JSONResponse:
    payload_detail = dict(detail or {})
    payload_detail["request_id"] = request_id

    return JSONResponse(
        status_code=status_code,
        headers={_REQUEST_ID_HEADER: request_id},
        content={
            "error_code": error_code,
            "message": message,
            "detail": payload_detail,
        },
    )


def _elapsed_ms(start: float) -> int:
    return int((time.perf_counter() - start) * 1000)


def _log_event(level: int, event: str, request_id: str, **fields: Any) -> None:
    log_event(logger, level, event, request_id=request_id, **fields)
