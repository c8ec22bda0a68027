"""
HTTP CRUD surface for name records.

The store is selected once in the app lifespan and closed when the server
shuts down. Handlers are plain `def` functions so FastAPI runs them in its
threadpool against the blocking store interface.
"""

from __future__ import annotations

import logging
from contextlib import asynccontextmanager
from typing import List, Optional

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse, PlainTextResponse, Response
from pydantic import BaseModel

from app.core.settings import Settings
from errors import (
    BackendUnavailableError,
    ErrorCategory,
    RecordNotFoundError,
    RecordsError,
    RecordValidationError,
    classify_exception,
    json_error_response,
)
from observability import build_log_context, log_event
from observability.tracing import setup_fastapi_tracing
from stores import DEFAULT_RECORD_TYPE, DEFAULT_TTL_SECONDS, Record, RecordStore, get_record_store

logger = logging.getLogger(__name__)

API_CTX = build_log_context(tool="api_server")

_STATUS_BY_CATEGORY = {
    ErrorCategory.VALIDATION: 400,
    ErrorCategory.NOT_FOUND: 404,
    ErrorCategory.SYSTEM: 500,
}


class RecordPayload(BaseModel):
    """Request body for create/update. Every field is optional at parse time."""

    name: str = ""
    type: str = ""
    values: List[str] = []
    ttl: int = 0


def build_record(payload: RecordPayload, name: Optional[str] = None) -> Record:
    """
    Validate a payload and apply defaults before it reaches the store.

    `name`, when given, comes from the URL and overrides the body.
    """
    record_name = name if name is not None else payload.name
    missing = []
    if not record_name:
        missing.append("name")
    if not payload.values:
        missing.append("values")
    if missing:
        raise RecordValidationError(missing, name=record_name or None)

    return Record(
        name=record_name,
        type=payload.type or DEFAULT_RECORD_TYPE,
        values=payload.values,
        ttl=payload.ttl if payload.ttl > 0 else DEFAULT_TTL_SECONDS,
    )


def status_for(error: RecordsError) -> int:
    if isinstance(error, BackendUnavailableError):
        return 503
    return _STATUS_BY_CATEGORY.get(error.category, 500)


def get_store(request: Request) -> RecordStore:
    return request.app.state.store


def create_app(store: Optional[RecordStore] = None, settings: Optional[Settings] = None) -> FastAPI:
    """
    Build the FastAPI application.

    With no `store`, the lifespan selects one from settings and closes it on
    shutdown. A store passed in is owned by the caller and left open.
    """

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        if store is not None:
            app.state.store = store
            yield
            return

        cfg = settings or Settings()
        selected = get_record_store(cfg.store_config())
        app.state.store = selected
        try:
            yield
        finally:
            selected.close()
            log_event("record_store_closed", ctx=API_CTX)

    app = FastAPI(title="PolyCloud DNS Records API", lifespan=lifespan)
    setup_fastapi_tracing(app)

    @app.exception_handler(RecordsError)
    async def records_error_handler(request: Request, exc: RecordsError):
        status = status_for(exc)
        if status >= 500:
            logger.error(f"{request.method} {request.url.path} failed: {exc}")
            log_event("record_store_error", ctx=API_CTX, data={"path": request.url.path, "error": exc.to_dict()})
        return JSONResponse(status_code=status, content=json_error_response(exc))

    @app.exception_handler(RequestValidationError)
    async def request_validation_handler(request: Request, exc: RequestValidationError):
        fields = sorted({str(err["loc"][-1]) for err in exc.errors() if err.get("loc")}) or ["body"]
        error = RecordValidationError(fields, message="Invalid request body")
        return JSONResponse(status_code=400, content=json_error_response(error))

    @app.exception_handler(Exception)
    async def unexpected_error_handler(request: Request, exc: Exception):
        error = classify_exception(exc)
        logger.exception(f"Unhandled error on {request.method} {request.url.path}")
        return JSONResponse(status_code=status_for(error), content=json_error_response(error))

    @app.get("/healthz", response_class=PlainTextResponse)
    def healthz(request: Request):
        if get_store(request).ping():
            return PlainTextResponse("OK")
        return PlainTextResponse("UNAVAILABLE", status_code=503)

    @app.get("/records")
    def list_records(request: Request):
        records = get_store(request).list()
        return {"records": [r.to_dict() for r in records]}

    @app.post("/records", status_code=201)
    def create_record(payload: RecordPayload, request: Request):
        record = build_record(payload)
        get_store(request).put(record)
        return record.to_dict()

    @app.get("/records/{name}")
    def get_record(name: str, request: Request):
        record = get_store(request).get(name)
        if record is None:
            raise RecordNotFoundError(name)
        return record.to_dict()

    @app.put("/records/{name}")
    def update_record(name: str, payload: RecordPayload, request: Request):
        record = build_record(payload, name=name)
        get_store(request).put(record)
        return record.to_dict()

    @app.delete("/records/{name}", status_code=204)
    def delete_record(name: str, request: Request):
        get_store(request).delete(name)
        return Response(status_code=204)

    return app


app = create_app()
