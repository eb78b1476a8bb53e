"""FastAPI application exposing the export controller over JSON."""

from __future__ import annotations

import logging
from typing import Any

from fastapi import FastAPI, Request, status as http_status
from fastapi.responses import JSONResponse
from pydantic import BaseModel, Field

from mail_exporter.controller import ExportController, describe_error, describe_report
from mail_exporter.core import AppSettings, load_app_settings
from mail_exporter.core.interfaces import (
    AuthError,
    ConnectTimeoutError,
    ExportAbortedError,
    ExportError,
    FetchError,
    MailExporterError,
    NotConnectedError,
    OperationInProgressError,
    ParseError,
    SearchError,
    TemplateError,
)
from mail_exporter.core.models import ExportReport, PredicateDescriptor

LOGGER = logging.getLogger(__name__)

# Most specific first; the first matching class decides the status code.
_STATUS_BY_ERROR: tuple[tuple[type[MailExporterError], int], ...] = (
    (AuthError, http_status.HTTP_401_UNAUTHORIZED),
    (ConnectTimeoutError, http_status.HTTP_504_GATEWAY_TIMEOUT),
    (NotConnectedError, http_status.HTTP_409_CONFLICT),
    (OperationInProgressError, http_status.HTTP_409_CONFLICT),
    (ParseError, 422),
    (SearchError, http_status.HTTP_502_BAD_GATEWAY),
    (FetchError, http_status.HTTP_502_BAD_GATEWAY),
    (ExportAbortedError, http_status.HTTP_500_INTERNAL_SERVER_ERROR),
    (TemplateError, http_status.HTTP_500_INTERNAL_SERVER_ERROR),
    (ExportError, http_status.HTTP_400_BAD_REQUEST),
)


class ConnectRequest(BaseModel):
    """Credentials and optional overrides for the IMAP connection."""

    password: str
    host: str | None = None
    port: int | None = Field(default=None, ge=1, le=65535)
    username: str | None = None
    use_tls: bool | None = None


class SearchRequest(BaseModel):
    """Predicate name and one textual value per parameter."""

    predicate: str
    values: list[str | None] = Field(default_factory=list)


def create_app(
    settings: AppSettings | None = None,
    controller: ExportController | None = None,
) -> FastAPI:
    """Create the FastAPI application around a single controller."""
    app_settings = settings or load_app_settings()
    export_controller = controller or ExportController(app_settings)

    app = FastAPI(title="Mail Exporter")
    app.state.settings = app_settings
    app.state.controller = export_controller

    @app.exception_handler(MailExporterError)
    async def handle_error(request: Request, exc: MailExporterError) -> JSONResponse:
        del request
        title, message = describe_error(exc)
        payload: dict[str, Any] = {"title": title, "message": message}
        if isinstance(exc, ExportAbortedError):
            payload["report"] = _serialize_report(exc.report)
        LOGGER.info("Request failed: %s: %s", title, message)
        return JSONResponse(status_code=_status_for(exc), content=payload)

    @app.get("/api/predicates")
    async def predicates() -> list[dict[str, Any]]:
        return [_serialize_predicate(item) for item in export_controller.predicates]

    @app.get("/api/session")
    async def session_state() -> dict[str, Any]:
        return _serialize_state(export_controller)

    @app.post("/api/session")
    async def connect(body: ConnectRequest) -> dict[str, Any]:
        await export_controller.connect(
            body.password,
            host=body.host,
            port=body.port,
            username=body.username,
            use_tls=body.use_tls,
        )
        return _serialize_state(export_controller)

    @app.delete("/api/session")
    async def disconnect() -> dict[str, Any]:
        await export_controller.disconnect()
        return _serialize_state(export_controller)

    @app.post("/api/search")
    async def search(body: SearchRequest) -> dict[str, Any]:
        result = await export_controller.search(body.predicate, body.values)
        return {
            "predicate": result.predicate_name,
            "count": len(result),
            "ids": list(result.ids),
        }

    @app.get("/api/download")
    async def download_progress() -> dict[str, Any]:
        progress = export_controller.progress
        return {
            "running": export_controller.operation == "download",
            "done": progress.done if progress else 0,
            "total": progress.total if progress else 0,
        }

    @app.post("/api/download")
    async def download() -> dict[str, Any]:
        report = await export_controller.download()
        total = len(export_controller.result or ())
        title, message = describe_report(report, total)
        return {"title": title, "message": message, **_serialize_report(report)}

    @app.post("/api/download/cancel")
    async def cancel_download() -> dict[str, bool]:
        return {"cancelled": export_controller.cancel_download()}

    return app


def _status_for(exc: MailExporterError) -> int:
    for error_type, code in _STATUS_BY_ERROR:
        if isinstance(exc, error_type):
            return code
    return http_status.HTTP_400_BAD_REQUEST


def _serialize_predicate(descriptor: PredicateDescriptor) -> dict[str, Any]:
    return {
        "name": descriptor.name,
        "description": descriptor.description,
        "parameters": [
            {"name": spec.name, "kind": spec.kind.value}
            for spec in descriptor.parameters
        ],
    }


def _serialize_state(controller: ExportController) -> dict[str, Any]:
    result = controller.result
    return {
        "state": controller.session_state.value,
        "operation": controller.operation,
        "found": len(result) if result is not None else 0,
    }


def _serialize_report(report: ExportReport) -> dict[str, Any]:
    return {
        "total": report.total,
        "succeeded": report.succeeded,
        "failed": report.failed,
        "path": str(report.path) if report.path else None,
        "outcomes": [
            {
                "index": outcome.index,
                "uid": outcome.uid,
                "path": str(outcome.path) if outcome.path else None,
                "error": outcome.error,
            }
            for outcome in report.outcomes
        ],
    }


__all__ = ["ConnectRequest", "SearchRequest", "create_app"]
