"""actiongate HTTP gateway - approval lifecycle over JSON."""

from __future__ import annotations

import asyncio
import sys
import time
from collections.abc import Callable
from contextlib import asynccontextmanager
from datetime import timedelta
from typing import Any, TypeVar

from fastapi import FastAPI, Query, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from pydantic import BaseModel, ConfigDict, Field
from starlette.responses import Response

from actiongate.config.settings import Settings
from actiongate.core.engine import ApprovalEngine
from actiongate.core.exceptions import (
    ActionGateError,
    ApprovalExpiredError,
    ApprovalNotFoundError,
    InvalidTransitionError,
    ValidationError,
)
from actiongate.core.structured_logger import TraceContext, get_logger
from actiongate.core.types import ApprovalRecord
from actiongate.observability.cleanup_service import CleanupService
from actiongate.observability.metrics import CONTENT_TYPE_LATEST
from actiongate.persistence.repositories import normalize_id

logger = get_logger("ApprovalGateway")

T = TypeVar("T")


class ProposeRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    summary: str = Field(..., min_length=1)
    commands: list[str] = Field(..., min_length=1)
    details: str | None = None
    env: dict[str, str] | None = None
    expiry_minutes: float | None = Field(None, alias="expiryMinutes", gt=0)
    channel: str | None = None
    chat_id: str | None = Field(None, alias="chatId")
    actor: str | None = None


class ActorRequest(BaseModel):
    actor: str | None = None


class BatchRequest(BaseModel):
    ids: list[str] | str
    actor: str | None = None


class CleanRequest(BaseModel):
    days: float | None = Field(None, ge=0)


def _record_body(record: ApprovalRecord) -> dict[str, Any]:
    return record.to_dict()


def _error_body(exc: ActionGateError, code: str) -> dict[str, Any]:
    return {"error": {"message": exc.message, "code": code, "error_code": int(exc.error_code)}}


class ApprovalGateway:
    """
    FastAPI application exposing an ``ApprovalEngine``.

    Engine calls are blocking file and subprocess work, so every route hands
    them to a worker thread.
    """

    def __init__(self, engine: ApprovalEngine, settings: Settings) -> None:
        self.engine = engine
        self.settings = settings
        self.cleanup_service: CleanupService | None = None
        if settings.cleanup.enabled:
            self.cleanup_service = CleanupService.from_config(
                engine, settings.cleanup, settings.approvals.clean_older_than_days
            )
        self._server = None
        self.app = self._build_app()

    async def _call(self, func: Callable[..., T], *args: Any, **kwargs: Any) -> T:
        with TraceContext():
            return await asyncio.to_thread(func, *args, **kwargs)

    def _build_app(self) -> FastAPI:
        @asynccontextmanager
        async def lifespan(app: FastAPI):
            if self.cleanup_service is not None:
                await self.cleanup_service.start()
            try:
                yield
            finally:
                if self.cleanup_service is not None:
                    await self.cleanup_service.stop()

        app = FastAPI(title="actiongate", version=self.settings.version, lifespan=lifespan)
        self._register_exception_handlers(app)
        self._register_routes(app)
        return app

    def _register_exception_handlers(self, app: FastAPI) -> None:
        @app.exception_handler(ApprovalNotFoundError)
        async def not_found_handler(request: Request, exc: ApprovalNotFoundError):
            return JSONResponse(status_code=404, content=_error_body(exc, "not_found"))

        @app.exception_handler(InvalidTransitionError)
        async def invalid_transition_handler(request: Request, exc: InvalidTransitionError):
            body = _error_body(exc, "invalid_transition")
            body["error"]["status"] = exc.current_status
            return JSONResponse(status_code=409, content=body)

        @app.exception_handler(ApprovalExpiredError)
        async def expired_handler(request: Request, exc: ApprovalExpiredError):
            return JSONResponse(status_code=410, content=_error_body(exc, "expired"))

        @app.exception_handler(ValidationError)
        async def validation_handler(request: Request, exc: ValidationError):
            return JSONResponse(status_code=400, content=_error_body(exc, "validation_error"))

        @app.exception_handler(RequestValidationError)
        async def request_validation_handler(request: Request, exc: RequestValidationError):
            first = exc.errors()[0] if exc.errors() else {}
            field = ".".join(str(p) for p in first.get("loc", ()) if p != "body")
            message = f"{field}: {first.get('msg', 'invalid request')}" if field else "Invalid request"
            return JSONResponse(
                status_code=400,
                content={"error": {"message": message, "code": "validation_error", "error_code": 1001}},
            )

        @app.exception_handler(ActionGateError)
        async def actiongate_error_handler(request: Request, exc: ActionGateError):
            logger.error("Gateway request failed", path=request.url.path, error_type=type(exc).__name__, error=exc.message)
            return JSONResponse(status_code=500, content=_error_body(exc, "internal_error"))

    def _register_routes(self, app: FastAPI) -> None:
        self._register_collection_routes(app)
        self._register_record_routes(app)
        self._register_utility_routes(app)

    def _register_collection_routes(self, app: FastAPI) -> None:
        @app.get("/approvals")
        async def list_approvals(include_all: bool = Query(False, alias="all")):
            records = await self._call(self.engine.list, include_all)
            return {"count": len(records), "approvals": [_record_body(r) for r in records]}

        @app.post("/approvals", status_code=201)
        async def propose(payload: ProposeRequest):
            if not all(c.strip() for c in payload.commands):
                raise ValidationError("commands must not contain empty entries")
            ttl = timedelta(minutes=payload.expiry_minutes) if payload.expiry_minutes else None
            record = await self._call(
                self.engine.propose,
                payload.summary,
                payload.commands,
                details=payload.details,
                ttl=ttl,
                env=payload.env,
                channel=payload.channel,
                chat_id=payload.chat_id,
                proposed_by=payload.actor,
            )
            return _record_body(record)

        @app.post("/approvals/batch")
        async def batch(payload: BatchRequest):
            if not payload.ids:
                raise ValidationError("ids must not be empty")
            result = await self._call(self.engine.batch, payload.ids, payload.actor)
            return {
                "approved": [_record_body(r) for r in result.approved],
                "errors": [e.to_dict() for e in result.errors],
            }

        @app.post("/approvals/clean")
        async def clean(payload: CleanRequest | None = None):
            days = payload.days if payload and payload.days is not None else self.settings.approvals.clean_older_than_days
            removed = await self._call(self.engine.clean, days)
            return {"removed": removed}

        @app.get("/approvals/history")
        async def history(limit: int | None = None):
            if limit is not None and limit < 1:
                raise ValidationError("limit must be at least 1")
            entries = await self._call(self.engine.read_audit_log, limit or self.settings.approvals.history_limit)
            return {"count": len(entries), "entries": [e.to_dict() for e in entries]}

        @app.get("/approvals/stats")
        async def stats():
            result = await self._call(self.engine.stats)
            return result.to_dict()

    def _register_record_routes(self, app: FastAPI) -> None:
        @app.get("/approvals/{approval_id}")
        async def get_approval(approval_id: str):
            record = await self._call(self.engine.load, approval_id)
            if record is None:
                raise ApprovalNotFoundError(normalize_id(approval_id))
            return _record_body(record)

        @app.post("/approvals/{approval_id}/approve")
        async def approve(approval_id: str, payload: ActorRequest | None = None):
            record = await self._call(self.engine.approve, approval_id, payload.actor if payload else None)
            return _record_body(record)

        @app.post("/approvals/{approval_id}/deny")
        async def deny(approval_id: str, payload: ActorRequest | None = None):
            record = await self._call(self.engine.deny, approval_id, payload.actor if payload else None)
            return _record_body(record)

        @app.post("/approvals/{approval_id}/execute")
        async def execute(approval_id: str):
            record = await self._call(self.engine.execute, approval_id)
            return _record_body(record)

        @app.post("/approvals/{approval_id}/approve-and-execute")
        async def approve_and_execute(approval_id: str, payload: ActorRequest | None = None):
            record = await self._call(
                self.engine.approve_and_execute, approval_id, payload.actor if payload else None
            )
            return _record_body(record)

    def _register_utility_routes(self, app: FastAPI) -> None:
        @app.get("/metrics")
        async def metrics():
            content = self.engine.metrics.render() if self.engine.metrics is not None else b""
            return Response(content=content, media_type=CONTENT_TYPE_LATEST)

        @app.get("/health")
        async def health():
            import actiongate as _actiongate

            store_dir = self.settings.store.approvals_dir
            return {
                "status": "ok",
                "version": getattr(_actiongate, "__version__", "unknown"),
                "build": {
                    "python_version": sys.version.split()[0],
                    "timestamp": time.strftime("%Y-%m-%dT%H:%M:%SZ", time.gmtime()),
                },
                "store": str(store_dir),
                "cleanup": "running" if self.cleanup_service and self.cleanup_service.running else "stopped",
            }

    async def start(self) -> None:
        import uvicorn

        config = uvicorn.Config(
            self.app,
            host=self.settings.web.host,
            port=self.settings.web.port,
            log_level=self.settings.logging.level.lower(),
        )
        self._server = uvicorn.Server(config)
        logger.info("Gateway listening", host=self.settings.web.host, port=self.settings.web.port)
        await self._server.serve()

    async def stop(self) -> None:
        if self._server:
            self._server.should_exit = True


def create_app(engine: ApprovalEngine | None = None, settings: Settings | None = None) -> FastAPI:
    return create_gateway(engine, settings).app


def create_gateway(engine: ApprovalEngine | None = None, settings: Settings | None = None) -> ApprovalGateway:
    if settings is None:
        from actiongate.config.settings import load_settings

        settings = load_settings()
    if engine is None:
        from actiongate.core.factories import create_approval_engine

        engine = create_approval_engine(settings)
    return ApprovalGateway(engine, settings)
