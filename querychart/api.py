from __future__ import annotations

import pathlib
from contextlib import asynccontextmanager
from typing import Optional

import asyncpg
from fastapi import Depends, FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from fastapi.staticfiles import StaticFiles

from . import __version__
from .chart_inference import ChartInferenceBuilder
from .composer import compose_error
from .config import Settings, get_api_key, get_settings
from .db import Database
from .errors import PipelineError
from .executor import QueryExecutor
from .insights import UnknownInsightError, get_insight_sql, insight_types
from .llm_client import LLMClient, build_llm_client
from .logging_utils import configure_logging, get_logger
from .models import (
    ErrorResponse,
    ExecuteRequest,
    ExecuteResponse,
    FieldDescriptor,
    InsightResponse,
    QueryRequest,
    QueryResponse,
)
from .observability import init_metrics_server
from .pipeline import QueryPipeline
from .schema_catalog import SchemaCatalog
from .sql_guard import SQLGuard
from .translator import QueryTranslator

logger = get_logger(__name__)

_ERROR_RESPONSES = {
    400: {"model": ErrorResponse},
    500: {"model": ErrorResponse},
}


def _error(status_code: int, exc_or_message) -> JSONResponse:
    if isinstance(exc_or_message, BaseException):
        body = compose_error(exc_or_message)
    else:
        body = ErrorResponse(error=exc_or_message).model_dump()
    return JSONResponse(status_code=status_code, content=body)


def create_app(
    settings: Settings | None = None,
    database: Optional[Database] = None,
    llm_client: Optional[LLMClient] = None,
) -> FastAPI:
    settings = settings or get_settings()
    configure_logging(settings.app.log_level, settings.app.log_format)
    init_metrics_server(settings.observability)

    db = database or Database(settings.postgres)
    llm = llm_client or build_llm_client(settings.llm, get_api_key(settings.llm))

    catalog = SchemaCatalog(settings.catalog)
    executor = QueryExecutor(settings.postgres)
    sql_guard = SQLGuard(settings.sql_guard)
    pipeline = QueryPipeline(
        settings.catalog,
        settings.sql_guard,
        db,
        catalog,
        QueryTranslator(llm),
        sql_guard,
        executor,
        ChartInferenceBuilder(llm),
    )

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        logger.info("app_started", environment=settings.environment)
        yield
        await db.close()
        await llm.aclose()
        logger.info("app_shutdown")

    app = FastAPI(title="querychart", version=__version__, lifespan=lifespan)
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.app.cors_origins,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    @app.exception_handler(PipelineError)
    async def _pipeline_error_handler(request: Request, exc: PipelineError) -> JSONResponse:
        logger.warning("request_failed", path=request.url.path, kind=exc.kind, error=str(exc))
        return _error(500, exc)

    @app.exception_handler(RequestValidationError)
    async def _validation_error_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
        return _error(400, "Invalid request body")

    async def get_pipeline() -> QueryPipeline:
        return pipeline

    @app.get("/health")
    async def health() -> JSONResponse:
        try:
            conn = await db.acquire()
            try:
                await conn.fetchval("SELECT 1")
            finally:
                await db.release(conn)
        except (asyncpg.PostgresError, asyncpg.InterfaceError, OSError) as exc:
            logger.warning("health_check_failed", error=str(exc))
            return JSONResponse(status_code=500, content={"status": "error", "db": "disconnected"})
        return JSONResponse(content={"status": "ok", "db": "connected"})

    @app.get("/api/schema", responses=_ERROR_RESPONSES)
    async def get_schema():
        async with db.connection() as conn:
            return await catalog.list_columns(conn)

    @app.post("/api/query", response_model=QueryResponse, responses=_ERROR_RESPONSES)
    async def run_query(
        request: QueryRequest,
        pipeline: QueryPipeline = Depends(get_pipeline),
    ):
        question = request.question or ""
        if not question.strip():
            return _error(400, "Question is required")
        try:
            return await pipeline.handle(question)
        except PipelineError as exc:
            return _error(500, exc)
        except Exception as exc:  # noqa: BLE001
            logger.exception("query_failed", error=str(exc))
            return _error(500, exc)

    @app.post("/api/execute", response_model=ExecuteResponse, responses=_ERROR_RESPONSES)
    async def execute_sql(request: ExecuteRequest):
        sql = (request.sql or "").strip()
        if not sql:
            return _error(400, "SQL query is required")
        try:
            guarded = sql_guard.apply(sql)
            async with db.connection() as conn:
                result = await executor.execute(conn, guarded)
        except PipelineError as exc:
            return _error(500, exc)
        return ExecuteResponse(
            data=result.rows,
            row_count=len(result.rows),
            fields=[FieldDescriptor(name=f.name, type=f.type) for f in result.fields],
        )

    @app.get(
        "/api/insights/{kind}",
        response_model=InsightResponse,
        responses={404: {"model": ErrorResponse}, **_ERROR_RESPONSES},
    )
    async def get_insight(kind: str):
        try:
            sql = get_insight_sql(kind)
        except UnknownInsightError:
            return _error(404, f"Unknown insight type '{kind}'. Expected one of: {', '.join(insight_types())}")
        try:
            async with db.connection() as conn:
                result = await executor.execute(conn, sql)
        except PipelineError as exc:
            return _error(500, exc)
        return InsightResponse(data=result.rows)

    static_dir = pathlib.Path(settings.app.static_dir)
    if static_dir.is_dir():
        app.mount("/", StaticFiles(directory=static_dir, html=True), name="static")

    return app


__all__ = ["create_app"]
