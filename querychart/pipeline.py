from __future__ import annotations

from .chart_inference import ChartInferenceBuilder
from .composer import compose_success
from .config import CatalogConfig, SQLGuardConfig
from .db import Database
from .errors import PipelineError
from .executor import QueryExecutor
from .logging_utils import get_logger
from .models import QueryResponse
from .observability import REQUEST_COUNTER, record_latency
from .prompts import build_translation_prompt
from .schema_catalog import SchemaCatalog
from .sql_guard import SQLGuard
from .translator import QueryTranslator

logger = get_logger(__name__)


class QueryPipeline:
    """Question -> schema -> SQL -> rows -> chart descriptor.

    Stages run strictly in order. A pooled connection is borrowed only for
    the two database stages, never across a model call. The first failure
    aborts the request; nothing is retried.
    """

    def __init__(
        self,
        catalog_cfg: CatalogConfig,
        guard_cfg: SQLGuardConfig,
        database: Database,
        catalog: SchemaCatalog,
        translator: QueryTranslator,
        sql_guard: SQLGuard,
        executor: QueryExecutor,
        chart_builder: ChartInferenceBuilder,
    ):
        self._catalog_cfg = catalog_cfg
        self._guard_cfg = guard_cfg
        self._db = database
        self._catalog = catalog
        self._translator = translator
        self._sql_guard = sql_guard
        self._executor = executor
        self._chart_builder = chart_builder

    async def handle(self, question: str) -> QueryResponse:
        try:
            response = await self._run(question)
        except PipelineError as exc:
            REQUEST_COUNTER.labels(status=exc.kind).inc()
            logger.warning("pipeline_failed", kind=exc.kind, error=str(exc))
            raise
        REQUEST_COUNTER.labels(status="success").inc()
        return response

    async def _run(self, question: str) -> QueryResponse:
        with record_latency("total"):
            with record_latency("schema"):
                async with self._db.connection() as conn:
                    schema = await self._catalog.read(conn)
            prompt = build_translation_prompt(
                schema,
                question,
                fact_table=self._catalog_cfg.fact_table,
                row_limit=self._guard_cfg.row_limit,
            )
            with record_latency("translation"):
                sql = await self._translator.translate(prompt)
            sql = self._sql_guard.apply(sql)
            with record_latency("execution"):
                async with self._db.connection() as conn:
                    result = await self._executor.execute(conn, sql)
            with record_latency("chart_inference"):
                chart = await self._chart_builder.infer(question, result.field_names, result.sample_row)
        return compose_success(sql, result, chart)


__all__ = ["QueryPipeline"]
