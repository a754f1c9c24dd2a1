"""Failure kinds raised by the query pipeline.

Every pipeline failure is terminal for its request. The HTTP layer collapses
all of them into the same ``{"error": message}`` envelope; ``kind`` is only
used for logging and metrics.
"""

from __future__ import annotations


class PipelineError(RuntimeError):
    kind = "pipeline"


class DataSourceError(PipelineError):
    kind = "data_source"


class ModelCallError(PipelineError):
    kind = "model_call"


class MalformedModelOutputError(PipelineError):
    kind = "malformed_model_output"


class QueryExecutionError(PipelineError):
    kind = "query_execution"


class SQLValidationError(PipelineError):
    kind = "sql_validation"


__all__ = [
    "PipelineError",
    "DataSourceError",
    "ModelCallError",
    "MalformedModelOutputError",
    "QueryExecutionError",
    "SQLValidationError",
]
