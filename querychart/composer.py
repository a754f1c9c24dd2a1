from __future__ import annotations

from typing import Dict

from .models import ChartDescriptor, ErrorResponse, QueryResponse, QueryResult


def compose_success(query: str, result: QueryResult, chart: ChartDescriptor) -> QueryResponse:
    return QueryResponse(
        query=query,
        data=result.rows,
        chart_config=chart,
        row_count=len(result.rows),
    )


def compose_error(exc: BaseException) -> Dict[str, str]:
    """Flat failure envelope; the error kind is not part of it."""
    message = str(exc) or exc.__class__.__name__
    return ErrorResponse(error=message).model_dump()


__all__ = ["compose_success", "compose_error"]
