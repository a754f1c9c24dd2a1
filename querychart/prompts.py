"""Prompt rendering for the two model calls.

Both builders are pure: the same inputs always render the same string.
"""

from __future__ import annotations

import json
from typing import Any, Dict, Mapping, Sequence

from .models import ChartType, SchemaDescriptor

DEFAULT_FACT_TABLE = "fact_transactions"
DEFAULT_ROW_LIMIT = 100

_TRANSLATION_TEMPLATE = """You are a PostgreSQL expert. Given this star schema:

{schema}

Generate ONLY a valid PostgreSQL query for: "{question}"

Rules:
- Return ONLY the SQL query, no explanations
- Use proper JOINs between {fact_table} and dimensions
- Limit results to {row_limit} rows if not aggregating
- Use appropriate aggregations for analytical queries"""

_CHART_TEMPLATE = """Given this data from query "{question}":

Columns: {columns}
Sample row: {sample_row}

Return ONLY a JSON object with:
{{
  "chartType": "{chart_types}",
  "dataKey": "x-axis field name",
  "valueKeys": ["metric1", "metric2"],
  "title": "Chart title"
}}

Choose the best chart type for this data. Return ONLY valid JSON."""

CHART_DESCRIPTOR_SCHEMA: Dict[str, Any] = {
    "$schema": "http://json-schema.org/draft-07/schema#",
    "type": "object",
    "required": ["chartType", "dataKey", "valueKeys", "title"],
    "properties": {
        "chartType": {"type": "string", "enum": [t.value for t in ChartType]},
        "dataKey": {"type": "string", "minLength": 1},
        "valueKeys": {
            "type": "array",
            "minItems": 1,
            "items": {"type": "string", "minLength": 1},
        },
        "title": {"type": "string"},
    },
}


def render_schema(schema: SchemaDescriptor) -> str:
    blocks = []
    for table, columns in schema.items():
        lines = [f"{table}:"]
        lines.extend(f"{col.name} ({col.data_type})" for col in columns)
        blocks.append("\n".join(lines))
    return "\n\n".join(blocks)


def build_translation_prompt(
    schema: SchemaDescriptor,
    question: str,
    fact_table: str = DEFAULT_FACT_TABLE,
    row_limit: int = DEFAULT_ROW_LIMIT,
) -> str:
    return _TRANSLATION_TEMPLATE.format(
        schema=render_schema(schema),
        question=question,
        fact_table=fact_table,
        row_limit=row_limit,
    )


def build_chart_prompt(question: str, field_names: Sequence[str], sample_row: Mapping[str, Any]) -> str:
    return _CHART_TEMPLATE.format(
        question=question,
        columns=", ".join(field_names),
        sample_row=json.dumps(dict(sample_row), default=str, separators=(",", ":")),
        chart_types="|".join(t.value for t in ChartType),
    )


__all__ = [
    "CHART_DESCRIPTOR_SCHEMA",
    "render_schema",
    "build_translation_prompt",
    "build_chart_prompt",
]
