from __future__ import annotations

import json

from querychart.models import ColumnInfo
from querychart.prompts import build_chart_prompt, build_translation_prompt, render_schema

STUB_SCHEMA = {
    "dim_date": [ColumnInfo("full_date", "date")],
    "fact_transactions": [ColumnInfo("amount", "numeric"), ColumnInfo("date_key", "integer")],
}


def test_render_schema_separates_tables_with_blank_line() -> None:
    assert render_schema(STUB_SCHEMA) == (
        "dim_date:\nfull_date (date)\n\n"
        "fact_transactions:\namount (numeric)\ndate_key (integer)"
    )


def test_translation_prompt_embeds_schema_question_and_rules() -> None:
    prompt = build_translation_prompt(STUB_SCHEMA, "total amount per day")
    assert render_schema(STUB_SCHEMA) in prompt
    assert 'Generate ONLY a valid PostgreSQL query for: "total amount per day"' in prompt
    assert "- Return ONLY the SQL query, no explanations" in prompt
    assert "- Use proper JOINs between fact_transactions and dimensions" in prompt
    assert "- Limit results to 100 rows if not aggregating" in prompt
    assert "- Use appropriate aggregations for analytical queries" in prompt


def test_translation_prompt_is_deterministic() -> None:
    first = build_translation_prompt(STUB_SCHEMA, "top merchants")
    second = build_translation_prompt(dict(STUB_SCHEMA), "top merchants")
    assert first == second


def test_translation_prompt_uses_configured_fact_table_and_limit() -> None:
    prompt = build_translation_prompt(STUB_SCHEMA, "q", fact_table="fact_sales", row_limit=25)
    assert "between fact_sales and dimensions" in prompt
    assert "Limit results to 25 rows" in prompt


def test_chart_prompt_lists_columns_and_sample_row() -> None:
    prompt = build_chart_prompt("daily totals", ["full_date", "total"], {"full_date": "2024-01-01", "total": 500})
    assert 'Given this data from query "daily totals":' in prompt
    assert "Columns: full_date, total" in prompt
    assert 'Sample row: {"full_date":"2024-01-01","total":500}' in prompt
    assert "LineChart|BarChart|PieChart|AreaChart" in prompt


def test_chart_prompt_with_empty_sample_row() -> None:
    prompt = build_chart_prompt("anything", ["a"], {})
    assert "Sample row: {}" in prompt


def test_chart_prompt_serializes_non_json_values() -> None:
    import datetime as dt
    from decimal import Decimal

    prompt = build_chart_prompt("q", ["d", "v"], {"d": dt.date(2024, 1, 1), "v": Decimal("1.50")})
    sample = prompt.split("Sample row: ", 1)[1].splitlines()[0]
    assert json.loads(sample) == {"d": "2024-01-01", "v": "1.50"}
