from __future__ import annotations

from typing import Dict, List

INSIGHT_QUERIES: Dict[str, str] = {
    "daily": """
SELECT d.full_date, COUNT(*) AS transactions, SUM(f.amount) AS total
FROM fact_transactions f
JOIN dim_date d ON f.date_key = d.date_key
GROUP BY d.full_date
ORDER BY d.full_date DESC
LIMIT 30
""",
    "merchants": """
SELECT m.merchant_category_group, COUNT(*) AS count, SUM(f.amount) AS revenue
FROM fact_transactions f
JOIN dim_merchant m ON f.merchant_key = m.merchant_key
GROUP BY m.merchant_category_group
ORDER BY revenue DESC
LIMIT 10
""",
    "cards": """
SELECT c.card_brand, c.card_type, COUNT(*) AS usage_count, AVG(f.amount) AS avg_amount
FROM fact_transactions f
JOIN dim_card c ON f.card_key = c.card_key
GROUP BY c.card_brand, c.card_type
ORDER BY usage_count DESC
""",
    "errors": """
SELECT f.error_code, COUNT(*) AS count
FROM fact_transactions f
WHERE f.has_errors = true
GROUP BY f.error_code
ORDER BY count DESC
""",
}


class UnknownInsightError(KeyError):
    pass


def insight_types() -> List[str]:
    return sorted(INSIGHT_QUERIES)


def get_insight_sql(kind: str) -> str:
    try:
        return INSIGHT_QUERIES[kind]
    except KeyError as exc:
        raise UnknownInsightError(kind) from exc


__all__ = ["INSIGHT_QUERIES", "UnknownInsightError", "insight_types", "get_insight_sql"]
