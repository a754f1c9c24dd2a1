from __future__ import annotations

import sqlglot
from sqlglot import expressions as exp

from .config import SQLGuardConfig
from .errors import SQLValidationError
from .logging_utils import get_logger

logger = get_logger(__name__)

# Statement nodes that change data or schema, wherever they sit in the tree.
_WRITE_NODE_NAMES = (
    "Insert",
    "Update",
    "Delete",
    "Merge",
    "Create",
    "Drop",
    "Alter",
    "AlterTable",
    "TruncateTable",
    "Command",
    "Into",
)
_WRITE_NODES = tuple(getattr(exp, name) for name in _WRITE_NODE_NAMES if hasattr(exp, name))


class SQLGuard:
    """Optional checks applied to SQL before it reaches the database.

    Both checks are off by default. With everything disabled ``apply``
    returns its input untouched.
    """

    def __init__(self, cfg: SQLGuardConfig):
        self._cfg = cfg

    @property
    def enabled(self) -> bool:
        return self._cfg.enforce_select_only or self._cfg.enforce_row_limit

    def apply(self, sql: str) -> str:
        if not self.enabled:
            return sql
        try:
            statements = [stmt for stmt in sqlglot.parse(sql, read="postgres") if stmt is not None]
        except sqlglot.errors.SqlglotError as exc:
            raise SQLValidationError(f"Invalid SQL: {exc}") from exc
        if self._cfg.enforce_select_only:
            for stmt in statements:
                self._enforce_select_only(stmt)
        if len(statements) != 1:
            if self._cfg.enforce_select_only:
                raise SQLValidationError("Exactly one statement is allowed")
            return sql
        parsed = statements[0]
        if self._cfg.enforce_row_limit and self._needs_limit(parsed):
            limited = parsed.limit(self._cfg.row_limit).sql(dialect="postgres")
            logger.info("sql_row_limit_applied", limit=self._cfg.row_limit)
            return limited
        return sql

    def _enforce_select_only(self, expr: exp.Expression) -> None:
        if not isinstance(expr, exp.Query):
            raise SQLValidationError("Only SELECT statements are allowed")
        for node in expr.walk():
            if isinstance(node, _WRITE_NODES):
                raise SQLValidationError(f"{node.key.upper()} is not allowed inside a query")

    def _needs_limit(self, expr: exp.Expression) -> bool:
        if not isinstance(expr, exp.Select):
            return False
        if expr.args.get("limit") is not None:
            return False
        if expr.args.get("group") is not None:
            return False
        return next(expr.find_all(exp.AggFunc), None) is None


__all__ = ["SQLGuard"]
