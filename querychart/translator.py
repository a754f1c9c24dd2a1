from __future__ import annotations

import re

from .errors import MalformedModelOutputError
from .llm_client import LLMClient
from .logging_utils import get_logger

logger = get_logger(__name__)

# An opening fence may carry any language tag, ended by the line break.
_FENCE_RE = re.compile(r"```(?:[\w+.#-]+(?=[ \t]*(?:\r?\n|$)))?")


def strip_fences(text: str) -> str:
    """Remove every code-fence marker from ``text`` and trim the result."""
    return _FENCE_RE.sub("", text.strip()).strip()


def extract_query(text: str) -> str:
    return strip_fences(text)


class QueryTranslator:
    def __init__(self, llm: LLMClient):
        self._llm = llm

    async def translate(self, prompt: str) -> str:
        logger.info("query_translation_request", prompt_chars=len(prompt))
        response = await self._llm.complete_text(prompt)
        sql = extract_query(response)
        if not sql:
            logger.warning("query_translation_empty", response=response)
            raise MalformedModelOutputError("Model response did not contain a query")
        logger.info("query_translated", sql=sql)
        return sql


__all__ = ["QueryTranslator", "extract_query", "strip_fences"]
