from __future__ import annotations

import json
from typing import Any, Mapping, Sequence

from jsonschema import Draft7Validator
from pydantic import ValidationError

from .errors import MalformedModelOutputError
from .llm_client import LLMClient
from .logging_utils import get_logger
from .models import ChartDescriptor
from .prompts import CHART_DESCRIPTOR_SCHEMA, build_chart_prompt
from .translator import strip_fences

logger = get_logger(__name__)

_VALIDATOR = Draft7Validator(CHART_DESCRIPTOR_SCHEMA)


def parse_chart_descriptor(text: str) -> ChartDescriptor:
    """Decode a model response into a ChartDescriptor.

    There is no fallback: anything that is not exactly one JSON object of the
    expected shape raises MalformedModelOutputError.
    """
    body = strip_fences(text)
    try:
        payload = json.loads(body)
    except json.JSONDecodeError as exc:
        raise MalformedModelOutputError(f"Chart descriptor is not valid JSON: {exc}") from exc
    errors = sorted(_VALIDATOR.iter_errors(payload), key=lambda err: list(err.path))
    if errors:
        details = "; ".join(err.message for err in errors)
        raise MalformedModelOutputError(f"Chart descriptor is invalid: {details}")
    try:
        return ChartDescriptor.model_validate(payload)
    except ValidationError as exc:
        raise MalformedModelOutputError(f"Chart descriptor is invalid: {exc}") from exc


class ChartInferenceBuilder:
    def __init__(self, llm: LLMClient):
        self._llm = llm

    async def infer(
        self,
        question: str,
        field_names: Sequence[str],
        sample_row: Mapping[str, Any],
    ) -> ChartDescriptor:
        prompt = build_chart_prompt(question, field_names, sample_row)
        logger.info("chart_inference_request", columns=len(field_names))
        response = await self._llm.complete_text(prompt)
        try:
            descriptor = parse_chart_descriptor(response)
        except MalformedModelOutputError:
            logger.warning("chart_descriptor_malformed", response=response)
            raise
        unknown = [key for key in (descriptor.data_key, *descriptor.value_keys) if key not in field_names]
        if unknown:
            # Kept as-is; the descriptor is not checked against the result fields.
            logger.warning("chart_descriptor_unknown_fields", fields=unknown)
        logger.info("chart_inferred", chart_type=descriptor.chart_type.value)
        return descriptor


__all__ = ["ChartInferenceBuilder", "parse_chart_descriptor"]
