"""Extraction stage: normalize a raw registry record into ExtractedFields."""

import json
import logging
from typing import Any, Dict

from pydantic import ValidationError

from ..errors import ExtractionError, JsonExtractionError
from ..llm import LLMClient, ModelTier, extract_first_json_object
from ..models import ExtractedFields
from .prompts import EXTRACTION_SYSTEM_PROMPT, build_extraction_prompt

logger = logging.getLogger(__name__)


class ExtractionStage:
    """Cheap-tier model call that maps upstream JSON onto the opportunity schema."""

    def __init__(self, llm: LLMClient, model: str) -> None:
        self._llm = llm
        self.model = model

    async def extract(self, raw: Dict[str, Any]) -> ExtractedFields:
        """Extract normalized fields from a registry detail record.

        Raises:
            ExtractionError: response had no object, malformed JSON, or the
                object did not match the schema (``reason`` says which).
            ModelCallError, BudgetExceededError: from the model call itself.
        """
        prompt = build_extraction_prompt(json.dumps(raw, indent=2, default=str))
        response = await self._llm.complete(
            prompt, model=self.model, tier=ModelTier.CHEAP, system=EXTRACTION_SYSTEM_PROMPT
        )

        try:
            data = extract_first_json_object(response.text)
        except JsonExtractionError as exc:
            raise ExtractionError(f"Failed to parse extraction response: {exc}", reason=exc.reason) from exc

        try:
            fields = ExtractedFields.model_validate(data)
        except ValidationError as exc:
            raise ExtractionError(
                f"Extraction response did not match schema: {exc.error_count()} error(s)",
                reason="schema",
            ) from exc

        # Discovered grants are always federal and never carry a requested amount or LOI date.
        return fields.model_copy(
            update={"grant_type": "federal", "amount_requested": None, "loi_deadline": None}
        )
