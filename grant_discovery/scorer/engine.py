"""Scoring stage: rate extracted fields against the active org profile."""

import json
import logging

from pydantic import ValidationError

from ..errors import JsonExtractionError, ScoringError
from ..llm import LLMClient, ModelTier, extract_first_json_object
from ..models import ExtractedFields, OrgProfile, ScoringResult
from .prompts import build_scoring_prompt
from .weights import weights_from_profile

logger = logging.getLogger(__name__)

# Model arithmetic drift beyond this is flagged but not corrected.
WEIGHTED_SCORE_TOLERANCE = 1.0


class ScoringStage:
    """Capable-tier model call producing a ScoringResult."""

    def __init__(self, llm: LLMClient, model: str) -> None:
        self._llm = llm
        self.model = model

    async def score(self, fields: ExtractedFields, profile: OrgProfile) -> ScoringResult:
        """Score one opportunity.

        The model-reported ``weighted_score`` is authoritative for the threshold
        gate. The recomputed value is stored alongside it as
        ``weighted_score_check``.

        Raises:
            ScoringError: response had no object, malformed JSON, or the object
                did not match the schema (``reason`` says which).
            ModelCallError, BudgetExceededError: from the model call itself.
        """
        fields_json = json.dumps(fields.model_dump(mode="json"), indent=2)
        prompt = build_scoring_prompt(profile.prompt_text, fields_json)
        response = await self._llm.complete(prompt, model=self.model, tier=ModelTier.CAPABLE)

        try:
            data = extract_first_json_object(response.text)
        except JsonExtractionError as exc:
            raise ScoringError(f"Failed to parse scoring response: {exc}", reason=exc.reason) from exc

        data.pop("weighted_score_check", None)
        try:
            result = ScoringResult.model_validate(data)
        except ValidationError as exc:
            raise ScoringError(
                f"Scoring response did not match schema: {exc.error_count()} error(s)",
                reason="schema",
            ) from exc

        if result.auto_rejected:
            return result

        recomputed = weights_from_profile(profile.scoring_weights).weighted_score(result.scores)
        if abs(recomputed - result.weighted_score) > WEIGHTED_SCORE_TOLERANCE:
            logger.warning(
                "weighted_score drift: model=%.2f recomputed=%.2f opportunity=%s",
                result.weighted_score, recomputed, fields.name,
            )
        return result.model_copy(update={"weighted_score_check": recomputed})
