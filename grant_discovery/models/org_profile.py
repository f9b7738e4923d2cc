"""OrgProfile - the active scoring rubric. Read-only from the pipeline."""

from typing import Any, Optional
from pydantic import BaseModel, Field


class OrgProfile(BaseModel):
    """Organization profile injected into the scoring stage.

    At most one profile is active at a time (enforced by a partial unique index).
    """

    id: str = Field(..., description="org_profiles primary key")
    org_name: Optional[str] = Field(None)
    prompt_text: str = Field(..., min_length=1, description="Injected verbatim into scoring")
    profile_json: dict[str, Any] = Field(default_factory=dict, description="Structured profile")
    is_active: bool = Field(default=True)

    @property
    def scoring_weights(self) -> Optional[dict[str, float]]:
        return self.profile_json.get("scoring_weights")
