"""DiscoveryQuery - operator-editable search definition with a pagination cursor."""

from datetime import datetime
from typing import Any, Optional
from pydantic import BaseModel, Field


class DiscoveryQuery(BaseModel):
    """A named, priority-ordered search against the grants registry.

    ``current_page`` always points at the *next* page to fetch. The orchestrator
    is the only writer of the cursor, and only after a successful search.
    """

    id: str = Field(..., description="discovery_queries primary key")
    label: str = Field(..., description="Human-readable name, used in error logs")
    enabled: bool = Field(default=True, description="Disabled queries are skipped")
    priority: int = Field(default=0, description="Lower runs first")
    payload: dict[str, Any] = Field(
        default_factory=dict,
        description="Exact request body sent to the registry search endpoint",
    )
    current_page: int = Field(default=1, ge=1, description="Next page_offset to fetch")
    notes: Optional[str] = Field(None, description="Operational notes")
    updated_at: Optional[datetime] = Field(None, description="Last cursor or definition change")

    class Config:
        json_schema_extra = {
            "example": {
                "id": "5b0c3c55-54a3-4d7e-9f44-2a3cfa1b2e10",
                "label": "All agencies - environment",
                "enabled": True,
                "priority": 2,
                "payload": {
                    "filters": {
                        "opportunity_status": {"one_of": ["posted", "forecasted"]},
                        "funding_category": {"one_of": ["environment"]},
                    },
                    "pagination": {
                        "page_offset": 1,
                        "page_size": 25,
                        "sort_order": [{"order_by": "post_date", "sort_direction": "descending"}],
                    },
                },
                "current_page": 3,
            }
        }
