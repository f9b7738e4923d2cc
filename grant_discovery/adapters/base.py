"""Base adapter interface for grant registries."""

import logging
from abc import ABC, abstractmethod
from typing import Any, Dict, List, Optional

import httpx
from pydantic import BaseModel, Field

logger = logging.getLogger(__name__)

# Standard timeout for all adapters: 30s connect, 60s read
ADAPTER_TIMEOUT = httpx.Timeout(connect=30.0, read=60.0, write=30.0, pool=30.0)


class SearchPage(BaseModel):
    """One page of abbreviated search results."""

    ids: List[str] = Field(default_factory=list, description="Candidate external ids, in result order")
    page: int = Field(..., ge=1, description="page_offset that was requested")
    total_pages: int = Field(default=1, ge=1, description="Upstream-reported page count")
    total_records: Optional[int] = Field(None, description="Upstream-reported record count")
    facet_counts: Optional[Dict[str, Dict[str, int]]] = Field(None)


class BaseAdapter(ABC):
    """Abstract base class for grant registry adapters.

    Adapters never retry. A failed call raises a typed RegistryError and the
    caller decides whether to skip the query or the candidate.
    """

    @property
    @abstractmethod
    def source_name(self) -> str:
        """Registry identifier stored in opportunities.source."""

    @abstractmethod
    async def search(self, payload: Dict[str, Any], page: int, label: str = "") -> SearchPage:
        """Run a stored search payload for one page.

        Raises:
            SearchFetchError: on any transport, HTTP or shape failure.
        """

    @abstractmethod
    async def fetch_detail(self, external_id: str) -> Dict[str, Any]:
        """Return the full registry record for one id.

        Raises:
            DetailFetchError: on any transport, HTTP or shape failure.
        """

    @abstractmethod
    def external_url(self, external_id: str) -> str:
        """Canonical public URL for a registry record."""
