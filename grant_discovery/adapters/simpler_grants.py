"""Simpler.Grants.gov v1 adapter - POST /opportunities/search, GET /opportunities/{id}."""

import copy
import logging
import time
from typing import Any, Dict, Optional

import httpx
from pydantic import BaseModel

from .base import ADAPTER_TIMEOUT, BaseAdapter, SearchPage
from ..errors import DetailFetchError, SearchFetchError

logger = logging.getLogger(__name__)


class _PaginationInfo(BaseModel):
    total_pages: Optional[int] = None
    total_records: Optional[int] = None


def with_page_offset(payload: Dict[str, Any], page: int) -> Dict[str, Any]:
    """Copy of a stored search payload with ``pagination.page_offset`` overridden.

    Other pagination keys (page_size, sort_order) are preserved; the stored
    payload itself is never mutated.
    """
    body = copy.deepcopy(payload or {})
    pagination = body.get("pagination")
    if not isinstance(pagination, dict):
        pagination = {}
    pagination["page_offset"] = page
    body["pagination"] = pagination
    return body


class SimplerGrantsAdapter(BaseAdapter):
    """Adapter for the Simpler.Grants.gov API.

    Search results are deliberately abbreviated (no deadline, eligibility or
    long description), so every new candidate needs a detail call.
    """

    API_BASE = "https://api.simpler.grants.gov/v1"
    PUBLIC_BASE = "https://simpler.grants.gov/opportunity"

    def __init__(
        self,
        api_key: str,
        base_url: Optional[str] = None,
        source_name: str = "simpler_grants_gov",
        timeout: httpx.Timeout = ADAPTER_TIMEOUT,
    ) -> None:
        """Initialize adapter.

        Args:
            api_key: Registry API key (from env: SIMPLER_GRANTS_API_KEY)
            base_url: Override for the v1 API root
            source_name: Value stored in opportunities.source
        """
        self.api_key = api_key
        self.base_url = (base_url or self.API_BASE).rstrip("/")
        self._source_name = source_name
        self.timeout = timeout

    @property
    def source_name(self) -> str:
        return self._source_name

    @property
    def search_url(self) -> str:
        return f"{self.base_url}/opportunities/search"

    def detail_url(self, external_id: str) -> str:
        return f"{self.base_url}/opportunities/{external_id}"

    def external_url(self, external_id: str) -> str:
        return f"{self.PUBLIC_BASE}/{external_id}"

    async def search(self, payload: Dict[str, Any], page: int, label: str = "") -> SearchPage:
        body = with_page_offset(payload, page)
        headers = {"Content-Type": "application/json", "X-Api-Key": self.api_key}
        start = time.monotonic()
        status_code = None

        try:
            async with httpx.AsyncClient(timeout=self.timeout) as client:
                response = await client.post(self.search_url, json=body, headers=headers)
                status_code = response.status_code
                response.raise_for_status()
                data = response.json()
            result = self._parse_search(data, page)
        except (httpx.HTTPError, ValueError) as exc:
            duration_ms = (time.monotonic() - start) * 1000
            logger.warning(
                "search_complete query=%s page=%d result=failure status=%s error=%s duration_ms=%.0f",
                label, page, status_code, exc, duration_ms,
            )
            raise SearchFetchError(self._describe("Search", exc, status_code), status_code) from exc

        duration_ms = (time.monotonic() - start) * 1000
        logger.info(
            "search_complete query=%s page=%d result=success count=%d total_pages=%d duration_ms=%.0f",
            label, page, len(result.ids), result.total_pages, duration_ms,
        )
        return result

    async def fetch_detail(self, external_id: str) -> Dict[str, Any]:
        url = self.detail_url(external_id)
        start = time.monotonic()
        status_code = None

        try:
            async with httpx.AsyncClient(timeout=self.timeout) as client:
                response = await client.get(url, headers={"X-Api-Key": self.api_key})
                status_code = response.status_code
                response.raise_for_status()
                data = response.json()
            detail = data.get("data") if isinstance(data, dict) else None
            if not isinstance(detail, dict):
                raise ValueError("response has no 'data' object")
        except (httpx.HTTPError, ValueError) as exc:
            duration_ms = (time.monotonic() - start) * 1000
            logger.warning(
                "detail_complete external_id=%s result=failure status=%s error=%s duration_ms=%.0f",
                external_id, status_code, exc, duration_ms,
            )
            raise DetailFetchError(
                self._describe("Detail", exc, status_code, external_id), status_code
            ) from exc

        duration_ms = (time.monotonic() - start) * 1000
        logger.info(
            "detail_complete external_id=%s result=success duration_ms=%.0f",
            external_id, duration_ms,
        )
        return detail

    def _parse_search(self, data: Any, page: int) -> SearchPage:
        """Normalize a search response. Raises ValueError on an unexpected shape."""
        if not isinstance(data, dict):
            raise ValueError("search response is not an object")
        rows = data.get("data") or []
        if not isinstance(rows, list):
            raise ValueError("search response 'data' is not a list")

        ids = []
        for row in rows:
            opportunity_id = row.get("opportunity_id") if isinstance(row, dict) else None
            if opportunity_id is None:
                logger.warning("Search result missing opportunity_id, skipping")
                continue
            ids.append(str(opportunity_id))

        info = _PaginationInfo.model_validate(data.get("pagination_info") or {})
        return SearchPage(
            ids=ids,
            page=page,
            total_pages=max(1, info.total_pages or 1),
            total_records=info.total_records,
            facet_counts=data.get("facet_counts"),
        )

    @staticmethod
    def _describe(
        call: str,
        exc: Exception,
        status_code: Optional[int],
        external_id: Optional[str] = None,
    ) -> str:
        target = f" for {external_id}" if external_id else ""
        if isinstance(exc, httpx.HTTPStatusError):
            return f"{call} API {status_code}{target}: {exc.response.text[:200]}"
        if isinstance(exc, httpx.TimeoutException):
            return f"{call} API timeout{target}"
        return f"{call} API error{target}: {exc}"
