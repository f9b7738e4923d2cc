"""Supabase database client for the discovery sync pipeline."""

import logging
import os
from datetime import date, datetime, timezone
from typing import Any, Dict, Iterable, List, Optional, Set

from postgrest.exceptions import APIError
from supabase import Client, create_client

from ..errors import DuplicateOpportunityError, InsertionError
from ..models import (
    ACTIVE_STATUSES,
    DiscoveryQuery,
    DiscoveryRun,
    OrgProfile,
    RunStatus,
    TokenBudget,
    TriggerSource,
)

logger = logging.getLogger(__name__)

UNIQUE_VIOLATION = "23505"


def _now() -> str:
    return datetime.now(timezone.utc).isoformat()


class SupabaseClient:
    """Client for the opportunities, discovery_* and token_budgets tables."""

    def __init__(
        self,
        url: Optional[str] = None,
        key: Optional[str] = None,
    ) -> None:
        """Initialize Supabase client from explicit args or env vars.

        Args:
            url: Supabase project URL (falls back to SUPABASE_URL env var).
            key: Supabase service-role key (falls back to SUPABASE_KEY env var).
        """
        self._url = url or os.environ["SUPABASE_URL"]
        self._key = key or os.environ["SUPABASE_KEY"]
        self._client: Client = create_client(self._url, self._key)

    # ------------------------------------------------------------------
    # Org profile and query catalog
    # ------------------------------------------------------------------

    def get_active_profile(self) -> Optional[OrgProfile]:
        """Return the single active org profile, or None."""
        response = (
            self._client.table("org_profiles")
            .select("id, org_name, profile_json, prompt_text, is_active")
            .eq("is_active", True)
            .limit(1)
            .execute()
        )
        if not response.data:
            return None
        return OrgProfile(**response.data[0])

    def get_enabled_queries(self) -> List[DiscoveryQuery]:
        """Return enabled discovery queries, lowest priority value first."""
        response = (
            self._client.table("discovery_queries")
            .select("id, label, enabled, priority, payload, current_page, notes")
            .eq("enabled", True)
            .order("priority", desc=False)
            .execute()
        )
        return [DiscoveryQuery(**row) for row in response.data]

    def update_query_cursor(self, query_id: str, next_page: int) -> None:
        """Persist the next page_offset for a query."""
        (
            self._client.table("discovery_queries")
            .update({"current_page": next_page, "updated_at": _now()})
            .eq("id", query_id)
            .execute()
        )
        logger.debug("Advanced cursor for query %s to page %d", query_id, next_page)

    def upsert_query_by_label(self, definition: Dict[str, Any]) -> str:
        """Insert a query definition, or update the existing row with the same label.

        The cursor of an existing row is left untouched.

        Returns:
            "inserted" or "updated".
        """
        existing = (
            self._client.table("discovery_queries")
            .select("id")
            .eq("label", definition["label"])
            .limit(1)
            .execute()
        )
        if existing.data:
            (
                self._client.table("discovery_queries")
                .update({**definition, "updated_at": _now()})
                .eq("id", existing.data[0]["id"])
                .execute()
            )
            return "updated"
        (
            self._client.table("discovery_queries")
            .insert({**definition, "current_page": 1})
            .execute()
        )
        return "inserted"

    # ------------------------------------------------------------------
    # Opportunities
    # ------------------------------------------------------------------

    def get_existing_external_ids(self, source: str, external_ids: Iterable[str]) -> Set[str]:
        """Return which of ``external_ids`` are already stored for ``source``.

        One batched lookup, exact match on the opaque identifier.
        """
        ids = list(external_ids)
        if not ids:
            return set()
        response = (
            self._client.table("opportunities")
            .select("external_id")
            .eq("source", source)
            .in_("external_id", ids)
            .execute()
        )
        return {row["external_id"] for row in response.data if row.get("external_id")}

    def insert_opportunity(self, record: Dict[str, Any]) -> Dict[str, Any]:
        """Insert one review-queue opportunity.

        Raises:
            DuplicateOpportunityError: (source, external_id) already exists.
            InsertionError: any other rejection from the database.
        """
        try:
            response = self._client.table("opportunities").insert(record).execute()
        except APIError as exc:
            if exc.code == UNIQUE_VIOLATION:
                raise DuplicateOpportunityError(record["source"], record["external_id"]) from exc
            raise InsertionError(exc.message or str(exc)) from exc
        logger.info("Inserted opportunity %s:%s", record["source"], record["external_id"])
        return response.data[0] if response.data else {}

    # ------------------------------------------------------------------
    # Run ledger
    # ------------------------------------------------------------------

    def create_run(self, triggered_by: TriggerSource, triggered_by_user: Optional[str] = None) -> str:
        """Insert a discovery_runs row in 'running' state and return its id."""
        record: Dict[str, Any] = {
            "triggered_by": triggered_by.value,
            "status": RunStatus.RUNNING.value,
        }
        if triggered_by_user:
            record["triggered_by_user"] = triggered_by_user
        response = self._client.table("discovery_runs").insert(record).execute()
        run_id = response.data[0]["id"]
        logger.info("Created discovery run %s (triggered_by=%s)", run_id, triggered_by.value)
        return run_id

    def get_run_status(self, run_id: str) -> Optional[RunStatus]:
        response = (
            self._client.table("discovery_runs")
            .select("status")
            .eq("id", run_id)
            .limit(1)
            .execute()
        )
        if not response.data:
            return None
        return RunStatus(response.data[0]["status"])

    def update_run(self, run_id: str, fields: Dict[str, Any]) -> None:
        self._client.table("discovery_runs").update(fields).eq("id", run_id).execute()

    def find_active_run(self) -> Optional[DiscoveryRun]:
        """Most recent run still running or signalled to cancel."""
        response = (
            self._client.table("discovery_runs")
            .select("id, status, triggered_by, started_at")
            .in_("status", [status.value for status in ACTIVE_STATUSES])
            .order("started_at", desc=True)
            .limit(1)
            .execute()
        )
        if not response.data:
            return None
        return DiscoveryRun(**response.data[0])

    # ------------------------------------------------------------------
    # Shared token budget
    # ------------------------------------------------------------------

    def get_token_budget(self, period_start: date) -> Optional[TokenBudget]:
        response = (
            self._client.table("token_budgets")
            .select("id, monthly_limit, tokens_used, current_period_start")
            .eq("current_period_start", period_start.isoformat())
            .limit(1)
            .execute()
        )
        if not response.data:
            return None
        return TokenBudget(**response.data[0])

    def create_token_budget(self, period_start: date, monthly_limit: int) -> TokenBudget:
        record = {
            "current_period_start": period_start.isoformat(),
            "monthly_limit": monthly_limit,
            "tokens_used": 0,
        }
        response = self._client.table("token_budgets").insert(record).execute()
        logger.info("Provisioned token budget for period %s", period_start.isoformat())
        return TokenBudget(**(response.data[0] if response.data else record))

    def set_tokens_used(self, period_start: date, tokens_used: int) -> None:
        (
            self._client.table("token_budgets")
            .update({"tokens_used": tokens_used, "updated_at": _now()})
            .eq("current_period_start", period_start.isoformat())
            .execute()
        )

    # ------------------------------------------------------------------
    # Operator auth
    # ------------------------------------------------------------------

    def get_user_id(self, jwt: str) -> Optional[str]:
        """Resolve a user JWT to a user id via Supabase auth."""
        try:
            response = self._client.auth.get_user(jwt)
        except Exception as exc:
            logger.warning("get_user failed: %s", exc)
            return None
        user = getattr(response, "user", None)
        return user.id if user else None

    def get_user_role(self, user_id: str) -> Optional[str]:
        response = (
            self._client.table("profiles")
            .select("role")
            .eq("id", user_id)
            .limit(1)
            .execute()
        )
        if not response.data:
            logger.warning("No profile row found for user %s", user_id)
            return None
        return response.data[0].get("role")
