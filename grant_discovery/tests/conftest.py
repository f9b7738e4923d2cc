"""Pytest configuration and shared fakes.

The fakes stand in for the three external systems a run touches: the Supabase
database, the grants registry and the Anthropic Messages API. They are handed
out through fixtures so test modules never import each other.
"""

import json
import re
from datetime import date
from pathlib import Path
from types import SimpleNamespace
from typing import Any, Callable, Dict, List, Optional, Set, Tuple

import httpx
import pytest
from postgrest.exceptions import APIError

from grant_discovery.adapters import BaseAdapter, SearchPage
from grant_discovery.config import Config
from grant_discovery.errors import DetailFetchError, DuplicateOpportunityError, SearchFetchError
from grant_discovery.models import (
    ACTIVE_STATUSES,
    DiscoveryQuery,
    DiscoveryRun,
    OrgProfile,
    RunStatus,
    TokenBudget,
    TriggerSource,
)

EXTRACTION_MODEL = "claude-haiku-4-5-20251001"

PROFILE_PROMPT = """You are evaluating grant opportunities for Confluence Colorado.

Return ONLY valid JSON:
{"scores": {}, "weighted_score": 0.0, "auto_rejected": false}"""


MIGRATIONS_DIR = Path(__file__).resolve().parents[2] / "supabase" / "migrations"

# discovery_runs as created by the initial grant discovery schema
BASE_RUN_COLUMNS = {
    "id", "started_at", "completed_at", "triggered_by", "status",
    "opportunities_fetched", "opportunities_deduplicated", "opportunities_detail_fetched",
    "opportunities_auto_rejected", "opportunities_below_threshold", "opportunities_inserted",
    "tokens_haiku", "tokens_sonnet", "error_log", "org_profile_id",
}


def migrated_run_columns() -> Set[str]:
    """Base discovery_runs columns plus every column the shipped migrations add."""
    columns = set(BASE_RUN_COLUMNS)
    for path in sorted(MIGRATIONS_DIR.glob("*.sql")):
        for block in re.findall(r"ALTER TABLE discovery_runs(.*?);", path.read_text(), re.S):
            columns.update(re.findall(r"ADD COLUMN IF NOT EXISTS (\w+)", block))
    return columns


RUN_COLUMNS = migrated_run_columns()


def _check_run_columns(fields: Dict[str, Any]) -> None:
    unknown = sorted(set(fields) - RUN_COLUMNS)
    if unknown:
        raise APIError({
            "code": "PGRST204",
            "message": f"Could not find the '{unknown[0]}' column of 'discovery_runs' in the schema cache",
        })


# ---------------------------------------------------------------------------
# In-memory database
# ---------------------------------------------------------------------------

class InMemoryDB:
    """Replacement for SupabaseClient backed by plain dicts.

    Enforces the (source, external_id) unique index the real table carries.
    Run writes are checked against the discovery_runs columns the migrations
    define, so a ledger field with no column fails the way PostgREST would.
    """

    def __init__(self) -> None:
        self.profile: Optional[OrgProfile] = None
        self.queries: Dict[str, DiscoveryQuery] = {}
        self.opportunities: List[Dict[str, Any]] = []
        self.runs: Dict[str, Dict[str, Any]] = {}
        self.run_updates: List[Tuple[str, Dict[str, Any]]] = []
        self.budgets: Dict[date, TokenBudget] = {}
        self.users: Dict[str, Tuple[str, Optional[str]]] = {}
        self.cancel_after_inserts: Optional[int] = None
        self.fail_run_updates = 0
        self.failing_cursor_writes: Set[str] = set()
        self._run_seq = 0

    # org profile and queries
    def get_active_profile(self) -> Optional[OrgProfile]:
        return self.profile

    def get_enabled_queries(self) -> List[DiscoveryQuery]:
        enabled = [q for q in self.queries.values() if q.enabled]
        return [q.model_copy() for q in sorted(enabled, key=lambda q: q.priority)]

    def update_query_cursor(self, query_id: str, next_page: int) -> None:
        if query_id in self.failing_cursor_writes:
            raise APIError({"message": "canceling statement due to statement timeout", "code": "57014"})
        self.queries[query_id] = self.queries[query_id].model_copy(update={"current_page": next_page})

    def upsert_query_by_label(self, definition: Dict[str, Any]) -> str:
        for query_id, query in self.queries.items():
            if query.label == definition["label"]:
                self.queries[query_id] = query.model_copy(update=definition)
                return "updated"
        query_id = f"q-{len(self.queries) + 1}"
        self.queries[query_id] = DiscoveryQuery(id=query_id, current_page=1, **definition)
        return "inserted"

    # opportunities
    def get_existing_external_ids(self, source: str, external_ids) -> Set[str]:
        wanted = set(external_ids)
        return {
            row["external_id"] for row in self.opportunities
            if row["source"] == source and row["external_id"] in wanted
        }

    def insert_opportunity(self, record: Dict[str, Any]) -> Dict[str, Any]:
        key = (record["source"], record["external_id"])
        if any((row["source"], row["external_id"]) == key for row in self.opportunities):
            raise DuplicateOpportunityError(*key)
        self.opportunities.append(dict(record))
        if self.cancel_after_inserts is not None and len(self.opportunities) >= self.cancel_after_inserts:
            for run in self.runs.values():
                if run["status"] == RunStatus.RUNNING.value:
                    run["status"] = RunStatus.CANCELLING.value
        return record

    # runs
    def create_run(self, triggered_by: TriggerSource, triggered_by_user: Optional[str] = None) -> str:
        record = {"triggered_by": triggered_by.value, "status": RunStatus.RUNNING.value}
        if triggered_by_user:
            record["triggered_by_user"] = triggered_by_user
        _check_run_columns(record)
        self._run_seq += 1
        run_id = f"run-{self._run_seq}"
        self.runs[run_id] = {
            "id": run_id,
            "status": RunStatus.RUNNING.value,
            "triggered_by": triggered_by.value,
            "triggered_by_user": triggered_by_user,
            "started_at": f"2026-10-18T07:00:{self._run_seq:02d}+00:00",
        }
        return run_id

    def get_run_status(self, run_id: str) -> Optional[RunStatus]:
        run = self.runs.get(run_id)
        return RunStatus(run["status"]) if run else None

    def update_run(self, run_id: str, fields: Dict[str, Any]) -> None:
        if self.fail_run_updates:
            self.fail_run_updates -= 1
            raise httpx.ConnectError("database unavailable")
        _check_run_columns(fields)
        self.run_updates.append((run_id, dict(fields)))
        self.runs[run_id].update(fields)

    def find_active_run(self) -> Optional[DiscoveryRun]:
        active = [r for r in self.runs.values() if r["status"] in {s.value for s in ACTIVE_STATUSES}]
        if not active:
            return None
        latest = max(active, key=lambda r: r["started_at"])
        return DiscoveryRun(**{k: latest[k] for k in ("id", "status", "triggered_by", "started_at")})

    # token budget
    def get_token_budget(self, period_start: date) -> Optional[TokenBudget]:
        return self.budgets.get(period_start)

    def create_token_budget(self, period_start: date, monthly_limit: int) -> TokenBudget:
        budget = TokenBudget(current_period_start=period_start, monthly_limit=monthly_limit)
        self.budgets[period_start] = budget
        return budget

    def set_tokens_used(self, period_start: date, tokens_used: int) -> None:
        self.budgets[period_start] = self.budgets[period_start].model_copy(update={"tokens_used": tokens_used})

    # auth
    def get_user_id(self, jwt: str) -> Optional[str]:
        user = self.users.get(jwt)
        return user[0] if user else None

    def get_user_role(self, user_id: str) -> Optional[str]:
        for uid, role in self.users.values():
            if uid == user_id:
                return role
        return None

    # helpers for tests
    def add_query(self, label: str, priority: int = 0, current_page: int = 1, enabled: bool = True) -> str:
        query_id = f"q-{len(self.queries) + 1}"
        self.queries[query_id] = DiscoveryQuery(
            id=query_id,
            label=label,
            priority=priority,
            enabled=enabled,
            current_page=current_page,
            payload={"filters": {"funding_category": {"one_of": [label]}}},
        )
        return query_id

    def seed_opportunity(self, source: str, external_id: str) -> None:
        self.opportunities.append({"source": source, "external_id": external_id})

    def inserted_ids(self) -> List[str]:
        return [row["external_id"] for row in self.opportunities if row.get("auto_discovered")]


# ---------------------------------------------------------------------------
# Registry
# ---------------------------------------------------------------------------

class FakeRegistry(BaseAdapter):
    """Grants registry serving canned search pages and detail records."""

    def __init__(self, source_name: str = "simpler_grants_gov") -> None:
        self._source_name = source_name
        self.pages: Dict[str, Dict[int, Tuple[List[str], int]]] = {}
        self.failing_queries: Set[str] = set()
        self.failing_details: Set[str] = set()
        self.detail_overrides: Dict[str, Dict[str, Any]] = {}
        self.search_calls: List[Tuple[str, int]] = []
        self.detail_calls: List[str] = []

    @property
    def source_name(self) -> str:
        return self._source_name

    def set_pages(self, label: str, pages: List[List[str]]) -> None:
        total = len(pages)
        self.pages[label] = {number: (ids, total) for number, ids in enumerate(pages, start=1)}

    async def search(self, payload: Dict[str, Any], page: int, label: str = "") -> SearchPage:
        self.search_calls.append((label, page))
        if label in self.failing_queries:
            raise SearchFetchError(f"Search API 503 for {label}", 503)
        ids, total = self.pages.get(label, {}).get(page, ([], max(1, len(self.pages.get(label, {})))))
        return SearchPage(ids=list(ids), page=page, total_pages=total)

    async def fetch_detail(self, external_id: str) -> Dict[str, Any]:
        self.detail_calls.append(external_id)
        if external_id in self.failing_details:
            raise DetailFetchError(f"Detail API 404 for {external_id}", 404)
        return self.detail_overrides.get(
            external_id,
            {
                "opportunity_id": external_id,
                "opportunity_title": f"Grant {external_id}",
                "agency_name": "Department of the Interior",
                "summary": {"summary_description": "Youth conservation corps", "award_ceiling": 50000},
            },
        )

    def external_url(self, external_id: str) -> str:
        return f"https://simpler.grants.gov/opportunity/{external_id}"


# ---------------------------------------------------------------------------
# Anthropic Messages API
# ---------------------------------------------------------------------------

def scoring_json(weighted: float = 7.0, auto_rejected: bool = False, reason: Optional[str] = None) -> str:
    criterion = 0 if auto_rejected else max(1.0, weighted)
    return json.dumps({
        "scores": {
            "mission_alignment": criterion,
            "geographic_eligibility": criterion,
            "applicant_eligibility": criterion,
            "award_size_fit": criterion,
            "population_alignment": criterion,
        },
        "weighted_score": weighted,
        "auto_rejected": auto_rejected,
        "auto_reject_reason": reason,
        "rationale": "Strong fit for youth conservation programs.",
        "red_flags": [],
        "recommended_action": "apply" if weighted >= 7 else "investigate",
    })


def extraction_json(external_id: str, amount_max: Optional[float] = 50000) -> str:
    return json.dumps({
        "name": f"Grant {external_id}",
        "funder": "Department of the Interior",
        "grant_type": "federal",
        "description": "Youth conservation corps",
        "amount_requested": None,
        "amount_max": amount_max,
        "primary_deadline": "2026-12-01",
        "loi_deadline": None,
        "eligibility_notes": "Nonprofits with 501(c)(3) status",
        "cfda_number": "15.931",
    })


class ScriptedAnthropic:
    """Async stand-in for anthropic.AsyncAnthropic.

    Extraction responses are keyed by the opportunity_id found in the prompt,
    scoring responses by the "Grant <id>" name the extraction produced.
    """

    _RAW_ID = re.compile(r'"opportunity_id":\s*"([^"]+)"')
    _NAME_ID = re.compile(r'"name":\s*"Grant ([^"]+)"')

    def __init__(self, extraction_model: str = EXTRACTION_MODEL, tokens_per_call: Tuple[int, int] = (100, 50)):
        self.extraction_model = extraction_model
        self.tokens_per_call = tokens_per_call
        self.extractions: Dict[str, str] = {}
        self.scores: Dict[str, str] = {}
        self.default_score: Callable[[str], str] = lambda _id: scoring_json(7.0)
        self.calls: List[Tuple[str, str]] = []
        self.messages = SimpleNamespace(create=self._create)

    async def _create(self, *, model: str, max_tokens: int, messages, system: Optional[str] = None):
        prompt = messages[0]["content"]
        self.calls.append((model, prompt))
        if model == self.extraction_model:
            match = self._RAW_ID.search(prompt)
            external_id = match.group(1) if match else "unknown"
            text = self.extractions.get(external_id, extraction_json(external_id))
        else:
            match = self._NAME_ID.search(prompt)
            external_id = match.group(1) if match else "unknown"
            text = self.scores.get(external_id) or self.default_score(external_id)
        input_tokens, output_tokens = self.tokens_per_call
        return SimpleNamespace(
            content=[SimpleNamespace(type="text", text=text)],
            usage=SimpleNamespace(input_tokens=input_tokens, output_tokens=output_tokens),
        )

    def calls_for(self, model: str) -> List[str]:
        return [prompt for called, prompt in self.calls if called == model]


# ---------------------------------------------------------------------------
# Fixtures
# ---------------------------------------------------------------------------

@pytest.fixture
def config() -> Config:
    return Config(
        supabase_url="https://test.supabase.co",
        supabase_key="test-key",
        simpler_grants_api_key="test-grants-key",
        anthropic_api_key="test-anthropic-key",
        cron_secret="cron-secret",
        _env_file=None,
    )


@pytest.fixture
def org_profile() -> OrgProfile:
    return OrgProfile(
        id="profile-1",
        org_name="Confluence Colorado",
        prompt_text=PROFILE_PROMPT,
        profile_json={
            "scoring_weights": {
                "mission_alignment": 30,
                "geographic_eligibility": 20,
                "applicant_eligibility": 20,
                "award_size_fit": 15,
                "population_alignment": 15,
            }
        },
    )


@pytest.fixture
def db(org_profile) -> InMemoryDB:
    database = InMemoryDB()
    database.profile = org_profile
    return database


@pytest.fixture
def run_columns() -> Set[str]:
    return migrated_run_columns()


@pytest.fixture
def registry() -> FakeRegistry:
    return FakeRegistry()


@pytest.fixture
def anthropic_client() -> ScriptedAnthropic:
    return ScriptedAnthropic()


@pytest.fixture
def make_scoring_json():
    return scoring_json


@pytest.fixture
def make_extraction_json():
    return extraction_json
