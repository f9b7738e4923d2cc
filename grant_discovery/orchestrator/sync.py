"""Sync orchestrator: one scheduled or manual discovery run, end to end.

Flow per run:
    enabled queries (priority order) -> one search page each -> advance cursors
    -> union of ids -> dedup against stored opportunities -> cap batch
    -> per candidate: cancellation check -> detail -> extract -> pre-screen
       -> score -> threshold gate -> insert
    -> finalize the run ledger exactly once.

Nothing inside the run is retried; the daily cadence is the retry mechanism.
"""

import logging
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

from tenacity.wait import wait_base

from ..adapters import next_page
from ..deduplicator import Deduplicator
from ..eligibility import prescreen
from ..errors import (
    BudgetExceededError,
    DiscoveryError,
    ErrorKind,
    NoActiveProfileError,
    NoEnabledQueriesError,
)
from ..extractor import ExtractionStage
from ..gate import GateDecision, OpportunityWriter, ThresholdGate
from ..ledger import CancellationMonitor, RunLedger, TokenBudgetLedger
from ..ledger.run_ledger import DEFAULT_FINALIZE_WAIT
from ..llm import LLMClient
from ..models import DiscoveryQuery, OrgProfile, RunStats, RunStatus, TriggerSource
from ..scorer import ScoringStage
from .context import SyncContext

logger = logging.getLogger(__name__)


@dataclass
class SyncResult:
    """Terminal outcome of one run."""

    run_id: str
    status: RunStatus
    stats: RunStats = field(default_factory=RunStats)

    def to_response(self) -> Dict[str, Any]:
        return {
            "run_id": self.run_id,
            "status": self.status.value,
            **self.stats.counters(),
            "error_log": [entry.model_dump(mode="json") for entry in self.stats.error_log],
        }


@dataclass
class _Stages:
    extraction: ExtractionStage
    scoring: ScoringStage
    gate: ThresholdGate
    writer: OpportunityWriter
    monitor: CancellationMonitor


class SyncOrchestrator:
    """Drives one discovery run under the per-run cap and wall-clock budget."""

    def __init__(self, context: SyncContext, finalize_wait: wait_base = DEFAULT_FINALIZE_WAIT) -> None:
        self.context = context
        self.config = context.config
        self._finalize_wait = finalize_wait

    async def run(
        self,
        trigger: TriggerSource = TriggerSource.SCHEDULED,
        triggered_by_user: Optional[str] = None,
    ) -> SyncResult:
        """Produce exactly one finalized run and return its terminal counters."""
        ctx = self.context
        started = ctx.clock()
        ledger = RunLedger.open(
            ctx.db, trigger, triggered_by_user, finalize_wait=self._finalize_wait
        )
        logger.info("=" * 60)
        logger.info("Starting discovery run %s (triggered_by=%s)", ledger.run_id, trigger.value)
        logger.info("=" * 60)

        try:
            profile = ctx.db.get_active_profile()
            if profile is None:
                raise NoActiveProfileError()
            queries = ctx.db.get_enabled_queries()
            if not queries:
                raise NoEnabledQueriesError()

            stages = self._build_stages(ledger)
            candidate_ids = await self._collect_candidates(queries, ledger)
            batch = self._select_batch(candidate_ids, ledger)
            status = await self._process_batch(batch, profile, stages, ledger, started)
        except Exception as exc:
            logger.error("Discovery run %s fatal error: %s", ledger.run_id, exc, exc_info=True)
            stats = ledger.fail(exc)
            return SyncResult(ledger.run_id, RunStatus.FAILED, stats)

        stats = ledger.finalize(status, org_profile_id=profile.id)
        duration = ctx.clock() - started
        logger.info("=" * 60)
        logger.info(
            "Discovery run %s %s in %.2f seconds: inserted=%d errors=%d",
            ledger.run_id, status.value, duration, stats.opportunities_inserted, len(stats.error_log),
        )
        logger.info("=" * 60)
        return SyncResult(ledger.run_id, status, stats)

    # ------------------------------------------------------------------
    # Wiring
    # ------------------------------------------------------------------

    def _build_stages(self, ledger: RunLedger) -> _Stages:
        ctx, config = self.context, self.config
        budget = TokenBudgetLedger(
            ctx.db,
            default_monthly_limit=config.monthly_token_limit,
            enforce=config.enforce_token_budget,
        )
        llm = LLMClient(
            ctx.anthropic_client,
            max_tokens=config.model_max_tokens,
            budget=budget,
            usage_sink=ledger.add_tokens,
        )
        return _Stages(
            extraction=ExtractionStage(llm, config.extraction_model),
            scoring=ScoringStage(llm, config.scoring_model),
            gate=ThresholdGate(config.score_threshold),
            writer=OpportunityWriter(ctx.db, ctx.registry),
            monitor=CancellationMonitor(ctx.db, ledger.run_id),
        )

    # ------------------------------------------------------------------
    # Search, cursor advance, dedup
    # ------------------------------------------------------------------

    async def _collect_candidates(self, queries: List[DiscoveryQuery], ledger: RunLedger) -> List[str]:
        """Fetch one page per query and advance each query's cursor.

        A failing query (search or cursor write) is logged under its label and
        contributes nothing. The page is fetched again by the next run.
        """
        registry, db = self.context.registry, self.context.db
        candidate_ids: Dict[str, None] = {}

        for query in queries:
            try:
                page = await registry.search(query.payload, query.current_page, label=query.label)
                db.update_query_cursor(query.id, next_page(query.current_page, page.total_pages))
            except DiscoveryError as exc:
                ledger.record_exception(exc, query.label)
                continue
            except Exception as exc:
                logger.exception("Unexpected failure running query %s", query.label)
                ledger.record_error(ErrorKind.QUERY_FETCH, query.label, str(exc))
                continue

            for external_id in page.ids:
                candidate_ids.setdefault(external_id, None)
            ledger.stats.opportunities_fetched += len(page.ids)

        logger.info("Total candidate ids fetched: %d unique", len(candidate_ids))
        return list(candidate_ids)

    def _select_batch(self, candidate_ids: List[str], ledger: RunLedger) -> List[str]:
        registry, db = self.context.registry, self.context.db
        existing = db.get_existing_external_ids(registry.source_name, candidate_ids)
        new_ids = Deduplicator(registry.source_name, existing).deduplicate(candidate_ids)
        ledger.stats.opportunities_deduplicated = len(candidate_ids) - len(new_ids)

        # Remainder is picked up by a later run; no carry-over bookkeeping.
        batch = new_ids[: self.config.max_new_per_run]
        if len(new_ids) > len(batch):
            logger.info("Capped batch to %d of %d new ids", len(batch), len(new_ids))
        return batch

    # ------------------------------------------------------------------
    # Per-candidate pipeline
    # ------------------------------------------------------------------

    async def _process_batch(
        self,
        batch: List[str],
        profile: OrgProfile,
        stages: _Stages,
        ledger: RunLedger,
        started: float,
    ) -> RunStatus:
        for external_id in batch:
            if stages.monitor.should_stop():
                return RunStatus.CANCELLED

            elapsed = self.context.clock() - started
            if elapsed > self.config.max_run_seconds:
                ledger.record_error(
                    ErrorKind.DEADLINE,
                    "deadline",
                    f"Wall-clock budget of {self.config.max_run_seconds:.0f}s exhausted "
                    f"after {elapsed:.0f}s; remaining candidates deferred",
                )
                break

            try:
                await self._process_candidate(external_id, profile, stages, ledger)
            except BudgetExceededError as exc:
                ledger.record_exception(exc, f"budget:{external_id}", external_id)
                break
            finally:
                ledger.checkpoint()

        return RunStatus.COMPLETED

    async def _process_candidate(
        self,
        external_id: str,
        profile: OrgProfile,
        stages: _Stages,
        ledger: RunLedger,
    ) -> None:
        """Run one candidate through every stage, recording any failure.

        Failures abandon the candidate for this run only. Because it was never
        inserted it stays un-deduplicated and is naturally retried later.
        """
        stats = ledger.stats
        stage = "detail"
        try:
            detail = await self.context.registry.fetch_detail(external_id)
            stats.opportunities_detail_fetched += 1

            stage = "extract"
            fields = await stages.extraction.extract(detail)

            reject_reason = prescreen(fields, self.config.min_award_ceiling)
            if reject_reason:
                stats.opportunities_auto_rejected += 1
                stats.opportunities_prescreen_rejected += 1
                logger.info("Pre-screen rejected %s: %s", external_id, reject_reason)
                return

            stage = "score"
            score = await stages.scoring.score(fields, profile)

            decision = stages.gate.decide(score)
            if decision == GateDecision.AUTO_REJECTED:
                stats.opportunities_auto_rejected += 1
                logger.info("Scoring auto-rejected %s: %s", external_id, score.auto_reject_reason)
                return
            if decision == GateDecision.BELOW_THRESHOLD:
                stats.opportunities_below_threshold += 1
                logger.info("Below threshold %s: %.1f", external_id, score.weighted_score)
                return

            stage = "insert"
            stages.writer.insert(external_id, fields, score)
            stats.opportunities_inserted += 1
        except BudgetExceededError:
            raise
        except DiscoveryError as exc:
            ledger.record_exception(exc, f"{stage}:{external_id}", external_id)
        except Exception as exc:
            logger.exception("Unexpected failure processing %s at stage %s", external_id, stage)
            ledger.record_error(ErrorKind.UNEXPECTED, f"{stage}:{external_id}", str(exc), external_id)
