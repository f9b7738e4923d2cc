"""Discovery sync entry point with APScheduler.

- Daily sync at SYNC_HOUR_UTC via AsyncIOScheduler (one run at a time)
- --once runs a single scheduled-style sync and exits
- --seed-queries PATH loads the query catalog into discovery_queries
- --serve exposes the HTTP trigger and cancel endpoints with uvicorn
"""

import argparse
import asyncio
import logging
import sys
from typing import List, Optional

from apscheduler.schedulers.asyncio import AsyncIOScheduler
from apscheduler.triggers.cron import CronTrigger

from .config import Config, load_config
from .database import SupabaseClient
from .models import RunStatus, TriggerSource
from .orchestrator import SyncContext, SyncOrchestrator, SyncResult
from .seeds import DEFAULT_QUERIES_PATH, load_query_definitions

# Configure logging
logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
    handlers=[logging.StreamHandler(sys.stdout)]
)
logger = logging.getLogger(__name__)


async def run_sync(config: Optional[Config] = None) -> SyncResult:
    """Run one scheduled discovery sync."""
    config = config or load_config()
    context = SyncContext.from_config(config)
    return await SyncOrchestrator(context).run(TriggerSource.SCHEDULED)


def seed_queries(path: str, config: Optional[Config] = None) -> dict:
    """Upsert the query catalog by label. Existing cursors are kept."""
    config = config or load_config()
    db = SupabaseClient(config.supabase_url, config.supabase_key)
    counts = {"inserted": 0, "updated": 0}
    for definition in load_query_definitions(path):
        outcome = db.upsert_query_by_label(definition)
        counts[outcome] += 1
        logger.info("%s query %r", outcome.capitalize(), definition["label"])
    logger.info("Seeded queries: %d inserted, %d updated", counts["inserted"], counts["updated"])
    return counts


def start_scheduler() -> None:
    """Start APScheduler for the daily sync."""
    config = load_config()
    logging.getLogger().setLevel(config.log_level)

    logger.info("Initializing Grant Discovery Sync")
    logger.info("Daily sync at %02d:00 UTC", config.sync_hour_utc)

    scheduler = AsyncIOScheduler(timezone="UTC")
    scheduler.add_job(
        run_sync,
        trigger=CronTrigger(hour=config.sync_hour_utc, minute=0, timezone="UTC"),
        kwargs={"config": config},
        id="discovery_sync",
        name="Daily grant discovery sync",
        replace_existing=True,
        max_instances=1,
    )

    loop = asyncio.new_event_loop()
    asyncio.set_event_loop(loop)
    scheduler.start()
    logger.info("Scheduler started")

    try:
        loop.run_forever()
    except (KeyboardInterrupt, SystemExit):
        logger.info("Shutting down scheduler...")
        scheduler.shutdown()
        logger.info("Scheduler stopped")


def serve(host: str, port: int) -> None:
    import uvicorn

    from .api import create_app

    uvicorn.run(create_app(), host=host, port=port)


def parse_args(argv: Optional[List[str]] = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(prog="grant_discovery", description="Grant discovery sync")
    mode = parser.add_mutually_exclusive_group()
    mode.add_argument("--once", action="store_true", help="Run one sync and exit")
    mode.add_argument(
        "--seed-queries",
        metavar="PATH",
        nargs="?",
        const=str(DEFAULT_QUERIES_PATH),
        help="Upsert the discovery query catalog from YAML and exit",
    )
    mode.add_argument("--serve", action="store_true", help="Serve the HTTP endpoints")
    parser.add_argument("--host", default="0.0.0.0")
    parser.add_argument("--port", type=int, default=8000)
    return parser.parse_args(argv)


def main(argv: Optional[List[str]] = None) -> int:
    args = parse_args(argv)
    if args.once:
        result = asyncio.run(run_sync())
        logger.info("Run %s finished with status %s", result.run_id, result.status.value)
        return 1 if result.status == RunStatus.FAILED else 0
    if args.seed_queries:
        seed_queries(args.seed_queries)
        return 0
    if args.serve:
        serve(args.host, args.port)
        return 0
    start_scheduler()
    return 0


if __name__ == "__main__":
    sys.exit(main())
