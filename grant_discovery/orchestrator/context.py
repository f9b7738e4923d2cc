"""Explicit per-invocation wiring: configuration plus external collaborators.

Nothing in the pipeline constructs clients at import time; everything a run
touches is reachable from a SyncContext.
"""

import time
from dataclasses import dataclass, field
from typing import Callable

import anthropic

from ..adapters import BaseAdapter, SimplerGrantsAdapter
from ..config import Config
from ..database import SupabaseClient


@dataclass
class SyncContext:
    config: Config
    db: SupabaseClient
    registry: BaseAdapter
    anthropic_client: anthropic.AsyncAnthropic
    clock: Callable[[], float] = field(default=time.monotonic)

    @classmethod
    def from_config(cls, config: Config) -> "SyncContext":
        return cls(
            config=config,
            db=SupabaseClient(config.supabase_url, config.supabase_key),
            registry=SimplerGrantsAdapter(
                api_key=config.simpler_grants_api_key,
                base_url=config.simpler_grants_base_url,
                source_name=config.opportunity_source,
            ),
            anthropic_client=anthropic.AsyncAnthropic(api_key=config.anthropic_api_key),
        )
