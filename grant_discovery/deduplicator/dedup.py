"""Deduplication of fetched candidate ids against persisted opportunities."""

import logging
from typing import Iterable, List, Optional, Set

logger = logging.getLogger(__name__)


class Deduplicator:
    """Exact-match set difference keyed by (source, external_id).

    External ids are stable opaque strings, so no normalization or fuzzy
    matching is applied.
    """

    def __init__(self, source: str, existing_ids: Optional[Set[str]] = None):
        """Initialize deduplicator.

        Args:
            source: Registry name the ids belong to
            existing_ids: external_id values already stored for ``source``
        """
        self.source = source
        self.existing_ids = set(existing_ids or ())

    def deduplicate(self, candidate_ids: Iterable[str]) -> List[str]:
        """Return ids not yet persisted, first-seen order, without repeats.

        Args:
            candidate_ids: Ids fetched this run (may repeat across queries)

        Returns:
            New ids in the order they were first fetched
        """
        new_ids = []
        seen = set()
        duplicate_count = 0

        for external_id in candidate_ids:
            if external_id in seen:
                continue
            seen.add(external_id)
            if external_id in self.existing_ids:
                duplicate_count += 1
                logger.debug(f"Duplicate found: {self.source}:{external_id}")
            else:
                new_ids.append(external_id)

        logger.info(f"Deduplication: {len(new_ids)} new, {duplicate_count} duplicates")
        return new_ids
