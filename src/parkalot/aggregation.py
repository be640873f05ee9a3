"""Merge an externally ranked distance list with stored parking lot records."""

import logging
from dataclasses import dataclass, field
from typing import Iterable, Optional, Union

from .errors import StoreUnavailable
from .metrics import record_aggregation_query
from .store.location_store import LocationStore
from .store.models import DistanceEntry, MergedResult

logger = logging.getLogger(__name__)


@dataclass
class AggregationResult:
    """Outcome of a distance-ranked availability query."""

    results: list[MergedResult] = field(default_factory=list)
    degraded: bool = False  # True when the store could not be reached
    dropped: int = 0  # Entries whose location has no stored record
    reason: Optional[str] = None

    @classmethod
    def degraded_result(cls, reason: str) -> "AggregationResult":
        """Empty result returned in place of a store failure."""
        return cls(results=[], degraded=True, reason=reason)


class AggregationQuery:
    """
    Read-only merge of ranked distances and stored lot records.

    Output keeps the caller's order. A location may appear once per
    distance entry that names it. Entries without a stored record are
    dropped, and a store outage yields an empty, degraded result rather
    than an error so the read path stays available.
    """

    def __init__(self, store: LocationStore):
        self.store = store

    async def merge(self, entries: Iterable[Union[DistanceEntry, dict]]) -> AggregationResult:
        """
        Annotate stored records with their distances.

        Args:
            entries: Ranked distance entries (models or plain dicts)

        Returns:
            AggregationResult with merged records in input order
        """
        ranked = [e if isinstance(e, DistanceEntry) else DistanceEntry.model_validate(e) for e in entries]

        if not ranked:
            record_aggregation_query("empty")
            return AggregationResult()

        ids = list(dict.fromkeys(e.location_id for e in ranked))

        try:
            records = await self.store.find_by_ids(ids)
        except StoreUnavailable as e:
            logger.error(f"Aggregation query degraded to empty result: {e}")
            record_aggregation_query("degraded")
            return AggregationResult.degraded_result(str(e))

        results = [
            MergedResult.from_record(records[e.location_id], e.distance)
            for e in ranked
            if e.location_id in records
        ]
        dropped = len(ranked) - len(results)

        if dropped:
            logger.info(f"Dropped {dropped} distance entr{'y' if dropped == 1 else 'ies'} with no stored record")

        logger.debug(f"Merged {len(results)} parking lot(s) from {len(ranked)} distance entries")
        record_aggregation_query("ok" if results else "empty")
        return AggregationResult(results=results, dropped=dropped)
