"""In-memory location sample store."""

from __future__ import annotations

import logging
import threading
from dataclasses import dataclass
from datetime import datetime
from typing import Iterable, List, Optional

from geoheat.common.models import GeoBounds, LocationSample

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class StoreStatistics:
    total_points: int
    first_timestamp: Optional[datetime]
    last_timestamp: Optional[datetime]


class InMemorySampleStore:
    """Thread-safe list of samples exposing the fetch-all / append contract.

    Every read returns a fresh list ordered by timestamp, so callers can hand
    it to the engine as a snapshot.
    """

    def __init__(self, samples: Iterable[LocationSample] = ()) -> None:
        self._lock = threading.Lock()
        self._samples: List[LocationSample] = list(samples)

    def append_one(self, sample: LocationSample) -> None:
        self.append([sample])

    def append(self, samples: Iterable[LocationSample]) -> None:
        batch = list(samples)
        with self._lock:
            self._samples.extend(batch)
        logger.debug("Stored %d location samples", len(batch))

    def fetch_all(self) -> List[LocationSample]:
        with self._lock:
            return sorted(self._samples, key=lambda sample: sample.timestamp)

    def fetch_between(self, start: datetime, end: datetime) -> List[LocationSample]:
        return [sample for sample in self.fetch_all() if start <= sample.timestamp <= end]

    def fetch_within(self, bounds: GeoBounds) -> List[LocationSample]:
        return [sample for sample in self.fetch_all() if bounds.contains(sample.latitude, sample.longitude)]

    def count(self) -> int:
        with self._lock:
            return len(self._samples)

    def clear(self) -> int:
        with self._lock:
            removed = len(self._samples)
            self._samples = []
        logger.info("Cleared %d location samples", removed)
        return removed

    def delete_older_than(self, cutoff: datetime) -> int:
        with self._lock:
            kept = [sample for sample in self._samples if sample.timestamp >= cutoff]
            removed = len(self._samples) - len(kept)
            self._samples = kept
        logger.info("Deleted %d location samples older than %s", removed, cutoff)
        return removed

    def statistics(self) -> StoreStatistics:
        samples = self.fetch_all()
        if not samples:
            return StoreStatistics(total_points=0, first_timestamp=None, last_timestamp=None)
        return StoreStatistics(
            total_points=len(samples),
            first_timestamp=samples[0].timestamp,
            last_timestamp=samples[-1].timestamp,
        )
