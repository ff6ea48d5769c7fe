from __future__ import annotations

import itertools
import logging
from dataclasses import replace
from threading import Lock
from typing import Any, Dict, List, Mapping, Sequence

from .engine import SignatureClassifier, default_classifier
from .errors import InvalidInput
from .models import EventInput, HttpEventRecord
from .parsers import parse_timestamp

logger = logging.getLogger(__name__)

DEFAULT_LIMIT = 200

_FILTER_FIELDS = {
    "is_attack": "is_attack",
    "isAttack": "is_attack",
    "is_successful": "is_successful",
    "isSuccessful": "is_successful",
}


class EventStore:
    """Thread-safe, append-only in-memory collection of classified HTTP events."""

    def __init__(self, *, classifier: SignatureClassifier | None = None) -> None:
        self._classifier = classifier or default_classifier()
        self._records: List[HttpEventRecord] = []
        self._by_id: Dict[str, HttpEventRecord] = {}
        self._ids = itertools.count(1)
        self._lock = Lock()

    def __len__(self) -> int:
        with self._lock:
            return len(self._records)

    def insert_many(self, events: Sequence[EventInput]) -> List[HttpEventRecord]:
        # Normalization and classification are pure, so they run outside the lock.
        events = [self._normalize(event) for event in events]
        with self._lock:
            supplied = [event.id for event in events if event.id is not None]
            duplicates = {event_id for event_id in supplied if event_id in self._by_id}
            if len(set(supplied)) != len(supplied):
                duplicates.update(event_id for event_id in supplied if supplied.count(event_id) > 1)
            if duplicates:
                raise InvalidInput(f"Duplicate event identifiers: {', '.join(sorted(duplicates))}")
            reserved = set(supplied)
            records: List[HttpEventRecord] = []
            for event in events:
                event_id = event.id if event.id is not None else self._next_id(reserved)
                records.append(HttpEventRecord.build(event_id, event, event.verdict))
            self._records.extend(records)
            self._by_id.update((record.id, record) for record in records)
        logger.debug("Stored %d events (%d attacks)", len(records), sum(r.is_attack for r in records))
        return records

    def _normalize(self, event: EventInput) -> EventInput:
        """Copy of ``event`` with a UTC timestamp and a verdict that satisfies the record invariants."""
        timestamp = parse_timestamp(event.timestamp)
        if event.verdict is None:
            verdict = self._classifier.classify(event.url, event.raw_request or "", event.status_code)
        else:
            try:
                verdict = event.verdict.normalized(event.status_code)
            except ValueError as exc:
                raise InvalidInput(str(exc)) from exc
        return replace(event, timestamp=timestamp, verdict=verdict)

    def _next_id(self, reserved: set[str]) -> str:
        while True:
            candidate = f"log-{next(self._ids)}"
            if candidate not in self._by_id and candidate not in reserved:
                return candidate

    def find(self) -> List[HttpEventRecord]:
        with self._lock:
            return list(self._records)

    def find_sorted_limited(self, limit: int | None = DEFAULT_LIMIT) -> List[HttpEventRecord]:
        """Most recent first; equal timestamps keep insertion order. Non-positive limits fall back to the default."""
        if limit is None or limit <= 0:
            limit = DEFAULT_LIMIT
        items = self.find()
        items.sort(key=lambda record: record.timestamp, reverse=True)
        return items[:limit]

    def find_by_id(self, event_id: str) -> HttpEventRecord | None:
        with self._lock:
            return self._by_id.get(event_id)

    def count_matching(self, **criteria: Any) -> int:
        unknown = set(criteria) - {"is_attack", "is_successful"}
        if unknown:
            raise ValueError(f"Unsupported count filter field(s): {', '.join(sorted(unknown))}")
        with self._lock:
            if not criteria:
                return len(self._records)
            return sum(
                1
                for record in self._records
                if all(getattr(record, name) == value for name, value in criteria.items())
            )

    def count_matching_filter(self, filter: Mapping[str, Any] | None = None) -> int:  # noqa: A002
        criteria: Dict[str, Any] = {}
        for key, value in (filter or {}).items():
            if key not in _FILTER_FIELDS:
                raise ValueError(f"Unsupported count filter field: {key}")
            criteria[_FILTER_FIELDS[key]] = value
        return self.count_matching(**criteria)

    def clear(self) -> None:
        with self._lock:
            self._records.clear()
            self._by_id.clear()
