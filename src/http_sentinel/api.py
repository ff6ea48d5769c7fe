from __future__ import annotations

import logging
from datetime import datetime
from typing import Any, Dict, List

from . import aggregation
from .engine import SignatureClassifier, default_classifier
from .errors import InternalError, InvalidInput, NotFound, SentinelError
from .models import EventInput, HttpEventRecord
from .parsers import parse_ingest_batch, parse_raw_http
from .store import DEFAULT_LIMIT, EventStore

logger = logging.getLogger(__name__)

DEFAULT_SAMPLE_LIMIT = 1000


class SentinelAPI:
    """Request/response operations exposed to transports (HTTP server, CLI)."""

    def __init__(
        self,
        store: EventStore | None = None,
        *,
        classifier: SignatureClassifier | None = None,
        default_limit: int = DEFAULT_LIMIT,
        sample_limit: int = DEFAULT_SAMPLE_LIMIT,
    ) -> None:
        self.classifier = classifier or default_classifier()
        self.store = store if store is not None else EventStore(classifier=self.classifier)
        self.default_limit = default_limit
        self.sample_limit = sample_limit

    def ingest(self, entries: Any) -> Dict[str, int]:
        events = parse_ingest_batch(entries)
        records = self._store_events(events)
        logger.info("Ingested %d events", len(records))
        return {"count": len(records)}

    def ingest_raw(
        self,
        raw: str,
        *,
        src_ip: str | None = None,
        timestamp: datetime | None = None,
        status_code: int = 0,
    ) -> Dict[str, Any]:
        event = parse_raw_http(raw, src_ip=src_ip, timestamp=timestamp, status_code=status_code)
        (record,) = self._store_events([event])
        return {"item": record.to_dict()}

    def _store_events(self, events: List[EventInput]) -> List[HttpEventRecord]:
        try:
            return self.store.insert_many(events)
        except SentinelError:
            raise
        except Exception as exc:
            logger.exception("Failed to store %d events", len(events))
            raise InternalError("Failed to store events") from exc

    def classify_entry(self, entry: Any) -> Dict[str, Any]:
        """Classify without storing; missing fields fall back to the classifier defaults."""
        if not isinstance(entry, dict):
            raise InvalidInput("Entry must describe an HTTP event object")
        verdict = self.classifier.classify(
            entry.get("url", ""),
            entry.get("rawRequest", entry.get("raw_request", "")),
            entry.get("statusCode", entry.get("status_code", 0)),
        )
        return verdict.to_dict()

    def list_recent(self, limit: int | None = None) -> Dict[str, List[Dict[str, Any]]]:
        if limit is None or limit <= 0:
            limit = self.default_limit
        return {"items": [record.to_dict() for record in self.store.find_sorted_limited(limit)]}

    def get_by_id(self, event_id: str) -> Dict[str, Dict[str, Any]]:
        record = self.store.find_by_id(event_id)
        if record is None:
            logger.debug("Lookup miss for event id %s", event_id)
            raise NotFound(event_id)
        return {"item": record.to_dict()}

    def get_summary(self) -> Dict[str, int]:
        recent = self.store.find_sorted_limited(self.sample_limit)
        return {
            "total": self.store.count_matching(),
            "attackCount": self.store.count_matching(is_attack=True),
            "successfulCount": self.store.count_matching(is_successful=True),
            "uniqueIPs": aggregation.unique_ip_count(recent),
        }

    def _sample(self, sample_limit: int | None) -> List[HttpEventRecord]:
        if sample_limit is None or sample_limit <= 0:
            sample_limit = self.sample_limit
        return self.store.find_sorted_limited(sample_limit)

    def get_aggregate_stats(self, sample_limit: int | None = None, last_bins: int | None = None) -> Dict[str, Any]:
        return aggregation.aggregate_stats(self._sample(sample_limit), last_bins=last_bins)

    def get_report(self, sample_limit: int | None = None, top: int = 5) -> Dict[str, Any]:
        """Summary, aggregate stats and top offenders over the most recent sample."""
        sample = self._sample(sample_limit)
        summary = self.get_summary()
        attacks = summary["attackCount"]
        successful = summary["successfulCount"]
        return {
            "summary": summary,
            "stats": aggregation.aggregate_stats(sample),
            "topIPs": [{"ip": ip, "attacks": count} for ip, count in aggregation.top_source_ips(sample, top)],
            "topPayloads": aggregation.top_payloads(sample, top),
            "blocked": attacks - successful,
            "successRate": round(successful / attacks * 100, 1) if attacks else 0.0,
        }
