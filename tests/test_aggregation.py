import sys
import unittest
from datetime import datetime, timedelta, timezone
from pathlib import Path

sys.path.insert(0, str(Path(__file__).resolve().parents[1] / "src"))

from http_sentinel import aggregation
from http_sentinel.models import EventInput
from http_sentinel.store import EventStore

BASE = datetime(2024, 3, 8, 9, 30, tzinfo=timezone.utc)


class AggregationTestCase(unittest.TestCase):
    def setUp(self) -> None:
        self.store = EventStore()
        self.store.insert_many([
            EventInput(timestamp=BASE, src_ip="10.0.0.1", url="/a?id=1 union select 2", status_code=200),
            EventInput(timestamp=BASE + timedelta(minutes=10), src_ip="10.0.0.2", url="/f?p=../etc", status_code=403),
            EventInput(timestamp=BASE + timedelta(hours=1), src_ip="10.0.0.2", url="/f?p=../etc", status_code=200),
            EventInput(timestamp=BASE + timedelta(hours=1), src_ip="10.0.0.1", url="/x?u=localhost", status_code=500),
            EventInput(timestamp=BASE + timedelta(hours=3), src_ip="10.0.0.3", url="/home", status_code=200),
        ])
        self.records = self.store.find()

    def test_attacks_by_type(self) -> None:
        self.assertEqual(
            aggregation.attacks_by_type(self.records),
            {"SQL Injection": 1, "Directory Traversal": 2, "SSRF": 1},
        )

    def test_severity_counts_include_all_known_levels(self) -> None:
        self.assertEqual(
            aggregation.severity_counts(self.records),
            {"LOW": 1, "MEDIUM": 0, "HIGH": 3, "CRITICAL": 1},
        )

    def test_time_bins(self) -> None:
        bins = aggregation.time_bins(self.records)
        self.assertEqual(bins, {"2024-03-08T09h": 2, "2024-03-08T10h": 2, "2024-03-08T12h": 1})
        self.assertEqual(list(bins), sorted(bins))
        self.assertEqual(aggregation.time_bins(self.records, last=2), {"2024-03-08T10h": 2, "2024-03-08T12h": 1})
        self.assertEqual(aggregation.time_bins(self.records, last=0), {})

    def test_time_bins_use_utc(self) -> None:
        offset = timezone(timedelta(hours=5))
        store = EventStore()
        store.insert_many([EventInput(timestamp=datetime(2024, 3, 8, 2, 15, tzinfo=offset))])
        self.assertEqual(aggregation.time_bins(store.find()), {"2024-03-07T21h": 1})

    def test_top_source_ips_ties_first_seen(self) -> None:
        self.assertEqual(aggregation.top_source_ips(self.records), [("10.0.0.1", 2), ("10.0.0.2", 2)])
        self.assertEqual(aggregation.top_source_ips(self.records, n=1), [("10.0.0.1", 2)])

    def test_top_payloads(self) -> None:
        self.assertEqual(
            aggregation.top_payloads(self.records),
            [
                {"payload": "p=../etc", "count": 2, "type": "Directory Traversal"},
                {"payload": "id=1 union select 2", "count": 1, "type": "SQL Injection"},
                {"payload": "u=localhost", "count": 1, "type": "SSRF"},
            ],
        )

    def test_top_payloads_skips_long_queries(self) -> None:
        store = EventStore()
        store.insert_many([
            EventInput(timestamp=BASE, url="/s?q=" + "A" * 95 + "../"),
            EventInput(timestamp=BASE, url="/s?q=" + "B" * 94 + "../"),
        ])
        payloads = aggregation.top_payloads(store.find())
        self.assertEqual(len(payloads), 1)
        self.assertTrue(payloads[0]["payload"].startswith("q=B"))

    def test_top_payloads_keeps_first_seen_type(self) -> None:
        store = EventStore()
        store.insert_many([
            EventInput(timestamp=BASE, url="/a?x=../y"),
            EventInput(timestamp=BASE, url="/b?x=../y", raw_request="Host: localhost"),
        ])
        (entry,) = aggregation.top_payloads(store.find())
        self.assertEqual(entry, {"payload": "x=../y", "count": 2, "type": "Directory Traversal"})

    def test_unique_ip_count(self) -> None:
        self.assertEqual(aggregation.unique_ip_count(self.records), 3)

    def test_empty_snapshot(self) -> None:
        self.assertEqual(aggregation.attacks_by_type([]), {})
        self.assertEqual(aggregation.severity_counts([]), {"LOW": 0, "MEDIUM": 0, "HIGH": 0, "CRITICAL": 0})
        self.assertEqual(aggregation.time_bins([]), {})
        self.assertEqual(aggregation.time_bins([], last=7), {})
        self.assertEqual(aggregation.top_source_ips([]), [])
        self.assertEqual(aggregation.top_payloads([]), [])
        self.assertEqual(aggregation.unique_ip_count([]), 0)
        self.assertEqual(
            aggregation.aggregate_stats([]),
            {
                "attacksByType": {},
                "severityCount": {"LOW": 0, "MEDIUM": 0, "HIGH": 0, "CRITICAL": 0},
                "timeBins": {},
            },
        )

    def test_does_not_mutate_snapshot(self) -> None:
        before = list(self.records)
        aggregation.aggregate_stats(self.records, last_bins=1)
        aggregation.top_payloads(self.records)
        self.assertEqual(self.records, before)


if __name__ == "__main__":
    unittest.main()
