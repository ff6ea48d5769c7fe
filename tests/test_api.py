import sys
import unittest
from pathlib import Path
from unittest import mock

sys.path.insert(0, str(Path(__file__).resolve().parents[1] / "src"))

from http_sentinel.api import SentinelAPI
from http_sentinel.errors import InternalError, InvalidInput, NotFound

ENTRIES = [
    {
        "timestamp": "2024-03-08T10:00:00Z",
        "srcIP": "192.168.1.100",
        "destIP": "192.168.1.1",
        "method": "GET",
        "url": "/api/users?id=1' OR '1'='1",
        "statusCode": 200,
        "userAgent": "Mozilla/5.0",
        "rawRequest": "GET /api/users?id=1' OR '1'='1 HTTP/1.1",
    },
    {
        "timestamp": "2024-03-08T11:00:00Z",
        "srcIP": "10.0.0.101",
        "destIP": "10.0.0.1",
        "method": "POST",
        "url": "/files/../../../etc/passwd",
        "statusCode": 403,
        "userAgent": "curl/1.0",
    },
    {
        "timestamp": "2024-03-08T12:00:00Z",
        "srcIP": "192.168.1.100",
        "destIP": "192.168.1.1",
        "method": "GET",
        "url": "/test?foo=bar",
        "statusCode": 200,
        "userAgent": "Mozilla/5.0",
    },
]


class SentinelAPITestCase(unittest.TestCase):
    def setUp(self) -> None:
        self.api = SentinelAPI()

    def test_ingest_and_summary(self) -> None:
        self.assertEqual(self.api.ingest(ENTRIES), {"count": 3})
        self.assertEqual(
            self.api.get_summary(),
            {"total": 3, "attackCount": 2, "successfulCount": 1, "uniqueIPs": 2},
        )

    def test_ingest_malformed_batch_stores_nothing(self) -> None:
        with self.assertRaises(InvalidInput):
            self.api.ingest(ENTRIES + [{"url": "/missing-timestamp"}])
        with self.assertRaises(InvalidInput):
            self.api.ingest("not a list")
        self.assertEqual(self.api.get_summary()["total"], 0)

    def test_ingest_non_string_severity_is_invalid_input(self) -> None:
        with self.assertRaises(InvalidInput):
            self.api.ingest([{"timestamp": "2024-01-01T00:00:00Z", "isAttack": True, "severity": 3}])
        self.assertEqual(self.api.get_summary()["total"], 0)

    def test_list_recent(self) -> None:
        self.api.ingest(ENTRIES)
        items = self.api.list_recent(2)["items"]
        self.assertEqual([item["url"] for item in items], ["/test?foo=bar", "/files/../../../etc/passwd"])
        self.assertEqual(len(self.api.list_recent()["items"]), 3)
        self.assertEqual(len(self.api.list_recent(0)["items"]), 3)

    def test_get_by_id(self) -> None:
        self.api.ingest(ENTRIES)
        listed = self.api.list_recent()["items"][0]
        self.assertEqual(self.api.get_by_id(listed["id"]), {"item": listed})
        self.assertEqual(listed["timestamp"], "2024-03-08T12:00:00+00:00")
        self.assertEqual(listed["attackType"], "NONE")
        with self.assertRaises(NotFound):
            self.api.get_by_id("log-missing")

    def test_aggregate_stats_bounded_sample(self) -> None:
        self.api.ingest(ENTRIES)
        stats = self.api.get_aggregate_stats()
        self.assertEqual(stats["attacksByType"], {"SQL Injection": 1, "Directory Traversal": 1})
        self.assertEqual(stats["severityCount"]["HIGH"], 2)
        self.assertEqual(stats["severityCount"]["LOW"], 1)
        self.assertEqual(len(stats["timeBins"]), 3)
        recent = self.api.get_aggregate_stats(sample_limit=1, last_bins=7)
        self.assertEqual(recent["timeBins"], {"2024-03-08T12h": 1})
        self.assertEqual(recent["attacksByType"], {})

    def test_empty_store_stats(self) -> None:
        self.assertEqual(self.api.get_summary(), {"total": 0, "attackCount": 0, "successfulCount": 0, "uniqueIPs": 0})
        self.assertEqual(self.api.get_aggregate_stats()["timeBins"], {})
        report = self.api.get_report()
        self.assertEqual(report["topIPs"], [])
        self.assertEqual(report["topPayloads"], [])
        self.assertEqual(report["successRate"], 0.0)

    def test_report(self) -> None:
        self.api.ingest(ENTRIES)
        report = self.api.get_report(top=1)
        # Sample is newest first, so the tie goes to the more recent attacker.
        self.assertEqual(report["topIPs"], [{"ip": "10.0.0.101", "attacks": 1}])
        self.assertEqual(report["topPayloads"], [{"payload": "id=1' OR '1'='1", "count": 1, "type": "SQL Injection"}])
        self.assertEqual(report["blocked"], 1)
        self.assertEqual(report["successRate"], 50.0)

    def test_ingest_raw(self) -> None:
        raw = "GET /proxy?url=http://127.0.0.1/admin HTTP/1.1\r\nHost: app.local\r\n\r\n"
        item = self.api.ingest_raw(raw, src_ip="198.51.100.9")["item"]
        self.assertEqual(item["attackType"], "SSRF")
        self.assertEqual(item["srcIP"], "198.51.100.9")
        self.assertEqual(self.api.get_by_id(item["id"])["item"], item)

    def test_classify_entry_does_not_store(self) -> None:
        verdict = self.api.classify_entry({"url": "/?x=<svg onload=alert(1)>", "statusCode": 200})
        self.assertTrue(verdict["isAttack"])
        self.assertTrue(verdict["isSuccessful"])
        self.assertEqual(verdict["attackType"], "XSS")
        self.assertEqual(self.api.get_summary()["total"], 0)
        with self.assertRaises(InvalidInput):
            self.api.classify_entry(["not", "a", "dict"])

    def test_storage_failure_surfaces_internal_error(self) -> None:
        with mock.patch.object(self.api.store, "insert_many", side_effect=RuntimeError("boom")):
            with self.assertRaises(InternalError):
                self.api.ingest(ENTRIES)


if __name__ == "__main__":
    unittest.main()
