"""Read-side summaries computed from a snapshot of stored events.

Every function here takes an iterable of records, leaves it untouched, and
returns fresh plain containers, so results can be serialized directly.
"""

from __future__ import annotations

from collections import Counter
from datetime import timezone
from typing import Any, Dict, Iterable, List, Tuple

from .models import KNOWN_SEVERITIES, HttpEventRecord

PAYLOAD_MAX_LENGTH = 100


def hour_bin(record: HttpEventRecord) -> str:
    """Hour bucket label, e.g. ``2024-03-08T14h``."""
    return record.timestamp.astimezone(timezone.utc).strftime("%Y-%m-%dT%Hh")


def attacks_by_type(records: Iterable[HttpEventRecord]) -> Dict[str, int]:
    return dict(Counter(record.attack_type for record in records if record.is_attack))


def severity_counts(records: Iterable[HttpEventRecord]) -> Dict[str, int]:
    counts = {severity: 0 for severity in KNOWN_SEVERITIES}
    for record in records:
        if record.severity in counts:
            counts[record.severity] += 1
    return counts


def time_bins(records: Iterable[HttpEventRecord], last: int | None = None) -> Dict[str, int]:
    counts = Counter(hour_bin(record) for record in records)
    labels = sorted(counts)
    if last is not None:
        labels = labels[-last:] if last > 0 else []
    return {label: counts[label] for label in labels}


def top_source_ips(records: Iterable[HttpEventRecord], n: int = 5) -> List[Tuple[str, int]]:
    # Counter.most_common keeps first-seen order among equal counts.
    return Counter(record.src_ip for record in records if record.is_attack).most_common(n)


def top_payloads(
    records: Iterable[HttpEventRecord],
    n: int = 5,
    max_length: int = PAYLOAD_MAX_LENGTH,
) -> List[Dict[str, Any]]:
    counts: Counter[str] = Counter()
    first_type: Dict[str, str] = {}
    for record in records:
        if not record.is_attack:
            continue
        payload = record.query_string
        if not payload or len(payload) >= max_length:
            continue
        counts[payload] += 1
        first_type.setdefault(payload, record.attack_type)
    return [
        {"payload": payload, "count": count, "type": first_type[payload]}
        for payload, count in counts.most_common(n)
    ]


def unique_ip_count(records: Iterable[HttpEventRecord]) -> int:
    return len({record.src_ip for record in records})


def aggregate_stats(records: Iterable[HttpEventRecord], last_bins: int | None = None) -> Dict[str, Any]:
    snapshot = list(records)
    return {
        "attacksByType": attacks_by_type(snapshot),
        "severityCount": severity_counts(snapshot),
        "timeBins": time_bins(snapshot, last=last_bins),
    }
