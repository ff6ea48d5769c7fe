from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Dict, Iterable, Optional, Tuple

NO_ATTACK = "NONE"

# Severity ranking for quick comparison
SEVERITY_ORDER = {
    "LOW": 20,
    "MEDIUM": 30,
    "HIGH": 40,
    "CRITICAL": 50,
}

KNOWN_SEVERITIES: Tuple[str, ...] = tuple(SEVERITY_ORDER)


def is_success_status(status_code: int) -> bool:
    return 200 <= status_code < 400


@dataclass(frozen=True, slots=True)
class Verdict:
    """Classification outcome for a single HTTP event."""

    is_attack: bool = False
    attack_type: str = NO_ATTACK
    severity: str = "LOW"
    is_successful: bool = False
    detection_reasons: Tuple[str, ...] = ()

    @classmethod
    def benign(cls) -> "Verdict":
        return cls()

    @classmethod
    def from_fields(
        cls,
        *,
        is_attack: bool,
        status_code: int,
        attack_type: str | None = None,
        severity: str | None = None,
        is_successful: bool | None = None,
        detection_reasons: Iterable[str] = (),
    ) -> "Verdict":
        """Build a verdict from caller-provided fields, forcing the record invariants."""
        if not is_attack:
            return cls.benign()
        if severity is not None and not isinstance(severity, str):
            raise ValueError(f"Severity must be a string, got {severity!r}")
        if attack_type is not None and not isinstance(attack_type, str):
            raise ValueError(f"Attack type must be a string, got {attack_type!r}")
        severity = (severity or "HIGH").upper()
        if severity not in SEVERITY_ORDER:
            raise ValueError(f"Unknown severity: {severity}")
        successful = is_success_status(status_code) if is_successful is None else bool(is_successful)
        return cls(
            is_attack=True,
            attack_type=attack_type or "UNKNOWN",
            severity=severity,
            is_successful=successful and is_success_status(status_code),
            detection_reasons=tuple(str(reason) for reason in detection_reasons),
        )

    def normalized(self, status_code: int) -> "Verdict":
        """Re-apply the record invariants against the event's status code."""
        return Verdict.from_fields(
            is_attack=self.is_attack,
            status_code=status_code,
            attack_type=self.attack_type,
            severity=self.severity,
            is_successful=self.is_successful,
            detection_reasons=self.detection_reasons,
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "isAttack": self.is_attack,
            "attackType": self.attack_type,
            "severity": self.severity,
            "isSuccessful": self.is_successful,
            "detectionReasons": list(self.detection_reasons),
        }


@dataclass(slots=True)
class EventInput:
    """Validated description of an HTTP transaction waiting to be stored."""

    timestamp: datetime
    src_ip: str = ""
    dest_ip: str = ""
    method: str = "GET"
    url: str = ""
    status_code: int = 0
    user_agent: str = ""
    raw_request: str | None = None
    id: Optional[str] = None
    verdict: Optional[Verdict] = None


@dataclass(frozen=True, slots=True)
class HttpEventRecord:
    """A classified HTTP event as held by the event store."""

    id: str
    timestamp: datetime
    src_ip: str
    dest_ip: str
    method: str
    url: str
    status_code: int
    user_agent: str
    raw_request: str | None
    verdict: Verdict = field(default_factory=Verdict.benign)

    @classmethod
    def build(cls, event_id: str, event: EventInput, verdict: Verdict) -> "HttpEventRecord":
        return cls(
            id=event_id,
            timestamp=event.timestamp,
            src_ip=event.src_ip,
            dest_ip=event.dest_ip,
            method=event.method,
            url=event.url,
            status_code=event.status_code,
            user_agent=event.user_agent,
            raw_request=event.raw_request,
            verdict=verdict,
        )

    @property
    def is_attack(self) -> bool:
        return self.verdict.is_attack

    @property
    def attack_type(self) -> str:
        return self.verdict.attack_type

    @property
    def severity(self) -> str:
        return self.verdict.severity

    @property
    def is_successful(self) -> bool:
        return self.verdict.is_successful

    @property
    def detection_reasons(self) -> Tuple[str, ...]:
        return self.verdict.detection_reasons

    @property
    def query_string(self) -> str:
        _, sep, query = self.url.partition("?")
        return query if sep else ""

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "timestamp": self.timestamp.astimezone(timezone.utc).isoformat(),
            "srcIP": self.src_ip,
            "destIP": self.dest_ip,
            "method": self.method,
            "url": self.url,
            "statusCode": self.status_code,
            "userAgent": self.user_agent,
            "rawRequest": self.raw_request,
            **self.verdict.to_dict(),
        }
