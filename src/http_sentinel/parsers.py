from __future__ import annotations

import json
from datetime import datetime, timezone
from typing import Any, Dict, List

from .errors import InvalidInput
from .models import EventInput, Verdict


def _pick(payload: Dict[str, Any], *keys: str, default: Any = None) -> Any:
    for key in keys:
        if key in payload and payload[key] is not None:
            return payload[key]
    return default


def _text(payload: Dict[str, Any], *keys: str, default: str = "") -> str:
    value = _pick(payload, *keys, default=default)
    return value if isinstance(value, str) else str(value)


def parse_timestamp(value: Any) -> datetime:
    """Accept ISO-8601 strings, epoch seconds or datetimes; naive values are taken as UTC."""
    if value is None or value == "":
        raise InvalidInput("Event timestamp is required")
    if isinstance(value, datetime):
        parsed = value
    elif isinstance(value, (int, float)) and not isinstance(value, bool):
        try:
            parsed = datetime.fromtimestamp(value, tz=timezone.utc)
        except (OverflowError, OSError, ValueError) as exc:
            raise InvalidInput(f"Invalid epoch timestamp: {value}") from exc
    elif isinstance(value, str):
        text = value.strip()
        if text.endswith(("Z", "z")):
            text = text[:-1] + "+00:00"
        try:
            parsed = datetime.fromisoformat(text)
        except ValueError as exc:
            raise InvalidInput(f"Invalid timestamp: {value!r}") from exc
    else:
        raise InvalidInput(f"Unsupported timestamp type: {type(value).__name__}")
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed.astimezone(timezone.utc)


def parse_status_code(value: Any) -> int:
    if value is None or value == "":
        return 0
    if isinstance(value, bool):
        raise InvalidInput("Status code must be an integer")
    if isinstance(value, int):
        return value
    if isinstance(value, float) and value.is_integer():
        return int(value)
    if isinstance(value, str) and value.strip().isdigit():
        return int(value.strip())
    raise InvalidInput(f"Status code must be an integer, got {value!r}")


def _verdict_from_payload(payload: Dict[str, Any], status_code: int) -> Verdict | None:
    flag = _pick(payload, "isAttack", "is_attack")
    if flag is None:
        return None
    reasons = _pick(payload, "detectionReasons", "detection_reasons", default=[])
    if not isinstance(reasons, (list, tuple)):
        raise InvalidInput("detectionReasons must be a list")
    successful = _pick(payload, "isSuccessful", "is_successful")
    try:
        return Verdict.from_fields(
            is_attack=bool(flag),
            status_code=status_code,
            attack_type=_pick(payload, "attackType", "attack_type"),
            severity=_pick(payload, "severity"),
            is_successful=None if successful is None else bool(successful),
            detection_reasons=reasons,
        )
    except ValueError as exc:
        raise InvalidInput(str(exc)) from exc


def dict_to_event_input(payload: Dict[str, Any]) -> EventInput:
    if not isinstance(payload, dict):
        raise InvalidInput("Each entry must describe an HTTP event object")
    status_code = parse_status_code(_pick(payload, "statusCode", "status_code"))
    event_id = _pick(payload, "id", "_id")
    raw_request = _pick(payload, "rawRequest", "raw_request")
    return EventInput(
        timestamp=parse_timestamp(_pick(payload, "timestamp")),
        src_ip=_text(payload, "srcIP", "src_ip"),
        dest_ip=_text(payload, "destIP", "dest_ip"),
        method=_text(payload, "method", default="GET").upper(),
        url=_text(payload, "url"),
        status_code=status_code,
        user_agent=_text(payload, "userAgent", "user_agent"),
        raw_request=None if raw_request is None else str(raw_request),
        id=None if event_id is None else str(event_id),
        verdict=_verdict_from_payload(payload, status_code),
    )


def parse_ingest_batch(entries: Any) -> List[EventInput]:
    """Validate a whole batch up front so a bad entry rejects all of it."""
    if not isinstance(entries, list):
        raise InvalidInput("Ingest payload must contain a list of entries")
    events: List[EventInput] = []
    for index, entry in enumerate(entries):
        try:
            events.append(dict_to_event_input(entry))
        except InvalidInput as exc:
            raise InvalidInput(f"Entry {index}: {exc}") from exc
    return events


def json_line_to_event_input(line: str) -> EventInput:
    try:
        data = json.loads(line)
    except json.JSONDecodeError as exc:
        raise InvalidInput(f"Invalid JSON line: {exc}") from exc
    if not isinstance(data, dict):
        raise InvalidInput("Each JSON line must describe an HTTP event object")
    return dict_to_event_input(data)


def parse_raw_http(
    raw: str,
    *,
    src_ip: str | None = None,
    timestamp: datetime | None = None,
    status_code: int = 0,
) -> EventInput:
    head, _, body = raw.partition("\r\n\r\n")
    if not body:
        head, _, body = raw.partition("\n\n")
    lines = head.splitlines()
    if not lines:
        raise InvalidInput("Invalid raw HTTP request: missing request line")
    parts = lines[0].split()
    if len(parts) < 2:
        raise InvalidInput("Invalid request line")
    headers: Dict[str, str] = {}
    for line in lines[1:]:
        if ":" in line:
            name, value = line.split(":", 1)
            headers[name.strip().lower()] = value.strip()
    host = headers.get("host", "")
    return EventInput(
        timestamp=timestamp or datetime.now(timezone.utc),
        src_ip=src_ip or "",
        dest_ip=host.split(":", 1)[0],
        method=parts[0].upper(),
        url=parts[1],
        status_code=status_code,
        user_agent=headers.get("user-agent", ""),
        raw_request=raw,
    )
