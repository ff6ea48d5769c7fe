from __future__ import annotations

import json
import re
from dataclasses import dataclass, field
from pathlib import Path
from typing import List, Pattern, Tuple

from .models import SEVERITY_ORDER


@dataclass(slots=True)
class Signature:
    """Attack signature: a pattern tagged with the attack type and severity it indicates."""

    pattern: str
    attack_type: str
    severity: str
    description: str = ""
    case_insensitive: bool = True
    compiled: Pattern[str] = field(init=False, repr=False)

    def __post_init__(self) -> None:
        self.severity = self.severity.upper()
        if self.severity not in SEVERITY_ORDER:
            raise ValueError(f"Unknown severity '{self.severity}' for signature {self.pattern!r}")
        if not self.description:
            self.description = self.pattern
        flags = re.IGNORECASE if self.case_insensitive else 0
        self.compiled = re.compile(self.pattern, flags)

    def matches(self, text: str) -> bool:
        return self.compiled.search(text) is not None

    @classmethod
    def from_dict(cls, data: dict) -> "Signature":
        return cls(
            pattern=data["pattern"],
            attack_type=data.get("attackType", data.get("attack_type", "UNKNOWN")),
            severity=data.get("severity", "MEDIUM"),
            description=data.get("description", ""),
            case_insensitive=data.get("case_insensitive", True),
        )


def load_signatures_from_json(path: Path) -> List[Signature]:
    data = json.loads(path.read_text())
    if not isinstance(data, list):
        raise ValueError("Signatures JSON must be a list of signature definitions")
    return [Signature.from_dict(item) for item in data]


# Evaluation order matters: the last matching signature sets the verdict's type and severity.
DEFAULT_SIGNATURES: Tuple[Signature, ...] = (
    Signature(
        pattern=r"union\s*.*\s*select",
        attack_type="SQL Injection",
        severity="HIGH",
        description="SQL UNION ... SELECT statement",
    ),
    Signature(
        pattern=r"select\s*.*\s*from",
        attack_type="SQL Injection",
        severity="HIGH",
        description="SQL SELECT ... FROM statement",
    ),
    Signature(
        pattern=r"('|%27)(\s|%20)*(or|and)(\s|%20)*('|%27|\d)",
        attack_type="SQL Injection",
        severity="HIGH",
        description="Quoted boolean tautology (' OR '1'='1)",
    ),
    Signature(
        pattern=r"onerror=",
        attack_type="XSS",
        severity="HIGH",
        description="onerror= event handler injection",
    ),
    Signature(
        pattern=r"onload=",
        attack_type="XSS",
        severity="HIGH",
        description="onload= event handler injection",
    ),
    Signature(
        pattern=r"<script[^>]*>",
        attack_type="XSS",
        severity="HIGH",
        description="Inline <script> tag",
    ),
    Signature(
        pattern=r"\.\./",
        attack_type="Directory Traversal",
        severity="HIGH",
        description="Parent directory sequence ../",
    ),
    Signature(
        pattern=r"localhost|127\.0\.0\.1",
        attack_type="SSRF",
        severity="CRITICAL",
        description="Request targeting localhost or 127.0.0.1",
    ),
)
