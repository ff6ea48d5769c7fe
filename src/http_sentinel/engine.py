from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from typing import Any, Sequence

from .models import Verdict, is_success_status
from .rules import DEFAULT_SIGNATURES, Signature, load_signatures_from_json


@dataclass(slots=True)
class ClassifierConfig:
    """Configuration object allowing customization of the classifier."""

    signatures_path: Path | None = None
    include_default_signatures: bool = True


def _as_text(value: Any) -> str:
    return value if isinstance(value, str) else ""


def _as_status(value: Any) -> int:
    if isinstance(value, bool):
        return 0
    try:
        if isinstance(value, (int, float)):
            return int(value)
        return int(str(value).strip())
    except (TypeError, ValueError, OverflowError):
        return 0


class SignatureClassifier:
    """Label HTTP events as benign or malicious using an ordered signature list.

    Every matching signature contributes a detection reason; the attack type and
    severity come from the last signature that matched.
    """

    def __init__(
        self,
        signatures: Sequence[Signature] | None = None,
        *,
        config: ClassifierConfig | None = None,
    ) -> None:
        self._config = config or ClassifierConfig()
        custom = list(signatures or [])
        if self._config.signatures_path:
            custom.extend(load_signatures_from_json(self._config.signatures_path))
        if self._config.include_default_signatures:
            custom = list(DEFAULT_SIGNATURES) + custom
        if not custom:
            raise ValueError("Classifier requires at least one signature")
        self.signatures: tuple[Signature, ...] = tuple(custom)

    def classify(self, url: Any = "", raw_request: Any = "", status_code: Any = 0) -> Verdict:
        text = f"{_as_text(url)} {_as_text(raw_request)}"
        status = _as_status(status_code)
        attack_type, severity, reasons = None, None, []
        for signature in self.signatures:
            if signature.matches(text):
                attack_type = signature.attack_type
                severity = signature.severity
                reasons.append(signature.description)
        if not reasons:
            return Verdict.benign()
        return Verdict(
            is_attack=True,
            attack_type=attack_type,
            severity=severity,
            is_successful=is_success_status(status),
            detection_reasons=tuple(reasons),
        )


_DEFAULT_CLASSIFIER = SignatureClassifier()


def default_classifier() -> SignatureClassifier:
    return _DEFAULT_CLASSIFIER


def classify(url: Any = "", raw_request: Any = "", status_code: Any = 0) -> Verdict:
    """Classify one event with the built-in signature list."""
    return default_classifier().classify(url, raw_request, status_code)
