from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path
from typing import Mapping

from .engine import ClassifierConfig

ENV_PREFIX = "HTTP_SENTINEL_"


def _env_flag(value: str | None, default: bool) -> bool:
    if value is None:
        return default
    return value.strip().lower() in {"1", "true", "yes", "on"}


@dataclass(slots=True)
class SentinelSettings:
    """Runtime settings for the CLI and HTTP server."""

    host: str = "127.0.0.1"
    port: int = 5000
    signatures_path: Path | None = None
    include_default_signatures: bool = True
    default_limit: int = 200
    sample_limit: int = 1000
    log_level: str = "WARNING"

    @classmethod
    def from_env(cls, environ: Mapping[str, str] | None = None) -> "SentinelSettings":
        env = os.environ if environ is None else environ
        defaults = cls()
        signatures = env.get(f"{ENV_PREFIX}SIGNATURES")
        try:
            return cls(
                host=env.get(f"{ENV_PREFIX}HOST", defaults.host),
                port=int(env.get(f"{ENV_PREFIX}PORT", defaults.port)),
                signatures_path=Path(signatures) if signatures else None,
                include_default_signatures=_env_flag(
                    env.get(f"{ENV_PREFIX}DEFAULT_SIGNATURES"), defaults.include_default_signatures
                ),
                default_limit=int(env.get(f"{ENV_PREFIX}DEFAULT_LIMIT", defaults.default_limit)),
                sample_limit=int(env.get(f"{ENV_PREFIX}SAMPLE_LIMIT", defaults.sample_limit)),
                log_level=env.get(f"{ENV_PREFIX}LOG_LEVEL", defaults.log_level).upper(),
            )
        except ValueError as exc:
            raise ValueError(f"Invalid {ENV_PREFIX}* environment setting: {exc}") from exc

    def classifier_config(self) -> ClassifierConfig:
        return ClassifierConfig(
            signatures_path=self.signatures_path,
            include_default_signatures=self.include_default_signatures,
        )
