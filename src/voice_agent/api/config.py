from __future__ import annotations

import os
from dataclasses import dataclass, field
from functools import lru_cache
from typing import List

from dotenv import load_dotenv


def _split_csv(value: str) -> List[str]:
    return [item.strip() for item in value.split(",") if item.strip()]


@dataclass(frozen=True)
class APISettings:
    host: str = "0.0.0.0"
    port: int = 8000
    log_level: str = "info"
    debug: bool = False
    allowed_origins: List[str] = field(default_factory=list)
    data_file: str | None = None
    audit_sink: str = "log"

    @classmethod
    def from_env(cls) -> "APISettings":
        load_dotenv()
        allowed = os.getenv("API_ALLOWED_ORIGINS", "")
        return cls(
            host=os.getenv("API_HOST", "0.0.0.0"),
            port=int(os.getenv("API_PORT", "8000")),
            log_level=os.getenv("API_LOG_LEVEL", "info"),
            debug=os.getenv("API_DEBUG", "false").lower() in {"1", "true", "yes"},
            allowed_origins=_split_csv(allowed) if allowed else [],
            data_file=os.getenv("VOICE_AGENT_DATA_FILE") or None,
            audit_sink=os.getenv("VOICE_AGENT_AUDIT_SINK", "log").lower(),
        )


@lru_cache
def get_settings() -> APISettings:
    return APISettings.from_env()
