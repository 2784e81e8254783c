from __future__ import annotations

import os
from pathlib import Path
from typing import Callable, Optional

from dotenv import dotenv_values

from voice_agent.errors import VoiceAgentError

SECRETS_DIR_ENV = "VOICE_AGENT_SECRETS_DIR"


class SecretNotFoundError(VoiceAgentError):
    code = "SECRET_NOT_FOUND"
    recoverable = False


def secrets_dir() -> Path:
    override = (os.getenv(SECRETS_DIR_ENV) or "").strip()
    if override:
        return Path(override).expanduser().resolve()
    # <repo>/src/voice_agent/secrets.py; secrets live next to the checkout
    return (Path(__file__).resolve().parents[3] / "secrets").resolve()


def _from_env(name: str, _: Path) -> Optional[str]:
    return os.getenv(name)


def _from_dotenv(name: str, directory: Path) -> Optional[str]:
    path = directory / ".env"
    if not path.is_file():
        return None
    return dotenv_values(path).get(name)


def _from_mounted_file(name: str, directory: Path) -> Optional[str]:
    # docker/k8s secret mounts: one file per key
    path = directory / name
    if not path.is_file():
        return None
    return path.read_text(encoding="utf-8")


_LOOKUPS: tuple[Callable[[str, Path], Optional[str]], ...] = (_from_env, _from_dotenv, _from_mounted_file)


def get_secret(name: str, *, required: bool = False, directory: Path | None = None) -> Optional[str]:
    """Provider keys and webhook tokens: env var, then `<secrets>/.env`, then `<secrets>/<NAME>`."""
    base = directory or secrets_dir()
    for lookup in _LOOKUPS:
        value = (lookup(name, base) or "").strip()
        if value:
            return value
    if required:
        raise SecretNotFoundError(f"Missing secret {name}. Set env var {name} or create file {base / name}")
    return None
