"""Runtime settings read from the environment."""

from __future__ import annotations

import os
from collections.abc import Mapping
from dataclasses import dataclass
from pathlib import Path

from quizforge.infrastructure.storage.supabase import DEFAULT_BUCKET

SUPABASE_URL_ENV_VAR = "SUPABASE_URL"
SUPABASE_KEY_ENV_VAR = "SUPABASE_SERVICE_ROLE_KEY"
STORAGE_BUCKET_ENV_VAR = "QUIZFORGE_STORAGE_BUCKET"
LOCAL_STORAGE_DIR_ENV_VAR = "QUIZFORGE_LOCAL_STORAGE_DIR"
MISTRAL_KEY_ENV_VAR = "MISTRAL_API_KEY"


@dataclass(frozen=True)
class StorageSettings:
    """Object store location; Supabase when URL and key are both set."""

    supabase_url: str | None
    supabase_key: str | None
    bucket: str
    local_root: Path

    @property
    def uses_supabase(self) -> bool:
        return bool(self.supabase_url and self.supabase_key)


@dataclass(frozen=True)
class RuntimeSettings:
    """Settings for collaborators outside the LLM router."""

    storage: StorageSettings
    mistral_api_key: str | None


def load_runtime_settings(environ: Mapping[str, str] | None = None) -> RuntimeSettings:
    """Read settings from environment; blank values count as unset."""
    env = environ if environ is not None else os.environ
    local_root = _read(env, LOCAL_STORAGE_DIR_ENV_VAR)
    return RuntimeSettings(
        storage=StorageSettings(
            supabase_url=_read(env, SUPABASE_URL_ENV_VAR),
            supabase_key=_read(env, SUPABASE_KEY_ENV_VAR),
            bucket=_read(env, STORAGE_BUCKET_ENV_VAR) or DEFAULT_BUCKET,
            local_root=(
                Path(local_root).expanduser().resolve()
                if local_root
                else (Path.home() / ".quizforge" / "uploads").resolve()
            ),
        ),
        mistral_api_key=_read(env, MISTRAL_KEY_ENV_VAR),
    )


def _read(env: Mapping[str, str], name: str) -> str | None:
    value = env.get(name, "").strip()
    return value or None
