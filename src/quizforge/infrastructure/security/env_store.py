"""Environment-variable API key lookup with keyring fallback."""

from __future__ import annotations

import os
from collections.abc import Mapping

from quizforge.application.llm import LLMKeyStore, LLMServiceProvider

PROVIDER_ENV_VARS: dict[LLMServiceProvider, str] = {
    LLMServiceProvider.FAL: "FAL_KEY",
    LLMServiceProvider.OPENROUTER: "OPENROUTER_API_KEY",
}


class EnvironmentApiKeyStore(LLMKeyStore):
    """Read provider keys from process environment; writes are unsupported."""

    def __init__(self, environ: Mapping[str, str] | None = None) -> None:
        self._environ = environ if environ is not None else os.environ

    def set_key(self, provider: LLMServiceProvider, api_key: str) -> None:
        raise NotImplementedError("Environment keys are read-only.")

    def get_key(self, provider: LLMServiceProvider) -> str | None:
        value = self._environ.get(PROVIDER_ENV_VARS[provider], "").strip()
        return value or None

    def delete_key(self, provider: LLMServiceProvider) -> None:
        raise NotImplementedError("Environment keys are read-only.")


class ChainedApiKeyStore(LLMKeyStore):
    """Look keys up in the environment first, then in a writable store.

    Writes and deletes go to the writable store only.
    """

    def __init__(self, primary: LLMKeyStore, writable: LLMKeyStore) -> None:
        self._primary = primary
        self._writable = writable

    def set_key(self, provider: LLMServiceProvider, api_key: str) -> None:
        self._writable.set_key(provider, api_key)

    def get_key(self, provider: LLMServiceProvider) -> str | None:
        return self._primary.get_key(provider) or self._writable.get_key(provider)

    def delete_key(self, provider: LLMServiceProvider) -> None:
        self._writable.delete_key(provider)
