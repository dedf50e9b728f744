"""Provider API keys kept in the operating system keyring."""

from __future__ import annotations

from collections.abc import Iterator
from contextlib import contextmanager

import keyring
from keyring.errors import KeyringError, PasswordDeleteError

from quizforge.application.llm import LLMKeyStore, LLMServiceProvider


class KeyringStoreError(RuntimeError):
    """Raised when the keyring backend cannot complete an operation."""


@contextmanager
def _backend_errors(action: str, provider: LLMServiceProvider) -> Iterator[None]:
    try:
        yield
    except KeyringError as exc:
        raise KeyringStoreError(f"Failed to {action} key for provider {provider.value}.") from exc


class KeyringApiKeyStore(LLMKeyStore):
    """One keyring entry per provider, under a shared service name."""

    def __init__(self, service_name: str = "quizforge") -> None:
        self._service_name = service_name

    def set_key(self, provider: LLMServiceProvider, api_key: str) -> None:
        secret = api_key.strip()
        if not secret:
            raise ValueError("api_key must not be empty")
        with _backend_errors("persist", provider):
            keyring.set_password(self._service_name, _entry_name(provider), secret)

    def get_key(self, provider: LLMServiceProvider) -> str | None:
        with _backend_errors("read", provider):
            secret = keyring.get_password(self._service_name, _entry_name(provider))
        return secret or None

    def delete_key(self, provider: LLMServiceProvider) -> None:
        """Remove the provider entry; an absent entry is not an error."""
        with _backend_errors("delete", provider):
            try:
                keyring.delete_password(self._service_name, _entry_name(provider))
            except PasswordDeleteError:
                return


def _entry_name(provider: LLMServiceProvider) -> str:
    return f"llm:{provider.value}"
