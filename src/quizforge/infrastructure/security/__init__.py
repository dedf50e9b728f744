"""Security infrastructure package."""

from quizforge.infrastructure.security.env_store import (
    ChainedApiKeyStore,
    EnvironmentApiKeyStore,
)
from quizforge.infrastructure.security.keyring_store import (
    KeyringApiKeyStore,
    KeyringStoreError,
)

__all__ = [
    "ChainedApiKeyStore",
    "EnvironmentApiKeyStore",
    "KeyringApiKeyStore",
    "KeyringStoreError",
]
