"""Factory helpers for default LLM router wiring."""

from __future__ import annotations

from collections.abc import Mapping

from sqlalchemy.orm import Session, sessionmaker

from quizforge.application.llm import LLMKeyStore, LLMProvider, LLMServiceProvider
from quizforge.infrastructure.db.llm_audit_uow import SqlAlchemyLlmCallAuditUnitOfWork
from quizforge.infrastructure.db.session import create_default_session_factory
from quizforge.infrastructure.llm.clients import FalClient, OpenRouterClient
from quizforge.infrastructure.llm.config import LLMRouterConfig, default_router_config
from quizforge.infrastructure.llm.router import LLMRouter
from quizforge.infrastructure.security.env_store import (
    ChainedApiKeyStore,
    EnvironmentApiKeyStore,
)
from quizforge.infrastructure.security.keyring_store import KeyringApiKeyStore


def create_default_key_store() -> LLMKeyStore:
    """Environment variables first, OS keyring second."""
    return ChainedApiKeyStore(EnvironmentApiKeyStore(), KeyringApiKeyStore())


def create_default_llm_router(
    *,
    key_store: LLMKeyStore | None = None,
    session_factory: sessionmaker[Session] | None = None,
    config: LLMRouterConfig | None = None,
    providers: Mapping[LLMServiceProvider, LLMProvider] | None = None,
) -> LLMRouter:
    """Construct router with default clients, config, key store, and audit UoW."""
    resolved_session_factory = session_factory or create_default_session_factory()
    resolved_providers = providers or {
        LLMServiceProvider.FAL: FalClient(),
        LLMServiceProvider.OPENROUTER: OpenRouterClient(),
    }
    return LLMRouter(
        providers=resolved_providers,
        key_store=key_store or create_default_key_store(),
        audit_uow_factory=lambda: SqlAlchemyLlmCallAuditUnitOfWork(resolved_session_factory),
        config=config or default_router_config(),
    )
