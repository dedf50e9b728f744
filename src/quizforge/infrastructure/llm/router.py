"""Task router that picks a provider per task type and audits every call."""

from __future__ import annotations

import asyncio
import hashlib
import logging
import os
import time
from collections.abc import Callable, Mapping
from dataclasses import dataclass
from datetime import UTC, datetime
from uuid import uuid4

from quizforge.application.llm import (
    LLMCompletion,
    LLMGateway,
    LLMKeyStore,
    LLMProvider,
    LLMRequest,
    LLMServiceProvider,
    ProviderCallRequest,
    ProviderCallResponse,
)
from quizforge.application.llm_audit import (
    LLMCallAuditRecord,
    LLMCallAuditUnitOfWorkFactory,
)
from quizforge.infrastructure.llm.config import (
    LLMRouterConfig,
    TaskRoute,
    default_router_config,
    validate_routing_policy,
)
from quizforge.infrastructure.llm.errors import (
    LLMConfigurationError,
    LLMExecutionError,
    LLMRetryExhaustedError,
    MissingApiKeyError,
    ProviderRequestError,
    ProviderResponseError,
)
from quizforge.infrastructure.llm.retry import RETRYABLE_ERRORS, RetryExecutor

LOGGER = logging.getLogger(__name__)
_STORE_LLM_OUTPUT_ENV_VAR = "QUIZFORGE_LLM_AUDIT_STORE_OUTPUT"
_MAX_STORED_OUTPUT_CHARS = 16000

_UNAVAILABLE_ERRORS = (LLMRetryExhaustedError, *RETRYABLE_ERRORS)


@dataclass(frozen=True, slots=True)
class _CallTrace:
    """Identity of one routed call, shared by its audit row and log lines."""

    llm_call_id: str
    request: LLMRequest
    route: TaskRoute
    prompt_hash: str
    started: float


class LLMRouter(LLMGateway):
    """Route task types to providers/models and audit every call."""

    def __init__(
        self,
        *,
        providers: Mapping[LLMServiceProvider, LLMProvider],
        key_store: LLMKeyStore,
        audit_uow_factory: LLMCallAuditUnitOfWorkFactory | None = None,
        config: LLMRouterConfig | None = None,
        retry_executor: RetryExecutor | None = None,
        monotonic: Callable[[], float] = time.monotonic,
        now: Callable[[], datetime] = lambda: datetime.now(tz=UTC),
    ) -> None:
        self._config = config or default_router_config()
        validate_routing_policy(self._config.routes)

        self._providers = providers
        self._key_store = key_store
        self._audit_uow_factory = audit_uow_factory
        self._retry_executor = retry_executor or RetryExecutor(self._config.retry_policy)
        self._monotonic = monotonic
        self._now = now

    async def complete(self, request: LLMRequest) -> LLMCompletion:
        """Run one routed call and return the raw model output.

        Transient provider failures surface as ``LLMExecutionError`` after
        retries; rejected requests and malformed payloads propagate as-is.
        """
        route = self._config.routes.get(request.task_type)
        if route is None:
            raise LLMConfigurationError(
                f"Route is not configured for task type {request.task_type.value}."
            )
        provider = self._providers.get(route.provider)
        if provider is None:
            raise LLMConfigurationError(
                f"Provider client is not configured: {route.provider.value}"
            )
        api_key = await asyncio.to_thread(self._key_store.get_key, route.provider)
        if not api_key:
            raise MissingApiKeyError(f"Missing API key for provider {route.provider.value}.")

        trace = _CallTrace(
            llm_call_id=str(uuid4()),
            request=request,
            route=route,
            prompt_hash=_compute_prompt_hash(request.system_prompt, request.user_prompt),
            started=self._monotonic(),
        )
        call_request = ProviderCallRequest(
            model=route.model,
            api_key=api_key,
            system_prompt=request.system_prompt,
            user_prompt=request.user_prompt,
            max_output_tokens=request.max_output_tokens,
            temperature=request.temperature,
            timeout_seconds=self._config.timeout_seconds,
        )

        try:
            response = await self._retry_executor.run(lambda: provider.generate(call_request))
        except _UNAVAILABLE_ERRORS as exc:
            await self._on_failure(trace, "provider_unavailable", exc)
            raise LLMExecutionError(
                "Language model service is temporarily unavailable. Try again later."
            ) from exc
        except ProviderRequestError as exc:
            await self._on_failure(trace, "provider_rejected", exc)
            raise
        except ProviderResponseError as exc:
            await self._on_failure(trace, "response_invalid", exc)
            raise

        latency_ms = self._elapsed_ms(trace)
        await self._persist_audit(trace, "success", latency_ms, response)
        LOGGER.info(
            (
                "event=llm_call_success correlation_id=%s llm_call_id=%s task_type=%s "
                "provider=%s model=%s latency_ms=%s input_tokens=%s output_tokens=%s"
            ),
            request.correlation_id,
            trace.llm_call_id,
            request.task_type.value,
            route.provider.value,
            route.model,
            latency_ms,
            response.input_tokens,
            response.output_tokens,
        )
        return LLMCompletion(
            llm_call_id=trace.llm_call_id,
            provider=route.provider,
            model=route.model,
            prompt_hash=trace.prompt_hash,
            latency_ms=latency_ms,
            output_text=response.output_text,
            input_tokens=response.input_tokens,
            output_tokens=response.output_tokens,
        )

    def _elapsed_ms(self, trace: _CallTrace) -> int:
        return max(0, int((self._monotonic() - trace.started) * 1000))

    async def _on_failure(self, trace: _CallTrace, status: str, error: Exception) -> None:
        latency_ms = self._elapsed_ms(trace)
        await self._persist_audit(trace, status, latency_ms, None)
        LOGGER.warning(
            (
                "event=llm_call_%s correlation_id=%s llm_call_id=%s task_type=%s "
                "provider=%s model=%s latency_ms=%s error_type=%s"
            ),
            status,
            trace.request.correlation_id,
            trace.llm_call_id,
            trace.request.task_type.value,
            trace.route.provider.value,
            trace.route.model,
            latency_ms,
            error.__class__.__name__,
        )

    async def _persist_audit(
        self,
        trace: _CallTrace,
        status: str,
        latency_ms: int,
        response: ProviderCallResponse | None,
    ) -> None:
        if self._audit_uow_factory is None:
            return

        output = response.output_text if response is not None else None
        record = LLMCallAuditRecord(
            llm_call_id=trace.llm_call_id,
            task_type=trace.request.task_type,
            provider=trace.route.provider,
            model=trace.route.model,
            prompt_hash=trace.prompt_hash,
            status=status,
            latency_ms=latency_ms,
            input_tokens=response.input_tokens if response is not None else None,
            output_tokens=response.output_tokens if response is not None else None,
            correlation_id=trace.request.correlation_id,
            created_at=self._now(),
            output_hash=_sha256(output) if output is not None else None,
            output_length=len(output) if output is not None else None,
            output_text=_stored_output(output),
        )

        try:
            await asyncio.to_thread(self._save_record, record)
        except Exception as exc:
            LOGGER.exception(
                "event=llm_audit_persist_failed correlation_id=%s llm_call_id=%s "
                "status=%s error_type=%s",
                trace.request.correlation_id,
                trace.llm_call_id,
                status,
                exc.__class__.__name__,
            )

    def _save_record(self, record: LLMCallAuditRecord) -> None:
        assert self._audit_uow_factory is not None
        with self._audit_uow_factory() as uow:
            uow.llm_calls.save_call(record)
            uow.commit()


def _compute_prompt_hash(system_prompt: str, user_prompt: str) -> str:
    digest = hashlib.sha256()
    digest.update(system_prompt.encode("utf-8"))
    digest.update(b"\n---\n")
    digest.update(user_prompt.encode("utf-8"))
    return digest.hexdigest()


def _sha256(value: str) -> str:
    return hashlib.sha256(value.encode("utf-8")).hexdigest()


def _stored_output(output: str | None) -> str | None:
    if output is None:
        return None
    raw_value = os.environ.get(_STORE_LLM_OUTPUT_ENV_VAR, "1").strip().lower()
    if raw_value in {"0", "false", "no", "off"}:
        return None
    return output[:_MAX_STORED_OUTPUT_CHARS]
