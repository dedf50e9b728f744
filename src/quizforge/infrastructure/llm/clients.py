"""HTTP adapters for the Fal any-llm and OpenRouter completion endpoints."""

from __future__ import annotations

from typing import Any, ClassVar

import httpx

from quizforge.application.llm import (
    LLMProvider,
    LLMServiceProvider,
    ProviderCallRequest,
    ProviderCallResponse,
)
from quizforge.infrastructure.llm.errors import (
    ProviderRateLimitError,
    ProviderRequestError,
    ProviderResponseError,
    ProviderServerError,
)

_MAX_ERROR_DETAIL_LENGTH = 300


class _JsonCompletionClient(LLMProvider):
    """Shared plumbing for providers that take one JSON POST per completion.

    Subclasses set ``service``, ``endpoint_path`` and ``auth_scheme`` and
    implement the payload and response mapping for their wire format.
    """

    service: ClassVar[LLMServiceProvider]
    endpoint_path: ClassVar[str]
    auth_scheme: ClassVar[str]
    default_base_url: ClassVar[str]

    def __init__(
        self,
        *,
        http_client: httpx.AsyncClient | None = None,
        base_url: str | None = None,
    ) -> None:
        self._owns_client = http_client is None
        self._http_client = http_client or httpx.AsyncClient(
            base_url=base_url or self.default_base_url
        )

    @property
    def provider(self) -> LLMServiceProvider:
        return self.service

    async def aclose(self) -> None:
        if self._owns_client:
            await self._http_client.aclose()

    async def generate(self, request: ProviderCallRequest) -> ProviderCallResponse:
        response = await self._http_client.post(
            self.endpoint_path,
            headers={
                "Authorization": f"{self.auth_scheme} {request.api_key}",
                "content-type": "application/json",
            },
            json=self._build_payload(request),
            timeout=request.timeout_seconds,
        )
        self._check_status(response)
        return self._parse_body(self._json_body(response))

    def _build_payload(self, request: ProviderCallRequest) -> dict[str, object]:
        raise NotImplementedError

    def _parse_body(self, body: dict[str, Any]) -> ProviderCallResponse:
        raise NotImplementedError

    def _check_status(self, response: httpx.Response) -> None:
        status = response.status_code
        if status < 400:
            return

        message = f"{self.service.value} request failed with status={status}."
        detail = extract_error_detail(response)
        if detail:
            message = f"{message} detail={detail}"

        if status == 429:
            raise ProviderRateLimitError(message)
        if status >= 500:
            raise ProviderServerError(message)
        raise ProviderRequestError(message)

    def _json_body(self, response: httpx.Response) -> dict[str, Any]:
        name = self.service.value
        try:
            body = response.json()
        except ValueError as exc:
            raise ProviderResponseError(f"{name} returned invalid JSON payload.") from exc
        if not isinstance(body, dict):
            raise ProviderResponseError(f"{name} response root must be a JSON object.")
        return body


class FalClient(_JsonCompletionClient):
    """Fal ``any-llm`` endpoint adapter. Fal reports no token usage."""

    service = LLMServiceProvider.FAL
    endpoint_path = "/fal-ai/any-llm"
    auth_scheme = "Key"
    default_base_url = "https://fal.run"

    def _build_payload(self, request: ProviderCallRequest) -> dict[str, object]:
        return {
            "prompt": request.user_prompt,
            "system_prompt": request.system_prompt,
            "model": request.model,
            "max_tokens": request.max_output_tokens,
            "temperature": request.temperature,
        }

    def _parse_body(self, body: dict[str, Any]) -> ProviderCallResponse:
        output = body.get("output")
        if not isinstance(output, str):
            raise ProviderResponseError("fal response is missing output text.")
        return ProviderCallResponse(
            output_text=output.strip(),
            input_tokens=None,
            output_tokens=None,
        )


class OpenRouterClient(_JsonCompletionClient):
    """OpenRouter chat-completions adapter."""

    service = LLMServiceProvider.OPENROUTER
    endpoint_path = "/api/v1/chat/completions"
    auth_scheme = "Bearer"
    default_base_url = "https://openrouter.ai"

    def _build_payload(self, request: ProviderCallRequest) -> dict[str, object]:
        return {
            "model": request.model,
            "temperature": request.temperature,
            "max_tokens": request.max_output_tokens,
            "messages": [
                {"role": "system", "content": request.system_prompt},
                {"role": "user", "content": request.user_prompt},
            ],
        }

    def _parse_body(self, body: dict[str, Any]) -> ProviderCallResponse:
        usage = body.get("usage")
        if not isinstance(usage, dict):
            usage = {}
        return ProviderCallResponse(
            output_text=_first_choice_content(body),
            input_tokens=_token_count(usage.get("prompt_tokens")),
            output_tokens=_token_count(usage.get("completion_tokens")),
        )


def extract_error_detail(response: httpx.Response) -> str | None:
    """Pull a short human-readable detail out of an error response."""
    try:
        body = response.json()
    except ValueError:
        text = response.text.strip()
        return _clip(text) if text else None

    if not isinstance(body, dict):
        return None

    error = body.get("error")
    candidates = [error]
    if isinstance(error, dict):
        candidates = [error.get("message")]
    candidates.extend(body.get(key) for key in ("message", "detail"))

    for candidate in candidates:
        if isinstance(candidate, str) and candidate.strip():
            return _clip(candidate.strip())
    return None


def _clip(value: str) -> str:
    if len(value) <= _MAX_ERROR_DETAIL_LENGTH:
        return value
    return f"{value[:_MAX_ERROR_DETAIL_LENGTH]}..."


def _first_choice_content(body: dict[str, Any]) -> str:
    choices = body.get("choices")
    if not isinstance(choices, list) or not choices:
        raise ProviderResponseError("openrouter response is missing choices.")

    choice = choices[0]
    message = choice.get("message") if isinstance(choice, dict) else None
    if not isinstance(message, dict):
        raise ProviderResponseError("openrouter first choice is missing message object.")

    content = message.get("content")
    if not isinstance(content, str) or not content.strip():
        raise ProviderResponseError("openrouter message content is empty or invalid.")
    return content.strip()


def _token_count(value: object) -> int | None:
    # bool is an int subclass; providers never mean it as a count
    if isinstance(value, int) and not isinstance(value, bool):
        return value
    return None
