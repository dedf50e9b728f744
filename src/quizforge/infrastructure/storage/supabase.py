"""Supabase Storage adapter over its REST API."""

from __future__ import annotations

import logging
import time
from collections.abc import Callable
from pathlib import PurePosixPath
from typing import cast
from urllib.parse import quote

import httpx

from quizforge.application.errors import StageTransportError
from quizforge.application.ports import ObjectStore
from quizforge.application.progress import PipelineStage
from quizforge.domain.documents import StoredFile
from quizforge.infrastructure.llm.clients import extract_error_detail

LOGGER = logging.getLogger(__name__)

DEFAULT_BUCKET = "quiz-documents"
DEFAULT_STORAGE_TIMEOUT_SECONDS = 120.0


class SupabaseObjectStore(ObjectStore):
    """Store uploads in a private Supabase bucket under ``{owner}/{ms}.{ext}``."""

    def __init__(
        self,
        *,
        base_url: str,
        api_key: str,
        bucket: str = DEFAULT_BUCKET,
        http_client: httpx.AsyncClient | None = None,
        timeout_seconds: float = DEFAULT_STORAGE_TIMEOUT_SECONDS,
        clock_ms: Callable[[], int] | None = None,
    ) -> None:
        if not base_url.strip():
            raise ValueError("base_url must not be empty")
        if not api_key.strip():
            raise ValueError("api_key must not be empty")

        self._base_url = base_url.rstrip("/")
        self._api_key = api_key.strip()
        self._bucket = bucket
        self._http_client = http_client or httpx.AsyncClient(base_url=self._base_url)
        self._owns_client = http_client is None
        self._timeout_seconds = timeout_seconds
        self._clock_ms = clock_ms or (lambda: time.time_ns() // 1_000_000)

    async def aclose(self) -> None:
        """Close owned HTTP client."""
        if self._owns_client:
            await self._http_client.aclose()

    async def upload(
        self,
        *,
        owner_id: str,
        content: bytes,
        mime_type: str,
        filename: str,
    ) -> StoredFile:
        storage_path = build_storage_path(owner_id, filename, self._clock_ms())
        response = await self._http_client.post(
            f"/storage/v1/object/{self._bucket}/{quote(storage_path)}",
            headers={
                **self._auth_headers(),
                "content-type": mime_type,
                "cache-control": "3600",
                "x-upsert": "false",
            },
            content=content,
            timeout=self._timeout_seconds,
        )
        _raise_for_status(response, action="upload", stage=PipelineStage.UPLOADING)

        LOGGER.info(
            "event=storage_upload_completed bucket=%s storage_path=%s size=%s",
            self._bucket,
            storage_path,
            len(content),
        )
        return StoredFile(
            storage_path=storage_path,
            file_name=filename,
            size=len(content),
            mime_type=mime_type,
        )

    async def create_signed_url(self, storage_path: str, *, expires_in_seconds: int) -> str:
        response = await self._http_client.post(
            f"/storage/v1/object/sign/{self._bucket}/{quote(storage_path)}",
            headers=self._auth_headers(),
            json={"expiresIn": expires_in_seconds},
            timeout=self._timeout_seconds,
        )
        _raise_for_status(response, action="signed URL", stage=PipelineStage.OCR)

        try:
            payload = response.json()
        except ValueError as exc:
            raise StageTransportError(
                "Storage returned invalid JSON for signed URL.",
                stage=PipelineStage.OCR,
            ) from exc

        signed = None
        if isinstance(payload, dict):
            payload_obj = cast(dict[str, object], payload)
            signed = payload_obj.get("signedURL") or payload_obj.get("signedUrl")
        if not isinstance(signed, str) or not signed:
            raise StageTransportError(
                "Storage response is missing the signed URL.",
                stage=PipelineStage.OCR,
            )

        if signed.startswith("http"):
            return signed
        return f"{self._base_url}/storage/v1/{signed.lstrip('/')}"

    async def remove(self, storage_path: str) -> None:
        response = await self._http_client.request(
            "DELETE",
            f"/storage/v1/object/{self._bucket}",
            headers=self._auth_headers(),
            json={"prefixes": [storage_path]},
            timeout=self._timeout_seconds,
        )
        _raise_for_status(response, action="delete", stage=None)
        LOGGER.info(
            "event=storage_object_removed bucket=%s storage_path=%s",
            self._bucket,
            storage_path,
        )

    def _auth_headers(self) -> dict[str, str]:
        return {
            "Authorization": f"Bearer {self._api_key}",
            "apikey": self._api_key,
        }


def build_storage_path(owner_id: str, filename: str, timestamp_ms: int) -> str:
    """Return ``{owner}/{timestamp}.{ext}``; files without extension keep none."""
    extension = PurePosixPath(filename).suffix.lstrip(".").lower()
    name = f"{timestamp_ms}.{extension}" if extension else str(timestamp_ms)
    return f"{owner_id}/{name}"


def _raise_for_status(
    response: httpx.Response,
    *,
    action: str,
    stage: PipelineStage | None,
) -> None:
    if response.status_code < 400:
        return

    message = f"Storage {action} failed with status={response.status_code}."
    detail = extract_error_detail(response)
    if detail:
        message = f"{message} detail={detail}"
    raise StageTransportError(message, stage=stage)
