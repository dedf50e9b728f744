"""Filesystem object store for local runs without Supabase."""

from __future__ import annotations

import asyncio
import time
from collections.abc import Callable
from pathlib import Path

from quizforge.application.ports import ObjectStore
from quizforge.domain.documents import StoredFile
from quizforge.infrastructure.storage.supabase import build_storage_path


class LocalFileObjectStore(ObjectStore):
    """Write uploads under a root directory; signed URLs are ``file://`` URIs.

    External OCR services cannot read these URLs, so this store suits
    text, Markdown, DOCX, and text-layer PDFs only.
    """

    def __init__(
        self,
        root: Path,
        *,
        clock_ms: Callable[[], int] | None = None,
    ) -> None:
        self._root = root
        self._clock_ms = clock_ms or (lambda: time.time_ns() // 1_000_000)

    async def upload(
        self,
        *,
        owner_id: str,
        content: bytes,
        mime_type: str,
        filename: str,
    ) -> StoredFile:
        storage_path = build_storage_path(owner_id, filename, self._clock_ms())
        await asyncio.to_thread(self._write, storage_path, content)
        return StoredFile(
            storage_path=storage_path,
            file_name=filename,
            size=len(content),
            mime_type=mime_type,
        )

    async def create_signed_url(self, storage_path: str, *, expires_in_seconds: int) -> str:
        path = self._resolve(storage_path)
        if not path.exists():
            raise FileNotFoundError(storage_path)
        return path.as_uri()

    async def remove(self, storage_path: str) -> None:
        path = self._resolve(storage_path)
        await asyncio.to_thread(path.unlink, missing_ok=True)

    def _write(self, storage_path: str, content: bytes) -> None:
        path = self._resolve(storage_path)
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_bytes(content)

    def _resolve(self, storage_path: str) -> Path:
        root = self._root.resolve()
        path = (root / storage_path).resolve()
        if not path.is_relative_to(root):
            raise ValueError(f"storage_path escapes storage root: {storage_path}")
        return path
