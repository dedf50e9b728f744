"""Mistral OCR adapter for scanned PDFs held in the object store."""

from __future__ import annotations

import base64
import binascii
import logging
import re

import httpx
from pydantic import BaseModel, ConfigDict, Field, ValidationError

from quizforge.application.errors import (
    StageTransportError,
    StageUnavailableError,
)
from quizforge.application.ports import ObjectStore, OcrService
from quizforge.application.progress import PipelineStage
from quizforge.domain.documents import BoundingBox, OCRDocument, OCRImage
from quizforge.infrastructure.llm.clients import extract_error_detail

LOGGER = logging.getLogger(__name__)

MISTRAL_BASE_URL = "https://api.mistral.ai"
MISTRAL_OCR_MODEL = "mistral-ocr-latest"
SIGNED_URL_TTL_SECONDS = 600
DEFAULT_OCR_TIMEOUT_SECONDS = 300.0
DEFAULT_IMAGE_MIME_TYPE = "image/jpeg"

_PDF_SUFFIX_PATTERN = re.compile(r"\.pdf$", re.IGNORECASE)


class _OcrImagePayload(BaseModel):
    model_config = ConfigDict(extra="ignore")

    id: str | None = None
    image_base64: str | None = None
    top_left_x: float | None = None
    top_left_y: float | None = None
    bottom_right_x: float | None = None
    bottom_right_y: float | None = None


class _OcrPagePayload(BaseModel):
    model_config = ConfigDict(extra="ignore")

    markdown: str = ""
    images: list[_OcrImagePayload] = Field(default_factory=list)


class _OcrResponsePayload(BaseModel):
    model_config = ConfigDict(extra="ignore")

    pages: list[_OcrPagePayload] = Field(default_factory=list)


class MistralOcrClient(OcrService):
    """Convert stored PDFs to markdown through Mistral's OCR endpoint.

    The document is passed by signed URL, so the file must already be in
    the object store. Embedded images are decoded and returned with
    their page positions.
    """

    def __init__(
        self,
        *,
        object_store: ObjectStore,
        api_key: str | None,
        http_client: httpx.AsyncClient | None = None,
        base_url: str = MISTRAL_BASE_URL,
        timeout_seconds: float = DEFAULT_OCR_TIMEOUT_SECONDS,
    ) -> None:
        self._object_store = object_store
        self._api_key = api_key.strip() if api_key else None
        self._http_client = http_client or httpx.AsyncClient(base_url=base_url)
        self._owns_client = http_client is None
        self._timeout_seconds = timeout_seconds

    @property
    def is_configured(self) -> bool:
        return bool(self._api_key)

    async def aclose(self) -> None:
        """Close owned HTTP client."""
        if self._owns_client:
            await self._http_client.aclose()

    async def convert(self, storage_path: str, file_name: str) -> OCRDocument:
        if not self._api_key:
            raise StageUnavailableError(
                "MISTRAL_API_KEY is not configured.",
                stage=PipelineStage.OCR,
            )

        document_url = await self._object_store.create_signed_url(
            storage_path,
            expires_in_seconds=SIGNED_URL_TTL_SECONDS,
        )
        response = await self._http_client.post(
            "/v1/ocr",
            headers={
                "Authorization": f"Bearer {self._api_key}",
                "content-type": "application/json",
            },
            json={
                "model": MISTRAL_OCR_MODEL,
                "document": {"type": "document_url", "document_url": document_url},
                "include_image_base64": True,
            },
            timeout=self._timeout_seconds,
        )
        if response.status_code >= 400:
            detail = extract_error_detail(response) or ""
            raise StageTransportError(
                f"Mistral OCR error ({response.status_code}): {detail}".rstrip(),
                stage=PipelineStage.OCR,
            )

        try:
            payload = _OcrResponsePayload.model_validate(response.json())
        except (ValueError, ValidationError) as exc:
            raise StageTransportError(
                "Mistral OCR returned a malformed response.",
                stage=PipelineStage.OCR,
            ) from exc

        document = OCRDocument(
            pages=tuple(page.markdown for page in payload.pages),
            images=tuple(_collect_images(payload.pages)),
            file_name=_PDF_SUFFIX_PATTERN.sub(".txt", file_name),
        )
        LOGGER.info(
            "event=ocr_completed storage_path=%s page_count=%s image_count=%s length=%s",
            storage_path,
            document.page_count,
            len(document.images),
            len(document.text),
        )
        return document


def _collect_images(pages: list[_OcrPagePayload]) -> list[OCRImage]:
    images: list[OCRImage] = []
    global_index = 0
    for page_number, page in enumerate(pages, start=1):
        for image in page.images:
            image_id = image.id or f"img_page{page_number}_{global_index}"
            mime_type, data = _split_image_payload(image_id, image.image_base64 or "")
            images.append(
                OCRImage(
                    id=image_id,
                    page_number=page_number,
                    image_index=global_index,
                    mime_type=mime_type,
                    content=_decode_base64(data),
                    bbox=_bounding_box(image),
                    description=f"Image {global_index + 1} from page {page_number}",
                )
            )
            global_index += 1
    return images


def _split_image_payload(image_id: str, raw: str) -> tuple[str, str]:
    """Infer MIME type from the id or data URI prefix and strip the prefix."""
    mime_type = DEFAULT_IMAGE_MIME_TYPE
    if image_id.endswith(".png"):
        mime_type = "image/png"
    elif image_id.endswith(".webp"):
        mime_type = "image/webp"

    if raw.startswith("data:"):
        prefix, separator, data = raw.partition(",")
        if separator:
            if "image/png" in prefix:
                mime_type = "image/png"
            elif "image/webp" in prefix:
                mime_type = "image/webp"
            raw = data
    return mime_type, raw


def _decode_base64(data: str) -> bytes:
    try:
        return base64.b64decode(data, validate=False)
    except (binascii.Error, ValueError):
        LOGGER.warning("event=ocr_image_decode_failed length=%s", len(data))
        return b""


def _bounding_box(image: _OcrImagePayload) -> BoundingBox | None:
    if (
        image.top_left_x is None
        or image.top_left_y is None
        or image.bottom_right_x is None
        or image.bottom_right_y is None
    ):
        return None
    return BoundingBox(
        top_left_x=image.top_left_x,
        top_left_y=image.top_left_y,
        bottom_right_x=image.bottom_right_x,
        bottom_right_y=image.bottom_right_y,
    )
