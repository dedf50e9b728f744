"""Composition root wiring default adapters into the quiz pipeline."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Protocol

from sqlalchemy.orm import Session, sessionmaker

from quizforge.application.llm import LLMKeyStore, LLMServiceProvider
from quizforge.application.pipeline import PipelineDependencies, QuizPipeline
from quizforge.application.ports import ObjectStore
from quizforge.application.quiz_attempts import (
    ListQuizAttemptsUseCase,
    SubmitQuizAttemptUseCase,
)
from quizforge.application.quiz_persistence import (
    UnitOfWorkDocumentLibrary,
    UnitOfWorkQuizGateway,
)
from quizforge.infrastructure.db.session import create_default_session_factory
from quizforge.infrastructure.db.unit_of_work import SqlAlchemyQuizUnitOfWork
from quizforge.infrastructure.extraction.document_extractor import DocumentTextExtractor
from quizforge.infrastructure.llm.clients import FalClient, OpenRouterClient
from quizforge.infrastructure.llm.config import LLMRouterConfig
from quizforge.infrastructure.llm.factory import create_default_llm_router
from quizforge.infrastructure.llm.question_generator import LlmQuestionGenerator
from quizforge.infrastructure.llm.summarizer import LlmSummarizer
from quizforge.infrastructure.ocr.mistral import MistralOcrClient
from quizforge.infrastructure.settings import RuntimeSettings, load_runtime_settings
from quizforge.infrastructure.storage.local import LocalFileObjectStore
from quizforge.infrastructure.storage.supabase import SupabaseObjectStore

LOGGER = logging.getLogger(__name__)


class _AsyncClosable(Protocol):
    async def aclose(self) -> None: ...


@dataclass
class PipelineRuntime:
    """Pipeline plus the persistence services callers use around it."""

    pipeline: QuizPipeline
    extractor: DocumentTextExtractor
    quiz_gateway: UnitOfWorkQuizGateway
    documents: UnitOfWorkDocumentLibrary
    submit_attempt: SubmitQuizAttemptUseCase
    list_attempts: ListQuizAttemptsUseCase
    _closables: list[_AsyncClosable] = field(default_factory=list)

    async def aclose(self) -> None:
        """Close HTTP clients owned by the adapters."""
        for closable in self._closables:
            await closable.aclose()
        self._closables.clear()


def create_default_runtime(
    *,
    settings: RuntimeSettings | None = None,
    session_factory: sessionmaker[Session] | None = None,
    key_store: LLMKeyStore | None = None,
    llm_config: LLMRouterConfig | None = None,
) -> PipelineRuntime:
    """Build the pipeline with SQLite persistence and environment-configured adapters.

    Uploads go to Supabase Storage when its URL and key are set and to a
    local directory otherwise. OCR is wired only with a Mistral key and a
    Supabase store, since the OCR service must fetch the file by URL.
    """
    resolved_settings = settings or load_runtime_settings()
    resolved_session_factory = session_factory or create_default_session_factory()

    def uow_factory() -> SqlAlchemyQuizUnitOfWork:
        return SqlAlchemyQuizUnitOfWork(resolved_session_factory)

    fal_client = FalClient()
    openrouter_client = OpenRouterClient()
    closables: list[_AsyncClosable] = [fal_client, openrouter_client]
    router = create_default_llm_router(
        key_store=key_store,
        session_factory=resolved_session_factory,
        config=llm_config,
        providers={
            LLMServiceProvider.FAL: fal_client,
            LLMServiceProvider.OPENROUTER: openrouter_client,
        },
    )

    storage = resolved_settings.storage
    object_store: ObjectStore
    ocr: MistralOcrClient | None = None
    if storage.uses_supabase:
        supabase_store = SupabaseObjectStore(
            base_url=storage.supabase_url or "",
            api_key=storage.supabase_key or "",
            bucket=storage.bucket,
        )
        closables.append(supabase_store)
        object_store = supabase_store
        if resolved_settings.mistral_api_key:
            ocr = MistralOcrClient(
                object_store=supabase_store,
                api_key=resolved_settings.mistral_api_key,
            )
            closables.append(ocr)
    else:
        object_store = LocalFileObjectStore(storage.local_root)

    LOGGER.info(
        "event=runtime_configured storage=%s ocr_enabled=%s",
        "supabase" if storage.uses_supabase else "local",
        ocr is not None,
    )

    quiz_gateway = UnitOfWorkQuizGateway(uow_factory, object_store=object_store)
    documents = UnitOfWorkDocumentLibrary(uow_factory)
    extractor = DocumentTextExtractor()
    pipeline = QuizPipeline(
        PipelineDependencies(
            extractor=extractor,
            summarizer=LlmSummarizer(router),
            question_generator=LlmQuestionGenerator(router),
            quiz_gateway=quiz_gateway,
            object_store=object_store,
            ocr=ocr,
            documents=documents,
        )
    )
    return PipelineRuntime(
        pipeline=pipeline,
        extractor=extractor,
        quiz_gateway=quiz_gateway,
        documents=documents,
        submit_attempt=SubmitQuizAttemptUseCase(uow_factory),
        list_attempts=ListQuizAttemptsUseCase(uow_factory),
        _closables=closables,
    )
