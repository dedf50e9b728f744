"""SQLAlchemy repository for LLM calls audit persistence."""

from __future__ import annotations

from uuid import uuid4

from sqlalchemy import select
from sqlalchemy.orm import Session

from quizforge.application.llm import LLMServiceProvider, LLMTaskType
from quizforge.application.llm_audit import LLMCallAuditRecord, LLMCallAuditRepository
from quizforge.infrastructure.db.models import LlmCallModel


class SqlAlchemyLlmCallAuditRepository(LLMCallAuditRepository):
    """Persist LLM call audit records into llm_calls table."""

    def __init__(self, session: Session) -> None:
        self._session = session

    def save_call(self, record: LLMCallAuditRecord) -> None:
        model = LlmCallModel(
            id=str(uuid4()),
            llm_call_id=record.llm_call_id,
            correlation_id=record.correlation_id,
            task_type=record.task_type.value,
            provider=record.provider.value,
            model=record.model,
            prompt_hash=record.prompt_hash,
            status=record.status,
            latency_ms=record.latency_ms,
            input_tokens=record.input_tokens,
            output_tokens=record.output_tokens,
            output_hash=record.output_hash,
            output_length=record.output_length,
            output_text=record.output_text,
            created_at=record.created_at,
        )
        self._session.add(model)

    def list_calls(self, correlation_id: str) -> list[LLMCallAuditRecord]:
        statement = (
            select(LlmCallModel)
            .where(LlmCallModel.correlation_id == correlation_id)
            .order_by(LlmCallModel.created_at.asc())
        )
        return [
            LLMCallAuditRecord(
                llm_call_id=model.llm_call_id,
                task_type=LLMTaskType(model.task_type),
                provider=LLMServiceProvider(model.provider),
                model=model.model,
                prompt_hash=model.prompt_hash,
                status=model.status,
                latency_ms=model.latency_ms,
                input_tokens=model.input_tokens,
                output_tokens=model.output_tokens,
                correlation_id=model.correlation_id,
                created_at=model.created_at,
                output_hash=model.output_hash,
                output_length=model.output_length,
                output_text=model.output_text,
            )
            for model in self._session.execute(statement).scalars()
        ]
