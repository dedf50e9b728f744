"""Tests for settings, runtime wiring, and the command-line entrypoint."""

from __future__ import annotations

import asyncio
from datetime import UTC, datetime
from pathlib import Path

import pytest
from sqlalchemy import Engine

from quizforge.__main__ import build_parser, build_source, guess_mime_type, main
from quizforge.application.llm import LLMServiceProvider, LLMTaskType
from quizforge.application.llm_audit import LLMCallAuditRecord
from quizforge.domain.source import DOCX_MIME_TYPE, DocumentSource, TextSource, UploadSource
from quizforge.infrastructure.db.llm_audit_uow import SqlAlchemyLlmCallAuditUnitOfWork
from quizforge.infrastructure.db.session import (
    create_session_factory,
    create_sqlite_engine,
    init_schema,
)
from quizforge.infrastructure.factory import PipelineRuntime, create_default_runtime
from quizforge.infrastructure.ocr.mistral import MistralOcrClient
from quizforge.infrastructure.settings import load_runtime_settings
from quizforge.infrastructure.storage.local import LocalFileObjectStore
from quizforge.infrastructure.storage.supabase import SupabaseObjectStore


class InMemoryKeyStore:
    def __init__(self) -> None:
        self._keys: dict[LLMServiceProvider, str] = {}

    def set_key(self, provider: LLMServiceProvider, api_key: str) -> None:
        self._keys[provider] = api_key

    def get_key(self, provider: LLMServiceProvider) -> str | None:
        return self._keys.get(provider)

    def delete_key(self, provider: LLMServiceProvider) -> None:
        self._keys.pop(provider, None)


def test_load_runtime_settings_defaults_to_local_storage(tmp_path: Path) -> None:
    settings = load_runtime_settings(
        {
            "QUIZFORGE_LOCAL_STORAGE_DIR": str(tmp_path),
            "SUPABASE_URL": "https://project.supabase.co",
            "SUPABASE_SERVICE_ROLE_KEY": "  ",
        }
    )

    assert settings.storage.uses_supabase is False
    assert settings.storage.bucket == "quiz-documents"
    assert settings.storage.local_root == tmp_path.resolve()
    assert settings.mistral_api_key is None


def test_load_runtime_settings_reads_supabase_and_mistral() -> None:
    settings = load_runtime_settings(
        {
            "SUPABASE_URL": "https://project.supabase.co",
            "SUPABASE_SERVICE_ROLE_KEY": "service-key",
            "QUIZFORGE_STORAGE_BUCKET": "lessons",
            "MISTRAL_API_KEY": "mistral-key",
        }
    )

    assert settings.storage.uses_supabase is True
    assert settings.storage.bucket == "lessons"
    assert settings.mistral_api_key == "mistral-key"


def test_runtime_uses_local_store_without_ocr(tmp_path: Path) -> None:
    runtime, engine = _make_runtime(
        tmp_path,
        {"QUIZFORGE_LOCAL_STORAGE_DIR": str(tmp_path / "uploads"), "MISTRAL_API_KEY": "k"},
    )
    try:
        dependencies = runtime.pipeline._deps
        assert isinstance(dependencies.object_store, LocalFileObjectStore)
        assert dependencies.ocr is None
        assert dependencies.documents is runtime.documents
    finally:
        asyncio.run(runtime.aclose())
        engine.dispose()


def test_runtime_wires_supabase_store_and_ocr(tmp_path: Path) -> None:
    runtime, engine = _make_runtime(
        tmp_path,
        {
            "SUPABASE_URL": "https://project.supabase.co",
            "SUPABASE_SERVICE_ROLE_KEY": "service-key",
            "MISTRAL_API_KEY": "mistral-key",
        },
    )
    try:
        dependencies = runtime.pipeline._deps
        assert isinstance(dependencies.object_store, SupabaseObjectStore)
        assert isinstance(dependencies.ocr, MistralOcrClient)
        assert dependencies.ocr.is_configured is True
    finally:
        asyncio.run(runtime.aclose())
        engine.dispose()


@pytest.mark.parametrize(
    ("file_name", "expected"),
    [
        ("lesson.PDF", "application/pdf"),
        ("notes.txt", "text/plain"),
        ("readme.md", "text/markdown"),
        ("essay.docx", DOCX_MIME_TYPE),
        ("photo.png", "image/png"),
        ("archive.unknownext", "application/octet-stream"),
    ],
)
def test_guess_mime_type_prefers_upload_allow_list(file_name: str, expected: str) -> None:
    assert guess_mime_type(Path(file_name)) == expected


def test_build_source_reads_each_source_kind(tmp_path: Path) -> None:
    text_file = tmp_path / "lesson.txt"
    text_file.write_text("Fotosentez ışık enerjisini kullanır.", encoding="utf-8")
    parser = build_parser()
    common = ["--teacher-id", "t1", "--title", "Quiz", "--subject", "Bio", "--grade", "9"]

    text_source = build_source(
        parser.parse_args(["generate", "--text-file", str(text_file), *common])
    )
    upload_source = build_source(
        parser.parse_args(["generate", "--upload", str(text_file), *common])
    )
    document_source = build_source(
        parser.parse_args(["generate", "--document-id", "doc-1", *common])
    )

    assert text_source == TextSource(text="Fotosentez ışık enerjisini kullanır.")
    assert isinstance(upload_source, UploadSource)
    assert upload_source.mime_type == "text/plain"
    assert upload_source.filename == "lesson.txt"
    assert document_source == DocumentSource(document_id="doc-1")


def test_parser_rejects_multiple_sources() -> None:
    with pytest.raises(SystemExit):
        build_parser().parse_args(
            [
                "generate",
                "--text-file",
                "a.txt",
                "--document-id",
                "doc-1",
                "--teacher-id",
                "t1",
                "--title",
                "Quiz",
                "--subject",
                "Bio",
                "--grade",
                "9",
            ]
        )


def test_calls_command_lists_audited_calls_of_a_run(
    tmp_path: Path,
    monkeypatch: pytest.MonkeyPatch,
    capsys: pytest.CaptureFixture[str],
) -> None:
    db_path = tmp_path / "cli.db"
    monkeypatch.setenv("QUIZFORGE_DB_PATH", str(db_path))
    engine = create_sqlite_engine(db_path)
    init_schema(engine)
    try:
        with SqlAlchemyLlmCallAuditUnitOfWork(create_session_factory(engine)) as uow:
            for call_id, task_type in (
                ("call-1", LLMTaskType.SUMMARIZE),
                ("call-2", LLMTaskType.MCQ_GENERATE),
            ):
                uow.llm_calls.save_call(
                    LLMCallAuditRecord(
                        llm_call_id=call_id,
                        task_type=task_type,
                        provider=LLMServiceProvider.FAL,
                        model="summary-model",
                        prompt_hash="abc",
                        status="success",
                        latency_ms=120,
                        input_tokens=10,
                        output_tokens=5,
                        correlation_id="run-7",
                        created_at=datetime(2026, 1, 1, 9, int(call_id[-1]), tzinfo=UTC),
                        output_length=42,
                    )
                )
            uow.commit()
    finally:
        engine.dispose()

    exit_code = main(["calls", "run-7"])
    missing_exit_code = main(["calls", "run-unknown"])

    captured = capsys.readouterr()
    lines = captured.out.strip().splitlines()
    assert exit_code == 0
    assert len(lines) == 2
    assert "summarize fal/summary-model status=success" in lines[0]
    assert "mcq_generate" in lines[1]
    assert missing_exit_code == 2
    assert "run_id=run-unknown" in captured.err


def _make_runtime(tmp_path: Path, environ: dict[str, str]) -> tuple[PipelineRuntime, Engine]:
    engine = create_sqlite_engine(tmp_path / "runtime.db")
    init_schema(engine)
    runtime = create_default_runtime(
        settings=load_runtime_settings(environ),
        session_factory=create_session_factory(engine),
        key_store=InMemoryKeyStore(),
    )
    return runtime, engine
