"""Command-line entrypoint."""

from __future__ import annotations

import argparse
import asyncio
import logging
import mimetypes
import sys
from pathlib import Path
from uuid import uuid4

from quizforge.application.errors import PipelineError
from quizforge.application.progress import ProgressEvent
from quizforge.domain.quiz import Difficulty, QuestionType
from quizforge.domain.source import (
    DEFAULT_LANGUAGE,
    DEFAULT_NUM_QUESTIONS,
    DOCX_MIME_TYPE,
    MARKDOWN_MIME_TYPE,
    PDF_MIME_TYPE,
    PLAIN_TEXT_MIME_TYPE,
    DocumentSource,
    QuizGenerationRequest,
    SourceSpecification,
    TextSource,
    UploadSource,
)
from quizforge.infrastructure.db.config import get_database_path
from quizforge.infrastructure.db.llm_audit_uow import SqlAlchemyLlmCallAuditUnitOfWork
from quizforge.infrastructure.db.session import (
    create_session_factory,
    create_sqlite_engine,
    init_schema,
)
from quizforge.infrastructure.factory import create_default_runtime
from quizforge.infrastructure.logging_config import configure_logging

LOGGER = logging.getLogger(__name__)

_MIME_BY_SUFFIX = {
    ".pdf": PDF_MIME_TYPE,
    ".txt": PLAIN_TEXT_MIME_TYPE,
    ".md": MARKDOWN_MIME_TYPE,
    ".markdown": MARKDOWN_MIME_TYPE,
    ".docx": DOCX_MIME_TYPE,
}


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="quizforge",
        description="Generate quizzes from documents",
    )
    subparsers = parser.add_subparsers(dest="command", required=True)

    subparsers.add_parser("init-db", help="Create database tables")

    ingest = subparsers.add_parser(
        "ingest",
        help="Store extracted file text as a reusable document",
    )
    ingest.add_argument("path", type=Path)
    ingest.add_argument("--teacher-id", required=True)
    ingest.add_argument("--title")

    generate = subparsers.add_parser("generate", help="Run the quiz generation pipeline")
    source = generate.add_mutually_exclusive_group(required=True)
    source.add_argument("--text-file", type=Path, help="UTF-8 text file used verbatim")
    source.add_argument("--upload", type=Path, help="PDF, TXT, Markdown, or DOCX file")
    source.add_argument("--document-id", help="Id of a previously ingested document")
    generate.add_argument("--teacher-id", required=True)
    generate.add_argument("--title", required=True)
    generate.add_argument("--subject", required=True)
    generate.add_argument("--grade", required=True)
    generate.add_argument("--topic")
    generate.add_argument("--description")
    generate.add_argument("--num-questions", type=int, default=DEFAULT_NUM_QUESTIONS)
    generate.add_argument(
        "--difficulty",
        choices=[item.value for item in Difficulty],
        default=Difficulty.MEDIUM.value,
    )
    generate.add_argument(
        "--question-type",
        choices=[item.value for item in QuestionType],
        default=QuestionType.MIXED.value,
    )
    generate.add_argument("--language", default=DEFAULT_LANGUAGE)

    calls = subparsers.add_parser("calls", help="List audited language model calls of a run")
    calls.add_argument("run_id")
    return parser


def guess_mime_type(path: Path) -> str:
    """Map file suffix to MIME type, preferring the upload allow-list."""
    suffix = path.suffix.lower()
    if suffix in _MIME_BY_SUFFIX:
        return _MIME_BY_SUFFIX[suffix]
    guessed, _ = mimetypes.guess_type(path.name)
    return guessed or "application/octet-stream"


def build_source(args: argparse.Namespace) -> SourceSpecification:
    if args.text_file is not None:
        return TextSource(text=args.text_file.read_text(encoding="utf-8"))
    if args.upload is not None:
        path: Path = args.upload
        return UploadSource(
            content=path.read_bytes(),
            mime_type=guess_mime_type(path),
            filename=path.name,
        )
    return DocumentSource(document_id=args.document_id)


def print_progress(event: ProgressEvent) -> None:
    print(f"[{event.progress:3d}%] {event.stage.value}: {event.message or ''}", flush=True)


async def _generate(args: argparse.Namespace) -> int:
    request = QuizGenerationRequest(
        teacher_id=args.teacher_id,
        source=build_source(args),
        title=args.title,
        subject=args.subject,
        grade=args.grade,
        topic=args.topic,
        num_questions=args.num_questions,
        difficulty=Difficulty(args.difficulty),
        question_type=QuestionType(args.question_type),
        language=args.language,
        description=args.description,
    )
    run_ids: list[str] = []

    def on_progress(event: ProgressEvent) -> None:
        if not run_ids:
            run_ids.append(event.run_id)
        print_progress(event)

    runtime = create_default_runtime()
    try:
        result = await runtime.pipeline.run(request, on_progress)
    except PipelineError as exc:
        run_id = run_ids[0] if run_ids else "-"
        print(f"Quiz generation failed: {exc} run_id={run_id}", file=sys.stderr)
        return 2
    finally:
        await runtime.aclose()

    print(f"quiz_id={result.quiz_id} questions={len(result.questions)} run_id={run_ids[0]}")
    return 0


async def _ingest(args: argparse.Namespace) -> int:
    path: Path = args.path
    runtime = create_default_runtime()
    try:
        extracted = await runtime.extractor.extract(path.read_bytes(), guess_mime_type(path))
    finally:
        await runtime.aclose()

    if not extracted.text.strip():
        print("No extractable text found in file.", file=sys.stderr)
        return 2

    record = runtime.documents.add_document(
        teacher_id=args.teacher_id,
        title=args.title or path.stem,
        content=extracted.text,
        file_name=path.name,
    )
    print(f"document_id={record.id}")
    return 0


def _list_calls(run_id: str) -> int:
    engine = create_sqlite_engine(get_database_path())
    try:
        init_schema(engine)
        with SqlAlchemyLlmCallAuditUnitOfWork(create_session_factory(engine)) as uow:
            records = uow.llm_calls.list_calls(run_id)
    finally:
        engine.dispose()

    if not records:
        print(f"No language model calls recorded for run_id={run_id}", file=sys.stderr)
        return 2
    for record in records:
        print(
            f"{record.created_at.isoformat()} {record.task_type.value} "
            f"{record.provider.value}/{record.model} status={record.status} "
            f"latency_ms={record.latency_ms} output_length={record.output_length}"
        )
    return 0


def main(argv: list[str] | None = None) -> int:
    """Run the quizforge command line."""
    configure_logging()
    args = build_parser().parse_args(argv)
    try:
        if args.command == "init-db":
            database_path = get_database_path()
            init_schema(create_sqlite_engine(database_path))
            print(f"Database ready at {database_path}")
            return 0
        if args.command == "ingest":
            return asyncio.run(_ingest(args))
        if args.command == "calls":
            return _list_calls(args.run_id)
        return asyncio.run(_generate(args))
    except Exception:
        correlation_id = str(uuid4())
        LOGGER.exception(
            "event=cli_command_failed correlation_id=%s command=%s",
            correlation_id,
            args.command,
        )
        print(f"Command failed. correlation_id={correlation_id}", file=sys.stderr)
        return 1


if __name__ == "__main__":
    raise SystemExit(main())
