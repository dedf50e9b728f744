"""Quiz generation orchestrator: stage sequencing, progress, and failure mapping."""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass
from uuid import uuid4

from quizforge.application.errors import (
    PipelineError,
    QuizValidationError,
    StageContentError,
    StageTransportError,
    StageUnavailableError,
)
from quizforge.application.ports import (
    DocumentTextSource,
    GenerationParameters,
    ObjectStore,
    OcrService,
    QuestionGenerator,
    QuizDraft,
    QuizGateway,
    Summarizer,
    SummaryRequest,
    TextExtractor,
)
from quizforge.application.progress import (
    PipelineStage,
    ProgressObserver,
    ProgressReporter,
    Waypoint,
)
from quizforge.application.text_normalizer import strip_page_markers
from quizforge.domain.documents import StoredFile
from quizforge.domain.quiz import (
    Difficulty,
    MCQQuestion,
    QuestionType,
    QuizStatus,
    SummaryStyle,
)
from quizforge.domain.source import (
    ALLOWED_UPLOAD_MIME_TYPES,
    MAX_QUESTIONS,
    MAX_UPLOAD_BYTES,
    MIN_CONTENT_LENGTH,
    MIN_QUESTIONS,
    PDF_MIME_TYPE,
    DocumentSource,
    QuizGenerationRequest,
    TextSource,
    UploadSource,
)

LOGGER = logging.getLogger(__name__)

_LANGUAGE_PATTERN = re.compile(r"[a-z]{2}")
_STAGE_LABELS: dict[PipelineStage, str] = {
    PipelineStage.IDLE: "Pipeline start",
    PipelineStage.UPLOADING: "File upload",
    PipelineStage.EXTRACTING: "Text extraction",
    PipelineStage.OCR: "OCR",
    PipelineStage.SUMMARIZING: "Summarization",
    PipelineStage.GENERATING: "Question generation",
    PipelineStage.SAVING: "Saving quiz",
}


@dataclass(frozen=True)
class PipelineDependencies:
    """Collaborators injected into the orchestrator; optional ones may be absent."""

    extractor: TextExtractor
    summarizer: Summarizer
    question_generator: QuestionGenerator
    quiz_gateway: QuizGateway
    object_store: ObjectStore | None = None
    ocr: OcrService | None = None
    documents: DocumentTextSource | None = None


@dataclass(frozen=True)
class QuizGenerationResult:
    """Successful pipeline outcome."""

    quiz_id: str
    questions: tuple[MCQQuestion, ...]
    summary: str


@dataclass
class PipelineRun:
    """Mutable state of a single invocation; never shared between runs."""

    run_id: str
    stage: PipelineStage = PipelineStage.IDLE
    progress_percent: int = 0
    message: str | None = None
    extracted_text: str = ""
    clean_text: str = ""
    summary: str = ""
    questions: tuple[MCQQuestion, ...] = ()
    uploaded_file_path: str | None = None
    uploaded_file_name: str | None = None
    result: QuizGenerationResult | None = None
    error: PipelineError | None = None

    @property
    def failed_stage(self) -> PipelineStage | None:
        return self.error.stage if self.error is not None else None


class QuizPipeline:
    """Turn a source specification into a persisted quiz, one stage at a time.

    Stages run strictly in sequence. Every failure ends the run in the
    ``failed`` state with a single user-facing message and the stage that
    failed; nothing is retried and nothing already written is rolled back.
    """

    def __init__(
        self,
        dependencies: PipelineDependencies,
        *,
        summary_style: SummaryStyle = SummaryStyle.COMPREHENSIVE,
    ) -> None:
        self._deps = dependencies
        self._summary_style = summary_style

    async def run(
        self,
        request: QuizGenerationRequest,
        on_progress: ProgressObserver | None = None,
    ) -> QuizGenerationResult:
        """Run the pipeline and return the result, raising PipelineError on failure."""
        pipeline_run = await self.execute(request, on_progress)
        if pipeline_run.error is not None:
            raise pipeline_run.error
        if pipeline_run.result is None:
            raise RuntimeError("Pipeline finished without result or error.")
        return pipeline_run.result

    async def execute(
        self,
        request: QuizGenerationRequest,
        on_progress: ProgressObserver | None = None,
    ) -> PipelineRun:
        """Run the pipeline and return its final state instead of raising."""
        pipeline_run = PipelineRun(run_id=str(uuid4()))
        reporter = ProgressReporter(pipeline_run.run_id, on_progress)
        LOGGER.info(
            (
                "event=quiz_pipeline_started correlation_id=%s teacher_id=%s "
                "source_type=%s num_questions=%s difficulty=%s language=%s"
            ),
            pipeline_run.run_id,
            request.teacher_id or "-",
            request.source_type.value,
            request.num_questions,
            request.difficulty,
            request.language,
        )

        try:
            validate_generation_request(request)
            await self._acquire_text(pipeline_run, reporter, request)
            self._require_summarizable_text(pipeline_run)
            await self._summarize(pipeline_run, reporter, request)
            await self._generate(pipeline_run, reporter, request)
            await self._save(pipeline_run, reporter, request)
        except Exception as exc:
            error = _as_pipeline_error(exc, stage=pipeline_run.stage)
            if error is not exc:
                error.__cause__ = exc
            self._fail(pipeline_run, reporter, error)

        return pipeline_run

    async def _acquire_text(
        self,
        pipeline_run: PipelineRun,
        reporter: ProgressReporter,
        request: QuizGenerationRequest,
    ) -> None:
        source = request.source
        if isinstance(source, TextSource):
            pipeline_run.extracted_text = source.text
            return

        if isinstance(source, DocumentSource):
            documents = self._deps.documents
            if documents is None:
                raise StageUnavailableError(
                    "Document store is not configured.",
                    stage=PipelineStage.EXTRACTING,
                )
            _transition(
                pipeline_run,
                reporter,
                PipelineStage.EXTRACTING,
                Waypoint.DOCUMENT_FETCH_STARTED,
                "Fetching document content...",
            )
            pipeline_run.extracted_text = await documents.get_document_text(source.document_id)
            return

        await self._ingest_upload(pipeline_run, reporter, request.teacher_id, source)

    async def _ingest_upload(
        self,
        pipeline_run: PipelineRun,
        reporter: ProgressReporter,
        teacher_id: str,
        source: UploadSource,
    ) -> None:
        object_store = self._deps.object_store
        if object_store is None:
            raise StageUnavailableError(
                "File storage is not configured.",
                stage=PipelineStage.UPLOADING,
            )

        _transition(
            pipeline_run,
            reporter,
            PipelineStage.UPLOADING,
            Waypoint.UPLOAD_STARTED,
            "Uploading file...",
        )
        stored = await object_store.upload(
            owner_id=teacher_id,
            content=source.content,
            mime_type=source.mime_type,
            filename=source.filename,
        )
        pipeline_run.uploaded_file_path = stored.storage_path
        pipeline_run.uploaded_file_name = stored.file_name

        _transition(
            pipeline_run,
            reporter,
            PipelineStage.EXTRACTING,
            Waypoint.EXTRACTION_STARTED,
            "Extracting text...",
        )
        extracted = await self._deps.extractor.extract(source.content, source.mime_type)
        needs_ocr = extracted.needs_ocr and source.mime_type == PDF_MIME_TYPE
        if not needs_ocr:
            pipeline_run.extracted_text = extracted.text
            return

        await self._run_ocr(pipeline_run, reporter, stored)

    async def _run_ocr(
        self,
        pipeline_run: PipelineRun,
        reporter: ProgressReporter,
        stored: StoredFile,
    ) -> None:
        ocr = self._deps.ocr
        if ocr is None:
            raise StageUnavailableError(
                "OCR is not configured; scanned documents cannot be processed.",
                stage=PipelineStage.OCR,
            )

        _transition(
            pipeline_run,
            reporter,
            PipelineStage.OCR,
            Waypoint.OCR_STARTED,
            "Running OCR on scanned PDF...",
        )
        document = await ocr.convert(stored.storage_path, stored.file_name)
        pipeline_run.extracted_text = document.text
        _transition(
            pipeline_run,
            reporter,
            PipelineStage.OCR,
            Waypoint.OCR_COMPLETED,
            f"OCR completed ({document.page_count} pages)",
        )

    def _require_summarizable_text(self, pipeline_run: PipelineRun) -> None:
        pipeline_run.clean_text = strip_page_markers(pipeline_run.extracted_text)
        if len(pipeline_run.clean_text) < MIN_CONTENT_LENGTH:
            raise QuizValidationError(
                f"Text is too short. At least {MIN_CONTENT_LENGTH} characters are required.",
                stage=PipelineStage.SUMMARIZING,
            )

    async def _summarize(
        self,
        pipeline_run: PipelineRun,
        reporter: ProgressReporter,
        request: QuizGenerationRequest,
    ) -> None:
        _transition(
            pipeline_run,
            reporter,
            PipelineStage.SUMMARIZING,
            Waypoint.SUMMARY_STARTED,
            "Summarizing document...",
        )
        result = await self._deps.summarizer.summarize(
            SummaryRequest(
                text=pipeline_run.clean_text,
                style=self._summary_style,
                language=request.language,
                correlation_id=pipeline_run.run_id,
            )
        )
        if not result.summary.strip():
            raise StageContentError("Summarizer returned an empty summary.")

        pipeline_run.summary = result.summary
        _transition(
            pipeline_run,
            reporter,
            PipelineStage.SUMMARIZING,
            Waypoint.SUMMARY_COMPLETED,
            f"Summary ready ({result.word_count} words)",
        )

    async def _generate(
        self,
        pipeline_run: PipelineRun,
        reporter: ProgressReporter,
        request: QuizGenerationRequest,
    ) -> None:
        _transition(
            pipeline_run,
            reporter,
            PipelineStage.GENERATING,
            Waypoint.GENERATION_STARTED,
            "Generating questions...",
        )
        questions = await self._deps.question_generator.generate(
            GenerationParameters(
                summary=pipeline_run.summary,
                num_questions=request.num_questions,
                difficulty=Difficulty(request.difficulty),
                question_type=QuestionType(request.question_type),
                language=request.language,
                topic=request.topic,
                correlation_id=pipeline_run.run_id,
            )
        )
        if not questions:
            raise StageContentError("Question generator returned no questions.")

        if len(questions) != request.num_questions:
            LOGGER.info(
                (
                    "event=quiz_pipeline_question_count_mismatch correlation_id=%s "
                    "requested=%s generated=%s"
                ),
                pipeline_run.run_id,
                request.num_questions,
                len(questions),
            )
        pipeline_run.questions = tuple(questions)
        _transition(
            pipeline_run,
            reporter,
            PipelineStage.GENERATING,
            Waypoint.GENERATION_COMPLETED,
            f"{len(questions)} questions generated",
        )

    async def _save(
        self,
        pipeline_run: PipelineRun,
        reporter: ProgressReporter,
        request: QuizGenerationRequest,
    ) -> None:
        _transition(
            pipeline_run,
            reporter,
            PipelineStage.SAVING,
            Waypoint.SAVE_STARTED,
            "Saving quiz...",
        )
        source = request.source
        draft = QuizDraft(
            teacher_id=request.teacher_id,
            title=request.title,
            subject=request.subject,
            grade=request.grade,
            topic=request.topic,
            difficulty=Difficulty(request.difficulty),
            question_type=QuestionType(request.question_type),
            language=request.language,
            num_questions=request.num_questions,
            source_type=request.source_type,
            summary=pipeline_run.summary,
            questions=pipeline_run.questions,
            status=QuizStatus.READY,
            description=request.description,
            document_id=source.document_id if isinstance(source, DocumentSource) else None,
            source_text=source.text if isinstance(source, TextSource) else None,
            uploaded_file_path=pipeline_run.uploaded_file_path,
            uploaded_file_name=pipeline_run.uploaded_file_name,
        )
        quiz_id = await self._deps.quiz_gateway.create_quiz(draft)
        if not quiz_id:
            raise StageContentError("Persistence gateway returned no quiz identifier.")

        pipeline_run.result = QuizGenerationResult(
            quiz_id=quiz_id,
            questions=pipeline_run.questions,
            summary=pipeline_run.summary,
        )
        _transition(
            pipeline_run,
            reporter,
            PipelineStage.COMPLETED,
            Waypoint.COMPLETED,
            "Quiz ready!",
        )
        LOGGER.info(
            (
                "event=quiz_pipeline_completed correlation_id=%s quiz_id=%s "
                "question_count=%s summary_length=%s"
            ),
            pipeline_run.run_id,
            quiz_id,
            len(pipeline_run.questions),
            len(pipeline_run.summary),
        )

    def _fail(
        self,
        pipeline_run: PipelineRun,
        reporter: ProgressReporter,
        error: PipelineError,
    ) -> None:
        pipeline_run.error = error
        pipeline_run.stage = PipelineStage.FAILED
        pipeline_run.progress_percent = Waypoint.FAILED
        pipeline_run.message = error.message
        reporter.fail(error.message)

        LOGGER.warning(
            "event=quiz_pipeline_failed correlation_id=%s stage=%s error_type=%s message=%s",
            pipeline_run.run_id,
            error.stage.value if error.stage is not None else "-",
            error.__class__.__name__,
            error.message,
        )
        if pipeline_run.uploaded_file_path is not None:
            LOGGER.warning(
                "event=quiz_pipeline_upload_left_in_storage correlation_id=%s storage_path=%s",
                pipeline_run.run_id,
                pipeline_run.uploaded_file_path,
            )


def validate_generation_request(request: QuizGenerationRequest) -> None:
    """Reject malformed requests before any collaborator is called."""
    for field_name in ("teacher_id", "title", "subject", "grade"):
        value = getattr(request, field_name)
        if not isinstance(value, str) or not value.strip():
            raise QuizValidationError(f"{field_name} is required.")

    if isinstance(request.num_questions, bool) or not isinstance(request.num_questions, int):
        raise QuizValidationError("num_questions must be an integer.")
    if not MIN_QUESTIONS <= request.num_questions <= MAX_QUESTIONS:
        raise QuizValidationError(
            f"num_questions must be between {MIN_QUESTIONS} and {MAX_QUESTIONS}."
        )
    if request.difficulty not in set(Difficulty):
        raise QuizValidationError(f"Unsupported difficulty: {request.difficulty}.")
    if request.question_type not in set(QuestionType):
        raise QuizValidationError(f"Unsupported question type: {request.question_type}.")
    if not isinstance(request.language, str) or not _LANGUAGE_PATTERN.fullmatch(
        request.language
    ):
        raise QuizValidationError("language must be a two-letter code.")

    _validate_source(request)


def _validate_source(request: QuizGenerationRequest) -> None:
    source = request.source
    if isinstance(source, TextSource):
        if not isinstance(source.text, str):
            raise QuizValidationError("Source text must be a string.")
        return

    if isinstance(source, DocumentSource):
        if not source.document_id or not source.document_id.strip():
            raise QuizValidationError("document_id is required for document sources.")
        return

    if isinstance(source, UploadSource):
        if not source.content:
            raise QuizValidationError("Uploaded file is empty.")
        if not source.filename or not source.filename.strip():
            raise QuizValidationError("Uploaded file name is required.")
        if source.mime_type not in ALLOWED_UPLOAD_MIME_TYPES:
            raise QuizValidationError(
                "Unsupported file format. Upload a PDF, TXT, Markdown, or DOCX file."
            )
        if len(source.content) > MAX_UPLOAD_BYTES:
            raise QuizValidationError("File size must not exceed 200 MB.")
        return

    raise QuizValidationError("A valid source must be specified.")


def _transition(
    pipeline_run: PipelineRun,
    reporter: ProgressReporter,
    stage: PipelineStage,
    progress: int,
    message: str,
) -> None:
    pipeline_run.stage = stage
    event = reporter.report(stage, progress, message)
    pipeline_run.progress_percent = event.progress
    pipeline_run.message = message
    LOGGER.info(
        "event=quiz_pipeline_stage correlation_id=%s stage=%s progress=%s",
        pipeline_run.run_id,
        stage.value,
        event.progress,
    )


def _as_pipeline_error(exc: Exception, *, stage: PipelineStage) -> PipelineError:
    if isinstance(exc, PipelineError):
        if exc.stage is None:
            exc.stage = stage
        return exc

    detail = str(exc).strip() or exc.__class__.__name__
    label = _STAGE_LABELS.get(stage, stage.value)
    return StageTransportError(f"{label} failed: {detail}", stage=stage)
