"""Unit tests for the quiz generation orchestrator."""

from __future__ import annotations

import asyncio

import pytest

from quizforge.application.errors import (
    QuizValidationError,
    StageContentError,
    StageTransportError,
    StageUnavailableError,
)
from quizforge.application.pipeline import (
    PipelineDependencies,
    PipelineRun,
    QuizPipeline,
    validate_generation_request,
)
from quizforge.application.ports import (
    GenerationParameters,
    QuizDraft,
    SummaryRequest,
    SummaryResult,
)
from quizforge.application.progress import PipelineStage, ProgressEvent
from quizforge.domain.documents import ExtractedDocument, OCRDocument, StoredFile
from quizforge.domain.quiz import Difficulty, MCQQuestion, SourceType
from quizforge.domain.source import (
    DocumentSource,
    QuizGenerationRequest,
    SourceSpecification,
    TextSource,
    UploadSource,
)

TURKISH_TEXT = (
    "Fotosentez, bitkilerin güneş ışığını kullanarak karbondioksit ve sudan "
    "glikoz ve oksijen ürettiği biyokimyasal bir süreçtir."
)

TURKISH_LESSON = (
    "Fotosentez, yeşil bitkilerin ve bazı bakterilerin güneş ışığından aldıkları enerjiyi "
    "kullanarak karbondioksit ve sudan glikoz ürettiği temel bir biyokimyasal süreçtir. "
    "Bu süreç kloroplastların içinde bulunan klorofil pigmenti sayesinde gerçekleşir. "
    "Işığa bağımlı tepkimelerde su molekülleri parçalanır, oksijen atmosfere verilir ve "
    "ATP ile NADPH üretilir. Işıktan bağımsız tepkimeler olarak bilinen Calvin döngüsünde "
    "ise bu enerji taşıyıcıları karbondioksiti şekere dönüştürmek için kullanılır. "
    "Fotosentez hem besin zincirinin temelini oluşturur hem de canlıların solunumu için "
    "gerekli oksijeni sağlar."
)


class FakeExtractor:
    def __init__(self, document: ExtractedDocument | None = None) -> None:
        self.document = document or ExtractedDocument(text="", needs_ocr=False)
        self.calls: list[tuple[bytes, str]] = []

    async def extract(self, content: bytes, mime_type: str) -> ExtractedDocument:
        self.calls.append((content, mime_type))
        return self.document


class FakeObjectStore:
    def __init__(self) -> None:
        self.uploads: list[tuple[str, str]] = []

    async def upload(
        self,
        *,
        owner_id: str,
        content: bytes,
        mime_type: str,
        filename: str,
    ) -> StoredFile:
        self.uploads.append((owner_id, filename))
        return StoredFile(
            storage_path=f"{owner_id}/1700000000000.pdf",
            file_name=filename,
            size=len(content),
            mime_type=mime_type,
        )

    async def create_signed_url(self, storage_path: str, *, expires_in_seconds: int) -> str:
        return f"https://storage.local/{storage_path}"


class FakeOcr:
    def __init__(self, pages: tuple[str, ...]) -> None:
        self.pages = pages
        self.calls: list[tuple[str, str]] = []

    async def convert(self, storage_path: str, file_name: str) -> OCRDocument:
        self.calls.append((storage_path, file_name))
        return OCRDocument(pages=self.pages, images=(), file_name="scan.txt")


class FakeDocuments:
    def __init__(self, texts: dict[str, str]) -> None:
        self.texts = texts

    async def get_document_text(self, document_id: str) -> str:
        if document_id not in self.texts:
            raise QuizValidationError(f"Document not found: {document_id}.")
        return self.texts[document_id]


class FakeSummarizer:
    def __init__(self, summary: str = "Photosynthesis turns light into chemical energy.") -> None:
        self.summary = summary
        self.requests: list[SummaryRequest] = []
        self.error: Exception | None = None

    async def summarize(self, request: SummaryRequest) -> SummaryResult:
        self.requests.append(request)
        if self.error is not None:
            raise self.error
        return SummaryResult(
            summary=self.summary,
            word_count=len(self.summary.split()),
            style=request.style,
        )


class FakeGenerator:
    def __init__(self, questions: list[MCQQuestion] | None = None) -> None:
        self.questions = questions if questions is not None else [_make_question()]
        self.parameters: list[GenerationParameters] = []
        self.error: Exception | None = None

    async def generate(self, parameters: GenerationParameters) -> list[MCQQuestion]:
        self.parameters.append(parameters)
        if self.error is not None:
            raise self.error
        return list(self.questions)


class FakeGateway:
    def __init__(self) -> None:
        self.drafts: list[QuizDraft] = []

    async def create_quiz(self, draft: QuizDraft) -> str:
        self.drafts.append(draft)
        return f"quiz-{len(self.drafts)}"


class Collaborators:
    def __init__(self) -> None:
        self.extractor = FakeExtractor()
        self.object_store: FakeObjectStore | None = FakeObjectStore()
        self.ocr: FakeOcr | None = FakeOcr(pages=(_long_text("OCR page"),))
        self.documents: FakeDocuments | None = FakeDocuments({"doc-1": _long_text("Stored")})
        self.summarizer = FakeSummarizer()
        self.generator = FakeGenerator()
        self.gateway = FakeGateway()

    def pipeline(self) -> QuizPipeline:
        return QuizPipeline(
            PipelineDependencies(
                extractor=self.extractor,
                summarizer=self.summarizer,
                question_generator=self.generator,
                quiz_gateway=self.gateway,
                object_store=self.object_store,
                ocr=self.ocr,
                documents=self.documents,
            )
        )


def test_text_source_completes_without_extraction_ocr_or_upload() -> None:
    collaborators = Collaborators()
    events: list[ProgressEvent] = []

    result = asyncio.run(
        collaborators.pipeline().run(_make_request(TextSource(_long_text())), events.append)
    )

    assert result.quiz_id == "quiz-1"
    assert result.summary == collaborators.summarizer.summary
    assert collaborators.extractor.calls == []
    assert collaborators.object_store is not None and collaborators.object_store.uploads == []
    assert collaborators.ocr is not None and collaborators.ocr.calls == []
    assert PipelineStage.EXTRACTING not in {event.stage for event in events}
    draft = collaborators.gateway.drafts[0]
    assert draft.source_type is SourceType.TEXT
    assert draft.source_text == _long_text()
    assert draft.uploaded_file_path is None


def test_short_text_fails_validation_before_summarizer() -> None:
    collaborators = Collaborators()

    with pytest.raises(QuizValidationError, match="too short") as exc_info:
        asyncio.run(collaborators.pipeline().run(_make_request(TextSource("Too short."))))

    assert exc_info.value.stage is PipelineStage.SUMMARIZING
    assert collaborators.summarizer.requests == []
    assert collaborators.gateway.drafts == []


def test_page_markers_do_not_count_toward_minimum_length() -> None:
    collaborators = Collaborators()
    text = "\n[[PAGE_1]]\nShort page.\n\n[[PAGE_2]]\nAnother short page.\n"

    pipeline_run = asyncio.run(collaborators.pipeline().execute(_make_request(TextSource(text))))

    assert isinstance(pipeline_run.error, QuizValidationError)
    assert collaborators.summarizer.requests == []


def test_progress_is_monotonic_and_ends_at_100() -> None:
    collaborators = Collaborators()
    collaborators.extractor.document = ExtractedDocument(text="", needs_ocr=True)
    events: list[ProgressEvent] = []

    asyncio.run(
        collaborators.pipeline().run(
            _make_request(_pdf_upload()),
            events.append,
        )
    )

    progress = [event.progress for event in events]
    assert progress == sorted(progress)
    assert events[-1].stage is PipelineStage.COMPLETED
    assert events[-1].progress == 100
    assert [event.stage for event in events][:3] == [
        PipelineStage.UPLOADING,
        PipelineStage.EXTRACTING,
        PipelineStage.OCR,
    ]
    assert len({event.run_id for event in events}) == 1


def test_failed_run_ends_with_failed_event_at_zero() -> None:
    collaborators = Collaborators()
    collaborators.summarizer.error = StageTransportError("Summarization failed: timeout")
    events: list[ProgressEvent] = []

    pipeline_run = asyncio.run(
        collaborators.pipeline().execute(_make_request(TextSource(_long_text())), events.append)
    )

    assert events[-1].stage is PipelineStage.FAILED
    assert events[-1].progress == 0
    assert events[-1].error == "Summarization failed: timeout"
    assert pipeline_run.stage is PipelineStage.FAILED
    assert pipeline_run.progress_percent == 0
    assert pipeline_run.failed_stage is PipelineStage.SUMMARIZING
    assert pipeline_run.result is None


def test_pdf_upload_with_empty_text_goes_through_ocr() -> None:
    collaborators = Collaborators()
    collaborators.extractor.document = ExtractedDocument(text="", needs_ocr=True)

    result = asyncio.run(collaborators.pipeline().run(_make_request(_pdf_upload())))

    assert collaborators.ocr is not None
    assert collaborators.ocr.calls == [("teacher-1/1700000000000.pdf", "scan.pdf")]
    assert result.quiz_id == "quiz-1"
    draft = collaborators.gateway.drafts[0]
    assert draft.source_type is SourceType.UPLOAD
    assert draft.uploaded_file_path == "teacher-1/1700000000000.pdf"
    assert draft.uploaded_file_name == "scan.pdf"
    assert draft.source_text is None


def test_plain_text_upload_with_empty_text_never_calls_ocr() -> None:
    collaborators = Collaborators()
    collaborators.extractor.document = ExtractedDocument(text="", needs_ocr=True)
    source = UploadSource(content=b"   ", mime_type="text/plain", filename="notes.txt")

    pipeline_run = asyncio.run(collaborators.pipeline().execute(_make_request(source)))

    assert collaborators.ocr is not None and collaborators.ocr.calls == []
    assert isinstance(pipeline_run.error, QuizValidationError)
    assert collaborators.summarizer.requests == []


def test_generator_failure_never_calls_gateway() -> None:
    collaborators = Collaborators()
    collaborators.generator.error = StageTransportError("Question generation failed: 503")

    with pytest.raises(StageTransportError) as exc_info:
        asyncio.run(collaborators.pipeline().run(_make_request(TextSource(_long_text()))))

    assert exc_info.value.stage is PipelineStage.GENERATING
    assert collaborators.gateway.drafts == []


def test_turkish_text_calls_each_language_stage_once() -> None:
    collaborators = Collaborators()
    request = _make_request(TextSource(TURKISH_TEXT), language="tr", num_questions=5)

    result = asyncio.run(collaborators.pipeline().run(request))

    assert len(collaborators.summarizer.requests) == 1
    assert len(collaborators.generator.parameters) == 1
    assert len(collaborators.gateway.drafts) == 1
    assert collaborators.extractor.calls == []
    assert collaborators.ocr is not None and collaborators.ocr.calls == []
    assert collaborators.object_store is not None and collaborators.object_store.uploads == []

    summary_request = collaborators.summarizer.requests[0]
    assert summary_request.language == "tr"
    assert summary_request.text == TURKISH_TEXT
    parameters = collaborators.generator.parameters[0]
    assert parameters.language == "tr"
    assert parameters.num_questions == 5
    assert parameters.summary == collaborators.summarizer.summary
    assert summary_request.correlation_id == parameters.correlation_id
    assert result.questions == tuple(collaborators.generator.questions)


def test_turkish_lesson_yields_requested_ten_questions() -> None:
    collaborators = Collaborators()
    collaborators.generator.questions = [
        _make_question(f"Fotosentez sorusu {index}?") for index in range(1, 11)
    ]
    request = _make_request(TextSource(TURKISH_LESSON), language="tr", num_questions=10)

    result = asyncio.run(collaborators.pipeline().run(request))

    assert 550 <= len(TURKISH_LESSON) <= 650
    assert len(collaborators.summarizer.requests) == 1
    assert len(collaborators.generator.parameters) == 1
    assert len(collaborators.gateway.drafts) == 1
    assert collaborators.extractor.calls == []
    assert collaborators.ocr is not None and collaborators.ocr.calls == []
    assert collaborators.object_store is not None and collaborators.object_store.uploads == []
    assert collaborators.generator.parameters[0].num_questions == 10
    assert len(result.questions) == 10
    assert collaborators.gateway.drafts[0].num_questions == 10
    assert collaborators.gateway.drafts[0].source_text == TURKISH_LESSON


@pytest.mark.parametrize(("length", "accepted"), [(49, False), (50, True)])
def test_minimum_text_length_boundary(length: int, accepted: bool) -> None:
    collaborators = Collaborators()
    text = ("a" * (length - 1)) + "."

    pipeline_run = asyncio.run(collaborators.pipeline().execute(_make_request(TextSource(text))))

    if accepted:
        assert pipeline_run.error is None
        assert [request.text for request in collaborators.summarizer.requests] == [text]
    else:
        assert isinstance(pipeline_run.error, QuizValidationError)
        assert collaborators.summarizer.requests == []


def test_scanned_pdf_summarizes_ocr_text() -> None:
    collaborators = Collaborators()
    collaborators.extractor.document = ExtractedDocument(text="", needs_ocr=True)
    collaborators.ocr = FakeOcr(pages=(_long_text("First page"), _long_text("Second page")))
    events: list[ProgressEvent] = []

    asyncio.run(collaborators.pipeline().run(_make_request(_pdf_upload()), events.append))

    summary_text = collaborators.summarizer.requests[0].text
    assert summary_text.startswith("--- Page 1 ---")
    assert "--- Page 2 ---" in summary_text
    assert "Second page" in summary_text
    ocr_events = [event for event in events if event.stage is PipelineStage.OCR]
    assert [event.progress for event in ocr_events] == [10, 20]
    assert ocr_events[-1].message == "OCR completed (2 pages)"


def test_machine_readable_pdf_skips_ocr() -> None:
    collaborators = Collaborators()
    collaborators.extractor.document = ExtractedDocument(
        text=f"\n[[PAGE_1]]\n{_long_text('Readable')}\n",
        needs_ocr=False,
    )

    asyncio.run(collaborators.pipeline().run(_make_request(_pdf_upload())))

    assert collaborators.ocr is not None and collaborators.ocr.calls == []
    assert "[[PAGE_" not in collaborators.summarizer.requests[0].text
    assert collaborators.summarizer.requests[0].text.startswith("Readable")


def test_zero_questions_fail_before_saving() -> None:
    collaborators = Collaborators()
    collaborators.generator.questions = []
    events: list[ProgressEvent] = []

    with pytest.raises(StageContentError) as exc_info:
        asyncio.run(
            collaborators.pipeline().run(_make_request(TextSource(_long_text())), events.append)
        )

    assert exc_info.value.stage is PipelineStage.GENERATING
    assert PipelineStage.SAVING not in {event.stage for event in events}
    assert collaborators.gateway.drafts == []


def test_empty_summary_fails_at_summarizing() -> None:
    collaborators = Collaborators()
    collaborators.summarizer.summary = "   "

    with pytest.raises(StageContentError) as exc_info:
        asyncio.run(collaborators.pipeline().run(_make_request(TextSource(_long_text()))))

    assert exc_info.value.stage is PipelineStage.SUMMARIZING
    assert collaborators.generator.parameters == []


def test_unexpected_exception_is_wrapped_with_stage() -> None:
    collaborators = Collaborators()
    original = ConnectionError("connection reset")
    collaborators.summarizer.error = original

    pipeline_run = asyncio.run(
        collaborators.pipeline().execute(_make_request(TextSource(_long_text())))
    )

    assert isinstance(pipeline_run.error, StageTransportError)
    assert pipeline_run.error.message == "Summarization failed: connection reset"
    assert pipeline_run.error.stage is PipelineStage.SUMMARIZING
    assert pipeline_run.error.__cause__ is original


def test_upload_without_object_store_is_unavailable() -> None:
    collaborators = Collaborators()
    collaborators.object_store = None

    with pytest.raises(StageUnavailableError) as exc_info:
        asyncio.run(collaborators.pipeline().run(_make_request(_pdf_upload())))

    assert exc_info.value.stage is PipelineStage.UPLOADING
    assert collaborators.extractor.calls == []


def test_scanned_pdf_without_ocr_is_unavailable() -> None:
    collaborators = Collaborators()
    collaborators.extractor.document = ExtractedDocument(text="", needs_ocr=True)
    collaborators.ocr = None

    with pytest.raises(StageUnavailableError, match="OCR is not configured") as exc_info:
        asyncio.run(collaborators.pipeline().run(_make_request(_pdf_upload())))

    assert exc_info.value.stage is PipelineStage.OCR
    assert collaborators.summarizer.requests == []


def test_document_source_reads_stored_text() -> None:
    collaborators = Collaborators()
    events: list[ProgressEvent] = []

    asyncio.run(
        collaborators.pipeline().run(_make_request(DocumentSource("doc-1")), events.append)
    )

    assert collaborators.summarizer.requests[0].text == _long_text("Stored")
    assert events[0].stage is PipelineStage.EXTRACTING
    assert events[0].progress == 5
    draft = collaborators.gateway.drafts[0]
    assert draft.source_type is SourceType.DOCUMENT
    assert draft.document_id == "doc-1"


def test_missing_document_fails_at_extracting() -> None:
    collaborators = Collaborators()

    with pytest.raises(QuizValidationError, match="Document not found") as exc_info:
        asyncio.run(collaborators.pipeline().run(_make_request(DocumentSource("missing"))))

    assert exc_info.value.stage is PipelineStage.EXTRACTING


def test_observer_exceptions_do_not_abort_run() -> None:
    collaborators = Collaborators()

    def broken_observer(event: ProgressEvent) -> None:
        raise RuntimeError(f"observer crashed at {event.stage}")

    result = asyncio.run(
        collaborators.pipeline().run(_make_request(TextSource(_long_text())), broken_observer)
    )

    assert result.quiz_id == "quiz-1"


def test_concurrent_runs_do_not_share_state() -> None:
    collaborators = Collaborators()
    pipeline = collaborators.pipeline()
    first_events: list[ProgressEvent] = []
    second_events: list[ProgressEvent] = []

    async def run_both() -> list[PipelineRun]:
        return await asyncio.gather(
            pipeline.execute(_make_request(TextSource(_long_text("First"))), first_events.append),
            pipeline.execute(_make_request(TextSource("short")), second_events.append),
        )

    first_run, second_run = asyncio.run(run_both())

    assert first_run.result is not None
    assert isinstance(second_run.error, QuizValidationError)
    assert first_run.run_id != second_run.run_id
    assert {event.run_id for event in first_events} == {first_run.run_id}
    assert {event.run_id for event in second_events} == {second_run.run_id}
    assert first_events[-1].stage is PipelineStage.COMPLETED
    assert second_events[-1].stage is PipelineStage.FAILED


def test_count_mismatch_is_accepted() -> None:
    collaborators = Collaborators()
    collaborators.generator.questions = [_make_question(), _make_question("Second?")]

    result = asyncio.run(
        collaborators.pipeline().run(
            _make_request(TextSource(_long_text()), num_questions=10)
        )
    )

    assert len(result.questions) == 2
    assert collaborators.gateway.drafts[0].num_questions == 10


@pytest.mark.parametrize(
    ("overrides", "message"),
    [
        ({"teacher_id": " "}, "teacher_id is required"),
        ({"title": ""}, "title is required"),
        ({"num_questions": 0}, "between 1 and 50"),
        ({"num_questions": 51}, "between 1 and 50"),
        ({"num_questions": True}, "must be an integer"),
        ({"difficulty": "extreme"}, "Unsupported difficulty"),
        ({"question_type": "essay"}, "Unsupported question type"),
        ({"language": "tur"}, "two-letter code"),
    ],
)
def test_validate_generation_request_rejects_bad_fields(
    overrides: dict[str, object],
    message: str,
) -> None:
    request = _make_request(TextSource(_long_text()), **overrides)

    with pytest.raises(QuizValidationError, match=message):
        validate_generation_request(request)


@pytest.mark.parametrize(
    ("source", "message"),
    [
        (UploadSource(content=b"", mime_type="application/pdf", filename="a.pdf"), "empty"),
        (UploadSource(content=b"x", mime_type="image/png", filename="a.png"), "Unsupported"),
        (UploadSource(content=b"x", mime_type="application/pdf", filename=" "), "name"),
        (DocumentSource(document_id=""), "document_id is required"),
    ],
)
def test_validate_generation_request_rejects_bad_sources(
    source: SourceSpecification,
    message: str,
) -> None:
    with pytest.raises(QuizValidationError, match=message):
        validate_generation_request(_make_request(source))


def test_invalid_request_makes_no_collaborator_calls() -> None:
    collaborators = Collaborators()
    source = UploadSource(content=b"x", mime_type="image/png", filename="photo.png")

    pipeline_run = asyncio.run(collaborators.pipeline().execute(_make_request(source)))

    assert isinstance(pipeline_run.error, QuizValidationError)
    assert collaborators.object_store is not None and collaborators.object_store.uploads == []
    assert collaborators.extractor.calls == []


def _make_request(source: SourceSpecification, **overrides: object) -> QuizGenerationRequest:
    values: dict[str, object] = {
        "teacher_id": "teacher-1",
        "source": source,
        "title": "Photosynthesis",
        "subject": "Biology",
        "grade": "9",
        "num_questions": 5,
        "difficulty": Difficulty.MEDIUM,
        "language": "en",
    }
    values.update(overrides)
    return QuizGenerationRequest(**values)  # type: ignore[arg-type]


def _pdf_upload() -> UploadSource:
    return UploadSource(
        content=b"%PDF-1.4 scanned",
        mime_type="application/pdf",
        filename="scan.pdf",
    )


def _long_text(prefix: str = "Lesson") -> str:
    return f"{prefix}: plants convert light energy into chemical energy stored in glucose."


def _make_question(question: str = "What do plants produce?") -> MCQQuestion:
    return MCQQuestion(
        question=question,
        options=("Glucose", "Salt", "Iron", "Helium"),
        correct_answer=0,
        explanation="Photosynthesis produces glucose.",
        difficulty=Difficulty.MEDIUM,
        topic="photosynthesis",
    )
