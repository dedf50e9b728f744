"""Prompt wording and payload rules for multiple-choice question generation."""

from __future__ import annotations

from quizforge.domain.mcq_payload import DuplicateSelectionV1, RawMCQV1
from quizforge.domain.quiz import Difficulty
from quizforge.infrastructure.llm.prompts.summary import FALLBACK_LANGUAGE, PromptSpec

REVIEW_SUMMARY_EXCERPT_LENGTH = 2000

MCQ_GENERATION_PROMPT = PromptSpec(
    prompt_id="mcq_generation",
    purpose="Generate one block of multiple-choice questions from a summary.",
    version="v1",
    system_prompts={
        "tr": "Sen uzman bir eğitimcisin. SADECE geçerli JSON dizisi döndür. Başka metin yazma.",
        "en": "You are an expert educator. Respond with ONLY a valid JSON array. No other text.",
    },
    expected_schema=RawMCQV1,
)

MCQ_DEDUPLICATION_PROMPT = PromptSpec(
    prompt_id="mcq_deduplication",
    purpose="Select the best non-overlapping questions from an oversized pool.",
    version="v1",
    system_prompts={
        "en": (
            "You are an expert at detecting duplicate questions. "
            "Respond with ONLY valid JSON."
        ),
    },
    expected_schema=DuplicateSelectionV1,
)

MCQ_REVIEW_PROMPT = PromptSpec(
    prompt_id="mcq_review",
    purpose="Review and correct a chunk of generated questions.",
    version="v1",
    system_prompts={
        "tr": (
            "Sen soru kalitesi değerlendirme uzmanısın. Verilen soruları incele ve "
            "gerekiyorsa iyileştir. SADECE JSON dizisi döndür."
        ),
        "en": (
            "You are a question quality expert. Review and improve given questions "
            "if needed. Return ONLY a JSON array."
        ),
    },
    expected_schema=RawMCQV1,
)

_DIFFICULTY_LABELS: dict[Difficulty, dict[str, str]] = {
    Difficulty.EASY: {"tr": "Kolay - temel kavramları test et", "en": "Easy - test basic concepts"},
    Difficulty.MEDIUM: {
        "tr": "Orta - anlama ve uygulama düzeyi",
        "en": "Medium - comprehension and application level",
    },
    Difficulty.HARD: {
        "tr": "Zor - analiz ve sentez düzeyi",
        "en": "Hard - analysis and synthesis level",
    },
}


def _localized(values: dict[str, str], language: str) -> str:
    return values.get(language) or values[FALLBACK_LANGUAGE]


def build_mcq_generation_user_prompt(
    *,
    summary: str,
    question_count: int,
    theoretical_count: int,
    mathematical_count: int,
    difficulty: Difficulty,
    language: str,
    topic: str | None,
) -> str:
    """Build prompt for one generation block."""
    difficulty_label = _localized(_DIFFICULTY_LABELS[difficulty], language)
    json_example = (
        '[{"question": "...", "options": {"A": "...", "B": "...", "C": "...", "D": "..."}, '
        f'"correct_answer": "B", "explanation": "...", "difficulty": "{difficulty.value}", '
        '"topic": "..."}]'
    )

    if language == "tr":
        topic_line = f"Konu: {topic}" if topic else ""
        return (
            f"Aşağıdaki özete dayanarak {question_count} çoktan seçmeli soru oluştur.\n\n"
            f"Bu blokta {theoretical_count} teorik ve {mathematical_count} "
            "matematiksel soru üret.\n"
            f"Zorluk: {difficulty_label}\n"
            f"{topic_line}\n\n"
            "KURALLAR:\n"
            "- Her sorunun 4 seçeneği (A, B, C, D) olmalı\n"
            "- Doğru cevap net ve tartışmasız olmalı\n"
            "- Çeldiriciler makul ama yanlış olmalı\n"
            "- Açıklama neden doğru cevabın doğru olduğunu belirtmeli\n"
            "- Matematiksel içerikte LaTeX kullan ($...$)\n"
            "- Her soru farklı bir konuyu/kavramı test etmeli\n\n"
            "JSON formatı (sadece dizi döndür):\n"
            f"{json_example}\n\n"
            "Döküman Özeti:\n"
            f"{summary}"
        )

    topic_line = f"Topic: {topic}" if topic else ""
    return (
        f"Based on the following summary, generate {question_count} multiple choice "
        "questions.\n\n"
        f"In this block, generate {theoretical_count} theoretical and "
        f"{mathematical_count} mathematical questions.\n"
        f"Difficulty: {difficulty_label}\n"
        f"{topic_line}\n\n"
        "RULES:\n"
        "- Each question must have 4 options (A, B, C, D)\n"
        "- The correct answer must be clear and unambiguous\n"
        "- Distractors should be plausible but incorrect\n"
        "- Explanation must state why the correct answer is correct\n"
        "- Use LaTeX for mathematical content ($...$)\n"
        "- Each question should test a different concept\n\n"
        "JSON format (return only the array):\n"
        f"{json_example}\n\n"
        "Document Summary:\n"
        f"{summary}"
    )


def build_mcq_deduplication_user_prompt(
    *,
    questions: list[str],
    target_count: int,
    language: str,
) -> str:
    """Build prompt asking for the indices of questions to keep."""
    questions_text = "\n".join(f"[{index}] {question}" for index, question in enumerate(questions))
    json_example = '{"keep_indices": [0, 1, 3, ...], "reasoning": "..."}'

    if language == "tr":
        return (
            f"Aşağıdaki {len(questions)} soruyu analiz et. Şu durumlarda sorular "
            "tekrar sayılır:\n"
            "- Aynı kavramı veya bilgi noktasını test ediyorlar\n"
            "- Benzer doğru cevapları var ve aynı anlayışı ölçüyorlar\n"
            "- Aynı veya çok benzer açıklamaları olacak\n"
            "- Farklı kelimelerle aynı konuyu soruyorlar\n\n"
            f"EN İYİ {target_count} soruyu belirle. Tekrarlardan en kaliteli olanı tut.\n\n"
            "JSON formatında yanıtla:\n"
            f"{json_example}\n\n"
            "Sorular:\n"
            f"{questions_text}"
        )

    return (
        f"Analyze the following {len(questions)} questions. Questions are duplicates "
        "if they:\n"
        "- Test the same specific concept or knowledge point\n"
        "- Have similar correct answers testing identical understanding\n"
        "- Would have the same/very similar explanations\n"
        "- Ask about the same topic with different wording\n\n"
        f"Identify the BEST {target_count} questions. Keep the highest-quality version "
        "of duplicates.\n\n"
        "Respond with JSON:\n"
        f"{json_example}\n\n"
        "Questions:\n"
        f"{questions_text}"
    )


def build_mcq_review_user_prompt(
    *,
    chunk_json: str,
    summary: str,
    difficulty: Difficulty,
    language: str,
) -> str:
    """Build prompt for quality review of one chunk."""
    excerpt = summary[:REVIEW_SUMMARY_EXCERPT_LENGTH]

    if language == "tr":
        return (
            "Aşağıdaki çoktan seçmeli soruları değerlendir ve iyileştir:\n\n"
            "Kontrol listesi:\n"
            "1. Soru açık ve net mi?\n"
            "2. Doğru cevap tartışmasız doğru mu?\n"
            "3. Çeldiriciler makul ama yanlış mı (bariz saçma seçenek olmamalı)?\n"
            "4. Açıklama doğru cevabı yeterli şekilde açıklıyor mu?\n"
            f"5. Zorluk seviyesi doğru ayarlanmış mı? (Hedef: {difficulty.value})\n\n"
            "Gerekli düzeltmeleri yap ve aynı JSON formatında döndür. "
            "Değişiklik gerekmiyorsa aynen döndür.\n\n"
            "Döküman özeti (referans):\n"
            f"{excerpt}\n\n"
            "Sorular:\n"
            f"{chunk_json}"
        )

    return (
        "Evaluate and improve the following MCQ questions:\n\n"
        "Checklist:\n"
        "1. Is the question clearly worded?\n"
        "2. Is the correct answer unambiguously correct?\n"
        "3. Are distractors plausible but wrong (no obviously absurd options)?\n"
        "4. Does the explanation adequately explain the correct answer?\n"
        f"5. Is difficulty calibrated correctly? (Target: {difficulty.value})\n\n"
        "Make corrections and return in the same JSON format. "
        "If no changes needed, return as-is.\n\n"
        "Document summary (reference):\n"
        f"{excerpt}\n\n"
        "Questions:\n"
        f"{chunk_json}"
    )
