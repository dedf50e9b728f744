"""Prompt wording and payload rules for document summarization."""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass

from pydantic import BaseModel

from quizforge.domain.quiz import SummaryStyle

FALLBACK_LANGUAGE = "en"


@dataclass(frozen=True)
class PromptSpec:
    """Governed prompt definition with per-language system prompts."""

    prompt_id: str
    purpose: str
    version: str
    system_prompts: Mapping[str, str]
    expected_schema: type[BaseModel] | None = None

    def system_prompt(self, language: str) -> str:
        """Return system prompt for language, falling back to English."""
        return self.system_prompts.get(language) or self.system_prompts[FALLBACK_LANGUAGE]


SUMMARY_PROMPT = PromptSpec(
    prompt_id="document_summary",
    purpose="Condense document text into a structured, information-dense summary.",
    version="v1",
    system_prompts={
        "tr": (
            "Sen akademik özetleme konusunda uzman bir asistansın. Verilen metni "
            "yapılandırılmış, bilgi yoğun bir özete dönüştür. Formülleri LaTeX "
            "formatında koru."
        ),
        "en": (
            "You are an expert summarization assistant. Convert the given text into a "
            "structured, information-dense summary. Preserve formulas in LaTeX format."
        ),
    },
)

_STYLE_INSTRUCTIONS: dict[SummaryStyle, dict[str, str]] = {
    SummaryStyle.COMPREHENSIVE: {
        "tr": (
            "Aşağıdaki metni kapsamlı bir şekilde özetle. Şu yapıyı kullan:\n"
            "- Bölüm başlıkları (##)\n"
            "- Anahtar tanımlar\n"
            "- Formüller LaTeX formatında ($...$ inline, $$...$$ blok)\n"
            "- Numaralı kavram listeleri\n"
            "- Önemli ilişkiler ve prensipler"
        ),
        "en": (
            "Summarize the following text comprehensively. Use this structure:\n"
            "- Section headings (##)\n"
            "- Key definitions\n"
            "- Formulas in LaTeX format ($...$ inline, $$...$$ block)\n"
            "- Numbered concept lists\n"
            "- Important relationships and principles"
        ),
    },
    SummaryStyle.KEY_POINTS: {
        "tr": (
            "Aşağıdaki metnin ana noktalarını madde madde listele. "
            "Her madde kısa ve öz olsun."
        ),
        "en": (
            "List the main points of the following text as bullet points. "
            "Keep each point concise."
        ),
    },
    SummaryStyle.STUDY_GUIDE: {
        "tr": (
            "Aşağıdaki metinden bir çalışma rehberi oluştur. Şunları içersin:\n"
            "- Öğrenilmesi gereken kavramlar\n"
            "- Formüller ve denklemler\n"
            "- Sık yapılan hatalar\n"
            "- Pratik ipuçları"
        ),
        "en": (
            "Create a study guide from the following text. Include:\n"
            "- Key concepts to learn\n"
            "- Formulas and equations\n"
            "- Common mistakes\n"
            "- Practical tips"
        ),
    },
}

_COMPLETION_INSTRUCTIONS = {
    "tr": "Aşağıdaki özet eksik kalmış. Tamamla:",
    "en": "The following summary is incomplete. Complete it:",
}


def build_summary_user_prompt(*, text: str, style: SummaryStyle, language: str) -> str:
    """Build first-pass summarization prompt."""
    instructions = _STYLE_INSTRUCTIONS.get(style, _STYLE_INSTRUCTIONS[SummaryStyle.COMPREHENSIVE])
    instruction = instructions.get(language) or instructions[FALLBACK_LANGUAGE]
    return f"{instruction}\n\n--- Document Text ---\n{text}"


def build_summary_completion_prompt(*, summary: str, language: str) -> str:
    """Build follow-up prompt asking the model to finish a truncated summary."""
    instruction = _COMPLETION_INSTRUCTIONS.get(language) or _COMPLETION_INSTRUCTIONS[
        FALLBACK_LANGUAGE
    ]
    return f"{instruction}\n\n{summary}"
