"""Schemas for JSON payloads returned by question generation models."""

from __future__ import annotations

from pydantic import BaseModel, ConfigDict, Field


class RawMCQV1(BaseModel):
    """One question as emitted by the model, before normalization."""

    model_config = ConfigDict(extra="ignore", str_strip_whitespace=True)

    question: str = ""
    options: dict[str, str] | list[str] = Field(default_factory=list)
    correct_answer: int | str = 0
    explanation: str = ""
    difficulty: str = ""
    topic: str = ""


class DuplicateSelectionV1(BaseModel):
    """Indices of questions kept after duplicate detection."""

    model_config = ConfigDict(extra="ignore")

    keep_indices: list[int] = Field(default_factory=list)
    reasoning: str = ""
