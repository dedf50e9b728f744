"""Unit tests for summarization text heuristics."""

from __future__ import annotations

from quizforge.infrastructure.llm.summary_text import (
    count_words,
    estimate_tokens,
    extractive_preprocess,
    fix_latex_formatting,
    is_summary_complete,
)


def test_estimate_tokens_rounds_up_per_four_characters() -> None:
    assert estimate_tokens("") == 0
    assert estimate_tokens("abcd") == 1
    assert estimate_tokens("abcde") == 2


def test_extractive_preprocess_keeps_text_within_budget() -> None:
    text = "Cells are the basic unit of life in every organism. They divide by mitosis."

    assert extractive_preprocess(text, max_tokens=1000) == text


def test_extractive_preprocess_cuts_short_fragments_to_budget() -> None:
    text = "Short. Tiny. " * 50

    assert extractive_preprocess(text, max_tokens=5) == "Short. Tiny. Short."


def test_extractive_preprocess_truncates_unpunctuated_text_over_budget() -> None:
    text = "kelime " * 30000

    condensed = extractive_preprocess(text)

    assert condensed.startswith("kelime kelime")
    assert len(condensed) <= 6000 * 4
    assert estimate_tokens(condensed) <= 6000


def test_extractive_preprocess_skips_oversized_sentence_for_smaller_ones() -> None:
    giant = "Mitochondria " * 200 + "."
    small = [f"Small sentence {index} about ribosomes and proteins." for index in range(5)]
    text = " ".join([giant, *small])

    condensed = extractive_preprocess(text, max_tokens=100)

    assert "Mitochondria Mitochondria" not in condensed
    assert all(sentence in condensed for sentence in small)


def test_extractive_preprocess_selects_sentences_in_original_order() -> None:
    sentences = [
        f"Sentence number {index} describes cellular respiration in detail."
        for index in range(40)
    ]
    text = " ".join(sentences)

    condensed = extractive_preprocess(text, max_tokens=100)

    assert estimate_tokens(condensed) <= 100
    assert len(condensed) < len(text)
    kept = [sentence for sentence in sentences if sentence in condensed]
    assert kept
    assert [sentences.index(sentence) for sentence in kept] == sorted(
        sentences.index(sentence) for sentence in kept
    )
    assert sentences[0] in condensed
    assert sentences[-1] in condensed


def test_is_summary_complete_accepts_finished_text() -> None:
    summary = (
        "Photosynthesis converts light into chemical energy. "
        "Plants store this energy as glucose molecules."
    )

    assert is_summary_complete(summary) is True


def test_is_summary_complete_rejects_truncated_text() -> None:
    assert is_summary_complete("Too short.") is False
    assert is_summary_complete(
        "Photosynthesis converts light into chemical energy and plants store it as"
    ) is False
    assert is_summary_complete(
        "Photosynthesis converts light into chemical energy. Plants store energy and therefore."
    ) is False
    assert is_summary_complete(
        "Fotosentez ışık enerjisini kimyasal enerjiye dönüştürür. Bitkiler bunu depolar ve."
    ) is False


def test_fix_latex_formatting_converts_delimiters() -> None:
    text = "Area: \\[ \\pi r^2 \\] where \\(r\\) is the radius."

    fixed = fix_latex_formatting(text)

    assert fixed == "Area: \n$$\\pi r^2$$\n where $r$ is the radius."


def test_fix_latex_formatting_isolates_existing_display_blocks() -> None:
    assert fix_latex_formatting("Sum $$ a+b $$ done") == "Sum \n$$a+b$$\n done"
    assert fix_latex_formatting("Inline $x$ stays") == "Inline $x$ stays"


def test_count_words_splits_on_whitespace() -> None:
    assert count_words("one  two\nthree") == 3
    assert count_words("") == 0
