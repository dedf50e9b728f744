"""Text heuristics around LLM summarization: input budgeting and output cleanup."""

from __future__ import annotations

import math
import re

DEFAULT_MAX_INPUT_TOKENS = 6000
CHARS_PER_TOKEN = 4
MIN_SENTENCE_LENGTH = 20

_SENTENCE_SPLIT_PATTERN = re.compile(r"(?<=[.!?;])\s+")
_WORD_CLEAN_PATTERN = re.compile(r"[^a-züöşıçğ0-9]", re.IGNORECASE)
_FORMULA_PATTERNS = (
    re.compile(r"\$[^$]+\$"),
    re.compile(r"\\[a-z]+", re.IGNORECASE),
)
_DISPLAY_MATH_PATTERN = re.compile(r"\\\[(.*?)\\\]", re.DOTALL)
_INLINE_MATH_PATTERN = re.compile(r"\\\((.*?)\\\)", re.DOTALL)
_DOLLAR_BLOCK_PATTERN = re.compile(r"\$\$(.*?)\$\$", re.DOTALL)
_SENTENCE_END_PATTERN = re.compile(r"[.!?]")
_TRAILING_PUNCTUATION_PATTERN = re.compile(r"[.,;:!?]")

_LEADING_SENTENCE_BOOST = 0.3
_TRAILING_SENTENCE_BOOST = 0.2
_FORMULA_BONUS = 0.3
_POSITIONAL_WINDOW = 3

_COMPLETE_ENDINGS = frozenset(".!?:;")
_CONNECTOR_WORDS = frozenset(
    {
        "and",
        "or",
        "but",
        "however",
        "therefore",
        "moreover",
        "ve",
        "veya",
        "ama",
        "ancak",
        "dolayısıyla",
        "ayrıca",
    }
)


def estimate_tokens(text: str) -> int:
    """Rough token estimate used for the input budget."""
    return math.ceil(len(text) / CHARS_PER_TOKEN)


def extractive_preprocess(text: str, max_tokens: int = DEFAULT_MAX_INPUT_TOKENS) -> str:
    """Keep the most informative sentences so the text fits the token budget.

    Sentences are scored by average term frequency with a boost for the
    opening and closing sentences and for sentences carrying formulas.
    Selected sentences are returned in their original order.
    """
    sentences = [
        sentence.strip()
        for sentence in _SENTENCE_SPLIT_PATTERN.split(text)
        if len(sentence.strip()) > MIN_SENTENCE_LENGTH
    ]
    if estimate_tokens(text) <= max_tokens:
        return text
    if not sentences:
        return _truncate_to_budget(text, max_tokens)

    frequencies: dict[str, int] = {}
    for word in text.lower().split():
        cleaned = _clean_word(word)
        if len(cleaned) > 2:
            frequencies[cleaned] = frequencies.get(cleaned, 0) + 1

    total = len(sentences)
    scored: list[tuple[float, int, str]] = []
    for index, sentence in enumerate(sentences):
        words = sentence.lower().split()
        tf_score = sum(frequencies.get(_clean_word(word), 0) for word in words)
        tf_score = tf_score / len(words) if words else 0.0

        position_score = 0.0
        if index < _POSITIONAL_WINDOW:
            position_score = _LEADING_SENTENCE_BOOST
        if index >= total - _POSITIONAL_WINDOW:
            position_score = _TRAILING_SENTENCE_BOOST

        formula_bonus = (
            _FORMULA_BONUS
            if any(pattern.search(sentence) for pattern in _FORMULA_PATTERNS)
            else 0.0
        )
        scored.append((tf_score + position_score + formula_bonus, index, sentence))

    selected: list[tuple[int, str]] = []
    token_count = 0
    for _, index, sentence in sorted(scored, key=lambda item: -item[0]):
        sentence_tokens = estimate_tokens(sentence)
        if token_count + sentence_tokens > max_tokens:
            continue
        selected.append((index, sentence))
        token_count += sentence_tokens

    if not selected:
        return _truncate_to_budget(text, max_tokens)
    selected.sort(key=lambda item: item[0])
    return " ".join(sentence for _, sentence in selected)


def _truncate_to_budget(text: str, max_tokens: int) -> str:
    # no scoreable sentence fits, e.g. OCR tables without punctuation
    return text[: max_tokens * CHARS_PER_TOKEN].strip()


def is_summary_complete(summary: str) -> bool:
    """Detect summaries that were cut off mid-sentence."""
    trimmed = summary.strip()
    if len(trimmed) < 50:
        return False
    if trimmed[-1] not in _COMPLETE_ENDINGS:
        return False

    sentences = _SENTENCE_END_PATTERN.split(trimmed)
    last_sentence = sentences[-2].strip() if len(sentences) >= 2 else ""
    if len(last_sentence) < 10:
        return False

    for word in trimmed.lower().split()[-3:]:
        if _TRAILING_PUNCTUATION_PATTERN.sub("", word, count=1) in _CONNECTOR_WORDS:
            return False

    return True


def fix_latex_formatting(text: str) -> str:
    """Normalize LaTeX delimiters to dollar syntax and isolate display blocks."""
    result = _DISPLAY_MATH_PATTERN.sub(lambda match: f"$${match.group(1)}$$", text)
    result = _INLINE_MATH_PATTERN.sub(lambda match: f"${match.group(1)}$", result)
    return _DOLLAR_BLOCK_PATTERN.sub(
        lambda match: f"\n$${match.group(1).strip()}$$\n",
        result,
    )


def count_words(text: str) -> int:
    return len(text.split())


def _clean_word(word: str) -> str:
    return _WORD_CLEAN_PATTERN.sub("", word)
