"""Keyword relevance ranking over a user's documents."""

from __future__ import annotations

import re
from dataclasses import dataclass
from typing import Iterable, Protocol, Sequence

from studyrag.models import Document, RankedChunk


@dataclass(frozen=True)
class RankingConfig:
    """Policy knobs for keyword ranking.

    ``min_token_length`` is exclusive: with the default of 2 only words of
    three or more characters are scored. Windows are measured in characters
    around the first matched keyword.
    """

    min_token_length: int = 2
    window_before: int = 500
    window_after: int = 1500
    fallback_chars: int = 2000
    low_confidence_threshold: int = 2
    top_k: int = 3

    def __post_init__(self) -> None:
        if self.top_k < 1:
            raise ValueError("top_k must be at least 1")
        if self.window_before < 0 or self.window_after < 1:
            raise ValueError("window_before must be non-negative and window_after positive")
        if self.fallback_chars < 1:
            raise ValueError("fallback_chars must be a positive integer")
        if self.min_token_length < 0 or self.low_confidence_threshold < 0:
            raise ValueError("min_token_length and low_confidence_threshold must be non-negative")


class Ranker(Protocol):
    """Rank a user's documents against a question."""

    def rank(self, question: str, documents: Sequence[Document]) -> Sequence[RankedChunk]:
        """Return ranked chunks, best first."""


def tokenize_question(question: str, *, min_length: int = 2) -> list[str]:
    """Lower-case and split ``question``, keeping words longer than ``min_length``.

    Duplicates are kept so a repeated word weighs more in the score.
    """

    return [token for token in question.lower().split() if len(token) > min_length]


def keyword_score(tokens: Iterable[str], text: str) -> int:
    """Sum case-insensitive substring occurrences of every token in ``text``."""

    lowered = text.lower()
    return sum(lowered.count(token) for token in tokens if token)


def extract_window(text: str, tokens: Sequence[str], *, before: int, after: int) -> str | None:
    """Cut a window around the first occurrence of the first token found in ``text``.

    The match is located in ``text`` itself, since lower-casing can change
    string length. Returns ``None`` when no token occurs.
    """

    for token in tokens:
        match = re.search(re.escape(token), text, re.IGNORECASE)
        if match is None:
            continue
        index = match.start()
        start = max(0, index - before)
        end = min(len(text), index + after)
        return text[start:end]
    return None


class KeywordRanker:
    """Scores documents by keyword frequency and narrows to the best windows."""

    def __init__(self, config: RankingConfig | None = None) -> None:
        self._config = config or RankingConfig()

    @property
    def config(self) -> RankingConfig:
        return self._config

    def rank(self, question: str, documents: Sequence[Document]) -> list[RankedChunk]:
        tokens = tokenize_question(question, min_length=self._config.min_token_length)
        scored = [chunk for chunk in (self._score_document(doc, tokens) for doc in documents) if chunk]
        # sorted() is stable with reverse=True, so ties keep document order
        scored = sorted(scored, key=lambda chunk: chunk.score, reverse=True)
        return self._apply_cutoff(scored)

    def _score_document(self, document: Document, tokens: Sequence[str]) -> RankedChunk | None:
        text = document.searchable_text
        if not text:
            return None
        score = keyword_score(tokens, text)
        has_full_text = bool(document.full_text)
        return RankedChunk(
            file_name=document.file_name,
            text=self._select_text(text, tokens, score, has_full_text),
            score=score,
            has_full_text=has_full_text,
        )

    def _select_text(self, text: str, tokens: Sequence[str], score: int, has_full_text: bool) -> str:
        if not has_full_text:
            return text
        if score > 0:
            window = extract_window(
                text,
                tokens,
                before=self._config.window_before,
                after=self._config.window_after,
            )
            if window is not None:
                return window
        return text[: self._config.fallback_chars]

    def _apply_cutoff(self, scored: list[RankedChunk]) -> list[RankedChunk]:
        if not scored:
            return scored
        if scored[0].score < self._config.low_confidence_threshold:
            # below the threshold every candidate is kept
            return scored
        return scored[: self._config.top_k]
