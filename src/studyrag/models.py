"""Shared domain models used across the StudyRAG pipeline."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Sequence


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


@dataclass(frozen=True)
class Document:
    """A user's uploaded document together with its extracted text."""

    id: str
    file_name: str
    user_id: str
    full_text: str | None = None
    text_preview: str | None = None
    text_length: int = 0
    upload_date: datetime = field(default_factory=_utcnow)
    content_type: str | None = None

    @property
    def searchable_text(self) -> str:
        """Full text when present, otherwise the preview, otherwise empty."""

        return self.full_text or self.text_preview or ""


@dataclass(frozen=True)
class RankedChunk:
    """Windowed document text scored against a single question."""

    file_name: str
    text: str
    score: int
    has_full_text: bool


@dataclass(frozen=True)
class AnswerResult:
    """Answer returned to the caller along with the files it drew on."""

    answer: str
    sources: Sequence[str] = ()
    chunks_used: int = 0


@dataclass(frozen=True)
class CompletionMessage:
    content: str | None = None


@dataclass(frozen=True)
class CompletionChoice:
    message: CompletionMessage | None = None
    finish_reason: str | None = None


@dataclass(frozen=True)
class CompletionResult:
    """Chat completion response reduced to the fields the pipeline reads."""

    choices: Sequence[CompletionChoice] = ()

    @property
    def first_content(self) -> str:
        """Content of the first choice, or an empty string when absent."""

        if not self.choices:
            return ""
        message = self.choices[0].message
        if message is None:
            return ""
        return message.content or ""

    @property
    def first_finish_reason(self) -> str | None:
        if not self.choices:
            return None
        return self.choices[0].finish_reason
