"""Document ingestion service for StudyRAG uploads."""

from __future__ import annotations

import re
import time
import unicodedata
from dataclasses import dataclass
from datetime import datetime, timezone
from pathlib import Path
from typing import Mapping, Protocol, Sequence
from uuid import uuid4

from langchain_community.document_loaders import Docx2txtLoader, PyPDFLoader, TextLoader
from langchain_community.document_loaders.base import BaseLoader
from langchain_core.documents import Document as LCDocument

from studyrag.errors import IngestionError, UnsupportedFileTypeError
from studyrag.metrics.observability import PipelineMetrics, get_logger
from studyrag.models import Document

PDF_EXTRACTION_FAILED = "[PDF text extraction failed]"


@dataclass(frozen=True)
class IngestionConfig:
    """Configuration for document ingestion."""

    preview_chars: int = 500
    encoding: str = "utf-8"


class DocumentIngestor(Protocol):
    """Protocol for ingestion implementations."""

    def ingest(
        self,
        path: Path,
        *,
        file_name: str,
        user_id: str,
        content_type: str | None = None,
    ) -> Document:
        """Extract text from ``path`` and return a document ready to store."""


def _normalize_text(raw: str) -> str:
    normalized = unicodedata.normalize("NFKC", raw)
    normalized = normalized.replace("\u00a0", " ")
    normalized = re.sub(r"[ \t\f\v]+", " ", normalized)
    normalized = re.sub(r"\n\s*\n+", "\n\n", normalized)
    return normalized.strip()


class LangChainDocumentIngestor:
    """Extract upload text via LangChain loaders."""

    _LOADERS: Mapping[str, type[BaseLoader]] = {
        ".pdf": PyPDFLoader,
        ".docx": Docx2txtLoader,
        ".txt": TextLoader,
        ".md": TextLoader,
    }

    _logger = get_logger("ingestion")

    def __init__(self, config: IngestionConfig | None = None) -> None:
        self._config = config or IngestionConfig()

    def ingest(
        self,
        path: Path,
        *,
        file_name: str,
        user_id: str,
        content_type: str | None = None,
    ) -> Document:
        start = time.perf_counter()
        text = self.extract_text(path)
        document = Document(
            id=f"doc-{uuid4().hex}",
            file_name=file_name,
            user_id=user_id,
            full_text=text,
            text_preview=text[: self._config.preview_chars],
            text_length=len(text),
            upload_date=datetime.now(timezone.utc),
            content_type=content_type,
        )
        duration = time.perf_counter() - start
        PipelineMetrics.observe_upload(duration)
        self._logger.info(
            "ingestion.complete",
            file_name=file_name,
            user_id=user_id,
            text_length=len(text),
            duration_seconds=duration,
        )
        return document

    def extract_text(self, path: Path) -> str:
        suffix = path.suffix.lower()
        loader_cls = self._LOADERS.get(suffix)
        if loader_cls is None:
            raise UnsupportedFileTypeError(f"Unsupported document type: {suffix or '<none>'}")
        try:
            loader = self._build_loader(loader_cls, path)
            pages = loader.load()
        except Exception as exc:
            if suffix == ".pdf":
                # Keep the upload; the document stays listed but matches nothing useful.
                self._logger.warning("ingestion.pdf_failed", path=str(path), detail=str(exc))
                return PDF_EXTRACTION_FAILED
            raise IngestionError(f"Failed to load {path.name}: {exc}") from exc
        return self._join_pages(pages)

    def _build_loader(self, loader_cls: type[BaseLoader], path: Path) -> BaseLoader:
        if loader_cls is TextLoader:
            return loader_cls(str(path), encoding=self._config.encoding)
        return loader_cls(str(path))

    @staticmethod
    def _join_pages(pages: Sequence[LCDocument]) -> str:
        return _normalize_text("\n\n".join(page.page_content for page in pages))
