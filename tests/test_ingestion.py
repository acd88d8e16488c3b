"""Tests for upload text extraction."""

from __future__ import annotations

from pathlib import Path

import pytest

from studyrag.errors import UnsupportedFileTypeError
from studyrag.ingestion.service import PDF_EXTRACTION_FAILED, IngestionConfig, LangChainDocumentIngestor


def test_text_upload_keeps_full_text_and_preview(tmp_path: Path) -> None:
    document = tmp_path / "notes.txt"
    document.write_text("Osmosis   moves water.\n\n\n\nDiffusion moves solutes. " * 40, encoding="utf-8")

    ingestor = LangChainDocumentIngestor(IngestionConfig(preview_chars=50))
    stored = ingestor.ingest(document, file_name="notes.txt", user_id="u1", content_type="text/plain")

    assert stored.id.startswith("doc-")
    assert stored.file_name == "notes.txt"
    assert stored.user_id == "u1"
    assert stored.full_text is not None
    assert stored.full_text.startswith("Osmosis moves water.\n\nDiffusion")
    assert stored.text_preview == stored.full_text[:50]
    assert stored.text_length == len(stored.full_text)
    assert stored.content_type == "text/plain"


def test_unsupported_extension_is_rejected(tmp_path: Path) -> None:
    binary = tmp_path / "setup.exe"
    binary.write_bytes(b"MZ")
    with pytest.raises(UnsupportedFileTypeError):
        LangChainDocumentIngestor().extract_text(binary)


def test_unreadable_pdf_is_stored_with_marker(tmp_path: Path) -> None:
    broken = tmp_path / "broken.pdf"
    broken.write_bytes(b"this is not a pdf")
    stored = LangChainDocumentIngestor().ingest(broken, file_name="broken.pdf", user_id="u1")
    assert stored.full_text == PDF_EXTRACTION_FAILED
    assert stored.text_length == len(PDF_EXTRACTION_FAILED)
