"""Document ingestion pipeline."""

from .service import (
    PDF_EXTRACTION_FAILED,
    DocumentIngestor,
    IngestionConfig,
    LangChainDocumentIngestor,
)

__all__ = [
    "DocumentIngestor",
    "IngestionConfig",
    "LangChainDocumentIngestor",
    "PDF_EXTRACTION_FAILED",
]
