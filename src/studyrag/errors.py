"""Exception hierarchy shared by the StudyRAG pipeline and API."""

from __future__ import annotations


class StudyRAGError(Exception):
    """Base class for errors raised by StudyRAG components."""


class InvalidQuestionError(StudyRAGError, ValueError):
    """Raised when a request does not carry a usable question."""


class CompletionConfigurationError(StudyRAGError, RuntimeError):
    """Raised when the completion service is missing required settings."""

    def __init__(self, message: str, *, has_endpoint: bool, has_api_key: bool, has_deployment: bool) -> None:
        super().__init__(message)
        self.has_endpoint = has_endpoint
        self.has_api_key = has_api_key
        self.has_deployment = has_deployment


class PipelineError(StudyRAGError, RuntimeError):
    """Raised when any stage after validation fails while answering a question."""

    def __init__(self, message: str, *, detail: str) -> None:
        super().__init__(message)
        self.detail = detail


class IngestionError(StudyRAGError, RuntimeError):
    """Raised when text extraction or persistence fails for an upload."""


class UnsupportedFileTypeError(IngestionError):
    """Raised when a document extension is not supported by the ingestor."""
