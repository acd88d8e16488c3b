"""Pydantic models for the StudyRAG API."""

from __future__ import annotations

from datetime import datetime
from typing import Any, List, Optional

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


class CamelModel(BaseModel):
    """Base model that speaks camelCase on the wire."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class ChatRequest(CamelModel):
    # Optional so a missing question is reported as 400, not a schema error
    question: Optional[str] = Field(default=None, description="End-user question to answer")
    user_id: Optional[str] = Field(default=None, description="Owner of the documents to search")


class ChatResponse(CamelModel):
    answer: str
    sources: List[str]
    chunks_used: int = Field(..., ge=0, description="Number of ranked chunks given to the model")


class ErrorResponse(CamelModel):
    error: str
    details: Optional[Any] = None


class DocumentSummary(CamelModel):
    id: str = Field(..., description="Stable identifier for the stored document")
    file_name: str
    upload_date: datetime
    text_length: int = Field(..., ge=0)


class DocumentUploadResponse(CamelModel):
    success: bool = True
    message: str = "Document uploaded successfully"
    document: DocumentSummary


class DocumentListResponse(CamelModel):
    user_id: str
    documents: List[DocumentSummary]


class CompletionDebug(CamelModel):
    answer_is_empty: bool
    answer_length: int
    choices_count: int
    finish_reason: Optional[str] = None


class CompletionDiagnosticsResponse(CamelModel):
    success: bool = True
    answer: str
    debug: CompletionDebug
