"""Service layer orchestrations for StudyRAG."""

from .generation import (
    AnswerSynthesizer,
    AzureOpenAICompletionService,
    AzureOpenAIConfig,
    CompletionService,
    GenerationConfig,
)
from .query import NO_DOCUMENTS_ANSWER, NO_RELEVANT_ANSWER, ContextAssembler, QueryService

__all__ = [
    "AnswerSynthesizer",
    "AzureOpenAICompletionService",
    "AzureOpenAIConfig",
    "CompletionService",
    "ContextAssembler",
    "GenerationConfig",
    "NO_DOCUMENTS_ANSWER",
    "NO_RELEVANT_ANSWER",
    "QueryService",
]
