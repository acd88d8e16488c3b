"""Tests for question orchestration and context assembly."""

from __future__ import annotations

from typing import Mapping, Sequence

import pytest

from studyrag.errors import CompletionConfigurationError, InvalidQuestionError, PipelineError
from studyrag.models import (
    AnswerResult,
    CompletionChoice,
    CompletionMessage,
    CompletionResult,
    Document,
    RankedChunk,
)
from studyrag.services.generation import AnswerSynthesizer, AzureOpenAICompletionService
from studyrag.services.query import NO_DOCUMENTS_ANSWER, NO_RELEVANT_ANSWER, ContextAssembler, QueryService


class StubStore:
    def __init__(self, documents: Sequence[Document] = (), error: Exception | None = None) -> None:
        self.documents = list(documents)
        self.error = error
        self.requested: list[str] = []

    def fetch_documents(self, user_id: str) -> Sequence[Document]:
        self.requested.append(user_id)
        if self.error:
            raise self.error
        return [doc for doc in self.documents if doc.user_id == user_id]

    def add_document(self, document: Document) -> str:
        self.documents.append(document)
        return document.id

    def ping(self) -> bool:
        return True


class StubCompletion:
    def __init__(self, result: CompletionResult | None = None) -> None:
        self.result = result or CompletionResult(
            choices=(CompletionChoice(message=CompletionMessage(content="Mitosis splits cells."), finish_reason="stop"),)
        )
        self.calls: list[list[Mapping[str, str]]] = []

    def complete(self, messages: Sequence[Mapping[str, str]], *, max_output_tokens: int) -> CompletionResult:
        self.calls.append(list(messages))
        return self.result


class StubRanker:
    def __init__(self, chunks: Sequence[RankedChunk]) -> None:
        self.chunks = list(chunks)

    def rank(self, question: str, documents: Sequence[Document]) -> Sequence[RankedChunk]:
        return self.chunks


def _doc(name: str, text: str | None, user_id: str = "default-user") -> Document:
    return Document(id=f"doc-{name}", file_name=name, user_id=user_id, full_text=text, text_length=len(text or ""))


def _service(store: StubStore, completion: StubCompletion | None = None, **kwargs) -> QueryService:
    return QueryService(store=store, synthesizer=AnswerSynthesizer(completion or StubCompletion()), **kwargs)


def test_context_assembler_numbers_sources_in_rank_order():
    chunks = [
        RankedChunk(file_name="b.pdf", text="second file", score=4, has_full_text=True),
        RankedChunk(file_name="a.pdf", text="first file", score=1, has_full_text=False),
    ]
    context = ContextAssembler().build_context(chunks)
    assert context == "[Source 1: b.pdf]\nsecond file\n\n[Source 2: a.pdf]\nfirst file"


def test_context_assembler_empty_input():
    assert ContextAssembler().build_context([]) == ""


def test_no_documents_short_circuits_without_calling_model():
    completion = StubCompletion()
    result = _service(StubStore(), completion).answer("What is mitosis?")
    assert result == AnswerResult(answer=NO_DOCUMENTS_ANSWER, sources=(), chunks_used=0)
    assert completion.calls == []


def test_no_searchable_text_returns_not_found_answer():
    completion = StubCompletion()
    store = StubStore([_doc("scan.pdf", None)])
    result = _service(store, completion).answer("What is mitosis?")
    assert result.answer == NO_RELEVANT_ANSWER
    assert result.sources == ()
    assert completion.calls == []


def test_answer_includes_sources_and_chunk_count():
    completion = StubCompletion()
    store = StubStore([_doc("bio.txt", "mitosis mitosis mitosis"), _doc("chem.txt", "acids and bases")])
    result = _service(store, completion).answer("Explain mitosis")
    assert result.answer == "Mitosis splits cells."
    assert result.sources == ("bio.txt", "chem.txt")
    assert result.chunks_used == 2
    system, user = completion.calls[0]
    assert system["role"] == "system"
    assert "[Source 1: bio.txt]\nmitosis mitosis mitosis" in user["content"]
    assert "Explain mitosis" in user["content"]


def test_missing_user_defaults_to_sentinel():
    store = StubStore()
    _service(store).answer("anything at all", None)
    _service(store, default_user_id="guest").answer("anything at all", "")
    assert store.requested == ["default-user", "guest"]


def test_empty_model_answer_is_not_an_error():
    completion = StubCompletion(CompletionResult(choices=()))
    store = StubStore([_doc("bio.txt", "mitosis")])
    result = _service(store, completion).answer("mitosis")
    assert result.answer == ""
    assert result.sources == ("bio.txt",)
    assert result.chunks_used == 1


def test_sources_are_unique_in_first_seen_order():
    chunks = [
        RankedChunk(file_name="a.txt", text="one", score=3, has_full_text=True),
        RankedChunk(file_name="b.txt", text="two", score=2, has_full_text=True),
        RankedChunk(file_name="a.txt", text="three", score=1, has_full_text=True),
    ]
    store = StubStore([_doc("a.txt", "x")])
    result = _service(store, ranker=StubRanker(chunks)).answer("question")
    assert result.sources == ("a.txt", "b.txt")
    assert result.chunks_used == 3


@pytest.mark.parametrize("question", [None, "", "   "])
def test_missing_question_is_rejected(question):
    store = StubStore()
    with pytest.raises(InvalidQuestionError):
        _service(store).answer(question)
    assert store.requested == []


def test_store_failure_becomes_pipeline_error():
    store = StubStore(error=ConnectionError("cluster unreachable"))
    with pytest.raises(PipelineError) as excinfo:
        _service(store).answer("What is mitosis?")
    assert str(excinfo.value) == "Failed to process question"
    assert excinfo.value.detail == "cluster unreachable"
    assert isinstance(excinfo.value.__cause__, ConnectionError)


def test_missing_completion_config_becomes_pipeline_error():
    store = StubStore([_doc("bio.txt", "mitosis")])
    service = QueryService(store=store, synthesizer=AnswerSynthesizer(AzureOpenAICompletionService()))
    with pytest.raises(PipelineError) as excinfo:
        service.answer("mitosis")
    assert isinstance(excinfo.value.__cause__, CompletionConfigurationError)
    assert "AZURE_OPENAI_ENDPOINT" in excinfo.value.detail
