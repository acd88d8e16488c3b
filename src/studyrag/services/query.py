"""Question orchestration combining ranking and answer synthesis."""

from __future__ import annotations

import time
from typing import Sequence

from studyrag.documents.store import DocumentStore
from studyrag.errors import InvalidQuestionError, PipelineError
from studyrag.metrics.observability import PipelineMetrics, get_logger
from studyrag.models import AnswerResult, RankedChunk
from studyrag.retrieval.service import KeywordRanker, Ranker
from studyrag.services.generation import AnswerSynthesizer

NO_DOCUMENTS_ANSWER = "You haven't uploaded any documents yet. Please upload course materials first!"
NO_RELEVANT_ANSWER = "I couldn't find relevant information in your uploaded documents to answer this question."
FAILURE_MESSAGE = "Failed to process question"


class ContextAssembler:
    """Joins ranked chunks into one grounding context with source markers."""

    def build_context(self, chunks: Sequence[RankedChunk]) -> str:
        return "\n\n".join(
            f"[Source {index}: {chunk.file_name}]\n{chunk.text}" for index, chunk in enumerate(chunks, start=1)
        )


class QueryService:
    """Orchestrates document fetch, ranking and synthesis for incoming questions."""

    def __init__(
        self,
        store: DocumentStore,
        synthesizer: AnswerSynthesizer,
        ranker: Ranker | None = None,
        assembler: ContextAssembler | None = None,
        *,
        default_user_id: str = "default-user",
    ) -> None:
        self._store = store
        self._synthesizer = synthesizer
        self._ranker = ranker or KeywordRanker()
        self._assembler = assembler or ContextAssembler()
        self._default_user_id = default_user_id
        self._logger = get_logger("query")

    def answer(self, question: str | None, user_id: str | None = None) -> AnswerResult:
        if not isinstance(question, str) or not question.strip():
            raise InvalidQuestionError("Question is required")
        owner = user_id or self._default_user_id
        self._logger.info("question.received", user_id=owner, question=question)
        try:
            return self._run(question, owner)
        except Exception as exc:
            PipelineMetrics.record_outcome("error")
            self._logger.error("pipeline.error", user_id=owner, error_type=type(exc).__name__, detail=str(exc))
            raise PipelineError(FAILURE_MESSAGE, detail=str(exc)) from exc

    def _run(self, question: str, user_id: str) -> AnswerResult:
        documents = self._store.fetch_documents(user_id)
        self._logger.info(
            "documents.fetched",
            user_id=user_id,
            document_count=len(documents),
            files=[doc.file_name for doc in documents],
        )
        if not documents:
            PipelineMetrics.record_outcome("no_documents")
            return AnswerResult(answer=NO_DOCUMENTS_ANSWER, sources=(), chunks_used=0)

        ranking_start = time.perf_counter()
        chunks = list(self._ranker.rank(question, documents))
        ranking_duration = time.perf_counter() - ranking_start
        PipelineMetrics.observe_ranking(ranking_duration, len(chunks), chunks[0].score if chunks else None)
        self._logger.info(
            "ranking.complete",
            chunk_count=len(chunks),
            scores={chunk.file_name: chunk.score for chunk in chunks},
            duration_seconds=ranking_duration,
        )
        if not chunks:
            PipelineMetrics.record_outcome("no_relevant")
            return AnswerResult(answer=NO_RELEVANT_ANSWER, sources=(), chunks_used=0)

        context = self._assembler.build_context(chunks)
        generation_start = time.perf_counter()
        text = self._synthesizer.synthesize(question, context)
        generation_duration = time.perf_counter() - generation_start
        PipelineMetrics.observe_generation(generation_duration)
        self._logger.info(
            "generation.complete",
            context_length=len(context),
            answer_length=len(text),
            duration_seconds=generation_duration,
        )
        PipelineMetrics.record_outcome("answered")
        return AnswerResult(answer=text, sources=self._unique_sources(chunks), chunks_used=len(chunks))

    @staticmethod
    def _unique_sources(chunks: Sequence[RankedChunk]) -> tuple[str, ...]:
        seen: set[str] = set()
        ordered: list[str] = []
        for chunk in chunks:
            if chunk.file_name in seen:
                continue
            seen.add(chunk.file_name)
            ordered.append(chunk.file_name)
        return tuple(ordered)
