"""Observability helpers for StudyRAG."""

from __future__ import annotations

import logging

import structlog
from prometheus_client import Counter, Histogram

_logger_configured = False


def configure_logging(level: int = logging.INFO) -> None:
    global _logger_configured  # noqa: PLW0603 - module-level guard
    if _logger_configured:
        return
    logging.basicConfig(level=level, format="%(message)s")
    structlog.configure(
        processors=[
            structlog.contextvars.merge_contextvars,
            structlog.processors.add_log_level,
            structlog.processors.TimeStamper(fmt="iso", utc=True),
            structlog.processors.JSONRenderer(),
        ],
        wrapper_class=structlog.make_filtering_bound_logger(level),
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )
    _logger_configured = True


def bind_correlation_id(correlation_id: str) -> None:
    structlog.contextvars.bind_contextvars(correlation_id=correlation_id)


def clear_correlation_id() -> None:
    structlog.contextvars.clear_contextvars()


def get_logger(name: str = "studyrag") -> structlog.BoundLogger:
    configure_logging()
    return structlog.get_logger(name)


class PipelineMetrics:
    """Prometheus metrics for pipeline stages."""

    ranking_latency = Histogram(
        "studyrag_ranking_duration_seconds",
        "Time spent scoring and windowing documents.",
        buckets=(0.001, 0.005, 0.01, 0.05, 0.1, 0.5, 1.0),
    )
    ranked_chunk_count = Histogram(
        "studyrag_ranked_chunk_count",
        "Number of chunks handed to answer synthesis.",
        buckets=(0, 1, 2, 3, 5, 8, 13, 21),
    )
    top_score = Histogram(
        "studyrag_top_keyword_score",
        "Keyword score of the best ranked chunk.",
        buckets=(0, 1, 2, 5, 10, 25, 50, 100),
    )
    generation_latency = Histogram(
        "studyrag_generation_duration_seconds",
        "Time spent waiting on the completion service.",
        buckets=(0.05, 0.1, 0.5, 1.0, 2.0, 5.0, 10.0, 30.0),
    )
    upload_latency = Histogram(
        "studyrag_upload_duration_seconds",
        "Time spent extracting and storing uploaded documents.",
        buckets=(0.05, 0.1, 0.5, 1.0, 2.5, 5.0, 10.0),
    )
    outcomes = Counter(
        "studyrag_pipeline_outcomes_total",
        "Terminal states reached by the question pipeline.",
        ["outcome"],
    )

    @classmethod
    def observe_ranking(cls, duration_seconds: float, chunk_count: int, best_score: int | None) -> None:
        cls.ranking_latency.observe(duration_seconds)
        cls.ranked_chunk_count.observe(chunk_count)
        if best_score is not None:
            cls.top_score.observe(best_score)

    @classmethod
    def observe_generation(cls, duration_seconds: float) -> None:
        cls.generation_latency.observe(duration_seconds)

    @classmethod
    def observe_upload(cls, duration_seconds: float) -> None:
        cls.upload_latency.observe(duration_seconds)

    @classmethod
    def record_outcome(cls, outcome: str) -> None:
        cls.outcomes.labels(outcome=outcome).inc()


__all__ = [
    "PipelineMetrics",
    "bind_correlation_id",
    "clear_correlation_id",
    "configure_logging",
    "get_logger",
]
