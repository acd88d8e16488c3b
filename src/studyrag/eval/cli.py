"""CLI for evaluating StudyRAG keyword ranking accuracy."""

from __future__ import annotations

import argparse
import json
import statistics
import sys
import time
from dataclasses import dataclass
from pathlib import Path
from typing import List, Sequence

from studyrag.config import Settings, get_settings
from studyrag.models import Document
from studyrag.retrieval.service import KeywordRanker, RankingConfig


@dataclass(frozen=True)
class QueryFixture:
    question: str
    relevant_files: Sequence[str]


@dataclass(frozen=True)
class EvaluationResult:
    total_queries: int
    hits: int
    hit_rate: float
    mean_reciprocal_rank: float
    average_chunks: float
    average_latency_ms: float
    details: List[dict]

    def to_dict(self) -> dict:
        return {
            "total_queries": self.total_queries,
            "hits": self.hits,
            "hit_rate": self.hit_rate,
            "mean_reciprocal_rank": self.mean_reciprocal_rank,
            "average_chunks": self.average_chunks,
            "average_latency_ms": self.average_latency_ms,
            "details": self.details,
        }


def load_dataset(path: Path) -> tuple[list[Document], list[QueryFixture]]:
    data = json.loads(path.read_text(encoding="utf-8"))
    documents = [
        Document(
            id=item.get("id") or f"doc-{index}",
            file_name=item["fileName"],
            user_id="evaluation",
            full_text=item.get("fullText"),
            text_preview=item.get("textPreview"),
            text_length=len(item.get("fullText") or item.get("textPreview") or ""),
        )
        for index, item in enumerate(data["documents"])
    ]
    queries = [
        QueryFixture(question=item["question"], relevant_files=item.get("relevantFiles", []))
        for item in data["queries"]
    ]
    return documents, queries


def ranking_config_from_settings(settings: Settings, *, top_k: int | None = None) -> RankingConfig:
    return RankingConfig(
        min_token_length=settings.min_token_length,
        window_before=settings.window_before,
        window_after=settings.window_after,
        fallback_chars=settings.fallback_chars,
        low_confidence_threshold=settings.low_confidence_threshold,
        top_k=top_k or settings.top_k,
    )


def run_evaluation(
    dataset_path: Path,
    *,
    top_k: int | None = None,
    settings: Settings | None = None,
    json_out: Path | None = None,
    markdown_out: Path | None = None,
) -> EvaluationResult:
    settings = settings or get_settings()
    documents, queries = load_dataset(dataset_path)
    ranker = KeywordRanker(ranking_config_from_settings(settings, top_k=top_k))

    hits = 0
    reciprocal_ranks: list[float] = []
    chunk_counts: list[int] = []
    latencies: list[float] = []
    details: list[dict] = []

    for query in queries:
        start = time.perf_counter()
        chunks = ranker.rank(query.question, documents)
        latencies.append((time.perf_counter() - start) * 1000)
        retrieved = [chunk.file_name for chunk in chunks]
        chunk_counts.append(len(chunks))
        relevant_set = set(query.relevant_files)
        rank = None
        for index, file_name in enumerate(retrieved, start=1):
            if file_name in relevant_set:
                rank = index
                break
        if rank is not None:
            hits += 1
            reciprocal_ranks.append(1 / rank)
        else:
            reciprocal_ranks.append(0.0)
        details.append(
            {
                "question": query.question,
                "retrieved": retrieved,
                "scores": [chunk.score for chunk in chunks],
                "relevant": list(query.relevant_files),
            },
        )

    total = len(queries)
    result = EvaluationResult(
        total_queries=total,
        hits=hits,
        hit_rate=hits / total if total else 0.0,
        mean_reciprocal_rank=statistics.fmean(reciprocal_ranks) if reciprocal_ranks else 0.0,
        average_chunks=statistics.fmean(chunk_counts) if chunk_counts else 0.0,
        average_latency_ms=statistics.fmean(latencies) if latencies else 0.0,
        details=details,
    )

    if json_out:
        json_out.write_text(json.dumps(result.to_dict(), indent=2), encoding="utf-8")
    if markdown_out:
        markdown_out.write_text(_format_markdown(result), encoding="utf-8")
    return result


def _format_markdown(result: EvaluationResult) -> str:
    lines = [
        "# StudyRAG Ranking Report",
        "",
        f"- Total queries: {result.total_queries}",
        f"- Hits: {result.hits}",
        f"- Hit rate: {result.hit_rate:.2f}",
        f"- MRR: {result.mean_reciprocal_rank:.2f}",
        f"- Avg chunks: {result.average_chunks:.2f}",
        "",
        "| Question | Retrieved | Relevant |",
        "| --- | --- | --- |",
    ]
    for item in result.details:
        retrieved = ", ".join(item["retrieved"]) if item["retrieved"] else "-"
        relevant = ", ".join(item["relevant"]) if item["relevant"] else "-"
        lines.append(f"| {item['question']} | {retrieved} | {relevant} |")
    return "\n".join(lines)


def parse_args(argv: Sequence[str]) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Evaluate StudyRAG keyword ranking.")
    parser.add_argument(
        "--dataset",
        type=Path,
        default=Path("evaluations/fixtures/sample.json"),
        help="Path to evaluation dataset JSON file.",
    )
    parser.add_argument("--top-k", type=int, default=None, help="Override the confident-match cutoff")
    parser.add_argument("--json-out", type=Path, default=None, help="Optional path to write JSON report")
    parser.add_argument("--markdown-out", type=Path, default=None, help="Optional path to write Markdown report")
    parser.add_argument("--min-hit-rate", type=float, default=None, help="Override hit-rate threshold")
    parser.add_argument("--min-mrr", type=float, default=None, help="Override MRR threshold")
    return parser.parse_args(argv)


def main(argv: Sequence[str] | None = None) -> int:
    args = parse_args(sys.argv[1:] if argv is None else argv)
    settings = get_settings()
    min_hit_rate = args.min_hit_rate if args.min_hit_rate is not None else settings.evaluation_min_hit_rate
    min_mrr = args.min_mrr if args.min_mrr is not None else settings.evaluation_min_mrr

    result = run_evaluation(
        args.dataset,
        top_k=args.top_k,
        settings=settings,
        json_out=args.json_out,
        markdown_out=args.markdown_out,
    )
    print(json.dumps(result.to_dict(), indent=2))

    if result.hit_rate < min_hit_rate or result.mean_reciprocal_rank < min_mrr:
        print(
            f"Evaluation failed thresholds (hit rate {result.hit_rate:.2f} vs {min_hit_rate}, "
            f"MRR {result.mean_reciprocal_rank:.2f} vs {min_mrr})",
            file=sys.stderr,
        )
        return 1
    return 0


if __name__ == "__main__":  # pragma: no cover - CLI entrypoint
    sys.exit(main())
