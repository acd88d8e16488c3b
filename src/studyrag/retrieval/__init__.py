"""Retrieval components."""

from .service import KeywordRanker, Ranker, RankingConfig, extract_window, keyword_score, tokenize_question

__all__ = ["KeywordRanker", "Ranker", "RankingConfig", "extract_window", "keyword_score", "tokenize_question"]
