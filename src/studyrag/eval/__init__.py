"""Evaluation harness for StudyRAG ranking accuracy."""

from .cli import EvaluationResult, main, run_evaluation

__all__ = ["EvaluationResult", "main", "run_evaluation"]
