"""Answer synthesis backed by a chat completion service."""

from __future__ import annotations

import threading
from dataclasses import dataclass
from typing import Any, Mapping, Protocol, Sequence

from openai import AzureOpenAI

from studyrag.errors import CompletionConfigurationError
from studyrag.metrics.observability import get_logger
from studyrag.models import CompletionChoice, CompletionMessage, CompletionResult

SYSTEM_PROMPT = (
    "You are a helpful study assistant. Answer using ONLY the provided context. "
    "If the answer is not in the context, say you cannot find it."
)

USER_PROMPT_TEMPLATE = (
    "Context from uploaded documents:\n{context}\n\n"
    "Student's Question: {question}\n\n"
    "Answer concisely and cite sources by filename when relevant."
)


@dataclass(frozen=True)
class GenerationConfig:
    """Configuration for answer generation."""

    max_output_tokens: int = 500

    def __post_init__(self) -> None:
        if self.max_output_tokens <= 0:
            raise ValueError("max_output_tokens must be a positive integer")


class CompletionService(Protocol):
    """Protocol describing a chat completion backend."""

    def complete(self, messages: Sequence[Mapping[str, str]], *, max_output_tokens: int) -> CompletionResult:
        """Return the completion choices for the supplied messages."""


@dataclass(frozen=True)
class AzureOpenAIConfig:
    endpoint: str | None = None
    api_key: str | None = None
    deployment: str | None = None
    api_version: str = "2024-04-01-preview"


class AzureOpenAICompletionService:
    """Completion service calling an Azure OpenAI chat deployment.

    The SDK client is created on first use so that missing settings surface
    as a :class:`CompletionConfigurationError` for the request that needs
    them, before any network traffic.
    """

    def __init__(self, config: AzureOpenAIConfig | None = None, client: Any | None = None) -> None:
        self._config = config or AzureOpenAIConfig()
        self._client = client
        self._lock = threading.Lock()
        self._logger = get_logger("completion")

    def complete(self, messages: Sequence[Mapping[str, str]], *, max_output_tokens: int) -> CompletionResult:
        client = self._ensure_client()
        response = client.chat.completions.create(
            model=self._config.deployment,
            messages=[dict(message) for message in messages],
            max_completion_tokens=max_output_tokens,
        )
        return _to_result(response)

    def _ensure_client(self) -> Any:
        if self._client is not None:
            return self._client
        cfg = self._config
        if not cfg.endpoint or not cfg.api_key or not cfg.deployment:
            raise CompletionConfigurationError(
                "Missing AZURE_OPENAI_ENDPOINT, AZURE_OPENAI_KEY, or AZURE_OPENAI_DEPLOYMENT_NAME",
                has_endpoint=bool(cfg.endpoint),
                has_api_key=bool(cfg.api_key),
                has_deployment=bool(cfg.deployment),
            )
        with self._lock:
            if self._client is None:
                self._client = AzureOpenAI(
                    azure_endpoint=cfg.endpoint,
                    api_key=cfg.api_key,
                    api_version=cfg.api_version,
                    azure_deployment=cfg.deployment,
                    max_retries=0,
                )
                self._logger.info("completion.client_created", deployment=cfg.deployment, api_version=cfg.api_version)
        return self._client


def _to_result(response: Any) -> CompletionResult:
    choices: list[CompletionChoice] = []
    for choice in getattr(response, "choices", None) or []:
        message = getattr(choice, "message", None)
        choices.append(
            CompletionChoice(
                message=CompletionMessage(content=getattr(message, "content", None)) if message is not None else None,
                finish_reason=getattr(choice, "finish_reason", None),
            ),
        )
    return CompletionResult(choices=tuple(choices))


class AnswerSynthesizer:
    """Turns a grounding context and question into an answer string."""

    def __init__(self, completion: CompletionService, config: GenerationConfig | None = None) -> None:
        self._completion = completion
        self._config = config or GenerationConfig()

    def build_messages(self, question: str, context: str) -> list[dict[str, str]]:
        return [
            {"role": "system", "content": SYSTEM_PROMPT},
            {"role": "user", "content": USER_PROMPT_TEMPLATE.format(context=context, question=question)},
        ]

    def synthesize(self, question: str, context: str) -> str:
        """Return the first completion's content, or ``""`` if the model gave none."""

        result = self._completion.complete(
            self.build_messages(question, context),
            max_output_tokens=self._config.max_output_tokens,
        )
        return result.first_content
