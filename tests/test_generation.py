"""Tests for answer synthesis and the Azure OpenAI completion adapter."""

from __future__ import annotations

from types import SimpleNamespace
from typing import Mapping, Sequence

import pytest

from studyrag.errors import CompletionConfigurationError
from studyrag.models import CompletionChoice, CompletionMessage, CompletionResult
from studyrag.services.generation import (
    SYSTEM_PROMPT,
    AnswerSynthesizer,
    AzureOpenAICompletionService,
    AzureOpenAIConfig,
    GenerationConfig,
)


class RecordingCompletions:
    def __init__(self, response: object) -> None:
        self.response = response
        self.kwargs: dict = {}

    def create(self, **kwargs):
        self.kwargs = kwargs
        return self.response


def _fake_client(response: object) -> SimpleNamespace:
    return SimpleNamespace(chat=SimpleNamespace(completions=RecordingCompletions(response)))


class StubCompletion:
    def __init__(self, result: CompletionResult) -> None:
        self.result = result
        self.max_output_tokens: int | None = None
        self.messages: list[Mapping[str, str]] = []

    def complete(self, messages: Sequence[Mapping[str, str]], *, max_output_tokens: int) -> CompletionResult:
        self.messages = list(messages)
        self.max_output_tokens = max_output_tokens
        return self.result


class FailingCompletion:
    def complete(self, messages: Sequence[Mapping[str, str]], *, max_output_tokens: int) -> CompletionResult:
        raise TimeoutError("upstream timed out")


def test_missing_configuration_raises_before_client_creation():
    service = AzureOpenAICompletionService(AzureOpenAIConfig(endpoint="https://example.openai.azure.com", deployment="gpt"))
    with pytest.raises(CompletionConfigurationError) as excinfo:
        service.complete([{"role": "user", "content": "hi"}], max_output_tokens=10)
    assert excinfo.value.has_endpoint is True
    assert excinfo.value.has_api_key is False
    assert excinfo.value.has_deployment is True


def test_completion_passes_deployment_and_token_budget():
    response = SimpleNamespace(
        choices=[SimpleNamespace(message=SimpleNamespace(content="Paris"), finish_reason="stop")],
    )
    client = _fake_client(response)
    service = AzureOpenAICompletionService(AzureOpenAIConfig(deployment="gpt-4o"), client=client)
    result = service.complete([{"role": "user", "content": "Capital of France?"}], max_output_tokens=42)
    assert result.first_content == "Paris"
    assert result.first_finish_reason == "stop"
    kwargs = client.chat.completions.kwargs
    assert kwargs["model"] == "gpt-4o"
    assert kwargs["max_completion_tokens"] == 42
    assert kwargs["messages"] == [{"role": "user", "content": "Capital of France?"}]


@pytest.mark.parametrize(
    "response",
    [
        SimpleNamespace(choices=[]),
        SimpleNamespace(choices=None),
        SimpleNamespace(choices=[SimpleNamespace(message=None, finish_reason="content_filter")]),
        SimpleNamespace(choices=[SimpleNamespace(message=SimpleNamespace(content=None), finish_reason="length")]),
    ],
)
def test_degraded_responses_extract_empty_string(response):
    service = AzureOpenAICompletionService(AzureOpenAIConfig(deployment="gpt"), client=_fake_client(response))
    result = service.complete([{"role": "user", "content": "q"}], max_output_tokens=5)
    assert result.first_content == ""


def test_synthesizer_builds_grounded_prompt():
    completion = StubCompletion(
        CompletionResult(choices=(CompletionChoice(message=CompletionMessage(content="It is 42.")),))
    )
    synthesizer = AnswerSynthesizer(completion, GenerationConfig(max_output_tokens=3000))
    answer = synthesizer.synthesize("What is the answer?", "[Source 1: guide.txt]\nThe answer is 42.")
    assert answer == "It is 42."
    assert completion.max_output_tokens == 3000
    system, user = completion.messages
    assert system == {"role": "system", "content": SYSTEM_PROMPT}
    assert user["role"] == "user"
    assert "[Source 1: guide.txt]\nThe answer is 42." in user["content"]
    assert "Student's Question: What is the answer?" in user["content"]
    assert "cite sources by filename" in user["content"]


def test_synthesizer_returns_empty_string_when_no_choices():
    synthesizer = AnswerSynthesizer(StubCompletion(CompletionResult()))
    assert synthesizer.synthesize("q", "ctx") == ""


def test_synthesizer_propagates_transport_errors():
    with pytest.raises(TimeoutError):
        AnswerSynthesizer(FailingCompletion()).synthesize("q", "ctx")


def test_generation_config_requires_positive_budget():
    with pytest.raises(ValueError):
        GenerationConfig(max_output_tokens=0)
