"""Shared fixtures for assistant tests: fake provider clients."""

import json
from types import SimpleNamespace

import pytest

from taxmate_agents.assistant import TaxAssistant
from taxmate_agents.config import AssistantConfig, LLMConfig, LLMProvider


class FakeOpenAIClient:
    """Stands in for ``openai.OpenAI``; returns queued texts in order."""

    def __init__(self, *responses, error=None):
        self.responses = list(responses)
        self.error = error
        self.calls = []
        self.chat = SimpleNamespace(completions=SimpleNamespace(create=self._create))

    def _create(self, **kwargs):
        self.calls.append(kwargs)
        if self.error is not None:
            raise self.error
        text = self.responses.pop(0)
        return SimpleNamespace(
            choices=[SimpleNamespace(message=SimpleNamespace(content=text))]
        )


class FakeAnthropicClient:
    """Stands in for ``anthropic.Anthropic``."""

    def __init__(self, *responses):
        self.responses = list(responses)
        self.calls = []
        self.messages = SimpleNamespace(create=self._create)

    def _create(self, **kwargs):
        self.calls.append(kwargs)
        return SimpleNamespace(content=[SimpleNamespace(text=self.responses.pop(0))])


def reply_json(new_state=None, reply="OK") -> str:
    """Serialize an assistant reply the way the model is asked to."""
    payload = {"reply": reply}
    if new_state is not None:
        payload["newState"] = new_state
    return json.dumps(payload)


@pytest.fixture
def make_assistant():
    """Build a TaxAssistant around a fake client."""

    def _make(client, provider=LLMProvider.OPENAI, **assistant_settings):
        return TaxAssistant(
            llm_config=LLMConfig(provider=provider, model="test-model", api_key="test-key"),
            assistant_config=AssistantConfig(**assistant_settings),
            client=client,
        )

    return _make
