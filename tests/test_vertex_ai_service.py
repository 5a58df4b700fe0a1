import asyncio
from types import SimpleNamespace

import pytest
import vertexai
from google.api_core import exceptions as google_exceptions
from tenacity import wait_none

from longtrip.services.vertex_ai_service import VertexAIService
from longtrip.utils.config import settings
from longtrip.utils.errors import ProviderError, TransientProviderError


class FakeModel:
    def __init__(self, response=None, error=None):
        self.response = response
        self.error = error
        self.calls = []

    async def generate_content_async(self, contents, generation_config=None):
        self.calls.append(contents)
        if self.error is not None:
            raise self.error
        return self.response


@pytest.fixture
def service(monkeypatch):
    monkeypatch.setattr(vertexai, "init", lambda **kwargs: None)
    return VertexAIService("test-project", model_names={"fast": "fake-fast", "high-capacity": "fake-pro"})


def call(service, model="fast"):
    return asyncio.run(service.call_structured(model, "plan my trip", None, {"temperature": 0.5, "max_tokens": 1000}))


def test_returns_text_and_token_usage(service):
    model = FakeModel(SimpleNamespace(text='{"days": []}', usage_metadata=SimpleNamespace(total_token_count=321)))
    service._models["fake-fast"] = model

    response = call(service)

    assert response.content == '{"days": []}'
    assert response.tokens_used == 321
    assert model.calls == [["plan my trip"]]

def test_joins_candidate_parts_when_text_missing(service):
    parts = [SimpleNamespace(text='{"days": '), SimpleNamespace(text="[]}")]
    response = SimpleNamespace(
        text=None,
        candidates=[SimpleNamespace(content=SimpleNamespace(parts=parts))],
        usage_metadata=SimpleNamespace(total_token_count=None, prompt_token_count=10, candidates_token_count=5)
    )
    service._models["fake-pro"] = FakeModel(response)

    result = call(service, model="high-capacity")

    assert result.content == '{"days": \n[]}'
    assert result.tokens_used == 15

def test_empty_response_is_provider_error(service):
    service._models["fake-fast"] = FakeModel(SimpleNamespace(text="", candidates=[], usage_metadata=None))
    with pytest.raises(ProviderError, match="empty response"):
        call(service)

def test_bad_request_is_not_retried(service):
    model = FakeModel(error=google_exceptions.InvalidArgument("bad schema"))
    service._models["fake-fast"] = model

    with pytest.raises(ProviderError) as exc_info:
        call(service)

    assert not isinstance(exc_info.value, TransientProviderError)
    assert len(model.calls) == 1

def test_transient_errors_are_retried(service, monkeypatch):
    monkeypatch.setattr(VertexAIService.call_structured.retry, "wait", wait_none())
    model = FakeModel(error=google_exceptions.ServiceUnavailable("try later"))
    service._models["fake-fast"] = model

    with pytest.raises(TransientProviderError):
        call(service)

    assert len(model.calls) == settings.PROVIDER_MAX_RETRIES

def test_unknown_alias_uses_fast_model(service):
    service._models["fake-fast"] = FakeModel(SimpleNamespace(text="{}", usage_metadata=None))
    assert service.get_model("something-else") is service._models["fake-fast"]
    assert service.describe()["models"] == {"fast": "fake-fast", "high-capacity": "fake-pro"}
