"""Tests for the Ollama embedding and completion clients (HTTP patched out)."""

import time

import numpy as np
import pytest
import requests

from core.exceptions import UpstreamFailure, UpstreamTimeout
from infrastructure.embedding_services import OllamaEmbedding, l2_normalize
from services.llm_service import OllamaLLMService


class FakeResponse:
    def __init__(self, payload=None, status_code: int = 200):
        self._payload = payload
        self.status_code = status_code

    def json(self):
        return self._payload

    def raise_for_status(self):
        if self.status_code >= 400:
            raise requests.exceptions.HTTPError(f"{self.status_code} error", response=self)


@pytest.fixture
def post_calls(monkeypatch):
    """Patch requests.post; set calls.response / calls.error to script it."""

    class Calls(list):
        response = FakeResponse({})
        error = None
        delay = 0.0

    calls = Calls()

    def _post(url, json=None, timeout=None):
        calls.append({"url": url, "json": json, "timeout": timeout})
        if calls.delay:
            time.sleep(calls.delay)
        if calls.error is not None:
            raise calls.error
        return calls.response

    monkeypatch.setattr(requests, "post", _post)
    return calls


class TestL2Normalize:
    def test_unit_length(self) -> None:
        out = l2_normalize(np.array([[3.0, 4.0], [0.0, 2.0]], dtype="float32"))

        assert out[0].tolist() == pytest.approx([0.6, 0.8])
        assert out[1].tolist() == pytest.approx([0.0, 1.0])

    def test_zero_vector_stays_finite(self) -> None:
        out = l2_normalize(np.zeros((1, 3), dtype="float32"))
        assert np.isfinite(out).all()


class TestOllamaEmbedding:
    @pytest.mark.asyncio
    async def test_request_and_normalized_result(self, post_calls) -> None:
        post_calls.response = FakeResponse({"embeddings": [[3.0, 4.0], [1.0, 0.0]]})
        service = OllamaEmbedding(base_url="http://ollama:11434/", model="nomic-embed-text", timeout=5)

        vectors = await service.generate_embeddings(["alpha", "beta"])

        assert vectors[0] == pytest.approx([0.6, 0.8])
        assert vectors[1] == pytest.approx([1.0, 0.0])
        call = post_calls[0]
        assert call["url"] == "http://ollama:11434/api/embed"
        assert call["json"] == {"model": "nomic-embed-text", "input": ["alpha", "beta"]}
        assert call["timeout"] == 5

    @pytest.mark.asyncio
    async def test_query_embedding(self, post_calls) -> None:
        post_calls.response = FakeResponse({"embeddings": [[0.0, 5.0]]})

        vector = await OllamaEmbedding(timeout=5).generate_query_embedding("q")

        assert vector == pytest.approx([0.0, 1.0])

    @pytest.mark.asyncio
    async def test_empty_input_skips_request(self, post_calls) -> None:
        assert await OllamaEmbedding(timeout=5).generate_embeddings([]) == []
        assert post_calls == []

    @pytest.mark.asyncio
    async def test_count_mismatch(self, post_calls) -> None:
        post_calls.response = FakeResponse({"embeddings": [[1.0, 0.0]]})

        with pytest.raises(UpstreamFailure):
            await OllamaEmbedding(timeout=5).generate_embeddings(["a", "b"])

    @pytest.mark.asyncio
    async def test_connection_refused(self, post_calls) -> None:
        post_calls.error = requests.exceptions.ConnectionError("refused")

        with pytest.raises(UpstreamFailure) as exc_info:
            await OllamaEmbedding(timeout=5).generate_embeddings(["a"])
        assert not isinstance(exc_info.value, UpstreamTimeout)


class TestOllamaLLMService:
    @pytest.mark.asyncio
    async def test_request_shape_and_reply(self, post_calls) -> None:
        post_calls.response = FakeResponse({"response": "  Blue.  "})
        service = OllamaLLMService(base_url="http://ollama:11434", model="llama3.1", temperature=0.2, timeout=7)

        answer = await service.complete("What color is the sky?")

        assert answer == "Blue."
        call = post_calls[0]
        assert call["url"] == "http://ollama:11434/api/generate"
        assert call["json"] == {
            "model": "llama3.1",
            "prompt": "What color is the sky?",
            "stream": False,
            "options": {"temperature": 0.2},
        }
        assert call["timeout"] == 7

    @pytest.mark.asyncio
    async def test_empty_prompt(self, post_calls) -> None:
        with pytest.raises(ValueError):
            await OllamaLLMService(timeout=5).complete("   ")
        assert post_calls == []

    @pytest.mark.asyncio
    @pytest.mark.parametrize("payload", [{"response": ""}, {"response": "   "}, {}, ["not", "a", "dict"]])
    async def test_empty_or_malformed_reply(self, post_calls, payload) -> None:
        post_calls.response = FakeResponse(payload)

        with pytest.raises(UpstreamFailure):
            await OllamaLLMService(timeout=5).complete("hi")

    @pytest.mark.asyncio
    async def test_http_error_status(self, post_calls) -> None:
        post_calls.response = FakeResponse({"error": "model not found"}, status_code=404)

        with pytest.raises(UpstreamFailure) as exc_info:
            await OllamaLLMService(timeout=5).complete("hi")
        assert "404" in exc_info.value.message

    @pytest.mark.asyncio
    async def test_requests_timeout(self, post_calls) -> None:
        post_calls.error = requests.exceptions.ReadTimeout("slow")

        with pytest.raises(UpstreamTimeout):
            await OllamaLLMService(timeout=5).complete("hi")

    @pytest.mark.asyncio
    async def test_deadline_expires(self, post_calls) -> None:
        post_calls.delay = 0.5
        post_calls.response = FakeResponse({"response": "too late"})

        with pytest.raises(UpstreamTimeout):
            await OllamaLLMService(timeout=0.05).complete("hi")
