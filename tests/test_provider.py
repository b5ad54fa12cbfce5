import pytest
import requests

from querychart.core.context import RequestContext
from querychart.core.errors import DeadlineExceeded, InferenceError
from querychart.services import provider
from querychart.services.provider import (
    DRAFT_PARAMS,
    GenerationParameters,
    HuggingFaceClient,
    OllamaClient,
)


class FakeResponse:
    def __init__(self, body, status=200):
        self.body = body
        self.status_code = status

    def raise_for_status(self):
        if self.status_code >= 400:
            raise requests.HTTPError(f"{self.status_code} Server Error")

    def json(self):
        if isinstance(self.body, Exception):
            raise self.body
        return self.body


@pytest.fixture
def post(monkeypatch):
    calls = []
    replies = []

    def _post(url, timeout=None, **kwargs):
        calls.append({"url": url, "timeout": timeout, **kwargs})
        reply = replies.pop(0)
        if isinstance(reply, Exception):
            raise reply
        return reply

    monkeypatch.setattr(provider.requests, "post", _post)
    _post.calls = calls
    _post.replies = replies
    return _post


def test_huggingface_payload(post):
    post.replies.append(FakeResponse([{"generated_text": "SELECT 1;"}, {"generated_text": "SELECT 2;"}]))
    client = HuggingFaceClient(api_key="k", model="org/model", base_url="https://hf.test/models/")
    assert client.generate("prompt", DRAFT_PARAMS) == ["SELECT 1;", "SELECT 2;"]

    call = post.calls[0]
    assert call["url"] == "https://hf.test/models/org/model"
    assert call["headers"] == {"Authorization": "Bearer k"}
    assert call["json"] == {
        "inputs": "prompt",
        "parameters": {
            "max_new_tokens": 500,
            "temperature": 0.5,
            "top_k": 50,
            "top_p": 0.9,
            "return_full_text": False,
        },
    }


def test_huggingface_error_body(post):
    post.replies.append(FakeResponse({"error": "Model is loading"}))
    with pytest.raises(InferenceError, match="Model is loading"):
        HuggingFaceClient(api_key="k").generate("p", DRAFT_PARAMS)


def test_huggingface_http_error(post):
    post.replies.append(FakeResponse({}, status=503))
    with pytest.raises(InferenceError):
        HuggingFaceClient(api_key="k").generate("p", DRAFT_PARAMS)


def test_ollama_payload(post):
    post.replies.append(FakeResponse({"response": "SELECT 1;"}))
    client = OllamaClient(host="http://ollama.test/", model="gemma:2b")
    assert client.generate("prompt", DRAFT_PARAMS) == ["SELECT 1;"]

    call = post.calls[0]
    assert call["url"] == "http://ollama.test/api/generate"
    assert call["json"]["stream"] is False
    assert call["json"]["options"] == {"num_predict": 500, "temperature": 0.5, "top_k": 50, "top_p": 0.9}


def test_ollama_full_text_and_empty(post):
    params = GenerationParameters(10, 0.1, 5, 0.9, return_full_text=True)
    post.replies.extend([FakeResponse({"response": " SELECT 1;"}), FakeResponse({"response": ""})])
    client = OllamaClient(host="http://ollama.test", model="m")
    assert client.generate("Q:", params) == ["Q: SELECT 1;"]
    assert client.generate("Q:", params) == []


def test_timeout_bounded_by_context(post):
    post.replies.append(FakeResponse({"response": "SELECT 1;"}))
    ctx = RequestContext(timeout=5)
    OllamaClient(host="http://o", model="m").generate("p", DRAFT_PARAMS, ctx)
    assert 0 < post.calls[0]["timeout"] <= 5


def test_timeout_after_deadline(monkeypatch):
    ctx = RequestContext(timeout=5)

    def _slow_post(url, timeout=None, **kwargs):
        ctx.deadline -= 10
        raise requests.Timeout("read timed out")

    monkeypatch.setattr(provider.requests, "post", _slow_post)
    with pytest.raises(DeadlineExceeded):
        OllamaClient(host="http://o", model="m").generate("p", DRAFT_PARAMS, ctx)


def test_expired_context_skips_request(post):
    ctx = RequestContext(timeout=5)
    ctx.deadline -= 10
    with pytest.raises(DeadlineExceeded):
        OllamaClient(host="http://o", model="m").generate("p", DRAFT_PARAMS, ctx)
    assert post.calls == []


def test_connection_error(post):
    post.replies.append(requests.ConnectionError("refused"))
    with pytest.raises(InferenceError, match="refused"):
        OllamaClient(host="http://o", model="m").generate("p", DRAFT_PARAMS)


def test_get_inference_client(monkeypatch):
    monkeypatch.setattr(provider.settings, "LLM_PROVIDER", "ollama")
    assert isinstance(provider.get_inference_client(), OllamaClient)
    monkeypatch.setattr(provider.settings, "LLM_PROVIDER", "HuggingFace")
    assert isinstance(provider.get_inference_client(), HuggingFaceClient)
    monkeypatch.setattr(provider.settings, "LLM_PROVIDER", "other")
    with pytest.raises(ValueError):
        provider.get_inference_client()


@pytest.mark.parametrize("body", [["SELECT 1;"], "SELECT 1;", {"response": 42}])
def test_ollama_unexpected_body(post, body):
    post.replies.append(FakeResponse(body))
    with pytest.raises(InferenceError):
        OllamaClient(host="http://o", model="m").generate("p", DRAFT_PARAMS)
