import logging
from dataclasses import dataclass
from typing import List, Optional, Protocol

import requests

from ..core.config import settings
from ..core.context import RequestContext
from ..core.errors import DeadlineExceeded, InferenceError

log = logging.getLogger(__name__)


@dataclass(frozen=True)
class GenerationParameters:
    max_new_tokens: int
    temperature: float
    top_k: int
    top_p: float
    return_full_text: bool = False


# Fixed per stage; later stages run colder.
DRAFT_PARAMS = GenerationParameters(max_new_tokens=500, temperature=0.5, top_k=50, top_p=0.9)
REFINE_PARAMS = GenerationParameters(max_new_tokens=800, temperature=0.4, top_k=50, top_p=0.95)
FINALIZE_PARAMS = GenerationParameters(max_new_tokens=800, temperature=0.1, top_k=10, top_p=0.9)
CHART_PARAMS = GenerationParameters(max_new_tokens=1000, temperature=0.3, top_k=10, top_p=0.9)


class InferenceClient(Protocol):
    def generate(
        self, prompt: str, params: GenerationParameters, ctx: Optional[RequestContext] = None
    ) -> List[str]: ...


def _post(url: str, ctx: Optional[RequestContext], **kwargs) -> requests.Response:
    timeout = settings.LLM_HTTP_TIMEOUT
    if ctx is not None:
        ctx.check()
        timeout = ctx.timeout(timeout)
    try:
        r = requests.post(url, timeout=timeout, **kwargs)
        r.raise_for_status()
    except requests.Timeout as e:
        if ctx is not None and ctx.expired():
            raise DeadlineExceeded("request deadline exceeded during text generation") from e
        raise InferenceError(f"text generation timed out: {e}") from e
    except requests.RequestException as e:
        raise InferenceError(f"text generation error: {e}") from e
    return r


class HuggingFaceClient:
    """Hugging Face text-generation inference endpoint."""

    def __init__(self, api_key: str = "", model: str = "", base_url: str = ""):
        self.api_key = api_key or settings.API_KEY
        self.model = model or settings.HF_MODEL
        self.base_url = (base_url or settings.HF_INFERENCE_URL).rstrip("/")

    def generate(self, prompt, params, ctx=None):
        r = _post(
            f"{self.base_url}/{self.model}",
            ctx,
            headers={"Authorization": f"Bearer {self.api_key}"},
            json={
                "inputs": prompt,
                "parameters": {
                    "max_new_tokens": params.max_new_tokens,
                    "temperature": params.temperature,
                    "top_k": params.top_k,
                    "top_p": params.top_p,
                    "return_full_text": params.return_full_text,
                },
            },
        )
        try:
            body = r.json()
        except ValueError as e:
            raise InferenceError("text generation returned a non-JSON body") from e
        if isinstance(body, dict):
            if "error" in body:
                raise InferenceError(f"text generation error: {body['error']}")
            body = [body]
        return [item.get("generated_text", "") for item in body if isinstance(item, dict)]


class OllamaClient:
    def __init__(self, host: str = "", model: str = ""):
        self.host = (host or settings.OLLAMA_HOST).rstrip("/")
        self.model = model or settings.OLLAMA_MODEL

    def generate(self, prompt, params, ctx=None):
        r = _post(
            f"{self.host}/api/generate",
            ctx,
            json={
                "model": self.model,
                "prompt": prompt,
                "stream": False,
                "options": {
                    "num_predict": params.max_new_tokens,
                    "temperature": params.temperature,
                    "top_k": params.top_k,
                    "top_p": params.top_p,
                },
            },
        )
        try:
            body = r.json()
        except ValueError as e:
            raise InferenceError("text generation returned a non-JSON body") from e
        if not isinstance(body, dict):
            raise InferenceError("text generation returned an unexpected body")
        text = body.get("response") or ""
        if not isinstance(text, str):
            raise InferenceError("text generation returned a non-text response")
        if not text:
            return []
        return [prompt + text if params.return_full_text else text]


def get_inference_client() -> InferenceClient:
    provider = settings.LLM_PROVIDER.lower()
    if provider == "ollama":
        return OllamaClient()
    if provider == "huggingface":
        return HuggingFaceClient()
    raise ValueError(f"unknown LLM_PROVIDER: {settings.LLM_PROVIDER!r}")
