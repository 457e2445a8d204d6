"""
Agent LLM: one text-completion capability, `complete(prompt) -> text`.

The provider (OpenAI, Gemini, or the Hugging Face router) is chosen once at process
start from configuration. Planner, executor, responder and the file_analyst tool all
share the same client. Failures raise ServiceUnavailableError; no schema is enforced
here, callers parse the returned text themselves.
"""

import logging
from functools import lru_cache
from typing import Any, Protocol

import httpx
from openai import OpenAI, OpenAIError

from navigator.core.config import (
    GEMINI_API_BASE,
    GEMINI_LLM_MODEL,
    GOOGLE_API_KEY,
    HF_API_KEY,
    HF_CHAT_URL,
    HF_LLM_MODEL,
    LLM_API_TIMEOUT,
    LLM_MAX_TOKENS,
    LLM_PROVIDER,
    LLM_TEMPERATURE,
    OPENAI_API_KEY,
    OPENAI_LLM_MODEL,
)
from navigator.core.errors import ServiceUnavailableError

logger = logging.getLogger(__name__)


def _json_body(response: httpx.Response, provider: str) -> dict[str, Any]:
    try:
        data = response.json()
    except ValueError as e:
        raise ServiceUnavailableError(f"{provider} returned a non-JSON body") from e
    if not isinstance(data, dict):
        raise ServiceUnavailableError(f"{provider} returned an unexpected body")
    return data


class LLMClient(Protocol):
    def complete(self, prompt: str) -> str: ...


class OpenAIClient:
    """OpenAI chat completions (single user message)."""

    provider = "openai"

    def __init__(self, api_key: str = OPENAI_API_KEY, model: str = OPENAI_LLM_MODEL) -> None:
        self.api_key = api_key
        self.model = model

    def complete(self, prompt: str) -> str:
        if not self.api_key:
            raise ServiceUnavailableError("OPENAI_API_KEY is not set")
        logger.info("[llm:openai] IN  prompt_len=%d model=%s", len(prompt), self.model)
        client = OpenAI(api_key=self.api_key, timeout=LLM_API_TIMEOUT)
        try:
            response = client.chat.completions.create(
                model=self.model,
                messages=[{"role": "user", "content": prompt}],
                max_tokens=LLM_MAX_TOKENS,
                temperature=LLM_TEMPERATURE,
            )
        except OpenAIError as e:
            raise ServiceUnavailableError(f"OpenAI request failed: {e}") from e
        msg = response.choices[0].message if response.choices else None
        out = ((msg.content if msg else None) or "").strip()
        logger.info("[llm:openai] OUT response_len=%d", len(out))
        logger.debug("[llm:openai] OUT response_full=%r", out)
        return out


class GeminiClient:
    """Google Gemini via the generateContent REST endpoint."""

    provider = "gemini"

    def __init__(self, api_key: str = GOOGLE_API_KEY, model: str = GEMINI_LLM_MODEL) -> None:
        self.api_key = api_key
        self.model = model

    def complete(self, prompt: str) -> str:
        if not self.api_key:
            raise ServiceUnavailableError("GOOGLE_API_KEY is not set")
        logger.info("[llm:gemini] IN  prompt_len=%d model=%s", len(prompt), self.model)
        url = f"{GEMINI_API_BASE}/models/{self.model}:generateContent"
        payload = {
            "contents": [{"role": "user", "parts": [{"text": prompt}]}],
            "generationConfig": {"temperature": LLM_TEMPERATURE, "maxOutputTokens": LLM_MAX_TOKENS},
        }
        try:
            with httpx.Client(timeout=LLM_API_TIMEOUT) as client:
                response = client.post(url, params={"key": self.api_key}, json=payload)
        except httpx.HTTPError as e:
            raise ServiceUnavailableError(f"Gemini request failed: {e}") from e
        if response.status_code != 200:
            logger.warning("[llm:gemini] error %s: %s", response.status_code, response.text[:200])
            raise ServiceUnavailableError(f"Gemini returned HTTP {response.status_code}")
        candidates = _json_body(response, "Gemini").get("candidates") or []
        if not candidates:
            return ""
        parts = (candidates[0].get("content") or {}).get("parts") or []
        out = "".join(p.get("text") or "" for p in parts if isinstance(p, dict)).strip()
        logger.info("[llm:gemini] OUT response_len=%d", len(out))
        logger.debug("[llm:gemini] OUT response_full=%r", out)
        return out


class HuggingFaceClient:
    """Hugging Face router chat completions."""

    provider = "huggingface"

    def __init__(self, api_key: str = HF_API_KEY, model: str = HF_LLM_MODEL) -> None:
        self.api_key = api_key
        self.model = model

    def complete(self, prompt: str) -> str:
        if not self.api_key:
            raise ServiceUnavailableError("HF_API_KEY is not set")
        logger.info("[llm:hf] IN  prompt_len=%d model=%s", len(prompt), self.model)
        headers = {"Authorization": f"Bearer {self.api_key}", "Content-Type": "application/json"}
        payload = {
            "model": self.model,
            "messages": [{"role": "user", "content": prompt}],
            "max_tokens": LLM_MAX_TOKENS,
            "temperature": LLM_TEMPERATURE,
        }
        try:
            with httpx.Client(timeout=LLM_API_TIMEOUT) as client:
                response = client.post(HF_CHAT_URL, json=payload, headers=headers)
        except httpx.HTTPError as e:
            raise ServiceUnavailableError(f"Hugging Face request failed: {e}") from e
        if response.status_code != 200:
            logger.warning("[llm:hf] HF LLM error %s: %s", response.status_code, response.text[:200])
            raise ServiceUnavailableError(f"Hugging Face returned HTTP {response.status_code}")
        choices = _json_body(response, "Hugging Face").get("choices") or []
        if choices and isinstance(choices[0], dict):
            msg = choices[0].get("message") or {}
            out = (msg.get("content") or "").strip()
            logger.info("[llm:hf] OUT response_len=%d", len(out))
            logger.debug("[llm:hf] OUT response_full=%r", out)
            return out
        return ""


_PROVIDERS = {
    "openai": OpenAIClient,
    "gemini": GeminiClient,
    "huggingface": HuggingFaceClient,
}


def get_llm_client(provider: str | None = None) -> LLMClient:
    """
    Build the LLM client for `provider` (defaults to LLM_PROVIDER).
    With no explicit provider: OpenAI when OPENAI_API_KEY is set, else Gemini when
    GOOGLE_API_KEY is set, else Hugging Face.
    """
    name = (provider if provider is not None else LLM_PROVIDER).strip().lower()
    if not name:
        if OPENAI_API_KEY:
            name = "openai"
        elif GOOGLE_API_KEY:
            name = "gemini"
        else:
            name = "huggingface"
    if name not in _PROVIDERS:
        raise ValueError(f"Unknown LLM provider {name!r}; expected one of {sorted(_PROVIDERS)}")
    logger.info("[llm] provider=%s", name)
    return _PROVIDERS[name]()


@lru_cache(maxsize=1)
def get_default_llm() -> LLMClient:
    """Process-wide client, built on first use."""
    return get_llm_client()


def list_gemini_models(api_key: str = GOOGLE_API_KEY) -> list[dict[str, Any]]:
    """Return Gemini models that support generateContent as [{name, display_name}]."""
    if not api_key:
        raise ServiceUnavailableError("GOOGLE_API_KEY is not set")
    try:
        with httpx.Client(timeout=LLM_API_TIMEOUT) as client:
            response = client.get(f"{GEMINI_API_BASE}/models", params={"key": api_key})
    except httpx.HTTPError as e:
        raise ServiceUnavailableError(f"Gemini request failed: {e}") from e
    if response.status_code != 200:
        raise ServiceUnavailableError(f"API request failed with status {response.status_code}")
    models = []
    for m in _json_body(response, "Gemini").get("models") or []:
        if not isinstance(m, dict):
            continue
        if "generateContent" in (m.get("supportedGenerationMethods") or []):
            models.append({"name": m.get("name", ""), "display_name": m.get("displayName", "")})
    return models
