from __future__ import annotations

import enum
import logging
import threading
from dataclasses import dataclass
from typing import Dict, List, Optional, Protocol

import google.generativeai as genai
import httpx
import openai
from openai import OpenAI

from linkpost.config import get_settings
from linkpost.core.exceptions import LLMProviderError

logger = logging.getLogger(__name__)

ANTHROPIC_MESSAGES_URL = "https://api.anthropic.com/v1/messages"
ANTHROPIC_VERSION = "2023-06-01"


class LLMProvider(str, enum.Enum):
    GEMINI = "gemini"
    CLAUDE = "claude"
    OPENAI = "openai"


PROVIDER_MODELS: Dict[LLMProvider, List[str]] = {
    LLMProvider.GEMINI: ["gemini-2.0-flash", "gemini-1.5-pro", "gemini-1.5-flash"],
    LLMProvider.CLAUDE: ["claude-3-5-sonnet-20241022", "claude-3-opus-20240229", "claude-3-haiku-20240307"],
    LLMProvider.OPENAI: ["gpt-4o", "gpt-4o-mini", "gpt-3.5-turbo"],
}

DEFAULT_MODELS: Dict[LLMProvider, str] = {
    LLMProvider.GEMINI: "gemini-2.0-flash",
    LLMProvider.CLAUDE: "claude-3-5-sonnet-20241022",
    LLMProvider.OPENAI: "gpt-4o-mini",
}


@dataclass
class GenerationOptions:
    api_key: str
    model: str
    max_tokens: int = 1024
    temperature: float = 0.7


class TextGenerator(Protocol):
    def generate(self, prompt: str, system_prompt: str, opts: GenerationOptions) -> str:
        ...


class OpenAIGenerator:
    def generate(self, prompt: str, system_prompt: str, opts: GenerationOptions) -> str:
        settings = get_settings()
        client_kwargs = {"api_key": opts.api_key, "timeout": settings.llm_timeout_seconds}
        if settings.openai_base_url:
            client_kwargs["base_url"] = settings.openai_base_url
        client = OpenAI(**client_kwargs)
        messages = []
        if system_prompt:
            messages.append({"role": "system", "content": system_prompt})
        messages.append({"role": "user", "content": prompt})
        try:
            response = client.chat.completions.create(
                model=opts.model,
                messages=messages,
                temperature=opts.temperature,
                max_tokens=opts.max_tokens,
            )
        except openai.APIStatusError as e:
            raise LLMProviderError(_openai_message(e), e.status_code) from e
        except openai.APIError as e:
            raise LLMProviderError(str(e) or "OpenAI API request failed") from e
        return (response.choices[0].message.content or "").strip()


def _openai_message(e: "openai.APIStatusError") -> str:
    body = e.body if isinstance(e.body, dict) else {}
    err = body.get("error") if isinstance(body.get("error"), dict) else body
    return (err or {}).get("message") or "OpenAI API request failed"


class GeminiGenerator:
    # genai.configure is process-global; serialize configure + call
    _lock = threading.Lock()

    def generate(self, prompt: str, system_prompt: str, opts: GenerationOptions) -> str:
        with self._lock:
            genai.configure(api_key=opts.api_key)
            model = genai.GenerativeModel(
                model_name=opts.model,
                system_instruction=system_prompt or None,
            )
            try:
                response = model.generate_content(
                    prompt,
                    generation_config=genai.GenerationConfig(
                        max_output_tokens=opts.max_tokens,
                        temperature=opts.temperature,
                    ),
                )
                return (response.text or "").strip()
            except ValueError as e:
                # response.text raises when the candidate was blocked
                raise LLMProviderError(f"Gemini returned no text: {e}", 502) from e
            except Exception as e:
                code = getattr(e, "code", None)
                raise LLMProviderError(
                    getattr(e, "message", None) or str(e) or "Gemini API request failed",
                    code if isinstance(code, int) else None,
                ) from e


class ClaudeGenerator:
    def generate(self, prompt: str, system_prompt: str, opts: GenerationOptions) -> str:
        settings = get_settings()
        resp = httpx.post(
            ANTHROPIC_MESSAGES_URL,
            headers={
                "x-api-key": opts.api_key,
                "anthropic-version": ANTHROPIC_VERSION,
                "content-type": "application/json",
            },
            json={
                "model": opts.model,
                "max_tokens": opts.max_tokens,
                "temperature": opts.temperature,
                "system": system_prompt or "",
                "messages": [{"role": "user", "content": prompt}],
            },
            timeout=settings.llm_timeout_seconds,
        )
        if resp.status_code >= 400:
            try:
                message = (resp.json().get("error") or {}).get("message")
            except ValueError:
                message = None
            raise LLMProviderError(message or "Claude API request failed", resp.status_code)
        try:
            blocks = resp.json().get("content") or []
        except ValueError as e:
            raise LLMProviderError("Claude returned a non-JSON response", 502) from e
        return "".join(b.get("text", "") for b in blocks if b.get("type", "text") == "text").strip()


GENERATORS: Dict[LLMProvider, TextGenerator] = {
    LLMProvider.GEMINI: GeminiGenerator(),
    LLMProvider.CLAUDE: ClaudeGenerator(),
    LLMProvider.OPENAI: OpenAIGenerator(),
}


def server_api_key(provider: LLMProvider) -> str:
    settings = get_settings()
    return {
        LLMProvider.GEMINI: settings.gemini_api_key,
        LLMProvider.CLAUDE: settings.anthropic_api_key,
        LLMProvider.OPENAI: settings.openai_api_key,
    }[provider]


def generate_text(
    prompt: str,
    system_prompt: Optional[str] = None,
    provider: Optional[LLMProvider] = None,
    api_key: Optional[str] = None,
    model: Optional[str] = None,
    max_tokens: Optional[int] = None,
    temperature: Optional[float] = None,
) -> str:
    """
    Send prompt + system prompt to one provider and return plain text.
    The caller's key wins over the server default. Raises ValueError for missing
    inputs and LLMProviderError for provider failures; never retries.
    """
    settings = get_settings()
    if not prompt or not prompt.strip():
        raise ValueError("Prompt is required")
    provider = LLMProvider(provider or settings.default_llm_provider)
    key = api_key or server_api_key(provider)
    if not key:
        raise ValueError("API key is required")
    opts = GenerationOptions(
        api_key=key,
        model=model or DEFAULT_MODELS[provider],
        max_tokens=max_tokens or settings.llm_max_tokens,
        temperature=settings.llm_temperature if temperature is None else temperature,
    )
    try:
        text = GENERATORS[provider].generate(prompt, system_prompt or "", opts)
    except LLMProviderError as e:
        logger.error("%s API error: %s (status=%s)", provider.value, e.message, e.status_code)
        raise
    except httpx.HTTPError as e:
        logger.error("%s request failed: %s", provider.value, e, exc_info=True)
        raise LLMProviderError(f"Failed to call {provider.value} API: {e}") from e
    logger.info("Generated %d chars via %s/%s", len(text), provider.value, opts.model)
    return text
