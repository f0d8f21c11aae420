"""Generative-text client with multiple provider support."""

import json
import logging
import re
from abc import ABC, abstractmethod
from typing import Optional, Any, Literal

import httpx

from welltrack.config import get_settings

logger = logging.getLogger(__name__)


class AIProviderError(Exception):
    """The language model could not be reached or refused the request."""


class AIResponseError(Exception):
    """The language model answered with text that holds no usable JSON."""


class AIProvider(ABC):
    """Abstract base class for AI providers."""

    name = "base"

    @abstractmethod
    async def generate_text(self, prompt: str, json_mode: bool = False) -> str:
        """Send a prompt and return the raw response text."""
        pass


class OllamaProvider(AIProvider):
    """Ollama (local LLM) provider."""

    name = "ollama"

    def __init__(self):
        settings = get_settings()
        self.host = settings.ollama_host
        self.model = settings.ollama_model

    async def generate_text(self, prompt: str, json_mode: bool = False) -> str:
        """Query Ollama API."""
        payload = {"model": self.model, "prompt": prompt, "stream": False}
        if json_mode:
            payload["format"] = "json"

        try:
            async with httpx.AsyncClient(timeout=60.0) as client:
                response = await client.post(f"{self.host}/api/generate", json=payload)
                response.raise_for_status()
                return response.json()["response"]
        except (httpx.HTTPError, KeyError, ValueError) as e:
            raise AIProviderError(f"Ollama request failed: {e}") from e


class GroqProvider(AIProvider):
    """Groq cloud provider (OpenAI-compatible chat completions)."""

    name = "groq"

    def __init__(self):
        settings = get_settings()
        self.api_key = settings.groq_api_key
        self.model = settings.groq_model

    async def generate_text(self, prompt: str, json_mode: bool = False) -> str:
        """Query Groq API."""
        if not self.api_key:
            raise AIProviderError("Groq API key is not configured")

        payload = {
            "model": self.model,
            "messages": [{"role": "user", "content": prompt}],
        }
        if json_mode:
            payload["response_format"] = {"type": "json_object"}

        try:
            async with httpx.AsyncClient(timeout=30.0) as client:
                response = await client.post(
                    "https://api.groq.com/openai/v1/chat/completions",
                    headers={
                        "Authorization": f"Bearer {self.api_key}",
                        "Content-Type": "application/json",
                    },
                    json=payload,
                )
                response.raise_for_status()
                return response.json()["choices"][0]["message"]["content"]
        except (httpx.HTTPError, KeyError, IndexError, ValueError) as e:
            raise AIProviderError(f"Groq request failed: {e}") from e


class GeminiProvider(AIProvider):
    """Google Gemini provider."""

    name = "gemini"

    def __init__(self):
        import google.generativeai as genai
        settings = get_settings()
        self.api_key = settings.gemini_api_key
        self.model = None
        if self.api_key:
            genai.configure(api_key=self.api_key)
            self.model = genai.GenerativeModel(settings.gemini_model)

    async def generate_text(self, prompt: str, json_mode: bool = False) -> str:
        """Query Gemini API."""
        if self.model is None:
            raise AIProviderError("Gemini API key is not configured")

        generation_config = {"response_mime_type": "application/json"} if json_mode else None
        try:
            response = await self.model.generate_content_async(
                prompt,
                generation_config=generation_config,
            )
            text = response.text
        except Exception as e:
            raise AIProviderError(f"Gemini request failed: {e}") from e

        if not text:
            raise AIProviderError("Gemini returned an empty response")
        return text


class DisabledProvider(AIProvider):
    """Used when AI is switched off; every call falls back."""

    name = "disabled"

    async def generate_text(self, prompt: str, json_mode: bool = False) -> str:
        raise AIProviderError("AI provider is disabled")


def get_provider(name: Optional[str] = None) -> AIProvider:
    """Build the provider selected in settings."""
    name = name or get_settings().ai_provider

    if name == "ollama":
        return OllamaProvider()
    elif name == "groq":
        return GroqProvider()
    elif name == "gemini":
        return GeminiProvider()
    return DisabledProvider()


def extract_json(text: str, kind: Literal["object", "array"] = "object") -> Any:
    """
    Pull a JSON object or array out of model output.

    Models often wrap JSON in prose or markdown fences, so when the whole
    text does not parse, the outermost bracketed span is tried instead.
    """
    expected = dict if kind == "object" else list

    try:
        data = json.loads(text)
        if isinstance(data, expected):
            return data
    except (TypeError, ValueError):
        pass

    pattern = r"\{[\s\S]*\}" if kind == "object" else r"\[[\s\S]*\]"
    match = re.search(pattern, text or "")
    if not match:
        raise AIResponseError(f"No JSON {kind} found in AI response")

    try:
        data = json.loads(match.group(0))
    except ValueError as e:
        raise AIResponseError(f"Invalid JSON {kind} in AI response: {e}") from e

    if not isinstance(data, expected):
        raise AIResponseError(f"AI response JSON is not an {kind}")
    return data
