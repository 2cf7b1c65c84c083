"""
Chat providers for the model proxy.

OpenAI and DeepSeek share the OpenAI client (DeepSeek is OpenAI-compatible);
Gemini goes through google-generativeai.
"""
from typing import Any, Callable, Iterable, List, Optional, Protocol

import httpx
import google.generativeai as genai
from google.api_core.exceptions import GoogleAPIError
from openai import AsyncOpenAI, OpenAIError
from pydantic import BaseModel


class ChatMessage(BaseModel):
    role: str = "user"
    content: str


class ModelProviderError(RuntimeError):
    """Raised when a provider call fails or returns unusable output."""


class ChatProvider(Protocol):
    async def generate(self, model: str, messages: List[ChatMessage], temperature: Optional[float] = None) -> str:
        ...


class OpenAIChatProvider:
    def __init__(
        self,
        api_key: str,
        *,
        base_url: Optional[str] = None,
        timeout: float = 60.0,
        client: Optional[Any] = None,
    ):
        self._client = client or AsyncOpenAI(
            api_key=api_key,
            base_url=base_url,
            timeout=httpx.Timeout(timeout, connect=10.0),
            max_retries=0,
        )

    async def generate(self, model: str, messages: List[ChatMessage], temperature: Optional[float] = None) -> str:
        kwargs = {}
        if temperature is not None:
            kwargs["temperature"] = temperature
        try:
            completion = await self._client.chat.completions.create(
                model=model,
                messages=[{"role": m.role, "content": m.content} for m in messages],
                **kwargs,
            )
        except OpenAIError as exc:
            raise ModelProviderError(f"{model} call failed: {exc}") from exc
        choices = getattr(completion, "choices", None) or []
        if not choices:
            return ""
        return choices[0].message.content or ""


def to_gemini_history(messages: Iterable[ChatMessage]) -> List[dict]:
    """Gemini only knows "user" and "model" roles."""
    return [
        {"role": "model" if m.role == "assistant" else "user", "parts": [{"text": m.content}]}
        for m in messages
    ]


def _gemini_text(result: Any) -> str:
    try:
        return result.text or ""
    except ValueError:
        # Blocked or empty candidates raise on .text
        return ""


class GeminiChatProvider:
    def __init__(self, api_key: str, *, model_factory: Optional[Callable[[str], Any]] = None):
        if model_factory is None:
            genai.configure(api_key=api_key)
            model_factory = genai.GenerativeModel
        self._model_factory = model_factory

    async def generate(self, model: str, messages: List[ChatMessage], temperature: Optional[float] = None) -> str:
        generation_config = {"temperature": temperature} if temperature is not None else None
        try:
            result = await self._model_factory(model).generate_content_async(
                to_gemini_history(messages),
                generation_config=generation_config,
            )
        except GoogleAPIError as exc:
            raise ModelProviderError(f"{model} call failed: {exc}") from exc
        return _gemini_text(result)
