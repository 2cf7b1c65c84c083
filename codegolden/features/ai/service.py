"""Model proxy: relays prompts to third-party generation APIs.

Pure pass-through. Access checks happen before the proxy is called; provider
failures are logged and surfaced as a generic service error, never retried.
"""

import logging
from dataclasses import dataclass
from typing import Dict, List, Optional

from codegolden.core.config import Settings
from codegolden.core.errors import ServiceError, ServiceUnavailableError, ValidationError
from codegolden.features.ai.providers import (
    ChatMessage,
    ChatProvider,
    GeminiChatProvider,
    ModelProviderError,
    OpenAIChatProvider,
)

logger = logging.getLogger("codegolden.ai")

EMPTY_REPLY = "No response."
ULTRA_EMPTY_REPLY = "⚠️ No reply generated."


@dataclass(frozen=True)
class ModelRoute:
    name: str
    provider: str  # "openai" | "deepseek" | "gemini"
    model: str
    temperature: Optional[float] = None
    history_limit: Optional[int] = None
    empty_reply: str = EMPTY_REPLY


def default_routes(settings: Settings) -> Dict[str, ModelRoute]:
    routes = [
        ModelRoute("playground", "openai", settings.PLAYGROUND_MODEL, temperature=0.7),
        ModelRoute("advanced", "openai", settings.ADVANCED_MODEL, temperature=0.6),
        ModelRoute("deepseek", "deepseek", settings.DEEPSEEK_MODEL, temperature=0.7),
        ModelRoute(
            "ultra",
            "gemini",
            settings.ULTRA_MODEL,
            history_limit=settings.ULTRA_HISTORY_LIMIT,
            empty_reply=ULTRA_EMPTY_REPLY,
        ),
    ]
    return {route.name: route for route in routes}


def build_providers(settings: Settings) -> Dict[str, ChatProvider]:
    """Instantiate a provider for every vendor that has an API key."""
    providers: Dict[str, ChatProvider] = {}
    if settings.OPENAI_API_KEY:
        providers["openai"] = OpenAIChatProvider(settings.OPENAI_API_KEY, timeout=settings.MODEL_TIMEOUT_SECONDS)
    if settings.DEEPSEEK_API_KEY:
        providers["deepseek"] = OpenAIChatProvider(
            settings.DEEPSEEK_API_KEY,
            base_url=settings.DEEPSEEK_BASE_URL,
            timeout=settings.MODEL_TIMEOUT_SECONDS,
        )
    if settings.GEMINI_API_KEY:
        providers["gemini"] = GeminiChatProvider(settings.GEMINI_API_KEY)
    return providers


class ModelProxy:
    def __init__(self, providers: Dict[str, ChatProvider], routes: Dict[str, ModelRoute]):
        self.providers = providers
        self.routes = routes

    @classmethod
    def from_settings(cls, settings: Settings) -> "ModelProxy":
        return cls(build_providers(settings), default_routes(settings))

    def route(self, name: str) -> ModelRoute:
        try:
            return self.routes[name]
        except KeyError:
            raise ValidationError(f"Unknown model route: {name}")

    async def generate(self, route_name: str, messages: List[ChatMessage]) -> str:
        route = self.route(route_name)
        provider = self.providers.get(route.provider)
        if provider is None:
            logger.error(f"[ai] {route.provider} provider not configured for route {route.name}")
            raise ServiceUnavailableError(f"{route.name} assistant is not available")

        if route.history_limit:
            messages = messages[-route.history_limit:]

        try:
            text = await provider.generate(route.model, messages, route.temperature)
        except ModelProviderError as exc:
            logger.error(f"[ai] {route.name} error: {exc}")
            raise ServiceError("Error generating response.", details={"route": route.name})
        except Exception:
            logger.exception(f"[ai] {route.name} unexpected provider failure")
            raise ServiceError("Error generating response.", details={"route": route.name})

        return text or route.empty_reply

    async def generate_from_prompt(self, route_name: str, prompt: str) -> str:
        return await self.generate(route_name, [ChatMessage(role="user", content=prompt)])
