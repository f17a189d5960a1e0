"""
LLM Chat Service

Talks to OpenAI-compatible ``/chat/completions`` endpoints over httpx.
Groq is tried first (faster); OpenAI is the fallback.

Author: QR Dine Team
Version: 1.0.0
"""

import logging
from dataclasses import dataclass
from typing import Optional

import httpx

from qrdine.core.config import get_settings
from qrdine.services.chat.base import (
    FALLBACK_REPLY,
    BaseChatService,
    ChatContext,
    ChatResult,
    build_recommendation_prompt,
    build_system_prompt,
)

logger = logging.getLogger(__name__)


@dataclass
class LLMProvider:
    name: str
    base_url: str
    api_key: str
    model: str


class LLMChatService(BaseChatService):
    """Chat completions with provider fallback."""

    def __init__(self, providers: Optional[list[LLMProvider]] = None):
        settings = get_settings()
        self.max_tokens = settings.chat_max_tokens
        self.temperature = settings.chat_temperature
        self.timeout = settings.chat_timeout_seconds

        if providers is None:
            providers = []
            if settings.groq_api_key:
                providers.append(LLMProvider("groq", settings.groq_base_url, settings.groq_api_key, settings.groq_model))
            if settings.openai_api_key:
                providers.append(
                    LLMProvider("openai", settings.openai_base_url, settings.openai_api_key, settings.openai_model)
                )
        if not providers:
            raise ValueError("GROQ_API_KEY or OPENAI_API_KEY is required for the chat assistant")

        self.providers = providers
        logger.info(f"LLMChatService initialized (providers={[p.name for p in providers]})")

    @property
    def provider_name(self) -> str:
        return "+".join(p.name for p in self.providers)

    async def _complete(self, provider: LLMProvider, messages: list[dict]) -> str:
        async with httpx.AsyncClient(base_url=provider.base_url, timeout=self.timeout) as client:
            response = await client.post(
                "/chat/completions",
                headers={"Authorization": f"Bearer {provider.api_key}"},
                json={
                    "model": provider.model,
                    "messages": messages,
                    "max_tokens": self.max_tokens,
                    "temperature": self.temperature,
                },
            )
            response.raise_for_status()
            data = response.json()

        choices = data.get("choices") or []
        content = choices[0].get("message", {}).get("content") if choices else None
        return content or FALLBACK_REPLY

    async def _chat(self, messages: list[dict], context: ChatContext) -> ChatResult:
        conversation = [{"role": "system", "content": build_system_prompt(context)}, *messages]
        last_error = None

        for provider in self.providers:
            try:
                reply = await self._complete(provider, conversation)
                return ChatResult(success=True, reply=reply, provider=provider.name)
            except (httpx.HTTPError, ValueError) as e:
                last_error = f"{provider.name}: {e}"
                logger.warning(f"Chat provider {provider.name} failed, trying next: {e}")

        logger.error(f"All chat providers failed: {last_error}")
        return ChatResult(success=False, provider=self.provider_name, error_message=last_error)

    async def get_response(
        self,
        message: str,
        history: list[dict],
        context: ChatContext,
    ) -> ChatResult:
        return await self._chat([*history, {"role": "user", "content": message}], context)

    async def recommend(
        self,
        preferences: str,
        dietary_restrictions: list[str],
        budget: Optional[float],
        context: ChatContext,
    ) -> ChatResult:
        prompt = build_recommendation_prompt(preferences, dietary_restrictions, budget)
        return await self._chat([{"role": "user", "content": prompt}], context)

    async def health_check(self) -> bool:
        provider = self.providers[0]
        try:
            async with httpx.AsyncClient(base_url=provider.base_url, timeout=self.timeout) as client:
                response = await client.get("/models", headers={"Authorization": f"Bearer {provider.api_key}"})
            return response.status_code == 200
        except httpx.HTTPError as e:
            logger.error(f"Chat health check failed: {e}")
            return False
