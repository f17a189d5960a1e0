"""
Chat Service Factory

Development uses the rule-based mock; other modes use the LLM client.
"""

import logging
from functools import lru_cache

from qrdine.core.config import get_settings
from qrdine.services.chat.base import (
    BaseChatService,
    ChatContext,
    ChatResult,
    suggest_items,
)
from qrdine.services.chat.llm import LLMChatService, LLMProvider
from qrdine.services.chat.mock import MockChatService

logger = logging.getLogger(__name__)


@lru_cache()
def get_chat_service() -> BaseChatService:
    settings = get_settings()

    if settings.is_development and not (settings.groq_api_key or settings.openai_api_key):
        logger.info("Chat Service: Using MockChatService (development mode)")
        return MockChatService()

    logger.info(f"Chat Service: Using LLMChatService ({settings.env_mode.value} mode)")
    return LLMChatService()


def reset_chat_service() -> None:
    get_chat_service.cache_clear()


__all__ = [
    "get_chat_service",
    "reset_chat_service",
    "BaseChatService",
    "ChatContext",
    "ChatResult",
    "LLMChatService",
    "LLMProvider",
    "MockChatService",
    "suggest_items",
]
