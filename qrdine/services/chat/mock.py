"""
Mock Chat Service

Rule-based assistant for development: answers from the menu in context
without calling any LLM.

Author: QR Dine Team
Version: 1.0.0
"""

import logging
from typing import Optional

from qrdine.services.chat.base import (
    BaseChatService,
    ChatContext,
    ChatResult,
    suggest_items,
)

logger = logging.getLogger(__name__)


class MockChatService(BaseChatService):
    """Keyword-driven replies built from the menu."""

    @property
    def provider_name(self) -> str:
        return "mock"

    async def get_response(
        self,
        message: str,
        history: list[dict],
        context: ChatContext,
    ) -> ChatResult:
        text = message.lower()
        menu = context.menu_items

        if "allerg" in text:
            flagged = [i for i in menu if i.get("allergens")]
            if flagged:
                details = "; ".join(f"{i['name']}: {', '.join(i['allergens'])}" for i in flagged[:5])
                reply = f"Here are the allergens I know about: {details}. Please tell your server about any allergy."
            else:
                reply = "None of our listed dishes declare allergens, but please tell your server about any allergy."
        elif any(word in text for word in ("vegan", "vegetarian", "gluten")):
            tag = next(w for w in ("vegan", "vegetarian", "gluten-free") if w.split("-")[0] in text)
            picks = suggest_items(menu, [tag], limit=5)
            reply = (
                f"Our {tag} options: {', '.join(i['name'] for i in picks)}."
                if picks else f"I couldn't find dishes marked {tag}. Your server can check with the kitchen."
            )
        elif any(word in text for word in ("recommend", "suggest", "popular", "best")):
            picks = suggest_items(menu, [], limit=3)
            reply = (
                f"You might enjoy {', '.join(i['name'] for i in picks)}."
                if picks else "Your server will be happy to recommend something."
            )
        elif "price" in text or "cost" in text or "how much" in text:
            matches = [i for i in menu if i["name"].lower() in text]
            if matches:
                reply = " ".join(f"{i['name']} is ${i['price']:.2f}." for i in matches)
            else:
                reply = "Prices are listed on the menu next to each dish."
        else:
            reply = (
                f"Welcome to {context.restaurant_name}! I can help with the menu, "
                f"allergens and recommendations."
            )

        logger.debug(f"Mock chat reply for table {context.table_number}: {reply[:50]}")
        return ChatResult(success=True, reply=reply, provider="mock")

    async def recommend(
        self,
        preferences: str,
        dietary_restrictions: list[str],
        budget: Optional[float],
        context: ChatContext,
    ) -> ChatResult:
        picks = suggest_items(context.menu_items, dietary_restrictions, budget)
        if not picks:
            return ChatResult(
                success=True,
                reply="I couldn't find a dish matching those preferences. Your server can suggest alternatives.",
                provider="mock",
            )

        names = ", ".join(f"{i['name']} (${i['price']:.2f})" for i in picks)
        return ChatResult(success=True, reply=f"Based on your preferences, try: {names}.", provider="mock")

    async def health_check(self) -> bool:
        return True
