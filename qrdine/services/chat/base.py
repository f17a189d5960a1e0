"""
Chat Service Abstract Base Class

Defines the interface for the table-side dining assistant.
Implementations: rule-based mock (development) and an OpenAI-compatible
LLM client (Groq first, OpenAI as fallback).

Author: QR Dine Team
Version: 1.0.0
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Optional

FALLBACK_REPLY = (
    "I apologize, but I'm having trouble responding right now. "
    "Please try again or ask your server for assistance."
)

DIETARY_TAGS = frozenset({
    "vegetarian",
    "vegan",
    "gluten-free",
    "dairy-free",
    "nut-free",
    "halal",
    "kosher",
    "keto",
    "spicy",
})


@dataclass
class ChatContext:
    """What the assistant knows about where it is talking."""
    restaurant_name: str
    table_number: Optional[str] = None
    menu_items: list[dict] = field(default_factory=list)


@dataclass
class ChatResult:
    """Result from a chat completion."""
    success: bool
    reply: Optional[str] = None
    provider: str = "unknown"
    error_message: Optional[str] = None


def menu_lines(menu_items: list[dict]) -> list[str]:
    lines = []
    for item in menu_items:
        line = f"- {item['name']} ({item['category']}) ${item['price']:.2f}"
        if item.get("description"):
            line += f": {item['description']}"
        if item.get("allergens"):
            line += f" [allergens: {', '.join(item['allergens'])}]"
        if item.get("dietary_info"):
            line += f" [{', '.join(item['dietary_info'])}]"
        lines.append(line)
    return lines


def build_system_prompt(context: ChatContext) -> str:
    menu = "\n".join(menu_lines(context.menu_items)) or "- (menu unavailable)"
    return f"""You are a friendly AI dining assistant for {context.restaurant_name}.

Your role is to:
- Help customers with menu questions and recommendations
- Provide information about ingredients, allergens and dietary restrictions
- Help with special requests

Current context:
- Restaurant: {context.restaurant_name}
- Table: {context.table_number or 'unknown'}

Menu:
{menu}

Guidelines:
- Keep responses concise but informative
- If you don't know something specific about the restaurant, suggest they ask their server
- Don't make up menu items or prices"""


def build_recommendation_prompt(
    preferences: str,
    dietary_restrictions: list[str],
    budget: Optional[float],
) -> str:
    prompt = f'Based on these preferences: "{preferences or "no particular preference"}"'
    if dietary_restrictions:
        prompt += f"\nDietary restrictions: {', '.join(dietary_restrictions)}"
    if budget:
        prompt += f"\nBudget per dish: ${budget:.2f}"
    prompt += (
        "\n\nPlease recommend 2-3 dishes from the menu that would be perfect. "
        "Explain why each recommendation would be a great choice. "
        "Keep it conversational and appetizing!"
    )
    return prompt


def suggest_items(
    menu_items: list[dict],
    dietary_restrictions: list[str],
    budget: Optional[float] = None,
    limit: int = 3,
) -> list[dict]:
    """
    Pick items compatible with the restrictions, cheapest first.

    Known dietary tags ("vegan", "gluten-free") must be carried by the item;
    any other restriction is treated as an allergen to avoid.
    """
    restrictions = {r.strip().lower() for r in dietary_restrictions if r.strip()}
    required_tags = restrictions & DIETARY_TAGS
    avoided = restrictions - DIETARY_TAGS

    picks = []
    for item in menu_items:
        if budget is not None and item["price"] > budget:
            continue
        allergens = {a.lower() for a in item.get("allergens") or []}
        tags = {d.lower() for d in item.get("dietary_info") or []}
        if allergens & avoided or not required_tags <= tags:
            continue
        picks.append(item)

    picks.sort(key=lambda i: i["price"])
    return picks[:limit]


class BaseChatService(ABC):
    """Abstract base class for chat assistants."""

    @property
    @abstractmethod
    def provider_name(self) -> str:
        pass

    @abstractmethod
    async def get_response(
        self,
        message: str,
        history: list[dict],
        context: ChatContext,
    ) -> ChatResult:
        """
        Reply to a customer message.

        Args:
            message: The new user message
            history: Previous turns as ``{"role", "content"}`` dicts, oldest first
            context: Restaurant, table and menu
        """
        pass

    @abstractmethod
    async def recommend(
        self,
        preferences: str,
        dietary_restrictions: list[str],
        budget: Optional[float],
        context: ChatContext,
    ) -> ChatResult:
        """Recommend dishes from the menu in context."""
        pass

    @abstractmethod
    async def health_check(self) -> bool:
        pass
