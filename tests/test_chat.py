"""
Tests for the dining assistant: routes, menu suggestions and the chat backends.
"""

import httpx
import pytest

from qrdine.services.chat import ChatContext, LLMChatService, LLMProvider, MockChatService, suggest_items


MENU = [
    {"id": 1, "name": "Bruschetta", "category": "appetizers", "price": 10.0,
     "allergens": ["gluten"], "dietary_info": ["vegetarian"]},
    {"id": 2, "name": "Carbonara", "category": "mains", "price": 15.0,
     "allergens": ["dairy", "gluten", "eggs"], "dietary_info": []},
    {"id": 3, "name": "Green Salad", "category": "appetizers", "price": 8.0,
     "allergens": [], "dietary_info": ["vegan", "gluten-free"]},
    {"id": 4, "name": "Margherita Pizza", "category": "mains", "price": 12.0,
     "allergens": ["dairy", "gluten"], "dietary_info": ["vegetarian"]},
]


class TestSuggestItems:
    def test_cheapest_first(self):
        assert [i["name"] for i in suggest_items(MENU, [])] == ["Green Salad", "Bruschetta", "Margherita Pizza"]

    def test_dietary_tag_required(self):
        assert [i["name"] for i in suggest_items(MENU, ["Vegetarian"])] == ["Bruschetta", "Margherita Pizza"]

    def test_other_restrictions_are_allergens(self):
        """Anything that is not a dietary tag is treated as an allergen to avoid."""
        assert [i["name"] for i in suggest_items(MENU, ["dairy"])] == ["Green Salad", "Bruschetta"]

    def test_budget(self):
        assert [i["name"] for i in suggest_items(MENU, [], budget=10)] == ["Green Salad", "Bruschetta"]


class TestMockChatService:
    @pytest.mark.asyncio
    async def test_allergen_question(self):
        result = await MockChatService().get_response(
            "Any allergens in the pasta?", [], ChatContext(restaurant_name="Bella Vista", menu_items=MENU)
        )

        assert result.success is True
        assert "Carbonara: dairy, gluten, eggs" in result.reply

    @pytest.mark.asyncio
    async def test_vegan_question(self):
        result = await MockChatService().get_response(
            "What is vegan here?", [], ChatContext(restaurant_name="Bella Vista", menu_items=MENU)
        )
        assert result.reply == "Our vegan options: Green Salad."

    @pytest.mark.asyncio
    async def test_recommend_within_budget(self):
        result = await MockChatService().recommend(
            "something light", [], 9.0, ChatContext(restaurant_name="Bella Vista", menu_items=MENU)
        )
        assert result.reply == "Based on your preferences, try: Green Salad ($8.00)."


class TestLLMChatService:
    def _service(self) -> LLMChatService:
        return LLMChatService(providers=[
            LLMProvider("groq", "https://groq.test/v1", "gsk_test", "llama"),
            LLMProvider("openai", "https://openai.test/v1", "sk_test", "gpt"),
        ])

    @pytest.mark.asyncio
    async def test_falls_back_to_second_provider(self, monkeypatch):
        service = self._service()
        seen = []

        async def complete(provider, messages):
            seen.append((provider.name, messages))
            if provider.name == "groq":
                raise httpx.ConnectError("connection refused")
            return "Try the salad."

        monkeypatch.setattr(service, "_complete", complete)

        result = await service.get_response(
            "Hi", [{"role": "assistant", "content": "Welcome!"}], ChatContext(restaurant_name="Bella Vista")
        )

        assert result.success is True
        assert result.provider == "openai"
        assert [name for name, _ in seen] == ["groq", "openai"]
        messages = seen[-1][1]
        assert messages[0]["role"] == "system"
        assert "Bella Vista" in messages[0]["content"]
        assert messages[1:] == [
            {"role": "assistant", "content": "Welcome!"},
            {"role": "user", "content": "Hi"},
        ]

    @pytest.mark.asyncio
    async def test_all_providers_down(self, monkeypatch):
        service = self._service()

        async def complete(provider, messages):
            raise httpx.ReadTimeout("timed out")

        monkeypatch.setattr(service, "_complete", complete)

        result = await service.get_response("Hi", [], ChatContext(restaurant_name="Bella Vista"))

        assert result.success is False
        assert result.error_message.startswith("openai:")

    def test_requires_a_provider(self):
        with pytest.raises(ValueError):
            LLMChatService(providers=[])


class TestChatRoutes:
    def test_send_starts_session(self, client, seed, chat_bot):
        response = client.post(
            "/api/chat/send",
            json={"message": "Hello", "restaurantId": seed.restaurant_id, "tableId": 2},
        )

        assert response.status_code == 200
        data = response.json()
        assert data["reply"] == "Echo: Hello"
        assert data["provider"] == "fake"
        assert data["sessionId"]

        context = chat_bot.calls[0]["context"]
        assert context.table_number == "2"
        assert "Truffle Risotto" not in [i["name"] for i in context.menu_items]

    def test_history_is_sent_back(self, client, seed, chat_bot):
        first = client.post("/api/chat/send", json={"message": "Hello", "restaurantId": seed.restaurant_id})
        session_id = first.json()["sessionId"]

        client.post(
            "/api/chat/send",
            json={"message": "Vegan options?", "restaurantId": seed.restaurant_id, "sessionId": session_id},
        )

        assert chat_bot.calls[1]["history"] == [
            {"role": "user", "content": "Hello"},
            {"role": "assistant", "content": "Echo: Hello"},
        ]
        history = client.get(f"/api/chat/history/{session_id}").json()
        assert [m["role"] for m in history["messages"]] == ["user", "assistant", "user", "assistant"]

    def test_failure_stores_nothing(self, client, seed, chat_bot):
        chat_bot.fail = True

        response = client.post(
            "/api/chat/send",
            json={"message": "Hello", "restaurantId": seed.restaurant_id, "sessionId": "s-fail"},
        )

        assert response.status_code == 500
        assert response.json()["error"] == "Failed to process chat message"
        assert client.get("/api/chat/history/s-fail").status_code == 404

    def test_session_bound_to_restaurant(self, client, seed, other_seed):
        client.post("/api/chat/send", json={"message": "Hi", "restaurantId": seed.restaurant_id, "sessionId": "s-1"})

        response = client.post(
            "/api/chat/send",
            json={"message": "Hi", "restaurantId": other_seed.restaurant_id, "sessionId": "s-1"},
        )

        assert response.status_code == 404

    def test_recommendations(self, client, seed):
        response = client.post(
            "/api/chat/recommendations",
            json={"restaurantId": seed.restaurant_id, "dietaryRestrictions": ["vegetarian"], "budget": 11},
        )

        data = response.json()
        assert data["recommendations"] == "Try the Bruschetta."
        assert [i["name"] for i in data["suggestedItems"]] == ["Bruschetta"]

    def test_recommendations_failure(self, client, seed, chat_bot):
        chat_bot.fail = True

        response = client.post("/api/chat/recommendations", json={"restaurantId": seed.restaurant_id})

        assert response.status_code == 500

    def test_end_session(self, client, seed):
        session_id = client.post(
            "/api/chat/send", json={"message": "Hi", "restaurantId": seed.restaurant_id}
        ).json()["sessionId"]

        response = client.delete(f"/api/chat/session/{session_id}")

        assert response.status_code == 200
        assert client.get(f"/api/chat/history/{session_id}").json()["isActive"] is False
