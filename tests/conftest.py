"""
Pytest configuration and fixtures for backend tests.

Every test gets its own SQLite file database (aiosqlite), wired into the
app through dependency overrides together with fake notification and chat
gateways and a deterministic mock payment gateway.
"""

import asyncio
import os
import tempfile
from types import SimpleNamespace
from typing import Optional

# Settings are read once; configure the environment before importing the app.
_BOOTSTRAP_DIR = tempfile.mkdtemp(prefix="qrdine-tests-")
os.environ.update({
    "ENV_MODE": "development",
    "DATABASE_URL": f"sqlite+aiosqlite:///{_BOOTSTRAP_DIR}/bootstrap.db",
    "REDIS_URL": "redis://127.0.0.1:1/0",
    "JWT_SECRET": "test-secret",
    "STRIPE_WEBHOOK_SECRET": "whsec_test",
    "RATE_LIMIT_ENABLED": "false",
    "NOTIFICATION_BACKEND": "inline",
    "NOTIFICATION_MAX_ATTEMPTS": "3",
    "NOTIFICATION_BACKOFF_SECONDS": "0",
    "MOCK_FAILURE_RATE": "0",
    "MOCK_MIN_LATENCY": "0",
    "MOCK_MAX_LATENCY": "0",
    "GROQ_API_KEY": "",
    "OPENAI_API_KEY": "",
})

import pytest
from fastapi.testclient import TestClient
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from qrdine.core.security import create_access_token, hash_password
from qrdine.database import Base, build_engine, get_db, get_session_factory
from qrdine.main import app
from qrdine.models import (
    MenuItem,
    Restaurant,
    RestaurantStatus,
    RestaurantTable,
    TablePhase,
    TableStatus,
    User,
    UserRole,
)
from qrdine.schemas import RestaurantSettings
from qrdine.services.chat import BaseChatService, ChatContext, ChatResult, get_chat_service
from qrdine.services.notifications import (
    BaseNotificationService,
    NotificationResult,
    get_notification_service,
)
from qrdine.services.payment import MockPaymentService, get_payment_service


# =============================================================================
# FAKE GATEWAYS
# =============================================================================

class FakeNotificationService(BaseNotificationService):
    """Records every message; set ``fail`` to simulate a provider outage."""

    def __init__(self):
        self.sent: list[dict] = []
        self.calls = 0
        self.fail = False

    @property
    def provider_name(self) -> str:
        return "fake"

    def _result(self, channel: str, **message) -> NotificationResult:
        self.calls += 1
        if self.fail:
            return NotificationResult(success=False, error_message="Simulated outage", provider="fake")
        self.sent.append({"channel": channel, **message})
        return NotificationResult(success=True, message_id=f"fake_{self.calls}", provider="fake")

    async def send_sms(self, to_phone: str, message: str) -> NotificationResult:
        return self._result("sms", to=to_phone, body=message)

    async def send_email(
        self,
        to_email: str,
        subject: str,
        body_html: str,
        body_text: Optional[str] = None,
    ) -> NotificationResult:
        return self._result("email", to=to_email, subject=subject, body=body_html)

    async def health_check(self) -> bool:
        return True

    def sms_to(self, phone: str) -> list[str]:
        return [m["body"] for m in self.sent if m["channel"] == "sms" and m["to"] == phone]


class FakeChatService(BaseChatService):
    """Canned replies; keeps the history and context of every call."""

    def __init__(self):
        self.calls: list[dict] = []
        self.fail = False

    @property
    def provider_name(self) -> str:
        return "fake"

    async def get_response(self, message: str, history: list[dict], context: ChatContext) -> ChatResult:
        self.calls.append({"message": message, "history": history, "context": context})
        if self.fail:
            return ChatResult(success=False, provider="fake", error_message="upstream timeout")
        return ChatResult(success=True, reply=f"Echo: {message}", provider="fake")

    async def recommend(
        self,
        preferences: str,
        dietary_restrictions: list[str],
        budget: Optional[float],
        context: ChatContext,
    ) -> ChatResult:
        self.calls.append({"preferences": preferences, "context": context})
        if self.fail:
            return ChatResult(success=False, provider="fake", error_message="upstream timeout")
        return ChatResult(success=True, reply="Try the Bruschetta.", provider="fake")

    async def health_check(self) -> bool:
        return True


# =============================================================================
# DATABASE & CLIENT
# =============================================================================

@pytest.fixture(scope="function")
def session_factory(tmp_path):
    """
    Fresh SQLite file database per test.
    A file (not :memory:) so the app's event loop and the seeding helpers
    see the same data.
    """
    engine = build_engine(f"sqlite+aiosqlite:///{tmp_path / 'test.db'}")
    factory = async_sessionmaker(bind=engine, class_=AsyncSession, expire_on_commit=False)

    async def create_all():
        async with engine.begin() as conn:
            await conn.run_sync(Base.metadata.create_all)

    asyncio.run(create_all())
    yield factory
    asyncio.run(engine.dispose())


@pytest.fixture
def run_db(session_factory):
    """Run ``fn(session)`` against the test database and return its result."""
    def runner(fn):
        async def run():
            async with session_factory() as session:
                return await fn(session)
        return asyncio.run(run())
    return runner


@pytest.fixture
def notifier():
    return FakeNotificationService()


@pytest.fixture
def payments():
    return MockPaymentService(webhook_secret="whsec_test")


@pytest.fixture
def chat_bot():
    return FakeChatService()


@pytest.fixture(scope="function")
def client(session_factory, notifier, payments, chat_bot):
    """
    Create a test client with database and gateway overrides.
    """
    async def override_get_db():
        async with session_factory() as session:
            yield session

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_session_factory] = lambda: session_factory
    app.dependency_overrides[get_notification_service] = lambda: notifier
    app.dependency_overrides[get_payment_service] = lambda: payments
    app.dependency_overrides[get_chat_service] = lambda: chat_bot

    with TestClient(app) as test_client:
        yield test_client

    app.dependency_overrides.clear()


# =============================================================================
# SEED DATA
# =============================================================================

def auth_headers(user: User) -> dict[str, str]:
    return {"Authorization": f"Bearer {create_access_token(user)}"}


async def create_restaurant(
    session: AsyncSession,
    *,
    name: str = "Bella Vista",
    email_domain: str = "bellavista.test",
    tables: tuple[str, ...] = ("1", "2", "3"),
    **settings_overrides,
) -> SimpleNamespace:
    """Restaurant with an admin, a staff member, tables and a small menu."""
    admin = User(
        name="Maria Rossi",
        email=f"admin@{email_domain}",
        password_hash=hash_password("admin123"),
        role=UserRole.ADMIN,
        is_active=True,
    )
    session.add(admin)
    await session.flush()

    options = RestaurantSettings(tax_rate=0.08, **settings_overrides)
    restaurant = Restaurant(
        name=name,
        phone="+15550001111",
        email=f"info@{email_domain}",
        owner_id=admin.id,
        status=RestaurantStatus.ACTIVE,
        settings=options.model_dump(mode="json"),
        tables=[
            RestaurantTable(
                table_number=number,
                capacity=4,
                status=TableStatus.AVAILABLE,
                current_phase=TablePhase.WAITING,
            )
            for number in tables
        ],
    )
    session.add(restaurant)
    await session.flush()
    admin.restaurant_id = restaurant.id

    staff = User(
        name="Kitchen Staff",
        email=f"kitchen@{email_domain}",
        password_hash=hash_password("kitchen123"),
        role=UserRole.STAFF,
        restaurant_id=restaurant.id,
        is_active=True,
    )
    session.add(staff)

    menu = {
        "bruschetta": MenuItem(
            restaurant_id=restaurant.id, name="Bruschetta", price=10.0, category="appetizers",
            allergens=["gluten"], dietary_info=["vegetarian"], customizations=[], preparation_time=10,
        ),
        "pasta": MenuItem(
            restaurant_id=restaurant.id, name="Carbonara", price=15.0, category="mains",
            allergens=["dairy", "gluten", "eggs"], dietary_info=[], customizations=[], preparation_time=20,
        ),
        "pizza": MenuItem(
            restaurant_id=restaurant.id, name="Margherita Pizza", price=12.0, category="mains",
            allergens=["dairy", "gluten"], dietary_info=["vegetarian"], preparation_time=18,
            customizations=[
                {
                    "id": "size", "name": "Size", "type": "radio", "required": True,
                    "options": [{"name": "Regular", "price": 0.0}, {"name": "Large", "price": 4.0}],
                },
                {
                    "id": "extras", "name": "Extras", "type": "checkbox", "required": False,
                    "max_selections": 2,
                    "options": [
                        {"name": "Olives", "price": 1.0},
                        {"name": "Basil", "price": 0.5},
                        {"name": "Burrata", "price": 3.0},
                    ],
                },
            ],
        ),
        "salad": MenuItem(
            restaurant_id=restaurant.id, name="Green Salad", price=8.0, category="appetizers",
            allergens=[], dietary_info=["vegan", "gluten-free"], customizations=[], preparation_time=5,
        ),
        "soldout": MenuItem(
            restaurant_id=restaurant.id, name="Truffle Risotto", price=24.0, category="mains",
            allergens=["dairy"], dietary_info=[], customizations=[], is_available=False,
        ),
    }
    session.add_all(menu.values())
    await session.commit()

    return SimpleNamespace(
        restaurant=restaurant,
        restaurant_id=restaurant.id,
        admin=admin,
        staff=staff,
        menu={key: item.id for key, item in menu.items()},
    )


@pytest.fixture
def seed(run_db):
    """The Bella Vista test restaurant."""
    return run_db(lambda session: create_restaurant(session))


@pytest.fixture
def other_seed(run_db):
    """A second tenant for isolation checks."""
    return run_db(lambda session: create_restaurant(session, name="Chez Autre", email_domain="autre.test"))


@pytest.fixture
def admin_headers(seed):
    return auth_headers(seed.admin)


@pytest.fixture
def staff_headers(seed):
    return auth_headers(seed.staff)


@pytest.fixture
def other_admin_headers(other_seed):
    return auth_headers(other_seed.admin)


@pytest.fixture
def superadmin(run_db):
    async def create(session):
        user = User(
            name="Platform Admin",
            email="root@qrdine.test",
            password_hash=hash_password("superadmin123"),
            role=UserRole.SUPERADMIN,
            is_active=True,
        )
        session.add(user)
        await session.commit()
        return user
    return run_db(create)


@pytest.fixture
def superadmin_headers(superadmin):
    return auth_headers(superadmin)


def order_payload(seed, **overrides) -> dict:
    """A valid checkout body: one Bruschetta and one Carbonara at table 1."""
    payload = {
        "restaurantId": seed.restaurant_id,
        "tableId": "1",
        "customerName": "John Doe",
        "customerPhone": "555-123-4567",
        "paymentMethod": "card",
        "items": [
            {"menuItemId": seed.menu["bruschetta"], "quantity": 1},
            {"menuItemId": seed.menu["pasta"], "quantity": 1},
        ],
    }
    payload.update(overrides)
    return payload


@pytest.fixture
def place_order(client, seed):
    """POST an order and return the created order JSON."""
    def place(**overrides) -> dict:
        response = client.post("/api/orders", json=order_payload(seed, **overrides))
        assert response.status_code == 201, response.json()
        return response.json()["order"]
    return place
