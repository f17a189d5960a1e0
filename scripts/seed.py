"""
Demo Data Seeder

Creates the Bella Vista demo restaurant with tables, QR codes, a menu and
staff accounts, plus a platform superadmin.
Run from project root: python scripts/seed.py [--reset]

Accounts (password in parentheses):
    superadmin@qrdine.com (superadmin123)
    admin@bellavista.com  (admin123)
    kitchen@bellavista.com (kitchen123)
"""

import argparse
import asyncio
import logging
import os
import sys

sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

# Windows event loop fix
if sys.platform == "win32":
    asyncio.set_event_loop_policy(asyncio.WindowsSelectorEventLoopPolicy())

from sqlalchemy import select

from qrdine.core.config import setup_logging
from qrdine.core.security import hash_password
from qrdine.database import Base, async_session_maker, engine, init_db
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
from qrdine.services.qr import assign_qr_code

logger = logging.getLogger("qrdine.seed")

TABLES = [("1", 2), ("2", 4), ("3", 4), ("4", 6), ("5", 4), ("6", 8)]

SIZE_CHOICE = {
    "id": "size",
    "name": "Size",
    "type": "radio",
    "options": [{"name": "Regular", "price": 0.0}, {"name": "Large", "price": 4.0}],
    "required": True,
}

EXTRAS_CHOICE = {
    "id": "extras",
    "name": "Extras",
    "type": "checkbox",
    "options": [
        {"name": "Extra cheese", "price": 1.5},
        {"name": "Bacon", "price": 2.0},
        {"name": "Avocado", "price": 2.5},
    ],
    "required": False,
    "max_selections": 2,
}

MENU = [
    # name, category, price, prep minutes, allergens, dietary, description
    ("Buffalo Wings", "appetizers", 12.99, 15, ["dairy", "gluten"], ["spicy"],
     "Crispy wings tossed in hot sauce with blue cheese dip"),
    ("Mozzarella Sticks", "appetizers", 9.99, 10, ["dairy", "gluten"], ["vegetarian"],
     "Breaded mozzarella with marinara"),
    ("Loaded Nachos", "appetizers", 11.99, 12, ["dairy"], ["vegetarian", "gluten-free"],
     "Tortilla chips, cheese, jalapenos, salsa and sour cream"),
    ("Calamari Rings", "appetizers", 13.99, 12, ["seafood", "gluten"], [],
     "Lightly fried squid with lemon aioli"),
    ("Classic Cheeseburger", "mains", 15.99, 20, ["dairy", "gluten"], [],
     "Beef patty, cheddar, lettuce, tomato, house sauce"),
    ("Grilled Salmon", "mains", 22.99, 25, ["seafood", "dairy"], ["gluten-free"],
     "Atlantic salmon with lemon butter and seasonal vegetables"),
    ("Chicken Alfredo Pasta", "mains", 18.99, 20, ["dairy", "gluten"], [],
     "Fettuccine in parmesan cream sauce with grilled chicken"),
    ("Margherita Pizza", "mains", 16.99, 18, ["dairy", "gluten"], ["vegetarian"],
     "San Marzano tomatoes, mozzarella, basil"),
    ("Ribeye Steak", "mains", 32.99, 30, ["dairy"], ["gluten-free", "keto"],
     "12oz ribeye with garlic herb butter"),
    ("Buddha Bowl", "mains", 14.99, 15, ["sesame"], ["vegan", "gluten-free", "dairy-free"],
     "Quinoa, roasted chickpeas, avocado, tahini dressing"),
    ("Chocolate Lava Cake", "desserts", 8.99, 15, ["dairy", "gluten", "eggs"], ["vegetarian"],
     "Warm chocolate cake with a molten center"),
    ("New York Cheesecake", "desserts", 7.99, 5, ["dairy", "gluten", "eggs"], ["vegetarian"],
     "Classic cheesecake with berry compote"),
    ("Fresh Lemonade", "drinks", 3.99, 3, [], ["vegan", "gluten-free"],
     "Squeezed to order"),
    ("Espresso", "drinks", 2.99, 3, [], ["vegan", "gluten-free"], None),
]

CUSTOMIZABLE = {"Classic Cheeseburger": [EXTRAS_CHOICE], "Margherita Pizza": [SIZE_CHOICE, EXTRAS_CHOICE]}


async def get_or_create_user(db, email: str, **fields) -> User:
    result = await db.execute(select(User).where(User.email == email))
    user = result.scalar_one_or_none()
    if user is None:
        user = User(email=email, **fields)
        db.add(user)
        await db.flush()
    return user


async def seed(reset: bool = False) -> None:
    if reset:
        async with engine.begin() as conn:
            await conn.run_sync(Base.metadata.drop_all)
        logger.info("🗑️  Dropped all tables")
    await init_db()

    async with async_session_maker() as db:
        existing = await db.execute(select(Restaurant).where(Restaurant.email == "info@bellavista.com"))
        if existing.scalar_one_or_none() is not None:
            logger.info("Bella Vista already seeded; run with --reset to start over")
            await engine.dispose()
            return

        await get_or_create_user(
            db,
            "superadmin@qrdine.com",
            name="Platform Admin",
            password_hash=hash_password("superadmin123"),
            role=UserRole.SUPERADMIN,
        )
        owner = await get_or_create_user(
            db,
            "admin@bellavista.com",
            name="Maria Rossi",
            password_hash=hash_password("admin123"),
            role=UserRole.ADMIN,
            phone="+15551234567",
        )

        restaurant = Restaurant(
            name="Bella Vista Restaurant",
            description="Italian-American kitchen with a seasonal menu",
            cuisine="Italian",
            address="123 Main Street, Downtown, City 12345",
            phone="+15551234567",
            email="info@bellavista.com",
            website="https://bellavista.example.com",
            owner_id=owner.id,
            status=RestaurantStatus.ACTIVE,
            settings=RestaurantSettings().model_dump(mode="json"),
            tables=[
                RestaurantTable(
                    table_number=number,
                    capacity=capacity,
                    status=TableStatus.AVAILABLE,
                    current_phase=TablePhase.WAITING,
                )
                for number, capacity in TABLES
            ],
        )
        db.add(restaurant)
        await db.flush()

        for table in restaurant.tables:
            assign_qr_code(table, restaurant.id)
        owner.restaurant_id = restaurant.id

        await get_or_create_user(
            db,
            "kitchen@bellavista.com",
            name="Kitchen Staff",
            password_hash=hash_password("kitchen123"),
            role=UserRole.STAFF,
            restaurant_id=restaurant.id,
        )

        for name, category, price, prep, allergens, dietary, description in MENU:
            db.add(
                MenuItem(
                    restaurant_id=restaurant.id,
                    name=name,
                    description=description,
                    price=price,
                    category=category,
                    is_available=True,
                    preparation_time=prep,
                    allergens=allergens,
                    dietary_info=dietary,
                    customizations=CUSTOMIZABLE.get(name, []),
                )
            )

        await db.commit()
        logger.info(
            f"✅ Seeded restaurant #{restaurant.id} with {len(TABLES)} tables and {len(MENU)} menu items"
        )

    await engine.dispose()


if __name__ == "__main__":
    parser = argparse.ArgumentParser(description="Seed demo data")
    parser.add_argument("--reset", action="store_true", help="Drop and recreate all tables first")
    args = parser.parse_args()

    setup_logging()
    asyncio.run(seed(reset=args.reset))
