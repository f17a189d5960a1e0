"""
Rush Hour Simulation Script

Fires concurrent table orders at a running server and walks a sample of
them through payment and the kitchen workflow.
Run from project root after seeding: python scripts/simulate.py

Author: QR Dine Team
Version: 1.0.0
"""

import argparse
import asyncio
import random
import sys
import time
from datetime import datetime
from typing import Any, Optional

import httpx

# Windows event loop fix
if sys.platform == "win32":
    asyncio.set_event_loop_policy(asyncio.WindowsSelectorEventLoopPolicy())

# Configuration
API_BASE_URL = "http://localhost:5000"
TOTAL_ORDERS = 30
RESTAURANT_ID = 1
TABLE_IDS = ["1", "2", "3", "4", "5", "6"]
STAFF_EMAIL = "admin@bellavista.com"
STAFF_PASSWORD = "admin123"

# Sample data for random orders
FIRST_NAMES = ["John", "Jane", "Mike", "Sarah", "Tom", "Emma", "David", "Lisa", "Chris", "Amy"]
LAST_NAMES = ["Smith", "Johnson", "Williams", "Brown", "Jones", "Garcia", "Miller", "Davis", "Wilson", "Taylor"]
ALLERGENS = ["dairy", "gluten", "seafood", "eggs", "sesame"]
KITCHEN_FLOW = ["confirmed", "preparing", "ready", "served", "completed"]


def generate_random_customer() -> dict[str, str]:
    """Generate random customer info."""
    return {
        "customerName": f"{random.choice(FIRST_NAMES)} {random.choice(LAST_NAMES)}",
        "customerPhone": f"555-{random.randint(100, 999)}-{random.randint(1000, 9999)}",
    }


def generate_random_items(menu: list[dict]) -> list[dict]:
    """Pick 1-4 menu lines, ignoring items that need customizations."""
    simple = [m for m in menu if not any(c.get("required") for c in m.get("customizations", []))]
    items = []
    for menu_item in random.sample(simple, k=min(len(simple), random.randint(1, 4))):
        line: dict[str, Any] = {"menuItemId": menu_item["id"], "quantity": random.randint(1, 3)}
        if random.random() < 0.2:
            line["allergenPreferences"] = {"avoidAllergens": [random.choice(ALLERGENS)]}
        items.append(line)
    return items


async def fetch_menu(client: httpx.AsyncClient) -> list[dict]:
    response = await client.get(f"{API_BASE_URL}/api/menu/{RESTAURANT_ID}", params={"available": "true"})
    response.raise_for_status()
    return response.json()["items"]


async def staff_token(client: httpx.AsyncClient) -> Optional[str]:
    response = await client.post(
        f"{API_BASE_URL}/api/auth/login",
        json={"email": STAFF_EMAIL, "password": STAFF_PASSWORD},
    )
    if response.status_code != 200:
        return None
    return response.json()["token"]


# =============================================================================
# ORDER FLOW
# =============================================================================

async def place_order(
    client: httpx.AsyncClient,
    order_num: int,
    menu: list[dict],
) -> dict[str, Any]:
    """Place one order at a random table, paying by card or cash."""
    payload = {
        "restaurantId": RESTAURANT_ID,
        "tableId": random.choice(TABLE_IDS),
        **generate_random_customer(),
        "paymentMethod": random.choice(["card", "card", "cash"]),
        "items": generate_random_items(menu),
        "specialInstructions": random.choice([None, "No rush", "Birthday dessert please", "Extra napkins"]),
    }
    start_time = time.time()

    try:
        response = await client.post(f"{API_BASE_URL}/api/orders", json=payload, timeout=30.0)
        elapsed = round(time.time() - start_time, 3)

        if response.status_code == 201:
            order = response.json()["order"]
            return {
                "order_num": order_num,
                "success": True,
                "order_id": order["id"],
                "total": order["total"],
                "payment_method": order["paymentMethod"],
                "time": elapsed,
            }
        return {
            "order_num": order_num,
            "success": False,
            "error": response.text[:100],
            "time": elapsed,
        }
    except httpx.HTTPError as e:
        return {
            "order_num": order_num,
            "success": False,
            "error": str(e)[:100],
            "time": round(time.time() - start_time, 3),
        }


async def pay_order(client: httpx.AsyncClient, order_id: int) -> bool:
    """Card checkout: create the intent, then confirm it."""
    response = await client.post(f"{API_BASE_URL}/api/orders/{order_id}/payment-intent")
    if response.status_code != 200:
        print(f"   ⚠️ Intent for order #{order_id}: {response.text[:100]}")
        return False

    intent_id = response.json()["paymentIntentId"]
    response = await client.post(
        f"{API_BASE_URL}/api/orders/{order_id}/confirm-payment",
        json={"paymentIntentId": intent_id},
    )
    return response.status_code == 200


async def run_kitchen(client: httpx.AsyncClient, token: str, order_id: int) -> Optional[str]:
    """Move an order through the kitchen until it is completed."""
    headers = {"Authorization": f"Bearer {token}"}
    status = None
    for status in KITCHEN_FLOW:
        response = await client.put(
            f"{API_BASE_URL}/api/orders/{order_id}/status",
            json={"status": status},
            headers=headers,
        )
        if response.status_code != 200:
            return f"{status}: {response.text[:80]}"
    return None


# =============================================================================
# MAIN SIMULATION RUNNER
# =============================================================================

async def run_simulation(num_orders: int = TOTAL_ORDERS, workflow_sample: int = 5) -> dict[str, Any]:
    print("=" * 70)
    print("🔥 RUSH HOUR SIMULATION - CONCURRENT TABLE ORDERS")
    print("=" * 70)
    print(f"📋 Total Orders: {num_orders}")
    print(f"🎯 Target: {API_BASE_URL} (restaurant #{RESTAURANT_ID})")
    print(f"⏰ Started: {datetime.now().strftime('%H:%M:%S')}")
    print("=" * 70)

    start_time = time.time()

    async with httpx.AsyncClient() as client:
        menu = await fetch_menu(client)
        print(f"\n🍽️  Loaded {len(menu)} menu items")

        print("\n🚀 Firing orders...\n")
        results = await asyncio.gather(*[place_order(client, i + 1, menu) for i in range(num_orders)])

        successful = [r for r in results if r["success"]]
        card_orders = [r for r in successful if r["payment_method"] == "card"]

        print(f"💳 Paying {len(card_orders)} card orders...")
        paid = await asyncio.gather(*[pay_order(client, r["order_id"]) for r in card_orders])

        workflow_errors = []
        token = await staff_token(client)
        if token is None:
            print("⚠️  Staff login failed; skipping kitchen workflow")
        else:
            sample = successful[:workflow_sample]
            print(f"👨‍🍳 Running kitchen workflow for {len(sample)} orders...")
            for r in sample:
                error = await run_kitchen(client, token, r["order_id"])
                if error:
                    workflow_errors.append((r["order_id"], error))

    total_time = round(time.time() - start_time, 2)
    failed = [r for r in results if not r["success"]]

    print("\n" + "=" * 70)
    print("📊 SIMULATION RESULTS")
    print("=" * 70)
    print(f"\n✅ Successful Orders: {len(successful)}/{num_orders}")
    print(f"❌ Failed Orders: {len(failed)}/{num_orders}")
    print(f"💳 Payments Confirmed: {sum(paid)}/{len(card_orders)}")
    print(f"⏱️  Total Time: {total_time}s")

    if successful:
        times = [r["time"] for r in successful]
        print("\n📈 Performance Metrics:")
        print(f"   Average Response: {round(sum(times) / len(times), 3)}s")
        print(f"   Fastest: {min(times)}s")
        print(f"   Slowest: {max(times)}s")
        print(f"   💰 Total Revenue: ${sum(r['total'] for r in successful):.2f}")

    if failed:
        print("\n⚠️  Failed Order Details (showing first 5):")
        for f in failed[:5]:
            print(f"   Order #{f['order_num']}: {f.get('error', 'Unknown error')}")

    for order_id, error in workflow_errors:
        print(f"   ⚠️ Workflow for order #{order_id} stopped at {error}")

    print("\n" + "=" * 70)
    print("🔍 VERIFICATION STEPS")
    print("=" * 70)
    print("1. Check the server log for notification delivery")
    print("2. GET /api/orders/{id}/notifications shows each SMS/email attempt")
    print("3. GET /api/orders/stats with a staff token for the dashboard totals")
    print("=" * 70)

    return {
        "total": num_orders,
        "successful": len(successful),
        "failed": len(failed),
        "total_time": total_time,
        "results": results,
    }


async def test_single_flows() -> bool:
    """Check the server and the demo restaurant before the rush."""
    print("\n" + "=" * 70)
    print("🧪 TESTING INDIVIDUAL FLOWS")
    print("=" * 70)

    async with httpx.AsyncClient() as client:
        print("\n1️⃣ Health Check...")
        response = await client.get(f"{API_BASE_URL}/api/health")
        if response.status_code != 200:
            print(f"   ❌ Failed: {response.text}")
            return False
        data = response.json()
        print(f"   ✅ Status: {data.get('status')}")
        print(f"   Database: {data.get('database')}")
        print(f"   Redis: {data.get('redis')}")

        print("\n2️⃣ Table Landing Page...")
        response = await client.get(f"{API_BASE_URL}/api/table/{RESTAURANT_ID}/{TABLE_IDS[0]}")
        if response.status_code != 200:
            print(f"   ❌ Failed: {response.text[:100]} (did you run scripts/seed.py?)")
            return False
        data = response.json()
        print(f"   ✅ {data['restaurant']['name']}, open: {data['isOpen']}")

        print("\n3️⃣ Chat Assistant...")
        response = await client.post(
            f"{API_BASE_URL}/api/chat/send",
            json={"restaurantId": RESTAURANT_ID, "tableId": TABLE_IDS[0], "message": "What do you recommend?"},
        )
        if response.status_code == 200:
            print(f"   ✅ {response.json()['reply'][:80]}")
        else:
            print(f"   ⚠️ Response: {response.text[:100]}")

    print("\n" + "=" * 70)
    return True


if __name__ == "__main__":
    parser = argparse.ArgumentParser(description="Rush Hour Simulation Script")
    parser.add_argument("--orders", type=int, default=TOTAL_ORDERS, help="Number of orders")
    parser.add_argument("--workflow", type=int, default=5, help="Orders to walk through the kitchen")
    parser.add_argument("--skip-tests", action="store_true", help="Skip individual tests")
    args = parser.parse_args()

    if not args.skip_tests:
        if not asyncio.run(test_single_flows()):
            print("\n❌ Pre-flight tests failed. Fix issues before running simulation.")
            sys.exit(1)
        print("\n✅ Pre-flight tests passed!")

    asyncio.run(run_simulation(num_orders=args.orders, workflow_sample=args.workflow))
