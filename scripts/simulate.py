"""
Order Rush Simulation Script

Fires many concurrent orders at the API to exercise the local mirror lock
and the remote fallback path. Run from project root with the API up:
    python scripts/simulate.py --orders 50

Author: Khalil Bannouri
Version: 4.0.0
"""

import asyncio
import sys
import os
import random
import time
import argparse
from datetime import datetime
from typing import Any

import httpx
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))
# Windows event loop fix
if sys.platform == "win32":
    asyncio.set_event_loop_policy(asyncio.WindowsSelectorEventLoopPolicy())

# Configuration
API_BASE_URL = "http://localhost:8001"
TOTAL_ORDERS = 50
ADMIN_PASSWORD = os.getenv("ADMIN_PASSWORD", "admin123")

# Sample data for random orders
CUSTOMER_NAMES = ["Budi", "Ani", "Sari", "Dewi", "Agus", "Rina", "Joko", "Wati", "Eko", "Putri"]
STREETS = ["Jl. Mawar", "Jl. Melati", "Jl. Sudirman", "Jl. Thamrin", "Jl. Gatot Subroto"]


def generate_random_items(menu: list[dict]) -> list[dict]:
    """Pick 1-3 menu lines, snapshotting the current price."""
    picks = random.sample(menu, k=min(len(menu), random.randint(1, 3)))
    return [
        {"name": item["name"], "quantity": random.randint(1, 3), "price": item["price"]}
        for item in picks
    ]


def generate_order_payload(menu: list[dict]) -> dict[str, Any]:
    """Random dine-in or takeaway order for /api/orders."""
    payload: dict[str, Any] = {
        "customer_name": random.choice(CUSTOMER_NAMES),
        "items": generate_random_items(menu),
    }
    if random.random() < 0.5:
        payload["type"] = "dine-in"
        payload["table_number"] = str(random.randint(1, 20))
    else:
        payload["type"] = "takeaway"
        payload["address"] = f"{random.choice(STREETS)} {random.randint(1, 200)}"
        payload["phone_number"] = f"08{random.randint(100000000, 999999999)}"
    return payload


async def send_order(
    client: httpx.AsyncClient,
    order_num: int,
    menu: list[dict],
) -> dict[str, Any]:
    """Send one order and time it."""
    payload = generate_order_payload(menu)
    start_time = time.time()

    try:
        response = await client.post(f"{API_BASE_URL}/api/orders", json=payload, timeout=30.0)
        elapsed = round(time.time() - start_time, 3)

        if response.status_code == 200:
            data = response.json()
            return {
                "order_num": order_num,
                "success": True,
                "synced": data.get("synced"),
                "order_id": (data.get("data") or {}).get("id"),
                "total": (data.get("data") or {}).get("total", 0),
                "time": elapsed,
            }
        return {
            "order_num": order_num,
            "success": False,
            "error": response.text[:100],
            "time": elapsed,
        }
    except httpx.HTTPError as e:
        elapsed = round(time.time() - start_time, 3)
        return {
            "order_num": order_num,
            "success": False,
            "error": str(e)[:100],
            "time": elapsed,
        }


# =============================================================================
# MAIN SIMULATION RUNNER
# =============================================================================

async def run_simulation(num_orders: int = TOTAL_ORDERS) -> dict[str, Any]:
    """
    Run the order rush.

    Args:
        num_orders: Number of orders to fire concurrently
    """
    print("=" * 70)
    print("🔥 ORDER RUSH SIMULATION - HIGH CONCURRENCY TEST")
    print("=" * 70)
    print(f"📋 Total Orders: {num_orders}")
    print(f"🎯 Target: {API_BASE_URL}")
    print(f"⏰ Started: {datetime.now().strftime('%H:%M:%S')}")
    print("=" * 70)

    async with httpx.AsyncClient() as client:
        menu = (await client.get(f"{API_BASE_URL}/api/menu")).json()
        if not menu:
            print("\n❌ Menu is empty, nothing to order.")
            return {"total": num_orders, "successful": 0, "failed": num_orders, "results": []}

        print("\n🚀 Firing orders...\n")
        start_time = time.time()
        tasks = [send_order(client, i + 1, menu) for i in range(num_orders)]
        results = await asyncio.gather(*tasks)

    total_time = round(time.time() - start_time, 2)

    # Analyze results
    successful = [r for r in results if r["success"]]
    failed = [r for r in results if not r["success"]]
    synced = [r for r in successful if r.get("synced")]

    print("\n" + "=" * 70)
    print("📊 SIMULATION RESULTS")
    print("=" * 70)

    print(f"\n✅ Stored Orders: {len(successful)}/{num_orders}")
    print(f"☁️  Synced to remote: {len(synced)}/{len(successful)}")
    print(f"❌ Failed Orders: {len(failed)}/{num_orders}")
    print(f"⏱️  Total Time: {total_time}s")

    if successful:
        avg_time = round(sum(r["time"] for r in successful) / len(successful), 3)
        total_revenue = sum(r.get("total", 0) for r in successful)

        print(f"\n📈 Performance Metrics:")
        print(f"   Average Response: {avg_time}s")
        print(f"   Fastest: {min(r['time'] for r in successful)}s")
        print(f"   Slowest: {max(r['time'] for r in successful)}s")
        print(f"   💰 Total Revenue: Rp {total_revenue:,}")

    if failed:
        print(f"\n⚠️  Failed Order Details (showing first 5):")
        for f in failed[:5]:
            print(f"   Order #{f['order_num']}: {f.get('error', 'Unknown error')}")

    print("\n" + "=" * 70)
    print("🔍 VERIFICATION STEPS")
    print("=" * 70)
    print("1. Run: python scripts/verify.py")
    print("2. Log in at /admin/login and check GET /api/orders/pending")
    print("=" * 70)

    return {
        "total": num_orders,
        "successful": len(successful),
        "failed": len(failed),
        "total_time": total_time,
        "results": results,
    }


async def test_single_flows() -> bool:
    """Test individual flows before the rush."""
    print("\n" + "=" * 70)
    print("🧪 TESTING INDIVIDUAL FLOWS")
    print("=" * 70)

    async with httpx.AsyncClient(base_url=API_BASE_URL) as client:
        # Test 1: Health check
        print("\n1️⃣ Health Check...")
        response = await client.get("/health")
        if response.status_code != 200:
            print(f"   ❌ Failed: {response.text}")
            return False
        data = response.json()
        print(f"   ✅ Status: {data.get('status')}")
        print(f"   Remote: {data.get('remote')} ({data.get('remote_provider')})")
        print(f"   Mode: {data.get('mode')}")

        # Test 2: Menu
        print("\n2️⃣ Menu...")
        menu = (await client.get("/api/menu")).json()
        print(f"   ✅ {len(menu)} items")
        if not menu:
            return False

        # Test 3: Cart + checkout
        print("\n3️⃣ Cart Checkout...")
        await client.delete("/api/cart")
        await client.post(f"/api/cart/{menu[0]['id']}")
        response = await client.post("/api/checkout", json={
            "customer_name": "Simulasi",
            "type": "dine-in",
            "table_number": "1",
        })
        if response.status_code == 200:
            body = response.json()
            print(f"   ✅ Order #{body['data']['id']} created ({body['outcome']})")
        else:
            print(f"   ❌ Failed: {response.text[:100]}")
            return False

        # Test 4: Admin queue
        print("\n4️⃣ Admin Queue...")
        response = await client.post("/admin/login", json={"password": ADMIN_PASSWORD})
        if response.status_code == 200:
            pending = (await client.get("/api/orders/pending")).json()
            print(f"   ✅ {len(pending)} pending orders")
        else:
            print("   ⚠️ Admin login rejected (set ADMIN_PASSWORD)")

    print("\n" + "=" * 70)
    return True


if __name__ == "__main__":
    parser = argparse.ArgumentParser(description="Order Rush Simulation Script")
    parser.add_argument("--orders", type=int, default=TOTAL_ORDERS, help="Number of orders")
    parser.add_argument("--skip-tests", action="store_true", help="Skip individual tests")
    args = parser.parse_args()

    # Run tests first
    if not args.skip_tests:
        success = asyncio.run(test_single_flows())
        if not success:
            print("\n❌ Pre-flight tests failed. Fix issues before running simulation.")
            sys.exit(1)

        print("\n✅ Pre-flight tests passed!")
        input("\nPress Enter to start the order rush...")

    asyncio.run(run_simulation(num_orders=args.orders))
