"""
Chaos Simulation Script

Fires concurrent checkouts at a running server to show that the coupon
cap and the one-coupon-per-customer rule hold under load.
Run from project root: python scripts/simulate.py

Modes:
    --orders-mode   Full flow: create a draft, confirm it (coupon sauces only,
                    so every order tries to earn a coupon)
    --coupons-mode  Hammer POST /api/coupons directly

Version: 1.0.0
"""

import argparse
import asyncio
import random
import sys
import time
from datetime import datetime
from typing import Any

import httpx

# Windows event loop fix
if sys.platform == "win32":
    asyncio.set_event_loop_policy(asyncio.WindowsSelectorEventLoopPolicy())

# Configuration
API_BASE_URL = "http://localhost:8001"
TOTAL_ORDERS = 50
COUPON_LIMIT = 13

# Sample data for random orders
FIRST_NAMES = ["Rosa", "Luis", "Carmen", "Jorge", "Ana", "Miguel", "Lucia", "Diego", "Sofia", "Pedro"]
LAST_NAMES = ["Quispe", "Flores", "Huaman", "Rojas", "Torres", "Mendoza", "Vargas", "Castillo"]
STREETS = ["Jr. Grau", "Av. Lopez de Romana", "Jr. Dos de Mayo", "Calle Real", "Av. Luis Saenz Pena"]
ZONES = ["zoneA", "zoneB", "zoneC", "zoneD"]
COUPON_SAUCES = ["barbecue", "buffalo-picante", "ahumada", "parmesano-ajo"]
FAT_MENUS = [("pequeno-dilema", 1), ("duo-dilema", 2), ("santo-pecado", 3)]
ADD_ONS = [[], ["coca-cola"], ["inka-cola"], ["extra-papas"]]


def generate_random_customer(order_num: int) -> dict[str, str]:
    """Random customer with a unique national ID."""
    return {
        "name": f"{random.choice(FIRST_NAMES)} {random.choice(LAST_NAMES)}",
        "national_id": f"{40000000 + order_num:08d}",
        "phone": f"9{random.randint(10000000, 99999999)}",
        "address": f"{random.choice(STREETS)} {random.randint(1, 999)}, Chancay",
    }


def generate_coupon_line() -> dict[str, Any]:
    """A FAT menu with coupon sauces only."""
    product_id, sauces = random.choice(FAT_MENUS)
    return {
        "product_id": product_id,
        "quantity": 1,
        "chosen_sauces": random.choices(COUPON_SAUCES, k=sauces),
        "add_on_ids": random.choice(ADD_ONS),
    }


def _failure(order_num: int, mode: str, error: str, elapsed: float) -> dict[str, Any]:
    return {
        "order_num": order_num,
        "success": False,
        "error": error[:100],
        "time": elapsed,
        "mode": mode,
    }


# =============================================================================
# FULL CHECKOUT SIMULATION
# =============================================================================

async def send_checkout(client: httpx.AsyncClient, order_num: int) -> dict[str, Any]:
    """Create a draft and confirm it."""
    start_time = time.time()

    try:
        draft = await client.post(
            f"{API_BASE_URL}/api/drafts",
            json={"lines": [generate_coupon_line()], "zone": random.choice(ZONES)},
            timeout=30.0,
        )
        if draft.status_code != 201:
            return _failure(order_num, "checkout", draft.text, round(time.time() - start_time, 3))

        response = await client.post(
            f"{API_BASE_URL}/api/orders",
            json={
                "draft_id": draft.json()["draft"]["id"],
                "customer": generate_random_customer(order_num),
            },
            timeout=30.0,
        )
        elapsed = round(time.time() - start_time, 3)

        if response.status_code != 201:
            return _failure(order_num, "checkout", response.text, elapsed)

        data = response.json()
        return {
            "order_num": order_num,
            "success": True,
            "order_id": data["order"]["id"],
            "total": data["order"]["pricing"]["total"],
            "coupon": (data.get("issued_coupon") or {}).get("code"),
            "time": elapsed,
            "mode": "checkout",
        }
    except httpx.HTTPError as e:
        return _failure(order_num, "checkout", str(e), round(time.time() - start_time, 3))


# =============================================================================
# DIRECT ISSUANCE SIMULATION
# =============================================================================

async def send_issue_coupon(client: httpx.AsyncClient, order_num: int) -> dict[str, Any]:
    """Ask for a coupon directly."""
    customer = generate_random_customer(order_num)
    start_time = time.time()

    try:
        response = await client.post(
            f"{API_BASE_URL}/api/coupons",
            json={
                "owner_identifier": customer["national_id"],
                "display_name": customer["name"],
                "order_id": f"sim-{order_num}",
                "chosen_sauces": random.choices(COUPON_SAUCES, k=2),
            },
            timeout=30.0,
        )
        elapsed = round(time.time() - start_time, 3)

        if response.status_code != 201:
            return _failure(order_num, "coupons", response.text, elapsed)

        return {
            "order_num": order_num,
            "success": True,
            "coupon": response.json()["coupon"]["code"],
            "total": 0.0,
            "time": elapsed,
            "mode": "coupons",
        }
    except httpx.HTTPError as e:
        return _failure(order_num, "coupons", str(e), round(time.time() - start_time, 3))


# =============================================================================
# MAIN SIMULATION RUNNER
# =============================================================================

async def run_simulation(mode: str = "checkout", num_orders: int = TOTAL_ORDERS) -> dict[str, Any]:
    """
    Run the chaos simulation.

    Args:
        mode: "checkout" or "coupons"
        num_orders: Number of concurrent requests
    """
    print("=" * 70)
    print("🔥 CHAOS SIMULATION - COUPON CAP UNDER CONCURRENCY")
    print("=" * 70)
    print(f"📋 Requests: {num_orders}")
    print(f"🎯 Target: {API_BASE_URL}")
    print(f"🔧 Mode: {mode}")
    print(f"⏰ Started: {datetime.now().strftime('%H:%M:%S')}")
    print("=" * 70)

    start_time = time.time()
    sender = send_checkout if mode == "checkout" else send_issue_coupon

    async with httpx.AsyncClient() as client:
        print("\n🚀 Firing requests...\n")
        results = await asyncio.gather(*[sender(client, i + 1) for i in range(num_orders)])

        coupons = (await client.get(f"{API_BASE_URL}/api/coupons")).json()

    total_time = round(time.time() - start_time, 2)

    successful = [r for r in results if r["success"]]
    failed = [r for r in results if not r["success"]]
    issued = [r["coupon"] for r in successful if r.get("coupon")]

    print("\n" + "=" * 70)
    print("📊 SIMULATION RESULTS")
    print("=" * 70)

    print(f"\n✅ Successful: {len(successful)}/{num_orders}")
    print(f"❌ Failed: {len(failed)}/{num_orders}")
    print(f"⏱️  Total Time: {total_time}s")

    print(f"\n🎟️  Coupons issued in this run: {len(issued)}")
    print(f"🎟️  Coupons stored: {len(coupons)} (cap {COUPON_LIMIT})")
    owners = [c["owner_identifier"] for c in coupons]
    if len(coupons) > COUPON_LIMIT or len(owners) != len(set(owners)):
        print("❌ Coupon rules violated!")
    else:
        print("✅ Cap and one-per-customer rule held")

    if successful:
        avg_time = round(sum(r["time"] for r in successful) / len(successful), 3)
        total_revenue = sum(r.get("total", 0) for r in successful)
        print(f"\n📈 Performance Metrics:")
        print(f"   Average Response: {avg_time}s")
        print(f"   Fastest: {min(r['time'] for r in successful)}s")
        print(f"   Slowest: {max(r['time'] for r in successful)}s")
        print(f"   💰 Total Revenue: S/ {total_revenue:.2f}")

    if failed:
        print(f"\n⚠️  Failure Details (showing first 5):")
        for f in failed[:5]:
            print(f"   #{f['order_num']} [{f['mode']}]: {f.get('error', 'Unknown error')}")

    print("\n" + "=" * 70)
    print("🔍 VERIFICATION STEPS")
    print("=" * 70)
    print("1. Check Celery terminal - all export tasks should complete")
    print("2. Run: python scripts/verify.py")
    print("3. Open data/orders.xlsx to verify data integrity")
    print("=" * 70)

    return {
        "total": num_orders,
        "successful": len(successful),
        "failed": len(failed),
        "coupons": len(coupons),
        "total_time": total_time,
        "results": results,
    }


async def test_single_flows() -> bool:
    """Smoke-test the server before the simulation."""
    print("\n" + "=" * 70)
    print("🧪 TESTING INDIVIDUAL FLOWS")
    print("=" * 70)

    async with httpx.AsyncClient() as client:
        print("\n1️⃣ Health Check...")
        response = await client.get(f"{API_BASE_URL}/health")
        if response.status_code != 200:
            print(f"   ❌ Failed: {response.text}")
            return False
        data = response.json()
        print(f"   ✅ Status: {data.get('status')}")
        print(f"   Storage: {data.get('storage')} ({data.get('storage_provider')})")

        print("\n2️⃣ Price Quote...")
        response = await client.post(
            f"{API_BASE_URL}/api/pricing/quote",
            json={
                "lines": [{"product_id": "duo-dilema", "chosen_sauces": ["barbecue", "ahumada"]}],
                "zone": "zoneA",
            },
        )
        if response.status_code == 200:
            print(f"   ✅ Total: S/ {response.json().get('total')}")
        else:
            print(f"   ❌ Failed: {response.text}")
            return False

    print("\n" + "=" * 70)
    return True


if __name__ == "__main__":
    parser = argparse.ArgumentParser(description="Chaos Simulation Script")
    parser.add_argument("--coupons-mode", action="store_true", help="Issue coupons directly")
    parser.add_argument("--orders", type=int, default=TOTAL_ORDERS, help="Number of requests")
    parser.add_argument("--skip-tests", action="store_true", help="Skip individual tests")
    args = parser.parse_args()

    if not args.skip_tests:
        if not asyncio.run(test_single_flows()):
            print("\n❌ Pre-flight tests failed. Fix issues before running simulation.")
            sys.exit(1)
        print("\n✅ Pre-flight tests passed!")

    asyncio.run(run_simulation(
        mode="coupons" if args.coupons_mode else "checkout",
        num_orders=args.orders,
    ))
