"""
Local Mirror Verification Script

Verifies data integrity of the local mirror after a simulation.
Run from project root: python scripts/verify.py

Author: Khalil Bannouri
Version: 4.0.0
"""

import os
import sys
from collections import Counter
from datetime import datetime

# Add parent directory to path
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from pydantic import ValidationError

from app.core.config import get_settings
from app.schemas import MenuItem, Order, OrderStatus
from app.services.local_store import LocalStore, LocalStoreError, MENU_KEY, ORDERS_KEY


def check_duplicates(label: str, rows: list[dict]) -> int:
    duplicates = [row_id for row_id, n in Counter(row.get("id") for row in rows).items() if n > 1]
    if duplicates:
        print(f"\n⚠️ {len(duplicates)} duplicate {label} IDs found: {duplicates[:5]}")
    else:
        print(f"✅ No duplicate {label} IDs")
    return len(duplicates)


def verify_mirror() -> bool:
    """Verify the local mirror entries."""
    settings = get_settings()
    store = LocalStore(settings.data_directory, lock_timeout=settings.storage_lock_timeout)

    print("=" * 60)
    print("🔍 LOCAL MIRROR VERIFICATION REPORT")
    print("=" * 60)
    print(f"⏰ Timestamp: {datetime.now().strftime('%Y-%m-%d %H:%M:%S')}")
    print(f"📁 Directory: {store.directory}")
    print("=" * 60)

    try:
        menu_rows = store.get_item(MENU_KEY)
        order_rows = store.get_item(ORDERS_KEY)
    except LocalStoreError as e:
        print(f"\n❌ Could not read local mirror: {e}")
        return False

    if menu_rows is None and order_rows is None:
        print("\n❌ Local mirror not initialized!")
        print("   Run the simulation first: python scripts/simulate.py")
        return False

    menu_rows = menu_rows or []
    order_rows = order_rows or []
    ok = True

    # Schema
    try:
        [MenuItem.model_validate(row) for row in menu_rows]
        orders = [Order.model_validate(row) for row in order_rows]
    except ValidationError as e:
        print(f"\n❌ Mirror rows do not match the schema:\n{e}")
        return False
    print(f"\n✅ All rows match the schema")

    # Statistics
    pending = [order for order in orders if order.status == OrderStatus.PENDING]
    print(f"\n📊 STATISTICS:")
    print(f"   Menu Items: {len(menu_rows)}")
    print(f"   Orders: {len(orders)} ({len(pending)} pending)")

    # Duplicates
    duplicates = check_duplicates("menu item", menu_rows) + check_duplicates("order", order_rows)
    if duplicates:
        ok = False

    # Totals
    mismatched = [order.id for order in orders if order.total != sum(i.subtotal for i in order.items)]
    if mismatched:
        print(f"\n⚠️ {len(mismatched)} orders with totals that do not match their items: {mismatched[:5]}")
        ok = False
    else:
        print(f"✅ All order totals match their line items")

    # Revenue
    if orders:
        total = sum(order.total for order in orders)
        print(f"\n💰 REVENUE:")
        print(f"   Total: Rp {total:,}")
        print(f"   Average: Rp {total // len(orders):,}")

    # Sample data
    print(f"\n📋 RECENT ORDERS:")
    print("-" * 60)
    for order in sorted(orders, key=lambda o: o.created_at)[-5:]:
        print(f"   #{order.id}  {order.customer_name:<12} {order.type.value:<9} Rp {order.total:,}")

    print("\n" + "=" * 60)
    print("✅ VERIFICATION COMPLETE" if ok else "⚠️ VERIFICATION FOUND PROBLEMS")
    print("=" * 60)

    return ok


if __name__ == "__main__":
    sys.exit(0 if verify_mirror() else 1)
