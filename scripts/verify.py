"""
Excel Reconciliation Script

Checks the order workbook written by the Celery export and prints the
daily reconciliation figures.
Run from project root: python scripts/verify.py

Version: 1.0.0
"""

import os
import sys
from datetime import datetime

# Add parent directory to path
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from app.services.excel_manager import ExcelManager


def verify_excel() -> bool:
    """Verify workbook integrity and print the reconciliation report."""
    manager = ExcelManager()

    print("=" * 60)
    print("🔍 EXCEL RECONCILIATION REPORT")
    print("=" * 60)
    print(f"⏰ Timestamp: {datetime.now().strftime('%Y-%m-%d %H:%M:%S')}")
    print(f"📄 File: {manager.file_path}")
    print("=" * 60)

    if not manager.file_path.exists():
        print("\n❌ Excel file not found!")
        print("   Place some orders first: python scripts/simulate.py")
        return False

    rows = manager.get_all_orders()
    print(f"\n✅ File loaded: {len(rows)} row(s)")

    # Check required columns
    columns = set(rows[0].keys()) if rows else set()
    missing = [col for col in ExcelManager.ORDER_COLUMNS if col not in columns] if rows else []
    if missing:
        print(f"\n⚠️ Missing Columns: {missing}")
    else:
        print("✅ All columns present")

    # Check duplicates
    order_ids = [r["order_id"] for r in rows]
    duplicates = len(order_ids) - len(set(order_ids))
    if duplicates:
        print(f"⚠️ {duplicates} duplicate order IDs found!")
    else:
        print("✅ No duplicate order IDs")

    # Each row must add up: subtotal - discounts + fee = total
    mismatched = [
        r["order_id"] for r in rows
        if abs(r["subtotal"] - r["combo_discount"] - r["coupon_discount"]
               + r["delivery_fee"] - r["total"]) > 0.005
    ]
    if mismatched:
        print(f"⚠️ Totals do not add up for: {mismatched[:5]}")
    else:
        print("✅ Every total adds up")

    summary = manager.summarize()
    print(f"\n💰 RECONCILIATION:")
    print(f"   Orders billed:    {summary['orders']} ({summary['cancelled']} cancelled)")
    print(f"   Subtotal:         S/ {summary['subtotal']:.2f}")
    print(f"   Combo discounts: -S/ {summary['combo_discount']:.2f}")
    print(f"   Coupon discounts:-S/ {summary['coupon_discount']:.2f} "
          f"({summary['coupons_redeemed']} coupon(s))")
    print(f"   Delivery fees:   +S/ {summary['delivery_fees']:.2f}")
    print(f"   Total:            S/ {summary['total']:.2f}")

    print(f"\n🛵 DELIVERY BY ZONE:")
    for zone, figures in summary["by_zone"].items():
        print(f"   {zone:<8} {int(figures['count']):>4} order(s)  S/ {figures['sum']:.2f}")

    print("\n" + "=" * 60)
    print("✅ VERIFICATION COMPLETE")
    print("=" * 60)

    return not (missing or duplicates or mismatched)


if __name__ == "__main__":
    sys.exit(0 if verify_excel() else 1)
