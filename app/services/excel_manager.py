"""
Excel File Manager with Concurrency Control

Appends one row per confirmed order to the reconciliation workbook and
reads it back for the end-of-day report. Several Celery workers may
append at once, so every read-modify-write of the workbook holds a
FileLock on a sibling ".lock" file.

Version: 1.0.0
"""

import logging
from datetime import datetime
from pathlib import Path
from typing import Any, Optional

import pandas as pd
from filelock import FileLock, Timeout

from app.core.config import get_settings
from app.core.exceptions import StorageUnavailableError

logger = logging.getLogger(__name__)


def format_items(lines: list[dict[str, Any]]) -> str:
    """
    Flatten order lines into one cell.

    Example:
        >>> format_items([{"product_id": "duo-dilema", "quantity": 1,
        ...                "chosen_sauces": ["barbecue", "ahumada"],
        ...                "add_on_ids": ["coca-cola"]}])
        'duo-dilema x1 [barbecue, ahumada] + coca-cola'
    """
    parts = []
    for line in lines:
        text = f"{line.get('product_id')} x{line.get('quantity', 1)}"
        if line.get("chosen_sauces"):
            text += f" [{', '.join(line['chosen_sauces'])}]"
        if line.get("add_on_ids"):
            text += f" + {', '.join(line['add_on_ids'])}"
        if line.get("promo_flag"):
            text += " (promo)"
        parts.append(text)
    return "; ".join(parts)


class ExcelManager:
    """
    Thread- and process-safe order workbook.

    Attributes:
        file_path: Workbook location
        lock_path: Lock file guarding the workbook
        lock_timeout: Seconds to wait for the lock
    """

    ORDER_COLUMNS = [
        "order_id",
        "date_time",
        "customer_name",
        "national_id",
        "phone",
        "email",
        "address",
        "zone",
        "items",
        "subtotal",
        "combo_discount",
        "coupon_code",
        "coupon_discount",
        "delivery_fee",
        "total",
        "order_status",
        "exported_at",
    ]

    def __init__(
        self,
        data_directory: Optional[str | Path] = None,
        filename: Optional[str] = None,
        lock_timeout: Optional[float] = None,
    ):
        settings = get_settings()
        data_dir = Path(data_directory or settings.data_directory)
        self.file_path = data_dir / (filename or settings.excel_filename)
        self.lock_path = data_dir / f"{self.file_path.name}.lock"
        self.lock_timeout = lock_timeout if lock_timeout is not None else settings.excel_lock_timeout

    def _ensure_data_dir(self) -> None:
        """Create data directory if needed."""
        if not self.file_path.parent.exists():
            self.file_path.parent.mkdir(parents=True, exist_ok=True)
            logger.info(f"Created data directory: {self.file_path.parent}")

    def _load_or_create_df(self) -> pd.DataFrame:
        if self.file_path.exists():
            return pd.read_excel(self.file_path, engine="openpyxl")
        return pd.DataFrame(columns=self.ORDER_COLUMNS)

    @staticmethod
    def order_row(order_data: dict[str, Any], export_time: str) -> dict[str, Any]:
        """Map a serialized Order onto the workbook columns."""
        pricing = order_data.get("pricing", {})
        return {
            "order_id": order_data.get("id"),
            "date_time": order_data.get("created_at", export_time),
            "customer_name": order_data.get("name"),
            "national_id": order_data.get("national_id"),
            "phone": order_data.get("phone"),
            "email": order_data.get("email"),
            "address": order_data.get("address"),
            "zone": order_data.get("zone"),
            "items": format_items(order_data.get("lines", [])),
            "subtotal": pricing.get("subtotal"),
            "combo_discount": pricing.get("combo_discount", 0.0),
            "coupon_code": order_data.get("coupon_code"),
            "coupon_discount": pricing.get("coupon_discount", 0.0),
            "delivery_fee": pricing.get("delivery_fee", 0.0),
            "total": pricing.get("total"),
            "order_status": order_data.get("status"),
            "exported_at": export_time,
        }

    def export_order(self, order_data: dict[str, Any]) -> dict[str, Any]:
        """
        Append one order to the workbook.

        Raises:
            StorageUnavailableError: The workbook lock could not be acquired
        """
        self._ensure_data_dir()
        order_id = order_data.get("id", "unknown")

        try:
            with FileLock(str(self.lock_path), timeout=self.lock_timeout):
                logger.debug(f"Lock acquired for Order {order_id}")

                df = self._load_or_create_df()
                export_time = datetime.now().isoformat()
                new_row = self.order_row(order_data, export_time)

                df = pd.concat([df, pd.DataFrame([new_row])], ignore_index=True)
                df.to_excel(str(self.file_path), index=False, engine="openpyxl")

                logger.info(f"Order {order_id} exported to Excel")

            logger.debug(f"Lock released for Order {order_id}")

        except Timeout as e:
            logger.error(f"Lock timeout for Order {order_id}")
            raise StorageUnavailableError(
                f"Workbook lock timeout ({self.lock_timeout}s)"
            ) from e

        return {
            "success": True,
            "message": f"Order {order_id} exported",
            "order_id": order_id,
            "exported_at": export_time,
        }

    def update_status(self, order_id: str, status: str) -> bool:
        """
        Rewrite the order_status cell of an exported order.

        Returns:
            False when the order has no row yet (its export is still queued)

        Raises:
            StorageUnavailableError: The workbook lock could not be acquired
        """
        try:
            with FileLock(str(self.lock_path), timeout=self.lock_timeout):
                if not self.file_path.exists():
                    return False
                df = self._load_or_create_df()
                match = df["order_id"] == order_id
                if not match.any():
                    return False

                df.loc[match, "order_status"] = status
                df.to_excel(str(self.file_path), index=False, engine="openpyxl")
                logger.info(f"Order {order_id} marked {status} in Excel")

        except Timeout as e:
            logger.error(f"Lock timeout updating Order {order_id}")
            raise StorageUnavailableError(
                f"Workbook lock timeout ({self.lock_timeout}s)"
            ) from e

        return True

    def get_all_orders(self) -> list[dict[str, Any]]:
        """Get all exported rows."""
        if not self.file_path.exists():
            return []
        return self._load_or_create_df().to_dict("records")

    def summarize(self) -> dict[str, Any]:
        """
        Reconciliation figures for the exported orders.

        Cancelled orders are listed apart and left out of the money totals.
        """
        df = self._load_or_create_df()
        if df.empty:
            return {
                "orders": 0,
                "cancelled": 0,
                "subtotal": 0.0,
                "combo_discount": 0.0,
                "coupon_discount": 0.0,
                "delivery_fees": 0.0,
                "total": 0.0,
                "coupons_redeemed": 0,
                "by_zone": {},
            }

        cancelled = df["order_status"] == "cancelled"
        billed = df[~cancelled]
        by_zone = (
            billed.groupby("zone")["delivery_fee"].agg(["count", "sum"])
            .round(2)
            .to_dict("index")
        )

        return {
            "orders": int(len(billed)),
            "cancelled": int(cancelled.sum()),
            "subtotal": round(float(billed["subtotal"].sum()), 2),
            "combo_discount": round(float(billed["combo_discount"].sum()), 2),
            "coupon_discount": round(float(billed["coupon_discount"].sum()), 2),
            "delivery_fees": round(float(billed["delivery_fee"].sum()), 2),
            "total": round(float(billed["total"].sum()), 2),
            "coupons_redeemed": int(billed["coupon_code"].notna().sum()),
            "by_zone": by_zone,
        }

    def clear_all(self) -> bool:
        """Delete the workbook and its lock file."""
        removed = False
        for f in [self.file_path, self.lock_path]:
            if f.exists():
                f.unlink()
                removed = True
        logger.info("Excel workbook cleared")
        return removed
