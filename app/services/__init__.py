"""
                        Services Module

Business logic for the storefront. The API layer only talks to these.

Services:
    - storage: Document store (JSON files in development, Redis otherwise)
    - catalog: Menu data, line validation and the sauce promotion
    - pricing: Order Pricing Engine
    - coupons: Coupon validation, issuance and redemption
    - drafts: Server-side carts
    - orders: Order confirmation, status and customer lookup
    - business_hours: Opening schedule
    - excel_manager: Lock-protected Excel export for reconciliation
"""

from app.services.excel_manager import ExcelManager

__all__ = ["ExcelManager"]
