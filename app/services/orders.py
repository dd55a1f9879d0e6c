"""
Order Service

Turns a draft into a stored order and manages it afterwards.

Confirmation steps:
    1. The draft is claimed (removed) so it can only become one order
    2. It must have lines and a delivery zone
    3. Outside business hours the order is refused (when enforced)
    4. A stored coupon is validated again, now against the customer's
       national ID, unless a combo makes it irrelevant
    5. The order is priced from scratch and stored
    6. The coupon is consumed; if another order got it first, the new
       order is removed again and the draft restored
    7. If every sauce in the order is a coupon sauce, a coupon is issued;
       a refusal (cap reached, customer already has one) does not fail
       the order
    8. The order is queued for the Excel export; later status changes
       follow it there
"""

import logging
import uuid
from datetime import datetime
from typing import Callable, Optional

from app.core.config import get_settings
from app.core.exceptions import ConflictError, NotFoundError, ValidationError
from app.schemas import Coupon, CustomerInfo, Order, OrderDraft, OrderStatus
from app.services.business_hours import BusinessHours, get_business_hours
from app.services.catalog import COUPON_SAUCE_IDS, Catalog, get_catalog, sauces_qualify
from app.services.coupons import CouponService, get_coupon_service, utcnow
from app.services.pricing import get_pricing_engine
from app.services.storage import BaseStorage, get_storage
from app.tasks import queue_order_export, queue_status_update

logger = logging.getLogger(__name__)

Exporter = Callable[[dict], object]
StatusExporter = Callable[[str, str], object]


class OrderService:
    """
    Order confirmation and back-office operations.

    Attributes:
        storage: Document store holding the orders and drafts
        coupons: Coupon service for redemption and issuance
        hours: Opening schedule
        enforce_business_hours: Refuse orders while closed
        exporter: Receives each new order as JSON data (None disables export)
        status_exporter: Receives (order id, new status) after each status change
    """

    def __init__(
        self,
        storage: BaseStorage,
        coupons: CouponService,
        hours: BusinessHours,
        catalog_provider: Callable[[], Catalog] = get_catalog,
        clock: Callable[[], datetime] = utcnow,
        enforce_business_hours: bool = False,
        exporter: Optional[Exporter] = None,
        status_exporter: Optional[StatusExporter] = None,
    ):
        self.storage = storage
        self.coupons = coupons
        self.hours = hours
        self.catalog_provider = catalog_provider
        self.clock = clock
        self.enforce_business_hours = enforce_business_hours
        self.exporter = exporter
        self.status_exporter = status_exporter

    # =========================================================================
    # CONFIRMATION
    # =========================================================================

    def confirm_order(
        self,
        draft_id: str,
        customer: CustomerInfo,
    ) -> tuple[Order, Optional[Coupon]]:
        """
        Confirm a draft into an order.

        The draft is taken out of the store before anything else, so a
        double submit finds it gone. Any failure before the coupon is
        consumed puts the draft back unchanged.

        Args:
            draft_id: Draft token
            customer: Contact details captured at checkout

        Returns:
            The stored order and the coupon it earned, if any

        Raises:
            NotFoundError: Unknown draft, or already being confirmed
            ValidationError: Empty draft or no delivery zone
            ConflictError: Closed, or the coupon was consumed meanwhile
            OrderingError: Any coupon validation failure
        """
        draft = self.storage.pop_draft(draft_id)
        if draft is None:
            raise NotFoundError(f"Draft {draft_id} not found", code="draft_not_found")

        try:
            order = self._build_order(draft, customer)
            self.storage.save_order(order)
        except Exception:
            self.storage.save_draft(draft)
            raise

        if order.coupon_code:
            try:
                self.coupons.mark_coupon_used(order.coupon_code, customer.national_id, order.id)
            except Exception:
                logger.warning(f"Order {order.id} rolled back: coupon {order.coupon_code} not redeemed")
                self.storage.remove_order(order.id)
                self.storage.save_draft(draft)
                raise

        logger.info(
            f"Order {order.id} confirmed for {customer.national_id}: "
            f"total {order.pricing.total:.2f} ({order.zone.value})"
        )

        issued = self._maybe_issue_coupon(order)

        if self.exporter is not None:
            self.exporter(order.model_dump(mode="json"))

        return order, issued

    def _build_order(self, draft: OrderDraft, customer: CustomerInfo) -> Order:
        """Check the draft can be ordered now and price it into an Order."""
        now = self.clock()

        if not draft.lines:
            raise ValidationError("The order has no items", code="empty_order")
        if draft.zone is None:
            raise ValidationError("Choose a delivery zone first", code="zone_required")

        if self.enforce_business_hours and not self.hours.is_open(now):
            raise ConflictError(
                f"The kitchen is closed. {self.hours.next_open_message(now)}",
                code="closed",
            )

        catalog = self.catalog_provider()
        engine = get_pricing_engine(catalog)
        combo_active = engine.detect_combo(draft.lines)

        coupon_code = coupon_percent = None
        if draft.coupon_code and not combo_active:
            if draft.coupon_owner and draft.coupon_owner != customer.national_id:
                logger.warning(
                    f"Coupon {draft.coupon_code} on draft {draft.id} was applied for "
                    f"{draft.coupon_owner}, checkout is for {customer.national_id}"
                )
            coupon_percent = self.coupons.validate_coupon(
                draft.coupon_code, customer.national_id, combo_active=False
            )
            coupon_code = draft.coupon_code
        elif draft.coupon_code:
            logger.info(f"Coupon {draft.coupon_code} dropped from draft {draft.id}: combo active")

        return Order(
            id=f"order-{uuid.uuid4().hex[:12]}",
            name=customer.name,
            national_id=customer.national_id,
            phone=customer.phone,
            address=customer.address,
            email=customer.email,
            lines=draft.lines,
            zone=draft.zone,
            pricing=engine.compute_total(draft.lines, draft.zone, coupon_percent, coupon_code),
            coupon_code=coupon_code,
            status=OrderStatus.PENDING,
            created_at=now,
        )

    def _maybe_issue_coupon(self, order: Order) -> Optional[Coupon]:
        sauces = [s for line in order.lines for s in line.chosen_sauces]
        if not sauces_qualify(sauces, COUPON_SAUCE_IDS):
            return None
        try:
            return self.coupons.issue_coupon(
                owner_identifier=order.national_id,
                display_name=order.name,
                order_id=order.id,
                chosen_sauces=sauces,
            )
        except (ValidationError, ConflictError) as e:
            logger.info(f"No coupon for order {order.id}: {e.code}")
            return None

    # =========================================================================
    # BACK OFFICE
    # =========================================================================

    def list_orders(self, status: Optional[OrderStatus] = None) -> list[Order]:
        """Orders, newest first, optionally filtered by status."""
        orders = self.storage.get_orders()
        if status is not None:
            orders = [o for o in orders if o.status == status]
        return orders

    def get_order(self, order_id: str) -> Order:
        order = self.storage.get_order(order_id)
        if order is None:
            raise NotFoundError(f"Order {order_id} not found", code="order_not_found")
        return order

    def update_status(self, order_id: str, status: OrderStatus) -> Order:
        now = self.clock()
        order = self.storage.update_order(
            order_id,
            lambda o: o.model_copy(update={"status": status, "updated_at": now}),
        )
        if order is None:
            raise NotFoundError(f"Order {order_id} not found", code="order_not_found")
        logger.info(f"Order {order_id} -> {status.value}")

        if self.status_exporter is not None:
            self.status_exporter(order_id, status.value)
        return order

    def find_customer(self, national_id: str) -> Optional[CustomerInfo]:
        """Contact details from the customer's most recent order."""
        order = self.storage.find_latest_order_by_national_id(national_id.strip())
        if order is None:
            return None
        return CustomerInfo(
            name=order.name,
            national_id=order.national_id,
            phone=order.phone,
            address=order.address,
            email=order.email,
        )


def get_order_service() -> OrderService:
    settings = get_settings()
    return OrderService(
        storage=get_storage(),
        coupons=get_coupon_service(),
        hours=get_business_hours(),
        enforce_business_hours=settings.enforce_business_hours,
        exporter=queue_order_export if settings.export_orders else None,
        status_exporter=queue_status_update if settings.export_orders else None,
    )
