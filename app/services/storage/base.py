"""
Document Storage Abstract Base Class

Defines the contract shared by the file-backed (development) and
Redis-backed (production) stores. Data lives in a handful of named JSON
documents:

    coupons     list of Coupon
    orders      list of Order, newest first
    drafts      mapping draft id -> OrderDraft
    menu_stock  mapping product id -> sold-out flag

Every read-modify-write goes through update_document(), which each
implementation makes atomic per document. Rules such as the coupon cap
are checked inside the mutator, so the check and the write cannot be
interleaved with another request.

Design Pattern: Strategy Pattern
    - The rest of the application only sees BaseStorage
    - The adapter is picked once from ENV_MODE by get_storage()
"""

from abc import ABC, abstractmethod
from typing import Any, Callable, Optional, TypeVar

from app.schemas import Coupon, Order, OrderDraft

T = TypeVar("T")

# mutator(current document) -> (new document, value handed back to the caller)
Mutator = Callable[[Any], tuple[Any, T]]


class BaseStorage(ABC):
    """
    Abstract base class for document stores.

    Implementations only provide the four primitives; the typed helpers
    for coupons, orders, drafts and menu stock are built on top of them.
    """

    COUPONS = "coupons"
    ORDERS = "orders"
    DRAFTS = "drafts"
    MENU_STOCK = "menu_stock"

    @property
    @abstractmethod
    def provider_name(self) -> str:
        """Return the name of the storage provider ("file", "redis")."""
        pass

    @abstractmethod
    def read_document(self, key: str, default: Any) -> Any:
        """
        Load a document.

        Args:
            key: Document name
            default: Value returned (as a copy) when the document does not exist
        """
        pass

    @abstractmethod
    def write_document(self, key: str, value: Any) -> None:
        """Replace a document unconditionally."""
        pass

    @abstractmethod
    def update_document(self, key: str, mutator: Mutator, default: Any) -> Any:
        """
        Atomically read, transform and write a document.

        The mutator receives the current document and returns the new
        document plus a result for the caller. An exception raised by the
        mutator aborts the update without writing anything.

        Raises:
            StorageUnavailableError: If the update could not be made atomic
                (lock timeout, too many concurrent writers)
        """
        pass

    @abstractmethod
    def health_check(self) -> bool:
        """Verify the backing store is reachable."""
        pass

    # =========================================================================
    # COUPONS
    # =========================================================================

    def get_coupons(self) -> list[Coupon]:
        return [Coupon.model_validate(c) for c in self.read_document(self.COUPONS, [])]

    def append_coupon(self, coupon: Coupon) -> Coupon:
        def _append(current: list) -> tuple[list, Coupon]:
            current.append(coupon.model_dump(mode="json"))
            return current, coupon

        return self.update_document(self.COUPONS, _append, [])

    def replace_coupons(self, coupons: list[Coupon]) -> None:
        self.write_document(self.COUPONS, [c.model_dump(mode="json") for c in coupons])

    def update_coupons(self, mutator: Callable[[list[Coupon]], tuple[list[Coupon], T]]) -> T:
        """Atomic read-modify-write over the typed coupon list."""
        def _apply(current: list) -> tuple[list, T]:
            coupons = [Coupon.model_validate(c) for c in current]
            updated, result = mutator(coupons)
            return [c.model_dump(mode="json") for c in updated], result

        return self.update_document(self.COUPONS, _apply, [])

    # =========================================================================
    # ORDERS
    # =========================================================================

    def get_orders(self) -> list[Order]:
        return [Order.model_validate(o) for o in self.read_document(self.ORDERS, [])]

    def get_order(self, order_id: str) -> Optional[Order]:
        for order in self.get_orders():
            if order.id == order_id:
                return order
        return None

    def save_order(self, order: Order) -> Order:
        def _prepend(current: list) -> tuple[list, Order]:
            current.insert(0, order.model_dump(mode="json"))
            return current, order

        return self.update_document(self.ORDERS, _prepend, [])

    def remove_order(self, order_id: str) -> bool:
        def _drop(current: list) -> tuple[list, bool]:
            kept = [raw for raw in current if raw.get("id") != order_id]
            return kept, len(kept) != len(current)

        return self.update_document(self.ORDERS, _drop, [])

    def update_order(self, order_id: str, mutator: Callable[[Order], Order]) -> Optional[Order]:
        """Apply mutator to one order; returns None when the id is unknown."""
        def _apply(current: list) -> tuple[list, Optional[Order]]:
            for index, raw in enumerate(current):
                if raw.get("id") == order_id:
                    updated = mutator(Order.model_validate(raw))
                    current[index] = updated.model_dump(mode="json")
                    return current, updated
            return current, None

        return self.update_document(self.ORDERS, _apply, [])

    def find_latest_order_by_national_id(self, national_id: str) -> Optional[Order]:
        # Orders are stored newest first
        for order in self.get_orders():
            if order.national_id == national_id:
                return order
        return None

    # =========================================================================
    # DRAFTS
    # =========================================================================

    def get_draft(self, draft_id: str) -> Optional[OrderDraft]:
        raw = self.read_document(self.DRAFTS, {}).get(draft_id)
        return OrderDraft.model_validate(raw) if raw else None

    def save_draft(self, draft: OrderDraft) -> OrderDraft:
        def _put(current: dict) -> tuple[dict, OrderDraft]:
            current[draft.id] = draft.model_dump(mode="json")
            return current, draft

        return self.update_document(self.DRAFTS, _put, {})

    def update_draft(
        self,
        draft_id: str,
        mutator: Callable[[OrderDraft], OrderDraft],
    ) -> Optional[OrderDraft]:
        """Apply mutator to one draft; returns None when the id is unknown."""
        def _apply(current: dict) -> tuple[dict, Optional[OrderDraft]]:
            raw = current.get(draft_id)
            if raw is None:
                return current, None
            updated = mutator(OrderDraft.model_validate(raw))
            current[draft_id] = updated.model_dump(mode="json")
            return current, updated

        return self.update_document(self.DRAFTS, _apply, {})

    def delete_draft(self, draft_id: str) -> bool:
        def _pop(current: dict) -> tuple[dict, bool]:
            return current, current.pop(draft_id, None) is not None

        return self.update_document(self.DRAFTS, _pop, {})

    def pop_draft(self, draft_id: str) -> Optional[OrderDraft]:
        """Remove a draft and hand it back; None when it is already gone."""
        def _pop(current: dict) -> tuple[dict, Optional[dict]]:
            return current, current.pop(draft_id, None)

        raw = self.update_document(self.DRAFTS, _pop, {})
        return OrderDraft.model_validate(raw) if raw else None

    # =========================================================================
    # MENU STOCK
    # =========================================================================

    def get_menu_stock(self) -> dict[str, bool]:
        return dict(self.read_document(self.MENU_STOCK, {}))

    def set_sold_out(self, product_id: str, sold_out: bool) -> dict[str, bool]:
        def _set(current: dict) -> tuple[dict, dict]:
            current[product_id] = sold_out
            return current, dict(current)

        return self.update_document(self.MENU_STOCK, _set, {})
