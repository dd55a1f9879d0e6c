from datetime import datetime, timezone

import fakeredis
import pytest

from app.core.exceptions import ConflictError, StorageUnavailableError
from app.schemas import Coupon, DeliveryZone, Order, OrderDraft, OrderLine, OrderStatus, PricedOrder
from app.services.storage import FileStorage, RedisStorage, get_storage

NOW = datetime(2026, 1, 10, 20, 0, tzinfo=timezone.utc)


@pytest.fixture(params=["file", "redis"])
def store(request, tmp_path):
    if request.param == "file":
        return FileStorage(tmp_path / "docs", lock_timeout=5)
    return RedisStorage(client=fakeredis.FakeRedis(decode_responses=True),
                        key_prefix="test:", max_retries=3)


def make_coupon(n=1, owner="45678912"):
    return Coupon(id=f"coupon-{n}", code=f"SANTO13-AAAA{n:02d}", owner_identifier=owner,
                  display_name="Rosa", discount_percent=13.0, created_at=NOW,
                  expires_at=datetime(2026, 3, 1, 4, 59, 59, tzinfo=timezone.utc))


def make_order(order_id, national_id="45678912", name="Rosa Quispe"):
    return Order(
        id=order_id, name=name, national_id=national_id, phone="987654321",
        address="Jr. Grau 123", lines=[OrderLine(product_id="ensalada-clasica")],
        zone=DeliveryZone.ZONE_A,
        pricing=PricedOrder(subtotal=18.5, delivery_fee=4.0, total=22.5),
        created_at=NOW,
    )


# =============================================================================
# SHARED CONTRACT
# =============================================================================

def test_empty_documents(store):
    assert store.get_coupons() == []
    assert store.get_orders() == []
    assert store.get_draft("missing") is None
    assert store.get_menu_stock() == {}


def test_coupons_append_and_replace(store):
    store.append_coupon(make_coupon(1))
    store.append_coupon(make_coupon(2, owner="11111111"))
    assert [c.id for c in store.get_coupons()] == ["coupon-1", "coupon-2"]

    store.replace_coupons([make_coupon(3)])
    assert [c.id for c in store.get_coupons()] == ["coupon-3"]


def test_failed_mutator_writes_nothing(store):
    store.append_coupon(make_coupon(1))

    def refuse(coupons):
        coupons.append(make_coupon(2))
        raise ConflictError("no")

    with pytest.raises(ConflictError):
        store.update_coupons(refuse)
    assert len(store.get_coupons()) == 1


def test_orders_newest_first(store):
    store.save_order(make_order("order-1"))
    store.save_order(make_order("order-2", name="Rosa Q."))

    assert [o.id for o in store.get_orders()] == ["order-2", "order-1"]
    assert store.get_order("order-1").id == "order-1"
    assert store.get_order("nope") is None
    assert store.find_latest_order_by_national_id("45678912").name == "Rosa Q."
    assert store.find_latest_order_by_national_id("00000000") is None


def test_update_order(store):
    store.save_order(make_order("order-1"))

    updated = store.update_order("order-1", lambda o: o.model_copy(update={"status": OrderStatus.DELIVERED}))

    assert updated.status == OrderStatus.DELIVERED
    assert store.get_order("order-1").status == OrderStatus.DELIVERED
    assert store.update_order("nope", lambda o: o) is None


def test_remove_order(store):
    store.save_order(make_order("order-1"))
    store.save_order(make_order("order-2"))

    assert store.remove_order("order-1") is True
    assert store.remove_order("order-1") is False
    assert [o.id for o in store.get_orders()] == ["order-2"]


def test_drafts_crud(store):
    draft = OrderDraft(id="d1", lines=[OrderLine(product_id="ensalada-clasica")], created_at=NOW)
    store.save_draft(draft)

    loaded = store.get_draft("d1")
    assert loaded.id == "d1"
    assert loaded.lines == draft.lines
    updated = store.update_draft("d1", lambda d: d.model_copy(update={"zone": DeliveryZone.ZONE_C}))
    assert updated.zone == DeliveryZone.ZONE_C
    assert store.get_draft("d1").zone == DeliveryZone.ZONE_C
    assert store.update_draft("nope", lambda d: d) is None

    assert store.delete_draft("d1") is True
    assert store.delete_draft("d1") is False
    assert store.get_draft("d1") is None


def test_pop_draft_hands_it_back_once(store):
    store.save_draft(OrderDraft(id="d1", lines=[OrderLine(product_id="ensalada-clasica")],
                                created_at=NOW))

    popped = store.pop_draft("d1")

    assert popped.id == "d1"
    assert popped.lines[0].product_id == "ensalada-clasica"
    assert store.pop_draft("d1") is None
    assert store.get_draft("d1") is None


def test_menu_stock(store):
    assert store.set_sold_out("duo-dilema", True) == {"duo-dilema": True}
    store.set_sold_out("ensalada-caesar", True)
    store.set_sold_out("duo-dilema", False)

    assert store.get_menu_stock() == {"duo-dilema": False, "ensalada-caesar": True}


def test_health_check(store):
    assert store.health_check() is True


# =============================================================================
# FILE BACKEND
# =============================================================================

def test_file_documents_are_json_on_disk(tmp_path):
    store = FileStorage(tmp_path / "docs")
    store.append_coupon(make_coupon(1))

    assert (tmp_path / "docs" / "coupons.json").exists()
    assert FileStorage(tmp_path / "docs").get_coupons()[0].code == "SANTO13-AAAA01"


def test_file_clear_all(tmp_path):
    store = FileStorage(tmp_path / "docs")
    store.append_coupon(make_coupon(1))
    store.save_order(make_order("order-1"))

    store.clear_all()

    assert store.get_coupons() == []
    assert store.get_orders() == []
    assert list((tmp_path / "docs").iterdir()) == []


# =============================================================================
# REDIS BACKEND
# =============================================================================

def test_redis_retries_after_concurrent_write():
    client = fakeredis.FakeRedis(decode_responses=True)
    store = RedisStorage(client=client, key_prefix="test:", max_retries=3)
    attempts = []

    def mutator(current):
        attempts.append(len(current))
        if len(attempts) == 1:
            # Another writer sneaks in between WATCH and EXEC
            client.set("test:coupons", '[{"sneaky": true}]')
        return current + [{"mine": True}], len(current)

    assert store.update_document("coupons", mutator, []) == 1
    assert attempts == [0, 1]
    assert store.read_document("coupons", []) == [{"sneaky": True}, {"mine": True}]


def test_redis_gives_up_after_max_retries():
    client = fakeredis.FakeRedis(decode_responses=True)
    store = RedisStorage(client=client, key_prefix="test:", max_retries=2)

    def always_contended(current):
        client.set("test:menu_stock", "{}")
        return current, None

    with pytest.raises(StorageUnavailableError):
        store.update_document("menu_stock", always_contended, {})


def test_factory_uses_file_storage_in_development():
    assert get_storage().provider_name == "file"
    assert get_storage() is get_storage()
