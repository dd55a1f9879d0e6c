import pytest
from fastapi.testclient import TestClient

from app.main import app

CUSTOMER = {
    "name": "Rosa Quispe",
    "national_id": "45678912",
    "phone": "987654321",
    "address": "Jr. Grau 123, Chancay",
}


@pytest.fixture
def client():
    with TestClient(app) as client:
        yield client


def create_draft(client, lines, zone="zoneA"):
    response = client.post("/api/drafts", json={"lines": lines, "zone": zone})
    assert response.status_code == 201
    return response.json()


def test_root_and_health(client):
    assert client.get("/").json()["health"] == "/health"

    health = client.get("/health").json()
    assert health["status"] == "operational"
    assert health["storage_provider"] == "file"


def test_menu_and_stock(client):
    menu = client.get("/api/menu").json()
    assert len(menu["products"]) == 7
    assert menu["delivery_fees"]["zoneC"] == 7.0

    response = client.patch("/api/menu-stock", json={"product_id": "santo-pecado", "sold_out": True})
    assert response.json() == {"santo-pecado": True}

    products = {p["id"]: p for p in client.get("/api/menu").json()["products"]}
    assert products["santo-pecado"]["sold_out"] is True

    response = client.patch("/api/menu-stock", json={"product_id": "pizza", "sold_out": True})
    assert response.status_code == 404


def test_quote(client):
    response = client.post("/api/pricing/quote", json={
        "lines": [
            {"product_id": "duo-dilema", "chosen_sauces": ["barbecue", "ahumada"]},
            {"product_id": "ensalada-clasica"},
        ],
        "zone": "other",
    })

    assert response.status_code == 200
    assert response.json()["total"] == 47.50
    assert response.json()["combo_active"] is True


def test_quote_rejects_bad_sauce_count(client):
    response = client.post("/api/pricing/quote", json={
        "lines": [{"product_id": "santo-pecado", "chosen_sauces": ["barbecue"]}],
    })

    assert response.status_code == 400
    assert response.json() == {
        "success": False,
        "error": "sauce_count",
        "detail": "Santo Pecado x1 needs 3 sauce(s), got 1",
    }


def test_draft_lifecycle(client):
    body = create_draft(client, [{"product_id": "ensalada-clasica"}], zone=None)
    draft_id = body["draft"]["id"]
    assert body["pricing"]["total"] == 18.50

    body = client.post(f"/api/drafts/{draft_id}/lines", json={
        "product_id": "pequeno-dilema", "chosen_sauces": ["honey-mustard"],
    }).json()
    assert body["draft"]["lines"][1]["promo_flag"] is True
    assert body["pricing"]["combo_active"] is True
    # 18.50 + 20.00 (promo reverted under combo) - 5.00
    assert body["pricing"]["total"] == 33.50

    body = client.put(f"/api/drafts/{draft_id}/zone", json={"zone": "zoneB"}).json()
    assert body["pricing"]["total"] == 38.50

    body = client.put(f"/api/drafts/{draft_id}/lines/0", json={
        "product_id": "duo-dilema", "chosen_sauces": ["teriyaki", "macerichada"],
    }).json()
    # 23.80 + 14.00 + 5.00
    assert body["pricing"]["total"] == 42.80

    body = client.delete(f"/api/drafts/{draft_id}/lines/1").json()
    assert len(body["draft"]["lines"]) == 1

    assert client.delete(f"/api/drafts/{draft_id}/lines/7").status_code == 400
    assert client.get(f"/api/drafts/{draft_id}").status_code == 200
    assert client.delete(f"/api/drafts/{draft_id}").status_code == 204
    assert client.get(f"/api/drafts/{draft_id}").json()["error"] == "draft_not_found"


def test_checkout_earns_then_redeems_coupon(client):
    draft = create_draft(client, [{"product_id": "duo-dilema", "chosen_sauces": ["barbecue", "ahumada"]}])

    response = client.post("/api/orders", json={"draft_id": draft["draft"]["id"], "customer": CUSTOMER})
    assert response.status_code == 201
    first = response.json()
    assert first["order"]["pricing"]["total"] == 38.00
    code = first["issued_coupon"]["code"]

    eligibility = client.get("/api/coupons/eligibility", params={"owner_identifier": "45678912"}).json()
    assert eligibility["has_coupon"] is True
    assert eligibility["remaining_slots"] == 12

    draft = create_draft(client, [{"product_id": "santo-pecado",
                                   "chosen_sauces": ["barbecue", "ahumada", "teriyaki"],
                                   "add_on_ids": ["extra-salsa"]}])
    draft_id = draft["draft"]["id"]
    body = client.post(f"/api/drafts/{draft_id}/coupon",
                       json={"code": code, "owner_identifier": "45678912"}).json()
    assert body["pricing"]["coupon_discount"] == 6.50

    second = client.post("/api/orders", json={"draft_id": draft_id, "customer": CUSTOMER}).json()
    assert second["order"]["coupon_code"] == code
    assert second["order"]["pricing"]["total"] == 47.50

    coupons = client.get("/api/coupons").json()
    assert coupons[0]["status"] == "used"

    response = client.post("/api/coupons/validate", json={"code": code, "owner_identifier": "45678912"})
    assert response.status_code == 409
    assert response.json()["error"] == "already_used"


def test_remove_coupon_from_draft(client):
    issued = client.post("/api/coupons", json={
        "owner_identifier": "45678912", "display_name": "Rosa", "order_id": "order-0",
        "chosen_sauces": ["parmesano-ajo"],
    }).json()["coupon"]
    draft_id = create_draft(client, [{"product_id": "ensalada-caesar"}])["draft"]["id"]

    client.post(f"/api/drafts/{draft_id}/coupon",
                json={"code": issued["code"], "owner_identifier": "45678912"})
    body = client.delete(f"/api/drafts/{draft_id}/coupon").json()

    assert body["draft"]["coupon_code"] is None
    assert body["pricing"]["coupon_discount"] == 0.0


def test_coupon_endpoints(client):
    response = client.post("/api/coupons", json={
        "owner_identifier": "45678912", "display_name": "Rosa", "order_id": "order-1",
        "chosen_sauces": ["barbecue", "buffalo-picante"],
    })
    assert response.status_code == 201
    code = response.json()["coupon"]["code"]

    response = client.post("/api/coupons", json={
        "owner_identifier": "45678912", "display_name": "Rosa", "order_id": "order-2",
        "chosen_sauces": ["barbecue"],
    })
    assert response.status_code == 409
    assert response.json()["error"] == "duplicate_owner"

    response = client.post("/api/coupons/validate", json={"code": code, "owner_identifier": "11111111"})
    assert response.status_code == 403

    response = client.post("/api/coupons/validate", json={
        "code": code, "owner_identifier": "45678912",
        "lines": [{"product_id": "duo-dilema"}, {"product_id": "ensalada-clasica"}],
    })
    assert response.status_code == 409
    assert response.json()["error"] == "combo_active"

    response = client.post("/api/coupons/validate", json={"code": code, "owner_identifier": "45678912"})
    assert response.json() == {"valid": True, "code": code, "discount_percent": 13.0}

    response = client.post("/api/coupons/mark-used", json={"code": code, "owner_identifier": "45678912"})
    assert response.json()["status"] == "used"
    response = client.post("/api/coupons/mark-used", json={"code": code, "owner_identifier": "45678912"})
    assert response.status_code == 409

    response = client.post("/api/coupons/validate", json={"code": "SANTO13-ZZZZZZ", "owner_identifier": "1"})
    assert response.status_code == 404


def test_orders_admin_and_customer_lookup(client):
    draft_id = create_draft(client, [{"product_id": "ensalada-clasica"}])["draft"]["id"]
    order = client.post("/api/orders", json={"draft_id": draft_id, "customer": CUSTOMER}).json()["order"]

    listing = client.get("/api/orders").json()
    assert listing["total"] == 1

    response = client.patch(f"/api/orders/{order['id']}/status", json={"status": "delivered"})
    assert response.json()["status"] == "delivered"
    assert client.get(f"/api/orders/{order['id']}").json()["status"] == "delivered"
    assert client.get("/api/orders", params={"status": "pending"}).json()["total"] == 0
    assert client.get("/api/orders/nope").status_code == 404

    found = client.get("/api/customers", params={"national_id": "45678912"}).json()
    assert found["found"] is True
    assert found["customer"]["address"] == CUSTOMER["address"]
    assert client.get("/api/customers", params={"national_id": "00000000"}).json()["found"] is False
    assert client.get("/api/customers", params={"national_id": "123"}).status_code == 422


def test_order_needs_valid_customer(client):
    draft_id = create_draft(client, [{"product_id": "ensalada-clasica"}])["draft"]["id"]

    response = client.post("/api/orders", json={
        "draft_id": draft_id, "customer": {**CUSTOMER, "national_id": "1234"},
    })

    assert response.status_code == 422
