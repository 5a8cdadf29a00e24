"""
Admin back-office tests.

Verifies:
- Non-admin users are refused (403) and anonymous users (401)
- Order status updates keep the optional comment
- Stock changes are written to the inventory log
- Payment option secrets are masked unless revealed
"""

from datetime import datetime, timedelta

import pytest
from sqlmodel import select

from app.models import InventoryLog, Order, OrderItem, OrderStatus, PaymentStatus, Product, UserMembership
from app.services.membership import MembershipService


class TestAccess:
    @pytest.mark.parametrize(
        "method,path",
        [
            ("GET", "/api/v1/admin/orders"),
            ("GET", "/api/v1/admin/products"),
            ("GET", "/api/v1/admin/memberships"),
            ("GET", "/api/v1/admin/subscribers"),
            ("GET", "/api/v1/admin/payment-options"),
        ],
    )
    def test_customer_is_forbidden(self, client, customer_headers, method, path):
        resp = client.request(method, path, headers=customer_headers)
        assert resp.status_code == 403, f"{method} {path} returned {resp.status_code}"

    def test_anonymous_is_unauthorized(self, client):
        assert client.get("/api/v1/admin/orders").status_code == 401


@pytest.fixture
def orders(session, customer):
    rows = [
        Order(user_id=customer.id, order_number="ORD-1", total_amount=100.0),
        Order(
            user_id=customer.id,
            order_number="ORD-2",
            total_amount=200.0,
            status=OrderStatus.CONFIRMED,
            payment_status=PaymentStatus.COMPLETED,
        ),
    ]
    for order in rows:
        session.add(order)
    session.commit()
    for order in rows:
        session.refresh(order)
    return rows


class TestOrders:
    def test_filter_by_payment_status(self, client, admin_headers, orders):
        resp = client.get("/api/v1/admin/orders", params={"payment_status": "completed"}, headers=admin_headers)

        assert resp.status_code == 200
        body = resp.json()
        assert body["total"] == 1
        assert [o["order_number"] for o in body["orders"]] == ["ORD-2"]

    def test_pagination(self, client, admin_headers, orders):
        body = client.get("/api/v1/admin/orders", params={"limit": 1}, headers=admin_headers).json()

        assert body["total"] == 2
        assert body["pages"] == 2
        assert len(body["orders"]) == 1

    def test_status_update_with_comment(self, client, session, admin_headers, orders):
        order = orders[0]

        resp = client.put(
            f"/api/v1/admin/orders/{order.id}/status",
            json={"status": "shipped", "comment": "Sent with BlueDart"},
            headers=admin_headers,
        )

        assert resp.status_code == 200
        assert resp.json()["status"] == "shipped"
        session.refresh(order)
        assert order.status == OrderStatus.SHIPPED
        assert order.status_comment == "Sent with BlueDart"

    def test_unknown_order(self, client, admin_headers):
        assert client.get("/api/v1/admin/orders/999", headers=admin_headers).status_code == 404


class TestInventory:
    def test_create_product_logs_initial_stock(self, client, session, admin_headers, admin_user):
        resp = client.post("/api/v1/admin/products", json={
            "name": "Pro Skating Gloves",
            "category": "Protective Gear",
            "price": 39.99,
            "stock_quantity": 75,
        }, headers=admin_headers)

        assert resp.status_code == 200
        log = session.exec(select(InventoryLog)).one()
        assert (log.quantity_change, log.created_by) == (75, admin_user.id)

    def test_stock_update_writes_delta(self, client, session, admin_headers, admin_user, product):
        resp = client.put(
            f"/api/v1/admin/products/{product.id}/stock",
            json={"stock_quantity": 4, "reason": "Damaged in storage"},
            headers=admin_headers,
        )

        assert resp.status_code == 200
        assert resp.json()["stock_quantity"] == 4
        logs = client.get(f"/api/v1/admin/products/{product.id}/inventory-logs", headers=admin_headers).json()
        assert len(logs) == 1
        assert logs[0]["quantity_change"] == -6
        assert logs[0]["reason"] == "Damaged in storage"
        assert logs[0]["created_by"] == admin_user.id

    def test_negative_stock_is_rejected(self, client, admin_headers, product):
        resp = client.put(f"/api/v1/admin/products/{product.id}/stock", json={"stock_quantity": -1}, headers=admin_headers)

        assert resp.status_code == 400

    def test_list_includes_inactive(self, client, session, admin_headers, product):
        product.is_active = False
        session.add(product)
        session.commit()

        assert len(client.get("/api/v1/admin/products", headers=admin_headers).json()) == 1
        assert client.get("/api/v1/products/").json() == []

    def test_delete_unordered_product(self, client, session, admin_headers, fake_s3):
        product = Product(name="Blade Guards", category="Accessories", price=49.99, image_url=f"{fake_s3.base_url}/products/a.jpg")
        session.add(product)
        session.commit()
        product_id = product.id

        resp = client.delete(f"/api/v1/admin/products/{product_id}", headers=admin_headers)

        assert resp.status_code == 200
        assert session.get(Product, product_id) is None
        assert fake_s3.deleted == [f"{fake_s3.base_url}/products/a.jpg"]

    def test_delete_ordered_product_deactivates(self, client, session, admin_headers, product, orders):
        session.add(OrderItem(order_id=orders[0].id, product_id=product.id, quantity=1, price=100.0))
        session.commit()

        resp = client.delete(f"/api/v1/admin/products/{product.id}", headers=admin_headers)

        assert resp.status_code == 200
        session.refresh(product)
        assert product.is_active is False


class TestMemberships:
    def test_plan_crud(self, client, admin_headers):
        created = client.post("/api/v1/admin/memberships", json={
            "name": "Platinum",
            "price": 999.0,
            "duration_days": 90,
            "benefits": ["Free rink entry", "Coach sessions"],
        }, headers=admin_headers)
        assert created.status_code == 200
        plan_id = created.json()["id"]
        assert created.json()["benefits"] == {"list": ["Free rink entry", "Coach sessions"]}

        updated = client.put(f"/api/v1/admin/memberships/{plan_id}", json={"is_active": False}, headers=admin_headers)
        assert updated.json()["is_active"] is False
        assert client.get("/api/v1/memberships/").json() == []

        assert client.delete(f"/api/v1/admin/memberships/{plan_id}", headers=admin_headers).status_code == 200
        assert client.get("/api/v1/admin/memberships", headers=admin_headers).json() == []

    def test_plan_with_subscribers_is_deactivated(self, client, session, admin_headers, customer, plan):
        MembershipService(session).create_or_queue(customer.id, plan.id)

        resp = client.delete(f"/api/v1/admin/memberships/{plan.id}", headers=admin_headers)

        assert resp.status_code == 200
        assert resp.json()["message"] == "Membership has subscribers and was deactivated"
        session.refresh(plan)
        assert plan.is_active is False
        subscriptions = session.exec(select(UserMembership).where(UserMembership.membership_id == plan.id)).all()
        assert [row.user_id for row in subscriptions] == [customer.id]
        assert client.get("/api/v1/memberships/").json() == []

    def test_zero_duration_is_rejected(self, client, admin_headers):
        resp = client.post("/api/v1/admin/memberships", json={"name": "Day", "price": 1.0, "duration_days": 0}, headers=admin_headers)

        assert resp.status_code == 400

    def test_subscribers(self, client, session, admin_headers, customer, other_customer, plan):
        service = MembershipService(session)
        service.create_or_queue(customer.id, plan.id, now=datetime.utcnow() - timedelta(days=60))
        service.create_or_queue(other_customer.id, plan.id)

        active = client.get("/api/v1/admin/subscribers", params={"state": "active"}, headers=admin_headers).json()
        expired = client.get("/api/v1/admin/subscribers", params={"state": "expired"}, headers=admin_headers).json()

        assert [row["user"]["email"] for row in active] == ["rival@example.com"]
        assert [row["user"]["email"] for row in expired] == ["skater@example.com"]
        assert active[0]["membership"]["name"] == "Gold"


class TestPaymentOptions:
    def test_secrets_are_masked(self, client, admin_headers):
        client.post("/api/v1/admin/payment-options", json={
            "provider": "payu",
            "merchant_key": "gtKFFx",
            "merchant_salt": "eCwWELxi",
        }, headers=admin_headers)

        masked = client.get("/api/v1/admin/payment-options", headers=admin_headers).json()
        revealed = client.get("/api/v1/admin/payment-options", params={"reveal": "true"}, headers=admin_headers).json()

        assert masked[0]["merchant_salt"] == "****ELxi"
        assert masked[0]["merchant_key"] == "gtKFFx"
        assert revealed[0]["merchant_salt"] == "eCwWELxi"

    def test_duplicate_provider_conflicts(self, client, admin_headers):
        body = {"provider": "payu", "merchant_key": "k1"}
        assert client.post("/api/v1/admin/payment-options", json=body, headers=admin_headers).status_code == 200

        resp = client.post("/api/v1/admin/payment-options", json=body, headers=admin_headers)

        assert resp.status_code == 409

    def test_merchant_key_required(self, client, admin_headers):
        resp = client.post("/api/v1/admin/payment-options", json={"provider": "paytm"}, headers=admin_headers)

        assert resp.status_code == 400
        assert resp.json()["detail"] == "Merchant Key is required"

    def test_update_and_delete(self, client, admin_headers):
        option_id = client.post(
            "/api/v1/admin/payment-options", json={"provider": "paypal", "merchant_key": "pp"}, headers=admin_headers
        ).json()["id"]

        updated = client.put(f"/api/v1/admin/payment-options/{option_id}", json={"is_enabled": False}, headers=admin_headers)
        assert updated.json()["is_enabled"] is False

        assert client.delete(f"/api/v1/admin/payment-options/{option_id}", headers=admin_headers).status_code == 200
        assert client.get("/api/v1/admin/payment-options", headers=admin_headers).json() == []
