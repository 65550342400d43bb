"""
HTTP boundary tests through the Flask test client.

Verifies:
- Unauthenticated requests return 401; role gating returns 403
- Money crosses the boundary as two-decimal numbers
- Service errors map to their status codes with {"error", "details"}
"""

import pytest

from posapp.extensions import db
from posapp.models import ProductVariant
from posapp.services import shift_service


def sale_payload(variant, quantity=1, payment_amount=None, **extra):
    body = {
        "items": [{"variant_id": variant.id, "quantity": quantity, "unit_price": variant.price_cents / 100}],
        "payment_method": "cash",
        "payment_amount": payment_amount if payment_amount is not None else variant.price_cents * quantity / 100,
    }
    body.update(extra)
    return body


# =============================================================================
# AUTH
# =============================================================================


class TestAuthRoutes:

    def test_health_is_public(self, client):
        resp = client.get("/api/health")
        assert resp.status_code == 200
        assert resp.json["status"] == "ok"

    @pytest.mark.parametrize(
        "method,path",
        [
            ("GET", "/api/auth/me"),
            ("GET", "/api/users"),
            ("GET", "/api/customers"),
            ("GET", "/api/products"),
            ("GET", "/api/variants/low-stock"),
            ("POST", "/api/transactions"),
            ("GET", "/api/shifts/current"),
            ("GET", "/api/reports/dashboard"),
        ],
    )
    def test_requires_auth(self, client, method, path):
        resp = getattr(client, method.lower())(path)
        assert resp.status_code == 401

    def test_login_me_logout(self, client, cashier):
        resp = client.post("/api/auth/login", json={"username": "cashier", "password": "secret1"})
        assert resp.status_code == 200
        token = resp.json["token"]
        headers = {"Authorization": f"Bearer {token}"}

        me = client.get("/api/auth/me", headers=headers)
        assert me.status_code == 200
        assert me.json["user"]["username"] == "cashier"

        assert client.post("/api/auth/logout", headers=headers).status_code == 200
        assert client.get("/api/auth/me", headers=headers).status_code == 401

    def test_bad_login(self, client, cashier):
        resp = client.post("/api/auth/login", json={"username": "cashier", "password": "nope-nope"})
        assert resp.status_code == 401

    def test_login_requires_fields(self, client):
        resp = client.post("/api/auth/login", json={"username": "cashier"})
        assert resp.status_code == 400


class TestRoleGating:

    def test_cashier_cannot_manage_users(self, client, cashier_headers):
        resp = client.post(
            "/api/users",
            json={"username": "x_user", "email": "x@pos.test", "password": "secret1",
                  "full_name": "X", "role": "cashier"},
            headers=cashier_headers,
        )
        assert resp.status_code == 403
        assert resp.json["required_roles"] == ["admin"]

    def test_cashier_cannot_refund(self, client, cashier_headers, variant):
        resp = client.post("/api/transactions", json=sale_payload(variant), headers=cashier_headers)
        txn_id = resp.json["transaction"]["id"]

        resp = client.post(f"/api/transactions/{txn_id}/refund", headers=cashier_headers)
        assert resp.status_code == 403

    def test_cashier_cannot_read_reports(self, client, cashier_headers):
        assert client.get("/api/reports/dashboard", headers=cashier_headers).status_code == 403

    def test_admin_creates_user(self, client, admin_headers):
        resp = client.post(
            "/api/users",
            json={"username": "newbie", "email": "newbie@pos.test", "password": "secret1",
                  "full_name": "New Bie", "role": "cashier"},
            headers=admin_headers,
        )
        assert resp.status_code == 201
        assert resp.json["user"]["role"] == "cashier"

        dup = client.post(
            "/api/users",
            json={"username": "newbie", "email": "other@pos.test", "password": "secret1",
                  "full_name": "New Bie", "role": "cashier"},
            headers=admin_headers,
        )
        assert dup.status_code == 409


# =============================================================================
# CATALOG
# =============================================================================


class TestCatalogRoutes:

    def test_create_product_and_variant(self, client, manager_headers):
        product = client.post(
            "/api/products", json={"name": "Hoodie", "base_price": 39.99}, headers=manager_headers
        )
        assert product.status_code == 201
        product_id = product.json["product"]["id"]
        assert product.json["product"]["base_price"] == 39.99

        variant = client.post(
            "/api/variants",
            json={"product_id": product_id, "variant_name": "Hoodie / L", "sku": "HD-L",
                  "price": 41.50, "stock_quantity": 4, "low_stock_threshold": 5, "size": "L"},
            headers=manager_headers,
        )
        assert variant.status_code == 201
        assert variant.json["variant"]["price"] == 41.5
        assert variant.json["variant"]["is_low_stock"] is True

        low = client.get("/api/variants/low-stock", headers=manager_headers)
        assert [v["sku"] for v in low.json["variants"]] == ["HD-L"]

    def test_price_with_three_decimals_rejected(self, client, manager_headers):
        resp = client.post(
            "/api/products", json={"name": "Hoodie", "base_price": 39.999}, headers=manager_headers
        )
        assert resp.status_code == 400

    def test_cashier_cannot_create_products(self, client, cashier_headers):
        resp = client.post("/api/products", json={"name": "Hoodie", "base_price": 1}, headers=cashier_headers)
        assert resp.status_code == 403

    def test_stock_adjustment(self, client, manager_headers, variant):
        resp = client.post(f"/api/variants/{variant.id}/stock", json={"quantity": 5}, headers=manager_headers)
        assert resp.status_code == 200
        assert resp.json["variant"]["stock_quantity"] == 15

        resp = client.post(
            f"/api/variants/{variant.id}/stock", json={"quantity": 2, "mode": "absolute"}, headers=manager_headers
        )
        assert resp.json["variant"]["stock_quantity"] == 2

        resp = client.post(f"/api/variants/{variant.id}/stock", json={"quantity": -3}, headers=manager_headers)
        assert resp.status_code == 409
        assert resp.json["details"] == {"variant_id": variant.id, "available": 2, "requested": 3}

    def test_stock_adjustment_unknown_variant(self, client, manager_headers):
        resp = client.post("/api/variants/424242/stock", json={"quantity": 1}, headers=manager_headers)
        assert resp.status_code == 404

    @pytest.mark.parametrize("quantity", [10 ** 19, -(10 ** 19), 2 ** 31])
    def test_stock_adjustment_out_of_range(self, client, manager_headers, variant, quantity):
        resp = client.post(f"/api/variants/{variant.id}/stock", json={"quantity": quantity}, headers=manager_headers)

        assert resp.status_code == 400
        assert db.session.get(ProductVariant, variant.id, populate_existing=True).stock_quantity == 10


# =============================================================================
# TRANSACTIONS
# =============================================================================


class TestTransactionRoutes:

    def test_reference_sale(self, client, cashier_headers, make_variant):
        variant = make_variant(stock=10, threshold=5, price_cents=1599)

        resp = client.post(
            "/api/transactions",
            json={
                "items": [{"variant_id": variant.id, "quantity": 3, "unit_price": 15.99, "discount_amount": 1.00}],
                "payment_method": "cash",
                "payment_amount": 50.00,
                "discount_amount": 2.00,
            },
            headers=cashier_headers,
        )

        assert resp.status_code == 201
        txn = resp.json["transaction"]
        assert txn["subtotal"] == 46.97
        assert txn["discount_amount"] == 2.00
        assert txn["tax_amount"] == 0
        assert txn["total_amount"] == 44.97
        assert txn["change_amount"] == 5.03
        assert txn["status"] == "completed"

        stock = db.session.get(ProductVariant, variant.id, populate_existing=True).stock_quantity
        assert stock == 7

        items = client.get(f"/api/transactions/{txn['id']}/items", headers=cashier_headers)
        assert items.status_code == 200
        assert items.json["items"][0]["total_price"] == 46.97

    def test_underpayment(self, client, cashier_headers, make_variant):
        variant = make_variant(stock=10, price_cents=1599)

        resp = client.post(
            "/api/transactions",
            json={
                "items": [{"variant_id": variant.id, "quantity": 3, "unit_price": 15.99, "discount_amount": 1.00}],
                "payment_method": "cash",
                "payment_amount": 35.00,
                "discount_amount": 2.00,
            },
            headers=cashier_headers,
        )

        assert resp.status_code == 400
        assert resp.json["details"] == {"total_amount": 44.97, "payment_amount": 35.0}

    def test_insufficient_stock(self, client, cashier_headers, make_variant):
        variant = make_variant(stock=1)

        resp = client.post("/api/transactions", json=sale_payload(variant, quantity=2), headers=cashier_headers)

        assert resp.status_code == 409
        assert resp.json["details"]["available"] == 1
        assert resp.json["details"]["requested"] == 2

    def test_unknown_variant(self, client, cashier_headers):
        resp = client.post(
            "/api/transactions",
            json={"items": [{"variant_id": 424242, "quantity": 1, "unit_price": 1}],
                  "payment_method": "cash", "payment_amount": 1},
            headers=cashier_headers,
        )
        assert resp.status_code == 404

    @pytest.mark.parametrize(
        "mutate",
        [
            lambda body: body.update(payment_method="bitcoin"),
            lambda body: body.update(items=[]),
            lambda body: body["items"][0].update(quantity=0),
            lambda body: body["items"][0].update(unit_price=1.234),
            lambda body: body.update(payment_amount=0),
            lambda body: body.update(payment_amount=1e30),
            lambda body: body["items"][0].update(unit_price="1e40"),
            lambda body: body["items"][0].update(quantity=2 ** 31),
        ],
    )
    def test_malformed_sale(self, client, cashier_headers, variant, mutate):
        body = sale_payload(variant)
        mutate(body)

        resp = client.post("/api/transactions", json=body, headers=cashier_headers)
        assert resp.status_code == 400

    def test_cashier_cannot_sell_as_someone_else(self, client, cashier_headers, manager, variant):
        resp = client.post(
            "/api/transactions", json=sale_payload(variant, cashier_id=manager.id), headers=cashier_headers
        )
        assert resp.status_code == 403

    def test_refund_flow(self, client, cashier_headers, manager_headers, variant):
        created = client.post("/api/transactions", json=sale_payload(variant, quantity=4), headers=cashier_headers)
        txn_id = created.json["transaction"]["id"]

        first = client.post(f"/api/transactions/{txn_id}/refund", headers=manager_headers)
        assert first.status_code == 200
        assert first.json["transaction"]["status"] == "refunded"

        second = client.post(f"/api/transactions/{txn_id}/refund", headers=manager_headers)
        assert second.status_code == 409

        assert db.session.get(ProductVariant, variant.id, populate_existing=True).stock_quantity == 10

        refunded = client.get("/api/transactions?status=refunded", headers=manager_headers)
        assert [t["id"] for t in refunded.json["transactions"]] == [txn_id]

    def test_unknown_transaction(self, client, cashier_headers):
        assert client.get("/api/transactions/424242", headers=cashier_headers).status_code == 404
        assert client.get("/api/transactions/424242/items", headers=cashier_headers).status_code == 404

    def test_unknown_status_filter(self, client, cashier_headers):
        assert client.get("/api/transactions?status=lost", headers=cashier_headers).status_code == 400


# =============================================================================
# SHIFTS
# =============================================================================


class TestShiftRoutes:

    def test_shift_lifecycle(self, client, cashier, cashier_headers, variant):
        started = client.post("/api/shifts/start", json={"opening_cash": 100.00}, headers=cashier_headers)
        assert started.status_code == 201
        shift_id = started.json["shift"]["id"]
        assert started.json["shift"]["cashier_id"] == cashier.id

        again = client.post("/api/shifts/start", json={"opening_cash": 50.00}, headers=cashier_headers)
        assert again.status_code == 409

        client.post("/api/transactions", json=sale_payload(variant, quantity=2), headers=cashier_headers)

        current = client.get("/api/shifts/current", headers=cashier_headers)
        assert current.json["shift"]["transaction_count"] == 1
        assert current.json["shift"]["total_sales"] == variant.price_cents * 2 / 100

        ended = client.post(f"/api/shifts/{shift_id}/end", json={"closing_cash": 131.98}, headers=cashier_headers)
        assert ended.status_code == 200
        assert ended.json["shift"]["is_open"] is False
        assert ended.json["shift"]["total_sales"] == 31.98
        assert ended.json["shift"]["cash_difference"] == 31.98

        again = client.post(f"/api/shifts/{shift_id}/end", json={"closing_cash": 0}, headers=cashier_headers)
        assert again.status_code == 409

        assert client.get("/api/shifts/current", headers=cashier_headers).json["shift"] is None

    def test_cashier_cannot_open_shift_for_others(self, client, cashier_headers, manager):
        resp = client.post(
            "/api/shifts/start", json={"cashier_id": manager.id, "opening_cash": 0}, headers=cashier_headers
        )
        assert resp.status_code == 403

    def test_cashier_id_zero_is_not_the_caller(self, client, manager, manager_headers):
        shift_service.start_shift(manager.id, 0)

        current = client.get("/api/shifts/current?cashier_id=0", headers=manager_headers)
        assert current.status_code == 200
        assert current.json["shift"] is None

        started = client.post("/api/shifts/start", json={"cashier_id": 0, "opening_cash": 0}, headers=manager_headers)
        assert started.status_code == 404

    def test_manager_sees_history(self, client, cashier, manager_headers):
        shift_service.start_shift(cashier.id, 0)

        resp = client.get(f"/api/shifts?cashier_id={cashier.id}", headers=manager_headers)

        assert resp.status_code == 200
        assert len(resp.json["shifts"]) == 1


# =============================================================================
# CUSTOMERS AND REPORTS
# =============================================================================


class TestCustomerAndReportRoutes:

    def test_customer_history(self, client, cashier_headers, variant):
        created = client.post(
            "/api/customers", json={"name": "Bob", "email": "bob@example.com"}, headers=cashier_headers
        )
        assert created.status_code == 201
        customer_id = created.json["customer"]["id"]

        client.post(
            "/api/transactions", json=sale_payload(variant, customer_id=customer_id), headers=cashier_headers
        )

        history = client.get(f"/api/customers/{customer_id}/transactions", headers=cashier_headers)
        assert history.status_code == 200
        assert len(history.json["transactions"]) == 1
        assert len(history.json["transactions"][0]["items"]) == 1

    def test_customer_bad_email(self, client, cashier_headers):
        resp = client.post("/api/customers", json={"name": "Bob", "email": "nope"}, headers=cashier_headers)
        assert resp.status_code == 400

    def test_sales_report(self, client, cashier_headers, manager_headers, variant):
        client.post("/api/transactions", json=sale_payload(variant), headers=cashier_headers)
        created = client.get("/api/transactions", headers=manager_headers).json["transactions"][0]["created_at"]
        day = created[:10]

        resp = client.get(f"/api/reports/sales?start_date={day}&end_date={day}", headers=manager_headers)

        assert resp.status_code == 200
        assert resp.json["report"]["transaction_count"] == 1
        assert resp.json["report"]["total_sales"] == variant.price_cents / 100

    def test_sales_report_requires_dates(self, client, manager_headers):
        assert client.get("/api/reports/sales", headers=manager_headers).status_code == 400
