"""
HTTP tests for the order endpoints.
"""

import pytest

from gourmetflow.config import get_settings


def checkout_payload(menu, **values):
    data = {
        "items": [{"menu_item_id": menu["burger"].id, "quantity": 2}],
        "delivery_type": "pickup",
        "payment_method": "cash",
    }
    data.update(values)
    return data


@pytest.fixture
def placed_order(client, menu):
    response = client.post("/orders/checkout", json=checkout_payload(menu, customer_name="Ana"))
    assert response.status_code == 201
    return response.json()


def test_health_check(client):
    response = client.get("/health")

    assert response.status_code == 200
    assert response.json() == {"status": "ok"}


class TestAccessKey:
    def test_missing_key_is_rejected_when_configured(self, client, monkeypatch):
        monkeypatch.setattr(get_settings(), "access_key", "secret")

        assert client.get("/orders").status_code == 401
        assert client.get("/suppliers").status_code == 401

    def test_matching_key_is_accepted(self, client, monkeypatch):
        monkeypatch.setattr(get_settings(), "access_key", "secret")

        response = client.get("/orders", headers={"X-Access-Key": "secret"})

        assert response.status_code == 200

    def test_health_check_is_open(self, client, monkeypatch):
        monkeypatch.setattr(get_settings(), "access_key", "secret")

        assert client.get("/health").status_code == 200


class TestQuote:
    def test_quote_prices_the_cart(self, client, menu, coupons):
        response = client.post(
            "/cart/quote",
            json={
                "items": [
                    {"menu_item_id": menu["pizza"].id, "variation_ids": [menu["large"].id, menu["border"].id]},
                    {"menu_item_id": menu["soda"].id, "quantity": 2},
                ],
                "delivery_type": "delivery",
                "coupon_code": "save10",
            },
        )

        assert response.status_code == 200
        body = response.json()
        assert body["coupon_code"] == "SAVE10"
        assert [line["total_price"] for line in body["lines"]] == [50.0, 10.0]
        assert body["lines"][0]["customizations"] == "Grande, Borda Catupiry"
        assert body["pricing"]["subtotal"] == 60.0
        assert body["pricing"]["delivery_fee"] == 5.0
        assert body["pricing"]["coupon_discount"] == 6.0
        assert body["pricing"]["total"] == 59.0

    def test_quote_requires_option_choice(self, client, menu):
        response = client.post("/cart/quote", json={"items": [{"menu_item_id": menu["pizza"].id}]})

        assert response.status_code == 400
        assert "Choose the options" in response.json()["detail"]


class TestCouponValidation:
    def test_valid_coupon_returns_discount(self, client, coupons):
        response = client.post("/coupons/validate", json={"code": "save10", "subtotal": 80})

        assert response.status_code == 200
        assert response.json() == {"code": "SAVE10", "type": "percentage", "discount": 8.0}

    @pytest.mark.parametrize(
        "code, subtotal, message",
        [
            ("NADA", 50, "Invalid or expired coupon"),
            ("VELHO", 50, "Invalid or expired coupon"),
            ("ACABOU", 50, "Coupon usage limit reached"),
            ("MIN100", 50, "Minimum order of 100.00 required for this coupon"),
        ],
    )
    def test_rejected_coupons(self, client, coupons, code, subtotal, message):
        response = client.post("/coupons/validate", json={"code": code, "subtotal": subtotal})

        assert response.status_code == 400
        assert response.json()["detail"] == message

    def test_duplicate_coupon_code(self, client, coupons):
        response = client.post("/coupons", json={"code": "save10", "type": "fixed", "discount_value": 5})

        assert response.status_code == 400

    def test_toggle_coupon(self, client, coupons):
        response = client.post(f"/coupons/{coupons['save10'].id}/toggle")

        assert response.status_code == 200
        assert response.json()["is_active"] is False


class TestOrders:
    def test_checkout_returns_order_with_items(self, client, menu):
        response = client.post("/orders/checkout", json=checkout_payload(menu))

        assert response.status_code == 201
        body = response.json()
        assert body["status"] == "new"
        assert body["total"] == 40.0
        assert len(body["items"]) == 1
        assert body["items"][0]["quantity"] == 2

    def test_checkout_validation_error_is_bad_request(self, client, menu):
        response = client.post("/orders/checkout", json=checkout_payload(menu, delivery_type="dine_in"))

        assert response.status_code == 400
        assert response.json()["detail"] == "Select a table for dine-in orders"

    def test_checkout_with_exhausted_coupon(self, client, menu, coupons):
        response = client.post("/orders/checkout", json=checkout_payload(menu, coupon_code="ACABOU"))

        assert response.status_code == 400
        assert client.get("/orders").json() == []

    def test_get_order(self, client, placed_order):
        response = client.get(f"/orders/{placed_order['id']}")

        assert response.status_code == 200
        assert response.json()["order_number"] == placed_order["order_number"]

    def test_missing_order_is_not_found(self, client):
        response = client.get("/orders/999")

        assert response.status_code == 404
        assert response.json()["detail"] == "Order not found"

    def test_list_orders_filters_by_status(self, client, placed_order):
        client.patch(f"/orders/{placed_order['id']}/status", json={"status": "preparing"})

        assert len(client.get("/orders", params={"status": ["preparing", "ready"]}).json()) == 1
        assert client.get("/orders", params={"status": "new"}).json() == []

    def test_status_update_rejects_unknown_status(self, client, placed_order):
        response = client.patch(f"/orders/{placed_order['id']}/status", json={"status": "lost"})

        assert response.status_code == 422

    def test_complete_order_books_cash_entry(self, client, placed_order):
        response = client.post(f"/orders/{placed_order['id']}/complete", json={"payment_method": "pix"})

        assert response.status_code == 200
        assert response.json()["status"] == "completed"
        movements = client.get("/cash-movements").json()
        assert len(movements) == 1
        assert movements[0]["amount"] == 40.0
        assert movements[0]["payment_method"] == "PIX"

    def test_complete_order_without_body(self, client, placed_order):
        response = client.post(f"/orders/{placed_order['id']}/complete")

        assert response.status_code == 200
        assert response.json()["payment_method"] == "cash"

    def test_cancel_order(self, client, placed_order):
        response = client.post(f"/orders/{placed_order['id']}/cancel")

        assert response.status_code == 200
        assert response.json()["status"] == "cancelled"

    def test_append_items(self, client, menu, placed_order):
        response = client.post(
            f"/orders/{placed_order['id']}/items",
            json={"items": [{"menu_item_id": menu["soda"].id}]},
        )

        assert response.status_code == 200
        assert response.json()["total"] == 45.0
        assert len(response.json()["items"]) == 2

    def test_replace_items(self, client, menu, placed_order):
        response = client.put(
            f"/orders/{placed_order['id']}/items",
            json={"items": [{"menu_item_id": menu["soda"].id, "quantity": 3}]},
        )

        assert response.status_code == 200
        body = response.json()
        assert body["subtotal"] == 15.0
        assert [item["name"] for item in body["items"]] == ["Refrigerante"]


class TestReceipts:
    def test_customer_receipt_shows_totals(self, client, placed_order):
        response = client.get(f"/orders/{placed_order['id']}/receipt")

        assert response.status_code == 200
        assert response.headers["content-type"].startswith("text/html")
        assert "RECIBO DE PEDIDO" in response.text
        assert "Cantina Teste" in response.text
        assert "Total: R$ 40.00" in response.text
        assert "Pagamento:" in response.text

    def test_kitchen_receipt_leaves_out_totals(self, client, placed_order):
        response = client.get(f"/orders/{placed_order['id']}/receipt", params={"kind": "kitchen"})

        assert "PEDIDO - COZINHA" in response.text
        assert "Assinatura" in response.text
        assert "Pagamento:" not in response.text

    def test_customer_text_is_escaped(self, client, menu):
        created = client.post(
            "/orders/checkout",
            json=checkout_payload(menu, customer_name="<b>Ana</b>", notes="<script>x</script>"),
        ).json()

        response = client.get(f"/orders/{created['id']}/receipt")

        assert "&lt;b&gt;Ana&lt;/b&gt;" in response.text
        assert "<script>" not in response.text


class TestKitchenQueue:
    def test_queue_lists_confirmed_and_preparing_oldest_first(self, client, menu):
        first = client.post("/orders/checkout", json=checkout_payload(menu)).json()
        second = client.post("/orders/checkout", json=checkout_payload(menu)).json()
        fresh = client.post("/orders/checkout", json=checkout_payload(menu)).json()
        ready = client.post("/orders/checkout", json=checkout_payload(menu)).json()
        client.patch(f"/orders/{first['id']}/status", json={"status": "confirmed"})
        client.patch(f"/orders/{second['id']}/status", json={"status": "preparing"})
        client.patch(f"/orders/{ready['id']}/status", json={"status": "ready"})

        tickets = client.get("/kitchen/queue").json()

        assert [t["order"]["id"] for t in tickets] == [first["id"], second["id"]]
        assert fresh["id"] not in [t["order"]["id"] for t in tickets]
        assert tickets[0]["is_late"] is False
        assert tickets[0]["waiting_minutes"] == 0
        assert len(tickets[0]["items"]) == 1

    def test_monitor_can_ask_for_its_own_statuses(self, client, menu):
        fresh = client.post("/orders/checkout", json=checkout_payload(menu)).json()
        ready = client.post("/orders/checkout", json=checkout_payload(menu)).json()
        client.patch(f"/orders/{ready['id']}/status", json={"status": "ready"})

        tickets = client.get("/kitchen/queue", params={"status": ["new", "preparing", "ready"]}).json()

        assert [t["order"]["id"] for t in tickets] == [fresh["id"], ready["id"]]


class TestCashAndReports:
    def test_manual_movements_and_summary(self, client):
        client.post("/cash-movements", json={"type": "entry", "amount": 100, "category": "Troco"})
        client.post("/cash-movements", json={"type": "exit", "amount": -30, "category": "Gás"})

        summary = client.get("/cash-movements/summary").json()

        assert summary == {
            "total_entries": 100.0,
            "total_exits": 30.0,
            "balance": 70.0,
            "entry_count": 1,
            "exit_count": 1,
        }

    def test_sales_report_counts_completed_orders(self, client, menu):
        first = client.post("/orders/checkout", json=checkout_payload(menu)).json()
        second = client.post(
            "/orders/checkout",
            json=checkout_payload(
                menu,
                delivery_type="delivery",
                delivery_address={"street": "Rua B", "number": "5"},
            ),
        ).json()
        client.post("/orders/checkout", json=checkout_payload(menu))
        client.post(f"/orders/{first['id']}/complete", json={"payment_method": "pix"})
        client.post(f"/orders/{second['id']}/complete", json={"payment_method": "cash"})

        report = client.get("/reports/sales").json()

        assert report["total_orders"] == 2
        assert report["total_revenue"] == 85.0
        assert report["average_ticket"] == 42.5
        assert report["by_payment_method"]["pix"] == {"count": 1, "total": 40.0}
        assert report["by_delivery_type"]["delivery"] == {"count": 1, "total": 45.0}
        assert report["cash_entries"] == 85.0

    def test_export_orders_as_csv(self, client, placed_order):
        response = client.get("/orders/export")

        assert response.status_code == 200
        assert response.headers["content-type"].startswith("text/csv")
        rows = response.text.strip().splitlines()
        assert rows[0].startswith("id,order_number")
        assert placed_order["order_number"] in rows[1]


class TestCustomers:
    def test_lookup_by_phone(self, client, loyal_customer):
        response = client.get(f"/customers/by-phone/{loyal_customer.phone}")

        assert response.status_code == 200
        assert response.json()["name"] == "Maria"

    def test_unknown_phone_is_not_found(self, client):
        assert client.get("/customers/by-phone/000").status_code == 404

    def test_search_and_suspicious_flag(self, client, loyal_customer):
        assert len(client.get("/customers", params={"search": "mar"}).json()) == 1

        response = client.post(f"/customers/{loyal_customer.id}/suspicious")

        assert response.json()["is_suspicious"] is True

    def test_history_after_checkout(self, client, menu, loyal_customer):
        order = client.post(
            "/orders/checkout", json=checkout_payload(menu, customer_phone=loyal_customer.phone)
        ).json()
        client.post(f"/orders/{order['id']}/complete")

        history = client.get(f"/customers/{loyal_customer.id}/history").json()

        assert history["total_orders"] == 1
        assert history["completed_orders"] == 1
        assert history["total_spent"] == 40.0


class TestSettings:
    def test_update_settings(self, client, restaurant_settings):
        response = client.put("/settings", json={"delivery_fee": 7.5, "loyalty_enabled": True})

        assert response.status_code == 200
        assert response.json()["delivery_fee"] == 7.5
        assert response.json()["loyalty_enabled"] is True
        assert response.json()["name"] == "Cantina Teste"
