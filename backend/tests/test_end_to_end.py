# Overview: Pytest coverage for the full admin -> manager -> agent sale flow over HTTP.

"""
End-to-End Sale Flow

Admin creates a manager, the manager creates an agent, the admin adds a
product and the agent picks, sells and records payment before the admin
confirms it. Every step goes through the API with real bearer tokens.
"""

from fieldsales.models import Product

from conftest import PASSWORD, auth_headers, get_auth_token


def _types(client, token):
    resp = client.get("/api/notifications", headers=auth_headers(token))
    assert resp.status_code == 200
    return [n["type"] for n in resp.json["notifications"]]


def test_pick_sell_pay_confirm(client, db_session, admin_a):
    admin_token = get_auth_token(client, admin_a.email)
    admin = auth_headers(admin_token)

    resp = client.post("/api/managers", json={
        "name": "Mara Manager", "email": "mara@acme.com", "phone": "+254711000001",
    }, headers=admin)
    assert resp.status_code == 201
    manager_token = get_auth_token(client, "mara@acme.com", resp.json["generated_password"])
    assert manager_token
    manager = auth_headers(manager_token)

    resp = client.post("/api/agents", json={
        "name": "Gus Agent", "email": "gus@acme.com", "phone": "+254711000002",
        "location": "Kisumu", "governmentId": "ID-445566",
    }, headers=manager)
    assert resp.status_code == 201
    assert resp.json["agent"]["owner_admin_id"] == admin_a.id
    agent_token = get_auth_token(client, "gus@acme.com", resp.json["generated_password"])
    assert agent_token
    agent = auth_headers(agent_token)

    resp = client.post("/api/products", json={
        "name": "Water Filter", "price": "10", "quantity": 5,
    }, headers=admin)
    assert resp.status_code == 201
    product_id = resp.json["product"]["id"]

    # Pick 2
    resp = client.post("/api/sales", json={"productId": product_id, "quantity": 2}, headers=agent)
    assert resp.status_code == 201
    sale = resp.json["sale"]
    assert (sale["quantity"], sale["total_price_cents"]) == (2, 2000)
    assert (sale["product_status"], sale["payment_status"]) == ("picked", "pending")
    assert db_session.get(Product, product_id).quantity == 3

    # Sell
    resp = client.put(f"/api/sales/{sale['id']}", json={"productStatus": "sold"}, headers=agent)
    assert resp.status_code == 200
    assert resp.json["sale"]["product_status"] == "sold"
    assert resp.json["sale"]["sold_at"]

    profile = client.get("/api/agents/profile/me", headers=agent).json["agent"]
    assert profile["total_sales"] == 1
    assert profile["total_revenue_cents"] == 2000

    # Paid
    resp = client.put(f"/api/sales/{sale['id']}", json={"paymentStatus": "paid"}, headers=agent)
    assert resp.status_code == 200
    assert resp.json["sale"]["payment_confirmed_by_manager"] is True
    assert "payment_received" in _types(client, manager_token)
    assert "payment_received" in _types(client, admin_token)

    # Confirm
    resp = client.put(f"/api/sales/{sale['id']}/confirm-payment", headers=admin)
    assert resp.status_code == 200
    assert resp.json["sale"]["payment_status"] == "confirmed"
    assert resp.json["sale"]["payment_confirmed_by_admin"] is True
    assert "payment_confirmed" in _types(client, agent_token)
    assert "payment_confirmed" in _types(client, manager_token)

    resp = client.get("/api/sales/stats", headers=admin)
    assert resp.status_code == 200
    assert resp.json["total_revenue"] == 20
    assert resp.json["total_revenue_cents"] == 2000
    assert resp.json["total_sales"] == 1
    assert resp.json["pending_payments"] == 0

    # The manager sees the same sale; the default password never worked
    assert client.get("/api/sales/stats", headers=manager).json["total_sales"] == 1
    assert get_auth_token(client, "gus@acme.com", PASSWORD) is None
