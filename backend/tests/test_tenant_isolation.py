# Overview: Pytest coverage for tenant isolation behavior.

"""
Multi-Tenant Isolation Tests

SECURITY TESTS: Prove that one admin's subtree is invisible to another.

These tests create two admins, each with a manager, an agent and a product,
then verify that:
1. Lists and stats only contain the caller's rows
2. Reads and writes of foreign ids answer 404 (existence is not revealed)
3. Managers only see their own agents' work; agents only their own
4. Client-supplied owner ids are ignored
"""

import pytest

from fieldsales.models import Product, Sale, User
from fieldsales.services import products_service, sales_service, staff_service
from fieldsales.errors import NotFoundError

from conftest import PASSWORD, auth_headers, get_auth_token, make_agent, make_manager, principal


@pytest.fixture
def sale_a(db_session, agent_a, product_a):
    agent = principal(db_session.query(User).filter_by(email=agent_a.email).one())
    return sales_service.create_sale(agent, {"product_id": product_a.id, "quantity": 2}).sale


@pytest.fixture
def sale_b(db_session, agent_b, product_b):
    agent = principal(db_session.query(User).filter_by(email=agent_b.email).one())
    return sales_service.create_sale(agent, {"product_id": product_b.id, "quantity": 1}).sale


class TestSalesIsolation:

    def test_admin_lists_only_own_tenant(self, db_session, admin_a, admin_b, sale_a, sale_b):
        assert [s.id for s in sales_service.list_sales(principal(admin_a))] == [sale_a.id]
        assert [s.id for s in sales_service.list_sales(principal(admin_b))] == [sale_b.id]

    def test_foreign_sale_is_not_found(self, db_session, admin_a, sale_b):
        with pytest.raises(NotFoundError):
            sales_service.get_sale(principal(admin_a), sale_b.id)
        with pytest.raises(NotFoundError):
            sales_service.update_sale(principal(admin_a), sale_b.id, {"product_status": "returned"})
        with pytest.raises(NotFoundError):
            sales_service.delete_sale(principal(admin_a), sale_b.id)

        db_session.refresh(sale_b)
        assert sale_b.product_status == "picked"

    def test_stats_are_scoped(self, db_session, admin_a, sale_a, sale_b):
        stats = sales_service.get_sales_stats(principal(admin_a))
        assert stats["total_orders"] == 1

    def test_agent_sees_only_own_sales(self, db_session, admin_a, manager_a, agent_a, product_a, sale_a):
        other = make_agent(db_session, admin_a, manager_a, "Agent A2", "agent_a2@acme.com")
        other_p = principal(db_session.query(User).filter_by(email=other.email).one())

        assert sales_service.list_sales(other_p) == []
        with pytest.raises(NotFoundError):
            sales_service.get_sale(other_p, sale_a.id)

    def test_manager_sees_only_own_agents(self, db_session, admin_a, manager_a, sale_a, product_a):
        other_manager = make_manager(db_session, admin_a, "Manager A2", "manager_a2@acme.com")
        other_p = principal(db_session.query(User).filter_by(email=other_manager.email).one())
        own_p = principal(db_session.query(User).filter_by(email=manager_a.email).one())

        assert [s.id for s in sales_service.list_sales(own_p)] == [sale_a.id]
        assert sales_service.list_sales(other_p) == []


class TestProductIsolation:

    def test_products_listed_per_tenant(self, db_session, admin_a, admin_b, product_a, product_b):
        assert [p.id for p in products_service.list_products(principal(admin_a))] == [product_a.id]
        assert [p.id for p in products_service.list_products(principal(admin_b))] == [product_b.id]

    def test_foreign_product_not_found(self, db_session, admin_a, product_b):
        with pytest.raises(NotFoundError):
            products_service.update_product(principal(admin_a), product_b.id, {"name": "Hijacked"})
        db_session.refresh(product_b)
        assert product_b.name == "Product B"

    def test_client_owner_id_ignored(self, db_session, admin_a, admin_b, manager_a):
        manager_p = principal(db_session.query(User).filter_by(email=manager_a.email).one())
        product = products_service.create_product(manager_p, {
            "name": "Sneaky", "price": "1.50", "quantity": 3, "owner_admin_id": admin_b.id,
        })
        assert product.owner_admin_id == admin_a.id
        assert product.price_cents == 150


class TestStaffIsolation:

    def test_agents_listed_per_tenant(self, db_session, admin_a, agent_a, agent_b):
        assert [a.id for a in staff_service.list_agents(principal(admin_a))] == [agent_a.id]

    def test_cannot_assign_foreign_manager(self, db_session, admin_a, agent_a, manager_b):
        with pytest.raises(NotFoundError):
            staff_service.update_agent(principal(admin_a), agent_a.id, {"manager_id": manager_b.id})

    def test_foreign_manager_not_found(self, db_session, admin_a, manager_b):
        with pytest.raises(NotFoundError):
            staff_service.get_manager(principal(admin_a), manager_b.id)


class TestHttpIsolation:

    def test_foreign_sale_answers_404(self, client, db_session, admin_a, sale_b):
        token = get_auth_token(client, admin_a.email, PASSWORD)
        resp = client.get(f"/api/sales/{sale_b.id}", headers=auth_headers(token))

        assert resp.status_code == 404
        assert resp.json["kind"] == "not_found"

    def test_foreign_product_delete_answers_404(self, client, db_session, admin_a, product_b):
        token = get_auth_token(client, admin_a.email, PASSWORD)
        resp = client.delete(f"/api/products/{product_b.id}", headers=auth_headers(token))

        assert resp.status_code == 404
        assert db_session.query(Product).filter_by(id=product_b.id).count() == 1

    def test_stats_endpoint_scoped(self, client, db_session, admin_b, sale_a, sale_b):
        token = get_auth_token(client, admin_b.email, PASSWORD)
        resp = client.get("/api/sales/stats", headers=auth_headers(token))

        assert resp.status_code == 200
        assert resp.json["total_orders"] == 1
        assert db_session.query(Sale).count() == 2
