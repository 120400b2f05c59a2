# Overview: Pytest coverage for hierarchy resolution (owning admin and query scope).

"""
Hierarchy Resolver Tests

Verifies:
1. Each role resolves to the right owning admin and scope
2. Agents keep their tenant when the manager link is cleared
3. Missing profiles surface as NotFoundError, unknown roles as no scope
4. Scope.apply and Scope.covers agree
"""

import pytest

from fieldsales.errors import AccessDeniedError, NotFoundError
from fieldsales.models import Agent, Product, Sale, User
from fieldsales.models.auth import ROLE_AGENT, ROLE_USER
from fieldsales.services import hierarchy_service, sales_service
from fieldsales.services.hierarchy_service import Principal, Scope

from conftest import make_login, principal


class TestPrincipal:

    def test_role_is_normalized(self):
        p = Principal(id=1, email=" Someone@Example.COM ", role="  Admin ")
        assert p.role == "admin"
        assert p.email == "someone@example.com"
        assert p.is_admin and not p.is_manager and not p.is_agent


class TestResolveOwnerAdmin:

    def test_admin_owns_itself(self, db_session, admin_a):
        assert hierarchy_service.resolve_owner_admin(principal(admin_a)) == admin_a.id

    def test_manager_resolves_to_its_admin(self, db_session, admin_a, manager_a):
        login = db_session.query(User).filter_by(email=manager_a.email).one()
        assert hierarchy_service.resolve_owner_admin(principal(login)) == admin_a.id

    def test_agent_resolves_to_owner_admin(self, db_session, admin_a, agent_a):
        login = db_session.query(User).filter_by(email=agent_a.email).one()
        assert hierarchy_service.resolve_owner_admin(principal(login)) == admin_a.id

    def test_agent_falls_back_to_manager_admin(self, db_session, admin_a, manager_a, agent_a):
        agent_a.owner_admin_id = None
        db_session.commit()
        login = db_session.query(User).filter_by(email=agent_a.email).one()

        assert hierarchy_service.resolve_owner_admin(principal(login)) == admin_a.id

    def test_unassigned_agent_falls_back_to_provisioning_admin(self, db_session, admin_a, agent_a):
        agent_a.owner_admin_id = None
        agent_a.manager_id = None
        db_session.commit()
        login = db_session.query(User).filter_by(email=agent_a.email).one()

        assert hierarchy_service.resolve_owner_admin(principal(login)) == admin_a.id

    def test_orphan_agent_has_no_scope(self, db_session):
        login = make_login("Orphan", "orphan@nowhere.com", ROLE_AGENT)
        db_session.add(Agent(
            name="Orphan", email="orphan@nowhere.com", phone="1",
            location="x", government_id="g",
        ))
        db_session.commit()

        with pytest.raises(NotFoundError):
            hierarchy_service.resolve_owner_admin(principal(login))
        with pytest.raises(NotFoundError):
            hierarchy_service.resolve_scope_filter(principal(login))

    def test_orphan_agent_cannot_pick(self, db_session, product_a):
        login = make_login("Orphan", "orphan@nowhere.com", ROLE_AGENT)
        db_session.add(Agent(
            name="Orphan", email="orphan@nowhere.com", phone="1",
            location="x", government_id="g",
        ))
        db_session.commit()

        with pytest.raises(NotFoundError):
            sales_service.create_sale(principal(login), {"product_id": product_a.id, "quantity": 1})
        assert db_session.query(Sale).count() == 0
        assert db_session.get(Product, product_a.id).quantity == 10

    def test_missing_profile_is_not_found(self, db_session, admin_a):
        login = make_login("Ghost", "ghost@acme.com", ROLE_AGENT, admin_a.id)
        with pytest.raises(NotFoundError):
            hierarchy_service.resolve_owner_admin(principal(login))

    def test_plain_user_has_no_scope(self, db_session):
        login = make_login("Shopper", "shopper@example.com", ROLE_USER)
        assert hierarchy_service.resolve_owner_admin(principal(login)) is None
        assert hierarchy_service.resolve_scope_filter(principal(login)) is None
        with pytest.raises(AccessDeniedError):
            hierarchy_service.require_scope(principal(login))


class TestScope:

    def test_scope_per_role(self, db_session, admin_a, manager_a, agent_a):
        manager_login = db_session.query(User).filter_by(email=manager_a.email).one()
        agent_login = db_session.query(User).filter_by(email=agent_a.email).one()

        assert hierarchy_service.resolve_scope_filter(principal(admin_a)) == Scope(owner_admin_id=admin_a.id)
        assert hierarchy_service.resolve_scope_filter(principal(manager_login)) == Scope(
            owner_admin_id=admin_a.id, manager_id=manager_a.id
        )
        assert hierarchy_service.resolve_scope_filter(principal(agent_login)) == Scope(
            owner_admin_id=admin_a.id, agent_id=agent_a.id
        )

    def test_reassignment_takes_effect_on_next_resolution(self, db_session, admin_a, manager_a, agent_a):
        agent_login = db_session.query(User).filter_by(email=agent_a.email).one()
        agent_a.manager_id = None
        db_session.commit()

        scope = hierarchy_service.resolve_scope_filter(principal(agent_login))
        assert scope.owner_admin_id == admin_a.id
        assert scope.agent_id == agent_a.id

    def test_apply_and_covers_agree(self, db_session, admin_a, admin_b, manager_a, agent_a, product_a, product_b):
        own = Sale(
            product_id=product_a.id, agent_id=agent_a.id, manager_id=manager_a.id,
            owner_admin_id=admin_a.id, quantity=1, unit_price_cents=500, total_price_cents=500,
        )
        foreign = Sale(
            product_id=product_b.id, owner_admin_id=admin_b.id,
            quantity=1, unit_price_cents=2000, total_price_cents=2000,
        )
        db_session.add_all([own, foreign])
        db_session.commit()

        for scope in (
            Scope(owner_admin_id=admin_a.id),
            Scope(owner_admin_id=admin_a.id, manager_id=manager_a.id),
            Scope(owner_admin_id=admin_a.id, agent_id=agent_a.id),
        ):
            rows = scope.apply(db_session.query(Sale), Sale).all()
            assert [s.id for s in rows] == [own.id]
            assert scope.covers(own)
            assert not scope.covers(foreign)

    def test_manager_scope_excludes_other_managers(self, db_session, admin_a, manager_a, agent_a):
        scope = Scope(owner_admin_id=admin_a.id, manager_id=manager_a.id + 1000)
        assert scope.apply(db_session.query(Agent), Agent).count() == 0
        assert not scope.covers(agent_a)


class TestRecipientHelpers:

    def test_login_ids(self, db_session, admin_a, manager_a, agent_a):
        manager_login = db_session.query(User).filter_by(email=manager_a.email).one()
        agent_login = db_session.query(User).filter_by(email=agent_a.email).one()

        assert hierarchy_service.admin_user_id(admin_a.id) == admin_a.id
        assert hierarchy_service.manager_user_id(manager_a) == manager_login.id
        assert hierarchy_service.agent_user_id(agent_a) == agent_login.id
        assert hierarchy_service.manager_user_id(None) is None

    def test_admin_user_id_rejects_non_admin(self, db_session, agent_a):
        agent_login = db_session.query(User).filter_by(email=agent_a.email).one()
        assert hierarchy_service.admin_user_id(agent_login.id) is None
        assert hierarchy_service.admin_user_id(None) is None
