# Overview: Pytest coverage for manager, agent, worker and user provisioning.

"""
Staff Provisioning Tests

Verifies:
1. Managers and agents get a paired login with a temporary password
2. The tenant root is set server-side and survives manager deletion
3. Email conflicts are reported before anything is written
4. Password resets revoke every open session of the target
5. Admin user management stays inside the admin's subtree
"""

import pytest

from fieldsales.errors import AccessDeniedError, ConflictError, NotFoundError, ValidationError
from fieldsales.models import Agent, Manager, Notification, Sale, SessionToken, User, Worker
from fieldsales.services import auth_service, sales_service, session_service, staff_service

from conftest import PASSWORD, auth_headers, get_auth_token, login_for, make_agent, principal


AGENT_PAYLOAD = {
    "name": "New Agent",
    "email": "New.Agent@Acme.com",
    "phone": "+254700000001",
    "location": "Mombasa",
    "governmentId": "ID-778899",
}

WORKER_PAYLOAD = {
    "name": "Warehouse Worker",
    "email": "worker@acme.com",
    "phone": "+254700000002",
    "address": "Plot 7, Industrial Area",
    "department": "Logistics",
}


@pytest.fixture
def admin_p(db_session, admin_a):
    return principal(admin_a)


@pytest.fixture
def manager_p(db_session, manager_a):
    return principal(login_for(manager_a.email))


class TestManagers:

    def test_create_manager_provisions_login(self, db_session, admin_p, admin_a):
        result = staff_service.create_manager(admin_p, {
            "name": "Mary Manager", "email": "mary@acme.com", "phone": "+254711000000",
        })

        assert result.entity.admin_id == admin_a.id
        login = login_for("mary@acme.com")
        assert login.normalized_role == "manager"
        assert login.created_by_admin_id == admin_a.id
        assert auth_service.verify_password(result.generated_password, login.password_hash)

        body = result.to_dict()
        assert body["manager"]["email"] == "mary@acme.com"
        assert body["delivery"]["email"]["sent"] is False

        notes = db_session.query(Notification).filter_by(recipient_id=admin_a.id).all()
        assert [n.type for n in notes] == ["new_manager"]

    def test_manager_cannot_create_manager(self, db_session, manager_p):
        with pytest.raises(AccessDeniedError):
            staff_service.create_manager(manager_p, {
                "name": "X", "email": "x@acme.com", "phone": "+1",
            })

    def test_email_conflict(self, db_session, admin_p, manager_a):
        with pytest.raises(ConflictError):
            staff_service.create_manager(admin_p, {
                "name": "Dup", "email": manager_a.email, "phone": "+1",
            })
        assert db_session.query(Manager).count() == 1

    def test_missing_required_field(self, db_session, admin_p):
        with pytest.raises(ValidationError):
            staff_service.create_manager(admin_p, {"name": "No Email", "phone": "+1"})
        assert db_session.query(User).filter_by(name="No Email").count() == 0

    def test_deactivation_revokes_login_sessions(self, db_session, admin_p, manager_a):
        login = login_for(manager_a.email)
        session_service.create_session(login.id)

        staff_service.update_manager(admin_p, manager_a.id, {"isActive": False})

        db_session.refresh(login)
        assert login.is_active is False
        assert db_session.query(SessionToken).filter_by(user_id=login.id, is_revoked=False).count() == 0

    def test_delete_manager_keeps_agents_in_tenant(self, db_session, admin_p, admin_a, manager_a, agent_a, product_a):
        agent_login = login_for(agent_a.email)
        sale = sales_service.create_sale(principal(agent_login), {"product_id": product_a.id, "quantity": 1}).sale
        manager_email = manager_a.email

        staff_service.delete_manager(admin_p, manager_a.id)

        agent = db_session.get(Agent, agent_a.id)
        assert agent.manager_id is None
        assert agent.owner_admin_id == admin_a.id
        assert db_session.get(Sale, sale.id).manager_id is None
        assert db_session.query(User).filter_by(email=manager_email).count() == 0

        # The orphaned agent still works inside the original tenant
        assert [s.id for s in sales_service.list_sales(principal(agent_login))] == [sale.id]
        assert [a.id for a in staff_service.list_agents(admin_p)] == [agent_a.id]


class TestAgents:

    def test_manager_creates_agent(self, db_session, manager_p, manager_a, admin_a):
        result = staff_service.create_agent(manager_p, AGENT_PAYLOAD)
        agent = result.entity

        assert agent.email == "new.agent@acme.com"
        assert agent.manager_id == manager_a.id
        assert agent.owner_admin_id == admin_a.id
        assert login_for(agent.email).created_by_admin_id == admin_a.id

        recipients = {n.recipient_id for n in db_session.query(Notification).filter_by(type="new_agent")}
        assert recipients == {login_for(manager_a.email).id, admin_a.id}

    def test_admin_creates_unassigned_agent(self, db_session, admin_p, admin_a):
        agent = staff_service.create_agent(admin_p, AGENT_PAYLOAD).entity
        assert agent.manager_id is None
        assert agent.owner_admin_id == admin_a.id

    def test_admin_assigns_own_manager(self, db_session, admin_p, manager_a):
        agent = staff_service.create_agent(admin_p, {**AGENT_PAYLOAD, "managerId": manager_a.id}).entity
        assert agent.manager_id == manager_a.id

    def test_admin_cannot_assign_foreign_manager(self, db_session, admin_p, manager_b):
        with pytest.raises(NotFoundError):
            staff_service.create_agent(admin_p, {**AGENT_PAYLOAD, "managerId": manager_b.id})
        assert db_session.query(Agent).filter_by(email="new.agent@acme.com").count() == 0

    def test_email_of_other_role_conflicts(self, db_session, manager_p, manager_a):
        with pytest.raises(ConflictError):
            staff_service.create_agent(manager_p, {**AGENT_PAYLOAD, "email": manager_a.email})

    def test_agent_reads_only_itself(self, db_session, agent_a, admin_a, manager_a):
        other = make_agent(db_session, admin_a, manager_a, "Other", "other@acme.com")
        agent_p = principal(login_for(agent_a.email))

        assert staff_service.get_agent(agent_p, agent_a.id).id == agent_a.id
        with pytest.raises(NotFoundError):
            staff_service.get_agent(agent_p, other.id)

    def test_agent_self_update_ignores_restricted_fields(self, db_session, agent_a):
        agent_p = principal(login_for(agent_a.email))
        agent = staff_service.update_agent_profile(agent_p, {
            "name": "Renamed", "location": "", "isActive": False,
        })

        assert agent.name == "Renamed"
        assert agent.location == "Nairobi"
        assert agent.is_active is True
        assert login_for(agent_a.email).name == "Renamed"

    def test_reset_password_revokes_sessions(self, db_session, manager_p, agent_a):
        login = login_for(agent_a.email)
        session_service.create_session(login.id)
        session_service.create_session(login.id)

        result = staff_service.reset_agent_password(manager_p, agent_a.id)

        db_session.refresh(login)
        assert auth_service.verify_password(result.generated_password, login.password_hash)
        assert not auth_service.verify_password(PASSWORD, login.password_hash)
        assert db_session.query(SessionToken).filter_by(user_id=login.id, is_revoked=False).count() == 0

    def test_delete_agent_keeps_sales(self, db_session, admin_p, agent_a, product_a):
        agent_login = login_for(agent_a.email)
        sale = sales_service.create_sale(principal(agent_login), {"product_id": product_a.id, "quantity": 1}).sale

        staff_service.delete_agent(admin_p, agent_a.id)

        assert db_session.get(Sale, sale.id).agent_id is None
        assert db_session.query(User).filter_by(email="agent_a@acme.com").count() == 0


class TestWorkers:

    def test_manager_creates_worker(self, db_session, manager_p, manager_a, admin_a):
        worker = staff_service.create_worker(manager_p, WORKER_PAYLOAD)

        assert worker.manager_id == manager_a.id
        assert worker.owner_admin_id == admin_a.id
        assert db_session.query(User).filter_by(email="worker@acme.com").count() == 0
        assert db_session.query(Notification).filter_by(type="new_worker").count() == 2

    def test_workers_are_scoped(self, db_session, manager_p, admin_b):
        worker = staff_service.create_worker(manager_p, WORKER_PAYLOAD)

        assert [w.id for w in staff_service.list_workers(manager_p)] == [worker.id]
        assert staff_service.list_workers(principal(admin_b)) == []
        with pytest.raises(NotFoundError):
            staff_service.delete_worker(principal(admin_b), worker.id)

    def test_update_and_delete(self, db_session, admin_p, manager_p):
        worker = staff_service.create_worker(manager_p, WORKER_PAYLOAD)

        updated = staff_service.update_worker(admin_p, worker.id, {"position": "Lead", "managerId": None})
        assert updated.position == "Lead"
        assert updated.manager_id is None

        staff_service.delete_worker(admin_p, worker.id)
        assert db_session.query(Worker).count() == 0


class TestUsers:

    def test_list_users_covers_subtree(self, db_session, admin_p, admin_a, manager_a, agent_a, agent_b):
        rows = staff_service.list_users(admin_p)
        emails = {r["email"] for r in rows}

        assert emails == {admin_a.email, manager_a.email, agent_a.email}
        agent_row = next(r for r in rows if r["email"] == agent_a.email)
        assert agent_row["manager_name"] == "Manager A"

    def test_create_agent_user_requires_manager(self, db_session, admin_p):
        with pytest.raises(ValidationError):
            staff_service.create_user(admin_p, {**AGENT_PAYLOAD, "role": "agent"})

    def test_create_manager_user_creates_profile(self, db_session, admin_p, admin_a):
        result = staff_service.create_user(admin_p, {
            "name": "Via Users", "email": "via@acme.com", "phone": "+1", "role": "Manager",
        })
        assert result.entity.normalized_role == "manager"
        assert db_session.query(Manager).filter_by(email="via@acme.com", admin_id=admin_a.id).count() == 1

    def test_invalid_role(self, db_session, admin_p):
        with pytest.raises(ValidationError):
            staff_service.create_user(admin_p, {"name": "X", "email": "x@acme.com", "role": "owner"})

    def test_cannot_delete_self(self, db_session, admin_p, admin_a):
        with pytest.raises(ValidationError):
            staff_service.delete_user(admin_p, admin_a.id)

    def test_foreign_user_is_denied(self, db_session, admin_p, agent_b):
        with pytest.raises(AccessDeniedError):
            staff_service.update_user(admin_p, login_for(agent_b.email).id, {"name": "Hijack"})

    def test_role_change_deactivates_profile(self, db_session, admin_p, manager_a):
        login = login_for(manager_a.email)
        staff_service.update_user(admin_p, login.id, {"role": "user"})

        db_session.refresh(manager_a)
        assert manager_a.is_active is False

    def test_reset_password_only_for_staff(self, db_session, admin_p, admin_a):
        plain = auth_service.create_user(
            name="Plain", email="plain@acme.com", password=PASSWORD, role="user",
            created_by_admin_id=admin_a.id,
        )
        with pytest.raises(ValidationError):
            staff_service.reset_user_password(admin_p, plain.id)


class TestStaffHttp:

    def test_manager_route_requires_admin(self, client, db_session, manager_a):
        token = get_auth_token(client, manager_a.email)
        resp = client.post("/api/managers", json={"name": "X"}, headers=auth_headers(token))

        assert resp.status_code == 403
        assert resp.json["kind"] == "access_denied"
        assert resp.json["required_roles"] == ["admin"]

    def test_create_agent_over_http(self, client, db_session, manager_a):
        token = get_auth_token(client, manager_a.email)
        resp = client.post("/api/agents", json=AGENT_PAYLOAD, headers=auth_headers(token))

        assert resp.status_code == 201
        assert resp.json["agent"]["manager_id"] == manager_a.id
        assert "generated_password" in resp.json

    def test_agent_profile_me(self, client, db_session, agent_a):
        token = get_auth_token(client, agent_a.email)
        resp = client.get("/api/agents/profile/me", headers=auth_headers(token))

        assert resp.status_code == 200
        assert resp.json["agent"]["email"] == agent_a.email
