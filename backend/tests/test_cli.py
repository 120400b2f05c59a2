# Overview: Pytest coverage for the flask CLI command groups.

from datetime import timedelta

import pytest

from fieldsales.models import SessionToken, User
from fieldsales.services import sales_service, session_service
from fieldsales.time_utils import utcnow

from conftest import PASSWORD, login_for, principal


@pytest.fixture
def runner(app):
    return app.test_cli_runner()


class TestUsersCommands:

    def test_create_admin(self, runner, db_session):
        result = runner.invoke(args=[
            "users", "create-admin",
            "--name", "Owner", "--email", "Owner@Example.com", "--password", PASSWORD,
        ])

        assert result.exit_code == 0
        assert "PASS Created admin" in result.output
        user = db_session.query(User).filter_by(email="owner@example.com").one()
        assert user.normalized_role == "admin"
        assert user.created_by_admin_id is None

    def test_create_admin_weak_password(self, runner, db_session):
        result = runner.invoke(args=[
            "users", "create-admin", "--name", "Owner", "--email", "o@example.com", "--password", "weak",
        ])

        assert result.exit_code == 1
        assert "Password validation failed" in result.output
        assert db_session.query(User).count() == 0

    def test_list_filters_by_role(self, runner, db_session, admin_a, agent_a):
        result = runner.invoke(args=["users", "list", "--role", "agent"])

        assert result.exit_code == 0
        assert agent_a.email in result.output
        assert admin_a.email not in result.output


class TestSystemCommands:

    def test_cleanup_sessions(self, runner, app, db_session, admin_a):
        stale, _ = session_service.create_session(admin_a.id)
        fresh, _ = session_service.create_session(admin_a.id)
        stale.created_at = utcnow() - timedelta(days=app.config["SESSION_RETENTION_DAYS"] + 1)
        stale.is_revoked = True
        db_session.commit()

        result = runner.invoke(args=["system", "cleanup-sessions"])

        assert result.exit_code == 0
        assert "Deleted 1 stale session(s)." in result.output
        assert [s.id for s in db_session.query(SessionToken).all()] == [fresh.id]


class TestSalesCommands:

    def test_stats_scoped_to_login(self, runner, db_session, manager_a, agent_a, product_a, product_b, agent_b):
        sales_service.create_sale(principal(login_for(agent_a.email)), {"product_id": product_a.id, "quantity": 2})
        sales_service.create_sale(principal(login_for(agent_b.email)), {"product_id": product_b.id, "quantity": 1})

        result = runner.invoke(args=["sales", "stats", "--email", manager_a.email])

        assert result.exit_code == 0
        assert "Orders:            1" in result.output
        assert "Pending payments:  1" in result.output

    def test_unknown_login(self, runner, db_session):
        result = runner.invoke(args=["sales", "stats", "--email", "ghost@example.com"])
        assert result.exit_code == 1
