# Overview: Pytest coverage for the Flask CLI commands.

from datetime import timedelta

import pytest

from podcount.models import Factory, Form, SessionToken, User
from podcount.services import session_service
from podcount.time_utils import utcnow


@pytest.fixture
def runner(app):
    return app.test_cli_runner()


def test_system_init_is_idempotent(runner, db_session):
    first = runner.invoke(args=["system", "init"])
    assert first.exit_code == 0, first.output
    assert "DONE" in first.output

    second = runner.invoke(args=["system", "init"])
    assert second.exit_code == 0, second.output
    assert "already exists" in second.output

    assert db_session.query(Factory).count() == 2
    assert db_session.query(User).count() == 7
    assert {f.name for f in db_session.query(Form).all()} == {
        "Organic Cocoa Pod Count Template",
        "Conventional Cocoa Pod Count Template",
    }

    achiase = db_session.query(Factory).filter_by(name="Achiase").one()
    assert achiase.type == "ORGANIC"
    officer = db_session.query(User).filter_by(email="officer.akrofuom@koa.com").one()
    assert officer.role == "FIELD_OFFICER"
    assert officer.factory.name == "Akrofuom"


def test_factories_and_users_commands(runner, db_session):
    created = runner.invoke(args=[
        "factories", "create", "--name", "Nkawkaw", "--location", "Eastern Region", "--type", "PROCESSING",
    ])
    assert created.exit_code == 0, created.output
    factory = db_session.query(Factory).filter_by(name="Nkawkaw").one()

    user = runner.invoke(args=[
        "users", "create", "--email", "clerk@koa.com", "--password", "clerk-pass",
        "--role", "GUEST", "--factory-id", str(factory.id),
    ])
    assert user.exit_code == 0, user.output

    listed = runner.invoke(args=["users", "list", "--factory-id", str(factory.id)])
    assert "clerk@koa.com" in listed.output
    assert "Nkawkaw" in runner.invoke(args=["factories", "list"]).output

    duplicate = runner.invoke(args=["factories", "create", "--name", "Nkawkaw", "--location", "Elsewhere"])
    assert duplicate.exit_code != 0
    assert "already exists" in duplicate.output


def test_cleanup_sessions(runner, db_session, supervisor):
    old, _ = session_service.create_session(supervisor.id)
    old.created_at = utcnow() - timedelta(days=40)
    old.expires_at = utcnow() - timedelta(days=39)
    fresh, _ = session_service.create_session(supervisor.id)
    db_session.commit()
    fresh_id = fresh.id

    result = runner.invoke(args=["maintenance", "cleanup-sessions", "--older-than-days", "30"])
    assert result.exit_code == 0, result.output
    assert "Deleted 1" in result.output
    assert [s.id for s in db_session.query(SessionToken).all()] == [fresh_id]
