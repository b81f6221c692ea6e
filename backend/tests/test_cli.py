from datetime import timedelta

from dashng.models import Notification, SessionToken, User, UserSettings
from dashng.time_utils import utcnow


def test_users_create_and_list(app, db_session):
    runner = app.test_cli_runner()

    result = runner.invoke(args=[
        "users", "create",
        "--username", "keeper1",
        "--email", "keeper1@dashng.test",
        "--password", "Password123!",
        "--role", "storekeeper",
    ])

    assert result.exit_code == 0, result.output
    user = db_session.query(User).filter_by(username="keeper1").one()
    assert user.role == "storekeeper"
    assert db_session.query(UserSettings).filter_by(user_id=user.id).count() == 1

    result = runner.invoke(args=["users", "list", "--role", "storekeeper"])
    assert "keeper1" in result.output


def test_users_create_rejects_duplicate(app, customer):
    result = app.test_cli_runner().invoke(args=[
        "users", "create",
        "--username", customer.username,
        "--email", "other@dashng.test",
        "--password", "Password123!",
        "--role", "sales",
    ])

    assert result.exit_code != 0
    assert "already exists" in result.output


def test_purge_expired_notifications(app, db_session, storekeeper):
    db_session.add_all([
        Notification(user_id=storekeeper.id, type="low_stock", title="old", message="m",
                     expires_at=utcnow() - timedelta(days=1)),
        Notification(user_id=storekeeper.id, type="low_stock", title="new", message="m"),
    ])
    db_session.commit()

    result = app.test_cli_runner().invoke(args=["notifications", "purge-expired"])

    assert "Deleted 1 expired notifications" in result.output
    assert [n.title for n in db_session.query(Notification).all()] == ["new"]


def test_sessions_cleanup(app, db_session, customer, customer_headers):
    db_session.add(SessionToken(
        user_id=customer.id,
        token_hash="stale",
        expires_at=utcnow() - timedelta(days=1),
    ))
    db_session.commit()

    result = app.test_cli_runner().invoke(args=["sessions", "cleanup"])

    assert "Deleted 1 expired or revoked sessions" in result.output
    assert db_session.query(SessionToken).count() == 1
