"""
CLI bootstrap tests.
"""

from posapp.cli import DEFAULT_USERS
from posapp.extensions import db
from posapp.models import User


def test_system_init_is_idempotent(app):
    runner = app.test_cli_runner()

    first = runner.invoke(args=["system", "init"])
    assert first.exit_code == 0, first.output
    second = runner.invoke(args=["system", "init"])
    assert second.exit_code == 0, second.output
    assert "already exists, skipping" in second.output

    roles = {u.username: u.role for u in db.session.query(User).all()}
    assert roles == {username: role for username, _, _, role in DEFAULT_USERS}


def test_users_create_and_list(app):
    runner = app.test_cli_runner()

    result = runner.invoke(args=[
        "users", "create",
        "--username", "jdoe",
        "--email", "jdoe@pos.test",
        "--full-name", "Jane Doe",
        "--role", "cashier",
        "--password", "secret1",
    ])
    assert result.exit_code == 0, result.output

    listing = runner.invoke(args=["users", "list"])
    assert "jdoe" in listing.output

    duplicate = runner.invoke(args=[
        "users", "create",
        "--username", "jdoe",
        "--email", "jdoe@pos.test",
        "--full-name", "Jane Doe",
        "--role", "cashier",
        "--password", "secret1",
    ])
    assert duplicate.exit_code != 0
    assert "already exists" in duplicate.output
