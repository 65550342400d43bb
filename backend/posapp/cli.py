# Overview: Flask CLI command groups for bootstrap and staff inspection.

# backend/posapp/cli.py
# Commands (run from the backend directory with FLASK_APP=wsgi.py):
# - flask system init
#   Idempotent bootstrap: creates tables and the default admin, manager and cashier users.
# - flask system reset-db --yes
#   DEV/TEST only: drop and recreate all tables (deletes all data).
# - flask users list
#   List all staff accounts with role and active status.
# - flask users create --username jdoe --email jdoe@pos.local --full-name "Jane Doe" --role cashier
#   Create a staff account (prompts for the password).

import click
from flask.cli import with_appcontext

from .extensions import db
from .models import User, USER_ROLES
from .errors import ServiceError
from .services import user_service


DEFAULT_PASSWORD = "Password123"

DEFAULT_USERS = [
    ("admin", "admin@pos.local", "Store Administrator", "admin"),
    ("manager", "manager@pos.local", "Store Manager", "manager"),
    ("cashier", "cashier@pos.local", "Front Cashier", "cashier"),
]


@click.group('system')
def system_group():
    """System bootstrap and repair commands."""


@system_group.command('init')
@with_appcontext
def init_system():
    """
    Create all tables and seed one user per role.

    Existing usernames are skipped, so running it twice is safe.
    All seeded passwords default to DEFAULT_PASSWORD; change them in production.
    """
    click.echo("START Initializing POS system...")
    db.create_all()

    for username, email, full_name, role in DEFAULT_USERS:
        if db.session.query(User).filter_by(username=username).first():
            click.echo(f"WARN  User '{username}' already exists, skipping...")
            continue
        try:
            user_service.create_user(
                username=username,
                email=email,
                password=DEFAULT_PASSWORD,
                full_name=full_name,
                role=role,
            )
        except ServiceError as e:
            db.session.rollback()
            click.echo(f"FAIL Failed to create user '{username}': {e.message}")
            continue
        click.echo(f"PASS Created user: {username} ({email}) with role '{role}'")

    click.echo("\nDONE POS system initialized.")
    click.echo(f"Default password for seeded users: {DEFAULT_PASSWORD}")


@system_group.command('reset-db')
@click.option('--yes', is_flag=True, help='Skip confirmation')
@with_appcontext
def reset_db(yes):
    """
    DANGER: Drop all tables and recreate schema.
    """
    if not yes:
        click.confirm("WARN This will DELETE ALL DATA. Are you sure?", abort=True)

    click.echo("DELETE  Dropping all tables...")
    db.drop_all()

    click.echo("BUILD  Creating all tables...")
    db.create_all()

    click.echo("PASS Database reset complete. Run 'flask system init' to seed users.")


@click.group('users')
def users_group():
    """Staff account inspection and bootstrap commands."""


@users_group.command('create')
@click.option('--username', prompt=True, help='Username')
@click.option('--email', prompt=True, help='Email address')
@click.option('--full-name', prompt=True, help='Full name')
@click.option('--role', type=click.Choice(USER_ROLES), prompt=True, help='Role')
@click.option('--password', prompt=True, hide_input=True, confirmation_prompt=True, help='Password')
@with_appcontext
def create_user_cmd(username, email, full_name, role, password):
    """Create a staff account."""
    try:
        user = user_service.create_user(
            username=username,
            email=email,
            password=password,
            full_name=full_name,
            role=role,
        )
    except ServiceError as e:
        db.session.rollback()
        raise click.ClickException(e.message)

    click.echo(f"PASS Created user {user.username} (ID: {user.id}) with role '{user.role}'")


@users_group.command('list')
@click.option('--all', 'include_inactive', is_flag=True, help='Include deactivated accounts')
@with_appcontext
def list_users(include_inactive):
    """List staff accounts."""
    query = db.session.query(User)
    if not include_inactive:
        query = query.filter_by(is_active=True)
    users = query.order_by(User.id).all()

    if not users:
        click.echo("No users found.")
        return

    click.echo("\n" + "=" * 80)
    click.echo(f"{'ID':<5} {'Username':<20} {'Email':<30} {'Role':<10} {'Active'}")
    click.echo("=" * 80)
    for user in users:
        active_str = "Yes" if user.is_active else "No"
        click.echo(f"{user.id:<5} {user.username:<20} {user.email:<30} {user.role:<10} {active_str}")
    click.echo("=" * 80 + "\n")


def register_commands(app):
    """Register all CLI commands with Flask app."""
    app.cli.add_command(system_group)
    app.cli.add_command(users_group)
