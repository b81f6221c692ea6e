# Overview: Flask CLI command groups for bootstrap, inspection, and maintenance.

# backend/dashng/cli.py
# Commands Legend (run from the backend directory):
# Prereqs:
# - Activate your virtualenv.
# - Set FLASK_APP to "dashng:create_app".
# - Use: python -m flask <group> <command> [options]
#
# System bootstrap:
# - python -m flask system init-db
#   Create all tables that do not exist yet.
# - python -m flask system reset-db --yes
#   DEV/TEST only: drop and recreate all tables (deletes all data).
#
# Users:
# - python -m flask users create --username keeper --email keeper@dashng.local --password "Password123!" --role storekeeper
#   Create a user of any role together with its default settings.
# - python -m flask users list [--role storekeeper]
#   List users with role and active status.
#
# Maintenance:
# - python -m flask notifications purge-expired
#   Delete notifications whose expires_at has passed.
# - python -m flask sessions cleanup
#   Delete expired or revoked session tokens.

import click
from flask.cli import with_appcontext

from .extensions import db
from .models import User
from .models.auth import VALID_ROLES
from .services.auth_service import create_user, PasswordValidationError
from .services import notification_service, session_service
from .validation import ConflictError, ValidationError


@click.group('system')
def system_group():
    """System bootstrap and repair commands."""


@system_group.command('init-db')
@with_appcontext
def init_db():
    """Create all tables."""
    db.create_all()
    click.echo("PASS Database tables created")


@system_group.command('reset-db')
@click.option('--yes', is_flag=True, help='Skip confirmation')
@with_appcontext
def reset_db(yes):
    """Drop and recreate all tables. Deletes all data."""
    if not yes:
        click.confirm("This deletes ALL data. Continue?", abort=True)
    db.drop_all()
    db.create_all()
    click.echo("PASS Database reset")


@click.group('users')
def users_group():
    """User inspection and bootstrap commands."""


@users_group.command('create')
@click.option('--username', prompt=True, help='Username')
@click.option('--email', prompt=True, help='Email address')
@click.option('--password', prompt=True, hide_input=True, confirmation_prompt=True, help='Password')
@click.option('--role', type=click.Choice(VALID_ROLES), prompt=True, help='Role')
@click.option('--first-name', default=None, help='First name')
@click.option('--last-name', default=None, help='Last name')
@with_appcontext
def create_user_cli(username, email, password, role, first_name, last_name):
    """Create a user of any role."""
    try:
        user = create_user(
            username=username,
            email=email,
            password=password,
            role=role,
            first_name=first_name,
            last_name=last_name,
        )
    except (ValidationError, ConflictError, PasswordValidationError) as e:
        raise click.ClickException(str(e))
    click.echo(f"PASS Created user {user.username} (ID: {user.id}, role: {user.role})")


@users_group.command('list')
@click.option('--role', type=click.Choice(VALID_ROLES), help='Filter by role')
@with_appcontext
def list_users(role):
    """List users."""
    q = db.session.query(User).order_by(User.id.asc())
    if role:
        q = q.filter(User.role == role)
    users = q.all()
    if not users:
        click.echo("No users found")
        return
    for u in users:
        status = "active" if u.is_active else "inactive"
        click.echo(f"{u.id:>5}  {u.username:<24} {u.role:<12} {status}")


@click.group('notifications')
def notifications_group():
    """Notification maintenance commands."""


@notifications_group.command('purge-expired')
@with_appcontext
def purge_expired_notifications():
    deleted = notification_service.purge_expired()
    click.echo(f"PASS Deleted {deleted} expired notifications")


@click.group('sessions')
def sessions_group():
    """Session token maintenance commands."""


@sessions_group.command('cleanup')
@with_appcontext
def cleanup_sessions():
    deleted = session_service.cleanup_expired_sessions()
    click.echo(f"PASS Deleted {deleted} expired or revoked sessions")


def register_commands(app):
    app.cli.add_command(system_group)
    app.cli.add_command(users_group)
    app.cli.add_command(notifications_group)
    app.cli.add_command(sessions_group)
