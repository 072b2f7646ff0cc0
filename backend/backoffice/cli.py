# Overview: Flask CLI command groups for bootstrap, inspection, and maintenance.

# backend/backoffice/cli.py
# Commands Legend (run from the backend directory):
# Prereqs:
# - Activate your virtualenv.
# - Set FLASK_APP to wsgi.py (PowerShell: $env:FLASK_APP="wsgi.py").
# - Use: python -m flask <group> <command> [options]
#
# System bootstrap/repair:
# - python -m flask system init-db
#   Create all tables that do not exist yet.
# - python -m flask system reset-db --yes
#   DEV/TEST only: drop and recreate all tables (deletes all data).
#
# User inspection/bootstrap:
# - python -m flask users list
#   List all users with role and account state.
# - python -m flask users create --email owner@example.com --password "secret1" --role global:owner
#   Create a user (prompts if options are omitted).
# - python -m flask users restore --email alice@example.com
#   Clear the compromised flag after an investigation.
#
# Maintenance:
# - python -m flask maintenance cleanup-sessions --older-than-days 30
#   Delete expired or revoked refresh sessions.
# - python -m flask maintenance cleanup-security-events --retention-days 90
#   Delete security events older than the retention window.

import click
from flask.cli import with_appcontext
from sqlalchemy import func

from .extensions import db
from .models import User
from .models.auth import DEFAULT_ROLE_SLUG, ADMIN_ROLE_SLUGS
from .services import providers
from .services.auth_service import EmailAlreadyRegistered
from .services.security_service import cleanup_security_events, log_security_event
from .validation import ValidationError

ROLE_CHOICES = (DEFAULT_ROLE_SLUG,) + ADMIN_ROLE_SLUGS


@click.group('system')
def system_group():
    """System bootstrap and repair commands."""


@system_group.command('init-db')
@with_appcontext
def init_db():
    """Create all tables (existing tables are left untouched)."""
    db.create_all()
    click.echo("PASS Database tables created.")


@system_group.command('reset-db')
@click.option('--yes', is_flag=True, help='Skip confirmation')
@with_appcontext
def reset_db(yes):
    """
    DANGER: Drop all tables and recreate schema.

    This will DELETE ALL DATA!
    """
    if not yes:
        click.confirm("WARN This will DELETE ALL DATA. Are you sure?", abort=True)

    click.echo("DELETE  Dropping all tables...")
    db.drop_all()

    click.echo("BUILD  Creating all tables...")
    db.create_all()

    click.echo("PASS Database reset complete. Run 'python -m flask users create' to add an owner.")


@click.group('users')
def users_group():
    """User inspection and bootstrap commands."""


@users_group.command('create')
@click.option('--email', prompt=True, help='Email address')
@click.option('--password', prompt=True, hide_input=True, confirmation_prompt=True, help='Password')
@click.option('--first-name', default=None, help='First name')
@click.option('--last-name', default=None, help='Last name')
@click.option('--role', type=click.Choice(ROLE_CHOICES), default=DEFAULT_ROLE_SLUG, show_default=True)
@with_appcontext
def create_user_cli(email, password, first_name, last_name, role):
    """
    Create a new user.

    Same validation as POST /auth/register, but the role can be chosen.
    """
    try:
        created = providers.auth_service().register(
            email,
            password,
            first_name=first_name,
            last_name=last_name,
        )
    except ValidationError as e:
        raise click.ClickException(f"Validation failed: {e}")
    except EmailAlreadyRegistered as e:
        raise click.ClickException(str(e))

    if role != DEFAULT_ROLE_SLUG:
        user = db.session.get(User, created["id"])
        user.role_slug = role
        db.session.commit()

    click.echo(f"PASS Created user: {created['email']} (ID: {created['id']}) with role '{role}'")


@users_group.command('list')
@with_appcontext
def list_users():
    """List all users with role and account state."""
    users = db.session.query(User).order_by(User.id.asc()).all()

    if not users:
        click.echo("No users found.")
        return

    click.echo("\n" + "="*90)
    click.echo(f"{'ID':<5} {'Email':<35} {'Role':<16} {'Disabled':<10} {'Compromised'}")
    click.echo("="*90)

    for user in users:
        disabled_str = "Yes" if user.disabled else "No"
        compromised_str = "Yes" if user.compromised else "No"
        click.echo(f"{user.id:<5} {user.email:<35} {user.role_slug:<16} {disabled_str:<10} {compromised_str}")

    click.echo("="*90 + "\n")


@users_group.command('restore')
@click.option('--email', required=True, help='Email of the compromised account')
@with_appcontext
def restore_user(email):
    """
    Clear the compromised flag so the user can log in again.

    Sessions revoked when the account was flagged stay revoked.
    """
    user = db.session.query(User).filter(func.lower(User.email) == email.strip().lower()).first()
    if user is None:
        raise click.ClickException(f"User not found: {email}")

    if not user.compromised:
        click.echo(f"WARN  {user.email} is not marked compromised, nothing to do.")
        return

    user.compromised = False
    user.compromised_at = None
    log_security_event(
        user_id=user.id,
        event_type="ACCOUNT_RESTORED",
        success=True,
        reason="Restored from CLI",
        commit=False,
    )
    db.session.commit()

    click.echo(f"PASS Restored {user.email}. The user must log in again.")


@click.group('maintenance')
def maintenance_group():
    """Maintenance commands."""


@maintenance_group.command('cleanup-sessions')
@click.option('--older-than-days', type=int, default=30, show_default=True)
@with_appcontext
def cleanup_sessions_cli(older_than_days):
    """Delete expired or revoked refresh sessions."""
    deleted = providers.session_manager().cleanup_expired_sessions(older_than_days=older_than_days)
    click.echo(f"Deleted {deleted} sessions older than {older_than_days} days.")


@maintenance_group.command('cleanup-security-events')
@click.option('--retention-days', type=int, default=90, show_default=True)
@with_appcontext
def cleanup_security_events_cli(retention_days):
    """
    Cleanup old security events.

    Default retention: 90 days.
    """
    deleted = cleanup_security_events(retention_days=retention_days)
    click.echo(f"Deleted {deleted} security events older than {retention_days} days.")


def register_commands(app):
    """Register all CLI commands with Flask app."""
    app.cli.add_command(system_group)
    app.cli.add_command(users_group)
    app.cli.add_command(maintenance_group)
