# Overview: Flask CLI command groups for bootstrap, inspection, and maintenance.

# backend/podcount/cli.py
# Commands Legend (run from the backend directory):
# Prereqs:
# - Activate your virtualenv.
# - Set FLASK_APP to podcount (PowerShell: $env:FLASK_APP="podcount").
# - Use: python -m flask <group> <command> [options]
#
# System bootstrap:
# - python -m flask system init
#   Idempotent seed: Achiase and Akrofuom factories, admin, one supervisor,
#   field officer and guest per factory, and each factory's default template.
# - python -m flask system reset-db --yes
#   DEV/TEST only: drop and recreate all tables (deletes all data).
#
# Factory management:
# - python -m flask factories list
# - python -m flask factories create --name "Achiase" --location "Eastern Region, Ghana" --type ORGANIC
#
# User inspection/bootstrap:
# - python -m flask users list [--factory-id 1]
# - python -m flask users create --email admin@koa.com --password "admin123" --role ADMIN --factory-id 1
#
# Maintenance:
# - python -m flask maintenance cleanup-sessions --older-than-days 30
#   Delete expired and revoked session tokens.

import click
from flask.cli import with_appcontext

from .errors import ServiceError
from .extensions import db
from .models import Factory, User
from .permissions import FACTORY_TYPES, ROLES, ROLE_ADMIN, ROLE_FIELD_OFFICER, ROLE_GUEST, ROLE_SUPERVISOR
from .services import auth_service, factory_service, form_service, session_service, user_service
from .services.session_service import Principal


SEED_FACTORIES = [
    ("Achiase", "Eastern Region, Ghana", "ORGANIC"),
    ("Akrofuom", "Ashanti Region, Ghana", "CONVENTIONAL"),
]

SEED_PASSWORDS = {
    ROLE_ADMIN: "admin123",
    ROLE_SUPERVISOR: "supervisor123",
    ROLE_FIELD_OFFICER: "officer123",
    ROLE_GUEST: "guest123",
}

# Principal used by the seed; it is never persisted as a user.
_SYSTEM = Principal(user_id=0, role=ROLE_ADMIN, factory_id=None)


def _seed_users(factories: dict[str, Factory]) -> list[tuple[str, str, str, str, int | None]]:
    """(name, email, role, password, factory_id) for every seeded account."""
    users = [("Admin User", "admin@koa.com", ROLE_ADMIN, SEED_PASSWORDS[ROLE_ADMIN], factories["Achiase"].id)]
    for factory_name, factory in factories.items():
        slug = factory_name.lower()
        users.extend([
            (f"{factory_name} Supervisor", f"supervisor.{slug}@koa.com", ROLE_SUPERVISOR,
             SEED_PASSWORDS[ROLE_SUPERVISOR], factory.id),
            (f"{factory_name} Field Officer", f"officer.{slug}@koa.com", ROLE_FIELD_OFFICER,
             SEED_PASSWORDS[ROLE_FIELD_OFFICER], factory.id),
            (f"{factory_name} Guest", f"guest.{slug}@koa.com", ROLE_GUEST,
             SEED_PASSWORDS[ROLE_GUEST], factory.id),
        ])
    return users


@click.group('system')
def system_group():
    """System bootstrap and repair commands."""


@system_group.command('init')
@with_appcontext
def init_system():
    """
    Seed factories, default users and default templates.

    Safe to re-run: existing factories, users and templates are left alone.

    SECURITY: Change the seeded passwords immediately in production!
    """
    click.echo("START Initializing PodCount...")

    factories: dict[str, Factory] = {}
    for name, location, factory_type in SEED_FACTORIES:
        factory = db.session.query(Factory).filter_by(name=name).first()
        if factory:
            click.echo(f"PASS Using existing factory: {factory.name} (ID: {factory.id})")
        else:
            factory = factory_service.create_factory(
                _SYSTEM, {"name": name, "location": location, "type": factory_type}
            )
            click.echo(f"PASS Created factory: {factory.name} (ID: {factory.id}, {factory.type})")
        factories[name] = factory

    click.echo("\nUSERS Creating default users...")
    admin = None
    for name, email, role, password, factory_id in _seed_users(factories):
        existing = auth_service.get_user_by_email(email)
        if existing:
            click.echo(f"WARN  User '{email}' already exists, skipping...")
            user = existing
        else:
            try:
                user = user_service.create_user(_SYSTEM, {
                    "name": name,
                    "email": email,
                    "password": password,
                    "role": role,
                    "factory_id": factory_id,
                })
            except ServiceError as e:
                click.echo(f"FAIL Failed to create user '{email}': {e.message}")
                continue
            click.echo(f"PASS Created user: {email} with role '{role}'")
        if role == ROLE_ADMIN:
            admin = user

    if admin is not None:
        click.echo("\nFORMS Provisioning default templates...")
        for factory in factories.values():
            form = form_service.ensure_default_template(
                Principal(user_id=admin.id, role=admin.role, factory_id=factory.id)
            )
            if form:
                click.echo(f"PASS Created '{form.name}' for {factory.name}")
            else:
                click.echo(f"PASS Default template already present for {factory.name}")

    click.echo("\n" + "=" * 60)
    click.echo("DONE PodCount Initialized Successfully!")
    click.echo("=" * 60)
    click.echo("\nDefault Credentials (CHANGE IN PRODUCTION!):")
    click.echo("   admin@koa.com                / admin123")
    click.echo("   supervisor.<factory>@koa.com / supervisor123")
    click.echo("   officer.<factory>@koa.com    / officer123")
    click.echo("   guest.<factory>@koa.com      / guest123")
    click.echo("")


@system_group.command('reset-db')
@click.option('--yes', is_flag=True, help='Confirm dropping all tables')
@with_appcontext
def reset_db(yes):
    """DEV/TEST only: drop and recreate every table."""
    if not yes:
        click.echo("Refusing to reset without --yes")
        return
    db.drop_all()
    db.create_all()
    click.echo("PASS Database reset")


@click.group('factories')
def factories_group():
    """Factory management commands."""


@factories_group.command('list')
@with_appcontext
def list_factories():
    for factory in factory_service.list_factories():
        click.echo(f"{factory.id:>4}  {factory.name:<24} {factory.type:<13} {factory.location}")


@factories_group.command('create')
@click.option('--name', prompt=True)
@click.option('--location', prompt=True)
@click.option('--type', 'factory_type', type=click.Choice(FACTORY_TYPES), default='OTHER', show_default=True)
@with_appcontext
def create_factory(name, location, factory_type):
    try:
        factory = factory_service.create_factory(
            _SYSTEM, {"name": name, "location": location, "type": factory_type}
        )
    except ServiceError as e:
        raise click.ClickException(e.message)
    click.echo(f"PASS Created factory {factory.name} (ID: {factory.id})")


@click.group('users')
def users_group():
    """User inspection and bootstrap commands."""


@users_group.command('list')
@click.option('--factory-id', type=int, default=None)
@with_appcontext
def list_users(factory_id):
    query = db.session.query(User)
    if factory_id is not None:
        query = query.filter(User.factory_id == factory_id)
    for user in query.order_by(User.id.asc()).all():
        factory = user.factory.name if user.factory else "-"
        click.echo(f"{user.id:>4}  {user.email:<32} {user.role:<13} {user.status:<8} {factory}")


@users_group.command('create')
@click.option('--name', default=None)
@click.option('--email', prompt=True)
@click.option('--password', prompt=True, hide_input=True, confirmation_prompt=True)
@click.option('--role', type=click.Choice(ROLES), default='USER', show_default=True)
@click.option('--factory-id', type=int, default=None)
@with_appcontext
def create_user(name, email, password, role, factory_id):
    try:
        user = user_service.create_user(_SYSTEM, {
            "name": name,
            "email": email,
            "password": password,
            "role": role,
            "factory_id": factory_id,
        })
    except ServiceError as e:
        raise click.ClickException(e.message)
    click.echo(f"PASS Created user {user.email} (ID: {user.id}, role {user.role})")


@click.group('maintenance')
def maintenance_group():
    """Maintenance commands."""


@maintenance_group.command('cleanup-sessions')
@click.option('--older-than-days', type=int, default=30, show_default=True)
@with_appcontext
def cleanup_sessions(older_than_days):
    deleted = session_service.cleanup_expired_sessions(older_than_days=older_than_days)
    click.echo(f"Deleted {deleted} expired or revoked sessions older than {older_than_days} days.")


def register_commands(app):
    """Register all CLI commands with Flask app."""
    app.cli.add_command(system_group)
    app.cli.add_command(factories_group)
    app.cli.add_command(users_group)
    app.cli.add_command(maintenance_group)
