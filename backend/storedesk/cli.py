# Overview: Flask CLI command groups for bootstrap, store administration and demo data.

# backend/storedesk/cli.py
# Commands Legend (run from the backend directory):
# Prereqs:
# - Activate your virtualenv.
# - Set FLASK_APP to storedesk (PowerShell: $env:FLASK_APP="storedesk").
# - Use: python -m flask <group> <command> [options]
#
# System bootstrap:
# - python -m flask system init
#   Create the storage table (idempotent) and report the key prefix in use.
#
# Store administration (acts as the configured super_admin):
# - python -m flask stores list
#   List all stores with status, expiration and owner.
# - python -m flask stores create --name "Loja Centro" --email loja@x.com --owner-name "Ana" --owner-email ana@x.com --owner-password secret1
#   Create a store and its owner (prompts for the password if omitted).
# - python -m flask stores block <store_id>
# - python -m flask stores unblock <store_id>
# - python -m flask stores extend <store_id> --days 30
#
# Demo data:
# - python -m flask seed demo --store-id <store_id>
#   Add demo products and customers to a store that has none yet.

import click
from datetime import timedelta
from flask import current_app
from flask.cli import with_appcontext

from .extensions import db
from .services import seed_service, store_service
from .services.access_control import AccessContext, TenantAccessError
from .services.auth_service import build_super_admin
from .services.storage_service import get_storage
from .time_utils import to_utc_z, utcnow
from .validation import ConflictError, NotFoundError, ValidationError


def _admin_context() -> AccessContext:
    return AccessContext(user=build_super_admin(current_app.config["SUPER_ADMIN_EMAIL"]), active_store=None)


@click.group('system')
def system_group():
    """System bootstrap commands."""


@system_group.command('init')
@with_appcontext
def init_system():
    """Create the storage table. Safe to run repeatedly."""
    db.create_all()
    storage = get_storage()
    click.echo("PASS Storage table ready")
    click.echo(f"     Key prefix: {storage.prefix} (e.g. {storage.key_for('PRODUCTS')})")
    click.echo(f"     super_admin login: {current_app.config['SUPER_ADMIN_EMAIL']}")


# =============================================================================
# STORE ADMINISTRATION COMMANDS
# =============================================================================

@click.group('stores')
def stores_group():
    """Store (tenant) administration commands."""


@stores_group.command('list')
@with_appcontext
def list_stores():
    """List all stores."""
    storage = get_storage()
    stores = store_service.list_stores(storage, _admin_context())

    if not stores:
        click.echo("No stores found.")
        return

    now = utcnow()
    click.echo("\n" + "="*100)
    click.echo(f"{'ID':<34} {'Name':<24} {'Active':<8} {'Expiration':<20} {'Owner'}")
    click.echo("="*100)

    for store in stores:
        owner = store_service.get_store_owner(storage, store.id)
        status = store_service.expiration_status(store, now)
        active_str = "Yes" if store.is_active else "No"
        owner_str = owner.email if owner else "-"

        click.echo(f"{store.id:<34} {store.name:<24} {active_str:<8} {status['message']:<20} {owner_str}")

    click.echo("="*100 + "\n")


@stores_group.command('create')
@click.option('--name', required=True, help='Store name')
@click.option('--email', required=True, help='Store contact email')
@click.option('--phone', default=None, help='Store phone')
@click.option('--address', default=None, help='Store address')
@click.option('--days', type=int, default=None, help='Access length in days (omit for unlimited)')
@click.option('--owner-name', required=True, help='Owner full name')
@click.option('--owner-email', required=True, help='Owner login email')
@click.option('--owner-password', prompt=True, hide_input=True, confirmation_prompt=True, help='Owner password')
@with_appcontext
def create_store_cli(name, email, phone, address, days, owner_name, owner_email, owner_password):
    """Create a store together with its owner account."""
    payload = {"name": name, "email": email, "phone": phone, "address": address}
    if days is not None:
        if days <= 0:
            click.echo("FAIL --days must be > 0")
            return
        payload["expires_at"] = utcnow() + timedelta(days=days)

    try:
        store, owner = store_service.create_store(
            get_storage(),
            _admin_context(),
            payload,
            {"name": owner_name, "email": owner_email, "password": owner_password},
        )
    except (ValidationError, ConflictError) as e:
        click.echo(f"FAIL {str(e)}")
        return

    click.echo(f"PASS Created store: {store.name} (ID: {store.id})")
    click.echo(f"     Owner: {owner.name} <{owner.email}>")
    if store.expires_at:
        click.echo(f"     Expires: {to_utc_z(store.expires_at)}")


def _set_active(store_id: str, active: bool) -> None:
    try:
        store = store_service.set_store_active(get_storage(), _admin_context(), store_id, active)
    except NotFoundError as e:
        click.echo(f"FAIL {str(e)}: {store_id}")
        return
    click.echo(f"PASS Store '{store.name}' {'unblocked' if active else 'blocked'}")


@stores_group.command('block')
@click.argument('store_id')
@with_appcontext
def block_store_cli(store_id):
    """Block a store; its users can no longer log in."""
    _set_active(store_id, False)


@stores_group.command('unblock')
@click.argument('store_id')
@with_appcontext
def unblock_store_cli(store_id):
    """Unblock a store."""
    _set_active(store_id, True)


@stores_group.command('extend')
@click.argument('store_id')
@click.option('--days', type=int, required=True, help='Days to add to the expiration date')
@with_appcontext
def extend_store_cli(store_id, days):
    """Extend a store's access period."""
    try:
        store = store_service.extend_store_access(get_storage(), _admin_context(), store_id, days)
    except (ValidationError, NotFoundError, TenantAccessError) as e:
        click.echo(f"FAIL {str(e)}")
        return
    click.echo(f"PASS Store '{store.name}' now expires {to_utc_z(store.expires_at)}")


# =============================================================================
# DEMO DATA
# =============================================================================

@click.group('seed')
def seed_group():
    """Demo data commands."""


@seed_group.command('demo')
@click.option('--store-id', required=True, help='Store to seed')
@with_appcontext
def seed_demo_cli(store_id):
    """Add demo products and customers to a store without any."""
    try:
        added = seed_service.seed_demo_data(get_storage(), store_id)
    except NotFoundError as e:
        click.echo(f"FAIL {str(e)}: {store_id}")
        return

    if not added["products"] and not added["customers"]:
        click.echo("WARN  Store already has products and customers, nothing seeded")
        return
    click.echo(f"PASS Seeded {added['products']} products and {added['customers']} customers")


def register_commands(app):
    """Register all CLI commands with Flask app."""
    app.cli.add_command(system_group)
    app.cli.add_command(stores_group)
    app.cli.add_command(seed_group)
