# Overview: Flask CLI command groups for bootstrap, inspection, and maintenance.

# backend/pricebook/cli.py
# Commands Legend (run from the backend directory):
# Prereqs:
# - Activate your virtualenv.
# - Set FLASK_APP to wsgi.py (PowerShell: $env:FLASK_APP="wsgi.py").
# - Use: python -m flask <group> <command> [options]
#
# System bootstrap/repair:
# - python -m flask system init
#   Idempotent bootstrap: creates tables and the default admin and user accounts.
# - python -m flask system reset-db --yes
#   DEV/TEST only: drop and recreate all tables (deletes all data).
#
# User inspection/bootstrap:
# - python -m flask users list
#   List all users with role and ban status.
# - python -m flask users create --name "Jane" --email jane@pricebook.local --password "Password123!" --role admin
#   Create a user (prompts if options are omitted).
#
# Catalog maintenance:
# - python -m flask products list [--status all] [--search bolt]
#   List products with their current price.
# - python -m flask products purge BOLT-10 --yes
#   Hard delete a product and its whole price history. Audit rows are kept.
#
# Maintenance:
# - python -m flask maintenance cleanup-sessions --retention-days 30
#   Delete expired or revoked sessions older than the retention window.
# - python -m flask maintenance cleanup-security-events --retention-days 90
#   Delete security events older than the retention window.

import click
from flask.cli import with_appcontext

from .extensions import db
from .models import User, ROLES, ROLE_ADMIN, ROLE_USER
from .services.auth_service import create_user, PasswordValidationError
from .services import products_service, security_service, session_service
from .validation import ConflictError, NotFoundError, ReferentialConflictError, ValidationError


@click.group('system')
def system_group():
    """System bootstrap and repair commands."""


@system_group.command('init')
@with_appcontext
def init_system():
    """
    Initialize the pricebook: schema plus default accounts.

    Creates:
    - All tables (if missing)
    - Users: Admin/admin@pricebook.local (admin), User/user@pricebook.local (user)
    - All passwords default to: "Password123!"

    SECURITY: Change passwords immediately in production!
    """
    click.echo("START Initializing pricebook...")

    db.create_all()
    click.echo("PASS Tables ready")

    click.echo("\nUSERS Creating default users...")
    default_password = "Password123!"

    default_users = [
        ("Admin", "admin@pricebook.local", ROLE_ADMIN, default_password),
        ("User", "user@pricebook.local", ROLE_USER, default_password),
    ]

    for name, email, role, password in default_users:
        existing = db.session.query(User).filter_by(email=email).first()
        if existing:
            click.echo(f"WARN  User '{email}' already exists, skipping...")
            continue

        try:
            create_user(name=name, email=email, password=password, role=role)
            click.echo(f"PASS Created user: {name} ({email}) with role '{role}'")
        except PasswordValidationError as e:
            click.echo(f"FAIL Password validation failed for '{email}': {str(e)}")
        except (ValidationError, ConflictError) as e:
            click.echo(f"FAIL Failed to create user '{email}': {str(e)}")

    click.echo("\n" + "="*60)
    click.echo("DONE Pricebook Initialized Successfully!")
    click.echo("="*60)
    click.echo("\nDefault Credentials (CHANGE IN PRODUCTION!):")
    click.echo("   admin -> admin@pricebook.local / Password123!")
    click.echo("   user  -> user@pricebook.local  / Password123!")
    click.echo("")


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

    click.echo("PASS Database reset complete. Run 'python -m flask system init' to initialize.")


@click.group('users')
def users_group():
    """User inspection and bootstrap commands."""


@users_group.command('list')
@with_appcontext
def list_users():
    """List all users with role and status."""
    users = db.session.query(User).order_by(User.id).all()

    if not users:
        click.echo("No users found.")
        return

    click.echo("\n" + "="*90)
    click.echo(f"{'ID':<5} {'Name':<20} {'Email':<32} {'Role':<8} {'Status'}")
    click.echo("="*90)

    for user in users:
        click.echo(f"{user.id:<5} {user.name:<20} {user.email:<32} {user.role:<8} {user.status}")

    click.echo("="*90 + "\n")


@users_group.command('create')
@click.option('--name', prompt=True, help='Display name')
@click.option('--email', prompt=True, help='Email address')
@click.option('--password', prompt=True, hide_input=True, confirmation_prompt=True, help='Password')
@click.option('--role', type=click.Choice(ROLES), default=ROLE_USER, show_default=True, help='Role')
@with_appcontext
def create_user_command(name, email, password, role):
    """Create a user account."""
    try:
        user = create_user(name=name, email=email, password=password, role=role)
    except (ValidationError, ConflictError) as e:
        raise click.ClickException(str(e))

    click.echo(f"PASS Created user: {user.name} ({user.email}) with role '{user.role}' (ID: {user.id})")


@click.group('products')
def products_group():
    """Catalog inspection and maintenance commands."""


@products_group.command('list')
@click.option('--status', type=click.Choice(products_service.PRODUCT_STATUSES),
              default=products_service.STATUS_ACTIVE, show_default=True)
@click.option('--search', default=None, help='Match on code or description')
@with_appcontext
def list_products(status, search):
    """List products with their current price."""
    listing = products_service.list_products(search=search, status=status)

    if not listing["items"]:
        click.echo("No products found.")
        return

    click.echo("\n" + "="*90)
    click.echo(f"{'Code':<16} {'Description':<36} {'Unit':<8} {'Price':>12} {'Deleted'}")
    click.echo("="*90)

    for item in listing["items"]:
        deleted_str = "Yes" if item["is_deleted"] else "No"
        click.echo(
            f"{item['code']:<16} {item['description']:<36} {item['unit']:<8} "
            f"{item['current_price']:>12} {deleted_str}"
        )

    click.echo("="*90)
    click.echo(f"{listing['count']} product(s)\n")


@products_group.command('purge')
@click.argument('code')
@click.option('--yes', is_flag=True, help='Skip confirmation')
@with_appcontext
def purge_product(code, yes):
    """
    DANGER: Hard delete a product and all of its price history.

    Audit entries for the code are kept.
    """
    if not yes:
        click.confirm(f"WARN This will permanently delete {code} and its price history. Are you sure?", abort=True)

    try:
        removed = products_service.hard_delete_product(code=code)
    except (NotFoundError, ReferentialConflictError) as e:
        raise click.ClickException(str(e))

    click.echo(f"PASS Purged {code} ({removed} price entries removed)")


@click.group('maintenance')
def maintenance_group():
    """Retention and cleanup commands."""


@maintenance_group.command('cleanup-sessions')
@click.option('--retention-days', type=int, default=30, show_default=True)
@with_appcontext
def cleanup_sessions(retention_days):
    """Delete expired or revoked sessions older than the retention window."""
    deleted = session_service.cleanup_expired_sessions(retention_days=retention_days)
    click.echo(f"PASS Deleted {deleted} session(s)")


@maintenance_group.command('cleanup-security-events')
@click.option('--retention-days', type=int, default=90, show_default=True)
@with_appcontext
def cleanup_security_events(retention_days):
    """Delete security events older than the retention window."""
    deleted = security_service.cleanup_security_events(retention_days=retention_days)
    click.echo(f"PASS Deleted {deleted} security event(s)")


def register_commands(app):
    """Register all CLI commands with Flask app."""
    app.cli.add_command(system_group)
    app.cli.add_command(users_group)
    app.cli.add_command(products_group)
    app.cli.add_command(maintenance_group)
