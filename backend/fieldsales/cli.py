# Overview: Flask CLI command groups for bootstrap, inspection, and maintenance.

# Commands Legend (run from the backend directory):
# Prereqs:
# - Activate your virtualenv.
# - Set FLASK_APP to wsgi.py (PowerShell: $env:FLASK_APP="wsgi.py").
# - Use: python -m flask <group> <command> [options]
#
# System bootstrap/repair:
# - python -m flask system init
#   Create all tables (idempotent). Use `flask db upgrade` for migrated databases.
# - python -m flask system reset-db --yes
#   DEV/TEST only: drop and recreate all tables (deletes all data).
# - python -m flask system cleanup-sessions
#   Delete expired/revoked sessions older than SESSION_RETENTION_DAYS.
#
# User inspection/bootstrap:
# - python -m flask users create-admin --name "Owner" --email owner@example.com --password "Password123!"
#   Create an admin (tenant root). Prompts if options are omitted.
# - python -m flask users list [--role agent]
#   List logins with role, owning admin and active status.
#
# Reporting:
# - python -m flask sales stats --email manager@example.com
#   Print the sales totals visible to that login (admin, manager or agent).

import click
from flask.cli import with_appcontext

from .extensions import db
from .errors import ServiceError
from .models import User
from .models.auth import ROLE_ADMIN, VALID_ROLES
from .services.auth_service import create_user, PasswordValidationError
from .services import sales_service, session_service
from .services.hierarchy_service import Principal


@click.group('system')
def system_group():
    """System bootstrap and repair commands."""


@system_group.command('init')
@with_appcontext
def init_system():
    """
    Create every table that does not exist yet.

    No users are seeded; create the first admin with `users create-admin`.
    """
    click.echo("START Initializing fieldsales database...")
    db.create_all()
    admins = db.session.query(User).filter(User.role == ROLE_ADMIN).count()
    click.echo(f"PASS Schema ready ({admins} admin account(s))")
    if not admins:
        click.echo("NEXT Run 'python -m flask users create-admin' to create the first admin.")


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

    click.echo("PASS Database reset complete.")


@system_group.command('cleanup-sessions')
@with_appcontext
def cleanup_sessions():
    """Delete dead sessions older than SESSION_RETENTION_DAYS."""
    deleted = session_service.cleanup_expired_sessions()
    click.echo(f"Deleted {deleted} stale session(s).")


@click.group('users')
def users_group():
    """User inspection and bootstrap commands."""


@users_group.command('create-admin')
@click.option('--name', prompt=True, help='Display name')
@click.option('--email', prompt=True, help='Email address')
@click.option('--password', prompt=True, hide_input=True, confirmation_prompt=True, help='Password')
@click.option('--phone', default=None, help='Phone number (optional)')
@with_appcontext
def create_admin_cli(name, email, password, phone):
    """
    Create an admin account.

    Each admin is the root of its own tenant: its managers, agents, workers,
    products and sales are invisible to every other admin.

    Password must meet strength requirements:
    - Minimum 8 characters
    - At least one uppercase letter
    - At least one lowercase letter
    - At least one digit
    - At least one special character
    """
    try:
        user = create_user(name=name, email=email, password=password, role=ROLE_ADMIN, phone=phone)
        click.echo(f"PASS Created admin: {user.name} ({user.email}) ID {user.id}")
        click.echo("SECURITY Password securely hashed with bcrypt")
    except PasswordValidationError as e:
        click.echo(f"FAIL Password validation failed: {e.message}")
        click.echo("Requirements: 8+ chars, uppercase, lowercase, digit, special char")
        raise SystemExit(1)
    except ServiceError as e:
        click.echo(f"FAIL Failed to create admin: {e.message}")
        raise SystemExit(1)


@users_group.command('list')
@click.option('--role', type=click.Choice(VALID_ROLES), help='Filter by role')
@with_appcontext
def list_users(role):
    """List all logins."""
    query = db.session.query(User)
    if role:
        query = query.filter(User.role == role)

    users = query.order_by(User.id.asc()).all()

    if not users:
        click.echo("No users found.")
        return

    click.echo("\n" + "="*100)
    click.echo(f"{'ID':<5} {'Role':<9} {'Admin':<6} {'Name':<22} {'Email':<38} {'Active'}")
    click.echo("="*100)

    for user in users:
        owner = user.created_by_admin_id if user.created_by_admin_id is not None else "-"
        active_str = "Yes" if user.is_active else "No"
        click.echo(
            f"{user.id:<5} {user.normalized_role:<9} {owner!s:<6} {user.name[:22]:<22} "
            f"{user.email[:38]:<38} {active_str}"
        )

    click.echo("="*100 + "\n")


@click.group('sales')
def sales_group():
    """Sales reporting commands."""


@sales_group.command('stats')
@click.option('--email', required=True, help='Login whose view of the sales is reported')
@with_appcontext
def sales_stats_cli(email):
    """Print sales totals scoped exactly like GET /api/sales/stats."""
    user = db.session.query(User).filter(User.email == email.strip().lower()).first()
    if not user:
        click.echo(f"FAIL No login with email {email}")
        raise SystemExit(1)

    try:
        stats = sales_service.get_sales_stats(Principal.from_user(user))
    except ServiceError as e:
        click.echo(f"FAIL {e.message}")
        raise SystemExit(1)

    click.echo(f"Sales visible to {user.email} ({user.normalized_role})")
    click.echo(f"  Orders:            {stats['total_orders']}")
    click.echo(f"  Sold:              {stats['total_sales']}")
    click.echo(f"  Confirmed revenue: ${stats['total_revenue_cents'] / 100:,.2f}")
    click.echo(f"  Pending payments:  {stats['pending_payments']}")


def register_commands(app):
    """Register all CLI commands with Flask app."""
    app.cli.add_command(system_group)
    app.cli.add_command(users_group)
    app.cli.add_command(sales_group)
