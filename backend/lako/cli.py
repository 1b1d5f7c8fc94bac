# Overview: Flask CLI command groups for bootstrap, account management and maintenance.

# backend/lako/cli.py
# Commands Legend (run from the backend directory):
# Prereqs:
# - Activate your virtualenv and export JWT_SECRET_KEY.
# - Set FLASK_APP to "lako:create_app".
# - Use: python -m flask <group> <command> [options]
#
# System bootstrap:
# - python -m flask system init
#   Create all tables (development; production uses `flask db upgrade`).
# - python -m flask system reset-db --yes
#   DEV/TEST only: drop and recreate all tables (deletes all data).
#
# Accounts:
# - python -m flask users create --username admin --email admin@lako.local --password "Password123" --role superuser
#   Create an account with any role (the public API only creates customers).
# - python -m flask users list
#
# Invoices:
# - python -m flask invoices recalculate --invoice-id 3 --owner-id 1
#   Re-sum an invoice's items into its amount.
#
# Mail:
# - python -m flask mail flush
#   Deliver everything waiting in the mail queue, in this process.

import click
from flask.cli import with_appcontext

from .enums import Role
from .errors import LakoError
from .extensions import current_mailer, current_settings, db
from .models import User
from .services import auth_service, invoice_service


@click.group('system')
def system_group():
    """System bootstrap commands."""


@system_group.command('init')
@with_appcontext
def init_system():
    """Create any missing tables."""
    db.create_all()
    click.echo("PASS Tables created")


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


@click.group('users')
def users_group():
    """Account management commands."""


@users_group.command('create')
@click.option('--username', prompt=True, help='Username')
@click.option('--email', prompt=True, help='Email address')
@click.option('--password', prompt=True, hide_input=True, confirmation_prompt=True, help='Password')
@click.option('--role', type=click.Choice([r.value for r in Role]), default=Role.CUSTOMER.value,
              show_default=True, help='Role')
@with_appcontext
def create_user_cli(username, email, password, role):
    """Create an account; its confirmation email is sent before the command exits."""
    mailer = current_mailer()
    try:
        user = auth_service.register_user(
            username=username,
            email=email,
            password=password,
            settings=current_settings(),
            mailer=mailer,
            role=Role(role),
        )
    except LakoError as e:
        click.echo(f"FAIL Failed to create user: {e.message}")
        return

    mailer.process_pending()
    click.echo(f"PASS Created user: {user.username} ({email}) with role '{role}'")
    click.echo(f"     User ID: {user.id}")
    click.echo("SECURITY Password securely hashed with bcrypt")


@users_group.command('list')
@with_appcontext
def list_users():
    """List all users with their role and primary email."""
    users = db.session.query(User).order_by(User.id.asc()).all()

    if not users:
        click.echo("No users found.")
        return

    click.echo("\n" + "=" * 90)
    click.echo(f"{'ID':<5} {'Username':<20} {'Email':<35} {'Verified':<9} {'Role'}")
    click.echo("=" * 90)

    for user in users:
        primary = user.primary_email
        address = primary.address if primary else "-"
        verified = "Yes" if primary and primary.verified else "No"
        click.echo(f"{user.id:<5} {user.username:<20} {address:<35} {verified:<9} {user.role.value}")

    click.echo("=" * 90 + "\n")


@click.group('invoices')
def invoices_group():
    """Invoice maintenance commands."""


@invoices_group.command('recalculate')
@click.option('--invoice-id', type=int, required=True, help='Invoice ID')
@click.option('--owner-id', type=int, required=True, help='Owning user ID')
@with_appcontext
def recalculate_invoice_cli(invoice_id, owner_id):
    """Recompute an invoice amount from its items."""
    try:
        amount = invoice_service.recalculate_amount(invoice_id, owner_id)
    except LakoError as e:
        click.echo(f"FAIL {e.message}")
        return
    click.echo(f"PASS Invoice {invoice_id} amount is now {amount}")


@click.group('mail')
def mail_group():
    """Outbound mail commands."""


@mail_group.command('flush')
@with_appcontext
def flush_mail():
    """Deliver queued mail synchronously."""
    mailer = current_mailer()
    pending = mailer.pending()
    sent = mailer.process_pending()
    click.echo(f"PASS Sent {sent} of {pending} queued emails")


def register_commands(app):
    """Register all CLI commands with Flask app."""
    app.cli.add_command(system_group)
    app.cli.add_command(users_group)
    app.cli.add_command(invoices_group)
    app.cli.add_command(mail_group)
