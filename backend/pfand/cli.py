# Overview: Flask CLI command groups for bootstrap, account setup, and ledger inspection.

# backend/pfand/cli.py
# Commands Legend (run from the backend directory):
# Prereqs:
# - Activate your virtualenv.
# - Set FLASK_APP to wsgi.py (PowerShell: $env:FLASK_APP="wsgi.py").
# - Use: python -m flask <group> <command> [options]
#
# System bootstrap/repair:
# - python -m flask system init-db
#   Create missing tables (idempotent).
# - python -m flask system reset-db --yes
#   DEV/TEST only: drop and recreate all tables (deletes all data).
#
# Accounts:
# - python -m flask accounts create --name "Mia" --email mia@uni.example --student-id 12345
# - python -m flask accounts list
#
# Pfand ledger:
# - python -m flask pfand deposit --account-id 1 --cups 2 [--order-id abc123]
# - python -m flask pfand return --account-id 1 --cups 1 [--processed-by Anna]
# - python -m flask pfand stats
# - python -m flask pfand outstanding

import click
from flask import current_app
from flask.cli import with_appcontext

from .errors import LedgerError
from .extensions import db
from .models import Account
from .money import format_money
from .services import balance_service
from .services.return_service import get_return_processor
from .services.transaction_log import SqlTransactionLog


@click.group('system')
def system_group():
    """System bootstrap and repair commands."""


@system_group.command('init-db')
@with_appcontext
def init_db():
    """Create all tables that do not exist yet."""
    db.create_all()
    click.echo("PASS Database schema ready.")


@system_group.command('reset-db')
@click.option('--yes', is_flag=True, help='Skip confirmation')
@with_appcontext
def reset_db(yes):
    """
    DANGER: Drop all tables and recreate schema.

    This will DELETE ALL DATA, including the append-only Pfand ledger!
    """
    if not yes:
        click.confirm("WARN This will DELETE ALL DATA. Are you sure?", abort=True)

    click.echo("DELETE  Dropping all tables...")
    db.drop_all()

    click.echo("BUILD  Creating all tables...")
    db.create_all()

    click.echo("PASS Database reset complete.")


# =============================================================================
# ACCOUNT COMMANDS
# =============================================================================

@click.group('accounts')
def accounts_group():
    """Customer account bootstrap and inspection."""


@accounts_group.command('create')
@click.option('--name', required=True, help='Display name')
@click.option('--email', default=None, help='Email (unique)')
@click.option('--student-id', default=None, help='Student ID')
@with_appcontext
def create_account_cli(name, email, student_id):
    """Create a customer account."""
    if email:
        existing = db.session.query(Account).filter_by(email=email).first()
        if existing:
            click.echo(f"FAIL Account with email '{email}' already exists (ID: {existing.id})")
            return

    account = Account(name=name, email=email, student_id=student_id, is_active=True)
    db.session.add(account)
    db.session.commit()

    click.echo(f"PASS Created account: {account.name} (ID: {account.id})")


@accounts_group.command('list')
@with_appcontext
def list_accounts():
    """List all accounts with their outstanding cups."""
    accounts = db.session.query(Account).order_by(Account.id).all()

    if not accounts:
        click.echo("No accounts found.")
        return

    log = SqlTransactionLog()

    click.echo("\n" + "="*80)
    click.echo(f"{'ID':<5} {'Name':<30} {'Email':<30} {'Cups'}")
    click.echo("="*80)

    for account in accounts:
        cups = balance_service.outstanding_units(log.entries_for(account.id))
        click.echo(f"{account.id:<5} {account.name:<30} {account.email or '-':<30} {cups}")

    click.echo("="*80 + "\n")


# =============================================================================
# PFAND COMMANDS
# =============================================================================

@click.group('pfand')
def pfand_group():
    """Pfand ledger operations and reports."""


@pfand_group.command('deposit')
@click.option('--account-id', type=int, required=True)
@click.option('--cups', type=int, required=True)
@click.option('--order-id', default=None)
@with_appcontext
def deposit_cli(account_id, cups, order_id):
    """Record a deposit for cups handed out."""
    try:
        entry = get_return_processor().record_deposit(account_id, cups, order_id=order_id)
    except LedgerError as e:
        click.echo(f"FAIL {e.kind}: {e.message}")
        return
    click.echo(f"PASS Deposit #{entry.id}: {entry.unit_count} cups, {format_money(entry.amount)}")


@pfand_group.command('return')
@click.option('--account-id', type=int, required=True)
@click.option('--cups', type=int, required=True)
@click.option('--processed-by', default='Staff')
@with_appcontext
def return_cli(account_id, cups, processed_by):
    """Process a cup return."""
    try:
        result = get_return_processor().process_return(account_id, cups, processed_by)
    except LedgerError as e:
        click.echo(f"FAIL {e.kind}: {e.message}")
        return
    click.echo(
        f"PASS Refunded {format_money(result.refund_amount)}; "
        f"{result.remaining_units} cups still outstanding"
    )


@pfand_group.command('stats')
@with_appcontext
def stats_cli():
    """Show system-wide Pfand totals."""
    summary = balance_service.system_summary(
        SqlTransactionLog().all_entries(),
        current_app.config["PFAND_UNIT_VALUE"],
    )
    click.echo(f"Cups outstanding:     {summary.total_units_outstanding}")
    click.echo(f"Deposit outstanding:  {format_money(summary.total_value_outstanding)}")
    click.echo(f"Accounts with cups:   {summary.accounts_with_outstanding_units}")
    click.echo(f"Cups returned:        {summary.total_units_returned}")
    click.echo(f"Refunds issued:       {format_money(summary.total_value_refunded)}")


@pfand_group.command('outstanding')
@with_appcontext
def outstanding_cli():
    """List accounts that still hold cups, most cups first."""
    summary = balance_service.system_summary(
        SqlTransactionLog().all_entries(),
        current_app.config["PFAND_UNIT_VALUE"],
    )

    if not summary.accounts:
        click.echo("No outstanding cups.")
        return

    click.echo(f"{'Account':<10} {'Cups':<6} {'Value':<10} {'Last activity'}")
    for balance in summary.accounts:
        row = balance.to_dict()
        click.echo(
            f"{balance.account_id:<10} {balance.outstanding_units:<6} "
            f"{row['outstanding_value']:<10} {row['last_activity']}"
        )


def register_commands(app):
    """Register all CLI commands with Flask app."""
    app.cli.add_command(system_group)
    app.cli.add_command(accounts_group)
    app.cli.add_command(pfand_group)
