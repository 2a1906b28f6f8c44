# Overview: Flask CLI command groups for bootstrap, ledger setup, and stock audits.

# backend/restopos/cli.py
# Commands Legend (run from the backend directory):
# Prereqs:
# - Activate your virtualenv.
# - Set FLASK_APP to wsgi.py (PowerShell: $env:FLASK_APP="wsgi.py").
# - Use: python -m flask <group> <command> [options]
#
# Bootstrap:
# - python -m flask db-init
#   Create all tables (use `flask db upgrade` for migrated installs).
#
# Chart of accounts:
# - python -m flask accounts init-defaults
#   Seed the default restaurant chart (refuses when accounts exist).
#
# Financial years:
# - python -m flask fy create --name "FY 2025-2026" --start 2025-04-01 --end 2026-03-31T23:59:59 --current
# - python -m flask fy set-current 2
# - python -m flask fy close 2 [--no-carry-forward]
# - python -m flask fy current
#
# Stock:
# - python -m flask stock audit
#   Replay every ingredient's movements from zero and report mismatches.
#
# Tax:
# - python -m flask tax set-active 1
# - python -m flask tax set-active --clear

import click
from flask.cli import with_appcontext

from .extensions import db
from .errors import DomainError
from .services import accounting_service, financial_year_service, selection_service, stock_service

CLI_ACTOR = "cli"


@click.command('db-init')
@with_appcontext
def db_init():
    """Create all tables."""
    db.create_all()
    click.echo("PASS Tables created.")


@click.group('accounts')
def accounts_group():
    """Chart of accounts commands."""


@accounts_group.command('init-defaults')
@with_appcontext
def init_default_accounts():
    try:
        created = accounting_service.initialize_default_accounts(actor_id=CLI_ACTOR)
    except DomainError as e:
        raise click.ClickException(e.message)
    click.echo(f"PASS Created {created} accounts.")


@accounts_group.command('list')
@with_appcontext
def list_accounts():
    for account in accounting_service.list_accounts(include_inactive=True):
        status = "active" if account.is_active else "inactive"
        click.echo(
            f"{account.code:<6} {account.name:<30} {account.account_type:<10} "
            f"{account.current_balance_cents:>12} ({status})"
        )


@click.group('fy')
def fy_group():
    """Financial year commands."""


@fy_group.command('create')
@click.option('--name', required=True, help='Financial year name')
@click.option('--start', 'start_date', required=True, help='Start (ISO date or datetime)')
@click.option('--end', 'end_date', required=True, help='End (ISO date or datetime)')
@click.option('--current', 'set_current', is_flag=True, help='Make it the current year')
@with_appcontext
def create_fy(name, start_date, end_date, set_current):
    try:
        fy = financial_year_service.create_financial_year(
            name=name,
            start_date=start_date,
            end_date=end_date,
            set_current=set_current,
            actor_id=CLI_ACTOR,
        )
    except DomainError as e:
        raise click.ClickException(e.message)
    click.echo(f"PASS Created financial year {fy.name} (id={fy.id}).")


@fy_group.command('set-current')
@click.argument('fy_id', type=int)
@with_appcontext
def set_current_fy(fy_id):
    try:
        fy = financial_year_service.set_current_financial_year(fy_id, actor_id=CLI_ACTOR)
    except DomainError as e:
        raise click.ClickException(e.message)
    click.echo(f"PASS Current financial year is {fy.name}.")


@fy_group.command('close')
@click.argument('fy_id', type=int)
@click.option('--carry-forward/--no-carry-forward', default=True, show_default=True)
@click.option('--yes', is_flag=True, help='Skip confirmation')
@with_appcontext
def close_fy(fy_id, carry_forward, yes):
    """Close a financial year. Closed years cannot be reopened."""
    if not yes:
        click.confirm("WARN Closing a financial year cannot be undone. Continue?", abort=True)
    try:
        result = financial_year_service.close_financial_year(
            fy_id,
            actor_id=CLI_ACTOR,
            carry_forward=carry_forward,
        )
    except DomainError as e:
        raise click.ClickException(e.message)
    click.echo(f"PASS Closed financial year {fy_id}.")
    if result["next_financial_year_id"]:
        click.echo(f"      Next financial year id={result['next_financial_year_id']} is now current.")


@fy_group.command('current')
@with_appcontext
def current_fy():
    fy = accounting_service.get_current_financial_year()
    if fy is None:
        click.echo("No current financial year.")
        return
    click.echo(f"{fy.id} {fy.name} {fy.status} {fy.start_date:%Y-%m-%d} .. {fy.end_date:%Y-%m-%d}")


@click.group('stock')
def stock_group():
    """Stock ledger commands."""


@stock_group.command('audit')
@with_appcontext
def audit_stock():
    """Replay movements for every ingredient; exit 1 on any mismatch."""
    bad = 0
    ingredients = stock_service.list_ingredients(include_inactive=True)
    for ingredient in ingredients:
        result = stock_service.replay_stock(ingredient.id)
        if not result["consistent"]:
            bad += 1
            click.echo(
                f"FAIL {ingredient.name}: replayed {result['replayed']} != stored {result['current']}"
            )
    if bad:
        raise click.ClickException(f"{bad} ingredient(s) inconsistent")
    click.echo(f"PASS {len(ingredients)} ingredient(s) consistent.")


@click.group('tax')
def tax_group():
    """Tax setting commands."""


@tax_group.command('set-active')
@click.argument('tax_setting_id', type=int, required=False)
@click.option('--clear', is_flag=True, help='Deactivate tax entirely')
@with_appcontext
def set_active_tax(tax_setting_id, clear):
    if tax_setting_id is None and not clear:
        raise click.UsageError("Pass a tax setting id or --clear")
    try:
        tax = selection_service.set_active_tax(None if clear else tax_setting_id, actor_id=CLI_ACTOR)
    except DomainError as e:
        raise click.ClickException(e.message)
    if tax is None:
        click.echo("PASS Tax cleared.")
    else:
        click.echo(f"PASS Active tax is {tax.name} ({tax.rate_bps} bps).")


def register_commands(app):
    """Register all CLI commands with Flask app."""
    app.cli.add_command(db_init)
    app.cli.add_command(accounts_group)
    app.cli.add_command(fy_group)
    app.cli.add_command(stock_group)
    app.cli.add_command(tax_group)
