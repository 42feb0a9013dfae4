# Overview: Flask CLI command groups for bootstrap, location setup, and shift closures.

# backend/forecourt/cli.py
# Commands Legend (run from the backend directory):
# Prereqs:
# - Activate your virtualenv.
# - Set FLASK_APP to "forecourt:create_app".
# - Use: python -m flask <group> <command> [options]
#
# System bootstrap:
# - python -m flask system init-db
#   Create all tables (idempotent). Use `flask db upgrade` for migrated deployments.
# - python -m flask system seed-payment-methods
#   Insert the default payment methods (cash, cards, transfers, loyalty).
#
# Locations:
# - python -m flask locations create --name "Station 1" --code "ST1" --consolidated-payments
#   Create a location and set its payment declaration mode.
#
# Shift closures:
# - python -m flask shifts close --file closure.json --operator-id 7
#   Submit a closure from a JSON file and print the result.

import json

import click
from flask import current_app
from flask.cli import with_appcontext

from .extensions import db
from .services import catalog_service, location_service
from .services.closure_schemas import STATUS_FAILED, parse_closure_request
from .services.shift_closure_service import close_shift, logger_observer
from .validation import ValidationError


@click.group('system')
def system_group():
    """System bootstrap commands."""


@system_group.command('init-db')
@with_appcontext
def init_db():
    """Create all tables that do not exist yet."""
    from . import models  # noqa: F401

    db.create_all()
    click.echo("PASS Database schema created")


@system_group.command('seed-payment-methods')
@with_appcontext
def seed_payment_methods_cli():
    """Insert missing default payment methods."""
    created = catalog_service.seed_payment_methods()
    click.echo(f"PASS Payment methods seeded ({created} created)")


@click.group('locations')
def locations_group():
    """Location management commands."""


@locations_group.command('create')
@click.option('--name', required=True, help='Location name')
@click.option('--code', help='Short code (unique)')
@click.option('--timezone', default='UTC', help='IANA timezone name')
@click.option(
    '--consolidated-payments/--per-hose-payments',
    default=None,
    help='Declare payments per product (consolidated) or per hose',
)
@with_appcontext
def create_location_cli(name, code, timezone, consolidated_payments):
    """
    Create a new location.

    Example:
        flask locations create --name "Station 1" --code ST1 --consolidated-payments
    """
    try:
        location = location_service.create_location(name=name, code=code, timezone=timezone)
        if consolidated_payments is not None:
            location_service.set_consolidated_payment_mode(location.id, consolidated_payments)

        mode = location_service.is_consolidated_payment_mode(location.id)
        click.echo(f"PASS Created location: {location.name}")
        click.echo(f"   Location ID: {location.id}")
        click.echo(f"   Code: {location.code or 'Not specified'}")
        click.echo(f"   Payment mode: {'consolidated' if mode else 'per hose'}")

    except location_service.LocationError as e:
        click.echo(f"FAIL Error: {str(e)}")
        raise SystemExit(1)


@click.group('shifts')
def shifts_group():
    """Shift closure commands."""


@shifts_group.command('close')
@click.option('--file', 'file_path', type=click.Path(exists=True, dir_okay=False), required=True,
              help='Closure request JSON file')
@click.option('--operator-id', type=int, help='User closing the shift')
@with_appcontext
def close_shift_cli(file_path, operator_id):
    """
    Submit a shift closure and print the JSON result.

    Exit code is 0 when the closure was committed (with or without line
    errors) and 1 otherwise.
    """
    try:
        with open(file_path, encoding="utf-8") as fh:
            payload = json.load(fh)
        closure = parse_closure_request(payload)
    except (OSError, json.JSONDecodeError, ValidationError) as e:
        click.echo(f"FAIL Invalid closure request: {str(e)}", err=True)
        raise SystemExit(1)

    result = close_shift(closure, operator_id=operator_id, observer=logger_observer(current_app.logger))
    click.echo(json.dumps(result.to_dict(), indent=2, sort_keys=True))
    if result.status == STATUS_FAILED:
        raise SystemExit(1)


def register_commands(app):
    """Register all CLI commands with Flask app."""
    app.cli.add_command(system_group)
    app.cli.add_command(locations_group)
    app.cli.add_command(shifts_group)
