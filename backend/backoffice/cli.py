# Overview: Flask CLI command groups for schema bootstrap, tenants, and metrics inspection.

# backend/backoffice/cli.py
# Commands Legend (run from the backend directory):
# Prereqs:
# - Activate your virtualenv.
# - Set FLASK_APP to wsgi.py (PowerShell: $env:FLASK_APP="wsgi.py").
# - Use: python -m flask <group> <command> [options]
#
# Schema bootstrap:
# - python -m flask system init-db
#   Create any missing tables (idempotent).
# - python -m flask system reset-db --yes
#   DEV/TEST only: drop and recreate all tables (deletes all data).
#
# Organization management (MULTI-TENANT):
# - python -m flask orgs list [--json]
#   List all organizations.
# - python -m flask orgs create --name "Acme Corp" --code "ACME" [--method FIFO]
#   Create a new organization (tenant), optionally with its own costing method.
#
# Metrics inspection:
# - python -m flask metrics dashboard --org-id 1 --start 2026-01-01 --end 2026-01-31
#   Print the dashboard metrics record as JSON.
# - python -m flask metrics valuation --org-id 1
#   Print the per-product stock valuation as JSON.

import json

import click
from flask.cli import with_appcontext

from .extensions import db
from .metrics import ValuationError
from .metrics.policy import normalize_method
from .models import Organization, Product
from .services import metrics_service
from .services.metrics_service import MetricsError
from .services.snapshot_service import SnapshotFetchError


@click.group('system')
def system_group():
    """Schema bootstrap commands."""


@system_group.command('init-db')
@with_appcontext
def init_db():
    """Create all tables that do not exist yet."""
    db.create_all()
    click.echo("PASS Database schema is up to date.")


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

    metrics_service.clear_cache()
    click.echo("PASS Database reset complete.")


@click.group('orgs')
def orgs_group():
    """Organization (tenant) management commands."""


@orgs_group.command('list')
@click.option('--json', 'as_json', is_flag=True, help='Print as JSON')
@with_appcontext
def list_orgs(as_json):
    """List all organizations."""
    orgs = db.session.query(Organization).order_by(Organization.id.asc()).all()

    if as_json:
        click.echo(json.dumps([org.to_dict() for org in orgs], indent=2))
        return

    if not orgs:
        click.echo("No organizations found.")
        return

    click.echo("\n" + "="*80)
    click.echo(f"{'ID':<5} {'Name':<30} {'Code':<15} {'Active':<8} {'Method':<8} {'Products'}")
    click.echo("="*80)

    for org in orgs:
        product_count = db.session.query(Product).filter_by(org_id=org.id).count()
        active_str = "Yes" if org.is_active else "No"
        method = org.stock_accounting_method or "-"

        click.echo(f"{org.id:<5} {org.name:<30} {org.code or '-':<15} {active_str:<8} {method:<8} {product_count}")

    click.echo("="*80 + "\n")


@orgs_group.command('create')
@click.option('--name', required=True, help='Organization name')
@click.option('--code', required=True, help='Short code (unique)')
@click.option('--method', default=None, help='Costing method: FIFO, LIFO or WAC')
@with_appcontext
def create_org_cli(name, code, method):
    """Create a new organization (tenant)."""
    existing = db.session.query(Organization).filter_by(code=code).first()
    if existing:
        click.echo(f"FAIL Organization with code '{code}' already exists")
        raise SystemExit(1)

    try:
        stock_method = normalize_method(method) if method else None
    except ValuationError as e:
        click.echo(f"FAIL {e}")
        raise SystemExit(1)

    org = Organization(name=name, code=code, is_active=True, stock_accounting_method=stock_method)
    db.session.add(org)
    db.session.commit()

    click.echo(f"PASS Created organization: {org.name} (ID: {org.id}, Code: {org.code})")


@click.group('metrics')
def metrics_group():
    """Dashboard metrics and stock valuation inspection."""


@metrics_group.command('dashboard')
@click.option('--org-id', type=int, required=True, help='Organization ID')
@click.option('--start', default=None, help='Window start date (YYYY-MM-DD)')
@click.option('--end', default=None, help='Window end date (YYYY-MM-DD)')
@with_appcontext
def dashboard_cli(org_id, start, end):
    """Print the dashboard metrics record as JSON."""
    try:
        result = metrics_service.dashboard_metrics(org_id=org_id, start=start, end=end, refresh=True)
    except MetricsError as e:
        click.echo(f"FAIL {e}")
        raise SystemExit(1)

    click.echo(json.dumps(result, indent=2, sort_keys=True))


@metrics_group.command('valuation')
@click.option('--org-id', type=int, required=True, help='Organization ID')
@with_appcontext
def valuation_cli(org_id):
    """Print the per-product stock valuation as JSON."""
    try:
        result = metrics_service.inventory_valuation(org_id=org_id)
    except MetricsError as e:
        click.echo(f"FAIL {e}")
        raise SystemExit(1)
    except SnapshotFetchError as e:
        click.echo(f"FAIL {e}")
        raise SystemExit(1)

    click.echo(json.dumps(result, indent=2, sort_keys=True))


def register_commands(app):
    """Register all CLI commands with Flask app."""
    app.cli.add_command(system_group)
    app.cli.add_command(orgs_group)  # Multi-tenant organization management
    app.cli.add_command(metrics_group)
