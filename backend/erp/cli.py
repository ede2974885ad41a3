# Overview: Flask CLI command groups for database bootstrap and document inspection.

# backend/erp/cli.py
# Commands Legend (run from the backend directory):
# Prereqs:
# - Activate your virtualenv.
# - Set FLASK_APP to erp (PowerShell: $env:FLASK_APP="erp").
# - Use: python -m flask <group> <command> [options]
#
# System bootstrap/repair:
# - python -m flask system init-db
#   Create any missing tables (idempotent).
# - python -m flask system reset-db --yes
#   DEV/TEST only: drop and recreate all tables (deletes all data).
#
# Document inspection:
# - python -m flask documents list --type invoice [--status draft]
#   List documents of one type.
# - python -m flask documents check --type invoice --id 3 --operation delete
#   Ask the immutability policy whether an operation is allowed.
# - python -m flask documents check-bulk --type invoice --operation delete 1 2 3
#   Same, for several ids at once.
# - python -m flask documents post --type invoice --id 3 [--actor "jane"]
#   Post a draft. Irreversible.

import asyncio

import click
from flask.cli import with_appcontext

from .extensions import db
from .services import immutability_service, lifecycle_service
from .services.document_service import DOCUMENT_TYPES, DocumentNotFoundError, get_document_type, make_loader
from .services.lifecycle_service import LifecycleError

DOCUMENT_TYPE_CHOICE = click.Choice(sorted(DOCUMENT_TYPES))
OPERATION_CHOICE = click.Choice([immutability_service.Operation.UPDATE.value, immutability_service.Operation.DELETE.value])


@click.group('system')
def system_group():
    """System bootstrap and repair commands."""


@system_group.command('init-db')
@with_appcontext
def init_db():
    """Create all tables that do not exist yet."""
    db.create_all()
    click.echo("PASS Database tables ready.")


@system_group.command('reset-db')
@click.option('--yes', is_flag=True, help='Skip confirmation')
@with_appcontext
def reset_db(yes):
    """
    DANGER: Drop all tables and recreate schema.

    This will DELETE ALL DATA, posted documents included!
    """
    if not yes:
        click.confirm("WARN This will DELETE ALL DATA. Are you sure?", abort=True)

    click.echo("DELETE  Dropping all tables...")
    db.drop_all()

    click.echo("BUILD  Creating all tables...")
    db.create_all()

    click.echo("PASS Database reset complete.")


@click.group('documents')
def documents_group():
    """Document inspection and posting commands."""


@documents_group.command('list')
@click.option('--type', 'doc_type_key', type=DOCUMENT_TYPE_CHOICE, required=True, help='Document type')
@click.option('--status', type=click.Choice(sorted(lifecycle_service.VALID_STATUSES)), help='Filter by status')
@with_appcontext
def list_documents_cli(doc_type_key, status):
    """List documents of one type with their allowed operations."""
    doc_type = get_document_type(doc_type_key)
    model = doc_type.model

    query = db.session.query(model)
    if status:
        query = query.filter(model.status == status)
    documents = query.order_by(model.id.asc()).all()

    if not documents:
        click.echo(f"No {doc_type.label.lower()} documents found.")
        return

    click.echo("\n" + "="*72)
    click.echo(f"{'ID':<8} {'Status':<10} {'Amount':>14}   {'Operations'}")
    click.echo("="*72)

    for doc in documents:
        ops = immutability_service.get_allowed_operations(doc)
        allowed = [name for name, flag in (("update", ops.can_update), ("delete", ops.can_delete), ("post", ops.can_post)) if flag]
        ops_str = ", ".join(allowed) if allowed else "read only"
        amount = f"{doc.amount_cents / 100:,.2f}"

        click.echo(f"{doc.id:<8} {doc.status:<10} {amount:>14}   {ops_str}")

    click.echo("="*72 + "\n")


@documents_group.command('check')
@click.option('--type', 'doc_type_key', type=DOCUMENT_TYPE_CHOICE, required=True, help='Document type')
@click.option('--id', 'record_id', type=int, required=True, help='Document ID')
@click.option('--operation', type=OPERATION_CHOICE, default='update', show_default=True)
@with_appcontext
def check_document_cli(doc_type_key, record_id, operation):
    """Check whether an update/delete would be allowed, without changing anything."""
    doc_type = get_document_type(doc_type_key)

    decision = asyncio.run(
        immutability_service.validate_by_loader(record_id, make_loader(doc_type), operation, doc_type.label)
    )

    if decision.allowed:
        click.echo(f"PASS {decision.message}")
    else:
        click.echo(f"FAIL [{decision.status_code}] {decision.error}")


@documents_group.command('check-bulk')
@click.option('--type', 'doc_type_key', type=DOCUMENT_TYPE_CHOICE, required=True, help='Document type')
@click.option('--operation', type=OPERATION_CHOICE, default='update', show_default=True)
@click.argument('record_ids', type=int, nargs=-1, required=True)
@with_appcontext
def check_documents_bulk_cli(doc_type_key, operation, record_ids):
    """Check an update/delete over several ids."""
    doc_type = get_document_type(doc_type_key)

    result = asyncio.run(
        immutability_service.validate_bulk(list(record_ids), make_loader(doc_type), operation, doc_type.label)
    )

    for entry in result.results:
        decision = entry.decision
        if decision.allowed:
            click.echo(f"PASS {entry.record_id}: {decision.message}")
        else:
            click.echo(f"FAIL {entry.record_id}: [{decision.status_code}] {decision.error}")

    summary = result.summary
    click.echo(f"\nTotal: {summary.total}  Allowed: {summary.allowed}  Blocked: {summary.blocked}")


@documents_group.command('post')
@click.option('--type', 'doc_type_key', type=DOCUMENT_TYPE_CHOICE, required=True, help='Document type')
@click.option('--id', 'record_id', type=int, required=True, help='Document ID')
@click.option('--actor', default='cli', show_default=True, help='Recorded as posted_by')
@with_appcontext
def post_document_cli(doc_type_key, record_id, actor):
    """Post a draft document. Posted documents can never be modified again."""
    doc_type = get_document_type(doc_type_key)

    try:
        doc = lifecycle_service.post_document(doc_type, record_id, posted_by=actor)
    except (DocumentNotFoundError, LifecycleError) as e:
        raise click.ClickException(str(e))

    click.echo(f"PASS Posted {doc_type.label.lower()} {doc.id}")


def register_commands(app):
    """Register all CLI commands with Flask app."""
    app.cli.add_command(system_group)
    app.cli.add_command(documents_group)
