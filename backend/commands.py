"""Operator commands, available as ``flask --app app <command>``.

The monthly job is scheduled outside the app, e.g. a crontab entry on day 1::

    5 0 1 * * cd /srv/league/backend && flask --app app maintenance run
"""

import json
import logging
from datetime import datetime

import click
from flask.cli import AppGroup

from database import db
from legacy import audit_legacy_matches, import_resolved_matches
from maintenance import MaintenanceError, run_maintenance, snapshot_monthly_winner
from repository import list_players

logger = logging.getLogger(__name__)

maintenance_cli = AppGroup('maintenance', help='Monthly winners and record statistics.')
legacy_cli = AppGroup('legacy', help='Historical match import.')


def _parse_today(value):
    if value is None:
        return None
    try:
        return datetime.strptime(value, '%Y-%m-%d').date()
    except ValueError:
        raise click.BadParameter('use YYYY-MM-DD') from None


@click.command('init-db')
def init_db_command():
    """Create all tables."""
    db.create_all()
    click.echo('Database tables created')


@maintenance_cli.command('run')
@click.option('--today', default=None, help='Run as if today were YYYY-MM-DD.')
def maintenance_run_command(today):
    """Snapshot every pending month and refresh statistics."""
    result = run_maintenance(today=_parse_today(today))
    for month in result['months']:
        click.echo(f"{month['year']}-{month['month']:02d}: {month['winner'] or '-'} ({month['outcome']})")
    for stat_type, outcome in result['statistics'].items():
        click.echo(f'{stat_type}: {outcome}')
    click.echo(f"{result['months_processed']} month(s) processed")


@maintenance_cli.command('snapshot')
@click.argument('year')
@click.argument('month')
def maintenance_snapshot_command(year, month):
    """Record (or refresh) the winner of one closed month."""
    try:
        row, outcome = snapshot_monthly_winner(year, month)
    except (MaintenanceError, ValueError) as e:
        raise click.ClickException(str(e)) from None
    click.echo(f'{row.year}-{row.month:02d}: {row.player_nickname or "no matches"} ({outcome})')


def _load_json(path):
    with open(path, encoding='utf-8') as f:
        return json.load(f)


def _load_rows(path):
    rows = _load_json(path)
    if isinstance(rows, dict):
        rows = rows.get('matches', [])
    if not isinstance(rows, list):
        raise click.ClickException(f'{path} must hold a list of matches')
    return rows


def _load_mapping(path):
    if not path:
        return None
    mapping = _load_json(path)
    try:
        return {str(reference): int(player_id) for reference, player_id in mapping.items()}
    except (AttributeError, TypeError, ValueError):
        raise click.ClickException(f'{path} must map references to player ids') from None


def _echo_audit(audit):
    click.echo(f'{audit.rows_total} row(s), {len(audit.resolved)} resolved, {len(audit.issues)} issue(s)')
    for issue in audit.issues:
        click.echo(f'  row {issue.row_index}: {issue.reason} - {issue.detail}')


@legacy_cli.command('audit')
@click.argument('path', type=click.Path(exists=True, dir_okay=False))
@click.option('--mapping', type=click.Path(exists=True, dir_okay=False), help='JSON file mapping references to player ids.')
def legacy_audit_command(path, mapping):
    """Report which historical matches resolve to registered players."""
    audit = audit_legacy_matches(_load_rows(path), list_players(), _load_mapping(mapping))
    _echo_audit(audit)


@legacy_cli.command('import')
@click.argument('path', type=click.Path(exists=True, dir_okay=False))
@click.option('--mapping', type=click.Path(exists=True, dir_okay=False), help='JSON file mapping references to player ids.')
def legacy_import_command(path, mapping):
    """Import historical matches once every reference resolves."""
    audit = audit_legacy_matches(_load_rows(path), list_players(), _load_mapping(mapping))
    if not audit.clean:
        _echo_audit(audit)
        raise click.ClickException('Nothing imported; resolve the issues above first')

    try:
        result = import_resolved_matches(audit)
        db.session.commit()
    except Exception:
        db.session.rollback()
        logger.exception('Legacy import failed')
        raise
    click.echo(f"{result['created']} match(es) imported, {result['skipped']} already present")


def register_commands(app):
    app.cli.add_command(init_db_command)
    app.cli.add_command(maintenance_cli)
    app.cli.add_command(legacy_cli)
