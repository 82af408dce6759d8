"""Scheduled job that materializes monthly winners and record statistics.

Runs on day 1 of each month (cron calling ``flask maintenance run``) or on
demand from the admin endpoint. Every write is an upsert keyed on
``(year, month)`` or on the statistic type, so re-running is harmless.
"""

import logging
from datetime import date, datetime

from flask import current_app

from database import db
from models import MonthlyWinner, Statistic
from repository import list_matches, list_matches_in, list_players
from aggregation import (
    compute_global_ranking, compute_monthly_ranking, compute_period_ranking,
    find_consecutive_win_record_holder
)
from periods import month_period, year_period, parse_year, parse_year_month, previous_month_key
from ranks import suggest_rank, rank_level

logger = logging.getLogger(__name__)

ANNUAL_SUMMARY_MONTH = 0
DEFAULT_START_YEAR = 2026

CONSECUTIVE_WIN_RECORD = 'consecutive_win_record'
MOST_WINS_RECORD = 'most_wins_record'


class MaintenanceError(Exception):
    def __init__(self, code, message):
        super().__init__(message)
        self.code = code
        self.message = message


def _start_year(start_year=None):
    if start_year is not None:
        return start_year
    return current_app.config.get('MONTHLY_WINNERS_START_YEAR', DEFAULT_START_YEAR)


def _winner_values(ranking, label):
    if not ranking:
        return {
            'player_id': None,
            'player_nickname': None,
            'wins': 0,
            'matches_played': 0,
            'performance_percent': 0.0,
            'rank': None,
            'status': 'no_matches',
            'notes': f'No matches recorded in {label}',
        }
    top = ranking[0]
    return {
        'player_id': top.player.id,
        'player_nickname': top.player.nickname,
        'wins': top.wins,
        'matches_played': top.matches_played,
        'performance_percent': top.win_rate,
        'rank': top.player.rank,
        'status': 'recorded',
        'notes': f'{top.wins} wins in {top.matches_played} matches ({top.win_rate}%)',
    }


def _upsert_monthly_winner(year, month, values):
    """Insert or refresh one row; returns (row, 'created' | 'updated' | 'unchanged')."""
    row = MonthlyWinner.query.filter_by(year=year, month=month).first()
    if row is None:
        row = MonthlyWinner(year=year, month=month, recorded_at=datetime.now(), **values)
        db.session.add(row)
        return row, 'created'

    changed = False
    for key, value in values.items():
        if getattr(row, key) != value:
            setattr(row, key, value)
            changed = True
    if not changed:
        return row, 'unchanged'
    row.recorded_at = datetime.now()
    return row, 'updated'


def _upsert_statistic(stat_type, value, player_id):
    row = db.session.get(Statistic, stat_type)
    if row is None:
        db.session.add(Statistic(type=stat_type, value=value, player_id=player_id, updated_at=datetime.now()))
        return 'created'
    if row.value == value and row.player_id == player_id:
        return 'unchanged'
    row.value = value
    row.player_id = player_id
    row.updated_at = datetime.now()
    return 'updated'


def snapshot_monthly_winner(year, month, today=None, start_year=None):
    """Record the winner of a closed month."""
    year, month = parse_year_month(year, month)
    today = today or date.today()
    first_year = _start_year(start_year)

    if year < first_year:
        raise MaintenanceError('before_start_year', f'Monthly winners are tracked from {first_year} onwards')
    if (year, month) == (today.year, today.month):
        raise MaintenanceError('month_not_closed', f'{month_period(year, month).label} has not finished yet')
    if (year, month) > (today.year, today.month):
        raise MaintenanceError('future_month', f'{month_period(year, month).label} is in the future')

    period = month_period(year, month)
    ranking = compute_monthly_ranking(list_matches_in(period), list_players(), year, month)
    row, outcome = _upsert_monthly_winner(year, month, _winner_values(ranking, period.label))
    db.session.commit()

    logger.info('Monthly winner %s: %s (%s)', period.label, row.player_nickname or 'none', outcome)
    return row, outcome


def snapshot_annual_winner(year, today=None, start_year=None):
    """Record the annual summary (month 0) of a closed year."""
    year = parse_year(year)
    today = today or date.today()
    first_year = _start_year(start_year)

    if year < first_year:
        raise MaintenanceError('before_start_year', f'Monthly winners are tracked from {first_year} onwards')
    if year >= today.year:
        raise MaintenanceError('year_not_closed', f'{year} has not finished yet')

    period = year_period(year)
    ranking = compute_period_ranking(list_matches_in(period), list_players(), period)
    row, outcome = _upsert_monthly_winner(year, ANNUAL_SUMMARY_MONTH, _winner_values(ranking, period.label))
    db.session.commit()

    logger.info('Annual winner %s: %s (%s)', year, row.player_nickname or 'none', outcome)
    return row, outcome


def _recorded_keys():
    return {(year, month) for year, month in db.session.query(MonthlyWinner.year, MonthlyWinner.month).all()}


def pending_months(today=None, start_year=None):
    """Closed months (and closed years, as month 0) that have no row yet."""
    today = today or date.today()
    first_year = _start_year(start_year)
    last_year, last_month = previous_month_key(today)
    recorded = _recorded_keys()

    pending = []
    for year in range(first_year, last_year + 1):
        final_month = last_month if year == last_year else 12
        for month in range(1, final_month + 1):
            if (year, month) not in recorded:
                pending.append((year, month))
        if year < today.year and (year, ANNUAL_SUMMARY_MONTH) not in recorded:
            pending.append((year, ANNUAL_SUMMARY_MONTH))
    return pending


def backfill_pending_months(today=None, start_year=None):
    today = today or date.today()
    results = []
    for year, month in pending_months(today, start_year):
        if month == ANNUAL_SUMMARY_MONTH:
            row, outcome = snapshot_annual_winner(year, today, start_year)
        else:
            row, outcome = snapshot_monthly_winner(year, month, today, start_year)
        results.append({
            'year': year,
            'month': month,
            'winner': row.player_nickname,
            'status': row.status,
            'outcome': outcome,
        })
    return results


def refresh_statistics():
    """Recompute the record statistics shown on the dashboard."""
    matches = list_matches()
    players = list_players()
    results = {}

    holder = find_consecutive_win_record_holder(matches, players)
    results[CONSECUTIVE_WIN_RECORD] = _upsert_statistic(
        CONSECUTIVE_WIN_RECORD,
        {
            'streak': holder.streak if holder else 0,
            'nickname': holder.player.nickname if holder else None,
        },
        holder.player.id if holder else None,
    )

    ranking = compute_global_ranking(matches, players)
    leader = ranking[0] if ranking else None
    results[MOST_WINS_RECORD] = _upsert_statistic(
        MOST_WINS_RECORD,
        {
            'wins': leader.wins if leader else 0,
            'nickname': leader.player.nickname if leader else None,
        },
        leader.player.id if leader else None,
    )

    db.session.commit()
    logger.info('Statistics refreshed: %s', results)
    return results


def run_maintenance(today=None, start_year=None):
    """Full job: snapshot every pending month, then refresh record statistics."""
    today = today or date.today()
    logger.info('Maintenance run for %s', today.isoformat())
    months = backfill_pending_months(today, start_year)
    statistics = refresh_statistics()
    return {
        'run_date': today.isoformat(),
        'months_processed': len(months),
        'months': months,
        'statistics': statistics,
    }


def monthly_winners_for_year(year):
    """Rows for months 1-12 (``None`` where missing) and the annual summary row."""
    year = parse_year(year)
    rows = {row.month: row for row in MonthlyWinner.query.filter_by(year=year).all()}
    months = [(month, rows.get(month)) for month in range(1, 13)]
    return months, rows.get(ANNUAL_SUMMARY_MONTH)


def available_years(today=None, start_year=None):
    today = today or date.today()
    first_year = _start_year(start_year)
    rows = db.session.query(
        MonthlyWinner.year,
        db.func.count(MonthlyWinner.id),
        db.func.max(MonthlyWinner.recorded_at)
    ).filter(
        MonthlyWinner.year >= first_year,
        MonthlyWinner.month != ANNUAL_SUMMARY_MONTH
    ).group_by(MonthlyWinner.year).all()

    years = [{
        'year': year,
        'months_recorded': count,
        'last_recorded_at': last.isoformat() if last else None,
        'status': 'active'
    } for year, count, last in rows]

    if today.year >= first_year and all(y['year'] != today.year for y in years):
        years.append({'year': today.year, 'months_recorded': 0, 'last_recorded_at': None, 'status': 'current_year'})

    years.sort(key=lambda y: y['year'], reverse=True)
    return years


def maintenance_status(today=None, start_year=None):
    today = today or date.today()
    first_year = _start_year(start_year)
    last = MonthlyWinner.query.filter(
        MonthlyWinner.month != ANNUAL_SUMMARY_MONTH
    ).order_by(MonthlyWinner.year.desc(), MonthlyWinner.month.desc()).first()

    pending = pending_months(today, start_year)
    pending_this_year = [m for y, m in pending if y == today.year and m != ANNUAL_SUMMARY_MONTH]

    return {
        'checked_at': datetime.now().isoformat(),
        'start_year': first_year,
        'current_year': today.year,
        'current_month': today.month,
        'active': today.year >= first_year,
        'total_records': MonthlyWinner.query.count(),
        'last_recorded': {
            'year': last.year,
            'month': last.month,
            'label': month_period(last.year, last.month).label,
            'winner': last.player_nickname,
            'recorded_at': last.recorded_at.isoformat()
        } if last else None,
        'pending_total': len(pending),
        'pending_this_year': len(pending_this_year),
        'status': 'up_to_date' if not pending else 'pending'
    }


def rank_audit():
    """Career wins next to the rank the league guideline would award."""
    players = list_players()
    ranking = {entry.player.id: entry for entry in compute_global_ranking(list_matches(), players)}
    report = []
    for player in players:
        entry = ranking.get(player.id)
        wins = entry.wins if entry else 0
        suggested = suggest_rank(wins)
        report.append({
            'player_id': player.id,
            'nickname': player.nickname,
            'active': player.active,
            'wins': wins,
            'matches_played': entry.matches_played if entry else 0,
            'rank': player.rank,
            'suggested_rank': suggested,
            'below_guideline': rank_level(player.rank) < rank_level(suggested)
        })
    return report
