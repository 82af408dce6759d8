from flask import Blueprint, jsonify, request, current_app
from models import MonthlyWinner, Statistic
from ranks import rank_label
from repository import list_matches, list_matches_in, list_players
from periods import current_month, previous_month_key, resolve_period, month_period
from aggregation import (
    compute_period_ranking, compute_monthly_ranking, compute_performance_ranking,
    compute_attendance, find_consecutive_win_record_holder, compute_league_summary
)
from datetime import datetime
import logging

logger = logging.getLogger(__name__)

rankings_bp = Blueprint('rankings', __name__)

def _flag(name):
    return request.args.get(name, 'false').lower() in ('1', 'true', 'yes')

def _int_arg(name, default):
    value = request.args.get(name)
    if value is None:
        return default
    value = int(value)
    if value < 0:
        raise ValueError(f'{name} must not be negative')
    return value

def _player_summary(player):
    return {
        'id': player.id,
        'nickname': player.nickname,
        'name': player.name,
        'rank': player.rank,
        'rank_label': rank_label(player.rank)
    }

def _ranking_json(ranking):
    return [{
        'position': position,
        'player': _player_summary(entry.player),
        'wins': entry.wins,
        'matches_played': entry.matches_played,
        'win_rate': entry.win_rate
    } for position, entry in enumerate(ranking, start=1)]

@rankings_bp.route('/api/ranking/global', methods=['GET'])
def get_global_ranking():
    period = resolve_period(request.args.get('period'))
    ranking = compute_period_ranking(
        list_matches_in(period), list_players(), period, active_only=_flag('active_only')
    )
    return jsonify({'period': period.label, 'ranking': _ranking_json(ranking)})

def _monthly_ranking_response(year, month):
    period = month_period(year, month)
    ranking = compute_monthly_ranking(
        list_matches_in(period), list_players(), year, month, active_only=_flag('active_only')
    )
    return jsonify({
        'period': period.label,
        'year': period.start.year,
        'month': period.start.month,
        'winner': _player_summary(ranking[0].player) if ranking else None,
        'ranking': _ranking_json(ranking)
    })

@rankings_bp.route('/api/ranking/mensal', methods=['GET'])
def get_current_monthly_ranking():
    period = current_month()
    return _monthly_ranking_response(period.start.year, period.start.month)

@rankings_bp.route('/api/ranking/mensal/<year>/<month>', methods=['GET'])
def get_monthly_ranking(year, month):
    return _monthly_ranking_response(year, month)

@rankings_bp.route('/api/ranking/performance', methods=['GET'])
def get_performance_ranking():
    try:
        min_matches = _int_arg('min_matches', current_app.config['PERFORMANCE_MIN_MATCHES'])
        limit = _int_arg('limit', current_app.config['PERFORMANCE_LIMIT'])
    except ValueError:
        return jsonify({'error': 'min_matches and limit must be non-negative integers'}), 400

    ranking = compute_performance_ranking(
        list_matches(), list_players(), min_matches,
        active_only=_flag('active_only'), limit=limit
    )
    return jsonify({
        'min_matches': min_matches,
        'ranking': [{
            'position': position,
            'player': _player_summary(entry.player),
            'wins': entry.wins,
            'matches_played': entry.matches_played,
            'performance_percent': entry.performance_percent,
            'level': entry.level
        } for position, entry in enumerate(ranking, start=1)]
    })

@rankings_bp.route('/api/ranking/attendance', methods=['GET'])
def get_attendance_ranking():
    try:
        top_n = _int_arg('top', current_app.config['ATTENDANCE_TOP_N'])
    except ValueError:
        return jsonify({'error': 'top must be a non-negative integer'}), 400

    attendance = compute_attendance(list_matches(), list_players(), top_n, active_only=_flag('active_only'))
    return jsonify([{
        'position': position,
        'player': _player_summary(entry.player),
        'matches_played': entry.matches_played
    } for position, entry in enumerate(attendance, start=1)])

@rankings_bp.route('/api/ranking/streak', methods=['GET'])
def get_streak_record():
    holder = find_consecutive_win_record_holder(list_matches(), list_players(), active_only=_flag('active_only'))
    if not holder:
        return jsonify({'player': None, 'streak': 0})
    return jsonify({'player': _player_summary(holder.player), 'streak': holder.streak})

def _summary_section():
    summary = compute_league_summary(list_matches(), list_players())
    return {
        'total_players': summary.total_players,
        'total_matches': summary.total_matches,
        'matches_this_month': summary.matches_this_month,
        'month_share_percent': summary.month_share_percent,
        'average_matches_per_player': summary.average_matches_per_player,
        'most_wins': summary.most_wins,
        'most_wins_holder': _player_summary(summary.most_wins_holder) if summary.most_wins_holder else None,
        'period': summary.period.label
    }

def _records_section():
    return {
        stat.type: {
            'value': stat.value,
            'player_id': stat.player_id,
            'updated_at': stat.updated_at.isoformat()
        } for stat in Statistic.query.order_by(Statistic.type).all()
    }

def _last_monthly_winner_section():
    year, month = previous_month_key()
    row = MonthlyWinner.query.filter_by(year=year, month=month).first()
    if not row:
        return None
    return {
        'year': row.year,
        'month': row.month,
        'label': month_period(row.year, row.month).label,
        'player_id': row.player_id,
        'nickname': row.player_nickname,
        'wins': row.wins,
        'matches_played': row.matches_played,
        'performance_percent': row.performance_percent,
        'status': row.status
    }

STATISTICS_SECTIONS = (
    ('summary', _summary_section),
    ('records', _records_section),
    ('last_monthly_winner', _last_monthly_winner_section),
)

@rankings_bp.route('/api/statistics', methods=['GET'])
def get_statistics():
    """Dashboard data; each section is computed on its own so one failure does not blank the page"""
    result = {'generated_at': datetime.now().isoformat(), 'errors': []}
    for name, build in STATISTICS_SECTIONS:
        try:
            result[name] = build()
        except Exception:
            logger.exception('Statistics section %s failed', name)
            result[name] = None
            result['errors'].append(name)
    return jsonify(result)
