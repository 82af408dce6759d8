from flask import Blueprint, jsonify
from maintenance import (
    available_years, maintenance_status, monthly_winners_for_year,
    rank_audit, run_maintenance, snapshot_monthly_winner
)
from periods import MONTH_NAMES, is_closed_month, parse_year
from ranks import rank_label
from datetime import date
import logging

logger = logging.getLogger(__name__)

monthly_winners_bp = Blueprint('monthly_winners', __name__)

def monthly_winner_json(row):
    return {
        'year': row.year,
        'month': row.month,
        'player_id': row.player_id,
        'nickname': row.player_nickname,
        'wins': row.wins,
        'matches_played': row.matches_played,
        'performance_percent': row.performance_percent,
        'rank': row.rank,
        'rank_label': rank_label(row.rank) if row.rank else None,
        'status': row.status,
        'notes': row.notes or '',
        'recorded_at': row.recorded_at.isoformat()
    }

@monthly_winners_bp.route('/api/monthly-winners/<year>', methods=['GET'])
def get_monthly_winners(year):
    """Twelve monthly slots plus the annual summary for a year"""
    year = parse_year(year)
    months, annual = monthly_winners_for_year(year)
    today = date.today()

    slots = []
    for month, row in months:
        if row:
            slot = monthly_winner_json(row)
        else:
            # Closed months without a row are waiting for the maintenance job
            slot = {
                'year': year,
                'month': month,
                'status': 'pending' if is_closed_month(year, month, today) else 'open'
            }
        slot['month_name'] = MONTH_NAMES[month - 1]
        slots.append(slot)

    return jsonify({
        'year': year,
        'months': slots,
        'annual': monthly_winner_json(annual) if annual else None,
        'months_recorded': sum(1 for _, row in months if row)
    })

@monthly_winners_bp.route('/api/monthly-winners/years', methods=['GET'])
def get_monthly_winner_years():
    return jsonify(available_years())

@monthly_winners_bp.route('/api/monthly-winners/status', methods=['GET'])
def get_maintenance_status():
    return jsonify(maintenance_status())

@monthly_winners_bp.route('/api/monthly-winners/<year>/<month>', methods=['POST'])
def snapshot_month(year, month):
    """Manually record one closed month; re-running refreshes the same row"""
    row, outcome = snapshot_monthly_winner(year, month)
    status_code = 201 if outcome == 'created' else 200
    return jsonify({'outcome': outcome, 'winner': monthly_winner_json(row)}), status_code

@monthly_winners_bp.route('/api/maintenance/run', methods=['POST'])
def run_maintenance_now():
    logger.info('Maintenance run requested over HTTP')
    return jsonify(run_maintenance())

@monthly_winners_bp.route('/api/maintenance/rank-audit', methods=['GET'])
def get_rank_audit():
    report = rank_audit()
    return jsonify({
        'players': report,
        'below_guideline': sum(1 for entry in report if entry['below_guideline'])
    })
