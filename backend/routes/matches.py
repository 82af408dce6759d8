from flask import Blueprint, jsonify, request, current_app
from database import db
from models import Match, Player, MATCH_TYPES
from datetime import date, datetime
import logging

logger = logging.getLogger(__name__)

matches_bp = Blueprint('matches', __name__)

def _player_ref(p):
    return {'id': p.id, 'nickname': p.nickname} if p else None

def match_json(m):
    return {
        'id': m.id,
        'date': m.date.isoformat(),
        'type': m.type,
        'winner': _player_ref(m.winner),
        'participants': [_player_ref(p) for p in sorted(m.participants, key=lambda p: p.nickname)],
        'notes': m.notes or '',
        'recorded_at': m.recorded_at.isoformat() if m.recorded_at else None
    }

def _parse_date_arg(value):
    return datetime.strptime(value, '%Y-%m-%d').date()

@matches_bp.route('/api/matches', methods=['GET'])
def get_matches():
    try:
        limit = int(request.args.get('limit', current_app.config['RECENT_MATCHES_LIMIT']))
        date_from = request.args.get('from')
        date_to = request.args.get('to')
        date_from = _parse_date_arg(date_from) if date_from else None
        date_to = _parse_date_arg(date_to) if date_to else None
    except ValueError:
        return jsonify({'error': 'Invalid limit or date filter (dates use YYYY-MM-DD)'}), 400

    if limit < 1:
        return jsonify({'error': 'Limit must be positive'}), 400

    query = Match.query
    if date_from:
        query = query.filter(Match.date >= date_from)
    if date_to:
        query = query.filter(Match.date <= date_to)

    matches = query.order_by(Match.date.desc(), Match.id.desc()).limit(limit).all()
    return jsonify([match_json(m) for m in matches])

def _validate_match(data):
    """Returns (values, None) or (None, error response)."""
    min_participants = current_app.config['MIN_MATCH_PARTICIPANTS']

    participant_ids = data.get('participants')
    if not isinstance(participant_ids, list) or not all(
        isinstance(pid, int) and not isinstance(pid, bool) for pid in participant_ids
    ):
        return None, (jsonify({'error': 'Participants must be a list of player ids'}), 400)

    if len(set(participant_ids)) != len(participant_ids):
        return None, (jsonify({'error': 'Participants must not repeat'}), 400)

    if len(participant_ids) < min_participants:
        return None, (jsonify({'error': f'A match needs at least {min_participants} participants'}), 400)

    winner_id = data.get('winner_id')
    if not isinstance(winner_id, int) or isinstance(winner_id, bool) or winner_id not in participant_ids:
        return None, (jsonify({'error': 'Winner must be one of the participants'}), 400)

    match_type = data.get('type') or 'global'
    if match_type not in MATCH_TYPES:
        return None, (jsonify({'error': f'Type must be one of: {", ".join(MATCH_TYPES)}'}), 400)

    raw_date = data.get('date')
    if raw_date:
        try:
            match_date = _parse_date_arg(raw_date)
        except (TypeError, ValueError):
            return None, (jsonify({'error': 'Invalid date format (use YYYY-MM-DD)'}), 400)
        if match_date > date.today():
            return None, (jsonify({'error': 'Match date cannot be in the future'}), 400)
    else:
        match_date = date.today()

    players = Player.query.filter(Player.id.in_(participant_ids)).all()
    found = {p.id: p for p in players}
    missing = [pid for pid in participant_ids if pid not in found]
    if missing:
        return None, (jsonify({'error': f'Players not found: {missing}'}), 400)

    inactive = [p.nickname for p in players if not p.active]
    if inactive:
        return None, (jsonify({'error': f'Inactive players cannot be recorded: {", ".join(sorted(inactive))}'}), 400)

    return {
        'date': match_date,
        'type': match_type,
        'winner_id': winner_id,
        'participants': [found[pid] for pid in participant_ids],
        'notes': (data.get('notes') or '').strip()
    }, None

@matches_bp.route('/api/matches', methods=['POST'])
def record_match():
    data = request.get_json(silent=True)
    if not isinstance(data, dict) or not data:
        return jsonify({'error': 'No data provided'}), 400

    values, error = _validate_match(data)
    if error:
        return error

    match = Match(**values)

    try:
        db.session.add(match)
        db.session.commit()
    except Exception as e:
        db.session.rollback()
        logger.exception('Failed to record match')
        return jsonify({'error': str(e)}), 500

    logger.info('Recorded match %s on %s, winner %s', match.id, match.date, match.winner.nickname)

    # Dashboards listen for this instead of polling
    socketio = current_app.extensions.get('socketio')
    if socketio:
        socketio.emit('match_recorded', {
            'match_id': match.id,
            'date': match.date.isoformat(),
            'winner_id': match.winner_id
        })

    return jsonify(match_json(match)), 201
