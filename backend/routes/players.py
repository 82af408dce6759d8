from flask import Blueprint, jsonify, request
from database import db
from models import Player
from ranks import RANKS, DEFAULT_RANK, rank_label
from repository import list_matches, list_players, player_record
from aggregation import compute_global_ranking, compute_consecutive_win_record
import logging

logger = logging.getLogger(__name__)

players_bp = Blueprint('players', __name__)

def player_json(p):
    return {
        'id': p.id,
        'name': p.name,
        'nickname': p.nickname,
        'email': p.email,
        'rank': p.rank,
        'rank_label': rank_label(p.rank),
        'active': p.active,
        'registered_at': p.registered_at.isoformat() if p.registered_at else None,
        'notes': p.notes or ''
    }

def _as_bool(value):
    return str(value).lower() in ('1', 'true', 'yes')

@players_bp.route('/api/players', methods=['GET'])
def get_players():
    query = Player.query
    if not _as_bool(request.args.get('all', 'false')):
        query = query.filter_by(active=True)
    players = query.order_by(Player.nickname).all()
    return jsonify([player_json(p) for p in players])

@players_bp.route('/api/players/<int:player_id>', methods=['GET'])
def get_player_detail(player_id):
    player = db.session.get(Player, player_id)
    if not player:
        return jsonify({'error': 'Player not found'}), 404

    record = player_record(player)
    matches = list_matches()
    career = next((e for e in compute_global_ranking(matches, list_players()) if e.player.id == player_id), None)

    result = player_json(player)
    result['career'] = {
        'wins': career.wins if career else 0,
        'matches_played': career.matches_played if career else 0,
        'win_rate': career.win_rate if career else 0.0,
        'best_win_streak': compute_consecutive_win_record(matches, record)
    }
    return jsonify(result)

@players_bp.route('/api/players', methods=['POST'])
def create_player():
    data = request.get_json(silent=True)
    if not isinstance(data, dict) or not data:
        return jsonify({'error': 'No data provided'}), 400

    name = (data.get('name') or '').strip()
    nickname = (data.get('nickname') or '').strip()

    if not name or not nickname:
        return jsonify({'error': 'Name and nickname are required'}), 400

    if len(nickname) < 2:
        return jsonify({'error': 'Nickname must have at least 2 characters'}), 400

    if Player.query.filter_by(nickname=nickname).first():
        return jsonify({'error': f'Nickname "{nickname}" is already taken'}), 400

    # New players always start at the lowest rank, whatever the request says
    player = Player(
        name=name,
        nickname=nickname,
        email=(data.get('email') or '').strip() or None,
        notes=(data.get('notes') or '').strip(),
        rank=DEFAULT_RANK,
        active=True
    )

    try:
        db.session.add(player)
        db.session.commit()
    except Exception as e:
        db.session.rollback()
        logger.exception('Failed to register player %s', nickname)
        return jsonify({'error': str(e)}), 500

    logger.info('Registered player %s (id %s)', player.nickname, player.id)
    return jsonify(player_json(player)), 201

@players_bp.route('/api/players/<int:player_id>', methods=['PUT'])
def update_player(player_id):
    player = db.session.get(Player, player_id)
    if not player:
        return jsonify({'error': 'Player not found'}), 404

    data = request.get_json(silent=True)
    if not isinstance(data, dict) or not data:
        return jsonify({'error': 'No data provided'}), 400

    # Nicknames identify players on every ranking table
    if 'nickname' in data and (data['nickname'] or '').strip() != player.nickname:
        return jsonify({'error': 'Nickname cannot be changed'}), 400

    if 'name' in data:
        name = (data['name'] or '').strip()
        if not name:
            return jsonify({'error': 'Name cannot be empty'}), 400
        player.name = name
    if 'email' in data:
        player.email = (data['email'] or '').strip() or None
    if 'notes' in data:
        player.notes = (data['notes'] or '').strip()

    try:
        db.session.commit()
        return jsonify(player_json(player))
    except Exception as e:
        db.session.rollback()
        logger.exception('Failed to update player %s', player_id)
        return jsonify({'error': str(e)}), 500

@players_bp.route('/api/players/<int:player_id>/status', methods=['PATCH'])
def update_player_status(player_id):
    player = db.session.get(Player, player_id)
    if not player:
        return jsonify({'error': 'Player not found'}), 404

    data = request.get_json(silent=True)
    if not isinstance(data, dict) or not isinstance(data.get('active'), bool):
        return jsonify({'error': 'Field "active" must be true or false'}), 400

    player.active = data['active']
    db.session.commit()

    logger.info('Player %s %s', player.nickname, 'activated' if player.active else 'deactivated')
    return jsonify(player_json(player))

@players_bp.route('/api/players/<int:player_id>/rank', methods=['PATCH'])
def update_player_rank(player_id):
    player = db.session.get(Player, player_id)
    if not player:
        return jsonify({'error': 'Player not found'}), 404

    data = request.get_json(silent=True)
    rank = data.get('rank') if isinstance(data, dict) else None
    if rank not in RANKS:
        return jsonify({'error': f'Rank must be one of: {", ".join(RANKS)}'}), 400

    player.rank = rank
    db.session.commit()

    logger.info('Player %s rank set to %s', player.nickname, rank)
    return jsonify(player_json(player))
