"""Read-only snapshots of the player registry and match log.

The aggregation functions never touch the session; routes and the
maintenance job load a snapshot here and hand plain records over.
"""

from database import db
from models import Player, Match
from aggregation import PlayerRecord, MatchRecord


def player_record(player):
    return PlayerRecord(
        id=player.id,
        nickname=player.nickname,
        name=player.name,
        rank=player.rank,
        active=player.active,
    )


def match_record(match):
    return MatchRecord(
        id=match.id,
        date=match.date,
        winner_id=match.winner_id,
        participant_ids=tuple(sorted(p.id for p in match.participants)),
        type=match.type,
    )


def list_players(active_only=False):
    query = Player.query
    if active_only:
        query = query.filter_by(active=True)
    return [player_record(p) for p in query.order_by(Player.nickname).all()]


def list_matches(date_from=None, date_to=None):
    """Matches in chronological order (date, then id), optionally bounded by date."""
    query = Match.query
    if date_from is not None:
        query = query.filter(Match.date >= date_from)
    if date_to is not None:
        query = query.filter(Match.date <= date_to)
    return [match_record(m) for m in query.order_by(Match.date, Match.id).all()]


def list_matches_in(period):
    return list_matches(date_from=period.start, date_to=period.end)


def count_players(active_only=False):
    query = Player.query
    if active_only:
        query = query.filter_by(active=True)
    return query.count()


def count_matches():
    return db.session.query(Match.id).count()
