import os
from datetime import date

import pytest

# Must be set before the app module builds its config
os.environ['DATABASE_URL'] = 'sqlite://'

from app import app as flask_app  # noqa: E402
from database import db  # noqa: E402
from models import Match, Player  # noqa: E402


@pytest.fixture
def app():
    flask_app.config['TESTING'] = True
    flask_app.config['MONTHLY_WINNERS_START_YEAR'] = 2026
    with flask_app.app_context():
        db.create_all()
        yield flask_app
        db.session.remove()
        db.drop_all()


@pytest.fixture
def client(app):
    return app.test_client()


@pytest.fixture
def players(app):
    """Four active players and one retired one, keyed by nickname."""
    roster = [
        Player(name='Ana Souza', nickname='ana'),
        Player(name='Bruno Lima', nickname='bruno'),
        Player(name='Carla Dias', nickname='carla'),
        Player(name='Diego Reis', nickname='diego'),
        Player(name='Eva Rocha', nickname='eva', active=False),
    ]
    db.session.add_all(roster)
    db.session.commit()
    return {p.nickname: p for p in roster}


@pytest.fixture
def add_match(app):
    def _add(day, winner, participants, match_type='global'):
        match = Match(date=day, type=match_type, winner_id=winner.id, participants=list(participants))
        db.session.add(match)
        db.session.commit()
        return match
    return _add


@pytest.fixture
def spring_matches(players, add_match):
    """Ana dominates March 2026, Bruno takes April 2026."""
    ana, bruno, carla, diego = players['ana'], players['bruno'], players['carla'], players['diego']
    add_match(date(2026, 3, 2), ana, [ana, bruno, carla])
    add_match(date(2026, 3, 9), ana, [ana, bruno, diego])
    add_match(date(2026, 3, 16), bruno, [ana, bruno, carla, diego])
    add_match(date(2026, 4, 6), bruno, [bruno, carla, diego])
    return players
