from database import db
from datetime import datetime
from ranks import RANKS, DEFAULT_RANK

MATCH_TYPES = ('global', 'championship', 'friendly', 'elimination')

match_participants = db.Table(
    'match_participants',
    db.Column('match_id', db.Integer, db.ForeignKey('matches.id'), primary_key=True),
    db.Column('player_id', db.Integer, db.ForeignKey('players.id'), primary_key=True)
)

class Player(db.Model):
    __tablename__ = 'players'

    id = db.Column(db.Integer, primary_key=True, autoincrement=True)
    name = db.Column(db.String(100), nullable=False)
    nickname = db.Column(db.String(50), nullable=False, unique=True)
    email = db.Column(db.String(100), nullable=True)
    rank = db.Column(db.Enum(*RANKS, name='player_rank'), nullable=False, default=DEFAULT_RANK)
    active = db.Column(db.Boolean, nullable=False, default=True)
    registered_at = db.Column(db.DateTime, nullable=False, default=datetime.now)
    notes = db.Column(db.Text, default='')

class Match(db.Model):
    __tablename__ = 'matches'

    id = db.Column(db.Integer, primary_key=True, autoincrement=True)
    date = db.Column(db.Date, nullable=False, index=True)
    type = db.Column(db.Enum(*MATCH_TYPES, name='match_type'), nullable=False, default='global')
    winner_id = db.Column(db.Integer, db.ForeignKey('players.id'), nullable=False)
    legacy_id = db.Column(db.String(64), nullable=True, unique=True)  # set only by the legacy import
    notes = db.Column(db.Text, default='')
    recorded_at = db.Column(db.DateTime, nullable=False, default=datetime.now)

    winner = db.relationship('Player', foreign_keys=[winner_id])
    participants = db.relationship('Player', secondary=match_participants, lazy='selectin')

class MonthlyWinner(db.Model):
    __tablename__ = 'monthly_winners'
    __table_args__ = (db.UniqueConstraint('year', 'month', name='uq_monthly_winner_period'),)

    id = db.Column(db.Integer, primary_key=True, autoincrement=True)
    year = db.Column(db.Integer, nullable=False)
    month = db.Column(db.Integer, nullable=False)  # 0 is the annual summary
    player_id = db.Column(db.Integer, db.ForeignKey('players.id'), nullable=True)
    player_nickname = db.Column(db.String(50), nullable=True)
    wins = db.Column(db.Integer, nullable=False, default=0)
    matches_played = db.Column(db.Integer, nullable=False, default=0)
    performance_percent = db.Column(db.Float, nullable=False, default=0.0)
    rank = db.Column(db.String(20), nullable=True)
    status = db.Column(db.Enum('recorded', 'no_matches', name='monthly_winner_status'), nullable=False, default='recorded')
    notes = db.Column(db.Text, default='')
    recorded_at = db.Column(db.DateTime, nullable=False, default=datetime.now)

class Statistic(db.Model):
    __tablename__ = 'statistics'

    type = db.Column(db.String(50), primary_key=True)
    value = db.Column(db.JSON, nullable=False)
    player_id = db.Column(db.Integer, db.ForeignKey('players.id'), nullable=True)
    updated_at = db.Column(db.DateTime, nullable=False, default=datetime.now)
