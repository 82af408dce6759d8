"""Ranking and statistics computed from the player registry and match log.

Every function here is pure: it reads snapshot records and returns ordered
result records. Nothing raises on empty input; an empty match log yields an
empty ranking.

Matches reference players by id. A reference to an id that is not in the
registry passed in is excluded from the output and logged as a warning, so a
bad historical row never takes a ranking view down.
"""

from __future__ import annotations

import logging
from collections.abc import Iterable, Sequence
from dataclasses import dataclass, field
from datetime import date
from decimal import ROUND_HALF_UP, Decimal

from periods import Period, current_month, month_period
from ranks import DEFAULT_RANK

logger = logging.getLogger(__name__)

DEFAULT_MIN_MATCHES = 3
DEFAULT_ATTENDANCE_TOP_N = 8

# Lower bounds are inclusive.
PERFORMANCE_LEVELS = (
    (80, 'Elite'),
    (60, 'Advanced'),
    (40, 'Intermediate'),
)
LOWEST_PERFORMANCE_LEVEL = 'Beginner'


@dataclass(frozen=True)
class PlayerRecord:
    id: int
    nickname: str
    name: str = ''
    rank: str = DEFAULT_RANK
    active: bool = True


@dataclass(frozen=True)
class MatchRecord:
    id: int | None
    date: date
    winner_id: int
    participant_ids: tuple[int, ...]
    type: str = 'global'

    def player_ids(self) -> set[int]:
        """Participants, with the winner always counted as one."""
        return set(self.participant_ids) | {self.winner_id}


@dataclass(frozen=True)
class RankingEntry:
    player: PlayerRecord
    wins: int
    matches_played: int
    win_rate: float


@dataclass(frozen=True)
class PerformanceEntry:
    player: PlayerRecord
    wins: int
    matches_played: int
    performance_percent: float

    @property
    def level(self) -> str:
        return classify_performance_level(self.performance_percent)


@dataclass(frozen=True)
class AttendanceEntry:
    player: PlayerRecord
    matches_played: int


@dataclass(frozen=True)
class StreakRecord:
    player: PlayerRecord
    streak: int


@dataclass(frozen=True)
class LeagueSummary:
    total_players: int
    total_matches: int
    matches_this_month: int
    month_share_percent: float
    average_matches_per_player: float
    most_wins: int = 0
    most_wins_holder: PlayerRecord | None = None
    period: Period | None = field(default=None, compare=False)


def one_decimal(value) -> float:
    """Round half-up to one decimal place."""
    return float(Decimal(str(value)).quantize(Decimal('0.1'), rounding=ROUND_HALF_UP))


def percentage(part: int, whole: int) -> float:
    """``part / whole * 100`` rounded half-up to one decimal; 0.0 when ``whole`` is 0.

    This is the single win-rate / performance formula used by every view.
    """
    if whole <= 0:
        return 0.0
    exact = Decimal(part) * 100 / Decimal(whole)
    return float(exact.quantize(Decimal('0.1'), rounding=ROUND_HALF_UP))


def classify_performance_level(percent: float) -> str:
    for lower_bound, level in PERFORMANCE_LEVELS:
        if percent >= lower_bound:
            return level
    return LOWEST_PERFORMANCE_LEVEL


class _Registry:
    """Player lookup that reports each unknown reference once."""

    def __init__(self, players: Iterable[PlayerRecord], active_only: bool = False):
        self._known: dict[int, PlayerRecord] = {}
        self._eligible: dict[int, PlayerRecord] = {}
        self._unknown: set[int] = set()
        for player in players:
            self._known[player.id] = player
            if player.active or not active_only:
                self._eligible[player.id] = player

    def get(self, player_id: int) -> PlayerRecord | None:
        player = self._eligible.get(player_id)
        if player is None and player_id not in self._known and player_id not in self._unknown:
            self._unknown.add(player_id)
            logger.warning('Match log references unknown player id %s; excluded from rankings', player_id)
        return player


def _chronological(matches: Iterable[MatchRecord]) -> list[MatchRecord]:
    # sorted() is stable, so same-day matches keep snapshot order
    return sorted(matches, key=lambda m: m.date)


def _tally(matches: Iterable[MatchRecord], registry: _Registry) -> dict[int, list[int]]:
    """Per-player ``[wins, matches_played]`` for registered players."""
    stats: dict[int, list[int]] = {}
    for match in matches:
        for player_id in match.player_ids():
            if registry.get(player_id) is None:
                continue
            counts = stats.setdefault(player_id, [0, 0])
            counts[1] += 1
            if player_id == match.winner_id:
                counts[0] += 1
    return stats


def compute_global_ranking(
    matches: Iterable[MatchRecord],
    players: Iterable[PlayerRecord],
    *,
    active_only: bool = False,
) -> list[RankingEntry]:
    """Wins desc, then matches played desc, then nickname asc.

    Only players with at least one match appear.
    """
    registry = _Registry(players, active_only)
    stats = _tally(matches, registry)
    entries = [
        RankingEntry(
            player=registry.get(player_id),
            wins=wins,
            matches_played=played,
            win_rate=percentage(wins, played),
        )
        for player_id, (wins, played) in stats.items()
        if played > 0
    ]
    entries.sort(key=lambda e: (-e.wins, -e.matches_played, e.player.nickname))
    return entries


def compute_period_ranking(
    matches: Iterable[MatchRecord],
    players: Iterable[PlayerRecord],
    period: Period,
    *,
    active_only: bool = False,
) -> list[RankingEntry]:
    in_period = [m for m in matches if period.contains(m.date)]
    return compute_global_ranking(in_period, players, active_only=active_only)


def compute_monthly_ranking(
    matches: Iterable[MatchRecord],
    players: Iterable[PlayerRecord],
    year,
    month,
    *,
    active_only: bool = False,
) -> list[RankingEntry]:
    """Global ranking restricted to one calendar month, both ends inclusive."""
    return compute_period_ranking(matches, players, month_period(year, month), active_only=active_only)


def resolve_monthly_winner(
    matches: Iterable[MatchRecord],
    players: Iterable[PlayerRecord],
    year,
    month,
    *,
    active_only: bool = False,
) -> PlayerRecord | None:
    """Top row of the monthly ranking, or ``None`` when the month had no matches."""
    ranking = compute_monthly_ranking(matches, players, year, month, active_only=active_only)
    return ranking[0].player if ranking else None


def compute_performance_ranking(
    matches: Iterable[MatchRecord],
    players: Iterable[PlayerRecord],
    min_matches: int = DEFAULT_MIN_MATCHES,
    *,
    active_only: bool = False,
    limit: int | None = None,
) -> list[PerformanceEntry]:
    """Performance percent desc, then wins desc, then nickname asc.

    Players below ``min_matches`` are left out so a single lucky win does not
    top the table.
    """
    registry = _Registry(players, active_only)
    stats = _tally(matches, registry)
    entries = [
        PerformanceEntry(
            player=registry.get(player_id),
            wins=wins,
            matches_played=played,
            performance_percent=percentage(wins, played),
        )
        for player_id, (wins, played) in stats.items()
        if played > 0 and played >= min_matches
    ]
    entries.sort(key=lambda e: (-e.performance_percent, -e.wins, e.player.nickname))
    if limit is not None:
        entries = entries[:limit]
    return entries


def compute_attendance(
    matches: Iterable[MatchRecord],
    players: Iterable[PlayerRecord],
    top_n: int | None = DEFAULT_ATTENDANCE_TOP_N,
    *,
    active_only: bool = False,
) -> list[AttendanceEntry]:
    registry = _Registry(players, active_only)
    stats = _tally(matches, registry)
    entries = [
        AttendanceEntry(player=registry.get(player_id), matches_played=played)
        for player_id, (_, played) in stats.items()
        if played > 0
    ]
    entries.sort(key=lambda e: (-e.matches_played, e.player.nickname))
    if top_n is not None:
        entries = entries[:top_n]
    return entries


def _longest_streaks(matches: Iterable[MatchRecord], registry: _Registry) -> dict[int, int]:
    current: dict[int, int] = {}
    best: dict[int, int] = {}
    for match in _chronological(matches):
        for player_id in match.player_ids():
            if registry.get(player_id) is None:
                continue
            if player_id == match.winner_id:
                current[player_id] = current.get(player_id, 0) + 1
                best[player_id] = max(best.get(player_id, 0), current[player_id])
            else:
                current[player_id] = 0
                best.setdefault(player_id, 0)
    return best


def compute_consecutive_win_record(matches: Iterable[MatchRecord], player: PlayerRecord) -> int:
    """Longest run of consecutive wins in the player's chronological history.

    Any match the player took part in without winning resets the run.
    """
    run = best = 0
    for match in _chronological(m for m in matches if player.id in m.player_ids()):
        if match.winner_id == player.id:
            run += 1
            best = max(best, run)
        else:
            run = 0
    return best


def find_consecutive_win_record_holder(
    matches: Iterable[MatchRecord],
    players: Iterable[PlayerRecord],
    *,
    active_only: bool = False,
) -> StreakRecord | None:
    """Player with the longest winning streak, ties broken by nickname."""
    registry = _Registry(players, active_only)
    streaks = _longest_streaks(matches, registry)
    candidates = [
        StreakRecord(player=registry.get(player_id), streak=streak)
        for player_id, streak in streaks.items()
        if streak > 0
    ]
    if not candidates:
        return None
    return min(candidates, key=lambda r: (-r.streak, r.player.nickname))


def compute_league_summary(
    matches: Sequence[MatchRecord],
    players: Sequence[PlayerRecord],
    today: date | None = None,
) -> LeagueSummary:
    """Dashboard counters: totals, this month's share, average attendance, top winner."""
    this_month = current_month(today)
    active_players = [p for p in players if p.active]
    total_matches = len(matches)
    matches_this_month = sum(1 for m in matches if this_month.contains(m.date))

    average = one_decimal(total_matches / len(active_players)) if active_players else 0.0

    ranking = compute_global_ranking(matches, players)
    leader = ranking[0] if ranking else None

    return LeagueSummary(
        total_players=len(active_players),
        total_matches=total_matches,
        matches_this_month=matches_this_month,
        month_share_percent=percentage(matches_this_month, total_matches),
        average_matches_per_player=average,
        most_wins=leader.wins if leader else 0,
        most_wins_holder=leader.player if leader else None,
        period=this_month,
    )
