"""One-off import of historical matches that reference players inconsistently.

Older match records point at players either by numeric id or by nickname.
Nothing here guesses: a reference resolves only when it names exactly one
registered player, or when the operator maps it explicitly. Rows with any
unresolved or ambiguous reference are reported and left out of the import.

Every legacy row carries its own ``id``. It is stored on the imported match
as ``legacy_id``, so re-running an import skips what is already there while
two genuine matches with identical contents both survive.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import date, datetime

from aggregation import PlayerRecord
from database import db
from models import MATCH_TYPES, Match, Player

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ResolvedMatch:
    row_index: int
    legacy_id: str
    date: date
    type: str
    winner_id: int
    participant_ids: tuple[int, ...]
    notes: str = ''


@dataclass(frozen=True)
class AuditIssue:
    row_index: int
    reason: str
    detail: str


@dataclass
class LegacyAudit:
    rows_total: int
    resolved: list[ResolvedMatch] = field(default_factory=list)
    issues: list[AuditIssue] = field(default_factory=list)

    @property
    def clean(self) -> bool:
        return not self.issues

    def as_dict(self) -> dict:
        return {
            'rows_total': self.rows_total,
            'rows_resolved': len(self.resolved),
            'clean': self.clean,
            'issues': [
                {'row': issue.row_index, 'reason': issue.reason, 'detail': issue.detail}
                for issue in self.issues
            ],
        }


class _Resolver:
    def __init__(self, players: list[PlayerRecord], nickname_map: dict[str, int] | None):
        self.by_id = {p.id: p for p in players}
        self.by_nickname = {p.nickname: p for p in players}
        self.nickname_map = nickname_map or {}

    def resolve(self, reference) -> tuple[int | None, str | None]:
        """Returns (player_id, None) or (None, failure reason)."""
        label = str(reference).strip()
        if label in self.nickname_map:
            player_id = self.nickname_map[label]
            if player_id not in self.by_id:
                return None, 'mapping_target_missing'
            return player_id, None

        # Only plain ASCII digits name an id; '²' and friends are nicknames
        by_id = self.by_id.get(int(label)) if label.isascii() and label.isdigit() else None
        by_nickname = self.by_nickname.get(label)
        if by_id and by_nickname and by_id.id != by_nickname.id:
            return None, 'ambiguous'
        player = by_id or by_nickname
        if player is None:
            return None, 'unresolved'
        return player.id, None


def _parse_date(value) -> date:
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    text = str(value).strip()
    try:
        return datetime.strptime(text[:10], '%Y-%m-%d').date()
    except ValueError:
        raise ValueError(f'Invalid date {value!r}') from None


def _participant_refs(raw) -> list:
    if raw is None:
        return []
    if isinstance(raw, str):
        return [part.strip() for part in raw.split(',') if part.strip()]
    if isinstance(raw, (list, tuple)):
        return list(raw)
    return [raw]


def _legacy_id(raw) -> str | None:
    if raw is None or isinstance(raw, bool):
        return None
    label = str(raw).strip()
    return label or None


def audit_legacy_matches(rows, players, nickname_map=None) -> LegacyAudit:
    """Resolve every reference in ``rows`` against the registry snapshot ``players``."""
    resolver = _Resolver(list(players), nickname_map)
    audit = LegacyAudit(rows_total=len(rows))
    seen_ids = {}

    for index, row in enumerate(rows):
        if not isinstance(row, dict):
            audit.issues.append(AuditIssue(index, 'invalid_row', f'Expected an object, got {type(row).__name__}'))
            continue

        row_issues = []

        legacy_id = _legacy_id(row.get('id'))
        if legacy_id is None:
            row_issues.append(AuditIssue(index, 'missing_id', 'Row has no legacy id'))
        elif legacy_id in seen_ids:
            row_issues.append(AuditIssue(index, 'duplicate_id', f'Legacy id {legacy_id!r} already used by row {seen_ids[legacy_id]}'))
        else:
            seen_ids[legacy_id] = index

        try:
            match_date = _parse_date(row.get('date'))
        except ValueError as e:
            row_issues.append(AuditIssue(index, 'invalid_date', str(e)))
            match_date = None

        match_type = row.get('type') or 'global'
        if match_type not in MATCH_TYPES:
            row_issues.append(AuditIssue(index, 'invalid_type', f'Unknown match type {match_type!r}'))

        references = _participant_refs(row.get('participants'))
        if not references:
            row_issues.append(AuditIssue(index, 'no_participants', 'Match has no participants'))

        all_resolved = True
        participant_ids = []
        for reference in references:
            player_id, reason = resolver.resolve(reference)
            if reason:
                all_resolved = False
                row_issues.append(AuditIssue(index, reason, f'Participant reference {reference!r}'))
            elif player_id not in participant_ids:
                participant_ids.append(player_id)

        winner_ref = row.get('winner')
        if winner_ref is None:
            winner_id, reason = None, 'unresolved'
        else:
            winner_id, reason = resolver.resolve(winner_ref)
        if reason:
            all_resolved = False
            row_issues.append(AuditIssue(index, reason, f'Winner reference {winner_ref!r}'))

        if all_resolved and references and winner_id not in participant_ids:
            row_issues.append(AuditIssue(index, 'winner_not_participant', f'Winner {winner_ref!r} is not a participant'))

        if row_issues:
            audit.issues.extend(row_issues)
            continue

        audit.resolved.append(ResolvedMatch(
            row_index=index,
            legacy_id=legacy_id,
            date=match_date,
            type=match_type,
            winner_id=winner_id,
            participant_ids=tuple(sorted(participant_ids)),
            notes=row.get('notes') or '',
        ))

    if audit.issues:
        logger.warning('Legacy audit found %d issue(s) in %d row(s)', len(audit.issues), audit.rows_total)
    return audit


def import_resolved_matches(audit):
    """Insert audited matches whose legacy id is not imported yet. Caller commits."""
    if not audit.clean:
        raise ValueError('Legacy audit has unresolved issues; fix the data or supply a mapping first')

    imported = {
        legacy_id for (legacy_id,) in
        db.session.query(Match.legacy_id).filter(Match.legacy_id.isnot(None)).all()
    }

    created = 0
    skipped = 0
    for resolved in audit.resolved:
        if resolved.legacy_id in imported:
            skipped += 1
            continue
        participants = [db.session.get(Player, player_id) for player_id in resolved.participant_ids]
        db.session.add(Match(
            legacy_id=resolved.legacy_id,
            date=resolved.date,
            type=resolved.type,
            winner_id=resolved.winner_id,
            notes=resolved.notes,
            participants=participants
        ))
        created += 1

    logger.info('Legacy import: %d created, %d already imported', created, skipped)
    return {'created': created, 'skipped': skipped}
