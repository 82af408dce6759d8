"""Player ranks ("patentes"), lowest first."""

RANKS = ('Cabo', 'Soldado', 'Tenente', 'Capitão', 'Major', 'Coronel', 'General', 'Marechal')

DEFAULT_RANK = RANKS[0]

RANK_INSIGNIA = {
    'Cabo': '🪖',
    'Soldado': '🛡️',
    'Tenente': '⚔️',
    'Capitão': '👮',
    'Major': '💪',
    'Coronel': '🎖️',
    'General': '⭐',
    'Marechal': '🏆',
}

# Career wins needed for each rank under the league guideline, highest first.
RANK_WIN_THRESHOLDS = (
    (100, 'Marechal'),
    (60, 'General'),
    (41, 'Coronel'),
    (31, 'Major'),
    (21, 'Capitão'),
    (11, 'Tenente'),
    (6, 'Soldado'),
)


def rank_level(rank):
    """Position of a rank in the ladder, 0 for the lowest."""
    return RANKS.index(rank)


def rank_label(rank):
    insignia = RANK_INSIGNIA.get(rank)
    return f'{rank} {insignia}' if insignia else rank


def suggest_rank(wins):
    """Rank the guideline would award for a career win total.

    Promotions stay manual; this is only reported by the data audit.
    """
    for threshold, rank in RANK_WIN_THRESHOLDS:
        if wins >= threshold:
            return rank
    return DEFAULT_RANK
