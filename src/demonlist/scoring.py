"""Scoring rules for the primary-list player leaderboard."""

from collections.abc import Iterable
from dataclasses import dataclass, field
from datetime import datetime, UTC

from .models import Level, PlayerStat

MAX_SCORED_PLACEMENT = 150
TOP_POINTS = 500.0
DECAY = 0.9801

_NEVER = datetime.max.replace(tzinfo=UTC)


def points(placement: int) -> float:
    """Points awarded for completing the level at ``placement``.

    Rank 1 is worth exactly 500 and every rank below decays by 1.99%;
    anything outside 1..150 is worth nothing.
    """
    if placement < 1 or placement > MAX_SCORED_PLACEMENT:
        return 0.0
    return TOP_POINTS * DECAY ** (placement - 1)


@dataclass
class PlayerCompletions:
    """Primary-list levels one player has verified or completed at 100%."""

    name: str
    levels: dict[str, Level] = field(default_factory=dict)

    def add(self, level: Level) -> None:
        self.levels.setdefault(level.id, level)


def collect_completions(levels: Iterable[Level]) -> dict[str, PlayerCompletions]:
    """Group qualifying completions by lower-cased player name.

    A verification counts as a completion, as does any record at 100%.
    The display name is the first spelling seen.
    """
    completions: dict[str, PlayerCompletions] = {}

    def credit(name: str | None, level: Level) -> None:
        if not name or not name.strip():
            return
        name = name.strip()
        key = name.lower()
        if key not in completions:
            completions[key] = PlayerCompletions(name=name)
        completions[key].add(level)

    for level in levels:
        credit(level.verifier, level)
        for record in level.records:
            if record.percent == 100:
                credit(record.username, level)

    return completions


def compute_stat(name: str, levels: Iterable[Level]) -> PlayerStat:
    """Score a player's completions against current placements.

    ``rank`` and ``updated_at`` are left unset; ranking is a separate pass
    over every player.
    """
    score = 0.0
    hardest: Level | None = None
    for level in levels:
        if hardest is None or level.placement < hardest.placement:
            hardest = level
        score += points(level.placement)

    return PlayerStat(
        name=name,
        score=score,
        hardest_demon_name=hardest.name if hardest else None,
        hardest_demon_placement=hardest.placement if hardest else None,
    )


def assign_ranks(stats: Iterable[PlayerStat]) -> list[PlayerStat]:
    """Rank players by score, earlier ``updated_at`` winning ties.

    Players scoring above zero get ranks 1, 2, 3, ... in order; everyone
    else gets ``None``. Returns the stats in ranked order.
    """
    ordered = sorted(
        stats,
        key=lambda s: (-s.score, s.updated_at or _NEVER, s.key),
    )
    next_rank = 1
    for stat in ordered:
        if stat.score > 0:
            stat.rank = next_rank
            next_rank += 1
        else:
            stat.rank = None
    return ordered
