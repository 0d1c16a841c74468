"""Business logic for ranked lists and the player leaderboard."""

import math
from collections.abc import Iterable
from dataclasses import dataclass, field
from datetime import datetime, UTC
from uuid import uuid4

from aws_lambda_powertools import Logger

from .database import DemonlistDatabase
from .errors import ConflictError, ResourceNotFoundError
from .history import (
    describe_add,
    describe_move,
    describe_remove,
    parse_history_date,
    reconstruct_list,
)
from .models import (
    PRIMARY_LIST,
    AddLevelRequest,
    AddRecordRequest,
    ChangeType,
    LeaderboardResponse,
    Level,
    LevelRecord,
    ListChange,
    ListType,
    MoveLevelRequest,
    PlayerProfile,
    PlayerStat,
    RemoveLevelRequest,
    RemoveRecordRequest,
    UpdateLevelRequest,
)
from .scoring import assign_ranks, collect_completions, compute_stat

logger = Logger()


@dataclass
class ListMutation:
    """Result of a write on a ranked list.

    ``rescore_all`` and ``rescore_players`` tell the caller which player
    stats are now stale.
    """

    level: Level
    message: str | None = None
    rescore_all: bool = False
    rescore_players: set[str] = field(default_factory=set)


def _new_change(
    change_type: ChangeType, description: str, level: Level
) -> ListChange:
    return ListChange(
        id=uuid4().hex,
        change_type=change_type,
        description=description,
        level_id=level.id,
        list_type=level.list_type,
        created_at=datetime.now(UTC),
    )


class ListService:
    """Reorder and edit operations on the ranked lists."""

    def __init__(self, database: DemonlistDatabase | None = None) -> None:
        """Initialize service with database dependency."""
        self.db = database or DemonlistDatabase()

    def health_check(self) -> dict[str, str]:
        """Perform health check."""
        return {"status": "healthy", "service": "demonlist"}

    def get_list(self, list_type: ListType) -> list[Level]:
        """Levels on a list ordered by placement."""
        return self.db.load_list(list_type).entries

    def get_level(self, ref: str, list_type: ListType | None = None) -> Level:
        """Look a level up by entity ID or, for numeric refs, external level ID.

        Raises:
            ResourceNotFoundError: If no level matches
        """
        level = None
        if ref.isdigit():
            claimed_by = self.db.get_level_id_claim(int(ref))
            if claimed_by:
                level = self.db.get_level(claimed_by)
        else:
            level = self.db.get_level(ref)

        if level is None or (list_type is not None and level.list_type != list_type):
            raise ResourceNotFoundError("Level not found.")
        return level

    def _require_level(self, level_id: str) -> Level:
        level = self.db.get_level(level_id)
        if level is None:
            raise ResourceNotFoundError("Level not found.")
        return level

    def add_level(self, request: AddLevelRequest) -> ListMutation:
        """Insert a new level, pushing everything at or below it down one.

        Args:
            request: Validated level data, target list and placement

        Returns:
            ListMutation holding the created level

        Raises:
            ConflictError: If the external level ID is taken or the list
                changed underneath us
            RuntimeError: If database operation fails
        """
        data = request.level_data
        if data.level_id is not None and self.db.get_level_id_claim(data.level_id):
            raise ConflictError("A level with this Level ID already exists.")

        ranked = self.db.load_list(request.list_type)
        level = Level(
            id=uuid4().hex,
            list_type=request.list_type,
            placement=request.placement,
            records=[],
            **data.model_dump(),
        )
        result = ranked.insert(level, request.placement)

        kept = all(entry is not level for entry in result.dropped)
        dropped = [entry for entry in result.dropped if entry is not level]
        change = _new_change(
            ChangeType.ADD, describe_add(level.name, level.placement), level
        )
        self.db.commit_list(
            request.list_type,
            ranked,
            created=[level] if kept else [],
            deleted=dropped,
            change=change,
        )

        logger.info(
            "Level added",
            extra={
                "level_id": level.id,
                "list": request.list_type.value,
                "placement": level.placement,
                "dropped": [entry.id for entry in result.dropped],
            },
        )
        return ListMutation(
            level=level, rescore_all=request.list_type is PRIMARY_LIST
        )

    def move_level(self, request: MoveLevelRequest) -> ListMutation:
        """Move a level to a new placement within its list.

        Moving to the current placement writes nothing.

        Raises:
            ResourceNotFoundError: If the level does not exist
            ConflictError: If the list changed underneath us
        """
        current = self._require_level(request.level_id)
        ranked = self.db.load_list(current.list_type)
        try:
            result = ranked.move(request.level_id, request.new_placement)
        except KeyError as e:
            raise ResourceNotFoundError("Level not found.") from e

        level = result.entry
        if not result.changed:
            return ListMutation(level=level)

        change = _new_change(
            ChangeType.MOVE,
            describe_move(level.name, result.old_placement, result.new_placement),
            level,
        )
        self.db.commit_list(
            current.list_type, ranked, deleted=result.dropped, change=change
        )

        logger.info(
            "Level moved",
            extra={
                "level_id": level.id,
                "old_placement": result.old_placement,
                "new_placement": result.new_placement,
            },
        )
        return ListMutation(
            level=level, rescore_all=current.list_type is PRIMARY_LIST
        )

    def remove_level(self, request: RemoveLevelRequest) -> ListMutation:
        """Remove a level and close the gap it leaves.

        Raises:
            ResourceNotFoundError: If the level does not exist
            ConflictError: If the list changed underneath us
        """
        current = self._require_level(request.level_id)
        ranked = self.db.load_list(current.list_type)
        try:
            result = ranked.remove(request.level_id)
        except KeyError as e:
            raise ResourceNotFoundError("Level not found.") from e

        level = result.entry
        change = _new_change(
            ChangeType.REMOVE,
            describe_remove(level.name, level.list_type, result.old_placement),
            level,
        )
        self.db.commit_list(current.list_type, ranked, deleted=[level], change=change)

        logger.info(
            "Level removed",
            extra={"level_id": level.id, "old_placement": result.old_placement},
        )
        return ListMutation(
            level=level,
            message=f"{level.name} removed successfully.",
            rescore_all=current.list_type is PRIMARY_LIST,
        )

    def update_level(self, request: UpdateLevelRequest) -> ListMutation:
        """Replace a level's metadata; placement and list stay as they are."""
        current = self._require_level(request.level_id)
        data = request.level_data
        if data.level_id is not None and data.level_id != current.level_id:
            claimed_by = self.db.get_level_id_claim(data.level_id)
            if claimed_by and claimed_by != current.id:
                raise ConflictError("A level with this Level ID already exists.")

        self.db.update_level_data(current.id, data, current.level_id)
        updated = current.model_copy(update=data.model_dump())

        logger.info("Level updated", extra={"level_id": current.id})
        return ListMutation(
            level=updated, rescore_all=current.list_type is PRIMARY_LIST
        )

    def add_record(self, request: AddRecordRequest) -> ListMutation:
        """Append a completion record to a level.

        Raises:
            ResourceNotFoundError: If the level does not exist
            ConflictError: If the same player already has a record at this percent
        """
        level = self._require_level(request.level_id)
        username = request.username.lower()
        if any(
            r.username.lower() == username and r.percent == request.percent
            for r in level.records
        ):
            raise ConflictError(
                "This exact record (player and percent) already exists on this level."
            )

        record = LevelRecord(
            username=request.username,
            percent=request.percent,
            video_id=request.video_id,
        )
        self.db.append_record(level.id, record)
        level.records.append(record)

        logger.info(
            "Record added", extra={"level_id": level.id, "username": record.username}
        )
        return ListMutation(
            level=level,
            message="Record added successfully.",
            rescore_players=self._affected(level, record.username),
        )

    def remove_record(self, request: RemoveRecordRequest) -> ListMutation:
        """Remove the record carrying a given video ID from a level."""
        level = self._require_level(request.level_id)
        record = next(
            (r for r in level.records if r.video_id == request.record_video_id), None
        )
        if record is None:
            raise ResourceNotFoundError(
                "Record with that video ID not found on this level."
            )

        level.records.remove(record)
        self.db.set_records(level.id, level.records)

        logger.info(
            "Record removed", extra={"level_id": level.id, "username": record.username}
        )
        return ListMutation(
            level=level,
            message="Record removed successfully.",
            rescore_players=self._affected(level, record.username),
        )

    def add_record_by_level_name(
        self, level_name: str, record: LevelRecord
    ) -> list[ListMutation]:
        """Append a record to every level with this name, ignoring case.

        Raises:
            ResourceNotFoundError: If no level carries the name
        """
        levels = self.find_levels_by_name(level_name)
        if not levels:
            raise ResourceNotFoundError(f'Level "{level_name}" not found.')
        mutations = []
        for level in levels:
            self.db.append_record(level.id, record)
            level.records.append(record)
            mutations.append(
                ListMutation(
                    level=level,
                    rescore_players=self._affected(level, record.username),
                )
            )
        return mutations

    def find_levels_by_name(self, level_name: str) -> list[Level]:
        """Levels on any list whose name matches, ignoring case."""
        wanted = level_name.strip().lower()
        return [
            level
            for list_type in ListType
            for level in self.db.load_list(list_type)
            if level.name.lower() == wanted
        ]

    def get_history(self, list_type: ListType, date_value: str | None) -> list[Level]:
        """Approximate a list as it stood at the end of a past day.

        Raises:
            InvalidRequestError: If the date is missing or not ``YYYY-MM-DD``
        """
        cutoff = parse_history_date(date_value)
        current = self.db.load_list(list_type)
        changes = self.db.get_changes_after(list_type, cutoff)
        logger.debug(
            "Reconstructing list",
            extra={"list": list_type.value, "changes_undone": len(changes)},
        )
        return reconstruct_list(current, changes)

    def get_level_history(self, level_id: str) -> list[ListChange]:
        """All audit entries for one level, newest first."""
        changes = self.db.get_level_changes(level_id, list(ListType))
        if not changes and self.db.get_level(level_id) is None:
            raise ResourceNotFoundError("Level not found.")
        return changes

    @staticmethod
    def _affected(level: Level, username: str) -> set[str]:
        return {username} if level.list_type is PRIMARY_LIST else set()


class StatsService:
    """Player scores and ranks derived from the primary list."""

    def __init__(self, database: DemonlistDatabase | None = None) -> None:
        """Initialize service with database dependency."""
        self.db = database or DemonlistDatabase()

    def regenerate(self, targets: Iterable[str] | None = None) -> list[PlayerStat]:
        """Recompute scores for ``targets`` (everyone when None) and rerank all.

        A player's ``updated_at`` only moves when their score or hardest
        level actually changes, so ties keep going to whoever got there
        first. Ranks are rewritten for every player in one write.

        Returns:
            All player stats in ranked order
        """
        primary = self.db.load_list(PRIMARY_LIST)
        completions = collect_completions(primary)
        existing = {stat.key: stat for stat in self.db.get_player_stats()}

        if targets is None:
            keys = set(completions) | set(existing)
        else:
            keys = {name.strip().lower() for name in targets if name and name.strip()}

        now = datetime.now(UTC)
        changed = []
        for key in sorted(keys):
            completed = completions.get(key)
            previous = existing.get(key)
            if completed is None and previous is None:
                continue

            name = previous.name if previous else completed.name
            stat = compute_stat(name, completed.levels.values() if completed else [])
            if previous is not None and _same_standing(previous, stat):
                continue
            stat.updated_at = now
            existing[key] = stat
            changed.append(stat)

        self.db.put_player_stats(changed)
        ranked = assign_ranks(existing.values())
        self.db.save_ranking([stat.key for stat in ranked if stat.rank is not None])

        logger.info(
            "Player stats regenerated",
            extra={
                "targeted": "all" if targets is None else len(keys),
                "changed": len(changed),
                "ranked": sum(1 for stat in ranked if stat.rank is not None),
            },
        )
        return ranked

    def refresh_after(self, *mutations: ListMutation) -> None:
        """Bring stats up to date after list writes, logging any failure.

        The writes have already been committed, so a failure here only
        leaves the leaderboard stale until the next regeneration.
        """
        rescore_all = any(m.rescore_all for m in mutations)
        players = set().union(*(m.rescore_players for m in mutations))
        if not rescore_all and not players:
            return
        try:
            self.regenerate(None if rescore_all else players)
        except Exception:
            logger.exception(
                "Failed to refresh player stats",
                extra={
                    "level_ids": [m.level.id for m in mutations],
                    "rescore_all": rescore_all,
                },
            )

    def get_leaderboard(self, limit: int) -> LeaderboardResponse:
        """Ranked players, best first."""
        ranked = sorted(
            (stat for stat in self.db.get_player_stats() if stat.rank is not None),
            key=lambda stat: stat.rank,
        )
        return LeaderboardResponse(leaderboard=ranked[:limit])

    def get_player_profile(self, player_name: str) -> PlayerProfile:
        """Stats plus verified and completed levels on every list.

        Raises:
            ResourceNotFoundError: If nothing is known about the player
        """
        key = player_name.strip().lower()
        stat = next(
            (s for s in self.db.get_player_stats() if s.key == key), None
        )
        levels = [
            level for list_type in ListType for level in self.db.load_list(list_type)
        ]
        verified = [level for level in levels if level.verifier.lower() == key]
        completed = [
            level
            for level in levels
            if any(
                r.username.lower() == key and r.percent == 100 for r in level.records
            )
        ]

        if stat is None:
            if not verified and not completed:
                raise ResourceNotFoundError(
                    f'Player "{player_name}" not found or has no associated data.'
                )
            hardest = min(
                (l for l in verified + completed if l.list_type is PRIMARY_LIST),
                key=lambda level: level.placement,
                default=None,
            )
            stat = PlayerStat(
                name=player_name.strip(),
                hardest_demon_name=hardest.name if hardest else None,
                hardest_demon_placement=hardest.placement if hardest else None,
            )

        return PlayerProfile(
            player_stat=stat, verified_levels=verified, completed_levels=completed
        )


def _same_standing(previous: PlayerStat, current: PlayerStat) -> bool:
    return (
        math.isclose(previous.score, current.score, rel_tol=1e-9, abs_tol=1e-9)
        and previous.hardest_demon_name == current.hardest_demon_name
        and previous.hardest_demon_placement == current.hardest_demon_placement
    )
