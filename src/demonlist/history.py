"""Approximate reconstruction of a list as it stood on a past date.

Changes made after the target date are undone newest-first against the
current snapshot. Levels dropped by the length limit leave no audit entry
and overlapping edits on the same placement range do not always invert
cleanly, so the result is best effort only.
"""

import re
from collections.abc import Iterable
from datetime import date, datetime, time, UTC

from .errors import InvalidRequestError
from .models import ChangeType, Level, ListChange, ListType

_ISO_DATE = re.compile(r"^\d{4}-\d{2}-\d{2}$")
_ADD = re.compile(r"^(?P<name>.+) added at #(?P<placement>\d+)$")
_REMOVE = re.compile(r"^(?P<name>.+) removed from .+ \(was #(?P<placement>\d+)\)$")
_MOVE = re.compile(r"moved from #(?P<old>\d+) to #(?P<new>\d+)$")


def describe_add(name: str, placement: int) -> str:
    return f"{name} added at #{placement}"


def describe_remove(name: str, list_type: ListType, placement: int) -> str:
    return f"{name} removed from {list_type.value} (was #{placement})"


def describe_move(name: str, old_placement: int, new_placement: int) -> str:
    return f"{name} moved from #{old_placement} to #{new_placement}"


def parse_history_date(value: str | None) -> datetime:
    """Parse ``YYYY-MM-DD`` into the last instant of that day in UTC."""
    if not value:
        raise InvalidRequestError("A date parameter is required.")
    if not _ISO_DATE.match(value):
        raise InvalidRequestError("Invalid date format. Use YYYY-MM-DD.")
    try:
        day = date.fromisoformat(value)
    except ValueError as e:
        raise InvalidRequestError("Invalid date value.") from e
    return datetime.combine(day, time.max, tzinfo=UTC)


def reconstruct_list(
    current: Iterable[Level], changes_newest_first: Iterable[ListChange]
) -> list[Level]:
    """Undo ``changes_newest_first`` against copies of ``current``."""
    snapshot = {level.id: level.model_copy(deep=True) for level in current}

    for change in changes_newest_first:
        if change.change_type == ChangeType.ADD:
            _undo_add(snapshot, change)
        elif change.change_type == ChangeType.REMOVE:
            _undo_remove(snapshot, change)
        elif change.change_type == ChangeType.MOVE:
            _undo_move(snapshot, change)

    levels = sorted(
        (level for level in snapshot.values() if level.placement > 0),
        key=lambda level: (level.placement, level.name),
    )
    for index, level in enumerate(levels, 1):
        level.placement = index
    return levels


def _shift(snapshot: dict[str, Level], low: int, high: int | None, delta: int) -> None:
    for level in snapshot.values():
        if level.placement >= low and (high is None or level.placement <= high):
            level.placement += delta


def _undo_add(snapshot: dict[str, Level], change: ListChange) -> None:
    level = snapshot.pop(change.level_id, None)
    if level is None:
        return
    _shift(snapshot, low=level.placement + 1, high=None, delta=-1)


def _undo_remove(snapshot: dict[str, Level], change: ListChange) -> None:
    match = _REMOVE.match(change.description)
    if match is None or change.level_id in snapshot:
        return
    placement = int(match.group("placement"))
    _shift(snapshot, low=placement, high=None, delta=1)
    # only the name and placement survive in the audit entry
    snapshot[change.level_id] = Level.model_construct(
        id=change.level_id,
        name=match.group("name"),
        creator="N/A",
        verifier="N/A",
        video_id="",
        level_id=None,
        description="",
        list_type=change.list_type,
        placement=placement,
        records=[],
    )


def _undo_move(snapshot: dict[str, Level], change: ListChange) -> None:
    match = _MOVE.search(change.description)
    level = snapshot.get(change.level_id)
    if match is None or level is None:
        return
    old = int(match.group("old"))
    current = level.placement
    level.placement = 0
    if old < current:
        _shift(snapshot, low=old, high=current - 1, delta=1)
    elif old > current:
        _shift(snapshot, low=current + 1, high=old, delta=-1)
    level.placement = old
