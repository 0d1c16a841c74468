"""Placement arithmetic for ranked lists.

Every operation works on an in-memory snapshot of one list and leaves
placements contiguous from 1. Nothing here touches storage: callers read a
snapshot, apply one operation, and persist the resulting order in a single
transaction.
"""

from collections.abc import Iterable, Iterator
from dataclasses import dataclass, field
from typing import Generic, Protocol, TypeVar


class Placed(Protocol):
    """Anything with an identity and a 1-based placement."""

    id: str
    placement: int


T = TypeVar("T", bound=Placed)


@dataclass
class ReorderResult(Generic[T]):
    """Outcome of a single insert, move or remove."""

    entry: T
    old_placement: int | None
    new_placement: int | None
    changed: bool = True
    dropped: list[T] = field(default_factory=list)


class RankedList(Generic[T]):
    """Snapshot of one ordered list.

    ``version`` is the storage version the snapshot was read at; the
    database layer uses it as an optimistic concurrency check when the new
    order is written back.
    """

    def __init__(
        self,
        name: str,
        entries: Iterable[T] = (),
        max_length: int | None = None,
        version: int = 0,
    ) -> None:
        self.name = name
        self.max_length = max_length
        self.version = version
        self._entries: list[T] = sorted(entries, key=lambda e: e.placement)

    def __len__(self) -> int:
        return len(self._entries)

    def __iter__(self) -> Iterator[T]:
        return iter(self.entries)

    @property
    def entries(self) -> list[T]:
        """Entries ordered by placement."""
        return sorted(self._entries, key=lambda e: e.placement)

    def ids(self) -> list[str]:
        """Entry IDs ordered by placement."""
        return [entry.id for entry in self.entries]

    def find(self, entry_id: str) -> T | None:
        """Return the entry with this ID, if present."""
        return next((e for e in self._entries if e.id == entry_id), None)

    def is_contiguous(self) -> bool:
        """True when placements are exactly 1..N."""
        placements = sorted(e.placement for e in self._entries)
        return placements == list(range(1, len(placements) + 1))

    def insert(self, entry: T, placement: int) -> ReorderResult[T]:
        """Insert an entry at a placement, pushing the rest down by one.

        Placements past the end are clamped to ``N + 1``. Anything that ends
        up beyond ``max_length`` (possibly the new entry) is dropped.
        """
        if placement < 1:
            raise ValueError("Placement must be at least 1")
        if self.find(entry.id) is not None:
            raise ValueError(f"Entry {entry.id} is already on list {self.name}")

        target = min(placement, len(self._entries) + 1)
        self._shift(low=target, high=None, delta=1)
        entry.placement = target
        self._entries.append(entry)

        dropped = self.truncate()
        return ReorderResult(
            entry=entry, old_placement=None, new_placement=target, dropped=dropped
        )

    def move(self, entry_id: str, new_placement: int) -> ReorderResult[T]:
        """Move an entry to a new placement, shifting the entries in between.

        Moving to the current placement is a no-op with ``changed`` False.
        Placements past the end are clamped to ``N``.
        """
        if new_placement < 1:
            raise ValueError("Placement must be at least 1")
        entry = self.find(entry_id)
        if entry is None:
            raise KeyError(entry_id)

        old = entry.placement
        new = min(new_placement, len(self._entries))
        if old == new:
            return ReorderResult(
                entry=entry, old_placement=old, new_placement=new, changed=False
            )

        if new < old:
            # moving up: [new, old) slide down one
            self._shift(low=new, high=old - 1, delta=1, skip=entry)
        else:
            # moving down: (old, new] slide up one
            self._shift(low=old + 1, high=new, delta=-1, skip=entry)
        entry.placement = new

        dropped = self.truncate()
        return ReorderResult(
            entry=entry, old_placement=old, new_placement=new, dropped=dropped
        )

    def remove(self, entry_id: str) -> ReorderResult[T]:
        """Remove an entry and close the gap it leaves."""
        entry = self.find(entry_id)
        if entry is None:
            raise KeyError(entry_id)

        old = entry.placement
        self._entries.remove(entry)
        self._shift(low=old + 1, high=None, delta=-1)
        return ReorderResult(entry=entry, old_placement=old, new_placement=None)

    def truncate(self) -> list[T]:
        """Drop entries placed beyond the maximum length."""
        if self.max_length is None:
            return []
        dropped = [e for e in self._entries if e.placement > self.max_length]
        for entry in dropped:
            self._entries.remove(entry)
        return sorted(dropped, key=lambda e: e.placement)

    def _shift(
        self, low: int, high: int | None, delta: int, skip: T | None = None
    ) -> None:
        """Add ``delta`` to every placement in ``[low, high]`` (open if None)."""
        for entry in self._entries:
            if entry is skip:
                continue
            if entry.placement >= low and (high is None or entry.placement <= high):
                entry.placement += delta
