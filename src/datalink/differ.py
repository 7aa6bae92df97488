"""Set difference between successive listing snapshots."""

from typing import AbstractSet, List, Optional, Sequence

from .models import ListingItem, SnapshotDelta


class SnapshotDiffer:
    """
    Computes which names were added and removed between two snapshots.

    Stateless: the owning poller keeps and replaces the previous snapshot.
    """

    def diff(
        self,
        current: AbstractSet[str],
        previous: Optional[AbstractSet[str]],
    ) -> SnapshotDelta:
        """
        Diff the current snapshot against the previous one.

        Args:
            current: Names in the current listing
            previous: Names in the previous listing, None if there was none

        Returns:
            SnapshotDelta, empty when there is no previous snapshot
        """
        if previous is None:
            return SnapshotDelta()
        return SnapshotDelta(
            added=frozenset(current - previous),
            removed=frozenset(previous - current),
        )

    @staticmethod
    def added_items(items: Sequence[ListingItem], delta: SnapshotDelta) -> List[ListingItem]:
        """Items whose names were added, in listing order."""
        return [item for item in items if item.name in delta.added]
