"""Data models for the data link package."""

import asyncio
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, FrozenSet, List, Optional, Tuple


class ItemKind(Enum):
    """Kinds of entries a data link browse returns."""
    FILE = "FILE"
    FOLDER = "FOLDER"

    @classmethod
    def parse(cls, raw: Optional[str]) -> Optional["ItemKind"]:
        """Normalize a source-supplied type string, None if unrecognized."""
        try:
            return cls((raw or "").upper())
        except ValueError:
            return None


class OutputKind(Enum):
    """Logical poll output channels."""
    ALL = "all"
    ADDED = "added"
    REMOVED = "removed"


@dataclass(frozen=True)
class DataLinkRef:
    """
    Resolved identity of a named data link.

    Attributes:
        id: Platform identifier of the data link
        resource_ref: Backing location, e.g. ``s3://bucket``
        resource_type: Backing store kind, e.g. ``bucket``
        provider: Cloud provider tag, e.g. ``aws``
        credentials_id: First credential attached to the link, if any
    """
    id: str
    resource_ref: Optional[str] = None
    resource_type: Optional[str] = None
    provider: Optional[str] = None
    credentials_id: Optional[str] = None

    @classmethod
    def from_dict(cls, data: dict) -> "DataLinkRef":
        """Create from a search response entry."""
        credentials = data.get("credentials") or []
        credentials_id = credentials[0].get("id") if credentials else None
        return cls(
            id=data["id"],
            resource_ref=data.get("resourceRef"),
            resource_type=data.get("type"),
            provider=data.get("provider"),
            credentials_id=credentials_id,
        )


@dataclass(frozen=True)
class ListingItem:
    """
    One entry returned by a traversal.

    Attributes:
        name: Path relative to the listing's base path, ``/`` separated
        kind: FILE or FOLDER (None when the source sends anything else)
        extra: Remaining source attributes (size, etc.), kept as-is
    """
    name: str
    kind: Optional[ItemKind] = None
    extra: Dict[str, Any] = field(default_factory=dict, compare=False, hash=False)

    @property
    def is_folder(self) -> bool:
        return self.kind is ItemKind.FOLDER

    def qualified(self, path: str) -> "ListingItem":
        """Return a copy whose name carries the given parent path."""
        if not path:
            return self
        return ListingItem(name=f"{path}/{self.name}", kind=self.kind, extra=self.extra)

    def to_dict(self) -> dict:
        """Convert to dictionary for serialization."""
        data = dict(self.extra)
        data["name"] = self.name
        data["type"] = self.kind.value if self.kind else None
        return data

    @classmethod
    def from_dict(cls, data: dict) -> "ListingItem":
        """Create from a browse response object."""
        extra = {k: v for k, v in data.items() if k not in ("name", "type")}
        return cls(
            name=data.get("name", ""),
            kind=ItemKind.parse(data.get("type")),
            extra=extra,
        )


@dataclass(frozen=True)
class Page:
    """One page of a browse response."""
    items: Tuple[ListingItem, ...]
    next_token: Optional[str] = None

    @classmethod
    def from_dict(cls, data: dict) -> "Page":
        objects = data.get("objects")
        if not isinstance(objects, list):
            objects = []
        return cls(
            items=tuple(ListingItem.from_dict(o) for o in objects),
            next_token=data.get("nextPageToken") or data.get("nextPage") or None,
        )


def _full_path(resource_ref: Optional[str], name: str) -> str:
    return f"{resource_ref}/{name}" if resource_ref else name


@dataclass(frozen=True)
class ListingResult:
    """
    Output of a single listing.

    Attributes:
        items: Items in traversal order
        resource_ref: Backing location of the data link
        resource_type: Backing store kind
        provider: Cloud provider tag
        warnings: Non-fatal problems (e.g. an invalid filter pattern)
    """
    items: Tuple[ListingItem, ...]
    resource_ref: Optional[str] = None
    resource_type: Optional[str] = None
    provider: Optional[str] = None
    warnings: Tuple[str, ...] = ()

    def __len__(self) -> int:
        return len(self.items)

    def __iter__(self):
        return iter(self.items)

    @property
    def names(self) -> List[str]:
        return [item.name for item in self.items]

    @property
    def paths(self) -> List[str]:
        """Full paths prefixed with the resource reference."""
        return [_full_path(self.resource_ref, item.name) for item in self.items]

    def name_set(self) -> FrozenSet[str]:
        return frozenset(item.name for item in self.items)

    def to_payload(self) -> dict:
        """Convert to a JSON-ready payload."""
        return {
            "files": [item.to_dict() for item in self.items],
            "resourceType": self.resource_type,
            "resourceRef": self.resource_ref,
            "provider": self.provider,
        }


@dataclass(frozen=True)
class SnapshotDelta:
    """Names added and removed between two snapshots."""
    added: FrozenSet[str] = frozenset()
    removed: FrozenSet[str] = frozenset()

    @property
    def is_empty(self) -> bool:
        return not self.added and not self.removed


@dataclass(frozen=True)
class PollOutput:
    """
    One logical output channel of a poll tick.

    Attributes:
        kind: Which channel this is
        items: Listing items (empty for the removed channel)
        names: Item names (the only content of the removed channel)
        resource_ref: Backing location of the data link
        resource_type: Backing store kind
        provider: Cloud provider tag
        next_poll: ISO-8601 time of the next tick (all channel only)
        interval_seconds: Poll interval (all channel only)
    """
    kind: OutputKind
    items: Tuple[ListingItem, ...] = ()
    names: Tuple[str, ...] = ()
    resource_ref: Optional[str] = None
    resource_type: Optional[str] = None
    provider: Optional[str] = None
    next_poll: Optional[str] = None
    interval_seconds: Optional[float] = None

    @property
    def paths(self) -> List[str]:
        return [_full_path(self.resource_ref, name) for name in self.names]

    def to_payload(self) -> dict:
        """Convert to a JSON-ready payload."""
        payload = {
            "resourceType": self.resource_type,
            "resourceRef": self.resource_ref,
            "provider": self.provider,
        }
        if self.kind is OutputKind.REMOVED:
            payload["files"] = list(self.names)
        else:
            payload["files"] = [item.to_dict() for item in self.items]
        if self.next_poll is not None:
            payload["nextPoll"] = self.next_poll
        if self.interval_seconds is not None:
            payload["intervalSeconds"] = self.interval_seconds
        return payload


@dataclass
class PollState:
    """
    Mutable state owned by a single poller.

    Attributes:
        interval_seconds: Seconds between ticks
        previous_names: Names seen on the last completed tick, None before the first
        timer: Task driving the repeating timer
    """
    interval_seconds: float
    previous_names: Optional[FrozenSet[str]] = None
    timer: Optional[asyncio.Task] = None

    def reset(self) -> None:
        """Forget the previous snapshot."""
        self.previous_names = None
