"""
Data Link Package

Lists the contents of a platform data link and polls it for changes.

Features:
- Name resolution with exact-match discipline
- Paginated, depth-bounded recursive browsing under a global result cap
- Server-side search, client-side regex and item-kind filtering
- Polling with added/removed detection against the previous snapshot
- Two- or three-channel delivery per poll tick
"""

from .models import (
    ItemKind,
    OutputKind,
    DataLinkRef,
    ListingItem,
    Page,
    ListingResult,
    SnapshotDelta,
    PollOutput,
    PollState,
)

from .config import (
    ApiContext,
    PlatformConfig,
    ListingConfig,
    PollConfig,
    KindFilter,
    DeliveryMode,
    parse_duration,
)

from .exceptions import (
    DataLinkError,
    DataLinkNameMissingError,
    DataLinkNotFoundError,
    DataLinkAmbiguousError,
    InvalidFilterError,
    PollerError,
    PollerAlreadyRunningError,
)

from .client import PlatformClient
from .resolver import NameResolver
from .browser import PageFetcher, ResultBudget, HierarchyTraverser
from .filters import ResultFilter, FilterResult
from .service import ListingService
from .differ import SnapshotDiffer
from .poller import PollScheduler, PollerState


__all__ = [
    # Models
    "ItemKind",
    "OutputKind",
    "DataLinkRef",
    "ListingItem",
    "Page",
    "ListingResult",
    "SnapshotDelta",
    "PollOutput",
    "PollState",
    # Config
    "ApiContext",
    "PlatformConfig",
    "ListingConfig",
    "PollConfig",
    "KindFilter",
    "DeliveryMode",
    "parse_duration",
    # Exceptions
    "DataLinkError",
    "DataLinkNameMissingError",
    "DataLinkNotFoundError",
    "DataLinkAmbiguousError",
    "InvalidFilterError",
    "PollerError",
    "PollerAlreadyRunningError",
    # Components
    "PlatformClient",
    "NameResolver",
    "PageFetcher",
    "ResultBudget",
    "HierarchyTraverser",
    "ResultFilter",
    "FilterResult",
    "ListingService",
    "SnapshotDiffer",
    # Poller
    "PollScheduler",
    "PollerState",
]

__version__ = "0.1.0"
