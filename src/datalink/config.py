"""Configuration for the data link package."""

import os
import re
from dataclasses import dataclass
from enum import Enum
from typing import Optional, Union


DEFAULT_BASE_URL = "https://api.cloud.seqera.io"
DEFAULT_MAX_RESULTS = 100
DEFAULT_POLL_INTERVAL_SECONDS = 15 * 60

_DURATION_PATTERNS = (
    # DD-HH:MM:SS
    (re.compile(r"^(\d+)-(\d{1,2}):(\d{1,2}):(\d{1,2})$"), (86400, 3600, 60, 1)),
    # HH:MM:SS
    (re.compile(r"^(\d{1,2}):(\d{1,2}):(\d{1,2})$"), (3600, 60, 1)),
    # MM:SS
    (re.compile(r"^(\d{1,2}):(\d{1,2})$"), (60, 1)),
    # SS
    (re.compile(r"^(\d+)$"), (1,)),
)


class KindFilter(Enum):
    """Which item kinds a listing keeps."""
    FILES = "files"
    FOLDERS = "folders"
    ALL = "all"


class DeliveryMode(Enum):
    """How many output channels a poller delivers per tick."""
    CHANGES = 2  # [added, removed]
    ALL_AND_CHANGES = 3  # [all, added, removed]


def parse_duration(value: Union[str, int, float, None]) -> Optional[float]:
    """
    Parse a poll duration into seconds.

    Accepts a plain number of seconds or one of the strings
    ``SS``, ``MM:SS``, ``HH:MM:SS`` and ``DD-HH:MM:SS``.

    Args:
        value: Raw duration value

    Returns:
        Number of seconds, or None if the value cannot be parsed
    """
    if isinstance(value, bool):
        return None
    if isinstance(value, (int, float)):
        return float(value)
    if not isinstance(value, str):
        return None

    text = value.strip()
    for pattern, multipliers in _DURATION_PATTERNS:
        match = pattern.match(text)
        if match:
            parts = [int(g) for g in match.groups()]
            return float(sum(p * m for p, m in zip(parts, multipliers)))
    return None


_LEADING_INT = re.compile(r"^\s*([+-]?\d+)")


def _parse_int(value, default: int) -> int:
    """Read the leading integer of a value ('50.5' -> 50, '10abc' -> 10)."""
    if isinstance(value, (int, float)):
        try:
            return int(value)
        except (OverflowError, ValueError):
            return default
    match = _LEADING_INT.match(str(value)) if value is not None else None
    return int(match.group(1)) if match else default


@dataclass(frozen=True)
class ApiContext:
    """Base URL and workspace every platform request is scoped by."""
    base_url: str
    workspace_id: Optional[str] = None

    def url(self, path: str) -> str:
        """Join an API path onto the base URL."""
        return f"{self.base_url.rstrip('/')}/{path.lstrip('/')}"

    def params(self) -> dict:
        """Query parameters shared by every workspace-scoped request."""
        if self.workspace_id is None:
            return {}
        return {"workspaceId": str(self.workspace_id)}


@dataclass
class PlatformConfig:
    """
    Connection settings for the platform API.

    Attributes:
        base_url: API endpoint (falls back to TOWER_API_ENDPOINT)
        workspace_id: Default workspace (falls back to TOWER_WORKSPACE_ID)
        token: Bearer token (falls back to TOWER_ACCESS_TOKEN)
        timeout_seconds: Timeout applied to every HTTP request
    """
    base_url: Optional[str] = None
    workspace_id: Optional[str] = None
    token: Optional[str] = None
    timeout_seconds: float = 30.0

    def get_base_url(self) -> str:
        """Get API base URL from config or environment."""
        return (self.base_url or os.environ.get("TOWER_API_ENDPOINT") or DEFAULT_BASE_URL).rstrip("/")

    def get_workspace_id(self) -> Optional[str]:
        """Get workspace id from config or environment."""
        return self.workspace_id or os.environ.get("TOWER_WORKSPACE_ID") or None

    def get_token(self) -> Optional[str]:
        """Get API token from config or environment."""
        return self.token or os.environ.get("TOWER_ACCESS_TOKEN")

    def api_context(
        self,
        base_url: Optional[str] = None,
        workspace_id: Optional[str] = None,
    ) -> ApiContext:
        """
        Build the request context, letting per-call overrides win.

        Args:
            base_url: Base URL override
            workspace_id: Workspace override

        Returns:
            ApiContext with the trailing slash stripped from the base URL
        """
        return ApiContext(
            base_url=(base_url or self.get_base_url()).rstrip("/"),
            workspace_id=workspace_id or self.get_workspace_id(),
        )


@dataclass(frozen=True)
class ListingConfig:
    """
    Parameters for one data link listing.

    Attributes:
        data_link_name: Name of the data link to resolve
        base_path: Path inside the data link to start from
        search: Server-side search prefix
        pattern: Client-side regular expression applied to item names
        max_results: Ceiling on items collected across the whole traversal
        max_depth: Folder recursion depth (0 lists the base path only)
        kind_filter: Keep files, folders or both
        workspace_id: Workspace override
        base_url: Base URL override
    """
    data_link_name: str
    base_path: str = ""
    search: str = ""
    pattern: Optional[str] = None
    max_results: int = DEFAULT_MAX_RESULTS
    max_depth: int = 0
    kind_filter: KindFilter = KindFilter.ALL
    workspace_id: Optional[str] = None
    base_url: Optional[str] = None

    def __post_init__(self):
        max_results = _parse_int(self.max_results, DEFAULT_MAX_RESULTS)
        if max_results <= 0:
            max_results = DEFAULT_MAX_RESULTS
        object.__setattr__(self, "max_results", max_results)
        object.__setattr__(self, "max_depth", max(0, _parse_int(self.max_depth, 0)))
        object.__setattr__(self, "base_path", "" if self.base_path is None else str(self.base_path))
        object.__setattr__(self, "search", self.search or "")
        if isinstance(self.kind_filter, str):
            object.__setattr__(self, "kind_filter", KindFilter(self.kind_filter.lower()))
        elif self.kind_filter is None:
            object.__setattr__(self, "kind_filter", KindFilter.ALL)


@dataclass
class PollConfig:
    """
    Configuration for a data link poller.

    Attributes:
        listing: Listing parameters used on every tick
        interval_seconds: Seconds between ticks (number or duration string)
        delivery_mode: Two or three output channels per tick
        once: Stop after the first successful tick
    """
    listing: ListingConfig
    interval_seconds: Union[float, str] = DEFAULT_POLL_INTERVAL_SECONDS
    delivery_mode: DeliveryMode = DeliveryMode.ALL_AND_CHANGES
    once: bool = False

    def __post_init__(self):
        seconds = parse_duration(self.interval_seconds)
        if not seconds or seconds < 0:
            seconds = float(DEFAULT_POLL_INTERVAL_SECONDS)
        self.interval_seconds = seconds
        if isinstance(self.delivery_mode, int):
            self.delivery_mode = DeliveryMode(self.delivery_mode)
        if isinstance(self.listing, dict):
            self.listing = ListingConfig(**self.listing)
