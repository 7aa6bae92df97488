"""Custom exceptions for the data link package."""

from typing import List, Optional


class DataLinkError(Exception):
    """Base exception for all data link errors."""
    pass


class DataLinkNameMissingError(DataLinkError):
    """No data link name was supplied."""
    pass


class DataLinkNotFoundError(DataLinkError):
    """No data link matches the requested name."""

    def __init__(self, name: str):
        super().__init__(f"Could not find Data Link '{name}'")
        self.name = name


class DataLinkAmbiguousError(DataLinkError):
    """More than one data link matches the requested name."""

    def __init__(self, name: str, matches: Optional[List[str]] = None):
        super().__init__(f"Found more than one Data Link matching '{name}'")
        self.name = name
        self.matches = matches or []


class InvalidFilterError(DataLinkError):
    """Client-side filter pattern failed to compile."""

    def __init__(self, pattern: str, reason: str):
        super().__init__(f"Invalid regex pattern: {pattern} ({reason})")
        self.pattern = pattern
        self.reason = reason


class PollerError(DataLinkError):
    """Error related to a data link poller."""
    pass


class PollerAlreadyRunningError(PollerError):
    """Poller has already been started."""
    pass
