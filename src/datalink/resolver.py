"""Resolution of data link names to platform identifiers."""

import logging

from .client import PlatformClient
from .config import ApiContext
from .exceptions import (
    DataLinkAmbiguousError,
    DataLinkNameMissingError,
    DataLinkNotFoundError,
)
from .models import DataLinkRef

logger = logging.getLogger(__name__)

# Two results are enough to tell "exactly one" from "more than one".
SEARCH_PAGE_SIZE = 2


class NameResolver:
    """Resolves a human-readable data link name via the search endpoint."""

    def __init__(self, client: PlatformClient):
        self._client = client

    async def resolve(self, name: str, context: ApiContext) -> DataLinkRef:
        """
        Resolve a data link name to its identity.

        Args:
            name: Data link name to search for
            context: Base URL and workspace to search in

        Returns:
            The single matching DataLinkRef

        Raises:
            DataLinkNameMissingError: If name is empty
            DataLinkNotFoundError: If nothing matches
            DataLinkAmbiguousError: If more than one link matches
        """
        if not name or not str(name).strip():
            raise DataLinkNameMissingError("dataLinkName not provided")

        params = context.params()
        params["pageSize"] = str(SEARCH_PAGE_SIZE)
        params["search"] = name

        data = await self._client.get(context.url("data-links/"), params=params) or {}
        links = data.get("dataLinks") or []

        if not links:
            raise DataLinkNotFoundError(name)
        if len(links) != 1:
            raise DataLinkAmbiguousError(name, [link.get("id") for link in links])

        ref = DataLinkRef.from_dict(links[0])
        logger.debug("Resolved data link '%s' to %s (%s)", name, ref.id, ref.resource_ref)
        return ref
