"""
ListingService: one "list now" operation.

resolve name → traverse hierarchy → filter results.
"""

import logging

from .browser import HierarchyTraverser, PageFetcher
from .client import PlatformClient
from .config import ListingConfig
from .filters import ResultFilter
from .models import ListingResult
from .resolver import NameResolver

logger = logging.getLogger(__name__)


class ListingService:
    """Composes name resolution, traversal and filtering."""

    def __init__(self, client: PlatformClient) -> None:
        self._client = client
        self._resolver = NameResolver(client)
        self._traverser = HierarchyTraverser(PageFetcher(client))
        self._filter = ResultFilter()

    @property
    def client(self) -> PlatformClient:
        return self._client

    async def list(self, config: ListingConfig) -> ListingResult:
        """
        List a data link once.

        Raises:
            DataLinkNotFoundError: If the name matches nothing
            DataLinkAmbiguousError: If the name matches several links
            httpx.HTTPError: If any request fails
        """
        context = self._client.config.api_context(
            base_url=config.base_url,
            workspace_id=config.workspace_id,
        )
        ref = await self._resolver.resolve(config.data_link_name, context)

        items = await self._traverser.traverse(
            context,
            ref.id,
            base_path=config.base_path,
            search=config.search or None,
            credentials_id=ref.credentials_id,
            max_depth=config.max_depth,
            max_results=config.max_results,
        )

        filtered = self._filter.apply(items, config.pattern, config.kind_filter)
        logger.info(
            "Listed data link '%s': %d item(s) (%d before filtering)",
            config.data_link_name, len(filtered.items), len(items),
        )

        return ListingResult(
            items=tuple(filtered.items),
            resource_ref=ref.resource_ref,
            resource_type=ref.resource_type,
            provider=ref.provider,
            warnings=tuple(filtered.warnings),
        )
