"""Paginated, depth-bounded traversal of a data link hierarchy."""

import logging
from typing import List, Optional
from urllib.parse import quote

from .client import PlatformClient
from .config import ApiContext
from .models import ListingItem, Page

logger = logging.getLogger(__name__)


def encode_path(path: str) -> str:
    """URL-encode each path segment, dropping empty ones."""
    return "/".join(quote(segment, safe="") for segment in path.split("/") if segment)


class PageFetcher:
    """Fetches one page of a traversal node's immediate children."""

    def __init__(self, client: PlatformClient):
        self._client = client

    async def fetch_page(
        self,
        context: ApiContext,
        data_link_id: str,
        path: str = "",
        search: Optional[str] = None,
        credentials_id: Optional[str] = None,
        next_page_token: Optional[str] = None,
    ) -> Page:
        """
        Fetch a single browse page.

        Item names are returned as the source sends them, not yet
        qualified with the parent path. Errors propagate unchanged.

        Args:
            context: Base URL and workspace
            data_link_id: Resolved data link id
            path: Path of the node being listed ("" for the top level)
            search: Server-side search prefix
            credentials_id: Credential used to authorize the browse
            next_page_token: Continuation token from the previous page

        Returns:
            Page with the children and the next continuation token
        """
        url = context.url(f"data-links/{quote(str(data_link_id), safe='')}/browse/{encode_path(path)}")

        params = context.params()
        if search:
            params["search"] = search
        if credentials_id:
            params["credentialsId"] = credentials_id
        if next_page_token:
            params["nextPageToken"] = next_page_token

        data = await self._client.get(url, params=params or None) or {}
        page = Page.from_dict(data)
        logger.debug(
            "Fetched %d item(s) from '%s' (more=%s)",
            len(page.items), path or "/", page.next_token is not None,
        )
        return page


class ResultBudget:
    """
    Item accumulator shared by every branch of one traversal.

    Holds the collected items and refuses anything past max_results.
    """

    def __init__(self, max_results: int):
        self.max_results = max_results
        self.items: List[ListingItem] = []
        self.fetches = 0

    @property
    def remaining(self) -> int:
        return max(0, self.max_results - len(self.items))

    @property
    def exhausted(self) -> bool:
        return len(self.items) >= self.max_results

    def take(self, items: List[ListingItem]) -> int:
        """
        Collect as many items as the remaining budget allows.

        Returns:
            Number of items collected
        """
        accepted = items[:self.remaining]
        self.items.extend(accepted)
        return len(accepted)

    def __len__(self) -> int:
        return len(self.items)


class HierarchyTraverser:
    """
    Depth-first, pre-order walk of a data link.

    Every page of a node is collected before any of its folders is
    visited. A single ResultBudget caps the whole walk.
    """

    def __init__(self, fetcher: PageFetcher):
        self._fetcher = fetcher

    async def traverse(
        self,
        context: ApiContext,
        data_link_id: str,
        base_path: str = "",
        search: Optional[str] = None,
        credentials_id: Optional[str] = None,
        max_depth: int = 0,
        max_results: int = 100,
    ) -> List[ListingItem]:
        """
        Collect the hierarchy beneath base_path.

        Args:
            context: Base URL and workspace
            data_link_id: Resolved data link id
            base_path: Path to start from
            search: Server-side search prefix
            credentials_id: Credential used to authorize the browse
            max_depth: Levels of folders to descend into (0 = none)
            max_results: Ceiling on items collected in total

        Returns:
            Items in traversal order, names qualified with their parent path
        """
        budget = ResultBudget(max_results)
        await self._walk(
            budget,
            context,
            data_link_id,
            base_path.rstrip("/"),
            0,
            search,
            credentials_id,
            max_depth,
        )
        logger.debug(
            "Traversal of %s collected %d item(s) in %d fetch(es)",
            data_link_id, len(budget), budget.fetches,
        )
        return budget.items

    async def _walk(
        self,
        budget: ResultBudget,
        context: ApiContext,
        data_link_id: str,
        path: str,
        depth: int,
        search: Optional[str],
        credentials_id: Optional[str],
        max_depth: int,
    ) -> None:
        if budget.exhausted:
            return

        folders: List[ListingItem] = []
        token: Optional[str] = None
        while True:
            page = await self._fetcher.fetch_page(
                context,
                data_link_id,
                path,
                search=search,
                credentials_id=credentials_id,
                next_page_token=token,
            )
            budget.fetches += 1
            children = [item.qualified(path) for item in page.items]
            budget.take(children)
            folders.extend(child for child in children if child.is_folder)

            token = page.next_token
            if not token or budget.exhausted:
                break

        if depth >= max_depth:
            return

        for folder in folders:
            if budget.exhausted:
                break
            await self._walk(
                budget,
                context,
                data_link_id,
                folder.name.rstrip("/"),
                depth + 1,
                search,
                credentials_id,
                max_depth,
            )
