"""Client-side filtering of traversal output."""

import logging
import re
from dataclasses import dataclass, field
from typing import List, Optional, Pattern, Sequence

from .config import KindFilter
from .exceptions import InvalidFilterError
from .models import ItemKind, ListingItem

logger = logging.getLogger(__name__)


def compile_pattern(pattern: str) -> Pattern:
    """
    Compile a name filter.

    Raises:
        InvalidFilterError: If the pattern is not a valid regular expression
    """
    try:
        return re.compile(pattern)
    except re.error as e:
        raise InvalidFilterError(pattern, str(e)) from e


@dataclass
class FilterResult:
    """Filtered items plus any warnings raised while filtering."""
    items: List[ListingItem]
    warnings: List[str] = field(default_factory=list)


class ResultFilter:
    """Applies the regex and item-kind filters, preserving order."""

    _KIND_FOR_FILTER = {
        KindFilter.FILES: ItemKind.FILE,
        KindFilter.FOLDERS: ItemKind.FOLDER,
    }

    def apply(
        self,
        items: Sequence[ListingItem],
        pattern: Optional[str] = None,
        kind_filter: Optional[KindFilter] = None,
    ) -> FilterResult:
        """
        Filter items by name pattern and kind.

        An invalid pattern is reported as a warning and ignored.

        Args:
            items: Items in traversal order
            pattern: Regular expression searched for in each name
            kind_filter: FILES, FOLDERS or ALL (None behaves as ALL)

        Returns:
            FilterResult with the surviving items in their original order
        """
        result = FilterResult(items=list(items))

        if pattern:
            try:
                regex = compile_pattern(pattern)
            except InvalidFilterError as e:
                logger.warning(str(e))
                result.warnings.append(str(e))
            else:
                result.items = [item for item in result.items if regex.search(item.name)]

        kind = self._KIND_FOR_FILTER.get(kind_filter)
        if kind is not None:
            result.items = [item for item in result.items if item.kind is kind]

        return result
