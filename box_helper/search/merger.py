"""
Result merging across package sources.

This module runs the search on each configured backend and concatenates the
results into the single list the selector displays.
"""

import logging
from typing import List, Optional

from box_helper.backend.base import PackageBackend
from box_helper.core.interfaces import PackageEntry


logger = logging.getLogger(__name__)


def merge_results(official: List[PackageEntry], community: List[PackageEntry]) -> List[PackageEntry]:
    """
    Concatenate search results, official entries first.

    Order within each source is preserved and nothing is de-duplicated: a
    name found in both sources appears twice, once per origin.

    Args:
        official: Entries from the official repositories.
        community: Entries from the community repository.

    Returns:
        The merged list.
    """
    return list(official) + list(community)


class ResultMerger:
    """
    Searches the official and community backends and merges their results.
    """

    def __init__(self, official: PackageBackend, community: Optional[PackageBackend] = None):
        """
        Initialize the merger.

        Args:
            official: Backend for the official repositories.
            community: Backend for the community repository. When None (the
                official-only mode) the community repository is never queried.
        """
        self.official = official
        self.community = community

    def search(self, query: str) -> List[PackageEntry]:
        """
        Search every backend and merge the results.

        Args:
            query: Search query.

        Returns:
            Merged entries; empty if no backend found anything.
        """
        official_results = self.official.search(query)
        community_results = self.community.search(query) if self.community is not None else []

        logger.debug(
            f"Search for '{query}': {len(official_results)} official, "
            f"{len(community_results)} community results"
        )
        return merge_results(official_results, community_results)
