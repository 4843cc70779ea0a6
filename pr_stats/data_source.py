"""Fetching pull requests for the tracked repositories."""

import logging
from concurrent.futures import ThreadPoolExecutor, as_completed
from datetime import datetime
from typing import Dict, List, Optional

import requests

from .api_client import GitHubAPIClient, GraphQLError, RateLimitError
from .cache import CacheManager
from .models import PullRequestRecord
from .records import parse_pull_requests


PULL_REQUESTS_QUERY = """
query($owner: String!, $name: String!, $after: String, $pageSize: Int!) {
  repository(owner: $owner, name: $name) {
    pullRequests(first: $pageSize, after: $after, states: [OPEN, CLOSED, MERGED],
                 orderBy: {field: UPDATED_AT, direction: DESC}) {
      pageInfo {
        hasNextPage
        endCursor
      }
      nodes {
        number
        title
        state
        isDraft
        createdAt
        updatedAt
        mergedAt
        author {
          login
          avatarUrl
        }
        latestOpinionatedReviews(first: 20) {
          nodes {
            state
            submittedAt
            author {
              login
              avatarUrl
            }
          }
        }
        reviewRequests(first: 20) {
          nodes {
            requestedReviewer {
              ... on User {
                login
                avatarUrl
              }
            }
          }
        }
      }
    }
  }
}
"""


class FetchError(Exception):
    """Raised when pull requests could not be fetched for every repository."""

    def __init__(self, failures: Dict[str, Exception]):
        self.failures = failures
        details = '; '.join(f"{repo}: {error}" for repo, error in sorted(failures.items()))
        super().__init__(f"Failed to fetch {len(failures)} repository/repositories: {details}")


class PullRequestFetcher:
    """Fetches and parses pull requests for a set of repositories."""

    def __init__(self, api_client: GitHubAPIClient, repositories: List[str],
                 cache_manager: CacheManager = None, page_size: int = 50, max_pages: int = 10):
        """Initialize the fetcher.

        Args:
            api_client: Client used for GraphQL requests
            repositories: Repositories in 'owner/repo' format
            cache_manager: Optional cache that receives every successful fetch
            page_size: Pull requests per GraphQL page
            max_pages: Maximum pages per repository (most recently updated first)
        """
        self.api_client = api_client
        self.repositories = list(repositories)
        self.cache_manager = cache_manager
        self.page_size = page_size
        self.max_pages = max_pages

    def fetch_repository_nodes(self, repo: str) -> List[Dict]:
        """Fetch raw pull request nodes of one repository.

        Args:
            repo: Repository in 'owner/repo' format

        Returns:
            Raw GraphQL nodes, most recently updated first
        """
        owner, _, name = repo.partition('/')
        if not owner or not name:
            raise ValueError(f"Invalid repository '{repo}', expected 'owner/repo'")

        return self.api_client.paginate_graphql(
            PULL_REQUESTS_QUERY,
            {'owner': owner, 'name': name, 'pageSize': self.page_size},
            ['repository', 'pullRequests'],
            max_pages=self.max_pages
        )

    def fetch_pull_requests(self) -> Dict[str, PullRequestRecord]:
        """Fetch pull requests of all repositories in parallel.

        Returns:
            Dictionary mapping 'owner/repo#number' to records

        Raises:
            FetchError: If any repository failed; nothing is cached in that case
        """
        nodes_by_repo: Dict[str, List[Dict]] = {}
        failures: Dict[str, Exception] = {}

        if not self.repositories:
            logging.warning("No repositories configured, nothing to fetch")
            return {}

        max_workers = min(10, len(self.repositories))
        with ThreadPoolExecutor(max_workers=max_workers) as executor:
            future_to_repo = {
                executor.submit(self.fetch_repository_nodes, repo): repo
                for repo in self.repositories
            }

            for future in as_completed(future_to_repo):
                repo = future_to_repo[future]
                try:
                    nodes_by_repo[repo] = future.result()
                    logging.info(f"Fetched {len(nodes_by_repo[repo])} pull requests from {repo}")
                except (requests.RequestException, GraphQLError, RateLimitError, ValueError) as e:
                    logging.error(f"Error fetching pull requests from {repo}: {e}")
                    failures[repo] = e

        if failures:
            raise FetchError(failures)

        records: Dict[str, PullRequestRecord] = {}
        for repo in self.repositories:
            owner, _, name = repo.partition('/')
            records.update(parse_pull_requests(owner, name, nodes_by_repo[repo]))

        if self.cache_manager is not None:
            for repo, nodes in nodes_by_repo.items():
                self.cache_manager.put_pull_requests(repo, nodes)
            self.cache_manager.save_cache()

        return records

    def load_cached(self) -> Dict[str, PullRequestRecord]:
        """Parse the pull requests cached by a previous run.

        Only repositories that are still tracked are returned.
        """
        if self.cache_manager is None:
            return {}

        records: Dict[str, PullRequestRecord] = {}
        for repo in self.repositories:
            nodes = self.cache_manager.get_pull_requests(repo)
            if nodes is None:
                continue
            owner, _, name = repo.partition('/')
            records.update(parse_pull_requests(owner, name, nodes))

        if records:
            logging.info(f"Loaded {len(records)} cached pull requests")
        return records

    def cached_sync_time(self) -> Optional[datetime]:
        """Time of the last sync that stored every tracked repository.

        Returns:
            The oldest cache timestamp among the tracked repositories, or None
            when any of them has never been cached
        """
        if self.cache_manager is None or not self.repositories:
            return None

        stored = [self.cache_manager.get_stored_at(repo) for repo in self.repositories]
        if any(stored_at is None for stored_at in stored):
            return None
        return min(stored)
