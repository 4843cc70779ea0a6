"""Persistent cache of fetched pull requests between runs."""

import os
import json
import hashlib
import logging
from datetime import datetime, timezone
from typing import Dict, List, Optional


class CacheManager:
    """Keeps the last fetched pull request nodes of each repository on disk.

    Entries are keyed by an MD5 of the repository name and hold the raw
    GraphQL nodes plus the time they were stored, so the stats can be shown
    from the previous run before the first sync of this run completes.
    """

    def __init__(self, cache_file: str = '.pr_stats_cache.json', use_cache: bool = True):
        """Initialize the cache manager.

        Args:
            cache_file: Path to the cache file
            use_cache: Whether caching is enabled
        """
        self.cache_file = cache_file
        self.use_cache = use_cache
        self.cache = self._load_cache()

    def _load_cache(self) -> Dict:
        if not self.use_cache or not os.path.exists(self.cache_file):
            return {}

        try:
            with open(self.cache_file, 'r') as f:
                cache = json.load(f)
                logging.info(f"Loaded cache from {self.cache_file} with {len(cache)} repositories")
                return cache
        except (json.JSONDecodeError, IOError) as e:
            logging.warning(f"Failed to load cache: {e}")
            return {}

    def save_cache(self):
        """Write the cache to disk (no-op when caching is disabled)."""
        if not self.use_cache:
            return

        try:
            with open(self.cache_file, 'w') as f:
                json.dump(self.cache, f, indent=2)
                logging.info(f"Saved cache to {self.cache_file} with {len(self.cache)} repositories")
        except (IOError, TypeError) as e:
            logging.warning(f"Failed to save cache: {e}")

    @staticmethod
    def get_cache_key(repo: str) -> str:
        return hashlib.md5(f"{repo}:pull_requests".encode()).hexdigest()

    def get_pull_requests(self, repo: str) -> Optional[List[Dict]]:
        """Return the cached nodes for a repository, if any.

        Args:
            repo: Repository in 'owner/repo' format

        Returns:
            Cached nodes, or None when nothing is cached
        """
        if not self.use_cache:
            return None

        entry = self.cache.get(self.get_cache_key(repo))
        if not entry or 'nodes' not in entry:
            return None

        stored_at = self.get_stored_at(repo)
        if stored_at is not None:
            age_hours = (datetime.now(timezone.utc) - stored_at).total_seconds() / 3600
            logging.debug(f"Using cached pull requests for {repo} (age: {age_hours:.1f} hours)")
        return entry['nodes']

    def get_stored_at(self, repo: str) -> Optional[datetime]:
        """Return when the nodes of a repository were cached, in UTC.

        Entries written without a UTC offset are read as local time.
        """
        if not self.use_cache:
            return None

        entry = self.cache.get(self.get_cache_key(repo))
        if not entry or not entry.get('timestamp'):
            return None
        try:
            return datetime.fromisoformat(entry['timestamp']).astimezone(timezone.utc)
        except (TypeError, ValueError):
            logging.warning(f"Ignoring invalid cache timestamp for {repo}: {entry['timestamp']!r}")
            return None

    def put_pull_requests(self, repo: str, nodes: List[Dict]):
        """Replace the cached nodes for a repository.

        Args:
            repo: Repository in 'owner/repo' format
            nodes: Raw GraphQL pull request nodes
        """
        if not self.use_cache:
            return

        self.cache[self.get_cache_key(repo)] = {
            'repo': repo,
            'timestamp': datetime.now(timezone.utc).isoformat(),
            'nodes': nodes
        }
