"""
Unit tests for fetching pull requests of the tracked repositories
"""

import os
import pytest
import tempfile
import requests
from unittest.mock import Mock

from pr_stats.cache import CacheManager
from pr_stats.data_source import FetchError, PullRequestFetcher


def _node(number, author='carol', **extra):
    node = {
        'number': number,
        'title': f'PR {number}',
        'state': 'OPEN',
        'isDraft': False,
        'createdAt': '2024-05-01T10:00:00Z',
        'updatedAt': '2024-05-01T10:00:00Z',
        'mergedAt': None,
        'author': {'login': author, 'avatarUrl': None},
    }
    node.update(extra)
    return node


class TestPullRequestFetcher:
    """Test cases for PullRequestFetcher."""

    @pytest.fixture
    def temp_cache_file(self):
        fd, path = tempfile.mkstemp(suffix='.json')
        os.close(fd)
        os.remove(path)
        yield path
        if os.path.exists(path):
            os.remove(path)

    @pytest.fixture
    def api_client(self):
        nodes_by_repo = {
            'widgets': [_node(1), _node(2, author=None)],
            'gadgets': [_node(1, author='dave')],
        }
        client = Mock()
        client.paginate_graphql.side_effect = \
            lambda query, variables, path, max_pages=None: nodes_by_repo[variables['name']]
        return client

    def test_fetch_pull_requests(self, api_client):
        """Test that all repositories are fetched and parsed."""
        fetcher = PullRequestFetcher(api_client, ['acme/widgets', 'acme/gadgets'], max_pages=3)
        records = fetcher.fetch_pull_requests()

        assert sorted(records) == ['acme/gadgets#1', 'acme/widgets#1']
        assert records['acme/gadgets#1'].author.login == 'dave'
        assert api_client.paginate_graphql.call_count == 2
        _, kwargs = api_client.paginate_graphql.call_args
        assert kwargs['max_pages'] == 3

    def test_query_variables(self, api_client):
        fetcher = PullRequestFetcher(api_client, ['acme/widgets'], page_size=25)
        fetcher.fetch_pull_requests()

        args, _ = api_client.paginate_graphql.call_args
        assert args[1] == {'owner': 'acme', 'name': 'widgets', 'pageSize': 25}
        assert args[2] == ['repository', 'pullRequests']

    def test_no_repositories(self, api_client):
        assert PullRequestFetcher(api_client, []).fetch_pull_requests() == {}
        assert not api_client.paginate_graphql.called

    def test_failure_raises_fetch_error(self, api_client, temp_cache_file):
        """Test that a failing repository fails the whole fetch and nothing is cached."""
        def fetch(query, variables, path, max_pages=None):
            if variables['name'] == 'gadgets':
                raise requests.exceptions.ConnectionError("Network error")
            return [_node(1)]

        api_client.paginate_graphql.side_effect = fetch
        cache_manager = CacheManager(temp_cache_file, use_cache=True)
        fetcher = PullRequestFetcher(api_client, ['acme/widgets', 'acme/gadgets'], cache_manager)

        with pytest.raises(FetchError) as exc_info:
            fetcher.fetch_pull_requests()

        assert list(exc_info.value.failures) == ['acme/gadgets']
        assert cache_manager.cache == {}
        assert not os.path.exists(temp_cache_file)

    def test_invalid_repository_name(self, api_client):
        with pytest.raises(FetchError):
            PullRequestFetcher(api_client, ['not-a-repo']).fetch_pull_requests()

    def test_successful_fetch_is_cached_and_reloaded(self, api_client, temp_cache_file):
        """Test the round trip through the cache file."""
        fetcher = PullRequestFetcher(api_client, ['acme/widgets', 'acme/gadgets'],
                                     CacheManager(temp_cache_file, use_cache=True))
        fetched = fetcher.fetch_pull_requests()
        assert os.path.exists(temp_cache_file)

        reloaded = PullRequestFetcher(Mock(), ['acme/widgets'], CacheManager(temp_cache_file, use_cache=True))
        cached = reloaded.load_cached()
        assert sorted(cached) == ['acme/widgets#1']
        assert cached['acme/widgets#1'] == fetched['acme/widgets#1']

    def test_load_cached_without_cache(self, api_client):
        assert PullRequestFetcher(api_client, ['acme/widgets']).load_cached() == {}

    def test_malformed_node_does_not_fail_fetch(self, api_client, temp_cache_file):
        """Test that a badly typed node is skipped on fetch and on reload."""
        nodes = [_node(1), _node(2, state=None), _node('abc'), _node(4, createdAt=1714557600)]
        api_client.paginate_graphql.side_effect = lambda query, variables, path, max_pages=None: nodes
        fetcher = PullRequestFetcher(api_client, ['acme/widgets'], CacheManager(temp_cache_file, use_cache=True))

        assert list(fetcher.fetch_pull_requests()) == ['acme/widgets#1']

        reloaded = PullRequestFetcher(Mock(), ['acme/widgets'], CacheManager(temp_cache_file, use_cache=True))
        assert list(reloaded.load_cached()) == ['acme/widgets#1']

    def test_cached_sync_time(self, api_client, temp_cache_file):
        """Test that the cache reports when all tracked repositories were last stored."""
        cache_manager = CacheManager(temp_cache_file, use_cache=True)
        cache_manager.put_pull_requests('acme/widgets', [])
        cache_manager.put_pull_requests('acme/gadgets', [])
        fetcher = PullRequestFetcher(api_client, ['acme/widgets', 'acme/gadgets'], cache_manager)

        synced_at = fetcher.cached_sync_time()
        assert synced_at == min(cache_manager.get_stored_at('acme/widgets'),
                                cache_manager.get_stored_at('acme/gadgets'))
        assert synced_at.tzinfo is not None

    def test_cached_sync_time_needs_every_repository(self, api_client, temp_cache_file):
        cache_manager = CacheManager(temp_cache_file, use_cache=True)
        cache_manager.put_pull_requests('acme/widgets', [])

        assert PullRequestFetcher(api_client, ['acme/widgets', 'acme/gadgets'], cache_manager).cached_sync_time() is None
        assert PullRequestFetcher(api_client, ['acme/widgets']).cached_sync_time() is None
