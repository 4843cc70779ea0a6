"""
Unit tests for API client functionality
"""

import os
import pytest
import requests
from unittest.mock import Mock, patch

from pr_stats.api_client import GitHubAPIClient, GraphQLError, RateLimitError


def _response(status_code=200, payload=None, headers=None):
    response = Mock()
    response.status_code = status_code
    response.headers = headers or {}
    response.json.return_value = payload if payload is not None else {}
    if status_code >= 400:
        response.raise_for_status.side_effect = requests.exceptions.HTTPError(f"{status_code} Error")
    else:
        response.raise_for_status.return_value = None
    return response


def _page(nodes, has_next, cursor=None):
    return _response(payload={'data': {'repository': {'pullRequests': {
        'pageInfo': {'hasNextPage': has_next, 'endCursor': cursor},
        'nodes': nodes,
    }}}})


class TestClientInitialization:
    """Test cases for client setup."""

    def test_initialization_with_token(self):
        client = GitHubAPIClient('test_token')
        assert client.token == 'test_token'
        assert client.session.headers['Authorization'] == 'token test_token'

    def test_initialization_without_token(self):
        with patch.dict(os.environ, {}, clear=True):
            client = GitHubAPIClient()
            assert client.token is None
            assert 'Authorization' not in client.session.headers

    def test_token_from_environment(self):
        with patch.dict(os.environ, {'GITHUB_TOKEN': 'env_token'}):
            assert GitHubAPIClient().token == 'env_token'

    def test_retry_adapter_mounted(self):
        """Test that 5xx responses are retried via the mounted adapter."""
        client = GitHubAPIClient('test_token')
        retries = client.session.get_adapter('https://api.github.com').max_retries
        assert retries.total == 3
        assert 502 in retries.status_forcelist


class TestAuthenticatedUser:
    """Test cases for get_authenticated_user."""

    @pytest.fixture
    def client(self):
        client = GitHubAPIClient('test_token')
        client.session = Mock()
        return client

    def test_success(self, client):
        client.session.get.return_value = _response(payload={'login': 'carol'})
        assert client.get_authenticated_user() == {'login': 'carol'}
        client.session.get.assert_called_once_with('https://api.github.com/user')

    def test_rejected_token(self, client):
        client.session.get.return_value = _response(status_code=401)
        assert client.get_authenticated_user() is None

    def test_no_token(self):
        with patch.dict(os.environ, {}, clear=True):
            assert GitHubAPIClient().get_authenticated_user() is None

    def test_server_error_raises(self, client):
        client.session.get.return_value = _response(status_code=500)
        with pytest.raises(requests.exceptions.HTTPError):
            client.get_authenticated_user()


class TestGraphQL:
    """Test cases for post_graphql and paginate_graphql."""

    @pytest.fixture
    def client(self):
        client = GitHubAPIClient('test_token')
        client.session = Mock()
        return client

    def test_post_graphql_returns_data(self, client):
        client.session.post.return_value = _response(payload={'data': {'viewer': {'login': 'carol'}}})
        assert client.post_graphql('query { viewer { login } }') == {'viewer': {'login': 'carol'}}

        payload = client.session.post.call_args.kwargs['json']
        assert 'variables' not in payload

    def test_post_graphql_errors(self, client):
        client.session.post.return_value = _response(payload={'errors': [{'message': 'bad'}]})
        with pytest.raises(GraphQLError):
            client.post_graphql('query { x }')

    def test_rate_limit(self, client):
        """Test that an exhausted rate limit raises instead of exiting."""
        client.session.post.return_value = _response(
            status_code=403, headers={'X-RateLimit-Remaining': '0', 'X-RateLimit-Reset': '1700000000'}
        )
        with pytest.raises(RateLimitError):
            client.post_graphql('query { x }')

    def test_forbidden_without_rate_limit_is_http_error(self, client):
        client.session.post.return_value = _response(status_code=403, headers={'X-RateLimit-Remaining': '12'})
        with pytest.raises(requests.exceptions.HTTPError):
            client.post_graphql('query { x }')

    def test_network_error(self, client):
        client.session.post.side_effect = requests.exceptions.ConnectionError("Network error")
        with pytest.raises(requests.exceptions.ConnectionError):
            client.post_graphql('query { x }')

    def test_paginate_follows_cursor(self, client):
        """Test that pages are requested until hasNextPage is false."""
        client.session.post.side_effect = [
            _page([{'number': 1}, {'number': 2}], True, 'c1'),
            _page([{'number': 3}], False),
        ]
        nodes = client.paginate_graphql('query', {'owner': 'acme'}, ['repository', 'pullRequests'])

        assert [n['number'] for n in nodes] == [1, 2, 3]
        first_vars = client.session.post.call_args_list[0].kwargs['json']['variables']
        second_vars = client.session.post.call_args_list[1].kwargs['json']['variables']
        assert first_vars['after'] is None
        assert second_vars == {'owner': 'acme', 'after': 'c1'}

    def test_paginate_max_pages(self, client):
        client.session.post.side_effect = [
            _page([{'number': 1}], True, 'c1'),
            _page([{'number': 2}], True, 'c2'),
        ]
        nodes = client.paginate_graphql('query', {}, ['repository', 'pullRequests'], max_pages=1)
        assert nodes == [{'number': 1}]
        assert client.session.post.call_count == 1

    def test_paginate_early_termination(self, client):
        client.session.post.side_effect = [
            _page([{'number': 1}], True, 'c1'),
            _page([{'number': 2}], False),
        ]
        nodes = client.paginate_graphql('query', {}, ['repository', 'pullRequests'],
                                        should_continue=lambda page: False)
        assert nodes == [{'number': 1}]

    def test_paginate_missing_repository(self, client):
        """Test that a null repository yields no nodes."""
        client.session.post.return_value = _response(payload={'data': {'repository': None}})
        assert client.paginate_graphql('query', {}, ['repository', 'pullRequests']) == []
