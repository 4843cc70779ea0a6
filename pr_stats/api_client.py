"""GitHub API client for GraphQL queries and cursor pagination."""

import os
import logging
from typing import Callable, Dict, List, Optional
import requests
from requests.adapters import HTTPAdapter
from urllib3.util.retry import Retry


GITHUB_API_URL = "https://api.github.com"
GRAPHQL_URL = f"{GITHUB_API_URL}/graphql"


class RateLimitError(Exception):
    """Raised when GitHub refuses a request because of rate limiting."""


class GraphQLError(Exception):
    """Raised when a GraphQL response carries errors."""


class GitHubAPIClient:
    """Handles GitHub API requests with retry logic and pagination."""

    def __init__(self, token: str = None):
        """Initialize the GitHub API client.

        Args:
            token: GitHub personal access token for authentication
        """
        # Use provided token or fall back to environment variable
        self.token = token or os.environ.get('GITHUB_TOKEN')
        self.session = requests.Session()

        adapter = HTTPAdapter(
            pool_connections=20,
            pool_maxsize=20,
            max_retries=Retry(
                total=3,
                backoff_factor=0.3,
                status_forcelist=[500, 502, 503, 504]
            )
        )
        self.session.mount('https://', adapter)
        self.session.mount('http://', adapter)

        if self.token:
            self.session.headers.update({
                'Authorization': f'token {self.token}',
                'Accept': 'application/vnd.github.v3+json'
            })
            logging.info("Initialized GitHub API client with token")
        else:
            logging.warning("No GitHub token provided. The GraphQL API requires authentication.")
            logging.warning("Set GITHUB_TOKEN environment variable or pass token as argument.")

    @staticmethod
    def _check_rate_limit(response: requests.Response):
        if response.status_code == 403 and response.headers.get('X-RateLimit-Remaining') == '0':
            logging.error(f"Rate limit exceeded. Resets at: {response.headers.get('X-RateLimit-Reset')}")
            raise RateLimitError("GitHub API rate limit exceeded")

    def get(self, url: str) -> requests.Response:
        """Make a single GET request to the GitHub API.

        Args:
            url: The API endpoint URL

        Returns:
            Response object
        """
        return self.session.get(url)

    def get_authenticated_user(self) -> Optional[Dict]:
        """Fetch the user the token belongs to.

        Returns:
            The user payload, or None if the token is missing or rejected
        """
        if not self.token:
            return None

        response = self.get(f"{GITHUB_API_URL}/user")
        if response.status_code == 401:
            logging.error("GitHub rejected the provided token")
            return None

        self._check_rate_limit(response)
        response.raise_for_status()
        user = response.json()
        logging.info(f"Authenticated as {user.get('login')}")
        return user

    def post_graphql(self, query: str, variables: Dict = None) -> Dict:
        """Make a GraphQL query to the GitHub API.

        Args:
            query: GraphQL query string
            variables: Optional query variables

        Returns:
            JSON response data

        Raises:
            RateLimitError: If the rate limit is exhausted
            GraphQLError: If the response contains errors
        """
        payload = {"query": query}
        if variables:
            payload["variables"] = variables

        response = self.session.post(GRAPHQL_URL, json=payload)
        self._check_rate_limit(response)
        response.raise_for_status()
        result = response.json()

        if "errors" in result:
            logging.error(f"GraphQL errors: {result['errors']}")
            raise GraphQLError(f"GraphQL query failed: {result['errors']}")

        return result.get("data") or {}

    def paginate_graphql(self, query: str, variables: Dict, connection_path: List[str],
                         should_continue: Optional[Callable[[List[Dict]], bool]] = None,
                         max_pages: int = None) -> List[Dict]:
        """Fetch all pages of a cursor-paginated GraphQL connection.

        The query must accept an ``$after`` cursor variable and select
        ``pageInfo { hasNextPage endCursor }`` and ``nodes`` on the connection.

        Args:
            query: GraphQL query string
            variables: Query variables (``after`` is managed here)
            connection_path: Keys leading from ``data`` to the connection
            should_continue: Optional callback that takes a page of nodes and
                             returns False to stop pagination early
            max_pages: Optional upper bound on the number of pages

        Returns:
            List of all nodes from all pages
        """
        results = []
        page = 0
        variables = dict(variables or {})
        variables['after'] = None

        while True:
            page += 1
            logging.debug(f"Fetching GraphQL page {page} of {'.'.join(connection_path)}")
            data = self.post_graphql(query, dict(variables))

            connection = data
            for key in connection_path:
                connection = (connection or {}).get(key)
            if not connection:
                break

            nodes = connection.get('nodes') or []
            results.extend(nodes)

            if should_continue and not should_continue(nodes):
                logging.debug(f"Early termination triggered at page {page}")
                break

            page_info = connection.get('pageInfo') or {}
            if not page_info.get('hasNextPage'):
                break

            if max_pages is not None and page >= max_pages:
                logging.debug(f"Stopping after {page} pages (max_pages reached)")
                break

            variables['after'] = page_info.get('endCursor')

        logging.debug(f"Fetched {len(results)} total nodes from {'.'.join(connection_path)}")
        return results
