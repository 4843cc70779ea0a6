"""Pull Request Stats - mirrors GitHub pull requests and aggregates review activity."""

from .models import (
    PullRequestRecord,
    User,
    Review,
    RepoStats,
    PersonStats,
    ReviewerStats,
    StatsFilters,
    Rollups,
    Snapshot,
    ActivityPeriod,
)
from .classification import classify_repo_status, classify_author_status
from .aggregator import compute_rollups, filter_repo_stats, get_filter_date
from .snapshot import build_snapshot, build_activity
from .api_client import GitHubAPIClient
from .cache import CacheManager
from .data_source import PullRequestFetcher, FetchError
from .store import StatsStore
from .scheduler import SyncScheduler, is_accelerated_window
from .output import OutputFormatter

__all__ = [
    'PullRequestRecord',
    'User',
    'Review',
    'RepoStats',
    'PersonStats',
    'ReviewerStats',
    'StatsFilters',
    'Rollups',
    'Snapshot',
    'ActivityPeriod',
    'classify_repo_status',
    'classify_author_status',
    'compute_rollups',
    'filter_repo_stats',
    'get_filter_date',
    'build_snapshot',
    'build_activity',
    'GitHubAPIClient',
    'CacheManager',
    'PullRequestFetcher',
    'FetchError',
    'StatsStore',
    'SyncScheduler',
    'is_accelerated_window',
    'OutputFormatter',
]
