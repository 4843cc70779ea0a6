"""Data models for pull request statistics."""

from dataclasses import dataclass, field
from datetime import datetime
from typing import Dict, List, Optional, Tuple


TIME_RANGES = ('week', 'month', 'quarter', 'all')


@dataclass(frozen=True)
class User:
    """A GitHub account referenced by a pull request."""
    login: str
    avatar_url: Optional[str] = None


@dataclass(frozen=True)
class Review:
    """An opinionated review (approval or change request) left on a PR."""
    user: User
    submitted_at: Optional[datetime] = None


@dataclass(frozen=True)
class PullRequestRecord:
    """A pull request as mirrored from GitHub."""
    owner: str
    repo: str
    number: int
    author: User
    created_at: datetime
    state: str = 'open'  # 'open' or 'closed'
    draft: bool = False
    merged_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None
    title: str = ''
    approved_by: Tuple[Review, ...] = ()
    changes_requested_by: Tuple[Review, ...] = ()
    requested_reviewers: Tuple[User, ...] = ()

    @property
    def key(self) -> str:
        return f"{self.owner}/{self.repo}#{self.number}"

    @property
    def repo_key(self) -> str:
        return f"{self.owner}/{self.repo}"

    @property
    def is_open(self) -> bool:
        """True while the PR is neither merged nor closed."""
        return self.state == 'open' and self.merged_at is None


@dataclass
class RepoStats:
    """Mutually exclusive status counts for one repository."""
    owner: str
    repo: str
    open: int = 0
    draft: int = 0
    in_review: int = 0
    approved: int = 0
    closed: int = 0
    merged: int = 0
    total_prs: int = 0

    @property
    def key(self) -> str:
        return f"{self.owner}/{self.repo}"


@dataclass
class PersonStats:
    """Authored PR counts for one person."""
    name: str
    avatar_url: Optional[str] = None
    total_prs: int = 0
    open: int = 0
    merged: int = 0
    closed: int = 0
    draft: int = 0


@dataclass
class ReviewerStats:
    """Cumulative review counters for one reviewer.

    The counters are independent occurrence counts, not a classification
    of the reviewer's PRs. ``dismissed`` has no producer yet.
    """
    name: str
    avatar_url: Optional[str] = None
    pending_reviews: int = 0
    approved: int = 0
    changes_requested: int = 0
    dismissed: int = 0


@dataclass
class StatsFilters:
    """User-selected filters for the stats view."""
    time_range: str = 'month'
    selected_repos: List[str] = field(default_factory=list)


@dataclass
class Rollups:
    """The three rollup tables produced by one aggregation pass."""
    repo_stats: Dict[str, RepoStats] = field(default_factory=dict)
    person_stats: Dict[str, PersonStats] = field(default_factory=dict)
    reviewer_stats: Dict[str, ReviewerStats] = field(default_factory=dict)


@dataclass
class PersonSnapshot:
    name: str
    avatar_url: Optional[str] = None
    open: int = 0
    draft: int = 0
    assigned_for_review: int = 0


@dataclass
class ReviewerSnapshot:
    name: str
    avatar_url: Optional[str] = None
    review_count: int = 0


@dataclass
class Snapshot:
    """Point-in-time view of all tracked PRs, independent of filters."""
    ready_to_ship: int = 0
    open: int = 0
    needs_review: int = 0
    person_stats: List[PersonSnapshot] = field(default_factory=list)
    reviewed_by_person: Dict[str, ReviewerSnapshot] = field(default_factory=dict)


@dataclass
class ActivityEntry:
    count: int = 0
    avatar_url: Optional[str] = None


@dataclass
class ActivityPeriod:
    """Merge and review throughput per person over a trailing window."""
    days: int
    merged: Dict[str, ActivityEntry] = field(default_factory=dict)
    reviewed: Dict[str, ActivityEntry] = field(default_factory=dict)
