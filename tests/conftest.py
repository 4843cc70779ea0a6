"""
Shared fixtures for the pr_stats tests
"""

import pytest
from datetime import datetime, timedelta, timezone

from pr_stats.models import PullRequestRecord, Review, User


# Wednesday, 07:00 in Chicago (outside business hours)
NOW = datetime(2024, 5, 15, 12, 0, tzinfo=timezone.utc)


def _review(reviewer, submitted_at=None):
    if isinstance(reviewer, Review):
        return reviewer
    if isinstance(reviewer, User):
        return Review(user=reviewer, submitted_at=submitted_at)
    return Review(user=User(reviewer, f"https://avatars.example/{reviewer}"), submitted_at=submitted_at)


def _user(reviewer):
    if isinstance(reviewer, User):
        return reviewer
    return User(reviewer, f"https://avatars.example/{reviewer}")


def build_pr(number=1, owner='acme', repo='widgets', author='carol', created_at=None,
             state='open', draft=False, merged_at=None, updated_at=None,
             approved_by=(), changes_requested_by=(), requested_reviewers=(),
             avatar_url=None, reviewed_at=None):
    """Create a PullRequestRecord with sensible defaults."""
    return PullRequestRecord(
        owner=owner,
        repo=repo,
        number=number,
        author=User(author, avatar_url or f"https://avatars.example/{author}"),
        created_at=created_at or NOW - timedelta(days=1),
        state=state,
        draft=draft,
        merged_at=merged_at,
        updated_at=updated_at,
        title=f"PR {number}",
        approved_by=tuple(_review(r, reviewed_at) for r in approved_by),
        changes_requested_by=tuple(_review(r, reviewed_at) for r in changes_requested_by),
        requested_reviewers=tuple(_user(r) for r in requested_reviewers),
    )


@pytest.fixture
def now():
    return NOW


@pytest.fixture
def make_pr():
    """Factory fixture for pull request records."""
    return build_pr


@pytest.fixture
def sample_records():
    """A mixed set of records across two repositories keyed like the fetcher does."""
    records = [
        build_pr(1, author='carol', merged_at=NOW - timedelta(days=1), state='closed',
                 approved_by=['alice']),
        build_pr(2, author='dave', requested_reviewers=['alice']),
        build_pr(3, author='bob', draft=True),
        build_pr(4, author='carol', approved_by=['erin'], requested_reviewers=['alice']),
        build_pr(5, author='dave', state='closed', changes_requested_by=['erin']),
        build_pr(6, repo='gadgets', author='bob', created_at=NOW - timedelta(days=20)),
        build_pr(7, repo='gadgets', author='carol', created_at=NOW - timedelta(days=60),
                 merged_at=NOW - timedelta(days=50), state='closed'),
        build_pr(8, owner='other', repo='tools', author='frank', created_at=NOW - timedelta(days=400)),
    ]
    return {record.key: record for record in records}
