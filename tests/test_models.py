"""
Unit tests for the pr_stats dataclasses
"""

import pytest
from datetime import timedelta

from pr_stats.models import (
    PersonStats,
    RepoStats,
    ReviewerStats,
    Rollups,
    Snapshot,
    StatsFilters,
)


class TestPullRequestRecord:
    """Test cases for PullRequestRecord."""

    def test_keys(self, make_pr):
        """Test the record and repository keys."""
        record = make_pr(42, owner='acme', repo='widgets')
        assert record.key == 'acme/widgets#42'
        assert record.repo_key == 'acme/widgets'

    def test_is_open(self, make_pr, now):
        """Test that merged and closed PRs are not open."""
        assert make_pr().is_open is True
        assert make_pr(draft=True).is_open is True
        assert make_pr(state='closed').is_open is False
        assert make_pr(merged_at=now).is_open is False

    def test_records_are_immutable(self, make_pr):
        """Test that records cannot be modified."""
        record = make_pr()
        with pytest.raises(Exception):
            record.state = 'closed'


class TestStatsDefaults:
    """Test cases for rollup default values."""

    def test_repo_stats_initialization(self):
        """Test that RepoStats starts with zero counts."""
        stats = RepoStats(owner='acme', repo='widgets')
        assert stats.key == 'acme/widgets'
        assert (stats.open, stats.draft, stats.in_review, stats.approved,
                stats.closed, stats.merged, stats.total_prs) == (0, 0, 0, 0, 0, 0, 0)

    def test_person_stats_initialization(self):
        """Test that PersonStats starts empty."""
        stats = PersonStats(name='carol')
        assert stats.avatar_url is None
        assert stats.total_prs == 0

    def test_reviewer_stats_keeps_dismissed_counter(self):
        """Test that the reserved dismissed counter exists and starts at zero."""
        stats = ReviewerStats(name='alice')
        assert stats.dismissed == 0

    def test_filters_default_to_month_without_repos(self):
        """Test the default filters."""
        filters = StatsFilters()
        assert filters.time_range == 'month'
        assert filters.selected_repos == []

    def test_filters_do_not_share_repo_lists(self):
        """Test that each StatsFilters gets its own list."""
        first = StatsFilters()
        first.selected_repos.append('acme/widgets')
        assert StatsFilters().selected_repos == []

    def test_empty_rollups_and_snapshot(self):
        """Test that derived containers start empty."""
        rollups = Rollups()
        assert rollups.repo_stats == {} and rollups.person_stats == {} and rollups.reviewer_stats == {}
        snapshot = Snapshot()
        assert snapshot.person_stats == [] and snapshot.reviewed_by_person == {}


if __name__ == '__main__':
    pytest.main([__file__, '-v'])
