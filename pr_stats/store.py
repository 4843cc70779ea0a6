"""Application state for the stats view."""

import logging
from dataclasses import replace
from datetime import datetime
from threading import Lock
from typing import Callable, Dict, Iterable, List, Mapping, Optional, Sequence

from .aggregator import compute_rollups, filter_repo_stats
from .models import (
    TIME_RANGES,
    ActivityPeriod,
    PullRequestRecord,
    Rollups,
    Snapshot,
    StatsFilters,
)
from .records import utc_now
from .snapshot import DEFAULT_ACTIVITY_WINDOWS, build_activity, build_snapshot


class StatsStore:
    """Owns the tracked records, the filters and everything derived from them.

    Derived state (rollups, snapshot, activity) is computed outside the lock
    and swapped in as a whole, so readers never see a half-built table and a
    failed computation leaves the previous state in place.
    """

    def __init__(self, filters: StatsFilters = None,
                 activity_windows: Sequence[int] = DEFAULT_ACTIVITY_WINDOWS,
                 clock: Callable[[], datetime] = utc_now):
        self._lock = Lock()
        self._recompute_lock = Lock()
        self._filters = filters or StatsFilters()
        self._activity_windows = tuple(activity_windows)
        self._clock = clock

        self._records: Dict[str, PullRequestRecord] = {}
        self._rollups = Rollups()
        self._snapshot: Optional[Snapshot] = None
        self._activity: List[ActivityPeriod] = []
        self.last_computed_at: Optional[datetime] = None

    @property
    def filters(self) -> StatsFilters:
        with self._lock:
            return replace(self._filters, selected_repos=list(self._filters.selected_repos))

    @property
    def records(self) -> Dict[str, PullRequestRecord]:
        with self._lock:
            return dict(self._records)

    @property
    def rollups(self) -> Rollups:
        with self._lock:
            return self._rollups

    @property
    def snapshot(self) -> Optional[Snapshot]:
        with self._lock:
            return self._snapshot

    @property
    def activity(self) -> List[ActivityPeriod]:
        with self._lock:
            return list(self._activity)

    def recompute(self, records: Mapping[str, PullRequestRecord] = None, now: datetime = None):
        """Rebuild all derived state, optionally from a new record set.

        Args:
            records: New records keyed by 'owner/repo#number'; None keeps the current ones
            now: Reference time (defaults to the store clock)
        """
        # Serializes recomputations so a slow one cannot overwrite a newer one
        with self._recompute_lock:
            now = now or self._clock()
            with self._lock:
                filters = self._filters
                if records is None:
                    records = self._records

            records = dict(records)
            rollups = compute_rollups(records, filters, now)
            snapshot = build_snapshot(records)
            activity = build_activity(records, self._activity_windows, now)

            with self._lock:
                self._records = records
                self._rollups = rollups
                self._snapshot = snapshot
                self._activity = activity
                self.last_computed_at = now

        logging.info(
            f"Recomputed stats from {len(records)} pull requests: "
            f"{len(rollups.repo_stats)} repositories, {len(rollups.person_stats)} authors, "
            f"{len(rollups.reviewer_stats)} reviewers"
        )

    def _update_filters(self, **changes):
        """Swap in new filters; returns (previous filters, whether records are loaded)."""
        with self._lock:
            previous = self._filters
            self._filters = replace(previous, **changes)
            return previous, bool(self._records)

    def set_time_range(self, time_range: str):
        """Change the time range and recompute the rollups.

        Raises:
            ValueError: If time_range is not one of TIME_RANGES
        """
        if time_range not in TIME_RANGES:
            raise ValueError(f"Invalid time range '{time_range}', expected one of {', '.join(TIME_RANGES)}")

        previous, has_records = self._update_filters(time_range=time_range)
        logging.info(f"Time range set to {time_range}")
        if previous.time_range != time_range and has_records:
            self.recompute()

    def set_selected_repos(self, repos: Iterable[str]):
        """Restrict the repository list to the given 'owner/repo' keys."""
        repos = list(repos)
        self._update_filters(selected_repos=repos)
        logging.info(f"Selected repositories: {', '.join(repos) if repos else 'all'}")

    def clear_filters(self):
        """Reset filters to their defaults (month, all repositories)."""
        defaults = StatsFilters()
        previous, has_records = self._update_filters(
            time_range=defaults.time_range, selected_repos=defaults.selected_repos
        )
        logging.info("Filters cleared")
        if previous.time_range != defaults.time_range and has_records:
            self.recompute()

    def get_filtered_stats(self) -> Dict[str, list]:
        """Read the rollups with the repository selection applied.

        Returns:
            Dictionary with 'repos', 'people' and 'reviewers' lists. Only the
            repository list honors the selection.
        """
        with self._lock:
            rollups = self._rollups
            selected = list(self._filters.selected_repos)

        return {
            'repos': filter_repo_stats(rollups.repo_stats, selected),
            'people': list(rollups.person_stats.values()),
            'reviewers': list(rollups.reviewer_stats.values()),
        }
