"""Current-state snapshot and trailing activity windows."""

import logging
from datetime import datetime, timedelta
from typing import Dict, List, Optional, Sequence

from .aggregator import Records, ordered_records
from .classification import (
    APPROVED,
    DRAFT,
    IN_REVIEW,
    OPEN,
    classify_author_status,
    classify_repo_status,
)
from .models import (
    ActivityEntry,
    ActivityPeriod,
    PersonSnapshot,
    ReviewerSnapshot,
    Snapshot,
)
from .records import ensure_utc


DEFAULT_ACTIVITY_WINDOWS = (1, 7, 30)


def _get_person(people: Dict[str, PersonSnapshot], login: str, avatar_url: Optional[str]) -> PersonSnapshot:
    person = people.get(login)
    if person is None:
        person = PersonSnapshot(name=login)
        people[login] = person
    if avatar_url:
        person.avatar_url = avatar_url
    return person


def build_snapshot(records: Records) -> Snapshot:
    """Summarize the live state of every tracked PR.

    No time range applies here. Authors are counted under the review-agnostic
    author rule, so an approved PR still shows as "open" for its author, while
    the headline totals use the repository rule.

    Args:
        records: PRs keyed by 'owner/repo#number', or any iterable of records

    Returns:
        The snapshot
    """
    snapshot = Snapshot()
    people: Dict[str, PersonSnapshot] = {}
    reviewers: Dict[str, ReviewerSnapshot] = {}

    for record in ordered_records(records):
        status = classify_repo_status(record)
        if status == APPROVED:
            snapshot.ready_to_ship += 1
        elif status == OPEN:
            snapshot.open += 1
        elif status == IN_REVIEW:
            snapshot.needs_review += 1

        author_status = classify_author_status(record)
        if author_status == OPEN:
            _get_person(people, record.author.login, record.author.avatar_url).open += 1
        elif author_status == DRAFT:
            _get_person(people, record.author.login, record.author.avatar_url).draft += 1

        if record.is_open:
            for user in record.requested_reviewers:
                _get_person(people, user.login, user.avatar_url).assigned_for_review += 1

        for review in record.approved_by:
            reviewer = reviewers.get(review.user.login)
            if reviewer is None:
                reviewer = ReviewerSnapshot(name=review.user.login)
                reviewers[review.user.login] = reviewer
            if review.user.avatar_url:
                reviewer.avatar_url = review.user.avatar_url
            reviewer.review_count += 1

    snapshot.person_stats = [people[name] for name in sorted(people)]
    snapshot.reviewed_by_person = {name: reviewers[name] for name in sorted(reviewers)}
    return snapshot


def _record_event(entries: Dict[str, ActivityEntry], latest: Dict[str, datetime],
                  login: str, avatar_url: Optional[str], timestamp: datetime):
    entry = entries.get(login)
    if entry is None:
        entry = ActivityEntry()
        entries[login] = entry
    entry.count += 1
    # Keep the avatar of the most recent event; ties keep the first seen
    if avatar_url and (login not in latest or timestamp > latest[login]):
        entry.avatar_url = avatar_url
        latest[login] = timestamp


def build_activity(records: Records, windows: Sequence[int] = DEFAULT_ACTIVITY_WINDOWS,
                   now: datetime = None) -> List[ActivityPeriod]:
    """Count merges and reviews per person over trailing windows.

    A merge counts for the PR author when ``merged_at`` falls within
    ``[now - days, now]``. A review counts for the reviewer when its
    submission time (or the PR's last update when GitHub did not report one)
    falls within the same window. Both approvals and change requests count.

    Args:
        records: PRs keyed by 'owner/repo#number', or any iterable of records
        windows: Window sizes in days
        now: End of every window

    Returns:
        One ActivityPeriod per window, in the order given
    """
    if now is None:
        raise ValueError("build_activity requires a reference time")
    now = ensure_utc(now)
    records = ordered_records(records)

    periods = []
    for days in windows:
        start = now - timedelta(days=days)
        period = ActivityPeriod(days=days)
        merged_latest: Dict[str, datetime] = {}
        reviewed_latest: Dict[str, datetime] = {}

        for record in records:
            if record.merged_at is not None:
                merged_at = ensure_utc(record.merged_at)
                if start <= merged_at <= now:
                    _record_event(period.merged, merged_latest, record.author.login,
                                  record.author.avatar_url, merged_at)

            for review in record.approved_by + record.changes_requested_by:
                reviewed_at = review.submitted_at or record.updated_at
                if reviewed_at is None:
                    continue
                reviewed_at = ensure_utc(reviewed_at)
                if start <= reviewed_at <= now:
                    _record_event(period.reviewed, reviewed_latest, review.user.login,
                                  review.user.avatar_url, reviewed_at)

        period.merged = {name: period.merged[name] for name in sorted(period.merged)}
        period.reviewed = {name: period.reviewed[name] for name in sorted(period.reviewed)}
        periods.append(period)

    logging.debug(f"Built activity for windows: {', '.join(f'{d}d' for d in windows)}")
    return periods
