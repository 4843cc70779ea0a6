"""Rollup aggregation of pull requests by repository, author and reviewer."""

import calendar
import logging
from datetime import datetime, timedelta
from typing import Dict, Iterable, List, Mapping, Optional, Union

from .classification import classify_author_status, classify_repo_status
from .models import (
    TIME_RANGES,
    PersonStats,
    PullRequestRecord,
    RepoStats,
    ReviewerStats,
    Rollups,
    StatsFilters,
)
from .records import ensure_utc


Records = Union[Mapping[str, PullRequestRecord], Iterable[PullRequestRecord]]


def subtract_months(date: datetime, months: int) -> datetime:
    """Step back a number of calendar months.

    A day that does not exist in the target month rolls over into the
    following month, so March 31 minus one month lands on March 2 or 3
    rather than being clamped to the end of February.
    """
    total = date.year * 12 + (date.month - 1) - months
    year, month = divmod(total, 12)
    month += 1
    days_in_month = calendar.monthrange(year, month)[1]
    if date.day <= days_in_month:
        return date.replace(year=year, month=month)
    overflow = date.day - days_in_month
    return date.replace(year=year, month=month, day=days_in_month) + timedelta(days=overflow)


def get_filter_date(now: datetime, time_range: str) -> Optional[datetime]:
    """Compute the creation-time cutoff for a time range.

    Args:
        now: Reference time
        time_range: One of 'week', 'month', 'quarter', 'all'

    Returns:
        The cutoff, or None for 'all' (no lower bound)
    """
    now = ensure_utc(now)
    if time_range == 'week':
        return now - timedelta(days=7)
    if time_range == 'month':
        return subtract_months(now, 1)
    if time_range == 'quarter':
        return subtract_months(now, 3)
    if time_range == 'all':
        return None
    raise ValueError(f"Unknown time range '{time_range}', expected one of {', '.join(TIME_RANGES)}")


def iter_records(records: Records) -> List[PullRequestRecord]:
    if isinstance(records, Mapping):
        return list(records.values())
    return list(records)


def is_well_formed(record: PullRequestRecord) -> bool:
    return (
        record is not None
        and record.created_at is not None
        and record.author is not None
        and bool(record.author.login)
    )


def ordered_records(records: Records) -> List[PullRequestRecord]:
    """Drop malformed records and sort the rest by (created_at, key).

    Processing in a fixed order makes every "last seen wins" choice, such
    as avatar references, independent of how the input was ordered.
    """
    valid = []
    for record in iter_records(records):
        if not is_well_formed(record):
            logging.warning(f"Skipping malformed record: {getattr(record, 'key', record)!r}")
            continue
        valid.append(record)
    return sorted(valid, key=lambda r: (ensure_utc(r.created_at), r.key))


def _get_reviewer(reviewer_stats: Dict[str, ReviewerStats], login: str, avatar_url: Optional[str]) -> ReviewerStats:
    stats = reviewer_stats.get(login)
    if stats is None:
        stats = ReviewerStats(name=login)
        reviewer_stats[login] = stats
    if avatar_url:
        stats.avatar_url = avatar_url
    return stats


def compute_rollups(records: Records, filters: StatsFilters, now: datetime) -> Rollups:
    """Aggregate PRs created within the active time range.

    Every included PR lands in exactly one repository bucket and one author
    bucket. Reviewer counters are independent: each approval, change request
    and pending request increments its own counter. ``filters.selected_repos``
    is not applied here; see filter_repo_stats.

    Args:
        records: PRs keyed by 'owner/repo#number', or any iterable of records
        filters: Active filters (only time_range is used)
        now: Reference time for the time window

    Returns:
        Freshly built rollup tables
    """
    cutoff = get_filter_date(now, filters.time_range)

    repo_stats: Dict[str, RepoStats] = {}
    person_stats: Dict[str, PersonStats] = {}
    reviewer_stats: Dict[str, ReviewerStats] = {}

    for record in ordered_records(records):
        if cutoff is not None and ensure_utc(record.created_at) < cutoff:
            continue

        repo = repo_stats.get(record.repo_key)
        if repo is None:
            repo = RepoStats(owner=record.owner, repo=record.repo)
            repo_stats[record.repo_key] = repo
        repo.total_prs += 1
        status = classify_repo_status(record)
        setattr(repo, status, getattr(repo, status) + 1)

        author = record.author.login
        person = person_stats.get(author)
        if person is None:
            person = PersonStats(name=author)
            person_stats[author] = person
        if record.author.avatar_url:
            person.avatar_url = record.author.avatar_url
        person.total_prs += 1
        status = classify_author_status(record)
        setattr(person, status, getattr(person, status) + 1)

        for review in record.approved_by:
            _get_reviewer(reviewer_stats, review.user.login, review.user.avatar_url).approved += 1

        for review in record.changes_requested_by:
            _get_reviewer(reviewer_stats, review.user.login, review.user.avatar_url).changes_requested += 1

        for user in record.requested_reviewers:
            _get_reviewer(reviewer_stats, user.login, user.avatar_url).pending_reviews += 1

    logging.debug(
        f"Computed rollups for {len(repo_stats)} repositories, {len(person_stats)} authors, "
        f"{len(reviewer_stats)} reviewers (time range: {filters.time_range})"
    )
    return Rollups(repo_stats=repo_stats, person_stats=person_stats, reviewer_stats=reviewer_stats)


def filter_repo_stats(repo_stats: Mapping[str, RepoStats], selected_repos: Iterable[str]) -> List[RepoStats]:
    """Restrict repository rollups to the selected 'owner/repo' keys.

    An empty selection means no filtering.
    """
    selected = set(selected_repos)
    repos = list(repo_stats.values())
    if selected:
        repos = [r for r in repos if r.key in selected]
    return repos
