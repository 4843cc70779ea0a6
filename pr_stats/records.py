"""Conversion of GitHub GraphQL pull request nodes into records."""

import logging
from datetime import datetime, timezone
from typing import Dict, Iterable, Optional

from .models import PullRequestRecord, Review, User


class MalformedRecordError(ValueError):
    """Raised when a pull request node lacks a required field."""


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


def ensure_utc(value: datetime) -> datetime:
    """Treat naive datetimes as UTC so they compare with aware ones."""
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


def parse_timestamp(value: Optional[str]) -> Optional[datetime]:
    """Parse a GitHub ISO 8601 timestamp.

    Args:
        value: Timestamp such as '2024-05-01T12:00:00Z', or None

    Returns:
        Timezone-aware datetime, or None if value is empty
    """
    if not value:
        return None
    if not isinstance(value, str):
        raise ValueError(f"expected a timestamp string, got {type(value).__name__}")
    try:
        parsed = datetime.strptime(value, '%Y-%m-%dT%H:%M:%SZ')
    except ValueError:
        parsed = datetime.fromisoformat(value.replace('Z', '+00:00'))
    return ensure_utc(parsed)


def _parse_user(node: Optional[Dict]) -> Optional[User]:
    if not isinstance(node, dict) or not node.get('login'):
        return None
    return User(login=node['login'], avatar_url=node.get('avatarUrl') or None)


def _parse_reviews(pr_node: Dict):
    approved, changes_requested = [], []
    reviews = (pr_node.get('latestOpinionatedReviews') or {}).get('nodes') or []
    for review in reviews:
        if not isinstance(review, dict):
            continue
        user = _parse_user(review.get('author'))
        if user is None:
            continue
        entry = Review(user=user, submitted_at=parse_timestamp(review.get('submittedAt')))
        if review.get('state') == 'APPROVED':
            approved.append(entry)
        elif review.get('state') == 'CHANGES_REQUESTED':
            changes_requested.append(entry)
    return tuple(approved), tuple(changes_requested)


def _parse_requested_reviewers(pr_node: Dict):
    requested = []
    requests_ = (pr_node.get('reviewRequests') or {}).get('nodes') or []
    for request in requests_:
        # Team requests carry no login and are not counted
        user = _parse_user(request.get('requestedReviewer') if isinstance(request, dict) else None)
        if user is not None:
            requested.append(user)
    return tuple(requested)


def parse_pull_request(owner: str, repo: str, pr_node: Dict) -> PullRequestRecord:
    """Build a record from a GraphQL ``PullRequest`` node.

    Args:
        owner: Repository owner
        repo: Repository name
        pr_node: Node as returned by the pull request query

    Returns:
        The parsed record

    Raises:
        MalformedRecordError: If number, author or creation time is missing or
            a field has the wrong type
    """
    number = pr_node.get('number')
    if number is None:
        raise MalformedRecordError(f"PR in {owner}/{repo} has no number")
    try:
        number = int(number)
    except (TypeError, ValueError) as e:
        raise MalformedRecordError(f"PR in {owner}/{repo} has an invalid number: {number!r}") from e

    author = _parse_user(pr_node.get('author'))
    if author is None:
        raise MalformedRecordError(f"PR {owner}/{repo}#{number} has no author")

    try:
        created_at = parse_timestamp(pr_node.get('createdAt'))
        merged_at = parse_timestamp(pr_node.get('mergedAt'))
        updated_at = parse_timestamp(pr_node.get('updatedAt'))
        approved_by, changes_requested_by = _parse_reviews(pr_node)
    except ValueError as e:
        raise MalformedRecordError(f"PR {owner}/{repo}#{number} has a bad timestamp: {e}") from e
    if created_at is None:
        raise MalformedRecordError(f"PR {owner}/{repo}#{number} has no creation time")

    raw_state = pr_node.get('state', 'OPEN')
    if not isinstance(raw_state, str):
        raise MalformedRecordError(f"PR {owner}/{repo}#{number} has an invalid state: {raw_state!r}")
    # GraphQL reports MERGED as its own state; merged PRs are closed
    state = 'open' if raw_state.upper() == 'OPEN' else 'closed'

    return PullRequestRecord(
        owner=owner,
        repo=repo,
        number=number,
        author=author,
        created_at=created_at,
        state=state,
        draft=bool(pr_node.get('isDraft', False)),
        merged_at=merged_at,
        updated_at=updated_at,
        title=pr_node.get('title') or '',
        approved_by=approved_by,
        changes_requested_by=changes_requested_by,
        requested_reviewers=_parse_requested_reviewers(pr_node),
    )


def parse_pull_requests(owner: str, repo: str, pr_nodes: Iterable[Dict]) -> Dict[str, PullRequestRecord]:
    """Parse many nodes, skipping malformed ones.

    Returns:
        Dictionary mapping 'owner/repo#number' to records
    """
    records = {}
    skipped = 0
    for node in pr_nodes:
        if not node:
            continue
        if not isinstance(node, dict):
            logging.warning(f"Skipping malformed pull request in {owner}/{repo}: {node!r}")
            skipped += 1
            continue
        try:
            record = parse_pull_request(owner, repo, node)
        except MalformedRecordError as e:
            logging.warning(f"Skipping malformed pull request: {e}")
            skipped += 1
            continue
        records[record.key] = record

    if skipped:
        logging.info(f"Skipped {skipped} malformed pull request(s) in {owner}/{repo}")
    return records
