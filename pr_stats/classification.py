"""Status classification rules for pull requests.

Repository rollups are review-aware: an open PR is further split into
approved, in review, or plain open. Author rollups only distinguish
merged, closed, draft and open, so approval state never moves a PR out
of its author's "open" column.
"""

from .models import PullRequestRecord


MERGED = 'merged'
CLOSED = 'closed'
DRAFT = 'draft'
APPROVED = 'approved'
IN_REVIEW = 'in_review'
OPEN = 'open'

# Highest priority first
REPO_STATUSES = (MERGED, CLOSED, DRAFT, APPROVED, IN_REVIEW, OPEN)
AUTHOR_STATUSES = (MERGED, CLOSED, DRAFT, OPEN)


def _lifecycle_status(record: PullRequestRecord):
    if record.merged_at is not None:
        return MERGED
    if record.state == 'closed':
        return CLOSED
    if record.draft:
        return DRAFT
    return None


def classify_repo_status(record: PullRequestRecord) -> str:
    """Classify a PR into exactly one repository-level bucket.

    Args:
        record: The pull request to classify

    Returns:
        One of REPO_STATUSES
    """
    status = _lifecycle_status(record)
    if status is not None:
        return status
    if record.approved_by:
        return APPROVED
    if record.requested_reviewers:
        return IN_REVIEW
    return OPEN


def classify_author_status(record: PullRequestRecord) -> str:
    """Classify a PR for its author's rollup, ignoring review state.

    Args:
        record: The pull request to classify

    Returns:
        One of AUTHOR_STATUSES
    """
    return _lifecycle_status(record) or OPEN
