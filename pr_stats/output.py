"""Console output of pull request statistics."""

from typing import Dict, List, Optional

from .models import ActivityPeriod, PersonStats, RepoStats, ReviewerStats, Snapshot, StatsFilters


# ANSI color codes
GREEN = '\033[92m'
YELLOW = '\033[93m'
RED = '\033[91m'
CYAN = '\033[96m'
BOLD = '\033[1m'
RESET = '\033[0m'

SORT_OPTIONS = ('total_prs', 'name')


class OutputFormatter:
    """Formats and prints stats tables."""

    def __init__(self, sort_by: str = 'total_prs', use_color: bool = True):
        """Initialize the output formatter.

        Args:
            sort_by: 'total_prs' (busiest first) or 'name'
            use_color: Whether to emit ANSI color codes
        """
        self.sort_by = sort_by if sort_by in SORT_OPTIONS else 'total_prs'
        self.use_color = use_color

    def _color(self, color: str, text: str) -> str:
        if not self.use_color:
            return text
        return f"{color}{text}{RESET}"

    def _header(self, title: str):
        print("\n" + "="*80)
        print(self._color(BOLD, title))
        print("="*80)

    def print_summary(self, filtered_stats: Dict[str, list], snapshot: Optional[Snapshot],
                      activity: List[ActivityPeriod], filters: StatsFilters = None):
        """Print every section of the stats summary.

        Args:
            filtered_stats: Result of StatsStore.get_filtered_stats()
            snapshot: Current snapshot, or None before the first computation
            activity: Activity periods
            filters: Active filters, shown in the title
        """
        title = "PULL REQUEST STATS"
        if filters is not None:
            repos = ', '.join(filters.selected_repos) if filters.selected_repos else 'all repositories'
            title += f" ({filters.time_range}, {repos})"
        self._header(title)

        if snapshot is not None:
            self._print_snapshot(snapshot)

        self._print_repo_stats(filtered_stats.get('repos', []))
        self._print_person_stats(filtered_stats.get('people', []))
        self._print_reviewer_stats(filtered_stats.get('reviewers', []))
        self._print_activity(activity)

    def _print_snapshot(self, snapshot: Snapshot):
        print(f"\nReady to ship: {self._color(GREEN, str(snapshot.ready_to_ship))}   "
              f"Open: {snapshot.open}   "
              f"Needs review: {self._color(YELLOW, str(snapshot.needs_review))}")

        if snapshot.person_stats:
            print(f"\n{'Person':<25} {'Open':>6} {'Draft':>6} {'Assigned':>9}")
            print('-' * 49)
            for person in snapshot.person_stats:
                assigned = str(person.assigned_for_review)
                if person.assigned_for_review > 0:
                    assigned = self._color(YELLOW, f"{assigned:>9}")
                else:
                    assigned = f"{assigned:>9}"
                print(f"{person.name:<25} {person.open:>6} {person.draft:>6} {assigned}")

    def _sorted(self, items: list, total) -> list:
        if self.sort_by == 'name':
            return sorted(items, key=lambda x: x.name.lower() if hasattr(x, 'name') else x.key.lower())
        return sorted(items, key=total, reverse=True)

    def _print_repo_stats(self, repos: List[RepoStats]):
        print(f"\n{self._color(CYAN, 'Repositories')}")
        if not repos:
            print("  No pull requests in the selected time range.")
            return

        print(f"{'Repository':<35} {'Open':>6} {'Draft':>6} {'Review':>7} {'Approved':>9} {'Closed':>7} {'Merged':>7} {'Total':>6}")
        print('-' * 90)
        for repo in self._sorted(repos, lambda r: r.total_prs):
            print(f"{repo.key:<35} {repo.open:>6} {repo.draft:>6} {repo.in_review:>7} "
                  f"{repo.approved:>9} {repo.closed:>7} {repo.merged:>7} {repo.total_prs:>6}")

    def _print_person_stats(self, people: List[PersonStats]):
        print(f"\n{self._color(CYAN, 'Authors')}")
        if not people:
            print("  No authors in the selected time range.")
            return

        print(f"{'Author':<25} {'Open':>6} {'Draft':>6} {'Closed':>7} {'Merged':>7} {'Total':>6}")
        print('-' * 62)
        for person in self._sorted(people, lambda p: p.total_prs):
            print(f"{person.name:<25} {person.open:>6} {person.draft:>6} {person.closed:>7} "
                  f"{person.merged:>7} {person.total_prs:>6}")

    def _print_reviewer_stats(self, reviewers: List[ReviewerStats]):
        print(f"\n{self._color(CYAN, 'Reviewers')}")
        if not reviewers:
            print("  No review activity in the selected time range.")
            return

        print(f"{'Reviewer':<25} {'Pending':>8} {'Approved':>9} {'Changes':>8}")
        print('-' * 53)
        for reviewer in self._sorted(reviewers, lambda r: r.approved + r.changes_requested + r.pending_reviews):
            pending = f"{reviewer.pending_reviews:>8}"
            if reviewer.pending_reviews >= 5:
                pending = self._color(RED, pending)
            print(f"{reviewer.name:<25} {pending} {reviewer.approved:>9} {reviewer.changes_requested:>8}")

    def _print_activity(self, activity: List[ActivityPeriod]):
        if not activity:
            return

        print(f"\n{self._color(CYAN, 'Recent activity (merged / reviewed)')}")
        people = sorted({name for period in activity for name in list(period.merged) + list(period.reviewed)})
        if not people:
            print("  No merges or reviews in the tracked windows.")
            return

        header = f"{'Person':<25}" + ''.join(f" {f'{period.days}d':>10}" for period in activity)
        print(header)
        print('-' * len(header))
        for name in people:
            row = f"{name:<25}"
            for period in activity:
                merged = period.merged.get(name)
                reviewed = period.reviewed.get(name)
                cell = f"{merged.count if merged else 0}/{reviewed.count if reviewed else 0}"
                row += f" {cell:>10}"
            print(row)
