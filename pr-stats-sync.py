#!/usr/bin/env python3
"""
Pull Request Stats Sync
Mirrors pull requests of the configured repositories and keeps
per-repository, per-author and per-reviewer statistics up to date.
"""

import os
import sys
import time
import logging
from dotenv import load_dotenv

from pr_stats.api_client import GitHubAPIClient
from pr_stats.cache import CacheManager
from pr_stats.config import load_config
from pr_stats.data_source import PullRequestFetcher
from pr_stats.models import StatsFilters
from pr_stats.output import OutputFormatter
from pr_stats.scheduler import SyncScheduler
from pr_stats.store import StatsStore

# Configure logging (can be overridden by LOG_LEVEL environment variable)
log_level = os.environ.get('LOG_LEVEL', 'INFO').upper()
logging.basicConfig(
    level=getattr(logging, log_level, logging.INFO),
    format='%(asctime)s %(levelname)s: %(message)s',
    datefmt='%m/%d/%Y %I:%M:%S %p'
)


def main():
    """Main entry point for the script."""
    # Load environment variables from .env file if it exists
    load_dotenv()
    config = load_config()
    logging.getLogger().setLevel(getattr(logging, config.log_level, logging.INFO))

    print("Pull Request Stats Sync")
    print("="*80)

    if not config.repositories:
        logging.error("At least one repository is required (set GITHUB_REPOS=owner/repo,...)")
        sys.exit(1)

    api_client = GitHubAPIClient(config.github_token)
    user = api_client.get_authenticated_user()
    if user is None:
        logging.error("Authentication failed, set GITHUB_TOKEN to a valid token")
        sys.exit(1)

    cache_manager = CacheManager(config.cache_file, config.use_cache)
    fetcher = PullRequestFetcher(api_client, config.repositories, cache_manager, max_pages=config.max_pages)
    store = StatsStore(StatsFilters(time_range=config.time_range))
    formatter = OutputFormatter()

    def show_summary():
        formatter.print_summary(store.get_filtered_stats(), store.snapshot, store.activity, store.filters)

    def apply_records(records):
        store.recompute(records)
        show_summary()

    # Show the previous run's data while the first sync is running
    cached = fetcher.load_cached()
    if cached:
        apply_records(cached)

    scheduler = SyncScheduler(
        fetcher.fetch_pull_requests,
        apply_records,
        sync_interval_minutes=config.sync_interval_minutes,
        business_timezone=config.business_timezone,
        last_sync_time=fetcher.cached_sync_time()
    )

    if config.run_once:
        scheduler.trigger('manual', background=False)
        sys.exit(0 if scheduler.last_error is None else 1)

    scheduler.on_authenticated()
    if config.auto_sync:
        scheduler.start()
    else:
        logging.info("Automatic sync disabled (AUTO_SYNC=false), only the initial sync will run")

    try:
        while True:
            time.sleep(1)
    except KeyboardInterrupt:
        logging.info("Stopping...")
    finally:
        scheduler.stop()
        scheduler.wait_idle(timeout=30)


if __name__ == "__main__":
    main()
