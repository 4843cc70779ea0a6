"""
Configuration for the pull request stats sync.

Settings are read from environment variables, optionally loaded from a
.env file. Invalid values are logged and replaced by their defaults.
"""

import logging
import os
from dataclasses import dataclass, field
from typing import List, Mapping, Optional
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from .models import TIME_RANGES


DEFAULT_SYNC_INTERVAL_MINUTES = 5
DEFAULT_BUSINESS_TIMEZONE = 'America/Chicago'
DEFAULT_CACHE_FILE = '.pr_stats_cache.json'
DEFAULT_MAX_PAGES = 10


@dataclass
class AppConfig:
    """Runtime settings of the stats sync."""
    github_token: Optional[str] = None
    repositories: List[str] = field(default_factory=list)
    time_range: str = 'month'
    sync_interval_minutes: int = DEFAULT_SYNC_INTERVAL_MINUTES
    auto_sync: bool = True
    use_cache: bool = True
    cache_file: str = DEFAULT_CACHE_FILE
    business_timezone: str = DEFAULT_BUSINESS_TIMEZONE
    max_pages: int = DEFAULT_MAX_PAGES
    run_once: bool = False
    log_level: str = 'INFO'


def _parse_bool(env: Mapping[str, str], name: str, default: bool) -> bool:
    value = env.get(name)
    if value is None:
        return default
    return value.strip().lower() in ('true', '1', 'yes')


def _parse_positive_int(env: Mapping[str, str], name: str, default: int) -> int:
    value = env.get(name)
    if not value:
        return default
    try:
        parsed = int(value)
    except ValueError:
        logging.warning(f"Invalid {name} value '{value}', using default: {default}")
        return default
    if parsed <= 0:
        logging.warning(f"{name} must be positive, got {parsed}; using default: {default}")
        return default
    return parsed


def _parse_list(value: Optional[str]) -> List[str]:
    if not value:
        return []
    return [item.strip() for item in value.split(',') if item.strip()]


def _parse_timezone(env: Mapping[str, str], name: str, default: str) -> str:
    value = (env.get(name) or '').strip()
    if not value:
        return default
    try:
        ZoneInfo(value)
    except (ZoneInfoNotFoundError, ValueError):
        logging.warning(f"Unknown time zone {name}='{value}', using default: {default}")
        return default
    return value


def load_config(env: Mapping[str, str] = None) -> AppConfig:
    """Build the configuration from environment variables.

    Args:
        env: Variables to read (defaults to os.environ)

    Returns:
        The parsed configuration
    """
    if env is None:
        env = os.environ

    repositories = []
    for repo in _parse_list(env.get('GITHUB_REPOS')):
        owner, _, name = repo.partition('/')
        if not owner or not name or '/' in name:
            logging.warning(f"Ignoring invalid repository '{repo}' (expected owner/repo)")
            continue
        repositories.append(repo)

    time_range = env.get('STATS_TIME_RANGE', 'month').strip().lower()
    if time_range not in TIME_RANGES:
        logging.warning(f"Invalid STATS_TIME_RANGE value '{time_range}', using default: month")
        logging.warning(f"Valid options: {', '.join(TIME_RANGES)}")
        time_range = 'month'

    return AppConfig(
        github_token=env.get('GITHUB_TOKEN') or None,
        repositories=repositories,
        time_range=time_range,
        sync_interval_minutes=_parse_positive_int(env, 'SYNC_INTERVAL_MINUTES', DEFAULT_SYNC_INTERVAL_MINUTES),
        auto_sync=_parse_bool(env, 'AUTO_SYNC', True),
        use_cache=_parse_bool(env, 'USE_CACHE', True),
        cache_file=env.get('CACHE_FILE') or DEFAULT_CACHE_FILE,
        business_timezone=_parse_timezone(env, 'BUSINESS_TIMEZONE', DEFAULT_BUSINESS_TIMEZONE),
        max_pages=_parse_positive_int(env, 'MAX_PAGES', DEFAULT_MAX_PAGES),
        run_once=_parse_bool(env, 'RUN_ONCE', False),
        log_level=(env.get('LOG_LEVEL') or 'INFO').upper(),
    )
