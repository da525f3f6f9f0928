"""Main entry point for synchronizing upstream trackers."""

import asyncio
import json
import logging
import sys

import aiohttp

from tracker_sync.adapters.cache import SingleFlightCache
from tracker_sync.adapters.config import AppConfig
from tracker_sync.adapters.sqlite_store import SqliteTrackerStore
from tracker_sync.adapters.tracker_html import parse_tracker_html
from tracker_sync.adapters.upstream import AiohttpUpstreamClient
from tracker_sync.application.services import TrackerSynchronizer
from tracker_sync.domain.errors import TrackerUpdateError
from tracker_sync.domain.ports import TrackerStore

# Configure logging
logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    datefmt="%Y-%m-%d %H:%M:%S",
    stream=sys.stderr,
)

logger = logging.getLogger(__name__)


def load_config() -> AppConfig:
    """Load configuration from the environment and the optional TOML file."""
    config = AppConfig()
    config.load_config_file()
    logging.getLogger().setLevel(config.logging_level)
    return config


def create_synchronizer(
    config: AppConfig, session: aiohttp.ClientSession, store: TrackerStore
) -> TrackerSynchronizer:
    """Wire a synchronizer from configuration.

    Args:
        config: Application configuration.
        session: Shared aiohttp session for upstream requests.
        store: Tracker store.

    Returns:
        A synchronizer whose deduplication window equals the update interval.
    """
    update_interval = config.tracker_update_interval
    return TrackerSynchronizer(
        store=store,
        upstream_client=AiohttpUpstreamClient(session, config.upstream_timeout_seconds),
        cache=SingleFlightCache(ttl_seconds=update_interval.total_seconds()),
        parser=parse_tracker_html,
        upstream_trackers=config.upstream_trackers,
        update_interval=update_interval,
    )


async def synchronize_urls(
    config: AppConfig, urls: list[str]
) -> dict[str, str | TrackerUpdateError]:
    """Synchronize several upstream trackers concurrently.

    Args:
        config: Application configuration.
        urls: Upstream tracker URLs.

    Returns:
        Mapping of each URL to its tracker ID, or to the error that prevented synchronization.
    """
    store = SqliteTrackerStore(config.database_path)
    try:
        async with aiohttp.ClientSession() as session:
            synchronizer = create_synchronizer(config, session, store)
            results = await asyncio.gather(
                *(synchronizer.synchronize(url) for url in urls), return_exceptions=True
            )
    finally:
        store.close()

    outcomes: dict[str, str | TrackerUpdateError] = {}
    for url, result in zip(urls, results):
        if isinstance(result, BaseException) and not isinstance(result, TrackerUpdateError):
            raise result
        outcomes[url] = result
    return outcomes


def report_outcomes(outcomes: dict[str, str | TrackerUpdateError], as_json: bool = False) -> int:
    """Print synchronization outcomes.

    Args:
        outcomes: Mapping of URL to tracker ID or error.
        as_json: Print one JSON object instead of one line per URL.

    Returns:
        Process exit code: 0 if every tracker was synchronized, 1 otherwise.
    """
    failed = sum(1 for outcome in outcomes.values() if isinstance(outcome, TrackerUpdateError))

    if as_json:
        report = {
            url: (
                {"error": outcome.kind.value, "message": str(outcome)}
                if isinstance(outcome, TrackerUpdateError)
                else {"tracker_id": outcome}
            )
            for url, outcome in outcomes.items()
        }
        print(json.dumps(report, indent=2))
    else:
        for url, outcome in outcomes.items():
            if isinstance(outcome, TrackerUpdateError):
                print(f"{url}: error ({outcome.kind.value}): {outcome}", file=sys.stderr)
            else:
                print(f"{url} -> {outcome}")

    return 1 if failed else 0


async def main(urls: list[str]) -> int:
    """Synchronize the given trackers and report the outcome."""
    config = load_config()
    logger.info(f"Synchronizing {len(urls)} tracker(s) into {config.database_path}")
    return report_outcomes(await synchronize_urls(config, urls))


if __name__ == "__main__":
    sys.exit(asyncio.run(main(sys.argv[1:])))
