"""Synchronization of local trackers with their upstream pages."""

import asyncio
import logging
from collections.abc import Callable, Sequence
from dataclasses import replace
from datetime import UTC, datetime, timedelta
from urllib.parse import urlsplit

from tracker_sync.application.services.room_port import fetch_last_port, is_port_check_due
from tracker_sync.application.services.tracker_reconciler import TrackerReconciler
from tracker_sync.domain.contracts.sync_cache import SyncCacheProtocol
from tracker_sync.domain.contracts.tracker_html_parser import TrackerHtmlParserProtocol
from tracker_sync.domain.errors import (
    InvalidUpstreamUrlError,
    StoreError,
    TrackerUpdateError,
    UpstreamNotAllowedError,
    UpstreamNotFoundError,
    UpstreamTransportError,
)
from tracker_sync.domain.models import HintRecord, SlotRecord, TrackedResource
from tracker_sync.domain.models.tracker_id import is_valid_tracker_id
from tracker_sync.domain.ports import TrackerStore, TrackerTransaction, UpstreamClient

logger = logging.getLogger(__name__)

HTTP_NOT_FOUND = 404


def _utc_now() -> datetime:
    return datetime.now(UTC)


def _normalize_prefix(prefix: str) -> str:
    parts = urlsplit(prefix.rstrip("/"))
    return f"{parts.scheme.lower()}://{parts.netloc.lower()}{parts.path}"


class TrackerSynchronizer:
    """Brings a local tracker up to date with its upstream page.

    Concurrent requests for the same upstream URL share one synchronization,
    and its outcome, success or failure, is reused until the update interval
    has passed. A tracker synchronized less than one update interval ago is
    not fetched again.
    """

    def __init__(
        self,
        store: TrackerStore,
        upstream_client: UpstreamClient,
        cache: SyncCacheProtocol,
        parser: TrackerHtmlParserProtocol,
        upstream_trackers: Sequence[str],
        update_interval: timedelta,
        reconciler: TrackerReconciler | None = None,
        clock: Callable[[], datetime] = _utc_now,
    ) -> None:
        """Initialize the synchronizer.

        Args:
            store: Tracker store.
            upstream_client: Client for the upstream tracker host.
            cache: Single-flight cache; its TTL should equal ``update_interval``.
            parser: Tracker page parser.
            upstream_trackers: Allowed upstream tracker URL prefixes.
            update_interval: Minimum time between two synchronizations of a tracker.
            reconciler: Reconciler applying parsed pages to the store.
            clock: Returns the current time (timezone-aware).
        """
        self._store = store
        self._upstream_client = upstream_client
        self._cache = cache
        self._parser = parser
        self._allowed_prefixes = frozenset(_normalize_prefix(p) for p in upstream_trackers)
        self._update_interval = update_interval
        self._reconciler = reconciler or TrackerReconciler()
        self._clock = clock

    def validate_url(self, raw_url: str) -> str:
        """Validate an upstream tracker URL and return its canonical form.

        Args:
            raw_url: URL supplied by the caller.

        Returns:
            The canonical URL, used as store and cache key.

        Raises:
            InvalidUpstreamUrlError: If the URL is malformed or its last path
                segment is not a valid tracker ID.
            UpstreamNotAllowedError: If the URL is not directly under an
                allowed prefix, or has a query or fragment.
        """
        try:
            parts = urlsplit(raw_url.strip())
            _ = parts.port  # raises on an invalid port
        except ValueError as e:
            raise InvalidUpstreamUrlError(f"unable to parse upstream URL {raw_url!r}: {e}") from e

        if parts.scheme.lower() not in ("http", "https") or not parts.hostname:
            raise InvalidUpstreamUrlError(f"upstream URL {raw_url!r} must be an http(s) URL")

        base_path, _, tracker_id = parts.path.rpartition("/")
        prefix = f"{parts.scheme.lower()}://{parts.netloc.lower()}{base_path}"
        if parts.query or parts.fragment or prefix not in self._allowed_prefixes:
            raise UpstreamNotAllowedError(raw_url)

        # Upstream accepts IDs with trailing junk; only canonical IDs get a tracker.
        if not is_valid_tracker_id(tracker_id):
            raise InvalidUpstreamUrlError(
                f"upstream URL {raw_url!r} does not end in a valid tracker ID"
            )

        return f"{prefix}/{tracker_id}"

    async def synchronize(self, raw_url: str) -> str:
        """Synchronize the tracker at ``raw_url``, creating it if needed.

        Args:
            raw_url: Upstream tracker URL.

        Returns:
            The opaque tracker ID.

        Raises:
            TrackerUpdateError: If the URL is rejected or synchronization failed.
        """
        url = self.validate_url(raw_url)
        return await self._cache.get_or_compute(url, lambda: self._synchronize(url))

    async def _synchronize(self, url: str) -> str:
        try:
            return await self._run_synchronization(url)
        except TrackerUpdateError as e:
            logger.error(f"Failed to synchronize tracker {url}: {e}")
            raise

    async def _run_synchronization(self, url: str) -> str:
        now = self._clock()

        # No transaction is open while the page is fetched.
        tracker = await self._load_tracker(url)
        if tracker is not None and self._is_fresh(tracker, now):
            logger.debug(f"Tracker {url} was synchronized recently, skipping")
            return tracker.tracker_id

        port_task = (
            asyncio.create_task(self._refresh_room_port(tracker, now))
            if tracker is not None and is_port_check_due(tracker, now)
            else None
        )

        try:
            slots, hints = await self._fetch_and_parse(url)
        except BaseException:
            if port_task is not None:
                port_task.cancel()
            raise

        port_result = await port_task if port_task is not None else None

        async with await self._store.begin() as tx:
            current = await tx.get_tracker_by_upstream_url(url)
            if current is not None and self._is_fresh(current, now):
                logger.debug(f"Tracker {url} was synchronized while fetching, skipping")
                await tx.rollback()
                return current.tracker_id

            tracker_id = await self._reconciler.reconcile(tx, now, url, slots, hints)
            if current is not None:
                await self._apply_room_port(tx, current, port_result)

            await tx.commit()

        return tracker_id

    async def _load_tracker(self, url: str) -> TrackedResource | None:
        async with await self._store.begin() as tx:
            tracker = await tx.get_tracker_by_upstream_url(url)
            await tx.rollback()
        return tracker

    def _is_fresh(self, tracker: TrackedResource, now: datetime) -> bool:
        return now < tracker.last_synchronized_at + self._update_interval

    async def _fetch_and_parse(self, url: str) -> tuple[list[SlotRecord], list[HintRecord]]:
        logger.info(f"Requesting upstream tracker {url}")
        response = await self._upstream_client.get(url)
        if response.status == HTTP_NOT_FOUND:
            raise UpstreamNotFoundError(url)
        if not response.ok:
            raise UpstreamTransportError(
                f"upstream tracker {url} returned status {response.status}",
                status_code=response.status,
            )

        return self._parser(response.body)

    async def _refresh_room_port(
        self, tracker: TrackedResource, now: datetime
    ) -> tuple[int, datetime] | None:
        # Never raises: a failed port lookup must not fail the synchronization.
        try:
            return await fetch_last_port(
                self._upstream_client, tracker.room_link, tracker.upstream_url, now
            )
        except (TrackerUpdateError, ValueError, OverflowError) as e:
            logger.warning(f"Failed to fetch room info for tracker {tracker.upstream_url}: {e}")
            return None

    @staticmethod
    async def _apply_room_port(
        tx: TrackerTransaction,
        tracker: TrackedResource,
        result: tuple[int, datetime] | None,
    ) -> None:
        if result is None:
            return

        last_port, next_check = result
        updated = await tx.update_tracker(
            replace(tracker, last_port=last_port, next_port_check_at=next_check),
            ["last_port", "next_port_check_at"],
        )
        if updated is None:
            raise StoreError(f"tracker {tracker.tracker_id} disappeared during synchronization")
        logger.debug(f"Tracker {tracker.upstream_url} last used port {last_port}")
