"""
Live directory fetcher.
Pages through the AcFun live list and publishes full snapshots.
"""

import asyncio
from typing import Dict, Mapping

from .acfun_api import AcFunAPI, ERROR_CURSOR, FIRST_CURSOR, LAST_CURSOR, LiveRoom
from .live_rooms import LiveRoomCache
from .logger import get_logger
from .retry import DEFAULT_POLICY, RetryPolicy, supervise


class DirectoryFetcher:
    """
    Builds the live room directory.

    Features:
    - Full scan of the paginated live list
    - Per-page retry without losing pages already read
    - Atomic publish into LiveRoomCache
    - Periodic refresh loop
    """

    def __init__(
        self,
        api: AcFunAPI,
        cache: LiveRoomCache,
        retry_policy: RetryPolicy = DEFAULT_POLICY
    ):
        """
        Initialize directory fetcher.

        Args:
            api: AcFun API client.
            cache: Cache the snapshots are published into.
            retry_policy: Policy for each page request.
        """
        self.api = api
        self.cache = cache
        self.retry_policy = retry_policy

        self._logger = get_logger('directory')
        self._running = False

    async def refresh(self) -> Mapping[int, LiveRoom]:
        """
        Scan the whole live list and publish it.

        Returns:
            The published snapshot.
        """
        rooms: Dict[int, LiveRoom] = {}
        cursor = FIRST_CURSOR
        pages = 0

        while cursor != LAST_CURSOR:
            page_cursor = cursor
            page, cursor = await supervise(
                lambda: self.api.fetch_live_page(page_cursor),
                "fetch live list page",
                self.retry_policy,
                context={'cursor': page_cursor}
            )
            rooms.update(page)
            pages += 1

            # An error page hands back cursor "", which is followed like any
            # other cursor but at the retry pace
            if cursor == ERROR_CURSOR:
                delay = self.retry_policy.delay_for(1)
                self._logger.warning(
                    f"Live list refused page, following empty cursor in {delay:.1f}s",
                    extra={'cursor': page_cursor}
                )
                await asyncio.sleep(delay)

        snapshot = self.cache.replace(rooms)
        self._logger.info(f"Directory refreshed: {len(snapshot)} live rooms over {pages} pages")
        return snapshot

    def stop(self) -> None:
        """Stop the refresh loop."""
        self._running = False
        self._logger.info("Directory refresh stopped")

    async def run(self, interval: int = 60) -> None:
        """
        Refresh the directory every `interval` seconds until stop().

        Args:
            interval: Seconds between scans.
        """
        self._running = True
        self._logger.info(f"Refreshing live directory every {interval}s")

        while self._running:
            try:
                await self.refresh()
            except Exception as e:
                self._logger.error(f"Directory refresh failed, keeping previous snapshot: {e}")

            # Sleep in small chunks to allow quick shutdown
            for _ in range(interval):
                if not self._running:
                    return
                await asyncio.sleep(1)
