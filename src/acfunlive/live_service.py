"""
Live Service - query surface over the live directory and stream resolution.
"""

import asyncio
from typing import List, Mapping, Optional

from .acfun_api import AcFunAPI, LiveRoom, Streamer, StreamURLs
from .config import Config
from .directory import DirectoryFetcher
from .live_rooms import LiveRoomCache
from .logger import get_logger, get_streamer_logger
from .retry import RetryExhausted, RetryPolicy, supervise


class LiveService:
    """
    Answers "is X live", "what is X's title" and "where is X's stream".

    Liveness and titles come from the cached directory; stream URLs are
    resolved on demand with a fresh visitor session every time.
    """

    def __init__(
        self,
        config: Optional[Config] = None,
        api: Optional[AcFunAPI] = None,
        cache: Optional[LiveRoomCache] = None
    ):
        """
        Initialize live service.

        Args:
            config: Application configuration. Defaults to Config().
            api: AcFun API client, built from config if omitted.
            cache: Shared live room cache, created if omitted.
        """
        self.config = config or Config()
        self.api = api or AcFunAPI(self.config.acfun)
        self.cache = cache or LiveRoomCache()
        self.retry_policy: RetryPolicy = self.config.retry.to_policy()
        self.directory = DirectoryFetcher(self.api, self.cache, self.retry_policy)

        self._logger = get_logger('live_service')

    async def __aenter__(self) -> 'LiveService':
        await self.api.connect()
        return self

    async def __aexit__(self, *exc) -> None:
        await self.api.disconnect()

    async def refresh_directory(self) -> Mapping[int, LiveRoom]:
        """Run one full directory scan and publish it."""
        return await self.directory.refresh()

    async def run_refresh_loop(self) -> None:
        """Keep the directory fresh until stop() is called."""
        await self.directory.run(self.config.directory.refresh_interval)

    def stop(self) -> None:
        self.directory.stop()

    def is_live(self, uid: int) -> bool:
        """Check if a broadcaster is in the current directory."""
        return self.cache.has(uid)

    def current_title(self, uid: int) -> str:
        """Live room title, or "" if not live."""
        room = self.cache.get(uid)
        return room.title if room else ""

    def list_live(self) -> List[dict]:
        """All live broadcasters as {uid, name, title} rows."""
        return [
            {'uid': uid, 'name': room.display_name, 'title': room.title}
            for uid, room in self.cache.live_rooms()
        ]

    async def resolve_identity(self, uid: int) -> str:
        """Display name for a uid, "" if there is no such user."""
        return await supervise(
            lambda: self.api.get_user_name(uid),
            f"get name of uid {uid}",
            self.retry_policy
        )

    async def resolve_stream_urls(self, uid: int) -> StreamURLs:
        """
        Resolve a broadcaster's HLS and FLV stream URLs.

        Args:
            uid: Broadcaster uid.

        Returns:
            StreamURLs; empty if the user doesn't exist, isn't live or
            the stream can't be played.
        """
        try:
            name = await self.resolve_identity(uid)
        except RetryExhausted as e:
            self._logger.error(f"Giving up on uid {uid}: {e}")
            return StreamURLs.empty()

        if not name:
            self._logger.info(f"No user with uid {uid}")
            return StreamURLs.empty()

        streamer = Streamer(uid=uid, name=name)
        logger = get_streamer_logger(streamer.long_id)

        if not self.is_live(uid):
            logger.info("⚫ Not live")
            return StreamURLs.empty()

        logger.info(f"🔴 Live: {self.current_title(uid)}")

        try:
            urls = await supervise(
                lambda: self._fetch_stream_urls(uid),
                f"get stream URLs of {streamer.long_id}",
                self.retry_policy
            )
        except RetryExhausted as e:
            logger.error(f"Giving up: {e}")
            return StreamURLs.empty()

        if urls:
            logger.info(f"Stream sources:\n  hls: {urls.hls}\n  flv: {urls.flv}")
        else:
            logger.warning("Could not get stream sources")
        return urls

    async def _fetch_stream_urls(self, uid: int) -> StreamURLs:
        # Session and manifest are retried together so a retry never reuses a token
        token = await self.api.negotiate_session(uid)
        if token is None:
            return StreamURLs.empty()
        return await self.api.get_stream_urls(token, uid)


async def main():
    """Test live service."""
    import sys

    from .config import load_config_or_default

    config = load_config_or_default("config.yaml")
    config.logging.apply()

    async with LiveService(config) as service:
        await service.refresh_directory()
        rows = service.list_live()
        print(f"{len(rows)} broadcasters live")

        uid = int(sys.argv[1]) if len(sys.argv) > 1 else (rows[0]['uid'] if rows else 0)
        if uid:
            hls, flv = await service.resolve_stream_urls(uid)
            print(f"hls: {hls}\nflv: {flv}")


if __name__ == '__main__':
    asyncio.run(main())
