"""
AcFun live API client.
Handles live list paging, user lookup, visitor login and stream URL fetching.
"""

import asyncio
from dataclasses import dataclass
from typing import Dict, Iterator, Optional, Tuple

import aiohttp

from .config import AcFunConfig
from .logger import get_logger
from .manifest import derive_hls_url, parse_manifest, select_best


FIRST_CURSOR = "0"
LAST_CURSOR = "no_more"
ERROR_CURSOR = ""  # returned with the empty page for a non-zero result code

DID_COOKIE = "_did"
VISITOR_SID = "acfun.api.visitor"
VISITOR_TOKEN_FIELD = "acfun.api.visitor_st"


class MalformedResponse(Exception):
    """Upstream answered with something we can't use (missing cookie, field, ...)."""


@dataclass(frozen=True)
class LiveRoom:
    """A live room from the channel list."""
    display_name: str
    title: str


@dataclass(frozen=True)
class Streamer:
    """Broadcaster uid with the name resolved for the current query."""
    uid: int
    name: str

    @property
    def long_id(self) -> str:
        return f"{self.name}({self.uid})"


@dataclass(frozen=True)
class SessionToken:
    """Anonymous visitor credentials, valid for one resolution."""
    user_id: int
    service_token: str
    device_id: str


@dataclass(frozen=True)
class StreamURLs:
    """Resolved stream sources. Both empty means unavailable."""
    hls: str = ""
    flv: str = ""

    @classmethod
    def empty(cls) -> 'StreamURLs':
        return cls()

    def __bool__(self) -> bool:
        return bool(self.flv)

    def __iter__(self) -> Iterator[str]:
        return iter((self.hls, self.flv))


class AcFunAPI:
    """
    AcFun live API client.

    Each method does exactly one protocol step and raises on anything
    unexpected; callers wrap them with retry.supervise(). Explicit
    "not found"/"not live" answers are returned as empty values instead.
    """

    def __init__(self, config: Optional[AcFunConfig] = None):
        """
        Initialize AcFun API client.

        Args:
            config: Endpoint and transport settings. Defaults to production.
        """
        self.config = config or AcFunConfig()
        self._session: Optional[aiohttp.ClientSession] = None
        self._logger = get_logger('acfun_api')

    async def connect(self) -> None:
        """Open the HTTP session."""
        if self._session is None or self._session.closed:
            # No shared cookie jar: every resolution carries its own _did
            self._session = aiohttp.ClientSession(
                timeout=aiohttp.ClientTimeout(total=self.config.request_timeout),
                cookie_jar=aiohttp.DummyCookieJar()
            )
            self._logger.debug("HTTP session opened")

    async def disconnect(self) -> None:
        """Close session."""
        if self._session:
            await self._session.close()
            self._session = None

    async def __aenter__(self) -> 'AcFunAPI':
        await self.connect()
        return self

    async def __aexit__(self, *exc) -> None:
        await self.disconnect()

    async def _ensure_session(self) -> aiohttp.ClientSession:
        if self._session is None or self._session.closed:
            await self.connect()
        return self._session

    async def fetch_live_page(self, cursor: str) -> Tuple[Dict[int, LiveRoom], str]:
        """
        Fetch one page of the live channel list.

        Args:
            cursor: Page cursor, "0" for the first page.

        Returns:
            Tuple of (uid -> LiveRoom for this page, next cursor). The last
            page returns "no_more". A non-zero result code yields ({}, "").
        """
        session = await self._ensure_session()

        async with session.get(
            self.config.channel_list_url,
            params={'pcursor': cursor}
        ) as resp:
            resp.raise_for_status()
            data = await resp.json(content_type=None)

        channel_list = data['channelListData']
        if channel_list['result'] != 0:
            self._logger.warning(
                f"Channel list returned result {channel_list['result']}",
                extra={'cursor': cursor}
            )
            return {}, ERROR_CURSOR

        rooms = {}
        for live in channel_list.get('liveList') or []:
            uid = int(live['authorId'])
            # null title/name count as empty
            rooms[uid] = LiveRoom(
                display_name=live['user'].get('name') or '',
                title=live.get('title') or ''
            )

        return rooms, channel_list['pcursor']

    async def get_user_name(self, uid: int) -> str:
        """
        Look up a user's display name.

        Args:
            uid: AcFun user id.

        Returns:
            Display name, or "" if there is no such user.
        """
        session = await self._ensure_session()

        # The profile endpoint only answers browser user agents
        async with session.get(
            self.config.profile_url,
            params={'userId': str(uid)},
            headers={'User-Agent': self.config.user_agent}
        ) as resp:
            resp.raise_for_status()
            data = await resp.json(content_type=None)

        if data['result'] != 0:
            return ""

        return data['profile']['name']

    async def negotiate_session(self, uid: int) -> Optional[SessionToken]:
        """
        Log in as an anonymous visitor for a broadcaster's live room.

        Args:
            uid: Broadcaster uid whose live page issues the device id.

        Returns:
            SessionToken, or None if the login was refused.

        Raises:
            MalformedResponse: If the live page set no device id cookie.
        """
        session = await self._ensure_session()

        async with session.get(f"{self.config.live_page_url}{uid}") as resp:
            resp.raise_for_status()
            did_cookie = resp.cookies.get(DID_COOKIE)

        if did_cookie is None or not did_cookie.value:
            raise MalformedResponse(f"live page for {uid} set no {DID_COOKIE} cookie")
        device_id = did_cookie.value

        async with session.post(
            self.config.visitor_login_url,
            data={'sid': VISITOR_SID},
            cookies={DID_COOKIE: device_id}
        ) as resp:
            resp.raise_for_status()
            data = await resp.json(content_type=None)

        if data['result'] != 0:
            self._logger.warning(f"Visitor login refused with result {data['result']}")
            return None

        return SessionToken(
            user_id=int(data['userId']),
            service_token=data[VISITOR_TOKEN_FIELD],
            device_id=device_id
        )

    async def get_stream_urls(self, token: SessionToken, uid: int) -> StreamURLs:
        """
        Fetch the stream manifest and pick the highest bitrate source.

        Args:
            token: Fresh visitor session.
            uid: Broadcaster uid.

        Returns:
            StreamURLs, empty if the stream can't be played.

        Raises:
            MalformedResponse: If the manifest stream name isn't in the URL.
        """
        session = await self._ensure_session()

        params = {
            'subBiz': 'mainApp',
            'kpn': 'ACFUN_APP',
            'kpf': 'PC_WEB',
            'userId': str(token.user_id),
            'did': token.device_id,
            VISITOR_TOKEN_FIELD: token.service_token,
        }

        async with session.post(
            self.config.play_url,
            params=params,
            data={'authorId': str(uid)}
        ) as resp:
            resp.raise_for_status()
            data = await resp.json(content_type=None)

        if data['result'] != 1:
            self._logger.debug(f"startPlay returned result {data['result']} for {uid}")
            return StreamURLs.empty()

        stream_name, representations = parse_manifest(data['data']['videoPlayRes'])

        best = select_best(representations)
        if best is None:
            self._logger.warning(f"Manifest for {uid} has no representations")
            return StreamURLs.empty()

        try:
            hls_url = derive_hls_url(best.url, stream_name)
        except ValueError:
            raise MalformedResponse(
                f"stream name {stream_name!r} not found in {best.url!r}"
            ) from None

        return StreamURLs(hls=hls_url, flv=best.url)


async def main():
    """Test the AcFun API client."""
    from .config import load_config_or_default

    config = load_config_or_default("config.yaml")
    config.logging.apply()

    async with AcFunAPI(config.acfun) as api:
        rooms, cursor = await api.fetch_live_page(FIRST_CURSOR)
        print(f"First page: {len(rooms)} rooms, next cursor {cursor!r}")

        for uid, room in list(rooms.items())[:1]:
            print(f"{room.display_name}({uid}): {room.title}")
            token = await api.negotiate_session(uid)
            if token:
                urls = await api.get_stream_urls(token, uid)
                print(f"  hls: {urls.hls}")
                print(f"  flv: {urls.flv}")


if __name__ == '__main__':
    asyncio.run(main())
