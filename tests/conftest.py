"""Test configuration and common fixtures."""

import json
from collections import Counter
from typing import Dict, List, Optional, Tuple

import pytest
import pytest_asyncio
from aiohttp import web
from aiohttp.test_utils import TestServer

from acfunlive.acfun_api import AcFunAPI
from acfunlive.config import AcFunConfig, Config, RetryConfig
from acfunlive.live_rooms import LiveRoomCache
from acfunlive.live_service import LiveService


CHANNEL_LIST_PATH = "/api/channel/list"
PROFILE_PATH = "/rest/pc-direct/user/userInfo"
LIVE_PAGE_PATH = "/live/"
VISITOR_LOGIN_PATH = "/rest/app/visitor/login"
PLAY_PATH = "/rest/zt/live/web/startPlay"


def live_entry(uid: int, name: str, title: str) -> dict:
    """One liveList entry as the channel list returns it."""
    return {'authorId': uid, 'user': {'name': name}, 'title': title}


def manifest_json(stream_name: str, representations: List[Tuple[int, str]]) -> str:
    """Build a videoPlayRes string."""
    return json.dumps({
        'streamName': stream_name,
        'liveAdaptiveManifest': [{
            'adaptationSet': {
                'representation': [
                    {'bitrate': bitrate, 'url': url} for bitrate, url in representations
                ]
            }
        }]
    })


class FakeAcFun:
    """Scriptable stand-in for the AcFun endpoints."""

    def __init__(self):
        self.base_url = ""

        # cursor -> channelListData
        self.pages: Dict[str, dict] = {}
        # cursor -> number of 500 responses before answering
        self.page_failures: Counter = Counter()

        self.users: Dict[int, str] = {}
        self.did: Optional[str] = "web_did_123"
        self.did_failures = 0

        self.login_result = 0
        self.user_id = 9001
        self.service_token = "visitor-st"

        self.play_result = 1
        self.video_play_res = manifest_json("stream123", [
            (1000, "https://edgepull.example.com/live/stream123_1000.flv?auth=1"),
            (4000, "https://edgepull.example.com/live/stream123.flv?auth=1"),
        ])

        self.hits: Counter = Counter()
        self.seen_cursors: List[str] = []
        self.seen_user_agents: List[str] = []
        self.login_requests: List[dict] = []
        self.play_requests: List[dict] = []

    def set_pages(self, pages: List[List[dict]]) -> None:
        """Chain pages so that cursor "0" leads to page 0, ... and the last ends in no_more."""
        self.pages = {}
        for i, lives in enumerate(pages):
            cursor = "0" if i == 0 else f"c{i}"
            next_cursor = "no_more" if i == len(pages) - 1 else f"c{i + 1}"
            self.pages[cursor] = {'result': 0, 'liveList': lives, 'pcursor': next_cursor}

    def config(self) -> AcFunConfig:
        return AcFunConfig(
            channel_list_url=self.base_url + CHANNEL_LIST_PATH,
            profile_url=self.base_url + PROFILE_PATH,
            live_page_url=self.base_url + LIVE_PAGE_PATH,
            visitor_login_url=self.base_url + VISITOR_LOGIN_PATH,
            play_url=self.base_url + PLAY_PATH,
            request_timeout=5.0
        )

    async def channel_list(self, request: web.Request) -> web.Response:
        cursor = request.query.get('pcursor', '')
        self.hits['channel_list'] += 1
        self.seen_cursors.append(cursor)

        if self.page_failures[cursor] > 0:
            self.page_failures[cursor] -= 1
            return web.Response(status=500, text="upstream error")

        page = self.pages.get(cursor, {'result': 0, 'liveList': [], 'pcursor': 'no_more'})
        return web.json_response({'channelListData': page})

    async def profile(self, request: web.Request) -> web.Response:
        self.hits['profile'] += 1
        self.seen_user_agents.append(request.headers.get('User-Agent', ''))

        uid = int(request.query['userId'])
        if uid not in self.users:
            return web.json_response({'result': 100010, 'error_msg': 'user not found'})
        return web.json_response({'result': 0, 'profile': {'name': self.users[uid]}})

    async def live_page(self, request: web.Request) -> web.Response:
        self.hits['live_page'] += 1
        response = web.Response(text="<html></html>", content_type="text/html")
        if self.did_failures > 0:
            self.did_failures -= 1
        elif self.did:
            response.set_cookie('_did', self.did)
        return response

    async def visitor_login(self, request: web.Request) -> web.Response:
        self.hits['visitor_login'] += 1
        form = await request.post()
        self.login_requests.append({
            'sid': form.get('sid'),
            'did': request.cookies.get('_did'),
        })

        if self.login_result != 0:
            return web.json_response({'result': self.login_result})
        return web.json_response({
            'result': 0,
            'userId': self.user_id,
            'acfun.api.visitor_st': self.service_token,
        })

    async def start_play(self, request: web.Request) -> web.Response:
        self.hits['start_play'] += 1
        form = await request.post()
        self.play_requests.append({
            'query': dict(request.query),
            'authorId': form.get('authorId'),
        })

        if self.play_result != 1:
            return web.json_response({'result': self.play_result})
        return web.json_response({
            'result': 1,
            'data': {'videoPlayRes': self.video_play_res},
        })

    def make_app(self) -> web.Application:
        app = web.Application()
        app.router.add_get(CHANNEL_LIST_PATH, self.channel_list)
        app.router.add_get(PROFILE_PATH, self.profile)
        app.router.add_get(LIVE_PAGE_PATH + "{uid}", self.live_page)
        app.router.add_post(VISITOR_LOGIN_PATH, self.visitor_login)
        app.router.add_post(PLAY_PATH, self.start_play)
        return app


@pytest_asyncio.fixture
async def upstream() -> FakeAcFun:
    """Provide a running fake AcFun server."""
    fake = FakeAcFun()
    server = TestServer(fake.make_app())
    await server.start_server()
    fake.base_url = f"http://{server.host}:{server.port}"
    yield fake
    await server.close()


@pytest_asyncio.fixture
async def api(upstream: FakeAcFun) -> AcFunAPI:
    """Provide an API client pointed at the fake server."""
    client = AcFunAPI(upstream.config())
    await client.connect()
    yield client
    await client.disconnect()


@pytest.fixture
def fast_retry() -> RetryConfig:
    """Retry forever without waiting."""
    return RetryConfig(delay=0.0)


@pytest_asyncio.fixture
async def service(upstream: FakeAcFun, fast_retry: RetryConfig) -> LiveService:
    """Provide a live service wired to the fake server."""
    config = Config(acfun=upstream.config(), retry=fast_retry)
    async with LiveService(config, cache=LiveRoomCache()) as svc:
        yield svc
