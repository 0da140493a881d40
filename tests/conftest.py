#!/usr/bin/env python3
"""
pytest 配置文件，定义测试用的 fixtures
"""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Dict, List, Tuple, Union

import httpx
import pytest

from metadata_exporter.collector.collector import MetadataCollector
from metadata_exporter.imds.token import TokenProvider

NOW = datetime(2024, 1, 1, 12, 0, 0, tzinfo=timezone.utc)

TOKEN_PATH = "/latest/api/token"
META_PREFIX = "/latest/meta-data/"

Route = Union[Tuple[int, str], Exception]


class FakeMetadataService:
    """In-memory IMDSv2 answering through ``httpx.MockTransport``."""

    def __init__(
        self,
        routes: Dict[str, Route] | None = None,
        token_status: int = 200,
        token_body: str = "token-abc",
    ) -> None:
        self.routes: Dict[str, Route] = dict(routes or {})
        self.token_status = token_status
        self.token_body = token_body
        self.requests: List[httpx.Request] = []

    def handler(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        if request.method == "PUT" and request.url.path == TOKEN_PATH:
            return httpx.Response(self.token_status, text=self.token_body)

        path = request.url.path[len(META_PREFIX):]
        route = self.routes.get(path)
        if route is None:
            return httpx.Response(404, text="Not Found")
        if isinstance(route, Exception):
            raise route
        status_code, body = route
        return httpx.Response(status_code, text=body)

    def transport(self) -> httpx.MockTransport:
        return httpx.MockTransport(self.handler)

    def token_provider(self) -> TokenProvider:
        return TokenProvider(transport=self.transport())

    def collector(self, now: datetime = NOW) -> MetadataCollector:
        return MetadataCollector(token_provider=self.token_provider(), clock=lambda: now)

    def metadata_paths(self) -> List[str]:
        return [
            request.url.path[len(META_PREFIX):]
            for request in self.requests
            if request.url.path.startswith(META_PREFIX)
        ]


@pytest.fixture
def now() -> datetime:
    """固定的当前时间"""
    return NOW


@pytest.fixture
def make_imds():
    """返回 FakeMetadataService 构造器，用于自定义路由"""
    return FakeMetadataService


@pytest.fixture
def imds() -> FakeMetadataService:
    """提供一个 instance-id 为 i-123 的假 metadata 服务"""
    return FakeMetadataService(routes={"instance-id": (200, "i-123")})
