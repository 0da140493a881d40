#!/usr/bin/env python3

"""IMDSv2 session token handshake and header-injecting transport."""

from __future__ import annotations

import logging
import time
import uuid
from types import MappingProxyType
from typing import Mapping, Optional

import httpx

from .errors import TokenError

logger = logging.getLogger(__name__)

TOKEN_ENDPOINT = "http://169.254.169.254/latest/api/token"
TOKEN_HEADER = "X-aws-ec2-metadata-token"
TOKEN_TTL_HEADER = "X-aws-ec2-metadata-token-ttl-seconds"


class HeaderTransport(httpx.BaseTransport):
    """
    Transport decorator that adds a fixed set of headers to every request.

    The actual round trip is delegated to ``base``; a plain
    ``httpx.HTTPTransport`` is created when none is supplied.
    """

    def __init__(
        self,
        headers: Mapping[str, str],
        base: Optional[httpx.BaseTransport] = None,
    ) -> None:
        self._headers = MappingProxyType(dict(headers))
        self._base = base if base is not None else httpx.HTTPTransport()

    @property
    def headers(self) -> Mapping[str, str]:
        return self._headers

    def handle_request(self, request: httpx.Request) -> httpx.Response:
        for key, value in self._headers.items():
            request.headers[key] = value
        return self._base.handle_request(request)

    def close(self) -> None:
        self._base.close()


class TokenProvider:
    """
    Acquire a short-lived metadata token and hand out an authenticated client.

    One token is fetched per call to :meth:`acquire`. Nothing is cached and
    the token lifetime is enforced by the metadata service only.
    """

    def __init__(
        self,
        token_endpoint: str = TOKEN_ENDPOINT,
        ttl_seconds: int = 15,
        timeout_s: float = 5.0,
        transport: Optional[httpx.BaseTransport] = None,
    ) -> None:
        """
        初始化对象。

        Args:
            token_endpoint: URL of the token endpoint.
            ttl_seconds: Requested token lifetime.
            timeout_s: Timeout for the handshake request only.
            transport: Base transport, shared by the handshake and the
                returned client. Defaults to ``httpx.HTTPTransport``.
        """
        self.token_endpoint = token_endpoint
        self.ttl_seconds = ttl_seconds
        self.timeout_s = timeout_s
        self._transport = transport

    def acquire(self) -> httpx.Client:
        """
        Run the PUT handshake and build a token-bearing client.

        Returns:
            httpx.Client: Client without timeout whose requests all carry the
            token header.

        Raises:
            TokenError: Handshake failed or returned a non-200 status.
        """
        task_id = uuid.uuid4().hex[:8]
        start = time.monotonic()

        client = httpx.Client(timeout=self.timeout_s, transport=self._transport)
        try:
            response = client.put(
                self.token_endpoint,
                headers={TOKEN_TTL_HEADER: str(self.ttl_seconds)},
            )
        except httpx.HTTPError as exc:
            self._log_task(task_id, "token.acquire", "exception", start)
            raise TokenError(None, str(exc)) from exc
        finally:
            if self._transport is None:
                client.close()

        body = response.text
        if response.status_code != 200:
            self._log_task(task_id, "token.acquire", f"fail_status_{response.status_code}", start)
            raise TokenError(response.status_code, body)

        self._log_task(task_id, "token.acquire", "ok", start)
        return httpx.Client(
            transport=HeaderTransport({TOKEN_HEADER: body}, base=self._transport),
            timeout=None,
        )

    def _log_task(self, task_id: str, target: str, result: str, start: float) -> None:
        duration_ms = int((time.monotonic() - start) * 1000)
        logger.debug(
            "task_id=%s target=%s result=%s duration_ms=%s",
            task_id,
            target,
            result,
            duration_ms,
        )
