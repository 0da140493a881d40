#!/usr/bin/env python3

"""Read-only client for the instance metadata tree."""

from __future__ import annotations

import logging
import time
import uuid
from dataclasses import dataclass

import httpx

from .errors import NotFoundError, ResolutionError, StatusError, TransportError

METADATA_ENDPOINT = "http://169.254.169.254/latest/meta-data/"

INSTANCE_ID_PATH = "instance-id"
SCHEDULED_EVENTS_PATH = "events/maintenance/scheduled"
SPOT_INSTANCE_ACTION_PATH = "spot/instance-action"


@dataclass(frozen=True)
class MetadataResponse:
    """
    MetadataResponse 类。

    Fully read answer of one metadata GET.
    """

    path: str
    status_code: int
    body: str

    @property
    def ok(self) -> bool:
        return self.status_code == 200

    @property
    def not_found(self) -> bool:
        return self.status_code == 404

    def raise_for_status(self) -> None:
        """
        Raise when the response is not a 200.

        Raises:
            NotFoundError: Status is 404.
            StatusError: Any other non-200 status.
        """
        if self.not_found:
            raise NotFoundError(self.path)
        if not self.ok:
            raise StatusError(self.path, self.status_code)


class MetadataClient:
    """GET wrapper over a token-bearing ``httpx.Client``.

    No timeout is applied here; a stalled metadata service stalls the caller.
    """

    def __init__(
        self,
        client: httpx.Client,
        metadata_endpoint: str = METADATA_ENDPOINT,
    ) -> None:
        """Initialize the client.

        Args:
            client: Authenticated client from ``TokenProvider.acquire``.
            metadata_endpoint: Root of the metadata tree, with trailing slash.
        """
        self._client = client
        self.metadata_endpoint = metadata_endpoint
        self._logger = logging.getLogger(__name__)

    def get(self, path: str) -> MetadataResponse:
        """Issue one GET against a metadata path.

        Args:
            path: Path relative to the metadata root.

        Returns:
            MetadataResponse: Status code and decoded text body.

        Raises:
            TransportError: The request could not be completed.
        """
        task_id = uuid.uuid4().hex[:8]
        started_at = time.monotonic()
        try:
            response = self._client.get(self.metadata_endpoint + path)
        except httpx.HTTPError as exc:
            self._log_step(task_id=task_id, target=path, result="exception", started_at=started_at)
            raise TransportError(path, str(exc)) from exc

        self._log_step(
            task_id=task_id,
            target=path,
            result=f"status_{response.status_code}",
            started_at=started_at,
        )
        return MetadataResponse(path=path, status_code=response.status_code, body=response.text)

    def fetch_instance_id(self) -> str:
        """Resolve the instance id of the running instance.

        Returns:
            str: Instance id, e.g. ``i-0123456789abcdef0``.

        Raises:
            ResolutionError: Transport failure or any non-200 answer.
        """
        try:
            response = self.get(INSTANCE_ID_PATH)
            response.raise_for_status()
        except NotFoundError as exc:
            raise ResolutionError("couldn't parse instance-id from metadata: endpoint not found") from exc
        except (TransportError, StatusError) as exc:
            raise ResolutionError(f"couldn't parse instance-id from metadata: {exc}") from exc
        return response.body

    def _log_step(self, *, task_id: str, target: str, result: str, started_at: float) -> None:
        duration_ms = int((time.monotonic() - started_at) * 1000)
        self._logger.debug(
            "[imds] task_id=%s target=%s result=%s duration_ms=%s",
            task_id,
            target,
            result,
            duration_ms,
        )
