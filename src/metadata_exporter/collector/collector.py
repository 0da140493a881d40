#!/usr/bin/env python3

"""Prometheus collector driving one metadata scrape per registry collect."""

from __future__ import annotations

import logging
import time
import uuid
from datetime import datetime, timezone
from typing import Callable, Dict, Iterator, List, Optional

from prometheus_client.core import GaugeMetricFamily

from ..imds.client import (
    METADATA_ENDPOINT,
    SCHEDULED_EVENTS_PATH,
    SPOT_INSTANCE_ACTION_PATH,
    MetadataClient,
)
from ..imds.errors import AuthError, ResolutionError, TransportError
from ..imds.token import TokenProvider
from ..schemas.metrics import DEFAULT_DESCRIPTORS, MetricDescriptors, MetricSample
from .translate import FetchOutcome, translate_scheduled_actions, translate_spot_termination


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


class MetadataCollector:
    """Custom collector exposing spot and scheduled-maintenance gauges.

    Every call to :meth:`collect` runs a full, independent cycle: acquire a
    token, resolve the instance id, then query both feature paths. Nothing is
    kept between cycles.
    """

    def __init__(
        self,
        descriptors: MetricDescriptors = DEFAULT_DESCRIPTORS,
        token_provider: Optional[TokenProvider] = None,
        metadata_endpoint: str = METADATA_ENDPOINT,
        clock: Callable[[], datetime] = utc_now,
    ) -> None:
        """Initialize the collector.

        Args:
            descriptors: Exported gauges.
            token_provider: Token handshake; defaults to the instance-local endpoint.
            metadata_endpoint: Root of the metadata tree.
            clock: Source of "now" for time-to-event values.
        """
        self.descriptors = descriptors
        self.token_provider = token_provider or TokenProvider()
        self.metadata_endpoint = metadata_endpoint
        self.clock = clock
        self._logger = logging.getLogger(__name__)

    def describe(self) -> Iterator[GaugeMetricFamily]:
        for descriptor in self.descriptors:
            yield GaugeMetricFamily(
                descriptor.name,
                descriptor.documentation,
                labels=list(descriptor.labelnames),
            )

    def collect(self) -> Iterator[GaugeMetricFamily]:
        families: Dict[str, GaugeMetricFamily] = {}
        for descriptor in self.descriptors:
            families[descriptor.name] = GaugeMetricFamily(
                descriptor.name,
                descriptor.documentation,
                labels=list(descriptor.labelnames),
            )

        seen: List[str] = []
        for sample in self.samples():
            families[sample.name].add_metric(list(sample.labelvalues), sample.value)
            if sample.name not in seen:
                seen.append(sample.name)

        for name in seen:
            yield families[name]

    def samples(self) -> List[MetricSample]:
        """Run one scrape cycle.

        Returns:
            List[MetricSample]: Scheduled-action samples followed by spot
            samples; empty when the token or the instance id is unavailable.
        """
        task_id = uuid.uuid4().hex[:8]
        started_at = time.monotonic()

        self._logger.debug("Acquiring AWS EC2 metadata API Token")
        try:
            http_client = self.token_provider.acquire()
        except AuthError as exc:
            self._logger.error("Failed to initialize the AWS EC2 metadata API client: %s", exc)
            self._log_step(task_id=task_id, result="token_fail", started_at=started_at)
            return []
        self._logger.debug("API client set-up with token header")

        with http_client:
            client = MetadataClient(http_client, metadata_endpoint=self.metadata_endpoint)

            self._logger.debug("Getting instance-id")
            try:
                instance_id = client.fetch_instance_id()
            except ResolutionError as exc:
                self._logger.error("%s", exc)
                self._log_step(task_id=task_id, result="instance_id_fail", started_at=started_at)
                return []
            self._logger.debug("Got instance-id: %s", instance_id)

            self._logger.debug("Retrieving metrics")
            samples = translate_scheduled_actions(
                self._fetch(client, SCHEDULED_EVENTS_PATH),
                instance_id,
                self.clock(),
                self.descriptors,
            )
            samples.extend(
                translate_spot_termination(
                    self._fetch(client, SPOT_INSTANCE_ACTION_PATH),
                    instance_id,
                    self.clock(),
                    self.descriptors,
                )
            )

        self._log_step(task_id=task_id, result=f"ok_samples_{len(samples)}", started_at=started_at)
        return samples

    @staticmethod
    def _fetch(client: MetadataClient, path: str) -> FetchOutcome:
        try:
            return client.get(path)
        except TransportError as exc:
            return exc

    def _log_step(self, *, task_id: str, result: str, started_at: float) -> None:
        duration_ms = int((time.monotonic() - started_at) * 1000)
        self._logger.info(
            "[collector] task_id=%s target=scrape result=%s duration_ms=%s",
            task_id,
            result,
            duration_ms,
        )
