#!/usr/bin/env python3

"""Map metadata answers to gauge samples."""

from __future__ import annotations

import logging
from datetime import datetime
from typing import List, Optional, Union

from ..imds.client import MetadataResponse
from ..imds.errors import DecodeError, TransportError
from ..schemas.events import decode_instance_action, decode_scheduled_events
from ..schemas.metrics import DEFAULT_DESCRIPTORS, MetricDescriptors, MetricSample

logger = logging.getLogger(__name__)

FetchOutcome = Union[MetadataResponse, TransportError]


def seconds_until(moment: Optional[datetime], now: datetime) -> Optional[float]:
    """Seconds from ``now`` to ``moment``, or ``None`` unless strictly in the future.

    Args:
        moment: Target instant. ``None`` counts as already passed.
        now: Reference instant.

    Returns:
        Optional[float]: Positive number of seconds, else ``None``.
    """
    if moment is None:
        return None
    delta = (moment - now).total_seconds()
    return delta if delta > 0 else None


def translate_scheduled_actions(
    outcome: FetchOutcome,
    instance_id: str,
    now: datetime,
    descriptors: MetricDescriptors = DEFAULT_DESCRIPTORS,
) -> List[MetricSample]:
    """Samples for the scheduled maintenance path.

    Args:
        outcome: Response of ``events/maintenance/scheduled`` or the transport error.
        instance_id: Resolved instance id.
        now: Wall-clock time the deltas are computed against.
        descriptors: Exported gauges.

    Returns:
        List[MetricSample]: Availability sample first, then per-event samples
        in source order.
    """
    if isinstance(outcome, TransportError):
        logger.error("Failed to fetch data from metadata service: %s", outcome)
        return [descriptors.scheduled_scrape_successful.sample(0, instance_id)]
    if not outcome.ok:
        logger.debug("scheduled events endpoint returned status %s", outcome.status_code)
        return [descriptors.scheduled_scrape_successful.sample(0, instance_id)]

    samples = [descriptors.scheduled_scrape_successful.sample(1, instance_id)]

    try:
        events = decode_scheduled_events(outcome.body)
    except DecodeError as exc:
        logger.error("Couldn't parse scheduled events metadata: %s", exc)
        samples.append(descriptors.scheduled_action_indicator.sample(0, "", instance_id))
        return samples

    for event in events:
        logger.info(
            "Scheduled instance event between %s and %s - %s",
            event.not_before,
            event.not_after,
            event.description,
        )
        samples.append(descriptors.scheduled_action_indicator.sample(1, event.code, instance_id))

        start_in = seconds_until(event.not_before, now)
        if start_in is not None:
            samples.append(
                descriptors.scheduled_action_start_time.sample(start_in, event.code, instance_id)
            )

        end_in = seconds_until(event.not_after, now)
        if end_in is not None:
            samples.append(
                descriptors.scheduled_action_end_time.sample(end_in, event.code, instance_id)
            )

    return samples


def translate_spot_termination(
    outcome: FetchOutcome,
    instance_id: str,
    now: datetime,
    descriptors: MetricDescriptors = DEFAULT_DESCRIPTORS,
) -> List[MetricSample]:
    """Samples for the spot ``instance-action`` path.

    A 404 yields only ``imminent=0`` and no availability sample; this differs
    from the scheduled path and existing dashboards rely on it.

    Args:
        outcome: Response of ``spot/instance-action`` or the transport error.
        instance_id: Resolved instance id.
        now: Wall-clock time the delta is computed against.
        descriptors: Exported gauges.

    Returns:
        List[MetricSample]: Samples for this path.
    """
    if isinstance(outcome, TransportError):
        logger.error("Failed to fetch data from metadata service: %s", outcome)
        return [descriptors.spot_scrape_successful.sample(0, instance_id)]
    if outcome.not_found:
        logger.debug("instance-action endpoint not found")
        return [descriptors.spot_termination_indicator.sample(0, "", instance_id)]

    samples = [descriptors.spot_scrape_successful.sample(1, instance_id)]

    try:
        action = decode_instance_action(outcome.body)
    except DecodeError as exc:
        logger.error("Couldn't parse instance-action metadata: %s", exc)
        samples.append(descriptors.spot_termination_indicator.sample(0, "", instance_id))
        return samples

    logger.info("instance-action endpoint available, termination time: %s", action.time)
    samples.append(descriptors.spot_termination_indicator.sample(1, action.action, instance_id))

    termination_in = seconds_until(action.time, now)
    if termination_in is not None:
        samples.append(descriptors.spot_termination_time.sample(termination_in, instance_id))

    return samples
