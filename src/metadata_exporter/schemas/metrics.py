from dataclasses import dataclass, fields
from typing import Dict, Iterator, Tuple


@dataclass(frozen=True)
class MetricDescriptor:
    """
    MetricDescriptor 类。

    Name, help text and label names of one exported gauge.
    """
    name: str
    documentation: str
    labelnames: Tuple[str, ...]

    def sample(self, value: float, *labelvalues: str) -> "MetricSample":
        """
        Build a sample of this metric.

        Args:
            value: Gauge value.
            *labelvalues: Label values, in ``labelnames`` order.

        Returns:
            MetricSample: The sample.
        """
        if len(labelvalues) != len(self.labelnames):
            raise ValueError(
                f"{self.name} expects {len(self.labelnames)} label values, got {len(labelvalues)}"
            )
        return MetricSample(
            name=self.name,
            value=float(value),
            labels=tuple(zip(self.labelnames, labelvalues)),
        )


@dataclass(frozen=True)
class MetricSample:
    """
    MetricSample 类。

    One gauge observation. ``labels`` keeps the descriptor's label order.
    """
    name: str
    value: float
    labels: Tuple[Tuple[str, str], ...]
    kind: str = "gauge"

    @property
    def label_dict(self) -> Dict[str, str]:
        return dict(self.labels)

    @property
    def labelvalues(self) -> Tuple[str, ...]:
        return tuple(value for _, value in self.labels)


@dataclass(frozen=True)
class MetricDescriptors:
    """
    MetricDescriptors 类。

    Fixed set of gauges exported by the collector.
    """
    spot_scrape_successful: MetricDescriptor
    spot_termination_indicator: MetricDescriptor
    spot_termination_time: MetricDescriptor
    scheduled_scrape_successful: MetricDescriptor
    scheduled_action_indicator: MetricDescriptor
    scheduled_action_start_time: MetricDescriptor
    scheduled_action_end_time: MetricDescriptor

    def __iter__(self) -> Iterator[MetricDescriptor]:
        for field in fields(self):
            yield getattr(self, field.name)


DEFAULT_DESCRIPTORS = MetricDescriptors(
    spot_scrape_successful=MetricDescriptor(
        "aws_instance_spot_metadata_service_available",
        "Spot metadata service available",
        ("instance_id",),
    ),
    spot_termination_indicator=MetricDescriptor(
        "aws_instance_spot_termination_imminent",
        "Instance is about to be terminated",
        ("instance_action", "instance_id"),
    ),
    spot_termination_time=MetricDescriptor(
        "aws_instance_spot_termination_in",
        "Instance will be terminated in",
        ("instance_id",),
    ),
    scheduled_scrape_successful=MetricDescriptor(
        "aws_instance_scheduled_metadata_service_available",
        "Scheduled actions metadata service available",
        ("instance_id",),
    ),
    scheduled_action_indicator=MetricDescriptor(
        "aws_instance_scheduled_action_imminent",
        "Instance count of scheduled actions",
        ("instance_action", "instance_id"),
    ),
    scheduled_action_start_time=MetricDescriptor(
        "aws_instance_scheduled_action_start_in",
        "Instance action will happen from",
        ("instance_action", "instance_id"),
    ),
    scheduled_action_end_time=MetricDescriptor(
        "aws_instance_scheduled_action_end_in",
        "Instance action will happen until",
        ("instance_action", "instance_id"),
    ),
)
