"""Records decoded from the spot and scheduled-events metadata paths."""

from datetime import datetime, timezone
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field, TypeAdapter, ValidationError, field_validator

from ..imds.errors import DecodeError

# Scheduled events are served as "21 Jan 2019 09:00:43 GMT" rather than RFC 3339.
EVENT_TIME_FORMAT = "%d %b %Y %H:%M:%S %Z"


def _parse_event_time(value):
    if isinstance(value, str):
        try:
            return datetime.strptime(value.strip(), EVENT_TIME_FORMAT)
        except ValueError:
            return value
    return value


def _as_utc(value: Optional[datetime]) -> Optional[datetime]:
    if value is not None and value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


class InstanceAction(BaseModel):
    """
    InstanceAction 类。

    Pending spot interruption, e.g. ``{"action": "terminate", "time": "2017-09-18T08:22:00Z"}``.
    """

    model_config = ConfigDict(populate_by_name=True)

    action: str = ""
    time: Optional[datetime] = None

    @field_validator("time", mode="before")
    @classmethod
    def _accept_event_format(cls, v):
        return _parse_event_time(v)

    @field_validator("time")
    @classmethod
    def _normalize_tz(cls, v):
        return _as_utc(v)


class ScheduledEvent(BaseModel):
    """
    ScheduledEvent 类。

    One maintenance window from ``events/maintenance/scheduled``. The JSON
    keys are capitalised; both the keys and the field names are accepted.
    """

    model_config = ConfigDict(populate_by_name=True)

    state: str = Field(default="", alias="State")
    code: str = Field(default="", alias="Code")
    description: str = Field(default="", alias="Description")
    not_before: Optional[datetime] = Field(default=None, alias="NotBefore")
    not_after: Optional[datetime] = Field(default=None, alias="NotAfter")

    @field_validator("not_before", "not_after", mode="before")
    @classmethod
    def _accept_event_format(cls, v):
        return _parse_event_time(v)

    @field_validator("not_before", "not_after")
    @classmethod
    def _normalize_tz(cls, v):
        return _as_utc(v)

    def to_json(self) -> str:
        """Encode with the metadata service's key names."""
        return self.model_dump_json(by_alias=True)


_INSTANCE_ACTION = TypeAdapter(Optional[InstanceAction])
_SCHEDULED_EVENTS = TypeAdapter(Optional[List[ScheduledEvent]])


def decode_instance_action(body: str) -> InstanceAction:
    """
    解码 spot instance-action 响应。

    A JSON ``null`` or a missing ``time`` still decodes; the notice then has
    no countdown.

    Args:
        body: Raw JSON body.

    Returns:
        InstanceAction: Decoded record.

    Raises:
        DecodeError: Body is not a valid instance action.
    """
    try:
        action = _INSTANCE_ACTION.validate_json(body)
    except ValidationError as exc:
        raise DecodeError(f"invalid instance-action payload: {exc}") from exc
    return action if action is not None else InstanceAction()


def decode_scheduled_events(body: str) -> List[ScheduledEvent]:
    """
    解码 scheduled maintenance 响应。

    A JSON ``null`` decodes to an empty list.

    Args:
        body: Raw JSON body.

    Returns:
        List[ScheduledEvent]: Events in source order.

    Raises:
        DecodeError: Body is not a list of scheduled events.
    """
    try:
        return _SCHEDULED_EVENTS.validate_json(body) or []
    except ValidationError as exc:
        raise DecodeError(f"invalid scheduled events payload: {exc}") from exc
