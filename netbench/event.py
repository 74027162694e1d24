"""Scheduled network events that change link state."""

from __future__ import annotations

import enum
from dataclasses import dataclass
from datetime import timedelta
from typing import Any, Iterable, Optional, Sequence

from netbench.spec import NetworkLinkSpec


class UpdateLinkStatus(enum.Enum):
    UP = "up"
    DOWN = "down"

    def opposite(self) -> UpdateLinkStatus:
        return UpdateLinkStatus.DOWN if self is UpdateLinkStatus.UP else UpdateLinkStatus.UP


def _duration_to_dict(value: timedelta) -> dict[str, int]:
    micros = value // timedelta(microseconds=1)
    secs, rest = divmod(micros, 1_000_000)
    return {"secs": secs, "nanos": rest * 1000}


def _duration_from_dict(value: Any) -> timedelta:
    if not isinstance(value, dict) or "secs" not in value or "nanos" not in value:
        raise ValueError(f"invalid duration: {value!r}")
    secs, nanos = value["secs"], value["nanos"]
    if not isinstance(secs, int) or not isinstance(nanos, int) or secs < 0 or nanos < 0:
        raise ValueError(f"invalid duration: {value!r}")
    return timedelta(seconds=secs, microseconds=nanos // 1000)


def _ratio(value: Any) -> float:
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        raise ValueError(f"invalid ratio: {value!r}")
    return float(value)


def _unsigned(value: Any) -> int:
    if isinstance(value, bool) or not isinstance(value, int) or value < 0:
        raise ValueError(f"invalid unsigned integer: {value!r}")
    return value


# (attribute, JSON key, encoder, decoder)
_OPTIONAL_FIELDS = (
    ("status", "status", lambda v: v.value, UpdateLinkStatus),
    ("bandwidth_bps", "bandwidthBps", lambda v: v, _unsigned),
    ("delay", "delay", _duration_to_dict, _duration_from_dict),
    ("extra_delay", "extraDelay", _duration_to_dict, _duration_from_dict),
    ("extra_delay_ratio", "extraDelayRatio", lambda v: v, _ratio),
    ("packet_duplication_ratio", "packetDuplicationRatio", lambda v: v, _ratio),
    ("packet_loss_ratio", "packetLossRatio", lambda v: v, _ratio),
    ("congestion_event_ratio", "congestionEventRatio", lambda v: v, _ratio),
)


@dataclass
class NetworkEventPayload:
    link_id: str
    status: Optional[UpdateLinkStatus] = None
    bandwidth_bps: Optional[int] = None
    delay: Optional[timedelta] = None
    extra_delay: Optional[timedelta] = None
    extra_delay_ratio: Optional[float] = None
    packet_duplication_ratio: Optional[float] = None
    packet_loss_ratio: Optional[float] = None
    congestion_event_ratio: Optional[float] = None

    def to_dict(self) -> dict[str, Any]:
        """Serialize with camelCase keys, omitting unset fields."""
        result: dict[str, Any] = {"linkId": self.link_id}
        for attr, key, encode, _ in _OPTIONAL_FIELDS:
            value = getattr(self, attr)
            if value is not None:
                result[key] = encode(value)
        return result

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> NetworkEventPayload:
        link_id = data.get("linkId")
        if not isinstance(link_id, str):
            raise ValueError("missing or invalid field `linkId`")
        kwargs: dict[str, Any] = {}
        for attr, key, _, decode in _OPTIONAL_FIELDS:
            value = data.get(key)
            if value is not None:
                kwargs[attr] = decode(value)
        return cls(link_id=link_id, **kwargs)


@dataclass
class NetworkEvent:
    relative_time: timedelta
    payload: NetworkEventPayload

    def updated_status(self) -> Optional[UpdateLinkStatus]:
        return self.payload.status


def initial_link_statuses(
    sorted_events: Iterable[NetworkEvent], links: Iterable[NetworkLinkSpec]
) -> list[NetworkEventPayload]:
    """Status each link must start in, given its first status-changing event.

    A link whose first event brings it up starts down, and the other way round.
    Links without status events start up.
    """
    seen: set[str] = set()
    initial: list[NetworkEventPayload] = []
    for event in sorted_events:
        status = event.updated_status()
        if status is None or event.payload.link_id in seen:
            continue
        seen.add(event.payload.link_id)
        initial.append(NetworkEventPayload(event.payload.link_id, status=status.opposite()))

    initial.extend(
        NetworkEventPayload(link.id, status=UpdateLinkStatus.UP)
        for link in links
        if link.id not in seen
    )
    return initial


class NetworkEvents:
    """Events sorted by time, plus the initial link statuses they imply."""

    def __init__(
        self, events: Iterable[NetworkEvent], links: Sequence[NetworkLinkSpec]
    ) -> None:
        self.sorted_events: list[NetworkEvent] = sorted(
            events, key=lambda e: e.relative_time
        )
        self.initial_events: list[NetworkEventPayload] = initial_link_statuses(
            self.sorted_events, links
        )