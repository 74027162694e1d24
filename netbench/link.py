"""A one-directional link between two addresses, with pacing and delay."""

from __future__ import annotations

import enum
import math
from datetime import timedelta
from typing import Any, Optional

from netbench.event import UpdateLinkStatus
from netbench.inbound_queue import DeliveredTransmit, InboundQueue
from netbench.route import IpAddress
from netbench.spec import NetworkLinkSpec


class LinkStatus(enum.Enum):
    UP = "UP"
    DOWN = "DOWN"


class PacketPacer:
    """Ensures that only a single packet at a time is being put on the wire."""

    def __init__(self, bandwidth_bps: int) -> None:
        if bandwidth_bps <= 0:
            raise ValueError(f"bandwidth must be positive, got {bandwidth_bps}")
        self.bandwidth_bps = float(bandwidth_bps)
        self._send_done: Optional[timedelta] = None

    def can_send(self, now: timedelta) -> bool:
        return self._send_done is None or self._send_done <= now

    def duration_until_can_send(self, now: timedelta) -> timedelta:
        if self._send_done is None:
            return timedelta()
        return max(self._send_done - now, timedelta())

    def track_send(self, now: timedelta, packet_size_bytes: int) -> None:
        """Record a send at ``now``; the link is busy until the packet is fully out."""
        send_duration_ms = packet_size_bytes * 8 / self.bandwidth_bps * 1000.0
        self._send_done = now + timedelta(milliseconds=math.ceil(send_duration_ms))


class NetworkLink:
    """A link that delays packets and limits them to its bandwidth."""

    def __init__(
        self,
        id: str,
        target: IpAddress,
        delay: timedelta,
        bandwidth_bps: int,
        congestion_event_ratio: float = 0.0,
        extra_delay: timedelta = timedelta(),
        extra_delay_ratio: float = 0.0,
    ) -> None:
        self.id = id
        self.target = target
        self.delay = delay
        self.bandwidth_bps = bandwidth_bps
        self.congestion_event_ratio = congestion_event_ratio
        self.extra_delay = extra_delay
        self.extra_delay_ratio = extra_delay_ratio
        self.status = LinkStatus.UP
        self.last_down: Optional[timedelta] = None
        self.pacer = PacketPacer(bandwidth_bps)
        self.in_transit = InboundQueue()

    @classmethod
    def from_spec(cls, spec: NetworkLinkSpec) -> NetworkLink:
        return cls(
            id=spec.id,
            target=spec.target,
            delay=spec.delay,
            bandwidth_bps=spec.bandwidth_bps,
            congestion_event_ratio=spec.congestion_event_ratio,
            extra_delay=spec.extra_delay,
            extra_delay_ratio=spec.extra_delay_ratio,
        )

    def was_down_after(self, instant: timedelta) -> bool:
        """Whether the link went down later than ``instant``."""
        return self.last_down is not None and self.last_down > instant

    def status_str(self) -> str:
        return self.status.value

    def update_status(self, update: UpdateLinkStatus, now: timedelta) -> bool:
        """Apply a status update; return True if the status actually changed.

        Packets already in flight are not touched here: the forwarding side
        drops them by checking ``was_down_after``.
        """
        if update is UpdateLinkStatus.DOWN:
            if self.status is LinkStatus.DOWN:
                return False
            self.status = LinkStatus.DOWN
            self.last_down = now
            return True
        if self.status is LinkStatus.UP:
            return False
        self.status = LinkStatus.UP
        return True

    def has_bandwidth_available(self, now: timedelta) -> bool:
        if self.status is LinkStatus.DOWN:
            return False
        return self.pacer.can_send(now)

    def send(
        self,
        data: Any,
        packet_size: int,
        extra_delay: timedelta,
        now: timedelta,
    ) -> None:
        """Put ``data`` on the link; it arrives after the link delay plus ``extra_delay``."""
        if not self.pacer.can_send(now):
            raise RuntimeError(f"link {self.id} is still busy sending a previous packet")
        if self.status is not LinkStatus.UP:
            raise RuntimeError(f"link {self.id} is down")
        self.pacer.track_send(now, packet_size)
        self.in_transit.send(data, self.delay + extra_delay, now)

    def next_delivered_packets(
        self, now: timedelta, max_transmits: int
    ) -> list[DeliveredTransmit]:
        """Packets that have crossed the link by ``now``."""
        return self.in_transit.deliver(now, max_transmits)