"""Packets in flight towards a node, released in order of arrival time."""

from __future__ import annotations

import heapq
import itertools
from dataclasses import dataclass, field
from datetime import timedelta
from typing import Any, Optional


@dataclass
class DeliveredTransmit:
    """A packet that has reached the end of its delay, with the time it was sent."""

    data: Any
    sent: timedelta


@dataclass(order=True)
class _Pending:
    arrival: timedelta
    number: int
    sequence: int
    sent: timedelta = field(compare=False)
    data: Any = field(compare=False)


class InboundQueue:
    """Priority queue of in-transit data ordered by arrival time.

    Packets arriving at the same instant are ordered by their ``number``
    attribute, so every queued item must carry one. Times are offsets from
    the start of the simulation.
    """

    def __init__(self) -> None:
        self._heap: list[_Pending] = []
        self._sequence = itertools.count()

    def __len__(self) -> int:
        return len(self._heap)

    def send(self, data: Any, delay: timedelta, now: timedelta) -> None:
        """Enqueue ``data``, sent at ``now``, to arrive after ``delay``."""
        heapq.heappush(
            self._heap,
            _Pending(
                arrival=now + delay,
                number=data.number,
                sequence=next(self._sequence),
                sent=now,
                data=data,
            ),
        )

    def next_arrival_time(self) -> Optional[timedelta]:
        """Arrival time of the next packet, or None if the queue is empty."""
        return self._heap[0].arrival if self._heap else None

    def deliver(self, now: timedelta, max_transmits: int) -> list[DeliveredTransmit]:
        """Remove and return up to ``max_transmits`` packets that have arrived by ``now``."""
        delivered: list[DeliveredTransmit] = []
        while (
            len(delivered) < max_transmits
            and self._heap
            and self._heap[0].arrival <= now
        ):
            pending = heapq.heappop(self._heap)
            delivered.append(DeliveredTransmit(data=pending.data, sent=pending.sent))
        return delivered