"""Byte-capacity accounting for a node's outbound buffer."""

from __future__ import annotations

import threading


class OutboundBuffer:
    """Tracks free space in a node's outbound buffer."""

    def __init__(self, capacity_bytes: int) -> None:
        self._available = capacity_bytes
        self._lock = threading.Lock()

    @property
    def available(self) -> int:
        with self._lock:
            return self._available

    def reserve(self, data_size: int) -> bool:
        """Claim space for ``data_size`` bytes; return False if there is not enough."""
        with self._lock:
            if self._available < data_size:
                return False
            self._available -= data_size
            return True

    def release(self, data_size: int) -> None:
        """Give back space previously reserved."""
        with self._lock:
            self._available += data_size