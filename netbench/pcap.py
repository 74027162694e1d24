"""Packet capture export in the pcapng format."""

from __future__ import annotations

import abc
import io
import math
import os
import struct
import threading
import time
from datetime import timedelta
from typing import BinaryIO, Callable, Optional

from netbench.packets import SocketAddress, build_ipv4_packet, build_udp_datagram

LINKTYPE_IPV4 = 228
SNAPLEN = 65535

_SECTION_HEADER_BLOCK = 0x0A0D0D0A
_INTERFACE_DESCRIPTION_BLOCK = 0x00000001
_ENHANCED_PACKET_BLOCK = 0x00000006
_BYTE_ORDER_MAGIC = 0x1A2B3C4D
_MAJOR_VERSION = 1
_MINOR_VERSION = 0

Clock = Callable[[], timedelta]


def _monotonic() -> timedelta:
    return timedelta(seconds=time.monotonic())


def correct_timestamp(elapsed: timedelta) -> timedelta:
    """Round ``elapsed`` to the millisecond and scale it down by a factor of 1000.

    The stored timestamps are interpreted at a resolution a thousand times
    finer than the one they are written in, so the scaling compensates.
    """
    millis = math.floor(elapsed.total_seconds() * 1000.0 + 0.5)
    return timedelta(microseconds=millis)


def _block(block_type: int, body: bytes) -> bytes:
    total_length = 12 + len(body)
    return (
        struct.pack(">II", block_type, total_length)
        + body
        + struct.pack(">I", total_length)
    )


def _padded(data: bytes) -> bytes:
    return data + bytes(-len(data) % 4)


class _Sink(io.RawIOBase):
    """A writable stream that discards everything written to it."""

    def writable(self) -> bool:
        return True

    def write(self, data) -> int:
        return len(data)


class PcapExporter:
    """Writes every tracked transmit as an IPv4/UDP packet into a pcapng stream."""

    def __init__(self, writer: BinaryIO, clock: Optional[Clock] = None) -> None:
        self._writer = writer
        self._clock = clock or _monotonic
        self._lock = threading.Lock()
        self.total_tracked_packets = 0

        section_header = struct.pack(
            ">IHHq", _BYTE_ORDER_MAGIC, _MAJOR_VERSION, _MINOR_VERSION, 0
        )
        interface_description = struct.pack(">HHI", LINKTYPE_IPV4, 0, SNAPLEN)
        self._writer.write(_block(_SECTION_HEADER_BLOCK, section_header))
        self._writer.write(_block(_INTERFACE_DESCRIPTION_BLOCK, interface_description))
        self.capture_start = self._clock()

    @classmethod
    def noop(cls) -> PcapExporter:
        """An exporter whose output goes nowhere."""
        return cls(_Sink())

    def flush(self) -> None:
        with self._lock:
            self._writer.flush()

    def close(self) -> None:
        """Flush and close the underlying writer, if it can be closed."""
        with self._lock:
            self._writer.flush()
            close = getattr(self._writer, "close", None)
            if close is not None:
                close()

    def __enter__(self) -> PcapExporter:
        return self

    def __exit__(self, *exc_info) -> None:
        self.close()

    def track_transmit(
        self,
        source_addr: SocketAddress,
        destination_addr: SocketAddress,
        contents: bytes,
        ecn: Optional[int] = None,
    ) -> None:
        """Record a UDP payload sent from ``source_addr`` to ``destination_addr``."""
        udp_datagram = build_udp_datagram(source_addr, destination_addr, contents)
        ip_packet = build_ipv4_packet(
            source_addr[0], destination_addr[0], udp_datagram, ecn
        )

        with self._lock:
            self.total_tracked_packets += 1
            timestamp = correct_timestamp(self._clock() - self.capture_start)
            nanos = (timestamp // timedelta(microseconds=1)) * 1000
            body = (
                struct.pack(
                    ">IIIII",
                    0,
                    (nanos >> 32) & 0xFFFFFFFF,
                    nanos & 0xFFFFFFFF,
                    len(ip_packet),
                    len(ip_packet),
                )
                + _padded(ip_packet)
            )
            self._writer.write(_block(_ENHANCED_PACKET_BLOCK, body))


class PcapExporterFactory(abc.ABC):
    """Creates one exporter per network node."""

    @abc.abstractmethod
    def create_pcap_exporter_for_node(self, node_id: str) -> PcapExporter:
        raise NotImplementedError


class NoOpPcapExporterFactory(PcapExporterFactory):
    def create_pcap_exporter_for_node(self, node_id: str) -> PcapExporter:
        return PcapExporter.noop()


class FileBasedPcapExporterFactory(PcapExporterFactory):
    """Writes the capture of each node to ``<node_id>.pcap``."""

    def __init__(self, directory: str = ".", clock: Optional[Clock] = None) -> None:
        self.directory = directory
        self.clock = clock

    def create_pcap_exporter_for_node(self, node_id: str) -> PcapExporter:
        file_name = os.path.join(self.directory, f"{node_id}.pcap")
        try:
            pcap_file = open(file_name, "wb")
        except OSError as exc:
            raise OSError(f"failed to open {file_name} for writing") from exc
        return PcapExporter(pcap_file, self.clock)