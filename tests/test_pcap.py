import io
import struct
from datetime import timedelta

import pytest

from netbench.packets import build_ipv4_packet, build_udp_datagram
from netbench.pcap import (
    FileBasedPcapExporterFactory,
    NoOpPcapExporterFactory,
    PcapExporter,
    correct_timestamp,
)

SOURCE = ("10.0.0.1", 8080)
DESTINATION = ("10.0.0.2", 8080)


class FakeClock:
    def __init__(self):
        self.now = timedelta()

    def __call__(self):
        return self.now


def parse_blocks(data):
    blocks = []
    offset = 0
    while offset < len(data):
        block_type, total = struct.unpack_from(">II", data, offset)
        body = data[offset + 8 : offset + total - 4]
        (trailer,) = struct.unpack_from(">I", data, offset + total - 4)
        assert trailer == total
        blocks.append((block_type, body))
        offset += total
    return blocks


def test_correct_timestamp_scales_down_by_thousand():
    elapsed = timedelta(seconds=1.5)
    assert correct_timestamp(elapsed) * 1000 == elapsed


def test_correct_timestamp_rounds_to_nearest_millisecond():
    assert correct_timestamp(timedelta(microseconds=1_499_600)) == correct_timestamp(
        timedelta(milliseconds=1500)
    )
    assert correct_timestamp(timedelta(microseconds=1_500_400)) == correct_timestamp(
        timedelta(milliseconds=1500)
    )


def test_headers_written_on_creation():
    buffer = io.BytesIO()
    PcapExporter(buffer, FakeClock())
    blocks = parse_blocks(buffer.getvalue())
    assert len(blocks) == 2

    shb_type, shb_body = blocks[0]
    assert shb_type == 0x0A0D0D0A
    magic, major, minor, section_length = struct.unpack(">IHHq", shb_body)
    assert magic == 0x1A2B3C4D
    assert (major, minor, section_length) == (1, 0, 0)

    idb_type, idb_body = blocks[1]
    assert idb_type == 1
    linktype, reserved, snaplen = struct.unpack(">HHI", idb_body)
    assert linktype == 228
    assert reserved == 0
    assert snaplen == 65535


def test_track_transmit_writes_ip_packet():
    buffer = io.BytesIO()
    clock = FakeClock()
    exporter = PcapExporter(buffer, clock)
    clock.now = timedelta(seconds=2)
    exporter.track_transmit(SOURCE, DESTINATION, b"hello", 2)

    blocks = parse_blocks(buffer.getvalue())
    assert len(blocks) == 3
    epb_type, body = blocks[2]
    assert epb_type == 6
    interface_id, hi, lo, captured, original = struct.unpack_from(">IIIII", body)
    assert interface_id == 0

    expected = build_ipv4_packet(
        SOURCE[0], DESTINATION[0], build_udp_datagram(SOURCE, DESTINATION, b"hello"), 2
    )
    assert captured == original == len(expected)
    assert body[20 : 20 + captured] == expected
    assert (len(body) - 20) % 4 == 0

    nanos = (hi << 32) | lo
    assert timedelta(microseconds=nanos // 1000) == correct_timestamp(
        timedelta(seconds=2)
    )
    assert exporter.total_tracked_packets == 1


def test_multiple_transmits_counted():
    buffer = io.BytesIO()
    exporter = PcapExporter(buffer, FakeClock())
    for _ in range(3):
        exporter.track_transmit(SOURCE, DESTINATION, b"x")
    assert exporter.total_tracked_packets == 3
    assert len(parse_blocks(buffer.getvalue())) == 5


def test_ipv6_source_rejected():
    exporter = PcapExporter(io.BytesIO(), FakeClock())
    with pytest.raises(ValueError):
        exporter.track_transmit(("::1", 8080), DESTINATION, b"x")


def test_noop_factory_discards_output():
    exporter = NoOpPcapExporterFactory().create_pcap_exporter_for_node("node")
    exporter.track_transmit(SOURCE, DESTINATION, b"data")
    exporter.flush()
    assert exporter.total_tracked_packets == 1


def test_file_based_factory_creates_node_file(tmp_path):
    factory = FileBasedPcapExporterFactory(str(tmp_path), FakeClock())
    exporter = factory.create_pcap_exporter_for_node("router1")
    exporter.track_transmit(SOURCE, DESTINATION, b"payload")
    exporter.close()

    data = (tmp_path / "router1.pcap").read_bytes()
    blocks = parse_blocks(data)
    assert [block_type for block_type, _ in blocks] == [0x0A0D0D0A, 1, 6]


def test_file_based_factory_missing_directory(tmp_path):
    factory = FileBasedPcapExporterFactory(str(tmp_path / "missing"))
    with pytest.raises(OSError, match="failed to open"):
        factory.create_pcap_exporter_for_node("host")