import struct
from ipaddress import IPv4Address

import pytest

from netbench.packets import (
    build_ethernet_frame,
    build_ipv4_packet,
    build_udp_datagram,
    hex_preview,
    internet_checksum,
)

SRC = ("1.1.1.1", 8080)
DST = ("88.88.88.88", 8080)


def test_checksum_worked_example():
    header = bytes.fromhex("450000730000400040110000c0a80001c0a800c7")
    assert internet_checksum(header) == 0xB861


def test_checksum_of_data_with_checksum_is_zero():
    header = bytearray(bytes.fromhex("450000730000400040110000c0a80001c0a800c7"))
    header[10:12] = struct.pack("!H", internet_checksum(bytes(header)))
    assert internet_checksum(bytes(header)) == 0


def test_checksum_pads_odd_length():
    assert internet_checksum(b"\x12\x34\x56") == internet_checksum(b"\x12\x34\x56\x00")


def test_udp_datagram_header_fields():
    datagram = build_udp_datagram(SRC, DST, b"hello world")
    src_port, dst_port, length, _ = struct.unpack("!HHHH", datagram[:8])
    assert (src_port, dst_port) == (8080, 8080)
    assert length == 8 + 11
    assert datagram[8:] == b"hello world"


def test_udp_checksum_verifies_with_pseudo_header():
    payload = b"\x2a" * 33
    datagram = build_udp_datagram(SRC, DST, payload)
    pseudo = (
        IPv4Address(SRC[0]).packed
        + IPv4Address(DST[0]).packed
        + struct.pack("!BBH", 0, 17, len(datagram))
    )
    assert internet_checksum(pseudo + datagram) == 0


def test_udp_rejects_ipv6():
    with pytest.raises(ValueError):
        build_udp_datagram(("::1", 1), DST, b"x")


def test_ipv4_packet_fields():
    udp = build_udp_datagram(SRC, DST, b"abc")
    packet = build_ipv4_packet(IPv4Address("1.1.1.1"), "88.88.88.88", udp, 0b10)
    assert packet[0] == 0x45
    assert packet[1] & 0b11 == 0b10
    assert struct.unpack("!H", packet[2:4])[0] == 20 + len(udp)
    assert packet[6] == 0x40 and packet[7] == 0
    assert packet[8] == 64
    assert packet[9] == 17
    assert packet[12:16] == IPv4Address("1.1.1.1").packed
    assert packet[16:20] == IPv4Address("88.88.88.88").packed
    assert packet[20:] == udp
    assert internet_checksum(packet[:20]) == 0


def test_ipv4_missing_ecn_is_zero():
    packet = build_ipv4_packet("10.0.0.1", "10.0.0.2", b"", None)
    assert packet[1] == 0
    assert len(packet) == 20


def test_ipv4_rejects_bad_ecn():
    with pytest.raises(ValueError):
        build_ipv4_packet("10.0.0.1", "10.0.0.2", b"", 4)


def test_ethernet_frame_layout():
    payload = b"quic payload"
    frame = build_ethernet_frame(SRC, DST, payload)
    assert frame[:12] == bytes(12)
    assert frame[12:14] == b"\x08\x00"
    udp = build_udp_datagram(SRC, DST, payload)
    assert frame[14:] == build_ipv4_packet(SRC[0], DST[0], udp, 0)
    assert len(frame) == 14 + 20 + 8 + len(payload)


def test_hex_preview_empty():
    assert hex_preview(b"", 32) == "(empty)"


def test_hex_preview_short():
    assert hex_preview(b"\x01\xab", 32) == "01 ab (2 bytes)"


def test_hex_preview_truncated():
    assert hex_preview(b"\x00\x01\x02\x03", 2) == "00 01 ... (4 bytes total)"