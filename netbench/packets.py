"""Wire-format helpers: Internet checksum, UDP, IPv4 and Ethernet framing."""

from __future__ import annotations

import ipaddress
import struct
from ipaddress import IPv4Address
from typing import Optional, Tuple, Union

AddressLike = Union[str, IPv4Address]
SocketAddress = Tuple[AddressLike, int]

UDP_HEADER_SIZE = 8
IPV4_HEADER_SIZE = 20
ETHERNET_HEADER_SIZE = 14

_UDP_PROTOCOL = 17
_DEFAULT_TTL = 64
_DONT_FRAGMENT_FLAGS = 0b010
_ETHERTYPE_IPV4 = b"\x08\x00"
_ZERO_MAC = bytes(6)
_MAX_U16 = 0xFFFF


def _ipv4(value: AddressLike) -> IPv4Address:
    address = value if isinstance(value, IPv4Address) else ipaddress.ip_address(value)
    if not isinstance(address, IPv4Address):
        raise ValueError(f"only IPv4 addresses are supported, got {address}")
    return address


def _socket_address(value: SocketAddress) -> tuple[IPv4Address, int]:
    ip, port = value
    if not 0 <= port <= _MAX_U16:
        raise ValueError(f"invalid port: {port}")
    return _ipv4(ip), port


def internet_checksum(data: bytes) -> int:
    """Ones' complement of the ones' complement sum of 16-bit big-endian words."""
    if len(data) % 2:
        data = bytes(data) + b"\x00"
    total = sum(word for (word,) in struct.iter_unpack("!H", data))
    while total > _MAX_U16:
        total = (total & _MAX_U16) + (total >> 16)
    return ~total & _MAX_U16


def build_udp_datagram(
    source: SocketAddress, destination: SocketAddress, payload: bytes
) -> bytes:
    """Wrap ``payload`` in a UDP header with an IPv4 pseudo-header checksum."""
    source_ip, source_port = _socket_address(source)
    destination_ip, destination_port = _socket_address(destination)
    length = UDP_HEADER_SIZE + len(payload)
    if length > _MAX_U16:
        raise ValueError(f"UDP payload too large: {len(payload)} bytes")

    header = struct.pack("!HHHH", source_port, destination_port, length, 0)
    pseudo_header = (
        source_ip.packed
        + destination_ip.packed
        + struct.pack("!BBH", 0, _UDP_PROTOCOL, length)
    )
    checksum = internet_checksum(pseudo_header + header + bytes(payload))
    return header[:6] + struct.pack("!H", checksum) + bytes(payload)


def build_ipv4_packet(
    source: AddressLike,
    destination: AddressLike,
    payload: bytes,
    ecn: Optional[int] = None,
) -> bytes:
    """Wrap a UDP datagram in an IPv4 header without options, never fragmented."""
    source_ip = _ipv4(source)
    destination_ip = _ipv4(destination)
    ecn_bits = 0 if ecn is None else int(ecn)
    if not 0 <= ecn_bits <= 0b11:
        raise ValueError(f"invalid ECN codepoint: {ecn_bits}")
    total_length = IPV4_HEADER_SIZE + len(payload)
    if total_length > _MAX_U16:
        raise ValueError(f"IPv4 payload too large: {len(payload)} bytes")

    version_ihl = (4 << 4) | (IPV4_HEADER_SIZE // 4)
    dscp = 0
    tos = (dscp << 2) | ecn_bits
    flags_fragment = _DONT_FRAGMENT_FLAGS << 13
    header = struct.pack(
        "!BBHHHBBH4s4s",
        version_ihl,
        tos,
        total_length,
        0,
        flags_fragment,
        _DEFAULT_TTL,
        _UDP_PROTOCOL,
        0,
        source_ip.packed,
        destination_ip.packed,
    )
    checksum = internet_checksum(header)
    return header[:10] + struct.pack("!H", checksum) + header[12:] + bytes(payload)


def build_ethernet_frame(
    source: SocketAddress, destination: SocketAddress, payload: bytes
) -> bytes:
    """Build an Ethernet+IPv4+UDP frame around ``payload`` with zeroed MAC addresses."""
    source_ip, _ = _socket_address(source)
    destination_ip, _ = _socket_address(destination)
    udp = build_udp_datagram(source, destination, payload)
    ip_packet = build_ipv4_packet(source_ip, destination_ip, udp, 0)
    return _ZERO_MAC + _ZERO_MAC + _ETHERTYPE_IPV4 + ip_packet


def hex_preview(data: bytes, max_bytes: int) -> str:
    """Format bytes as space-separated hex, truncated to ``max_bytes``."""
    if not data:
        return "(empty)"
    shown = " ".join(f"{b:02x}" for b in data[:max_bytes])
    if len(data) > max_bytes:
        return f"{shown} ... ({len(data)} bytes total)"
    return f"{shown} ({len(data)} bytes)"