"""Address ranges and routing table entries."""

from __future__ import annotations

import ipaddress
from dataclasses import dataclass
from ipaddress import IPv4Address, IPv6Address
from typing import Union

from netbench.ip import Ipv4Cidr

IpAddress = Union[IPv4Address, IPv6Address]

_ALL_ONES = 0xFFFFFFFF


def _as_ip(value) -> IpAddress:
    if isinstance(value, (IPv4Address, IPv6Address)):
        return value
    return ipaddress.ip_address(value)


@dataclass(frozen=True)
class IpRange:
    """An inclusive range of IP addresses."""

    start: IpAddress
    end_inclusive: IpAddress

    @classmethod
    def from_cidr(cls, cidr: Ipv4Cidr) -> IpRange:
        base = int(cidr.address)
        mask = (_ALL_ONES << (32 - cidr.network_prefix)) & _ALL_ONES
        return cls(
            start=IPv4Address(base & mask),
            end_inclusive=IPv4Address(base | (~mask & _ALL_ONES)),
        )

    @classmethod
    def parse(cls, text: str) -> IpRange:
        """Parse a range written in CIDR syntax, e.g. ``10.0.0.0/24``."""
        return cls.from_cidr(Ipv4Cidr.parse(text))

    def __contains__(self, ip) -> bool:
        ip = _as_ip(ip)
        if ip.version != self.start.version or ip.version != self.end_inclusive.version:
            # IPv4 addresses sort before IPv6 addresses
            return self.start.version <= ip.version <= self.end_inclusive.version and (
                self.start.version != self.end_inclusive.version
            )
        return self.start <= ip <= self.end_inclusive


@dataclass(frozen=True)
class Route:
    """A routing entry: packets for ``destination`` go to ``next``."""

    destination: IpRange
    next: IpAddress
    cost: int = 0

    def __post_init__(self) -> None:
        object.__setattr__(self, "next", _as_ip(self.next))

    def next_hop_towards_destination(self, ip) -> IpAddress | None:
        """Return the next hop if ``ip`` is covered by this route, else None."""
        return self.next if ip in self.destination else None