"""Declarative description of a simulated network."""

from __future__ import annotations

import enum
from dataclasses import dataclass, field
from datetime import timedelta
from ipaddress import IPv4Address

from netbench.ip import Ipv4Cidr
from netbench.route import IpAddress, Route


class NodeKind(enum.Enum):
    HOST = "host"
    ROUTER = "router"


@dataclass
class NetworkInterface:
    addresses: list[Ipv4Cidr] = field(default_factory=list)
    routes: list[Route] = field(default_factory=list)


@dataclass
class NetworkNodeSpec:
    id: str
    kind: NodeKind
    interfaces: list[NetworkInterface] = field(default_factory=list)
    buffer_size_bytes: int = 0
    packet_loss_ratio: float = 0.0
    packet_duplication_ratio: float = 0.0

    def addresses(self) -> list[IPv4Address]:
        """All interface addresses of this node, in interface order."""
        return [
            cidr.as_ip_addr()
            for interface in self.interfaces
            for cidr in interface.addresses
        ]


@dataclass
class NetworkLinkSpec:
    id: str
    source: IpAddress
    target: IpAddress
    delay: timedelta
    bandwidth_bps: int
    congestion_event_ratio: float = 0.0
    extra_delay: timedelta = field(default_factory=timedelta)
    extra_delay_ratio: float = 0.0


@dataclass
class NetworkSpec:
    nodes: list[NetworkNodeSpec] = field(default_factory=list)
    links: list[NetworkLinkSpec] = field(default_factory=list)