"""IPv4 addresses with a network prefix (CIDR notation)."""

from __future__ import annotations

import ipaddress
import re
from dataclasses import dataclass
from ipaddress import IPv4Address

_PREFIX_RE = re.compile(r"\+?[0-9]+")


@dataclass(frozen=True)
class Ipv4Cidr:
    """An IPv4 address together with its network prefix length."""

    address: IPv4Address
    network_prefix: int

    def __post_init__(self) -> None:
        if not isinstance(self.address, IPv4Address):
            object.__setattr__(self, "address", IPv4Address(self.address))

    @classmethod
    def parse(cls, text: str) -> Ipv4Cidr:
        """Parse ``a.b.c.d[/prefix]``; a missing prefix means ``/32``."""
        parts = text.split("/")
        try:
            base_ip = ipaddress.ip_address(parts[0])
        except ValueError as exc:
            raise ValueError(f"invalid ip address in ip range: {parts[0]!r}") from exc

        if not isinstance(base_ip, IPv4Address):
            raise ValueError("only IPv4 supported at the moment")

        prefix_text = parts[1] if len(parts) > 1 else "32"
        if not _PREFIX_RE.fullmatch(prefix_text):
            raise ValueError(
                "the provided network prefix is not a valid unsigned integer"
            )
        network_prefix = int(prefix_text)
        if network_prefix == 0:
            raise ValueError("network prefix cannot be 0")
        if network_prefix > 32:
            raise ValueError("network prefix cannot be higher than 32")

        if len(parts) > 2:
            raise ValueError("ip range contains trailing characters")

        return cls(base_ip, network_prefix)

    def as_ip_addr(self) -> IPv4Address:
        """Return the address without its prefix."""
        return self.address

    def __str__(self) -> str:
        return f"{self.address}/{self.network_prefix}"