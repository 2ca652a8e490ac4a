"""
Remote address of an accepted connection.

accept() hands back a family-specific sockaddr tuple:

    AF_INET   ("192.168.1.50", 54321)
    AF_INET6  ("::1", 54321, flowinfo, scope_id)

RemoteAddress turns either shape into one tagged value, and
format_address() is the single place that knows how each family is
rendered.
"""

import socket
from dataclasses import dataclass
from enum import Enum


class AddressFamily(Enum):
    """Which kind of IP address a RemoteAddress holds."""

    IPV4 = "ipv4"
    IPV6 = "ipv6"


@dataclass(frozen=True)
class RemoteAddress:
    """
    A peer's IP address and port, tagged with its family.

    Attributes:
        family: IPV4 or IPV6.
        host: Textual IP address, without brackets.
        port: TCP port on the peer's side.
    """

    family: AddressFamily
    host: str
    port: int

    @classmethod
    def from_sockaddr(cls, family: int, sockaddr: tuple) -> "RemoteAddress":
        """
        Build a RemoteAddress from what socket.accept() returned.

        Args:
            family: The socket's address family (socket.AF_INET / AF_INET6).
            sockaddr: The address tuple from accept().

        Raises:
            ValueError: For any family other than IPv4 or IPv6.
        """
        if family == socket.AF_INET:
            return cls(AddressFamily.IPV4, sockaddr[0], sockaddr[1])
        if family == socket.AF_INET6:
            return cls(AddressFamily.IPV6, sockaddr[0], sockaddr[1])
        raise ValueError(f"Unsupported address family: {family!r}")

    def __str__(self) -> str:
        return format_address(self)


def format_address(address: RemoteAddress, include_port: bool = True) -> str:
    """
    Render an address for log notices.

        IPV4  ->  203.0.113.7:40312
        IPV6  ->  [2001:db8::1]:40312

    Args:
        address: The address to render.
        include_port: False renders the bare IP, like inet_ntop().
    """
    if address.family is AddressFamily.IPV4:
        if not include_port:
            return address.host
        return f"{address.host}:{address.port}"

    if address.family is AddressFamily.IPV6:
        if not include_port:
            return address.host
        return f"[{address.host}]:{address.port}"

    raise ValueError(f"Unknown address family: {address.family!r}")
