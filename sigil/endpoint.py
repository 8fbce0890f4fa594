import socket
import typing

from .utils import parse_addr

TCP = "tcp"
UDP = "udp"
socket_types = {TCP: socket.SOCK_STREAM, UDP: socket.SOCK_DGRAM}


class Endpoint(typing.NamedTuple):
    host: str
    port: int
    transport: str = TCP
    family: int = socket.AF_INET

    @property
    def address(self):
        return (self.host, self.port)

    def __str__(self):
        if self.family == socket.AF_INET6:
            return f"{self.transport}://[{self.host}]:{self.port}"
        return f"{self.transport}://{self.host}:{self.port}"


def resolve(s: str, transport: str = TCP) -> Endpoint:
    """Resolve ``host:port`` text into an Endpoint.

    An empty host means every interface. Raises ValueError for malformed
    text and socket.gaierror when the host does not resolve.
    """
    if transport not in socket_types:
        raise ValueError(f"unknown transport: {transport}")
    host, port = parse_addr(s)
    infos = socket.getaddrinfo(host, port, 0, socket_types[transport])
    family, _, _, _, sockaddr = infos[0]
    return Endpoint(sockaddr[0], sockaddr[1], transport, family)
