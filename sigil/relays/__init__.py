from .tcp import TcpRelay, TcpSession
from .udp import UdpRelay
from .udpsession import UDPMapping, UdpSessionRelay

__all__ = ["TcpRelay", "TcpSession", "UdpRelay", "UdpSessionRelay", "UDPMapping"]
