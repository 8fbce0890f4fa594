import abc

from .. import gvars
from ..endpoint import Endpoint


class RelayBase(abc.ABC):
    sock = None

    def __init__(self, listen: Endpoint, remote: Endpoint, logger=None):
        self.listen = listen
        self.remote = remote
        self.logger = logger or gvars.logger

    @property
    @abc.abstractmethod
    def proto(self):
        ""

    @abc.abstractmethod
    def bind(self):
        "create and bind the listening socket, raises OSError"

    @abc.abstractmethod
    async def serve(self):
        ""

    @property
    def bound_addr(self):
        if self.sock is None:
            return self.listen.address
        host, port, *_ = self.sock._socket.getsockname()
        return (host, port)

    @property
    def bind_address(self) -> str:
        return f"{self.bound_addr[0]}:{self.bound_addr[1]}"

    @property
    def remote_address(self) -> str:
        return f"{self.remote.host}:{self.remote.port}"

    def __repr__(self):
        return f"{self.__class__.__name__}({self})"

    def __str__(self):
        return f"{self.proto} -- {self.bind_address} -- {self.remote_address}"

    async def close(self):
        if self.sock:
            await self.sock.close()
            self.sock = None

    def unbind(self):
        "close the listening socket outside of a running kernel"
        if self.sock:
            self.sock._socket.close()
            self.sock = None
