import curio

from .. import gvars
from ..utils import show, udp_client_socket, udp_server_socket
from .base import RelayBase


class UdpRelay(RelayBase):
    """Relay client datagrams to the remote through one outbound socket.

    There is no per client state: the reply picked up in an iteration goes
    back to the client whose datagram that iteration forwarded. With
    ``reply_timeout`` unset the reply check never blocks, so a reply that
    arrives later is only collected by a later iteration. Set it to wait a
    bounded time for the reply instead.
    """

    proto = "UDP"
    outbound = None

    def __init__(self, listen, remote, *, reply_timeout=None, logger=None):
        super().__init__(listen, remote, logger)
        self.reply_timeout = reply_timeout

    def bind(self):
        if self.sock is None:
            self.sock = udp_server_socket(
                *self.listen.address, family=self.listen.family
            )
        if self.outbound is None:
            try:
                self.outbound = udp_client_socket(
                    self.remote.address, family=self.remote.family
                )
            except Exception:
                self.sock._socket.close()
                self.sock = None
                raise
        return self.sock

    async def close(self):
        if self.outbound:
            await self.outbound.close()
            self.outbound = None
        await super().close()

    async def serve(self):
        self.bind()
        self.logger.info(f"{self} listening")
        try:
            while True:
                try:
                    data, addr = await self.sock.recvfrom(gvars.UDP_PACKET_SIZE)
                    await self.forward(data, addr)
                except OSError as e:
                    self.logger.error(f"{self} {e!r}")
        finally:
            await self.close()

    async def forward(self, data, addr):
        await self.outbound.send(data)
        self.logger.debug(f"udp: {show(addr)} --> {self.remote_address} {len(data)}")
        reply = await self.receive_reply()
        if reply is None:
            return
        await self.sock.sendto(reply, addr)
        self.logger.debug(f"udp: {show(addr)} <-- {self.remote_address} {len(reply)}")

    async def receive_reply(self):
        if self.reply_timeout:
            return await curio.ignore_after(
                self.reply_timeout, self.outbound.recv(gvars.UDP_PACKET_SIZE)
            )
        try:
            return self.outbound._socket.recv(gvars.UDP_PACKET_SIZE)
        except BlockingIOError:
            return None

    def unbind(self):
        if self.outbound:
            self.outbound._socket.close()
            self.outbound = None
        super().unbind()
