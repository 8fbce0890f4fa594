import time

import curio
import pylru

from .. import gvars
from ..utils import show, udp_client_socket, udp_server_socket
from .udp import UdpRelay


class UDPMapping:
    "outbound socket of one client, replies are sent back to that client only"

    def __init__(self, remote, client_addr, logger=None):
        self.remote = remote
        self.client_addr = client_addr
        self.logger = logger or gvars.logger
        self.sock = udp_client_socket(remote.address, family=remote.family)
        self.last_active = time.monotonic()
        self._task = None

    def __str__(self):
        return f"{show(self.client_addr)} -- UDP -- {show(self.remote.address)}"

    def idle_for(self, now=None):
        return (now or time.monotonic()) - self.last_active

    async def send(self, data):
        self.last_active = time.monotonic()
        await self.sock.send(data)

    async def close(self):
        if self._task:
            await self._task.cancel()
            self._task = None
        await self.sock.close()

    async def relay(self, sendback):
        if self._task is None:
            self._task = await curio.spawn(self._relay, sendback, daemon=True)

    async def _relay(self, sendback):
        try:
            while True:
                try:
                    data = await self.sock.recv(gvars.UDP_PACKET_SIZE)
                    self.last_active = time.monotonic()
                    await sendback(data, self.client_addr)
                except OSError as e:
                    self.logger.error(f"{self} {e!r}")
        except curio.errors.CancelledError:
            pass


class UdpSessionRelay(UdpRelay):
    """Per client variant of UdpRelay.

    Every client address gets its own UDPMapping, kept in a lru cache of
    ``capacity`` entries; mappings idle for ``idle_timeout`` seconds are
    closed by a sweeper task.
    """

    proto = "UDP(SESSION)"

    def __init__(
        self,
        listen,
        remote,
        *,
        capacity=gvars.udp_sessions,
        idle_timeout=gvars.udp_idle_timeout,
        logger=None,
    ):
        super().__init__(listen, remote, logger=logger)
        self.idle_timeout = idle_timeout
        self.removed = []

        def callback(key, value):
            self.removed.append(value)

        self.mappings = pylru.lrucache(capacity, callback)

    def bind(self):
        # outbound sockets are created per client
        if self.sock is None:
            self.sock = udp_server_socket(
                *self.listen.address, family=self.listen.family
            )
        return self.sock

    async def serve(self):
        self.bind()
        sweeper = await curio.spawn(self._sweep, daemon=True)
        try:
            await super().serve()
        finally:
            await sweeper.cancel()
            for mapping in list(self.mappings.values()) + self.removed:
                await mapping.close()
            self.mappings.clear()
            self.removed.clear()

    async def forward(self, data, addr):
        if addr not in self.mappings:
            self.mappings[addr] = UDPMapping(self.remote, addr, self.logger)
            await self._close_removed()
        mapping = self.mappings[addr]
        await mapping.send(data)
        self.logger.debug(f"udp: {show(addr)} --> {self.remote_address} {len(data)}")
        await mapping.relay(self.sock.sendto)

    async def _close_removed(self):
        while self.removed:
            mapping = self.removed.pop()
            self.logger.debug(f"{mapping} evicted")
            await mapping.close()

    async def _sweep(self):
        interval = max(self.idle_timeout / 2, 0.01)
        while True:
            await curio.sleep(interval)
            now = time.monotonic()
            for addr, mapping in list(self.mappings.items()):
                if mapping.idle_for(now) >= self.idle_timeout:
                    del self.mappings[addr]
                    self.logger.debug(f"{mapping} idle")
                    await mapping.close()
