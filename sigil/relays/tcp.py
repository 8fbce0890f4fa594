import curio
from curio import socket

from .. import gvars
from ..utils import human_bytes, show
from .base import RelayBase


class TcpSession:
    """One forwarded tcp connection.

    Owns the accepted client socket and the outbound socket to the remote;
    both are closed by ``close()`` whatever way the session ends.
    """

    remote_sock = None

    def __init__(self, client, client_addr, remote, logger=None):
        self.client = client
        self.client_addr = client_addr
        self.remote = remote
        self.logger = logger or gvars.logger
        self.upstream = 0
        self.downstream = 0

    def __repr__(self):
        return f"{self.__class__.__name__}({self})"

    def __str__(self):
        return f"{show(self.client_addr)} -- TCP -- {show(self.remote.address)}"

    async def __aenter__(self):
        return self

    async def __aexit__(self, et, e, tb):
        await self.close()

    async def close(self):
        if self.remote_sock:
            await self.remote_sock.close()
            self.remote_sock = None
        if self.client:
            await self.client.close()
            self.client = None

    async def run(self):
        self.remote_sock = await curio.open_connection(*self.remote.address)
        self.logger.info(f"{self} connected")
        async with curio.TaskGroup() as g:
            up = await g.spawn(self._pump, self.client, self.remote_sock, "upstream")
            down = await g.spawn(
                self._pump, self.remote_sock, self.client, "downstream"
            )
            errors = [await up.join(), await down.join()]
        self.logger.info(
            f"{self} finished, up {human_bytes(self.upstream)} "
            f"down {human_bytes(self.downstream)}"
        )
        for error in errors:
            if error is not None:
                raise error

    async def _pump(self, from_, to, direction):
        error = None
        try:
            while True:
                data = await from_.recv(gvars.PACKET_SIZE)
                if not data:
                    break
                await to.sendall(data)
                setattr(self, direction, getattr(self, direction) + len(data))
        except OSError as e:
            self.logger.debug(f"{self} {direction} {e}")
            error = e
        try:
            await to.shutdown(socket.SHUT_WR)
        except OSError as e:
            self.logger.debug(f"{self} {direction} shutdown {e}")
        return error


class TcpRelay(RelayBase):
    proto = "TCP"

    def __init__(self, listen, remote, *, max_sessions=0, backlog=1024, logger=None):
        super().__init__(listen, remote, logger)
        self.backlog = backlog
        self.limiter = curio.Semaphore(max_sessions) if max_sessions else None
        self.sessions = {}

    def bind(self):
        if self.sock is None:
            self.sock = curio.tcp_server_socket(
                *self.listen.address, family=self.listen.family, backlog=self.backlog
            )
        return self.sock

    async def serve(self):
        self.bind()
        self.logger.info(f"{self} listening")
        try:
            async with self.sock:
                while True:
                    if self.limiter:
                        await self.limiter.acquire()
                    try:
                        client, addr = await self.sock.accept()
                    except OSError as e:
                        if self.limiter:
                            await self.limiter.release()
                        self.logger.error(f"{self} accept failed: {e}")
                        await curio.sleep(gvars.accept_backoff)
                        continue
                    session = TcpSession(client, addr, self.remote, self.logger)
                    task = await curio.spawn(self._handle, session, daemon=True)
                    if not task.terminated:
                        self.sessions[session] = task
        finally:
            self.sock = None
            for task in list(self.sessions.values()):
                await task.cancel()

    async def _handle(self, session):
        try:
            async with session:
                await session.run()
        except curio.errors.TaskCancelled:
            pass
        except Exception as e:
            self.logger.error(f"{session} {e!r}")
        finally:
            self.sessions.pop(session, None)
            if self.limiter:
                await self.limiter.release()
