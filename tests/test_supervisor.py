import curio
import pytest
from curio import socket
from curio.network import run_server

from sigil import gvars
from sigil.endpoint import TCP, UDP, resolve
from sigil.relays import TcpRelay, UdpRelay
from sigil.relays.base import RelayBase
from sigil.supervisor import ForwardingSupervisor
from sigil.utils import udp_server_socket

gvars.logger.setLevel(10)


async def echo_handler(client, addr):
    async with client:
        while True:
            data = await client.recv(gvars.PACKET_SIZE)
            if not data:
                break
            await client.sendall(data)


async def udp_echo(sock):
    async with sock:
        while True:
            data, addr = await sock.recvfrom(gvars.UDP_PACKET_SIZE)
            await sock.sendto(data, addr)


def address_of(sock):
    host, port = sock._socket.getsockname()
    return f"{host}:{port}"


class BrokenRelay(RelayBase):
    proto = "BROKEN"

    def bind(self):
        pass

    async def serve(self):
        raise RuntimeError("boom")


async def main(coro, *server_coros):
    async with curio.TaskGroup() as g:
        for server_coro in server_coros:
            await g.spawn(server_coro)
        task = await g.spawn(coro)
        await task.join()
        await g.cancel_remaining()


def test_run_tcp_and_udp():
    tcp_sock = curio.tcp_server_socket("127.0.0.1", 0)
    udp_sock = udp_server_socket("127.0.0.1", 0)
    tcp_relay = TcpRelay(resolve("127.0.0.1:0"), resolve(address_of(tcp_sock)))
    udp_relay = UdpRelay(
        resolve("127.0.0.1:0", UDP), resolve(address_of(udp_sock), UDP), reply_timeout=1
    )
    supervisor = ForwardingSupervisor([tcp_relay, udp_relay])
    assert supervisor.bind() == [tcp_relay, udp_relay]

    async def client():
        async with curio.timeout_after(10):
            sock = await curio.open_connection(*tcp_relay.bound_addr)
            async with sock:
                await sock.sendall(b"ping")
                assert await sock.recv(1024) == b"ping"
            sock = socket.socket(socket.AF_INET, socket.SOCK_DGRAM)
            async with sock:
                await sock.sendto(b"ping", udp_relay.bound_addr)
                data, _ = await sock.recvfrom(1024)
                assert data == b"ping"

    curio.run(
        main(
            client(),
            run_server(tcp_sock, echo_handler),
            udp_echo(udp_sock),
            supervisor.run(),
        )
    )


def occupied():
    sock = curio.tcp_server_socket("127.0.0.1", 0)
    return sock, address_of(sock)


def test_bind_failure_is_fatal():
    sock, addr = occupied()
    udp_relay = UdpRelay(resolve("127.0.0.1:0", UDP), resolve("127.0.0.1:9", UDP))
    tcp_relay = TcpRelay(resolve(addr, TCP), resolve("127.0.0.1:9"))
    supervisor = ForwardingSupervisor([udp_relay, tcp_relay])
    with pytest.raises(OSError):
        supervisor.bind()
    assert udp_relay.sock is None
    assert udp_relay.outbound is None
    sock._socket.close()


def test_bind_failure_keep_going():
    sock, addr = occupied()
    udp_relay = UdpRelay(resolve("127.0.0.1:0", UDP), resolve("127.0.0.1:9", UDP))
    tcp_relay = TcpRelay(resolve(addr, TCP), resolve("127.0.0.1:9"))
    supervisor = ForwardingSupervisor([tcp_relay, udp_relay], keep_going=True)
    assert supervisor.bind() == [udp_relay]
    assert supervisor.relays == [udp_relay]
    udp_relay.unbind()
    sock._socket.close()


def test_nothing_bound():
    sock, addr = occupied()
    tcp_relay = TcpRelay(resolve(addr, TCP), resolve("127.0.0.1:9"))
    supervisor = ForwardingSupervisor([tcp_relay], keep_going=True)
    with pytest.raises(OSError):
        supervisor.bind()
    sock._socket.close()


def test_relay_failure_stops_others():
    tcp_relay = TcpRelay(resolve("127.0.0.1:0"), resolve("127.0.0.1:9"))
    broken = BrokenRelay(resolve("127.0.0.1:0"), resolve("127.0.0.1:9"))
    supervisor = ForwardingSupervisor([tcp_relay, broken])
    supervisor.bind()
    error = curio.run(supervisor.run())
    assert isinstance(error, RuntimeError)
    assert tcp_relay.sock is None
