from curio import socket


def parse_addr(s: str):
    host, sep, port = s.rpartition(":")
    if not sep:
        raise ValueError(f"port is missing: {s!r}")
    try:
        port = int(port)
    except ValueError:
        raise ValueError(f"invalid port: {s!r}") from None
    if not 0 <= port <= 65535:
        raise ValueError(f"port out of range: {s!r}")
    if not host:
        host = "0.0.0.0"
    elif len(host) >= 4 and host[0] == "[" and host[-1] == "]":
        host = host[1:-1]
    return (host, port)


def udp_server_socket(host, port, *, family=socket.AF_INET, reuse_address=True):
    sock = socket.socket(family, socket.SOCK_DGRAM)
    try:
        if reuse_address:
            sock.setsockopt(socket.SOL_SOCKET, socket.SO_REUSEADDR, True)
        sock.bind((host, port))
        return sock
    except Exception:
        sock._socket.close()
        raise


def udp_client_socket(addr, *, family=socket.AF_INET):
    "an udp socket whose peer is fixed to addr"
    sock = socket.socket(family, socket.SOCK_DGRAM)
    try:
        sock._socket.connect(addr)
        return sock
    except Exception:
        sock._socket.close()
        raise


def human_bytes(val: int) -> str:
    if val < 1024:
        return f"{val:.0f}Bytes"
    elif val < 1048576:
        return f"{val/1024:.1f}KB"
    else:
        return f"{val/1048576:.1f}MB"


def show(addr):
    return f"{addr[0]}:{addr[1]}"
