import argparse
import logging
import resource
import socket

import curio

from . import __doc__ as desc
from . import __version__, gvars
from .endpoint import TCP, UDP, resolve
from .relays import TcpRelay, UdpRelay, UdpSessionRelay
from .supervisor import ForwardingSupervisor
from .utils import parse_addr


def address(s):
    try:
        parse_addr(s)
    except ValueError as e:
        raise argparse.ArgumentTypeError(str(e))
    return s


def get_relays(args):
    relays = []
    if not args.no_tcp:
        relays.append(
            TcpRelay(
                resolve(args.listening_addr, TCP),
                resolve(args.remote_addr, TCP),
                max_sessions=args.max_sessions,
            )
        )
    if not args.no_udp:
        listen = resolve(args.udp_listening_addr or args.listening_addr, UDP)
        remote = resolve(args.udp_remote_addr or args.remote_addr, UDP)
        if args.udp_mode == "session":
            relay = UdpSessionRelay(
                listen,
                remote,
                capacity=args.udp_sessions,
                idle_timeout=args.udp_idle_timeout,
            )
        elif args.udp_mode == "wait":
            relay = UdpRelay(listen, remote, reply_timeout=args.udp_reply_timeout)
        else:
            relay = UdpRelay(listen, remote)
        relays.append(relay)
    return relays


def get_parser():
    parser = argparse.ArgumentParser(
        prog=__package__,
        description=desc,
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )
    parser.add_argument(
        "-v", dest="verbose", action="count", default=0, help="print verbose output"
    )
    parser.add_argument(
        "--version", action="version", version=f"%(prog)s {__version__}"
    )
    parser.add_argument(
        "-l",
        "--listening-addr",
        type=address,
        help="listening address, i.e. 127.0.0.1:8080",
    )
    parser.add_argument(
        "-r",
        "--remote-addr",
        type=address,
        help="remote address, i.e. 10.0.1.100:5900",
    )
    parser.add_argument(
        "--udp-listening-addr", type=address, help="udp only listening address"
    )
    parser.add_argument(
        "--udp-remote-addr", type=address, help="udp only remote address"
    )
    parser.add_argument("--no-tcp", action="store_true", help="do not forward tcp")
    parser.add_argument("--no-udp", action="store_true", help="do not forward udp")
    parser.add_argument(
        "--max-sessions",
        type=int,
        default=0,
        help="concurrent tcp sessions, 0 for no limit",
    )
    parser.add_argument(
        "--udp-mode", choices=("drain", "wait", "session"), default="drain"
    )
    parser.add_argument(
        "--udp-reply-timeout",
        type=float,
        default=gvars.udp_reply_timeout,
        help="seconds to wait for a reply in wait mode",
    )
    parser.add_argument(
        "--udp-sessions",
        type=int,
        default=gvars.udp_sessions,
        help="max udp clients in session mode",
    )
    parser.add_argument(
        "--udp-idle-timeout",
        type=float,
        default=gvars.udp_idle_timeout,
        help="seconds before an idle udp client is dropped in session mode",
    )
    parser.add_argument(
        "--keep-going",
        action="store_true",
        help="keep forwarding when the other transport fails to bind",
    )
    return parser


def parse_args(arguments=None):
    parser = get_parser()
    args = parser.parse_args(arguments)
    if args.no_tcp and args.no_udp:
        parser.error("nothing to forward with both --no-tcp and --no-udp")
    if not args.no_tcp and not (args.listening_addr and args.remote_addr):
        parser.error("tcp forwarding requires --listening-addr and --remote-addr")
    if not args.no_udp and not (
        (args.udp_listening_addr or args.listening_addr)
        and (args.udp_remote_addr or args.remote_addr)
    ):
        parser.error("udp forwarding requires a listening and a remote address")
    if args.max_sessions < 0:
        parser.error("--max-sessions must not be negative")
    if args.udp_sessions < 1:
        parser.error("--udp-sessions must be positive")
    if args.udp_reply_timeout <= 0:
        parser.error("--udp-reply-timeout must be positive")
    if args.udp_idle_timeout <= 0:
        parser.error("--udp-idle-timeout must be positive")
    try:
        args.relays = get_relays(args)
    except (ValueError, socket.gaierror) as e:
        parser.error(f"invalid address: {e}")
    return args


def main(arguments=None):
    args = parse_args(arguments)
    if args.verbose == 0:
        level = logging.ERROR
    elif args.verbose == 1:
        level = logging.INFO
    else:
        level = logging.DEBUG
    gvars.logger.setLevel(level)
    supervisor = ForwardingSupervisor(args.relays, keep_going=args.keep_going)
    try:
        supervisor.bind()
    except OSError as e:
        gvars.logger.error(f"unable to start: {e}")
        return 1
    try:
        resource.setrlimit(resource.RLIMIT_NOFILE, (50000, 50000))
    except Exception:
        gvars.logger.warning("Require root permission to allocate resources")
    kernel = curio.Kernel()
    error = None
    try:
        error = kernel.run(supervisor.run())
    except KeyboardInterrupt:
        pass
    finally:
        kernel.run(shutdown=True)
    return 1 if error else 0


if __name__ == "__main__":
    raise SystemExit(main())
