"""
A tcp/udp port forwarder: listen on a local address and relay
every connection (tcp) and datagram (udp) to one fixed remote address.

usage:

sigil -l [host]:port -r host:port [options]

udp modes:

mode        reply handling
drain       non-blocking check for a reply right after each datagram (default)
wait        wait up to --udp-reply-timeout seconds for a reply
session     one outbound socket per client, replies relayed as they arrive

examples:

# forward tcp and udp 8080 to a vnc server
sigil -v -l 127.0.0.1:8080 -r 10.0.1.100:5900

# tcp only, at most 100 concurrent sessions
sigil -l :2222 -r 10.0.1.5:22 --no-udp --max-sessions 100

# dns forwarder with one mapping per client
sigil -l :53 -r 1.1.1.1:53 --no-tcp --udp-mode session
"""
__version__ = "0.2.0"
