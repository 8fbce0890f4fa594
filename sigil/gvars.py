import logging
import sys

PACKET_SIZE = 8192
UDP_PACKET_SIZE = 65535
logger = logging.getLogger(__package__)
logger.addHandler(logging.StreamHandler(sys.stdout))
accept_backoff = 0.1
udp_reply_timeout = 0.05
udp_sessions = 256
udp_idle_timeout = 60
