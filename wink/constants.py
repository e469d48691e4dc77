"""Protocol limits, timeouts and well-known addresses shared across the package."""

MAX_UDP_PAYLOAD = 65507
MAX_RETRIES = 5

# Timeouts and intervals, in seconds.
NO_TIMEOUT = 0.0
SEND_TIMEOUT = 1.0
RECEIVE_TIMEOUT = 3.0
HEARTBEAT_TIMEOUT = 60.0
PULSE_INTERVAL = 10.0

SERVER_PORT = 42000

LOCALHOST = "127.0.0.1"