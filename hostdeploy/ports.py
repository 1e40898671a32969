"""Pick an ephemeral host port with nothing listening on it."""

from __future__ import annotations

import errno
import logging
import random
import socket
from typing import Callable

from hostdeploy.errors import ExhaustedError

logger = logging.getLogger("hostdeploy")

DEFAULT_PORT_LOW = 2000
DEFAULT_PORT_HIGH = 65000
DEFAULT_MAX_ATTEMPTS = 1000


def _port_in_use(family: int, host: str, port: int) -> bool:
    try:
        sock = socket.socket(family, socket.SOCK_STREAM)
    except OSError:
        # Address family disabled on this host: nothing can listen on it.
        return False
    try:
        sock.setsockopt(socket.SOL_SOCKET, socket.SO_REUSEADDR, 1)
        if family == socket.AF_INET6:
            sock.setsockopt(socket.IPPROTO_IPV6, socket.IPV6_V6ONLY, 1)
        sock.bind((host, port))
        return False
    except OSError as e:
        return e.errno != errno.EADDRNOTAVAIL
    finally:
        sock.close()


def is_port_free(port: int, *, bind_host: str = "0.0.0.0", bind_host6: str = "::") -> bool:
    """True when `port` can be bound on both address families.

    Docker publishes `-p` on IPv4 and IPv6, so a listener on either family makes the port unusable.
    """
    if _port_in_use(socket.AF_INET, bind_host, port):
        return False
    return not (socket.has_ipv6 and _port_in_use(socket.AF_INET6, bind_host6, port))


def allocate_port(
    *,
    low: int = DEFAULT_PORT_LOW,
    high: int = DEFAULT_PORT_HIGH,
    max_attempts: int = DEFAULT_MAX_ATTEMPTS,
    rng: random.Random | None = None,
    is_free: Callable[[int], bool] = is_port_free,
) -> int:
    """Sample uniformly in [low, high] until a free port turns up.

    Best effort: the port is not reserved, another process may take it before docker binds it.
    """
    if low > high:
        raise ValueError(f"empty port range {low}-{high}")
    if max_attempts < 1:
        raise ValueError("max_attempts must be >= 1")

    rng = rng or random.SystemRandom()
    for attempt in range(1, max_attempts + 1):
        port = rng.randint(low, high)
        if is_free(port):
            return port
        logger.debug("port %s in use (attempt %s/%s)", port, attempt, max_attempts)

    raise ExhaustedError(f"No free port found in {low}-{high} after {max_attempts} attempts")
