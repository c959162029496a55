"""Checks for free TCP ports on this machine."""

from __future__ import annotations

import os
import socket
from collections.abc import Iterable

__all__ = ["is_port_free", "find_free_port"]

_MAX_PORT = 65535


def _can_bind(family: int, host: str, port: int) -> bool:
    try:
        with socket.socket(family, socket.SOCK_STREAM) as sock:
            if os.name != "nt":
                sock.setsockopt(socket.SOL_SOCKET, socket.SO_REUSEADDR, 1)
            sock.bind((host, port))
            sock.listen()
            sock.getsockname()
    except OSError:
        return False
    return True


def is_port_free(port: int) -> bool:
    """Whether ``port`` can be bound on every IPv6 and IPv4 interface."""
    if not 0 <= port <= _MAX_PORT:
        raise ValueError(f"port out of range: {port}")
    return _can_bind(socket.AF_INET6, "::", port) and _can_bind(
        socket.AF_INET, "0.0.0.0", port
    )


def find_free_port(ports: Iterable[int]) -> int | None:
    """Return the first free port in ``ports``, or None if none is free."""
    return next((port for port in ports if is_port_free(port)), None)