"""Reading and writing exact byte counts on stream sockets."""

from __future__ import annotations

import socket


class ConnectionClosed(ConnectionError):
    """The peer closed the connection before the expected bytes arrived."""

    def __init__(self, received: bytes, expected: int) -> None:
        super().__init__(
            f"connection closed after {len(received)} of {expected} bytes"
        )
        self.received = received
        self.expected = expected


def recv_all(sock: socket.socket, length: int) -> bytes:
    """Receive exactly length bytes, raising ConnectionClosed on early end of stream."""
    if length < 0:
        raise ValueError("length must not be negative")
    buffer = bytearray(length)
    view = memoryview(buffer)
    received = 0
    while received < length:
        n = sock.recv_into(view[received:], length - received)
        if n == 0:
            raise ConnectionClosed(bytes(buffer[:received]), length)
        received += n
    return bytes(buffer)


def send_all(sock: socket.socket, data: bytes) -> int:
    """Send every byte of data and return how many were sent."""
    sock.sendall(data)
    return len(data)