"""Client and server settings."""

from __future__ import annotations

from dataclasses import dataclass


@dataclass
class ClientConfig:
    """General client-side settings; durations are in seconds."""

    #: how long a task waits for its response
    task_timeout: int = 20
    read_timeout: float = 5.0
    write_timeout: float = 5.0
    #: idle time after which a pooled connection is closed
    idle_timeout: float = 120.0
    connect_timeout: float = 10.0
    #: how many tasks may be queued, to avoid overflowing the server
    thresholds: int = 128
    #: when non-zero, overrides the transport's default buffer size (bytes)
    stream_buf_size: int = 0


@dataclass
class ServerConfig:
    """General server-side settings; durations are in seconds."""

    read_timeout: float = 5.0
    write_timeout: float = 5.0
    idle_timeout: float = 120.0
    #: how long to wait for all connections to close on shutdown
    server_close_wait: float = 90.0
    #: when non-zero, overrides the transport's default buffer size (bytes)
    stream_buf_size: int = 0