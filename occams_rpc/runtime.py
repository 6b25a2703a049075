"""Async runtime helpers: cancellation, timeouts, tickers, async fds and listeners."""

from __future__ import annotations

import asyncio
import errno
import io
import socket
import time
from typing import Any, Awaitable, Callable, Optional, Tuple, TypeVar, Union

R = TypeVar("R")


class Cancelled(Exception):
    """Raised when the cancel awaitable finished before the guarded one."""


async def _discard(task: "asyncio.Future[Any]") -> None:
    """Cancel ``task`` if needed and consume its outcome."""
    if not task.done():
        task.cancel()
    await asyncio.gather(task, return_exceptions=True)


async def cancellable(future: Awaitable[R], cancel_future: Awaitable[Any]) -> R:
    """Await ``future`` unless ``cancel_future`` completes first.

    When both are ready at once the result of ``future`` wins. Raises
    :class:`Cancelled` when the cancel side finishes first.
    """
    main = asyncio.ensure_future(future)
    cancel = asyncio.ensure_future(cancel_future)
    try:
        done, _ = await asyncio.wait({main, cancel}, return_when=asyncio.FIRST_COMPLETED)
    except BaseException:
        main.cancel()
        cancel.cancel()
        raise
    if main in done:
        await _discard(cancel)
        return main.result()
    await _discard(main)
    await _discard(cancel)
    raise Cancelled()


async def io_with_timeout(timeout: float, awaitable: Awaitable[R]) -> R:
    """Await an I/O operation, raising ``TimeoutError`` after ``timeout`` seconds.

    A timeout of zero means no limit.
    """
    if timeout == 0:
        return await awaitable
    try:
        return await cancellable(awaitable, asyncio.sleep(timeout))
    except Cancelled:
        raise TimeoutError("operation timed out") from None


class Interval:
    """A periodic ticker whose first tick fires one period after creation."""

    def __init__(self, period: float) -> None:
        if period <= 0:
            raise ValueError(f"interval period {period} must be > 0")
        self.period = period
        self._deadline = time.monotonic() + period

    async def tick(self) -> float:
        """Wait for the next tick and return its scheduled monotonic time."""
        delay = self._deadline - time.monotonic()
        if delay > 0:
            await asyncio.sleep(delay)
        fired = self._deadline
        self._deadline += self.period
        return fired

    def __aiter__(self) -> "Interval":
        return self

    async def __anext__(self) -> float:
        return await self.tick()


def _fileno(fileobj: Any) -> int:
    return fileobj if isinstance(fileobj, int) else fileobj.fileno()


class AsyncFd:
    """Turns non-blocking synchronous I/O on a file object into awaitable I/O."""

    def __init__(self, fileobj: Any, writable: bool = True) -> None:
        self.fileobj = fileobj
        self.writable = writable
        self._fd = _fileno(fileobj)
        self._closed = False

    def fileno(self) -> int:
        return self._fd

    async def _wait_ready(self, write: bool) -> None:
        loop = asyncio.get_running_loop()
        ready: asyncio.Future[None] = loop.create_future()

        def _wake() -> None:
            if not ready.done():
                ready.set_result(None)

        if write:
            loop.add_writer(self._fd, _wake)
            try:
                await ready
            finally:
                loop.remove_writer(self._fd)
        else:
            loop.add_reader(self._fd, _wake)
            try:
                await ready
            finally:
                loop.remove_reader(self._fd)

    async def _run(self, func: Callable[[Any], R], write: bool) -> R:
        while True:
            if self._closed:
                raise ValueError("I/O operation on closed fd")
            try:
                return func(self.fileobj)
            except (BlockingIOError, InterruptedError):
                pass
            await self._wait_ready(write)

    async def async_read(self, func: Callable[[Any], R]) -> R:
        """Call ``func(fileobj)`` until it stops raising ``BlockingIOError``,
        waiting for readability in between."""
        return await self._run(func, write=False)

    async def async_write(self, func: Callable[[Any], R]) -> R:
        """Like :meth:`async_read`, waiting for writability instead."""
        if not self.writable:
            raise io.UnsupportedOperation("fd was not registered for writing")
        return await self._run(func, write=True)

    def close(self) -> None:
        """Close the wrapped file object."""
        if self._closed:
            return
        self._closed = True
        if not isinstance(self.fileobj, int):
            self.fileobj.close()

    def __enter__(self) -> "AsyncFd":
        return self

    def __exit__(self, *exc: Any) -> None:
        self.close()

    def __repr__(self) -> str:
        return f"AsyncFd(fd={self._fd}, writable={self.writable})"


class AsyncIORuntime:
    """The runtime operations the RPC layer needs, built on asyncio."""

    async def sleep(self, seconds: float) -> None:
        await asyncio.sleep(seconds)

    def tick(self, period: float) -> Interval:
        return Interval(period)

    async def timeout(self, seconds: float, awaitable: Awaitable[R]) -> R:
        """Await ``awaitable``, raising :class:`Cancelled` after ``seconds``."""
        return await cancellable(awaitable, self.sleep(seconds))

    async def connect_tcp(self, host: str, port: int, timeout: float) -> AsyncFd:
        """Open a TCP connection; a timeout of zero means no limit."""

        async def _connect() -> socket.socket:
            loop = asyncio.get_running_loop()
            infos = await loop.getaddrinfo(host, port, type=socket.SOCK_STREAM)
            if not infos:
                raise OSError(errno.EADDRNOTAVAIL, f"cannot resolve {host}:{port}")
            family, sock_type, proto, _, sockaddr = infos[0]
            sock = socket.socket(family, sock_type, proto)
            try:
                sock.setblocking(False)
                await loop.sock_connect(sock, sockaddr)
            except BaseException:
                sock.close()
                raise
            return sock

        sock = await io_with_timeout(timeout, _connect())
        return self.to_async_fd_rw(sock)

    async def connect_unix(self, path: Any, timeout: float) -> AsyncFd:
        """Open a Unix-domain stream connection; zero timeout means no limit."""

        async def _connect() -> socket.socket:
            loop = asyncio.get_running_loop()
            sock = socket.socket(socket.AF_UNIX, socket.SOCK_STREAM)
            try:
                sock.setblocking(False)
                await loop.sock_connect(sock, str(path))
            except BaseException:
                sock.close()
                raise
            return sock

        sock = await io_with_timeout(timeout, _connect())
        return self.to_async_fd_rw(sock)

    def to_async_fd_rd(self, fileobj: Any) -> AsyncFd:
        """Wrap a non-blocking file object for reading only."""
        return AsyncFd(fileobj, writable=False)

    def to_async_fd_rw(self, fileobj: Any) -> AsyncFd:
        """Wrap a non-blocking file object for reading and writing."""
        return AsyncFd(fileobj, writable=True)


def _is_unix_addr(addr: str) -> bool:
    return "/" in addr


def _parse_tcp_addr(addr: str) -> Tuple[str, int]:
    host, sep, port_text = addr.rpartition(":")
    if not sep:
        raise ValueError(f"invalid address {addr!r}, expected host:port")
    try:
        port = int(port_text)
    except ValueError:
        raise ValueError(f"invalid port in address {addr!r}") from None
    if host.startswith("[") and host.endswith("]"):
        host = host[1:-1]
    return host, port


class AsyncListener:
    """A stream listener on a TCP ``host:port`` or a Unix socket path.

    Addresses containing ``/`` are Unix socket paths.
    """

    def __init__(self, sock: socket.socket, unix: bool) -> None:
        self._sock = sock
        self._unix = unix

    @classmethod
    def bind(cls, addr: str) -> "AsyncListener":
        """Bind and listen on ``addr``."""
        if _is_unix_addr(addr):
            sock = socket.socket(socket.AF_UNIX, socket.SOCK_STREAM)
            target: Union[str, Tuple[str, int]] = addr
            unix = True
        else:
            host, port = _parse_tcp_addr(addr)
            family = socket.AF_INET6 if ":" in host else socket.AF_INET
            sock = socket.socket(family, socket.SOCK_STREAM)
            sock.setsockopt(socket.SOL_SOCKET, socket.SO_REUSEADDR, 1)
            target = (host, port)
            unix = False
        try:
            sock.bind(target)
            sock.listen()
            sock.setblocking(False)
        except BaseException:
            sock.close()
            raise
        return cls(sock, unix)

    @classmethod
    def try_from_fd(cls, addr: str, fd: int) -> "AsyncListener":
        """Recover a listener from an inherited fd.

        ``addr`` decides the expected address type. The fd is switched to
        non-blocking mode, which also validates it; ``OSError`` is raised
        when it is not a matching stream socket.
        """
        unix = _is_unix_addr(addr)
        sock = socket.socket(fileno=fd)
        try:
            if unix:
                family_ok = sock.family == socket.AF_UNIX
            else:
                family_ok = sock.family in (socket.AF_INET, socket.AF_INET6)
            if not family_ok or sock.type != socket.SOCK_STREAM:
                raise OSError(errno.EINVAL, f"fd {fd} is not a listener for {addr}")
            sock.setblocking(False)
        except BaseException:
            sock.detach()
            raise
        return cls(sock, unix)

    async def accept(self) -> AsyncFd:
        """Wait for and return the next connection."""
        loop = asyncio.get_running_loop()
        conn, _ = await loop.sock_accept(self._sock)
        conn.setblocking(False)
        return AsyncFd(conn, writable=True)

    def local_addr(self) -> str:
        """The bound address as a string."""
        name = self._sock.getsockname()
        if self._unix:
            return name if isinstance(name, str) else name.decode()
        host, port = name[0], name[1]
        if ":" in host:
            return f"[{host}]:{port}"
        return f"{host}:{port}"

    def fileno(self) -> int:
        return self._sock.fileno()

    def close(self) -> None:
        self._sock.close()

    def __enter__(self) -> "AsyncListener":
        return self

    def __exit__(self, *exc: Any) -> None:
        self.close()

    def __repr__(self) -> str:
        try:
            where: Optional[str] = self.local_addr()
        except OSError:
            where = None
        return f"AsyncListener({where!r})"