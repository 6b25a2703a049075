"""Graceful restart: hand listening sockets to a fresh process on a signal."""

from __future__ import annotations

import logging
import os
import queue
import signal
import subprocess
import sys
import time
from contextlib import suppress
from pathlib import Path
from typing import Any, Callable, Iterable, List, Optional, Tuple, Type

from .runtime import AsyncListener

logger = logging.getLogger(__name__)

_RESTART_ENV = "_GRACEFUL_RESTART"
_POLL_INTERVAL = 1.0


def write_pid_file(path: Any) -> None:
    """Write the current process id to ``path`` and sync it to disk."""
    with open(path, "w") as f:
        f.write(str(os.getpid()))
        f.flush()
        getattr(os, "fdatasync", os.fsync)(f.fileno())


class GracefulServer:
    """Manages listeners so that they survive a graceful restart.

    Listeners created through :meth:`new_listener` are inherited by the new
    process after a restart; new connections go to it while existing ones
    keep being served by the old process.
    """

    def __init__(
        self,
        run_dir: Any,
        prog_name: str,
        restart_timeout: float,
        close_signals: Iterable[int],
    ) -> None:
        self.run_dir = os.fspath(run_dir)
        self.prog_name = prog_name
        self.restart_timeout = restart_timeout
        self.close_signals: List[int] = list(close_signals)
        self._listen_fds: List[int] = []
        self._recover_fds: List[int] = []
        self._recovered = False
        self._check_recover()

    @property
    def recovered(self) -> bool:
        """True when this process was started by a graceful restart."""
        return self._recovered

    @property
    def listen_fds(self) -> Tuple[int, ...]:
        """Fds of the listeners handed to the next process on restart."""
        return tuple(self._listen_fds)

    @property
    def pid_file_path(self) -> Path:
        return Path(self.run_dir) / f"{self.prog_name}.pid"

    def _child_marker(self, pid: int) -> Path:
        return Path(self.run_dir) / f"{self.prog_name}_{pid}"

    def _check_recover(self) -> None:
        value = os.environ.get(_RESTART_ENV)
        if value is None:
            return
        self._recover_fds = [int(part) for part in value.split(",") if part]
        self._recovered = True

    def _restart(self) -> None:
        cmd = [sys.executable, *sys.orig_argv[1:]]
        env = dict(os.environ)
        env[_RESTART_ENV] = ",".join(str(fd) for fd in self._listen_fds)
        # Only the listening fds are passed on; everything else is closed.
        child = subprocess.Popen(
            cmd, env=env, pass_fds=sorted(self._listen_fds), close_fds=True
        )
        marker = self._child_marker(child.pid)
        start = time.monotonic()
        while time.monotonic() - start <= self.restart_timeout:
            if marker.exists():
                with suppress(OSError):
                    marker.unlink()
                return
            time.sleep(_POLL_INTERVAL)
        if child.poll() is not None:
            raise OSError("graceful restart failed, child exited")
        # The child is still starting up; the parent leaves anyway.

    def new_listener(
        self, addr: str, listener_cls: Type[AsyncListener] = AsyncListener
    ) -> AsyncListener:
        """Create a listener on ``addr``, reusing an inherited one if available.

        Listeners must be created in the same order on every start.
        """
        if self._recover_fds:
            fd = self._recover_fds.pop(0)
            try:
                listener = listener_cls.try_from_fd(addr, fd)
            except OSError as exc:
                logger.error(
                    "graceful: cannot convert %s from fd %d: %s, fallback",
                    listener_cls.__name__, fd, exc,
                )
            else:
                self._listen_fds.append(fd)
                return listener
        else:
            logger.warning("no recover_listen_fds found")
        try:
            listener = listener_cls.bind(addr)
        except OSError:
            logger.error("graceful: failed to listen %s %s", listener_cls.__name__, addr)
            raise
        fd = listener.fileno()
        # Keep the fd open across exec so a restarted process can inherit it.
        os.set_inheritable(fd, True)
        self._listen_fds.append(fd)
        return listener

    def ready(
        self, exit_callback: Callable[[], Any], restart_signal: Optional[int] = None
    ) -> None:
        """Write pid files, then block until a close or restart signal arrives.

        On ``restart_signal`` a new process is started; if that fails, waiting
        resumes. ``exit_callback`` runs before returning.
        """
        write_pid_file(self.pid_file_path)
        if self._recovered:
            with suppress(OSError):
                write_pid_file(self._child_marker(os.getpid()))

        sigs = list(self.close_signals)
        if restart_signal is not None and restart_signal not in sigs:
            sigs.append(restart_signal)

        received: "queue.SimpleQueue[int]" = queue.SimpleQueue()

        def _handler(signum: int, frame: Any) -> None:
            received.put(signum)

        previous = {}
        try:
            for sig in sigs:
                previous[sig] = signal.signal(sig, _handler)
            while True:
                try:
                    signum = received.get(timeout=0.5)
                except queue.Empty:
                    continue
                if restart_signal is not None and signum == restart_signal:
                    try:
                        self._restart()
                    except OSError as exc:
                        logger.error("graceful restart failed: %s", exc)
                        continue
                break
        finally:
            for sig, handler in previous.items():
                signal.signal(sig, signal.SIG_DFL if handler is None else handler)
        exit_callback()