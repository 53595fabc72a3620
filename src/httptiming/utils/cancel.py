# SPDX-FileCopyrightText: 2025 Theori Inc.
# SPDX-License-Identifier: AGPL-3.0-or-later

"""Cooperative cancellation for an in-flight timing run."""

from __future__ import annotations

import socket
import threading
from contextlib import suppress

from ..errors import ProbeCancelled


class CancelToken:
    """
    Cancellation handle shared by the engine and the transport of one run.

    `cancel()` may be called from another thread or a signal handler: it marks
    the token and shuts down every registered socket so blocking reads return.
    It never takes the lock; `register`/`unregister` swap in a new frozenset
    under the lock, so `cancel()` always sees a complete snapshot.
    """

    def __init__(self) -> None:
        self._event = threading.Event()
        self._lock = threading.Lock()
        self._sockets: frozenset[socket.socket] = frozenset()

    @property
    def cancelled(self) -> bool:
        return self._event.is_set()

    def cancel(self) -> None:
        self._event.set()
        for sock in self._sockets:
            _shutdown(sock)

    def raise_if_cancelled(self) -> None:
        if self._event.is_set():
            raise ProbeCancelled("probe cancelled")

    def register(self, sock: socket.socket | None) -> None:
        if sock is None:
            return
        with self._lock:
            self._sockets = self._sockets | {sock}
        if self._event.is_set():
            _shutdown(sock)

    def unregister(self, sock: socket.socket | None) -> None:
        if sock is None:
            return
        with self._lock:
            self._sockets = self._sockets - {sock}


def _shutdown(sock: socket.socket) -> None:
    with suppress(OSError):
        sock.shutdown(socket.SHUT_RDWR)


__all__ = ["CancelToken"]
