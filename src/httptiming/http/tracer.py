# SPDX-FileCopyrightText: 2025 Theori Inc.
# SPDX-License-Identifier: AGPL-3.0-or-later

"""
Per-hop connection lifecycle tracing.

A PhaseTracer is a set of named callbacks that stamp a TimingTrace. They are
fired synchronously from the request flow:

- DNS and TCP connect by TracingNetworkBackend (an httpcore network backend),
- TLS handshake and first response byte by TracingStream,
- "connection obtained" by the httpx ``trace`` request extension.
"""

from __future__ import annotations

import ipaddress
import logging
import socket
import ssl
import time
import typing
from collections.abc import Callable
from dataclasses import dataclass

import httpcore

from ..errors import ConnectionFailure, ErrorCategory, ProbeCancelled, categorize_exception
from ..models.report import PhaseDurations
from ..utils.cancel import CancelToken

logger = logging.getLogger(__name__)

Clock = Callable[[], int]


def _ms(start: int | None, end: int | None) -> int:
    if start is None or end is None:
        return 0
    return max(0, (end - start) // 1_000_000)


@dataclass
class TimingTrace:
    """Raw monotonic nanosecond timestamps for one hop; None means the phase did not happen."""

    dns_start: int | None = None
    dns_done: int | None = None
    connect_start: int | None = None
    connect_done: int | None = None
    got_conn: int | None = None
    first_byte: int | None = None
    tls_start: int | None = None
    tls_done: int | None = None
    body_done: int | None = None
    remote_address: str | None = None
    tls_version: str | None = None

    @property
    def lookup_done(self) -> int | None:
        # DNS skipped (IP literal): the lookup "ends" where the connect starts.
        return self.dns_done if self.dns_done is not None else self.connect_start

    @property
    def origin(self) -> int | None:
        return self.dns_start if self.dns_start is not None else self.lookup_done

    @property
    def used_tls(self) -> bool:
        return self.tls_start is not None

    def durations(self) -> PhaseDurations:
        t0 = self.origin
        connected = self.connect_done if self.used_tls else self.got_conn
        return PhaseDurations(
            dns_lookup=_ms(t0, self.lookup_done),
            tcp_connection=_ms(self.lookup_done, connected),
            tls_handshake=_ms(self.tls_start, self.tls_done),
            server_processing=_ms(self.got_conn, self.first_byte),
            content_transfer=_ms(self.first_byte, self.body_done),
            name_lookup=_ms(t0, self.lookup_done),
            connect=_ms(t0, connected),
            pre_transfer=_ms(t0, self.got_conn),
            start_transfer=_ms(t0, self.first_byte),
            total=_ms(t0, self.body_done),
        )


class PhaseTracer:
    """Lifecycle callbacks for a single hop. Create a fresh one per hop."""

    def __init__(self, clock: Clock = time.perf_counter_ns):
        self.trace = TimingTrace()
        self._clock = clock
        self._awaiting_first_byte = False

    def dns_start(self, host: str) -> None:
        self.trace.dns_start = self._clock()
        logger.debug("Resolving %s", host)

    def dns_done(self, addresses: list[str]) -> None:
        self.trace.dns_done = self._clock()
        logger.debug("Resolved to %s", ", ".join(addresses))

    def connect_start(self, address: str) -> None:
        self.trace.connect_start = self._clock()

    def connect_done(self, address: str) -> None:
        self.trace.connect_done = self._clock()
        self.trace.remote_address = address

    def tls_handshake_start(self) -> None:
        self.trace.tls_start = self._clock()

    def tls_handshake_done(self, version: str | None) -> None:
        self.trace.tls_done = self._clock()
        self.trace.tls_version = version

    def got_conn(self) -> None:
        self.trace.got_conn = self._clock()
        self._awaiting_first_byte = True

    def got_first_response_byte(self) -> None:
        if not self._awaiting_first_byte:
            return
        self._awaiting_first_byte = False
        self.trace.first_byte = self._clock()

    def body_done(self) -> None:
        self.trace.body_done = self._clock()

    def on_trace_event(self, name: str, info: dict[str, typing.Any]) -> None:
        """httpx ``trace`` extension hook."""
        # A tunnelling proxy sends CONNECT first; the last request on the wire wins.
        if name.endswith("send_request_headers.started"):
            self.got_conn()


def format_address(host: str, port: int) -> str:
    return f"[{host}]:{port}" if ":" in host else f"{host}:{port}"


def _ip_literal(host: str) -> ipaddress.IPv4Address | ipaddress.IPv6Address | None:
    try:
        return ipaddress.ip_address(host.strip("[]").split("%", 1)[0])
    except ValueError:
        return None


class TracingStream(httpcore.NetworkStream):
    """NetworkStream wrapper reporting TLS and first-byte events to the tracer."""

    def __init__(
        self,
        stream: httpcore.NetworkStream,
        tracer: PhaseTracer,
        *,
        cancel_token: CancelToken | None = None,
        tls_handshake_timeout: float | None = None,
    ):
        self._stream = stream
        self._tracer = tracer
        self._cancel_token = cancel_token
        self._tls_handshake_timeout = tls_handshake_timeout
        self._sock = stream.get_extra_info("socket")
        if cancel_token is not None:
            cancel_token.register(self._sock)

    def _check_cancelled(self, exc: BaseException | None = None) -> None:
        if self._cancel_token is not None and self._cancel_token.cancelled:
            raise ProbeCancelled("probe cancelled") from exc

    def read(self, max_bytes: int, timeout: float | None = None) -> bytes:
        self._check_cancelled()
        try:
            data = self._stream.read(max_bytes, timeout)
        except (httpcore.ReadError, httpcore.ReadTimeout) as exc:
            self._check_cancelled(exc)
            raise
        self._check_cancelled()
        if data:
            self._tracer.got_first_response_byte()
        return data

    def write(self, buffer: bytes, timeout: float | None = None) -> None:
        self._check_cancelled()
        try:
            self._stream.write(buffer, timeout)
        except (httpcore.WriteError, httpcore.WriteTimeout) as exc:
            self._check_cancelled(exc)
            raise

    def close(self) -> None:
        if self._cancel_token is not None:
            self._cancel_token.unregister(self._sock)
        self._stream.close()

    def start_tls(
        self,
        ssl_context: ssl.SSLContext,
        server_hostname: str | None = None,
        timeout: float | None = None,
    ) -> httpcore.NetworkStream:
        if self._tls_handshake_timeout is not None:
            timeout = self._tls_handshake_timeout if timeout is None else min(timeout, self._tls_handshake_timeout)
        self._tracer.tls_handshake_start()
        try:
            stream = self._stream.start_tls(ssl_context, server_hostname, timeout)
        except (httpcore.ConnectError, httpcore.ConnectTimeout) as exc:
            self._check_cancelled(exc)
            raise
        version = getattr(stream.get_extra_info("ssl_object"), "version", None)
        self._tracer.tls_handshake_done(version() if callable(version) else None)
        if self._cancel_token is not None:
            self._cancel_token.unregister(self._sock)
        return TracingStream(
            stream,
            self._tracer,
            cancel_token=self._cancel_token,
            tls_handshake_timeout=self._tls_handshake_timeout,
        )

    def get_extra_info(self, info: str) -> typing.Any:
        return self._stream.get_extra_info(info)


class TracingNetworkBackend(httpcore.NetworkBackend):
    """
    httpcore backend that resolves and dials itself so each step can be timed.

    Name resolution honours the requested address family. The first resolved
    address is dialled once; a failed connect is fatal and never retried.
    """

    def __init__(
        self,
        tracer: PhaseTracer,
        *,
        family: int = socket.AF_UNSPEC,
        cancel_token: CancelToken | None = None,
        tls_handshake_timeout: float | None = None,
        backend: httpcore.NetworkBackend | None = None,
    ):
        self._tracer = tracer
        self._family = family
        self._cancel_token = cancel_token
        self._tls_handshake_timeout = tls_handshake_timeout
        self._backend = backend or httpcore.SyncBackend()

    def _resolve(self, host: str, port: int) -> list[str]:
        literal = _ip_literal(host)
        if literal is not None:
            if self._family == socket.AF_INET and literal.version != 4:
                raise ConnectionFailure(f"unable to connect to host {host}: not an IPv4 address")
            if self._family == socket.AF_INET6 and literal.version != 6:
                raise ConnectionFailure(f"unable to connect to host {host}: not an IPv6 address")
            return [host.strip("[]")]

        self._tracer.dns_start(host)
        try:
            infos = socket.getaddrinfo(host, port, self._family, socket.SOCK_STREAM)
        except OSError as exc:
            raise ConnectionFailure(
                f"failed to resolve host {host}: {exc}", category=ErrorCategory.DNS_ERROR
            ) from exc
        addresses: list[str] = []
        for info in infos:
            address = str(info[4][0])
            if address not in addresses:
                addresses.append(address)
        self._tracer.dns_done(addresses)
        return addresses

    def connect_tcp(
        self,
        host: str,
        port: int,
        timeout: float | None = None,
        local_address: str | None = None,
        socket_options: typing.Iterable[httpcore.SOCKET_OPTION] | None = None,
    ) -> httpcore.NetworkStream:
        if self._cancel_token is not None:
            self._cancel_token.raise_if_cancelled()

        addresses = self._resolve(host, port)
        if not addresses:
            raise ConnectionFailure(f"failed to resolve host {host}: no addresses", category=ErrorCategory.DNS_ERROR)

        # One dial only: a failed connect aborts the hop.
        address = addresses[0]
        display = format_address(address, port)
        self._tracer.connect_start(display)
        try:
            stream = self._backend.connect_tcp(
                address,
                port,
                timeout=timeout,
                local_address=local_address,
                socket_options=socket_options,
            )
        except (httpcore.ConnectError, httpcore.ConnectTimeout) as exc:
            logger.debug("Connect to %s failed: %s", display, exc)
            raise ConnectionFailure(
                f"unable to connect to host {display}: {exc}", category=categorize_exception(exc)
            ) from exc

        self._tracer.connect_done(display)
        logger.debug("Connected to %s", display)
        traced = TracingStream(
            stream,
            self._tracer,
            cancel_token=self._cancel_token,
            tls_handshake_timeout=self._tls_handshake_timeout,
        )
        if self._cancel_token is not None and self._cancel_token.cancelled:
            traced.close()
            self._cancel_token.raise_if_cancelled()
        return traced

    def connect_unix_socket(
        self,
        path: str,
        timeout: float | None = None,
        socket_options: typing.Iterable[httpcore.SOCKET_OPTION] | None = None,
    ) -> httpcore.NetworkStream:  # pragma: no cover - unix sockets are not probed
        raise ConnectionFailure("unix domain sockets are not supported")

    def sleep(self, seconds: float) -> None:  # pragma: no cover - retries are disabled
        time.sleep(seconds)


__all__ = [
    "PhaseTracer",
    "TimingTrace",
    "TracingNetworkBackend",
    "TracingStream",
    "format_address",
]
