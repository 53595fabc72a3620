# SPDX-FileCopyrightText: 2025 Theori Inc.
# SPDX-License-Identifier: AGPL-3.0-or-later

"""httpx-backed HttpClient implementation."""

from __future__ import annotations

import logging
import socket
import ssl
from collections.abc import Iterator
from contextlib import contextmanager

import httpcore
import httpx

from ..config import ProbeSettings, load_probe_settings
from ..errors import (
    ConfigurationError,
    ConnectionFailure,
    ErrorCategory,
    ProbeError,
    categorize_exception,
)
from ..utils.cancel import CancelToken
from .client import HttpClient
from .models import HttpRequest
from .tls import build_ssl_context, sni_hostname
from .tracer import PhaseTracer, TracingNetworkBackend
from .transport import TracingTransport, proxy_for_url

logger = logging.getLogger(__name__)


def translate_transport_error(exc: Exception) -> ProbeError:
    """Turn an httpx transport failure into the matching ProbeError."""
    if isinstance(exc, httpx.UnsupportedProtocol):
        return ConfigurationError(f"unable to create request: {exc}")
    category = categorize_exception(exc)
    if category in (ErrorCategory.DNS_ERROR, ErrorCategory.CONNECTION_ERROR):
        return ConnectionFailure(f"failed to read response: {exc}", category=category)
    return ProbeError(f"failed to read response: {exc}", category=category)


class HttpxClient(HttpClient):
    """
    Synchronous httpx client wrapper.

    Every hop gets its own httpx.Client, transport and connection so the
    lifecycle callbacks of one hop never see another hop's connection.
    """

    def __init__(
        self,
        settings: ProbeSettings | None = None,
        *,
        ssl_context: ssl.SSLContext | None = None,
        family: int | None = None,
        cancel_token: CancelToken | None = None,
        network_backend: httpcore.NetworkBackend | None = None,
    ):
        self.settings = settings or load_probe_settings()
        self.ssl_context = ssl_context or build_ssl_context(trust_env=self.settings.trust_env)
        self.family = socket.AF_UNSPEC if family is None else family
        self.cancel_token = cancel_token
        self._network_backend = network_backend

    def _build_transport(self, request: HttpRequest, tracer: PhaseTracer) -> TracingTransport:
        backend = TracingNetworkBackend(
            tracer,
            family=self.family,
            cancel_token=self.cancel_token,
            tls_handshake_timeout=self.settings.tls_handshake_timeout,
            backend=self._network_backend,
        )
        proxy = proxy_for_url(request.url) if self.settings.trust_env else None
        return TracingTransport(backend, ssl_context=self.ssl_context, proxy=proxy)

    @contextmanager
    def stream(self, request: HttpRequest, tracer: PhaseTracer) -> Iterator[httpx.Response]:
        headers = list(request.headers)
        if request.host_override:
            headers.append(("Host", request.host_override))

        extensions: dict[str, object] = {"trace": tracer.on_trace_event}
        if request.scheme == "https":
            extensions["sni_hostname"] = sni_hostname(request)

        timeout = httpx.Timeout(self.settings.read_timeout, connect=self.settings.connect_timeout)
        transport = self._build_transport(request, tracer)

        with httpx.Client(
            transport=transport,
            headers={"User-Agent": self.settings.user_agent},
            timeout=timeout,
            follow_redirects=False,
            trust_env=False,
        ) as client:
            try:
                http_request = client.build_request(
                    request.method,
                    request.url,
                    headers=headers,
                    content=request.body,
                    extensions=extensions,
                )
            except httpx.InvalidURL as exc:
                raise ConfigurationError(f"unable to create request: {exc}") from exc

            logger.debug("%s %s", request.method, request.url)
            try:
                response = client.send(http_request, stream=True, follow_redirects=False)
            except httpx.TransportError as exc:
                raise translate_transport_error(exc) from exc

            try:
                yield response
            finally:
                response.close()

    def close(self) -> None:
        return None


__all__ = ["HttpxClient", "translate_transport_error"]
