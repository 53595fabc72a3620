# SPDX-FileCopyrightText: 2025 Theori Inc.
# SPDX-License-Identifier: AGPL-3.0-or-later

"""High-level facade wiring settings, TLS, transport and the redirect engine."""

from __future__ import annotations

from contextlib import suppress
from typing import Optional

from .config import ProbeSettings, load_probe_settings
from .http.client import HttpClient, create_default_http_client
from .http.tls import build_ssl_context, load_client_certificate
from .http.url import normalize_url
from .models import ProbeConfig, ProbeReport
from .probe.engine import HopCallback, ProbeEngine
from .utils.cancel import CancelToken


class HttpTiming:
    """
    Convenience wrapper that builds a per-invocation client and runs one probe.

    Configuration problems (bad URL, headers, IP family, client certificate)
    surface before any network I/O. `cancel()` is safe to call from another
    thread; it unblocks the in-flight hop and stops the redirect chain.
    """

    def __init__(
        self,
        settings: Optional[ProbeSettings] = None,
        *,
        http_client: Optional[HttpClient] = None,
        cancel_token: Optional[CancelToken] = None,
    ):
        self.settings = settings or load_probe_settings()
        self.cancel_token = cancel_token or CancelToken()
        self.http_client = http_client

    def _create_client(self, config: ProbeConfig) -> HttpClient:
        client_cert = load_client_certificate(config.client_cert_file) if config.client_cert_file else None
        ssl_context = build_ssl_context(
            insecure=config.insecure,
            client_cert=client_cert,
            trust_env=self.settings.trust_env,
        )
        return create_default_http_client(
            self.settings,
            ssl_context=ssl_context,
            family=config.ip_family.address_family,
            cancel_token=self.cancel_token,
        )

    def probe(
        self,
        url: str,
        config: Optional[ProbeConfig] = None,
        *,
        on_hop: Optional[HopCallback] = None,
    ) -> ProbeReport:
        config = config or ProbeConfig()
        config.validate()
        target = normalize_url(url)

        owns_client = self.http_client is None
        client = self.http_client or self._create_client(config)
        try:
            engine = ProbeEngine(client, config, self.settings, cancel_token=self.cancel_token)
            return engine.run(target, on_hop=on_hop)
        finally:
            if owns_client:
                with suppress(Exception):
                    client.close()

    def cancel(self) -> None:
        self.cancel_token.cancel()

    def close(self) -> None:
        with suppress(Exception):
            if self.http_client is not None and hasattr(self.http_client, "close"):
                self.http_client.close()

    def __enter__(self) -> "HttpTiming":
        return self

    def __exit__(self, exc_type, exc, tb) -> None:  # noqa: ANN001
        self.close()
