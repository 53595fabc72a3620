# SPDX-FileCopyrightText: 2025 Theori Inc.
# SPDX-License-Identifier: AGPL-3.0-or-later

"""httpx transport whose connections are dialled through a tracing network backend."""

from __future__ import annotations

import ipaddress
import logging
import ssl
import urllib.request
from collections.abc import Mapping
from urllib.parse import urlsplit

import httpcore
import httpx

from ..errors import ConfigurationError

logger = logging.getLogger(__name__)


def _is_loopback(host: str) -> bool:
    if host == "localhost":
        return True
    try:
        return ipaddress.ip_address(host).is_loopback
    except ValueError:
        return False


def proxy_for_url(url: str, proxies: Mapping[str, str] | None = None) -> str | None:
    """
    Pick the proxy for ``url`` using the standard environment rules.

    ``HTTPS_PROXY``/``HTTP_PROXY`` by scheme, ``ALL_PROXY`` as fallback,
    ``NO_PROXY`` exclusions, and loopback hosts are never proxied.
    """
    environ_proxies = dict(urllib.request.getproxies() if proxies is None else proxies)
    parts = urlsplit(url)
    host = parts.hostname or ""
    if not host or _is_loopback(host):
        return None
    if environ_proxies.get("no") and urllib.request.proxy_bypass_environment(parts.netloc, environ_proxies):
        return None

    proxy = environ_proxies.get(parts.scheme.lower()) or environ_proxies.get("all")
    if not proxy:
        return None
    if "://" not in proxy:
        proxy = "http://" + proxy
    return proxy


class TracingTransport(httpx.HTTPTransport):
    """
    HTTPTransport variant that dials through ``network_backend``.

    One transport serves exactly one hop; connections are never reused across hops.
    """

    def __init__(
        self,
        network_backend: httpcore.NetworkBackend,
        *,
        ssl_context: ssl.SSLContext,
        proxy: str | None = None,
    ):
        super().__init__(verify=ssl_context, trust_env=False)
        if proxy is None:
            self._pool = httpcore.ConnectionPool(
                ssl_context=ssl_context,
                max_connections=1,
                network_backend=network_backend,
            )
            return

        try:
            proxy_config = httpx.Proxy(url=proxy)
        except (ValueError, httpx.InvalidURL) as exc:
            raise ConfigurationError(f"invalid proxy URL {proxy!r}: {exc}") from exc
        if proxy_config.url.scheme not in ("http", "https"):
            raise ConfigurationError(f"unsupported proxy scheme {proxy_config.url.scheme!r}")

        logger.debug("Using proxy %s", proxy_config.url)
        self._pool = httpcore.HTTPProxy(
            proxy_url=httpcore.URL(
                scheme=proxy_config.url.raw_scheme,
                host=proxy_config.url.raw_host,
                port=proxy_config.url.port,
                target=proxy_config.url.raw_path,
            ),
            proxy_auth=proxy_config.raw_auth,
            proxy_headers=proxy_config.headers.raw,
            ssl_context=ssl_context,
            max_connections=1,
            network_backend=network_backend,
        )


__all__ = ["TracingTransport", "proxy_for_url"]
