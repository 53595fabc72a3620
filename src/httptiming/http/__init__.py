# SPDX-FileCopyrightText: 2025 Theori Inc.
# SPDX-License-Identifier: AGPL-3.0-or-later

"""HTTP client exports."""

from .client import HttpClient, create_default_http_client
from .headers import header_value, order_headers, parse_header_line
from .httpx_client import HttpxClient
from .models import HttpRequest
from .request import build_request
from .tls import build_ssl_context, load_client_certificate
from .tracer import PhaseTracer, TimingTrace, TracingNetworkBackend
from .transport import TracingTransport
from .url import normalize_url, resolve_location

__all__ = [
    "HttpClient",
    "HttpxClient",
    "HttpRequest",
    "PhaseTracer",
    "TimingTrace",
    "TracingNetworkBackend",
    "TracingTransport",
    "build_request",
    "build_ssl_context",
    "create_default_http_client",
    "header_value",
    "load_client_certificate",
    "normalize_url",
    "order_headers",
    "parse_header_line",
    "resolve_location",
]
