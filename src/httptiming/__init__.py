# SPDX-FileCopyrightText: 2025 Theori Inc.
# SPDX-License-Identifier: AGPL-3.0-or-later

"""
httptiming package entrypoint.

Probes a single HTTP(S) URL and reports how long each phase of the exchange
took: DNS lookup, TCP connect, TLS handshake, server processing and content
transfer. Redirects are followed manually so every hop is timed on its own
cold connection. The network layer is an httpx transport with an httpcore
backend that records phase timestamps as the request runs.
"""

from .config import ProbeSettings, load_probe_settings
from .errors import ErrorCategory, ProbeError
from .http import HttpClient, HttpRequest, HttpxClient, PhaseTracer, create_default_http_client
from .log import setup_logging
from .models import (
    BodyDisposition,
    HopReport,
    IpFamily,
    PhaseDurations,
    ProbeConfig,
    ProbeReport,
)
from .probe import ProbeEngine
from .runtime import HttpTiming
from .version import __version__

__all__ = [
    "BodyDisposition",
    "ErrorCategory",
    "HopReport",
    "HttpClient",
    "HttpRequest",
    "HttpTiming",
    "HttpxClient",
    "IpFamily",
    "PhaseDurations",
    "PhaseTracer",
    "ProbeConfig",
    "ProbeEngine",
    "ProbeError",
    "ProbeReport",
    "ProbeSettings",
    "create_default_http_client",
    "load_probe_settings",
    "setup_logging",
    "__version__",
]
