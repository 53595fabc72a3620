# SPDX-FileCopyrightText: 2025 Theori Inc.
# SPDX-License-Identifier: AGPL-3.0-or-later

"""HTTP client abstraction and factory."""

from __future__ import annotations

import ssl
from typing import ContextManager, Protocol

import httpx

from ..config import ProbeSettings, load_probe_settings
from ..utils.cancel import CancelToken
from .models import HttpRequest
from .tracer import PhaseTracer


class HttpClient(Protocol):
    """Issues one hop: the response is open (body unread) inside the context."""

    def stream(self, request: HttpRequest, tracer: PhaseTracer) -> ContextManager[httpx.Response]: ...

    def close(self) -> None:  # pragma: no cover - optional for adapters
        ...


def create_default_http_client(
    settings: ProbeSettings | None = None,
    *,
    ssl_context: ssl.SSLContext | None = None,
    family: int | None = None,
    cancel_token: CancelToken | None = None,
) -> HttpClient:
    """Factory for the default httpx-backed client."""
    from .httpx_client import HttpxClient

    return HttpxClient(
        settings or load_probe_settings(),
        ssl_context=ssl_context,
        family=family,
        cancel_token=cancel_token,
    )
