# SPDX-FileCopyrightText: 2025 Theori Inc.
# SPDX-License-Identifier: AGPL-3.0-or-later

"""Outbound request representation used by HttpClient implementations."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import BinaryIO
from urllib.parse import urlsplit

HeaderList = list[tuple[str, str]]


@dataclass
class HttpRequest:
    """
    A fully built request for one hop.

    `headers` keeps order and duplicates. `host_override` replaces the Host
    header (and the TLS server name) without changing where we connect.
    The request owns `body` when it is a file and must be closed after the hop.
    """

    url: str
    method: str = "GET"
    headers: HeaderList = field(default_factory=list)
    body: bytes | BinaryIO | None = None
    host_override: str | None = None

    @property
    def scheme(self) -> str:
        return urlsplit(self.url).scheme.lower()

    @property
    def host(self) -> str:
        """Host (with port, if any) the request is addressed to."""
        return self.host_override or urlsplit(self.url).netloc.rsplit("@", 1)[-1]

    def close(self) -> None:
        close = getattr(self.body, "close", None)
        if callable(close):
            close()


__all__ = ["HeaderList", "HttpRequest"]
