# SPDX-FileCopyrightText: 2025 Theori Inc.
# SPDX-License-Identifier: AGPL-3.0-or-later

"""Probe configuration models."""

from __future__ import annotations

import socket
from dataclasses import dataclass
from enum import Enum

from ..errors import ConfigurationError
from ..http.headers import parse_header_line


class IpFamily(str, Enum):
    ANY = "any"
    IPV4 = "ipv4"
    IPV6 = "ipv6"

    @property
    def address_family(self) -> int:
        if self is IpFamily.IPV4:
            return socket.AF_INET
        if self is IpFamily.IPV6:
            return socket.AF_INET6
        return socket.AF_UNSPEC

    @classmethod
    def from_flags(cls, ipv4_only: bool, ipv6_only: bool) -> "IpFamily":
        if ipv4_only and ipv6_only:
            raise ConfigurationError("Only one of -4 and -6 may be specified")
        if ipv4_only:
            return cls.IPV4
        if ipv6_only:
            return cls.IPV6
        return cls.ANY


class BodyDisposition(str, Enum):
    DISCARD = "discard"
    SAVE_AS = "save_as"
    SAVE_REMOTE_NAME = "save_remote_name"
    SHOW = "show"


@dataclass(frozen=True)
class ProbeConfig:
    """
    Everything a single probe invocation needs, supplied by the caller.

    - `body` is inline text, or ``@filename`` to stream a local file.
    - `headers` are raw ``"Name: Value"`` strings; ``Host`` rewrites the outbound Host.
    - `output_file` is required when `body_disposition` is ``SAVE_AS``.
    """

    method: str = "GET"
    body: str = ""
    headers: tuple[str, ...] = ()
    follow_redirects: bool = False
    only_header: bool = False
    insecure: bool = False
    client_cert_file: str | None = None
    ip_family: IpFamily = IpFamily.ANY
    body_disposition: BodyDisposition = BodyDisposition.DISCARD
    output_file: str | None = None

    def __post_init__(self) -> None:
        object.__setattr__(self, "method", (self.method or "GET").upper())
        object.__setattr__(self, "headers", tuple(self.headers or ()))

    @property
    def effective_method(self) -> str:
        return "HEAD" if self.only_header else self.method

    def validate(self) -> None:
        """Raise ConfigurationError for anything detectable before network I/O."""
        if self.method in ("POST", "PUT") and self.body == "":
            raise ConfigurationError("must supply post body using -d when POST or PUT is used")
        for line in self.headers:
            parse_header_line(line)
        if self.body_disposition is BodyDisposition.SAVE_AS and not self.output_file:
            raise ConfigurationError("an output file name is required to save the response body")


__all__ = ["BodyDisposition", "IpFamily", "ProbeConfig"]
