# SPDX-FileCopyrightText: 2025 Theori Inc.
# SPDX-License-Identifier: AGPL-3.0-or-later

"""Dataclasses for per-hop and whole-probe reports."""

from __future__ import annotations

from dataclasses import asdict, dataclass, field
from enum import Enum
from typing import Any


class BodyStatus(str, Enum):
    SKIPPED = "skipped"
    DISCARDED = "discarded"
    SAVED = "saved"
    SHOWN = "shown"


_TLS_LABELS = {"TLSv1.2": "TLSv1.2", "TLSv1.3": "TLSv1.3"}


def tls_label(version: str | None, used_tls: bool) -> str | None:
    """``plaintext``, ``TLSv1.2`` or ``TLSv1.3``; other negotiated versions are unlabeled."""
    if not used_tls:
        return "plaintext"
    return _TLS_LABELS.get(version or "")


@dataclass(frozen=True)
class PhaseDurations:
    """Phase and cumulative durations of one hop, in whole milliseconds."""

    dns_lookup: int = 0
    tcp_connection: int = 0
    tls_handshake: int = 0
    server_processing: int = 0
    content_transfer: int = 0
    name_lookup: int = 0
    connect: int = 0
    pre_transfer: int = 0
    start_transfer: int = 0
    total: int = 0

    def to_dict(self) -> dict[str, int]:
        return asdict(self)


@dataclass(frozen=True)
class BodyOutcome:
    status: BodyStatus
    message: str = ""
    filename: str | None = None
    bytes_read: int = 0
    text: str | None = None

    def to_dict(self) -> dict[str, Any]:
        return {
            "status": self.status.value,
            "message": self.message,
            "filename": self.filename,
            "bytes_read": self.bytes_read,
            "text": self.text,
        }


@dataclass
class HopReport:
    url: str
    method: str
    http_version: str
    status_code: int
    reason_phrase: str
    headers: list[tuple[str, str]]
    durations: PhaseDurations
    tls_version: str | None
    body: BodyOutcome
    remote_address: str | None = None
    location: str | None = None

    @property
    def scheme(self) -> str:
        return self.url.split("://", 1)[0].lower() if "://" in self.url else ""

    @property
    def status_line(self) -> str:
        return f"{self.http_version} {self.status_code} {self.reason_phrase}".rstrip()

    @property
    def is_redirect(self) -> bool:
        return 300 <= self.status_code < 400

    def to_dict(self) -> dict[str, Any]:
        return {
            "url": self.url,
            "method": self.method,
            "http_version": self.http_version,
            "status_code": self.status_code,
            "reason_phrase": self.reason_phrase,
            "headers": [[name, value] for name, value in self.headers],
            "durations_ms": self.durations.to_dict(),
            "tls_version": self.tls_version,
            "remote_address": self.remote_address,
            "location": self.location,
            "body": self.body.to_dict(),
        }


@dataclass
class ProbeReport:
    hops: list[HopReport] = field(default_factory=list)
    redirects_followed: int = 0

    @property
    def final(self) -> HopReport | None:
        return self.hops[-1] if self.hops else None

    def to_dict(self) -> dict[str, Any]:
        return {
            "redirects_followed": self.redirects_followed,
            "hops": [hop.to_dict() for hop in self.hops],
        }


__all__ = ["BodyOutcome", "BodyStatus", "HopReport", "PhaseDurations", "ProbeReport", "tls_label"]
