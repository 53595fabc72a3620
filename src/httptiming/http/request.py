# SPDX-FileCopyrightText: 2025 Theori Inc.
# SPDX-License-Identifier: AGPL-3.0-or-later

"""Request builder: method, URL, body source and raw header strings in, HttpRequest out."""

from __future__ import annotations

from collections.abc import Iterable
from typing import BinaryIO

from ..errors import BodyIOError
from .headers import parse_header_line
from .models import HttpRequest


def open_body(body: str | None) -> bytes | BinaryIO | None:
    """
    Resolve a body source.

    ``@path`` opens the file for streaming; anything else is sent verbatim.
    """
    if not body:
        return None
    if body.startswith("@"):
        filename = body[1:]
        try:
            return open(filename, "rb")
        except OSError as exc:
            raise BodyIOError(f"failed to open data file {filename}: {exc}") from exc
    return body.encode("utf-8")


def build_request(
    method: str,
    url: str,
    body: str | None = None,
    headers: Iterable[str] = (),
) -> HttpRequest:
    # Parse headers before opening the body so a bad header never leaks a file handle.
    header_pairs: list[tuple[str, str]] = []
    host_override: str | None = None
    for line in headers:
        key, value = parse_header_line(line)
        if key.lower() == "host":
            host_override = value
            continue
        header_pairs.append((key, value))

    return HttpRequest(
        url=url,
        method=method.upper(),
        headers=header_pairs,
        body=open_body(body),
        host_override=host_override,
    )


__all__ = ["build_request", "open_body"]
