# SPDX-FileCopyrightText: 2025 Theori Inc.
# SPDX-License-Identifier: AGPL-3.0-or-later

"""Header parsing, canonicalization and display ordering.

HTTP header field names are case-insensitive (RFC 9110). Response headers are
canonicalized (``content-type`` -> ``Content-Type``) before they are ordered for
display so that the ``Server`` and hop-by-hop rules match regardless of how the
server spelled them.
"""

from __future__ import annotations

from collections.abc import Iterable, Mapping
from email.message import Message
from typing import Any

from ..errors import ConfigurationError

# RFC 2616 section 13.5.1
HOP_BY_HOP_HEADERS = frozenset(
    {
        "connection",
        "keep-alive",
        "proxy-authenticate",
        "proxy-authorization",
        "te",
        "trailers",
        "transfer-encoding",
        "upgrade",
    }
)


def parse_header_line(line: str) -> tuple[str, str]:
    """
    Split a raw ``"Name: Value"`` string at the first colon.

    The key loses surrounding spaces; the value only loses leading spaces and
    colons so internal spacing survives.
    """
    index = line.find(":")
    if index == -1:
        raise ConfigurationError(f"Header '{line}' has invalid format, missing ':'")
    return line[:index].strip(" "), line[index:].lstrip(" :")


def canonical_header_name(name: str) -> str:
    """Return the MIME-canonical form of a header name."""
    return "-".join(part[:1].upper() + part[1:].lower() for part in name.strip().split("-"))


def is_hop_by_hop(name: str) -> bool:
    return name.lower() in HOP_BY_HOP_HEADERS


def header_sort_key(name: str) -> tuple[int, bool, str]:
    # Server always first, then end-to-end before hop-by-hop, then lexical.
    return (0 if name == "Server" else 1, is_hop_by_hop(name), name)


def sort_header_names(names: Iterable[str]) -> list[str]:
    return sorted(names, key=header_sort_key)


def order_headers(items: Iterable[tuple[str, str]]) -> list[tuple[str, str]]:
    """
    Group header pairs by canonical name and return them in display order.

    Repeated headers are joined with ``,`` in arrival order.
    """
    grouped: dict[str, list[str]] = {}
    for key, value in items:
        grouped.setdefault(canonical_header_name(key), []).append(value)
    return [(name, ",".join(grouped[name])) for name in sort_header_names(grouped)]


def header_value(headers: Mapping[str, Any] | Iterable[tuple[str, str]] | None, name: str, default: str = "") -> str:
    """Return the first header value matching ``name`` case-insensitively."""
    if not headers or not name:
        return default
    items = headers.items() if isinstance(headers, Mapping) else headers
    lower = name.lower()
    for key, value in items:
        if key is None:
            continue
        if str(key).lower() == lower:
            return default if value is None else str(value).strip()
    return default


def filename_from_content_disposition(value: str | None) -> str:
    """
    Return the attachment filename announced by a Content-Disposition header.

    Returns ``""`` when the header is missing, is not an attachment, or carries
    no filename. Directory components are dropped.
    """
    if not value:
        return ""
    message = Message()
    message["Content-Disposition"] = value
    if message.get_content_disposition() != "attachment":
        return ""
    filename = message.get_filename() or ""
    return filename.replace("\\", "/").rsplit("/", 1)[-1]


__all__ = [
    "HOP_BY_HOP_HEADERS",
    "canonical_header_name",
    "filename_from_content_disposition",
    "header_sort_key",
    "header_value",
    "is_hop_by_hop",
    "order_headers",
    "parse_header_line",
    "sort_header_names",
]
