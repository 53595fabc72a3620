# SPDX-FileCopyrightText: 2025 Theori Inc.
# SPDX-License-Identifier: AGPL-3.0-or-later

"""URL helpers shared across hops."""

from __future__ import annotations

import logging
import posixpath
from urllib.parse import urlsplit, urlunsplit

import httpx

from ..errors import BodyIOError, ConfigurationError

logger = logging.getLogger(__name__)


def normalize_url(raw: str) -> str:
    """
    Turn a bare ``host[:port][/path]`` argument into a fully qualified URL.

    Example:
      example.com:80/x -> http://example.com:80/x
      example.com      -> https://example.com
    """
    uri = str(raw or "").strip()
    if "://" not in uri and not uri.startswith("//"):
        uri = "//" + uri

    try:
        parts = urlsplit(uri)
        # Accessing .port validates it.
        parts.port
    except ValueError as exc:
        raise ConfigurationError(f"could not parse url {raw!r}: {exc}") from exc

    if not parts.hostname:
        raise ConfigurationError(f"could not parse url {raw!r}: missing host")

    if parts.scheme:
        return uri

    scheme = "http" if parts.netloc.endswith(":80") else "https"
    return urlunsplit((scheme, parts.netloc, parts.path, parts.query, parts.fragment))


def resolve_location(base_url: str, location: str | None) -> str | None:
    """
    Resolve a redirect ``Location`` against the URL that produced it.

    Returns None when there is nothing usable to follow.
    """
    if location is None or not location.strip():
        return None
    try:
        return str(httpx.URL(base_url).join(location.strip()))
    except httpx.InvalidURL as exc:
        logger.debug("Ignoring unusable Location %r: %s", location, exc)
        return None


def remote_filename(url: str) -> str:
    """Derive a local file name from the last path segment of ``url``."""
    path = urlsplit(url).path.rstrip("/")
    name = posixpath.basename(path)
    if not name:
        raise BodyIOError("No remote filename; specify output filename with -o to save response body")
    return name


__all__ = ["normalize_url", "remote_filename", "resolve_location"]
