# SPDX-FileCopyrightText: 2025 Theori Inc.
# SPDX-License-Identifier: AGPL-3.0-or-later

"""Response body disposition: skip, discard, save to disk, or keep for display."""

from __future__ import annotations

import logging
from collections.abc import Callable

import httpx

from ..errors import BodyIOError
from ..http.headers import filename_from_content_disposition, header_value
from ..http.url import remote_filename
from ..models.probe import BodyDisposition
from ..models.report import BodyOutcome, BodyStatus

logger = logging.getLogger(__name__)


def is_redirect_status(status_code: int) -> bool:
    return 300 <= status_code < 400


def _copy_body(response: httpx.Response, write: Callable[[bytes], object] | None) -> int:
    total = 0
    try:
        for chunk in response.iter_bytes():
            total += len(chunk)
            if write is not None:
                write(chunk)
    except httpx.HTTPError as exc:
        raise BodyIOError(f"failed to read response body: {exc}") from exc
    except OSError as exc:
        raise BodyIOError(f"failed to write response body: {exc}") from exc
    return total


def _decode(content: bytes, encoding: str | None) -> str:
    try:
        return content.decode(encoding or "utf-8", errors="replace")
    except LookupError:
        return content.decode("utf-8", errors="replace")


def output_filename(response: httpx.Response, url: str, disposition: BodyDisposition, output_file: str | None) -> str:
    """Pick the local file name for a saved body."""
    if disposition is BodyDisposition.SAVE_REMOTE_NAME:
        # Content-Disposition first, then the last path segment of the URL.
        filename = filename_from_content_disposition(header_value(response.headers, "Content-Disposition"))
        return filename or remote_filename(url)
    if not output_file:
        raise BodyIOError("no output file name given")
    return output_file


def dispose_body(
    response: httpx.Response,
    *,
    method: str,
    url: str,
    disposition: BodyDisposition = BodyDisposition.DISCARD,
    output_file: str | None = None,
) -> BodyOutcome:
    """
    Consume the body of ``response`` according to ``disposition``.

    HEAD requests and redirect responses never have their body read.
    """
    if method.upper() == "HEAD" or is_redirect_status(response.status_code):
        return BodyOutcome(status=BodyStatus.SKIPPED)

    if disposition is BodyDisposition.SHOW:
        chunks: list[bytes] = []
        bytes_read = _copy_body(response, chunks.append)
        return BodyOutcome(
            status=BodyStatus.SHOWN,
            bytes_read=bytes_read,
            text=_decode(b"".join(chunks), response.encoding),
        )

    if disposition in (BodyDisposition.SAVE_AS, BodyDisposition.SAVE_REMOTE_NAME):
        filename = output_filename(response, url, disposition, output_file)
        try:
            handle = open(filename, "wb")
        except OSError as exc:
            raise BodyIOError(f"unable to create file {filename}: {exc}") from exc
        with handle:
            bytes_read = _copy_body(response, handle.write)
        logger.debug("Saved %d bytes to %s", bytes_read, filename)
        return BodyOutcome(status=BodyStatus.SAVED, message="Body read", filename=filename, bytes_read=bytes_read)

    bytes_read = _copy_body(response, None)
    return BodyOutcome(status=BodyStatus.DISCARDED, message="Body discarded", bytes_read=bytes_read)


__all__ = ["dispose_body", "is_redirect_status", "output_filename"]
