# SPDX-FileCopyrightText: 2025 Theori Inc.
# SPDX-License-Identifier: AGPL-3.0-or-later

"""Error taxonomy and exception helpers."""

from __future__ import annotations

import socket
import ssl as ssl_module
from enum import Enum

import httpcore
import httpx


class ErrorCategory(str, Enum):
    CONFIGURATION = "CONFIGURATION"
    DNS_ERROR = "DNS_ERROR"
    CONNECTION_ERROR = "CONNECTION_ERROR"
    SSL_ERROR = "SSL_ERROR"
    TIMEOUT = "TIMEOUT"
    REDIRECT = "REDIRECT"
    BODY_IO = "BODY_IO"
    CANCELLED = "CANCELLED"
    UNKNOWN_ERROR = "UNKNOWN_ERROR"


class ProbeError(Exception):
    """Base class for every fatal probe failure."""

    category: ErrorCategory = ErrorCategory.UNKNOWN_ERROR

    def __init__(self, message: str, *, category: ErrorCategory | None = None):
        super().__init__(message)
        if category is not None:
            self.category = category


class ConfigurationError(ProbeError):
    """Bad flags or malformed input, detected before any network I/O."""

    category = ErrorCategory.CONFIGURATION


class ConnectionFailure(ProbeError):
    """DNS resolution or TCP connect failed."""

    category = ErrorCategory.CONNECTION_ERROR


class TLSConfigurationError(ProbeError):
    """Client certificate could not be loaded or TLS could not be set up."""

    category = ErrorCategory.SSL_ERROR


class RedirectError(ProbeError):
    category = ErrorCategory.REDIRECT


class RedirectLimitError(RedirectError):
    def __init__(self, max_redirects: int):
        super().__init__(f"maximum number of redirects ({max_redirects}) followed")
        self.max_redirects = max_redirects


class BodyIOError(ProbeError):
    category = ErrorCategory.BODY_IO


class ProbeCancelled(ProbeError):
    category = ErrorCategory.CANCELLED


def categorize_exception(exc: BaseException) -> ErrorCategory:
    """
    Map Python/httpx/httpcore exceptions to ErrorCategory.
    """
    if isinstance(exc, ProbeError):
        return exc.category

    if isinstance(exc, (httpx.TimeoutException, httpcore.TimeoutException, socket.timeout)):
        return ErrorCategory.TIMEOUT

    if isinstance(exc, (socket.gaierror, socket.herror)):
        return ErrorCategory.DNS_ERROR

    if isinstance(exc, (ssl_module.SSLError, ssl_module.CertificateError)):
        return ErrorCategory.SSL_ERROR

    # httpx wraps handshake failures in ConnectError; look at the cause chain.
    cause = exc.__cause__ or exc.__context__
    if cause is not None and cause is not exc and isinstance(exc, (httpx.ConnectError, httpcore.ConnectError)):
        nested = categorize_exception(cause)
        if nested in (ErrorCategory.SSL_ERROR, ErrorCategory.DNS_ERROR, ErrorCategory.CANCELLED):
            return nested

    if isinstance(
        exc,
        (httpx.ConnectError, httpx.RemoteProtocolError, httpx.NetworkError, httpx.ProxyError, httpcore.NetworkError),
    ):
        return ErrorCategory.CONNECTION_ERROR

    if isinstance(exc, (ConnectionError, ConnectionRefusedError, ConnectionResetError)):
        return ErrorCategory.CONNECTION_ERROR

    return ErrorCategory.UNKNOWN_ERROR


def error_category_to_reason(category: ErrorCategory | None) -> str:
    """User-facing reason string."""
    mapping = {
        ErrorCategory.CONFIGURATION: "Invalid probe configuration",
        ErrorCategory.DNS_ERROR: "DNS resolution failure",
        ErrorCategory.CONNECTION_ERROR: "Unable to connect to host",
        ErrorCategory.SSL_ERROR: "TLS/certificate issue",
        ErrorCategory.TIMEOUT: "Network timeout during probe",
        ErrorCategory.REDIRECT: "Unable to follow redirect",
        ErrorCategory.BODY_IO: "Request or response body I/O failure",
        ErrorCategory.CANCELLED: "Probe cancelled",
        ErrorCategory.UNKNOWN_ERROR: "Network error during probe",
        None: "",
    }
    return mapping.get(category, "Probe failed due to network error")


__all__ = [
    "BodyIOError",
    "ConfigurationError",
    "ConnectionFailure",
    "ErrorCategory",
    "ProbeCancelled",
    "ProbeError",
    "RedirectError",
    "RedirectLimitError",
    "TLSConfigurationError",
    "categorize_exception",
    "error_category_to_reason",
]
