# SPDX-FileCopyrightText: 2025 Theori Inc.
# SPDX-License-Identifier: AGPL-3.0-or-later

import socket
import ssl

import httpx

from httptiming.config import DEFAULT_USER_AGENT, ProbeSettings, load_probe_settings
from httptiming.errors import (
    BodyIOError,
    ErrorCategory,
    ProbeCancelled,
    RedirectLimitError,
    categorize_exception,
    error_category_to_reason,
)
from httptiming.log import setup_logging
from httptiming.utils.cancel import CancelToken


def test_defaults(monkeypatch):
    for name in (
        "HTTPTIMING_CONNECT_TIMEOUT",
        "HTTPTIMING_TLS_TIMEOUT",
        "HTTPTIMING_READ_TIMEOUT",
        "HTTPTIMING_MAX_REDIRECTS",
        "HTTPTIMING_USER_AGENT",
        "HTTPTIMING_TRUST_ENV",
    ):
        monkeypatch.delenv(name, raising=False)
    settings = load_probe_settings()
    assert settings.connect_timeout == 30.0
    assert settings.tls_handshake_timeout == 10.0
    assert settings.read_timeout == 30.0
    assert settings.max_redirects == 10
    assert settings.user_agent == DEFAULT_USER_AGENT
    assert settings.trust_env is True


def test_env_overrides(monkeypatch):
    monkeypatch.setenv("HTTPTIMING_CONNECT_TIMEOUT", "5")
    monkeypatch.setenv("HTTPTIMING_TLS_TIMEOUT", "2.5")
    monkeypatch.setenv("HTTPTIMING_READ_TIMEOUT", "7")
    monkeypatch.setenv("HTTPTIMING_MAX_REDIRECTS", "3")
    monkeypatch.setenv("HTTPTIMING_USER_AGENT", "probe/1")
    monkeypatch.setenv("HTTPTIMING_TRUST_ENV", "off")
    settings = ProbeSettings.from_env()
    assert settings.connect_timeout == 5.0
    assert settings.tls_handshake_timeout == 2.5
    assert settings.read_timeout == 7.0
    assert settings.max_redirects == 3
    assert settings.user_agent == "probe/1"
    assert settings.trust_env is False


def test_invalid_env_falls_back(monkeypatch):
    monkeypatch.setenv("HTTPTIMING_CONNECT_TIMEOUT", "soon")
    monkeypatch.setenv("HTTPTIMING_READ_TIMEOUT", "-1")
    monkeypatch.setenv("HTTPTIMING_MAX_REDIRECTS", "-4")
    settings = ProbeSettings.from_env()
    assert settings.connect_timeout == 30.0
    assert settings.read_timeout == 30.0
    assert settings.max_redirects == 10


def test_categorize_exception():
    assert categorize_exception(BodyIOError("x")) is ErrorCategory.BODY_IO
    assert categorize_exception(RedirectLimitError(10)) is ErrorCategory.REDIRECT
    assert categorize_exception(httpx.ReadTimeout("slow")) is ErrorCategory.TIMEOUT
    assert categorize_exception(socket.gaierror("no such host")) is ErrorCategory.DNS_ERROR
    assert categorize_exception(ssl.SSLError("bad cert")) is ErrorCategory.SSL_ERROR
    assert categorize_exception(ConnectionRefusedError()) is ErrorCategory.CONNECTION_ERROR
    assert categorize_exception(ValueError("other")) is ErrorCategory.UNKNOWN_ERROR


def test_categorize_follows_connect_error_cause():
    try:
        try:
            raise ssl.SSLCertVerificationError("certificate verify failed")
        except ssl.SSLError as inner:
            raise httpx.ConnectError("handshake failed") from inner
    except httpx.ConnectError as exc:
        assert categorize_exception(exc) is ErrorCategory.SSL_ERROR


def test_error_reasons_cover_every_category():
    for category in ErrorCategory:
        assert error_category_to_reason(category)
    assert error_category_to_reason(None) == ""


def test_cancel_token_shuts_down_registered_sockets():
    left, right = socket.socketpair()
    try:
        token = CancelToken()
        token.register(left)
        assert not token.cancelled
        token.cancel()
        assert token.cancelled
        # Shutdown makes the peer see EOF immediately.
        assert right.recv(1) == b""
        try:
            token.raise_if_cancelled()
        except ProbeCancelled as exc:
            assert exc.category is ErrorCategory.CANCELLED
        else:  # pragma: no cover
            raise AssertionError("expected ProbeCancelled")
    finally:
        left.close()
        right.close()


def test_cancel_token_cancel_does_not_wait_for_lock():
    left, right = socket.socketpair()
    try:
        token = CancelToken()
        token.register(left)
        # Same thread holding the lock mirrors a signal handler interrupting register().
        with token._lock:
            token.cancel()
            assert token.cancelled
        assert right.recv(1) == b""

        late_left, late_right = socket.socketpair()
        try:
            token.register(late_left)
            assert late_right.recv(1) == b""
        finally:
            late_left.close()
            late_right.close()
    finally:
        left.close()
        right.close()


def test_setup_logging_accepts_level_names():
    setup_logging("debug")
    setup_logging(None)
