# SPDX-FileCopyrightText: 2025 Theori Inc.
# SPDX-License-Identifier: AGPL-3.0-or-later

"""Configuration helpers for httptiming."""

import os
from dataclasses import dataclass

from .version import __version__

DEFAULT_USER_AGENT = f"httptiming/{__version__}"


def _float_env(name: str, default: float) -> float:
    try:
        value = os.getenv(name)
        return float(value) if value is not None else default
    except ValueError:
        return default


def _int_env(name: str, default: int) -> int:
    try:
        value = os.getenv(name)
        return int(value) if value is not None else default
    except ValueError:
        return default


def _bool_env(name: str, default: bool) -> bool:
    value = os.getenv(name)
    if value is None:
        return default
    return value.strip().lower() in {"1", "true", "yes", "on"}


@dataclass
class ProbeSettings:
    """Transport defaults shared by every hop of a probe."""

    connect_timeout: float = 30.0
    tls_handshake_timeout: float = 10.0
    read_timeout: float = 30.0
    max_redirects: int = 10
    user_agent: str = DEFAULT_USER_AGENT
    trust_env: bool = True

    @classmethod
    def from_env(cls) -> "ProbeSettings":
        """Create settings from environment variables (evaluated at call time)."""
        connect_timeout = _float_env("HTTPTIMING_CONNECT_TIMEOUT", cls.connect_timeout)
        if connect_timeout <= 0:
            connect_timeout = cls.connect_timeout
        tls_handshake_timeout = _float_env("HTTPTIMING_TLS_TIMEOUT", cls.tls_handshake_timeout)
        if tls_handshake_timeout <= 0:
            tls_handshake_timeout = cls.tls_handshake_timeout
        read_timeout = _float_env("HTTPTIMING_READ_TIMEOUT", cls.read_timeout)
        if read_timeout <= 0:
            read_timeout = cls.read_timeout
        max_redirects = _int_env("HTTPTIMING_MAX_REDIRECTS", cls.max_redirects)
        if max_redirects < 0:
            max_redirects = cls.max_redirects
        return cls(
            connect_timeout=connect_timeout,
            tls_handshake_timeout=tls_handshake_timeout,
            read_timeout=read_timeout,
            max_redirects=max_redirects,
            user_agent=os.getenv("HTTPTIMING_USER_AGENT", cls.user_agent),
            trust_env=_bool_env("HTTPTIMING_TRUST_ENV", cls.trust_env),
        )


def load_probe_settings() -> ProbeSettings:
    """Load probe settings from environment with sensible defaults."""
    return ProbeSettings.from_env()
