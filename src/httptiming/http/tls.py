# SPDX-FileCopyrightText: 2025 Theori Inc.
# SPDX-License-Identifier: AGPL-3.0-or-later

"""TLS client configuration: verification mode, protocol floor and client certificates."""

from __future__ import annotations

import logging
import os
import re
import ssl
import tempfile
from dataclasses import dataclass
from urllib.parse import urlsplit

import httpx
from cryptography import x509
from cryptography.exceptions import UnsupportedAlgorithm
from cryptography.hazmat.primitives import serialization

from ..errors import TLSConfigurationError
from .models import HttpRequest

logger = logging.getLogger(__name__)

_PEM_BLOCK_RE = re.compile(
    rb"-----BEGIN (?P<type>[^-\r\n]+)-----\r?\n.*?-----END (?P=type)-----\r?\n?",
    re.DOTALL,
)


@dataclass(frozen=True)
class ClientCertificate:
    """One private key and its matching certificate, both PEM encoded."""

    key_pem: bytes
    cert_pem: bytes
    subject: str = ""

    @property
    def chain_pem(self) -> bytes:
        return self.cert_pem.rstrip(b"\n") + b"\n" + self.key_pem.rstrip(b"\n") + b"\n"


def _public_key_der(key) -> bytes:  # noqa: ANN001
    return key.public_bytes(
        encoding=serialization.Encoding.DER,
        format=serialization.PublicFormat.SubjectPublicKeyInfo,
    )


def parse_client_certificate(data: bytes, *, source: str = "<memory>") -> ClientCertificate:
    """
    Pick the private key and certificate out of a PEM bundle.

    Blocks are scanned in file order; the last ``*PRIVATE KEY`` and the last
    ``*CERTIFICATE`` win, so their relative order does not matter.
    """
    key_pem: bytes | None = None
    cert_pem: bytes | None = None
    for match in _PEM_BLOCK_RE.finditer(data):
        block_type = match.group("type").strip()
        if block_type.endswith(b"PRIVATE KEY"):
            key_pem = match.group(0)
        if block_type.endswith(b"CERTIFICATE"):
            cert_pem = match.group(0)

    if key_pem is None or cert_pem is None:
        missing = "private key" if key_pem is None else "certificate"
        raise TLSConfigurationError(f"unable to load client cert and key pair from {source}: no {missing} found")

    try:
        private_key = serialization.load_pem_private_key(key_pem, password=None)
        certificate = x509.load_pem_x509_certificate(cert_pem)
    except (TypeError, ValueError, UnsupportedAlgorithm) as exc:
        raise TLSConfigurationError(f"unable to load client cert and key pair from {source}: {exc}") from exc

    if _public_key_der(private_key.public_key()) != _public_key_der(certificate.public_key()):
        raise TLSConfigurationError(
            f"unable to load client cert and key pair from {source}: private key does not match certificate"
        )

    return ClientCertificate(key_pem=key_pem, cert_pem=cert_pem, subject=certificate.subject.rfc4514_string())


def load_client_certificate(path: str) -> ClientCertificate:
    try:
        with open(path, "rb") as handle:
            data = handle.read()
    except OSError as exc:
        raise TLSConfigurationError(f"failed to read client certificate file: {exc}") from exc
    cert = parse_client_certificate(data, source=path)
    logger.debug("Loaded client certificate %s from %s", cert.subject, path)
    return cert


def build_ssl_context(
    *,
    insecure: bool = False,
    client_cert: ClientCertificate | None = None,
    trust_env: bool = True,
) -> ssl.SSLContext:
    """Client TLS context with a TLS 1.2 floor."""
    context = httpx.create_ssl_context(verify=not insecure, trust_env=trust_env)
    context.minimum_version = ssl.TLSVersion.TLSv1_2

    if client_cert is not None:
        # ssl only loads credentials from disk.
        with tempfile.TemporaryDirectory(prefix="httptiming-") as tmpdir:
            chain_path = os.path.join(tmpdir, "client.pem")
            with open(chain_path, "wb") as handle:
                handle.write(client_cert.chain_pem)
            try:
                context.load_cert_chain(chain_path)
            except ssl.SSLError as exc:
                raise TLSConfigurationError(f"unable to load client cert and key pair: {exc}") from exc
    return context


def sni_hostname(request: HttpRequest) -> str:
    """Server name for the handshake: the (possibly overridden) Host without its port."""
    host = request.host
    hostname = urlsplit(f"//{host}").hostname
    return hostname or host


__all__ = [
    "ClientCertificate",
    "build_ssl_context",
    "load_client_certificate",
    "parse_client_certificate",
    "sni_hostname",
]
