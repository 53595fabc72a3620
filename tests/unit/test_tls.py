# SPDX-FileCopyrightText: 2025 Theori Inc.
# SPDX-License-Identifier: AGPL-3.0-or-later

import datetime
import ssl

import pytest
from cryptography import x509
from cryptography.exceptions import UnsupportedAlgorithm
from cryptography.hazmat.primitives import hashes, serialization
from cryptography.hazmat.primitives.asymmetric import ec, rsa
from cryptography.x509.oid import NameOID

from httptiming.errors import ErrorCategory, TLSConfigurationError
from httptiming.http.models import HttpRequest
from httptiming.http.tls import (
    build_ssl_context,
    load_client_certificate,
    parse_client_certificate,
    sni_hostname,
)


def _self_signed(key, common_name="client.test"):
    name = x509.Name([x509.NameAttribute(NameOID.COMMON_NAME, common_name)])
    now = datetime.datetime.now(datetime.timezone.utc)
    return (
        x509.CertificateBuilder()
        .subject_name(name)
        .issuer_name(name)
        .public_key(key.public_key())
        .serial_number(x509.random_serial_number())
        .not_valid_before(now - datetime.timedelta(days=1))
        .not_valid_after(now + datetime.timedelta(days=30))
        .sign(key, hashes.SHA256())
    )


def _key_pem(key, fmt=serialization.PrivateFormat.PKCS8):
    return key.private_bytes(
        encoding=serialization.Encoding.PEM,
        format=fmt,
        encryption_algorithm=serialization.NoEncryption(),
    )


def _cert_pem(cert):
    return cert.public_bytes(serialization.Encoding.PEM)


@pytest.fixture(scope="module")
def ec_pair():
    key = ec.generate_private_key(ec.SECP256R1())
    return key, _self_signed(key)


def test_parse_key_then_certificate(ec_pair):
    key, cert = ec_pair
    parsed = parse_client_certificate(_key_pem(key) + _cert_pem(cert))
    assert parsed.cert_pem == _cert_pem(cert)
    assert parsed.key_pem == _key_pem(key)
    assert "client.test" in parsed.subject


def test_parse_certificate_then_key(ec_pair):
    key, cert = ec_pair
    parsed = parse_client_certificate(_cert_pem(cert) + b"\n" + _key_pem(key))
    assert parsed.chain_pem.startswith(b"-----BEGIN CERTIFICATE-----")
    assert b"PRIVATE KEY-----" in parsed.chain_pem


def test_parse_traditional_rsa_key():
    key = rsa.generate_private_key(public_exponent=65537, key_size=2048)
    cert = _self_signed(key, "rsa.test")
    data = _key_pem(key, serialization.PrivateFormat.TraditionalOpenSSL) + _cert_pem(cert)
    assert b"BEGIN RSA PRIVATE KEY" in data
    parsed = parse_client_certificate(data)
    assert "rsa.test" in parsed.subject


def test_last_blocks_win(ec_pair):
    key, cert = ec_pair
    other_key = ec.generate_private_key(ec.SECP256R1())
    other_cert = _self_signed(other_key, "other.test")
    # The trailing pair is the one used; the leading one would mismatch with it.
    data = _cert_pem(other_cert) + _key_pem(other_key) + _cert_pem(cert) + _key_pem(key)
    parsed = parse_client_certificate(data)
    assert "client.test" in parsed.subject


def test_missing_blocks_are_rejected(ec_pair):
    key, cert = ec_pair
    with pytest.raises(TLSConfigurationError) as excinfo:
        parse_client_certificate(_cert_pem(cert))
    assert "no private key" in str(excinfo.value)
    with pytest.raises(TLSConfigurationError) as excinfo:
        parse_client_certificate(_key_pem(key))
    assert "no certificate" in str(excinfo.value)
    assert excinfo.value.category is ErrorCategory.SSL_ERROR


def test_mismatched_key_is_rejected(ec_pair):
    _, cert = ec_pair
    stranger = ec.generate_private_key(ec.SECP256R1())
    with pytest.raises(TLSConfigurationError) as excinfo:
        parse_client_certificate(_key_pem(stranger) + _cert_pem(cert))
    assert "does not match" in str(excinfo.value)


def test_unsupported_key_algorithm_is_rejected(ec_pair, monkeypatch):
    key, cert = ec_pair

    def refuse(data, password=None):
        raise UnsupportedAlgorithm("curve not supported by this backend")

    monkeypatch.setattr("httptiming.http.tls.serialization.load_pem_private_key", refuse)
    with pytest.raises(TLSConfigurationError) as excinfo:
        parse_client_certificate(_key_pem(key) + _cert_pem(cert), source="client.pem")
    assert "unable to load client cert and key pair from client.pem" in str(excinfo.value)
    assert "curve not supported" in str(excinfo.value)
    assert excinfo.value.category is ErrorCategory.SSL_ERROR


def test_load_client_certificate_unreadable_file(tmp_path):
    with pytest.raises(TLSConfigurationError) as excinfo:
        load_client_certificate(str(tmp_path / "missing.pem"))
    assert "failed to read client certificate file" in str(excinfo.value)


def test_build_ssl_context_floor_and_verification(ec_pair, tmp_path):
    key, cert = ec_pair
    path = tmp_path / "client.pem"
    path.write_bytes(_key_pem(key) + _cert_pem(cert))

    context = build_ssl_context(client_cert=load_client_certificate(str(path)), trust_env=False)
    assert context.minimum_version == ssl.TLSVersion.TLSv1_2
    assert context.verify_mode == ssl.CERT_REQUIRED

    insecure = build_ssl_context(insecure=True, trust_env=False)
    assert insecure.verify_mode == ssl.CERT_NONE
    assert insecure.check_hostname is False
    assert insecure.minimum_version == ssl.TLSVersion.TLSv1_2


def test_sni_hostname_follows_host_override():
    assert sni_hostname(HttpRequest(url="https://10.0.0.1:8443/")) == "10.0.0.1"
    assert sni_hostname(HttpRequest(url="https://10.0.0.1/", host_override="example.com:8443")) == "example.com"
