# SPDX-FileCopyrightText: 2025 Theori Inc.
# SPDX-License-Identifier: AGPL-3.0-or-later

import pytest

from httptiming.errors import BodyIOError, ConfigurationError
from httptiming.http.headers import (
    canonical_header_name,
    filename_from_content_disposition,
    header_value,
    is_hop_by_hop,
    order_headers,
    parse_header_line,
    sort_header_names,
)
from httptiming.http.url import normalize_url, remote_filename, resolve_location


def test_parse_header_line_trims_key_and_leading_value_space():
    assert parse_header_line("X-Test:value") == ("X-Test", "value")
    assert parse_header_line(" Accept :  text/html") == ("Accept", "text/html")
    assert parse_header_line("X-Empty:") == ("X-Empty", "")
    # Only the first colon splits; the value keeps the rest verbatim.
    assert parse_header_line("X-Time: 10:30 am") == ("X-Time", "10:30 am")


def test_parse_header_line_missing_colon_is_configuration_error():
    with pytest.raises(ConfigurationError) as excinfo:
        parse_header_line("NoColonHere")
    assert "missing ':'" in str(excinfo.value)


def test_canonical_and_hop_by_hop_names():
    assert canonical_header_name("content-type") == "Content-Type"
    assert canonical_header_name("X-REQUEST-ID") == "X-Request-Id"
    assert is_hop_by_hop("Transfer-Encoding")
    assert is_hop_by_hop("keep-alive")
    assert not is_hop_by_hop("Content-Type")


def test_sort_header_names_server_first_then_end_to_end_then_hop_by_hop():
    names = ["Connection", "Content-Type", "Server", "Date", "Transfer-Encoding"]
    assert sort_header_names(names) == ["Server", "Content-Type", "Date", "Connection", "Transfer-Encoding"]


def test_order_headers_groups_repeated_values():
    items = [
        ("set-cookie", "a=1"),
        ("server", "nginx"),
        ("Set-Cookie", "b=2"),
        ("connection", "keep-alive"),
    ]
    assert order_headers(items) == [
        ("Server", "nginx"),
        ("Set-Cookie", "a=1,b=2"),
        ("Connection", "keep-alive"),
    ]


def test_header_value_lookup():
    assert header_value({"Location": " /next "}, "location") == "/next"
    assert header_value([("A", "1")], "b", default="x") == "x"
    assert header_value(None, "a") == ""


def test_filename_from_content_disposition():
    assert filename_from_content_disposition('attachment; filename="report.csv"') == "report.csv"
    assert filename_from_content_disposition('attachment; filename="../../etc/passwd"') == "passwd"
    assert filename_from_content_disposition('inline; filename="page.html"') == ""
    assert filename_from_content_disposition(None) == ""


@pytest.mark.parametrize(
    "raw,expected",
    [
        ("example.com", "https://example.com"),
        ("example.com:80", "http://example.com:80"),
        ("example.com:80/x?y=1", "http://example.com:80/x?y=1"),
        ("example.com:8443/path", "https://example.com:8443/path"),
        ("http://example.com", "http://example.com"),
        ("https://example.com:80/", "https://example.com:80/"),
    ],
)
def test_normalize_url_infers_scheme(raw, expected):
    assert normalize_url(raw) == expected


@pytest.mark.parametrize("raw", ["", "http://", "example.com:notaport"])
def test_normalize_url_rejects_unparseable(raw):
    with pytest.raises(ConfigurationError):
        normalize_url(raw)


def test_resolve_location_relative_and_absolute():
    assert resolve_location("https://a.test/dir/page", "/next") == "https://a.test/next"
    assert resolve_location("https://a.test/dir/page", "other") == "https://a.test/dir/other"
    assert resolve_location("https://a.test/", "http://b.test/x") == "http://b.test/x"
    assert resolve_location("https://a.test/", "") is None
    assert resolve_location("https://a.test/", None) is None
    assert resolve_location("https://a.test/", "http://[::1") is None


def test_remote_filename():
    assert remote_filename("https://a.test/files/archive.tar.gz") == "archive.tar.gz"
    assert remote_filename("https://a.test/files/dir/") == "dir"
    with pytest.raises(BodyIOError) as excinfo:
        remote_filename("https://a.test/")
    assert "No remote filename" in str(excinfo.value)
