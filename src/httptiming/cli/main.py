# SPDX-FileCopyrightText: 2025 Theori Inc.
# SPDX-License-Identifier: AGPL-3.0-or-later

"""httptiming CLI."""

from __future__ import annotations

import argparse
import json
import sys
from typing import Any

from ..config import load_probe_settings
from ..errors import ConfigurationError, ProbeError, error_category_to_reason
from ..log import setup_logging
from ..models import BodyDisposition, BodyStatus, HopReport, IpFamily, ProbeConfig, ProbeReport
from ..runtime import HttpTiming
from ..version import __version__

HTTPS_TEMPLATE = (
    "  DNS Lookup   TCP Connection   TLS Handshake   Server Processing   Content Transfer\n"
    "[%s  |     %s  |    %s  |        %s  |       %s  ]\n"
    "            |                |               |                   |                  |\n"
    "   namelookup:%s      |               |                   |                  |\n"
    "                       connect:%s     |                   |                  |\n"
    "                                   pretransfer:%s         |                  |\n"
    "                                                     starttransfer:%s        |\n"
    "                                                                                total:%s\n"
)

HTTP_TEMPLATE = (
    "   DNS Lookup   TCP Connection   Server Processing   Content Transfer\n"
    "[ %s  |     %s  |        %s  |       %s  ]\n"
    "             |                |                   |                  |\n"
    "    namelookup:%s      |                   |                  |\n"
    "                        connect:%s         |                  |\n"
    "                                      starttransfer:%s        |\n"
    "                                                                 total:%s\n"
)

ENVIRONMENT_HELP = """environment:
  HTTP_PROXY    proxy for HTTP requests; complete URL or HOST[:PORT]
                used for HTTPS requests if HTTPS_PROXY undefined
  HTTPS_PROXY   proxy for HTTPS requests; complete URL or HOST[:PORT]
  NO_PROXY      comma-separated list of hosts to exclude from proxy
"""


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="httptiming",
        description="Time the phases of an HTTP(S) request (DNS, connect, TLS, first byte, transfer)",
        epilog=ENVIRONMENT_HELP,
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )
    parser.add_argument("url", help="Target URL; the scheme is inferred when omitted")
    parser.add_argument("-X", "--request", default="GET", help="HTTP method to use")
    parser.add_argument("-d", "--body", default="", help="the body of a POST or PUT request; from file use @filename")
    parser.add_argument(
        "-H",
        "--header",
        action="append",
        default=[],
        help="set HTTP header; repeatable: -H 'Accept: ...' -H 'Range: ...'",
    )
    parser.add_argument("-L", "--location", action="store_true", help="follow 30x redirects")
    parser.add_argument("-I", "--head", action="store_true", help="don't read body of request")
    parser.add_argument("-k", "--insecure", action="store_true", help="allow insecure SSL connections")
    parser.add_argument("-O", "--remote-name", action="store_true", help="save body as remote filename")
    parser.add_argument("-o", "--output", default=None, help="output file for body")
    parser.add_argument("--show-body", action="store_true", help="print the response body")
    parser.add_argument("-E", "--cert", default=None, help="client cert file for tls config")
    parser.add_argument("-4", "--ipv4", action="store_true", help="resolve IPv4 addresses only")
    parser.add_argument("-6", "--ipv6", action="store_true", help="resolve IPv6 addresses only")
    parser.add_argument("--json", action="store_true", help="Output JSON instead of the timing diagram")
    parser.add_argument("--log-level", default=None, help="Logging level (default: HTTPTIMING_LOG_LEVEL or WARNING)")
    parser.add_argument("--version", action="version", version=f"%(prog)s {__version__}")
    return parser


def config_from_args(args: argparse.Namespace) -> ProbeConfig:
    if args.remote_name:
        disposition = BodyDisposition.SAVE_REMOTE_NAME
    elif args.output:
        disposition = BodyDisposition.SAVE_AS
    elif args.show_body:
        disposition = BodyDisposition.SHOW
    else:
        disposition = BodyDisposition.DISCARD

    return ProbeConfig(
        method=args.request,
        body=args.body,
        headers=tuple(args.header),
        follow_redirects=args.location,
        only_header=args.head,
        insecure=args.insecure,
        client_cert_file=args.cert,
        ip_family=IpFamily.from_flags(args.ipv4, args.ipv6),
        body_disposition=disposition,
        output_file=args.output,
    )


def _fmt_phase(ms: int) -> str:
    return "%7dms" % ms


def _fmt_total(ms: int) -> str:
    return "%-9s" % f"{ms}ms"


def render_timing(hop: HopReport) -> str:
    d = hop.durations
    if hop.scheme == "https":
        return HTTPS_TEMPLATE % (
            _fmt_phase(d.dns_lookup),
            _fmt_phase(d.tcp_connection),
            _fmt_phase(d.tls_handshake),
            _fmt_phase(d.server_processing),
            _fmt_phase(d.content_transfer),
            _fmt_total(d.name_lookup),
            _fmt_total(d.connect),
            _fmt_total(d.pre_transfer),
            _fmt_total(d.start_transfer),
            _fmt_total(d.total),
        )
    return HTTP_TEMPLATE % (
        _fmt_phase(d.dns_lookup),
        _fmt_phase(d.tcp_connection),
        _fmt_phase(d.server_processing),
        _fmt_phase(d.content_transfer),
        _fmt_total(d.name_lookup),
        _fmt_total(d.connect),
        _fmt_total(d.start_transfer),
        _fmt_total(d.total),
    )


def render_hop(hop: HopReport) -> str:
    lines: list[str] = []
    if hop.remote_address:
        lines += ["", f"Connected to {hop.remote_address}"]
    lines += ["", f"Connected via {hop.tls_version or 'unknown'}"]
    lines += ["", hop.status_line]
    lines += [f"{name}: {value}" for name, value in hop.headers]

    body = hop.body
    if body.status is BodyStatus.SAVED:
        lines += ["", f"{body.message} ({body.filename}, {body.bytes_read} bytes)"]
    elif body.status is BodyStatus.SHOWN:
        lines += ["", body.text or ""]
    elif body.message:
        lines += ["", body.message]

    lines += ["", render_timing(hop)]
    return "\n".join(lines)


def _print_json(report: ProbeReport | dict[str, Any]) -> None:
    payload = report.to_dict() if hasattr(report, "to_dict") else report
    json.dump(payload, sys.stdout, indent=2, sort_keys=True)
    sys.stdout.write("\n")


def _report_error(exc: ProbeError) -> None:
    print(f"httptiming: {error_category_to_reason(exc.category)}: {exc}", file=sys.stderr)


def main(argv: list[str] | None = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)
    setup_logging(args.log_level)

    try:
        config = config_from_args(args)
    except ConfigurationError as exc:
        _report_error(exc)
        return 1

    on_hop = None if args.json else (lambda hop: print(render_hop(hop)))

    with HttpTiming(load_probe_settings()) as timing:
        try:
            report = timing.probe(args.url, config, on_hop=on_hop)
        except ProbeError as exc:
            _report_error(exc)
            return 1
        except KeyboardInterrupt:
            timing.cancel()
            print("httptiming: interrupted", file=sys.stderr)
            return 130

    if args.json:
        _print_json(report)
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
