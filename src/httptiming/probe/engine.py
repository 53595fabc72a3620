# SPDX-FileCopyrightText: 2025 Theori Inc.
# SPDX-License-Identifier: AGPL-3.0-or-later

"""Redirect engine: one timed hop at a time, following 30x responses manually."""

from __future__ import annotations

import logging
from collections.abc import Callable
from dataclasses import dataclass

from ..config import ProbeSettings, load_probe_settings
from ..errors import RedirectLimitError
from ..http.client import HttpClient
from ..http.headers import header_value, order_headers
from ..http.request import build_request
from ..http.tracer import PhaseTracer
from ..http.url import normalize_url, resolve_location
from ..models.probe import ProbeConfig
from ..models.report import HopReport, ProbeReport, tls_label
from ..utils.cancel import CancelToken
from .body import dispose_body, is_redirect_status

logger = logging.getLogger(__name__)

HopCallback = Callable[[HopReport], None]


@dataclass
class RedirectSession:
    """Redirect counter for one probe invocation."""

    max_redirects: int = 10
    hops_followed: int = 0

    def follow(self) -> None:
        self.hops_followed += 1
        if self.hops_followed > self.max_redirects:
            raise RedirectLimitError(self.max_redirects)


class ProbeEngine:
    """
    Runs a probe as a Requesting/Terminal state machine.

    Each hop builds a fresh request and a fresh PhaseTracer. The client never
    follows redirects itself; when `follow_redirects` is set the engine re-issues
    a top-level request for the resolved Location, so every hop is timed from a
    cold connection.
    """

    def __init__(
        self,
        client: HttpClient,
        config: ProbeConfig,
        settings: ProbeSettings | None = None,
        *,
        cancel_token: CancelToken | None = None,
        tracer_factory: Callable[[], PhaseTracer] = PhaseTracer,
    ):
        self.client = client
        self.config = config
        self.settings = settings or load_probe_settings()
        self.cancel_token = cancel_token
        self._tracer_factory = tracer_factory

    def run(self, url: str, *, on_hop: HopCallback | None = None) -> ProbeReport:
        self.config.validate()
        target = normalize_url(url)
        session = RedirectSession(max_redirects=self.settings.max_redirects)
        report = ProbeReport()

        while True:
            hop = self.visit(target)
            report.hops.append(hop)
            if on_hop is not None:
                on_hop(hop)

            if not (self.config.follow_redirects and hop.is_redirect):
                break
            if hop.location is None:
                # 30x without a Location to follow is a normal end.
                logger.debug("Redirect %d from %s has no Location", hop.status_code, hop.url)
                break

            session.follow()
            report.redirects_followed = session.hops_followed
            logger.debug("Following redirect %d to %s", session.hops_followed, hop.location)
            target = hop.location

        return report

    def visit(self, url: str) -> HopReport:
        """Issue one request to ``url`` and time it end to end."""
        if self.cancel_token is not None:
            self.cancel_token.raise_if_cancelled()

        method = self.config.effective_method
        request = build_request(method, url, self.config.body, self.config.headers)
        tracer = self._tracer_factory()
        try:
            with self.client.stream(request, tracer) as response:
                body = dispose_body(
                    response,
                    method=method,
                    url=url,
                    disposition=self.config.body_disposition,
                    output_file=self.config.output_file,
                )
                status_code = response.status_code
                http_version = response.http_version
                reason_phrase = response.reason_phrase
                headers = order_headers(response.headers.multi_items())
                raw_location = header_value(response.headers, "Location")
            tracer.body_done()
        finally:
            request.close()

        location = None
        if self.config.follow_redirects and is_redirect_status(status_code):
            location = resolve_location(url, raw_location)

        trace = tracer.trace
        return HopReport(
            url=url,
            method=method,
            http_version=http_version,
            status_code=status_code,
            reason_phrase=reason_phrase,
            headers=headers,
            durations=trace.durations(),
            tls_version=tls_label(trace.tls_version, trace.used_tls),
            body=body,
            remote_address=trace.remote_address,
            location=location,
        )


__all__ = ["ProbeEngine", "RedirectSession"]
