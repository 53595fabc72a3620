# SPDX-FileCopyrightText: 2025 Theori Inc.
# SPDX-License-Identifier: AGPL-3.0-or-later

"""Dataclass exports for httptiming."""

from .probe import BodyDisposition, IpFamily, ProbeConfig
from .report import BodyOutcome, BodyStatus, HopReport, PhaseDurations, ProbeReport

__all__ = [
    "BodyDisposition",
    "BodyOutcome",
    "BodyStatus",
    "HopReport",
    "IpFamily",
    "PhaseDurations",
    "ProbeConfig",
    "ProbeReport",
]
