# SPDX-FileCopyrightText: 2025 Theori Inc.
# SPDX-License-Identifier: AGPL-3.0-or-later

"""Redirect-following probe orchestration."""

from .engine import ProbeEngine, RedirectSession

__all__ = ["ProbeEngine", "RedirectSession"]
