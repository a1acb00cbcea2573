"""Shared constants for the Textual UI."""

from __future__ import annotations

TELEGRAM_BLUE = "#2AABEE"
SUCCESS_GREEN = "#3FB950"
ERROR_RED = "#F85149"
