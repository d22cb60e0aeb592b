"""Datetime helpers."""

from __future__ import annotations

import os

import pendulum

DEFAULT_TZ = "America/Los_Angeles"


def timezone_name() -> str:
    return os.environ.get("TIMEZONE", DEFAULT_TZ)


def now_in_tz() -> pendulum.DateTime:
    tz = pendulum.timezone(timezone_name())
    return pendulum.now(tz)


def start_of_month(moment: pendulum.DateTime | None = None) -> pendulum.DateTime:
    """Midnight on the first day of the month containing ``moment``."""
    return (moment or now_in_tz()).start_of("month")


def days_ago(days: int, moment: pendulum.DateTime | None = None) -> pendulum.DateTime:
    return (moment or now_in_tz()).subtract(days=days)
