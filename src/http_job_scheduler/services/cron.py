"""Six-field cron parsing and APScheduler trigger construction."""

from __future__ import annotations

import re
from dataclasses import dataclass
from datetime import tzinfo

from apscheduler.triggers.cron import CronTrigger  # type: ignore[import-untyped]

from http_job_scheduler.services.validation import InvalidScheduleError

CRON_FORMAT = "second minute hour day month day_of_week"
CRON_FIELD_COUNT = 6

# Cron numbers weekdays from Sunday (0 and 7); APScheduler numbers them from
# Monday, so numeric weekdays are rewritten as names before parsing.
_CRON_WEEKDAY_NAMES = ("sun", "mon", "tue", "wed", "thu", "fri", "sat")
_NUMERIC_RANGE_PATTERN = re.compile(r"^(?P<first>\d+)(?:-(?P<last>\d+))?$")


@dataclass(slots=True, frozen=True)
class CronFields:
    """Six cron fields in APScheduler keyword form."""

    second: str
    minute: str
    hour: str
    day: str
    month: str
    day_of_week: str

    def as_trigger_kwargs(self) -> dict[str, str]:
        return {
            "second": self.second,
            "minute": self.minute,
            "hour": self.hour,
            "day": self.day,
            "month": self.month,
            "day_of_week": self.day_of_week,
        }


def _invalid(expression: str, reason: str) -> InvalidScheduleError:
    return InvalidScheduleError(
        f"Invalid CRON expression {expression!r}: {reason}. "
        f"Expected format: {CRON_FORMAT}"
    )


def _translate_day_of_week(expression: str, field: str) -> str:
    translated: list[str] = []
    for item in field.split(","):
        range_part, has_step, step_part = item.partition("/")
        if range_part == "*" and not has_step:
            translated.append("*")
            continue

        if range_part == "*":
            first, last = 0, 6
        else:
            match = _NUMERIC_RANGE_PATTERN.match(range_part)
            if match is None:
                # Weekday names are understood by APScheduler as-is.
                translated.append(item.lower())
                continue
            first = int(match.group("first"))
            if match.group("last") is not None:
                last = int(match.group("last"))
            else:
                last = 6 if has_step else first

        if has_step and not step_part.isdigit():
            raise _invalid(expression, f"invalid day_of_week step {item!r}")
        step = int(step_part) if has_step else 1
        if step < 1 or first > 7 or last > 7 or first > last:
            raise _invalid(expression, f"invalid day_of_week value {item!r}")

        for day_number in range(first, last + 1, step):
            name = _CRON_WEEKDAY_NAMES[day_number % 7]
            if name not in translated:
                translated.append(name)

    return ",".join(translated)


def parse_cron_expression(expression: str) -> CronFields:
    """Split a six-field cron expression into APScheduler trigger fields."""

    parts = expression.strip().split()
    if len(parts) != CRON_FIELD_COUNT:
        raise _invalid(
            expression,
            f"expected {CRON_FIELD_COUNT} fields, got {len(parts)}",
        )

    second, minute, hour, day, month, day_of_week = parts
    return CronFields(
        second=second,
        minute=minute,
        hour=hour,
        day=day,
        month=month.lower(),
        day_of_week=_translate_day_of_week(expression, day_of_week),
    )


def build_cron_trigger(
    expression: str,
    *,
    timezone: tzinfo | str = "UTC",
) -> CronTrigger:
    """Build a trigger for the expression or raise ``InvalidScheduleError``."""

    fields = parse_cron_expression(expression)
    try:
        return CronTrigger(timezone=timezone, **fields.as_trigger_kwargs())
    except ValueError as error:
        raise _invalid(expression, str(error)) from error


__all__ = [
    "CRON_FIELD_COUNT",
    "CRON_FORMAT",
    "CronFields",
    "build_cron_trigger",
    "parse_cron_expression",
]
