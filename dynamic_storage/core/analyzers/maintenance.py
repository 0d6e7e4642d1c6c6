# SPDX-FileCopyrightText: Copyright (c) 2024-2025 NVIDIA CORPORATION & AFFILIATES. All rights reserved.
# SPDX-License-Identifier: Apache-2.0
#
# Licensed under the Apache License, Version 2.0 (the "License");
# you may not use this file except in compliance with the License.
# You may obtain a copy of the License at
#
# http://www.apache.org/licenses/LICENSE-2.0
#
# Unless required by applicable law or agreed to in writing, software
# distributed under the License is distributed on an "AS IS" BASIS,
# WITHOUT WARRANTIES OR CONDITIONS OF ANY KIND, either express or implied.
# See the License for the specific language governing permissions and
# limitations under the License.

"""Maintenance window clock.

A window is a six-field cron schedule (second minute hour day-of-month month
day-of-week), a duration, and an IANA timezone. Schedules are evaluated with
APScheduler's cron trigger.
"""

import logging
import re
from datetime import datetime, timedelta, timezone, tzinfo
from typing import Optional, NamedTuple
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError
from apscheduler.triggers.base import BaseTrigger
from apscheduler.triggers.combining import OrTrigger
from apscheduler.triggers.cron import CronTrigger

from ..config import SizingDefaults
from ..models.storage_models import StorageConfiguration, MaintenanceWindowConfig

logger = logging.getLogger(__name__)

_DAY_NAMES = ("sun", "mon", "tue", "wed", "thu", "fri", "sat")
_DURATION_PART = re.compile(r"(\d+(?:\.\d+)?)(ms|h|m|s)")
_DURATION_UNITS = {
    "h": timedelta(hours=1),
    "m": timedelta(minutes=1),
    "s": timedelta(seconds=1),
    "ms": timedelta(milliseconds=1),
}


class MaintenanceWindow(NamedTuple):
    """A parsed maintenance window."""

    trigger: BaseTrigger
    duration: timedelta
    tz: tzinfo


def parse_duration(value: str) -> timedelta:
    """Parse a duration such as "2h", "90m" or "1h30m".

    Raises:
        ValueError: If the string is not a valid duration
    """
    text = value.strip()
    if not text:
        raise ValueError("duration is empty")
    position = 0
    total = timedelta()
    for match in _DURATION_PART.finditer(text):
        if match.start() != position:
            break
        total += float(match.group(1)) * _DURATION_UNITS[match.group(2)]
        position = match.end()
    if position != len(text):
        raise ValueError(f"invalid duration {value!r}")
    return total


def _day_of_week_field(field: str) -> str:
    """Translate a cron day-of-week field (0 or 7 = Sunday) to day names."""
    if field in ("*", "?"):
        return "*"
    days = []
    for part in field.split(","):
        step = 1
        if "/" in part:
            part, step_text = part.split("/", 1)
            step = int(step_text)
        if part == "*":
            start, end = 0, 6
        elif "-" in part:
            start_text, end_text = part.split("-", 1)
            start, end = _day_number(start_text), _day_number(end_text)
        else:
            start = end = _day_number(part)
            if step != 1:
                end = 6
        if end < start:
            raise ValueError(f"invalid day-of-week range {part!r}")
        for day in range(start, end + 1, step):
            name = _DAY_NAMES[day % 7]
            if name not in days:
                days.append(name)
    return ",".join(days)


def _is_unrestricted(field: str) -> bool:
    return field in ("*", "?")


def _day_number(token: str) -> int:
    token = token.strip().lower()
    if token.isdigit():
        number = int(token)
        if number > 7:
            raise ValueError(f"invalid day of week {token!r}")
        return number
    if token[:3] in _DAY_NAMES:
        return _DAY_NAMES.index(token[:3])
    raise ValueError(f"invalid day of week {token!r}")


class MaintenanceWindowClock:
    """Stateless evaluator for maintenance windows."""

    def __init__(self, defaults: Optional[SizingDefaults] = None):
        self.defaults = defaults or SizingDefaults()

    def parse_schedule(
        self,
        schedule: str,
        tz: tzinfo,
        start_date: Optional[datetime] = None,
        end_date: Optional[datetime] = None,
    ) -> BaseTrigger:
        """Build a trigger from a six-field cron expression.

        When both day-of-month and day-of-week are restricted, a day matching
        either one fires, as in classic cron.

        Raises:
            ValueError: If the expression is malformed
        """
        fields = schedule.split()
        if len(fields) != 6:
            raise ValueError(f"expected 6 cron fields, got {len(fields)}: {schedule!r}")
        second, minute, hour, day, month, day_of_week = fields
        day = "*" if day == "?" else day
        day_of_week = _day_of_week_field(day_of_week)

        def cron(day: str, day_of_week: str) -> CronTrigger:
            return CronTrigger(
                second=second,
                minute=minute,
                hour=hour,
                day=day,
                month=month,
                day_of_week=day_of_week,
                timezone=tz,
                start_date=start_date,
                end_date=end_date,
            )

        if _is_unrestricted(day) or _is_unrestricted(day_of_week):
            return cron(day, day_of_week)
        return OrTrigger([cron(day, "*"), cron("*", day_of_week)])

    def resolve(self, window: MaintenanceWindowConfig, now: datetime, horizon: timedelta) -> Optional[MaintenanceWindow]:
        """Parse a window configuration, or None when it cannot be evaluated."""
        tz_name = window.timezone or self.defaults.maintenance_timezone
        try:
            tz = ZoneInfo(tz_name)
        except (ZoneInfoNotFoundError, ValueError, OSError) as e:
            logger.warning("Failed to parse maintenance window timezone %r, treating window as closed: %s", tz_name, e)
            return None

        duration = self.defaults.maintenance_duration
        if window.duration:
            try:
                duration = parse_duration(window.duration)
            except ValueError as e:
                logger.warning(
                    "Failed to parse maintenance window duration %r, falling back to %s: %s",
                    window.duration, self.defaults.maintenance_duration, e,
                )

        schedule = window.schedule or self.defaults.maintenance_schedule
        try:
            trigger = self.parse_schedule(
                schedule, tz,
                start_date=now - 2 * self.defaults.window_lookback,
                end_date=now + horizon,
            )
        except ValueError as e:
            logger.warning("Failed to parse maintenance window schedule %r, treating window as closed: %s", schedule, e)
            return None

        return MaintenanceWindow(trigger=trigger, duration=duration, tz=tz)

    def is_open(self, config: Optional[StorageConfiguration], now: Optional[datetime] = None) -> bool:
        """Check whether ``now`` falls inside a maintenance window.

        No configured window means always open. A window that cannot be
        parsed is treated as closed.
        """
        if config is None or config.maintenance_window is None:
            return True

        now = now or datetime.now(timezone.utc)
        window = self.resolve(config.maintenance_window, now, horizon=timedelta(days=1))
        if window is None:
            return False

        local_now = now.astimezone(window.tz)
        start = self.find_most_recent_window_start(window.trigger, local_now)
        if start is None:
            return False
        return start <= local_now < start + window.duration

    def next_window_start(self, config: Optional[StorageConfiguration], now: Optional[datetime] = None) -> Optional[datetime]:
        """Return the next window start strictly after ``now``.

        None when no window is configured, the window cannot be parsed, or the
        schedule never fires within the search horizon (e.g., February 31st).
        """
        if config is None or config.maintenance_window is None:
            return None

        now = now or datetime.now(timezone.utc)
        horizon = timedelta(days=366 * self.defaults.next_window_search_years)
        window = self.resolve(config.maintenance_window, now, horizon=horizon)
        if window is None:
            return None

        return window.trigger.get_next_fire_time(None, now.astimezone(window.tz) + timedelta(microseconds=1))

    def find_most_recent_window_start(self, trigger: BaseTrigger, now: datetime) -> Optional[datetime]:
        """Find the latest fire time within the look-back period ending at ``now``.

        Iterations are capped so that degenerate schedules terminate.
        """
        check = now - self.defaults.window_lookback
        last_start = None
        for _ in range(self.defaults.window_lookback_max_iterations):
            next_start = trigger.get_next_fire_time(None, check)
            if next_start is None or next_start > now:
                break
            last_start = next_start
            check = next_start + timedelta(seconds=1)
        return last_start
