#!/usr/bin/env python3
# -*- coding: utf-8 -*-
"""
Calendar and time-of-day oracle for the monster sightings model.

Two clocks are kept apart on purpose:

- The *calendar date* (seed, moon phase, holidays, season) is date-only and
  timezone-independent. Everyone looking at the same calendar day gets the
  same seed and therefore the same sightings.
- The *time of day* (period, night, darkness, witching hour, time ramp) is the
  viewer's local wall-clock time applied to that calendar date, unless a
  debug override forces a specific time.

All state is carried explicitly in a `CalendarState` built once per
recomputation; nothing here reads ambient globals.
"""

from __future__ import annotations

import logging
import math
import re
from dataclasses import dataclass, field, replace
from datetime import date, datetime, time, timedelta, timezone
from typing import Dict, Iterable, Optional, Tuple

from monster_config import (
    ANY_TIME,
    FALLBACK_PERIOD,
    FULL_MOON_ICON,
    INACTIVE_TIME_PENALTY,
    LUNAR_MONTH_DAYS,
    MOON_PHASE_ICONS,
    REFERENCE_NEW_MOON,
    SEASONS,
    SUN_ICON,
    TIME_PERIODS,
)

logger = logging.getLogger(__name__)

_FORCE_TIME_RE = re.compile(r"^\s*(\d{1,2}):(\d{2})\s*$")
_DATE_RE = re.compile(r"^\d{4}-\d{2}-\d{2}$")


# ----------------------------
# DEBUG OVERRIDES
# ----------------------------

def parse_force_time(value: str) -> Tuple[int, int]:
    """Parse a forced time of day like "23:45" into (hours, minutes).

    Raises ValueError for anything that is not a valid 24h clock time.
    """
    m = _FORCE_TIME_RE.match(value or "")
    if not m:
        raise ValueError(f"Forced time must look like 'HH:MM', got '{value}'.")
    hours, minutes = int(m.group(1)), int(m.group(2))
    if not (0 <= hours <= 23 and 0 <= minutes <= 59):
        raise ValueError(f"Forced time out of range: '{value}'.")
    return hours, minutes


@dataclass(frozen=True)
class DebugOverrides:
    """Developer overrides injected into a recomputation.

    None means "no override" for every forced field. The default instance is
    the reset state.
    """
    multiplier: float = 1.0
    force_time: Optional[str] = None
    force_season: Optional[str] = None
    force_full_moon: Optional[bool] = None
    force_halloween: Optional[bool] = None

    def __post_init__(self) -> None:
        mult = float(self.multiplier)
        if math.isnan(mult) or math.isinf(mult) or mult < 0:
            raise ValueError(f"Debug multiplier must be a finite number >= 0, got {self.multiplier!r}.")
        object.__setattr__(self, "multiplier", mult)
        for name in ("force_full_moon", "force_halloween"):
            flag = getattr(self, name)
            if flag is not None and not isinstance(flag, bool):
                raise ValueError(f"{name} must be True, False or None, got {flag!r}.")
        if self.force_time is not None:
            parse_force_time(self.force_time)
        if self.force_season is not None and self.force_season not in SEASONS:
            raise ValueError(f"Unknown season '{self.force_season}'. Allowed: {SEASONS}")


def update_overrides(current: DebugOverrides, **changes) -> DebugOverrides:
    """Apply `changes` to `current`, keeping `current` if the result is invalid.

    This is the caller-facing gate: a malformed override never reaches the
    engine, and the last valid overrides stay in effect.
    """
    try:
        return replace(current, **changes)
    except (TypeError, ValueError) as exc:
        logger.warning("Rejected debug override %s: %s", changes, exc)
        return current


def adjust_forced_time(force_time: Optional[str], minutes: int,
                       wall_clock: Optional[datetime] = None) -> str:
    """Step a forced "HH:MM" time by `minutes`, wrapping around midnight.

    With no forced time the step starts from the wall clock.
    """
    if force_time:
        hours, mins = parse_force_time(force_time)
    else:
        now = wall_clock or datetime.now()
        hours, mins = now.hour, now.minute
    total = (hours * 60 + mins + int(minutes)) % (24 * 60)
    return f"{total // 60:02d}:{total % 60:02d}"


# ----------------------------
# CALENDAR STATE
# ----------------------------

def as_calendar_date(value) -> date:
    """Reduce a date, datetime or "YYYY-MM-DD" string to a calendar date.

    Aware datetimes are read in UTC so the calendar day never depends on the
    caller's timezone.
    """
    if isinstance(value, datetime):
        if value.tzinfo is not None:
            return value.astimezone(timezone.utc).date()
        return value.date()
    if isinstance(value, date):
        return value
    if isinstance(value, str):
        s = value.strip()
        if not _DATE_RE.match(s):
            raise ValueError(f"Date must look like 'YYYY-MM-DD', got '{value}'.")
        return date.fromisoformat(s)
    raise TypeError(f"Cannot interpret {value!r} as a calendar date.")


def date_seed(app_date) -> str:
    """Deterministic seed string for a calendar day (YYYY-MM-DD)."""
    d = as_calendar_date(app_date)
    return f"{d.year:04d}-{d.month:02d}-{d.day:02d}"


def current_simulated_time(app_date, wall_clock: Optional[datetime] = None,
                           force_time: Optional[str] = None) -> datetime:
    """The application date with the forced or local time of day applied.

    A malformed forced time falls back to the wall clock.
    """
    d = as_calendar_date(app_date)
    if force_time:
        try:
            hours, minutes = parse_force_time(force_time)
            return datetime.combine(d, time(hours, minutes))
        except ValueError as exc:
            logger.warning("Ignoring forced time: %s", exc)
    now = wall_clock or datetime.now()
    return datetime.combine(d, now.time())


@dataclass(frozen=True)
class CalendarState:
    """Everything the rules engine may ask about "now", built once per run."""
    date: date
    time: datetime
    overrides: DebugOverrides = field(default_factory=DebugOverrides)

    @property
    def seed(self) -> str:
        return date_seed(self.date)

    @property
    def minutes(self) -> int:
        return minutes_past_midnight(self.time)


def calendar_state(app_date, wall_clock: Optional[datetime] = None,
                   overrides: Optional[DebugOverrides] = None) -> CalendarState:
    """Build the per-recomputation calendar state."""
    overrides = overrides or DebugOverrides()
    d = as_calendar_date(app_date)
    sim_time = current_simulated_time(d, wall_clock, overrides.force_time)
    return CalendarState(date=d, time=sim_time, overrides=overrides)


# ----------------------------
# TIME OF DAY (local)
# ----------------------------

def minutes_past_midnight(t: datetime) -> int:
    return t.hour * 60 + t.minute


def period_at(minutes: int) -> str:
    """First configured period whose closed interval contains `minutes`."""
    for name, period in TIME_PERIODS.items():
        if period["start"] <= minutes <= period["end"]:
            return name
    return FALLBACK_PERIOD


def current_period(simulated_time: datetime) -> str:
    return period_at(minutes_past_midnight(simulated_time))


def is_period(state: CalendarState, period_name: str) -> bool:
    return current_period(state.time) == period_name


def is_night(state: CalendarState) -> bool:
    """21:00 - 05:59."""
    h = state.time.hour
    return h >= 21 or h < 6


def is_dark(state: CalendarState) -> bool:
    return is_period(state, "Evening") or is_night(state)


def is_witching_hour(state: CalendarState) -> bool:
    """00:00 - 00:59."""
    return state.time.hour == 0


def period_ramp(period: Dict[str, float], minutes: int) -> float:
    """Quadratic ease from 1.0 at the period edges to the multiplier at the peak.

    Assumes `minutes` lies inside the period.
    """
    max_bonus = period["multiplier"] - 1.0
    if minutes <= period["peak"]:
        duration = period["peak"] - period["start"]
        progress = (minutes - period["start"]) / duration if duration > 0 else 1.0
    else:
        duration = period["end"] - period["peak"]
        progress = (period["end"] - minutes) / duration if duration > 0 else 1.0
    return 1.0 + max_bonus * progress ** 2


def time_multiplier(active_times: Iterable[str], simulated_time: datetime) -> float:
    """Time-of-day spotting multiplier for a monster's active periods.

    Returns 1.0 for monsters active at "any" time, the highest ramp value among
    matching active periods, or INACTIVE_TIME_PENALTY when none match. Unknown
    period names are skipped.
    """
    active_times = list(active_times or [])
    if ANY_TIME in active_times:
        return 1.0

    now = minutes_past_midnight(simulated_time)
    highest = 0.0
    for name in active_times:
        period = TIME_PERIODS.get(name)
        if period is None:
            continue
        if period["start"] <= now <= period["end"]:
            highest = max(highest, period_ramp(period, now))

    return INACTIVE_TIME_PENALTY if highest == 0.0 else highest


# ----------------------------
# CALENDAR (UTC, date-only)
# ----------------------------

def moon_phase(app_date) -> float:
    """Lunar phase in [0, 1) at 00:00 UTC of the calendar day (0 = new moon)."""
    d = as_calendar_date(app_date)
    instant = datetime(d.year, d.month, d.day, tzinfo=timezone.utc)
    days = (instant - REFERENCE_NEW_MOON) / timedelta(days=1)
    return (days % LUNAR_MONTH_DAYS) / LUNAR_MONTH_DAYS


def moon_phase_icon(app_date) -> str:
    """One of eight phase symbols (rounded half-up)."""
    index = int(math.floor(moon_phase(app_date) * 8 + 0.5)) % 8
    return MOON_PHASE_ICONS[index]


def is_full_moon(state: CalendarState) -> bool:
    if state.overrides.force_full_moon is not None:
        return state.overrides.force_full_moon
    return moon_phase_icon(state.date) == FULL_MOON_ICON


def is_halloween(state: CalendarState) -> bool:
    """October 31st."""
    if state.overrides.force_halloween is not None:
        return state.overrides.force_halloween
    return state.date.month == 10 and state.date.day == 31


def is_midsummer(state: CalendarState) -> bool:
    """June 21st."""
    return state.date.month == 6 and state.date.day == 21


def is_yule(state: CalendarState) -> bool:
    """All of December."""
    return state.date.month == 12


def season_for_date(app_date) -> str:
    month = as_calendar_date(app_date).month
    if 3 <= month <= 5:
        return "Spring"
    if 6 <= month <= 8:
        return "Summer"
    if 9 <= month <= 11:
        return "Fall"
    return "Winter"


def current_season(state: CalendarState) -> str:
    if state.overrides.force_season is not None:
        return state.overrides.force_season
    return season_for_date(state.date)


# ----------------------------
# CONDITIONS READ-OUT
# ----------------------------

def current_conditions(state: CalendarState) -> Dict:
    """Snapshot of the current conditions for display.

    `forced` lists the flags whose value comes from a debug override.
    """
    ov = state.overrides
    daytime = 6 <= state.time.hour < 18
    witching = is_witching_hour(state)
    forced = []
    if ov.force_time is not None:
        forced.append("period")
        if witching:
            forced.append("witching_hour")
    if ov.force_full_moon is not None:
        forced.append("full_moon")
    if ov.force_halloween is not None:
        forced.append("halloween")
    if ov.force_season is not None:
        forced.append("season")

    return {
        "date": state.seed,
        "time": state.time.strftime("%H:%M"),
        "period": current_period(state.time),
        "season": current_season(state),
        "sky_icon": SUN_ICON if daytime else moon_phase_icon(state.date),
        "moon_icon": moon_phase_icon(state.date),
        "witching_hour": witching,
        "full_moon": is_full_moon(state),
        "halloween": is_halloween(state),
        "midsummer": is_midsummer(state),
        "yule": is_yule(state),
        "forced": forced,
    }
