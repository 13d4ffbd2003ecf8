from datetime import date, datetime, timedelta, timezone

import pytest

from monster_config import FULL_MOON_ICON, INACTIVE_TIME_PENALTY, SUN_ICON, TIME_PERIODS
from monster_time import (
    DebugOverrides,
    adjust_forced_time,
    calendar_state,
    current_conditions,
    current_period,
    current_season,
    current_simulated_time,
    date_seed,
    is_dark,
    is_full_moon,
    is_halloween,
    is_midsummer,
    is_night,
    is_witching_hour,
    is_yule,
    moon_phase_icon,
    period_at,
    period_ramp,
    season_for_date,
    time_multiplier,
    update_overrides,
)


def at(hhmm, day="2024-03-12", **overrides):
    return calendar_state(day, overrides=DebugOverrides(force_time=hhmm, **overrides))


def test_date_seed_is_calendar_date():
    assert date_seed(date(2024, 6, 1)) == "2024-06-01"
    assert date_seed("2024-10-31") == "2024-10-31"
    # Naive datetimes keep their own calendar day, wall-clock time is irrelevant.
    assert date_seed(datetime(2024, 10, 31, 23, 59)) == "2024-10-31"
    # Aware datetimes are read in UTC.
    est = timezone(timedelta(hours=-5))
    assert date_seed(datetime(2024, 10, 31, 23, 30, tzinfo=est)) == "2024-11-01"


def test_date_seed_rejects_malformed_string():
    with pytest.raises(ValueError):
        date_seed("31/10/2024")


def test_simulated_time_uses_forced_or_wall_clock():
    wall = datetime(1999, 1, 1, 14, 5, 30)
    assert current_simulated_time("2024-03-12", wall, "23:45") == datetime(2024, 3, 12, 23, 45)
    assert current_simulated_time("2024-03-12", wall, None) == datetime(2024, 3, 12, 14, 5, 30)
    # A malformed forced time falls back to the wall clock.
    assert current_simulated_time("2024-03-12", wall, "7pm") == datetime(2024, 3, 12, 14, 5, 30)


def test_current_period_names():
    assert current_period(datetime(2024, 1, 1, 0, 30)) == "Midnight"
    assert current_period(datetime(2024, 1, 1, 2, 0)) == "Late Night"
    assert current_period(datetime(2024, 1, 1, 12, 0)) == "Day"
    assert current_period(datetime(2024, 1, 1, 18, 0)) == "Evening"
    assert current_period(datetime(2024, 1, 1, 23, 59)) == "Night"
    assert period_at(5000) == "Day"


def test_night_dark_and_witching_hour():
    assert is_night(at("21:00")) and is_night(at("05:59"))
    assert not is_night(at("06:00")) and not is_night(at("20:59"))
    assert is_dark(at("18:00"))          # Evening
    assert not is_dark(at("17:59"))
    assert is_witching_hour(at("00:30"))
    assert not is_witching_hour(at("01:00"))


def test_time_ramp_boundaries():
    night = ["Night"]
    assert time_multiplier(night, datetime(2024, 1, 1, 21, 0)) == pytest.approx(1.0)
    assert time_multiplier(night, datetime(2024, 1, 1, 22, 30)) == pytest.approx(2.2)
    assert time_multiplier(night, datetime(2024, 1, 1, 23, 59)) == pytest.approx(1.0)
    # Halfway up the ramp: 1 + 1.2 * 0.5**2
    assert time_multiplier(night, datetime(2024, 1, 1, 21, 45)) == pytest.approx(1.3)


def test_time_multiplier_any_inactive_and_unknown():
    noon = datetime(2024, 1, 1, 12, 0)
    assert time_multiplier(["any"], noon) == 1.0
    assert time_multiplier(["Night"], noon) == INACTIVE_TIME_PENALTY
    assert time_multiplier(["Dusk"], noon) == INACTIVE_TIME_PENALTY
    assert time_multiplier([], noon) == INACTIVE_TIME_PENALTY


def test_period_ramp_values():
    wide = {"start": 0, "peak": 100, "end": 200, "multiplier": 3.0}
    narrow = {"start": 40, "peak": 50, "end": 60, "multiplier": 1.5}
    assert period_ramp(wide, 50) == pytest.approx(1.5)
    assert period_ramp(narrow, 50) == pytest.approx(1.5)
    assert period_ramp(wide, 100) == pytest.approx(3.0)
    assert period_ramp(TIME_PERIODS["Day"], 720) == pytest.approx(1.0)


def test_moon_phase_icons():
    assert moon_phase_icon(date(2024, 1, 25)) == FULL_MOON_ICON
    assert moon_phase_icon(date(2024, 1, 11)) == "🌑"
    # Dates before the reference new moon still map to a symbol.
    assert moon_phase_icon(date(2000, 1, 6)) == "🌑"
    assert moon_phase_icon(date(1980, 5, 17)) in "🌑🌒🌓🌔🌕🌖🌗🌘"


def test_full_moon_override_wins():
    assert is_full_moon(at("12:00", day="2024-01-25"))
    assert not is_full_moon(at("12:00", day="2024-01-25", force_full_moon=False))
    assert is_full_moon(at("12:00", day="2024-01-11", force_full_moon=True))


def test_holidays():
    assert is_halloween(at("12:00", day="2024-10-31"))
    assert not is_halloween(at("12:00", day="2024-10-30"))
    assert is_halloween(at("12:00", day="2024-10-30", force_halloween=True))
    assert not is_halloween(at("12:00", day="2024-10-31", force_halloween=False))
    assert is_midsummer(at("12:00", day="2024-06-21"))
    assert not is_midsummer(at("12:00", day="2024-06-22"))
    assert is_yule(at("12:00", day="2024-12-01"))
    assert not is_yule(at("12:00", day="2024-11-30"))


def test_seasons_and_override():
    assert season_for_date(date(2024, 3, 1)) == "Spring"
    assert season_for_date(date(2024, 6, 1)) == "Summer"
    assert season_for_date(date(2024, 9, 1)) == "Fall"
    assert season_for_date(date(2024, 12, 1)) == "Winter"
    assert season_for_date(date(2024, 2, 29)) == "Winter"
    assert current_season(at("12:00", day="2024-07-01", force_season="Winter")) == "Winter"


def test_debug_overrides_validation():
    with pytest.raises(ValueError):
        DebugOverrides(force_time="25:00")
    with pytest.raises(ValueError):
        DebugOverrides(force_season="Monsoon")
    with pytest.raises(ValueError):
        DebugOverrides(multiplier=-1)


def test_update_overrides_keeps_previous_on_invalid():
    current = DebugOverrides(force_time="22:00")
    assert update_overrides(current, force_time="nope") is current
    assert update_overrides(current, unknown_field=1) is current
    updated = update_overrides(current, force_time="03:15", multiplier=2)
    assert updated.force_time == "03:15" and updated.multiplier == 2


def test_overrides_coerce_multiplier_and_reject_non_bool_flags():
    assert DebugOverrides(multiplier="0.5").multiplier == 0.5
    with pytest.raises(ValueError):
        DebugOverrides(multiplier="often")
    current = DebugOverrides()
    assert update_overrides(current, force_halloween="false") is current
    assert update_overrides(current, force_full_moon=1) is current
    state = calendar_state("2024-10-30", overrides=update_overrides(current, multiplier="2", force_time="12:00"))
    assert state.overrides.multiplier == 2.0
    assert not is_halloween(state)


def test_adjust_forced_time_wraps():
    assert adjust_forced_time("23:59", 2) == "00:01"
    assert adjust_forced_time("00:00", -1) == "23:59"
    assert adjust_forced_time(None, 5, wall_clock=datetime(2024, 1, 1, 10, 15)) == "10:20"


def test_current_conditions_readout():
    day = current_conditions(at("12:00", day="2024-01-25"))
    assert day["sky_icon"] == SUN_ICON
    assert day["period"] == "Day"
    assert day["full_moon"] is True
    assert day["forced"] == ["period"]

    night = current_conditions(at("00:10", day="2024-10-31", force_full_moon=False))
    assert night["sky_icon"] == night["moon_icon"]
    assert night["witching_hour"] and night["halloween"]
    assert set(night["forced"]) == {"period", "witching_hour", "full_moon"}
