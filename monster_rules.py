#!/usr/bin/env python3
# -*- coding: utf-8 -*-
"""
Rules engine: how likely is a monster to be spotted right now, and why.

For one monster and one `CalendarState` the engine produces a final spotting
probability in [0, 1] plus an ordered breakdown of the steps that produced it.
The pipeline order is fixed, because it is both displayed and (for the
multiplicative steps) numerically significant:

  Halloween?  base x HALLOWEEN_MULTIPLIER, nothing else (restrictions lifted)
  otherwise   restrictions -> base -> season -> time -> bonuses (+) -> penalties (x)
  then        debug multiplier (if not 1) -> clamp to [0, 1] -> prepend "final"

Unmet hard restrictions short-circuit to probability 0 with a single
"impossible" step. Unknown modifier or period names are treated as inactive;
`validate_monster` reports them at load time so the fail-closed behaviour is
visible.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Callable, Dict, Iterable, List, Optional

import numpy as np

from monster_config import (
    ANY_TIME,
    FEATURE_CLASSES,
    GLOBAL_MODIFIERS,
    HALLOWEEN_MULTIPLIER,
    LOCATION_GROUPS,
    SEASONS,
    TIME_PERIODS,
)
from monster_time import (
    CalendarState,
    current_period,
    current_season,
    is_dark,
    is_full_moon,
    is_halloween,
    is_midsummer,
    is_night,
    is_period,
    is_witching_hour,
    is_yule,
    time_multiplier,
)

# Breakdown step types
STEP_FINAL = "final"
STEP_BASE = "base"
STEP_MULTIPLIER = "multiplier"
STEP_BONUS = "bonus"
STEP_PENALTY = "penalty"
STEP_IMPOSSIBLE = "impossible"

BONUSES = "bonuses"
PENALTIES = "penalties"

EVENT_HALLOWEEN = "halloween"

SEASON_LABEL = "Season"


def clamp(x: float, lo: float, hi: float) -> float:
    return float(np.clip(x, lo, hi))


# ----------------------------
# MODIFIER REGISTRY
# ----------------------------

class Modifier(str, Enum):
    """Every bonus and penalty a monster may declare."""
    WITCHING_HOUR = "witchingHour"
    MIDNIGHT = "midnight"
    FULL_MOON = "fullMoon"
    YULE = "yule"
    MIDSUMMER = "midsummer"
    DAY = "day"
    EARLY_MORNING = "earlyMorning"
    EVENING = "evening"
    NIGHT = "night"
    LATE_NIGHT = "lateNight"


@dataclass(frozen=True)
class ModifierDefinition:
    modifier: Modifier
    kind: str                                     # BONUSES or PENALTIES
    condition: Callable[[CalendarState], bool]
    label: str

    @property
    def default(self) -> float:
        return GLOBAL_MODIFIERS[self.kind][self.modifier.value]


def _during(period_name: str) -> Callable[[CalendarState], bool]:
    return lambda state: is_period(state, period_name)


MODIFIER_DEFINITIONS: Dict[Modifier, ModifierDefinition] = {
    d.modifier: d for d in (
        ModifierDefinition(Modifier.WITCHING_HOUR, BONUSES, is_witching_hour, "Witching Hour"),
        ModifierDefinition(Modifier.MIDNIGHT, BONUSES, _during("Midnight"), "Midnight"),
        ModifierDefinition(Modifier.FULL_MOON, BONUSES, is_full_moon, "Full Moon"),
        ModifierDefinition(Modifier.YULE, BONUSES, is_yule, "Yule Season"),
        ModifierDefinition(Modifier.MIDSUMMER, BONUSES, is_midsummer, "Midsummer"),
        ModifierDefinition(Modifier.DAY, PENALTIES, _during("Day"), "Daylight"),
        ModifierDefinition(Modifier.EVENING, PENALTIES, _during("Evening"), "Evening"),
        ModifierDefinition(Modifier.EARLY_MORNING, PENALTIES, _during("Early Morning"), "Early Morning"),
        ModifierDefinition(Modifier.NIGHT, PENALTIES, _during("Night"), "Night"),
        ModifierDefinition(Modifier.LATE_NIGHT, PENALTIES, _during("Late Night"), "Late Night"),
    )
}


def lookup_modifier(name: str, kind: Optional[str] = None) -> Optional[ModifierDefinition]:
    """Registry entry for `name`, or None if unknown (or of the wrong kind)."""
    try:
        definition = MODIFIER_DEFINITIONS[Modifier(name)]
    except ValueError:
        return None
    if kind is not None and definition.kind != kind:
        return None
    return definition


@dataclass(frozen=True)
class ModifierResult:
    active: bool
    magnitude: float = 0.0
    label: str = ""


def evaluate_modifier(name: str, kind: str, state: CalendarState,
                      overrides: Optional[Dict[str, float]] = None) -> ModifierResult:
    """Evaluate one named bonus or penalty against the calendar state.

    The monster's own override magnitude wins over the global default whenever
    it is set (including an explicit 0).
    """
    definition = lookup_modifier(name, kind)
    if definition is None or not definition.condition(state):
        return ModifierResult(active=False)
    override = (overrides or {}).get(name)
    magnitude = definition.default if override is None else float(override)
    return ModifierResult(active=True, magnitude=magnitude, label=definition.label)


# ----------------------------
# MONSTER DEFINITION
# ----------------------------

@dataclass(frozen=True)
class Restriction:
    requires_full_moon: bool = False
    requires_dark: bool = False
    requires_night: bool = False


@dataclass(frozen=True)
class Monster:
    """Static definition of one monster type, as loaded from the bestiary."""
    id: str
    name: str
    spotting_chance: float
    active_seasons: List[str] = field(default_factory=lambda: list(SEASONS))
    active_time: List[str] = field(default_factory=lambda: [ANY_TIME])
    restriction: Restriction = field(default_factory=Restriction)
    bonuses: List[str] = field(default_factory=list)
    penalties: List[str] = field(default_factory=list)
    overrides: Dict[str, float] = field(default_factory=dict)
    locations: List[str] = field(default_factory=list)
    icon: str = ""

    @classmethod
    def from_dict(cls, data: Dict) -> "Monster":
        """Build a Monster from a bestiary record (camelCase JSON keys).

        `overrides` may be flat ({name: value}) or grouped by kind
        ({"bonuses": {...}, "penalties": {...}}).
        """
        if not isinstance(data, dict):
            raise ValueError(f"Monster record must be an object, got {type(data).__name__}.")
        if not data.get("id"):
            raise ValueError(f"Monster record is missing 'id': {data!r}")
        mid = str(data["id"])
        try:
            chance = float(data["spottingChance"])
        except (KeyError, TypeError, ValueError):
            raise ValueError(f"Monster '{mid}' needs a numeric 'spottingChance'.")

        r = data.get("restriction") or {}
        restriction = Restriction(
            requires_full_moon=bool(r.get("requiresFullMoon", False)),
            requires_dark=bool(r.get("requiresDark", False)),
            requires_night=bool(r.get("requiresNight", False)),
        )

        overrides: Dict[str, float] = {}
        for key, value in (data.get("overrides") or {}).items():
            if key in (BONUSES, PENALTIES) and isinstance(value, dict):
                overrides.update({k: float(v) for k, v in value.items()})
            else:
                overrides[key] = float(value)

        # Defaults apply only when a key is absent; an explicit [] means "never".
        seasons = data.get("activeSeasons")
        times = data.get("activeTime")

        return cls(
            id=mid,
            name=str(data.get("name", mid)),
            icon=str(data.get("icon", "")),
            spotting_chance=chance,
            active_seasons=list(SEASONS if seasons is None else seasons),
            active_time=list([ANY_TIME] if times is None else times),
            restriction=restriction,
            bonuses=list(data.get("bonuses") or []),
            penalties=list(data.get("penalties") or []),
            overrides=overrides,
            locations=list(data.get("locations") or []),
        )


def unknown_habitats(habitats: Iterable[str]) -> List[str]:
    """Habitat identifiers that are neither a group, a feature code nor a feature class."""
    return [h for h in habitats
            if h not in LOCATION_GROUPS and "." not in h and h not in FEATURE_CLASSES]


def validate_monster(monster: Monster) -> List[str]:
    """Configuration warnings for names the engine would silently ignore."""
    problems: List[str] = []
    mid = monster.id

    if not (0.0 <= monster.spotting_chance <= 1.0):
        problems.append(f"{mid}: spottingChance {monster.spotting_chance} is outside [0, 1]")
    for season in monster.active_seasons:
        if season not in SEASONS:
            problems.append(f"{mid}: unknown season '{season}'")
    for name in monster.active_time:
        if name != ANY_TIME and name not in TIME_PERIODS:
            problems.append(f"{mid}: unknown time period '{name}'")
    for name in monster.bonuses:
        if lookup_modifier(name, BONUSES) is None:
            problems.append(f"{mid}: unknown bonus '{name}'")
    for name in monster.penalties:
        if lookup_modifier(name, PENALTIES) is None:
            problems.append(f"{mid}: unknown penalty '{name}'")
    for name in monster.overrides:
        if lookup_modifier(name) is None:
            problems.append(f"{mid}: override for unknown modifier '{name}'")
    for habitat in unknown_habitats(monster.locations):
        problems.append(f"{mid}: unknown habitat '{habitat}'")
    if not monster.locations:
        problems.append(f"{mid}: no habitats, sightings cannot be placed")
    return problems


# ----------------------------
# BREAKDOWN
# ----------------------------

@dataclass(frozen=True)
class BreakdownStep:
    """One entry of the audit trail."""
    type: str
    label: Optional[str] = None
    value: Optional[float] = None
    sub_label: Optional[str] = None
    reason: Optional[str] = None

    def to_dict(self) -> Dict:
        return {k: v for k, v in self.__dict__.items() if v is not None}


@dataclass(frozen=True)
class SpottingData:
    probability: float
    event: Optional[str]
    breakdown: List[BreakdownStep]

    @property
    def impossible(self) -> bool:
        return any(step.type == STEP_IMPOSSIBLE for step in self.breakdown)


def check_restrictions(monster: Monster, state: CalendarState) -> List[str]:
    """Names of the unmet hard restrictions (empty when all hold)."""
    r = monster.restriction
    failed = []
    if r.requires_full_moon and not is_full_moon(state):
        failed.append("Full Moon")
    if r.requires_dark and not is_dark(state):
        failed.append("Darkness")
    if r.requires_night and not is_night(state):
        failed.append("Night")
    return failed


def calculate_spotting_data(monster: Monster, state: CalendarState,
                            debug_multiplier: Optional[float] = None) -> SpottingData:
    """Final spotting probability for `monster` under `state`, with its breakdown.

    Args:
        monster: Static monster definition.
        state: Calendar state of this recomputation.
        debug_multiplier: Development override; defaults to the multiplier in
            `state.overrides`.
    Returns:
        SpottingData with the clamped probability, the event tag (or None) and
        the breakdown, whose first step is "final" unless the monster is
        impossible to spot.
    """
    if debug_multiplier is None:
        debug_multiplier = state.overrides.multiplier

    breakdown: List[BreakdownStep] = []
    chance = float(monster.spotting_chance)
    event = None

    if is_halloween(state):
        chance *= HALLOWEEN_MULTIPLIER
        event = EVENT_HALLOWEEN
        breakdown.append(BreakdownStep(STEP_MULTIPLIER, "Global Multiplier", HALLOWEEN_MULTIPLIER))
    else:
        failed = check_restrictions(monster, state)
        if failed:
            reason = f"Requires: {', '.join(failed)}"
            return SpottingData(0.0, None, [BreakdownStep(STEP_IMPOSSIBLE, reason=reason)])

        breakdown.append(BreakdownStep(STEP_BASE, "Base Chance", chance))

        season = current_season(state)
        if season not in monster.active_seasons:
            chance /= 2
            breakdown.append(BreakdownStep(STEP_MULTIPLIER, SEASON_LABEL, 0.5, sub_label=season))

        t_mult = time_multiplier(monster.active_time, state.time)
        if t_mult != 1.0:
            chance *= t_mult
            breakdown.append(BreakdownStep(STEP_MULTIPLIER, "Time", t_mult,
                                           sub_label=current_period(state.time)))

        for name in monster.bonuses:
            bonus = evaluate_modifier(name, BONUSES, state, monster.overrides)
            if bonus.active:
                chance += bonus.magnitude
                breakdown.append(BreakdownStep(STEP_BONUS, bonus.label, bonus.magnitude))

        for name in monster.penalties:
            penalty = evaluate_modifier(name, PENALTIES, state, monster.overrides)
            if penalty.active:
                chance *= penalty.magnitude
                breakdown.append(BreakdownStep(STEP_PENALTY, penalty.label, penalty.magnitude))

    if debug_multiplier != 1:
        chance *= debug_multiplier
        breakdown.append(BreakdownStep(STEP_MULTIPLIER, "Debug Multiplier", float(debug_multiplier)))

    final = clamp(chance, 0.0, 1.0)
    breakdown.insert(0, BreakdownStep(STEP_FINAL, "Final Chance", final))
    return SpottingData(final, event, breakdown)


def format_breakdown(data: SpottingData) -> List[str]:
    """Human-readable lines of a breakdown, the way the monster panel shows it."""
    separator = "-" * 26
    if data.event == EVENT_HALLOWEEN:
        return ["🎃 It's Halloween! 🎃", separator, "All restrictions lifted!"]
    for step in data.breakdown:
        if step.type == STEP_IMPOSSIBLE:
            return ["Impossible to Spot!", separator, f"Reason: {step.reason}"]

    lines: List[str] = []
    for step in data.breakdown:
        if step.type in (STEP_FINAL, STEP_BASE):
            lines.append(f"{step.label}: {step.value * 100:.1f}%")
        elif step.type == STEP_BONUS:
            lines.append(f"{step.label}: Active (+{step.value * 100:.0f}%)")
        elif step.type == STEP_PENALTY:
            lines.append(f"{step.label}: Active (x{step.value:g})")
        elif step.type == STEP_MULTIPLIER:
            prefix = f"{step.label} ({step.sub_label})" if step.sub_label else step.label
            shown = "Inactive (÷2)" if step.label == SEASON_LABEL else f"Active (x{step.value:.2f})"
            lines.append(f"{prefix}: {shown}")
        if step.type == STEP_FINAL:
            lines.append(separator)
    return lines
