#!/usr/bin/env python3
# -*- coding: utf-8 -*-
"""
Simulation engine: turn spotting probabilities into concrete sightings.

Per monster and calendar day:
  1) Seed a private random stream with `date_seed + monster.id`.
  2) Run MAX_SIGHTINGS independent Bernoulli trials at the monster's final
     probability; the number of successes is the sighting count.
  3) Classify the count into a likelihood band.
  4) Place each sighting on a random location from the monster's habitat pool,
     with a small uniform jitter, drawing from the same stream.

The same date and configuration always reproduce the same sightings, and one
monster's draws never shift another monster's stream. Recomputations are
pure; `SpottingSession` swaps a complete new result set in after each one.
"""

from __future__ import annotations

import hashlib
import logging
import math
from dataclasses import dataclass, field
from datetime import date, datetime
from typing import Callable, Dict, Iterable, List, Optional, Set

import numpy as np

from monster_config import (
    JITTER_DEGREES,
    LIKELIHOOD_BANDS,
    LIKELIHOOD_HIGH,
    LIKELIHOOD_IMPOSSIBLE,
    LOCATION_GROUPS,
    MAX_SIGHTINGS,
)
from monster_rules import Monster, SpottingData, calculate_spotting_data, unknown_habitats
from monster_time import (
    CalendarState,
    DebugOverrides,
    as_calendar_date,
    calendar_state,
    update_overrides,
)

logger = logging.getLogger(__name__)

RandomStream = Callable[[], float]
StreamFactory = Callable[[str], RandomStream]


# ----------------------------
# RANDOM STREAMS
# ----------------------------

def seed_to_int(seed: str) -> int:
    """Stable 64-bit integer for a seed string (never Python's salted hash())."""
    digest = hashlib.sha256(seed.encode("utf-8")).digest()
    return int.from_bytes(digest[:8], "big")


def seeded_stream(seed: str) -> RandomStream:
    """Infinite stream of floats in [0, 1), fully determined by `seed`."""
    rng = np.random.default_rng(seed_to_int(seed))
    return lambda: float(rng.random())


# ----------------------------
# LOCATIONS
# ----------------------------

@dataclass(frozen=True)
class Location:
    """One GeoNames point of the location pool."""
    geonameid: str
    name: str
    latitude: float
    longitude: float
    feature_class: str
    feature_code: str
    country_code: str = ""
    admin1_code: str = ""
    admin2_code: str = ""

    @property
    def full_feature_code(self) -> str:
        return f"{self.feature_class}.{self.feature_code}"

    @classmethod
    def from_dict(cls, data: Dict) -> "Location":
        try:
            return cls(
                geonameid=str(data["geonameid"]),
                name=str(data.get("name", "")),
                latitude=float(data["latitude"]),
                longitude=float(data["longitude"]),
                feature_class=str(data["featureClass"]),
                feature_code=str(data["featureCode"]),
                country_code=str(data.get("countryCode", "")),
                admin1_code=str(data.get("admin1Code", "")),
                admin2_code=str(data.get("admin2Code", "")),
            )
        except (KeyError, TypeError, ValueError) as exc:
            raise ValueError(f"Invalid location record {data!r}: {exc}")

    def to_dict(self) -> Dict:
        return {
            "geonameid": self.geonameid,
            "name": self.name,
            "latitude": self.latitude,
            "longitude": self.longitude,
            "featureClass": self.feature_class,
            "featureCode": self.feature_code,
            "fullFeatureCode": self.full_feature_code,
            "countryCode": self.country_code,
            "admin1Code": self.admin1_code,
            "admin2Code": self.admin2_code,
        }


@dataclass
class LocationIndex:
    """Read-only location pool with lookups by full code, class and id."""
    locations: List[Location] = field(default_factory=list)
    by_feature_code: Dict[str, List[Location]] = field(default_factory=dict)
    by_feature_class: Dict[str, List[Location]] = field(default_factory=dict)
    by_geonameid: Dict[str, Location] = field(default_factory=dict)

    @property
    def adm1(self) -> List[Location]:
        return self.by_feature_code.get("A.ADM1", [])


def build_location_index(locations: Iterable[Location]) -> LocationIndex:
    index = LocationIndex()
    for loc in locations:
        index.locations.append(loc)
        index.by_geonameid[loc.geonameid] = loc
        index.by_feature_code.setdefault(loc.full_feature_code, []).append(loc)
        index.by_feature_class.setdefault(loc.feature_class, []).append(loc)
    return index


def resolve_feature_codes(habitats: Iterable[str]) -> List[str]:
    """Expand habitat groups into feature codes, deduplicated in first-seen order."""
    codes: Dict[str, None] = {}
    for habitat in habitats:
        for code in LOCATION_GROUPS.get(habitat, [habitat]):
            codes[code] = None
    return list(codes)


def location_pool(habitats: Iterable[str], index: LocationIndex) -> List[Location]:
    """Every location matching a resolved code ("P.PPL") or class ("T"), once each."""
    pool: Dict[str, Location] = {}
    for code in resolve_feature_codes(habitats):
        if "." in code:
            matches = index.by_feature_code.get(code, [])
        else:
            matches = index.by_feature_class.get(code, [])
        for loc in matches:
            pool.setdefault(loc.geonameid, loc)
    return list(pool.values())


# ----------------------------
# SIMULATION
# ----------------------------

@dataclass(frozen=True)
class Sighting:
    location: Location
    lat: float
    lng: float

    def to_dict(self) -> Dict:
        out = self.location.to_dict()
        out.update({"lat": self.lat, "lng": self.lng})
        return out


@dataclass(frozen=True)
class SightingRecord:
    """Result of one monster's simulation for one recomputation."""
    monster_id: str
    count: int
    locations: List[Sighting]
    likelihood: str
    probability: float
    breakdown: list
    event: Optional[str] = None
    issues: List[str] = field(default_factory=list)

    def to_dict(self) -> Dict:
        return {
            "monster_id": self.monster_id,
            "count": self.count,
            "likelihood": self.likelihood,
            "probability": self.probability,
            "event": self.event,
            "breakdown": [step.to_dict() for step in self.breakdown],
            "locations": [s.to_dict() for s in self.locations],
            "issues": list(self.issues),
        }


def likelihood_for_count(count: int) -> str:
    for upper, label in LIKELIHOOD_BANDS:
        if count <= upper:
            return label
    return LIKELIHOOD_HIGH


def count_sightings(probability: float, stream: RandomStream, trials: int = MAX_SIGHTINGS) -> int:
    """Successes in `trials` Bernoulli draws at `probability`."""
    return sum(1 for _ in range(trials) if stream() < probability)


def generate_sightings(pool: List[Location], count: int, stream: RandomStream) -> List[Sighting]:
    """Draw `count` locations uniformly from `pool`, each with lat/lng jitter."""
    if count <= 0 or not pool:
        return []
    sightings = []
    for _ in range(count):
        base = pool[int(math.floor(stream() * len(pool)))]
        lat = base.latitude + (stream() - 0.5) * JITTER_DEGREES
        lng = base.longitude + (stream() - 0.5) * JITTER_DEGREES
        sightings.append(Sighting(base, lat, lng))
    return sightings


def simulate(monster: Monster, spotting: SpottingData, calendar_seed: str,
             index: LocationIndex, stream_factory: StreamFactory = seeded_stream) -> SightingRecord:
    """Simulate one day of sightings for one monster.

    Args:
        monster: Monster definition (id and habitats are used here).
        spotting: Output of the rules engine for this monster.
        calendar_seed: Date seed ("YYYY-MM-DD") of the recomputation.
        index: Location pool and its lookups.
        stream_factory: Maps a seed string to a random stream.
    Returns:
        SightingRecord. Configuration problems are listed in `issues` and logged.
    """
    if spotting.probability <= 0:
        likelihood = LIKELIHOOD_IMPOSSIBLE if spotting.impossible else likelihood_for_count(0)
        return SightingRecord(monster.id, 0, [], likelihood, spotting.probability,
                              spotting.breakdown, spotting.event)

    stream = stream_factory(calendar_seed + monster.id)
    count = count_sightings(spotting.probability, stream)

    issues: List[str] = []
    sightings: List[Sighting] = []
    if count > 0:
        for habitat in unknown_habitats(monster.locations):
            issues.append(f"unknown habitat '{habitat}'")
        pool = location_pool(monster.locations, index)
        if not pool:
            issues.append(f"{count} sightings but no locations match habitats {monster.locations}")
        sightings = generate_sightings(pool, count, stream)
        for issue in issues:
            logger.warning("%s on %s: %s", monster.id, calendar_seed, issue)

    return SightingRecord(monster.id, count, sightings, likelihood_for_count(count),
                          spotting.probability, spotting.breakdown, spotting.event, issues)


def calculate_spotted_monsters(monsters: Iterable[Monster], state: CalendarState,
                               index: LocationIndex, disabled: Iterable[str] = (),
                               stream_factory: StreamFactory = seeded_stream) -> Dict[str, SightingRecord]:
    """Rules + simulation for every enabled monster, keyed by monster id."""
    hidden = set(disabled)
    seed = state.seed
    results: Dict[str, SightingRecord] = {}
    for monster in monsters:
        if monster.id in hidden:
            continue
        spotting = calculate_spotting_data(monster, state)
        record = simulate(monster, spotting, seed, index, stream_factory)
        logger.debug("%s %s: p=%.4f count=%d (%s)", seed, monster.id,
                     record.probability, record.count, record.likelihood)
        results[monster.id] = record
    return results


# ----------------------------
# SESSION
# ----------------------------

class SpottingSession:
    """Holds the inputs of the model and the latest complete result set.

    The day is computed on construction, and every change triggers one full
    recomputation; `results` is only replaced once the new mapping is
    complete. Invalid changes are rejected with a warning and leave the
    previous state in effect.
    """

    def __init__(self, monsters: Iterable[Monster], index: LocationIndex,
                 app_date=None, overrides: Optional[DebugOverrides] = None,
                 stream_factory: StreamFactory = seeded_stream,
                 clock: Callable[[], datetime] = datetime.now):
        self.monsters: List[Monster] = list(monsters)
        self.index = index
        self.app_date: date = as_calendar_date(app_date if app_date is not None else date.today())
        self.overrides = overrides or DebugOverrides()
        self.disabled: Set[str] = set()
        self.stream_factory = stream_factory
        self.clock = clock
        self.state: Optional[CalendarState] = None
        self.results: Dict[str, SightingRecord] = {}
        self.recalculate()

    def recalculate(self) -> Dict[str, SightingRecord]:
        state = calendar_state(self.app_date, self.clock(), self.overrides)
        results = calculate_spotted_monsters(self.monsters, state, self.index,
                                             self.disabled, self.stream_factory)
        self.state, self.results = state, results
        return results

    def set_date(self, value) -> Dict[str, SightingRecord]:
        try:
            self.app_date = as_calendar_date(value)
        except (TypeError, ValueError) as exc:
            logger.warning("Rejected date %r: %s", value, exc)
            return self.results
        return self.recalculate()

    def set_overrides(self, **changes) -> Dict[str, SightingRecord]:
        self.overrides = update_overrides(self.overrides, **changes)
        return self.recalculate()

    def reset_overrides(self) -> Dict[str, SightingRecord]:
        self.overrides = DebugOverrides()
        return self.recalculate()

    def set_enabled(self, monster_id: str, enabled: bool) -> Dict[str, SightingRecord]:
        if monster_id not in {m.id for m in self.monsters}:
            logger.warning("Unknown monster id '%s'", monster_id)
            return self.results
        if enabled:
            self.disabled.discard(monster_id)
        else:
            self.disabled.add(monster_id)
        return self.recalculate()
