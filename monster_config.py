#!/usr/bin/env python3
# -*- coding: utf-8 -*-
"""
Static rulebook for the monster sightings model.

Everything the rules and simulation engines treat as fixed lives here: the
time periods of the day, default bonus/penalty magnitudes, the global event
multiplier, habitat groups of GeoNames feature codes, and the handful of
tunable constants that shape the simulation.

Monsters may override a bonus or penalty magnitude individually; the values
below are only the defaults.
"""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Dict, List, Tuple


# ----------------------------
# TUNABLE CONSTANTS
# ----------------------------

INACTIVE_TIME_PENALTY: float = 0.05   # Time multiplier outside every active period (rare, never zero).
MAX_SIGHTINGS: int = 40               # Bernoulli trials per monster per day (ceiling on sightings).
JITTER_DEGREES: float = 0.01          # Full width of the uniform lat/lng jitter applied to a sighting.
FALLBACK_PERIOD: str = "Day"          # Period reported when no period contains the current minute.
ANY_TIME: str = "any"                 # activeTime sentinel: always active, time multiplier 1.0.

# Synodic month and a known new moon, used for the phase calculation.
LUNAR_MONTH_DAYS: float = 29.530588853
REFERENCE_NEW_MOON: datetime = datetime(2000, 1, 6, 18, 14, tzinfo=timezone.utc)

# Eight phase symbols starting at new moon; index 4 is the full moon.
MOON_PHASE_ICONS: Tuple[str, ...] = ("🌑", "🌒", "🌓", "🌔", "🌕", "🌖", "🌗", "🌘")
FULL_MOON_ICON: str = MOON_PHASE_ICONS[4]
SUN_ICON: str = "☀️"


# ----------------------------
# SEASONS & TIME PERIODS
# ----------------------------

SEASONS: Tuple[str, ...] = ("Spring", "Summer", "Fall", "Winter")

SEASON_ICONS: Dict[str, str] = {
    "Spring": "🌱",
    "Summer": "☀️",
    "Fall": "🍂",
    "Winter": "❄️",
}

# Minutes past midnight (closed intervals) with the peak minute and peak multiplier.
# Declaration order matters: the first period containing a minute names it.
TIME_PERIODS: Dict[str, Dict[str, float]] = {
    "Midnight":      {"start": 0,    "peak": 15,   "end": 59,   "multiplier": 2.5},  # 00:00 - 00:59
    "Late Night":    {"start": 60,   "peak": 150,  "end": 239,  "multiplier": 2.0},  # 01:00 - 03:59
    "Early Morning": {"start": 240,  "peak": 300,  "end": 359,  "multiplier": 1.4},  # 04:00 - 05:59
    "Morning":       {"start": 360,  "peak": 420,  "end": 539,  "multiplier": 1.2},  # 06:00 - 08:59
    "Day":           {"start": 540,  "peak": 720,  "end": 1079, "multiplier": 1.0},  # 09:00 - 17:59
    "Evening":       {"start": 1080, "peak": 1140, "end": 1259, "multiplier": 1.4},  # 18:00 - 20:59
    "Night":         {"start": 1260, "peak": 1350, "end": 1439, "multiplier": 2.2},  # 21:00 - 23:59
}


# ----------------------------
# MODIFIER MAGNITUDES
# ----------------------------

GLOBAL_MODIFIERS: Dict[str, Dict[str, float]] = {
    "bonuses": {            # Additive
        "witchingHour": 0.15,
        "midnight": 0.07,
        "fullMoon": 0.12,
        "yule": 0.10,
        "midsummer": 0.25,
    },
    "penalties": {          # Multiplicative
        "day": 0.4,
        "earlyMorning": 0.6,
        "evening": 0.6,
        "night": 0.7,
        "lateNight": 0.6,
    },
    "events": {
        "halloween": 2.5,
    },
}

HALLOWEEN_MULTIPLIER: float = GLOBAL_MODIFIERS["events"]["halloween"]


# ----------------------------
# HABITAT GROUPS
# ----------------------------
# Named groups of GeoNames feature codes ("<class>.<code>"), so a monster can
# live in "all forests" rather than listing every code.

LOCATION_GROUPS: Dict[str, List[str]] = {
    # Human settlements & structures
    "settlements_urban": ["P.PPL", "P.PPLA", "P.PPLA2", "P.PPLA3", "P.PPLA4", "P.PPLC", "S.SQR"],
    "settlements_rural": ["P.PPLF", "P.PPLL", "S.FRM", "S.FRMT", "S.HUT", "S.HUTS", "L.LCTY"],
    "settlements_all": ["P.PPL", "P.PPLA", "P.PPLA2", "P.PPLA3", "P.PPLA4", "P.PPLC", "P.PPLF", "P.PPLL"],

    "structures_affluent": ["S.PAL", "S.CSTL", "S.HSEC", "S.EST"],
    "structures_abandoned": ["P.PPLH", "P.PPLQ", "P.PPLW", "S.RUIN", "R.RRQ", "S.AIRQ", "S.BDGQ",
                             "S.DAMQ", "S.FRMQ", "S.CMPQ", "S.MLSGQ"],
    "structures_historic": ["A.ADM1H", "A.ADM2H", "A.ADM3H", "A.ADM4H", "L.BTL", "S.ANS", "S.HSTS",
                            "S.MNMT", "S.WALLA", "R.RDA"],
    "structures_defensive": ["S.FT", "S.WALL", "S.WALLA", "S.TOWR", "L.MILB", "L.NVB", "S.INSM"],
    "structures_industrial": ["S.MFG", "S.ML", "S.FNDY", "S.PS", "S.OILR", "S.WTRW", "S.DIKE",
                              "S.DAM", "S.LOCK"],
    "structures_mines_quarries": ["S.MN", "S.MNC", "S.MNFE", "S.MNAU", "S.MNQ", "S.MNQR", "L.MNA"],

    # Places of spiritual or final rest
    "places_of_worship": ["S.CH", "S.MSQE", "S.SYG", "S.TMPL", "S.PGDA", "S.SHRN"],
    "places_of_seclusion": ["S.MSTY", "S.CVNT", "S.RLGR", "S.HERM"],
    "places_of_death": ["S.CMTY", "S.GRVE", "S.TMB", "S.BUR", "L.BTL", "S.WRCK"],
    "places_sacred_all": ["S.CH", "S.MSQE", "S.SYG", "S.TMPL", "S.PGDA", "S.SHRN", "S.MSTY", "S.CVNT",
                          "S.RLGR", "S.HERM", "S.CMTY", "S.GRVE", "S.TMB", "S.BUR", "L.BTL", "S.RLG"],

    # Vegetation
    "forests_dense": ["V.FRST", "V.FRSTF"],
    "forests_sparse": ["V.GROVE", "V.HTH", "V.SCRB", "L.CLG"],
    "forests_all": ["V.FRST", "V.FRSTF", "V.GROVE", "V.HTH", "V.SCRB"],
    "cultivated_land": ["L.AGRC", "V.CULT", "L.FLDI", "S.NSY", "V.OCH", "V.VIN"],
    "grasslands": ["V.GRSLD", "V.MDW", "L.GRAZ", "L.PRK", "L.CMN"],

    # Topography & geology
    "mountains_high": ["T.MT", "T.MTS", "T.PK", "T.PKS", "T.VLC", "T.NTK"],
    "mountains_low": ["T.HLL", "T.HLLS", "T.RDGE", "T.SPUR", "T.UPLD", "T.MESA"],
    "mountains_all": ["T.MT", "T.MTS", "T.PK", "T.PKS", "T.VLC", "T.NTK", "T.HLL", "T.HLLS", "T.RDGE",
                      "T.SPUR", "T.UPLD"],
    "underground_natural": ["S.CAVE", "S.BUR", "R.TNLN", "H.LKSB"],
    "canyons_and_gorges": ["T.CNYN", "T.GRGE", "T.VALG", "T.RVN", "T.FSR"],
    "rocky_terrain": ["T.RK", "T.RKS", "T.BLDR", "T.SCRP", "T.TAL", "T.KRST", "T.LAVA"],
    "deserts_and_barrens": ["T.DSRT", "T.ERG", "T.HMDA", "T.REG", "L.LAND", "L.SALT", "T.BDLD"],

    # Water bodies
    "water_freshwater_large": ["H.LK", "H.LKS", "H.RSV", "H.LGN"],
    "water_freshwater_moving": ["H.STM", "H.STMS", "H.CNL", "H.RPDS", "H.FLLS"],
    "water_coastal": ["H.SEA", "H.OCN", "H.STRT", "H.BAY", "H.GULF", "H.FJD", "H.SD", "T.BCH"],
    "water_islands": ["T.ISL", "T.ISLS", "T.ISLET", "T.ATOL"],
    "water_wetlands": ["H.SWMP", "H.MRSH", "H.BOG", "V.TUND", "H.WTLD", "L.PEAT"],

    # Infrastructure
    "transport_roads": ["R.RD", "R.ST", "R.TRL", "R.CSWY"],
    "transport_railways": ["R.RR", "R.RSTN", "R.RSTP", "R.RYD"],
    "transport_bridges_tunnels": ["S.BDG", "R.TNL", "R.TNLRD", "R.TNLRR"],
    "transport_hubs": ["S.AIRP", "L.PRT", "S.FYT", "S.RSTN", "S.BUSTN", "S.MAR"],
}

# GeoNames top-level feature classes (a habitat may name a whole class, e.g. "T").
FEATURE_CLASSES: Tuple[str, ...] = ("A", "H", "L", "P", "R", "S", "T", "U", "V")

# Likelihood bands: (upper bound on count, label), checked in order.
LIKELIHOOD_BANDS: Tuple[Tuple[int, str], ...] = (
    (0, "Very Low"),
    (2, "Low"),
    (5, "Medium"),
)
LIKELIHOOD_HIGH: str = "High"
LIKELIHOOD_IMPOSSIBLE: str = "Impossible"
