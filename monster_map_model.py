#!/usr/bin/env python3
# -*- coding: utf-8 -*-
"""
Daily Monster Sightings: a reproducible, rules-driven model of where (and how
often) each monster of the bestiary is spotted on a given calendar day.

--------------------------------------------------------------------
HOW A DAY IS COMPUTED
--------------------------------------------------------------------
A) Conditions (monster_time)
   - The calendar date gives the seed ("YYYY-MM-DD"), moon phase, season and
     holidays (Halloween, Midsummer, Yule). It never depends on a timezone.
   - The viewer's local time of day (or a forced debug time) gives the period
     (Midnight, Late Night, ..., Night), night/darkness and the witching hour.

B) Spotting probability (monster_rules)
   - Halloween lifts every restriction and multiplies the base chance by 2.5.
   - Otherwise hard restrictions (full moon / dark / night) may make a monster
     impossible; then season halving, a smooth time-of-day ramp, additive
     bonuses and multiplicative penalties apply in that order.
   - A debug multiplier may scale the result; the final value is clamped.
   - Every step is recorded in a breakdown (`--explain` prints it).

C) Sightings (monster_spotting)
   - A per-monster random stream seeded with date + monster id runs 40
     Bernoulli trials; successes are sightings.
   - Sightings are placed on locations from the monster's habitat groups, with
     a little jitter so points do not stack.

D) Outputs
   - Console summary, optional JSON/CSV reports and plots (`--plot`).

--------------------------------------------------------------------
ASSUMPTIONS & SCOPE
--------------------------------------------------------------------
- The bestiary and the location table are trusted JSON resources (see
  data/). Unknown names are ignored by the engine and reported as warnings.
- Each day is simulated independently; nothing persists between days.
"""

from __future__ import annotations

import argparse
import csv
import json
import logging
import re
from dataclasses import dataclass, field
from datetime import date, datetime, time
from pathlib import Path
from typing import Dict, List, Optional, Tuple

import numpy as np
import matplotlib.pyplot as plt

from monster_config import SEASONS, TIME_PERIODS
from monster_rules import Monster, SpottingData, format_breakdown, validate_monster
from monster_spotting import (
    Location,
    LocationIndex,
    SightingRecord,
    build_location_index,
    calculate_spotted_monsters,
)
from monster_time import (
    CalendarState,
    DebugOverrides,
    as_calendar_date,
    calendar_state,
    current_conditions,
    time_multiplier,
)

logger = logging.getLogger(__name__)

DATA_DIR: Path = Path(__file__).resolve().parent / "data"
DEFAULT_MONSTERS_PATH: Path = DATA_DIR / "monsters.json"
DEFAULT_LOCATIONS_PATH: Path = DATA_DIR / "locations.json"

CSV_HEADERS: List[str] = ["monster_id", "name", "count", "likelihood", "probability", "event"]


# ----------------------------
# DATA LOADING
# ----------------------------

def _read_json_list(path: Path, what: str) -> List[Dict]:
    with open(path, "r", encoding="utf-8") as f:
        data = json.load(f)
    if not isinstance(data, list):
        raise ValueError(f"{what} file '{path}' must contain a JSON list.")
    return data


def load_monsters(path: Path = DEFAULT_MONSTERS_PATH) -> List[Monster]:
    """Load the bestiary and log a warning for every configuration problem."""
    monsters = [Monster.from_dict(rec) for rec in _read_json_list(Path(path), "Monster")]
    seen = set()
    for m in monsters:
        if m.id in seen:
            raise ValueError(f"Duplicate monster id '{m.id}' in '{path}'.")
        seen.add(m.id)
        for problem in validate_monster(m):
            logger.warning("Bestiary: %s", problem)
    return monsters


def load_locations(path: Path = DEFAULT_LOCATIONS_PATH) -> LocationIndex:
    """Load the location table and build its lookup indexes."""
    records = _read_json_list(Path(path), "Location")
    return build_location_index(Location.from_dict(rec) for rec in records)


def parse_id_list(spec: Optional[str]) -> Tuple[str, ...]:
    """Parse a comma/semicolon-separated list of monster ids."""
    if not spec:
        return ()
    return tuple(p.strip() for p in re.split(r"[;,]\s*", spec.strip()) if p.strip())


def parse_tristate(value: Optional[str]) -> Optional[bool]:
    """Map "true"/"false"/"auto" (or None) to True/False/None."""
    if value is None:
        return None
    v = value.strip().lower()
    if v in ("auto", "none", ""):
        return None
    if v in ("true", "yes", "1", "on"):
        return True
    if v in ("false", "no", "0", "off"):
        return False
    raise ValueError(f"Expected true, false or auto, got '{value}'.")


# ----------------------------
# DATA CLASSES
# ----------------------------

@dataclass
class ModelInputs:
    """Configuration for a single recomputation. Most fields map to CLI flags."""
    monsters: List[Monster]
    index: LocationIndex
    app_date: date
    wall_clock: Optional[datetime] = None
    overrides: DebugOverrides = field(default_factory=DebugOverrides)
    hidden: Tuple[str, ...] = ()


@dataclass
class ModelResults:
    state: CalendarState
    records: Dict[str, SightingRecord]


def run_model(inputs: ModelInputs) -> ModelResults:
    state = calendar_state(inputs.app_date, inputs.wall_clock, inputs.overrides)
    records = calculate_spotted_monsters(inputs.monsters, state, inputs.index, inputs.hidden)
    return ModelResults(state=state, records=records)


# ----------------------------
# REPORTING & VISUALIZATION
# ----------------------------

def summarize(results: ModelResults, monsters: List[Monster]) -> Dict:
    """JSON-serializable summary of a recomputation, busiest monsters first."""
    names = {m.id: m.name for m in monsters}
    rows = []
    for mid, rec in results.records.items():
        row = rec.to_dict()
        row["name"] = names.get(mid, mid)
        rows.append(row)
    rows.sort(key=lambda r: (-r["count"], r["monster_id"]))

    counts = np.array([r["count"] for r in rows], dtype=int)
    return {
        "date": results.state.seed,
        "conditions": current_conditions(results.state),
        "totals": {
            "sightings": int(counts.sum()) if counts.size else 0,
            "monsters_spotted": int(np.count_nonzero(counts)),
            "monsters": len(rows),
        },
        "monsters": rows,
    }


def write_csv(summary: Dict, path: str) -> None:
    with open(path, "w", newline="", encoding="utf-8") as f:
        writer = csv.writer(f)
        writer.writerow(CSV_HEADERS)
        for row in summary["monsters"]:
            writer.writerow([row["monster_id"], row["name"], row["count"], row["likelihood"],
                             f"{row['probability']:.6f}", row["event"] or ""])


def print_conditions(conditions: Dict) -> None:
    flags = [name for name in ("witching_hour", "full_moon", "halloween", "midsummer", "yule")
             if conditions[name]]
    forced = f"  (forced: {', '.join(conditions['forced'])})" if conditions["forced"] else ""
    print(f"{conditions['date']} {conditions['time']} {conditions['sky_icon']}  "
          f"period={conditions['period']}  season={conditions['season']}  "
          f"moon={conditions['moon_icon']}  flags={flags or '-'}{forced}")


def print_explain_per_monster(results: ModelResults, monsters: List[Monster]) -> None:
    """Print each monster's spotting chance breakdown."""
    print("\nSpotting chance breakdown:")
    for m in monsters:
        rec = results.records.get(m.id)
        if rec is None:
            continue
        data = SpottingData(rec.probability, rec.event, rec.breakdown)
        print(f"\n{m.icon} {m.name}".rstrip())
        for line in format_breakdown(data):
            print(f"    {line}")
        for issue in rec.issues:
            print(f"    ! {issue}")


def plot_sighting_counts(summary: Dict, path: str = "monster_sightings.png") -> None:
    """Bar chart of sightings per monster (saved to file)."""
    names = [r["name"] for r in summary["monsters"]]
    counts = [r["count"] for r in summary["monsters"]]
    plt.figure(figsize=(10, 5))
    plt.bar(names, counts)
    plt.ylabel("Sightings")
    plt.xticks(rotation=30, ha="right")
    plt.title(f"Monster Sightings on {summary['date']}")
    plt.tight_layout()
    plt.savefig(path, dpi=144)
    plt.close()


def time_curve(monster: Monster, app_date: date) -> np.ndarray:
    """Time multiplier of a monster for every minute of the day (1440 values)."""
    return np.array([
        time_multiplier(monster.active_time, datetime.combine(app_date, time(m // 60, m % 60)))
        for m in range(24 * 60)
    ], dtype=float)


def plot_time_curves(monsters: List[Monster], app_date: date,
                     path: str = "monster_time_curves.png") -> None:
    """Time-of-day multiplier curves per monster (saved to file)."""
    minutes = np.arange(24 * 60) / 60.0
    plt.figure(figsize=(10, 5))
    for m in monsters:
        plt.plot(minutes, time_curve(m, app_date), label=m.name)
    for period in TIME_PERIODS.values():
        plt.axvline(period["start"] / 60.0, color="grey", linewidth=0.5, linestyle=":")
    plt.xlabel("Hour of day")
    plt.ylabel("Time multiplier")
    plt.xlim(0, 24)
    plt.title("Time-of-Day Spotting Multipliers")
    plt.legend(fontsize="small")
    plt.tight_layout()
    plt.savefig(path, dpi=144)
    plt.close()


# ----------------------------
# CLI
# ----------------------------

def build_arg_parser() -> argparse.ArgumentParser:
    p = argparse.ArgumentParser(
        description=(
            "Compute the reproducible daily monster sightings for a calendar date from "
            "time-of-day, season, moon and holiday rules, then place them on a location map."
        )
    )
    # Date & overrides
    p.add_argument("--date", type=str, default=None,
                   help="Calendar date YYYY-MM-DD (default: today). The date alone seeds the simulation.")
    p.add_argument("--time", type=str, default=None,
                   help="Force the time of day, HH:MM (default: your local clock).")
    p.add_argument("--season", type=str, default=None, choices=SEASONS,
                   help="Force the season (default: from the date).")
    p.add_argument("--full_moon", type=str, default=None,
                   help="Force the full moon flag: true, false or auto.")
    p.add_argument("--halloween", type=str, default=None,
                   help="Force the Halloween flag: true, false or auto.")
    p.add_argument("--multiplier", type=float, default=1.0,
                   help="Debug multiplier applied to every final chance (>=0).")
    p.add_argument("--hide", type=str, default=None,
                   help='Monster ids to leave out, e.g. "troll,wolf".')
    # Data
    p.add_argument("--monsters", type=str, default=str(DEFAULT_MONSTERS_PATH),
                   help="Path to the bestiary JSON.")
    p.add_argument("--locations", type=str, default=str(DEFAULT_LOCATIONS_PATH),
                   help="Path to the location table JSON.")
    # Output
    p.add_argument("--list_monsters", action="store_true", help="Print known monsters and exit.")
    p.add_argument("--explain", action="store_true", help="Print each monster's chance breakdown.")
    p.add_argument("--plot", action="store_true",
                   help='Save plots: "monster_sightings.png" and "monster_time_curves.png".')
    p.add_argument("--report_json", type=str, default=None, help="Path to save the summary JSON.")
    p.add_argument("--report_csv", type=str, default=None, help="Path to save the per-monster CSV.")
    p.add_argument("--verbose", action="store_true", help="Debug logging.")
    return p


def main(argv: Optional[List[str]] = None) -> None:
    args = build_arg_parser().parse_args(argv)
    logging.basicConfig(level=logging.DEBUG if args.verbose else logging.WARNING,
                        format="%(levelname)s %(name)s: %(message)s")

    monsters = load_monsters(Path(args.monsters))

    if args.list_monsters:
        print("Monsters in bestiary:")
        for m in monsters:
            print(f"- {m.id:<20s} {m.icon} {m.name}")
        return

    # Validate inputs
    app_date = as_calendar_date(args.date) if args.date else date.today()
    overrides = DebugOverrides(
        multiplier=float(args.multiplier),
        force_time=args.time,
        force_season=args.season,
        force_full_moon=parse_tristate(args.full_moon),
        force_halloween=parse_tristate(args.halloween),
    )
    hidden = parse_id_list(args.hide)
    known = {m.id for m in monsters}
    for mid in hidden:
        if mid not in known:
            raise ValueError(f"Unknown monster id '{mid}' in --hide.")

    inputs = ModelInputs(
        monsters=monsters,
        index=load_locations(Path(args.locations)),
        app_date=app_date,
        overrides=overrides,
        hidden=hidden,
    )

    results = run_model(inputs)
    summary = summarize(results, monsters)

    # Human-readable summary
    print_conditions(summary["conditions"])
    totals = summary["totals"]
    print(f"Total sightings: {totals['sightings']} "
          f"({totals['monsters_spotted']} of {totals['monsters']} monsters spotted)")
    for row in summary["monsters"]:
        event = f"  [{row['event']}]" if row["event"] else ""
        print(f"  - {row['name']:<22s} count={row['count']:>2d}  {row['likelihood']:<10s} "
              f"chance={row['probability']:.1%}{event}")

    if args.explain:
        print_explain_per_monster(results, monsters)

    if args.plot:
        plot_sighting_counts(summary, path="monster_sightings.png")
        shown = [m for m in monsters if m.id not in hidden]
        plot_time_curves(shown, app_date, path="monster_time_curves.png")
        print("\nSaved plots: monster_sightings.png, monster_time_curves.png")

    if args.report_json:
        with open(args.report_json, "w", encoding="utf-8") as f:
            json.dump(summary, f, indent=2, ensure_ascii=False)
        print(f"Saved JSON report to: {args.report_json}")

    if args.report_csv:
        write_csv(summary, args.report_csv)
        print(f"Saved per-monster CSV to: {args.report_csv}")


if __name__ == "__main__":
    main()
