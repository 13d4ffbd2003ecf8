import json

import pytest

from monster_config import INACTIVE_TIME_PENALTY
from monster_map_model import load_locations, load_monsters, parse_id_list, parse_tristate
from monster_rules import Monster, calculate_spotting_data, validate_monster
from monster_spotting import Location
from monster_time import DebugOverrides, calendar_state, parse_force_time


def test_parse_force_time():
    assert parse_force_time("23:45") == (23, 45)
    assert parse_force_time("7:05") == (7, 5)
    for bad in ("24:00", "12:60", "noon", "", "12-30"):
        with pytest.raises(ValueError):
            parse_force_time(bad)


def test_parse_id_list_and_tristate():
    assert parse_id_list("troll, mara;tomte") == ("troll", "mara", "tomte")
    assert parse_id_list(None) == ()
    assert parse_tristate("true") is True
    assert parse_tristate("No") is False
    assert parse_tristate("auto") is None
    with pytest.raises(ValueError):
        parse_tristate("maybe")


def test_monster_from_dict_flattens_overrides():
    m = Monster.from_dict({
        "id": "nacken",
        "name": "Näcken",
        "spottingChance": 0.06,
        "activeTime": ["Evening"],
        "restriction": {"requiresDark": True},
        "bonuses": ["midsummer"],
        "overrides": {"bonuses": {"midsummer": 0.35}, "penalties": {"day": 0.2}, "yule": 0},
        "locations": ["water_freshwater_moving"],
    })
    assert m.overrides == {"midsummer": 0.35, "day": 0.2, "yule": 0.0}
    assert m.restriction.requires_dark and not m.restriction.requires_night
    assert m.active_seasons == ["Spring", "Summer", "Fall", "Winter"]


def test_monster_from_dict_rejects_bad_records():
    with pytest.raises(ValueError):
        Monster.from_dict({"name": "No id", "spottingChance": 0.1})
    with pytest.raises(ValueError):
        Monster.from_dict({"id": "x", "spottingChance": "often"})


def test_validate_monster_reports_unknown_names():
    m = Monster(id="x", name="X", spotting_chance=1.5, active_seasons=["Monsoon"],
                active_time=["Teatime"], bonuses=["day"], penalties=["gloom"],
                overrides={"shine": 1.0}, locations=["swamp_of_doom", "forests_all", "T", "H.LK"])
    problems = validate_monster(m)
    assert len(problems) == 7
    assert any("swamp_of_doom" in p for p in problems)
    assert validate_monster(Monster(id="ok", name="Ok", spotting_chance=0.1, locations=["T"])) == []


def test_location_from_dict():
    loc = Location.from_dict({"geonameid": 1, "name": "Vättern", "latitude": "58.3", "longitude": 14.5,
                              "featureClass": "H", "featureCode": "LK"})
    assert loc.full_feature_code == "H.LK"
    assert loc.latitude == pytest.approx(58.3)
    with pytest.raises(ValueError):
        Location.from_dict({"geonameid": 1, "latitude": 0.0})


def test_load_bundled_data():
    monsters = load_monsters()
    assert {"troll", "tomte", "varulv"} <= {m.id for m in monsters}
    index = load_locations()
    assert index.by_feature_class["T"]
    assert [loc.name for loc in index.adm1] == ["Jämtland"]


def test_load_monsters_rejects_duplicates(tmp_path):
    path = tmp_path / "monsters.json"
    path.write_text(json.dumps([{"id": "a", "spottingChance": 0.1}] * 2), encoding="utf-8")
    with pytest.raises(ValueError):
        load_monsters(path)


def test_load_monsters_warns_on_unknown_names(tmp_path, caplog):
    path = tmp_path / "monsters.json"
    path.write_text(json.dumps([{"id": "a", "spottingChance": 0.1, "bonuses": ["gloom"],
                                 "locations": ["T"]}]), encoding="utf-8")
    with caplog.at_level("WARNING"):
        load_monsters(path)
    assert "unknown bonus 'gloom'" in caplog.text


def test_monster_from_dict_keeps_explicit_empty_lists():
    m = Monster.from_dict({"id": "x", "spottingChance": 0.2, "activeTime": [], "activeSeasons": []})
    assert m.active_time == [] and m.active_seasons == []
    state = calendar_state("2024-03-12", overrides=DebugOverrides(force_time="12:00"))
    assert calculate_spotting_data(m, state).probability == pytest.approx(0.2 * 0.5 * INACTIVE_TIME_PENALTY)
    defaults = Monster.from_dict({"id": "y", "spottingChance": 0.2})
    assert defaults.active_time == ["any"]
    assert defaults.active_seasons == ["Spring", "Summer", "Fall", "Winter"]
