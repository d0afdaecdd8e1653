import dataclasses
import math

import pytest

import src.puck_sim.config as cfg
from src.puck_sim.baskets import BasketSpec, all_baskets, default_basket, get_basket
from src.puck_sim.params import BrewParameters


def test_catalog_has_six_valid_baskets():
    baskets = all_baskets()
    assert [b.id for b in baskets] == [
        "decent_7g", "decent_14g", "decent_18g", "decent_20g", "decent_22g", "decent_tea",
    ]
    for b in baskets:
        assert b.diameter > 0 and b.depth > 0


def test_only_tea_basket_holds_back_pressure():
    for b in all_baskets():
        if b.id == "decent_tea":
            assert b.has_back_pressure_valve
            assert b.exit_pressure_pa == pytest.approx(2.0e5)
        else:
            assert b.exit_pressure_pa == 0.0


def test_default_and_lookup():
    assert default_basket().id == "decent_18g"
    assert get_basket("decent_14g").nominal_dose == 14
    with pytest.raises(KeyError):
        get_basket("la_marzocco_21g")


def test_invalid_geometry_rejected():
    with pytest.raises(ValueError):
        BasketSpec(id="bad", name="Bad", diameter=0, depth=20, nominal_dose=18, hole_count=1, hole_diameter=0.3)


def test_default_parameters_derived_values():
    p = BrewParameters()
    # 18 g / (1.15 * 0.6) spread over a 58 mm basket
    expected_height = 18.0 / (1.15 * 0.6) / (math.pi * 2.9 ** 2) * 10.0
    assert p.puck_height_mm == pytest.approx(expected_height)
    assert p.porosity == pytest.approx(0.42 - 15 * 0.004 - 0.10 * 0.15)
    assert p.particle_diameter_m == pytest.approx(400e-6)
    assert p.delta_pressure_pa == pytest.approx(9.0e5)


@pytest.mark.parametrize("tamp", [0.0, 5.0, 15.0, 30.0, 60.0, 200.0])
@pytest.mark.parametrize("moisture", [0.0, 0.1, 0.2])
def test_porosity_always_clamped(tamp, moisture):
    eps = BrewParameters(tamp_pressure_kg=tamp, moisture_content=moisture).porosity
    assert cfg.POROSITY_MIN <= eps <= cfg.POROSITY_MAX


def test_basket_id_is_resolved():
    p = BrewParameters(basket="decent_tea")
    assert isinstance(p.basket, BasketSpec)
    assert p.exit_pressure_pa == pytest.approx(2.0e5)


def test_for_basket_loads_nominal_dose():
    p = BrewParameters().for_basket("decent_22g")
    assert p.basket.id == "decent_22g"
    assert p.dose_grams == 22


def test_parameters_are_immutable():
    p = BrewParameters()
    with pytest.raises(dataclasses.FrozenInstanceError):
        p.dose_grams = 20.0
    q = p.with_changes(dose_grams=20.0)
    assert p.dose_grams == 18.0 and q.dose_grams == 20.0


def test_out_of_range_reports_without_raising():
    assert BrewParameters().out_of_range() == []
    odd = BrewParameters(grind_size_microns=50.0, water_temp_c=120.0)
    assert set(odd.out_of_range()) == {"grind_size_microns", "water_temp_c"}


def test_moisture_and_distribution_use_slider_bounds():
    assert BrewParameters(moisture_content=0.02, distribution_quality=0.3).out_of_range() == []
    odd = BrewParameters(moisture_content=0.0, distribution_quality=0.2)
    assert set(odd.out_of_range()) == {"moisture_content", "distribution_quality"}
    assert BrewParameters(moisture_content=0.20).out_of_range() == ["moisture_content"]
