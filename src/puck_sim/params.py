from __future__ import annotations

from dataclasses import dataclass, field, fields, replace
from typing import List, Union

import src.puck_sim.config as cfg
from src.puck_sim.baskets import BasketSpec, default_basket, get_basket


@dataclass(frozen=True, slots=True)
class BrewParameters:
    grind_size_microns: float = 400.0   # 200-800 espresso range
    dose_grams: float = 18.0
    tamp_pressure_kg: float = 15.0      # kg-force
    bean_density: float = 1.15          # g/cm^3 (light ~1.10, dark ~1.20)
    moisture_content: float = 0.10      # fraction 0..0.20
    brew_pressure_bar: float = 9.0
    water_temp_c: float = 93.0
    distribution_quality: float = 0.85  # 0..1 (1 = perfect WDT)
    basket: Union[BasketSpec, str] = field(default_factory=default_basket)

    def __post_init__(self):
        if isinstance(self.basket, str):
            object.__setattr__(self, "basket", get_basket(self.basket))

    @property
    def puck_height_mm(self) -> float:
        # volume of grounds in their loose (pre-tamp) packing, spread over the basket floor
        volume_cm3 = self.dose_grams / (self.bean_density * (1.0 - cfg.LOOSE_POROSITY))
        return volume_cm3 / self.basket.cross_section_cm2 * 10.0

    @property
    def porosity(self) -> float:
        tamp_effect = self.tamp_pressure_kg * cfg.TAMP_POROSITY_PER_KG
        moisture_swelling = self.moisture_content * cfg.MOISTURE_SWELLING
        eps = cfg.BASE_POROSITY - tamp_effect - moisture_swelling
        return max(cfg.POROSITY_MIN, min(cfg.POROSITY_MAX, eps))

    @property
    def particle_diameter_m(self) -> float:
        return self.grind_size_microns * 1e-6

    @property
    def brew_pressure_pa(self) -> float:
        return self.brew_pressure_bar * cfg.PA_PER_BAR

    @property
    def exit_pressure_pa(self) -> float:
        return self.basket.exit_pressure_pa

    @property
    def delta_pressure_pa(self) -> float:
        return self.brew_pressure_pa - self.exit_pressure_pa

    def with_changes(self, **changes) -> "BrewParameters":
        return replace(self, **changes)

    def for_basket(self, basket: Union[BasketSpec, str]) -> "BrewParameters":
        """Switch basket and load its nominal dose, as the basket picker does."""
        if isinstance(basket, str):
            basket = get_basket(basket)
        return replace(self, basket=basket, dose_grams=basket.nominal_dose)

    def out_of_range(self) -> List[str]:
        """Names of inputs outside the usual ranges. Never raises."""
        names = []
        for f in fields(self):
            bounds = cfg.PARAM_RANGES.get(f.name)
            if bounds is None:
                continue
            lo, hi = bounds
            value = getattr(self, f.name)
            if not lo <= value <= hi:
                names.append(f.name)
        return names
