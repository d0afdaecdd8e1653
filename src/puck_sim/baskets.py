from __future__ import annotations

import math
from dataclasses import dataclass
from typing import Dict, Tuple

import src.puck_sim.config as cfg


@dataclass(frozen=True, slots=True)
class BasketSpec:
    id: str
    name: str
    diameter: float        # mm
    depth: float           # mm (internal height)
    nominal_dose: float    # g
    hole_count: int
    hole_diameter: float   # mm
    has_back_pressure_valve: bool = False
    back_pressure_bar: float = 0.0
    description: str = ""

    def __post_init__(self):
        if self.diameter <= 0 or self.depth <= 0:
            raise ValueError(f"Basket {self.id!r} needs positive diameter and depth, "
                             f"got diameter={self.diameter}, depth={self.depth}")

    @property
    def radius_m(self) -> float:
        return self.diameter / 2000.0

    @property
    def cross_section_cm2(self) -> float:
        radius_cm = self.diameter / 20.0
        return math.pi * radius_cm * radius_cm

    @property
    def exit_pressure_pa(self) -> float:
        # gauge pressure below the screen: atmospheric unless a valve holds it back
        if self.has_back_pressure_valve:
            return self.back_pressure_bar * cfg.PA_PER_BAR
        return 0.0


DEFAULT_BASKET_ID = "decent_18g"

_CATALOG: Tuple[BasketSpec, ...] = (
    BasketSpec(
        id="decent_7g", name="7g Single",
        diameter=58, depth=16, nominal_dose=7, hole_count=280, hole_diameter=0.30,
        description="Single basket for ristretto-weight doses. Shallow depth demands precise distribution.",
    ),
    BasketSpec(
        id="decent_14g", name="14g Double",
        diameter=58, depth=22, nominal_dose=14, hole_count=340, hole_diameter=0.30,
        description="Standard double basket. Good balance of depth and forgiveness.",
    ),
    BasketSpec(
        id="decent_18g", name="18g Precision",
        diameter=58, depth=25, nominal_dose=18, hole_count=380, hole_diameter=0.28,
        description="Precision-etched basket for competition-level consistency. Tighter hole tolerance.",
    ),
    BasketSpec(
        id="decent_20g", name="20g Precision",
        diameter=58, depth=27, nominal_dose=20, hole_count=400, hole_diameter=0.28,
        description="Deep precision basket for higher dose ratios. Popular for light roasts.",
    ),
    BasketSpec(
        id="decent_22g", name="22g Triple",
        diameter=58, depth=30, nominal_dose=22, hole_count=420, hole_diameter=0.30,
        description="Triple basket for large doses. Requires careful distribution due to puck height.",
    ),
    BasketSpec(
        id="decent_tea", name="Tea Basket",
        diameter=58, depth=25, nominal_dose=5, hole_count=380, hole_diameter=0.28,
        has_back_pressure_valve=True, back_pressure_bar=2.0,
        description="Includes mushroom back-pressure valve (~2 bar). "
                    "Maintains pressure even without a coffee puck for tea brewing.",
    ),
)

_BY_ID: Dict[str, BasketSpec] = {b.id: b for b in _CATALOG}


def all_baskets() -> Tuple[BasketSpec, ...]:
    return _CATALOG


def get_basket(basket_id: str) -> BasketSpec:
    try:
        return _BY_ID[basket_id]
    except KeyError:
        known = ", ".join(_BY_ID)
        raise KeyError(f"Unknown basket {basket_id!r} (known: {known})") from None


def default_basket() -> BasketSpec:
    return _BY_ID[DEFAULT_BASKET_ID]
