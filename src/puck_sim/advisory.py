from __future__ import annotations

from typing import Any, Dict

import src.puck_sim.config as cfg
from src.puck_sim.params import BrewParameters
from src.puck_sim.types import RiskLevel, SimulationResult

_ADVICE = {
    RiskLevel.HIGH: "High channeling risk. Improve distribution (WDT), reduce dose, or grind coarser.",
    RiskLevel.MODERATE: "Moderate channeling risk at edges. Consider a more thorough WDT.",
    RiskLevel.LOW: "Good flow uniformity. Even extraction predicted.",
}


def risk_level(channeling_risk: float) -> RiskLevel:
    if channeling_risk > cfg.RISK_HIGH:
        return RiskLevel.HIGH
    if channeling_risk > cfg.RISK_MODERATE:
        return RiskLevel.MODERATE
    return RiskLevel.LOW


def advice(result: SimulationResult) -> str:
    return _ADVICE[risk_level(result.channeling_risk)]


def shot_time_in_window(result: SimulationResult) -> bool:
    lo, hi = cfg.SHOT_TIME_WINDOW_S
    return lo <= result.effective_shot_time <= hi


def is_uniform(result: SimulationResult) -> bool:
    return result.uniformity_index > cfg.UNIFORMITY_GOOD


def summarize(params: BrewParameters, result: SimulationResult) -> Dict[str, Any]:
    """Display metrics for one run, keyed the way the report prints them."""
    level = risk_level(result.channeling_risk)
    return {
        "basket": params.basket.name,
        "flow_rate_ml_s": result.total_flow_rate,
        "pressure_drop_bar": result.average_pressure_drop,
        "channeling_risk": result.channeling_risk,
        "risk_level": level.name.lower(),
        "uniformity": result.uniformity_index,
        "uniform": is_uniform(result),
        "shot_time_s": result.effective_shot_time,
        "shot_time_in_window": shot_time_in_window(result),
        "puck_height_mm": params.puck_height_mm,
        "porosity": params.porosity,
        "channels": len(result.channel_locations),
        "sor_sweeps": result.iterations,
        "converged": result.converged,
        "advice": _ADVICE[level],
    }
