from __future__ import annotations

import math
from dataclasses import dataclass
from typing import Tuple

import numpy as np

import src.puck_sim.config as cfg
from src.puck_sim.grid import PuckGrid
from src.puck_sim.params import BrewParameters
from src.puck_sim.types import Index2D
from src.puck_sim.velocity import VelocityField


@dataclass(frozen=True, slots=True)
class FlowStats:
    total_flow_rate: float        # ml/s
    average_pressure_drop: float  # bar
    channeling_risk: float
    uniformity_index: float
    channel_locations: Tuple[Index2D, ...]
    effective_shot_time: float    # s


def representative_velocity(max_velocity: float) -> float:
    # stand-in for the mean flow speed; tunable, not derived
    if max_velocity > 0:
        return max_velocity * cfg.REPRESENTATIVE_VELOCITY_FRACTION
    return 1e-6


def extraction_levels(vel: VelocityField) -> PuckGrid:
    """
    Heuristic extraction: relative flow through the cell times contact depth,
    (v / v_rep) * (z + 1) / nz * 0.5, capped at 1.
    """
    nz, nr = vel.magnitude.shape
    v_rep = representative_velocity(vel.max_velocity)
    rel_flow = vel.magnitude.as_array() / (v_rep + 1e-10)
    depth = (np.arange(nz, dtype=np.float64) + 1.0) / nz
    levels = np.minimum(1.0, rel_flow * depth[:, None] * cfg.EXTRACTION_GAIN)
    return PuckGrid.from_array(levels)


def total_flow_rate(vel: VelocityField, dr: float) -> float:
    """
    Axial velocity integrated over the exit face in annular rings, ml/s.
    Net upward flow (brew below valve pressure) counts as zero, the valve only opens downward.
    """
    nz, nr = vel.v_z.shape
    r_pos = (np.arange(nr, dtype=np.float64) + 0.5) * dr
    ring_area = 2.0 * math.pi * r_pos * dr
    flow_m3s = float(np.sum(vel.v_z.row(nz - 1) * ring_area))
    return max(flow_m3s, 0.0) * 1e6


def channeling_risk(vel: VelocityField) -> float:
    """Coefficient of variation of exit velocities, CV 0 -> 0, CV >= 0.5 -> 1."""
    exit_v = np.abs(vel.v_z.row(vel.v_z.nz - 1))
    mean = float(np.mean(exit_v))
    if mean <= 0.0:
        return 0.0
    cv = float(np.std(exit_v)) / mean
    return min(1.0, max(0.0, cv / cfg.CHANNELING_CV_SEVERE))


def find_channels(vel: VelocityField, threshold: float = cfg.CHANNEL_THRESHOLD) -> Tuple[Index2D, ...]:
    v_rep = representative_velocity(vel.max_velocity)
    hot = np.argwhere(vel.magnitude.as_array() > v_rep * threshold)
    return tuple((int(r), int(z)) for z, r in hot)


def shot_time(params: BrewParameters, flow_ml_s: float) -> float:
    target_yield = params.basket.nominal_dose * cfg.BREW_RATIO
    if flow_ml_s > cfg.MIN_FLOW_ML_S:
        return target_yield / flow_ml_s
    return cfg.FALLBACK_SHOT_TIME_S


def summarize_flow(params: BrewParameters, vel: VelocityField, dr: float) -> FlowStats:
    flow = total_flow_rate(vel, dr)
    risk = channeling_risk(vel)
    return FlowStats(
        total_flow_rate=flow,
        average_pressure_drop=params.delta_pressure_pa / cfg.PA_PER_BAR,
        channeling_risk=risk,
        uniformity_index=1.0 - risk,
        channel_locations=find_channels(vel),
        effective_shot_time=shot_time(params, flow),
    )
