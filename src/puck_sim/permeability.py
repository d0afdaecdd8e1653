from __future__ import annotations

import numpy as np

import src.puck_sim.config as cfg
from src.puck_sim.grid import PuckGrid
from src.puck_sim.params import BrewParameters
from src.puck_sim.physics import kozeny_carman_permeability


def base_permeability(params: BrewParameters) -> float:
    k = kozeny_carman_permeability(params.particle_diameter_m, params.porosity)
    return max(k, cfg.MIN_PERMEABILITY)


def edge_factor(r_frac: np.ndarray) -> np.ndarray:
    """Looser packing against the basket wall: up to +25% at r = R."""
    ramp = (r_frac - cfg.EDGE_START) / (1.0 - cfg.EDGE_START)
    return np.where(r_frac > cfg.EDGE_START, 1.0 + cfg.EDGE_BOOST * ramp, 1.0)


def bottom_factor(z_frac: np.ndarray) -> np.ndarray:
    """Fines migrate down and clog the bottom: down to -20% at the screen."""
    ramp = (z_frac - cfg.BOTTOM_START) / (1.0 - cfg.BOTTOM_START)
    return np.where(z_frac > cfg.BOTTOM_START, 1.0 - cfg.BOTTOM_LOSS * ramp, 1.0)


def build_permeability_field(
    params: BrewParameters,
    nz: int = cfg.GRID_ROWS,
    nr: int = cfg.GRID_COLS,
    rng: np.random.Generator | None = None,
) -> PuckGrid:
    """
    Kozeny-Carman base permeability modulated per cell by
    wall loosening, bottom compaction, distribution noise and moisture.
    rng defaults to a fresh generator seeded with cfg.RNG_SEED, so two calls
    with the same inputs give the same field.
    """
    if rng is None:
        rng = np.random.default_rng(cfg.RNG_SEED)

    base_k = base_permeability(params)

    r_frac = np.arange(nr, dtype=np.float64) / max(nr - 1, 1)
    z_frac = np.arange(nz, dtype=np.float64) / max(nz - 1, 1)

    k = np.full((nz, nr), base_k, dtype=np.float64)
    k *= edge_factor(r_frac)[None, :]
    k *= bottom_factor(z_frac)[:, None]

    # poor distribution -> log-normal-ish spread around 1; exactly 1 at quality 1
    variation = 1.0 - params.distribution_quality
    noise = (rng.random((nz, nr)) - 0.5) * 2.0 * variation
    k *= np.exp(noise * cfg.NOISE_GAIN)

    # swollen particles close pores a little, locally
    k *= 1.0 - params.moisture_content * cfg.MOISTURE_NOISE_GAIN * rng.random((nz, nr))

    k = np.maximum(k, cfg.PERMEABILITY_FLOOR * base_k)
    return PuckGrid.from_array(k)
