from __future__ import annotations

import logging
import threading
from typing import Callable, Optional

import numpy as np

import src.puck_sim.config as cfg
from src.puck_sim.extraction import FlowStats, extraction_levels, summarize_flow
from src.puck_sim.grid import PuckGrid
from src.puck_sim.params import BrewParameters
from src.puck_sim.permeability import build_permeability_field
from src.puck_sim.physics import water_viscosity
from src.puck_sim.pressure_solver import PressureSolveResult, cell_size, solve_pressure
from src.puck_sim.types import Cell, SimulationResult
from src.puck_sim.velocity import VelocityField, compute_velocity

logger = logging.getLogger(__name__)


def _frozen(arr: np.ndarray) -> np.ndarray:
    arr = np.array(arr, dtype=np.float64)
    arr.flags.writeable = False
    return arr


def normalize_fields(params: BrewParameters, k: PuckGrid, P: PuckGrid, vel: VelocityField, extraction: PuckGrid):
    """Scale each field to 0..1 for heatmaps."""
    max_k = k.max()
    perm = k.as_array() / (max_k if max_k > 0 else 1.0)

    # driving pressure above the exit, as a fraction of the total drop
    delta = params.delta_pressure_pa
    if delta > 0:
        pressure = np.clip((P.as_array() - params.exit_pressure_pa) / delta, 0.0, 1.0)
    else:
        pressure = np.zeros(P.shape, dtype=np.float64)

    max_v = vel.max_velocity if vel.max_velocity > 0 else 1.0
    velocity = vel.magnitude.as_array() / max_v

    # extraction levels are already capped at 1
    extract = np.clip(extraction.as_array(), 0.0, 1.0)

    return _frozen(perm), _frozen(pressure), _frozen(velocity), _frozen(extract)


def assemble_result(
    params: BrewParameters,
    k: PuckGrid,
    solve: PressureSolveResult,
    vel: VelocityField,
    extraction: PuckGrid,
    stats: FlowStats,
) -> SimulationResult:
    nz, nr = k.shape
    P = solve.P
    cells = tuple(
        tuple(
            Cell(
                permeability=k[z, r],
                pressure=P[z, r],
                velocity_r=vel.v_r[z, r],
                velocity_z=vel.v_z[z, r],
                flow_magnitude=vel.magnitude[z, r],
                extraction_level=extraction[z, r],
            )
            for r in range(nr)
        )
        for z in range(nz)
    )
    perm, pressure, velocity, extract = normalize_fields(params, k, P, vel, extraction)

    return SimulationResult(
        cells=cells,
        rows=nz,
        cols=nr,
        total_flow_rate=stats.total_flow_rate,
        average_pressure_drop=stats.average_pressure_drop,
        channeling_risk=stats.channeling_risk,
        uniformity_index=stats.uniformity_index,
        channel_locations=stats.channel_locations,
        effective_shot_time=stats.effective_shot_time,
        permeability_field=perm,
        pressure_field=pressure,
        velocity_field=velocity,
        extraction_field=extract,
        iterations=solve.iterations,
        converged=solve.converged,
    )


def simulate(
    params: BrewParameters,
    rows: int = cfg.GRID_ROWS,
    cols: int = cfg.GRID_COLS,
    *,
    rng: Optional[np.random.Generator] = None,
    ordering: str = "lexicographic",
    cancel: Optional[threading.Event] = None,
) -> SimulationResult:
    """
    One steady-state puck solve:
    permeability -> pressure (SOR) -> Darcy velocity -> extraction / stats -> result.
    Every grid is created here and dropped on return; calls share nothing.
    """
    if rows < cfg.MIN_GRID_ROWS or cols < cfg.MIN_GRID_COLS:
        raise ValueError(f"Grid must be at least {cfg.MIN_GRID_ROWS}x{cfg.MIN_GRID_COLS}, got {rows}x{cols}")

    nz, nr = rows, cols
    dz, dr = cell_size(params, nz, nr)
    mu = water_viscosity(params.water_temp_c)

    k = build_permeability_field(params, nz, nr, rng=rng)
    solve = solve_pressure(
        k, dz, dr,
        p_top=params.brew_pressure_pa,
        p_bottom=params.exit_pressure_pa,
        ordering=ordering,
        cancel=cancel,
    )
    vel = compute_velocity(solve.P, k, mu, dz, dr)
    extraction = extraction_levels(vel)
    stats = summarize_flow(params, vel, dr)

    logger.debug(
        "puck %dx%d basket=%s flow=%.4g ml/s risk=%.3f sweeps=%d converged=%s",
        nz, nr, params.basket.id, stats.total_flow_rate, stats.channeling_risk,
        solve.iterations, solve.converged,
    )
    return assemble_result(params, k, solve, vel, extraction, stats)


def simulate_in_background(
    params: BrewParameters,
    on_done: Callable[[Optional[SimulationResult], Optional[BaseException]], None],
    rows: int = cfg.GRID_ROWS,
    cols: int = cfg.GRID_COLS,
    cancel: Optional[threading.Event] = None,
) -> threading.Thread:
    """
    Run simulate() on a daemon thread so an interactive caller is never blocked.
    on_done(result, None) on success, on_done(None, exc) on failure or cancellation.
    """
    def _run():
        try:
            result = simulate(params, rows, cols, cancel=cancel)
        except Exception as exc:
            logger.info("Background puck simulation ended without a result: %s", exc)
            on_done(None, exc)
            return
        on_done(result, None)

    worker = threading.Thread(target=_run, name="puck-simulation", daemon=True)
    worker.start()
    return worker
