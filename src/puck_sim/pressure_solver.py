from __future__ import annotations

import logging
import threading
from dataclasses import dataclass
from typing import Callable, Optional, Tuple

import numpy as np
from scipy.sparse import csr_matrix
from scipy.sparse.linalg import spsolve

import src.puck_sim.config as cfg
from src.puck_sim.grid import PuckGrid
from src.puck_sim.params import BrewParameters
from src.puck_sim.physics import harmonic_mean
from src.puck_sim.types import SimulationCancelled

logger = logging.getLogger(__name__)

ORDERINGS = ("lexicographic", "red_black")


@dataclass(frozen=True, slots=True)
class PressureSolveResult:
    P: PuckGrid
    iterations: int
    converged: bool
    max_change: float  # Pa, last sweep (unrelaxed)


@dataclass(frozen=True, slots=True)
class StencilCoefficients:
    """
    Five-point cylindrical stencil per cell, flat (z * nr + r) arrays.
    Radial neighbours at r = 0 and r = nr - 1 are mirrored onto the cell itself,
    which makes the axis and the wall zero-flux.
    """
    a_down: np.ndarray   # toward z + 1
    a_up: np.ndarray     # toward z - 1
    a_out: np.ndarray    # toward r + 1
    a_in: np.ndarray     # toward r - 1
    diag: np.ndarray
    out_idx: np.ndarray  # flat index of the r + 1 neighbour (self at the wall)
    in_idx: np.ndarray   # flat index of the r - 1 neighbour (self at the axis)


def cell_size(params: BrewParameters, nz: int, nr: int) -> Tuple[float, float]:
    """(dz, dr) in metres for the puck height x basket radius domain."""
    height_m = params.puck_height_mm / 1000.0
    return height_m / nz, params.basket.radius_m / nr


def build_coefficients(k: PuckGrid, dz: float, dr: float) -> StencilCoefficients:
    """
    Discretizes  d/dr(r k dP/dr) / r + d/dz(k dP/dz) = 0
    with harmonic-mean face permeabilities.
    """
    nz, nr = k.shape
    K = k.as_array()

    up = np.maximum(np.arange(nz) - 1, 0)
    down = np.minimum(np.arange(nz) + 1, nz - 1)
    inner = np.maximum(np.arange(nr) - 1, 0)
    outer = np.minimum(np.arange(nr) + 1, nr - 1)

    k_down = harmonic_mean(K, K[down, :])
    k_up = harmonic_mean(K, K[up, :])
    k_out = harmonic_mean(K, K[:, outer])
    k_in = harmonic_mean(K, K[:, inner])

    r_pos = (np.arange(nr, dtype=np.float64) + 0.5) * dr
    r_out = r_pos + dr / 2.0
    r_in = np.maximum(r_pos - dr / 2.0, dr * cfg.MIN_RADIUS_FRACTION)

    a_down = k_down / (dz * dz)
    a_up = k_up / (dz * dz)
    a_out = k_out * (r_out / (r_pos * dr * dr))[None, :]
    a_in = k_in * (r_in / (r_pos * dr * dr))[None, :]
    diag = a_down + a_up + a_out + a_in

    base = (np.arange(nz) * nr)[:, None]
    out_idx = base + outer[None, :]
    in_idx = base + inner[None, :]

    return StencilCoefficients(
        a_down=a_down.reshape(-1),
        a_up=a_up.reshape(-1),
        a_out=a_out.reshape(-1),
        a_in=a_in.reshape(-1),
        diag=diag.reshape(-1),
        out_idx=out_idx.reshape(-1),
        in_idx=in_idx.reshape(-1),
    )


def initial_guess(nz: int, nr: int, p_top: float, p_bottom: float) -> PuckGrid:
    frac = np.arange(nz, dtype=np.float64) / (nz - 1)
    col = p_top * (1.0 - frac) + p_bottom * frac
    P = PuckGrid.from_array(np.repeat(col[:, None], nr, axis=1))
    apply_dirichlet(P, p_top, p_bottom)
    return P


def apply_dirichlet(P: PuckGrid, p_top: float, p_bottom: float) -> None:
    P.row(0)[:] = p_top
    P.row(P.nz - 1)[:] = p_bottom


def _lexicographic_sweeper(c: StencilCoefficients, nz: int, nr: int, omega: float) -> Callable[[list], float]:
    # plain lists: scalar indexing into numpy is too slow for the inner loop
    a_down = c.a_down.tolist()
    a_up = c.a_up.tolist()
    a_out = c.a_out.tolist()
    a_in = c.a_in.tolist()
    diag = c.diag.tolist()
    out_idx = c.out_idx.tolist()
    in_idx = c.in_idx.tolist()

    def sweep(p: list) -> float:
        max_change = 0.0
        for z in range(1, nz - 1):
            for r in range(nr):
                i = z * nr + r
                d = diag[i]
                if d <= 0.0:
                    continue
                new_p = (a_down[i] * p[i + nr]
                         + a_up[i] * p[i - nr]
                         + a_out[i] * p[out_idx[i]]
                         + a_in[i] * p[in_idx[i]]) / d
                delta = new_p - p[i]
                if abs(delta) > max_change:
                    max_change = abs(delta)
                p[i] += omega * delta
        return max_change

    return sweep


def _red_black_sweeper(c: StencilCoefficients, nz: int, nr: int, omega: float) -> Callable[[np.ndarray], float]:
    # cells of one colour only couple to the other colour, so each half-sweep vectorizes
    z, r = np.divmod(np.arange(nz * nr), nr)
    active = (z > 0) & (z < nz - 1) & (c.diag > 0.0)
    colors = [np.flatnonzero(active & ((z + r) % 2 == parity)) for parity in (0, 1)]

    def sweep(p: np.ndarray) -> float:
        max_change = 0.0
        for idx in colors:
            if idx.size == 0:
                continue
            new_p = (c.a_down[idx] * p[idx + nr]
                     + c.a_up[idx] * p[idx - nr]
                     + c.a_out[idx] * p[c.out_idx[idx]]
                     + c.a_in[idx] * p[c.in_idx[idx]]) / c.diag[idx]
            delta = new_p - p[idx]
            max_change = max(max_change, float(np.max(np.abs(delta))))
            p[idx] += omega * delta
        return max_change

    return sweep


def solve_pressure(
    k: PuckGrid,
    dz: float,
    dr: float,
    p_top: float,
    p_bottom: float,
    omega: float = cfg.SOR_OMEGA,
    max_iters: int = cfg.SOR_MAX_ITERS,
    tol: float = cfg.SOR_TOL_PA,
    ordering: str = "lexicographic",
    cancel: Optional[threading.Event] = None,
) -> PressureSolveResult:
    """
    Steady axisymmetric Darcy + continuity by SOR:
      - Dirichlet: P = p_top on z = 0 (inlet), P = p_bottom on z = nz - 1 (screen)
      - zero flux at the axis (r = 0) and the basket wall (r = nr - 1)
      - lexicographic order: z outer, r inner, each update sees fresh neighbours
    Hitting max_iters is not an error: the last field is returned with converged=False.
    """
    if ordering not in ORDERINGS:
        raise ValueError(f"Unknown ordering {ordering!r}, expected one of {ORDERINGS}")

    nz, nr = k.shape
    coeffs = build_coefficients(k, dz, dr)
    P = initial_guess(nz, nr, p_top, p_bottom)

    if ordering == "lexicographic":
        state = P.data.tolist()
        sweep = _lexicographic_sweeper(coeffs, nz, nr, omega)
    else:
        state = P.data
        sweep = _red_black_sweeper(coeffs, nz, nr, omega)

    iterations = 0
    max_change = 0.0
    converged = False
    for _ in range(max_iters):
        if cancel is not None and cancel.is_set():
            raise SimulationCancelled(f"Pressure solve cancelled after {iterations} sweeps")
        max_change = sweep(state)
        iterations += 1
        if max_change < tol:
            converged = True
            break

    if ordering == "lexicographic":
        P.data[:] = state

    if converged:
        logger.debug("SOR (%s) converged in %d sweeps", ordering, iterations)
    else:
        logger.debug("SOR (%s) stopped at %d sweeps, max change %.3g Pa", ordering, iterations, max_change)

    return PressureSolveResult(P=P, iterations=iterations, converged=converged, max_change=float(max_change))


def solve_pressure_direct(k: PuckGrid, dz: float, dr: float, p_top: float, p_bottom: float) -> PressureSolveResult:
    """
    Same stencil as solve_pressure, assembled as a sparse system over the
    interior rows and solved directly. Mirrored radial neighbours cancel out
    of the equation, so they are left out of both diagonal and off-diagonal.
    """
    nz, nr = k.shape
    c = build_coefficients(k, dz, dr)
    P = initial_guess(nz, nr, p_top, p_bottom)

    N = (nz - 2) * nr
    if N == 0:
        return PressureSolveResult(P=P, iterations=0, converged=True, max_change=0.0)

    rows, cols, data = [], [], []
    b = np.zeros(N, dtype=np.float64)

    def unknown(i: int) -> int:
        return i - nr

    def add(row: int, col: int, v: float) -> None:
        rows.append(row); cols.append(col); data.append(float(v))

    for z in range(1, nz - 1):
        for r in range(nr):
            i = z * nr + r
            ii = unknown(i)
            diag = 0.0

            neighbours = (
                (i + nr, c.a_down[i]),
                (i - nr, c.a_up[i]),
                (int(c.out_idx[i]), c.a_out[i]),
                (int(c.in_idx[i]), c.a_in[i]),
            )
            for j, a in neighbours:
                if j == i:
                    continue
                diag += a
                if j < nr:
                    b[ii] += a * p_top
                elif j >= (nz - 1) * nr:
                    b[ii] += a * p_bottom
                else:
                    add(ii, unknown(j), -a)

            add(ii, ii, diag)

    A = csr_matrix((data, (rows, cols)), shape=(N, N))
    x = spsolve(A, b)

    P.data[nr:(nz - 1) * nr] = x
    return PressureSolveResult(P=P, iterations=1, converged=True, max_change=0.0)
