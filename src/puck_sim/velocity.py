from __future__ import annotations

from dataclasses import dataclass

import numpy as np

from src.puck_sim.grid import PuckGrid
from src.puck_sim.physics import darcy_velocity


@dataclass(frozen=True, slots=True)
class VelocityField:
    v_r: PuckGrid       # m/s, outward positive
    v_z: PuckGrid       # m/s, downward positive
    magnitude: PuckGrid
    max_velocity: float


def pressure_gradients(P: PuckGrid, dz: float, dr: float):
    """
    dP/dz: central inside, one-sided on the top and bottom rows.
    dP/dr: central inside, zero on the axis and at the wall (matches the zero-flux BCs).
    """
    p = P.as_array()
    nz, nr = P.shape

    dPdz = np.empty_like(p)
    dPdz[1:-1, :] = (p[2:, :] - p[:-2, :]) / (2.0 * dz)
    dPdz[0, :] = (p[1, :] - p[0, :]) / dz
    dPdz[-1, :] = (p[-1, :] - p[-2, :]) / dz

    dPdr = np.zeros_like(p)
    if nr > 2:
        dPdr[:, 1:-1] = (p[:, 2:] - p[:, :-2]) / (2.0 * dr)

    return dPdz, dPdr


def compute_velocity(P: PuckGrid, k: PuckGrid, mu: float, dz: float, dr: float) -> VelocityField:
    dPdz, dPdr = pressure_gradients(P, dz, dr)
    K = k.as_array()

    # pressure falls with z, so a positive v_z is flow toward the screen
    vz = darcy_velocity(K, mu, dPdz)
    vr = darcy_velocity(K, mu, dPdr)
    mag = np.sqrt(vr * vr + vz * vz)

    return VelocityField(
        v_r=PuckGrid.from_array(vr),
        v_z=PuckGrid.from_array(vz),
        magnitude=PuckGrid.from_array(mag),
        max_velocity=float(np.max(mag)),
    )
