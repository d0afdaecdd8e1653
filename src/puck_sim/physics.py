from __future__ import annotations

import numpy as np

import src.puck_sim.config as cfg

_VISC_T = np.array([t for t, _ in cfg.VISCOSITY_TABLE], dtype=np.float64)
_VISC_MU = np.array([mu for _, mu in cfg.VISCOSITY_TABLE], dtype=np.float64)


def water_viscosity(temp_c: float) -> float:
    """
    Dynamic viscosity of water [Pa*s], piecewise-linear over the CRC table.
    Temperatures outside 20-100 degC are clamped to the table ends.
    """
    t = min(max(float(temp_c), _VISC_T[0]), _VISC_T[-1])
    return float(np.interp(t, _VISC_T, _VISC_MU))


def kozeny_carman_permeability(particle_diameter_m: float, porosity: float) -> float:
    """
    k = (eps^3 * d^2) / (180 * (1 - eps)^2)   [m^2]
    """
    eps = porosity
    d = particle_diameter_m
    return float(eps ** 3 * d ** 2 / (cfg.KOZENY_CARMAN_CONSTANT * (1.0 - eps) ** 2))


def ergun_pressure_drop(
    velocity: float,
    particle_diameter_m: float,
    porosity: float,
    viscosity: float,
    density: float = cfg.WATER_DENSITY,
) -> float:
    """
    Ergun pressure gradient [Pa/m] for superficial velocity v:
    dP/L = 150 mu (1-eps)^2 v / (d^2 eps^3) + 1.75 rho (1-eps) v^2 / (d eps^3)
    Reference only, the field solve is pure Darcy.
    """
    eps = porosity
    d = particle_diameter_m
    viscous = 150.0 * viscosity * (1.0 - eps) ** 2 * velocity / (d ** 2 * eps ** 3)
    inertial = 1.75 * density * (1.0 - eps) * velocity ** 2 / (d * eps ** 3)
    return float(viscous + inertial)


def darcy_velocity(k, mu: float, grad_p):
    # v = -(k/mu) * dP/dx, scalars or arrays
    return -(k / mu) * grad_p


def harmonic_mean(k1, k2, eps: float = cfg.HARMONIC_EPS):
    # interface permeability: a tight cell throttles the face even next to a loose one
    return 2.0 * k1 * k2 / (k1 + k2 + eps)
