from __future__ import annotations

from dataclasses import dataclass
from enum import IntEnum
from typing import Tuple

import numpy as np

# (r, z): column first, row second
Index2D = Tuple[int, int]


class RiskLevel(IntEnum):
    """
    Channeling risk buckets used for display:
    0 = low (good flow uniformity)
    1 = moderate (edge channeling likely)
    2 = high (distribution / dose / grind need attention)
    """
    LOW = 0
    MODERATE = 1
    HIGH = 2


class SimulationCancelled(RuntimeError):
    """Raised between SOR sweeps when the caller's cancel event is set."""


@dataclass(frozen=True, slots=True)
class Cell:
    permeability: float     # m^2
    pressure: float         # Pa (gauge)
    velocity_r: float       # m/s, outward positive
    velocity_z: float       # m/s, downward positive
    flow_magnitude: float   # m/s
    extraction_level: float  # 0..1


@dataclass(frozen=True, slots=True)
class SimulationResult:
    """
    Output of one steady-state puck solve.
    cells: [z][r] grid of Cell, z = 0 is the top (shower screen), r = 0 the axis.
    *_field: normalized 0..1 read-only arrays of shape (rows, cols) for heatmaps.
    iterations / converged: SOR diagnostics, non-convergence is not an error.
    """
    cells: Tuple[Tuple[Cell, ...], ...]
    rows: int
    cols: int
    total_flow_rate: float        # ml/s
    average_pressure_drop: float  # bar
    channeling_risk: float        # 0..1
    uniformity_index: float       # 1 - channeling_risk
    channel_locations: Tuple[Index2D, ...]
    effective_shot_time: float    # s
    permeability_field: np.ndarray
    pressure_field: np.ndarray
    velocity_field: np.ndarray
    extraction_field: np.ndarray
    iterations: int = 0
    converged: bool = True

    def cell(self, z: int, r: int) -> Cell:
        return self.cells[z][r]
