from __future__ import annotations

from typing import List, Tuple

import numpy as np


class PuckGrid:
    """
    Scalar field over the (z, r) puck grid stored as one flat float64 buffer.
    Cell (z, r) lives at z * nr + r; z = 0 is the top row, r = 0 the axis.
    """
    def __init__(self, nz: int, nr: int, data: np.ndarray | None = None):
        self.nz = nz
        self.nr = nr
        if data is None:
            data = np.zeros(nz * nr, dtype=np.float64)
        if data.shape != (nz * nr,):
            raise ValueError(f"Buffer of shape {data.shape} does not fit a {nz}x{nr} grid")
        self.data = data

    @classmethod
    def full(cls, nz: int, nr: int, value: float) -> "PuckGrid":
        return cls(nz, nr, np.full(nz * nr, value, dtype=np.float64))

    @classmethod
    def from_array(cls, arr: np.ndarray) -> "PuckGrid":
        nz, nr = arr.shape
        return cls(nz, nr, np.ascontiguousarray(arr, dtype=np.float64).reshape(-1).copy())

    def clone(self) -> "PuckGrid":
        return PuckGrid(self.nz, self.nr, self.data.copy())

    @property
    def shape(self) -> Tuple[int, int]:
        return self.nz, self.nr

    def in_bounds(self, z: int, r: int) -> bool:
        return 0 <= z < self.nz and 0 <= r < self.nr

    def index(self, z: int, r: int) -> int:
        if not self.in_bounds(z, r):
            raise IndexError(f"Cell ({z}, {r}) outside {self.nz}x{self.nr} grid")
        return z * self.nr + r

    def __getitem__(self, zr: Tuple[int, int]) -> float:
        return float(self.data[self.index(*zr)])

    def __setitem__(self, zr: Tuple[int, int], value: float) -> None:
        self.data[self.index(*zr)] = value

    def neighbors4(self, z: int, r: int) -> List[Tuple[int, int]]:
        cand = ((z + 1, r), (z - 1, r), (z, r + 1), (z, r - 1))
        return [(x, y) for (x, y) in cand if self.in_bounds(x, y)]

    def as_array(self) -> np.ndarray:
        # view, writes go through to the buffer
        return self.data.reshape(self.nz, self.nr)

    def row(self, z: int) -> np.ndarray:
        self.index(z, 0)
        return self.data[z * self.nr:(z + 1) * self.nr]

    def max(self) -> float:
        return float(np.max(self.data))

    def min(self) -> float:
        return float(np.min(self.data))
