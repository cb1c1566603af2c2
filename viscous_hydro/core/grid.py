"""
Fluid cells, the 3D grid and the three-generation ring used by the RK scheme.

A FluidCell holds the primitive state and the dissipative currents at one
grid point. Shear stress and the baryon diffusion current share one
14-component storage array ``Wmunu`` (see ``constants.map_2d_idx_to_1d``).
"""

from collections.abc import Callable, Iterator
from dataclasses import dataclass, field

import numpy as np

from .constants import METRIC_DIAG, N_WMUNU, map_2d_idx_to_1d


@dataclass
class PrimitiveState:
    """Reconstructed local state at a cell or a half-cell face."""

    e: float
    rhob: float
    u: np.ndarray = field(default_factory=lambda: np.array([1.0, 0.0, 0.0, 0.0]))


class FluidCell:
    """
    State of the fluid at one grid point.

    Attributes:
        epsilon: Energy density
        rhob: Net baryon density
        u: Flow four-velocity (u^tau, u^x, u^y, tau*u^eta), u.u = -1
        Wmunu: Shear entries 0-9 followed by the diffusion current 10-13
        pi_b: Bulk viscous pressure
        Lambdas: Cached eigenvalues (min, -min-max, max) of the shear tensor
    """

    __slots__ = ("epsilon", "rhob", "u", "Wmunu", "pi_b", "Lambdas")

    def __init__(
        self,
        epsilon: float = 0.0,
        rhob: float = 0.0,
        u: np.ndarray | None = None,
        Wmunu: np.ndarray | None = None,
        pi_b: float = 0.0,
    ):
        self.epsilon = float(epsilon)
        self.rhob = float(rhob)
        self.u = np.array([1.0, 0.0, 0.0, 0.0]) if u is None else np.array(u, dtype=float)
        self.Wmunu = np.zeros(N_WMUNU) if Wmunu is None else np.array(Wmunu, dtype=float)
        self.pi_b = float(pi_b)
        self.Lambdas = np.zeros(3)

    def copy_from(self, other: "FluidCell") -> None:
        self.epsilon = other.epsilon
        self.rhob = other.rhob
        self.u[:] = other.u
        self.Wmunu[:] = other.Wmunu
        self.pi_b = other.pi_b
        self.Lambdas[:] = other.Lambdas

    def copy(self) -> "FluidCell":
        new_cell = FluidCell()
        new_cell.copy_from(self)
        return new_cell

    def shear_tensor(self) -> np.ndarray:
        """Full symmetric 4x4 shear-stress tensor pi^{mu nu}."""
        pi = np.empty((4, 4))
        for mu in range(4):
            for nu in range(4):
                pi[mu, nu] = self.Wmunu[map_2d_idx_to_1d(mu, nu)]
        return pi

    def diffusion_current(self) -> np.ndarray:
        """Baryon diffusion current q^mu."""
        return self.Wmunu[10:14].copy()

    def scale_dissipative(self, factor: float) -> None:
        """Rescale bulk pressure, all of W and the cached eigenvalues together."""
        self.pi_b *= factor
        self.Wmunu *= factor
        self.Lambdas *= factor

    def shear_transversality(self) -> np.ndarray:
        """Residual u_mu pi^{mu nu}, zero for a transverse shear tensor."""
        u_lower = METRIC_DIAG * self.u
        return u_lower @ self.shear_tensor()

    def __repr__(self) -> str:
        return (
            f"FluidCell(epsilon={self.epsilon:.4e}, rhob={self.rhob:.4e}, "
            f"u={np.array2string(self.u, precision=4)}, pi_b={self.pi_b:.4e})"
        )


class HydroGrid:
    """
    One generation of the 3D grid of fluid cells.

    Indexed by (ix, iy, ieta). Out-of-range access through ``get`` is clamped
    to the nearest boundary cell, which gives outflow boundaries to every
    stencil that reads neighbours.
    """

    def __init__(self, nx: int, ny: int, neta: int):
        self.shape = (nx, ny, neta)
        self._cells = np.empty(self.shape, dtype=object)
        for index in np.ndindex(self.shape):
            self._cells[index] = FluidCell()

    @property
    def nx(self) -> int:
        return self.shape[0]

    @property
    def ny(self) -> int:
        return self.shape[1]

    @property
    def neta(self) -> int:
        return self.shape[2]

    @property
    def size(self) -> int:
        return self.nx * self.ny * self.neta

    def __call__(self, ix: int, iy: int, ieta: int) -> FluidCell:
        return self._cells[ix, iy, ieta]

    def get(self, ix: int, iy: int, ieta: int) -> FluidCell:
        """Cell access with indices clamped to the grid."""
        ix = min(max(ix, 0), self.nx - 1)
        iy = min(max(iy, 0), self.ny - 1)
        ieta = min(max(ieta, 0), self.neta - 1)
        return self._cells[ix, iy, ieta]

    def neighbours(
        self, ix: int, iy: int, ieta: int, direction: int
    ) -> tuple[FluidCell, FluidCell, FluidCell, FluidCell, FluidCell]:
        """Five-point stencil (m2, m1, c, p1, p2) along direction 1 (x), 2 (y) or 3 (eta)."""
        offset = np.zeros(3, dtype=int)
        offset[direction - 1] = 1
        idx = np.array([ix, iy, ieta])
        return tuple(self.get(*(idx + k * offset)) for k in (-2, -1, 0, 1, 2))  # type: ignore[return-value]

    def indices(self) -> Iterator[tuple[int, int, int]]:
        yield from np.ndindex(self.shape)

    def fill(
        self,
        epsilon: float,
        rhob: float = 0.0,
        u: np.ndarray | None = None,
        Wmunu: np.ndarray | None = None,
        pi_b: float = 0.0,
    ) -> None:
        """Set every cell to the same state."""
        template = FluidCell(epsilon, rhob, u, Wmunu, pi_b)
        for index in self.indices():
            self._cells[index].copy_from(template)

    def initialize(self, profile: Callable[[int, int, int], FluidCell]) -> None:
        """Set each cell from a profile function of its indices."""
        for index in self.indices():
            self._cells[index].copy_from(profile(*index))

    def copy_from(self, other: "HydroGrid") -> None:
        if other.shape != self.shape:
            raise ValueError(f"Grid shape mismatch: {other.shape} vs {self.shape}")
        for index in self.indices():
            self._cells[index].copy_from(other._cells[index])

    def energy_density(self) -> np.ndarray:
        return np.vectorize(lambda cell: cell.epsilon, otypes=[float])(self._cells)

    def baryon_density(self) -> np.ndarray:
        return np.vectorize(lambda cell: cell.rhob, otypes=[float])(self._cells)

    def flow_velocity(self) -> np.ndarray:
        return np.stack([self._cells[index].u for index in self.indices()]).reshape(*self.shape, 4)

    def bulk_pressure(self) -> np.ndarray:
        return np.vectorize(lambda cell: cell.pi_b, otypes=[float])(self._cells)


class GridRing:
    """
    Three grid generations with explicit roles for the two RK sub-steps.

    Sub-step 0 reads (prev, current) and writes future. Sub-step 1 reads the
    state at tau from current and the predictor from future, and writes the
    corrected state into the prev slot. ``finish_step`` then rotates the
    roles so that current holds the new state and prev the old one; no cell
    data is copied.
    """

    def __init__(self, nx: int, ny: int, neta: int):
        self._generations = [HydroGrid(nx, ny, neta) for _ in range(3)]
        self._prev, self._current, self._future = 0, 1, 2

    @property
    def prev(self) -> HydroGrid:
        return self._generations[self._prev]

    @property
    def current(self) -> HydroGrid:
        return self._generations[self._current]

    @property
    def future(self) -> HydroGrid:
        return self._generations[self._future]

    def roles(self, rk_flag: int) -> tuple[HydroGrid, HydroGrid, HydroGrid]:
        """(prev, current, future) grids for the given sub-step."""
        if rk_flag == 0:
            return self.prev, self.current, self.future
        if rk_flag == 1:
            return self.current, self.future, self.prev
        raise ValueError(f"rk_flag must be 0 or 1, got {rk_flag}")

    def finish_step(self) -> None:
        self._prev, self._current = self._current, self._prev

    def initialize(self, profile: Callable[[int, int, int], FluidCell]) -> None:
        """Set current and prev to the same initial state."""
        self.current.initialize(profile)
        self.prev.copy_from(self.current)
