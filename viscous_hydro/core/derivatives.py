"""
Kinematic derivatives of the flow field in Milne coordinates (tau, x, y, eta).

Vector components are tau-scaled along eta (u^3 = tau u^eta), so the eta
derivative enters as (1/tau) d/deta and the covariant derivative picks up
the Christoffel terms

    nabla_eta u^eta += u^tau / tau,    nabla_eta u^tau += u^eta / tau.

The time derivative is a backward difference between the prev and current
generations; spatial derivatives are central differences over the clamped
neighbours, falling back to one-sided differences at the grid edges.
"""

from collections.abc import Callable
from dataclasses import dataclass, field

import numpy as np

from .config import HydroConfig
from .constants import METRIC_DIAG
from .eos import EOSBase
from .grid import FluidCell, HydroGrid


@dataclass
class KinematicBundle:
    """Flow derivatives at one cell, all with upper indices."""

    theta: float = 0.0
    a: np.ndarray = field(default_factory=lambda: np.zeros(4))
    sigma: np.ndarray = field(default_factory=lambda: np.zeros((4, 4)))
    omega: np.ndarray = field(default_factory=lambda: np.zeros((4, 4)))
    grad_muB_over_T: np.ndarray = field(default_factory=lambda: np.zeros(4))


def spatial_projector(u: np.ndarray) -> np.ndarray:
    """Delta^{mu nu} = g^{mu nu} + u^mu u^nu."""
    return np.diag(METRIC_DIAG) + np.outer(u, u)


class VelocityDerivatives:
    """Expansion rate, acceleration, shear, vorticity and diffusion force of the flow."""

    def __init__(self, config: HydroConfig, eos: EOSBase):
        self.config = config
        self.eos = eos

    def partial_derivatives(
        self,
        tau: float,
        prev: HydroGrid,
        current: HydroGrid,
        ix: int,
        iy: int,
        ieta: int,
        quantity: Callable[[FluidCell], np.ndarray],
    ) -> np.ndarray:
        """
        d_alpha of a cell quantity, with alpha = (tau, x, y, eta/tau) as the first axis.
        """
        c = current(ix, iy, ieta)
        value_c = np.asarray(quantity(c), dtype=float)
        grad = np.zeros((4, *value_c.shape))
        grad[0] = (value_c - np.asarray(quantity(prev(ix, iy, ieta)), dtype=float)) / self.config.delta_tau

        spacing = (self.config.delta_x, self.config.delta_y, tau * self.config.delta_eta)
        index = np.array([ix, iy, ieta])
        for direction in range(1, 4):
            axis = direction - 1
            n_axis = current.shape[axis]
            if n_axis == 1:
                continue
            lo = max(index[axis] - 1, 0)
            hi = min(index[axis] + 1, n_axis - 1)
            idx_lo = index.copy()
            idx_hi = index.copy()
            idx_lo[axis] = lo
            idx_hi[axis] = hi
            value_hi = np.asarray(quantity(current(*idx_hi)), dtype=float)
            value_lo = np.asarray(quantity(current(*idx_lo)), dtype=float)
            grad[direction] = (value_hi - value_lo) / ((hi - lo) * spacing[axis])
        return grad

    def velocity_gradient(
        self, tau: float, prev: HydroGrid, current: HydroGrid, ix: int, iy: int, ieta: int
    ) -> np.ndarray:
        """du[alpha, nu] = nabla_alpha u^nu including the Milne Christoffel terms."""
        du = self.partial_derivatives(tau, prev, current, ix, iy, ieta, lambda cell: cell.u)
        u = current(ix, iy, ieta).u
        du[3, 3] += u[0] / tau
        du[3, 0] += u[3] / tau
        return du

    def calculate_expansion_rate(self, du: np.ndarray) -> float:
        """theta = nabla_mu u^mu."""
        return float(np.trace(du))

    def calculate_Du_supmu(self, u: np.ndarray, du: np.ndarray) -> np.ndarray:
        """a^nu = u^alpha nabla_alpha u^nu."""
        return u @ du

    def calculate_velocity_shear_tensor(
        self, u: np.ndarray, du: np.ndarray, theta: float
    ) -> np.ndarray:
        """sigma^{mu nu} = nabla^<mu u^nu>."""
        delta = spatial_projector(u)
        grad_upper = delta @ du
        return 0.5 * (grad_upper + grad_upper.T) - delta * theta / 3.0

    def calculate_kinetic_vorticity(self, u: np.ndarray, du: np.ndarray) -> np.ndarray:
        """omega^{mu nu} = (nabla^mu u^nu - nabla^nu u^mu) / 2."""
        grad_upper = spatial_projector(u) @ du
        return 0.5 * (grad_upper - grad_upper.T)

    def calculate_diffusion_driving_vector(
        self, tau: float, prev: HydroGrid, current: HydroGrid, ix: int, iy: int, ieta: int
    ) -> np.ndarray:
        """nabla^mu (muB / T)."""
        d_alpha = self.partial_derivatives(
            tau, prev, current, ix, iy, ieta, self._muB_over_T
        )
        u = current(ix, iy, ieta).u
        # Delta^{mu alpha} d_alpha with the lower derivative index
        return spatial_projector(u) @ d_alpha

    def _muB_over_T(self, cell: FluidCell) -> float:
        T = self.eos.get_temperature(cell.epsilon, cell.rhob)
        if T <= 0.0:
            return 0.0
        return self.eos.get_muB(cell.epsilon, cell.rhob) / T

    def compute(
        self, tau: float, prev: HydroGrid, current: HydroGrid, ix: int, iy: int, ieta: int
    ) -> KinematicBundle:
        """All kinematic quantities needed by the dissipative sources."""
        u = current(ix, iy, ieta).u
        du = self.velocity_gradient(tau, prev, current, ix, iy, ieta)
        theta = self.calculate_expansion_rate(du)
        bundle = KinematicBundle(
            theta=theta,
            a=self.calculate_Du_supmu(u, du),
            sigma=self.calculate_velocity_shear_tensor(u, du, theta),
            omega=self.calculate_kinetic_vorticity(u, du),
        )
        if self.config.turn_on_diff:
            bundle.grad_muB_over_T = self.calculate_diffusion_driving_vector(
                tau, prev, current, ix, iy, ieta
            )
        return bundle
