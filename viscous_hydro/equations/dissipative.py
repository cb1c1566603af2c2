"""
Dissipative fluxes and second-order relaxation sources.

Three groups of quantities feed the RK sub-steps:

- ``divergence``: tau-scaled nabla_a (pi^{a mu} + Pi Delta^{a mu}) and
  nabla_a q^a, subtracted from the ideal conservation update
- ``*_rhs``: KT advection -d_i(u^i X) of X = pi^{mu nu}, Pi, q^mu plus the
  X (theta - u^tau/tau) term that turns d(u^tau X) into u.dX
- ``*_source``: right-hand side of u.d X from the relaxation equations

    D pi = (-pi - 2 eta sigma)/tau_pi - delta_pipi pi theta
           - tau_pipi pi^<mu_a sigma^nu>a - phi7/P pi^<mu_a pi^nu>a
           - lambda_piPi Pi sigma + 2 pi^<mu_a omega^nu>a
    D Pi = (-Pi - zeta theta)/tau_Pi - delta_PiPi Pi theta
           - lambda_Pipi (1/3 - c_s^2) pi:sigma
    D q  = (-q - kappa nabla(muB/T))/tau_q - delta_qq q theta
           - lambda_qq q_nu sigma^{mu nu} + omega^{mu nu} q_nu

in the (-,+,+,+) signature, where the Navier-Stokes limit is
pi = -2 eta sigma, together with the transversality terms and the Milne
Christoffel terms that appear for tau-scaled eta components.
"""

from collections.abc import Callable

import numpy as np

from ..core.config import HydroConfig
from ..core.constants import METRIC_DIAG, N_CONSERVED, SMALL_EPS
from ..core.derivatives import KinematicBundle, VelocityDerivatives, spatial_projector
from ..core.eos import EOSBase
from ..core.grid import FluidCell, HydroGrid
from ..core.limiters import Minmod
from .coefficients import TransportCoeffs

_G = np.diag(METRIC_DIAG)


def _traceless_projection(tensor: np.ndarray, u: np.ndarray) -> np.ndarray:
    """Symmetrized, trace-subtracted part of a transverse rank-2 tensor."""
    sym = 0.5 * (tensor + tensor.T)
    trace = float(np.trace(sym @ _G))
    return sym - spatial_projector(u) * trace / 3.0


def _milne_shear_terms(pi: np.ndarray) -> np.ndarray:
    geometric = np.zeros((4, 4))
    geometric[0, :] += pi[3, :]
    geometric[3, :] += pi[0, :]
    geometric[:, 0] += pi[:, 3]
    geometric[:, 3] += pi[:, 0]
    return geometric


class DissipativeFluxes:
    """Divergence, advection and source terms of the dissipative currents."""

    def __init__(self, config: HydroConfig, eos: EOSBase, transport: TransportCoeffs):
        self.config = config
        self.eos = eos
        self.transport = transport
        self.minmod = Minmod(config.theta_flux)
        self.derivatives = VelocityDerivatives(config, eos)

    # Divergence of the dissipative stress tensor

    def _dissipative_stress(self, cell: FluidCell) -> np.ndarray:
        """Rows 0-3: pi^{mu nu} + Pi Delta^{mu nu}; row 4: q^nu."""
        stress = np.zeros((N_CONSERVED, 4))
        stress[:4] = cell.shear_tensor() + cell.pi_b * spatial_projector(cell.u)
        stress[4] = cell.Wmunu[10:14]
        return stress

    def divergence(
        self, tau: float, current: HydroGrid, prev: HydroGrid, ix: int, iy: int, ieta: int
    ) -> np.ndarray:
        """
        tau-scaled divergence tau nabla_a W^{a mu} for mu = 0..3 and tau nabla_a q^a.

        The eta components carry one extra power of tau, matching the
        conserved vector of the ideal update.
        """
        dtau = self.config.delta_tau
        stress_c = self._dissipative_stress(current(ix, iy, ieta))
        stress_p = self._dissipative_stress(prev(ix, iy, ieta))

        grad = self.derivatives.partial_derivatives(
            tau, prev, current, ix, iy, ieta, self._dissipative_stress
        )

        dwmn = np.zeros(N_CONSERVED)
        # d_tau (tau W^{tau mu})
        dwmn[:4] = (tau * stress_c[0] - (tau - dtau) * stress_p[0]) / dtau
        dwmn[4] = (tau * stress_c[4, 0] - (tau - dtau) * stress_p[4, 0]) / dtau
        # tau d_x W^{x mu} + tau d_y W^{y mu} + d_eta W^{eta mu}
        for direction in range(1, 4):
            dwmn[:4] += tau * grad[direction, direction]
            dwmn[4] += tau * grad[direction, 4, direction]
        # Christoffel terms of the Milne metric
        dwmn[0] += stress_c[3, 3]
        dwmn[3] += stress_c[0, 3]
        return dwmn

    # KT advection

    def _kt_advection(
        self,
        tau: float,
        current: HydroGrid,
        ix: int,
        iy: int,
        ieta: int,
        value: Callable[[FluidCell], float],
    ) -> float:
        """-sum_i d_i(u^i X) with minmod-limited faces and local speeds |u^i/u^tau|."""
        spacing = (self.config.delta_x, self.config.delta_y, tau * self.config.delta_eta)
        total = 0.0
        for direction in range(1, 4):
            if current.shape[direction - 1] == 1:
                continue
            m2, m1, c, p1, p2 = current.neighbours(ix, iy, ieta, direction)
            g_m2, g_m1, g_c, g_p1, g_p2 = (
                cell.u[0] * value(cell) for cell in (m2, m1, c, p1, p2)
            )
            v_m1, v_c, v_p1 = (cell.u[direction] / cell.u[0] for cell in (m1, c, p1))

            g_phL = g_c + 0.5 * self.minmod.minmod_dx(g_p1, g_c, g_m1)
            g_phR = g_p1 - 0.5 * self.minmod.minmod_dx(g_p2, g_p1, g_c)
            g_mhL = g_m1 + 0.5 * self.minmod.minmod_dx(g_c, g_m1, g_m2)
            g_mhR = g_c - 0.5 * self.minmod.minmod_dx(g_p1, g_c, g_m1)

            a_ph = max(abs(v_c), abs(v_p1))
            a_mh = max(abs(v_m1), abs(v_c))
            H_ph = 0.5 * ((v_c * g_phL + v_p1 * g_phR) - a_ph * (g_phR - g_phL))
            H_mh = 0.5 * ((v_m1 * g_mhL + v_c * g_mhR) - a_mh * (g_mhR - g_mhL))
            total -= (H_ph - H_mh) / spacing[direction - 1]
        return total

    def _advection_rhs(
        self,
        tau: float,
        current: HydroGrid,
        ix: int,
        iy: int,
        ieta: int,
        theta: float,
        value: Callable[[FluidCell], float],
    ) -> float:
        c = current(ix, iy, ieta)
        X = value(c)
        total = self._kt_advection(tau, current, ix, iy, ieta, value)
        total += X * (theta - c.u[0] / tau)
        return total * self.config.delta_tau

    def shear_rhs(
        self, tau: float, current: HydroGrid, ix: int, iy: int, ieta: int, idx_1d: int, theta: float
    ) -> float:
        return self._advection_rhs(
            tau, current, ix, iy, ieta, theta, lambda cell: cell.Wmunu[idx_1d]
        )

    def bulk_rhs(
        self, tau: float, current: HydroGrid, ix: int, iy: int, ieta: int, theta: float
    ) -> float:
        return self._advection_rhs(tau, current, ix, iy, ieta, theta, lambda cell: cell.pi_b)

    def diffusion_rhs(
        self, tau: float, current: HydroGrid, ix: int, iy: int, ieta: int, idx_1d: int, theta: float
    ) -> float:
        return self._advection_rhs(
            tau, current, ix, iy, ieta, theta, lambda cell: cell.Wmunu[idx_1d]
        )

    # Relaxation sources

    def shear_source(self, tau: float, cell: FluidCell, kin: KinematicBundle) -> np.ndarray:
        """Right-hand side of u.d pi^{mu nu} as a 4x4 tensor."""
        tc = self.transport
        e, rhob, u = cell.epsilon, cell.rhob, cell.u
        pi = cell.shear_tensor()
        eta = tc.shear_viscosity(e, rhob)
        tau_pi = tc.shear_relaxation_time(e, rhob)
        pressure = self.eos.get_pressure(e, rhob)

        source = (-pi - 2.0 * eta * kin.sigma) / tau_pi
        source -= tc.get_delta_pipi_coeff() * pi * kin.theta
        source -= tc.get_tau_pipi_coeff() * _traceless_projection(pi @ _G @ kin.sigma, u)
        if pressure > SMALL_EPS:
            source -= tc.get_phi7_coeff() / pressure * _traceless_projection(pi @ _G @ pi, u)
        source -= tc.get_lambda_piPi_coeff() * cell.pi_b * kin.sigma

        # vorticity coupling 2 pi^<mu_a omega^nu>a, the trace vanishes identically
        pi_omega = pi @ _G @ kin.omega.T
        source += pi_omega + pi_omega.T

        # keeps u_mu pi^{mu nu} = 0 along the flow
        pi_a = pi @ (METRIC_DIAG * kin.a)
        source += np.outer(u, pi_a) + np.outer(pi_a, u)

        source -= (u[3] / tau) * _milne_shear_terms(pi)
        return source

    def bulk_source(self, tau: float, cell: FluidCell, kin: KinematicBundle) -> float:
        """Right-hand side of u.d Pi."""
        tc = self.transport
        e, rhob = cell.epsilon, cell.rhob
        zeta = tc.bulk_viscosity(e, rhob)
        tau_Pi = tc.bulk_relaxation_time(e, rhob)
        cs2 = self.eos.get_cs2(e, rhob)
        pi = cell.shear_tensor()
        pi_sigma = float(np.trace(pi @ _G @ kin.sigma @ _G))

        source = (-cell.pi_b - zeta * kin.theta) / tau_Pi
        source -= tc.get_delta_PiPi_coeff() * cell.pi_b * kin.theta
        source -= tc.get_lambda_Pipi_coeff() * (1.0 / 3.0 - cs2) * pi_sigma
        return source

    def diffusion_source(self, tau: float, cell: FluidCell, kin: KinematicBundle) -> np.ndarray:
        """Right-hand side of u.d q^mu as a 4-vector."""
        tc = self.transport
        e, rhob, u = cell.epsilon, cell.rhob, cell.u
        q = cell.Wmunu[10:14]
        q_lower = METRIC_DIAG * q
        kappa = tc.diffusion_coefficient(e, rhob)
        tau_q = tc.diffusion_relaxation_time(e, rhob)
        pi = cell.shear_tensor()

        source = (-q - kappa * kin.grad_muB_over_T) / tau_q
        source -= tc.get_delta_qq_coeff() * q * kin.theta
        source -= tc.get_lambda_qq_coeff() * (kin.sigma @ q_lower)
        source += kin.omega @ q_lower
        source += tc.get_lambda_qpi_coeff() * (pi @ (METRIC_DIAG * kin.grad_muB_over_T))

        source += u * float(q_lower @ kin.a)

        geometric = np.zeros(4)
        geometric[0] = q[3]
        geometric[3] = q[0]
        source -= (u[3] / tau) * geometric
        return source
