"""
Kurganov-Tadmor central flux for the ideal part of T^{mu nu} and J^mu.

The conserved vector is tau-scaled, q = tau (T^{tau tau}, T^{tau x},
T^{tau y}, T^{tau eta}, J^tau). Along each direction the two half-cell
faces get minmod-limited left/right states, which are reconstructed to
primitive variables to evaluate the physical flux and the local signal
speed. The face flux is

    H_{j+1/2} = (F(q^L) + F(q^R))/2 - a_{j+1/2} (q^R - q^L)/2.

Along eta the tau and eta components are not differenced directly: the
Milne source terms are folded in through the discretized geometric
factors cosh(d_eta/2)/d_eta and sinh(d_eta/2)/d_eta.
"""

import numpy as np

from ..core.config import HydroConfig
from ..core.constants import METRIC_DIAG, N_CONSERVED, SMALL_EPS
from ..core.eos import EOSBase
from ..core.grid import FluidCell, HydroGrid, PrimitiveState
from ..core.limiters import Minmod
from ..core.reconstruction import Reconstruction
from .signal_speed import max_speed


def tjb_column(e: float, rhob: float, u: np.ndarray, nu: int, eos: EOSBase) -> np.ndarray:
    """
    Column nu of the ideal currents: T^{mu nu} for mu = 0..3 and J^nu in slot 4.

    T^{mu nu} = (e + P) u^mu u^nu + P g^{mu nu},  J^nu = rhob u^nu
    """
    pressure = eos.get_pressure(e, rhob)
    column = np.empty(N_CONSERVED)
    column[:4] = (e + pressure) * u * u[nu]
    column[nu] += pressure * METRIC_DIAG[nu]
    column[4] = rhob * u[nu]
    return column


def get_tjb(e: float, rhob: float, u: np.ndarray, mu: int, nu: int, eos: EOSBase) -> float:
    """Single component T^{mu nu} (mu < 4) or J^nu (mu = 4)."""
    if not 0 <= mu <= 4 or not 0 <= nu <= 3:
        raise IndexError(f"Invalid component ({mu}, {nu})")
    return float(tjb_column(e, rhob, u, nu, eos)[mu])


class KTFluxBuilder:
    """Builds tau T^{tau a}(tau + dtau) from the ideal fluxes around one cell."""

    def __init__(self, config: HydroConfig, eos: EOSBase, reconstruction: Reconstruction):
        self.config = config
        self.eos = eos
        self.reconstruction = reconstruction
        self.minmod = Minmod(config.theta_flux)

        delta_eta = config.delta_eta
        self.cosh_deta = np.cosh(delta_eta / 2.0) / max(delta_eta, SMALL_EPS)
        self.sinh_deta = max(0.5, np.sinh(delta_eta / 2.0) / max(delta_eta, SMALL_EPS))
        if config.boost_invariant:
            # limiting values at d_eta -> 0; longitudinal gradients vanish
            self.cosh_deta = 0.0
            self.sinh_deta = 0.5

    def conserved_vector(self, tau: float, cell: FluidCell) -> np.ndarray:
        return tau * tjb_column(cell.epsilon, cell.rhob, cell.u, 0, self.eos)

    def _limited_faces(
        self, qi: np.ndarray, g_m2: np.ndarray, g_m1: np.ndarray, g_p1: np.ndarray, g_p2: np.ndarray
    ) -> tuple[np.ndarray, np.ndarray, np.ndarray, np.ndarray]:
        qiphL = np.empty(N_CONSERVED)
        qiphR = np.empty(N_CONSERVED)
        qimhL = np.empty(N_CONSERVED)
        qimhR = np.empty(N_CONSERVED)
        mm = self.minmod.minmod_dx
        for alpha in range(N_CONSERVED):
            fphL = 0.5 * mm(g_p1[alpha], qi[alpha], g_m1[alpha])
            fphR = -0.5 * mm(g_p2[alpha], g_p1[alpha], qi[alpha])
            fmhL = 0.5 * mm(qi[alpha], g_m1[alpha], g_m2[alpha])
            qiphL[alpha] = qi[alpha] + fphL
            qiphR[alpha] = g_p1[alpha] + fphR
            qimhL[alpha] = g_m1[alpha] + fmhL
            qimhR[alpha] = qi[alpha] - fphL
        return qiphL, qiphR, qimhL, qimhR

    def _face_flux(self, tau: float, direction: int, state: PrimitiveState) -> np.ndarray:
        tau_fac = (0.0, tau, tau, 1.0)
        return tjb_column(state.e, state.rhob, state.u, direction, self.eos) * tau_fac[direction]

    def make_delta_qi(
        self, tau: float, current: HydroGrid, ix: int, iy: int, ieta: int
    ) -> np.ndarray:
        """
        Seed qi = tau T^{tau a} at the cell and add the flux differences times dtau.

        Raises:
            ReconstructionError: A limited face state is not physical
            NumericalConsistencyError: A face signal speed is out of bounds
        """
        delta = (0.0, self.config.delta_x, self.config.delta_y, self.config.delta_eta)
        dtau = self.config.delta_tau
        c = current(ix, iy, ieta)
        qi = self.conserved_vector(tau, c)

        rhs = np.zeros(N_CONSERVED)
        T_eta_m = np.zeros(4)
        T_eta_p = np.zeros(4)
        for direction in range(1, 4):
            m2, m1, _, p1, p2 = current.neighbours(ix, iy, ieta, direction)
            qiphL, qiphR, qimhL, qimhR = self._limited_faces(
                qi,
                self.conserved_vector(tau, m2),
                self.conserved_vector(tau, m1),
                self.conserved_vector(tau, p1),
                self.conserved_vector(tau, p2),
            )

            grid_phL = self.reconstruction.reconstruct(tau, qiphL, c)
            grid_phR = self.reconstruction.reconstruct(tau, qiphR, c)
            grid_mhL = self.reconstruction.reconstruct(tau, qimhL, c)
            grid_mhR = self.reconstruction.reconstruct(tau, qimhR, c)

            aiph = max(
                max_speed(tau, direction, grid_phL, self.eos),
                max_speed(tau, direction, grid_phR, self.eos),
            )
            aimh = max(
                max_speed(tau, direction, grid_mhL, self.eos),
                max_speed(tau, direction, grid_mhR, self.eos),
            )

            Fiph = 0.5 * (
                (self._face_flux(tau, direction, grid_phL) + self._face_flux(tau, direction, grid_phR))
                - aiph * (qiphR - qiphL)
            )
            Fimh = 0.5 * (
                (self._face_flux(tau, direction, grid_mhL) + self._face_flux(tau, direction, grid_mhR))
                - aimh * (qimhR - qimhL)
            )

            DFmmp = (Fimh - Fiph) / delta[direction] * dtau
            if direction == 3:
                T_eta_m[[0, 3]] = Fimh[[0, 3]]
                T_eta_p[[0, 3]] = Fiph[[0, 3]]
                DFmmp[[0, 3]] = 0.0
            rhs += DFmmp

        rhs[0] += (
            (T_eta_m[0] - T_eta_p[0]) * self.cosh_deta - (T_eta_m[3] + T_eta_p[3]) * self.sinh_deta
        ) * dtau
        rhs[3] += (
            (T_eta_m[3] - T_eta_p[3]) * self.cosh_deta - (T_eta_m[0] + T_eta_p[0]) * self.sinh_deta
        ) * dtau

        return qi + rhs
