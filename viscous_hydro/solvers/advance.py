"""
Single Runge-Kutta step of second-order viscous hydrodynamics.

One time step consists of two sub-steps (Heun's method). Sub-step 0
advances (prev, current) into future; sub-step 1 advances the predictor
again and averages with the state at tau,

    q(tau + dtau) = (q_pred + dtau * rhs(q_pred) + q(tau)) / 2.

For each cell the ideal part (KT fluxes of T^{tau mu} and J^tau) is
updated first and reconstructed, then the dissipative currents are
evolved with the new flow velocity, their constrained components are
rebuilt from tracelessness and transversality, and the regulation
(dilute-region cap and causality) is applied.

Cells are independent within a sub-step: prev and current are read only,
and each future cell is written by exactly one worker.
"""

from concurrent.futures import ThreadPoolExecutor, as_completed

import numpy as np

from ..core.config import HydroConfig
from ..core.constants import METRIC_DIAG, map_1d_idx_to_2d, map_2d_idx_to_1d
from ..core.derivatives import KinematicBundle, VelocityDerivatives
from ..core.eos import EOSBase
from ..core.exceptions import NumericalConsistencyError
from ..core.grid import FluidCell, GridRing, HydroGrid, PrimitiveState
from ..core.performance import monitor_performance, profile_operation
from ..core.reconstruction import Reconstruction
from ..equations.causality import CausalityEnforcer
from ..equations.coefficients import TransportCoeffs
from ..equations.dissipative import DissipativeFluxes
from ..equations.stability import StabilityRegulator
from ..sources import HydroSourceBase
from ..utils.logging_config import HydroLoggerMixin
from .kt_flux import KTFluxBuilder, get_tjb

_G = np.diag(METRIC_DIAG)


class Advance(HydroLoggerMixin):
    """
    Evolves every cell of the grid through one RK sub-step.

    Args:
        config: Simulation settings
        eos: Equation of state
        source: Optional external energy-momentum/baryon source provider
        transport: Transport coefficients, built from config and eos if omitted
        reconstruction: Conserved-to-primitive solver, built from eos if omitted
    """

    def __init__(
        self,
        config: HydroConfig,
        eos: EOSBase,
        source: HydroSourceBase | None = None,
        transport: TransportCoeffs | None = None,
        reconstruction: Reconstruction | None = None,
    ):
        self.config = config
        self.eos = eos
        self.transport = transport if transport is not None else TransportCoeffs(config, eos)
        self.reconstruction = reconstruction if reconstruction is not None else Reconstruction(eos)

        self.flux_builder = KTFluxBuilder(config, eos, self.reconstruction)
        self.derivatives = VelocityDerivatives(config, eos)
        self.dissipative = DissipativeFluxes(config, eos, self.transport)
        self.causality = CausalityEnforcer(config, eos, self.transport)
        self.stability = StabilityRegulator(config, eos)

        self.source = source
        self.flag_add_hydro_source = source is not None and source.get_number_of_sources() > 0

    # Grid sweep

    def _chunks(self, indices: list[tuple[int, int, int]]) -> list[list[tuple[int, int, int]]]:
        """Guided partition: chunk size shrinks with the remaining work."""
        n_workers = self.config.n_workers
        chunks = []
        start = 0
        while start < len(indices):
            remaining = len(indices) - start
            size = max(1, remaining // (2 * n_workers))
            chunks.append(indices[start : start + size])
            start += size
        return chunks

    @monitor_performance("advance_it")
    def advance_it(
        self, tau: float, prev: HydroGrid, current: HydroGrid, future: HydroGrid, rk_flag: int
    ) -> None:
        """
        Advance all cells by one RK sub-step.

        Raises:
            NumericalConsistencyError, ReconstructionError: from any cell; the
                sub-step is abandoned and the future grid is left partially written
        """
        indices = list(current.indices())

        if self.config.n_workers == 1:
            for ix, iy, ieta in indices:
                self.advance_cell(tau, prev, current, future, rk_flag, ix, iy, ieta)
            return

        def work(chunk: list[tuple[int, int, int]]) -> None:
            for ix, iy, ieta in chunk:
                self.advance_cell(tau, prev, current, future, rk_flag, ix, iy, ieta)

        with ThreadPoolExecutor(max_workers=self.config.n_workers) as executor:
            futures = [executor.submit(work, chunk) for chunk in self._chunks(indices)]
            for done in as_completed(futures):
                done.result()

    def advance_cell(
        self,
        tau: float,
        prev: HydroGrid,
        current: HydroGrid,
        future: HydroGrid,
        rk_flag: int,
        ix: int,
        iy: int,
        ieta: int,
    ) -> None:
        """Ideal update, then the dissipative update of one cell."""
        x_local, y_local, eta_s_local = self.config.cell_coordinates(ix, iy, ieta)

        self.first_rk_step_t(
            tau, x_local, y_local, eta_s_local, current, future, prev, ix, iy, ieta, rk_flag
        )

        if self.config.viscosity_flag == 1:
            tau_now = tau + rk_flag * self.config.delta_tau
            kinematics = self.derivatives.compute(tau_now, prev, current, ix, iy, ieta)
            self.first_rk_step_w(tau, prev, current, future, rk_flag, kinematics, ix, iy, ieta)
        else:
            cell_f = future(ix, iy, ieta)
            cell_f.Wmunu[:] = 0.0
            cell_f.pi_b = 0.0
            cell_f.Lambdas[:] = 0.0

    # Ideal part

    def get_tjb(self, cell: FluidCell, mu: int, nu: int) -> float:
        """T^{mu nu} of the ideal fluid in a cell; mu = 4 selects J^nu."""
        return get_tjb(cell.epsilon, cell.rhob, cell.u, mu, nu, self.eos)

    def update_tjb_rk(self, grid_rk: PrimitiveState, cell: FluidCell) -> None:
        cell.epsilon = grid_rk.e
        cell.rhob = grid_rk.rhob
        cell.u[:] = grid_rk.u

    def first_rk_step_t(
        self,
        tau: float,
        x_local: float,
        y_local: float,
        eta_s_local: float,
        current: HydroGrid,
        future: HydroGrid,
        prev: HydroGrid,
        ix: int,
        iy: int,
        ieta: int,
        rk_flag: int,
    ) -> None:
        """
        Solve d_a T^{a mu} = -d_a W^{a mu} + J^mu for the cell and store
        (e, rhob, u) at tau + dtau in the future grid.
        """
        dtau = self.config.delta_tau
        tau_rk = tau + rk_flag * dtau
        cell_c = current(ix, iy, ieta)

        qi = self.flux_builder.make_delta_qi(tau_rk, current, ix, iy, ieta)

        qi_source = np.zeros(5)
        if self.flag_add_hydro_source:
            u_local = cell_c.u.copy()
            j_mu = np.asarray(
                self.source.get_hydro_energy_source(tau_rk, x_local, y_local, eta_s_local, u_local),
                dtype=float,
            )
            qi_source[:4] = tau_rk * j_mu
            if np.any(np.isnan(qi_source[:4])):
                raise NumericalConsistencyError(
                    f"Energy-momentum source is NaN at ({ix}, {iy}, {ieta}), tau={tau_rk}: {j_mu}"
                )
            if self.config.turn_on_rhob == 1:
                qi_source[4] = tau_rk * self.source.get_hydro_rhob_source(
                    tau_rk, x_local, y_local, eta_s_local, u_local
                )

        if self.config.viscosity_flag == 1:
            dwmn = self.dissipative.divergence(tau_rk, current, prev, ix, iy, ieta)
        else:
            dwmn = np.zeros(5)

        qi -= dwmn * dtau
        qi += qi_source * dtau
        if rk_flag == 1:
            cell_p = prev(ix, iy, ieta)
            qi += tau * np.array([self.get_tjb(cell_p, alpha, 0) for alpha in range(5)])
        qi /= 1.0 + rk_flag

        tau_next = tau + dtau
        grid_rk_t = self.reconstruction.reconstruct(tau_next, qi, cell_c)
        self.update_tjb_rk(grid_rk_t, future(ix, iy, ieta))

    # Dissipative part

    def _rk_average(
        self, rk_flag: int, value_c: float, value_p: float, cell_c: FluidCell, cell_p: FluidCell,
        increment: float, u0_future: float,
    ) -> float:
        tempf = (1.0 - rk_flag) * value_c * cell_c.u[0] + rk_flag * value_p * cell_p.u[0]
        tempf += increment
        tempf += rk_flag * value_c * cell_c.u[0]
        tempf /= 1.0 + rk_flag
        return tempf / u0_future

    def first_rk_step_w(
        self,
        tau: float,
        prev: HydroGrid,
        current: HydroGrid,
        future: HydroGrid,
        rk_flag: int,
        kinematics: KinematicBundle,
        ix: int,
        iy: int,
        ieta: int,
    ) -> None:
        """
        Solve u.d W = source for pi^{mu nu}, Pi and q^mu in conservative form
        d_tau(u^tau W) + d_i(u^i W) = ..., then rebuild the constrained components.
        """
        config = self.config
        dtau = config.delta_tau
        tau_now = tau + rk_flag * dtau
        theta_local = kinematics.theta

        cell_p = prev(ix, iy, ieta)
        cell_c = current(ix, iy, ieta)
        cell_f = future(ix, iy, ieta)
        u0_f = cell_f.u[0]

        if config.turn_on_shear == 1:
            source = self.dissipative.shear_source(tau_now, cell_c, kinematics)
            for idx_1d in range(4, 9):
                mu, nu = map_1d_idx_to_2d(idx_1d)
                w_rhs = self.dissipative.shear_rhs(
                    tau_now, current, ix, iy, ieta, idx_1d, theta_local
                )
                cell_f.Wmunu[idx_1d] = self._rk_average(
                    rk_flag,
                    cell_c.Wmunu[idx_1d],
                    cell_p.Wmunu[idx_1d],
                    cell_c,
                    cell_p,
                    source[mu, nu] * dtau + w_rhs,
                    u0_f,
                )
        else:
            cell_f.Wmunu[4:9] = 0.0

        if config.turn_on_bulk == 1:
            p_rhs = self.dissipative.bulk_rhs(tau_now, current, ix, iy, ieta, theta_local)
            temps = self.dissipative.bulk_source(tau_now, cell_c, kinematics)
            cell_f.pi_b = self._rk_average(
                rk_flag, cell_c.pi_b, cell_p.pi_b, cell_c, cell_p, temps * dtau + p_rhs, u0_f
            )
        else:
            cell_f.pi_b = 0.0

        if config.turn_on_diff == 1:
            source_q = self.dissipative.diffusion_source(tau_now, cell_c, kinematics)
            for idx_1d in range(11, 14):
                nu = idx_1d - 10
                w_rhs = self.dissipative.diffusion_rhs(
                    tau_now, current, ix, iy, ieta, idx_1d, theta_local
                )
                cell_f.Wmunu[idx_1d] = self._rk_average(
                    rk_flag,
                    cell_c.Wmunu[idx_1d],
                    cell_p.Wmunu[idx_1d],
                    cell_c,
                    cell_p,
                    source_q[nu] * dtau + w_rhs,
                    u0_f,
                )
        else:
            cell_f.Wmunu[10:14] = 0.0

        self.apply_constraints(cell_f)
        self.solve_eigenvalues_wmunu(cell_f)

        if config.regulation_enabled:
            self.stability.quest_revert(tau, cell_f, ix, iy, ieta)
            self.causality.enforce(cell_f, tau)
            if config.turn_on_diff == 1:
                self.stability.quest_revert_qmu(tau, cell_f, ix, iy, ieta)

    def apply_constraints(self, cell: FluidCell) -> None:
        """
        Rebuild pi^{33} from tracelessness, pi^{0i} and pi^{00} from
        transversality, and q^0 from u_mu q^mu = 0.
        """
        u = cell.u
        W = cell.Wmunu
        u0_sq = u[0] * u[0]

        W[9] = (
            2.0 * (u[1] * u[2] * W[5] + u[1] * u[3] * W[6] + u[2] * u[3] * W[8])
            - (u0_sq - u[1] * u[1]) * W[4]
            - (u0_sq - u[2] * u[2]) * W[7]
        ) / (u0_sq - u[3] * u[3])

        for mu in range(1, 4):
            tempf = 0.0
            for nu in range(1, 4):
                tempf += W[map_2d_idx_to_1d(mu, nu)] * u[nu]
            W[mu] = tempf / u[0]

        W[0] = (W[1] * u[1] + W[2] * u[2] + W[3] * u[3]) / u[0]

        tempf = 0.0
        for nu in range(1, 4):
            tempf += W[map_2d_idx_to_1d(4, nu)] * u[nu]
        W[10] = self.config.turn_on_diff * tempf / u[0]

    def solve_eigenvalues_wmunu(self, cell: FluidCell) -> None:
        """Lambdas = (min, -min-max, max) of the eigenvalues of pi^mu_nu."""
        eigenvalues = np.linalg.eigvals(cell.shear_tensor() @ _G).real
        lam_min = float(np.min(eigenvalues))
        lam_max = float(np.max(eigenvalues))
        cell.Lambdas[0] = lam_min
        cell.Lambdas[1] = -lam_min - lam_max
        cell.Lambdas[2] = lam_max

    # Full step

    def advance_step(self, tau: float, ring: GridRing) -> None:
        """
        Advance the ring from tau to tau + dtau.

        Afterwards ring.current holds the new state and ring.prev the state
        at tau.
        """
        with profile_operation("advance_step", {"tau": tau, "cells": ring.current.size}):
            for rk_flag in (0, 1):
                prev, current, future = ring.roles(rk_flag)
                self.advance_it(tau, prev, current, future, rk_flag)
            ring.finish_step()
        self.logger.debug(f"Advanced tau = {tau:.6f} -> {tau + self.config.delta_tau:.6f}")
