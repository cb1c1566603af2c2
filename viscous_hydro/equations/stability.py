"""
Regulation of the dissipative currents in the dilute region.

Far from equilibrium, where the energy density approaches zero, second
order hydrodynamics is not reliable and the explicit update becomes
unstable. The size of pi^{mu nu} and Pi relative to the equilibrium scale

    rho_shear = sqrt(pi_{mu nu} pi^{mu nu} / (e^2 + 3 P^2)) / f(e)
    rho_bulk  = sqrt(3 Pi^2 / (e^2 + 3 P^2)) / f(e)

is capped at 0.1, where f(e) is a sigmoid in e that vanishes at e = 0 and
saturates at 10 * strength above the scale e_s = 0.1 fm^-4. The baryon
diffusion current is capped the same way relative to rhob.
"""

import warnings

import numpy as np

from ..core.config import HydroConfig
from ..core.constants import (
    ECHO_LEVEL_WARNING,
    EPS_SCALE,
    HBARC,
    QUEST_REVERT_XI,
    RHO_BULK_MAX,
    RHO_Q_MAX,
    RHO_SHEAR_MAX,
)
from ..core.eos import EOSBase
from ..core.exceptions import RegulationWarning
from ..core.grid import FluidCell
from ..utils.logging_config import get_logger, physics_logger

logger = get_logger("equations.stability")


class StabilityRegulator:
    """Caps the shear stress, bulk pressure and diffusion current of a cell."""

    def __init__(self, config: HydroConfig, eos: EOSBase):
        self.config = config
        self.eos = eos

    def regulation_factor(self, e: float) -> float:
        """Sigmoid f(e) = 10 s (1/(exp(-(e - e_s)/xi) + 1) - 1/(exp(e_s/xi) + 1))."""
        return float(
            10.0
            * self.config.quest_revert_strength
            * (
                1.0 / (np.exp(-(e - EPS_SCALE) / QUEST_REVERT_XI) + 1.0)
                - 1.0 / (np.exp(EPS_SCALE / QUEST_REVERT_XI) + 1.0)
            )
        )

    def _report(self, e_local: float) -> bool:
        return e_local > EPS_SCALE and self.config.echo_level > ECHO_LEVEL_WARNING

    @staticmethod
    def shear_size(cell: FluidCell) -> float:
        """pi_{mu nu} pi^{mu nu} with the (-,+,+,+) metric."""
        W = cell.Wmunu
        return float(
            W[0] ** 2
            + W[4] ** 2
            + W[7] ** 2
            + W[9] ** 2
            - 2.0 * (W[1] ** 2 + W[2] ** 2 + W[3] ** 2)
            + 2.0 * (W[5] ** 2 + W[6] ** 2 + W[8] ** 2)
        )

    def quest_revert(
        self, tau: float, cell: FluidCell, ix: int = 0, iy: int = 0, ieta: int = 0
    ) -> tuple[float, float]:
        """
        Cap rho_shear and rho_bulk of one cell at 0.1.

        The shear entries and the cached eigenvalues share one factor; a
        shear ratio that is not a number zeroes the shear stress. The bulk
        pressure is scaled independently.

        Returns:
            (shear factor, bulk factor) applied to the cell
        """
        e_local = cell.epsilon
        factor = self.regulation_factor(e_local)

        pisize = self.shear_size(cell)
        bulksize = 3.0 * cell.pi_b * cell.pi_b
        p_local = self.eos.get_pressure(e_local, cell.rhob)
        eq_size = np.float64(e_local * e_local + 3.0 * p_local * p_local)

        with np.errstate(divide="ignore", invalid="ignore"):
            rho_shear = np.sqrt(pisize / eq_size) / factor
            rho_bulk = np.sqrt(bulksize / eq_size) / factor

            shear_scale = 1.0
            if np.isnan(rho_shear):
                shear_scale = 0.0
                cell.Wmunu[:10] = 0.0
                cell.Lambdas[:] = 0.0
            elif rho_shear > RHO_SHEAR_MAX:
                if self._report(e_local):
                    logger.warning(
                        f"ieta = {ieta}, ix = {ix}, iy = {iy}, energy density = "
                        f"{e_local * HBARC:.6g} GeV/fm^3, shear |pi/(epsilon+3*P)| = {rho_shear:.6g}"
                    )
                shear_scale = float(RHO_SHEAR_MAX / rho_shear)
                cell.Wmunu[:10] *= shear_scale
                cell.Lambdas *= shear_scale

            # a bulk ratio that is not a number compares false and is left as is
            bulk_scale = 1.0
            if rho_bulk > RHO_BULK_MAX:
                if self._report(e_local):
                    logger.warning(
                        f"ieta = {ieta}, ix = {ix}, iy = {iy}, energy density = "
                        f"{e_local * HBARC:.6g} GeV/fm^3, bulk |Pi/(epsilon+3*P)| = {rho_bulk:.6g}"
                    )
                bulk_scale = float(RHO_BULK_MAX / rho_bulk)
                cell.pi_b *= bulk_scale

        if shear_scale < 1.0 or bulk_scale < 1.0:
            physics_logger.log_regulation(
                "quest_revert", min(shear_scale, bulk_scale), e_local, tau
            )
        return shear_scale, bulk_scale

    def quest_revert_qmu(
        self, tau: float, cell: FluidCell, ix: int = 0, iy: int = 0, ieta: int = 0
    ) -> float:
        """
        Cap |q/rhob| of one cell at 0.1.

        A timelike diffusion current (q^mu q_mu < 0) is unphysical; it is
        reset to zero with a RegulationWarning.

        Returns:
            Factor applied to q^mu
        """
        e_local = cell.epsilon
        rhob_local = cell.rhob
        factor = self.regulation_factor(e_local)

        q = cell.diffusion_current()
        q_size = float(-q[0] ** 2 + q[1] ** 2 + q[2] ** 2 + q[3] ** 2)

        if q_size < 0.0:
            message = f"QuestRevert_qmu: q^mu q_mu = {q_size:.6e} < 0, reset it to zero"
            logger.warning(f"ieta = {ieta}, ix = {ix}, iy = {iy}: {message}")
            warnings.warn(message, RegulationWarning, stacklevel=2)
            physics_logger.log_error_recovery(
                "quest_revert_qmu", message, "diffusion current set to zero", True
            )
            cell.Wmunu[10:14] = 0.0
            return 0.0

        with np.errstate(divide="ignore", invalid="ignore"):
            rho_q = np.sqrt(q_size / np.float64(rhob_local * rhob_local)) / factor
            if not rho_q > RHO_Q_MAX:
                return 1.0
            scale = float(RHO_Q_MAX / rho_q)

        if self._report(e_local):
            logger.warning(
                f"ieta = {ieta}, ix = {ix}, iy = {iy}, energy density = "
                f"{e_local * HBARC:.6g} GeV/fm^3, rhob = {rhob_local:.6g} 1/fm^3"
                f"-- diffusion |q/rhob| = {rho_q:.6g}"
            )
        cell.Wmunu[10:14] *= scale
        physics_logger.log_regulation("quest_revert_qmu", scale, e_local, tau)
        return scale
