"""
Nonlinear causality constraints for the dissipative currents.

The conditions are algebraic inequalities in the normalized bulk pressure
Pi/(e+P) and the shear eigenvalues Lambda_i/(e+P) (ordered
Lambda_1 <= Lambda_2 <= Lambda_3). Scaling all dissipative quantities by
a common factor beta multiplies these inputs by beta, so each condition
becomes a function of beta alone:

- necessary conditions n1, n3, n5, n6 are affine in beta and the largest
  admissible factor follows in closed form
- sufficient conditions s1, s2, s6 are affine as well and give a first
  bound, which is refined against the nonlinear conditions 5, 7 and 8 by
  bisection on [0, beta]

Reduction factors of cells above an energy threshold are appended to a
diagnostics file, one per algorithm.
"""

import threading
import warnings
from collections.abc import Callable
from dataclasses import dataclass
from pathlib import Path

import numpy as np

from ..core.config import HydroConfig
from ..core.constants import (
    BISECTION_TOLERANCE,
    CAUSALITY_LOG_EPS_MIN,
    CONDITION_TOLERANCE,
    NECESSARY_LOG_NAME,
    SUFF5_CS2_FALLBACK,
    SUFFICIENT_LOG_NAME,
)
from ..core.eos import EOSBase
from ..core.exceptions import NumericalConsistencyError, RegulationWarning
from ..core.grid import FluidCell
from ..utils.logging_config import get_logger, physics_logger
from .coefficients import TransportCoeffs

logger = get_logger("equations.causality")


def bisect_root(
    func: Callable[[float], float],
    left: float,
    right: float,
    tol: float = BISECTION_TOLERANCE,
) -> tuple[bool, float]:
    """
    Bisection for the sign change of ``func`` on [left, right].

    The sign change is re-checked on every iteration. On success the
    returned point is the left end of the final bracket, the side on
    which ``func`` is non-negative.

    Returns:
        (found, value); value is meaningless when found is False

    Raises:
        NumericalConsistencyError: right < left
    """
    if right < left:
        raise NumericalConsistencyError(
            f"Upper bisection bound {right:.6e} is smaller than the lower bound {left:.6e}"
        )
    while right - left > tol:
        if func(right) * func(left) > 0:
            return False, left
        mid = 0.5 * (left + right)
        if func(mid) < 0:
            right = mid
        else:
            left = mid
    return True, left


class ReductionFactorLog:
    """Append-only record 'factor energy_density tau' shared by all worker threads."""

    def __init__(self, path: Path):
        self.path = Path(path)
        self._lock = threading.Lock()

    @staticmethod
    def format_record(factor: float, energy_density: float, tau: float) -> str:
        return f"{factor:18.8e}   {energy_density:.8e}   {tau:.8e}\n"

    def append(self, factor: float, energy_density: float, tau: float) -> None:
        line = self.format_record(factor, energy_density, tau)
        with self._lock:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            with open(self.path, "a") as log_file:
                log_file.write(line)


@dataclass
class CausalityInputs:
    """Per-cell inputs of the causality conditions, normalized by e + P."""

    cs2: float
    s_relax: float
    b_relax: float
    Pi: float
    L1: float
    L2: float
    L3: float
    lam_piPi: float
    tau_pipi: float
    del_PiPi: float
    del_pipi: float
    lam_Pipi: float


class CausalityEnforcer:
    """
    Rescales pi_b, W and the cached eigenvalues of a cell so that the
    causality conditions hold.

    Both algorithms return the applied factor, which always lies in [0, 1].
    """

    def __init__(
        self,
        config: HydroConfig,
        eos: EOSBase,
        transport: TransportCoeffs,
        log_dir: Path | None = None,
    ):
        self.config = config
        self.eos = eos
        self.transport = transport
        log_dir = Path(config.diagnostics_dir if log_dir is None else log_dir)
        self.necessary_log = ReductionFactorLog(log_dir / NECESSARY_LOG_NAME)
        self.sufficient_log = ReductionFactorLog(log_dir / SUFFICIENT_LOG_NAME)

    def enforce(self, cell: FluidCell, tau: float) -> float:
        """Apply the configured algorithm; returns 1 when causality enforcement is off."""
        if self.config.causality_method == 1:
            return self.necessary(cell, tau)
        if self.config.causality_method == 2:
            return self.sufficient(cell, tau)
        return 1.0

    def inputs(self, cell: FluidCell) -> CausalityInputs:
        e, rhob = cell.epsilon, cell.rhob
        cs2 = self.eos.get_cs2(e, rhob)
        enthalpy = np.float64(e + self.eos.get_pressure(e, rhob))
        tc = self.transport
        return CausalityInputs(
            cs2=cs2,
            s_relax=1.0 / tc.get_shear_relax_time_factor(),
            b_relax=(1.0 / 3.0 - cs2) ** 2 / tc.get_bulk_relax_time_factor(),
            Pi=cell.pi_b / enthalpy,
            L1=cell.Lambdas[0] / enthalpy,
            L2=cell.Lambdas[1] / enthalpy,
            L3=cell.Lambdas[2] / enthalpy,
            lam_piPi=tc.get_lambda_piPi_coeff(),
            tau_pipi=tc.get_tau_pipi_coeff(),
            del_PiPi=tc.get_delta_PiPi_coeff(),
            del_pipi=tc.get_delta_pipi_coeff(),
            lam_Pipi=tc.get_lambda_Pipi_coeff(),
        )

    @staticmethod
    def _minimum_factor(conditions: list[tuple[float, float]]) -> float:
        """
        Smallest admissible factor over affine conditions a + beta * b >= 0.

        A violated condition contributes its root -a/b; a negative root
        forces the factor to zero. Round-off residuals of a cell that was
        already scaled onto a root do not count as violations, so a second
        pass over the output returns exactly 1.
        """
        factor = 1.0
        for transport_part, viscous_part in conditions:
            alpha = 1.0
            if transport_part + viscous_part < -CONDITION_TOLERANCE:
                alpha = np.divide(-transport_part, viscous_part)
            if 0 < alpha < factor:
                factor = alpha
            elif alpha < 0:
                factor = 0.0
        return float(factor)

    # Necessary conditions

    def necessary_terms(self, cell: FluidCell) -> list[tuple[float, float]]:
        """(transport part, viscous part) of n1, n3, n5 and n6."""
        c = self.inputs(cell)
        transport_n13 = 2.0 * c.s_relax
        viscous1_n13 = c.lam_piPi
        viscous2_n13 = -0.5 * c.tau_pipi
        transport_n56 = c.cs2 + 4.0 / 3.0 * c.s_relax + c.b_relax
        viscous1_n56 = 2.0 / 3.0 * c.lam_piPi + c.del_PiPi + c.cs2
        viscous2_n56 = c.del_pipi + c.tau_pipi / 3.0 + c.lam_Pipi * (1.0 / 3.0 - c.cs2) + c.cs2

        return [
            (transport_n13, viscous1_n13 * c.Pi + viscous2_n13 * abs(c.L1)),
            (transport_n13, viscous1_n13 * c.Pi + viscous2_n13 * c.L3),
            (transport_n56, viscous1_n56 * c.Pi + viscous2_n56 * c.L1),
            (1.0 - transport_n56, (1.0 - viscous1_n56) * c.Pi + (1.0 - viscous2_n56) * c.L3),
        ]

    def necessary_conditions(self, cell: FluidCell) -> np.ndarray:
        """Values of n1, n3, n5, n6; all non-negative for a causal cell."""
        with np.errstate(divide="ignore", invalid="ignore"):
            return np.array([a + b for a, b in self.necessary_terms(cell)])

    def necessary(self, cell: FluidCell, tau: float) -> float:
        with np.errstate(divide="ignore", invalid="ignore"):
            factor = self._minimum_factor(self.necessary_terms(cell))

        cell.scale_dissipative(factor)
        if factor < 1.0:
            physics_logger.log_regulation("necessary_causality", factor, cell.epsilon, tau)
        if cell.epsilon > CAUSALITY_LOG_EPS_MIN:
            self.necessary_log.append(factor, cell.epsilon, tau)
        return factor

    # Sufficient conditions

    def sufficient_terms(self, cell: FluidCell) -> list[tuple[float, float]]:
        """(transport part, viscous part) of s1, s2 and s6."""
        c = self.inputs(cell)
        return [
            (
                1.0 - c.s_relax,
                -abs(c.L1) + (1.0 - 0.5 * c.lam_piPi) * c.Pi - 0.5 * c.tau_pipi * c.L3,
            ),
            (2.0 * c.s_relax, c.lam_piPi * c.Pi - c.tau_pipi * abs(c.L1)),
            (
                c.s_relax / 3.0 + c.b_relax + c.cs2,
                (c.lam_piPi / 6.0 + c.del_PiPi + c.cs2) * c.Pi
                + (c.tau_pipi / 6.0 - c.del_pipi + c.lam_Pipi - c.cs2) * abs(c.L1),
            ),
        ]

    @staticmethod
    def suff5(beta: float, c: CausalityInputs) -> float:
        aL1 = abs(c.L1)
        cross = (c.del_pipi - c.tau_pipi / 12.0) * (c.lam_Pipi + c.cs2 - c.tau_pipi / 12.0)
        return (
            1.0
            - c.cs2
            - 4.0 / 3.0 * c.s_relax
            - c.b_relax
            - beta
            * (
                (c.cs2 - 1.0 + 2.0 / 3.0 * c.lam_piPi + c.del_PiPi) * c.Pi
                + (c.del_pipi + c.tau_pipi / 3.0 + c.lam_Pipi + c.cs2) * c.L3
                + aL1
            )
            - beta**2
            * cross
            * (c.L3 + aL1) ** 2
            / (1.0 - c.s_relax + beta * ((1.0 - 0.5 * c.lam_piPi) * c.Pi - aL1 - 0.5 * c.tau_pipi * c.L3))
        )

    @staticmethod
    def suff7(beta: float, c: CausalityInputs) -> float:
        aL1 = abs(c.L1)
        cross = (c.del_pipi - c.tau_pipi / 12.0) * (c.lam_Pipi + c.cs2 - c.tau_pipi / 12.0)
        linear = c.s_relax + beta * (0.5 * c.lam_piPi * c.Pi - 0.5 * c.tau_pipi * aL1)
        return linear * linear - beta**2 * cross * (c.L3 + aL1) ** 2

    @staticmethod
    def suff8(beta: float, c: CausalityInputs) -> float:
        aL1 = abs(c.L1)
        shrink = 1.0 + beta * (c.Pi - aL1)
        return (
            4.0 / 3.0 * c.s_relax
            + c.b_relax
            + c.cs2
            + beta
            * (
                (2.0 / 3.0 * c.lam_piPi + c.del_PiPi + c.cs2) * c.Pi
                - (c.del_pipi + c.tau_pipi / 3.0 - c.lam_Pipi + c.cs2) * aL1
            )
            - (1.0 + beta * (c.Pi + c.L2))
            * (1.0 + beta * (c.Pi + c.L3))
            / 3.0
            / (shrink * shrink)
            * (1.0 + 2.0 * c.s_relax + beta * ((1.0 + c.lam_piPi) * c.Pi - abs(c.Pi) + c.tau_pipi * c.L3))
        )

    def sufficient(self, cell: FluidCell, tau: float) -> float:
        c = self.inputs(cell)
        with np.errstate(divide="ignore", invalid="ignore"):
            beta = self._minimum_factor(self.sufficient_terms(cell))

            for name, condition in (("suff5", self.suff5), ("suff7", self.suff7), ("suff8", self.suff8)):
                if not condition(beta, c) < 0:
                    continue
                found, result = bisect_root(lambda b: condition(b, c), 0.0, beta)
                if found:
                    beta = result
                elif name == "suff5" and c.cs2 < SUFF5_CS2_FALLBACK:
                    physics_logger.log_physics_fallback(
                        "sufficient_causality",
                        f"{name} root not bracketed on [0, {beta:.6e}] with cs2={c.cs2:.4f}",
                        "reduction factor 0",
                    )
                    beta = 0.0
                else:
                    message = f"{name} fails binary search on [0, {beta:.6e}] at e={cell.epsilon:.6e}"
                    logger.warning(message)
                    warnings.warn(message, RegulationWarning, stacklevel=2)

        cell.scale_dissipative(beta)
        if beta < 1.0:
            physics_logger.log_regulation("sufficient_causality", beta, cell.epsilon, tau)
        if cell.epsilon > CAUSALITY_LOG_EPS_MIN:
            self.sufficient_log.append(beta, cell.epsilon, tau)
        return float(beta)
