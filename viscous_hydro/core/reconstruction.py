"""
Conserved-to-primitive reconstruction for the ideal fluid part.

Given the tau-scaled conserved vector
    q = (tau T^{tau tau}, tau T^{tau x}, tau T^{tau y}, tau T^{tau eta}, tau J^tau)
the flow speed v solves

    v = K / (M + P(M - K v, J sqrt(1 - v^2)))

with M = T^{tau tau}, K = |T^{tau i}| and J = J^tau. The root is bracketed
by [0, K/M] for any non-negative pressure and found with Brent's method.
"""

import numpy as np
from scipy.optimize import brentq

from .constants import SMALL_EPS
from .eos import EOSBase
from .exceptions import ReconstructionError
from .grid import FluidCell, PrimitiveState


class Reconstruction:
    """Recover (e, rhob, u^mu) from the tau-scaled conserved variables."""

    def __init__(self, eos: EOSBase, xtol: float = 1e-14, maxiter: int = 200):
        self.eos = eos
        self.xtol = xtol
        self.maxiter = maxiter

    def reconstruct(self, tau: float, qi: np.ndarray, guess: FluidCell | None = None) -> PrimitiveState:
        """
        Reconstruct the primitive state.

        Args:
            tau: Proper time at which qi is given
            qi: Conserved 5-vector scaled by tau
            guess: Cell used as initial guess (kept for interface compatibility,
                the bracketed solve does not depend on it)

        Returns:
            PrimitiveState with normalized four-velocity

        Raises:
            ReconstructionError: qi does not correspond to a physical fluid state
        """
        q = np.asarray(qi, dtype=float) / tau
        if not np.all(np.isfinite(q)):
            raise ReconstructionError(f"Non-finite conserved variables: {q}")

        M = q[0]
        K = float(np.sqrt(q[1] ** 2 + q[2] ** 2 + q[3] ** 2))
        J = q[4]

        if M <= 0.0:
            raise ReconstructionError(f"T^tautau = {M:.6e} is not positive")
        if K >= M:
            raise ReconstructionError(
                f"Momentum density |T^taui| = {K:.6e} exceeds energy density {M:.6e}"
            )

        if K < SMALL_EPS * M:
            v = 0.0
        else:
            v = self._solve_velocity(M, K, J)

        e = M - K * v
        if e < 0.0:
            raise ReconstructionError(f"Reconstructed energy density {e:.6e} is negative")

        gamma = 1.0 / np.sqrt(1.0 - v * v)
        rhob = J / gamma

        u = np.zeros(4)
        u[0] = gamma
        if K > 0.0:
            u[1:4] = gamma * v * q[1:4] / K
        return PrimitiveState(e=float(e), rhob=float(rhob), u=u)

    def _solve_velocity(self, M: float, K: float, J: float) -> float:
        def residual(v: float) -> float:
            e = M - K * v
            rhob = J * np.sqrt(max(1.0 - v * v, 0.0))
            return v - K / (M + self.eos.get_pressure(e, rhob))

        v_max = K / M
        f_low = residual(0.0)
        f_high = residual(v_max)
        if f_high == 0.0:
            return v_max
        if f_low * f_high > 0.0:
            raise ReconstructionError(
                f"Flow velocity root not bracketed: f(0) = {f_low:.6e}, f({v_max:.6e}) = {f_high:.6e}"
            )
        try:
            return float(brentq(residual, 0.0, v_max, xtol=self.xtol, maxiter=self.maxiter))
        except RuntimeError as err:
            raise ReconstructionError(f"Flow velocity iteration did not converge: {err}") from err
