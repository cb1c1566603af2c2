"""
Maximum characteristic speed of ideal relativistic hydrodynamics.

For a state with flow u^mu and sound speed c_s, the fastest signal along
direction d follows from the quadratic dispersion relation

    lambda = (u^0 |u^d| (1 - c_s^2)
              + sqrt((u0^2 - ud^2 - (u0^2 - ud^2 - 1) c_s^2) c_s^2))
             / (u0^2 (1 - c_s^2) + c_s^2)

multiplied by the metric factor 1/tau for the eta direction.
"""

import numpy as np

from ..core.constants import DPDE_FALLBACK_MAX, MAX_SPEED_TOLERANCE, SMALL_EPS
from ..core.eos import EOSBase
from ..core.exceptions import NumericalConsistencyError
from ..core.grid import PrimitiveState
from ..utils.logging_config import get_logger

logger = get_logger("solvers.signal_speed")


def max_speed(tau: float, direction: int, state: PrimitiveState, eos: EOSBase) -> float:
    """
    Maximum signal speed of a reconstructed state along one grid direction.

    Args:
        tau: Proper time
        direction: 1 (x), 2 (y) or 3 (eta)
        state: Reconstructed face state
        eos: Equation of state

    Returns:
        Speed in coordinate units, within [|u^d|/u^0, 1] before the metric factor

    Raises:
        NumericalConsistencyError: The speed is not causal or the discriminant
            is negative outside the small dP/de regime
    """
    metric_factor = (1.0, 1.0, 1.0 / tau)

    utau = state.u[0]
    utau2 = utau * utau
    ux = abs(state.u[direction])
    ut2mux2 = utau2 - ux * ux

    e, rhob = state.e, state.rhob
    vs2 = eos.get_cs2(e, rhob)
    num_temp_sqrt = (ut2mux2 - (ut2mux2 - 1.0) * vs2) * vs2

    if num_temp_sqrt >= 0.0:
        num = utau * ux * (1.0 - vs2) + np.sqrt(num_temp_sqrt)
    else:
        dpde = eos.get_dpde(e, rhob)
        h = eos.get_pressure(e, rhob) + e
        if dpde < DPDE_FALLBACK_MAX:
            num = np.sqrt(-(h * dpde * h * (dpde * (-1.0 + ut2mux2) - ut2mux2))) - h * (
                -1.0 + dpde
            ) * utau * ux
        else:
            raise NumericalConsistencyError(
                f"Negative discriminant {num_temp_sqrt:.6e} in max_speed at e={e:.6e}, "
                f"rhob={rhob:.6e}, u^tau={utau:.6e}, |u^{direction}|={ux:.6e}, "
                f"cs2={vs2:.6e}, dP/de={dpde:.6e}, dP/drhob={eos.get_dpdrhob(e, rhob):.6e}"
            )

    den = utau2 * (1.0 - vs2) + vs2
    f = num / max(den, SMALL_EPS)

    v = ux / utau
    if f < 0.0:
        raise NumericalConsistencyError(f"Signal speed {f:.6e} is negative")
    elif f < v:
        if num != 0.0:
            if abs(f - v) < MAX_SPEED_TOLERANCE:
                logger.debug(f"Signal speed {f:.10e} snapped to flow velocity {v:.10e}")
                f = v
            else:
                raise NumericalConsistencyError(
                    f"Signal speed {f:.6e} is smaller than the flow velocity {v:.6e}"
                )
    elif f > 1.0:
        if f - 1.0 < MAX_SPEED_TOLERANCE:
            logger.debug(f"Signal speed {f:.10e} snapped to 1")
            return float(metric_factor[direction - 1])
        raise NumericalConsistencyError(
            f"Signal speed {f:.6e} exceeds 1 (num={num:.6e}, den={den:.6e}, cs2={vs2:.6e})"
        )

    return float(f * metric_factor[direction - 1])
