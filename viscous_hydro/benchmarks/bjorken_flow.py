"""
Bjorken flow benchmark for the single-step update.

Boost-invariant longitudinal expansion without transverse dynamics is the
canonical test of the Milne-coordinate treatment: with u = (1, 0, 0, 0)
every gradient is carried by the geometric terms. A single-cell
boost-invariant grid evolved with the RK step must reproduce

    ideal:          e(tau) = e0 (tau0/tau)^(1 + c_s^2)
    Navier-Stokes:  de/dtau = -(e + P)/tau + 4 eta / (3 tau^2)

and, for the ideal case, converge at second order in delta_tau.
"""

from typing import Any

import numpy as np
import scipy.integrate as integrate

from ..core.config import HydroConfig
from ..core.eos import EOSBase
from ..core.exceptions import ConfigurationError
from ..core.grid import FluidCell, GridRing
from ..core.performance import monitor_performance
from ..equations.coefficients import TransportCoeffs
from ..solvers.advance import Advance


class BjorkenFlowSolution:
    """
    Reference solutions for Bjorken flow with a constant speed of sound.

    Args:
        initial_energy_density: e0 at tau0 in 1/fm^4
        initial_time: tau0 in fm/c
        eos: Equation of state (c_s^2 is taken at e0)
    """

    def __init__(self, initial_energy_density: float, initial_time: float, eos: EOSBase):
        self.e0 = initial_energy_density
        self.tau0 = initial_time
        self.eos = eos
        self.cs2 = eos.get_cs2(initial_energy_density, 0.0)

    def ideal_solution(self, tau: float | np.ndarray) -> dict[str, np.ndarray]:
        """e(tau) = e0 (tau0/tau)^(1 + c_s^2)."""
        tau_array = np.atleast_1d(tau).astype(float)
        energy_density = self.e0 * (self.tau0 / tau_array) ** (1.0 + self.cs2)
        return {
            "time": tau_array,
            "energy_density": energy_density,
            "pressure": self.cs2 * energy_density,
            "expansion_rate": 1.0 / tau_array,
        }

    @monitor_performance("bjorken_navier_stokes_solution")
    def navier_stokes_solution(
        self, tau: float | np.ndarray, eta_over_s: float
    ) -> dict[str, np.ndarray]:
        """
        First-order viscous solution with constant eta/s.

        pi^{eta eta} (tau-scaled) = -4 eta / (3 tau) enters the energy
        equation as de/dtau = -(e + P + pi^{eta eta})/tau.
        """
        tau_array = np.atleast_1d(tau).astype(float)

        def rhs(tau_val: float, y: np.ndarray) -> np.ndarray:
            e = max(y[0], 0.0)
            eta = eta_over_s * self.eos.get_entropy_density(e, 0.0)
            return np.array(
                [-(e + self.eos.get_pressure(e, 0.0)) / tau_val + 4.0 * eta / (3.0 * tau_val**2)]
            )

        sol = integrate.solve_ivp(
            rhs,
            [self.tau0, float(np.max(tau_array))],
            [self.e0],
            t_eval=tau_array,
            method="DOP853",
            rtol=1e-10,
            atol=1e-12,
        )
        if not sol.success:
            raise RuntimeError(f"Navier-Stokes Bjorken integration failed: {sol.message}")

        energy_density = sol.y[0]
        entropy_density = np.array(
            [self.eos.get_entropy_density(e, 0.0) for e in energy_density]
        )
        return {
            "time": tau_array,
            "energy_density": energy_density,
            "pi_eta_eta": -4.0 * eta_over_s * entropy_density / (3.0 * tau_array),
        }


def bjorken_initial_cell(
    e0: float, tau0: float, transport: TransportCoeffs | None = None
) -> FluidCell:
    """Cell at rest with the Navier-Stokes shear stress of Bjorken flow when transport is given."""
    cell = FluidCell(epsilon=e0)
    if transport is not None:
        eta = transport.shear_viscosity(e0, 0.0)
        cell.Wmunu[4] = 2.0 * eta / (3.0 * tau0)
        cell.Wmunu[7] = 2.0 * eta / (3.0 * tau0)
        cell.Wmunu[9] = -4.0 * eta / (3.0 * tau0)
    return cell


@monitor_performance("bjorken_evolution")
def run_bjorken_evolution(
    config: HydroConfig,
    eos: EOSBase,
    tau0: float,
    tau_final: float,
    e0: float,
) -> dict[str, np.ndarray]:
    """
    Evolve a single boost-invariant cell from tau0 to tau_final.

    The initial shear stress is the Navier-Stokes value when viscosity and
    shear are switched on, zero otherwise.

    Returns:
        Dictionary with time, energy_density, pi_eta_eta and bulk_pressure histories
    """
    if config.grid_shape != (1, 1, 1) or not config.boost_invariant:
        raise ConfigurationError("Bjorken evolution needs a boost-invariant 1x1x1 grid")

    n_steps = int(round((tau_final - tau0) / config.delta_tau))
    if n_steps < 1:
        raise ConfigurationError(
            f"tau_final={tau_final} is less than one step after tau0={tau0}"
        )

    advance = Advance(config, eos)
    viscous = config.viscosity_flag == 1 and config.turn_on_shear == 1
    initial = bjorken_initial_cell(e0, tau0, advance.transport if viscous else None)
    advance.solve_eigenvalues_wmunu(initial)

    ring = GridRing(1, 1, 1)
    ring.initialize(lambda ix, iy, ieta: initial)

    times = [tau0]
    energy = [e0]
    pi_eta_eta = [initial.Wmunu[9]]
    bulk = [initial.pi_b]
    for step in range(n_steps):
        tau = tau0 + step * config.delta_tau
        advance.advance_step(tau, ring)
        cell = ring.current(0, 0, 0)
        times.append(tau + config.delta_tau)
        energy.append(cell.epsilon)
        pi_eta_eta.append(cell.Wmunu[9])
        bulk.append(cell.pi_b)

    return {
        "time": np.array(times),
        "energy_density": np.array(energy),
        "pi_eta_eta": np.array(pi_eta_eta),
        "bulk_pressure": np.array(bulk),
    }


def estimate_convergence_order(timesteps: list[float], errors: list[float]) -> float:
    """Slope of log(error) against log(delta_tau)."""
    valid = [(dt, err) for dt, err in zip(timesteps, errors) if np.isfinite(err) and err > 0]
    if len(valid) < 2:
        return 0.0
    log_dt = np.log([dt for dt, _ in valid])
    log_err = np.log([err for _, err in valid])
    return float(np.polyfit(log_dt, log_err, 1)[0])


def convergence_study(
    base_config: dict[str, Any],
    eos: EOSBase,
    timesteps: list[float],
    tau0: float = 1.0,
    tau_final: float = 1.5,
    e0: float = 10.0,
) -> dict[str, Any]:
    """
    Final-time error of the ideal Bjorken evolution for several time steps.

    Args:
        base_config: HydroConfig keywords shared by all runs (delta_tau is overridden)
        eos: Equation of state
        timesteps: delta_tau values to run
    """
    reference = BjorkenFlowSolution(e0, tau0, eos)
    e_exact = float(reference.ideal_solution(tau_final)["energy_density"][0])

    errors = []
    for dt in timesteps:
        config = HydroConfig.from_dict({**base_config, "delta_tau": dt})
        result = run_bjorken_evolution(config, eos, tau0, tau_final, e0)
        errors.append(abs(result["energy_density"][-1] - e_exact) / e_exact)

    return {
        "timesteps": list(timesteps),
        "errors": errors,
        "convergence_order": estimate_convergence_order(list(timesteps), errors),
    }
