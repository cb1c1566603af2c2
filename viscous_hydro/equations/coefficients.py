"""
Transport coefficients for second-order viscous hydrodynamics.

First-order coefficients follow from the specific viscosities eta/s and
zeta/s (constant or temperature dependent). Relaxation times are tied to
them through fixed relaxation-time factors, and the second-order couplings
are the constant values of the 14-moment approximation for a conformal
gas with massless constituents.
"""

import numpy as np

from ..core.config import HydroConfig
from ..core.constants import HBARC, RELAXATION_TIME_FLOOR, SMALL_EPS
from ..core.eos import EOSBase


class TransportCoeffs:
    """
    Local transport coefficients as pure functions of (e, rhob).

    The relaxation-time factors are defined such that

        eta / (tau_pi (e + P)) = 1 / shear_relax_time_factor
        zeta / (tau_Pi (e + P)) = (1/3 - c_s^2)^2 / bulk_relax_time_factor

    which are the combinations entering the causality conditions.
    """

    # Temperature-dependent eta/s: linear on both sides of a kink (T in GeV)
    T_KINK = 0.165
    ETA_OVER_S_LOW_SLOPE = -0.3  # 1/GeV
    ETA_OVER_S_HIGH_SLOPE = 0.8  # 1/GeV

    # Temperature-dependent zeta/s: Gaussian peak near the crossover (T in GeV)
    ZETA_PEAK_T = 0.18
    ZETA_PEAK_WIDTH = 0.024

    def __init__(self, config: HydroConfig, eos: EOSBase):
        self.config = config
        self.eos = eos
        self.shear_relax_time_factor_ = config.shear_relax_time_factor
        self.bulk_relax_time_factor_ = config.bulk_relax_time_factor
        self.relaxation_time_min = RELAXATION_TIME_FLOOR * config.delta_tau

    # First-order coefficients

    def get_eta_over_s(self, T: float, muB: float = 0.0) -> float:
        """Specific shear viscosity; T and muB in 1/fm."""
        if not self.config.T_dependent_shear_to_s:
            return self.config.eta_over_s
        T_GeV = T * HBARC
        slope = self.ETA_OVER_S_LOW_SLOPE if T_GeV < self.T_KINK else self.ETA_OVER_S_HIGH_SLOPE
        return max(0.0, self.config.eta_over_s + slope * (T_GeV - self.T_KINK))

    def get_zeta_over_s(self, T: float) -> float:
        """Specific bulk viscosity; T in 1/fm."""
        if not self.config.T_dependent_bulk_to_s:
            return self.config.zeta_over_s
        T_GeV = T * HBARC
        return self.config.zeta_over_s * np.exp(
            -(((T_GeV - self.ZETA_PEAK_T) / self.ZETA_PEAK_WIDTH) ** 2)
        )

    def shear_viscosity(self, e: float, rhob: float) -> float:
        T = self.eos.get_temperature(e, rhob)
        muB = self.eos.get_muB(e, rhob)
        return self.get_eta_over_s(T, muB) * self.eos.get_entropy_density(e, rhob)

    def bulk_viscosity(self, e: float, rhob: float) -> float:
        T = self.eos.get_temperature(e, rhob)
        return self.get_zeta_over_s(T) * self.eos.get_entropy_density(e, rhob)

    def diffusion_coefficient(self, e: float, rhob: float) -> float:
        """Baryon diffusion coefficient kappa_B in 1/fm^2."""
        T = self.eos.get_temperature(e, rhob)
        if T <= 0.0:
            return 0.0
        enthalpy = e + self.eos.get_pressure(e, rhob)
        kappa = self.config.kappa_coefficient * (
            rhob / (3.0 * T) - rhob * rhob / max(enthalpy, SMALL_EPS)
        )
        return max(kappa, 0.0)

    # Relaxation times

    def shear_relaxation_time(self, e: float, rhob: float) -> float:
        enthalpy = e + self.eos.get_pressure(e, rhob)
        tau_pi = (
            self.shear_relax_time_factor_ * self.shear_viscosity(e, rhob) / max(enthalpy, SMALL_EPS)
        )
        return max(tau_pi, self.relaxation_time_min)

    def bulk_relaxation_time(self, e: float, rhob: float) -> float:
        enthalpy = e + self.eos.get_pressure(e, rhob)
        conformal_breaking = (1.0 / 3.0 - self.eos.get_cs2(e, rhob)) ** 2
        denominator = max(conformal_breaking * enthalpy, SMALL_EPS)
        tau_Pi = self.bulk_relax_time_factor_ * self.bulk_viscosity(e, rhob) / denominator
        return max(tau_Pi, self.relaxation_time_min)

    def diffusion_relaxation_time(self, e: float, rhob: float) -> float:
        T = self.eos.get_temperature(e, rhob)
        if T <= 0.0:
            return self.relaxation_time_min
        return max(self.config.kappa_coefficient / T, self.relaxation_time_min)

    def get_shear_relax_time_factor(self) -> float:
        return self.shear_relax_time_factor_

    def get_bulk_relax_time_factor(self) -> float:
        return self.bulk_relax_time_factor_

    # Second-order coefficients

    # shear
    def get_tau_pipi_coeff(self) -> float:
        return 10.0 / 7.0

    def get_delta_pipi_coeff(self) -> float:
        return 4.0 / 3.0

    def get_phi7_coeff(self) -> float:
        return 9.0 / 70.0

    def get_lambda_piPi_coeff(self) -> float:
        return 6.0 / 5.0

    # bulk
    def get_lambda_Pipi_coeff(self) -> float:
        return 8.0 / 5.0

    def get_delta_PiPi_coeff(self) -> float:
        return 2.0 / 3.0

    def get_tau_PiPi_coeff(self) -> float:
        return 0.0  # not known

    # net baryon diffusion, conformal kinetic theory
    def get_delta_qq_coeff(self) -> float:
        return 1.0

    # 14-moment, massless
    def get_lambda_qq_coeff(self) -> float:
        return 3.0 / 5.0

    def get_l_qpi_coeff(self) -> float:
        return 0.0

    def get_lambda_qpi_coeff(self) -> float:
        return 0.0
