"""
Tests for the transport coefficients.

Validates the eta/s and zeta/s parametrizations, the relaxation times tied
to them through the relaxation-time factors, and the floor at a few time
steps that keeps the explicit update stable.
"""

import numpy as np
import pytest

from viscous_hydro.core.config import HydroConfig
from viscous_hydro.core.constants import HBARC, RELAXATION_TIME_FLOOR
from viscous_hydro.core.eos import IdealGasEOS
from viscous_hydro.equations.coefficients import TransportCoeffs


class TestFirstOrderCoefficients:

    def setup_method(self):
        self.eos = IdealGasEOS()
        self.config = HydroConfig(eta_over_s=0.16, zeta_over_s=0.05, delta_tau=1e-4)
        self.coeffs = TransportCoeffs(self.config, self.eos)
        self.e = 20.0

    def test_constant_eta_over_s(self):
        eta = self.coeffs.shear_viscosity(self.e, 0.0)
        s = self.eos.get_entropy_density(self.e, 0.0)
        assert eta == pytest.approx(0.16 * s)

    def test_temperature_dependent_eta_over_s(self):
        config = HydroConfig(eta_over_s=0.08, T_dependent_shear_to_s=1)
        coeffs = TransportCoeffs(config, self.eos)

        T_kink = TransportCoeffs.T_KINK / HBARC
        assert coeffs.get_eta_over_s(T_kink) == pytest.approx(0.08)
        assert coeffs.get_eta_over_s(T_kink + 0.1 / HBARC) == pytest.approx(0.08 + 0.08)
        assert coeffs.get_eta_over_s(T_kink - 0.1 / HBARC) == pytest.approx(0.08 + 0.03)

    def test_bulk_peak(self):
        config = HydroConfig(zeta_over_s=0.1, T_dependent_bulk_to_s=1)
        coeffs = TransportCoeffs(config, self.eos)
        T_peak = TransportCoeffs.ZETA_PEAK_T / HBARC
        assert coeffs.get_zeta_over_s(T_peak) == pytest.approx(0.1)
        assert coeffs.get_zeta_over_s(T_peak + 0.1 / HBARC) < 1e-6

    def test_diffusion_coefficient_vanishes_without_baryons(self):
        assert self.coeffs.diffusion_coefficient(self.e, 0.0) == 0.0
        assert self.coeffs.diffusion_coefficient(self.e, 0.05) > 0.0


class TestRelaxationTimes:
    """Relaxation times follow the relaxation-time factors above the floor."""

    def setup_method(self):
        self.eos = IdealGasEOS(cs2=0.25)
        self.config = HydroConfig(
            eta_over_s=0.2, zeta_over_s=0.04, delta_tau=1e-4, shear_relax_time_factor=5.0
        )
        self.coeffs = TransportCoeffs(self.config, self.eos)

    def test_shear_relaxation_factor(self):
        e = 30.0
        enthalpy = e + self.eos.get_pressure(e, 0.0)
        tau_pi = self.coeffs.shear_relaxation_time(e, 0.0)
        eta = self.coeffs.shear_viscosity(e, 0.0)
        assert eta / (tau_pi * enthalpy) == pytest.approx(1.0 / 5.0)

    def test_bulk_relaxation_factor(self):
        e = 30.0
        enthalpy = e + self.eos.get_pressure(e, 0.0)
        tau_Pi = self.coeffs.bulk_relaxation_time(e, 0.0)
        zeta = self.coeffs.bulk_viscosity(e, 0.0)
        expected = (1.0 / 3.0 - 0.25) ** 2 / self.config.bulk_relax_time_factor
        assert zeta / (tau_Pi * enthalpy) == pytest.approx(expected)

    def test_floor_at_several_time_steps(self):
        config = HydroConfig(eta_over_s=0.0, delta_tau=0.02)
        coeffs = TransportCoeffs(config, self.eos)
        floor = RELAXATION_TIME_FLOOR * 0.02
        assert coeffs.shear_relaxation_time(1.0, 0.0) == pytest.approx(floor)
        assert coeffs.bulk_relaxation_time(1.0, 0.0) == pytest.approx(floor)

    def test_vacuum_relaxation_times_finite(self):
        for tau_relax in (
            self.coeffs.shear_relaxation_time(0.0, 0.0),
            self.coeffs.bulk_relaxation_time(0.0, 0.0),
            self.coeffs.diffusion_relaxation_time(0.0, 0.0),
        ):
            assert np.isfinite(tau_relax)
            assert tau_relax > 0


class TestSecondOrderCoefficients:
    """14-moment values for a massless gas."""

    def test_shear_couplings(self):
        coeffs = TransportCoeffs(HydroConfig(), IdealGasEOS())
        assert coeffs.get_tau_pipi_coeff() == pytest.approx(10.0 / 7.0)
        assert coeffs.get_delta_pipi_coeff() == pytest.approx(4.0 / 3.0)
        assert coeffs.get_phi7_coeff() == pytest.approx(9.0 / 70.0)
        assert coeffs.get_lambda_piPi_coeff() == pytest.approx(6.0 / 5.0)

    def test_bulk_and_diffusion_couplings(self):
        coeffs = TransportCoeffs(HydroConfig(), IdealGasEOS())
        assert coeffs.get_lambda_Pipi_coeff() == pytest.approx(8.0 / 5.0)
        assert coeffs.get_delta_PiPi_coeff() == pytest.approx(2.0 / 3.0)
        assert coeffs.get_delta_qq_coeff() == 1.0
        assert coeffs.get_lambda_qq_coeff() == pytest.approx(3.0 / 5.0)
