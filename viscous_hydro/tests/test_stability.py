"""
Tests for the dilute-region regulation of pi^{mu nu}, Pi and q^mu.
"""

import warnings
from unittest.mock import patch

import numpy as np
import pytest

from viscous_hydro.core.config import HydroConfig
from viscous_hydro.core.eos import IdealGasEOS
from viscous_hydro.core.exceptions import RegulationWarning
from viscous_hydro.core.grid import FluidCell
from viscous_hydro.equations import stability
from viscous_hydro.equations.stability import StabilityRegulator


def shear_cell(e, components, rhob=0.0):
    cell = FluidCell(epsilon=e, rhob=rhob)
    for idx, value in components.items():
        cell.Wmunu[idx] = value
    cell.Lambdas[:] = [-1.0, 0.0, 1.0]
    return cell


class TestRegulationFactor:

    def setup_method(self):
        self.regulator = StabilityRegulator(HydroConfig(), IdealGasEOS())

    def test_vanishes_in_vacuum(self):
        assert self.regulator.regulation_factor(0.0) == pytest.approx(0.0, abs=1e-14)

    def test_saturates_at_high_density(self):
        expected = 10.0 * (1.0 - 1.0 / (np.exp(2.0) + 1.0))
        assert self.regulator.regulation_factor(50.0) == pytest.approx(expected)

    def test_value_below_scale(self):
        expected = 10.0 * (1.0 / (np.e + 1.0) - 1.0 / (np.e**2 + 1.0))
        assert self.regulator.regulation_factor(0.05) == pytest.approx(expected)

    def test_strength_scales_factor(self):
        strong = StabilityRegulator(HydroConfig(quest_revert_strength=2.0), IdealGasEOS())
        assert strong.regulation_factor(1.0) == pytest.approx(
            2.0 * self.regulator.regulation_factor(1.0)
        )


class TestQuestRevert:

    def setup_method(self):
        self.eos = IdealGasEOS()
        self.regulator = StabilityRegulator(HydroConfig(), self.eos)

    def shear_ratio(self, cell):
        e = cell.epsilon
        eq_size = e * e + 3.0 * self.eos.get_pressure(e, 0.0) ** 2
        return np.sqrt(StabilityRegulator.shear_size(cell) / eq_size) / self.regulator.regulation_factor(e)

    def test_large_shear_is_capped(self):
        cell = shear_cell(0.05, {4: 10.0, 7: 10.0, 9: 10.0})

        shear_scale, bulk_scale = self.regulator.quest_revert(1.0, cell)

        assert 0.0 < shear_scale < 1.0
        assert bulk_scale == 1.0
        assert self.shear_ratio(cell) == pytest.approx(0.1)
        np.testing.assert_allclose(cell.Lambdas, [-shear_scale, 0.0, shear_scale])

    def test_small_shear_untouched(self):
        cell = shear_cell(5.0, {4: 0.01, 7: 0.01, 9: -0.02})
        original = cell.Wmunu.copy()

        assert self.regulator.quest_revert(1.0, cell) == (1.0, 1.0)
        np.testing.assert_array_equal(cell.Wmunu, original)

    def test_shear_size_metric_signs(self):
        cell = shear_cell(1.0, {1: 1.0, 5: 1.0, 4: 2.0})
        assert StabilityRegulator.shear_size(cell) == pytest.approx(4.0 - 2.0 + 2.0)

    def test_nan_shear_is_reset(self):
        cell = shear_cell(1.0, {4: np.nan, 7: 0.1})
        cell.Wmunu[11] = 0.3

        shear_scale, _ = self.regulator.quest_revert(1.0, cell)

        assert shear_scale == 0.0
        np.testing.assert_array_equal(cell.Wmunu[:10], 0.0)
        np.testing.assert_array_equal(cell.Lambdas, 0.0)
        assert cell.Wmunu[11] == 0.3

    def test_large_bulk_is_capped(self):
        cell = FluidCell(epsilon=1.0, pi_b=-1.0)

        _, bulk_scale = self.regulator.quest_revert(1.0, cell)

        eq_size = 1.0 + 3.0 * (1.0 / 3.0) ** 2
        rho_bulk = np.sqrt(3.0 * cell.pi_b**2 / eq_size) / self.regulator.regulation_factor(1.0)
        assert bulk_scale < 1.0
        assert rho_bulk == pytest.approx(0.1)

    def test_nan_bulk_left_unchanged(self):
        cell = FluidCell(epsilon=1.0, pi_b=np.nan)
        _, bulk_scale = self.regulator.quest_revert(1.0, cell)
        assert bulk_scale == 1.0
        assert np.isnan(cell.pi_b)

    def test_diagnostics_only_above_echo_level(self):
        cell = shear_cell(0.5, {4: 10.0, 7: 10.0, 9: 10.0})
        with patch.object(stability, "logger") as mock_logger:
            self.regulator.quest_revert(1.0, cell.copy())
            assert not mock_logger.warning.called

            verbose = StabilityRegulator(HydroConfig(echo_level=9), self.eos)
            verbose.quest_revert(1.0, cell.copy(), ix=3, iy=4, ieta=0)
            assert mock_logger.warning.called
            assert "ix = 3" in mock_logger.warning.call_args[0][0]


class TestQuestRevertQmu:

    def setup_method(self):
        self.regulator = StabilityRegulator(HydroConfig(turn_on_diff=1), IdealGasEOS())

    def test_large_diffusion_is_capped(self):
        cell = FluidCell(epsilon=1.0, rhob=0.1)
        cell.Wmunu[11] = 1.0

        scale = self.regulator.quest_revert_qmu(1.0, cell)

        q = cell.Wmunu[10:14]
        rho_q = np.sqrt(q[1:] @ q[1:] - q[0] ** 2) / 0.1 / self.regulator.regulation_factor(1.0)
        assert 0.0 < scale < 1.0
        assert rho_q == pytest.approx(0.1)

    def test_small_diffusion_untouched(self):
        cell = FluidCell(epsilon=1.0, rhob=0.5)
        cell.Wmunu[12] = 1e-3
        assert self.regulator.quest_revert_qmu(1.0, cell) == 1.0
        assert cell.Wmunu[12] == 1e-3

    def test_timelike_current_reset_with_warning(self):
        cell = FluidCell(epsilon=1.0, rhob=0.5)
        cell.Wmunu[10:14] = [1.0, 0.0, 0.0, 0.0]

        with pytest.warns(RegulationWarning, match="q\\^mu q_mu"):
            scale = self.regulator.quest_revert_qmu(1.0, cell)

        assert scale == 0.0
        np.testing.assert_array_equal(cell.Wmunu[10:14], 0.0)

    def test_spacelike_current_is_not_reset(self):
        """q^mu q_mu > 0 is the physical sign for a current orthogonal to u."""
        cell = FluidCell(epsilon=1.0, rhob=1.0)
        cell.Wmunu[10:14] = [0.001, 0.01, 0.0, 0.0]
        with warnings.catch_warnings():
            warnings.simplefilter("error")
            assert self.regulator.quest_revert_qmu(1.0, cell) == 1.0
        np.testing.assert_array_equal(cell.Wmunu[10:14], [0.001, 0.01, 0.0, 0.0])

    def test_zero_current_without_baryons(self):
        """0/0 compares false and leaves the cell alone."""
        cell = FluidCell(epsilon=1.0, rhob=0.0)
        with warnings.catch_warnings():
            warnings.simplefilter("error")
            assert self.regulator.quest_revert_qmu(1.0, cell) == 1.0
