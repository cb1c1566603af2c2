"""
Tests for the nonlinear causality enforcement.

The dissipative inputs are normalized by e + P, so cells are built with
eigenvalues given as multiples of the enthalpy.
"""

import warnings
from unittest.mock import patch

import numpy as np
import pytest
import sympy as sp

from viscous_hydro.core.config import HydroConfig
from viscous_hydro.core.constants import NECESSARY_LOG_NAME, SUFFICIENT_LOG_NAME
from viscous_hydro.core.eos import IdealGasEOS
from viscous_hydro.core.exceptions import NumericalConsistencyError, RegulationWarning
from viscous_hydro.core.grid import FluidCell
from viscous_hydro.equations import causality
from viscous_hydro.equations.causality import (
    CausalityEnforcer,
    ReductionFactorLog,
    bisect_root,
)
from viscous_hydro.equations.coefficients import TransportCoeffs


def make_enforcer(tmp_path, cs2=1.0 / 3.0, method=1, **config_kwargs):
    eos = IdealGasEOS(cs2=cs2)
    config = HydroConfig(causality_method=method, diagnostics_dir=tmp_path, **config_kwargs)
    return CausalityEnforcer(config, eos, TransportCoeffs(config, eos)), eos


def causality_cell(eos, e, lambdas_over_h, pi_over_h=0.0):
    """Cell at rest with diagonal shear pi^{ii} = Lambda_i."""
    h = e + eos.get_pressure(e, 0.0)
    cell = FluidCell(epsilon=e, pi_b=pi_over_h * h)
    lambdas = np.sort(np.asarray(lambdas_over_h) * h)
    cell.Wmunu[4], cell.Wmunu[7], cell.Wmunu[9] = lambdas
    cell.Lambdas[:] = lambdas
    return cell


STRONG_SHEAR = (-0.5, -0.2, 0.7)


class TestBisectRoot:

    def test_finds_feasible_side(self):
        found, value = bisect_root(lambda b: 0.3 - b, 0.0, 1.0)
        assert found
        assert value == pytest.approx(0.3, abs=1e-4)
        assert 0.3 - value >= 0.0

    def test_no_sign_change(self):
        found, _ = bisect_root(lambda b: 1.0 + b, 0.0, 1.0)
        assert not found

    def test_inverted_bracket(self):
        with pytest.raises(NumericalConsistencyError):
            bisect_root(lambda b: b, 1.0, 0.5)


class TestReductionFactorLog:

    def test_record_format(self):
        line = ReductionFactorLog.format_record(0.5, 1.25, 0.6)
        assert line.endswith("\n")
        assert line.startswith(" ")
        assert [float(x) for x in line.split()] == [0.5, 1.25, 0.6]

    def test_append_creates_directory(self, tmp_path):
        log = ReductionFactorLog(tmp_path / "diag" / NECESSARY_LOG_NAME)
        log.append(1.0, 2.0, 0.6)
        log.append(0.5, 3.0, 0.7)
        lines = (tmp_path / "diag" / NECESSARY_LOG_NAME).read_text().splitlines()
        assert len(lines) == 2
        assert float(lines[1].split()[0]) == 0.5


class TestNecessaryConditions:

    def test_causal_cell_unchanged(self, tmp_path):
        enforcer, eos = make_enforcer(tmp_path)
        cell = causality_cell(eos, 2.0, (-0.01, 0.0, 0.01))
        original = cell.Wmunu.copy()

        assert enforcer.necessary(cell, 0.6) == 1.0
        np.testing.assert_array_equal(cell.Wmunu, original)

    def test_strong_shear_is_reduced(self, tmp_path):
        enforcer, eos = make_enforcer(tmp_path)
        cell = causality_cell(eos, 2.0, STRONG_SHEAR)

        factor = enforcer.necessary(cell, 0.6)

        assert factor == pytest.approx(0.5)
        assert np.all(enforcer.necessary_conditions(cell) >= -1e-12)
        np.testing.assert_allclose(cell.Lambdas / 2.0 / (4.0 / 3.0), np.multiply(STRONG_SHEAR, 0.5))

    def test_factor_is_root_of_binding_condition(self, tmp_path):
        """The binding affine condition n6 vanishes at the returned factor."""
        enforcer, eos = make_enforcer(tmp_path)
        cell = causality_cell(eos, 2.0, STRONG_SHEAR)
        transport_part, viscous_part = enforcer.necessary_terms(cell)[3]

        beta = sp.symbols("beta")
        root = sp.solve(sp.Float(transport_part) + beta * sp.Float(viscous_part), beta)[0]

        assert enforcer.necessary(cell, 0.6) == pytest.approx(float(root))

    def test_idempotent(self, tmp_path):
        enforcer, eos = make_enforcer(tmp_path)
        cell = causality_cell(eos, 2.0, STRONG_SHEAR, pi_over_h=0.1)
        enforcer.necessary(cell, 0.6)
        assert enforcer.necessary(cell, 0.6) == 1.0

    def test_idempotent_on_random_cells(self, tmp_path):
        """A rescaled cell passes a second check without any further reduction."""
        enforcer, eos = make_enforcer(tmp_path)
        rng = np.random.default_rng(5)
        for _ in range(300):
            cell = causality_cell(
                eos, 1.0, rng.uniform(-1.0, 1.0, size=3), pi_over_h=rng.uniform(-0.3, 0.3)
            )
            enforcer.necessary(cell, 1.0)
            scaled = cell.Wmunu.copy()

            with patch.object(causality, "physics_logger") as mock_logger:
                assert enforcer.necessary(cell, 1.0) == 1.0
                assert not mock_logger.log_regulation.called
            np.testing.assert_array_equal(cell.Wmunu, scaled)

    def test_random_cells(self, tmp_path):
        enforcer, eos = make_enforcer(tmp_path)
        rng = np.random.default_rng(11)
        for _ in range(50):
            l1, l3 = -rng.uniform(0.0, 1.0), rng.uniform(0.0, 1.0)
            cell = causality_cell(eos, 1.0, (l1, -l1 - l3, l3), pi_over_h=rng.uniform(-0.3, 0.3))
            factor = enforcer.necessary(cell, 1.0)
            assert 0.0 <= factor <= 1.0
            assert np.all(enforcer.necessary_conditions(cell) >= -1e-12)

    def test_unsatisfiable_transport_part_zeroes_currents(self, tmp_path):
        """With c_s^2 = 0.9 no positive bulk pressure is causal."""
        enforcer, eos = make_enforcer(tmp_path, cs2=0.9)
        cell = causality_cell(eos, 1.0, (-0.01, 0.0, 0.01), pi_over_h=0.01)

        assert enforcer.necessary(cell, 1.0) == 0.0
        assert cell.pi_b == 0.0
        np.testing.assert_array_equal(cell.Wmunu, 0.0)

    def test_reduction_factor_file(self, tmp_path):
        enforcer, eos = make_enforcer(tmp_path)
        enforcer.necessary(causality_cell(eos, 2.0, STRONG_SHEAR), 0.6)
        # below the recording threshold
        enforcer.necessary(causality_cell(eos, 0.001, STRONG_SHEAR), 0.6)

        lines = (tmp_path / NECESSARY_LOG_NAME).read_text().splitlines()
        assert len(lines) == 1
        factor, e, tau = (float(x) for x in lines[0].split())
        assert factor == pytest.approx(0.5)
        assert e == pytest.approx(2.0)
        assert tau == pytest.approx(0.6)


class TestSufficientConditions:

    def test_causal_cell_unchanged(self, tmp_path):
        enforcer, eos = make_enforcer(tmp_path, method=2)
        cell = causality_cell(eos, 2.0, (-0.01, 0.0, 0.01))
        assert enforcer.sufficient(cell, 0.6) == 1.0

    def test_stricter_than_necessary(self, tmp_path):
        enforcer, eos = make_enforcer(tmp_path, method=2)
        necessary = enforcer.necessary(causality_cell(eos, 2.0, STRONG_SHEAR), 0.6)
        sufficient = enforcer.sufficient(causality_cell(eos, 2.0, STRONG_SHEAR), 0.6)
        assert 0.0 < sufficient < necessary

    def test_nonlinear_conditions_hold_after_scaling(self, tmp_path):
        enforcer, eos = make_enforcer(tmp_path, method=2)
        cell = causality_cell(eos, 2.0, STRONG_SHEAR)
        enforcer.sufficient(cell, 0.6)

        c = enforcer.inputs(cell)
        for condition in (enforcer.suff5, enforcer.suff7, enforcer.suff8):
            assert condition(1.0, c) >= -1e-12
        for transport_part, viscous_part in enforcer.sufficient_terms(cell):
            assert transport_part + viscous_part >= -1e-12

    def test_idempotent(self, tmp_path):
        enforcer, eos = make_enforcer(tmp_path, method=2)
        cell = causality_cell(eos, 2.0, STRONG_SHEAR, pi_over_h=-0.05)
        enforcer.sufficient(cell, 0.6)
        assert enforcer.sufficient(cell, 0.6) == 1.0
        assert (tmp_path / SUFFICIENT_LOG_NAME).exists()

    def test_soft_equation_of_state_falls_back_to_zero(self, tmp_path):
        """Below c_s^2 = 0.15 an unbracketed suff5 root zeroes the currents silently."""
        enforcer, eos = make_enforcer(tmp_path, cs2=0.1, method=2)
        cell = causality_cell(eos, 1.0, (-0.01, 0.0, 0.01))

        with warnings.catch_warnings(record=True) as caught:
            warnings.simplefilter("always")
            factor = enforcer.sufficient(cell, 1.0)

        assert factor == 0.0
        np.testing.assert_array_equal(cell.Wmunu, 0.0)
        assert not [w for w in caught if issubclass(w.category, RegulationWarning)]

    def test_failed_bisection_warns_and_keeps_factor(self, tmp_path):
        enforcer, eos = make_enforcer(tmp_path, method=2, shear_relax_time_factor=1.5)
        cell = causality_cell(eos, 1.0, (-0.001, 0.0, 0.001))

        with pytest.warns(RegulationWarning, match="suff5"):
            factor = enforcer.sufficient(cell, 1.0)

        assert factor == 1.0

    def test_enforce_dispatch(self, tmp_path):
        off, eos = make_enforcer(tmp_path, method=0)
        cell = causality_cell(eos, 2.0, STRONG_SHEAR)
        assert off.enforce(cell, 0.6) == 1.0

        sufficient, _ = make_enforcer(tmp_path, method=2)
        assert sufficient.enforce(cell, 0.6) < 1.0
