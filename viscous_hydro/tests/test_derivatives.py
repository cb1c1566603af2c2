"""
Tests for the flow derivatives in Milne coordinates.

Bjorken flow (u at rest in Milne coordinates) has all its gradients in the
Christoffel terms: theta = 1/tau and sigma^{eta eta} (tau-scaled) = 2/(3 tau).
"""

import numpy as np
import pytest

from viscous_hydro.core.config import HydroConfig
from viscous_hydro.core.derivatives import VelocityDerivatives, spatial_projector
from viscous_hydro.core.eos import IdealGasEOS
from viscous_hydro.core.grid import HydroGrid


@pytest.fixture
def eos():
    return IdealGasEOS()


class TestBjorkenKinematics:

    def setup_method(self):
        self.config = HydroConfig(delta_tau=0.02)
        self.prev = HydroGrid(1, 1, 1)
        self.current = HydroGrid(1, 1, 1)
        self.prev.fill(5.0)
        self.current.fill(5.0)

    @pytest.mark.parametrize("tau", [0.6, 1.0, 4.0])
    def test_expansion_rate(self, eos, tau):
        kin = VelocityDerivatives(self.config, eos).compute(tau, self.prev, self.current, 0, 0, 0)
        assert kin.theta == pytest.approx(1.0 / tau)

    def test_shear_tensor(self, eos):
        tau = 0.8
        kin = VelocityDerivatives(self.config, eos).compute(tau, self.prev, self.current, 0, 0, 0)

        expected = np.diag([0.0, -1.0 / (3.0 * tau), -1.0 / (3.0 * tau), 2.0 / (3.0 * tau)])
        np.testing.assert_allclose(kin.sigma, expected, atol=1e-14)
        np.testing.assert_allclose(kin.a, 0.0, atol=1e-14)
        np.testing.assert_allclose(kin.omega, 0.0, atol=1e-14)

    def test_shear_is_traceless_and_transverse(self, eos):
        kin = VelocityDerivatives(self.config, eos).compute(1.0, self.prev, self.current, 0, 0, 0)
        g = np.diag([-1.0, 1.0, 1.0, 1.0])
        assert np.trace(kin.sigma @ g) == pytest.approx(0.0, abs=1e-14)
        np.testing.assert_allclose(g @ np.array([1.0, 0, 0, 0]) @ kin.sigma, 0.0, atol=1e-14)


class TestFiniteDifferences:
    """Central differences in the interior, one-sided at the edges."""

    def setup_method(self):
        self.config = HydroConfig(nx=5, delta_x=0.5, delta_tau=0.1)
        self.prev = HydroGrid(5, 1, 1)
        self.current = HydroGrid(5, 1, 1)
        for ix, iy, ieta in self.current.indices():
            x = ix * self.config.delta_x
            self.current(ix, iy, ieta).epsilon = 1.0 + 2.0 * x
            self.prev(ix, iy, ieta).epsilon = 1.0 + 2.0 * x - 0.3

    def derivative(self, eos, ix):
        return VelocityDerivatives(self.config, eos).partial_derivatives(
            1.0, self.prev, self.current, ix, 0, 0, lambda cell: cell.epsilon
        )

    @pytest.mark.parametrize("ix", [0, 2, 4])
    def test_linear_profile(self, eos, ix):
        grad = self.derivative(eos, ix)
        assert grad[0] == pytest.approx(3.0)
        assert grad[1] == pytest.approx(2.0)
        assert grad[2] == 0.0
        assert grad[3] == 0.0

    def test_boosted_shear_transverse(self, eos):
        """A uniformly boosted Bjorken flow keeps sigma transverse and traceless."""
        gamma = 1.0 / np.sqrt(1.0 - 0.09 - 0.04)
        u = np.array([gamma, 0.3 * gamma, 0.2 * gamma, 0.0])
        for ix, iy, ieta in self.current.indices():
            self.current(ix, iy, ieta).u[:] = u
            self.prev(ix, iy, ieta).u[:] = u

        kin = VelocityDerivatives(self.config, eos).compute(1.2, self.prev, self.current, 2, 0, 0)
        u = self.current(2, 0, 0).u
        g = np.diag([-1.0, 1.0, 1.0, 1.0])
        np.testing.assert_allclose((g @ u) @ kin.sigma, 0.0, atol=1e-12)
        assert np.trace(kin.sigma @ g) == pytest.approx(0.0, abs=1e-12)


def test_spatial_projector_annihilates_flow():
    u = np.array([np.cosh(0.4), np.sinh(0.4), 0.0, 0.0])
    g = np.diag([-1.0, 1.0, 1.0, 1.0])
    np.testing.assert_allclose(spatial_projector(u) @ g @ u, 0.0, atol=1e-14)
