"""
Equation of state interface used by the step.

The update only needs pressure, the speed of sound and the pressure
derivatives as pure functions of (energy density, baryon density).
Temperature and chemical potential are used by the transport coefficients
and the diffusion driving force.
"""

from abc import ABC, abstractmethod

import numpy as np


class EOSBase(ABC):
    """Abstract equation of state P(e, rhob)."""

    @abstractmethod
    def get_pressure(self, e: float, rhob: float) -> float:
        """Pressure P(e, rhob)."""
        pass

    @abstractmethod
    def get_cs2(self, e: float, rhob: float) -> float:
        """Speed of sound squared."""
        pass

    @abstractmethod
    def get_dpde(self, e: float, rhob: float) -> float:
        """Partial derivative dP/de at fixed rhob."""
        pass

    @abstractmethod
    def get_dpdrhob(self, e: float, rhob: float) -> float:
        """Partial derivative dP/drhob at fixed e."""
        pass

    @abstractmethod
    def get_temperature(self, e: float, rhob: float) -> float:
        """Temperature in 1/fm."""
        pass

    @abstractmethod
    def get_muB(self, e: float, rhob: float) -> float:
        """Baryon chemical potential in 1/fm."""
        pass

    def get_entropy_density(self, e: float, rhob: float) -> float:
        """s = (e + P - muB rhob)/T from the Gibbs relation."""
        T = self.get_temperature(e, rhob)
        if T <= 0.0:
            return 0.0
        return (e + self.get_pressure(e, rhob) - self.get_muB(e, rhob) * rhob) / T


class IdealGasEOS(EOSBase):
    """
    Linear equation of state P = c_s^2 e.

    The temperature follows the massless-gas relation e = a T^4 with
    a = pi^2 g / 30, and the baryon chemical potential is zero.
    """

    def __init__(self, cs2: float = 1.0 / 3.0, degrees_of_freedom: float = 47.5):
        if not 0.0 < cs2 <= 1.0:
            raise ValueError(f"Sound speed squared must lie in (0, 1], got {cs2}")
        self.cs2 = cs2
        self.g_eff = degrees_of_freedom
        self.a = np.pi**2 * degrees_of_freedom / 30.0

    def get_pressure(self, e: float, rhob: float) -> float:
        return self.cs2 * e

    def get_cs2(self, e: float, rhob: float) -> float:
        return self.cs2

    def get_dpde(self, e: float, rhob: float) -> float:
        return self.cs2

    def get_dpdrhob(self, e: float, rhob: float) -> float:
        return 0.0

    def get_temperature(self, e: float, rhob: float) -> float:
        return float((max(e, 0.0) / self.a) ** 0.25)

    def get_muB(self, e: float, rhob: float) -> float:
        return 0.0

    def __repr__(self) -> str:
        return f"IdealGasEOS(cs2={self.cs2:.4f}, g_eff={self.g_eff})"
