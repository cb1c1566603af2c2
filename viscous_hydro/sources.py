"""
External energy-momentum and net-baryon sources.

A source provider injects J^mu (energy-momentum deposited per unit
volume and time) and a baryon rate into the ideal update, for example
from jets or dynamical initialization. Only the interface used by the
single-step update lives here.
"""

from abc import ABC, abstractmethod

import numpy as np


class HydroSourceBase(ABC):
    """Interface for source terms evaluated at a space-time point."""

    def get_number_of_sources(self) -> int:
        """Number of individual sources contributing; zero disables the provider."""
        return 1

    @abstractmethod
    def get_hydro_energy_source(
        self, tau: float, x: float, y: float, eta_s: float, u: np.ndarray
    ) -> np.ndarray:
        """Energy-momentum source j^mu (tau-scaled eta component)."""
        pass

    def get_hydro_rhob_source(
        self, tau: float, x: float, y: float, eta_s: float, u: np.ndarray
    ) -> float:
        """Net-baryon source rate; zero unless overridden."""
        return 0.0


class ConstantHydroSource(HydroSourceBase):
    """Spatially uniform, time independent source, mainly for tests."""

    def __init__(self, energy_momentum: np.ndarray | None = None, rhob_rate: float = 0.0):
        self.energy_momentum = (
            np.zeros(4) if energy_momentum is None else np.asarray(energy_momentum, dtype=float)
        )
        if self.energy_momentum.shape != (4,):
            raise ValueError(f"energy_momentum must have 4 components, got {self.energy_momentum.shape}")
        self.rhob_rate = float(rhob_rate)

    def get_hydro_energy_source(
        self, tau: float, x: float, y: float, eta_s: float, u: np.ndarray
    ) -> np.ndarray:
        return self.energy_momentum.copy()

    def get_hydro_rhob_source(
        self, tau: float, x: float, y: float, eta_s: float, u: np.ndarray
    ) -> float:
        return self.rhob_rate
