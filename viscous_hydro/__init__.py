"""
Viscous Relativistic Hydrodynamics Step

One Runge-Kutta update of second-order (Israel-Stewart type) viscous
hydrodynamics on a Milne grid: Kurganov-Tadmor fluxes for the ideal part,
relaxation equations for shear stress, bulk pressure and baryon
diffusion, and regulation of the dissipative currents for causality and
numerical stability.
"""

# Initialize logging system early
from .utils.logging_config import setup_from_environment

setup_from_environment()

__version__ = "0.1.0"
__author__ = "Relativistic Hydrodynamics Team"

from . import (
    benchmarks,
    core,
    equations,
    solvers,
    utils,
)
from .core import FluidCell, GridRing, HydroConfig, HydroGrid, IdealGasEOS
from .solvers import Advance
from .sources import ConstantHydroSource, HydroSourceBase
