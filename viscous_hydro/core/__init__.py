"""
Core module for the viscous hydrodynamics step.

This module provides the building blocks shared by the solvers: settings,
fluid cells and the three-generation grid, the equation of state,
conserved-to-primitive reconstruction, flow derivatives and the exception
hierarchy.
"""

from .config import HydroConfig
from .constants import (
    HBARC,
    METRIC_DIAG,
    N_CONSERVED,
    N_WMUNU,
    SMALL_EPS,
    map_1d_idx_to_2d,
    map_2d_idx_to_1d,
)
from .derivatives import KinematicBundle, VelocityDerivatives, spatial_projector
from .eos import EOSBase, IdealGasEOS
from .exceptions import (
    ConfigurationError,
    HydroError,
    NumericalConsistencyError,
    ReconstructionError,
    RegulationWarning,
)
from .grid import FluidCell, GridRing, HydroGrid, PrimitiveState
from .limiters import Minmod
from .performance import (
    get_step_profiler,
    monitor_performance,
    performance_report,
    profile_operation,
    reset_performance_stats,
)
from .reconstruction import Reconstruction

__all__ = [
    # Settings
    "HydroConfig",
    # Constants and index maps
    "HBARC",
    "METRIC_DIAG",
    "N_CONSERVED",
    "N_WMUNU",
    "SMALL_EPS",
    "map_1d_idx_to_2d",
    "map_2d_idx_to_1d",
    # Grid
    "FluidCell",
    "GridRing",
    "HydroGrid",
    "PrimitiveState",
    # Physics collaborators
    "EOSBase",
    "IdealGasEOS",
    "KinematicBundle",
    "Minmod",
    "Reconstruction",
    "VelocityDerivatives",
    "spatial_projector",
    # Errors
    "ConfigurationError",
    "HydroError",
    "NumericalConsistencyError",
    "ReconstructionError",
    "RegulationWarning",
    # Performance
    "get_step_profiler",
    "monitor_performance",
    "performance_report",
    "profile_operation",
    "reset_performance_stats",
]
