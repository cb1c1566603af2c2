"""
Utilities module for viscous hydrodynamics.

This module provides utility functions and configurations including
logging setup and the shared performance/physics loggers.
"""

from .logging_config import (
    HydroLoggerMixin,
    PerformanceLogger,
    PhysicsLogger,
    configure_logging,
    get_logger,
    performance_logger,
    physics_logger,
    setup_from_environment,
)

__all__ = [
    "HydroLoggerMixin",
    "PerformanceLogger",
    "PhysicsLogger",
    "configure_logging",
    "get_logger",
    "performance_logger",
    "physics_logger",
    "setup_from_environment",
]
