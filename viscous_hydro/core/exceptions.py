"""
Exception and warning types for the hydrodynamic step.

Fatal conditions raise a subclass of HydroError and are never caught inside
the package. Recoverable corrections are reported with RegulationWarning.
"""


class HydroError(Exception):
    """Base class for errors raised by viscous_hydro."""
    pass


class NumericalConsistencyError(HydroError, RuntimeError):
    """An internal numerical invariant is broken; the evolution cannot continue."""
    pass


class ReconstructionError(HydroError):
    """The conserved-variable vector does not correspond to a physical state."""
    pass


class ConfigurationError(HydroError, ValueError):
    """Invalid simulation settings."""
    pass


class RegulationWarning(UserWarning):
    """A dissipative quantity was corrected to keep the evolution stable."""
    pass
