"""
Physics equations for the dissipative currents.

This module contains:
- Transport coefficients (first- and second-order)
- Divergence, advection and relaxation sources of pi^{mu nu}, Pi and q^mu
- Causality constraints (necessary and sufficient conditions)
- Dilute-region regulation of the dissipative currents
"""

from .causality import CausalityEnforcer, ReductionFactorLog, bisect_root
from .coefficients import TransportCoeffs
from .dissipative import DissipativeFluxes
from .stability import StabilityRegulator

__all__ = [
    'CausalityEnforcer',
    'DissipativeFluxes',
    'ReductionFactorLog',
    'StabilityRegulator',
    'TransportCoeffs',
    'bisect_root',
]
