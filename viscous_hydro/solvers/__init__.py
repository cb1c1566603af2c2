"""
Numerical solvers for the single-step update.

- **Signal speed**: maximum characteristic speed of ideal hydrodynamics
- **KT flux**: Kurganov-Tadmor central fluxes with minmod-limited face states
- **Advance**: the two RK sub-steps over the whole grid, ideal and dissipative parts

## Quick Start

```python
from viscous_hydro import Advance, GridRing, HydroConfig, IdealGasEOS

config = HydroConfig(nx=1, ny=1, neta=1, delta_tau=0.01)
ring = GridRing(*config.grid_shape)
ring.current.fill(epsilon=10.0)
ring.prev.copy_from(ring.current)

Advance(config, IdealGasEOS()).advance_step(1.0, ring)
```
"""

from .advance import Advance
from .kt_flux import KTFluxBuilder, get_tjb, tjb_column
from .signal_speed import max_speed

__all__ = [
    "Advance",
    "KTFluxBuilder",
    "get_tjb",
    "max_speed",
    "tjb_column",
]
