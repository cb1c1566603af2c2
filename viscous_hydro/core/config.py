"""
Simulation settings consumed by the single-step update.

The grid spacing, switches and transport parameters live in one dataclass
that is validated on construction and shared read-only by all workers.
"""

from dataclasses import asdict, dataclass, field, fields
from pathlib import Path
from typing import Any

from .constants import TEST_PROFILES
from .exceptions import ConfigurationError


@dataclass
class HydroConfig:
    """Settings for one Runge-Kutta step of the viscous fluid."""

    # Grid geometry (cell counts and spacings; eta is the space-time rapidity)
    nx: int = 1
    ny: int = 1
    neta: int = 1
    delta_x: float = 0.1  # fm
    delta_y: float = 0.1  # fm
    delta_eta: float = 0.1
    delta_tau: float = 0.01  # fm/c
    boost_invariant: bool = True

    # Physics switches (0/1)
    viscosity_flag: int = 1
    turn_on_shear: int = 1
    turn_on_bulk: int = 0
    turn_on_diff: int = 0
    turn_on_rhob: int = 0

    # Regulation: 0 none, 1 necessary conditions, 2 sufficient conditions
    causality_method: int = 0
    quest_revert_strength: float = 1.0
    echo_level: int = 1
    initial_profile: int = 2

    # Slope limiter strength, 1 is the plain minmod limiter
    theta_flux: float = 1.0

    # Transport parameters
    eta_over_s: float = 0.08
    T_dependent_shear_to_s: int = 0
    zeta_over_s: float = 0.0
    T_dependent_bulk_to_s: int = 0
    kappa_coefficient: float = 0.2
    shear_relax_time_factor: float = 5.0
    bulk_relax_time_factor: float = 1.0 / 14.55

    # Execution
    n_workers: int = 1
    diagnostics_dir: Path = field(default_factory=lambda: Path("."))

    def __post_init__(self) -> None:
        self.diagnostics_dir = Path(self.diagnostics_dir)
        self._validate()

    def _validate(self) -> None:
        for name in ("nx", "ny", "neta", "n_workers"):
            if getattr(self, name) < 1:
                raise ConfigurationError(f"{name} must be at least 1, got {getattr(self, name)}")

        for name in ("delta_x", "delta_y", "delta_eta", "delta_tau"):
            if not getattr(self, name) > 0:
                raise ConfigurationError(f"{name} must be positive, got {getattr(self, name)}")

        for name in (
            "viscosity_flag",
            "turn_on_shear",
            "turn_on_bulk",
            "turn_on_diff",
            "turn_on_rhob",
            "T_dependent_shear_to_s",
            "T_dependent_bulk_to_s",
        ):
            if getattr(self, name) not in (0, 1):
                raise ConfigurationError(f"{name} must be 0 or 1, got {getattr(self, name)}")

        if self.causality_method not in (0, 1, 2):
            raise ConfigurationError(
                f"causality_method must be 0 (off), 1 (necessary) or 2 (sufficient), "
                f"got {self.causality_method}"
            )
        if not 1.0 <= self.theta_flux <= 2.0:
            raise ConfigurationError(f"theta_flux must lie in [1, 2], got {self.theta_flux}")
        if not self.quest_revert_strength > 0:
            raise ConfigurationError("quest_revert_strength must be positive")
        if self.eta_over_s < 0 or self.zeta_over_s < 0:
            raise ConfigurationError("eta/s and zeta/s must be non-negative")
        if self.shear_relax_time_factor <= 0 or self.bulk_relax_time_factor <= 0:
            raise ConfigurationError("Relaxation time factors must be positive")
        if self.kappa_coefficient < 0:
            raise ConfigurationError("kappa_coefficient must be non-negative")

    @property
    def x_size(self) -> float:
        return (self.nx - 1) * self.delta_x

    @property
    def y_size(self) -> float:
        return (self.ny - 1) * self.delta_y

    @property
    def eta_size(self) -> float:
        return (self.neta - 1) * self.delta_eta

    @property
    def grid_shape(self) -> tuple[int, int, int]:
        return (self.nx, self.ny, self.neta)

    @property
    def regulation_enabled(self) -> bool:
        """Causality and stability corrections are skipped for analytic test profiles."""
        return self.initial_profile not in TEST_PROFILES

    def cell_coordinates(self, ix: int, iy: int, ieta: int) -> tuple[float, float, float]:
        """Cell-centre (x, y, eta_s) with the grid centred on the origin."""
        x_local = -self.x_size / 2.0 + ix * self.delta_x
        y_local = -self.y_size / 2.0 + iy * self.delta_y
        eta_s_local = -self.eta_size / 2.0 + ieta * self.delta_eta
        return x_local, y_local, eta_s_local

    @classmethod
    def from_dict(cls, params: dict[str, Any]) -> "HydroConfig":
        """Build a config from a plain mapping, rejecting unknown keys."""
        known = {f.name for f in fields(cls)}
        unknown = set(params) - known
        if unknown:
            raise ConfigurationError(f"Unknown configuration keys: {sorted(unknown)}")
        return cls(**params)

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)
