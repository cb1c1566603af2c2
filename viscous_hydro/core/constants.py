"""
Physical constants, numerical thresholds and index conventions.

Natural units with energies in 1/fm (c = hbar = k_B = 1). Energy densities
are in 1/fm^4, so multiply by HBARC to get GeV/fm^3.
"""

import numpy as np

# hbar*c in GeV fm
HBARC = 0.19733

# Smallest positive denominator used to regularize divisions
SMALL_EPS = 1e-16

# Metric signature (-,+,+,+)
METRIC_DIAG = np.array([-1.0, 1.0, 1.0, 1.0])

# Dilute-region regulation (QuestRevert)
EPS_SCALE = 0.1  # 1/fm^4
QUEST_REVERT_XI = 0.05  # width of the sigmoid in 1/fm^4
RHO_SHEAR_MAX = 0.1
RHO_BULK_MAX = 0.1
RHO_Q_MAX = 0.1
ECHO_LEVEL_WARNING = 5  # diagnostics are reported above this echo level

# Causality enforcement
CAUSALITY_LOG_EPS_MIN = 0.01  # cells above this energy density are recorded
BISECTION_TOLERANCE = 1e-4
CONDITION_TOLERANCE = 1e-12  # a condition counts as violated below -CONDITION_TOLERANCE
SUFF5_CS2_FALLBACK = 0.15  # below this c_s^2 a failed bracket falls back to zero

NECESSARY_LOG_NAME = "necessary_causality_reduction_factor_wtau.dat"
SUFFICIENT_LOG_NAME = "sufficient_causality_reduction_factor_wtau.dat"

# Signal speed
MAX_SPEED_TOLERANCE = 1e-4  # snap band for f slightly below |v|
DPDE_FALLBACK_MAX = 1e-3  # limiting form valid only for dP/de below this

# Explicit relaxation times are floored at this multiple of delta_tau
RELAXATION_TIME_FLOOR = 3.0

# Initial profiles that are analytic test setups; no regulation is applied
TEST_PROFILES = (0, 1)

# Number of conserved components: T^{tau mu} (4) + J^tau (1)
N_CONSERVED = 5

# Storage for W: 10 shear entries followed by 4 diffusion entries
N_WMUNU = 14

# Upper-triangle map for W^{mu nu}; row 4 addresses the diffusion current q^nu
_IDX_MAP_2D_TO_1D = np.array(
    [
        [0, 1, 2, 3],
        [1, 4, 5, 6],
        [2, 5, 7, 8],
        [3, 6, 8, 9],
        [10, 11, 12, 13],
    ],
    dtype=int,
)

_IDX_MAP_1D_TO_2D = (
    (0, 0), (0, 1), (0, 2), (0, 3),
    (1, 1), (1, 2), (1, 3),
    (2, 2), (2, 3),
    (3, 3),
    (4, 0), (4, 1), (4, 2), (4, 3),
)


def map_2d_idx_to_1d(mu: int, nu: int) -> int:
    """Storage index of W^{mu nu} (mu = 4 selects the diffusion current)."""
    return int(_IDX_MAP_2D_TO_1D[mu, nu])


def map_1d_idx_to_2d(idx_1d: int) -> tuple[int, int]:
    """Inverse of :func:`map_2d_idx_to_1d` on the upper triangle."""
    return _IDX_MAP_1D_TO_2D[idx_1d]
