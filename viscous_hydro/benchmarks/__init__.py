"""
Analytical benchmarks for the single-step update.
"""

from .bjorken_flow import (
    BjorkenFlowSolution,
    convergence_study,
    estimate_convergence_order,
    run_bjorken_evolution,
)

__all__ = [
    "BjorkenFlowSolution",
    "convergence_study",
    "estimate_convergence_order",
    "run_bjorken_evolution",
]
