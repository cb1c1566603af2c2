"""
Slope limiters for the piecewise-linear reconstruction of cell-face states.
"""


class Minmod:
    """
    Generalized minmod limiter.

    For neighbouring values (up1, a, am1) the limited slope is the
    smallest-magnitude candidate among

        theta (up1 - a),  theta (a - am1),  (up1 - am1) / 2

    when all three share a sign, and zero otherwise. theta_flux = 1 gives the
    classic minmod limiter; theta_flux = 2 the monotonized-central one.
    """

    def __init__(self, theta_flux: float = 1.0):
        self.theta_flux = theta_flux

    def minmod_dx(self, up1: float, a: float, am1: float) -> float:
        diffup = (up1 - a) * self.theta_flux
        diffdown = (a - am1) * self.theta_flux
        diffmid = (up1 - am1) * 0.5

        if diffup > 0.0 and diffdown > 0.0 and diffmid > 0.0:
            return min(diffdown, diffmid, diffup)
        if diffup < 0.0 and diffdown < 0.0 and diffmid < 0.0:
            return max(diffdown, diffmid, diffup)
        return 0.0

    def __repr__(self) -> str:
        return f"Minmod(theta_flux={self.theta_flux})"
