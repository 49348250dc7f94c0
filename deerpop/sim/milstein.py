"""
Milstein integration of the coupled population / fund SDE system.

The population variable is advanced through a closed-form linearizing
transform driven by an exponentially weighted stochastic integral, and the
fund balance, which depends on it, takes a direct Milstein step:

    I  += exp(a t + alpha W) (dW + alpha/2 (dW^2 - dt))
    z   = rtilde/a - exp(-a t - alpha W) (g0 + alpha rtilde/a I)
    m0  = ftilde / z
    m1 += (rho m1 + P - beta m0) dt - beta m0 dW - alpha beta m0/2 (dW^2 - dt)
    W  += dW

All kernels compile with ``error_model="numpy"``: a zero ``a`` or ``z``
yields Inf/NaN which propagates through the rest of the path.
"""

import math
from dataclasses import dataclass
from typing import Tuple

import numpy as np
from numba import njit

from deerpop.sim.params import ModelParameters


@njit(nogil=True, error_model="numpy")
def milstein_step(
    t: float,
    W: float,
    m0: float,
    m1: float,
    stochastic_integral: float,
    dW: float,
    dt: float,
    P: float,
    alpha: float,
    beta: float,
    rho: float,
    rtilde: float,
    ftilde: float,
    a: float,
    g0: float,
) -> Tuple[float, float, float, float]:
    """Advance one time step; ``dW`` is already scaled by sqrt(dt)."""
    correction = dW * dW - dt
    stochastic_integral += math.exp(a * t + alpha * W) * (dW + 0.5 * alpha * correction)
    z = rtilde / a - math.exp(-a * t - alpha * W) * (
        g0 + ((alpha * rtilde) / a) * stochastic_integral
    )
    m0 = ftilde / z
    m1 += (
        (rho * m1 + P - beta * m0) * dt
        - beta * m0 * dW
        - 0.5 * alpha * beta * m0 * correction
    )
    W += dW
    return W, m0, m1, stochastic_integral


@njit(nogil=True, error_model="numpy")
def integrate_path(
    normals: np.ndarray,
    dt: float,
    m1_start: float,
    P: float,
    alpha: float,
    beta: float,
    rho: float,
    rtilde: float,
    ftilde: float,
    a: float,
    g0: float,
) -> Tuple[float, float]:
    """
    Run one replication over ``len(normals)`` steps.

    Returns the terminal (m0, m1).
    """
    sdt = math.sqrt(dt)
    W = 0.0
    m0 = ftilde
    m1 = m1_start
    stochastic_integral = 0.0
    for k in range(normals.shape[0]):
        t = float(k) * dt
        W, m0, m1, stochastic_integral = milstein_step(
            t, W, m0, m1, stochastic_integral, normals[k] * sdt, dt,
            P, alpha, beta, rho, rtilde, ftilde, a, g0,
        )
    return m0, m1


@dataclass
class PathState:
    """Mutable state of a single replication."""
    
    W: float
    m0: float
    m1: float
    stochastic_integral: float
    
    @property
    def m(self) -> Tuple[float, float]:
        return self.m0, self.m1


class StochasticIntegrator:
    """
    Step-by-step access to the Milstein update for one (P, alpha) pair.

    Uses the same compiled step as the sampler's whole-path kernel.
    """
    
    def __init__(self, params: ModelParameters, dt: float):
        self.params = params
        self.dt = dt
        self.sdt = math.sqrt(dt)
        self.derived = params.derive()
    
    def start(self) -> PathState:
        """Initial conditions: W=0, m0=ftilde, m1=(P-beta*ftilde)/(g-rho)."""
        return PathState(
            W=0.0,
            m0=self.derived.ftilde,
            m1=self.params.initial_fund(),
            stochastic_integral=0.0,
        )
    
    def advance(self, state: PathState, t: float, dW: float) -> PathState:
        """Apply one step in place and return ``state``."""
        p, d = self.params, self.derived
        state.W, state.m0, state.m1, state.stochastic_integral = milstein_step(
            t, state.W, state.m0, state.m1, state.stochastic_integral, dW, self.dt,
            p.P, p.alpha, p.beta, p.rho, d.rtilde, d.ftilde, d.a, d.g0,
        )
        return state
    
    def run(self, source, n_steps: int) -> np.ndarray:
        """
        Integrate one path drawing from ``source`` and return the trajectory.

        Parameters
        ----------
        source : RandomNormalSource
            Anything with a ``pair()`` method returning two standard normals.
        n_steps : int
            Number of time steps.

        Returns
        -------
        np.ndarray
            Array of shape (n_steps + 1, 2) holding (m0, m1) after each step,
            starting with the initial conditions.
        """
        state = self.start()
        trajectory = np.empty((n_steps + 1, 2))
        trajectory[0] = state.m
        nu = (0.0, 0.0)
        for k in range(n_steps):
            if k % 2 == 0:
                nu = source.pair()
                dW = nu[0] * self.sdt
            else:
                dW = nu[1] * self.sdt  # reuse the second value of the pair
            self.advance(state, float(k) * self.dt, dW)
            trajectory[k + 1] = state.m
        return trajectory
    
    def integrate(self, normals: np.ndarray) -> Tuple[float, float]:
        """Terminal (m0, m1) for a precomputed array of unscaled normals."""
        p, d = self.params, self.derived
        return integrate_path(
            np.ascontiguousarray(normals, dtype=np.float64), self.dt,
            self.params.initial_fund(),
            p.P, p.alpha, p.beta, p.rho, d.rtilde, d.ftilde, d.a, d.g0,
        )
