"""Model parameters, run configuration and the (P, alpha) parameter grid."""

from dataclasses import dataclass
from typing import Iterator, Tuple

import numpy as np


def calc_delta(the_min: float, the_max: float, number: int) -> float:
    """Step size for ``number`` equal intervals over [the_min, the_max]."""
    if number == 0:
        return 0.0
    return (the_max - the_min) / float(number)


@dataclass(frozen=True)
class DerivedParameters:
    """Quantities computed once per (P, alpha) pair."""
    
    rtilde: float  # scaled growth rate
    ftilde: float  # scaled carrying capacity
    a: float  # exponent of the linearized population solution
    g0: float  # integration constant of the population solution


@dataclass(frozen=True)
class ModelParameters:
    """Fixed model constants plus the two swept values P and alpha."""
    
    r1: float
    h: float
    F: float
    rho: float
    beta: float
    g: float
    P: float
    alpha: float
    
    def derive(self) -> DerivedParameters:
        """
        Compute rtilde, ftilde, a and g0.

        Division by ``a`` follows IEEE rules: when alpha**2 == 2*rtilde the
        result is Inf/NaN instead of an exception.
        """
        with np.errstate(all="ignore"):
            rtilde = np.float64(self.r1) - np.float64(self.h)
            ftilde = (rtilde / np.float64(self.r1)) * np.float64(self.F)
            a = rtilde - 0.5 * (np.float64(self.alpha) * np.float64(self.alpha))
            g0 = 0.5 * np.float64(self.alpha) * np.float64(self.alpha) / a
        return DerivedParameters(
            rtilde=float(rtilde),
            ftilde=float(ftilde),
            a=float(a),
            g0=float(g0),
        )
    
    @property
    def is_singular(self) -> bool:
        """True when the closed-form transform divides by zero."""
        return self.derive().a == 0.0
    
    def initial_fund(self) -> float:
        """Starting fund balance (P - beta*ftilde)/(g - rho)."""
        ftilde = self.derive().ftilde
        with np.errstate(all="ignore"):
            return float(
                (np.float64(self.P) - self.beta * ftilde) / (np.float64(self.g) - self.rho)
            )


@dataclass(frozen=True)
class RunConfig:
    """Runtime replication settings shared by every (P, alpha) pair."""
    
    number_iters: int = 1000
    number_time_steps: int = 1000
    dt: float = 0.01
    verbosity: int = 1
    check_finite: bool = False
    
    def __post_init__(self):
        """Validate configuration parameters."""
        if self.number_iters <= 0:
            raise ValueError("number_iters must be positive")
        if self.number_time_steps <= 0:
            raise ValueError("number_time_steps must be positive")
        if not self.dt > 0:
            raise ValueError("dt must be positive")
    
    @property
    def horizon(self) -> float:
        """Simulated time span dt * number_time_steps."""
        return self.dt * float(self.number_time_steps)


@dataclass(frozen=True)
class ParameterGrid:
    """
    The two-dimensional (P, alpha) sweep.

    P takes ``num_p + 1`` evenly spaced values in [p_min, p_max] and alpha
    takes ``num_alpha + 1`` values in [alpha_min, alpha_max], both ends
    inclusive.
    """
    
    p_min: float
    p_max: float
    num_p: int
    alpha_min: float
    alpha_max: float
    num_alpha: int
    
    def __post_init__(self):
        if self.num_p < 0 or self.num_alpha < 0:
            raise ValueError("grid counts must be non-negative")
    
    @property
    def delta_p(self) -> float:
        return calc_delta(self.p_min, self.p_max, self.num_p)
    
    @property
    def delta_alpha(self) -> float:
        return calc_delta(self.alpha_min, self.alpha_max, self.num_alpha)
    
    @property
    def size(self) -> int:
        """Number of (P, alpha) pairs."""
        return (self.num_p + 1) * (self.num_alpha + 1)
    
    def p_value(self, index: int) -> float:
        return self.p_min + self.delta_p * float(index)
    
    def alpha_value(self, index: int) -> float:
        return self.alpha_min + self.delta_alpha * float(index)
    
    def alphas(self) -> Iterator[Tuple[int, float]]:
        """(index, alpha) over the full alpha axis."""
        for i in range(self.num_alpha + 1):
            yield i, self.alpha_value(i)
    
    def points(self) -> Iterator[Tuple[int, float, int, float]]:
        """(p_index, P, alpha_index, alpha) for every pair, P-major."""
        for ip in range(self.num_p + 1):
            P = self.p_value(ip)
            for ia, alpha in self.alphas():
                yield ip, P, ia, alpha
