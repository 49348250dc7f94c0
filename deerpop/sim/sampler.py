"""Monte Carlo replications and moment accumulation for one (P, alpha) pair."""

import math
from dataclasses import dataclass, field
from typing import Tuple

from deerpop.config import get_logger
from deerpop.exceptions import NumericalSingularityError
from deerpop.sim.milstein import StochasticIntegrator
from deerpop.sim.params import ModelParameters, RunConfig
from deerpop.sim.rng import RandomNormalSource

logger = get_logger(__name__)

# Rescaling applied to the fund variable before it enters the sums
FUND_SCALE = 1.0e-1
FUND_SCALE_SQ = 1.0e-2


@dataclass
class MomentAccumulator:
    """Running sums of terminal values across replications."""
    
    sumX: float = 0.0
    sumX2: float = 0.0
    sumM: float = 0.0
    sumM2: float = 0.0
    n: int = 0
    
    def add(self, m0: float, m1: float) -> None:
        self.sumX += m0
        self.sumX2 += m0 * m0
        self.sumM += m1 * FUND_SCALE
        self.sumM2 += m1 * m1 * FUND_SCALE_SQ
        self.n += 1
    
    @property
    def mean_x(self) -> float:
        return self.sumX / self.n
    
    @property
    def var_x(self) -> float:
        return _sample_variance(self.sumX, self.sumX2, self.n)
    
    @property
    def mean_m(self) -> float:
        """Mean terminal fund balance in original units."""
        return self.sumM / self.n / FUND_SCALE
    
    @property
    def var_m(self) -> float:
        """Variance of the terminal fund balance in original units."""
        return _sample_variance(self.sumM, self.sumM2, self.n) / FUND_SCALE_SQ


def _sample_variance(total: float, total_sq: float, n: int) -> float:
    if n < 2:
        return float("nan")
    return (total_sq - total * total / n) / (n - 1)


@dataclass
class SampleResult:
    """Terminal state of the last replication plus the moment sums."""
    
    m0: float
    m1: float
    moments: MomentAccumulator = field(default_factory=MomentAccumulator)


class MonteCarloSampler:
    """
    Run ``number_iters`` independent replications for a fixed (P, alpha).

    Every replication starts from W=0, m0=ftilde, m1=(P-beta*ftilde)/(g-rho)
    and is stepped ``number_time_steps`` times.
    """
    
    def __init__(self, params: ModelParameters, run_config: RunConfig):
        self.params = params
        self.run_config = run_config
        self.integrator = StochasticIntegrator(params, run_config.dt)
        
        if run_config.check_finite and self.integrator.derived.a == 0.0:
            raise NumericalSingularityError(
                f"alpha^2 == 2*rtilde for P={params.P}, alpha={params.alpha}",
                params.P,
                params.alpha,
            )
    
    def run_replication(self, source: RandomNormalSource) -> Tuple[float, float]:
        """One replication; returns the terminal (m0, m1)."""
        normals = source.step_normals(self.run_config.number_time_steps)
        return self.integrator.integrate(normals)
    
    def sample(self, source: RandomNormalSource) -> SampleResult:
        """
        Run all replications and accumulate their moments.

        Parameters
        ----------
        source : RandomNormalSource
            Random source owned by the calling worker.

        Returns
        -------
        SampleResult
            The final replication's terminal (m0, m1) and the moment sums.

        Raises
        ------
        NumericalSingularityError
            Only with ``check_finite``: a replication ended non-finite.
        """
        moments = MomentAccumulator()
        m0 = m1 = float("nan")
        for _ in range(self.run_config.number_iters):
            m0, m1 = self.run_replication(source)
            if self.run_config.check_finite and not (math.isfinite(m0) and math.isfinite(m1)):
                raise NumericalSingularityError(
                    f"non-finite path for P={self.params.P}, alpha={self.params.alpha}: "
                    f"m0={m0}, m1={m1}",
                    self.params.P,
                    self.params.alpha,
                )
            moments.add(m0, m1)
        return SampleResult(m0=m0, m1=m1, moments=moments)
