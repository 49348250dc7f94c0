"""Numerical core: parameters, random source, integrator, sampler and sweep."""

from deerpop.sim.params import DerivedParameters, ModelParameters, ParameterGrid, RunConfig
from deerpop.sim.rng import RandomNormalSource
from deerpop.sim.milstein import PathState, StochasticIntegrator
from deerpop.sim.sampler import MomentAccumulator, MonteCarloSampler, SampleResult
from deerpop.sim.sweep import SweepResult, run_sweep

__all__ = [
    "DerivedParameters",
    "ModelParameters",
    "ParameterGrid",
    "RunConfig",
    "RandomNormalSource",
    "PathState",
    "StochasticIntegrator",
    "MomentAccumulator",
    "MonteCarloSampler",
    "SampleResult",
    "SweepResult",
    "run_sweep",
]
