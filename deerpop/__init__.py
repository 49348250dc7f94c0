"""
Monte Carlo sweep of a deer population and its insurance fund.

This package provides tools for:
- Integrating the coupled population / fund SDE with a Milstein scheme
- Accumulating Monte Carlo moments for each (P, alpha) parameter pair
- Sweeping the parameter grid across MPI ranks and a bounded thread pool
- Writing, loading and summarizing the per-pair result records
"""

__version__ = "0.1.0"

from deerpop.config import Settings, cfg, get_logger, logger

__all__ = ["Settings", "cfg", "get_logger", "logger"]
