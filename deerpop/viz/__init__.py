"""Visualization modules."""

from deerpop.viz.plots import plot_moment_surface

__all__ = ["plot_moment_surface"]
