"""
Standard-normal pairs for the path integrator.

Each (P, alpha) unit of work owns its own generator, derived from a run-level
seed and the unit's grid indices, so no generator state is ever shared
between pool threads.
"""

from typing import Optional, Tuple

import numpy as np

TWO_PI = 2.0 * np.pi


def box_muller(uniforms: np.ndarray) -> np.ndarray:
    """
    Map an (n, 2) array of uniforms on [0, 1) to (n, 2) standard normals.

    The first column is flipped onto (0, 1] so the logarithm stays finite.
    """
    tmp = np.sqrt(-2.0 * np.log(1.0 - uniforms[:, 0]))
    trig = TWO_PI * uniforms[:, 1]
    out = np.empty_like(uniforms)
    out[:, 0] = tmp * np.sin(trig)
    out[:, 1] = tmp * np.cos(trig)
    return out


class RandomNormalSource:
    """Pairs of independent standard normals from two uniform draws."""
    
    def __init__(self, seed=None):
        """
        Parameters
        ----------
        seed : int, SeedSequence or Generator, optional
            Anything accepted by ``numpy.random.default_rng``.
        """
        if isinstance(seed, np.random.Generator):
            self._rng = seed
        else:
            self._rng = np.random.default_rng(seed)
    
    def pairs(self, n: int) -> np.ndarray:
        """Draw ``n`` pairs as an (n, 2) array."""
        return box_muller(self._rng.random((n, 2)))
    
    def pair(self) -> Tuple[float, float]:
        nu = self.pairs(1)[0]
        return float(nu[0]), float(nu[1])
    
    def step_normals(self, n_steps: int) -> np.ndarray:
        """
        Unscaled normals for ``n_steps`` time steps.

        A fresh pair is drawn on every even step and its second component is
        reused on the following odd step, so step 2k takes pair k's first value
        and step 2k+1 its second.
        """
        n_pairs = (n_steps + 1) // 2
        return self.pairs(n_pairs).ravel()[:n_steps]


def run_seed_sequence(run_seed: Optional[int] = None) -> np.random.SeedSequence:
    """Root seed for a run; fresh OS entropy when ``run_seed`` is None."""
    return np.random.SeedSequence(run_seed)


def unit_source(root: np.random.SeedSequence, p_index: int, alpha_index: int) -> RandomNormalSource:
    """Independent source for one (P, alpha) unit of work."""
    seq = np.random.SeedSequence([root.entropy, p_index, alpha_index])
    return RandomNormalSource(seq)
