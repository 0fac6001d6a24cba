"""Seeded RNG factory for reproducible simulations.

Uses NumPy's SeedSequence → PCG64 hierarchy to guarantee:
  - One Generator per simulation instance, threaded explicitly through
    every stochastic operation (no module-level random state)
  - Statistical independence between repetitions of the same experiment
  - Bit-exact replay with the same master seed
"""

from __future__ import annotations

from typing import List, Optional

import numpy as np


def make_rng(seed: Optional[int] = None) -> np.random.Generator:
    """Create the random stream of a single simulation.

    Args:
        seed: Non-negative seed, or None for fresh OS entropy.

    Returns:
        PCG64-backed Generator.
    """
    return np.random.Generator(np.random.PCG64(np.random.SeedSequence(seed)))


def spawn_repetition_rngs(
    master_seed: Optional[int],
    n_repetitions: int,
    offset: int = 0,
) -> List[np.random.Generator]:
    """Create independent streams for repetitions offset .. offset+n-1.

    Child seeds are spawned for every counter up to offset + n, so the
    stream of repetition r does not depend on the offset it is run with:
    running repetitions 3..4 alone reproduces repetitions 3..4 of a 0..4 batch.

    Args:
        master_seed: Master seed (None = fresh OS entropy).
        n_repetitions: Number of repetitions to run.
        offset: Counter of the first repetition.

    Returns:
        List of n_repetitions Generators.

    Example:
        >>> rngs = spawn_repetition_rngs(42, 3)
        >>> rngs[0].random() != rngs[1].random()
        True
    """
    ss = np.random.SeedSequence(master_seed)
    children = ss.spawn(offset + n_repetitions)
    return [
        np.random.Generator(np.random.PCG64(child))
        for child in children[offset:]
    ]
