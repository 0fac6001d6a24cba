"""Individuals: genetic records with recombination and Cauchy mutation.

An individual is not much more than a bag of alleles:
  - genome: (2, N_LOCI) float64, the inherited copies [maternal, paternal]
  - phenotype: (N_LOCI,) float64, the expressed alleles = mean of the copies
  - age: ticks survived, starts at 0
  - mother_rank: rank of the mother at birth (founders: 0)

Inheritance (per locus, independently):
  1. One fair coin picks the copy index; the same index is read from the
     mother's and the father's genome.
  2. Each of the two picked contributions mutates with probability mu by
     adding mutation_scale × Cauchy(0, 1).
  3. The locus mask is applied to both contributions.
"""

from __future__ import annotations

from typing import Optional

import numpy as np

from natal_philopatry.types import N_LOCI

_LOCI = np.arange(N_LOCI)


class Individual:
    """A female or male; sex is implied by the container that owns it."""

    __slots__ = ('phenotype', 'genome', 'age', 'mother_rank')

    def __init__(
        self,
        genome: np.ndarray,
        age: int = 0,
        mother_rank: int = 0,
        phenotype: Optional[np.ndarray] = None,
    ):
        self.genome = genome
        self.phenotype = genome.mean(axis=0) if phenotype is None else phenotype
        self.age = age
        self.mother_rank = mother_rank

    @classmethod
    def founder(cls, alleles: np.ndarray, mask: np.ndarray) -> Individual:
        """Create a founder whose copies and phenotype equal alleles × mask."""
        masked = np.asarray(alleles, dtype=np.float64) * np.asarray(mask, dtype=np.float64)
        genome = np.vstack([masked, masked])
        return cls(genome, phenotype=masked.copy())

    @classmethod
    def offspring(
        cls,
        female: Individual,
        male: Individual,
        mother_rank: int,
        rng: np.random.Generator,
        mu: float,
        mutation_scale: float,
        mask: np.ndarray,
    ) -> Individual:
        """Create an offspring by per-locus recombination and mutation.

        Args:
            female: Mother.
            male: Father.
            mother_rank: Mother's 1-based rank in her patch.
            rng: Random stream of the simulation.
            mu: Mutation probability per inherited copy and locus.
            mutation_scale: Scale of the Cauchy mutation step.
            mask: (N_LOCI,) locus mask.

        Returns:
            New Individual of age 0.
        """
        recomb = rng.integers(0, 2, size=N_LOCI)
        contrib = np.vstack([
            female.genome[recomb, _LOCI],
            male.genome[recomb, _LOCI],
        ])
        if mu > 0.0:
            mutate = rng.random(contrib.shape) < mu
            n_mut = int(mutate.sum())
            if n_mut:
                contrib[mutate] += mutation_scale * rng.standard_cauchy(n_mut)
        genome = contrib * mask
        return cls(genome, mother_rank=mother_rank)

    @property
    def maternal(self) -> np.ndarray:
        return self.genome[0]

    @property
    def paternal(self) -> np.ndarray:
        return self.genome[1]

    def __repr__(self) -> str:
        alleles = ' '.join(f'{a:.3g}' for a in self.phenotype)
        return f"Individual(age={self.age}, mother_rank={self.mother_rank}, phenotype=[{alleles}])"
