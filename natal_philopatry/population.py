"""Population: patches plus the female and male floater pools.

Handles the cross-patch part of a tick:
  - shuffle_floaters(): random order of both pools (colonizers are taken
    from the back of the female pool)
  - floater_survival(): constant survival Sff / Smf per floater
  - colonize_random() / colonize_residency(): Poisson search of floaters
    for patches; walk-ins on empty patches, takeovers of held ones with
    probability k·t0·exp(-tau (n - 1))

Individuals are owned by exactly one container at a time; colonization
moves a floater out of its pool, it never copies.
"""

from __future__ import annotations

import math
from typing import Iterator, List, Optional

import numpy as np

from natal_philopatry.config import ColonizationSection, SimulationConfig
from natal_philopatry.individual import Individual
from natal_philopatry.patch import Patch
from natal_philopatry.types import Mating, TakeoverStats


class Population:
    """All patches of the landscape and the two floater pools."""

    def __init__(
        self,
        patches: List[Patch],
        female_floaters: Optional[List[Individual]] = None,
        male_floaters: Optional[List[Individual]] = None,
    ):
        self.patches = patches
        self.female_floaters: List[Individual] = female_floaters if female_floaters is not None else []
        self.male_floaters: List[Individual] = male_floaters if male_floaters is not None else []

    @classmethod
    def initial(cls, config: SimulationConfig) -> Population:
        """Create the initial population.

        ceil(m0 % of m) patches hold one founder female (plus a founder male
        under residency mating); the rest are empty. nmf founder males start
        in the male floater pool.
        """
        p, g = config.population, config.genetics
        alleles, mask = g.allele_vector, g.mask_vector
        n_occupied = min(p.m, int(math.ceil(p.m0 * p.m / 100.0)))
        residency = config.strategy.mode == Mating.RESIDENCY.value

        patches = []
        for _ in range(n_occupied):
            male = Individual.founder(alleles, mask) if residency else None
            patches.append(Patch(Individual.founder(alleles, mask), male))
        patches.extend(Patch() for _ in range(p.m - n_occupied))
        male_floaters = [Individual.founder(alleles, mask) for _ in range(p.nmf)]
        return cls(patches, male_floaters=male_floaters)

    # ── Views ───────────────────────────────────────────────────────

    def individuals(self) -> Iterator[Individual]:
        """Every living individual: breeders, resident males, floaters."""
        for patch in self.patches:
            yield from patch.breeders
            if patch.male is not None:
                yield patch.male
        yield from self.female_floaters
        yield from self.male_floaters

    def breeders(self) -> Iterator[Individual]:
        for patch in self.patches:
            yield from patch.breeders

    def occupied_patches(self) -> Iterator[Patch]:
        return (patch for patch in self.patches if not patch.is_empty)

    @property
    def n_individuals(self) -> int:
        n = len(self.female_floaters) + len(self.male_floaters)
        for patch in self.patches:
            n += len(patch.breeders) + (patch.male is not None)
        return n

    # ── Floaters ────────────────────────────────────────────────────

    def shuffle_floaters(self, rng: np.random.Generator) -> None:
        rng.shuffle(self.female_floaters)
        rng.shuffle(self.male_floaters)

    def floater_survival(self, Sff: float, Smf: float,
                         rng: np.random.Generator) -> None:
        """Each floater survives independently with the pool's probability."""
        if self.female_floaters:
            keep = rng.random(len(self.female_floaters)) < Sff
            self.female_floaters = [f for f, k in zip(self.female_floaters, keep) if k]
        if self.male_floaters:
            keep = rng.random(len(self.male_floaters)) < Smf
            self.male_floaters = [m for m, k in zip(self.male_floaters, keep) if k]

    # ── Colonization ────────────────────────────────────────────────

    def colonize_random(self, cfg: ColonizationSection,
                        rng: np.random.Generator) -> TakeoverStats:
        """Female floaters search patches (random-mating compatible).

        The Poisson mean eps·|female floaters| is fixed at the start of the
        pass. Patches are visited in order; the pass ends as soon as the
        female pool runs dry. A patch is colonized at most once per pass.

        Returns:
            {attempts, takeovers (walk-ins included), walk-ins} of this pass.
        """
        stats = TakeoverStats()
        if not self.female_floaters:
            return stats
        lam = cfg.eps * len(self.female_floaters)
        for patch in self.patches:
            if not self.female_floaters:
                break
            k = int(rng.poisson(lam))
            stats.attempts += k
            if k == 0:
                continue
            if patch.is_empty:
                stats.walkins += 1
                success = True
            else:
                p_takeover = k * cfg.t0 * math.exp(-cfg.tau * (patch.size - 1))
                success = rng.random() < p_takeover
            if success:
                patch.colonize(self.female_floaters.pop())
                stats.takeovers += 1
        return stats

    def colonize_residency(self, cfg: ColonizationSection,
                           rng: np.random.Generator) -> TakeoverStats:
        """Female pass as colonize_random, then vacant male posts are filled.

        Every patch without a resident male receives the last male floater
        until the male pool is exhausted.
        """
        stats = self.colonize_random(cfg, rng)
        for patch in self.patches:
            if not self.male_floaters:
                break
            if patch.male is None:
                patch.male = self.male_floaters.pop()
        return stats

    def age(self) -> None:
        for ind in self.individuals():
            ind.age += 1

    def __repr__(self) -> str:
        occupied = sum(1 for _ in self.occupied_patches())
        return (
            f"Population(patches={len(self.patches)}, occupied={occupied}, "
            f"female_floaters={len(self.female_floaters)}, "
            f"male_floaters={len(self.male_floaters)})"
        )
