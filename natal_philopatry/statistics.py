"""Read-only statistics of a population.

Every function here only reads the population; none draws random
numbers, so collecting statistics never changes a trajectory.

PopulationSnapshot bundles what the reporting layer consumes at a
logging tick: mean phenotype, group sizes, resident-male presence,
poll outcomes, mothers' ranks, breeder genomes and takeover statistics.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import List, Optional, Tuple

import numpy as np

from natal_philopatry.population import Population
from natal_philopatry.types import N_LOCI, TakeoverStats, VoteRecord


# ═══════════════════════════════════════════════════════════════════════
# COLLECTORS
# ═══════════════════════════════════════════════════════════════════════

def mean_phenotype(population: Population) -> np.ndarray:
    """Mean phenotype over every living individual.

    Returns:
        (N_LOCI,) float64; zeros if the population is extinct.
    """
    phenotypes = [ind.phenotype for ind in population.individuals()]
    if not phenotypes:
        return np.zeros(N_LOCI, dtype=np.float64)
    return np.mean(phenotypes, axis=0)


def group_sizes(population: Population) -> np.ndarray:
    """(m,) number of female breeders per patch, in patch order."""
    return np.array([patch.size for patch in population.patches], dtype=np.int64)


def male_presence(population: Population) -> np.ndarray:
    """(m,) 1 where a resident male holds the patch, else 0."""
    return np.array([patch.has_male for patch in population.patches], dtype=np.int64)


def collect_votes(population: Population) -> List[VoteRecord]:
    """Poll outcomes of this tick, over occupied patches in patch order."""
    votes: List[VoteRecord] = []
    for patch in population.occupied_patches():
        votes.extend(patch.verdicts)
    return votes


def votes_array(votes: List[VoteRecord]) -> np.ndarray:
    """(k, 4) float64 array with columns x, y, n, R."""
    if not votes:
        return np.zeros((0, 4), dtype=np.float64)
    return np.array([(v.x, v.y, v.n, v.R) for v in votes], dtype=np.float64)


def mean_first_vote(population: Population) -> Tuple[float, float]:
    """Mean (x, y) of the first polled daughter of each occupied patch.

    Returns (0, 0) if no patch polled a daughter this tick.
    """
    firsts = [
        patch.verdicts[0] for patch in population.occupied_patches()
        if patch.verdicts
    ]
    if not firsts:
        return 0.0, 0.0
    return (
        sum(v.x for v in firsts) / len(firsts),
        sum(v.y for v in firsts) / len(firsts),
    )


def mother_ranks(population: Population) -> np.ndarray:
    """(n_breeders,) rank of each breeder's mother at birth (0 = founder)."""
    return np.array(
        [ind.mother_rank for ind in population.breeders()], dtype=np.int64
    )


def breeder_genomes(population: Population) -> np.ndarray:
    """(n_breeders, 2, N_LOCI) inherited copies of every breeder."""
    genomes = [ind.genome for ind in population.breeders()]
    if not genomes:
        return np.zeros((0, 2, N_LOCI), dtype=np.float64)
    return np.stack(genomes)


# ═══════════════════════════════════════════════════════════════════════
# SNAPSHOT
# ═══════════════════════════════════════════════════════════════════════

@dataclass
class PopulationSnapshot:
    """Population state at one logging tick."""
    tick: int
    mean_alleles: np.ndarray          # (N_LOCI,) mean phenotype, all individuals
    group_sizes: np.ndarray           # (m,) breeders per patch
    males: np.ndarray                 # (m,) resident male present (0/1)
    votes: List[VoteRecord]           # this tick's poll outcomes
    mother_ranks: np.ndarray          # (n_breeders,)
    breeder_genomes: Optional[np.ndarray]  # (n_breeders, 2, N_LOCI) or None
    n_female_floaters: int
    n_male_floaters: int
    takeover_total: TakeoverStats     # cumulative since tick 0
    takeover_rate: TakeoverStats      # per-tick average since previous snapshot

    @property
    def n_breeders(self) -> int:
        return int(self.group_sizes.sum())

    @property
    def mean_group_size(self) -> float:
        return float(self.group_sizes.mean()) if len(self.group_sizes) else 0.0


def take_snapshot(
    population: Population,
    tick: int,
    takeover_total: TakeoverStats,
    takeover_rate: TakeoverStats,
    include_genomes: bool = True,
) -> PopulationSnapshot:
    """Collect a PopulationSnapshot. Arrays are copies; nothing is shared."""
    return PopulationSnapshot(
        tick=tick,
        mean_alleles=mean_phenotype(population),
        group_sizes=group_sizes(population),
        males=male_presence(population),
        votes=collect_votes(population),
        mother_ranks=mother_ranks(population),
        breeder_genomes=breeder_genomes(population) if include_genomes else None,
        n_female_floaters=len(population.female_floaters),
        n_male_floaters=len(population.male_floaters),
        takeover_total=takeover_total.copy(),
        takeover_rate=takeover_rate.copy(),
    )
