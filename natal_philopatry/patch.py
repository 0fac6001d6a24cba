"""Patches (home ranges): reproduction, dispersal voting, survival.

A patch holds an ordered list of female breeders (index 0 = dominant,
rank = index + 1) and at most one resident male. Per tick the simulation
driver calls, in this order:

  1. a mating strategy     : clears last tick's offspring and breeds
  2. Patch.disperse()      : males leave, daughters are polled and placed
  3. Patch.survive()       : density-dependent breeder and male mortality

Daughters stay with probability x·y where
  x(n, R) = 1 / (1 + exp(B0 + n·B1 + R·B2))   daughter's own phenotype
  y(n, R) = 1 / (1 + exp(A0 + n·A1 + R·A2))   resident at rank R
and the offspring/breeder vote strategies decide which x and y count.

Mating, placement and vote strategies are plain functions so that
strategies.resolve_strategies() can bind them once per run.
"""

from __future__ import annotations

import math
from collections import defaultdict
from dataclasses import dataclass
from typing import Callable, List, Optional

import numpy as np

from natal_philopatry.config import SimulationConfig, SurvivalSection
from natal_philopatry.individual import Individual
from natal_philopatry.types import Locus, VoteRecord


# ═══════════════════════════════════════════════════════════════════════
# BEHAVIOURAL FUNCTIONS
# ═══════════════════════════════════════════════════════════════════════

def fecundity(n: float, R: float, F0: int, phi: float, k: float, delta: float) -> float:
    """F(n, R) = F0 (1 - phi n)(1 - exp(-k n)) R^-delta.

    Used as a per-trial success probability; values outside [0, 1]
    behave as clamped.
    """
    return F0 * (1.0 - phi * n) * (1.0 - math.exp(-k * n)) * R ** (-delta)


def _decline(z: float) -> float:
    """1 / (1 + e^z) without overflow for large |z|."""
    if z > 0.0:
        e = math.exp(-z)
        return e / (1.0 + e)
    return 1.0 / (1.0 + math.exp(z))


def stay_probability(offspring: Individual, n: float, R: float) -> float:
    """x(n, R) from the offspring's dispersal triple."""
    ph = offspring.phenotype
    return _decline(ph[Locus.B0] + n * ph[Locus.B1] + R * ph[Locus.B2])


def accept_probability(breeder: Individual, n: float, R: float) -> float:
    """y(n, R) from the resident's acceptance triple."""
    ph = breeder.phenotype
    return _decline(ph[Locus.A0] + n * ph[Locus.A1] + R * ph[Locus.A2])


def survival_probability(theta: float, Smax: float, gamma: float, n: float) -> float:
    """S(n) = theta + (Smax - theta)(1 - exp(-gamma n))."""
    return theta + (Smax - theta) * (1.0 - math.exp(-gamma * n))


@dataclass(frozen=True)
class BreedingParams:
    """Reproduction parameters, parsed once per run."""
    F0: int
    phi: float
    k: float
    delta: float
    mu: float
    mutation_scale: float
    mask: np.ndarray

    @classmethod
    def from_config(cls, config: SimulationConfig) -> BreedingParams:
        f, g = config.fecundity, config.genetics
        return cls(
            F0=int(f.F0), phi=f.phi, k=f.k, delta=f.delta,
            mu=g.mu, mutation_scale=g.mutation_scale, mask=g.mask_vector,
        )


# ═══════════════════════════════════════════════════════════════════════
# PATCH
# ═══════════════════════════════════════════════════════════════════════

class Patch:
    """A home range: rank-ordered female breeders plus an optional male."""

    def __init__(
        self,
        dominant: Optional[Individual] = None,
        male: Optional[Individual] = None,
    ):
        self.breeders: List[Individual] = [dominant] if dominant is not None else []
        self.male: Optional[Individual] = male
        # Transient, rebuilt every tick by the mating strategy
        self.female_offspring: List[Individual] = []
        self.male_offspring: List[Individual] = []
        self.stay_probs: List[float] = []     # x, one per daughter
        self.accept_probs: List[float] = []   # y, one per breeder rank
        self.mother_ranks: List[int] = []     # R, one per daughter
        self.verdicts: List[VoteRecord] = []  # poll outcome x, y, n, R

    @property
    def is_empty(self) -> bool:
        """True without female breeders, whether or not a male is resident."""
        return not self.breeders

    @property
    def size(self) -> int:
        return len(self.breeders)

    @property
    def has_male(self) -> bool:
        return self.male is not None

    def clear_offspring(self) -> None:
        self.female_offspring = []
        self.male_offspring = []
        self.stay_probs = []
        self.accept_probs = []
        self.mother_ranks = []
        self.verdicts = []

    # ── Reproduction ────────────────────────────────────────────────

    def breed(self, sire: Individual, params: BreedingParams,
              rng: np.random.Generator) -> None:
        """Produce this tick's offspring of every breeder with one sire.

        Records y(n, R) per breeder rank and x(n, R), R per daughter.
        """
        n = float(len(self.breeders))
        for i, mother in enumerate(self.breeders):
            R = i + 1
            self.accept_probs.append(accept_probability(mother, n, R))
            p = fecundity(n, R, params.F0, params.phi, params.k, params.delta)
            p = min(1.0, max(0.0, p))
            n_born = int(rng.binomial(params.F0, p)) if p > 0.0 else 0
            if n_born == 0:
                continue
            for is_female in rng.random(n_born) < 0.5:
                child = Individual.offspring(
                    mother, sire, R, rng,
                    params.mu, params.mutation_scale, params.mask,
                )
                if is_female:
                    self.female_offspring.append(child)
                    self.stay_probs.append(stay_probability(child, n, R))
                    self.mother_ranks.append(R)
                else:
                    self.male_offspring.append(child)

    # ── Dispersal ───────────────────────────────────────────────────

    def disperse_males_and_poll(
        self,
        male_floaters: List[Individual],
        offspring_vote: OffspringVoteFn,
        breeder_vote: BreederVoteFn,
    ) -> bool:
        """Send sons to the floater pool and poll every daughter.

        A male cannot hold an empty patch: he returns to the pool too.

        Returns:
            False if the patch is empty (nothing to poll).
        """
        male_floaters.extend(self.male_offspring)
        self.male_offspring = []
        if self.is_empty:
            if self.male is not None:
                male_floaters.append(self.male)
                self.male = None
            return False
        n = len(self.breeders)
        self.verdicts = [
            VoteRecord(offspring_vote(self, i), breeder_vote(self, i), n, R)
            for i, R in enumerate(self.mother_ranks)
        ]
        return True

    def disperse(
        self,
        female_floaters: List[Individual],
        male_floaters: List[Individual],
        place: PlacementFn,
        offspring_vote: OffspringVoteFn,
        breeder_vote: BreederVoteFn,
        rng: np.random.Generator,
    ) -> None:
        """Resolve dispersal: one Bernoulli(x·y) trial per daughter.

        Retained daughters join the breeders via ``place``; the others
        become female floaters.
        """
        if not self.disperse_males_and_poll(male_floaters, offspring_vote, breeder_vote):
            return
        if not self.female_offspring:
            return
        p_stay = np.array([v.x * v.y for v in self.verdicts])
        stays = rng.random(len(p_stay)) < p_stay
        retained = []
        for daughter, stay in zip(self.female_offspring, stays):
            if stay:
                retained.append(daughter)
            else:
                female_floaters.append(daughter)
        self.female_offspring = []
        if retained:
            place(self, retained, rng)

    # ── Survival & colonization ─────────────────────────────────────

    def survive(self, cfg: SurvivalSection, rng: np.random.Generator) -> None:
        """Density-dependent mortality; newborns (age 0) always survive."""
        n = float(len(self.breeders))
        s_breeder = survival_probability(cfg.thetaB, cfg.Smax, cfg.gamma, n)
        self.breeders = [
            ind for ind in self.breeders
            if ind.age == 0 or rng.random() < s_breeder
        ]
        if self.male is not None and self.male.age > 0:
            s_male = survival_probability(cfg.thetaM, cfg.Smax, cfg.gamma, n)
            if rng.random() >= s_male:
                self.male = None

    def colonize(self, floater: Individual) -> None:
        """Replace every resident by a single female floater."""
        self.breeders = [floater]
        self.male = None

    def __repr__(self) -> str:
        return f"Patch(breeders={len(self.breeders)}, male={self.has_male})"


# ═══════════════════════════════════════════════════════════════════════
# STRATEGIES
# ═══════════════════════════════════════════════════════════════════════

MatingFn = Callable[[Patch, List[Individual], BreedingParams, np.random.Generator], None]
PlacementFn = Callable[[Patch, List[Individual], np.random.Generator], None]
OffspringVoteFn = Callable[[Patch, int], float]
BreederVoteFn = Callable[[Patch, int], float]


# ── Mating ──────────────────────────────────────────────────────────

def mate_random(patch: Patch, male_floaters: List[Individual],
                params: BreedingParams, rng: np.random.Generator) -> None:
    """One male floater, drawn uniformly, sires all offspring of the patch."""
    patch.clear_offspring()
    if male_floaters and not patch.is_empty:
        sire = male_floaters[int(rng.integers(len(male_floaters)))]
        patch.breed(sire, params, rng)


def mate_residency(patch: Patch, male_floaters: List[Individual],
                   params: BreedingParams, rng: np.random.Generator) -> None:
    """The resident male sires; no male, no offspring."""
    patch.clear_offspring()
    if patch.male is not None and not patch.is_empty:
        patch.breed(patch.male, params, rng)


# ── Placement ───────────────────────────────────────────────────────

def place_back(patch: Patch, retained: List[Individual],
               rng: np.random.Generator) -> None:
    """Append retained daughters behind the residents, in random order."""
    rng.shuffle(retained)
    patch.breeders.extend(retained)


def place_sorted(patch: Patch, retained: List[Individual],
                 rng: np.random.Generator) -> None:
    """Insert each daughter right behind her mother and earlier sisters.

    Matches sequential insertion at position R + (daughters placed so far),
    built as a single merge so residents keep their relative order.
    """
    by_rank = defaultdict(list)
    for daughter in retained:
        by_rank[daughter.mother_rank].append(daughter)
    merged = []
    for rank, breeder in enumerate(patch.breeders, start=1):
        merged.append(breeder)
        merged.extend(by_rank.get(rank, ()))
    patch.breeders = merged


# ── Votes ───────────────────────────────────────────────────────────

def offspring_vote_ignore(patch: Patch, i: int) -> float:
    return 1.0


def offspring_vote_account(patch: Patch, i: int) -> float:
    return patch.stay_probs[i]


def breeder_vote_ignore(patch: Patch, i: int) -> float:
    return 1.0


def breeder_vote_kin(patch: Patch, i: int) -> float:
    """The mother decides."""
    return patch.accept_probs[patch.mother_ranks[i] - 1]


def breeder_vote_despotic(patch: Patch, i: int) -> float:
    """The dominant breeder decides, whoever the mother is."""
    return patch.accept_probs[0]


def breeder_vote_egalitarian(patch: Patch, i: int) -> float:
    """Mean over all breeders."""
    return sum(patch.accept_probs) / len(patch.accept_probs)


def breeder_vote_hierarchical(patch: Patch, i: int) -> float:
    """Mean over the mother and every breeder above her."""
    R = patch.mother_ranks[i]
    return sum(patch.accept_probs[:R]) / R
