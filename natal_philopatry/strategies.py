"""Strategy dispatch tables.

The four strategy selectors of a run (mating mode, offspring placement,
offspring vote, breeder vote) are resolved ONCE into a frozen StrategySet
of plain callables. The tick loop calls them directly and never branches
on a mode name.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Callable, Dict

import numpy as np

from natal_philopatry.config import ColonizationSection, StrategySection
from natal_philopatry.patch import (
    BreederVoteFn,
    MatingFn,
    OffspringVoteFn,
    PlacementFn,
    breeder_vote_despotic,
    breeder_vote_egalitarian,
    breeder_vote_hierarchical,
    breeder_vote_ignore,
    breeder_vote_kin,
    mate_random,
    mate_residency,
    offspring_vote_account,
    offspring_vote_ignore,
    place_back,
    place_sorted,
)
from natal_philopatry.population import Population
from natal_philopatry.types import (
    BreederVote,
    Mating,
    OffspringPlacement,
    OffspringVote,
    TakeoverStats,
)


ColonizationFn = Callable[[Population, ColonizationSection, np.random.Generator], TakeoverStats]


MATING: Dict[Mating, MatingFn] = {
    Mating.RANDOM: mate_random,
    Mating.RESIDENCY: mate_residency,
}

# Colonization must agree with the mating mode: residency also fills
# vacant male posts from the male floater pool.
COLONIZATION: Dict[Mating, ColonizationFn] = {
    Mating.RANDOM: Population.colonize_random,
    Mating.RESIDENCY: Population.colonize_residency,
}

PLACEMENT: Dict[OffspringPlacement, PlacementFn] = {
    OffspringPlacement.BACK: place_back,
    OffspringPlacement.SORT: place_sorted,
}

OFFSPRING_VOTE: Dict[OffspringVote, OffspringVoteFn] = {
    OffspringVote.IGNORE: offspring_vote_ignore,
    OffspringVote.ACCOUNT: offspring_vote_account,
}

BREEDER_VOTE: Dict[BreederVote, BreederVoteFn] = {
    BreederVote.IGNORE: breeder_vote_ignore,
    BreederVote.KIN: breeder_vote_kin,
    BreederVote.DESPOTIC: breeder_vote_despotic,
    BreederVote.EGALITARIAN: breeder_vote_egalitarian,
    BreederVote.HIERARCHICAL: breeder_vote_hierarchical,
}


@dataclass(frozen=True)
class StrategySet:
    """The resolved, immutable strategy combination of one run."""
    mating: Mating
    placement: OffspringPlacement
    ovote: OffspringVote
    bvote: BreederVote
    mate: MatingFn
    colonize: ColonizationFn
    place: PlacementFn
    offspring_vote: OffspringVoteFn
    breeder_vote: BreederVoteFn

    def describe(self) -> str:
        return (
            f"mode={self.mating.value} oplacement={self.placement.value} "
            f"ovote={self.ovote.value} bvote={self.bvote.value}"
        )


def _lookup(enum_cls, name: str, field_name: str):
    try:
        return enum_cls(name)
    except ValueError:
        valid = [e.value for e in enum_cls]
        raise ValueError(
            f"strategy.{field_name} must be one of {valid}, got '{name}'"
        ) from None


def resolve_strategies(section: StrategySection) -> StrategySet:
    """Bind the configured strategy names to their implementations.

    Raises:
        ValueError: If any selector is not a known strategy name.
    """
    mating = _lookup(Mating, section.mode, 'mode')
    placement = _lookup(OffspringPlacement, section.oplacement, 'oplacement')
    ovote = _lookup(OffspringVote, section.ovote, 'ovote')
    bvote = _lookup(BreederVote, section.bvote, 'bvote')
    return StrategySet(
        mating=mating,
        placement=placement,
        ovote=ovote,
        bvote=bvote,
        mate=MATING[mating],
        colonize=COLONIZATION[mating],
        place=PLACEMENT[placement],
        offspring_vote=OFFSPRING_VOTE[ovote],
        breeder_vote=BREEDER_VOTE[bvote],
    )
