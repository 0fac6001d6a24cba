"""Core data types for the natal philopatry model.

This module is the SINGLE SOURCE OF TRUTH for:
  - Locus indices of the allele vector (acceptance triple A*, dispersal triple B*)
  - Strategy enumerations (mating, offspring placement, offspring vote, breeder vote)
  - TakeoverStats: colonization counters with interval arithmetic
  - VoteRecord: the poll outcome of a single female offspring

All modules import these types from here. No other module defines loci.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum, IntEnum


# ═══════════════════════════════════════════════════════════════════════
# GENOTYPE CONSTANTS
# ═══════════════════════════════════════════════════════════════════════

class Locus(IntEnum):
    """Gene loci of the allele vector.

    A0..A2 parameterise the acceptance probability y(n, R) of a resident,
    B0..B2 the stay probability x(n, R) of an offspring.
    """
    A0 = 0
    A1 = 1
    A2 = 2
    B0 = 3
    B1 = 4
    B2 = 5


N_LOCI = len(Locus)  # 6

ACCEPTANCE_LOCI = slice(Locus.A0, Locus.A2 + 1)
DISPERSAL_LOCI = slice(Locus.B0, Locus.B2 + 1)

LOCUS_NAMES = tuple(locus.name for locus in Locus)


# ═══════════════════════════════════════════════════════════════════════
# STRATEGY ENUMERATIONS
# ═══════════════════════════════════════════════════════════════════════
# Values are the names accepted in configuration files and written to the
# result file.

class Mating(str, Enum):
    """Who sires a patch's offspring."""
    RANDOM = "random"          # one male drawn from the male floater pool
    RESIDENCY = "residency"    # the patch's resident male


class OffspringPlacement(str, Enum):
    """Where retained daughters enter the breeder hierarchy."""
    BACK = "back"    # appended, new segment shuffled
    SORT = "sort"    # directly behind the mother


class OffspringVote(str, Enum):
    IGNORE = "ignore"     # always 1.0
    ACCOUNT = "account"   # x(n, R)


class BreederVote(str, Enum):
    IGNORE = "ignore"              # always 1.0
    KIN = "kin"                    # y(n, R) of the mother
    DESPOTIC = "despotic"          # y(n, 1)
    EGALITARIAN = "egalitarian"    # mean y over all ranks
    HIERARCHICAL = "hierarchical"  # mean y over ranks 1..R


# ═══════════════════════════════════════════════════════════════════════
# TAKEOVER STATISTICS
# ═══════════════════════════════════════════════════════════════════════

@dataclass
class TakeoverStats:
    """Counters of one or more colonization passes.

    ``takeovers`` counts every successful colonization (walk-ins included);
    ``walkins`` counts the subset that landed on an empty patch.
    """
    attempts: int = 0
    takeovers: int = 0
    walkins: int = 0

    def __iadd__(self, other: TakeoverStats) -> TakeoverStats:
        self.attempts += other.attempts
        self.takeovers += other.takeovers
        self.walkins += other.walkins
        return self

    def __add__(self, other: TakeoverStats) -> TakeoverStats:
        return TakeoverStats(
            self.attempts + other.attempts,
            self.takeovers + other.takeovers,
            self.walkins + other.walkins,
        )

    def __sub__(self, other: TakeoverStats) -> TakeoverStats:
        return TakeoverStats(
            self.attempts - other.attempts,
            self.takeovers - other.takeovers,
            self.walkins - other.walkins,
        )

    def __truediv__(self, k: int) -> TakeoverStats:
        """Per-field floor division (interval averages are integer counts)."""
        return TakeoverStats(
            self.attempts // k, self.takeovers // k, self.walkins // k
        )

    __floordiv__ = __truediv__

    def copy(self) -> TakeoverStats:
        return TakeoverStats(self.attempts, self.takeovers, self.walkins)

    def as_tuple(self) -> tuple:
        return (self.attempts, self.takeovers, self.walkins)


# ═══════════════════════════════════════════════════════════════════════
# POLL OUTCOME
# ═══════════════════════════════════════════════════════════════════════

@dataclass(frozen=True)
class VoteRecord:
    """Outcome of the poll for one female offspring."""
    x: float   # offspring vote
    y: float   # breeder vote
    n: int     # group size before dispersal
    R: int     # mother's rank (1 = dominant)
