"""Tests for natal_philopatry.types — loci, strategy enums, takeover stats."""

import pytest

from natal_philopatry.types import (
    ACCEPTANCE_LOCI,
    DISPERSAL_LOCI,
    LOCUS_NAMES,
    N_LOCI,
    BreederVote,
    Locus,
    Mating,
    OffspringPlacement,
    OffspringVote,
    TakeoverStats,
    VoteRecord,
)


# ── Loci ──────────────────────────────────────────────────────────────

class TestLoci:
    def test_six_loci(self):
        assert N_LOCI == 6
        assert LOCUS_NAMES == ('A0', 'A1', 'A2', 'B0', 'B1', 'B2')

    def test_triples(self):
        loci = list(range(N_LOCI))
        assert loci[ACCEPTANCE_LOCI] == [Locus.A0, Locus.A1, Locus.A2]
        assert loci[DISPERSAL_LOCI] == [Locus.B0, Locus.B1, Locus.B2]


# ── Strategy enums ───────────────────────────────────────────────────

class TestStrategyEnums:
    def test_lookup_by_config_name(self):
        assert Mating("residency") is Mating.RESIDENCY
        assert OffspringPlacement("sort") is OffspringPlacement.SORT
        assert OffspringVote("ignore") is OffspringVote.IGNORE
        assert BreederVote("hierarchical") is BreederVote.HIERARCHICAL

    def test_unknown_name_raises(self):
        with pytest.raises(ValueError):
            BreederVote("anarchic")

    def test_breeder_vote_count(self):
        assert len(BreederVote) == 5


# ── TakeoverStats ────────────────────────────────────────────────────

class TestTakeoverStats:
    def test_defaults_zero(self):
        assert TakeoverStats().as_tuple() == (0, 0, 0)

    def test_add(self):
        s = TakeoverStats(3, 2, 1) + TakeoverStats(1, 1, 0)
        assert s.as_tuple() == (4, 3, 1)

    def test_iadd_in_place(self):
        s = TakeoverStats(1, 1, 1)
        alias = s
        s += TakeoverStats(2, 0, 1)
        assert alias is s
        assert s.as_tuple() == (3, 1, 2)

    def test_sub(self):
        s = TakeoverStats(10, 5, 2) - TakeoverStats(4, 1, 2)
        assert s.as_tuple() == (6, 4, 0)

    def test_division_is_floor_per_field(self):
        s = TakeoverStats(10, 7, 3) / 3
        assert s.as_tuple() == (3, 2, 1)
        assert (TakeoverStats(10, 7, 3) // 3) == s

    def test_interval_average(self):
        """Per-tick average between two cumulative marks."""
        total = TakeoverStats(250, 40, 12)
        mark = TakeoverStats(50, 20, 2)
        assert ((total - mark) / 100).as_tuple() == (2, 0, 0)

    def test_copy_is_independent(self):
        s = TakeoverStats(1, 2, 3)
        c = s.copy()
        c += TakeoverStats(1, 1, 1)
        assert s.as_tuple() == (1, 2, 3)


class TestVoteRecord:
    def test_frozen(self):
        v = VoteRecord(0.5, 0.25, 3, 2)
        with pytest.raises(AttributeError):
            v.x = 1.0
