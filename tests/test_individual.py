"""Tests for natal_philopatry.individual — founders, inheritance, mutation."""

import numpy as np
import pytest

from natal_philopatry.individual import Individual

ALLELES = np.array([5.0, 0.0, 0.0, 5.0, 0.0, 0.0])
ONES = np.ones(6)


def _distinct_parents():
    """Parents whose four copies differ at every locus."""
    mother = Individual(np.array([np.full(6, 1.0), np.full(6, 2.0)]))
    father = Individual(np.array([np.full(6, 3.0), np.full(6, 4.0)]))
    return mother, father


class TestFounder:
    def test_copies_and_phenotype_equal_alleles(self):
        ind = Individual.founder(ALLELES, ONES)
        np.testing.assert_array_equal(ind.maternal, ALLELES)
        np.testing.assert_array_equal(ind.paternal, ALLELES)
        np.testing.assert_array_equal(ind.phenotype, ALLELES)
        assert ind.age == 0
        assert ind.mother_rank == 0

    def test_mask_applied(self):
        mask = np.array([1, 0, 1, 1, 0, 1], dtype=float)
        ind = Individual.founder(np.arange(1.0, 7.0), mask)
        np.testing.assert_array_equal(ind.phenotype, [1, 0, 3, 4, 0, 6])

    def test_founders_do_not_share_arrays(self):
        a = Individual.founder(ALLELES, ONES)
        b = Individual.founder(ALLELES, ONES)
        a.genome[0, 0] = 99.0
        assert b.genome[0, 0] == 5.0


class TestOffspring:
    def test_without_mutation_alleles_come_from_parents(self):
        rng = np.random.default_rng(1)
        mother, father = _distinct_parents()
        for _ in range(50):
            child = Individual.offspring(mother, father, 2, rng, 0.0, 0.01, ONES)
            assert set(child.maternal) <= {1.0, 2.0}
            assert set(child.paternal) <= {3.0, 4.0}

    def test_same_copy_index_for_both_parents(self):
        """One coin per locus selects the copy read from both parents."""
        rng = np.random.default_rng(2)
        mother, father = _distinct_parents()
        for _ in range(50):
            child = Individual.offspring(mother, father, 1, rng, 0.0, 0.01, ONES)
            np.testing.assert_array_equal(child.paternal - child.maternal, 2.0)

    def test_phenotype_is_mean_of_copies(self):
        rng = np.random.default_rng(3)
        mother, father = _distinct_parents()
        child = Individual.offspring(mother, father, 1, rng, 0.5, 0.1, ONES)
        np.testing.assert_allclose(child.phenotype, child.genome.mean(axis=0))

    def test_newborn_state(self):
        rng = np.random.default_rng(4)
        mother, father = _distinct_parents()
        child = Individual.offspring(mother, father, 3, rng, 0.1, 0.01, ONES)
        assert child.age == 0
        assert child.mother_rank == 3
        assert child.genome.shape == (2, 6)

    def test_certain_mutation_changes_every_contribution(self):
        rng = np.random.default_rng(5)
        mother = Individual.founder(ALLELES, ONES)
        father = Individual.founder(ALLELES, ONES)
        child = Individual.offspring(mother, father, 1, rng, 1.0, 0.01, ONES)
        assert np.all(child.genome != ALLELES)

    def test_mutation_rate(self):
        rng = np.random.default_rng(6)
        mother = Individual.founder(ALLELES, ONES)
        father = Individual.founder(ALLELES, ONES)
        n_changed = 0
        n = 2000
        for _ in range(n):
            child = Individual.offspring(mother, father, 1, rng, 0.1, 0.01, ONES)
            n_changed += int(np.sum(child.genome != ALLELES))
        # 12 contributions per child, p = 0.1
        assert n_changed / (12 * n) == pytest.approx(0.1, abs=0.01)

    def test_masked_loci_stay_zero(self):
        rng = np.random.default_rng(7)
        mask = np.array([1, 0, 0, 1, 0, 0], dtype=float)
        mother = Individual.founder(ALLELES, mask)
        father = Individual.founder(ALLELES, mask)
        for _ in range(20):
            child = Individual.offspring(mother, father, 1, rng, 1.0, 1.0, mask)
            np.testing.assert_array_equal(child.genome[:, mask == 0], 0.0)
            np.testing.assert_array_equal(child.phenotype[mask == 0], 0.0)

    def test_parents_unchanged(self):
        rng = np.random.default_rng(8)
        mother, father = _distinct_parents()
        before = mother.genome.copy()
        Individual.offspring(mother, father, 1, rng, 1.0, 1.0, ONES)
        np.testing.assert_array_equal(mother.genome, before)
