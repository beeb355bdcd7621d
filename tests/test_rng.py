"""Tests for the seeded generator."""

import pytest

from py_hydro.core.rng import DEFAULT_SEED, SeededRandom


class TestSeededRandom:
    """Test the LCG and its helpers."""

    def test_first_value_matches_lcg(self):
        """Test the first draw against the recurrence computed by hand."""
        rng = SeededRandom(1234)
        assert rng.next_u32() == (1664525 * 1234 + 1013904223) % 2**32
        assert rng.call_count == 1

    def test_same_seed_same_sequence(self):
        """Test that two generators with one seed agree."""
        a = SeededRandom(42)
        b = SeededRandom(42)
        assert [a.random() for _ in range(100)] == [b.random() for _ in range(100)]

    def test_different_seeds_differ(self):
        a = SeededRandom(1)
        b = SeededRandom(2)
        assert [a.next_u32() for _ in range(5)] != [b.next_u32() for _ in range(5)]

    def test_zero_seed_falls_back_to_default(self):
        """Test that a zero state is replaced by the default seed."""
        assert SeededRandom(0).state == DEFAULT_SEED
        assert SeededRandom(2**32).state == DEFAULT_SEED

    def test_random_range(self):
        rng = SeededRandom(7)
        values = [rng.random() for _ in range(1000)]
        assert all(0 <= v < 1 for v in values)

    def test_float_in_range(self):
        rng = SeededRandom(7)
        values = [rng.float_in(-5, 5) for _ in range(1000)]
        assert all(-5 <= v < 5 for v in values)

    def test_int_in_inclusive(self):
        """Test that both ends of an integer range are reachable."""
        rng = SeededRandom(99)
        values = {rng.int_in(0, 3) for _ in range(500)}
        assert values == {0, 1, 2, 3}

    def test_int_in_rounds_bounds_inward(self):
        rng = SeededRandom(99)
        values = {rng.int_in(0.5, 2.5) for _ in range(200)}
        assert values <= {1, 2}

    def test_int_in_empty_range(self):
        with pytest.raises(ValueError):
            SeededRandom(1).int_in(3, 2)

    def test_choice(self):
        rng = SeededRandom(5)
        items = ["a", "b", "c"]
        assert all(rng.choice(items) in items for _ in range(50))

    def test_choice_empty(self):
        with pytest.raises(IndexError):
            SeededRandom(5).choice([])

    def test_shuffle_is_permutation(self):
        """Test that shuffling keeps every element exactly once."""
        rng = SeededRandom(11)
        items = list(range(20))
        shuffled = rng.shuffle(list(items))
        assert sorted(shuffled) == items
        assert shuffled != items

    def test_shuffle_deterministic(self):
        a = SeededRandom(11).shuffle(list(range(10)))
        b = SeededRandom(11).shuffle(list(range(10)))
        assert a == b
