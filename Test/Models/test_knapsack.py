import unittest

import numpy as np

from petriflow.Models.knapsack import (
    DEFAULT_ITEMS,
    Item,
    MAX_CAPACITY,
    baseline_solution,
    build_knapsack_net,
    expected_value,
    expected_weight,
    fits,
    item_scores,
    recommended_item,
    selection_scores,
    take_transition,
    used_capacity,
)
from petriflow.Net.invariants import conserved_total, is_conservative_vector


class TestKnapsackNet(unittest.TestCase):
    def test_structure(self) -> None:
        net = build_knapsack_net()
        self.assertEqual(net.n_places, 2 * len(DEFAULT_ITEMS) + 3)
        self.assertEqual(net.n_transitions, len(DEFAULT_ITEMS))
        self.assertEqual(net.declared_rates()[take_transition(DEFAULT_ITEMS[0])], 5.0)
        self.assertEqual(net.initial_levels()["capacity"], MAX_CAPACITY)

    def test_selected_items_start_taken(self) -> None:
        net = build_knapsack_net(selected={0, 1})
        levels = net.initial_levels()
        self.assertEqual(levels["item0"], 0.0)
        self.assertEqual(levels["item0_taken"], 1.0)
        self.assertEqual(levels["item2"], 1.0)
        self.assertEqual(levels["capacity"], MAX_CAPACITY - 7.0)

    def test_conservation_laws(self) -> None:
        net = build_knapsack_net()
        self.assertTrue(is_conservative_vector(net, {"capacity": 1.0, "total_weight": 1.0}))
        for it in DEFAULT_ITEMS:
            self.assertTrue(
                is_conservative_vector(net, {f"item{it.id}": 1.0, f"item{it.id}_taken": 1.0})
            )

    def test_item_rejects_fractional_value(self) -> None:
        with self.assertRaises(ValueError):
            Item(0, "E", 3, 7.5, 2.5)
        with self.assertRaises(ValueError):
            Item(0, "E", 0, 7, 2.5)
        net = build_knapsack_net([Item(0, "E", 3, 7, 2.5)], 10.0)
        self.assertEqual(net.n_transitions, 1)

    def test_fits(self) -> None:
        a, b, c, d = DEFAULT_ITEMS
        self.assertEqual(used_capacity(DEFAULT_ITEMS, {2, 3}), 14.0)
        self.assertFalse(fits(a, DEFAULT_ITEMS, MAX_CAPACITY, {2, 3}))
        self.assertTrue(fits(b, DEFAULT_ITEMS, MAX_CAPACITY, {0, 2}))


class TestBaseline(unittest.TestCase):
    @classmethod
    def setUpClass(cls) -> None:
        cls.sol = baseline_solution()

    def test_samples(self) -> None:
        self.assertEqual(len(self.sol), 61)
        self.assertEqual(self.sol.t1, 3.0)

    def test_capacity_accounting(self) -> None:
        total = conserved_total(self.sol, {"capacity": 1.0, "total_weight": 1.0})
        np.testing.assert_allclose(total, MAX_CAPACITY, atol=1e-9)
        self.assertTrue(np.all(np.diff(self.sol.column("capacity")) <= 1e-12))

    def test_expectation_curves(self) -> None:
        np.testing.assert_allclose(
            expected_weight(self.sol), self.sol.column("total_weight"), atol=1e-9
        )
        np.testing.assert_allclose(
            expected_value(self.sol), self.sol.column("total_value"), atol=1e-9
        )


class TestScores(unittest.TestCase):
    def test_item_scores_exclude_selected(self) -> None:
        scores = item_scores(selected={0})
        self.assertEqual(set(scores), {1, 2, 3})
        for v in scores.values():
            self.assertGreater(v, 0.0)
            self.assertLess(v, 1.0)

    def test_selection_scores_bank_value(self) -> None:
        scores = selection_scores()
        self.assertEqual(list(scores), [0, 1, 2, 3])
        for it in DEFAULT_ITEMS:
            self.assertGreaterEqual(scores[it.id], it.value - 1e-9)

    def test_only_fitting_candidates(self) -> None:
        scores = selection_scores(selected={3})
        self.assertEqual(set(scores), {0, 1, 2})
        self.assertEqual(selection_scores(selected={2, 3}), {})
        self.assertIsNone(recommended_item(selected={2, 3}))

    def test_recommendation_is_best_score(self) -> None:
        scores = selection_scores()
        self.assertEqual(recommended_item(), max(scores, key=scores.get))

    def test_parallel_matches_sequential(self) -> None:
        self.assertEqual(selection_scores(selected={0}), selection_scores(selected={0}, parallel=True))


if __name__ == "__main__":
    unittest.main()
