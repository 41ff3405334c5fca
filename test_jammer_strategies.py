import unittest

import numpy as np

from jammer_strategies import apply_jammer_strategy, jam_gradient, jam_topk, jam_uniform
from jamming_game import active_set
from test_jamming_game import four_channel_params


class testJammerStrategies(unittest.TestCase):
    """
    uniform / top-K / gradient jammer rows
    """

    def setUp(self):
        self.params = four_channel_params()
        self.oracle = four_channel_params("oracle")
        self.x = np.array([[4.0, 2.0, 0.3, 0.1]])   # channel 3 below tau
        self.y = np.zeros((1, 4))
        self.active = active_set(self.x, self.params)

    def test_uniform_spreads_over_active(self):
        row = jam_uniform(0, self.x, self.y, self.params, self.active)
        np.testing.assert_allclose(row, [10 / 3, 10 / 3, 10 / 3, 0.0])

    def test_uniform_oracle_targets_real_only(self):
        row = jam_uniform(0, self.x, self.y, self.oracle, self.active)
        np.testing.assert_allclose(row, [5.0, 5.0, 0.0, 0.0])

    def test_topk_proportional_to_score(self):
        self.params.top_k = 2
        row = jam_topk(0, self.x, self.y, self.params, self.active)
        np.testing.assert_allclose(row, [10 * 4 / 6, 10 * 2 / 6, 0.0, 0.0])

    def test_topk_equal_scores_matches_uniform(self):
        x = np.array([[2.5, 2.5, 2.5, 2.5]])
        active = active_set(x, self.params)
        self.params.top_k = 10
        np.testing.assert_allclose(jam_topk(0, x, self.y, self.params, active),
                                   jam_uniform(0, x, self.y, self.params, active))

    def test_topk_zero_scores_split_equally(self):
        self.params.g = np.zeros((1, 4))
        self.params.top_k = 2
        row = jam_topk(0, self.x, self.y, self.params, self.active)
        np.testing.assert_allclose(row, [5.0, 5.0, 0.0, 0.0])

    def test_gradient_allocation_sums_to_budget(self):
        row = jam_gradient(0, self.x, self.y, self.params, self.active)
        self.assertAlmostEqual(row.sum(), 10.0)
        self.assertEqual(row[3], 0.0)
        # larger perceived SINR draws more power
        self.assertGreater(row[0], row[2])

    def test_gradient_falls_back_to_uniform(self):
        self.params.g = np.zeros((1, 4))
        row = jam_gradient(0, self.x, self.y, self.params, self.active)
        np.testing.assert_allclose(row, jam_uniform(0, self.x, self.y, self.params, self.active))

    def test_nothing_eligible_allocates_nothing(self):
        x = np.zeros((1, 4))
        active = active_set(x, self.params)
        for strategy in ("uniform", "topK", "gradient"):
            self.params.jammer_strategy = strategy
            row = apply_jammer_strategy(0, x, self.y, self.params, active)
            np.testing.assert_array_equal(row, np.zeros(4))

    def test_unknown_strategy(self):
        self.params.jammer_strategy = "sweep"
        with self.assertRaises(ValueError):
            apply_jammer_strategy(0, self.x, self.y, self.params, self.active)


if __name__ == "__main__":
    unittest.main(verbosity=2)
