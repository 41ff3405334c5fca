import unittest

import numpy as np

from channel_model import count_channel_types, default_params
from equilibrium_sweep import compare_with_baselines, run_sweep, sweep_params, sweep_range
from test_bestrespsolver import four_channel_dict


class testSweepParams(unittest.TestCase):

    def setUp(self):
        self.params = default_params()

    def test_decoy_count(self):
        p = sweep_params(self.params, "ND", 2)
        self.assertEqual(count_channel_types(p.channel_config), {"real": 6, "decoy": 2, "inactive": 4})
        self.assertEqual([c.type for c in p.channel_config[6:8]], ["decoy", "decoy"])
        p0 = sweep_params(self.params, "ND", 0)
        self.assertEqual(count_channel_types(p0.channel_config)["decoy"], 0)
        # the original is untouched
        self.assertEqual(count_channel_types(self.params.channel_config)["decoy"], 4)

    def test_decoy_count_capped_by_free_channels(self):
        p = sweep_params(self.params, "ND", 50)
        self.assertEqual(count_channel_types(p.channel_config), {"real": 6, "decoy": 6, "inactive": 0})

    def test_threshold(self):
        self.assertEqual(sweep_params(self.params, "tau", 0.5).tau, 0.5)

    def test_channel_count(self):
        small = sweep_params(self.params, "N", 2)
        self.assertEqual(small.N, 4)
        self.assertEqual(small.h.shape, (2, 4))
        self.assertEqual(len(small.channel_config), 4)

        big = sweep_params(self.params, "N", 14)
        self.assertEqual(big.g.shape, (2, 14))
        self.assertEqual([c.type for c in big.channel_config[12:]], ["inactive", "inactive"])
        np.testing.assert_array_equal(big.h[:, 12:], np.ones((2, 2)))

    def test_jammer_count(self):
        p = sweep_params(self.params, "M", 3)
        self.assertEqual(p.PJ, [10.0, 10.0, 10.0])
        self.assertEqual(p.g.shape, (3, 12))
        self.assertEqual(sweep_params(self.params, "M", 1).PJ, [10.0])

    def test_defender_count(self):
        one = sweep_params(self.params, "D", 1)
        self.assertEqual(one.PT, [10.0])
        self.assertTrue(all(c.owner == 0 for c in one.channel_config))
        three = sweep_params(self.params, "D", 3)
        self.assertEqual(three.h.shape, (3, 12))
        self.assertEqual(len(three.PT), 3)

    def test_jammer_budget_split(self):
        self.assertEqual(sweep_params(self.params, "PJ", 30).PJ, [15.0, 15.0])

    def test_unknown_variable(self):
        with self.assertRaises(ValueError):
            sweep_params(self.params, "alpha", 0.5)


class testSweepRange(unittest.TestCase):

    def test_inclusive(self):
        self.assertEqual(sweep_range(0, 1, 0.25), [0, 0.25, 0.5, 0.75, 1.0])
        self.assertEqual(len(sweep_range(0.1, 0.3, 0.1)), 3)

    def test_limits(self):
        with self.assertRaises(ValueError):
            sweep_range(0, 100, 1)
        with self.assertRaises(ValueError):
            sweep_range(0, 1, 0)
        with self.assertRaises(ValueError):
            sweep_range(1, 0, 0.5)


class testRunSweep(unittest.TestCase):

    def test_decoy_sweep_in_process(self):
        res = run_sweep(four_channel_dict(), "ND", [0, 1, 2], workers=1)
        self.assertEqual([p.variable for p in res.points], [0, 1, 2])
        self.assertEqual(res.points[0].jammer_waste, 0.0)
        self.assertGreater(res.points[2].jammer_waste, 0.0)
        self.assertEqual(res.baseline.U_real, res.points[0].U_real)
        self.assertEqual(res.best_point.U_real, max(p.U_real for p in res.points))
        self.assertIsNone(res.oracle_baseline)

    def test_process_pool_matches_in_process(self):
        values = [0, 1, 2]
        serial = run_sweep(four_channel_dict(), "ND", values, workers=1)
        pooled = run_sweep(four_channel_dict(), "ND", values, workers=2)
        self.assertEqual([p.variable for p in pooled.points], values)
        self.assertEqual([p.to_dict() for p in pooled.points],
                         [p.to_dict() for p in serial.points])
        self.assertEqual(pooled.best_point.to_dict(), serial.best_point.to_dict())

    def test_oracle_columns(self):
        res = run_sweep(four_channel_dict(), "tau", [0.1, 0.2], workers=1, with_oracle=True)
        self.assertIsNotNone(res.oracle_baseline)
        for p in res.points:
            self.assertAlmostEqual(p.oracle_gap, p.U_oracle - p.U_real)
        frame = res.to_frame()
        self.assertEqual(len(frame), 2)
        for col in ("variable", "U_real", "dilutionFactor", "jammerWaste", "U_oracle", "oracleGap"):
            self.assertIn(col, frame.columns)
        self.assertIn("oracleBaseline", res.to_dict())

    def test_rejected_point_is_zero(self):
        res = run_sweep(four_channel_dict(), "PJ", [10, 1e6], workers=1)
        bad = res.points[1]
        self.assertEqual(bad.U_real, 0.0)
        self.assertFalse(bad.converged)
        self.assertEqual(bad.iterations, 0)
        self.assertGreater(res.points[0].U_real, 0.0)

    def test_bad_requests(self):
        with self.assertRaises(ValueError):
            run_sweep(four_channel_dict(), "sigma2", [1.0], workers=1)
        with self.assertRaises(ValueError):
            run_sweep(four_channel_dict(), "tau", [], workers=1)


class testBaselines(unittest.TestCase):

    def test_deception_beats_oracle_and_no_decoys(self):
        res = compare_with_baselines(four_channel_dict())
        self.assertIsNotNone(res.oracle_result)
        self.assertLess(res.metrics.oracle_gap, 0.0)
        self.assertGreater(res.metrics.improvement_over_no_decoys, 0.0)
        self.assertAlmostEqual(res.metrics.oracle_gap,
                               res.oracle_result.metrics.total_real_throughput
                               - res.metrics.total_real_throughput)
        self.assertIn("oracleResult", res.to_dict())

    def test_passes_can_be_skipped(self):
        res = compare_with_baselines(four_channel_dict(), oracle=False, no_decoys=False)
        self.assertIsNone(res.oracle_result)
        self.assertEqual(res.metrics.oracle_gap, 0.0)
        self.assertEqual(res.metrics.improvement_over_no_decoys, 0.0)


if __name__ == "__main__":
    unittest.main(verbosity=2)
