import unittest

import numpy as np

from bestrespsolver import prepare_params
from equilibrium_metrics import channel_summary, compute_metrics, is_symmetric_equilibrium
from jamming_game import active_set
from test_bestrespsolver import four_channel_dict


class testMetrics(unittest.TestCase):

    def setUp(self):
        self.params = prepare_params(four_channel_dict())
        self.x = np.array([[4.0, 2.0, 0.2, 0.1]])
        self.y = np.array([[2.0, 2.0, 1.0, 0.0]])
        self.active = active_set(self.x, self.params)

    def test_aggregates(self):
        m = compute_metrics(self.x, self.y, self.params, self.active)
        self.assertAlmostEqual(m.jammer_waste_on_decoys, 0.2)
        self.assertEqual(m.active_channel_count, 3)
        self.assertEqual(m.real_channel_count, 2)
        self.assertAlmostEqual(m.dilution_factor, 1.5)
        self.assertAlmostEqual(m.total_decoy_power, 0.3)
        self.assertAlmostEqual(m.total_real_throughput, np.log2(1 + 4 / 3) + np.log2(1 + 2 / 3))
        self.assertEqual(m.oracle_gap, 0.0)
        self.assertEqual(m.improvement_over_no_decoys, 0.0)

    def test_no_jamming_no_waste(self):
        m = compute_metrics(self.x, np.zeros((1, 4)), self.params, self.active)
        self.assertEqual(m.jammer_waste_on_decoys, 0.0)

    def test_dilution_without_real_channels(self):
        config = [{"type": "decoy", "owner": 0}] * 4
        params = prepare_params(four_channel_dict(channelConfig=config))
        m = compute_metrics(self.x, self.y, params, active_set(self.x, params))
        self.assertEqual(m.dilution_factor, 1.0)
        self.assertEqual(m.total_real_throughput, 0.0)
        self.assertAlmostEqual(m.jammer_waste_on_decoys, 1.0)

    def test_channel_rows(self):
        rows = channel_summary(self.x, self.y, self.params, self.active)
        self.assertEqual([r.channel for r in rows], [0, 1, 2, 3])
        self.assertEqual([r.is_active for r in rows], [True, True, True, False])
        last = rows[3]
        self.assertEqual(last.channel_type, "decoy")
        self.assertAlmostEqual(last.sinr, 0.1)
        self.assertAlmostEqual(last.rate, np.log2(1.1))
        self.assertEqual(last.total_attacker_power, 0.0)
        self.assertEqual(rows[0].total_defender_power, 4.0)
        self.assertEqual(rows[0].to_dict()["channelType"], "real")

    def test_attacker_gain_is_averaged(self):
        params = prepare_params(four_channel_dict(M=2, PJ=[5, 5], g=[[1, 1, 1, 1], [3, 1, 1, 1]]))
        y = np.vstack([self.y, self.y])
        rows = channel_summary(self.x, y, params, active_set(self.x, params))
        self.assertEqual(rows[0].g, 2.0)
        self.assertEqual(rows[0].total_attacker_power, 4.0)


class testSymmetry(unittest.TestCase):

    def test_identical_rows(self):
        x = np.array([[1.0, 2.0, 0.0], [1.0, 2.0, 0.0]])
        self.assertTrue(is_symmetric_equilibrium(x, 1e-3))

    def test_within_tolerance(self):
        x = np.array([[1.0, 2.0, 0.0], [1.0, 2.005, 0.0]])
        self.assertTrue(is_symmetric_equilibrium(x, 1e-3))

    def test_outside_tolerance(self):
        x = np.array([[1.0, 2.0, 0.0], [1.0, 2.0, 0.0], [1.02, 2.0, 0.0]])
        self.assertFalse(is_symmetric_equilibrium(x, 1e-3))

    def test_single_defender(self):
        self.assertFalse(is_symmetric_equilibrium(np.ones((1, 3)), 1e-3))


if __name__ == "__main__":
    unittest.main(verbosity=2)
