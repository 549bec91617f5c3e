import unittest

import numpy as np

from petriflow.Net.core import build
from petriflow.Net.rates import RateMap, uniform_rates
from petriflow.ODE.kinetics import KineticsEvaluator, derivative, firing_rates
from petriflow.exceptions import RateError


class TestFiringRates(unittest.TestCase):
    def test_mass_action_product(self) -> None:
        # 2A + B -> C at rate 3: v = 3 * (A/2) * B
        net = build(
            places=[("A", 4.0), ("B", 0.5), "C"],
            transitions=["t"],
            arcs=[("A", "t", 2), ("B", "t"), ("t", "C")],
        )
        v = firing_rates(net, {"t": 3.0}, net.initial_state())
        self.assertAlmostEqual(v[0], 3.0 * 2.0 * 0.5)
        dx = derivative(net, {"t": 3.0}, net.initial_state())
        np.testing.assert_allclose(dx, [-6.0, -3.0, 3.0])

    def test_negative_level_clamped(self) -> None:
        net = build([("A", -1.0), "B"], ["t"], [("A", "t"), ("t", "B")])
        dx = derivative(net, uniform_rates(net), net.initial_state())
        self.assertTrue(np.all(dx == 0.0))

    def test_source_transition_fires_at_rate(self) -> None:
        net = build(["A"], ["gen"], [("gen", "A", 2)])
        dx = derivative(net, {"gen": 1.5}, [0.0])
        self.assertEqual(dx[0], 3.0)

    def test_state_shape_checked(self) -> None:
        net = build(["A"], ["t"], [("A", "t")])
        with self.assertRaises(ValueError):
            derivative(net, uniform_rates(net), [1.0, 2.0])


class TestReadArcCancellation(unittest.TestCase):
    def setUp(self) -> None:
        self.net = build(["P"], ["T"], [("P", "T", 2), ("T", "P", 2)])

    def test_derivative_exactly_zero(self) -> None:
        for rate in (0.0, 1.0, 7.3, 1e6):
            for level in (0.0, 0.1, 3.0, 1e8):
                with self.subTest(rate=rate, level=level):
                    dx = derivative(self.net, {"T": rate}, [level])
                    self.assertEqual(dx[0], 0.0)

    def test_transition_still_fires(self) -> None:
        v = firing_rates(self.net, {"T": 2.0}, [4.0])
        self.assertEqual(v[0], 4.0)


class TestZeroRate(unittest.TestCase):
    def test_zero_rate_is_inert(self) -> None:
        net = build(
            places=[("A", 5.0), ("B", 2.0), "C"],
            transitions=["dead", "live"],
            arcs=[("A", "dead"), ("dead", "C"), ("B", "live"), ("live", "C")],
        )
        rates = RateMap({"dead": 0.0, "live": 1.0})
        f = KineticsEvaluator(net, rates)
        rng = np.random.default_rng(0)
        for _ in range(20):
            y = rng.uniform(0.0, 10.0, size=3)
            v = f.firing_rates(y)
            self.assertEqual(v[0], 0.0)
            dx = f(0.0, y)
            self.assertEqual(dx[0], 0.0)
            self.assertEqual(dx[2], y[1])

    def test_zero_rate_with_overflowing_inputs(self) -> None:
        net = build(
            places=[("A", 1e200), ("B", 1e200), "C", ("D", 1.0)],
            transitions=["dead", "live"],
            arcs=[("A", "dead"), ("B", "dead"), ("dead", "C"), ("D", "live"), ("live", "C")],
        )
        f = KineticsEvaluator(net, {"dead": 0.0, "live": 1.0})
        with np.errstate(over="ignore", invalid="ignore"):
            v = f.firing_rates(net.initial_state()).copy()
            dx = f(0.0, net.initial_state())
        np.testing.assert_array_equal(v, [0.0, 1.0])
        np.testing.assert_array_equal(dx, [0.0, 0.0, 1.0, -1.0])


class TestEvaluator(unittest.TestCase):
    def test_counts_evaluations(self) -> None:
        net = build([("A", 1.0), "B"], ["t"], [("A", "t"), ("t", "B")])
        f = KineticsEvaluator(net, uniform_rates(net))
        f(0.0, net.initial_state())
        f(0.1, net.initial_state())
        self.assertEqual(f.evaluations, 2)
        np.testing.assert_array_equal(f.rates, [1.0])

    def test_incomplete_rates(self) -> None:
        net = build(["A"], ["t", "u"], [("A", "t"), ("A", "u")])
        with self.assertRaises(RateError):
            KineticsEvaluator(net, {"t": 1.0})

    def test_negative_rate(self) -> None:
        net = build(["A"], ["t"], [("A", "t")])
        with self.assertRaises(RateError):
            KineticsEvaluator(net, {"t": -0.5})


if __name__ == "__main__":
    unittest.main()
