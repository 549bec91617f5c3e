import unittest

import numpy as np

from petriflow.Net.core import Transition, build
from petriflow.Net.rates import (
    RateMap,
    RatePolicy,
    declared_rates,
    rates_for,
    selection_masked_rates,
    uniform_rates,
    weighted_exclusion_rates,
)
from petriflow.exceptions import RateError, UnknownReferenceError


class TestRatePolicies(unittest.TestCase):
    def setUp(self) -> None:
        self.net = build(
            places=[("src", 1.0), "a", "b", "c"],
            transitions=[Transition("ta", 2.0), Transition("tb", 0.5), "tc"],
            arcs=[("src", "ta"), ("ta", "a"), ("src", "tb"), ("tb", "b"), ("src", "tc"), ("tc", "c")],
        )

    def test_uniform(self) -> None:
        self.assertEqual(dict(uniform_rates(self.net)), {"ta": 1.0, "tb": 1.0, "tc": 1.0})

    def test_declared(self) -> None:
        self.assertEqual(dict(declared_rates(self.net)), {"ta": 2.0, "tb": 0.5, "tc": 1.0})

    def test_selection_masked(self) -> None:
        rates = selection_masked_rates(self.net, {"tb"})
        self.assertEqual(dict(rates), {"ta": 0.0, "tb": 1.0, "tc": 0.0})

    def test_selection_masked_empty_falls_back_to_uniform(self) -> None:
        self.assertEqual(dict(selection_masked_rates(self.net, set())), dict(uniform_rates(self.net)))

    def test_weighted_exclusion(self) -> None:
        rates = weighted_exclusion_rates(self.net, {"ta"}, {"tb": 3.0})
        self.assertEqual(dict(rates), {"ta": 0.0, "tb": 3.0, "tc": 1.0})

    def test_weighted_exclusion_callable(self) -> None:
        rates = weighted_exclusion_rates(self.net, [], lambda tid: 4.0 if tid == "tc" else None)
        self.assertEqual(dict(rates), {"ta": 1.0, "tb": 1.0, "tc": 4.0})

    def test_dispatch(self) -> None:
        self.assertEqual(dict(rates_for(self.net)), dict(uniform_rates(self.net)))
        self.assertEqual(
            dict(rates_for(self.net, "weighted_exclusion", {"tc"})),
            {"ta": 1.0, "tb": 1.0, "tc": 0.0},
        )
        self.assertEqual(
            dict(rates_for(self.net, RatePolicy.DECLARED)), dict(declared_rates(self.net))
        )
        with self.assertRaises(ValueError):
            rates_for(self.net, "no-such-policy")

    def test_unknown_selection(self) -> None:
        with self.assertRaises(UnknownReferenceError):
            selection_masked_rates(self.net, {"nope"})
        with self.assertRaises(UnknownReferenceError):
            weighted_exclusion_rates(self.net, {"nope"})

    def test_net_not_mutated(self) -> None:
        rates_for(self.net, RatePolicy.SELECTION_MASKED, {"ta"})
        self.assertEqual(self.net.declared_rates(), {"ta": 2.0, "tb": 0.5, "tc": 1.0})


class TestRateMap(unittest.TestCase):
    def setUp(self) -> None:
        self.net = build(["A", "B"], ["t", "u"], [("A", "t"), ("t", "B"), ("B", "u"), ("u", "A")])

    def test_as_array_in_transition_order(self) -> None:
        arr = RateMap({"u": 2.0, "t": 0.25}).as_array(self.net)
        np.testing.assert_array_equal(arr, [0.25, 2.0])

    def test_negative_rate_rejected(self) -> None:
        with self.assertRaises(RateError):
            RateMap({"t": -1.0, "u": 1.0})

    def test_non_finite_rate_rejected(self) -> None:
        for bad in (float("nan"), float("inf"), "1", True):
            with self.subTest(rate=bad):
                with self.assertRaises(RateError):
                    RateMap({"t": bad})

    def test_missing_rate(self) -> None:
        with self.assertRaises(RateError):
            RateMap({"t": 1.0}).as_array(self.net)

    def test_extra_rate(self) -> None:
        with self.assertRaises(UnknownReferenceError):
            RateMap({"t": 1.0, "u": 1.0, "v": 1.0}).as_array(self.net)

    def test_replace_returns_copy(self) -> None:
        base = RateMap({"t": 1.0, "u": 1.0})
        changed = base.replace(u=0.0)
        self.assertEqual(base["u"], 1.0)
        self.assertEqual(changed["u"], 0.0)
        self.assertEqual(len(changed), 2)


if __name__ == "__main__":
    unittest.main()
