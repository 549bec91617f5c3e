import threading
import unittest

from petriflow.Analysis.heatmap import normalize_scores, recommend, score_hypothetical_moves
from petriflow.Net.core import build
from petriflow.Net.rates import RatePolicy
from petriflow.ODE.solver import FixedStep
from petriflow.exceptions import SolveCancelledError, UnknownPlaceError

SINKS = ("a", "b", "c")


def race_builder(candidate: str):
    """
    Three transitions race for one unit of ``pool``; the candidate's sink
    starts with a head start of one unit in ``bonus``.
    """
    places = [("pool", 1.0), ("bonus", 0.0)] + [f"sink_{s}" for s in SINKS]
    arcs = []
    for s in SINKS:
        arcs += [("pool", f"take_{s}"), (f"take_{s}", f"sink_{s}")]
    arcs += [("bonus", "cash"), ("cash", f"sink_{candidate}")]
    net = build(places, [f"take_{s}" for s in SINKS] + ["cash"], arcs)
    return net.with_initial({"bonus": 1.0})


class TestScoreHypotheticalMoves(unittest.TestCase):
    def test_candidate_favoured(self) -> None:
        scores = score_hypothetical_moves(race_builder, ["a", "b"], outcome="sink_a")
        self.assertEqual(list(scores), ["a", "b"])
        self.assertGreater(scores["a"], scores["b"])

    def test_candidate_independence(self) -> None:
        both = score_hypothetical_moves(race_builder, ["a", "b"], outcome="sink_a")
        alone = score_hypothetical_moves(race_builder, ["a"], outcome="sink_a")
        self.assertEqual(both["a"], alone["a"])

    def test_parallel_matches_sequential(self) -> None:
        seq = score_hypothetical_moves(race_builder, SINKS, outcome="sink_b", opponent="sink_c")
        par = score_hypothetical_moves(
            race_builder, SINKS, outcome="sink_b", opponent="sink_c", parallel=True, max_workers=3
        )
        self.assertEqual(seq, par)

    def test_zero_sum_opponent(self) -> None:
        scores = score_hypothetical_moves(
            race_builder, ["a", "b"], outcome="sink_a", opponent="sink_b"
        )
        self.assertAlmostEqual(scores["a"], -scores["b"], places=12)

    def test_selection_callable_excludes(self) -> None:
        # excluding the candidate's own cash transition removes its head start
        scores = score_hypothetical_moves(
            race_builder,
            ["a"],
            outcome="sink_a",
            opponent="sink_b",
            policy=RatePolicy.WEIGHTED_EXCLUSION,
            selection=lambda cand: {"cash"},
            time_span=(0.0, 2.0),
            step=FixedStep(0.1),
        )
        self.assertAlmostEqual(scores["a"], 0.0, places=12)

    def test_unknown_outcome(self) -> None:
        with self.assertRaises(UnknownPlaceError):
            score_hypothetical_moves(race_builder, ["a"], outcome="nowhere")

    def test_parallel_failure_skips_queued_candidates(self) -> None:
        release = threading.Event()
        started, finished = [], []

        def builder(candidate: str):
            started.append(candidate)
            if candidate == "bad":
                raise ValueError("cannot build")
            release.wait(timeout=10.0)
            finished.append(candidate)
            return race_builder("a")

        candidates = ["slow", "bad", "c1", "c2", "c3", "c4"]
        try:
            with self.assertRaises(ValueError):
                score_hypothetical_moves(
                    builder, candidates, outcome="sink_a", parallel=True, max_workers=2
                )
            self.assertNotIn("slow", finished)
            self.assertLess(len(started), len(candidates))
        finally:
            release.set()

    def test_cancelled(self) -> None:
        event = threading.Event()
        event.set()
        with self.assertRaises(SolveCancelledError):
            score_hypothetical_moves(race_builder, ["a", "b"], outcome="sink_a", cancel=event)


class TestRecommend(unittest.TestCase):
    def test_highest_wins(self) -> None:
        self.assertEqual(recommend({"x": 0.1, "y": 0.9, "z": 0.5}), "y")

    def test_ties_go_to_first(self) -> None:
        self.assertEqual(recommend({"x": 1.0, "y": 1.0}), "x")

    def test_eligible_filter(self) -> None:
        self.assertEqual(recommend({"x": 0.1, "y": 0.9}, eligible={"x"}), "x")
        self.assertIsNone(recommend({"x": 0.1}, eligible=set()))
        self.assertIsNone(recommend({}))

    def test_normalize(self) -> None:
        self.assertEqual(normalize_scores({"x": 1.0, "y": 3.0, "z": 2.0}), {"x": 0.0, "y": 1.0, "z": 0.5})
        self.assertEqual(normalize_scores({"x": 2.0, "y": 2.0}), {"x": 0.5, "y": 0.5})
        self.assertEqual(normalize_scores({}), {})


if __name__ == "__main__":
    unittest.main()
