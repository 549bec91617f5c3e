from __future__ import annotations

import logging
from concurrent.futures import FIRST_EXCEPTION, ThreadPoolExecutor, wait
from typing import (
    Any,
    Callable,
    Collection,
    Dict,
    Hashable,
    Iterable,
    Mapping,
    Optional,
    Sequence,
    Union,
)

from ..Net.core import Net
from ..Net.rates import RatePolicy, WeightFn, rates_for
from ..ODE.solver import FixedStep, StepPolicy, TimeSpan, solve
from ..ODE.tableau import DORMAND_PRINCE, ButcherTableau
from .series import terminal_value

LOGGER = logging.getLogger(__name__)

Selection = Union[Collection[str], Callable[[Any], Collection[str]]]


def score_hypothetical_moves(
    net_builder: Callable[[Any], Net],
    candidates: Iterable[Hashable],
    *,
    outcome: str,
    opponent: Optional[str] = None,
    policy: Union[RatePolicy, str] = RatePolicy.UNIFORM,
    selection: Selection = (),
    weight: Optional[WeightFn] = None,
    time_span: Union[TimeSpan, Sequence[float]] = (0.0, 2.0),
    step: StepPolicy = FixedStep(0.2),
    tableau: ButcherTableau = DORMAND_PRINCE,
    parallel: bool = False,
    max_workers: Optional[int] = None,
    cancel: Any = None,
) -> Dict[Hashable, float]:
    """
    Score hypothetical discrete choices by simulating each one.

    For every candidate, ``net_builder(candidate)`` returns a net variant
    reflecting that single choice; the variant is solved under ``policy``
    over ``time_span`` and scored as the terminal level of ``outcome``
    minus the terminal level of ``opponent`` (zero-sum framing, when
    given). Each candidate owns its net, rate map and solution, so results
    do not depend on which other candidates are scored, and the runs may
    execute on a thread pool.

    :param net_builder: Candidate -> net variant.
    :type net_builder: Callable[[Any], Net]
    :param candidates: Hashable candidate keys (positions, item ids, ...).
    :type candidates: Iterable[Hashable]
    :param outcome: Place whose terminal level rewards the candidate.
    :type outcome: str
    :param opponent: Optional place whose terminal level is subtracted.
    :type opponent: Optional[str]
    :param policy: Rate policy applied to every variant.
    :type policy: Union[RatePolicy, str]
    :param selection: Transition ids for the masked/exclusion policies, or
        a callable candidate -> ids.
    :type selection: Selection
    :param weight: Weight function for :attr:`RatePolicy.WEIGHTED_EXCLUSION`.
    :type weight: Optional[WeightFn]
    :param time_span: Fixed horizon ``(t0, t1)``.
    :param step: Step policy; fixed-step by default for reproducibility.
    :param tableau: Runge-Kutta pair.
    :param parallel: Dispatch candidates to a :class:`ThreadPoolExecutor`.
    :type parallel: bool
    :param max_workers: Pool size when ``parallel`` is set.
    :type max_workers: Optional[int]
    :param cancel: Optional cancellation signal shared by every run.
    :returns: Mapping candidate -> score, in candidate order.
    :rtype: Dict[Hashable, float]
    :raises SolverError: If any candidate's run fails (or is cancelled).
    :raises UnknownPlaceError: If ``outcome``/``opponent`` is not a place.

    .. code-block:: python

        scores = score_hypothetical_moves(
            lambda move: build_tictactoe_net(board, "X", move),
            [(0, 0), (1, 1)],
            outcome="WinX",
            opponent="WinO",
        )
    """
    span = TimeSpan.coerce(time_span)
    keys = list(candidates)

    def _score(candidate: Hashable) -> float:
        net = net_builder(candidate)
        chosen = selection(candidate) if callable(selection) else selection
        rates = rates_for(net, policy, chosen, weight)
        sol = solve(net, rates, None, span, step, tableau=tableau, cancel=cancel)
        score = terminal_value(sol, outcome)
        if opponent is not None:
            score -= terminal_value(sol, opponent)
        return score

    LOGGER.debug(
        "Scoring %d candidates (outcome=%s, opponent=%s, parallel=%s)",
        len(keys),
        outcome,
        opponent,
        parallel,
    )
    if parallel and len(keys) > 1:
        ex = ThreadPoolExecutor(max_workers=max_workers)
        try:
            futures = [ex.submit(_score, c) for c in keys]
            done, _ = wait(futures, return_when=FIRST_EXCEPTION)
            for fut in futures:
                if fut in done and fut.exception() is not None:
                    LOGGER.debug("Candidate run failed; cancelling queued candidates")
                    fut.result()
            values = [fut.result() for fut in futures]
        finally:
            # queued runs are dropped; runs already started finish in the background
            ex.shutdown(wait=False, cancel_futures=True)
    else:
        values = [_score(c) for c in keys]
    return dict(zip(keys, values))


def recommend(
    scores: Mapping[Hashable, float],
    eligible: Optional[Collection[Hashable]] = None,
) -> Optional[Hashable]:
    """
    Greedy pick: the eligible candidate with the highest score.

    Ties go to the candidate that comes first in ``scores``.

    :returns: Best candidate, or ``None`` if nothing is eligible.
    """
    best = None
    best_score = float("-inf")
    for cand, score in scores.items():
        if eligible is not None and cand not in eligible:
            continue
        if best is None or score > best_score:
            best, best_score = cand, score
    return best


def normalize_scores(scores: Mapping[Hashable, float]) -> Dict[Hashable, float]:
    """
    Min/max scale scores into ``[0, 1]`` for heat rendering.

    When every score is equal the result is a neutral ``0.5`` everywhere.
    """
    if not scores:
        return {}
    lo, hi = min(scores.values()), max(scores.values())
    if hi <= lo:
        return {c: 0.5 for c in scores}
    return {c: (s - lo) / (hi - lo) for c, s in scores.items()}
