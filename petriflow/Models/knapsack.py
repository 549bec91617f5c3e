"""
Knapsack selection as a continuous Petri net.

Every item is a token in ``item{i}`` that a ``take_item{i}`` transition
moves into ``item{i}_taken``, consuming ``weight`` units of a shared
``capacity`` place and producing ``value``/``weight`` into the running
``total_value``/``total_weight`` places. Items compete for capacity, so
the terminal ``item{i}_taken`` levels rank the remaining options.
"""

from __future__ import annotations

from dataclasses import dataclass
from numbers import Integral
from typing import Collection, Dict, List, Optional, Sequence, Tuple

import numpy as np

from ..Analysis.heatmap import recommend, score_hypothetical_moves
from ..Analysis.series import terminal_value, weighted_sum_series
from ..Net.core import Arc, Net, Place, Transition, build
from ..Net.rates import RatePolicy, rates_for
from ..ODE.solution import Solution
from ..ODE.solver import FixedStep, solve

MAX_CAPACITY = 15.0
BASELINE_HORIZON = 3.0
BASELINE_DT = 0.05
SCORING_HORIZON = 3.0
SCORING_DT = 0.1


@dataclass(frozen=True)
class Item:
    """
    :param id: Integer item id (used in place/transition names).
    :param name: Display name.
    :param weight: Capacity consumed when taken.
    :param value: Value gained when taken; it becomes an arc weight, so it
        must be a positive integer like ``weight``.
    :param efficiency: Heuristic score; the item's declared take rate.
    """

    id: int
    name: str
    weight: int
    value: int
    efficiency: float

    def __post_init__(self) -> None:
        for field_name in ("weight", "value"):
            v = getattr(self, field_name)
            if isinstance(v, bool) or not isinstance(v, Integral) or v < 1:
                raise ValueError(
                    f"Item {self.id!r}: {field_name} must be a positive integer, got {v!r}."
                )


DEFAULT_ITEMS: Tuple[Item, ...] = (
    Item(0, "Item A", 2, 10, 5.0),
    Item(1, "Item B", 5, 15, 3.0),
    Item(2, "Item C", 6, 12, 2.0),
    Item(3, "Item D", 8, 13, 1.625),
)


def take_transition(item: Item) -> str:
    return f"take_item{item.id}"


def taken_place(item: Item) -> str:
    return f"item{item.id}_taken"


def used_capacity(items: Sequence[Item], selected: Collection[int]) -> float:
    return float(sum(it.weight for it in items if it.id in selected))


def build_knapsack_net(
    items: Sequence[Item] = DEFAULT_ITEMS,
    capacity: float = MAX_CAPACITY,
    selected: Collection[int] = (),
) -> Net:
    """
    Build the knapsack net with some items already selected.

    Selected items start in their ``taken`` place and their weight is
    removed from the initial capacity.

    :param items: Item catalogue.
    :type items: Sequence[Item]
    :param capacity: Total capacity.
    :type capacity: float
    :param selected: Ids of items already in the knapsack.
    :type selected: Collection[int]
    :rtype: Net
    """
    selected = set(selected)
    places: List[Place] = []
    transitions: List[Transition] = []
    arcs: List[Arc] = []

    for it in items:
        chosen = it.id in selected
        places.append(Place(f"item{it.id}", 0.0 if chosen else 1.0))
        places.append(Place(taken_place(it), 1.0 if chosen else 0.0))
    places.append(Place("capacity", capacity - used_capacity(items, selected)))
    places.append(Place("total_value", 0.0))
    places.append(Place("total_weight", 0.0))

    for it in items:
        tid = take_transition(it)
        transitions.append(Transition(tid, rate=it.efficiency))
        arcs.extend(
            [
                Arc(f"item{it.id}", tid, 1),
                Arc("capacity", tid, it.weight),
                Arc(tid, taken_place(it), 1),
                Arc(tid, "total_value", it.value),
                Arc(tid, "total_weight", it.weight),
            ]
        )
    return build(places, transitions, arcs)


def baseline_solution(
    items: Sequence[Item] = DEFAULT_ITEMS,
    capacity: float = MAX_CAPACITY,
    horizon: float = BASELINE_HORIZON,
    dt: float = BASELINE_DT,
) -> Solution:
    """Reference trajectory: nothing selected, every item competes equally."""
    net = build_knapsack_net(items, capacity)
    return solve(net, rates_for(net, RatePolicy.UNIFORM), None, (0.0, horizon), FixedStep(dt))


def item_scores(
    items: Sequence[Item] = DEFAULT_ITEMS,
    capacity: float = MAX_CAPACITY,
    selected: Collection[int] = (),
    horizon: float = SCORING_HORIZON,
    dt: float = SCORING_DT,
) -> Dict[int, float]:
    """
    Terminal ``taken`` level of every unselected item.

    Selected items are excluded from competition; the rest take at a
    rate equal to their efficiency.

    :returns: Mapping item id -> terminal taken level.
    :rtype: Dict[int, float]
    """
    net = build_knapsack_net(items, capacity, selected)
    rates = rates_for(
        net,
        RatePolicy.WEIGHTED_EXCLUSION,
        selection={take_transition(it) for it in items if it.id in selected},
        weight={take_transition(it): it.efficiency for it in items},
    )
    sol = solve(net, rates, None, (0.0, horizon), FixedStep(dt))
    return {
        it.id: terminal_value(sol, taken_place(it))
        for it in items
        if it.id not in selected
    }


def fits(item: Item, items: Sequence[Item], capacity: float, selected: Collection[int]) -> bool:
    return item.weight <= capacity - used_capacity(items, selected)


def selection_scores(
    items: Sequence[Item] = DEFAULT_ITEMS,
    capacity: float = MAX_CAPACITY,
    selected: Collection[int] = (),
    horizon: float = SCORING_HORIZON,
    dt: float = SCORING_DT,
    parallel: bool = False,
) -> Dict[int, float]:
    """
    Expected terminal ``total_value`` if each fitting item were selected next.

    :returns: Mapping item id -> score for every unselected item that fits.
    :rtype: Dict[int, float]
    """
    selected = frozenset(selected)
    candidates = [
        it.id
        for it in items
        if it.id not in selected and fits(it, items, capacity, selected)
    ]
    by_id = {it.id: it for it in items}

    def _with(cand: int) -> frozenset:
        return selected | {cand}

    def _builder(cand: int) -> Net:
        net = build_knapsack_net(items, capacity, _with(cand))
        # value already banked by the selection counts towards the outcome
        banked = sum(by_id[i].value for i in _with(cand))
        return net.with_initial({"total_value": banked})

    return score_hypothetical_moves(
        _builder,
        candidates,
        outcome="total_value",
        policy=RatePolicy.WEIGHTED_EXCLUSION,
        selection=lambda cand: {take_transition(by_id[i]) for i in _with(cand)},
        weight={take_transition(it): it.efficiency for it in items},
        time_span=(0.0, horizon),
        step=FixedStep(dt),
        parallel=parallel,
    )


def expected_weight(solution: Solution, items: Sequence[Item] = DEFAULT_ITEMS) -> np.ndarray:
    """Expected packed weight over time: ``sum weight_i * taken_i(t)``."""
    return weighted_sum_series(solution, {taken_place(it): it.weight for it in items})


def expected_value(solution: Solution, items: Sequence[Item] = DEFAULT_ITEMS) -> np.ndarray:
    """Expected packed value over time: ``sum value_i * taken_i(t)``."""
    return weighted_sum_series(solution, {taken_place(it): it.value for it in items})


def recommended_item(
    items: Sequence[Item] = DEFAULT_ITEMS,
    capacity: float = MAX_CAPACITY,
    selected: Collection[int] = (),
) -> Optional[int]:
    """Greedy recommendation: the fitting item with the highest selection score."""
    return recommend(selection_scores(items, capacity, selected))
