from __future__ import annotations

import math
from enum import Enum
from numbers import Real
from typing import Callable, Collection, Dict, Iterable, Iterator, Mapping, Optional, Union

import numpy as np

from ..exceptions import RateError, UnknownReferenceError
from .core import Net

WeightFn = Union[Callable[[str], float], Mapping[str, float]]


class RatePolicy(str, Enum):
    """Selectable rate assignment policies."""

    UNIFORM = "uniform"
    SELECTION_MASKED = "selection_masked"
    WEIGHTED_EXCLUSION = "weighted_exclusion"
    DECLARED = "declared"


class RateMap(Mapping[str, float]):
    """
    Immutable mapping transition id -> non-negative rate constant.

    A rate map is produced fresh for each simulation run and never mutates
    the net it was derived from.

    :param rates: Mapping of transition id to rate constant.
    :type rates: Mapping[str, float]
    :raises RateError: If any rate is negative, not finite or not a number.
    """

    __slots__ = ("_rates",)

    def __init__(self, rates: Mapping[str, float]) -> None:
        checked: Dict[str, float] = {}
        for tid, r in rates.items():
            if isinstance(r, bool) or not isinstance(r, Real) or not math.isfinite(r) or r < 0:
                raise RateError(f"Rate for transition {tid!r} must be finite and >= 0, got {r!r}.")
            checked[str(tid)] = float(r)
        self._rates = checked

    def __getitem__(self, key: str) -> float:
        return self._rates[key]

    def __iter__(self) -> Iterator[str]:
        return iter(self._rates)

    def __len__(self) -> int:
        return len(self._rates)

    def __repr__(self) -> str:
        return f"RateMap({self._rates!r})"

    def as_array(self, net: Net) -> np.ndarray:
        """
        Dense rate vector in the net's transition order.

        :param net: Net the rates apply to.
        :type net: Net
        :returns: Array of shape ``(n_transitions,)``.
        :rtype: numpy.ndarray
        :raises RateError: If a transition of ``net`` has no rate.
        :raises UnknownReferenceError: If the map names a transition absent
            from ``net``.
        """
        for tid in self._rates:
            if not net.has_transition(tid):
                raise UnknownReferenceError(f"Rate given for unknown transition {tid!r}.")
        out = np.empty(net.n_transitions, dtype=float)
        for j, tid in enumerate(net.transition_ids):
            try:
                out[j] = self._rates[tid]
            except KeyError:
                raise RateError(f"No rate assigned to transition {tid!r}.") from None
        return out

    def replace(self, **overrides: float) -> "RateMap":
        """Return a copy with some rates replaced."""
        merged = dict(self._rates)
        merged.update(overrides)
        return RateMap(merged)


# ---------------------------------------------------------------------------
# Policies
# ---------------------------------------------------------------------------


def _check_selection(net: Net, selection: Iterable[str]) -> frozenset:
    chosen = frozenset(selection)
    for tid in chosen:
        if not net.has_transition(tid):
            raise UnknownReferenceError(f"Selection names unknown transition {tid!r}.")
    return chosen


def _weight_of(weight: Optional[WeightFn], tid: str) -> float:
    if weight is None:
        return 1.0
    if isinstance(weight, Mapping):
        return weight.get(tid, 1.0)
    value = weight(tid)
    return 1.0 if value is None else value


def uniform_rates(net: Net) -> RateMap:
    """Every transition competes equally with rate ``1.0``."""
    return RateMap({tid: 1.0 for tid in net.transition_ids})


def declared_rates(net: Net) -> RateMap:
    """Each transition keeps the rate it was declared with."""
    return RateMap(net.declared_rates())


def selection_masked_rates(net: Net, selection: Collection[str]) -> RateMap:
    """
    Selected transitions get ``1.0``, all others ``0.0``.

    An empty selection falls back to :func:`uniform_rates`.
    """
    chosen = _check_selection(net, selection)
    if not chosen:
        return uniform_rates(net)
    return RateMap({tid: 1.0 if tid in chosen else 0.0 for tid in net.transition_ids})


def weighted_exclusion_rates(
    net: Net,
    selection: Collection[str],
    weight: Optional[WeightFn] = None,
) -> RateMap:
    """
    Selected transitions are excluded (rate ``0.0``); the rest get ``weight(id)``.

    :param net: Net to assign rates for.
    :type net: Net
    :param selection: Transition ids already "taken".
    :type selection: Collection[str]
    :param weight: Callable or mapping id -> positive weight. Missing
        entries (or ``None``) default to ``1.0``.
    :type weight: Optional[WeightFn]
    :returns: Rate map.
    :rtype: RateMap
    """
    chosen = _check_selection(net, selection)
    return RateMap(
        {
            tid: 0.0 if tid in chosen else _weight_of(weight, tid)
            for tid in net.transition_ids
        }
    )


def rates_for(
    net: Net,
    policy: Union[RatePolicy, str] = RatePolicy.UNIFORM,
    selection: Collection[str] = (),
    weight: Optional[WeightFn] = None,
) -> RateMap:
    """
    Dispatch to a rate policy.

    .. code-block:: python

        from petriflow.Net.rates import RatePolicy, rates_for

        rates = rates_for(net, RatePolicy.WEIGHTED_EXCLUSION,
                          selection={"take_item0"},
                          weight={"take_item1": 3.0})

    :param net: Net to assign rates for.
    :type net: Net
    :param policy: Policy name or :class:`RatePolicy`.
    :type policy: Union[RatePolicy, str]
    :param selection: Ids of emphasized (masked) or excluded transitions.
    :type selection: Collection[str]
    :param weight: Weight function for :attr:`RatePolicy.WEIGHTED_EXCLUSION`.
    :type weight: Optional[WeightFn]
    :returns: Rate map.
    :rtype: RateMap
    :raises ValueError: On an unknown policy name.
    """
    policy = RatePolicy(policy)
    if policy is RatePolicy.UNIFORM:
        return uniform_rates(net)
    if policy is RatePolicy.DECLARED:
        return declared_rates(net)
    if policy is RatePolicy.SELECTION_MASKED:
        return selection_masked_rates(net, selection)
    return weighted_exclusion_rates(net, selection, weight)
