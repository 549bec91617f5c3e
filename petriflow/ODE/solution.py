from __future__ import annotations

from dataclasses import dataclass
from typing import Dict, List

import numpy as np
import pandas as pd

from ..exceptions import UnknownPlaceError
from ..Net.core import Net


@dataclass(frozen=True)
class SolverStats:
    """
    Bookkeeping of one integration run.

    :param method: Tableau name (e.g. ``"DP5"``).
    :param mode: ``"fixed"`` or ``"adaptive"``.
    :param accepted: Accepted steps.
    :param rejected: Rejected step attempts (adaptive mode only).
    :param evaluations: Derivative evaluations.
    """

    method: str
    mode: str
    accepted: int
    rejected: int = 0
    evaluations: int = 0


class Solution:
    """
    Time series of ``(time, state vector)`` samples produced by a solve.

    ``times`` has shape ``(n,)`` and ``states`` shape ``(n, n_places)``,
    both read-only; row ``i`` of ``states`` is the state at ``times[i]``.
    The first sample is the initial state at the start of the time span.

    :param net: Net the solution was computed for.
    :type net: Net
    :param times: Sample times in increasing order.
    :type times: numpy.ndarray
    :param states: State vectors, one row per sample.
    :type states: numpy.ndarray
    :param stats: Solver bookkeeping.
    :type stats: SolverStats
    """

    __slots__ = ("net", "times", "states", "stats")

    def __init__(
        self, net: Net, times: np.ndarray, states: np.ndarray, stats: SolverStats
    ) -> None:
        times = np.array(times, dtype=float)
        states = np.array(states, dtype=float).reshape(times.shape[0], net.n_places)
        times.flags.writeable = False
        states.flags.writeable = False
        self.net = net
        self.times = times
        self.states = states
        self.stats = stats

    @property
    def place_ids(self):
        return self.net.place_ids

    @property
    def t0(self) -> float:
        return float(self.times[0])

    @property
    def t1(self) -> float:
        return float(self.times[-1])

    @property
    def t(self) -> np.ndarray:
        return self.times

    @property
    def u(self) -> List[Dict[str, float]]:
        return self.as_dicts()

    def __len__(self) -> int:
        return self.times.shape[0]

    def __repr__(self) -> str:
        return (
            f"Solution(samples={len(self)}, t=[{self.t0:g}, {self.t1:g}], "
            f"places={self.net.n_places})"
        )

    # ------------------------------------------------------------------
    # Access
    # ------------------------------------------------------------------
    def index_of(self, place_id: str) -> int:
        if not self.net.has_place(place_id):
            raise UnknownPlaceError(f"Place {place_id!r} is not part of this solution.")
        return self.net.place_index(place_id)

    def column(self, place_id: str) -> np.ndarray:
        """Read-only view of one place's levels over time."""
        return self.states[:, self.index_of(place_id)]

    def state_at(self, i: int) -> Dict[str, float]:
        return {pid: float(v) for pid, v in zip(self.place_ids, self.states[i])}

    def final_state(self) -> Dict[str, float]:
        return self.state_at(-1)

    def as_dicts(self) -> List[Dict[str, float]]:
        """States as ``[{place_id: level}, ...]``, one mapping per sample."""
        return [self.state_at(i) for i in range(len(self))]

    def to_dataframe(self) -> pd.DataFrame:
        """
        Tabular view: a ``time`` index and one column per place.

        :rtype: pandas.DataFrame
        """
        df = pd.DataFrame(np.array(self.states), columns=list(self.place_ids))
        df.index = pd.Index(np.array(self.times), name="time")
        return df
