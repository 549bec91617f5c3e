from __future__ import annotations

from typing import Dict, Iterable, Mapping

import numpy as np

from ..exceptions import UnknownPlaceError
from ..ODE.solution import Solution


def extract_series(solution: Solution, place_id: str) -> np.ndarray:
    """
    Level of one place at every recorded sample time, in order.

    The result is a fresh array; the solution itself is never modified,
    so repeated calls return identical sequences.

    :param solution: Solved trajectory.
    :type solution: Solution
    :param place_id: Place to read.
    :type place_id: str
    :returns: Array of shape ``(len(solution),)``.
    :rtype: numpy.ndarray
    :raises UnknownPlaceError: If the place is not part of the model.
    """
    return np.array(solution.column(place_id), dtype=float)


def terminal_value(solution: Solution, place_id: str) -> float:
    """
    Level of one place at the last sample (end of the time horizon).

    :raises UnknownPlaceError: If the place is not part of the model.
    """
    return float(solution.states[-1, solution.index_of(place_id)])


def extract_many(solution: Solution, place_ids: Iterable[str]) -> Dict[str, np.ndarray]:
    """
    Series for several places at once, plus the sample times under ``"t"``.

    :raises UnknownPlaceError: If any place is not part of the model.
    """
    series = {pid: extract_series(solution, pid) for pid in place_ids}
    series["t"] = np.array(solution.times, dtype=float)
    return series


def weighted_sum_series(solution: Solution, weights: Mapping[str, float]) -> np.ndarray:
    """
    ``sum_p weights[p] * level_p(t)`` at every sample.

    Used for expectation curves such as the expected knapsack weight
    (``{"item0_taken": 2, "item1_taken": 5, ...}``).

    :param solution: Solved trajectory.
    :type solution: Solution
    :param weights: Mapping place id -> coefficient.
    :type weights: Mapping[str, float]
    :returns: Array of shape ``(len(solution),)``.
    :rtype: numpy.ndarray
    :raises UnknownPlaceError: If a key is not a place of the model.
    """
    vec = np.zeros(solution.net.n_places, dtype=float)
    for pid, coeff in weights.items():
        if not solution.net.has_place(pid):
            raise UnknownPlaceError(f"Place {pid!r} is not part of this solution.")
        vec[solution.net.place_index(pid)] += float(coeff)
    return solution.states @ vec
