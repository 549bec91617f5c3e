"""
Petri net structural invariants of a continuous net.

* P-semiflows (place invariants / conservation laws): vectors :math:`m`
  with :math:`m^T S = 0`. Any such :math:`m` is conserved exactly by the
  continuous relaxation, since :math:`\\dot{x} = S v(x)`.
* T-semiflows (transition invariants): vectors :math:`v` with
  :math:`S v = 0`.

Read-arc pairs contribute zero to :math:`S`, so catalysts never break a
conservation law.

References
----------
- Murata (1989), Proc. IEEE, "Petri nets: Properties, analysis and applications".
"""

from __future__ import annotations

from typing import Mapping, Sequence, Union

import numpy as np
from scipy.linalg import null_space

from ..exceptions import UnknownPlaceError
from .core import Net

Vector = Union[Sequence[float], np.ndarray, Mapping[str, float]]


def find_p_semiflows(net: Net, *, rtol: float = 1e-12) -> np.ndarray:
    """
    Basis of :math:`\\ker(S^T)` (place invariants).

    :param net: Net to analyse.
    :type net: Net
    :param rtol: Relative tolerance for singular values.
    :type rtol: float
    :returns: Matrix of shape ``(n_places, k)``; an empty ``(n_places, 0)``
        matrix if no conservation law exists.
    :rtype: numpy.ndarray

    .. code-block:: python

        from petriflow.Net.invariants import find_p_semiflows

        Y = find_p_semiflows(net)
        # columns of Y are conservation-law directions
    """
    S = net.stoichiometric_matrix()
    if S.shape[1] == 0:
        return np.eye(S.shape[0])
    return null_space(S.T, rcond=rtol)


def find_t_semiflows(net: Net, *, rtol: float = 1e-12) -> np.ndarray:
    """
    Basis of :math:`\\ker(S)` (transition invariants).

    :returns: Matrix of shape ``(n_transitions, k)``.
    :rtype: numpy.ndarray
    """
    S = net.stoichiometric_matrix()
    if S.shape[0] == 0:
        return np.eye(S.shape[1])
    return null_space(S, rcond=rtol)


def _as_vector(net: Net, m: Vector) -> np.ndarray:
    if isinstance(m, Mapping):
        vec = np.zeros(net.n_places, dtype=float)
        for pid, coeff in m.items():
            if not net.has_place(pid):
                raise UnknownPlaceError(f"Unknown place id {pid!r}.")
            vec[net.place_index(pid)] = float(coeff)
        return vec
    vec = np.asarray(m, dtype=float)
    if vec.shape != (net.n_places,):
        raise ValueError(
            f"Expected a vector of length {net.n_places}, got shape {vec.shape}."
        )
    return vec


def is_conservative_vector(net: Net, m: Vector, *, atol: float = 1e-10) -> bool:
    """
    Check whether :math:`m^T S = 0`, i.e. ``m · x(t)`` is constant along
    every trajectory of the net.

    :param net: Net to check against.
    :type net: Net
    :param m: Weights per place, as a dense vector or ``{place_id: weight}``
        mapping (missing places weigh 0).
    :type m: Vector
    :param atol: Absolute tolerance.
    :type atol: float
    :rtype: bool
    """
    vec = _as_vector(net, m)
    return bool(np.allclose(vec @ net.stoichiometric_matrix(), 0.0, atol=atol))


def conserved_total(solution, m: Vector) -> np.ndarray:
    """
    Evaluate ``m · x(t)`` at every sample of a solution.

    :param solution: :class:`~petriflow.ODE.solution.Solution` of the net.
    :param m: Weights per place (vector or mapping).
    :type m: Vector
    :returns: Array of shape ``(len(solution),)``.
    :rtype: numpy.ndarray
    """
    vec = _as_vector(solution.net, m)
    return solution.states @ vec
