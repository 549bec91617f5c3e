"""
Mass-action style kinetics for a continuous Petri net.

For every transition :math:`t` with rate constant :math:`k_t` the firing
rate is

.. math::

    v_t(x) = k_t \\prod_{(p, w) \\in {}^\\bullet t} \\frac{\\max(x_p, 0)}{w},

and the state derivative is :math:`\\dot{x} = S_{\\mathrm{eff}} v(x)`, where
:math:`S_{\\mathrm{eff}}` is the stoichiometric matrix with read-arc pairs
removed. A read-arc place still appears in the product (it gates the
transition) but receives no contribution at all, so its derivative stays
exactly zero.
"""

from __future__ import annotations

from typing import Mapping, Union

import numpy as np

from ..Net.core import Net, kinetics_layout
from ..Net.rates import RateMap

RatesLike = Union[RateMap, Mapping[str, float]]


def _rate_vector(net: Net, rates: RatesLike) -> np.ndarray:
    if not isinstance(rates, RateMap):
        rates = RateMap(rates)
    return rates.as_array(net)


class KineticsEvaluator:
    """
    Callable ``(t, y) -> dy/dt`` bound to one net and one rate assignment.

    All topology lookups are the integer index arrays precomputed by
    :func:`~petriflow.Net.core.build`; scratch buffers are allocated once
    here, so a call allocates only the returned derivative vector. An
    evaluator holds scratch state and must not be shared between threads;
    create one per solve.

    :param net: Net to evaluate.
    :type net: Net
    :param rates: Rate assignment covering every transition.
    :type rates: RatesLike
    :raises RateError: If a transition has no rate or a rate is invalid.
    """

    def __init__(self, net: Net, rates: RatesLike) -> None:
        self.net = net
        self.rates = _rate_vector(net, rates)
        in_place, in_weight, starts, stoich_eff = kinetics_layout(net)
        self._in_place = in_place
        self._in_weight = in_weight
        self._starts = starts
        self._stoich = stoich_eff

        self._padded = np.empty(net.n_places + 1, dtype=float)
        self._padded[-1] = 1.0
        self._factors = np.empty(in_place.shape[0], dtype=float)
        self._flux = np.zeros(net.n_transitions, dtype=float)
        self._zero_rate = self.rates == 0.0
        self.evaluations = 0

    def firing_rates(self, y: np.ndarray) -> np.ndarray:
        """
        Per-transition firing rates at state ``y``.

        The returned array is an internal buffer, overwritten by the next
        call; copy it if it must be kept.
        """
        if self._flux.shape[0] == 0:
            return self._flux
        self._padded[:-1] = y
        np.take(self._padded, self._in_place, out=self._factors)
        np.maximum(self._factors, 0.0, out=self._factors)
        np.divide(self._factors, self._in_weight, out=self._factors)
        np.multiply.reduceat(self._factors, self._starts, out=self._flux)
        np.multiply(self._flux, self.rates, out=self._flux)
        self._flux[self._zero_rate] = 0.0
        return self._flux

    def __call__(self, t: float, y: np.ndarray) -> np.ndarray:
        self.evaluations += 1
        return self._stoich @ self.firing_rates(y)


def _check_state(net: Net, state) -> np.ndarray:
    y = np.asarray(state, dtype=float)
    if y.shape != (net.n_places,):
        raise ValueError(
            f"State vector must have shape ({net.n_places},), got {y.shape}."
        )
    return y


def derivative(net: Net, rates: RatesLike, state) -> np.ndarray:
    """
    Instantaneous derivative of every place level.

    :param net: Net to evaluate.
    :type net: Net
    :param rates: Rate assignment.
    :type rates: RatesLike
    :param state: State vector in the net's place order.
    :type state: array-like
    :returns: Array of shape ``(n_places,)``.
    :rtype: numpy.ndarray

    .. code-block:: python

        from petriflow.ODE.kinetics import derivative

        dx = derivative(net, uniform_rates(net), net.initial_state())
    """
    return KineticsEvaluator(net, rates)(0.0, _check_state(net, state))


def firing_rates(net: Net, rates: RatesLike, state) -> np.ndarray:
    """Per-transition firing rates (a fresh array) at ``state``."""
    return KineticsEvaluator(net, rates).firing_rates(_check_state(net, state)).copy()
