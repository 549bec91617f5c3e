"""
Net model: declaration, validation, rate assignment and structure.

Re-exported
-----------
- :class:`~petriflow.Net.core.Net`, :func:`~petriflow.Net.core.build`
- :class:`~petriflow.Net.core.Place`, :class:`~petriflow.Net.core.Transition`,
  :class:`~petriflow.Net.core.Arc`
- :class:`~petriflow.Net.rates.RatePolicy`, :class:`~petriflow.Net.rates.RateMap`,
  :func:`~petriflow.Net.rates.rates_for`
"""

from __future__ import annotations

from typing import List

from .core import Arc, Net, Place, Transition, build
from .rates import (
    RateMap,
    RatePolicy,
    declared_rates,
    rates_for,
    selection_masked_rates,
    uniform_rates,
    weighted_exclusion_rates,
)
from .invariants import find_p_semiflows, find_t_semiflows, is_conservative_vector
from .conversion import bipartite_to_net, net_to_bipartite

__all__: List[str] = [
    "Arc",
    "Net",
    "Place",
    "Transition",
    "build",
    "RateMap",
    "RatePolicy",
    "declared_rates",
    "rates_for",
    "selection_masked_rates",
    "uniform_rates",
    "weighted_exclusion_rates",
    "find_p_semiflows",
    "find_t_semiflows",
    "is_conservative_vector",
    "bipartite_to_net",
    "net_to_bipartite",
]
