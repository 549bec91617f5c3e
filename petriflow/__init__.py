"""
Continuous (ODE) relaxation of Petri nets.

A :class:`~petriflow.Net.core.Net` is turned into a mass-action ODE system,
integrated with an embedded Runge-Kutta pair, and the resulting
:class:`~petriflow.ODE.solution.Solution` is used to score hypothetical
discrete choices.

.. code-block:: python

    from petriflow import build, rates_for, solve, FixedStep

    net = build(["A", "B"], ["t"], [("A", "t"), ("t", "B")])
    net = net.with_initial({"A": 1.0})
    sol = solve(net, rates_for(net), time_span=(0.0, 1.0), step=FixedStep(0.1))
"""

from __future__ import annotations

from typing import List

from .version import __version__
from .exceptions import (
    AnalyticsError,
    ModelError,
    NonFiniteError,
    PetriFlowError,
    RateError,
    SolveCancelledError,
    SolverError,
    StepTooSmallError,
    UnknownPlaceError,
    UnknownReferenceError,
)
from .Net import Arc, Net, Place, RateMap, RatePolicy, Transition, build, rates_for
from .ODE import Adaptive, FixedStep, ODEProblem, Solution, solve
from .Analysis import extract_series, score_hypothetical_moves, terminal_value

__all__: List[str] = [
    "__version__",
    "AnalyticsError",
    "ModelError",
    "NonFiniteError",
    "PetriFlowError",
    "RateError",
    "SolveCancelledError",
    "SolverError",
    "StepTooSmallError",
    "UnknownPlaceError",
    "UnknownReferenceError",
    "Arc",
    "Net",
    "Place",
    "RateMap",
    "RatePolicy",
    "Transition",
    "build",
    "rates_for",
    "Adaptive",
    "FixedStep",
    "ODEProblem",
    "Solution",
    "solve",
    "extract_series",
    "score_hypothetical_moves",
    "terminal_value",
]
