"""
Kinetics and explicit Runge-Kutta integration.

Re-exported
-----------
- :class:`~petriflow.ODE.kinetics.KineticsEvaluator`
- :func:`~petriflow.ODE.solver.solve`, :class:`~petriflow.ODE.solver.ODEProblem`
- :class:`~petriflow.ODE.solver.FixedStep`, :class:`~petriflow.ODE.solver.Adaptive`
- :class:`~petriflow.ODE.solution.Solution`
"""

from __future__ import annotations

from typing import List

from .kinetics import KineticsEvaluator, derivative, firing_rates
from .tableau import BOGACKI_SHAMPINE, DORMAND_PRINCE, ButcherTableau
from .solution import Solution, SolverStats
from .solver import Adaptive, FixedStep, ODEProblem, TimeSpan, solve

__all__: List[str] = [
    "KineticsEvaluator",
    "derivative",
    "firing_rates",
    "BOGACKI_SHAMPINE",
    "DORMAND_PRINCE",
    "ButcherTableau",
    "Solution",
    "SolverStats",
    "Adaptive",
    "FixedStep",
    "ODEProblem",
    "TimeSpan",
    "solve",
]
