from __future__ import annotations

import logging
import math
from dataclasses import dataclass
from typing import Any, List, Mapping, Optional, Sequence, Tuple, Union

import numpy as np

from ..exceptions import NonFiniteError, SolveCancelledError, StepTooSmallError
from ..Net.core import Net, optional_levels
from .kinetics import KineticsEvaluator, RatesLike
from .solution import Solution, SolverStats
from .tableau import DORMAND_PRINCE, ButcherTableau

LOGGER = logging.getLogger(__name__)

# Relative slack when deciding whether span/dt is an integer.
_STEP_COUNT_RTOL = 1e-9


# ---------------------------------------------------------------------------
# Configuration
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class TimeSpan:
    """Closed integration interval ``[start, stop]`` with ``stop > start``."""

    start: float
    stop: float

    def __post_init__(self) -> None:
        if not (math.isfinite(self.start) and math.isfinite(self.stop)):
            raise ValueError(f"Time span must be finite, got [{self.start}, {self.stop}].")
        if self.stop <= self.start:
            raise ValueError(f"Time span must be increasing, got [{self.start}, {self.stop}].")

    @property
    def length(self) -> float:
        return self.stop - self.start

    @classmethod
    def coerce(cls, obj: Union["TimeSpan", Sequence[float]]) -> "TimeSpan":
        if isinstance(obj, TimeSpan):
            return obj
        start, stop = obj
        return cls(float(start), float(stop))


@dataclass(frozen=True)
class FixedStep:
    """
    Advance by ``dt`` unconditionally, without error control.

    A span of length ``L`` yields ``ceil(L / dt) + 1`` samples; the last
    step is shortened so that the final sample lands exactly on the end
    of the span.
    """

    dt: float

    def __post_init__(self) -> None:
        if not math.isfinite(self.dt) or self.dt <= 0:
            raise ValueError(f"dt must be finite and > 0, got {self.dt!r}.")


@dataclass(frozen=True)
class Adaptive:
    """
    Error-controlled stepping with the embedded estimate of the tableau.

    :param rtol: Relative tolerance.
    :param atol: Absolute tolerance.
    :param dt_min: Step floor; a rejected step that would need a smaller
        step raises :class:`~petriflow.exceptions.StepTooSmallError`.
    :param dt_max: Step ceiling.
    :param dt_init: Initial step; defaults to 1% of the span.
    :param safety: Safety factor applied to step proposals.
    :param fac_min: Minimum multiplicative step change.
    :param fac_max: Maximum multiplicative step change.
    :param max_rejects: Consecutive rejections tolerated per step.
    :param max_steps: Accepted steps allowed before giving up.
    """

    rtol: float = 1e-3
    atol: float = 1e-4
    dt_min: float = 1e-10
    dt_max: float = float("inf")
    dt_init: Optional[float] = None
    safety: float = 0.9
    fac_min: float = 0.2
    fac_max: float = 5.0
    max_rejects: int = 50
    max_steps: int = 100_000

    def __post_init__(self) -> None:
        if self.rtol < 0 or self.atol < 0 or (self.rtol == 0 and self.atol == 0):
            raise ValueError("Tolerances must be >= 0 and not both zero.")
        if not (0 < self.dt_min <= self.dt_max):
            raise ValueError(
                f"Need 0 < dt_min <= dt_max, got dt_min={self.dt_min}, dt_max={self.dt_max}."
            )
        if self.dt_init is not None and not (self.dt_init > 0 and math.isfinite(self.dt_init)):
            raise ValueError(f"dt_init must be finite and > 0, got {self.dt_init!r}.")
        if not (0 < self.fac_min < 1 < self.fac_max) or not (0 < self.safety <= 1):
            raise ValueError("Step controller factors out of range.")
        if self.max_rejects < 1 or self.max_steps < 1:
            raise ValueError("max_rejects and max_steps must be >= 1.")


StepPolicy = Union[FixedStep, Adaptive]


# ---------------------------------------------------------------------------
# Stepping kernels
# ---------------------------------------------------------------------------


def _check_cancel(cancel: Any, t: float) -> None:
    if cancel is not None and cancel.is_set():
        raise SolveCancelledError(f"Solve cancelled at t={t:g}.")


def _require_finite(arr: np.ndarray, what: str, t: float) -> None:
    if not np.all(np.isfinite(arr)):
        raise NonFiniteError(
            f"Non-finite {what} at t={t:g}; check for negative or overflowing rates."
        )


def _rk_step(
    f: KineticsEvaluator,
    tableau: ButcherTableau,
    t: float,
    y: np.ndarray,
    h: float,
    k: np.ndarray,
) -> Tuple[np.ndarray, np.ndarray]:
    """
    One explicit RK step. ``k[0]`` must hold ``f(t, y)`` on entry; on exit
    ``k`` holds every stage derivative.

    :returns: ``(y_new, err)`` where ``err`` is the embedded error estimate.
    """
    a, c = tableau.a, tableau.c
    y_stage = y
    for i in range(1, tableau.stages):
        y_stage = y + h * (a[i, :i] @ k[:i])
        k[i] = f(t + c[i] * h, y_stage)
        _require_finite(k[i], "derivative", t)
    if tableau.fsal:
        # the last stage was evaluated at the new state
        y_new = y_stage
    else:
        y_new = y + h * (tableau.b @ k)
    err = h * (tableau.error_weights @ k)
    return y_new, err


def _error_norm(
    err: np.ndarray, y: np.ndarray, y_new: np.ndarray, rtol: float, atol: float
) -> float:
    """RMS error scaled by ``atol + rtol * max(|y|, |y_new|)``."""
    if err.shape[0] == 0:
        return 0.0
    scale = atol + rtol * np.maximum(np.abs(y), np.abs(y_new))
    v = float(np.sqrt(np.mean((err / scale) ** 2)))
    if not math.isfinite(v):
        return float("inf")
    return v


def _propose_dt(h: float, err_norm: float, q: int, cfg: Adaptive, fac_max: float) -> float:
    if err_norm <= 0.0:
        fac = fac_max
    else:
        fac = cfg.safety * err_norm ** (-1.0 / (q + 1))
        fac = min(fac_max, max(cfg.fac_min, fac))
    return min(h * fac, cfg.dt_max)


def fixed_step_count(length: float, dt: float) -> int:
    """Number of steps ``ceil(length / dt)``, tolerant of float round-off."""
    ratio = length / dt
    nearest = round(ratio)
    if nearest >= 1 and abs(ratio - nearest) <= _STEP_COUNT_RTOL * max(1.0, ratio):
        return int(nearest)
    return max(1, math.ceil(ratio))


def _integrate_fixed(
    f: KineticsEvaluator,
    tableau: ButcherTableau,
    span: TimeSpan,
    y0: np.ndarray,
    step: FixedStep,
    cancel: Any,
) -> Tuple[np.ndarray, np.ndarray, int, int]:
    n_steps = fixed_step_count(span.length, step.dt)
    times = np.empty(n_steps + 1, dtype=float)
    states = np.empty((n_steps + 1, y0.shape[0]), dtype=float)
    times[0] = span.start
    states[0] = y0

    k = np.empty((tableau.stages, y0.shape[0]), dtype=float)
    y = y0
    k[0] = f(span.start, y)
    _require_finite(k[0], "derivative", span.start)

    for i in range(n_steps):
        t = times[i]
        _check_cancel(cancel, t)
        t_next = span.stop if i == n_steps - 1 else span.start + (i + 1) * step.dt
        y_new, _ = _rk_step(f, tableau, t, y, t_next - t, k)
        _require_finite(y_new, "state", t_next)
        times[i + 1] = t_next
        states[i + 1] = y_new
        y = y_new
        if tableau.fsal:
            k[0] = k[-1]
        else:
            k[0] = f(t_next, y)
            _require_finite(k[0], "derivative", t_next)
    return times, states, n_steps, 0


def _integrate_adaptive(
    f: KineticsEvaluator,
    tableau: ButcherTableau,
    span: TimeSpan,
    y0: np.ndarray,
    cfg: Adaptive,
    cancel: Any,
) -> Tuple[np.ndarray, np.ndarray, int, int]:
    times: List[float] = [span.start]
    states: List[np.ndarray] = [y0.copy()]

    h = cfg.dt_init if cfg.dt_init is not None else 0.01 * span.length
    h = min(max(h, cfg.dt_min), cfg.dt_max)
    q = min(tableau.order, tableau.error_order)

    k = np.empty((tableau.stages, y0.shape[0]), dtype=float)
    t, y = span.start, y0
    k[0] = f(t, y)
    _require_finite(k[0], "derivative", t)

    accepted = rejected = 0
    while t < span.stop:
        _check_cancel(cancel, t)
        if accepted >= cfg.max_steps:
            raise StepTooSmallError(
                f"Reached max_steps={cfg.max_steps} at t={t:g} before t={span.stop:g}."
            )
        remaining = span.stop - t
        last = h >= remaining
        if last:
            h = remaining

        rejects = 0
        while True:
            y_new, err = _rk_step(f, tableau, t, y, h, k)
            _require_finite(y_new, "state", t + h)
            err_norm = _error_norm(err, y, y_new, cfg.rtol, cfg.atol)
            if err_norm <= 1.0:
                break
            rejected += 1
            rejects += 1
            if rejects >= cfg.max_rejects:
                raise StepTooSmallError(
                    f"{rejects} consecutive rejections at t={t:g} (dt={h:g})."
                )
            h_new = _propose_dt(h, err_norm, q, cfg, fac_max=1.0)
            if h_new < cfg.dt_min:
                raise StepTooSmallError(
                    f"Step size {h_new:g} fell below dt_min={cfg.dt_min:g} at t={t:g}."
                )
            h = h_new
            last = False

        t = span.stop if last else t + h
        y = y_new
        times.append(t)
        states.append(y)
        accepted += 1

        if tableau.fsal:
            k[0] = k[-1]
        else:
            k[0] = f(t, y)
            _require_finite(k[0], "derivative", t)
        h = max(_propose_dt(h, err_norm, q, cfg, fac_max=cfg.fac_max), cfg.dt_min)

    return np.asarray(times), np.vstack(states), accepted, rejected


# ---------------------------------------------------------------------------
# Public API
# ---------------------------------------------------------------------------


def _initial_vector(net: Net, initial_state) -> np.ndarray:
    if initial_state is None:
        return net.initial_state()
    if isinstance(initial_state, Mapping):
        return optional_levels(net, initial_state)
    y0 = np.array(initial_state, dtype=float)
    if y0.shape != (net.n_places,):
        raise ValueError(
            f"Initial state must have shape ({net.n_places},), got {y0.shape}."
        )
    return y0


def solve(
    net: Net,
    rates: RatesLike,
    initial_state: Union[None, Sequence[float], np.ndarray, Mapping[str, float]] = None,
    time_span: Union[TimeSpan, Sequence[float]] = (0.0, 1.0),
    step: StepPolicy = FixedStep(0.05),
    *,
    tableau: ButcherTableau = DORMAND_PRINCE,
    cancel: Any = None,
) -> Solution:
    """
    Integrate the continuous relaxation of ``net`` over ``time_span``.

    The step loop is ``Start → (evaluate stages → accept → record) × N →
    Done``; in adaptive mode a rejected attempt shrinks ``dt`` and
    re-evaluates the stages. Every accepted state is recorded unrounded.

    :param net: Net to integrate.
    :type net: Net
    :param rates: Rate assignment covering every transition.
    :type rates: RatesLike
    :param initial_state: ``None`` (net's initial levels), a dense vector in
        place order, or a ``{place_id: level}`` mapping overriding some
        initial levels.
    :param time_span: ``(t0, t1)`` or :class:`TimeSpan`.
    :param step: :class:`FixedStep` (default, reproducible samples) or
        :class:`Adaptive`.
    :param tableau: Embedded RK pair; Dormand–Prince 5(4) by default.
    :param cancel: Optional object with ``is_set()`` (e.g.
        :class:`threading.Event`) checked between steps.
    :returns: Solution whose first sample is ``(t0, initial state)``.
    :rtype: Solution
    :raises NonFiniteError: If a derivative or state becomes NaN/Inf.
    :raises StepTooSmallError: If adaptive stepping collapses.
    :raises SolveCancelledError: If ``cancel`` is set between steps.
    :raises RateError: If the rate assignment is incomplete or invalid.

    .. code-block:: python

        from petriflow.ODE import FixedStep, solve
        from petriflow.Net.rates import uniform_rates

        sol = solve(net, uniform_rates(net), time_span=(0, 10), step=FixedStep(0.05))
        sol.final_state()
    """
    span = TimeSpan.coerce(time_span)
    f = KineticsEvaluator(net, rates)
    y0 = _initial_vector(net, initial_state)
    _require_finite(y0, "initial state", span.start)
    _check_cancel(cancel, span.start)

    mode = "fixed" if isinstance(step, FixedStep) else "adaptive"
    LOGGER.debug(
        "Solving %r over [%g, %g] with %s (%s)", net, span.start, span.stop, tableau.name, mode
    )
    with np.errstate(over="ignore", invalid="ignore", divide="ignore"):
        if isinstance(step, FixedStep):
            times, states, accepted, rejected = _integrate_fixed(
                f, tableau, span, y0, step, cancel
            )
        elif isinstance(step, Adaptive):
            times, states, accepted, rejected = _integrate_adaptive(
                f, tableau, span, y0, step, cancel
            )
        else:
            raise TypeError(f"Unsupported step policy: {type(step)!r}")

    stats = SolverStats(
        method=tableau.name,
        mode=mode,
        accepted=accepted,
        rejected=rejected,
        evaluations=f.evaluations,
    )
    LOGGER.debug(
        "Solve finished: %d accepted, %d rejected, %d evaluations",
        accepted,
        rejected,
        f.evaluations,
    )
    return Solution(net, times, states, stats)


@dataclass(frozen=True)
class ODEProblem:
    """
    A net, a rate assignment, an initial state and a time span, bundled.

    .. code-block:: python

        prob = ODEProblem(net, rates, time_span=(0.0, 3.0))
        sol = prob.solve(FixedStep(0.05))
    """

    net: Net
    rates: RatesLike
    initial_state: Any = None
    time_span: Union[TimeSpan, Sequence[float]] = (0.0, 1.0)

    def solve(
        self,
        step: StepPolicy = FixedStep(0.05),
        *,
        tableau: ButcherTableau = DORMAND_PRINCE,
        cancel: Any = None,
    ) -> Solution:
        return solve(
            self.net,
            self.rates,
            self.initial_state,
            self.time_span,
            step,
            tableau=tableau,
            cancel=cancel,
        )
