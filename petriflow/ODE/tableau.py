from __future__ import annotations

from dataclasses import dataclass

import numpy as np


@dataclass(frozen=True, eq=False)
class ButcherTableau:
    """
    Coefficients of an explicit embedded Runge-Kutta pair.

    :param name: Short method name.
    :type name: str
    :param c: Stage nodes, shape ``(s,)``.
    :type c: numpy.ndarray
    :param a: Strictly lower-triangular stage matrix, shape ``(s, s)``.
    :type a: numpy.ndarray
    :param b: Weights of the propagated solution, shape ``(s,)``.
    :type b: numpy.ndarray
    :param b_hat: Weights of the embedded (error-estimating) solution.
    :type b_hat: numpy.ndarray
    :param order: Order of the propagated solution.
    :type order: int
    :param error_order: Order of the embedded solution.
    :type error_order: int
    :param fsal: First-same-as-last: the last stage is evaluated at the
        new state, so it can seed the next step.
    :type fsal: bool
    """

    name: str
    c: np.ndarray
    a: np.ndarray
    b: np.ndarray
    b_hat: np.ndarray
    order: int
    error_order: int
    fsal: bool = False

    def __post_init__(self) -> None:
        s = self.c.shape[0]
        if self.a.shape != (s, s) or self.b.shape != (s,) or self.b_hat.shape != (s,):
            raise ValueError(f"Inconsistent tableau shapes for {self.name!r}.")
        if np.any(np.triu(self.a) != 0.0):
            raise ValueError(f"Tableau {self.name!r} is not explicit.")
        for arr in (self.c, self.a, self.b, self.b_hat):
            arr.flags.writeable = False

    @property
    def stages(self) -> int:
        return self.c.shape[0]

    @property
    def error_weights(self) -> np.ndarray:
        """``b - b_hat``: weights of the local error estimate."""
        return self.b - self.b_hat


def _lower(rows) -> np.ndarray:
    s = len(rows) + 1
    a = np.zeros((s, s), dtype=float)
    for i, row in enumerate(rows, start=1):
        a[i, : len(row)] = row
    return a


# Dormand & Prince (1980), RK5(4)7FM.
DORMAND_PRINCE = ButcherTableau(
    name="DP5",
    c=np.array([0.0, 1 / 5, 3 / 10, 4 / 5, 8 / 9, 1.0, 1.0]),
    a=_lower(
        [
            [1 / 5],
            [3 / 40, 9 / 40],
            [44 / 45, -56 / 15, 32 / 9],
            [19372 / 6561, -25360 / 2187, 64448 / 6561, -212 / 729],
            [9017 / 3168, -355 / 33, 46732 / 5247, 49 / 176, -5103 / 18656],
            [35 / 384, 0.0, 500 / 1113, 125 / 192, -2187 / 6784, 11 / 84],
        ]
    ),
    b=np.array([35 / 384, 0.0, 500 / 1113, 125 / 192, -2187 / 6784, 11 / 84, 0.0]),
    b_hat=np.array(
        [
            5179 / 57600,
            0.0,
            7571 / 16695,
            393 / 640,
            -92097 / 339200,
            187 / 2100,
            1 / 40,
        ]
    ),
    order=5,
    error_order=4,
    fsal=True,
)

# Bogacki & Shampine (1989), RK3(2).
BOGACKI_SHAMPINE = ButcherTableau(
    name="BS3",
    c=np.array([0.0, 1 / 2, 3 / 4, 1.0]),
    a=_lower(
        [
            [1 / 2],
            [0.0, 3 / 4],
            [2 / 9, 1 / 3, 4 / 9],
        ]
    ),
    b=np.array([2 / 9, 1 / 3, 4 / 9, 0.0]),
    b_hat=np.array([7 / 24, 1 / 4, 1 / 3, 1 / 8]),
    order=3,
    error_order=2,
    fsal=True,
)
