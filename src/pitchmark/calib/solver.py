from __future__ import annotations

from typing import Sequence

import numpy as np

from .errors import InsufficientPointsError, SingularSystemError

PIVOT_TOLERANCE = 1e-10


def _eliminate(a: np.ndarray, c: np.ndarray) -> np.ndarray:
    n = a.shape[0]
    for col in range(n):
        pivot_row = col + int(np.argmax(np.abs(a[col:, col])))
        if abs(a[pivot_row, col]) < PIVOT_TOLERANCE:
            raise SingularSystemError(f"Pivot {a[pivot_row, col]:.3g} in column {col} is below tolerance")
        if pivot_row != col:
            a[[col, pivot_row]] = a[[pivot_row, col]]
            c[[col, pivot_row]] = c[[pivot_row, col]]
        factors = a[col + 1 :, col] / a[col, col]
        a[col + 1 :, col:] -= factors[:, None] * a[col, col:]
        c[col + 1 :] -= factors * c[col]

    x = np.zeros(n, dtype=np.float64)
    for row in range(n - 1, -1, -1):
        x[row] = (c[row] - a[row, row + 1 :] @ x[row + 1 :]) / a[row, row]
    return x


def solve_linear_system(rows: Sequence[Sequence[float]] | np.ndarray) -> np.ndarray:
    """Solve ``A x = c`` given augmented rows ``[a_0, ..., a_{n-1}, c]``.

    Square systems are eliminated directly. Over-determined systems are solved in
    the least-squares sense through the normal equations ``A^T A x = A^T c``, so
    every row contributes to the estimate.
    """
    aug = np.asarray(rows, dtype=np.float64)
    if aug.ndim != 2 or aug.shape[1] < 2:
        raise ValueError(f"Expected augmented rows with at least 2 columns, got shape {aug.shape}")
    a = aug[:, :-1].copy()
    c = aug[:, -1].copy()
    n_rows, n_unknowns = a.shape
    if n_rows < n_unknowns:
        raise InsufficientPointsError(f"Need at least {n_unknowns} equations, got {n_rows}")
    if n_rows > n_unknowns:
        a, c = a.T @ a, a.T @ c
    return _eliminate(a, c)
