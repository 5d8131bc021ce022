# Copyright (c) 2025 - 2026 Chair for Design Automation, TUM
# All rights reserved.
#
# SPDX-License-Identifier: MIT
#
# Licensed under the MIT License

"""Krylov subspace solvers for implicitly defined Hermitian operators.

This module provides the two local solvers used by the sweep engines:
  - :func:`lanczos_ground_state`, the restarted Lanczos eigensolver for the smallest eigenpair (DMRG),
  - :func:`expm_krylov`, the Lanczos approximation of ``exp(-1j * dt * H) @ v`` (TDVP).

Both take the operator as a matrix-free callable and return a :class:`SolverResult`. Reaching the iteration cap
is not an error: the best available estimate is returned with ``converged=False``.

Vectors of at least ``NUMBA_THRESHOLD`` entries use the numba kernel of :mod:`.lanczos_numba` for the
orthogonalization step.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import TYPE_CHECKING

import numpy as np
import scipy.linalg

from . import lanczos_numba

if TYPE_CHECKING:
    from collections.abc import Callable

    from numpy.typing import NDArray

logger = logging.getLogger(__name__)

NUMBA_THRESHOLD = 64


@dataclass
class SolverResult:
    """Outcome of a local solver call.

    Attributes:
        vector: Approximate eigenvector or evolved vector, same shape as the input.
        converged: Whether the requested tolerance was reached.
        iterations: Number of operator applications spent in the Krylov recursion.
        error: Final error estimate (eigen-residual norm, or the Krylov tail estimate of the exponential).
        eigenvalue: Smallest eigenvalue estimate; None for the exponential.
    """

    vector: NDArray[np.complex128]
    converged: bool
    iterations: int
    error: float
    eigenvalue: float | None = None


def _tridiagonal_eigh(
    alpha: NDArray[np.float64], beta: NDArray[np.float64]
) -> tuple[NDArray[np.float64], NDArray[np.float64]]:
    """Eigen-decomposition of the Lanczos tridiagonal matrix.

    Falls back from the ``stemr`` to the ``stebz`` LAPACK driver when the former fails.

    Returns:
        Eigenvalues in ascending order and the eigenvectors as columns.
    """
    if alpha.size == 1:
        return alpha.copy(), np.ones((1, 1))
    try:
        return scipy.linalg.eigh_tridiagonal(alpha, beta, lapack_driver="stemr")
    except scipy.linalg.LinAlgError:
        return scipy.linalg.eigh_tridiagonal(alpha, beta, lapack_driver="stebz")


def _lanczos_basis(
    matvec: Callable[[NDArray[np.complex128]], NDArray[np.complex128]],
    start: NDArray[np.complex128],
    max_iterations: int,
) -> tuple[NDArray[np.float64], NDArray[np.float64], NDArray[np.complex128], bool]:
    """Run the Lanczos recursion from a normalized vector.

    Every new vector is fully re-orthogonalized against the basis.

    Returns:
        alpha, beta: Tridiagonal matrix of the ``k`` computed steps.
        basis: ``(n, k)`` Krylov basis.
        exhausted: True if the Krylov space became invariant (breakdown) before the cap.
    """
    n = start.size
    m = max(1, min(max_iterations, n))
    dtype = np.result_type(start.dtype, np.float64)
    basis = np.zeros((n, m), dtype=dtype, order="F")
    alpha = np.zeros(m)
    beta = np.zeros(m - 1)
    basis[:, 0] = start
    use_numba = n >= NUMBA_THRESHOLD
    breakdown_tol = 100 * n * np.finfo(np.float64).eps

    for j in range(m):
        w = np.ascontiguousarray(np.asarray(matvec(basis[:, j])).reshape(-1))
        if w.dtype != dtype:
            if np.iscomplexobj(w) and not np.iscomplexobj(basis):
                msg = "The operator maps real vectors to complex ones; start from a complex vector."
                raise TypeError(msg)
            w = w.astype(dtype)

        if use_numba:
            bj = lanczos_numba.extend_basis(basis, w, j, alpha, breakdown_tol)
        else:
            alpha[j] = np.vdot(basis[:, j], w).real
            for _ in range(2):
                w -= basis[:, : j + 1] @ (basis[:, : j + 1].conj().T @ w)
            bj = float(np.linalg.norm(w))
            if bj >= breakdown_tol and j + 1 < m:
                basis[:, j + 1] = w / bj

        if j == m - 1:
            return alpha, beta, basis, m == n
        if bj < breakdown_tol:
            return alpha[: j + 1], beta[:j], basis[:, : j + 1], True
        beta[j] = bj
    return alpha, beta, basis, False


def lanczos_ground_state(
    matvec: Callable[[NDArray[np.complex128]], NDArray[np.complex128]],
    v0: NDArray[np.complex128],
    *,
    tol: float = 1e-10,
    max_iterations: int = 40,
    max_restarts: int = 2,
) -> SolverResult:
    """Smallest eigenpair of a Hermitian operator by restarted Lanczos.

    Each cycle builds a Krylov space of at most `max_iterations` vectors from the current estimate and
    extracts the lowest Ritz pair. The run stops when the residual ``||H x - theta x||`` drops below
    ``tol * max(1, |theta|)``, when the Krylov space becomes invariant, or after ``max_restarts`` additional
    cycles.

    Args:
        matvec: Operator application on flat vectors.
        v0: Initial guess (any shape, flattened internally).
        tol: Residual tolerance.
        max_iterations: Krylov dimension per cycle.
        max_restarts: Number of additional cycles started from the previous Ritz vector.

    Returns:
        SolverResult: With the normalized eigenvector reshaped to ``v0.shape`` and the eigenvalue.

    Raises:
        ValueError: If `v0` is the zero vector or a count argument is invalid.
    """
    if max_iterations < 1 or max_restarts < 0:
        msg = "max_iterations must be positive and max_restarts non-negative."
        raise ValueError(msg)
    shape = v0.shape
    vector = np.asarray(v0).reshape(-1)
    nrm = np.linalg.norm(vector)
    if nrm == 0:
        msg = "Lanczos needs a non-zero start vector."
        raise ValueError(msg)
    vector = vector / nrm

    iterations = 0
    theta = np.nan
    residual = np.inf
    converged = False
    for cycle in range(max_restarts + 1):
        alpha, beta, basis, exhausted = _lanczos_basis(matvec, vector, max_iterations)
        iterations += alpha.size
        evals, evecs = _tridiagonal_eigh(alpha, beta)
        theta = float(evals[0])
        vector = basis[:, : alpha.size] @ evecs[:, 0]
        vector /= np.linalg.norm(vector)
        residual = float(np.linalg.norm(np.asarray(matvec(vector)).reshape(-1) - theta * vector))
        if residual <= tol * max(1.0, abs(theta)) or exhausted:
            converged = True
            break
        logger.debug("Lanczos cycle %d: eigenvalue %.12g, residual %.3e", cycle, theta, residual)

    return SolverResult(vector.reshape(shape), converged, iterations, residual, theta)


def expm_krylov(
    matvec: Callable[[NDArray[np.complex128]], NDArray[np.complex128]],
    vector: NDArray[np.complex128],
    dt: complex,
    *,
    max_lanczos_iterations: int = 25,
    tol: float = 1e-12,
) -> SolverResult:
    """Krylov approximation of ``exp(-1j * dt * H) @ vector``.

    A purely imaginary step ``dt = -1j * tau`` gives imaginary-time evolution ``exp(-tau * H) @ vector``.
    The error estimate is the weight of the last Krylov direction in the projected result; it is zero when the
    Krylov space became invariant.

    Args:
        matvec: Hermitian operator application on flat vectors.
        vector: Input vector (any shape, flattened internally).
        dt: Time step, real or complex.
        max_lanczos_iterations: Maximum Krylov dimension.
        tol: Target for the error estimate.

    Returns:
        SolverResult: The evolved vector with the input's shape (complex).
    """
    shape = vector.shape
    flat = np.asarray(vector).reshape(-1)
    nrm = np.linalg.norm(flat)
    if nrm == 0:
        return SolverResult(np.zeros(shape, dtype=np.complex128), True, 0, 0.0)

    alpha, beta, basis, exhausted = _lanczos_basis(matvec, flat / nrm, max_lanczos_iterations)
    k = alpha.size
    evals, evecs = _tridiagonal_eigh(alpha, beta)
    coeffs = evecs @ (nrm * np.exp(-1j * dt * evals) * evecs[0, :])
    result = basis[:, :k] @ coeffs

    if exhausted:
        error = 0.0
    else:
        error = float(abs(coeffs[-1]))
    return SolverResult(result.reshape(shape), error <= tol * nrm, k, error)


class LanczosSolver:
    """Configured ground-state solver used by the DMRG local update."""

    def __init__(self, tol: float = 1e-10, max_iterations: int = 40, max_restarts: int = 2) -> None:
        """Store solver options.

        Args:
            tol: Residual tolerance.
            max_iterations: Krylov dimension per cycle.
            max_restarts: Additional restart cycles, the retry knob for hard local problems.
        """
        self.tol = tol
        self.max_iterations = max_iterations
        self.max_restarts = max_restarts

    def __call__(
        self, matvec: Callable[[NDArray[np.complex128]], NDArray[np.complex128]], v0: NDArray[np.complex128]
    ) -> SolverResult:
        """Run :func:`lanczos_ground_state` with the stored options.

        Returns:
            SolverResult: Ground-state estimate.
        """
        return lanczos_ground_state(
            matvec, v0, tol=self.tol, max_iterations=self.max_iterations, max_restarts=self.max_restarts
        )


class KrylovExponential:
    """Configured exponential-action solver used by the TDVP local update."""

    def __init__(self, max_lanczos_iterations: int = 25, tol: float = 1e-12) -> None:
        """Store solver options.

        Args:
            max_lanczos_iterations: Maximum Krylov dimension.
            tol: Target for the error estimate.
        """
        self.max_lanczos_iterations = max_lanczos_iterations
        self.tol = tol

    def __call__(
        self,
        matvec: Callable[[NDArray[np.complex128]], NDArray[np.complex128]],
        vector: NDArray[np.complex128],
        dt: complex,
    ) -> SolverResult:
        """Run :func:`expm_krylov` with the stored options.

        Returns:
            SolverResult: Evolved vector.
        """
        return expm_krylov(matvec, vector, dt, max_lanczos_iterations=self.max_lanczos_iterations, tol=self.tol)
