# Copyright (c) 2025 - 2026 Chair for Design Automation, TUM
# All rights reserved.
#
# SPDX-License-Identifier: MIT
#
# Licensed under the MIT License

"""Numba kernel of the restarted Lanczos recursion.

The Krylov basis is stored column-wise in an F-ordered ``(n, m)`` array. The kernel is compiled separately for
real and complex bases.
"""

from __future__ import annotations

import numpy as np
from numba import jit


@jit(nopython=True, cache=True, fastmath=True)
def extend_basis(v: np.ndarray, w: np.ndarray, j: int, alpha: np.ndarray, breakdown_tol: float) -> float:
    """One Lanczos step with full re-orthogonalization.

    Stores ``alpha[j] = Re<v_j, w>`` and orthogonalizes `w` in place against the columns ``0..j`` of `v` with two
    classical Gram-Schmidt passes. The two passes replace the three-term recursion, so the basis stays
    orthonormal through every restart cycle. If the remaining norm is at least `breakdown_tol` and there is room
    in `v`, the normalized vector is stored as column ``j + 1``.

    Args:
        v: (n, m) Krylov basis, column ``j`` is the current vector.
        w: (n,) operator applied to ``v_j``. Modified in place.
        j: Current iteration index.
        alpha: (m,) diagonal of the tridiagonal matrix.
        breakdown_tol: Norm below which the Krylov space is treated as invariant.

    Returns:
        float: Norm of the orthogonalized vector, the next off-diagonal element.
    """
    n = w.size
    alpha[j] = np.vdot(v[:, j], w).real

    for _ in range(2):
        for k in range(j + 1):
            vk = v[:, k]
            overlap = np.vdot(vk, w)
            for i in range(n):
                w[i] = w[i] - overlap * vk[i]

    norm_sq = 0.0
    for i in range(n):
        val = w[i]
        norm_sq += val.real * val.real + val.imag * val.imag
    bj = np.sqrt(norm_sq)

    if bj >= breakdown_tol and j + 1 < v.shape[1]:
        inv_bj = 1.0 / bj
        for i in range(n):
            v[i, j + 1] = w[i] * inv_bj
    return bj
