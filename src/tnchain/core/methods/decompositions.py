# Copyright (c) 2025 - 2026 Chair for Design Automation, TUM
# All rights reserved.
#
# SPDX-License-Identifier: MIT
#
# Licensed under the MIT License

"""Tensor Network Decompositions.

This module implements the truncated singular value decomposition that controls every change of bond
dimension in the package, together with the left and right moving QR/SVD steps used to bring an MPS into
canonical form and the merge/split helpers used by the two-site sweep updates.

MPS tensors use the index order ``(chi_left, d, chi_right)``.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, NamedTuple

import numpy as np

from ..exceptions import NumericalFailureError, ShapeMismatchError

if TYPE_CHECKING:
    from numpy.typing import NDArray


class SVDResult(NamedTuple):
    """Truncated singular value decomposition ``matrix ~ u @ diag(s) @ vh``.

    Attributes:
        u: Left singular vectors, shape ``(m, k)``.
        s: Kept singular values in descending order, shape ``(k,)``.
        vh: Right singular vectors, shape ``(k, n)``.
        discarded_weight: Sum of the squared singular values that were dropped.
    """

    u: NDArray[np.complex128]
    s: NDArray[np.float64]
    vh: NDArray[np.complex128]
    discarded_weight: float


def _svd(matrix: NDArray[np.complex128]) -> tuple[NDArray[np.complex128], NDArray[np.float64], NDArray[np.complex128]]:
    if not np.isfinite(matrix).all():
        msg = "Matrix passed to SVD contains NaN or Inf entries."
        raise NumericalFailureError(msg, component="TruncatedSVD")
    try:
        return np.linalg.svd(matrix, full_matrices=False)
    except np.linalg.LinAlgError as err:
        msg = f"SVD of a {matrix.shape[0]}x{matrix.shape[1]} matrix did not converge."
        raise NumericalFailureError(msg, component="TruncatedSVD") from err


def truncated_svd(
    matrix: NDArray[np.complex128],
    max_rank: int | None = None,
    cutoff: float = 0.0,
) -> SVDResult:
    """Truncated SVD under a combined {max rank, relative cutoff} policy.

    The kept rank ``k`` is the smallest value with ``k <= max_rank`` such that the discarded weight
    ``sum(s[k:]**2)`` does not exceed ``cutoff * sum(s**2)``. At least one singular value is always kept.

    Args:
        matrix: Matrix of shape ``(m, n)``.
        max_rank: Maximum number of kept singular values. ``None`` means no rank cap.
        cutoff: Relative bound on the discarded squared weight.

    Returns:
        SVDResult: truncated factors and the absolute discarded weight.

    Raises:
        ValueError: If ``max_rank < 1`` or ``cutoff < 0``.
        NumericalFailureError: If the decomposition does not converge.
    """
    if max_rank is not None and max_rank < 1:
        msg = f"max_rank must be at least 1, got {max_rank}."
        raise ValueError(msg)
    if cutoff < 0:
        msg = f"cutoff must be non-negative, got {cutoff}."
        raise ValueError(msg)

    u_mat, s_vec, v_mat = _svd(matrix)
    s_sq = s_vec**2
    # tail[k] = weight discarded when keeping k values; tail[-1] == 0
    tail = np.append(np.cumsum(s_sq[::-1])[::-1], 0.0)
    threshold = cutoff * tail[0]
    keep = int(np.argmax(tail <= threshold))
    if max_rank is not None:
        keep = min(keep, max_rank)
    keep = max(keep, 1)

    return SVDResult(u_mat[:, :keep], s_vec[:keep], v_mat[:keep, :], float(tail[keep]))


def right_qr(mps_tensor: NDArray[np.complex128]) -> tuple[NDArray[np.complex128], NDArray[np.complex128]]:
    """Right QR.

    Performs the QR decomposition of an MPS tensor moving to the right.

    Args:
        mps_tensor: The tensor to be decomposed, shape ``(left, phys, right)``.

    Returns:
        q_tensor: Left-orthogonal tensor ``(left, phys, new)``.
        r_mat: Remainder ``(new, right)`` to be absorbed into the next site.
    """
    left, phys, right = mps_tensor.shape
    q_mat, r_mat = np.linalg.qr(mps_tensor.reshape(left * phys, right))
    return q_mat.reshape(left, phys, -1), r_mat


def left_qr(mps_tensor: NDArray[np.complex128]) -> tuple[NDArray[np.complex128], NDArray[np.complex128]]:
    """Left QR.

    Performs the LQ decomposition of an MPS tensor moving to the left.

    Args:
        mps_tensor: The tensor to be decomposed, shape ``(left, phys, right)``.

    Returns:
        q_tensor: Right-orthogonal tensor ``(new, phys, right)``.
        r_mat: Remainder ``(left, new)`` to be absorbed into the previous site.
    """
    left, phys, right = mps_tensor.shape
    q_mat, r_mat = np.linalg.qr(mps_tensor.reshape(left, phys * right).T)
    return q_mat.T.reshape(-1, phys, right), r_mat.T


def _null_cutoff(shape: tuple[int, ...]) -> float:
    """Relative squared weight below which singular directions count as numerically zero."""
    return float((10 * max(shape) * np.finfo(np.float64).eps) ** 2)


def right_svd(mps_tensor: NDArray[np.complex128]) -> tuple[NDArray[np.complex128], NDArray[np.complex128]]:
    """Right SVD.

    Lossless SVD step moving to the right. Only numerically-zero singular values are removed, so the
    bond dimension can shrink to the rank of the tensor but no weight is lost.

    Args:
        mps_tensor: The tensor to be decomposed, shape ``(left, phys, right)``.

    Returns:
        u_tensor: Left-orthogonal tensor ``(left, phys, new)``.
        remainder: ``diag(s) @ vh`` of shape ``(new, right)``.
    """
    left, phys, right = mps_tensor.shape
    matrix = mps_tensor.reshape(left * phys, right)
    u_mat, s_vec, v_mat, _ = truncated_svd(matrix, cutoff=_null_cutoff(matrix.shape))
    return u_mat.reshape(left, phys, s_vec.size), s_vec[:, None] * v_mat


def left_svd(mps_tensor: NDArray[np.complex128]) -> tuple[NDArray[np.complex128], NDArray[np.complex128]]:
    """Left SVD.

    Lossless SVD step moving to the left, the mirror image of :func:`right_svd`.

    Args:
        mps_tensor: The tensor to be decomposed, shape ``(left, phys, right)``.

    Returns:
        v_tensor: Right-orthogonal tensor ``(new, phys, right)``.
        remainder: ``u @ diag(s)`` of shape ``(left, new)``.
    """
    left, phys, right = mps_tensor.shape
    matrix = mps_tensor.reshape(left, phys * right)
    u_mat, s_vec, v_mat, _ = truncated_svd(matrix, cutoff=_null_cutoff(matrix.shape))
    return v_mat.reshape(s_vec.size, phys, right), u_mat * s_vec


def merge_two_site(a: NDArray[np.complex128], b: NDArray[np.complex128]) -> NDArray[np.complex128]:
    """Contract two neighboring MPS tensors over their shared bond.

    Args:
        a: Left tensor ``(left, d1, bond)``.
        b: Right tensor ``(bond, d2, right)``.

    Returns:
        Two-site tensor of shape ``(left, d1, d2, right)``.

    Raises:
        ShapeMismatchError: If the shared bond dimensions differ.
    """
    if a.shape[2] != b.shape[0]:
        msg = f"Cannot merge tensors with bond dimensions {a.shape[2]} and {b.shape[0]}."
        raise ShapeMismatchError(msg, component="Decompositions")
    return np.tensordot(a, b, axes=(2, 0))


def split_two_site(
    theta: NDArray[np.complex128],
    max_bond_dim: int | None = None,
    cutoff: float = 0.0,
    svd_distribution: str = "right",
    *,
    normalize: bool = False,
) -> tuple[NDArray[np.complex128], NDArray[np.complex128], NDArray[np.float64], float]:
    """Split a two-site tensor back into two MPS tensors with truncation.

    The parameter ``svd_distribution`` determines where the singular values end up:
        - ``"left"``  : multiplied into the left tensor (right tensor is right-orthogonal).
        - ``"right"`` : multiplied into the right tensor (left tensor is left-orthogonal).
        - ``"none"``  : not absorbed, both factors are isometries.

    Args:
        theta: Two-site tensor ``(left, d1, d2, right)``.
        max_bond_dim: Maximum bond dimension of the new bond.
        cutoff: Relative discarded-weight cutoff, see :func:`truncated_svd`.
        svd_distribution: ``"left"``, ``"right"`` or ``"none"``.
        normalize: Rescale the kept singular values to unit norm.

    Returns:
        The left tensor ``(left, d1, k)``, the right tensor ``(k, d2, right)``, the kept singular values and
        the discarded weight.

    Raises:
        ValueError: If ``svd_distribution`` is invalid.
    """
    if svd_distribution not in {"left", "right", "none"}:
        msg = "svd_distribution parameter must be left, right, or none."
        raise ValueError(msg)
    left, d1, d2, right = theta.shape
    u_mat, s_vec, v_mat, discarded = truncated_svd(theta.reshape(left * d1, d2 * right), max_bond_dim, cutoff)
    if normalize:
        norm = np.linalg.norm(s_vec)
        if norm > 0:
            s_vec = s_vec / norm

    keep = s_vec.size
    if svd_distribution == "left":
        u_mat = u_mat * s_vec
    elif svd_distribution == "right":
        v_mat = s_vec[:, None] * v_mat
    return u_mat.reshape(left, d1, keep), v_mat.reshape(keep, d2, right), s_vec, discarded


def is_left_orthogonal(tensor: NDArray[np.complex128], tol: float = 1e-10) -> bool:
    """Check ``sum_{l,s} conj(A[l,s,r]) A[l,s,r'] == delta(r, r')``."""
    mat = np.tensordot(tensor.conj(), tensor, axes=((0, 1), (0, 1)))
    return bool(np.allclose(mat, np.eye(mat.shape[0]), atol=tol, rtol=0))


def is_right_orthogonal(tensor: NDArray[np.complex128], tol: float = 1e-10) -> bool:
    """Check ``sum_{s,r} A[l,s,r] conj(A[l',s,r]) == delta(l, l')``."""
    mat = np.tensordot(tensor, tensor.conj(), axes=((1, 2), (1, 2)))
    return bool(np.allclose(mat, np.eye(mat.shape[0]), atol=tol, rtol=0))
