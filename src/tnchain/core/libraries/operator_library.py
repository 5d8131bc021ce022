# Copyright (c) 2025 - 2026 Chair for Design Automation, TUM
# All rights reserved.
#
# SPDX-License-Identifier: MIT
#
# Licensed under the MIT License

"""Operator Library.

This module provides the small, fixed matrices of elementary single-site operators that channels refer to:
spin operators for arbitrary spin S (with Pauli matrices for spin-1/2) and the ladder operators of a
truncated bosonic mode. Operators can be referred to by symbolic name through the :class:`SpinOperator` and
:class:`BosonOperator` enums or given as explicit matrices; both forms are resolved to concrete matrices
exactly once by :func:`resolve_spin_operator` and :func:`resolve_boson_operator`.

The local basis is ordered by decreasing magnetic quantum number, i.e. index 0 is spin up (Z = +1) and
index ``d - 1`` is spin down. Bosonic states are ordered by occupation number ``0 .. n_max``.
"""

from __future__ import annotations

from enum import Enum
from typing import TYPE_CHECKING, Union

import numpy as np

from ..exceptions import InvalidChannelSpecError

if TYPE_CHECKING:
    from numpy.typing import NDArray


class SpinOperator(str, Enum):
    """Symbolic names of single-site spin operators."""

    I = "I"  # noqa: E741
    X = "X"
    Y = "Y"
    Z = "Z"
    SX = "Sx"
    SY = "Sy"
    SZ = "Sz"
    SP = "Sp"
    SM = "Sm"


class BosonOperator(str, Enum):
    """Symbolic names of single-mode boson operators."""

    IDENTITY = "I"
    ANNIHILATION = "a"
    CREATION = "adag"
    NUMBER = "n"


OperatorLike = Union[SpinOperator, BosonOperator, str, "NDArray[np.complex128]", "NDArray[np.float64]"]

_PAULI_NAMES = frozenset({SpinOperator.X, SpinOperator.Y, SpinOperator.Z})


def spin_ops(dim: int = 2) -> dict[str, NDArray[np.complex128] | NDArray[np.float64]]:
    """Spin operators for a site of local dimension ``dim = 2S + 1``.

    Args:
        dim: Local Hilbert-space dimension (2 for spin-1/2, 3 for spin-1, ...).

    Returns:
        Mapping from operator name to matrix. Always contains ``I``, ``Sx``, ``Sy``, ``Sz``, ``Sp``, ``Sm``;
        for ``dim == 2`` the Pauli matrices ``X``, ``Y``, ``Z`` are included as well.

    Raises:
        ValueError: If ``dim < 2``.
    """
    if dim < 2:
        msg = f"Spin sites need a local dimension of at least 2, got {dim}."
        raise ValueError(msg)

    spin = (dim - 1) / 2
    m_values = spin - np.arange(dim)

    s_plus = np.zeros((dim, dim))
    for k in range(1, dim):
        m = m_values[k]
        s_plus[k - 1, k] = np.sqrt(spin * (spin + 1) - m * (m + 1))
    s_minus = s_plus.T.copy()

    ops: dict[str, NDArray[np.complex128] | NDArray[np.float64]] = {
        "I": np.eye(dim),
        "Sz": np.diag(m_values),
        "Sp": s_plus,
        "Sm": s_minus,
        "Sx": 0.5 * (s_plus + s_minus),
        "Sy": -0.5j * (s_plus - s_minus),
    }
    if dim == 2:
        ops["X"] = np.array([[0.0, 1.0], [1.0, 0.0]])
        ops["Y"] = np.array([[0.0, -1j], [1j, 0.0]])
        ops["Z"] = np.array([[1.0, 0.0], [0.0, -1.0]])
    return ops


def boson_ops(dim: int) -> dict[str, NDArray[np.float64]]:
    """Ladder operators of a bosonic mode truncated to ``dim`` levels.

    Args:
        dim: Number of kept Fock states (occupations ``0 .. dim - 1``).

    Returns:
        Mapping with ``I``, ``a`` (annihilation), ``adag`` (creation) and ``n`` (number operator).

    Raises:
        ValueError: If ``dim < 1``.
    """
    if dim < 1:
        msg = f"A boson mode needs at least one level, got {dim}."
        raise ValueError(msg)
    a = np.diag(np.sqrt(np.arange(1, dim, dtype=float)), k=1)
    return {
        "I": np.eye(dim),
        "a": a,
        "adag": a.T.copy(),
        "n": np.diag(np.arange(dim, dtype=float)),
    }


def _check_matrix(op: object, dim: int, kind: str) -> NDArray[np.complex128] | NDArray[np.float64]:
    mat = np.asarray(op)
    if mat.shape != (dim, dim):
        msg = f"Explicit {kind} operator must have shape ({dim}, {dim}), got {mat.shape}."
        raise InvalidChannelSpecError(msg, component="OperatorLibrary")
    if not np.issubdtype(mat.dtype, np.number):
        msg = f"Explicit {kind} operator must be numeric, got dtype {mat.dtype}."
        raise InvalidChannelSpecError(msg, component="OperatorLibrary")
    if np.iscomplexobj(mat):
        return mat.astype(np.complex128)
    return mat.astype(np.float64)


def resolve_spin_operator(op: OperatorLike, dim: int = 2) -> NDArray[np.complex128] | NDArray[np.float64]:
    """Resolve a spin operator symbol or explicit matrix to a concrete matrix.

    Args:
        op: A :class:`SpinOperator`, its string value (e.g. ``"Sz"``), or a ``(dim, dim)`` matrix.
        dim: Local dimension of the spin site.

    Returns:
        The operator matrix.

    Raises:
        InvalidChannelSpecError: If the symbol is unknown, a Pauli matrix is requested for ``dim != 2``,
            or an explicit matrix has the wrong shape.
    """
    if isinstance(op, BosonOperator):
        msg = f"Boson operator {op.value!r} used where a spin operator is expected."
        raise InvalidChannelSpecError(msg, component="OperatorLibrary")
    if isinstance(op, str):
        try:
            name = SpinOperator(op)
        except ValueError:
            valid = sorted(member.value for member in SpinOperator)
            msg = f"Unknown spin operator {op!r}; expected one of {valid} or an explicit matrix."
            raise InvalidChannelSpecError(msg, component="OperatorLibrary") from None
        if name in _PAULI_NAMES and dim != 2:
            msg = f"Pauli operator {name.value!r} is only defined for spin-1/2 sites, not dim={dim}."
            raise InvalidChannelSpecError(msg, component="OperatorLibrary")
        return spin_ops(dim)[name.value]
    return _check_matrix(op, dim, "spin")


def resolve_boson_operator(op: OperatorLike, dim: int) -> NDArray[np.complex128] | NDArray[np.float64]:
    """Resolve a boson operator symbol or explicit matrix to a concrete matrix.

    Args:
        op: A :class:`BosonOperator`, its string value (``"a"``, ``"adag"``, ``"n"``, ``"I"``), or a matrix.
        dim: Truncated dimension of the boson mode.

    Returns:
        The operator matrix.

    Raises:
        InvalidChannelSpecError: If the symbol is unknown or an explicit matrix has the wrong shape.
    """
    if isinstance(op, SpinOperator):
        msg = f"Spin operator {op.value!r} used where a boson operator is expected."
        raise InvalidChannelSpecError(msg, component="OperatorLibrary")
    if isinstance(op, str):
        try:
            name = BosonOperator(op)
        except ValueError:
            valid = sorted(member.value for member in BosonOperator)
            msg = f"Unknown boson operator {op!r}; expected one of {valid} or an explicit matrix."
            raise InvalidChannelSpecError(msg, component="OperatorLibrary") from None
        return boson_ops(dim)[name.value]
    return _check_matrix(op, dim, "boson")
