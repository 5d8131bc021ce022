# Copyright (c) 2025 - 2026 Chair for Design Automation, TUM
# All rights reserved.
#
# SPDX-License-Identifier: MIT
#
# Licensed under the MIT License

"""Environment contractions of MPS-MPO-MPS and MPS-MPS sandwiches.

This module provides the partial contractions (left and right blocks) that are needed to evaluate expectation
values and to apply local effective Hamiltonians inside the sweep engines. It offers
  - single step left/right extensions of a three-layer (bra, operator, ket) or two-layer (bra, ket) block,
  - the :class:`Environment` object that stores all blocks for one MPS-MPO pair,
  - the projected (effective) one-site, two-site and bond operators used by DMRG and TDVP.

Block index order is ``(bra, mpo, ket)`` for three-layer blocks and ``(bra, ket)`` for two-layer blocks.
``left[i]`` summarizes sites ``[0, i)`` and ``right[i]`` summarizes sites ``[i, N)``.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

import numpy as np
import opt_einsum as oe

from ..exceptions import ShapeMismatchError

if TYPE_CHECKING:
    from numpy.typing import NDArray

    from ..data_structures.networks import MPO, MPS

logger = logging.getLogger(__name__)


def update_left_environment(
    ket: NDArray[np.complex128],
    bra: NDArray[np.complex128],
    op: NDArray[np.complex128],
    left_env: NDArray[np.complex128],
) -> NDArray[np.complex128]:
    r"""Perform a contraction step from left to right with an operator inserted.

    Computes ``L'[U, W, V] = L[u, w, v] conj(B)[u, s, U] O[w, s, t, W] A[v, t, V]``.

    Args:
        ket (NDArray[np.complex128]): Tensor A (3-index tensor).
        bra (NDArray[np.complex128]): Tensor B (3-index tensor), to be conjugated.
        op (NDArray[np.complex128]): MPO tensor (4-index tensor).
        left_env (NDArray[np.complex128]): Left operator block (3-index tensor).

    Returns:
        NDArray[np.complex128]: The updated left operator block.
    """
    return oe.contract("uwv,usU,wstW,vtV->UWV", left_env, bra.conj(), op, ket)


def update_right_environment(
    ket: NDArray[np.complex128],
    bra: NDArray[np.complex128],
    op: NDArray[np.complex128],
    right_env: NDArray[np.complex128],
) -> NDArray[np.complex128]:
    r"""Perform a contraction step from right to left with an operator inserted.

    Computes ``R'[u, w, v] = conj(B)[u, s, U] O[w, s, t, W] A[v, t, V] R[U, W, V]``.

    Args:
        ket (NDArray[np.complex128]): Tensor A (3-index tensor).
        bra (NDArray[np.complex128]): Tensor B (3-index tensor), to be conjugated.
        op (NDArray[np.complex128]): MPO tensor (4-index tensor).
        right_env (NDArray[np.complex128]): Right operator block (3-index tensor).

    Returns:
        NDArray[np.complex128]: The updated right operator block.
    """
    return oe.contract("usU,wstW,vtV,UWV->uwv", bra.conj(), op, ket, right_env)


def update_left_overlap(
    ket: NDArray[np.complex128],
    bra: NDArray[np.complex128],
    left_env: NDArray[np.complex128],
) -> NDArray[np.complex128]:
    """Two-layer left extension ``L'[U, V] = L[u, v] conj(B)[u, s, U] A[v, s, V]``.

    Returns:
        NDArray[np.complex128]: The updated left overlap block.
    """
    return oe.contract("uv,usU,vsV->UV", left_env, bra.conj(), ket)


def update_right_overlap(
    ket: NDArray[np.complex128],
    bra: NDArray[np.complex128],
    right_env: NDArray[np.complex128],
) -> NDArray[np.complex128]:
    """Two-layer right extension ``R'[u, v] = conj(B)[u, s, U] A[v, s, V] R[U, V]``.

    Returns:
        NDArray[np.complex128]: The updated right overlap block.
    """
    return oe.contract("usU,vsV,UV->uv", bra.conj(), ket, right_env)


def _check_lengths(state: MPS, mpo: MPO) -> None:
    if state.length != mpo.length:
        msg = f"The lengths of the state ({state.length}) and the operator ({mpo.length}) must match."
        raise ShapeMismatchError(msg, component="EnvironmentContractor")
    for site, (tensor, op) in enumerate(zip(state.tensors, mpo.tensors)):
        if tensor.shape[1] != op.shape[2]:
            msg = f"Physical dimension {tensor.shape[1]} of the state does not match the operator ({op.shape[2]})."
            raise ShapeMismatchError(msg, component="EnvironmentContractor", site=site)


def initialize_right_environments(state: MPS, mpo: MPO) -> list[NDArray[np.complex128]]:
    """Compute the right operator blocks for the given MPS and MPO.

    Starting from the trivial block to the right of the chain the network is contracted site by site moving to
    the left.

    Args:
        state (MPS): The Matrix Product State.
        mpo (MPO): The Matrix Product Operator.

    Returns:
        list[NDArray[np.complex128]]: ``N + 1`` blocks with ``right[i]`` covering sites ``[i, N)``.

    Raises:
        ShapeMismatchError: If state and operator length does not match.
    """
    _check_lengths(state, mpo)
    num_sites = state.length
    right_blocks: list[NDArray[np.complex128]] = [np.ones((1, 1, 1))] * (num_sites + 1)
    for site in reversed(range(num_sites)):
        right_blocks[site] = update_right_environment(
            state.tensors[site], state.tensors[site], mpo.tensors[site], right_blocks[site + 1]
        )
    return right_blocks


def expectation_value(state: MPS, mpo: MPO, bra: MPS | None = None) -> np.complex128:
    """Contract the full sandwich ``<bra|mpo|state>``.

    The result is not normalized.

    Args:
        state: Ket state.
        mpo: Operator.
        bra: Bra state; defaults to `state`.

    Returns:
        np.complex128: The contracted value.

    Raises:
        ShapeMismatchError: If the lengths of the networks do not match.
    """
    _check_lengths(state, mpo)
    if bra is None:
        bra = state
    elif bra.length != state.length:
        msg = f"Bra of length {bra.length} cannot be contracted with a ket of length {state.length}."
        raise ShapeMismatchError(msg, component="EnvironmentContractor")
    block = np.ones((1, 1, 1))
    for ket_tensor, bra_tensor, op in zip(state.tensors, bra.tensors, mpo.tensors):
        block = update_left_environment(ket_tensor, bra_tensor, op, block)
    return np.complex128(block[0, 0, 0])


def project_site(
    left_env: NDArray[np.complex128],
    right_env: NDArray[np.complex128],
    op: NDArray[np.complex128],
    ket: NDArray[np.complex128],
) -> NDArray[np.complex128]:
    r"""Apply the local Hamiltonian operator on a tensor A.

    Computes ``y[u, s, U] = L[u, w, v] O[w, s, t, W] A[v, t, V] R[U, W, V]``.

    Args:
        left_env (NDArray[np.complex128]): Left operator block (3-index tensor).
        right_env (NDArray[np.complex128]): Right operator block (3-index tensor).
        op (NDArray[np.complex128]): MPO tensor (4-index tensor).
        ket (NDArray[np.complex128]): Local MPS tensor (3-index tensor).

    Returns:
        NDArray[np.complex128]: The resulting tensor after applying the local Hamiltonian.
    """
    return oe.contract("uwv,wstW,vtV,UWV->usU", left_env, op, ket, right_env)


def project_two_site(
    left_env: NDArray[np.complex128],
    right_env: NDArray[np.complex128],
    op1: NDArray[np.complex128],
    op2: NDArray[np.complex128],
    theta: NDArray[np.complex128],
) -> NDArray[np.complex128]:
    """Apply the two-site effective Hamiltonian to a merged tensor ``theta[v, t1, t2, V]``.

    Returns:
        NDArray[np.complex128]: Tensor of the same shape as `theta`.
    """
    return oe.contract("uwv,wsta,axyW,vtyV,UWV->usxU", left_env, op1, op2, theta, right_env)


def project_bond(
    left_env: NDArray[np.complex128],
    right_env: NDArray[np.complex128],
    bond_tensor: NDArray[np.complex128],
) -> NDArray[np.complex128]:
    r"""Apply the "zero-site" bond contraction between two operator blocks L and R using a bond tensor C.

    Computes ``y[u, U] = L[u, w, v] C[v, V] R[U, w, V]``. `left_env` must cover all sites up to and including
    the bond's left site, `right_env` all sites from the bond's right site on.

    Returns:
        NDArray[np.complex128]: The resulting bond tensor.
    """
    return oe.contract("uwv,vV,UwV->uU", left_env, bond_tensor, right_env)


class Environment:
    """Left and right blocks of one MPS-MPO pair.

    The object is owned by a single sweep engine. ``left[i]`` is valid for the tensors of sites ``[0, i)`` at the
    time it was computed and ``right[i]`` for sites ``[i, N)``; callers extend a block after they change the
    tensors it summarizes.

    Attributes:
        length: Number of sites.
        left: Left blocks, ``left[0]`` is trivial. Entries not yet computed are None.
        right: Right blocks, ``right[N]`` is trivial. Entries not yet computed are None.
    """

    def __init__(self, length: int) -> None:
        """Create an environment with only the trivial boundary blocks."""
        self.length = length
        self.left: list[NDArray[np.complex128] | None] = [None] * (length + 1)
        self.right: list[NDArray[np.complex128] | None] = [None] * (length + 1)
        self.left[0] = np.ones((1, 1, 1))
        self.right[length] = np.ones((1, 1, 1))

    @classmethod
    def build(cls, state: MPS, mpo: MPO) -> Environment:
        """Environment with all right blocks computed.

        The state is expected to be right-canonical from site 1 on, as it is after
        ``state.set_canonical_form(0)``.

        Returns:
            Environment: Fresh environment for a left-to-right sweep.
        """
        env = cls(state.length)
        env.right = list(initialize_right_environments(state, mpo))
        logger.debug("Built right environments for %d sites", state.length)
        return env

    def extend_left(self, site: int, state: MPS, mpo: MPO) -> None:
        """Compute ``left[site + 1]`` from ``left[site]`` and the tensors at `site`.

        Raises:
            ValueError: If ``left[site]`` has not been computed.
        """
        block = self.left[site]
        if block is None:
            msg = f"Left block {site} is not available."
            raise ValueError(msg)
        tensor = state.tensors[site]
        self.left[site + 1] = update_left_environment(tensor, tensor, mpo.tensors[site], block)

    def extend_right(self, site: int, state: MPS, mpo: MPO) -> None:
        """Compute ``right[site]`` from ``right[site + 1]`` and the tensors at `site`.

        Raises:
            ValueError: If ``right[site + 1]`` has not been computed.
        """
        block = self.right[site + 1]
        if block is None:
            msg = f"Right block {site + 1} is not available."
            raise ValueError(msg)
        tensor = state.tensors[site]
        self.right[site] = update_right_environment(tensor, tensor, mpo.tensors[site], block)

    def blocks(self, first: int, last: int) -> tuple[NDArray[np.complex128], NDArray[np.complex128]]:
        """Left block ending before `first` and right block starting after `last`.

        Raises:
            ValueError: If either block is missing.
        """
        left, right = self.left[first], self.right[last + 1]
        if left is None or right is None:
            msg = f"Environment for window [{first}, {last}] is not available."
            raise ValueError(msg)
        return left, right
