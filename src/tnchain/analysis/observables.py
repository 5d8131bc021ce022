# Copyright (c) 2025 - 2026 Chair for Design Automation, TUM
# All rights reserved.
#
# SPDX-License-Identifier: MIT
#
# Licensed under the MIT License

"""Observables of finished MPS snapshots.

All functions accept an :class:`~tnchain.core.data_structures.networks.MPS` or a plain list of site tensors
``(chi_left, d, chi_right)`` and never modify their input. The MPS does not have to be in canonical form or
normalized: every expectation value is divided by ``<psi|psi>``.

Operators are ``(d, d)`` matrices or spin operator names (``"Z"``, ``"Sz"``, ...) resolved for the local
dimension of the site they act on. Sites are 0-based.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

import numpy as np
import opt_einsum as oe

from ..core.data_structures.networks import MPS
from ..core.exceptions import ShapeMismatchError
from ..core.libraries.operator_library import SpinOperator, resolve_spin_operator
from ..core.methods.decompositions import truncated_svd
from ..core.methods.environments import expectation_value, update_left_overlap

if TYPE_CHECKING:
    from collections.abc import Sequence

    from numpy.typing import NDArray

    from ..core.data_structures.networks import MPO
    from ..core.libraries.operator_library import OperatorLike

    StateLike = MPS | Sequence[NDArray[np.complex128]]


def _as_mps(state: StateLike) -> MPS:
    if isinstance(state, MPS):
        return state
    tensors = list(state)
    return MPS(len(tensors), tensors=tensors)


def _resolve(op: OperatorLike, dim: int) -> NDArray[np.complex128]:
    if isinstance(op, (str, SpinOperator)):
        return resolve_spin_operator(op, dim)
    mat = np.asarray(op)
    if mat.shape != (dim, dim):
        msg = f"Operator of shape {mat.shape} does not act on a site of dimension {dim}."
        raise ShapeMismatchError(msg, component="Observables")
    return mat


def _check_site(site: int, length: int) -> None:
    if not 0 <= site < length:
        msg = f"Site {site} outside of chain of length {length}."
        raise IndexError(msg)


def _sandwich(mps: MPS, ops: dict[int, NDArray[np.complex128]]) -> complex:
    """``<psi| prod_k ops[k] |psi> / <psi|psi>``."""
    block = np.ones((1, 1))
    norm_block = np.ones((1, 1))
    for site, tensor in enumerate(mps.tensors):
        if site in ops:
            block = oe.contract("uv,usU,st,vtV->UV", block, tensor.conj(), ops[site], tensor)
        else:
            block = update_left_overlap(tensor, tensor, block)
        norm_block = update_left_overlap(tensor, tensor, norm_block)
    return complex(block[0, 0] / norm_block[0, 0].real)


def inner_product(bra: StateLike, ket: StateLike) -> complex:
    """Overlap ``<bra|ket>`` (not normalized).

    Returns:
        complex: The overlap.
    """
    return complex(_as_mps(bra).scalar_product(_as_mps(ket)))


def single_site_expectation(site: int, op: OperatorLike, state: StateLike) -> complex:
    """Expectation value ``<O_site>``.

    Returns:
        complex: The expectation value.
    """
    mps = _as_mps(state)
    _check_site(site, mps.length)
    return _sandwich(mps, {site: _resolve(op, mps.physical_dimensions[site])})


def subsystem_expectation_sum(op: OperatorLike, state: StateLike, sites: Sequence[int] | None = None) -> complex:
    """Sum of ``<O_k>`` over `sites` (all sites by default), e.g. the total magnetization.

    Returns:
        complex: The summed expectation value.
    """
    mps = _as_mps(state)
    sites = range(mps.length) if sites is None else sites
    return sum((single_site_expectation(k, op, mps) for k in sites), 0j)


def two_site_expectation(
    site_i: int, op_i: OperatorLike, site_j: int, op_j: OperatorLike, state: StateLike
) -> complex:
    """Two-site expectation value ``<O_i O_j>`` for ``site_i < site_j``.

    Returns:
        complex: The expectation value.

    Raises:
        ValueError: If ``site_i >= site_j``.
    """
    mps = _as_mps(state)
    _check_site(site_i, mps.length)
    _check_site(site_j, mps.length)
    if site_i >= site_j:
        msg = f"Need site_i < site_j, got {site_i} and {site_j}."
        raise ValueError(msg)
    ops = {
        site_i: _resolve(op_i, mps.physical_dimensions[site_i]),
        site_j: _resolve(op_j, mps.physical_dimensions[site_j]),
    }
    return _sandwich(mps, ops)


def correlation_function(site_i: int, site_j: int, op: OperatorLike, state: StateLike) -> complex:
    """Correlation ``<O_i O_j>`` with the same operator on both sites.

    Returns:
        complex: The correlation.
    """
    return two_site_expectation(site_i, op, site_j, op, state)


def connected_correlation(site_i: int, site_j: int, op: OperatorLike, state: StateLike) -> complex:
    """Connected correlation ``<O_i O_j> - <O_i><O_j>``.

    Returns:
        complex: The connected correlation.
    """
    mps = _as_mps(state)
    corr = correlation_function(site_i, site_j, op, mps)
    return corr - single_site_expectation(site_i, op, mps) * single_site_expectation(site_j, op, mps)


def correlation_matrix(
    op: OperatorLike, state: StateLike, sites: Sequence[int] | None = None, *, connected: bool = False
) -> NDArray[np.complex128]:
    """Matrix ``C[a, b] = <O_{s_a} O_{s_b}>`` over the given sites.

    The diagonal holds ``<O_s O_s>``. The matrix is filled from the upper triangle with ``C[b, a] = conj(C[a, b])``,
    which holds for Hermitian operators.

    Args:
        op: Operator on every site.
        state: The MPS.
        sites: Sites to include, all by default.
        connected: Subtract ``<O_i><O_j>``.

    Returns:
        NDArray[np.complex128]: The correlation matrix.
    """
    mps = _as_mps(state)
    sites = list(range(mps.length)) if sites is None else list(sites)
    n = len(sites)
    corr = np.zeros((n, n), dtype=np.complex128)
    for a, site in enumerate(sites):
        mat = _resolve(op, mps.physical_dimensions[site])
        corr[a, a] = _sandwich(mps, {site: mat @ mat})
        if connected:
            corr[a, a] -= single_site_expectation(site, mat, mps) ** 2
        for b in range(a + 1, n):
            pair = sorted((site, sites[b]))
            value = connected_correlation(*pair, op, mps) if connected else correlation_function(*pair, op, mps)
            corr[a, b] = value
            corr[b, a] = np.conj(value)
    return corr


def entanglement_spectrum(state: StateLike, bond: int) -> NDArray[np.float64]:
    """Schmidt probabilities across the bond between sites `bond` and ``bond + 1``.

    Returns:
        NDArray[np.float64]: Squared Schmidt values in descending order, summing to one.
    """
    mps = _as_mps(state).copy()
    if not 0 <= bond < mps.length - 1:
        msg = f"Bond {bond} outside of chain of length {mps.length}."
        raise IndexError(msg)
    mps.set_canonical_form(bond)
    tensor = mps.tensors[bond]
    s_vec = truncated_svd(tensor.reshape(-1, tensor.shape[2])).s
    probabilities = s_vec**2
    return probabilities / probabilities.sum()


def entanglement_entropy(state: StateLike, bond: int, alpha: float = 1.0) -> float:
    """Von Neumann (``alpha=1``) or Renyi entropy across a bond, natural logarithm.

    Returns:
        float: The entropy.
    """
    probabilities = entanglement_spectrum(state, bond)
    probabilities = probabilities[probabilities > 1e-300]
    if alpha == 1:
        return float(-np.sum(probabilities * np.log(probabilities)))
    return float(np.log(np.sum(probabilities**alpha)) / (1 - alpha))


def energy_expectation(state: StateLike, mpo: MPO) -> float:
    """Energy ``<psi|H|psi> / <psi|psi>``.

    Returns:
        float: The real part of the energy.
    """
    mps = _as_mps(state)
    return float(expectation_value(mps, mpo).real / mps.scalar_product(mps).real)


def _apply_mpo(mpo: MPO, mps: MPS) -> MPS:
    """Exact ``H|psi>`` with bond dimension ``chi * w``."""
    tensors = []
    for op, tensor in zip(mpo.tensors, mps.tensors):
        new = oe.contract("wstW,atb->awsbW", op, tensor)
        chi_l, w_l, d, chi_r, w_r = new.shape
        tensors.append(new.reshape(chi_l * w_l, d, chi_r * w_r))
    return MPS(len(tensors), tensors=tensors)


def energy_variance(state: StateLike, mpo: MPO) -> float:
    """Energy variance ``<H^2> - <H>^2``, clamped at zero.

    Returns:
        float: The variance.
    """
    mps = _as_mps(state)
    if mps.length != mpo.length:
        msg = f"State of length {mps.length} does not match operator of length {mpo.length}."
        raise ShapeMismatchError(msg, component="Observables")
    norm_sq = mps.scalar_product(mps).real
    h_psi = _apply_mpo(mpo, mps)
    h2 = h_psi.scalar_product(h_psi).real / norm_sq
    energy = energy_expectation(mps, mpo)
    return max(0.0, float(h2 - energy**2))
