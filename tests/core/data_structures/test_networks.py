# Copyright (c) 2025 - 2026 Chair for Design Automation, TUM
# All rights reserved.
#
# SPDX-License-Identifier: MIT
#
# Licensed under the MIT License

"""Tests for network classes.

This module provides unit tests for the Matrix Product State (MPS) and Matrix Product Operator (MPO) classes.
It verifies initialization from presets and custom tensors, dtype handling, bond dimension bookkeeping, network
flipping, orthogonality center shifting, canonical forms, normalization, scalar products, and the dense
conversion of the prebuilt Hamiltonians.
"""

# ignore non-lowercase variable names for physics notation
# ruff: noqa: N806

from __future__ import annotations

import numpy as np
import pytest

from tnchain.core.data_structures.networks import MPO, MPS
from tnchain.core.exceptions import ShapeMismatchError
from tnchain.core.libraries.operator_library import spin_ops

_I2 = np.eye(2)
_X2 = np.array([[0, 1], [1, 0]], dtype=complex)
_Y2 = np.array([[0, -1j], [1j, 0]], dtype=complex)
_Z2 = np.array([[1, 0], [0, -1]], dtype=complex)


def _embed(ops: dict[int, np.ndarray], length: int, dim: int = 2) -> np.ndarray:
    """Dense operator acting with ``ops[k]`` on site k and the identity elsewhere (site 0 most significant).

    Returns:
        The ``(dim**length, dim**length)`` matrix.
    """
    out = np.array([[1.0]], dtype=complex)
    for k in range(length):
        out = np.kron(out, ops.get(k, np.eye(dim)))
    return out


def _ising_dense(length: int, J: float, h: float) -> np.ndarray:
    H = np.zeros((2**length, 2**length), dtype=complex)
    for i in range(length - 1):
        H += J * _embed({i: _Z2, i + 1: _Z2}, length)
    for i in range(length):
        H += h * _embed({i: _X2}, length)
    return H


def _heisenberg_dense(length: int, Jx: float, Jy: float, Jz: float, h: float) -> np.ndarray:
    ops = spin_ops(2)
    H = np.zeros((2**length, 2**length), dtype=complex)
    for i in range(length - 1):
        H += Jx * _embed({i: ops["Sx"], i + 1: ops["Sx"]}, length)
        H += Jy * _embed({i: ops["Sy"], i + 1: ops["Sy"]}, length)
        H += Jz * _embed({i: ops["Sz"], i + 1: ops["Sz"]}, length)
    for i in range(length):
        H += h * _embed({i: ops["Sz"]}, length)
    return H


##############################################################################################################
# MPS
##############################################################################################################


@pytest.mark.parametrize(
    ("state", "expected"),
    [
        ("zeros", [1, 0]),
        ("ones", [0, 1]),
        ("x+", [1 / np.sqrt(2), 1 / np.sqrt(2)]),
        ("x-", [1 / np.sqrt(2), -1 / np.sqrt(2)]),
        ("y+", [1 / np.sqrt(2), 1j / np.sqrt(2)]),
        ("y-", [1 / np.sqrt(2), -1j / np.sqrt(2)]),
    ],
)
def test_mps_presets(state: str, expected: list[complex]) -> None:
    """Uniform presets produce the expected local vector on every site."""
    mps = MPS(3, state=state)
    assert mps.length == 3
    assert mps.physical_dimensions == [2, 2, 2]
    for tensor in mps.tensors:
        assert tensor.shape == (1, 2, 1)
        np.testing.assert_allclose(tensor[0, :, 0], expected)
    assert mps.dtype == (np.complex128 if state.startswith("y") else np.float64)


def test_mps_pattern_presets() -> None:
    """Neel, wall and basis presets set the correct local basis states."""
    neel = MPS(4, state="Neel")
    np.testing.assert_allclose(neel.to_vec(), np.eye(16)[int("0101", 2)])
    wall = MPS(4, state="wall")
    np.testing.assert_allclose(wall.to_vec(), np.eye(16)[int("0011", 2)])
    basis = MPS(3, state="basis", basis_string="110")
    np.testing.assert_allclose(basis.to_vec(), np.eye(8)[int("110", 2)])


def test_mps_invalid_presets() -> None:
    """Unknown presets and malformed basis strings raise ValueError."""
    with pytest.raises(ValueError, match="Invalid state string"):
        MPS(2, state="nonsense")
    with pytest.raises(ValueError, match="basis_string must be provided"):
        MPS(2, state="basis")
    with pytest.raises(ValueError, match="one character per site"):
        MPS(2, state="basis", basis_string="010")
    with pytest.raises(ValueError, match="Invalid local state"):
        MPS(2, state="basis", basis_string="02")
    with pytest.raises(ValueError, match="at least one site"):
        MPS(0)


def test_mps_custom_tensors() -> None:
    """Custom tensors are wrapped, copied into a fresh list and validated."""
    rng = np.random.default_rng(0)
    tensors = [rng.standard_normal((1, 2, 3)), rng.standard_normal((3, 3, 2)), rng.standard_normal((2, 2, 1))]
    mps = MPS(3, tensors=tensors)
    assert mps.physical_dimensions == [2, 3, 2]
    assert mps.bond_dimensions() == [3, 2]
    assert mps.get_max_bond() == 3
    assert mps.dtype == np.float64
    tensors.pop()
    assert len(mps.tensors) == 3


def test_mps_invalid_tensors() -> None:
    """Bond mismatches and open-boundary violations are reported with the offending site."""
    good = np.ones((1, 2, 2))
    with pytest.raises(ShapeMismatchError) as excinfo:
        MPS(2, tensors=[good, np.ones((3, 2, 1))])
    assert excinfo.value.site == 1
    assert excinfo.value.component == "MPS"
    with pytest.raises(ShapeMismatchError, match="Open boundary"):
        MPS(1, tensors=[np.ones((2, 2, 1))])
    with pytest.raises(ShapeMismatchError, match="Expected 2 tensors"):
        MPS(2, tensors=[np.ones((1, 2, 1))])
    with pytest.raises(ShapeMismatchError, match="rank 3"):
        MPS(1, tensors=[np.ones((1, 2))])


def test_constructors_copy_tensors() -> None:
    """Networks own their tensors; changing the source arrays afterwards has no effect."""
    rng = np.random.default_rng(11)
    sources = [rng.standard_normal((1, 2, 2)), rng.standard_normal((2, 2, 1))]
    mps = MPS(2, tensors=sources)
    vec = mps.to_vec()
    for source in sources:
        source *= 3.0
    sources.append(np.ones((1, 2, 1)))
    assert mps.length == 2
    np.testing.assert_allclose(mps.to_vec(), vec)

    complex_sources = [t.astype(np.complex128) for t in sources[:2]]
    cplx = MPS(2, tensors=complex_sources)
    complex_sources[0][0, 0, 0] = 100.0
    assert cplx.tensors[0][0, 0, 0] != 100.0

    op = np.zeros((1, 2, 2, 1))
    op[0, :, :, 0] = np.diag([1.0, -1.0])
    mpo = MPO([op, op])
    matrix = mpo.to_matrix()
    op[0, :, :, 0] = 0.0
    np.testing.assert_allclose(mpo.to_matrix(), matrix)


def test_mps_dtype() -> None:
    """The dtype is inferred, can be forced, and only float64/complex128 are supported."""
    assert MPS(2).dtype == np.float64
    assert MPS(2, dtype=np.complex128).dtype == np.complex128
    mps = MPS(2, state="x+")
    cplx = mps.astype(np.complex128)
    assert cplx.dtype == np.complex128
    assert all(t.dtype == np.complex128 for t in cplx.tensors)
    assert mps.dtype == np.float64
    with pytest.raises(ValueError, match="Unsupported scalar type"):
        MPS(2, dtype=np.float32)


def test_astype_rejects_imaginary_parts() -> None:
    """Casting to float64 is refused while imaginary parts remain, and exact when they vanish."""
    phased = MPS(2, state="y+")
    assert phased.dtype == np.complex128
    with pytest.raises(ValueError, match="imaginary"):
        phased.astype(np.float64)

    real_valued = MPS(2, state="x+", dtype=np.complex128)
    real_valued.tensors[0] = real_valued.tensors[0] + 1e-14j
    cast = real_valued.astype(np.float64)
    assert cast.dtype == np.float64
    assert all(t.dtype == np.float64 for t in cast.tensors)
    np.testing.assert_allclose(cast.to_vec(), 0.5 * np.ones(4))


def test_product_state_and_eigenstates() -> None:
    """Product states are normalized and eigenstates follow descending eigenvalue order."""
    mps = MPS.product_state([np.array([1.0, 1.0]), np.array([0.0, 2.0])])
    np.testing.assert_allclose(mps.to_vec(), [0, 1 / np.sqrt(2), 0, 1 / np.sqrt(2)])

    neel = MPS.from_eigenstates(spin_ops(2)["Sz"], [0, 1, 0])
    np.testing.assert_allclose(neel.to_vec(), np.eye(8)[int("010", 2)])
    x_state = MPS.from_eigenstates(_X2, [0, 1])
    np.testing.assert_allclose(np.abs(x_state.to_vec()), 0.5 * np.ones(4))
    assert x_state.dtype == np.float64
    with pytest.raises(ValueError, match="one operator per site"):
        MPS.from_eigenstates([_X2], [0, 1])


def test_random_mps() -> None:
    """Random states are normalized, right-canonical and respect the half-chain bond limit."""
    mps = MPS.random(6, 8, rng=1)
    assert mps.bond_dimensions() == [2, 4, 8, 4, 2]
    assert mps.norm() == pytest.approx(1.0)
    assert 0 in mps.check_canonical_form()
    cplx = MPS.random(4, 3, physical_dimensions=3, dtype=np.complex128, rng=2)
    assert cplx.dtype == np.complex128
    assert cplx.physical_dimensions == [3, 3, 3, 3]


def test_flip_network() -> None:
    """Flipping twice restores the original tensors and the represented state is reversed."""
    mps = MPS.random(4, 3, rng=3)
    original = mps.copy()
    vec = mps.to_vec().reshape([2] * 4)
    mps.flip_network()
    assert mps.flipped
    np.testing.assert_allclose(mps.to_vec().reshape([2] * 4), vec.transpose(3, 2, 1, 0))
    mps.flip_network()
    assert not mps.flipped
    assert mps.almost_equal(original)


def test_copy_is_independent() -> None:
    """A copy does not share tensors with the original."""
    mps = MPS.random(3, 2, rng=4)
    other = mps.copy()
    other.tensors[0][0, 0, 0] += 1.0
    assert not mps.almost_equal(other)


def test_pad_bond_dimension() -> None:
    """Padding enlarges the bonds without changing the state."""
    mps = MPS(4, state="x+")
    vec = mps.to_vec()
    mps.pad_bond_dimension(4)
    assert mps.bond_dimensions() == [2, 4, 2]
    np.testing.assert_allclose(np.abs(np.vdot(mps.to_vec(), vec)), 1.0)
    with pytest.raises(ValueError, match="at least current bond dim"):
        mps.pad_bond_dimension(1)


@pytest.mark.parametrize("decomposition", ["QR", "SVD"])
def test_shift_orthogonality_center(decomposition: str) -> None:
    """Shifting the center right and left keeps the state and creates orthogonal tensors."""
    mps = MPS.random(5, 4, dtype=np.complex128, rng=5)
    vec = mps.to_vec()
    mps.shift_orthogonality_center_right(0, decomposition)
    mps.shift_orthogonality_center_right(1, decomposition)
    np.testing.assert_allclose(mps.to_vec(), vec, atol=1e-12)
    assert 2 in mps.check_canonical_form()
    mps.shift_orthogonality_center_left(2, decomposition)
    np.testing.assert_allclose(mps.to_vec(), vec, atol=1e-12)
    assert 1 in mps.check_canonical_form()
    with pytest.raises(ValueError, match="Unknown decomposition"):
        mps.shift_orthogonality_center_right(0, "LU")


def test_set_canonical_form() -> None:
    """Every site can be made the orthogonality center without changing the state."""
    mps = MPS.random(5, 4, rng=6)
    vec = mps.to_vec()
    for center in range(5):
        mps.set_canonical_form(center)
        assert center in mps.check_canonical_form()
        np.testing.assert_allclose(mps.to_vec(), vec, atol=1e-12)
    with pytest.raises(IndexError):
        mps.set_canonical_form(5)


@pytest.mark.parametrize("center", [0, 2, 4])
def test_canonicalization_is_idempotent(center: int) -> None:
    """Canonicalizing a state already centered at a site changes its tensors only by a diagonal phase gauge."""
    mps = MPS.random(5, 4, dtype=np.complex128, rng=12)
    mps.set_canonical_form(center)
    before = mps.copy()
    mps.set_canonical_form(center)
    assert center in mps.check_canonical_form()
    assert mps.bond_dimensions() == before.bond_dimensions()
    np.testing.assert_allclose(mps.to_vec(), before.to_vec(), atol=1e-12)
    for tensor, reference in zip(mps.tensors, before.tensors):
        np.testing.assert_allclose(np.abs(tensor), np.abs(reference), atol=1e-12)


def test_recanonicalization_keeps_unit_norm() -> None:
    """A random state canonicalized at the middle and then at site 1 stays normalized and orthogonal."""
    length = 8
    mps = MPS.random(length, 6, dtype=np.complex128, rng=7)
    mps.set_canonical_form(length // 2)
    mps.set_canonical_form(1)
    assert 1 in mps.check_canonical_form()
    assert mps.norm() == pytest.approx(1.0, abs=1e-12)
    assert np.linalg.norm(mps.tensors[1]) == pytest.approx(1.0, abs=1e-12)


@pytest.mark.parametrize("form", ["A", "B"])
def test_normalize(form: str) -> None:
    """Normalization produces unit norm in the requested canonical form."""
    rng = np.random.default_rng(8)
    tensors = [rng.standard_normal((1, 2, 3)), rng.standard_normal((3, 2, 3)), rng.standard_normal((3, 2, 1))]
    mps = MPS(3, tensors=tensors)
    vec = mps.to_vec()
    mps.normalize(form)
    assert mps.norm() == pytest.approx(1.0)
    np.testing.assert_allclose(np.abs(np.vdot(mps.to_vec(), vec)), np.linalg.norm(vec))
    expected_center = 0 if form == "B" else 2
    assert expected_center in mps.check_canonical_form()
    with pytest.raises(ValueError, match="Unknown form"):
        mps.normalize("C")


def test_normalize_zero_state() -> None:
    """A zero state cannot be normalized."""
    mps = MPS(2, tensors=[np.zeros((1, 2, 1)), np.zeros((1, 2, 1))])
    with pytest.raises(ValueError, match="zero norm"):
        mps.normalize()


def test_scalar_product() -> None:
    """The scalar product matches the dense vectors and conjugates the bra."""
    a = MPS.random(4, 3, dtype=np.complex128, rng=9)
    b = MPS.random(4, 2, dtype=np.complex128, rng=10)
    np.testing.assert_allclose(a.scalar_product(b), np.vdot(a.to_vec(), b.to_vec()), atol=1e-12)
    np.testing.assert_allclose(b.scalar_product(a), np.conj(a.scalar_product(b)), atol=1e-12)
    with pytest.raises(ShapeMismatchError):
        a.scalar_product(MPS.random(3, 2, rng=11))


def test_check_canonical_form_product_state() -> None:
    """Every site is a valid center of a normalized product state."""
    mps = MPS(4, state="x+")
    assert mps.check_canonical_form() == [0, 1, 2, 3]


##############################################################################################################
# MPO
##############################################################################################################


def test_identity_mpo() -> None:
    """The identity MPO is the dense identity."""
    mpo = MPO.identity(3, 3)
    assert mpo.length == 3
    assert mpo.physical_dimensions == [3, 3, 3]
    np.testing.assert_allclose(mpo.to_matrix(), np.eye(27))


@pytest.mark.parametrize(("J", "h"), [(1.0, 0.5), (-1.0, 0.0), (0.3, -1.2)])
def test_ising_mpo(J: float, h: float) -> None:
    """The Ising template matches the dense Hamiltonian."""
    mpo = MPO.ising(4, J, h)
    assert mpo.dtype == np.float64
    np.testing.assert_allclose(mpo.to_matrix(), _ising_dense(4, J, h), atol=1e-12)


def test_heisenberg_mpo() -> None:
    """The XYZ template matches the dense Hamiltonian and stays real."""
    mpo = MPO.heisenberg(4, 1.0, 0.5, -0.7, h=0.3)
    assert mpo.dtype == np.float64
    np.testing.assert_allclose(mpo.to_matrix(), _heisenberg_dense(4, 1.0, 0.5, -0.7, 0.3), atol=1e-12)


def test_mpo_bond_dimensions() -> None:
    """Nearest-neighbour Ising has operator bond dimension 3."""
    mpo = MPO.ising(5, 1.0, 1.0)
    assert mpo.bond_dimensions() == [3, 3, 3, 3]
    assert mpo.get_max_bond() == 3
    assert mpo.tensors[0].shape[0] == 1
    assert mpo.tensors[-1].shape[3] == 1


def test_mpo_custom_tensors() -> None:
    """Explicit tensors are validated, including the physical legs."""
    tensor = np.zeros((1, 2, 2, 1), dtype=complex)
    tensor[0, :, :, 0] = _Y2
    mpo = MPO([tensor, tensor])
    assert mpo.dtype == np.complex128
    np.testing.assert_allclose(mpo.to_matrix(), np.kron(_Y2, _Y2))
    with pytest.raises(ShapeMismatchError, match="Physical legs"):
        MPO([np.zeros((1, 2, 3, 1))])
    with pytest.raises(ShapeMismatchError):
        MPO([np.zeros((1, 2, 2, 2)), np.zeros((3, 2, 2, 1))])
    with pytest.raises(ShapeMismatchError, match="no tensors"):
        MPO([])
