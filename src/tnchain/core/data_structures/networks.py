# Copyright (c) 2025 - 2026 Chair for Design Automation, TUM
# All rights reserved.
#
# SPDX-License-Identifier: MIT
#
# Licensed under the MIT License

"""Tensor Network Data Structures.

This module implements classes for representing quantum states and operators on finite one-dimensional chains.
It defines the Matrix Product State (MPS) and Matrix Product Operator (MPO) classes, along with methods for
validity checks, canonicalization, normalization and conversion to dense vectors and matrices.

Index conventions:
    - MPS site tensors have shape ``(chi_left, d, chi_right)``.
    - MPO site tensors have shape ``(w_left, d_out, d_in, w_right)``.
    - Both chains have open boundaries, i.e. the outermost bonds have dimension 1.
"""

from __future__ import annotations

import copy
from typing import TYPE_CHECKING

import numpy as np
import opt_einsum as oe

from ..exceptions import ShapeMismatchError
from ..methods.decompositions import (
    is_left_orthogonal,
    is_right_orthogonal,
    left_qr,
    left_svd,
    right_qr,
    right_svd,
)
from ..methods.environments import update_left_overlap

if TYPE_CHECKING:
    from collections.abc import Sequence

    from numpy.typing import DTypeLike, NDArray

    from .channels import Channel


_SUPPORTED_DTYPES = (np.dtype(np.float64), np.dtype(np.complex128))


def _resolve_dtype(tensors: Sequence[NDArray[np.complex128]], dtype: DTypeLike | None) -> np.dtype:
    if dtype is None:
        return np.dtype(np.complex128) if any(np.iscomplexobj(t) for t in tensors) else np.dtype(np.float64)
    resolved = np.dtype(dtype)
    if resolved not in _SUPPORTED_DTYPES:
        msg = f"Unsupported scalar type {resolved}; use float64 or complex128."
        raise ValueError(msg)
    return resolved


class MPS:
    """Matrix Product State (MPS) class for representing quantum states.

    The index order is (chi_left, sigma, chi_right).

    Attributes:
    length (int): The number of sites in the MPS.
    tensors (list[NDArray]): List of rank-3 tensors representing the MPS.
    physical_dimensions (list[int]): List of physical dimensions for each site.
    dtype (np.dtype): Scalar type shared by all tensors (float64 or complex128).
    flipped (bool): Indicates if the network has been flipped.
    """

    def __init__(
        self,
        length: int,
        tensors: Sequence[NDArray[np.complex128]] | None = None,
        physical_dimensions: Sequence[int] | int | None = None,
        state: str = "zeros",
        basis_string: str | None = None,
        dtype: DTypeLike | None = None,
    ) -> None:
        """Initializes a Matrix Product State (MPS).

        Args:
            length: Number of sites in the MPS.
            tensors: Predefined tensors representing the MPS. Must match `length` if provided. The list and the
                arrays are copied, so the MPS owns its tensors.
                If None, tensors are initialized according to `state`.
            physical_dimensions: Physical dimension for each site. Defaults to spin-1/2 sites (dimension 2).
            state: Initial product state used when no tensors are given. Valid options include:
                - "zeros": All sites in local state 0 (spin up).
                - "ones": All sites in local state 1.
                - "x+": Each site in (|0⟩ + |1⟩)/√2.
                - "x-": Each site in (|0⟩ - |1⟩)/√2.
                - "y+": Each site in (|0⟩ + i|1⟩)/√2.
                - "y-": Each site in (|0⟩ - i|1⟩)/√2.
                - "Neel": Alternating pattern |0101...⟩.
                - "wall": Domain wall |000111⟩.
                - "basis": Computational basis state given by `basis_string`.
            basis_string: String such as "0101" used with ``state="basis"``. Digits index the local basis.
            dtype: Scalar type. Inferred from the tensors (or the preset) if None.

        Raises:
            ValueError: If the provided `state` parameter does not match any valid initialization string.
            ShapeMismatchError: If the given tensors do not form a valid open-boundary MPS.
        """
        self.flipped = False
        self.length = length
        if length < 1:
            msg = "An MPS needs at least one site."
            raise ValueError(msg)

        if tensors is not None:
            if len(tensors) != length:
                msg = f"Expected {length} tensors, got {len(tensors)}."
                raise ShapeMismatchError(msg, component="MPS")
            self.tensors = [np.array(t) for t in tensors]
            self.physical_dimensions = [t.shape[1] if np.ndim(t) == 3 else -1 for t in self.tensors]
        else:
            if physical_dimensions is None:
                self.physical_dimensions = [2] * length
            elif isinstance(physical_dimensions, int):
                self.physical_dimensions = [physical_dimensions] * length
            else:
                self.physical_dimensions = list(physical_dimensions)
            if len(self.physical_dimensions) != length:
                msg = "physical_dimensions must have one entry per site."
                raise ShapeMismatchError(msg, component="MPS")
            self.tensors = self._preset_tensors(state, basis_string)

        self.dtype = _resolve_dtype(self.tensors, dtype)
        self.tensors = [t.astype(self.dtype, copy=False) for t in self.tensors]
        self.check_if_valid_mps()

    def _preset_tensors(self, state: str, basis_string: str | None) -> list[NDArray[np.complex128]]:
        if state == "basis":
            if basis_string is None:
                msg = "basis_string must be provided for 'basis' state initialization."
                raise ValueError(msg)
            if len(basis_string) != self.length:
                msg = "basis_string must have one character per site."
                raise ValueError(msg)

        tensors = []
        for i, d in enumerate(self.physical_dimensions):
            vector = np.zeros(d, dtype=complex)
            if state == "zeros":
                vector[0] = 1
            elif state == "ones":
                vector[1] = 1
            elif state == "x+":
                vector[0] = 1 / np.sqrt(2)
                vector[1] = 1 / np.sqrt(2)
            elif state == "x-":
                vector[0] = 1 / np.sqrt(2)
                vector[1] = -1 / np.sqrt(2)
            elif state == "y+":
                vector[0] = 1 / np.sqrt(2)
                vector[1] = 1j / np.sqrt(2)
            elif state == "y-":
                vector[0] = 1 / np.sqrt(2)
                vector[1] = -1j / np.sqrt(2)
            elif state == "Neel":
                vector[i % 2] = 1
            elif state == "wall":
                vector[0 if i < self.length // 2 else 1] = 1
            elif state == "basis":
                assert basis_string is not None
                idx = int(basis_string[i])
                if not 0 <= idx < d:
                    msg = f"Invalid local state {idx} at site {i} with dimension {d}."
                    raise ValueError(msg)
                vector[idx] = 1
            else:
                msg = "Invalid state string"
                raise ValueError(msg)
            if not np.iscomplexobj(vector) or not np.any(vector.imag):
                vector = vector.real
            tensors.append(vector.reshape(1, d, 1))
        return tensors

    @classmethod
    def product_state(
        cls,
        local_states: Sequence[NDArray[np.complex128]],
        dtype: DTypeLike | None = None,
    ) -> MPS:
        """Bond-dimension-1 MPS from one normalized local vector per site.

        Args:
            local_states: Local state vectors, one per site.
            dtype: Scalar type; inferred if None.

        Returns:
            The product-state MPS.
        """
        tensors = []
        for vector in local_states:
            vec = np.asarray(vector)
            tensors.append((vec / np.linalg.norm(vec)).reshape(1, -1, 1))
        return cls(len(tensors), tensors=tensors, dtype=dtype)

    @classmethod
    def from_eigenstates(
        cls,
        operators: NDArray[np.complex128] | Sequence[NDArray[np.complex128]],
        pattern: Sequence[int],
        dtype: DTypeLike | None = None,
    ) -> MPS:
        """Product state of local operator eigenvectors.

        Eigenvectors of each local operator are ordered by descending eigenvalue, so for ``Sz`` index 0 is
        spin up. A Neel state along z is ``from_eigenstates(Sz, [0, 1, 0, 1, ...])``.

        Args:
            operators: A single Hermitian operator used on every site, or one operator per site.
            pattern: Eigenstate index per site.
            dtype: Scalar type; inferred if None.

        Returns:
            The product-state MPS.

        Raises:
            ValueError: If the number of operators does not match the pattern.
        """
        if isinstance(operators, np.ndarray) and operators.ndim == 2:
            ops = [operators] * len(pattern)
        else:
            ops = list(operators)
        if len(ops) != len(pattern):
            msg = "Need one operator per site in the pattern."
            raise ValueError(msg)
        vectors = []
        for op, idx in zip(ops, pattern):
            _, vecs = np.linalg.eigh(op)
            vec = vecs[:, ::-1][:, idx]
            # fix the global phase so that real eigenvectors stay real
            pivot = vec[np.argmax(np.abs(vec))]
            vec = vec * (abs(pivot) / pivot)
            if np.allclose(vec.imag, 0):
                vec = vec.real
            vectors.append(vec)
        return cls.product_state(vectors, dtype=dtype)

    @classmethod
    def random(
        cls,
        length: int,
        bond_dim: int,
        physical_dimensions: Sequence[int] | int = 2,
        dtype: DTypeLike = np.float64,
        rng: np.random.Generator | int | None = None,
    ) -> MPS:
        """Random normalized MPS.

        Internal bonds are ``min(bond_dim, prod(d[:i]), prod(d[i:]))`` so that no bond exceeds the
        dimension of the smaller half of the chain. The state is returned right-canonical with unit norm.

        Args:
            length: Number of sites.
            bond_dim: Target bond dimension.
            physical_dimensions: Local dimension, or one per site.
            dtype: float64 or complex128.
            rng: Random generator or seed.

        Returns:
            The random MPS.
        """
        rng = np.random.default_rng(rng)
        dims = [physical_dimensions] * length if isinstance(physical_dimensions, int) else list(physical_dimensions)
        bonds = [1]
        for i in range(1, length):
            left_dim = int(np.prod(dims[:i], dtype=float))
            right_dim = int(np.prod(dims[i:], dtype=float))
            bonds.append(min(bond_dim, left_dim, right_dim))
        bonds.append(1)

        is_complex = np.dtype(dtype) == np.complex128
        tensors = []
        for i, d in enumerate(dims):
            shape = (bonds[i], d, bonds[i + 1])
            tensor = rng.standard_normal(shape)
            if is_complex:
                tensor = tensor + 1j * rng.standard_normal(shape)
            tensors.append(tensor)
        mps = cls(length, tensors=tensors, dtype=dtype)
        mps.normalize()
        return mps

    def copy(self) -> MPS:
        """Deep copy of the state."""
        return copy.deepcopy(self)

    def astype(self, dtype: DTypeLike, tol: float = 1e-12) -> MPS:
        """Copy of the state with a different scalar type.

        Args:
            dtype: ``np.float64`` or ``np.complex128``.
            tol: Largest imaginary part that may be dropped when casting to a real type.

        Returns:
            MPS: New state whose tensors are cast to `dtype`.

        Raises:
            ValueError: If a complex state with non-negligible imaginary parts is cast to a real type.
        """
        tensors = self.tensors
        if np.dtype(dtype) == np.float64 and self.dtype == np.complex128:
            if any(t.size and np.max(np.abs(t.imag)) > tol for t in tensors):
                msg = "Cannot cast a state with non-zero imaginary parts to float64."
                raise ValueError(msg)
            tensors = [t.real for t in tensors]
        return MPS(self.length, tensors=tensors, dtype=dtype)

    def pad_bond_dimension(self, target_dim: int) -> None:
        """Pad MPS with extra zeros to increase bond dims.

        Enlarge every internal bond up to ``min(target_dim, dim of the smaller half-chain)``.
        The first tensor keeps a left bond of 1, the last tensor a right bond of 1.
        After padding the state is renormalised (canonicalised).

        Args:
            target_dim: The desired bond dimension for the internal bonds.

        Raises:
            ValueError: target_dim must be at least current bond dim.
        """
        dims = self.physical_dimensions
        targets = [1]
        for i in range(1, self.length):
            left_dim = int(np.prod(dims[:i], dtype=float))
            right_dim = int(np.prod(dims[i:], dtype=float))
            targets.append(min(target_dim, left_dim, right_dim))
        targets.append(1)

        for i, tensor in enumerate(self.tensors):
            chi_l, phys, chi_r = tensor.shape
            left_target, right_target = targets[i], targets[i + 1]
            if chi_l > left_target or chi_r > right_target:
                msg = "Target bond dim must be at least current bond dim."
                raise ValueError(msg)
            new_tensor = np.zeros((left_target, phys, right_target), dtype=self.dtype)
            new_tensor[:chi_l, :, :chi_r] = tensor
            self.tensors[i] = new_tensor
        self.normalize()

    def get_max_bond(self) -> int:
        """Write max bond dim.

        Returns:
            int: The maximum bond dimension found among all tensors in the network.
        """
        return max(max(tensor.shape[0], tensor.shape[2]) for tensor in self.tensors)

    def bond_dimensions(self) -> list[int]:
        """Dimensions of the internal bonds, left to right."""
        return [tensor.shape[2] for tensor in self.tensors[:-1]]

    def flip_network(self) -> None:
        """Flip MPS.

        Reverses the chain and swaps the bond legs of every tensor so that we can do operations
        from right to left rather than coding it twice.
        """
        self.tensors = [np.transpose(tensor, (2, 1, 0)) for tensor in reversed(self.tensors)]
        self.physical_dimensions.reverse()
        self.flipped = not self.flipped

    def almost_equal(self, other: MPS) -> bool:
        """Checks if the tensors of this MPS are almost equal to the other MPS.

        Args:
            other (MPS): The other MPS to compare with.

        Returns:
            bool: True if all tensors of this MPS are almost equal to the other MPS, False otherwise.
        """
        if self.length != other.length:
            return False
        for a, b in zip(self.tensors, other.tensors):
            if a.shape != b.shape or not np.allclose(a, b):
                return False
        return True

    def shift_orthogonality_center_right(self, current_orthogonality_center: int, decomposition: str = "QR") -> None:
        """Shifts orthogonality center right.

        Makes the tensor at the current center left-orthogonal and multiplies the remainder into the next
        site. At the last site the remainder (the norm, up to a phase) is discarded.

        Args:
            current_orthogonality_center (int): current center
            decomposition: "QR" (default) or "SVD". SVD removes numerically redundant bond directions.

        Raises:
            ValueError: If the decomposition is unknown.
        """
        tensor = self.tensors[current_orthogonality_center]
        if decomposition == "QR":
            site_tensor, bond_tensor = right_qr(tensor)
        elif decomposition == "SVD":
            site_tensor, bond_tensor = right_svd(tensor)
        else:
            msg = f"Unknown decomposition {decomposition!r}; use 'QR' or 'SVD'."
            raise ValueError(msg)
        self.tensors[current_orthogonality_center] = site_tensor

        # If normalizing, we just throw away the R
        if current_orthogonality_center + 1 < self.length:
            self.tensors[current_orthogonality_center + 1] = oe.contract(
                "ij, jsk->isk",
                bond_tensor,
                self.tensors[current_orthogonality_center + 1],
            )

    def shift_orthogonality_center_left(self, current_orthogonality_center: int, decomposition: str = "QR") -> None:
        """Shifts orthogonality center left.

        Makes the tensor at the current center right-orthogonal and multiplies the remainder into the
        previous site.

        Args:
            current_orthogonality_center (int): current center
            decomposition: "QR" (default) or "SVD".

        Raises:
            ValueError: If the decomposition is unknown.
        """
        tensor = self.tensors[current_orthogonality_center]
        if decomposition == "QR":
            site_tensor, bond_tensor = left_qr(tensor)
        elif decomposition == "SVD":
            site_tensor, bond_tensor = left_svd(tensor)
        else:
            msg = f"Unknown decomposition {decomposition!r}; use 'QR' or 'SVD'."
            raise ValueError(msg)
        self.tensors[current_orthogonality_center] = site_tensor

        if current_orthogonality_center > 0:
            self.tensors[current_orthogonality_center - 1] = oe.contract(
                "isj, jk->isk",
                self.tensors[current_orthogonality_center - 1],
                bond_tensor,
            )

    def set_canonical_form(self, orthogonality_center: int, decomposition: str = "QR") -> None:
        """Sets canonical form of MPS.

        Left and right normalizes an MPS around a selected site: every tensor left of the center becomes
        left-orthogonal and every tensor right of it right-orthogonal. No weight is discarded.

        Args:
            orthogonality_center (int): site of matrix MPS around which we normalize
            decomposition: Type of decomposition. Default QR.

        Raises:
            IndexError: If the center is not a site of the chain.
        """
        if not 0 <= orthogonality_center < self.length:
            msg = f"Orthogonality center {orthogonality_center} outside of chain of length {self.length}."
            raise IndexError(msg)
        for site in range(orthogonality_center):
            self.shift_orthogonality_center_right(site, decomposition)
        for site in reversed(range(orthogonality_center + 1, self.length)):
            self.shift_orthogonality_center_left(site, decomposition)

    def normalize(self, form: str = "B", decomposition: str = "QR") -> None:
        """Normalize MPS.

        Brings the network into right-canonical ("B", center at site 0) or left-canonical ("A", center at the
        last site) form and rescales the center tensor to unit norm.

        Args:
            form (str): The form to normalize the network to. Default is "B".
            decomposition: Decides between QR or SVD decomposition.

        Raises:
            ValueError: If the form is unknown.
        """
        if form == "B":
            center = 0
        elif form == "A":
            center = self.length - 1
        else:
            msg = f"Unknown form {form!r}; use 'A' or 'B'."
            raise ValueError(msg)
        self.set_canonical_form(center, decomposition)
        norm = np.linalg.norm(self.tensors[center])
        if norm == 0:
            msg = "Cannot normalize a state with zero norm."
            raise ValueError(msg)
        self.tensors[center] = self.tensors[center] / norm

    def scalar_product(self, other: MPS) -> np.complex128:
        """Compute the scalar (inner) product ⟨self|other⟩.

        Args:
            other (MPS): The second Matrix Product State.

        Returns:
            np.complex128: The resulting scalar product.

        Raises:
            ShapeMismatchError: If the states have different lengths.
        """
        if self.length != other.length:
            msg = f"Cannot contract states of length {self.length} and {other.length}."
            raise ShapeMismatchError(msg, component="MPS")
        block = np.ones((1, 1))
        for bra, ket in zip(self.tensors, other.tensors):
            block = update_left_overlap(ket, bra, block)
        return np.complex128(block[0, 0])

    def norm(self) -> np.float64:
        """Norm calculation.

        Returns:
            np.float64: The 2-norm of the state.
        """
        return np.float64(np.sqrt(abs(self.scalar_product(self))))

    def check_if_valid_mps(self) -> None:
        """MPS validity check.

        Verifies tensor ranks, open boundaries and that the bond dimensions between consecutive tensors agree.

        Raises:
            ShapeMismatchError: At the first site violating one of the conditions.
        """
        for site, tensor in enumerate(self.tensors):
            if tensor.ndim != 3:
                msg = f"MPS tensors must have rank 3, got shape {tensor.shape}."
                raise ShapeMismatchError(msg, component="MPS", site=site)
        if self.tensors[0].shape[0] != 1 or self.tensors[-1].shape[2] != 1:
            msg = "Open boundary bonds must have dimension 1."
            raise ShapeMismatchError(msg, component="MPS")
        right_bond = self.tensors[0].shape[2]
        for site, tensor in enumerate(self.tensors[1:], start=1):
            if tensor.shape[0] != right_bond:
                msg = f"Left bond {tensor.shape[0]} does not match right bond {right_bond} of the previous site."
                raise ShapeMismatchError(msg, component="MPS", site=site)
            right_bond = tensor.shape[2]
        self.physical_dimensions = [tensor.shape[1] for tensor in self.tensors]

    def check_canonical_form(self, tol: float = 1e-10) -> list[int]:
        """Checks canonical form of MPS.

        Returns every site ``c`` such that all tensors left of ``c`` are left-orthogonal and all tensors right
        of ``c`` are right-orthogonal. An empty list means the MPS is not in any mixed-canonical form.

        Args:
            tol: Absolute tolerance of the orthogonality identities.

        Returns:
            list[int]: Admissible orthogonality centers.
        """
        left_ok = [is_left_orthogonal(t, tol) for t in self.tensors]
        right_ok = [is_right_orthogonal(t, tol) for t in self.tensors]
        return [i for i in range(self.length) if all(left_ok[:i]) and all(right_ok[i + 1 :])]

    def to_vec(self) -> NDArray[np.complex128]:
        r"""Converts the MPS to a full state vector representation.

        Site 0 is the most significant index of the returned vector.

        Returns:
                A one-dimensional NumPy array of length \(\prod_{\ell=1}^L d_\ell\)
                representing the state vector.
        """
        vec = self.tensors[0].reshape(-1, self.tensors[0].shape[2])
        for tensor in self.tensors[1:]:
            vec = np.tensordot(vec, tensor, axes=(1, 0))
            vec = vec.reshape(-1, tensor.shape[2])
        return vec.reshape(-1)


class MPO:
    """Matrix Product Operator (MPO) for tensor-network simulations.

    An MPO represents a linear operator on a 1D lattice as a chain of local tensors with index order::

        (w_left, phys_out, phys_in, w_right)

    Construction
    -----------
    - ``MPO(tensors)``: wrap explicit tensors.
    - ``MPO.from_channels(...)``: compile interaction channels through the finite-state-machine builder.
    - ``MPO.ising(...)``, ``MPO.heisenberg(...)``, ``MPO.long_range_ising(...)``: prebuilt models.
    - ``MPO.identity(...)``.

    The sweep engines treat an MPO as read-only.
    """

    def __init__(
        self,
        tensors: Sequence[NDArray[np.complex128]] | None = None,
        dtype: DTypeLike | None = None,
    ) -> None:
        """Initialize the MPO.

        Args:
            tensors: Site tensors ``(w_left, d_out, d_in, w_right)``. An empty MPO is created if None.
            dtype: Scalar type; inferred from the tensors if None.
        """
        self.tensors: list[NDArray[np.complex128]] = []
        self.length = 0
        self.physical_dimensions: list[int] = []
        self.dtype = np.dtype(np.float64)
        if tensors is not None:
            self.dtype = _resolve_dtype(tensors, dtype)
            self.tensors = [np.array(t, dtype=self.dtype) for t in tensors]
            self.length = len(self.tensors)
            self.check_if_valid_mpo()

    @classmethod
    def identity(cls, length: int, physical_dimension: int = 2) -> MPO:
        """Identity operator with bond dimension 1.

        Returns:
            MPO: The identity.
        """
        mat = np.eye(physical_dimension).reshape(1, physical_dimension, physical_dimension, 1)
        return cls([mat.copy() for _ in range(length)])

    @classmethod
    def from_channels(
        cls,
        channels: Sequence[Channel],
        length: int,
        *,
        spin_dim: int = 2,
        boson_dim: int | None = None,
    ) -> MPO:
        """Compile interaction channels into an MPO.

        Args:
            channels: Channel specifications.
            length: Number of spin sites.
            spin_dim: Local dimension of the spin sites.
            boson_dim: Truncated dimension of the boson mode placed at site 0, if any.

        Returns:
            MPO: The compiled operator.
        """
        from ..methods.fsm import build_mpo  # noqa: PLC0415

        return build_mpo(channels, length, spin_dim=spin_dim, boson_dim=boson_dim)

    @classmethod
    def ising(
        cls,
        length: int,
        J: float,  # noqa: N803
        h: float,
        *,
        coupling_dir: str = "Z",
        field_dir: str = "X",
    ) -> MPO:
        """Transverse-field Ising model with Pauli matrices.

        H = J Σ σ^a_i σ^a_{i+1} + h Σ σ^b_i, with a = `coupling_dir` and b = `field_dir`.

        Args:
            length: Number of sites.
            J: Nearest-neighbour coupling.
            h: Field strength.
            coupling_dir: Pauli direction of the coupling.
            field_dir: Pauli direction of the field.

        Returns:
            MPO: The Hamiltonian.
        """
        from .channels import Field, FiniteRangeCoupling  # noqa: PLC0415

        channels: list[Channel] = [FiniteRangeCoupling(coupling_dir, coupling_dir, J)]
        if h != 0:
            channels.append(Field(field_dir, h))
        return cls.from_channels(channels, length)

    @classmethod
    def heisenberg(
        cls,
        length: int,
        Jx: float,  # noqa: N803
        Jy: float,  # noqa: N803
        Jz: float,  # noqa: N803
        h: float = 0.0,
    ) -> MPO:
        """Heisenberg (XYZ) model with spin-1/2 operators.

        H = Σ (Jx Sx_i Sx_{i+1} + Jy Sy_i Sy_{i+1} + Jz Sz_i Sz_{i+1}) + h Σ Sz_i.

        The transverse part is written with ladder operators, so the MPO stays real.

        Returns:
            MPO: The Hamiltonian.
        """
        from .channels import Field, FiniteRangeCoupling  # noqa: PLC0415

        flip_flop = (Jx + Jy) / 4
        pair = (Jx - Jy) / 4
        terms = (("Sp", "Sm", flip_flop), ("Sm", "Sp", flip_flop), ("Sp", "Sp", pair), ("Sm", "Sm", pair))
        channels: list[Channel] = [FiniteRangeCoupling(op1, op2, coupling) for op1, op2, coupling in terms if coupling]
        if Jz != 0:
            channels.append(FiniteRangeCoupling("Sz", "Sz", Jz))
        if h != 0:
            channels.append(Field("Sz", h))
        return cls.from_channels(channels, length)

    @classmethod
    def long_range_ising(
        cls,
        length: int,
        J: float,  # noqa: N803
        alpha: float,
        h: float = 0.0,
        n_exp: int = 8,
    ) -> MPO:
        """Ising model with power-law decaying couplings.

        H = J Σ_{i<j} Z_i Z_j / |i-j|^alpha + h Σ X_i, with the power law approximated by `n_exp`
        exponentials.

        Returns:
            MPO: The Hamiltonian.
        """
        from .channels import Field, PowerLawCoupling  # noqa: PLC0415

        channels: list[Channel] = [PowerLawCoupling("Z", "Z", J, alpha=alpha, n_exp=n_exp)]
        if h != 0:
            channels.append(Field("X", h))
        return cls.from_channels(channels, length)

    def get_max_bond(self) -> int:
        """Largest operator bond dimension."""
        return max(max(tensor.shape[0], tensor.shape[3]) for tensor in self.tensors)

    def bond_dimensions(self) -> list[int]:
        """Dimensions of the internal operator bonds, left to right."""
        return [tensor.shape[3] for tensor in self.tensors[:-1]]

    def to_matrix(self) -> NDArray[np.complex128]:
        """MPO to matrix conversion.

        Site 0 is the most significant index, matching :meth:`MPS.to_vec`.

        Returns:
            The dense operator.
        """
        mat = self.tensors[0]
        for tensor in self.tensors[1:]:
            mat = oe.contract("aijw, wklb->aikjlb", mat, tensor)
            mat = np.reshape(
                mat,
                (
                    mat.shape[0],
                    mat.shape[1] * mat.shape[2],
                    mat.shape[3] * mat.shape[4],
                    mat.shape[5],
                ),
            )

        # Final left and right bonds should be 1
        return mat[0, :, :, 0]

    def check_if_valid_mpo(self) -> bool:
        """MPO validity check.

        Verifies tensor ranks, square physical legs, open boundaries and matching operator bonds.

        Returns:
            bool: True if the tensor network is a valid MPO.

        Raises:
            ShapeMismatchError: At the first site violating one of the conditions.
        """
        if not self.tensors:
            msg = "MPO has no tensors."
            raise ShapeMismatchError(msg, component="MPO")
        for site, tensor in enumerate(self.tensors):
            if tensor.ndim != 4:
                msg = f"MPO tensors must have rank 4, got shape {tensor.shape}."
                raise ShapeMismatchError(msg, component="MPO", site=site)
            if tensor.shape[1] != tensor.shape[2]:
                msg = f"Physical legs differ: {tensor.shape[1]} != {tensor.shape[2]}."
                raise ShapeMismatchError(msg, component="MPO", site=site)
        if self.tensors[0].shape[0] != 1 or self.tensors[-1].shape[3] != 1:
            msg = "Open boundary bonds must have dimension 1."
            raise ShapeMismatchError(msg, component="MPO")
        right_bond = self.tensors[0].shape[3]
        for site, tensor in enumerate(self.tensors[1:], start=1):
            if tensor.shape[0] != right_bond:
                msg = f"Left bond {tensor.shape[0]} does not match right bond {right_bond} of the previous site."
                raise ShapeMismatchError(msg, component="MPO", site=site)
            right_bond = tensor.shape[3]
        self.physical_dimensions = [tensor.shape[1] for tensor in self.tensors]
        return True
