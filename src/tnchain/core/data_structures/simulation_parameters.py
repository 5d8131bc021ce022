# Copyright (c) 2025 - 2026 Chair for Design Automation, TUM
# All rights reserved.
#
# SPDX-License-Identifier: MIT
#
# Licensed under the MIT License

"""Simulation Parameters.

This module defines the configuration objects of the sweep algorithms and the per-sweep record they report:
  - :class:`TruncationConfig`: the {max bond dimension, cutoff} policy of every truncated SVD.
  - :class:`DMRGParams`: ground-state search with two-site DMRG.
  - :class:`TDVPParams`: real- or imaginary-time evolution with one- or two-site TDVP.
  - :class:`SweepRecord`: diagnostics of one completed sweep, handed to the caller's callback.

All parameter classes validate their arguments on construction and raise ``ValueError`` on invalid input.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    import numpy as np
    from numpy.typing import NDArray


class TruncationConfig:
    """Truncation policy of the SVD engine.

    Attributes:
        max_bond_dim: Largest kept bond dimension, None for no cap.
        cutoff: Relative bound on the discarded squared singular-value weight per truncation.
    """

    def __init__(self, max_bond_dim: int | None = 64, cutoff: float = 1e-12) -> None:
        """Initialize the policy.

        Args:
            max_bond_dim: Largest kept bond dimension, None for no cap.
            cutoff: Relative discarded-weight cutoff.

        Raises:
            ValueError: If ``max_bond_dim < 1`` or ``cutoff < 0``.
        """
        if max_bond_dim is not None and max_bond_dim < 1:
            msg = f"max_bond_dim must be at least 1, got {max_bond_dim}."
            raise ValueError(msg)
        if cutoff < 0:
            msg = f"cutoff must be non-negative, got {cutoff}."
            raise ValueError(msg)
        self.max_bond_dim = max_bond_dim
        self.cutoff = cutoff

    def __repr__(self) -> str:
        return f"TruncationConfig(max_bond_dim={self.max_bond_dim}, cutoff={self.cutoff})"


class DMRGParams:
    """Two-site DMRG configuration.

    The engine always runs `sweeps` sweeps. ``energy_tol`` only decides whether a record is flagged as converged;
    a callback returning True stops the run early.
    """

    def __init__(
        self,
        sweeps: int = 10,
        max_bond_dim: int | None = 64,
        cutoff: float = 1e-12,
        energy_tol: float = 1e-10,
        lanczos_tol: float = 1e-10,
        max_lanczos_iterations: int = 40,
        max_restarts: int = 2,
        *,
        get_state: bool = False,
        show_progress: bool = False,
    ) -> None:
        """Initialize DMRG parameters.

        Args:
            sweeps: Number of full (left-to-right plus right-to-left) sweeps.
            max_bond_dim: Bond dimension cap of the truncation.
            cutoff: Relative discarded-weight cutoff of the truncation.
            energy_tol: Energy change below which a sweep is reported as converged.
            lanczos_tol: Residual tolerance of the local eigensolver.
            max_lanczos_iterations: Krylov dimension of one Lanczos cycle.
            max_restarts: Additional Lanczos cycles for local problems that did not converge.
            get_state: Attach a copy of the MPS tensors to every sweep record.
            show_progress: Show a progress bar over sweeps.

        Raises:
            ValueError: If a count or tolerance is invalid.
        """
        if sweeps < 1:
            msg = f"sweeps must be at least 1, got {sweeps}."
            raise ValueError(msg)
        if energy_tol < 0 or lanczos_tol <= 0:
            msg = "Tolerances must be non-negative (lanczos_tol positive)."
            raise ValueError(msg)
        if max_lanczos_iterations < 1 or max_restarts < 0:
            msg = "max_lanczos_iterations must be positive and max_restarts non-negative."
            raise ValueError(msg)
        self.sweeps = sweeps
        self.truncation = TruncationConfig(max_bond_dim, cutoff)
        self.energy_tol = energy_tol
        self.lanczos_tol = lanczos_tol
        self.max_lanczos_iterations = max_lanczos_iterations
        self.max_restarts = max_restarts
        self.get_state = get_state
        self.show_progress = show_progress


class TDVPParams:
    """TDVP time-evolution configuration.

    One sweep advances the state by `dt`. With ``imaginary_time=True`` the state is propagated with
    ``exp(-dt * H)`` and renormalized, which projects onto the ground state for long times.
    """

    def __init__(
        self,
        elapsed_time: float,
        dt: float = 0.1,
        method: str = "two_site",
        max_bond_dim: int | None = 64,
        cutoff: float = 1e-12,
        max_lanczos_iterations: int = 25,
        krylov_tol: float = 1e-12,
        *,
        imaginary_time: bool = False,
        get_state: bool = False,
        show_progress: bool = False,
    ) -> None:
        """Initialize TDVP parameters.

        Args:
            elapsed_time: Total evolution time.
            dt: Time step per sweep.
            method: ``"one_site"`` (fixed bond dimension) or ``"two_site"`` (adaptive bond dimension).
            max_bond_dim: Bond dimension cap of the truncation.
            cutoff: Relative discarded-weight cutoff of the truncation.
            max_lanczos_iterations: Krylov dimension of the exponential action.
            krylov_tol: Target error of the exponential action.
            imaginary_time: Propagate in imaginary time.
            get_state: Attach a copy of the MPS tensors to every sweep record.
            show_progress: Show a progress bar over sweeps.

        Raises:
            ValueError: If the time step or method is invalid.
        """
        if dt <= 0 or elapsed_time < 0:
            msg = "dt must be positive and elapsed_time non-negative."
            raise ValueError(msg)
        if method not in {"one_site", "two_site"}:
            msg = f"method must be 'one_site' or 'two_site', got {method!r}."
            raise ValueError(msg)
        if max_lanczos_iterations < 1:
            msg = f"max_lanczos_iterations must be positive, got {max_lanczos_iterations}."
            raise ValueError(msg)
        self.elapsed_time = elapsed_time
        self.dt = dt
        self.method = method
        self.truncation = TruncationConfig(max_bond_dim, cutoff)
        self.max_lanczos_iterations = max_lanczos_iterations
        self.krylov_tol = krylov_tol
        self.imaginary_time = imaginary_time
        self.get_state = get_state
        self.show_progress = show_progress

    @property
    def steps(self) -> int:
        """Number of sweeps needed to reach `elapsed_time`."""
        return round(self.elapsed_time / self.dt)

    @property
    def times(self) -> list[float]:
        """Simulation times after each sweep."""
        return [self.dt * (k + 1) for k in range(self.steps)]


@dataclass
class SweepRecord:
    """Diagnostics of one sweep.

    Attributes:
        sweep: Sweep index, starting at 0.
        energy: ``<psi|H|psi> / <psi|psi>`` after the sweep.
        time: Simulation time after the sweep (TDVP), None for DMRG.
        max_bond_dim: Largest bond dimension of the state after the sweep.
        truncation_error: Discarded weight summed over all truncations of the sweep.
        energy_change: Energy difference to the previous sweep, None for the first sweep.
        converged: Whether the energy change is below the configured tolerance (DMRG).
        solver_failures: Number of local solver calls that hit their iteration cap.
        warnings: Human-readable descriptions of non-fatal problems.
        tensors: Copy of the MPS tensors if requested.
    """

    sweep: int
    energy: float
    max_bond_dim: int
    truncation_error: float
    time: float | None = None
    energy_change: float | None = None
    converged: bool = False
    solver_failures: int = 0
    warnings: list[str] = field(default_factory=list)
    tensors: list[NDArray[np.complex128]] | None = None
