# Copyright (c) 2025 - 2026 Chair for Design Automation, TUM
# All rights reserved.
#
# SPDX-License-Identifier: MIT
#
# Licensed under the MIT License

"""1TDVP + 2TDVP time evolution.

One sweep evolves the state by one time step ``dt`` with the symmetric second-order splitting of the
time-dependent variational principle: the left-to-right pass evolves every window forward by ``dt/2`` and the
remainder backward by ``dt/2``, the right-to-left pass repeats this in reverse order. The single-site variant keeps
the bond dimension fixed; the two-site variant truncates every split with the SVD engine and lets the bond
dimension grow up to the configured cap.

Imaginary-time evolution (``exp(-tau H)``) uses the same scheme with an imaginary step and renormalizes every
local tensor.

These methods follow Haegeman et al., Phys. Rev. B 94, 165116 (2016).
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

import numpy as np
from tqdm import tqdm

from .solvers import KrylovExponential
from .sweeps import LocalUpdate, SweepEngine

if TYPE_CHECKING:
    from collections.abc import Callable

    from numpy.typing import NDArray

    from ..data_structures.networks import MPO, MPS
    from ..data_structures.simulation_parameters import SweepRecord, TDVPParams
    from .solvers import SolverResult

logger = logging.getLogger(__name__)


class ExponentialUpdate(LocalUpdate):
    """Evolve the window forward by ``dt/2`` and the remainder backward by ``dt/2``."""

    def __init__(
        self,
        dt: float,
        window: int = 2,
        solver: KrylovExponential | None = None,
        *,
        imaginary_time: bool = False,
    ) -> None:
        """Configure the update.

        Args:
            dt: Time step of one sweep.
            window: 1 for single-site TDVP, 2 for two-site TDVP.
            solver: Configured Krylov exponential; defaults to ``KrylovExponential()``.
            imaginary_time: Evolve with ``exp(-dt H)`` instead of ``exp(-1j dt H)``.

        Raises:
            ValueError: If the window is not 1 or 2.
        """
        if window not in {1, 2}:
            msg = f"window must be 1 or 2, got {window}."
            raise ValueError(msg)
        self.window = window
        self.time_step = dt
        self.imaginary_time = imaginary_time
        self.solver = solver or KrylovExponential()
        # exp(-1j * step * H) with step = -1j * dt gives exp(-dt * H)
        self.half_step: complex = -0.5j * dt if imaginary_time else 0.5 * dt

    def check(self, state: MPS, hamiltonian: MPO) -> None:
        """Real-time evolution needs a complex state.

        Raises:
            ValueError: If the state is real and the evolution is in real time, or the Hamiltonian is complex.
        """
        super().check(state, hamiltonian)
        if not self.imaginary_time and state.dtype == np.float64:
            msg = "Real-time evolution needs a complex state; use state.astype(np.complex128)."
            raise ValueError(msg)

    def _evolve(
        self,
        matvec: Callable[[NDArray[np.complex128]], NDArray[np.complex128]],
        tensor: NDArray[np.complex128],
        step: complex,
    ) -> SolverResult:
        result = self.solver(matvec, tensor, step)
        if self.imaginary_time:
            nrm = np.linalg.norm(result.vector)
            if nrm > 0:
                result.vector = result.vector / nrm
        return result

    def solve(
        self, matvec: Callable[[NDArray[np.complex128]], NDArray[np.complex128]], tensor: NDArray[np.complex128]
    ) -> SolverResult:
        """Forward half step.

        Returns:
            SolverResult: Evolved tensor.
        """
        return self._evolve(matvec, tensor, self.half_step)

    def backward(
        self, matvec: Callable[[NDArray[np.complex128]], NDArray[np.complex128]], tensor: NDArray[np.complex128]
    ) -> SolverResult:
        """Backward half step of the remainder.

        Returns:
            SolverResult: Evolved tensor.
        """
        return self._evolve(matvec, tensor, -self.half_step)


def make_engine(state: MPS, hamiltonian: MPO, params: TDVPParams) -> SweepEngine:
    """Sweep engine configured for TDVP.

    Returns:
        SweepEngine: Engine with an :class:`ExponentialUpdate`.
    """
    solver = KrylovExponential(params.max_lanczos_iterations, params.krylov_tol)
    window = 2 if params.method == "two_site" else 1
    update = ExponentialUpdate(params.dt, window, solver, imaginary_time=params.imaginary_time)
    return SweepEngine(state, hamiltonian, update, params.truncation)


def tdvp_sweep(engine: SweepEngine, params: TDVPParams) -> SweepRecord:
    """Evolve by one time step.

    Returns:
        SweepRecord: Diagnostics of the sweep.
    """
    record = engine.sweep(get_state=params.get_state)
    logger.info(
        "TDVP step %d: t = %.6g, E = %.12f, max bond %d, truncation error %.3e",
        record.sweep,
        record.time,
        record.energy,
        record.max_bond_dim,
        record.truncation_error,
    )
    return record


def tdvp(
    state: MPS,
    hamiltonian: MPO,
    params: TDVPParams,
    callback: Callable[[SweepRecord], bool | None] | None = None,
) -> list[SweepRecord]:
    """Evolve `state` under `hamiltonian` up to ``params.elapsed_time``.

    Args:
        state: Initial MPS, updated in place.
        hamiltonian: The Hamiltonian MPO.
        params: TDVP configuration.
        callback: Called with every :class:`SweepRecord`; returning True stops the evolution.

    Returns:
        list[SweepRecord]: One record per time step.
    """
    engine = make_engine(state, hamiltonian, params)
    records: list[SweepRecord] = []
    for _ in tqdm(range(params.steps), desc="TDVP steps", ncols=80, disable=not params.show_progress):
        record = tdvp_sweep(engine, params)
        records.append(record)
        if callback is not None and callback(record):
            logger.info("TDVP stopped by callback at t = %.6g", record.time)
            break
    return records
