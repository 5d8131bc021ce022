# Copyright (c) 2025 - 2026 Chair for Design Automation, TUM
# All rights reserved.
#
# SPDX-License-Identifier: MIT
#
# Licensed under the MIT License

"""Two-site DMRG ground-state search.

The two-site effective Hamiltonian of every bond is diagonalized with the Lanczos eigensolver and the optimized
two-site tensor is split back with the truncated SVD, allowing the bond dimension to adapt up to the configured
cap. Sweep bookkeeping is done by :class:`~tnchain.core.methods.sweeps.SweepEngine`.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from tqdm import tqdm

from ..data_structures.simulation_parameters import DMRGParams
from .solvers import LanczosSolver
from .sweeps import LocalUpdate, SweepEngine

if TYPE_CHECKING:
    from collections.abc import Callable

    import numpy as np
    from numpy.typing import NDArray

    from ..data_structures.networks import MPO, MPS
    from ..data_structures.simulation_parameters import SweepRecord
    from .solvers import SolverResult

logger = logging.getLogger(__name__)


class EigensolverUpdate(LocalUpdate):
    """Replace the two-site tensor by the ground state of its effective Hamiltonian."""

    window = 2

    def __init__(self, solver: LanczosSolver | None = None) -> None:
        """Store the eigensolver.

        Args:
            solver: Configured Lanczos solver; defaults to ``LanczosSolver()``.
        """
        self.solver = solver or LanczosSolver()

    def solve(
        self, matvec: Callable[[NDArray[np.complex128]], NDArray[np.complex128]], tensor: NDArray[np.complex128]
    ) -> SolverResult:
        """Lowest eigenpair, started from the current tensor.

        Returns:
            SolverResult: With the eigenvector shaped like `tensor`.
        """
        return self.solver(matvec, tensor)


def make_engine(state: MPS, hamiltonian: MPO, params: DMRGParams) -> SweepEngine:
    """Sweep engine configured for DMRG.

    Returns:
        SweepEngine: Engine with an :class:`EigensolverUpdate`.
    """
    solver = LanczosSolver(params.lanczos_tol, params.max_lanczos_iterations, params.max_restarts)
    return SweepEngine(state, hamiltonian, EigensolverUpdate(solver), params.truncation)


def dmrg_sweep(engine: SweepEngine, params: DMRGParams) -> SweepRecord:
    """Run one DMRG sweep.

    Returns:
        SweepRecord: Diagnostics of the sweep.
    """
    record = engine.sweep(params.energy_tol, get_state=params.get_state)
    logger.info(
        "DMRG sweep %d: E = %.12f, max bond %d, truncation error %.3e",
        record.sweep,
        record.energy,
        record.max_bond_dim,
        record.truncation_error,
    )
    return record


def dmrg(
    state: MPS,
    hamiltonian: MPO,
    params: DMRGParams | None = None,
    callback: Callable[[SweepRecord], bool | None] | None = None,
) -> list[SweepRecord]:
    """Find the ground state of `hamiltonian` by two-site DMRG.

    The state is optimized in place. All configured sweeps are run unless `callback` returns True, which stops
    the run after the current sweep. Convergence of the energy is reported in the records but does not stop the
    run.

    Args:
        state: Initial MPS, updated in place.
        hamiltonian: The Hamiltonian MPO.
        params: DMRG configuration; defaults to ``DMRGParams()``.
        callback: Called with every :class:`SweepRecord`; returning True stops the run.

    Returns:
        list[SweepRecord]: One record per completed sweep.
    """
    params = params or DMRGParams()
    engine = make_engine(state, hamiltonian, params)
    records: list[SweepRecord] = []
    for _ in tqdm(range(params.sweeps), desc="DMRG sweeps", ncols=80, disable=not params.show_progress):
        record = dmrg_sweep(engine, params)
        records.append(record)
        if record.converged:
            logger.info("DMRG energy converged after sweep %d (change %.3e)", record.sweep, record.energy_change)
        if callback is not None and callback(record):
            logger.info("DMRG stopped by callback after sweep %d", record.sweep)
            break
    return records
