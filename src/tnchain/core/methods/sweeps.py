# Copyright (c) 2025 - 2026 Chair for Design Automation, TUM
# All rights reserved.
#
# SPDX-License-Identifier: MIT
#
# Licensed under the MIT License

"""Sweep driver shared by DMRG and TDVP.

A sweep is a left-to-right pass followed by a right-to-left pass over a window of one or two sites. At every
window position the driver
  1. forms the effective Hamiltonian of the window from the environment,
  2. hands it to a local-update strategy (eigensolve for DMRG, exponential action for TDVP),
  3. splits the result with the truncated SVD (two-site) or a QR step (one-site),
  4. extends the environment over the vacated site and lets the strategy evolve the remainder backwards,
  5. yields a :class:`SiteUpdate`.

Stopping the generator of :meth:`SweepEngine.iter_sweep` between two yields leaves a valid MPS in mixed canonical
form; the orthogonality center is reported in :attr:`SweepEngine.center`.
"""

from __future__ import annotations

import logging
import warnings
from dataclasses import dataclass
from typing import TYPE_CHECKING

import numpy as np

from ..data_structures.simulation_parameters import SweepRecord, TruncationConfig
from ..exceptions import ShapeMismatchError, SolverNonConvergenceWarning, TensorNetworkError
from .decompositions import left_qr, merge_two_site, right_qr, split_two_site
from .environments import Environment, project_bond, project_site, project_two_site

if TYPE_CHECKING:
    from collections.abc import Callable, Iterator

    from numpy.typing import NDArray

    from ..data_structures.networks import MPO, MPS
    from .solvers import SolverResult

logger = logging.getLogger(__name__)

RIGHT = "right"
LEFT = "left"


class LocalUpdate:
    """Local-update strategy of a sweep.

    Subclasses implement :meth:`solve`; strategies that evolve in time also implement :meth:`backward`.

    Attributes:
        window: Number of sites updated together (1 or 2).
        time_step: Simulation time advanced by one sweep, None for stationary algorithms.
    """

    window = 2
    time_step: float | None = None

    def check(self, state: MPS, hamiltonian: MPO) -> None:
        """Reject state/operator combinations the strategy cannot handle.

        Raises:
            ValueError: If the operator is complex but the state is real.
        """
        if hamiltonian.dtype == np.complex128 and state.dtype == np.float64:
            msg = "The Hamiltonian is complex; convert the state with state.astype(np.complex128)."
            raise ValueError(msg)

    def solve(
        self, matvec: Callable[[NDArray[np.complex128]], NDArray[np.complex128]], tensor: NDArray[np.complex128]
    ) -> SolverResult:
        """Forward update of the window tensor.

        Raises:
            NotImplementedError: In the base class.
        """
        raise NotImplementedError

    def backward(
        self, matvec: Callable[[NDArray[np.complex128]], NDArray[np.complex128]], tensor: NDArray[np.complex128]
    ) -> SolverResult | None:
        """Backward update of the remainder after a split. None leaves the tensor unchanged."""
        return None


@dataclass
class SiteUpdate:
    """Result of one local update.

    Attributes:
        sites: Sites of the window.
        direction: ``"right"`` or ``"left"``.
        center: Orthogonality center after the update.
        bond_dim: Dimension of the bond that was split (or crossed).
        discarded_weight: Weight discarded by the truncation.
        converged: Whether all solver calls of this update converged.
        iterations: Operator applications spent in the solvers.
        eigenvalue: Eigenvalue of the local problem (eigensolver updates only).
    """

    sites: tuple[int, ...]
    direction: str
    center: int
    bond_dim: int
    discarded_weight: float
    converged: bool
    iterations: int
    eigenvalue: float | None = None


class SweepEngine:
    """Sweep driver owning one MPS and its environments for the duration of a run.

    The Hamiltonian is only read. The MPS is updated in place.
    """

    def __init__(
        self,
        state: MPS,
        hamiltonian: MPO,
        update: LocalUpdate,
        truncation: TruncationConfig | None = None,
    ) -> None:
        """Initialize the engine.

        Args:
            state: The MPS, modified in place.
            hamiltonian: The MPO.
            update: Local-update strategy.
            truncation: Truncation policy of the two-site split.

        Raises:
            ShapeMismatchError: If state and Hamiltonian differ in length.
            ValueError: If the chain is too short for the update window.
        """
        if state.length != hamiltonian.length:
            msg = f"State of length {state.length} does not match Hamiltonian of length {hamiltonian.length}."
            raise ShapeMismatchError(msg, component="SweepEngine")
        if state.length < update.window:
            msg = f"A {update.window}-site update needs at least {update.window} sites."
            raise ValueError(msg)
        update.check(state, hamiltonian)
        self.state = state
        self.hamiltonian = hamiltonian
        self.update = update
        self.truncation = truncation or TruncationConfig()
        self.env: Environment | None = None
        self.center: int | None = None
        self.sweeps_done = 0
        self.previous_energy: float | None = None
        self._reset_statistics()

    def _reset_statistics(self) -> None:
        self.truncation_error = 0.0
        self.solver_failures = 0
        self.warnings: list[str] = []

    def prepare(self) -> None:
        """Move the center to site 0 and build fresh environments."""
        self.state.set_canonical_form(0)
        self.center = 0
        self.env = Environment.build(self.state, self.hamiltonian)

    def _cast(self, vector: NDArray[np.complex128]) -> NDArray[np.complex128]:
        if self.state.dtype == np.float64 and np.iscomplexobj(vector):
            return np.ascontiguousarray(vector.real)
        return vector.astype(self.state.dtype, copy=False)

    def _record_solver(self, result: SolverResult, sites: tuple[int, ...]) -> None:
        if not result.converged:
            self.solver_failures += 1
            note = f"solver did not converge at sites {sites} (error {result.error:.2e})"
            self.warnings.append(note)
            logger.debug("Sweep %d: %s", self.sweeps_done, note)

    def _evolve_site(self, site: int) -> SolverResult:
        assert self.env is not None
        left, right = self.env.blocks(site, site)
        op = self.hamiltonian.tensors[site]
        tensor = self.state.tensors[site]

        def matvec(x: NDArray[np.complex128]) -> NDArray[np.complex128]:
            return project_site(left, right, op, x.reshape(tensor.shape)).reshape(-1)

        return self.update.solve(matvec, tensor)

    def _backward_site(self, site: int) -> SolverResult | None:
        assert self.env is not None
        left, right = self.env.blocks(site, site)
        op = self.hamiltonian.tensors[site]
        tensor = self.state.tensors[site]

        def matvec(x: NDArray[np.complex128]) -> NDArray[np.complex128]:
            return project_site(left, right, op, x.reshape(tensor.shape)).reshape(-1)

        result = self.update.backward(matvec, tensor)
        if result is not None:
            self.state.tensors[site] = self._cast(result.vector)
        return result

    def _backward_bond(self, bond: NDArray[np.complex128], left_site: int) -> tuple[NDArray, SolverResult | None]:
        assert self.env is not None
        left = self.env.left[left_site + 1]
        right = self.env.right[left_site + 1]
        assert left is not None
        assert right is not None

        def matvec(x: NDArray[np.complex128]) -> NDArray[np.complex128]:
            return project_bond(left, right, x.reshape(bond.shape)).reshape(-1)

        result = self.update.backward(matvec, bond)
        if result is None:
            return bond, None
        return self._cast(result.vector), result

    def _two_site_step(self, site: int, direction: str, *, last: bool) -> SiteUpdate:
        assert self.env is not None
        state, mpo, env = self.state, self.hamiltonian, self.env
        sites = (site, site + 1)
        theta = merge_two_site(state.tensors[site], state.tensors[site + 1])
        left, right = env.blocks(site, site + 1)
        op1, op2 = mpo.tensors[site], mpo.tensors[site + 1]

        def matvec(x: NDArray[np.complex128]) -> NDArray[np.complex128]:
            return project_two_site(left, right, op1, op2, x.reshape(theta.shape)).reshape(-1)

        result = self.update.solve(matvec, theta)
        self._record_solver(result, sites)
        theta = self._cast(result.vector)

        distribution = RIGHT if direction == RIGHT else LEFT
        a, b, s_vec, discarded = split_two_site(
            theta, self.truncation.max_bond_dim, self.truncation.cutoff, distribution, normalize=True
        )
        state.tensors[site], state.tensors[site + 1] = a, b
        self.truncation_error += discarded

        converged = result.converged
        iterations = result.iterations
        if direction == RIGHT:
            env.extend_left(site, state, mpo)
            self.center = site + 1
        else:
            env.extend_right(site + 1, state, mpo)
            self.center = site
        if not last:
            back = self._backward_site(self.center)
            if back is not None:
                self._record_solver(back, (self.center,))
                converged = converged and back.converged
                iterations += back.iterations

        return SiteUpdate(
            sites, direction, self.center, s_vec.size, discarded, converged, iterations, result.eigenvalue
        )

    def _one_site_step(self, site: int, direction: str, *, last: bool) -> SiteUpdate:
        assert self.env is not None
        state, mpo, env = self.state, self.hamiltonian, self.env
        result = self._evolve_site(site)
        self._record_solver(result, (site,))
        state.tensors[site] = self._cast(result.vector)
        converged, iterations = result.converged, result.iterations
        self.center = site
        back = None

        if direction == RIGHT:
            bond_dim = state.tensors[site].shape[2]
            if not last:
                q_tensor, bond = right_qr(state.tensors[site])
                state.tensors[site] = q_tensor
                env.extend_left(site, state, mpo)
                bond, back = self._backward_bond(bond, site)
                state.tensors[site + 1] = np.tensordot(bond, state.tensors[site + 1], axes=(1, 0))
                self.center = site + 1
                bond_dim = bond.shape[0]
        else:
            bond_dim = state.tensors[site].shape[0]
            if not last:
                q_tensor, bond = left_qr(state.tensors[site])
                state.tensors[site] = q_tensor
                env.extend_right(site, state, mpo)
                bond, back = self._backward_bond(bond, site - 1)
                state.tensors[site - 1] = np.tensordot(state.tensors[site - 1], bond, axes=(2, 0))
                self.center = site - 1
                bond_dim = bond.shape[1]
        if back is not None:
            self._record_solver(back, (site,))
            converged = converged and back.converged
            iterations += back.iterations

        return SiteUpdate((site,), direction, self.center, bond_dim, 0.0, converged, iterations, result.eigenvalue)

    def iter_sweep(self) -> Iterator[SiteUpdate]:
        """Run one sweep, yielding after every local update.

        Yields:
            SiteUpdate: Diagnostics of the update just performed.

        Raises:
            TensorNetworkError: Re-raised with the component ``"SweepEngine"`` and the first site of the failing
                window when a decomposition fails.
        """
        self.prepare()
        self._reset_statistics()
        n = self.state.length
        step = self._two_site_step if self.update.window == 2 else self._one_site_step
        positions = list(range(n - self.update.window + 1))
        schedule = [(site, RIGHT) for site in positions] + [(site, LEFT) for site in reversed(positions)]
        for k, (site, direction) in enumerate(schedule):
            try:
                update = step(site, direction, last=k in {len(positions) - 1, len(schedule) - 1})
            except TensorNetworkError as err:
                # decomposition errors carry no site; attach the first site of the window
                raise type(err)(str(err), component="SweepEngine", site=site) from err
            logger.debug(
                "Sweep %d %s at %s: bond %d, discarded %.3e",
                self.sweeps_done,
                direction,
                update.sites,
                update.bond_dim,
                update.discarded_weight,
            )
            yield update
        self.sweeps_done += 1

    def energy(self) -> float:
        """Energy of the state from the environment around site 0.

        Valid after a completed sweep, when the center is at site 0 and ``right[1]`` is current.

        Returns:
            float: ``<psi|H|psi> / <psi|psi>``.

        Raises:
            ValueError: If the engine is not at the end of a sweep.
        """
        if self.env is None or self.center != 0:
            msg = "Energy is only available at the end of a sweep."
            raise ValueError(msg)
        left, right = self.env.blocks(0, 0)
        tensor = self.state.tensors[0]
        h_tensor = project_site(left, right, self.hamiltonian.tensors[0], tensor)
        return float(np.vdot(tensor, h_tensor).real / np.vdot(tensor, tensor).real)

    def sweep(self, energy_tol: float = 0.0, *, get_state: bool = False) -> SweepRecord:
        """Run one full sweep and summarize it.

        Args:
            energy_tol: Energy change below which the record is flagged as converged.
            get_state: Attach a copy of the tensors to the record.

        Returns:
            SweepRecord: Diagnostics of the sweep.
        """
        for _ in self.iter_sweep():
            pass
        index = self.sweeps_done - 1
        energy = self.energy()
        change = None if self.previous_energy is None else energy - self.previous_energy
        self.previous_energy = energy
        if self.solver_failures:
            logger.warning("Sweep %d: %d local solver calls did not converge", index, self.solver_failures)
            warnings.warn(
                f"{self.solver_failures} local solver calls did not converge in sweep {index}",
                SolverNonConvergenceWarning,
                stacklevel=2,
            )
        time = None if self.update.time_step is None else self.update.time_step * self.sweeps_done
        return SweepRecord(
            sweep=index,
            energy=energy,
            max_bond_dim=self.state.get_max_bond(),
            truncation_error=self.truncation_error,
            time=time,
            energy_change=change,
            converged=change is not None and abs(change) < energy_tol,
            solver_failures=self.solver_failures,
            warnings=list(self.warnings),
            tensors=[t.copy() for t in self.state.tensors] if get_state else None,
        )
