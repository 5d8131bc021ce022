# Copyright (c) 2025 - 2026 Chair for Design Automation, TUM
# All rights reserved.
#
# SPDX-License-Identifier: MIT
#
# Licensed under the MIT License

"""High-level entry point for running sweep algorithms.

This module dispatches a single run to the matching sweep algorithm based on the type of the parameter object:
  - :class:`~tnchain.core.data_structures.simulation_parameters.DMRGParams` runs a two-site DMRG ground-state search.
  - :class:`~tnchain.core.data_structures.simulation_parameters.TDVPParams` runs one- or two-site TDVP.

Independent runs (e.g. a parameter scan over couplings) can be executed in parallel worker processes with
:func:`run_batch`. Every worker caps the thread pools of the numerical libraries so that ``n`` workers do not
oversubscribe the machine.
"""

from __future__ import annotations

import multiprocessing
import os
from concurrent.futures import FIRST_COMPLETED, ProcessPoolExecutor, wait
from typing import TYPE_CHECKING, Any, cast

from threadpoolctl import threadpool_limits
from tqdm import tqdm

from .core.data_structures.simulation_parameters import DMRGParams, TDVPParams
from .core.methods.dmrg import dmrg
from .core.methods.tdvp import tdvp

if TYPE_CHECKING:
    from collections.abc import Callable, Sequence
    from concurrent.futures import Future

    from .core.data_structures.networks import MPO, MPS
    from .core.data_structures.simulation_parameters import SweepRecord

    Job = tuple[MPS, MPO, DMRGParams | TDVPParams]

__all__ = ["available_cpus", "run", "run_batch"]


# ---------------------------------------------------------------------------
# CPU DISCOVERY: respect cgroups/SLURM/taskset limits.
# ---------------------------------------------------------------------------
def available_cpus() -> int:
    """Determine the number of available CPU cores for parallel execution.

    The ``TNCHAIN_MAX_WORKERS`` environment variable overrides everything else. Inside a pytest-xdist worker
    the function returns 1 to avoid nested parallelism. Otherwise SLURM hints, the process affinity mask and
    finally the total CPU count are consulted in this order.

    Returns:
        int: The number of available CPU cores for parallel execution.
    """
    if "TNCHAIN_MAX_WORKERS" in os.environ:
        try:
            val = int(os.environ["TNCHAIN_MAX_WORKERS"])
            if val > 0:
                return val
        except ValueError:
            pass

    if os.environ.get("PYTEST_XDIST_WORKER", ""):
        return 1

    for var in ("SLURM_CPUS_PER_TASK", "SLURM_CPUS_ON_NODE"):
        value = os.environ.get(var, "").strip()
        if value:
            try:
                n = int(value)
                if n > 0:
                    return n
            except ValueError:
                # Ignore malformed values and continue
                pass

    fn = getattr(os, "sched_getaffinity", None)
    if fn is not None:
        try:
            sched_getaffinity = cast("Callable[[int], set[int]]", fn)
            n = len(sched_getaffinity(0))
            if n > 0:
                return n
        except OSError:
            pass

    try:
        count = os.cpu_count() or multiprocessing.cpu_count() or 1
    except (NotImplementedError, OSError):
        count = 1
    return count


# ---------------------------------------------------------------------------
# WORKER INITIALIZER: cap threads inside each worker process.
# ---------------------------------------------------------------------------
THREAD_ENV_VARS: dict[str, str] = {
    # OpenMP default thread count
    "OMP_NUM_THREADS": "1",
    # OpenBLAS thread pool size (most Linux NumPy/SciPy wheels)
    "OPENBLAS_NUM_THREADS": "1",
    # Intel MKL thread pool size (conda builds)
    "MKL_NUM_THREADS": "1",
    "NUMEXPR_NUM_THREADS": "1",
    # Apple Accelerate
    "VECLIB_MAXIMUM_THREADS": "1",
    "BLIS_NUM_THREADS": "1",
}

# Global worker state (initialized once per process)
_WORKER_CTX: dict[str, Any] = {}


def _worker_init(payload: dict[str, Any], n_threads: int = 1) -> None:
    """Initialize the worker process state.

    Called once per worker process. Caps the thread pools of the numerical libraries and stores the job list
    in `_WORKER_CTX`, so that tasks only need to ship an index.

    Args:
        payload: Read-only objects stored in the worker context.
        n_threads: The maximum number of threads allowed for this worker process.
    """
    for k in THREAD_ENV_VARS:
        os.environ.setdefault(k, str(n_threads))
    threadpool_limits(limits=n_threads)

    _WORKER_CTX.clear()
    _WORKER_CTX.update(payload)


def _batch_worker(job_idx: int) -> tuple[MPS, list[SweepRecord]]:
    """Execute a single job of the batch stored in the worker context.

    Returns:
        tuple[MPS, list[SweepRecord]]: The final state and the sweep records of the job.
    """
    state, hamiltonian, params = _WORKER_CTX["jobs"][job_idx]
    state = state.copy()
    with threadpool_limits(limits=_WORKER_CTX.get("n_threads", 1)):
        records = run(state, hamiltonian, params)
    return state, records


def _spawn_context() -> multiprocessing.context.BaseContext:
    """Return a multiprocessing context using the 'spawn' start method.

    'fork' can deadlock when the parent process has already initialized OpenMP/BLAS thread pools.

    Returns:
        multiprocessing.context.BaseContext: A 'spawn' context.
    """
    return multiprocessing.get_context("spawn")


def run(
    initial_state: MPS,
    hamiltonian: MPO,
    params: DMRGParams | TDVPParams,
    callback: Callable[[SweepRecord], bool | None] | None = None,
) -> list[SweepRecord]:
    """Run DMRG or TDVP on `initial_state`, depending on the type of `params`.

    The state is brought into B normalization and then updated in place.

    Args:
        initial_state: The initial state of the chain.
        hamiltonian: The Hamiltonian as an MPO of the same length.
        params: DMRG or TDVP parameters.
        callback: Called with every sweep record; returning True stops the run.

    Returns:
        list[SweepRecord]: One record per sweep.

    Raises:
        TypeError: If `params` is neither ``DMRGParams`` nor ``TDVPParams``.
    """
    if isinstance(params, DMRGParams):
        initial_state.normalize("B")
        return dmrg(initial_state, hamiltonian, params, callback)
    if isinstance(params, TDVPParams):
        initial_state.normalize("B")
        return tdvp(initial_state, hamiltonian, params, callback)
    msg = f"Expected DMRGParams or TDVPParams, got {type(params).__name__}."
    raise TypeError(msg)


def run_batch(
    jobs: Sequence[Job],
    *,
    parallel: bool = True,
    max_workers: int | None = None,
    show_progress: bool = True,
) -> list[tuple[MPS, list[SweepRecord]]]:
    """Run independent jobs, optionally in parallel worker processes.

    The input states are not modified; every job works on a copy.

    Args:
        jobs: ``(initial_state, hamiltonian, params)`` triples.
        parallel: Run the jobs in worker processes.
        max_workers: Number of worker processes, defaults to :func:`available_cpus`.
        show_progress: Show a progress bar over jobs.

    Returns:
        list[tuple[MPS, list[SweepRecord]]]: Final state and sweep records of every job, in input order.
    """
    n_jobs = len(jobs)
    results: list[tuple[MPS, list[SweepRecord]] | None] = [None] * n_jobs
    workers = min(max_workers or available_cpus(), n_jobs) if n_jobs else 1

    if not parallel or workers <= 1:
        for i in tqdm(range(n_jobs), desc="Running jobs", ncols=80, disable=not show_progress):
            state, hamiltonian, params = jobs[i]
            state = state.copy()
            results[i] = (state, run(state, hamiltonian, params))
        return cast("list[tuple[MPS, list[SweepRecord]]]", results)

    max_inflight = 2 * workers
    with (
        ProcessPoolExecutor(
            max_workers=workers,
            mp_context=_spawn_context(),
            initializer=_worker_init,
            initargs=({"jobs": list(jobs), "n_threads": 1}, 1),
        ) as ex,
        tqdm(total=n_jobs, desc="Running jobs", ncols=80, disable=not show_progress) as pbar,
    ):
        futures: dict[Future[tuple[MPS, list[SweepRecord]]], int] = {}
        next_job_idx = 0
        while next_job_idx < n_jobs and len(futures) < max_inflight:
            futures[ex.submit(_batch_worker, next_job_idx)] = next_job_idx
            next_job_idx += 1

        while futures:
            done, _ = wait(futures, return_when=FIRST_COMPLETED)
            for fut in done:
                i = futures.pop(fut)
                results[i] = fut.result()
                pbar.update(1)
                if next_job_idx < n_jobs:
                    futures[ex.submit(_batch_worker, next_job_idx)] = next_job_idx
                    next_job_idx += 1

    return cast("list[tuple[MPS, list[SweepRecord]]]", results)
