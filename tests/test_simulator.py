# Copyright (c) 2025 - 2026 Chair for Design Automation, TUM
# All rights reserved.
#
# SPDX-License-Identifier: MIT
#
# Licensed under the MIT License

"""Tests for the high-level run entry points.

Covers CPU discovery, the dispatch of :func:`run` on the parameter type and the serial path of
:func:`run_batch`. The process pool is exercised with a small batch marked as slow.
"""

from __future__ import annotations

import numpy as np
import pytest

from tnchain import simulator
from tnchain.core.data_structures.networks import MPO, MPS
from tnchain.core.data_structures.simulation_parameters import DMRGParams, TDVPParams, TruncationConfig
from tnchain.simulator import available_cpus, run, run_batch


def _clear_cpu_env(monkeypatch: pytest.MonkeyPatch) -> None:
    for var in ("TNCHAIN_MAX_WORKERS", "PYTEST_XDIST_WORKER", "SLURM_CPUS_PER_TASK", "SLURM_CPUS_ON_NODE"):
        monkeypatch.delenv(var, raising=False)


def test_available_cpus_override(monkeypatch: pytest.MonkeyPatch) -> None:
    """The explicit override wins over everything else."""
    _clear_cpu_env(monkeypatch)
    monkeypatch.setenv("TNCHAIN_MAX_WORKERS", "3")
    monkeypatch.setenv("SLURM_CPUS_PER_TASK", "16")
    assert available_cpus() == 3


def test_available_cpus_xdist(monkeypatch: pytest.MonkeyPatch) -> None:
    """pytest-xdist workers do not spawn nested pools."""
    _clear_cpu_env(monkeypatch)
    monkeypatch.setenv("PYTEST_XDIST_WORKER", "gw0")
    assert available_cpus() == 1


def test_available_cpus_slurm(monkeypatch: pytest.MonkeyPatch) -> None:
    """SLURM hints are used, malformed values are skipped."""
    _clear_cpu_env(monkeypatch)
    monkeypatch.setenv("TNCHAIN_MAX_WORKERS", "not-a-number")
    monkeypatch.setenv("SLURM_CPUS_PER_TASK", "abc")
    monkeypatch.setenv("SLURM_CPUS_ON_NODE", "6")
    assert available_cpus() == 6


def test_available_cpus_fallback(monkeypatch: pytest.MonkeyPatch) -> None:
    """Without hints the affinity mask or the CPU count is used."""
    _clear_cpu_env(monkeypatch)
    monkeypatch.delattr(simulator.os, "sched_getaffinity", raising=False)
    monkeypatch.setattr(simulator.os, "cpu_count", lambda: 5)
    assert available_cpus() == 5


def test_run_dispatches_dmrg() -> None:
    """DMRG parameters run a ground-state search."""
    mpo = MPO.ising(4, -1.0, -0.5)
    state = MPS.random(4, 2, rng=0)
    records = run(state, mpo, DMRGParams(sweeps=4, max_bond_dim=8))
    exact = float(np.linalg.eigvalsh(mpo.to_matrix())[0])
    assert len(records) == 4
    assert records[-1].energy == pytest.approx(exact, abs=1e-8)
    assert records[-1].time is None


def test_run_dispatches_tdvp() -> None:
    """TDVP parameters evolve the state and report times."""
    state = MPS(4, state="x+", dtype=np.complex128)
    records = run(state, MPO.ising(4, 1.0, 0.5), TDVPParams(elapsed_time=0.2, dt=0.1))
    assert [r.time for r in records] == pytest.approx([0.1, 0.2])


def test_run_normalizes_initial_state() -> None:
    """The state is brought into unit norm before the run."""
    state = MPS(3, state="x+")
    state.tensors[1] = 4.0 * state.tensors[1]
    run(state, MPO.ising(3, 1.0, 1.0), DMRGParams(sweeps=1))
    assert state.norm() == pytest.approx(1.0)


def test_run_rejects_unknown_parameters() -> None:
    """Only DMRG and TDVP parameters are accepted."""
    with pytest.raises(TypeError, match="Expected DMRGParams or TDVPParams"):
        run(MPS(3), MPO.ising(3, 1.0, 1.0), TruncationConfig())  # type: ignore[arg-type]


def _scan_jobs() -> list[tuple[MPS, MPO, DMRGParams]]:
    params = DMRGParams(sweeps=3, max_bond_dim=8)
    return [(MPS.random(4, 2, rng=k), MPO.ising(4, -1.0, -h), params) for k, h in enumerate([0.2, 0.6, 1.0])]


def test_run_batch_serial() -> None:
    """The serial path keeps the input order and leaves the input states untouched."""
    jobs = _scan_jobs()
    before = [state.to_vec() for state, _, _ in jobs]
    results = run_batch(jobs, parallel=False, show_progress=False)
    assert len(results) == len(jobs)
    for (state, mpo, _), (final, records), vec in zip(jobs, results, before):
        np.testing.assert_array_equal(state.to_vec(), vec)
        assert final is not state
        exact = float(np.linalg.eigvalsh(mpo.to_matrix())[0])
        assert records[-1].energy == pytest.approx(exact, abs=1e-8)


def test_run_batch_empty() -> None:
    """An empty batch returns an empty list."""
    assert run_batch([], show_progress=False) == []


@pytest.mark.slow
def test_run_batch_parallel_matches_serial() -> None:
    """Worker processes produce the same energies as the serial path."""
    jobs = _scan_jobs()
    serial = run_batch(jobs, parallel=False, show_progress=False)
    parallel = run_batch(jobs, parallel=True, max_workers=2, show_progress=False)
    for (_, serial_records), (state, parallel_records) in zip(serial, parallel):
        assert parallel_records[-1].energy == pytest.approx(serial_records[-1].energy, abs=1e-10)
        assert state.length == 4
