# Copyright (c) 2025 - 2026 Chair for Design Automation, TUM
# All rights reserved.
#
# SPDX-License-Identifier: MIT
#
# Licensed under the MIT License

"""Tests for one- and two-site TDVP.

On small chains with full bond dimension both integrators are exact, so the evolved MPS is compared against the
dense propagator. Longer chains check the conservation laws and the imaginary-time projection.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

import numpy as np
import pytest
from scipy.linalg import expm

from tnchain.core.data_structures.networks import MPO, MPS
from tnchain.core.data_structures.simulation_parameters import TDVPParams
from tnchain.core.methods.environments import expectation_value
from tnchain.core.methods.tdvp import ExponentialUpdate, make_engine, tdvp

if TYPE_CHECKING:
    from tnchain.core.data_structures.simulation_parameters import SweepRecord


@pytest.mark.parametrize("method", ["one_site", "two_site"])
def test_matches_exact_evolution(method: str) -> None:
    """With full bond dimension the evolved state equals exp(-iHt)|psi>."""
    length = 4
    mpo = MPO.ising(length, 1.0, 0.7)
    state = MPS.random(length, 4, dtype=np.complex128, rng=21)
    psi0 = state.to_vec()
    params = TDVPParams(elapsed_time=0.4, dt=0.05, method=method, max_bond_dim=16, cutoff=0.0)
    tdvp(state, mpo, params)
    exact = expm(-1j * params.elapsed_time * mpo.to_matrix()) @ psi0
    np.testing.assert_allclose(state.to_vec(), exact, atol=1e-7)


def test_matches_exact_evolution_from_product_state() -> None:
    """Two-site TDVP grows the bond dimension of a product state and follows the exact evolution."""
    length = 5
    mpo = MPO.heisenberg(length, 1.0, 1.0, 0.5, h=0.2)
    state = MPS(length, state="Neel", dtype=np.complex128)
    psi0 = state.to_vec()
    params = TDVPParams(elapsed_time=0.3, dt=0.02, method="two_site", max_bond_dim=8, cutoff=0.0)
    records = tdvp(state, mpo, params)
    exact = expm(-1j * params.elapsed_time * mpo.to_matrix()) @ psi0
    assert records[-1].max_bond_dim > 1
    assert records[-1].max_bond_dim <= 4
    assert abs(np.vdot(exact, state.to_vec())) == pytest.approx(1.0, abs=1e-3)


def test_one_site_conserves_norm_and_energy() -> None:
    """Single-site TDVP keeps the bond dimension fixed and conserves norm and energy."""
    length = 8
    mpo = MPO.heisenberg(length, 1.0, 1.0, 1.0)
    state = MPS.random(length, 4, dtype=np.complex128, rng=7)
    bonds = state.bond_dimensions()
    energy = expectation_value(state, mpo).real
    records = tdvp(state, mpo, TDVPParams(elapsed_time=0.5, dt=0.05, method="one_site"))
    assert state.bond_dimensions() == bonds
    assert state.norm() == pytest.approx(1.0, abs=1e-10)
    for record in records:
        assert record.energy == pytest.approx(energy, abs=1e-8)
        assert record.truncation_error == 0.0


def test_two_site_conserves_energy_without_truncation() -> None:
    """Two-site TDVP conserves the energy as long as nothing is discarded."""
    length = 6
    mpo = MPO.ising(length, -1.0, -0.5)
    state = MPS(length, state="x+", dtype=np.complex128)
    energy = expectation_value(state, mpo).real
    records = tdvp(state, mpo, TDVPParams(elapsed_time=0.5, dt=0.05, max_bond_dim=64, cutoff=0.0))
    assert state.norm() == pytest.approx(1.0, abs=1e-10)
    assert records[-1].energy == pytest.approx(energy, abs=1e-8)


def test_record_times() -> None:
    """Every record carries the simulation time after its step."""
    params = TDVPParams(elapsed_time=0.3, dt=0.1)
    records = tdvp(MPS(3, dtype=np.complex128), MPO.ising(3, 1.0, 1.0), params)
    assert len(records) == params.steps == 3
    np.testing.assert_allclose([r.time for r in records], params.times)
    assert [r.sweep for r in records] == [0, 1, 2]


def test_zero_elapsed_time_leaves_state() -> None:
    """No steps are taken for a vanishing evolution time."""
    state = MPS(3, state="x+", dtype=np.complex128)
    psi0 = state.to_vec()
    records = tdvp(state, MPO.ising(3, 1.0, 1.0), TDVPParams(elapsed_time=0.0))
    assert records == []
    np.testing.assert_allclose(state.to_vec(), psi0)


def test_imaginary_time_lowers_energy() -> None:
    """Imaginary-time evolution of a real state approaches the ground state."""
    length = 6
    mpo = MPO.ising(length, 1.0, 1.2)
    state = MPS(length, state="zeros")
    start = expectation_value(state, mpo).real
    records = tdvp(state, mpo, TDVPParams(elapsed_time=10.0, dt=0.1, imaginary_time=True, max_bond_dim=16))
    exact = float(np.linalg.eigvalsh(mpo.to_matrix())[0])
    assert state.dtype == np.float64
    assert state.norm() == pytest.approx(1.0, abs=1e-10)
    assert records[-1].energy < start
    assert records[-1].energy < records[0].energy
    assert records[-1].energy == pytest.approx(exact, abs=1e-3)


def test_real_time_rejects_real_state() -> None:
    """Real-time evolution of a real MPS would silently drop the imaginary part."""
    with pytest.raises(ValueError, match="complex state"):
        tdvp(MPS(3), MPO.ising(3, 1.0, 1.0), TDVPParams(elapsed_time=0.1))


def test_invalid_window() -> None:
    """Only one- and two-site windows exist."""
    with pytest.raises(ValueError, match="window must be 1 or 2"):
        ExponentialUpdate(0.1, window=3)


def test_half_steps() -> None:
    """Real and imaginary time use the matching half step."""
    assert ExponentialUpdate(0.2).half_step == pytest.approx(0.1)
    assert ExponentialUpdate(0.2, imaginary_time=True).half_step == pytest.approx(-0.1j)


def test_make_engine_window() -> None:
    """The method name selects the update window."""
    mpo = MPO.ising(3, 1.0, 1.0)
    one = make_engine(MPS(3, dtype=np.complex128), mpo, TDVPParams(1.0, method="one_site"))
    two = make_engine(MPS(3, dtype=np.complex128), mpo, TDVPParams(1.0, method="two_site"))
    assert one.update.window == 1
    assert two.update.window == 2
    assert one.update.time_step == pytest.approx(0.1)


def test_callback_and_snapshots() -> None:
    """A callback can stop the evolution and snapshots are attached on request."""

    def callback(record: SweepRecord) -> bool:
        return record.time is not None and record.time >= 0.2 - 1e-12

    params = TDVPParams(elapsed_time=1.0, dt=0.1, get_state=True)
    records = tdvp(MPS(4, state="x+", dtype=np.complex128), MPO.ising(4, 1.0, 0.5), params, callback)
    assert len(records) == 2
    assert all(r.tensors is not None for r in records)
