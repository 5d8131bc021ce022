# Copyright (c) 2025 - 2026 Chair for Design Automation, TUM
# All rights reserved.
#
# SPDX-License-Identifier: MIT
#
# Licensed under the MIT License

"""Tests for the interaction channel specifications."""

from __future__ import annotations

import dataclasses

import numpy as np
import pytest

from tnchain.core.data_structures.channels import (
    BosonOnly,
    ExpChannelCoupling,
    Field,
    FiniteRangeCoupling,
    PowerLawCoupling,
    SpinBosonInteraction,
)
from tnchain.core.exceptions import InvalidChannelSpecError
from tnchain.core.libraries.operator_library import BosonOperator, SpinOperator


def test_symbols_are_normalized_to_enums() -> None:
    """String symbols are stored as enum members."""
    channel = FiniteRangeCoupling("Z", SpinOperator.X, 1.0)
    assert channel.op1 is SpinOperator.Z
    assert channel.op2 is SpinOperator.X
    assert channel.distance == 1
    assert BosonOnly("adag", 1.0).op is BosonOperator.CREATION


def test_channels_are_frozen() -> None:
    """Channels are immutable value objects."""
    channel = Field("Z", 0.5)
    with pytest.raises(dataclasses.FrozenInstanceError):
        channel.strength = 1.0  # type: ignore[misc]
    assert channel == Field(SpinOperator.Z, 0.5)


def test_explicit_matrix_is_copied_read_only() -> None:
    """Explicit operators are copied and cannot be changed through the channel."""
    op = np.array([[0.0, 1.0], [1.0, 0.0]])
    channel = Field(op, 1.0)
    op[0, 1] = 5.0
    assert channel.op[0, 1] == 1.0
    with pytest.raises(ValueError, match="read-only"):
        channel.op[0, 0] = 1.0


@pytest.mark.parametrize(
    "factory",
    [
        lambda: FiniteRangeCoupling("Q", "Z", 1.0),
        lambda: Field("a", 1.0),
        lambda: BosonOnly("Z", 1.0),
        lambda: BosonOnly(SpinOperator.Z, 1.0),
        lambda: Field(BosonOperator.NUMBER, 1.0),
        lambda: Field(np.ones((2, 3)), 1.0),
        lambda: Field("Z", np.inf),
    ],
)
def test_invalid_operators(factory: object) -> None:
    """Unknown names, wrong operator kinds, non-square matrices and non-finite strengths are rejected."""
    with pytest.raises(InvalidChannelSpecError):
        factory()  # type: ignore[operator]


def test_finite_range_distance() -> None:
    """The distance must be a positive integer."""
    assert FiniteRangeCoupling("Z", "Z", 1.0, distance=3).distance == 3
    with pytest.raises(InvalidChannelSpecError, match="distance"):
        FiniteRangeCoupling("Z", "Z", 1.0, distance=0)
    with pytest.raises(InvalidChannelSpecError, match="distance"):
        FiniteRangeCoupling("Z", "Z", 1.0, distance=1.5)  # type: ignore[arg-type]


def test_exponential_channel() -> None:
    """Any finite decay is accepted; NaN is not."""
    assert ExpChannelCoupling("Z", "Z", 1.0, 1.2).decay == 1.2
    assert ExpChannelCoupling("Z", "Z", 1.0, 0.5 + 0.1j).decay == 0.5 + 0.1j
    with pytest.raises(InvalidChannelSpecError, match="decay"):
        ExpChannelCoupling("Z", "Z", 1.0, np.nan)


def test_power_law_channel() -> None:
    """The exponent must be positive and n_exp a positive integer."""
    channel = PowerLawCoupling("Z", "Z", 1.0, alpha=1.5)
    assert channel.n_exp == 8
    with pytest.raises(InvalidChannelSpecError, match="alpha"):
        PowerLawCoupling("Z", "Z", 1.0, alpha=0.0)
    with pytest.raises(InvalidChannelSpecError, match="n_exp"):
        PowerLawCoupling("Z", "Z", 1.0, alpha=1.0, n_exp=0)


def test_spin_boson_interaction() -> None:
    """Sub-channels are stored as a tuple and must be spin channels."""
    channel = SpinBosonInteraction([Field("Z", 1.0)], "a", 0.3)  # type: ignore[arg-type]
    assert isinstance(channel.spin_channels, tuple)
    assert channel.boson_op is BosonOperator.ANNIHILATION
    with pytest.raises(InvalidChannelSpecError, match="at least one"):
        SpinBosonInteraction((), "a")
    with pytest.raises(InvalidChannelSpecError, match="cannot be nested"):
        SpinBosonInteraction((BosonOnly("n", 1.0),), "a")  # type: ignore[arg-type]
    with pytest.raises(InvalidChannelSpecError):
        SpinBosonInteraction((Field("Z", 1.0),), "Z")
