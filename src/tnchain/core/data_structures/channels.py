# Copyright (c) 2025 - 2026 Chair for Design Automation, TUM
# All rights reserved.
#
# SPDX-License-Identifier: MIT
#
# Licensed under the MIT License

"""Interaction channels.

A channel describes one term of a Hamiltonian on a chain of spin sites, optionally coupled to a single bosonic
mode. The set of channel kinds is closed:

  - :class:`FiniteRangeCoupling`: ``J * op1_i op2_{i+r}`` for a fixed distance ``r``.
  - :class:`ExpChannelCoupling`: ``J * decay**(j-i) op1_i op2_j`` for all ``i < j``.
  - :class:`PowerLawCoupling`: ``J / (j-i)**alpha op1_i op2_j``, fitted by a sum of exponentials.
  - :class:`Field`: ``h * op_i`` on every spin site.
  - :class:`BosonOnly`: ``strength * op`` on the boson mode.
  - :class:`SpinBosonInteraction`: ``strength * boson_op (x) sum(spin channels)``.

Operators are given as :class:`~tnchain.core.libraries.operator_library.SpinOperator` /
:class:`~tnchain.core.libraries.operator_library.BosonOperator` members, their string values, or explicit
matrices. Symbol names are checked when the channel is created; the matrices are resolved once by the FSM
compiler when the local dimensions are known.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING, Union

import numpy as np

from ..exceptions import InvalidChannelSpecError
from ..libraries.operator_library import BosonOperator, SpinOperator

if TYPE_CHECKING:
    from ..libraries.operator_library import OperatorLike


def _parse_operator(op: OperatorLike, kind: type[SpinOperator] | type[BosonOperator], channel: str) -> OperatorLike:
    if isinstance(op, (SpinOperator, BosonOperator)):
        if not isinstance(op, kind):
            msg = f"{channel}: {type(op).__name__}.{op.name} is not a {kind.__name__}."
            raise InvalidChannelSpecError(msg, component="Channel")
        return op
    if isinstance(op, str):
        try:
            return kind(op)
        except ValueError:
            valid = sorted(member.value for member in kind)
            msg = f"{channel}: unknown operator {op!r}; expected one of {valid} or an explicit matrix."
            raise InvalidChannelSpecError(msg, component="Channel") from None
    mat = np.asarray(op)
    if mat.ndim != 2 or mat.shape[0] != mat.shape[1]:
        msg = f"{channel}: explicit operators must be square matrices, got shape {mat.shape}."
        raise InvalidChannelSpecError(msg, component="Channel")
    mat = mat.copy()
    mat.setflags(write=False)
    return mat


def _check_finite(value: complex, name: str, channel: str) -> None:
    if not np.isfinite(value):
        msg = f"{channel}: {name} must be finite, got {value}."
        raise InvalidChannelSpecError(msg, component="Channel")


@dataclass(frozen=True)
class FiniteRangeCoupling:
    """Coupling ``strength * op1_i op2_{i+distance}`` summed over all ``i``."""

    op1: OperatorLike
    op2: OperatorLike
    strength: float
    distance: int = 1

    def __post_init__(self) -> None:
        """Validate operators and distance.

        Raises:
            InvalidChannelSpecError: If an operator is unknown or the distance is not positive.
        """
        object.__setattr__(self, "op1", _parse_operator(self.op1, SpinOperator, "FiniteRangeCoupling"))
        object.__setattr__(self, "op2", _parse_operator(self.op2, SpinOperator, "FiniteRangeCoupling"))
        _check_finite(self.strength, "strength", "FiniteRangeCoupling")
        if int(self.distance) != self.distance or self.distance < 1:
            msg = f"FiniteRangeCoupling: distance must be a positive integer, got {self.distance}."
            raise InvalidChannelSpecError(msg, component="Channel")


@dataclass(frozen=True)
class ExpChannelCoupling:
    """Coupling ``strength * decay**r op1_i op2_{i+r}`` summed over all ``i`` and ``r >= 1``.

    The decay is not restricted to ``(0, 1)``; the FSM compiler logs a warning for values outside that range.
    """

    op1: OperatorLike
    op2: OperatorLike
    strength: float
    decay: complex

    def __post_init__(self) -> None:
        """Validate operators and parameters.

        Raises:
            InvalidChannelSpecError: If an operator is unknown or a parameter is not finite.
        """
        object.__setattr__(self, "op1", _parse_operator(self.op1, SpinOperator, "ExpChannelCoupling"))
        object.__setattr__(self, "op2", _parse_operator(self.op2, SpinOperator, "ExpChannelCoupling"))
        _check_finite(self.strength, "strength", "ExpChannelCoupling")
        _check_finite(self.decay, "decay", "ExpChannelCoupling")


@dataclass(frozen=True)
class PowerLawCoupling:
    """Coupling ``strength / r**alpha op1_i op2_{i+r}``, approximated by `n_exp` exponentials."""

    op1: OperatorLike
    op2: OperatorLike
    strength: float
    alpha: float
    n_exp: int = 8

    def __post_init__(self) -> None:
        """Validate operators and parameters.

        Raises:
            InvalidChannelSpecError: If an operator is unknown, alpha is not positive or n_exp < 1.
        """
        object.__setattr__(self, "op1", _parse_operator(self.op1, SpinOperator, "PowerLawCoupling"))
        object.__setattr__(self, "op2", _parse_operator(self.op2, SpinOperator, "PowerLawCoupling"))
        _check_finite(self.strength, "strength", "PowerLawCoupling")
        if not np.isfinite(self.alpha) or self.alpha <= 0:
            msg = f"PowerLawCoupling: alpha must be positive, got {self.alpha}."
            raise InvalidChannelSpecError(msg, component="Channel")
        if int(self.n_exp) != self.n_exp or self.n_exp < 1:
            msg = f"PowerLawCoupling: n_exp must be a positive integer, got {self.n_exp}."
            raise InvalidChannelSpecError(msg, component="Channel")


@dataclass(frozen=True)
class Field:
    """Single-site term ``strength * op_i`` on every spin site."""

    op: OperatorLike
    strength: float

    def __post_init__(self) -> None:
        """Validate the operator.

        Raises:
            InvalidChannelSpecError: If the operator is unknown.
        """
        object.__setattr__(self, "op", _parse_operator(self.op, SpinOperator, "Field"))
        _check_finite(self.strength, "strength", "Field")


@dataclass(frozen=True)
class BosonOnly:
    """Term ``strength * op`` acting on the boson mode only."""

    op: OperatorLike
    strength: float

    def __post_init__(self) -> None:
        """Validate the operator.

        Raises:
            InvalidChannelSpecError: If the operator is unknown.
        """
        object.__setattr__(self, "op", _parse_operator(self.op, BosonOperator, "BosonOnly"))
        _check_finite(self.strength, "strength", "BosonOnly")


SpinChannel = Union[FiniteRangeCoupling, ExpChannelCoupling, PowerLawCoupling, Field]
_SPIN_KINDS = (FiniteRangeCoupling, ExpChannelCoupling, PowerLawCoupling, Field)


@dataclass(frozen=True)
class SpinBosonInteraction:
    """Term ``strength * boson_op (x) sum(spin_channels)``.

    Attributes:
        spin_channels: Spin-only channels whose sum is multiplied by the boson operator.
        boson_op: Operator on the boson mode.
        strength: Overall prefactor.
    """

    spin_channels: tuple[SpinChannel, ...]
    boson_op: OperatorLike
    strength: float = 1.0

    def __post_init__(self) -> None:
        """Validate the sub-channels and the boson operator.

        Raises:
            InvalidChannelSpecError: If a sub-channel is not a spin channel or the operator is unknown.
        """
        channels = tuple(self.spin_channels)
        if not channels:
            msg = "SpinBosonInteraction: needs at least one spin channel."
            raise InvalidChannelSpecError(msg, component="Channel")
        for channel in channels:
            if not isinstance(channel, _SPIN_KINDS):
                msg = f"SpinBosonInteraction: {type(channel).__name__} cannot be nested."
                raise InvalidChannelSpecError(msg, component="Channel")
        object.__setattr__(self, "spin_channels", channels)
        object.__setattr__(self, "boson_op", _parse_operator(self.boson_op, BosonOperator, "SpinBosonInteraction"))
        _check_finite(self.strength, "strength", "SpinBosonInteraction")


Channel = Union[FiniteRangeCoupling, ExpChannelCoupling, PowerLawCoupling, Field, BosonOnly, SpinBosonInteraction]
