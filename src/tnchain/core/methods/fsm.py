# Copyright (c) 2025 - 2026 Chair for Design Automation, TUM
# All rights reserved.
#
# SPDX-License-Identifier: MIT
#
# Licensed under the MIT License

"""Finite-state-machine construction of MPOs.

A Hamiltonian given as a list of channels is first translated into a finite-state machine (FSM): a directed
graph over the states ``START``, one state per interaction step, and ``END``. Every edge carries a local operator
and a scalar weight. Each term of the Hamiltonian corresponds to a path from ``START`` to ``END`` that visits one
edge per site; ``START`` and ``END`` carry identity self-loops so a term can begin and finish anywhere.

The states become the operator-bond indices of the MPO. With ``w`` states the bulk tensor is::

    W[a, :, :, b] = sum over edges (a -> b) of weight * operator

and the boundary tensors keep only the ``START`` row (first site) and the ``END`` column (last site).

Finite-range couplings of distance ``r`` use ``r`` chained states, exponential couplings a single state with a
weighted self-loop, and power-law couplings are approximated by a sum of exponentials
(:func:`_power_law_to_exp`). A boson mode, if present, occupies site 0 of the chain in front of the spins.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import TYPE_CHECKING

import numpy as np

from ..data_structures.channels import (
    BosonOnly,
    ExpChannelCoupling,
    Field,
    FiniteRangeCoupling,
    PowerLawCoupling,
    SpinBosonInteraction,
)
from ..data_structures.networks import MPO
from ..exceptions import InvalidChannelSpecError
from ..libraries.operator_library import resolve_boson_operator, resolve_spin_operator

if TYPE_CHECKING:
    from collections.abc import Sequence

    from numpy.typing import NDArray

    from ..data_structures.channels import Channel, SpinChannel
    from ..libraries.operator_library import OperatorLike

logger = logging.getLogger(__name__)

START = 0


@dataclass
class Edge:
    """Transition ``source -> target`` applying ``weight * operator`` on one site."""

    source: int
    target: int | None
    operator: NDArray[np.complex128]
    weight: complex


@dataclass
class FSMGraph:
    """Finite-state machine of a Hamiltonian.

    Attributes:
        spin_dim: Local dimension of the spin sites.
        boson_dim: Dimension of the boson mode, None without a boson site.
        n_interaction_states: Number of states between ``START`` and ``END``.
        spin_edges: Edges applied on every spin site.
        boson_edges: Edges applied on the boson site.
    """

    spin_dim: int
    boson_dim: int | None = None
    n_interaction_states: int = 0
    spin_edges: list[Edge] = field(default_factory=list)
    boson_edges: list[Edge] = field(default_factory=list)

    @property
    def n_states(self) -> int:
        """Total number of states, the MPO bond dimension."""
        return self.n_interaction_states + 2

    @property
    def end(self) -> int:
        """Index of the ``END`` state."""
        return self.n_interaction_states + 1

    def add_state(self) -> int:
        """Append an interaction state.

        Returns:
            int: Its index.
        """
        self.n_interaction_states += 1
        return self.n_interaction_states

    def spin_edge(self, source: int, target: int | None, operator: NDArray[np.complex128], weight: complex) -> None:
        """Add a spin-site edge; ``target=None`` means ``END``."""
        self.spin_edges.append(Edge(source, target, operator, weight))

    def boson_edge(self, source: int, target: int | None, operator: NDArray[np.complex128], weight: complex) -> None:
        """Add a boson-site edge; ``target=None`` means ``END``."""
        self.boson_edges.append(Edge(source, target, operator, weight))


def _power_law_to_exp(alpha: float, n_sites: int, n_exp: int) -> tuple[NDArray[np.complex128], NDArray[np.complex128]]:
    """Fit ``1 / r**alpha`` on ``r = 1..N`` with ``sum_k nu_k * lambda_k**r``.

    The decay rates are the eigenvalues of the shift operator of the Hankel matrix of the sampled function
    (obtained from its QR decomposition), the prefactors follow from a linear least-squares fit. The fit range is
    extended to ``2 * n_exp`` points if the chain is shorter.

    Args:
        alpha: Exponent of the power law.
        n_sites: Largest distance ``N`` to fit.
        n_exp: Number of exponentials.

    Returns:
        nu, lam: Prefactors and decay rates. Both are real if the imaginary parts vanish numerically.
    """
    n_fit = max(n_sites, 2 * n_exp)
    r = np.arange(1, n_fit + 1, dtype=float)
    fx = r ** (-alpha)

    hankel = np.array([fx[i : i + n_fit - n_exp + 1] for i in range(n_exp)]).T
    q_mat, _ = np.linalg.qr(hankel)
    shift = np.linalg.pinv(q_mat[:-1, :]) @ q_mat[1:, :]
    lam = np.linalg.eigvals(shift)
    lam = lam[np.argsort(-np.abs(lam))]

    vandermonde = np.power.outer(lam, r).T
    nu = np.linalg.lstsq(vandermonde, fx.astype(lam.dtype), rcond=None)[0]

    scale = max(1.0, float(np.max(np.abs(lam))))
    if np.allclose(lam.imag, 0, atol=1e-12 * scale) and np.allclose(nu.imag, 0, atol=1e-12 * np.max(np.abs(nu))):
        return nu.real, lam.real
    return nu, lam


def _add_spin_channel(graph: FSMGraph, channel: SpinChannel, origin: int, n_spin: int) -> None:
    """Add the edges of one spin channel whose terms start at state `origin`."""
    d = graph.spin_dim
    identity = np.eye(d)
    if isinstance(channel, Field):
        graph.spin_edge(origin, None, resolve_spin_operator(channel.op, d), channel.strength)
    elif isinstance(channel, FiniteRangeCoupling):
        op1 = resolve_spin_operator(channel.op1, d)
        op2 = resolve_spin_operator(channel.op2, d)
        previous = graph.add_state()
        graph.spin_edge(origin, previous, op1, channel.strength)
        for _ in range(channel.distance - 1):
            state = graph.add_state()
            graph.spin_edge(previous, state, identity, 1.0)
            previous = state
        graph.spin_edge(previous, None, op2, 1.0)
    elif isinstance(channel, ExpChannelCoupling):
        _add_exponential(graph, channel.op1, channel.op2, channel.strength, channel.decay, origin)
    elif isinstance(channel, PowerLawCoupling):
        nu, lam = _power_law_to_exp(channel.alpha, n_spin, channel.n_exp)
        logger.debug("Power law alpha=%g fitted with decays %s", channel.alpha, lam)
        for prefactor, decay in zip(nu, lam):
            _add_exponential(
                graph, channel.op1, channel.op2, channel.strength * prefactor, decay, origin, check_decay=False
            )
    else:
        msg = f"Unsupported spin channel {type(channel).__name__}."
        raise InvalidChannelSpecError(msg, component="FSMCompiler")


def _add_exponential(
    graph: FSMGraph,
    op1: OperatorLike,
    op2: OperatorLike,
    strength: complex,
    decay: complex,
    origin: int,
    *,
    check_decay: bool = True,
) -> None:
    """One state with a self-loop of weight `decay`, so distance ``r`` picks up ``strength * decay**r``."""
    if check_decay and not (np.isreal(decay) and 0 < np.real(decay) < 1):
        logger.warning("Exponential decay %s lies outside (0, 1); the MPO may be ill-conditioned.", decay)
    d = graph.spin_dim
    state = graph.add_state()
    graph.spin_edge(origin, state, resolve_spin_operator(op1, d), strength)
    graph.spin_edge(state, state, np.eye(d), decay)
    graph.spin_edge(state, None, resolve_spin_operator(op2, d), decay)


def build_fsm(
    channels: Sequence[Channel],
    n_sites: int,
    *,
    spin_dim: int = 2,
    boson_dim: int | None = None,
) -> FSMGraph:
    """Translate channels into a finite-state machine.

    Args:
        channels: Channel specifications.
        n_sites: Number of spin sites.
        spin_dim: Local dimension of the spin sites.
        boson_dim: Dimension of the boson mode, required by boson channels.

    Returns:
        FSMGraph: The graph, with ``END`` edges still pointing to None.

    Raises:
        InvalidChannelSpecError: If a channel is malformed or needs a boson mode that is not configured.
    """
    if n_sites < 1:
        msg = f"Need at least one spin site, got {n_sites}."
        raise InvalidChannelSpecError(msg, component="FSMCompiler")
    if not channels:
        msg = "At least one channel is required."
        raise InvalidChannelSpecError(msg, component="FSMCompiler")

    graph = FSMGraph(spin_dim=spin_dim, boson_dim=boson_dim)
    for channel in channels:
        if isinstance(channel, (BosonOnly, SpinBosonInteraction)):
            if boson_dim is None:
                msg = f"{type(channel).__name__} requires a boson mode; pass boson_dim."
                raise InvalidChannelSpecError(msg, component="FSMCompiler")
            if isinstance(channel, BosonOnly):
                graph.boson_edge(START, None, resolve_boson_operator(channel.op, boson_dim), channel.strength)
            else:
                sector = graph.add_state()
                boson_op = resolve_boson_operator(channel.boson_op, boson_dim)
                graph.boson_edge(START, sector, boson_op, channel.strength)
                graph.spin_edge(sector, sector, np.eye(spin_dim), 1.0)
                for sub_channel in channel.spin_channels:
                    _add_spin_channel(graph, sub_channel, sector, n_sites)
        elif isinstance(channel, (FiniteRangeCoupling, ExpChannelCoupling, PowerLawCoupling, Field)):
            _add_spin_channel(graph, channel, START, n_sites)
        else:
            msg = f"Unknown channel type {type(channel).__name__}."
            raise InvalidChannelSpecError(msg, component="FSMCompiler")
    return graph


def _edge_tensor(edges: Sequence[Edge], n_states: int, end: int, dim: int) -> NDArray[np.complex128]:
    is_complex = any(np.iscomplexobj(e.operator) or np.iscomplexobj(e.weight) for e in edges)
    tensor = np.zeros((n_states, dim, dim, n_states), dtype=np.complex128 if is_complex else np.float64)
    tensor[START, :, :, START] = np.eye(dim)
    tensor[end, :, :, end] = np.eye(dim)
    for edge in edges:
        target = end if edge.target is None else edge.target
        tensor[edge.source, :, :, target] += edge.weight * edge.operator
    return tensor


def compile_fsm(graph: FSMGraph, n_sites: int) -> MPO:
    """Emit the MPO tensors of a finite-state machine.

    Args:
        graph: FSM from :func:`build_fsm`.
        n_sites: Number of spin sites.

    Returns:
        MPO: ``n_sites`` tensors, plus a leading boson tensor when the graph has a boson mode.
    """
    w, end = graph.n_states, graph.end
    bulk = _edge_tensor(graph.spin_edges, w, end, graph.spin_dim)
    tensors = [bulk.copy() for _ in range(n_sites)]
    if graph.boson_dim is not None:
        boson = _edge_tensor(graph.boson_edges, w, end, graph.boson_dim)
        tensors.insert(0, boson)
    tensors[0] = tensors[0][START : START + 1]
    tensors[-1] = tensors[-1][..., end : end + 1]
    logger.debug("Compiled FSM with %d states into %d MPO tensors", w, len(tensors))
    return MPO(tensors)


def build_mpo(
    channels: Sequence[Channel],
    n_sites: int,
    *,
    spin_dim: int = 2,
    boson_dim: int | None = None,
) -> MPO:
    """Compile channels into an MPO of bond dimension ``#states + 2``.

    Args:
        channels: Channel specifications.
        n_sites: Number of spin sites.
        spin_dim: Local dimension of the spin sites.
        boson_dim: Dimension of the boson mode at site 0, if any.

    Returns:
        MPO: The Hamiltonian. With a boson mode it has ``n_sites + 1`` sites.
    """
    graph = build_fsm(channels, n_sites, spin_dim=spin_dim, boson_dim=boson_dim)
    return compile_fsm(graph, n_sites)
