# Copyright (c) 2025 - 2026 Chair for Design Automation, TUM
# All rights reserved.
#
# SPDX-License-Identifier: MIT
#
# Licensed under the MIT License

"""tnchain: matrix product state algorithms for one-dimensional quantum chains.

The package provides MPS and MPO containers, a compiler from interaction channels to MPOs, two-site DMRG for
ground states and one- and two-site TDVP for real- and imaginary-time evolution.
"""

from .core.data_structures.channels import (
    BosonOnly,
    ExpChannelCoupling,
    Field,
    FiniteRangeCoupling,
    PowerLawCoupling,
    SpinBosonInteraction,
)
from .core.data_structures.networks import MPO, MPS
from .core.data_structures.simulation_parameters import DMRGParams, SweepRecord, TDVPParams, TruncationConfig
from .core.exceptions import (
    InvalidChannelSpecError,
    NumericalFailureError,
    ShapeMismatchError,
    SolverNonConvergenceWarning,
    TensorNetworkError,
)
from .core.methods.dmrg import dmrg
from .core.methods.tdvp import tdvp
from .simulator import available_cpus, run, run_batch

__all__ = [
    "MPO",
    "MPS",
    "BosonOnly",
    "DMRGParams",
    "ExpChannelCoupling",
    "Field",
    "FiniteRangeCoupling",
    "InvalidChannelSpecError",
    "NumericalFailureError",
    "PowerLawCoupling",
    "ShapeMismatchError",
    "SolverNonConvergenceWarning",
    "SpinBosonInteraction",
    "SweepRecord",
    "TDVPParams",
    "TensorNetworkError",
    "TruncationConfig",
    "available_cpus",
    "dmrg",
    "run",
    "run_batch",
    "tdvp",
]
