# Copyright (c) 2025 - 2026 Chair for Design Automation, TUM
# All rights reserved.
#
# SPDX-License-Identifier: MIT
#
# Licensed under the MIT License

"""Observables of matrix product states."""

from .observables import (
    connected_correlation,
    correlation_function,
    correlation_matrix,
    energy_expectation,
    energy_variance,
    entanglement_entropy,
    entanglement_spectrum,
    inner_product,
    single_site_expectation,
    subsystem_expectation_sum,
    two_site_expectation,
)

__all__ = [
    "connected_correlation",
    "correlation_function",
    "correlation_matrix",
    "energy_expectation",
    "energy_variance",
    "entanglement_entropy",
    "entanglement_spectrum",
    "inner_product",
    "single_site_expectation",
    "subsystem_expectation_sum",
    "two_site_expectation",
]
