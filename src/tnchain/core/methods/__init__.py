# Copyright (c) 2025 - 2026 Chair for Design Automation, TUM
# All rights reserved.
#
# SPDX-License-Identifier: MIT
#
# Licensed under the MIT License

"""Numerical methods: decompositions, environments, Krylov solvers, MPO compilation and sweep algorithms."""
