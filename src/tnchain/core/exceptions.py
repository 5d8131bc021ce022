# Copyright (c) 2025 - 2026 Chair for Design Automation, TUM
# All rights reserved.
#
# SPDX-License-Identifier: MIT
#
# Licensed under the MIT License

"""Error taxonomy of the tensor-network core.

Fatal errors abort a run and name the component and the site or bond that triggered them.
Solver non-convergence is not an exception: it is reported through
:class:`SolverNonConvergenceWarning` and through the per-sweep diagnostics.
"""

from __future__ import annotations


class TensorNetworkError(Exception):
    """Base class for fatal errors raised by the core.

    Attributes:
        component: Name of the component that raised the error (e.g. ``"MPS"``, ``"TruncatedSVD"``).
        site: Site or bond index at which the failure occurred, if known.
    """

    def __init__(self, message: str, *, component: str | None = None, site: int | None = None) -> None:
        """Initialize the error and prefix the message with its location.

        Args:
            message: Human-readable description.
            component: Component that raised the error.
            site: Site or bond index involved.
        """
        self.component = component
        self.site = site
        location = []
        if component is not None:
            location.append(component)
        if site is not None:
            location.append(f"site {site}")
        prefix = f"[{', '.join(location)}] " if location else ""
        super().__init__(prefix + message)
        self.message = message


class ShapeMismatchError(TensorNetworkError, ValueError):
    """Bond or length mismatch between adjacent tensors, or between an MPS and an MPO."""


class NumericalFailureError(TensorNetworkError, RuntimeError):
    """A matrix decomposition did not converge."""


class InvalidChannelSpecError(TensorNetworkError, ValueError):
    """A channel names an unknown operator or carries malformed parameters."""


class SolverNonConvergenceWarning(RuntimeWarning):
    """An iterative local solver hit its iteration cap before reaching the tolerance."""
