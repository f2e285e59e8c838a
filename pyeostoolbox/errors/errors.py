#!/usr/bin/python3
# -*- coding: utf-8 -*-

"""
    pyEOSToolbox - Helmholtz Energy Equations of State and Phase Equilibria
              Copyright (C) 2026, the pyEOSToolbox developers

    This program is free software: you can redistribute it and/or modify
    it under the terms of the GNU General Public License as published by
    the Free Software Foundation, either version 3 of the License, or
    (at your option) any later version.

    This program is distributed in the hope that it will be useful,
    but WITHOUT ANY WARRANTY; without even the implied warranty of
    MERCHANTABILITY or FITNESS FOR A PARTICULAR PURPOSE.  See the
    GNU General Public License for more details.

    The GNU General Public License can be found in the LICENSE directory,
    and at  <https://www.gnu.org/licenses/>.
"""
"""
Exception hierarchy. Every error raised by the toolbox derives from EosError,
so callers can catch the whole family or pick out the recoverable cases.
"""

import numpy as np


class EosError(Exception):
    """Base class for all toolbox errors."""


class InvalidState(EosError, ValueError):
    """Non-physical state variables (T, V or moles)."""


class IncompatibleComponents(InvalidState):
    """Composition length does not match the number of components."""

    def __init__(self, expected: int, got: int):
        self.expected = expected
        self.got = got
        super().__init__(f"Expected {expected} components, got {got}")


class ParameterError(EosError, ValueError):
    """Malformed, missing or inconsistent model parameters."""


class DomainError(EosError, ArithmeticError):
    """Math function evaluated outside its real domain."""

    def __init__(self, function: str, value):
        self.function = function
        self.value = value
        super().__init__(f"{function} is undefined for argument {value}")


class ConvergenceFailure(EosError, RuntimeError):
    """
    An iterative solver hit its iteration ceiling or stalled.

    Args:
        solver: Name of the failing solver
        iterations: Iterations performed
        last_iterate: Last iterate (array or scalar) reached
        residual: Norm of the residual at the last iterate
    """

    def __init__(self, solver: str, iterations: int = None, last_iterate=None, residual: float = None, message: str = None):
        self.solver = solver
        self.iterations = iterations
        self.last_iterate = None if last_iterate is None else np.array(last_iterate, dtype=float)
        self.residual = residual
        if message is None:
            message = f"{solver} did not converge"
            if iterations is not None:
                message += f" in {iterations} iterations"
            if residual is not None:
                message += f" (residual = {residual:.3e})"
        super().__init__(message)


class IterationFailed(ConvergenceFailure):
    """An iterate became unusable (non-finite or out of bounds)."""


class StabilityInconclusive(EosError):
    """No stability trial phase converged."""


class TrivialSolution(EosError):
    """The phases of an equilibrium converged to the same state."""


class SuperCritical(EosError):
    """Requested conditions lie above the critical point."""


class NoPhaseSplit(EosError):
    """The feed is stable, there is no phase split to compute."""
