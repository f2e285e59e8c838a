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

import logging
from dataclasses import dataclass
from typing import Tuple, Optional

import numpy as np
import numpy.typing as npt

from pyeostoolbox.classes import Verbosity, IterationStatus
from pyeostoolbox.validate import validate_methods

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class SolverOptions:
    """ Iteration ceiling, tolerance and log verbosity for a solver. None picks the solver default"""
    max_iter: Optional[int] = None
    tol: Optional[float] = None
    verbosity: Verbosity = Verbosity.NONE

    def __post_init__(self):
        object.__setattr__(self, 'verbosity', validate_methods(['verbosity'], [self.verbosity]))
        if self.max_iter is not None and self.max_iter < 1:
            raise ValueError(f"max_iter must be positive, got {self.max_iter}")
        if self.tol is not None and not self.tol > 0:
            raise ValueError(f"tol must be positive, got {self.tol}")

    def unwrap_or(self, max_iter: int, tol: float) -> Tuple[int, float, Verbosity]:
        return (self.max_iter if self.max_iter is not None else max_iter,
                self.tol if self.tol is not None else tol,
                self.verbosity)


def check_convergence(iteration: int, max_iter: int, residual: float, step: float, tol: float,
                      step_tol: Optional[float] = None) -> IterationStatus:
    """
    Bounded loop state for iteration number `iteration` (1-based).

    Converged only when both the residual max-norm and the (relative) step are
    below tolerance. The step tolerance defaults to tol.
    """
    if not (np.isfinite(residual) and np.isfinite(step)):
        return IterationStatus.EXCEEDED
    if residual < tol and step < (tol if step_tol is None else step_tol):
        return IterationStatus.CONVERGED
    if iteration >= max_iter:
        return IterationStatus.EXCEEDED
    return IterationStatus.CONTINUE


def log_iter(verbosity: Verbosity, msg: str, *args):
    level = logging.INFO if verbosity == Verbosity.ITER else logging.DEBUG
    logger.log(level, msg, *args)


def log_result(verbosity: Verbosity, msg: str, *args):
    level = logging.INFO if verbosity in (Verbosity.RESULT, Verbosity.ITER) else logging.DEBUG
    logger.log(level, msg, *args)


def convert_to_numpy(input_data) -> npt.NDArray[np.float64]:
    # Convert input data to a float numpy array ensuring it is always sizeable
    return np.atleast_1d(np.asarray(input_data, dtype=float))


# =============================================================================
# Rachford-Rice Solver: Nielsen & Lia (2022), Fluid Phase Equilibria
# =============================================================================
def rr_solver(
    zi: np.ndarray, ki: np.ndarray,
    tol: float = 1e-15, max_iter: int = 100
) -> Tuple[int, np.ndarray, np.ndarray, float, float]:
    """
    Solve the Rachford-Rice equation using the method of Nielsen & Lia (2022),
    which handles catastrophic roundoff through a transformed variable.

    Args:
        zi: Molar composition (will be normalized)
        ki: K-values for each component
        tol: Solution tolerance
        max_iter: Maximum iterations

    Returns:
        N_it: Number of iterations required
        yi: Vapor mole fractions
        xi: Liquid mole fractions
        V: Vapor molar fraction
        L: Liquid molar fraction
    """
    zi = zi / np.sum(zi)

    # K exactly 1 gives a singular ci; such components drop out of the RR sum
    ki = np.where(np.abs(ki - 1.0) < 1e-12, 1.0 + 1e-12, ki)

    def rr(V: float) -> float:
        return np.dot(zi, (ki - 1) / (1 + V * (ki - 1)))

    near_vapor = rr(0.5) > 0

    ki_hat = 1.0 / ki if near_vapor else ki.copy()
    ci = 1.0 / (1.0 - ki_hat)                       # Eq 10

    phi_max = min(1.0 / (1.0 - np.min(ki_hat)), 0.5)  # Eq 11a
    phi_min = 1.0 / (1.0 - np.max(ki_hat))             # Eq 11b
    b_min = 1.0 / (phi_max - phi_min)                   # Eq 15
    b_max = np.inf

    b = 1.0 / (0.25 - phi_min)

    def h(b: float) -> float:                          # Eq 12b
        return np.sum(zi * b / (1.0 + b * (phi_min - ci)))

    def dh(b: float) -> float:                         # Eq 16b
        return np.sum(zi / (1.0 + b * (phi_min - ci))**2)

    N_it = 0
    h_b = np.inf

    while abs(h_b) > tol:
        N_it += 1
        h_b = h(b)
        dh_b = dh(b)

        if h_b > 0:
            b_max = b
        else:
            b_min = b

        b = b - h_b / dh_b

        if b < b_min or b > b_max:
            b = (b_min + b_max) / 2.0

        if N_it > max_iter:
            break

    ui = -zi * ci * b / (1.0 + b * (phi_min - ci))    # Eq 27b
    phi = (1.0 + b * phi_min) / b                      # Rearranged Eq 14b

    if near_vapor:
        L = phi
        V = 1.0 - L
        yi = ui
        xi = ki_hat * ui                                # Eq 28
    else:
        V = phi
        L = 1.0 - V
        xi = ui
        yi = ki_hat * ui                                # Eq 28

    return N_it, yi, xi, V, L


def solve_rachford_rice(z: np.ndarray, K: np.ndarray) -> Tuple[float, np.ndarray, np.ndarray]:
    """
    Rachford-Rice with single-phase detection.

    Returns:
        V: Vapor fraction (0 or 1 when the K-values admit no split)
        x: Liquid mole fractions
        y: Vapor mole fractions
    """
    z = np.asarray(z, dtype=float)
    K = np.asarray(K, dtype=float)
    z = z / np.sum(z)

    Km1 = K - 1.0

    if np.sum(z * Km1) <= 0:
        # All liquid
        return 0.0, z.copy(), (K * z) / np.sum(K * z)
    if np.sum(z * Km1 / K) >= 0:
        # All vapor
        return 1.0, (z / K) / np.sum(z / K), z.copy()

    N_it, yi, xi, V, L = rr_solver(z, K)
    return V, xi, yi


def wilson_k_values(tc: np.ndarray, pc: np.ndarray, omega: np.ndarray, t: float, p: float) -> np.ndarray:
    """ Wilson K = (Pc/P)·exp(5.373(1+ω)(1-Tc/T))"""
    return pc / p * np.exp(5.373 * (1.0 + omega) * (1.0 - tc / t))
