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
Density solver for states at given temperature, pressure and mole numbers.

Newton iteration on ρ with analytic dp/dρ is tried from a vapor-like
(ideal gas) or liquid-like (0.75 ρ_max) seed. When an iterate leaves
(0, ρ_max), becomes mechanically unstable or the loop runs out of
iterations, p(ρ) is scanned on a log grid and every stable root is
bracketed and polished with scipy's brentq.
"""

import logging
from typing import List, Union

import numpy as np
from scipy.optimize import brentq

from pyeostoolbox.classes import Contributions, DensityInitialization, IterationStatus
from pyeostoolbox.constants import R
from pyeostoolbox.errors import ConvergenceFailure, IterationFailed
from pyeostoolbox.shared_fns import SolverOptions, check_convergence, log_iter, log_result

logger = logging.getLogger(__name__)

MAX_ITER_DENSITY = 50
TOL_DENSITY = 1e-11
N_GRID = 200
LIQUID_SEED = 0.75  # Fraction of maximum density used as liquid seed


def _pressure_at(state_cls, eos, t, rho, n):
    state = state_cls._new(eos, t, np.sum(n) / rho, n)
    return state, state._pressure(Contributions.TOTAL), state._dp_drho(Contributions.TOTAL)


def density_newton(state_cls, eos, t: float, p: float, n: np.ndarray, rho0: float,
                   options: SolverOptions = SolverOptions()):
    """
    Newton iteration for p(ρ) = p from the seed rho0.

    Returns:
        Converged State
    Raises:
        IterationFailed when an iterate is unusable, ConvergenceFailure after max_iter
    """
    max_iter, tol, verbosity = options.unwrap_or(MAX_ITER_DENSITY, TOL_DENSITY)
    rho_max = eos.max_density(n)
    rho = rho0
    log_iter(verbosity, " iter |    residual    |   density")
    for it in range(1, max_iter + 1):
        state, p_calc, dp_drho = _pressure_at(state_cls, eos, t, rho, n)
        if not (np.isfinite(p_calc) and np.isfinite(dp_drho)) or dp_drho <= 0:
            raise IterationFailed('density iteration', it, [rho], abs(p_calc - p) / p,
                                  message=f"Mechanically unstable or invalid iterate at rho = {rho:.6e} mol/m³")
        delta = (p_calc - p) / dp_drho
        rho_new = rho - delta
        if rho_new <= 0:
            rho_new = 0.5 * rho
        if rho_new >= rho_max:
            rho_new = 0.5 * (rho + rho_max)
        step = abs(rho_new / rho - 1.0)
        res = abs(p_calc - p) / max(p, rho * R * t)
        log_iter(verbosity, " %4d | %14.8e | %14.8e", it, res, rho_new)
        status = check_convergence(it, max_iter, res, step, tol)
        rho = rho_new
        if status == IterationStatus.CONVERGED:
            state = state_cls._new(eos, t, np.sum(n) / rho, n)
            log_result(verbosity, "Density iteration converged in %d steps: %.8e mol/m³", it, rho)
            return state
        if status == IterationStatus.EXCEEDED:
            break
    raise ConvergenceFailure('density iteration', max_iter, [rho], res)


def stable_density_roots(state_cls, eos, t: float, p: float, n: np.ndarray) -> List[float]:
    """ All mechanically stable roots of p(ρ) = p between vacuum and ρ_max, ascending"""
    rho_max = eos.max_density(n)
    rho_lo = min(1e-3 * p / (R * t), 1e-8 * rho_max)
    grid = np.geomspace(rho_lo, rho_max * (1.0 - 1e-9), N_GRID)

    def f(rho):
        return _pressure_at(state_cls, eos, t, rho, n)[1] - p

    values = np.array([f(rho) for rho in grid])
    roots = []
    for k in range(N_GRID - 1):
        if values[k] < 0 <= values[k + 1]:
            if values[k + 1] == 0:
                roots.append(grid[k + 1])
            else:
                roots.append(brentq(f, grid[k], grid[k + 1], xtol=1e-14 * grid[k + 1], rtol=1e-14))
    return roots


def solve_density(state_cls, eos, t: float, p: float, n: np.ndarray,
                  density_initialization: Union[DensityInitialization, float],
                  options: SolverOptions = SolverOptions()):
    """
    State at (T, p, n) on the branch chosen by density_initialization.

    VAPOR and LIQUID pick the lowest or highest stable root, an explicit
    density picks the root nearest to it, NONE picks the root of lowest
    Gibbs energy.
    """
    rho_max = eos.max_density(n)
    rho_ig = p / (R * t)
    if isinstance(density_initialization, DensityInitialization):
        if density_initialization == DensityInitialization.VAPOR:
            seeds = [min(rho_ig, 0.5 * rho_max)]
        elif density_initialization == DensityInitialization.LIQUID:
            seeds = [LIQUID_SEED * rho_max]
        else:
            seeds = [min(rho_ig, 0.5 * rho_max), LIQUID_SEED * rho_max]
    else:
        rho_seed = float(density_initialization)
        if not 0 < rho_seed < rho_max:
            rho_seed = min(max(rho_seed, 1e-10 * rho_max), LIQUID_SEED * rho_max)
        seeds = [rho_seed]

    states = []
    try:
        for rho0 in seeds:
            states.append(density_newton(state_cls, eos, t, p, n, rho0, options))
    except ConvergenceFailure as e:
        logger.debug("Density Newton failed (%s), bracketing p(rho)", e)
        roots = stable_density_roots(state_cls, eos, t, p, n)
        if not roots:
            raise ConvergenceFailure('density iteration', None, [seeds[0]], None,
                                     message=f"No stable density root at T = {t} K, p = {p} Pa") from e
        if density_initialization == DensityInitialization.VAPOR:
            roots = roots[:1]
        elif density_initialization == DensityInitialization.LIQUID:
            roots = roots[-1:]
        elif not isinstance(density_initialization, DensityInitialization):
            roots = [min(roots, key=lambda r: abs(r - seeds[0]))]
        states = [state_cls._new(eos, t, np.sum(n) / rho, n) for rho in roots]

    if len(states) == 1:
        return states[0]
    return min(states, key=lambda s: s._molar_gibbs_energy(Contributions.TOTAL))
