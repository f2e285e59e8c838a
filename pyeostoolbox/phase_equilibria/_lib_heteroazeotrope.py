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
Three phase (vapor-liquid-liquid) equilibrium of a binary mixture.

Each phase is a state of volume 1 m³, so its mole numbers are the partial
densities ρ_i. Newton iteration on the six partial densities (and the
temperature when the pressure is specified) with residuals

    μ_i^L1 - μ_i^V,  μ_i^L2 - μ_i^V,  p^L1 - p^V,  p^L2 - p^V  (,  p^V - p)
"""

import logging
from typing import Optional, Tuple

import numpy as np

from pyeostoolbox.classes import IterationStatus
from pyeostoolbox.constants import R
from pyeostoolbox.errors import ConvergenceFailure, IncompatibleComponents, TrivialSolution
from pyeostoolbox.phase_equilibria._lib_bubble_dew import bubble_dew_point
from pyeostoolbox.shared_fns import SolverOptions, check_convergence, log_iter, log_result
from pyeostoolbox.state import State

logger = logging.getLogger(__name__)

MAX_ITER_HETERO = 50
TOL_HETERO = 1e-10
MAX_STEP_T = 0.05
TOL_STEP = 1e-8
TOL_TRIVIAL = 1e-6
TOL_DISTINCT = 1e-3  # Converged liquids closer than this are one phase


def heteroazeotrope(eos, spec_t: bool, value: float, x_init: Tuple[float, float], tp_init: Optional[float] = None,
                    options: SolverOptions = SolverOptions()) -> Tuple[State, State, State]:
    """
    (vapor, liquid1, liquid2) of a binary heteroazeotrope.

    Args:
        x_init: Initial mole fractions of the first component in both liquids
        tp_init: Initial temperature when the pressure is specified
    """
    if eos.components != 2:
        raise IncompatibleComponents(2, eos.components)
    max_iter, tol, verbosity = options.unwrap_or(MAX_ITER_HETERO, TOL_HETERO)

    bubbles = [bubble_dew_point(eos, spec_t, value, np.array([x, 1.0 - x]), True, tp_init) for x in x_init]
    if spec_t:
        t = value
    else:
        t = 0.5 * (bubbles[0][0]._t + bubbles[1][0]._t)
    rho = np.concatenate([bubbles[0][1]._n / bubbles[0][1]._v,
                          bubbles[1][1]._n / bubbles[1][1]._v,
                          0.5 * (bubbles[0][0]._n / bubbles[0][0]._v + bubbles[1][0]._n / bubbles[1][0]._v)])

    nu = 6 if spec_t else 7
    for it in range(1, max_iter + 1):
        l1, l2, v = (State._new(eos, t, 1.0, rho[2 * k:2 * k + 2]) for k in range(3))
        mu = [s._chemical_potential() for s in (l1, l2, v)]
        p = [s._pressure() for s in (l1, l2, v)]
        rt = R * t
        f = np.concatenate([mu[0] - mu[2], mu[1] - mu[2], [p[0] - p[2], p[1] - p[2]]])
        scale = np.concatenate([np.full(4, rt), np.full(2, rt * np.sum(rho[:4]) / 2.0)])
        if not spec_t:
            f = np.append(f, p[2] - value)
            scale = np.append(scale, value)
        res = np.max(np.abs(f / scale))
        log_iter(verbosity, " %4d | %14.8e | T = %14.8f | p = %14.8e", it, res, t, p[2])
        if (abs(l1._rho / l2._rho - 1.0) < TOL_TRIVIAL
                and np.max(np.abs(l1._x - l2._x)) < TOL_TRIVIAL):
            raise TrivialSolution(f"Liquid phases of the heteroazeotrope coincide at T = {t} K, p = {p[2]} Pa")

        dmu = [s._dmu_dni() for s in (l1, l2, v)]
        dp = [s._dp_dni() for s in (l1, l2, v)]
        jac = np.zeros((nu, nu))
        jac[0:2, 0:2], jac[0:2, 4:6] = dmu[0], -dmu[2]
        jac[2:4, 2:4], jac[2:4, 4:6] = dmu[1], -dmu[2]
        jac[4, 0:2], jac[4, 4:6] = dp[0], -dp[2]
        jac[5, 2:4], jac[5, 4:6] = dp[1], -dp[2]
        if not spec_t:
            dmu_dt = [s._dmu_dt() for s in (l1, l2, v)]
            dp_dt = [s._dp_dt() for s in (l1, l2, v)]
            jac[0:2, 6] = dmu_dt[0] - dmu_dt[2]
            jac[2:4, 6] = dmu_dt[1] - dmu_dt[2]
            jac[4, 6] = dp_dt[0] - dp_dt[2]
            jac[5, 6] = dp_dt[1] - dp_dt[2]
            jac[6, 4:6], jac[6, 6] = dp[2], dp_dt[2]
        dx = np.linalg.solve(jac, -f)
        step = np.max(np.abs(dx[:6]) / np.maximum(rho, np.max(rho) * 1e-6))
        if not spec_t:
            step = max(step, abs(dx[6]) / t)
        status = check_convergence(it, max_iter, res, step, tol, TOL_STEP)
        if status == IterationStatus.EXCEEDED:
            break
        if status == IterationStatus.CONVERGED:
            if (abs(l1._rho / l2._rho - 1.0) < TOL_DISTINCT
                    and np.max(np.abs(l1._x - l2._x)) < TOL_DISTINCT):
                raise TrivialSolution(f"Liquid phases of the heteroazeotrope coincide at T = {t} K, "
                                      f"p = {p[2]} Pa")
            log_result(verbosity, "Heteroazeotrope converged in %d steps: T = %.8f K, p = %.8e Pa", it, t, p[2])
            return v, l1, l2

        step = 1.0
        neg = dx[:6] < 0
        if np.any(neg):
            step = min(step, 0.9 * np.min(rho[neg] / -dx[:6][neg]))
        rho = rho + step * dx[:6]
        if not spec_t:
            t = t + float(np.clip(step * dx[6], -MAX_STEP_T * t, MAX_STEP_T * t))
    raise ConvergenceFailure('heteroazeotrope', max_iter, rho, res)
