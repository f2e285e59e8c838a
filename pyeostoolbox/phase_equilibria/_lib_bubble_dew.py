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
Bubble and dew points.

The unknowns are ln K_i and ln p (temperature specified) or ln T (pressure
specified). With w the composition of the incipient phase (w = zK for a
bubble point, w = z/K for a dew point) the residuals are

    F_i = ln K_i + ln φ_i^V - ln φ_i^L
    F_c = Σ w_i - 1

Derivatives with respect to ln K_j only act through the incipient phase,
∂F_i/∂ln K_j = δ_ij + Φ_ij w_j with Φ its ∂ln φ/∂n.
"""

import logging
from typing import Optional, Tuple

import numpy as np
from scipy.optimize import brentq

from pyeostoolbox.classes import DensityInitialization, IterationStatus
from pyeostoolbox.errors import ConvergenceFailure, TrivialSolution, InvalidState
from pyeostoolbox.phase_equilibria._lib_pure import vapor_pressure_lines
from pyeostoolbox.shared_fns import SolverOptions, check_convergence, log_iter, log_result
from pyeostoolbox.state import State

logger = logging.getLogger(__name__)

MAX_ITER_BUBBLE_DEW = 50
TOL_BUBBLE_DEW = 1e-10
MAX_STEP_LN_P = 0.5
MAX_STEP_LN_T = 0.1
MAX_STEP_LN_K = 2.0
TOL_STEP = 1e-8  # Newton step in ln K and ln p (or ln T) that would follow a converged iterate
TOL_TRIVIAL = 1e-6  # Incipient and bulk phase coincide in density and composition


def _raoult(a, b, z, t, bubble: bool) -> float:
    """ Raoult's law pressure at t"""
    psat = np.exp(a - b / t)
    return float(np.sum(z * psat)) if bubble else float(1.0 / np.sum(z / psat))


def _initial_guess(eos, spec_t: bool, value: float, z: np.ndarray, bubble: bool, tp_init: Optional[float]):
    """ (T, p, K) from Raoult's law with vapor pressure lines"""
    a, b = vapor_pressure_lines(eos)
    present = z > 0
    if spec_t:
        t = value
        p = tp_init if tp_init is not None else _raoult(a, b, z, t, bubble)
    else:
        p = value
        if tp_init is not None:
            t = tp_init
        else:
            with np.errstate(divide='ignore'):
                t_sat = b[present] / (a[present] - np.log(p))
            t_sat = t_sat[np.isfinite(t_sat) & (t_sat > 0)]
            if t_sat.size == 0:
                raise InvalidState(f"No Raoult's law estimate for p = {p} Pa")
            t = brentq(lambda t: np.log(_raoult(a, b, z, t, bubble) / p), 0.5 * np.min(t_sat), 2.0 * np.max(t_sat))
    k = np.exp(a - b / t) / p
    return t, p, k


def bubble_dew_point(eos, spec_t: bool, value: float, z: np.ndarray, bubble: bool,
                     tp_init: Optional[float] = None, molefracs_init: Optional[np.ndarray] = None,
                     options: SolverOptions = SolverOptions()) -> Tuple[State, State]:
    """
    (vapor, liquid) at the bubble point of liquid z or the dew point of vapor z.

    Args:
        spec_t: True if value is the temperature (K), False for pressure (Pa)
        tp_init: Initial pressure (spec_t) or temperature
        molefracs_init: Initial composition of the incipient phase
    """
    max_iter, tol, verbosity = options.unwrap_or(MAX_ITER_BUBBLE_DEW, TOL_BUBBLE_DEW)
    z = eos.validate_moles(z)
    z = z / np.sum(z)
    t, p, k = _initial_guess(eos, spec_t, value, z, bubble, tp_init)
    if molefracs_init is not None:
        w0 = np.asarray(molefracs_init, dtype=float)
        w0 = w0 / np.sum(w0)
        with np.errstate(divide='ignore', invalid='ignore'):
            k_init = w0 / z if bubble else z / w0
        ok = np.isfinite(k_init) & (k_init > 0)
        k[ok] = k_init[ok]
    kind = 'bubble point' if bubble else 'dew point'
    sign = 1.0 if bubble else -1.0
    nc = z.size

    rho_w, rho_z = DensityInitialization.VAPOR, DensityInitialization.LIQUID
    if not bubble:
        rho_w, rho_z = rho_z, rho_w
    x_ln = np.log(k)
    x_tp = np.log(p) if spec_t else np.log(t)
    for it in range(1, max_iter + 1):
        k = np.exp(x_ln)
        if spec_t:
            p = np.exp(x_tp)
        else:
            t = np.exp(x_tp)
        w = z * k if bubble else z / k
        incipient = State._new_npt(eos, t, p, w, rho_w)
        bulk = State._new_npt(eos, t, p, z, rho_z)
        rho_w, rho_z = incipient._rho, bulk._rho
        vapor, liquid = (incipient, bulk) if bubble else (bulk, incipient)

        f = np.zeros(nc + 1)
        f[:nc] = x_ln + vapor._ln_phi() - liquid._ln_phi()
        f[nc] = np.sum(w) - 1.0
        res = np.max(np.abs(f))
        log_iter(verbosity, " %4d | %14.8e | T = %14.8f | p = %14.8e", it, res, t, p)
        if (abs(rho_w / rho_z - 1.0) < TOL_TRIVIAL
                and np.max(np.abs(incipient._x - bulk._x)) < TOL_TRIVIAL):
            raise TrivialSolution(f"{kind} iteration converged to the trivial solution at T = {t} K, p = {p} Pa")

        jac = np.zeros((nc + 1, nc + 1))
        jac[:nc, :nc] = np.eye(nc) + sign * incipient._dln_phi_dnj() * (sign * w)[None, :]
        if spec_t:
            jac[:nc, nc] = p * (vapor._dln_phi_dp() - liquid._dln_phi_dp())
        else:
            jac[:nc, nc] = t * (vapor._dln_phi_dt() - liquid._dln_phi_dt())
        jac[nc, :nc] = sign * w
        dx = np.linalg.solve(jac, -f)
        status = check_convergence(it, max_iter, res, np.max(np.abs(dx)), tol, TOL_STEP)
        if status == IterationStatus.EXCEEDED:
            break
        if status == IterationStatus.CONVERGED:
            log_result(verbosity, "%s converged in %d steps: T = %.8f K, p = %.8e Pa", kind, it, t, p)
            return vapor, liquid
        dx[:nc] = np.clip(dx[:nc], -MAX_STEP_LN_K, MAX_STEP_LN_K)
        max_tp = MAX_STEP_LN_P if spec_t else MAX_STEP_LN_T
        dx[nc] = np.clip(dx[nc], -max_tp, max_tp)
        x_ln = x_ln + dx[:nc]
        x_tp = x_tp + dx[nc]
    raise ConvergenceFailure(kind, max_iter, np.append(x_ln, x_tp), res)
