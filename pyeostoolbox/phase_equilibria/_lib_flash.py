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
Isothermal-isobaric flash.

The feed is first tested for stability; the most unstable trial phase gives
the initial K-values. A few successive substitution steps with Rachford-Rice
follow, then Newton iteration on the vapor mole numbers v_i with

    g_i  = ln(v_i/V) + ln φ_i^V - ln(l_i/L) - ln φ_i^L,    l_i = z_i - v_i
    J_ij = δ_ij/v_i - 1/V + ∂ln φ_i^V/∂n_j + δ_ij/l_i - 1/L + ∂ln φ_i^L/∂n_j
"""

import logging
from typing import Optional, Tuple

import numpy as np

from pyeostoolbox.classes import DensityInitialization, IterationStatus
from pyeostoolbox.errors import ConvergenceFailure, NoPhaseSplit, TrivialSolution
from pyeostoolbox.shared_fns import SolverOptions, check_convergence, log_iter, log_result, solve_rachford_rice
from pyeostoolbox.state import State

logger = logging.getLogger(__name__)

MAX_ITER_FLASH = 50
TOL_FLASH = 1e-10
MAX_ITER_SS = 100
TOL_SS = 1e-5  # Residual at which successive substitution hands over to Newton
TOL_TRIVIAL = 1e-6
TOL_STEP = 1e-8


def _initial_k(eos, t: float, p: float, z: np.ndarray, options: SolverOptions):
    from pyeostoolbox.stability import stability_analysis
    feed = State._new_npt(eos, t, p, z, DensityInitialization.NONE)
    trials = stability_analysis(feed, options)
    if not trials:
        raise NoPhaseSplit(f"Feed {z / np.sum(z)} is stable at T = {t} K, p = {p} Pa")
    trial = trials[0]
    vapor, liquid = (trial, feed) if trial._rho < feed._rho else (feed, trial)
    return np.exp(liquid._ln_phi() - vapor._ln_phi()), vapor._rho, liquid._rho


def tp_flash(eos, t: float, p: float, z: np.ndarray, initial: Optional[Tuple[State, State]] = None,
             options: SolverOptions = SolverOptions()) -> Tuple[State, State]:
    """ (vapor, liquid) states whose mole numbers add up to the feed z"""
    max_iter, tol, verbosity = options.unwrap_or(MAX_ITER_FLASH, TOL_FLASH)
    z = eos.validate_moles(z)
    idx = np.flatnonzero(z > 0)
    if initial is not None:
        vapor, liquid = initial
        k = np.exp(liquid._ln_phi() - vapor._ln_phi())
        rho_v, rho_l = vapor._rho, liquid._rho
    else:
        k, rho_v, rho_l = _initial_k(eos, t, p, z, SolverOptions(verbosity=verbosity))

    # Successive substitution
    for it in range(1, MAX_ITER_SS + 1):
        beta, x, y = solve_rachford_rice(z[idx], k[idx])
        xf, yf = np.zeros_like(z), np.zeros_like(z)
        xf[idx], yf[idx] = x, y
        vapor = State._new_npt(eos, t, p, yf, rho_v)
        liquid = State._new_npt(eos, t, p, xf, rho_l)
        rho_v, rho_l = vapor._rho, liquid._rho
        ln_phi_v, ln_phi_l = vapor._ln_phi(), liquid._ln_phi()
        g = np.log(y) + ln_phi_v[idx] - np.log(x) - ln_phi_l[idx]
        k_new = np.exp(ln_phi_l - ln_phi_v)
        step = np.max(np.abs(np.log(k_new[idx] / k[idx])))
        k = k_new
        res = np.max(np.abs(g))
        log_iter(verbosity, " SS %4d | %14.8e | beta = %.8f", it, res, beta)
        if np.max(np.abs(np.log(k[idx]))) < TOL_TRIVIAL:
            raise TrivialSolution(f"Flash at T = {t} K, p = {p} Pa converged to the trivial solution")
        if check_convergence(it, MAX_ITER_SS, res, step, TOL_SS) != IterationStatus.CONTINUE:
            break

    beta, x, y = solve_rachford_rice(z[idx], k[idx])
    if not 0.0 < beta < 1.0:
        raise NoPhaseSplit(f"Rachford-Rice gives a single phase (beta = {beta}) at T = {t} K, p = {p} Pa")

    # Newton iteration on vapor mole numbers
    ntot = np.sum(z)
    v = np.zeros_like(z)
    v[idx] = beta * ntot * y
    for it in range(1, max_iter + 1):
        l = z - v
        vapor = State._new_npt(eos, t, p, v, rho_v)
        liquid = State._new_npt(eos, t, p, l, rho_l)
        rho_v, rho_l = vapor._rho, liquid._rho
        vi, li = v[idx], l[idx]
        nv, nl = np.sum(vi), np.sum(li)
        g = np.log(vi / nv) + vapor._ln_phi()[idx] - np.log(li / nl) - liquid._ln_phi()[idx]
        res = np.max(np.abs(g))
        log_iter(verbosity, " NR %4d | %14.8e | beta = %.8f", it, res, nv / ntot)
        jac = (np.diag(1.0 / vi) - 1.0 / nv + vapor._dln_phi_dnj()[np.ix_(idx, idx)]
               + np.diag(1.0 / li) - 1.0 / nl + liquid._dln_phi_dnj()[np.ix_(idx, idx)])
        dv = np.linalg.solve(jac, -g)
        status = check_convergence(it, max_iter, res, np.max(np.abs(dv)) / nv, tol, TOL_STEP)
        if status == IterationStatus.EXCEEDED:
            break
        if status == IterationStatus.CONVERGED:
            if abs(rho_v / rho_l - 1.0) < TOL_TRIVIAL and np.max(np.abs(vapor._x - liquid._x)) < TOL_TRIVIAL:
                raise TrivialSolution(f"Flash at T = {t} K, p = {p} Pa converged to the trivial solution")
            log_result(verbosity, "tp-flash converged in %d Newton steps: beta = %.8f", it, nv / ntot)
            return vapor, liquid
        scale = 1.0
        neg, pos = dv < 0, dv > 0
        if np.any(neg):
            scale = min(scale, 0.9 * np.min(vi[neg] / -dv[neg]))
        if np.any(pos):
            scale = min(scale, 0.9 * np.min(li[pos] / dv[pos]))
        v[idx] = vi + scale * dv
    raise ConvergenceFailure('tp-flash', max_iter, v, res)
