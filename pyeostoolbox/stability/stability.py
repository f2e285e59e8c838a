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
Phase stability by tangent plane distance minimization (Michelsen, 1982).

For a bulk state z at (T, p), with d_i = ln z_i + ln φ_i(z), the modified
tangent plane distance of trial mole numbers W is

    tm(W) = 1 + Σ W_i (ln W_i + ln φ_i(W) - d_i - 1)

Each trial starts with a few successive substitution steps
W_i = exp(d_i - ln φ_i(W)) and switches to Newton iteration in
α_i = 2 √W_i, with Hessian

    H_ij = δ_ij (1 + F_i/2) + √(W_i W_j) ∂ln φ_i/∂n_j,    F_i = ln W_i + ln φ_i - d_i

A stationary point with tm < 0 proves the bulk state unstable.
"""

import logging
from typing import List

import numpy as np

from pyeostoolbox.classes import DensityInitialization, Contributions, IterationStatus
from pyeostoolbox.errors import EosError, StabilityInconclusive, ConvergenceFailure
from pyeostoolbox.shared_fns import SolverOptions, check_convergence, log_iter, log_result, wilson_k_values
from pyeostoolbox.state import State

logger = logging.getLogger(__name__)

MAX_ITER_TPD = 100
TOL_TPD = 1e-8
TOL_STEP = 1e-6
N_SUCCESSIVE_SUBSTITUTION = 4
MIN_TPD = -1e-8  # Trial phases need tm below this to count as unstable
SEED_TRACE = 1e-10


def _same_phase(a: State, b: State) -> bool:
    return np.max(np.abs(a._x - b._x)) < 1e-4 and abs(a._rho / b._rho - 1.0) < 1e-3


def tangent_plane_distance(state: State, trial: State) -> float:
    """ Σ w_i (ln w_i + ln φ_i(w) - ln z_i - ln φ_i(z)) of the normalized trial composition"""
    w, z = trial._x, state._x
    mask = w > 0
    if np.any(z[mask] <= 0):
        return np.inf
    d = np.log(z[mask]) + state._ln_phi()[mask]
    return float(np.sum(w[mask] * (np.log(w[mask]) + trial._ln_phi()[mask] - d)))


def _seeds(state: State, present: np.ndarray) -> List[np.ndarray]:
    z = state._x
    nc = z.size
    seeds = []
    for k in np.flatnonzero(present):
        w = np.where(present, SEED_TRACE, 0.0)
        w[k] = 1.0
        seeds.append(w / np.sum(w))
    wilson = state.eos.wilson_parameters()
    if wilson is not None and nc > 1:
        k = wilson_k_values(*wilson, state._t, state._pressure(Contributions.TOTAL))
        for w in (z * k, z / k):
            seeds.append(w / np.sum(w))
    return seeds


def _minimize_tpd(state: State, w0: np.ndarray, d: np.ndarray, present: np.ndarray,
                  max_iter: int, tol: float, verbosity):
    """ Stationary trial state reached from w0, None for a trivial solution"""
    eos, t, p = state.eos, state._t, state._pressure(Contributions.TOTAL)
    idx = np.flatnonzero(present)
    w = w0.copy()

    for _ in range(N_SUCCESSIVE_SUBSTITUTION):
        trial = State._new_npt(eos, t, p, w, DensityInitialization.NONE)
        if _same_phase(trial, state):
            return None
        w = np.zeros_like(w)
        w[idx] = np.exp(d[idx] - trial._ln_phi()[idx])

    for it in range(1, max_iter + 1):
        trial = State._new_npt(eos, t, p, w, DensityInitialization.NONE)
        ln_phi = trial._ln_phi()
        sw = np.sqrt(w[idx])
        f = np.log(w[idx]) + ln_phi[idx] - d[idx]
        g = sw * f
        res = np.max(np.abs(g))
        log_iter(verbosity, " %4d | %14.8e | tm = %14.8e", it, res, 1.0 + np.sum(w[idx] * (f - 1.0)))
        hess = np.diag(1.0 + 0.5 * f) + np.outer(sw, sw) * trial._dln_phi_dnj()[np.ix_(idx, idx)]
        try:
            np.linalg.cholesky(hess)
            alpha = 2.0 * sw
            dalpha = -np.linalg.solve(hess, g)
            neg = dalpha < 0
            scale = 1.0
            if np.any(neg):
                scale = min(1.0, 0.9 * np.min(alpha[neg] / -dalpha[neg]))
            alpha = alpha + scale * dalpha
            w_new = 0.25 * alpha ** 2
        except np.linalg.LinAlgError:
            # Hessian not positive definite, fall back to successive substitution
            w_new = np.exp(d[idx] - ln_phi[idx])
        step = np.max(np.abs(w_new - w[idx])) / np.sum(w[idx])
        status = check_convergence(it, max_iter, res, step, tol, TOL_STEP)
        if status == IterationStatus.EXCEEDED:
            break
        if status == IterationStatus.CONVERGED:
            if _same_phase(trial, state):
                return None
            return State._new_npt(eos, t, p, w / np.sum(w), trial._rho)
        w = np.zeros_like(w)
        w[idx] = w_new
    raise ConvergenceFailure('stability analysis', max_iter, w, res)


def stability_analysis(state: State, options: SolverOptions = SolverOptions()) -> List[State]:
    """
    Trial states with negative tangent plane distance to the given state, sorted
    by tangent plane distance. An empty list means the state is stable.

    Raises StabilityInconclusive when no trial phase converged.
    """
    max_iter, tol, verbosity = options.unwrap_or(MAX_ITER_TPD, TOL_TPD)
    z = state._x
    present = z > 0
    d = np.full(z.size, -np.inf)
    d[present] = np.log(z[present]) + state._ln_phi()[present]

    found, failures, seeds = [], [], _seeds(state, present)
    for i, w0 in enumerate(seeds):
        log_iter(verbosity, "Stability trial %d: w0 = %s", i, w0)
        try:
            trial = _minimize_tpd(state, w0, d, present, max_iter, tol, verbosity)
        except EosError as e:
            logger.debug("Stability trial %d failed: %s", i, e)
            failures.append(e)
            continue
        if trial is None:
            continue
        tpd = tangent_plane_distance(state, trial)
        if tpd < MIN_TPD and not any(_same_phase(trial, s) for s, _ in found):
            found.append((trial, tpd))

    if len(failures) == len(seeds):
        raise StabilityInconclusive(f"All {len(seeds)} stability trials failed; last error: {failures[-1]}")
    found.sort(key=lambda x: x[1])
    log_result(verbosity, "Stability analysis: %d unstable trial phase(s), tpd = %s", len(found), [f[1] for f in found])
    return [s for s, _ in found]


def is_stable(state: State, options: SolverOptions = SolverOptions()) -> bool:
    return len(stability_analysis(state, options)) == 0
