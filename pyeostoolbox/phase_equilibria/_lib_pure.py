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
Pure substance vapor-liquid equilibrium.

At fixed temperature, Newton iteration on (ρ_l, ρ_v) with equal pressure and
chemical potential. For a pure substance dμ/dρ = (dp/dρ)/ρ, so

    J = | dp_l/dρ_l        -dp_v/dρ_v       |
        | dp_l/dρ_l / ρ_l  -dp_v/dρ_v / ρ_v |

At fixed pressure, Newton iteration on T using Clausius-Clapeyron,
d ln p/dT = Δs / (Δv p), with each iterate solved at fixed temperature.
"""

import logging
from typing import Optional, Tuple, Iterator

import numpy as np

from pyeostoolbox.classes import Contributions, DensityInitialization, IterationStatus
from pyeostoolbox.constants import R
from pyeostoolbox.errors import (ConvergenceFailure, IncompatibleComponents, SuperCritical, TrivialSolution,
                                 EosError)
from pyeostoolbox.shared_fns import SolverOptions, check_convergence, log_iter, log_result
from pyeostoolbox.state import State

logger = logging.getLogger(__name__)

MAX_ITER_PURE = 50
TOL_PURE = 1e-10
TOL_STEP = 1e-8  # Relative size of the Newton step that would follow a converged iterate
LOW_PRESSURE = 1.0  # Pa, used to locate the liquid branch
MAX_STEP_T = 0.1


def _check_pure(eos):
    if eos.components != 1:
        raise IncompatibleComponents(1, eos.components)


def _initial_densities(eos, t: float) -> Iterator[Tuple[float, float]]:
    """ Candidate (rho_v, rho_l) pairs, most reliable first"""
    n = np.ones(1)
    wilson = eos.wilson_parameters()
    if wilson is not None:
        tc, pc, omega = (float(a[0]) for a in wilson)
        p = pc * np.exp(5.373 * (1.0 + omega) * (1.0 - tc / t))
        try:
            liquid = State._new_npt(eos, t, p, n, DensityInitialization.LIQUID)
            vapor = State._new_npt(eos, t, p, n, DensityInitialization.VAPOR)
            if liquid._rho > vapor._rho * (1.0 + 1e-3):
                yield vapor._rho, liquid._rho
        except EosError as e:
            logger.debug("Wilson initialization failed at T = %.4f K: %s", t, e)

    try:
        liquid = State._new_npt(eos, t, LOW_PRESSURE, n, DensityInitialization.LIQUID)
        p = R * t * liquid._rho * np.exp(liquid._chemical_potential(Contributions.RESIDUAL)[0] / (R * t))
        vapor = State._new_npt(eos, t, p, n, DensityInitialization.VAPOR)
        if liquid._rho > vapor._rho * (1.0 + 1e-3):
            yield vapor._rho, liquid._rho
    except EosError as e:
        logger.debug("Low pressure liquid initialization failed at T = %.4f K: %s", t, e)

    from pyeostoolbox.critical_point import critical_point
    try:
        cp = critical_point(eos)
    except EosError as e:
        logger.debug("Critical point initialization failed: %s", e)
        return
    if t >= cp._t:
        raise SuperCritical(f"T = {t} K is above the critical temperature {cp._t:.4f} K")
    dr = 2.0 * np.sqrt(1.0 - t / cp._t)
    yield cp._rho * max(1.0 - dr, 1e-3), min(cp._rho * (1.0 + dr), 0.95 * eos.max_density(n))


def _newton_pure_t(eos, t: float, rho_v: float, rho_l: float, max_iter: int, tol: float, verbosity):
    n = np.ones(1)
    rt = R * t
    rho_max = eos.max_density(n)
    log_iter(verbosity, " iter |    residual    |    rho_v       |    rho_l")
    for it in range(1, max_iter + 1):
        vapor = State._new(eos, t, 1.0 / rho_v, n)
        liquid = State._new(eos, t, 1.0 / rho_l, n)
        p_v, p_l = vapor._pressure(), liquid._pressure()
        dp_v, dp_l = vapor._dp_drho(), liquid._dp_drho()
        mu_v, mu_l = vapor._chemical_potential()[0], liquid._chemical_potential()[0]
        f = np.array([p_l - p_v, mu_l - mu_v])
        res = max(abs(f[0]) / (rt * rho_l), abs(f[1]) / rt)
        log_iter(verbosity, " %4d | %14.8e | %14.8e | %14.8e", it, res, rho_v, rho_l)
        if abs(rho_l / rho_v - 1.0) < 1e-6:
            raise TrivialSolution(f"Vapor and liquid densities coincide at T = {t} K")
        jac = np.array([[dp_l, -dp_v],
                        [dp_l / rho_l, -dp_v / rho_v]])
        d_l, d_v = np.linalg.solve(jac, -f)
        scale = 1.0
        if rho_v + d_v <= 0:
            scale = min(scale, 0.5 * rho_v / -d_v)
        if rho_l + d_l >= rho_max:
            scale = min(scale, 0.5 * (rho_max - rho_l) / d_l)
        if rho_l + d_l <= 0:
            scale = min(scale, 0.5 * rho_l / -d_l)
        step = max(abs(d_v) / rho_v, abs(d_l) / rho_l)
        status = check_convergence(it, max_iter, res, step, tol, TOL_STEP)
        if status == IterationStatus.EXCEEDED:
            break
        if status == IterationStatus.CONVERGED:
            return vapor, liquid
        rho_v += scale * d_v
        rho_l += scale * d_l
    raise ConvergenceFailure('pure VLE (T)', max_iter, [rho_v, rho_l], res)


def pure_t(eos, t: float, initial: Optional[Tuple[State, State]] = None,
           options: SolverOptions = SolverOptions()) -> Tuple[State, State]:
    """ (vapor, liquid) of a pure substance at temperature t (K)"""
    _check_pure(eos)
    max_iter, tol, verbosity = options.unwrap_or(MAX_ITER_PURE, TOL_PURE)
    tc = eos.critical_temperature_estimate(np.ones(1))
    if tc is not None and t >= tc:
        raise SuperCritical(f"T = {t} K is above the critical temperature {tc} K")
    if initial is not None:
        seeds = iter([(initial[0]._rho, initial[1]._rho)])
    else:
        seeds = _initial_densities(eos, t)
    error = None
    for rho_v, rho_l in seeds:
        try:
            vapor, liquid = _newton_pure_t(eos, t, rho_v, rho_l, max_iter, tol, verbosity)
            log_result(verbosity, "Pure VLE at T = %.6f K: p = %.8e Pa", t, vapor._pressure())
            return vapor, liquid
        except (EosError, np.linalg.LinAlgError) as e:
            logger.debug("Pure VLE from (%.4e, %.4e) failed: %s", rho_v, rho_l, e)
            error = e
    if error is None:
        raise SuperCritical(f"No distinct vapor and liquid densities found at T = {t} K")
    raise error


def _initial_temperature(eos, p: float) -> float:
    wilson = eos.wilson_parameters()
    if wilson is not None:
        tc, pc, omega = (float(a[0]) for a in wilson)
        if p >= pc:
            raise SuperCritical(f"p = {p} Pa is above the critical pressure {pc} Pa")
        return tc / (1.0 - np.log(p / pc) / (5.373 * (1.0 + omega)))
    a, b = vapor_pressure_lines(eos)
    return float(b[0] / (a[0] - np.log(p)))


def pure_p(eos, p: float, initial: Optional[Tuple[State, State]] = None,
           options: SolverOptions = SolverOptions()) -> Tuple[State, State]:
    """ (vapor, liquid) of a pure substance at pressure p (Pa)"""
    _check_pure(eos)
    max_iter, tol, verbosity = options.unwrap_or(MAX_ITER_PURE, TOL_PURE)
    t = initial[0]._t if initial is not None else _initial_temperature(eos, p)
    vle = pure_t(eos, t, initial)
    for it in range(1, max_iter + 1):
        vapor, liquid = vle
        p_v = vapor._pressure()
        f = np.log(p_v / p)
        log_iter(verbosity, " %4d | %14.8e | T = %14.8f", it, abs(f), t)
        ds = vapor._molar_entropy() - liquid._molar_entropy()
        dv = 1.0 / vapor._rho - 1.0 / liquid._rho
        dt = -f / (ds / dv / p_v)
        status = check_convergence(it, max_iter, abs(f), abs(dt) / t, tol, TOL_STEP)
        if status == IterationStatus.EXCEEDED:
            break
        if status == IterationStatus.CONVERGED:
            log_result(verbosity, "Pure VLE at p = %.6e Pa: T = %.8f K", p, t)
            return vle
        dt = float(np.clip(dt, -MAX_STEP_T * t, MAX_STEP_T * t))
        for _ in range(10):
            try:
                vle = pure_t(eos, t + dt, vle)
                t = t + dt
                break
            except EosError as e:
                logger.debug("Pure VLE step to T = %.4f K failed (%s), halving", t + dt, e)
                dt *= 0.5
        else:
            raise ConvergenceFailure('pure VLE (p)', it, [t], abs(f))
    raise ConvergenceFailure('pure VLE (p)', max_iter, [t], abs(f))


def vapor_pressure_lines(eos) -> Tuple[np.ndarray, np.ndarray]:
    """
    Coefficients (A, B) of ln p_sat = A - B/T per component, from Wilson's
    correlation or, when the model has no critical data, from each component's
    critical point and vapor pressure at 0.7 Tc.
    """
    wilson = eos.wilson_parameters()
    if wilson is not None:
        tc, pc, omega = wilson
        b = 5.373 * (1.0 + omega) * tc
        return np.log(pc) + 5.373 * (1.0 + omega), b
    from pyeostoolbox.critical_point import critical_point
    a, b = [], []
    for i in range(eos.components):
        sub = eos.subset([i])
        cp = critical_point(sub)
        t1 = 0.7 * cp._t
        p1 = pure_t(sub, t1)[0]._pressure()
        bi = (np.log(cp._pressure()) - np.log(p1)) / (1.0 / t1 - 1.0 / cp._t)
        a.append(np.log(cp._pressure()) + bi / cp._t)
        b.append(bi)
    return np.array(a), np.array(b)
