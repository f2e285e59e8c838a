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
Critical points.

Pure substances: Newton iteration in (T, ρ) on

    (∂p/∂ρ)/(RT) = 0,    ρ (∂²p/∂ρ²)/(RT) = 0

Mixtures: Heidemann-Khalil-Michelsen criteria. With
Q_ij = √(n_i n_j) ∂²(A/RT)/∂n_i∂n_j, the smallest eigenvalue λ of Q and the
cubic form C = d³(A/RT)/ds³ along n + s·u√n (u the eigenvector of λ) both
vanish at the critical point.

Jacobian columns come from one evaluation per unknown with that unknown
carried as a Dual; the second and third order derivatives inside are
HyperDual and Dual3 nested over it.
"""

import logging
from typing import Optional, List

import numpy as np

from pyeostoolbox.classes import Contributions, IterationStatus
from pyeostoolbox.constants import R
from pyeostoolbox.dual import Dual, HyperDual, Dual3, sqrt, dsum, real_part
from pyeostoolbox.eos import StateHD
from pyeostoolbox.errors import ConvergenceFailure, IncompatibleComponents, EosError, InvalidState
from pyeostoolbox.shared_fns import SolverOptions, check_convergence, log_iter, log_result
from pyeostoolbox.state import State
from pyeostoolbox.units import to_si, is_temperature, KELVIN, PASCAL, MOL

logger = logging.getLogger(__name__)

MAX_ITER_CRIT = 50
TOL_CRIT = 1e-8
TRIAL_TEMPERATURES = [300.0, 700.0, 500.0]
RHO_INIT = 0.3  # Fraction of maximum density used as density seed
MAX_STEP_T = 0.25
MAX_STEP_RHO = 0.03
MIN_RHO = 1e-4
MAX_STEP_X = 0.05


def _lift(x):
    # float or array as a constant Dual
    return Dual(x, np.zeros_like(x) if np.ndim(x) else 0.0)


def _zeros_like(n):
    return np.zeros(np.shape(real_part(n)))


# =============================================================================
# Residual functions, each returning Dual values along one direction
# =============================================================================
def _pure_conditions(eos, td: Dual, rd: Dual, n: np.ndarray):
    """ (∂p/∂ρ)/(RT) and ρ(∂²p/∂ρ²)/(RT) for a pure substance"""
    ntot = float(np.sum(n))
    vd = ntot / rd
    zero = np.zeros_like(n)
    t3 = Dual3(td, 0.0, 0.0, 0.0)
    v3 = Dual3(vd, 1.0, 0.0, 0.0)
    n3 = Dual3(_lift(n), zero, zero, zero)
    a = R * t3 * eos.helmholtz_energy(StateHD(t3, v3, n3), Contributions.TOTAL)
    dp_dv = -a.v2
    d2p_dv2 = -a.v3
    dp_drho = -vd * vd / ntot * dp_dv
    d2p_drho2 = vd ** 4 / ntot ** 2 * d2p_dv2 + 2.0 * vd ** 3 / ntot ** 2 * dp_dv
    rt = R * td
    return dp_drho / rt, rd * d2p_drho2 / rt


def _hkm_conditions(eos, td: Dual, rd: Dual, nd: Dual):
    """ Smallest eigenvalue of Q and the cubic form along its eigenvector"""
    nc = eos.components
    ntot = dsum(nd)
    vd = ntot / rd
    zero = _zeros_like(nd)
    sqn = sqrt(nd)

    q_re = np.zeros((nc, nc))
    q_eps = np.zeros((nc, nc))
    for i in range(nc):
        for j in range(i, nc):
            ei, ej = zero.copy(), zero.copy()
            ei[i] = 1.0
            ej[j] = 1.0
            th = HyperDual(td, 0.0, 0.0, 0.0)
            vh = HyperDual(vd, 0.0, 0.0, 0.0)
            nh = HyperDual(nd, ei, ej, zero)
            d2 = eos.helmholtz_energy(StateHD(th, vh, nh), Contributions.RESIDUAL).eps1eps2
            q = sqn[i] * sqn[j] * d2 + (1.0 if i == j else 0.0)
            q_re[i, j] = q_re[j, i] = q.re
            q_eps[i, j] = q_eps[j, i] = q.eps

    vals, vecs = np.linalg.eigh(q_re)
    u0 = vecs[:, 0]
    lam = Dual(vals[0], u0 @ q_eps @ u0)
    du = np.zeros(nc)
    for k in range(1, nc):
        gap = vals[0] - vals[k]
        if abs(gap) > 1e-14:
            du += (vecs[:, k] @ q_eps @ u0) / gap * vecs[:, k]
    s = Dual(u0, du) * sqn

    t3 = Dual3(td, 0.0, 0.0, 0.0)
    v3 = Dual3(vd, 0.0, 0.0, 0.0)
    n3 = Dual3(nd, s, zero, zero)
    c_res = eos.helmholtz_energy(StateHD(t3, v3, n3), Contributions.RESIDUAL).v3
    c = c_res - dsum(s * s * s / (nd * nd))
    return lam, c


def _conditions(eos, t: float, rho: float, n, direction: str, dn=None):
    """ Critical conditions with derivatives along 'T', 'rho' or 'x' (composition change dn)"""
    td = Dual(t, 1.0 if direction == 'T' else 0.0)
    rd = Dual(rho, 1.0 if direction == 'rho' else 0.0)
    if eos.components == 1:
        return _pure_conditions(eos, td, rd, n)
    nd = Dual(n, dn if direction == 'x' else np.zeros_like(n))
    return _hkm_conditions(eos, td, rd, nd)


def _limit_step(t, rho, dt, drho, rho_max):
    dt = float(np.clip(dt, -MAX_STEP_T * t, MAX_STEP_T * t))
    drho = float(np.clip(drho, -MAX_STEP_RHO * rho_max, MAX_STEP_RHO * rho_max))
    rho_new = min(max(rho + drho, MIN_RHO * rho_max), (1.0 - 1e-6) * rho_max)
    return t + dt, rho_new


# =============================================================================
# Critical point at fixed composition
# =============================================================================
def _critical_point_fixed(eos, n: np.ndarray, t: float, max_iter: int, tol: float, verbosity) -> State:
    rho_max = eos.max_density(n)
    rho = RHO_INIT * rho_max
    log_iter(verbosity, " iter |    residual    |  temperature   |    density")
    for it in range(1, max_iter + 1):
        f_t = _conditions(eos, t, rho, n, 'T')
        f_r = _conditions(eos, t, rho, n, 'rho')
        res = np.array([f_t[0].re, f_t[1].re])
        jac = np.array([[f_t[0].eps, f_r[0].eps],
                        [f_t[1].eps, f_r[1].eps]])
        if not (np.all(np.isfinite(res)) and np.all(np.isfinite(jac))):
            raise ConvergenceFailure('critical point', it, [t, rho], np.inf)
        dt, drho = -np.linalg.solve(jac, res)
        t_new, rho_new = _limit_step(t, rho, dt, drho, rho_max)
        step = max(abs(t_new - t) / t, abs(rho_new - rho) / rho)
        t, rho = t_new, rho_new
        log_iter(verbosity, " %4d | %14.8e | %14.8f | %14.8e", it, np.max(np.abs(res)), t, rho)
        status = check_convergence(it, max_iter, float(np.max(np.abs(res))), step, tol)
        if status == IterationStatus.EXCEEDED:
            break
        if status == IterationStatus.CONVERGED:
            log_result(verbosity, "Critical point converged in %d steps: T = %.8f K, rho = %.8e mol/m³", it, t, rho)
            return State._new(eos, t, np.sum(n) / rho, n)
    raise ConvergenceFailure('critical point', max_iter, [t, rho], float(np.max(np.abs(res))))


def critical_point(eos, moles=None, initial_temperature=None, options: SolverOptions = SolverOptions()) -> State:
    """
    Critical point of a pure substance or of a mixture at fixed composition.

    Args:
        eos: EquationOfState
        moles: Mole number quantity array (may be omitted for pure substances)
        initial_temperature: Optional temperature quantity used as starting value.
                             Otherwise the model estimate followed by 300, 700 and 500 K are tried
    """
    max_iter, tol, verbosity = options.unwrap_or(MAX_ITER_CRIT, TOL_CRIT)
    n = eos.validate_moles(None if moles is None else to_si(moles, MOL, 'moles'))
    if initial_temperature is not None:
        trials = [to_si(initial_temperature, KELVIN, 'initial_temperature')]
    else:
        estimate = eos.critical_temperature_estimate(n)
        trials = ([] if estimate is None else [estimate]) + TRIAL_TEMPERATURES
    error = None
    for t0 in trials:
        try:
            return _critical_point_fixed(eos, n, t0, max_iter, tol, verbosity)
        except (EosError, np.linalg.LinAlgError) as e:
            logger.debug("Critical point from T = %.2f K failed: %s", t0, e)
            error = e
    if isinstance(error, ConvergenceFailure):
        raise error
    raise ConvergenceFailure('critical point', max_iter, None, None,
                             message=f"Critical point did not converge from any starting temperature: {error}")


def critical_point_pure(eos, initial_temperature=None, options: SolverOptions = SolverOptions()) -> List[State]:
    """ Critical point of every pure component, each bound to the single component model"""
    return [critical_point(eos.subset([i]), None, initial_temperature, options) for i in range(eos.components)]


# =============================================================================
# Binary critical points at fixed temperature or pressure
# =============================================================================
def critical_point_binary(eos, temperature_or_pressure, initial_temperature=None,
                          initial_molefracs=None, options: SolverOptions = SolverOptions()) -> State:
    """
    Critical point of a binary mixture at given temperature or pressure.
    Composition is an unknown of the Newton iteration.

    Args:
        eos: Binary EquationOfState
        temperature_or_pressure: Temperature or pressure quantity
        initial_temperature: Optional temperature quantity (pressure specification only)
        initial_molefracs: Optional mole fractions used as starting composition
    """
    if eos.components != 2:
        raise IncompatibleComponents(2, eos.components)
    max_iter, tol, verbosity = options.unwrap_or(MAX_ITER_CRIT, TOL_CRIT)
    t_spec = is_temperature(temperature_or_pressure)

    pure = critical_point_pure(eos, None, options)
    tc = np.array([s._t for s in pure])
    pc = np.array([s._pressure() for s in pure])
    rhoc = np.array([s._rho for s in pure])
    if t_spec:
        t = to_si(temperature_or_pressure, KELVIN, 'temperature')
        spec = tc
        target = t
    else:
        p = to_si(temperature_or_pressure, PASCAL, 'pressure')
        spec = pc
        target = p
    if initial_molefracs is not None:
        x = float(np.asarray(initial_molefracs, dtype=float)[0] / np.sum(initial_molefracs))
    elif (spec[0] - target) * (spec[1] - target) < 0:
        x = (target - spec[1]) / (spec[0] - spec[1])
    else:
        x = 0.5
    x = min(max(x, 0.01), 0.99)
    rho = x * rhoc[0] + (1.0 - x) * rhoc[1]
    if not t_spec:
        t = x * tc[0] + (1.0 - x) * tc[1]
        if initial_temperature is not None:
            t = to_si(initial_temperature, KELVIN, 'initial_temperature')
    dn = np.array([1.0, -1.0])

    log_iter(verbosity, " iter |    residual    |  temperature   |    density     |     x0")
    for it in range(1, max_iter + 1):
        n = np.array([x, 1.0 - x])
        rho_max = eos.max_density(n)
        f_x = _conditions(eos, t, rho, n, 'x', dn)
        f_r = _conditions(eos, t, rho, n, 'rho')
        if t_spec:
            res = np.array([f_x[0].re, f_x[1].re])
            jac = np.array([[f_x[0].eps, f_r[0].eps],
                            [f_x[1].eps, f_r[1].eps]])
            dx, drho = -np.linalg.solve(jac, res)
            dt = 0.0
        else:
            f_t = _conditions(eos, t, rho, n, 'T')
            state = State._new(eos, t, 1.0 / rho, n)
            dp_dn = state._dp_dni()
            p_calc = state._pressure()
            res = np.array([f_t[0].re, f_t[1].re, (p_calc - p) / p])
            jac = np.array([[f_t[0].eps, f_r[0].eps, f_x[0].eps],
                            [f_t[1].eps, f_r[1].eps, f_x[1].eps],
                            [state._dp_dt() / p, state._dp_drho() / p, (dp_dn[0] - dp_dn[1]) / p]])
            dt, drho, dx = -np.linalg.solve(jac, res)
        dx = float(np.clip(dx, -MAX_STEP_X, MAX_STEP_X))
        x_new = min(max(x + dx, 1e-10), 1.0 - 1e-10)
        t_new, rho_new = _limit_step(t, rho, dt, drho, rho_max)
        step = max(abs(t_new - t) / t, abs(rho_new - rho) / rho, abs(x_new - x))
        t, rho, x = t_new, rho_new, x_new
        log_iter(verbosity, " %4d | %14.8e | %14.8f | %14.8e | %.8f", it, np.max(np.abs(res)), t, rho, x)
        status = check_convergence(it, max_iter, float(np.max(np.abs(res))), step, tol)
        if status == IterationStatus.EXCEEDED:
            break
        if status == IterationStatus.CONVERGED:
            n = np.array([x, 1.0 - x])
            log_result(verbosity, "Binary critical point converged in %d steps: T = %.8f K, x0 = %.8f", it, t, x)
            return State._new(eos, t, 1.0 / rho, n)
    raise ConvergenceFailure('binary critical point', max_iter, [t, rho, x], float(np.max(np.abs(res))))
