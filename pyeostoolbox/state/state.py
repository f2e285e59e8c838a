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
Thermodynamic state (T, V, n) bound to an equation of state.

Every property is a combination of partial derivatives of the Helmholtz
energy A(T, V, n) = RT · (A/RT), obtained with dual numbers:

    first derivatives            Dual
    second (mixed) derivatives   HyperDual
    third derivatives            Dual3

Derivatives are cached per state, keyed by the requested variables and the
contributions. Public accessors return pint quantities in SI units.
"""

import logging
from typing import Union, Optional, Callable

import numpy as np
from tabulate import tabulate

from pyeostoolbox.classes import Contributions, DensityInitialization, IterationStatus
from pyeostoolbox.constants import R, T0, P0
from pyeostoolbox.dual import Dual, HyperDual, Dual3, log
from pyeostoolbox.eos import StateHD
from pyeostoolbox.errors import InvalidState, ConvergenceFailure, EosError
from pyeostoolbox.shared_fns import SolverOptions, check_convergence, log_iter, log_result, convert_to_numpy
from pyeostoolbox.units import (ureg, to_si, KELVIN, PASCAL, CUBIC_METER, MOL, MOL_PER_M3, J, J_PER_MOL, J_PER_K,
                                J_PER_MOL_K, KG, KG_PER_MOL)
from pyeostoolbox.validate import validate_methods
from pyeostoolbox.state._lib_density import solve_density

logger = logging.getLogger(__name__)

TOTAL = Contributions.TOTAL
RESIDUAL = Contributions.RESIDUAL
IDEAL_GAS = Contributions.IDEAL_GAS

MAX_ITER_OUTER = 50
TOL_OUTER = 1e-10


def _contributions(contributions) -> Contributions:
    return validate_methods(['contributions'], [contributions])


def _canonical(variables) -> tuple:
    return tuple(sorted(variables, key=str))


class State:
    """
    Thermodynamic state.

    Args:
        eos: EquationOfState
        temperature: Temperature quantity
        volume: Volume quantity
        moles: Mole number quantity array. May be omitted for pure substances (1 mol)
    """

    def __init__(self, eos, temperature, volume, moles=None):
        t = to_si(temperature, KELVIN, 'temperature')
        v = to_si(volume, CUBIC_METER, 'volume')
        n = None if moles is None else to_si(moles, MOL, 'moles')
        self._init(eos, t, v, n)

    @classmethod
    def _new(cls, eos, t: float, v: float, n):
        obj = cls.__new__(cls)
        obj._init(eos, t, v, n)
        return obj

    def _init(self, eos, t, v, n):
        if not (np.isfinite(t) and t > 0):
            raise InvalidState(f"Temperature must be positive and finite, got {t} K")
        if not (np.isfinite(v) and v > 0):
            raise InvalidState(f"Volume must be positive and finite, got {v} m³")
        n = eos.validate_moles(n).copy()
        n.flags.writeable = False
        self.eos = eos
        self._t = float(t)
        self._v = float(v)
        self._n = n
        self._ntot = float(np.sum(n))
        self._rho = self._ntot / self._v
        self._x = n / self._ntot
        self._cache = {}

    # Defining variables -----------------------------------------------------
    @property
    def temperature(self):
        return self._t * KELVIN

    @property
    def volume(self):
        return self._v * CUBIC_METER

    @property
    def moles(self):
        return self._n * MOL

    @property
    def total_moles(self):
        return self._ntot * MOL

    @property
    def density(self):
        return self._rho * MOL_PER_M3

    @property
    def partial_density(self):
        return self._n / self._v * MOL_PER_M3

    @property
    def molefracs(self) -> np.ndarray:
        return self._x.copy()

    # Derivative engine ------------------------------------------------------
    def _helmholtz(self, t, v, n, which):
        shd = StateHD(t, v, n)
        if isinstance(which, Contributions):
            beta_a = self.eos.helmholtz_energy(shd, which)
        else:
            beta_a = which.helmholtz_energy(shd)
        return R * t * beta_a

    def _seeds(self, cls, slots):
        nc = self.eos.components
        t_c, v_c, n_c = [self._t], [self._v], [np.array(self._n)]
        for var in slots:
            t_c.append(1.0 if var == 'T' else 0.0)
            v_c.append(1.0 if var == 'V' else 0.0)
            e = np.zeros(nc)
            if not isinstance(var, str):
                e[var] = 1.0
            n_c.append(e)
        while len(t_c) < len(cls.__slots__):
            t_c.append(0.0)
            v_c.append(0.0)
            n_c.append(np.zeros(nc))
        return cls(*t_c), cls(*v_c), cls(*n_c)

    def _derivative(self, variables, which=TOTAL) -> float:
        """ Partial derivative of A (J) with respect to the listed variables ('T', 'V' or component index)"""
        key = (_canonical(variables), which)
        if key not in self._cache:
            self._evaluate(key[0], which)
        return self._cache[key]

    def _evaluate(self, variables, which):
        cache = self._cache
        if len(variables) == 0:
            cache[((), which)] = float(self._helmholtz(self._t, self._v, self._n, which))
        elif len(variables) == 1:
            a = self._helmholtz(*self._seeds(Dual, variables), which)
            cache[((), which)] = float(a.re)
            cache[(variables, which)] = float(a.eps)
        elif len(variables) == 2:
            x, y = variables
            a = self._helmholtz(*self._seeds(HyperDual, variables), which)
            cache[((), which)] = float(a.re)
            cache[((x,), which)] = float(a.eps1)
            cache[((y,), which)] = float(a.eps2)
            cache[(variables, which)] = float(a.eps1eps2)
        elif len(variables) == 3 and variables[0] == variables[1] == variables[2]:
            x = variables[0]
            a = self._helmholtz(*self._seeds(Dual3, [x]), which)
            cache[((), which)] = float(a.re)
            cache[((x,), which)] = float(a.v1)
            cache[((x, x), which)] = float(a.v2)
            cache[((x, x, x), which)] = float(a.v3)
        else:
            raise ValueError(f"Unsupported derivative request {variables}")

    def _component_vector(self, fn) -> np.ndarray:
        return np.array([fn(i) for i in range(self.eos.components)])

    # Private float properties -----------------------------------------------
    def _helmholtz_energy(self, c=TOTAL) -> float:
        return self._derivative((), c)

    def _entropy(self, c=TOTAL) -> float:
        return -self._derivative(('T',), c)

    def _ds_dt(self, c=TOTAL) -> float:
        return -self._derivative(('T', 'T'), c)

    def _pressure(self, c=TOTAL) -> float:
        return -self._derivative(('V',), c)

    def _compressibility(self, c=TOTAL) -> float:
        return self._pressure(c) * self._v / (self._ntot * R * self._t)

    def _dp_dv(self, c=TOTAL) -> float:
        return -self._derivative(('V', 'V'), c)

    def _dp_drho(self, c=TOTAL) -> float:
        return -self._v ** 2 / self._ntot * self._dp_dv(c)

    def _dp_dt(self, c=TOTAL) -> float:
        return -self._derivative(('T', 'V'), c)

    def _dp_dni(self, c=TOTAL) -> np.ndarray:
        return self._component_vector(lambda i: -self._derivative(('V', i), c))

    def _d2p_dv2(self, c=TOTAL) -> float:
        return -self._derivative(('V', 'V', 'V'), c)

    def _d2p_drho2(self, c=TOTAL) -> float:
        v, n = self._v, self._ntot
        return v ** 4 / n ** 2 * self._d2p_dv2(c) + 2.0 * v ** 3 / n ** 2 * self._dp_dv(c)

    def _chemical_potential(self, c=TOTAL) -> np.ndarray:
        return self._component_vector(lambda i: self._derivative((i,), c))

    def _dmu_dt(self, c=TOTAL) -> np.ndarray:
        return self._component_vector(lambda i: self._derivative(('T', i), c))

    def _dmu_dni(self, c=TOTAL) -> np.ndarray:
        nc = self.eos.components
        m = np.zeros((nc, nc))
        for i in range(nc):
            for j in range(i, nc):
                m[i, j] = m[j, i] = self._derivative((i, j), c)
        return m

    def _molar_volume(self, c=TOTAL) -> np.ndarray:
        return -self._dp_dni(c) / self._dp_dv(TOTAL)

    def _ln_phi(self) -> np.ndarray:
        mu_res = self._chemical_potential(RESIDUAL)
        return mu_res / (R * self._t) - log(self._compressibility(TOTAL))

    def _dln_phi_dt(self) -> np.ndarray:
        t = self._t
        rt = R * t
        mu_res = self._chemical_potential(RESIDUAL)
        dmu_res_dt = self._dmu_dt(RESIDUAL)
        return (dmu_res_dt - mu_res / t) / rt \
            + self._dp_dni(TOTAL) * self._dp_dt(TOTAL) / (self._dp_dv(TOTAL) * rt) + 1.0 / t

    def _dln_phi_dp(self) -> np.ndarray:
        return self._molar_volume(TOTAL) / (R * self._t) - 1.0 / self._pressure(TOTAL)

    def _dln_phi_dnj(self) -> np.ndarray:
        rt = R * self._t
        dp_dn = self._dp_dni(TOTAL)
        return self._dmu_dni(RESIDUAL) / rt + 1.0 / self._ntot + np.outer(dp_dn, dp_dn) / (rt * self._dp_dv(TOTAL))

    def _c_v(self, c=TOTAL) -> float:
        return self._t * self._ds_dt(c) / self._ntot

    def _dc_v_dt(self, c=TOTAL) -> float:
        d3a = self._derivative(('T', 'T', 'T'), c)
        return (self._ds_dt(c) - self._t * d3a) / self._ntot

    def _c_p(self, c=TOTAL) -> float:
        if c == RESIDUAL:
            return self._c_p(TOTAL) - self._c_p(IDEAL_GAS)
        return self._c_v(c) + self._t * self._dp_dt(c) ** 2 / (-self._dp_dv(c)) / self._ntot

    def _enthalpy(self, c=TOTAL) -> float:
        return self._helmholtz_energy(c) + self._t * self._entropy(c) + self._pressure(c) * self._v

    def _internal_energy(self, c=TOTAL) -> float:
        return self._helmholtz_energy(c) + self._t * self._entropy(c)

    def _gibbs_energy(self, c=TOTAL) -> float:
        return self._helmholtz_energy(c) + self._pressure(c) * self._v

    def _molar_enthalpy(self, c=TOTAL) -> float:
        return self._enthalpy(c) / self._ntot

    def _molar_entropy(self, c=TOTAL) -> float:
        return self._entropy(c) / self._ntot

    def _molar_gibbs_energy(self, c=TOTAL) -> float:
        return self._gibbs_energy(c) / self._ntot

    def _partial_molar_entropy(self, c=TOTAL) -> np.ndarray:
        return -(self._dmu_dt(c) + self._dp_dni(c) * self._dp_dt(TOTAL) / self._dp_dv(TOTAL))

    def _isothermal_compressibility(self) -> float:
        return -1.0 / (self._v * self._dp_dv(TOTAL))

    def _isentropic_compressibility(self) -> float:
        return self._isothermal_compressibility() * self._c_v(TOTAL) / self._c_p(TOTAL)

    def _total_molar_weight(self) -> float:
        return float(self._x @ self.eos.molar_weight)

    # Public properties ------------------------------------------------------
    def pressure(self, contributions: Union[str, Contributions] = TOTAL):
        return self._pressure(_contributions(contributions)) * PASCAL

    def compressibility(self, contributions: Union[str, Contributions] = TOTAL) -> float:
        return self._compressibility(_contributions(contributions))

    def dp_dv(self, contributions=TOTAL):
        return self._dp_dv(_contributions(contributions)) * PASCAL / CUBIC_METER

    def dp_drho(self, contributions=TOTAL):
        return self._dp_drho(_contributions(contributions)) * PASCAL / MOL_PER_M3

    def dp_dt(self, contributions=TOTAL):
        return self._dp_dt(_contributions(contributions)) * PASCAL / KELVIN

    def dp_dni(self, contributions=TOTAL):
        return self._dp_dni(_contributions(contributions)) * PASCAL / MOL

    def d2p_dv2(self, contributions=TOTAL):
        return self._d2p_dv2(_contributions(contributions)) * PASCAL / CUBIC_METER ** 2

    def d2p_drho2(self, contributions=TOTAL):
        return self._d2p_drho2(_contributions(contributions)) * PASCAL / MOL_PER_M3 ** 2

    def molar_volume(self, contributions=TOTAL):
        """ Partial molar volumes"""
        return self._molar_volume(_contributions(contributions)) * CUBIC_METER / MOL

    def chemical_potential(self, contributions=TOTAL):
        return self._chemical_potential(_contributions(contributions)) * J_PER_MOL

    def dmu_dt(self, contributions=TOTAL):
        return self._dmu_dt(_contributions(contributions)) * J_PER_MOL / KELVIN

    def dmu_dni(self, contributions=TOTAL):
        return self._dmu_dni(_contributions(contributions)) * J_PER_MOL / MOL

    def ln_phi(self) -> np.ndarray:
        """ Logarithm of the fugacity coefficients"""
        return self._ln_phi()

    def dln_phi_dt(self):
        return self._dln_phi_dt() / KELVIN

    def dln_phi_dp(self):
        return self._dln_phi_dp() / PASCAL

    def dln_phi_dnj(self):
        return self._dln_phi_dnj() / MOL

    def thermodynamic_factor(self) -> np.ndarray:
        """ Γ_ij = δ_ij + x_i N (∂lnφ_i/∂n_j - ∂lnφ_i/∂n_nc) for i, j < nc"""
        nc = self.eos.components
        d = self._dln_phi_dnj() * self._ntot
        g = np.eye(nc - 1) + self._x[:-1, None] * (d[:-1, :-1] - d[:-1, -1:])
        return g

    def entropy(self, contributions=TOTAL):
        return self._entropy(_contributions(contributions)) * J_PER_K

    def ds_dt(self, contributions=TOTAL):
        return self._ds_dt(_contributions(contributions)) * J_PER_K / KELVIN

    def molar_entropy(self, contributions=TOTAL):
        return self._molar_entropy(_contributions(contributions)) * J_PER_MOL_K

    def partial_molar_entropy(self, contributions=TOTAL):
        return self._partial_molar_entropy(_contributions(contributions)) * J_PER_MOL_K

    def enthalpy(self, contributions=TOTAL):
        return self._enthalpy(_contributions(contributions)) * J

    def molar_enthalpy(self, contributions=TOTAL):
        return self._molar_enthalpy(_contributions(contributions)) * J_PER_MOL

    def partial_molar_enthalpy(self, contributions=TOTAL):
        c = _contributions(contributions)
        return (self._chemical_potential(c) + self._t * self._partial_molar_entropy(c)) * J_PER_MOL

    def helmholtz_energy(self, contributions=TOTAL):
        return self._helmholtz_energy(_contributions(contributions)) * J

    def molar_helmholtz_energy(self, contributions=TOTAL):
        return self._helmholtz_energy(_contributions(contributions)) / self._ntot * J_PER_MOL

    def internal_energy(self, contributions=TOTAL):
        return self._internal_energy(_contributions(contributions)) * J

    def molar_internal_energy(self, contributions=TOTAL):
        return self._internal_energy(_contributions(contributions)) / self._ntot * J_PER_MOL

    def gibbs_energy(self, contributions=TOTAL):
        return self._gibbs_energy(_contributions(contributions)) * J

    def molar_gibbs_energy(self, contributions=TOTAL):
        return self._molar_gibbs_energy(_contributions(contributions)) * J_PER_MOL

    def c_v(self, contributions=TOTAL):
        """ Molar isochoric heat capacity"""
        return self._c_v(_contributions(contributions)) * J_PER_MOL_K

    def dc_v_dt(self, contributions=TOTAL):
        return self._dc_v_dt(_contributions(contributions)) * J_PER_MOL_K / KELVIN

    def c_p(self, contributions=TOTAL):
        """ Molar isobaric heat capacity"""
        return self._c_p(_contributions(contributions)) * J_PER_MOL_K

    def joule_thomson(self):
        t = self._t
        dp_dv = self._dp_dv(TOTAL)
        return (-t * self._dp_dt(TOTAL) / dp_dv - self._v) / (self._ntot * self._c_p(TOTAL)) * KELVIN / PASCAL

    def isothermal_compressibility(self):
        return self._isothermal_compressibility() / PASCAL

    def isentropic_compressibility(self):
        return self._isentropic_compressibility() / PASCAL

    def structure_factor(self) -> float:
        return R * self._t / self._dp_drho(TOTAL)

    # Mass based properties --------------------------------------------------
    def total_molar_weight(self):
        return self._total_molar_weight() * KG_PER_MOL

    def mass(self):
        return self._n * self.eos.molar_weight * KG

    def total_mass(self):
        return float(self._n @ self.eos.molar_weight) * KG

    def mass_density(self):
        return self._rho * self._total_molar_weight() * KG / CUBIC_METER

    def massfracs(self) -> np.ndarray:
        w = self._n * self.eos.molar_weight
        return w / np.sum(w)

    def speed_of_sound(self):
        rho_mass = self._rho * self._total_molar_weight()
        return np.sqrt(1.0 / (rho_mass * self._isentropic_compressibility())) * ureg.meter / ureg.second

    def specific_helmholtz_energy(self, contributions=TOTAL):
        return self.molar_helmholtz_energy(contributions) / self.total_molar_weight()

    def specific_entropy(self, contributions=TOTAL):
        return self.molar_entropy(contributions) / self.total_molar_weight()

    def specific_internal_energy(self, contributions=TOTAL):
        return self.molar_internal_energy(contributions) / self.total_molar_weight()

    def specific_gibbs_energy(self, contributions=TOTAL):
        return self.molar_gibbs_energy(contributions) / self.total_molar_weight()

    def specific_enthalpy(self, contributions=TOTAL):
        return self.molar_enthalpy(contributions) / self.total_molar_weight()

    # Contribution breakdowns ------------------------------------------------
    def _contribution_objects(self):
        return [self.eos.ideal_gas] + list(self.eos.residual)

    def helmholtz_energy_contributions(self):
        return [(str(getattr(c, 'name', type(c).__name__)), self._derivative((), c) * J)
                for c in self._contribution_objects()]

    def pressure_contributions(self):
        return [(str(getattr(c, 'name', type(c).__name__)), -self._derivative(('V',), c) * PASCAL)
                for c in self._contribution_objects()]

    def chemical_potential_contributions(self, component: int):
        if not 0 <= component < self.eos.components:
            raise IndexError(f"Component index {component} out of range")
        return [(str(getattr(c, 'name', type(c).__name__)), self._derivative((component,), c) * J_PER_MOL)
                for c in self._contribution_objects()]

    # Stability ---------------------------------------------------------------
    def stability_analysis(self, options: SolverOptions = SolverOptions()):
        from pyeostoolbox.stability import stability_analysis
        return stability_analysis(self, options)

    def is_stable(self, options: SolverOptions = SolverOptions()) -> bool:
        from pyeostoolbox.stability import is_stable
        return is_stable(self, options)

    # Constructors ------------------------------------------------------------
    @classmethod
    def from_density(cls, eos, temperature, density, moles=None, molefracs=None):
        """ State from temperature, molar density and either moles or mole fractions (1 mol total)"""
        t = to_si(temperature, KELVIN, 'temperature')
        rho = to_si(density, MOL_PER_M3, 'density')
        n = _moles_or_molefracs(moles, molefracs)
        n = eos.validate_moles(n)
        if not (np.isfinite(rho) and rho > 0):
            raise InvalidState(f"Density must be positive and finite, got {rho} mol/m³")
        return cls._new(eos, t, np.sum(n) / rho, n)

    @classmethod
    def from_partial_density(cls, eos, temperature, partial_density):
        """ State from temperature and partial densities, scaled to 1 mol in total"""
        t = to_si(temperature, KELVIN, 'temperature')
        rho_i = np.atleast_1d(to_si(partial_density, MOL_PER_M3, 'partial_density'))
        rho_i = eos.validate_moles(rho_i)
        v = 1.0 / np.sum(rho_i)
        return cls._new(eos, t, v, rho_i * v)

    @classmethod
    def new_npt(cls, eos, temperature, pressure, moles=None,
                density_initialization: Union[str, DensityInitialization] = DensityInitialization.NONE,
                options: SolverOptions = SolverOptions()):
        """
        State at given temperature, pressure and mole numbers.

        Args:
            density_initialization: 'vapor', 'liquid', 'none' (lowest Gibbs energy root)
                                    or a density quantity used as starting value
        """
        t = to_si(temperature, KELVIN, 'temperature')
        p = to_si(pressure, PASCAL, 'pressure')
        n = eos.validate_moles(None if moles is None else to_si(moles, MOL, 'moles'))
        return cls._new_npt(eos, t, p, n, _density_initialization(density_initialization), options)

    @classmethod
    def _new_npt(cls, eos, t: float, p: float, n, density_initialization, options: SolverOptions = SolverOptions()):
        if not (np.isfinite(t) and t > 0):
            raise InvalidState(f"Temperature must be positive and finite, got {t} K")
        if not (np.isfinite(p) and p > 0):
            raise InvalidState(f"Pressure must be positive and finite, got {p} Pa")
        n = eos.validate_moles(n)
        return solve_density(cls, eos, t, p, n, density_initialization, options)

    @classmethod
    def new_nph(cls, eos, pressure, molar_enthalpy, moles=None,
                density_initialization=DensityInitialization.NONE, initial_temperature=None,
                options: SolverOptions = SolverOptions()):
        """ State at given pressure and molar enthalpy (Newton iteration on temperature)"""
        p = to_si(pressure, PASCAL, 'pressure')
        h = to_si(molar_enthalpy, J_PER_MOL, 'molar_enthalpy')
        n = eos.validate_moles(None if moles is None else to_si(moles, MOL, 'moles'))
        t0 = T0 if initial_temperature is None else to_si(initial_temperature, KELVIN, 'initial_temperature')
        return cls._newton_temperature(eos, p, n, h, lambda s: s._molar_enthalpy(TOTAL), lambda s: s._c_p(TOTAL),
                                       lambda s: R * s._t, t0, _density_initialization(density_initialization),
                                       options, 'nph')

    @classmethod
    def new_nps(cls, eos, pressure, molar_entropy, moles=None,
                density_initialization=DensityInitialization.NONE, initial_temperature=None,
                options: SolverOptions = SolverOptions()):
        """ State at given pressure and molar entropy (Newton iteration on temperature)"""
        p = to_si(pressure, PASCAL, 'pressure')
        s = to_si(molar_entropy, J_PER_MOL_K, 'molar_entropy')
        n = eos.validate_moles(None if moles is None else to_si(moles, MOL, 'moles'))
        t0 = T0 if initial_temperature is None else to_si(initial_temperature, KELVIN, 'initial_temperature')
        return cls._newton_temperature(eos, p, n, s, lambda st: st._molar_entropy(TOTAL),
                                       lambda st: st._c_p(TOTAL) / st._t,
                                       lambda st: R, t0, _density_initialization(density_initialization),
                                       options, 'nps')

    @classmethod
    def _newton_temperature(cls, eos, p, n, target, value_fn: Callable, deriv_fn: Callable, scale_fn: Callable, t0,
                            density_initialization, options: SolverOptions, name: str):
        max_iter, tol, verbosity = options.unwrap_or(MAX_ITER_OUTER, TOL_OUTER)
        t = t0
        init = density_initialization
        log_iter(verbosity, " iter |    residual    |  temperature")
        for it in range(1, max_iter + 1):
            state = cls._new_npt(eos, t, p, n, init)
            f = value_fn(state) - target
            res = abs(f) / scale_fn(state)
            dt = -f / deriv_fn(state)
            dt = float(np.clip(dt, -0.25 * t, 0.25 * t))
            t += dt
            init = state._rho
            log_iter(verbosity, " %4d | %14.8e | %14.8f", it, res, t)
            status = check_convergence(it, max_iter, res, abs(dt) / t, tol)
            if status == IterationStatus.EXCEEDED:
                break
            if status == IterationStatus.CONVERGED:
                state = cls._new_npt(eos, t, p, n, init)
                log_result(verbosity, "%s iteration converged in %d steps: T = %.8f K", name, it, t)
                return state
        raise ConvergenceFailure(f'{name} iteration', max_iter, [t], res)

    @classmethod
    def new_nth(cls, eos, temperature, molar_enthalpy, moles=None,
                density_initialization=DensityInitialization.NONE, options: SolverOptions = SolverOptions()):
        """ State at given temperature and molar enthalpy (Newton iteration on density)"""
        t = to_si(temperature, KELVIN, 'temperature')
        h = to_si(molar_enthalpy, J_PER_MOL, 'molar_enthalpy')
        n = eos.validate_moles(None if moles is None else to_si(moles, MOL, 'moles'))

        def deriv(s):
            dh_dv = (s._t * s._dp_dt(TOTAL) + s._v * s._dp_dv(TOTAL)) / s._ntot
            return -dh_dv * s._v ** 2 / s._ntot

        return cls._newton_density(eos, t, n, h, lambda s: s._molar_enthalpy(TOTAL), deriv, lambda s: R * s._t,
                                   _density_initialization(density_initialization), options, 'nth')

    @classmethod
    def new_nts(cls, eos, temperature, molar_entropy, moles=None,
                density_initialization=DensityInitialization.NONE, options: SolverOptions = SolverOptions()):
        """ State at given temperature and molar entropy (Newton iteration on density)"""
        t = to_si(temperature, KELVIN, 'temperature')
        s_target = to_si(molar_entropy, J_PER_MOL_K, 'molar_entropy')
        n = eos.validate_moles(None if moles is None else to_si(moles, MOL, 'moles'))

        def deriv(s):
            return -s._dp_dt(TOTAL) / s._ntot * s._v ** 2 / s._ntot

        return cls._newton_density(eos, t, n, s_target, lambda s: s._molar_entropy(TOTAL), deriv, lambda s: R,
                                   _density_initialization(density_initialization), options, 'nts')

    @classmethod
    def _newton_density(cls, eos, t, n, target, value_fn: Callable, deriv_fn: Callable, scale_fn: Callable,
                        density_initialization, options: SolverOptions, name: str):
        max_iter, tol, verbosity = options.unwrap_or(MAX_ITER_OUTER, TOL_OUTER)
        rho_max = eos.max_density(n)
        if isinstance(density_initialization, DensityInitialization):
            seeds = {DensityInitialization.VAPOR: [P0 / (R * t)],
                     DensityInitialization.LIQUID: [0.75 * rho_max],
                     DensityInitialization.NONE: [P0 / (R * t), 0.75 * rho_max]}[density_initialization]
        else:
            seeds = [float(density_initialization)]
        error = None
        for rho in seeds:
            try:
                for it in range(1, max_iter + 1):
                    state = cls._new(eos, t, np.sum(n) / rho, n)
                    f = value_fn(state) - target
                    res = abs(f) / scale_fn(state)
                    dlnrho = float(np.clip(-f / (deriv_fn(state) * rho), -0.5, 0.5))
                    rho_new = rho * np.exp(dlnrho)
                    if rho_new >= rho_max:
                        rho_new = 0.5 * (rho + rho_max)
                    step = abs(np.log(rho_new / rho))
                    log_iter(verbosity, " %4d | %14.8e | %14.8e", it, res, rho_new)
                    rho = rho_new
                    status = check_convergence(it, max_iter, res, step, tol)
                    if status == IterationStatus.EXCEEDED:
                        break
                    if status == IterationStatus.CONVERGED:
                        log_result(verbosity, "%s iteration converged in %d steps: rho = %.8e mol/m³", name, it, rho)
                        return cls._new(eos, t, np.sum(n) / rho, n)
                error = ConvergenceFailure(f'{name} iteration', max_iter, [rho], res)
            except EosError as e:
                error = e
        raise error

    # Critical points ---------------------------------------------------------
    @classmethod
    def critical_point(cls, eos, moles=None, initial_temperature=None, options: SolverOptions = SolverOptions()):
        from pyeostoolbox.critical_point import critical_point
        return critical_point(eos, moles, initial_temperature, options)

    @classmethod
    def critical_point_pure(cls, eos, initial_temperature=None, options: SolverOptions = SolverOptions()):
        from pyeostoolbox.critical_point import critical_point_pure
        return critical_point_pure(eos, initial_temperature, options)

    @classmethod
    def critical_point_binary(cls, eos, temperature_or_pressure, initial_temperature=None, initial_molefracs=None,
                              options: SolverOptions = SolverOptions()):
        from pyeostoolbox.critical_point import critical_point_binary
        return critical_point_binary(eos, temperature_or_pressure, initial_temperature, initial_molefracs, options)

    def __repr__(self):
        rows = [['temperature', f"{self._t:.5f} K"],
                ['density', f"{self._rho:.5e} mol/m³"],
                ['pressure', f"{self._pressure(TOTAL):.5e} Pa"]]
        if self.eos.components > 1:
            rows.append(['molefracs', np.array2string(self._x, precision=5)])
        return tabulate(rows, tablefmt='simple')


def _moles_or_molefracs(moles, molefracs) -> Optional[np.ndarray]:
    if moles is not None and molefracs is not None:
        raise ValueError("Specify either moles or molefracs, not both")
    if moles is not None:
        return to_si(moles, MOL, 'moles')
    if molefracs is not None:
        x = convert_to_numpy(molefracs)
        if not np.all(np.isfinite(x)) or np.any(x < 0) or not np.sum(x) > 0:
            raise InvalidState(f"Mole fractions must be finite, non-negative and not all zero, got {x}")
        return x / np.sum(x)
    return None


def _density_initialization(value):
    """ Enum member for strings and enums, SI float for a density quantity"""
    if isinstance(value, ureg.Quantity):
        return to_si(value, MOL_PER_M3, 'density_initialization')
    return validate_methods(['density_initialization'], [value])
