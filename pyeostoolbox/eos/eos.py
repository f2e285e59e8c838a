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
Helmholtz energy model. An equation of state is an ordered list of residual
contributions plus one ideal gas contribution; each maps a StateHD to the
reduced Helmholtz energy A/(RT) (in mol), generically over floats and the dual
number types of pyeostoolbox.dual.
"""

import copy
import logging
from typing import Sequence, Optional, Union

import numpy as np

from pyeostoolbox.classes import Contributions
from pyeostoolbox.constants import R, T0, P0, CP_TRANSLATIONAL
from pyeostoolbox.dual import log, dsum, real_part
from pyeostoolbox.errors import InvalidState, IncompatibleComponents
from pyeostoolbox.shared_fns import convert_to_numpy
from pyeostoolbox.validate import validate_methods

logger = logging.getLogger(__name__)


class StateHD:
    """ Temperature (K), volume (m³) and mole numbers (mol) carried as floats or dual numbers"""
    __slots__ = ('temperature', 'volume', 'moles')

    def __init__(self, temperature, volume, moles):
        self.temperature = temperature
        self.volume = volume
        self.moles = moles

    @property
    def partial_density(self):
        return self.moles / self.volume

    @property
    def total_moles(self):
        return dsum(self.moles)


class HelmholtzEnergy:
    """
    Contribution interface. Any object with a `helmholtz_energy(state)` method
    returning A/(RT) is accepted; deriving from this class is optional.
    """
    name = 'contribution'

    def helmholtz_energy(self, state: StateHD):
        raise NotImplementedError

    def __str__(self):
        return self.name


class IdealGas(HelmholtzEnergy):
    """
    Ideal gas contribution from Joback heat capacity polynomials.

        A_ig/(RT) = Σ n_i [(h_i - T s_i)/(RT) + ln(ρ_i R T / p0) - 1]

    with h_i and s_i integrated from T0 = 298.15 K and p0 = 1 bar. Components
    without a Joback record use cp = 5/2 R. Components with zero moles do not
    contribute.
    """
    name = 'Ideal gas (Joback)'

    def __init__(self, parameters):
        coefs = []
        for r in parameters.joback_records:
            if r is None:
                coefs.append([CP_TRANSLATIONAL, 0.0, 0.0, 0.0, 0.0])
            else:
                coefs.append([r.a, r.b, r.c, r.d, r.e])
        self.coefs = np.array(coefs)

    def _enthalpy_entropy(self, t, coefs):
        a, b, c, d, e = coefs.T
        h = a * (t - T0) + b / 2 * (t ** 2 - T0 ** 2) + c / 3 * (t ** 3 - T0 ** 3) \
            + d / 4 * (t ** 4 - T0 ** 4) + e / 5 * (t ** 5 - T0 ** 5)
        s = a * log(t / T0) + b * (t - T0) + c / 2 * (t ** 2 - T0 ** 2) \
            + d / 3 * (t ** 3 - T0 ** 3) + e / 4 * (t ** 4 - T0 ** 4)
        return h, s

    def helmholtz_energy(self, state: StateHD):
        t, v, n = state.temperature, state.volume, state.moles
        present = np.asarray(real_part(n)) > 0
        if not np.all(present):
            n = n[present]
            coefs = self.coefs[present]
        else:
            coefs = self.coefs
        h, s = self._enthalpy_entropy(t, coefs)
        return dsum(n * ((h - t * s) / (R * t) + log(n * (R * t) / (v * P0)) - 1.0))

    def subset(self, component_list: Sequence[int]):
        sub = copy.copy(self)
        sub.coefs = self.coefs[list(component_list)]
        return sub


class EquationOfState:
    """
    Container of parameters, residual contributions and the ideal gas contribution.

    Args:
        parameters: Parameters instance shared (read-only) with every state
        residual: Ordered sequence of residual Helmholtz energy contributions
        ideal_gas: Ideal gas contribution. Defaults to IdealGas(parameters)
    """

    def __init__(self, parameters, residual: Sequence, ideal_gas=None):
        self.parameters = parameters
        self.residual = tuple(residual)
        for c in self.residual:
            if not callable(getattr(c, 'helmholtz_energy', None)):
                raise TypeError(f"Contribution {c!r} has no helmholtz_energy method")
        self.ideal_gas = IdealGas(parameters) if ideal_gas is None else ideal_gas

    @property
    def components(self) -> int:
        return self.parameters.components

    @property
    def molar_weight(self) -> np.ndarray:
        """ Molar weights in kg/mol"""
        return self.parameters.molarweight * 1e-3

    def subset(self, component_list: Sequence[int]):
        raise NotImplementedError(f"{type(self).__name__} does not support subsets")

    def _ideal_gas_subset(self, component_list: Sequence[int]):
        subset = getattr(self.ideal_gas, 'subset', None)
        if subset is None:
            raise NotImplementedError(f"Ideal gas contribution {self.ideal_gas} does not support subsets")
        return subset(component_list)

    def max_density(self, moles: np.ndarray) -> float:
        """ Upper bound of the molar density (mol/m³) for the given composition"""
        raise NotImplementedError

    def wilson_parameters(self):
        """ (tc, pc, acentric_factor) arrays for Wilson K-factors, None when unavailable"""
        return None

    def critical_temperature_estimate(self, moles: np.ndarray) -> Optional[float]:
        return None

    def validate_moles(self, moles=None) -> np.ndarray:
        """ Mole number array of the right length. None is allowed for pure substances and means 1 mol"""
        nc = self.components
        if moles is None:
            if nc != 1:
                raise IncompatibleComponents(nc, 0)
            return np.ones(1)
        moles = convert_to_numpy(moles)
        if moles.ndim != 1 or moles.size != nc:
            raise IncompatibleComponents(nc, moles.size)
        if not np.all(np.isfinite(moles)) or np.any(moles < 0) or not np.any(moles > 0):
            raise InvalidState(f"Mole numbers must be finite, non-negative and not all zero, got {moles}")
        return moles

    def helmholtz_energy(self, state: StateHD, contributions: Union[str, Contributions] = Contributions.TOTAL):
        """ Reduced Helmholtz energy A/(RT) summed over the selected contributions"""
        contributions = validate_methods(['contributions'], [contributions])
        if contributions == Contributions.IDEAL_GAS:
            return self.ideal_gas.helmholtz_energy(state)
        res = 0.0
        for c in self.residual:
            res = res + c.helmholtz_energy(state)
        if contributions == Contributions.RESIDUAL:
            return res
        return res + self.ideal_gas.helmholtz_energy(state)

    def helmholtz_energy_contributions(self, state: StateHD):
        """ List of (name, A/(RT)) for the ideal gas and each residual contribution"""
        out = [(str(getattr(self.ideal_gas, 'name', 'Ideal gas')), self.ideal_gas.helmholtz_energy(state))]
        for c in self.residual:
            out.append((str(getattr(c, 'name', type(c).__name__)), c.helmholtz_energy(state)))
        return out

    def __repr__(self):
        names = ', '.join(str(getattr(c, 'name', type(c).__name__)) for c in self.residual)
        return f"{type(self).__name__}({self.parameters!r}; {names})"
