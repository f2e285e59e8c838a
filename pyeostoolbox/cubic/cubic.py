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
Peng-Robinson (1976) equation of state.

    A_res/(RT) = -N ln(1 - B/V) - D/(2√2 B R T) ln[(V + (1+√2)B)/(V + (1-√2)B)]

    a_i = 0.45724 R² Tc_i² / pc_i         b_i = 0.07780 R Tc_i / pc_i
    κ_i = 0.37464 + (1.54226 - 0.26992 ω_i) ω_i
    √α_i = 1 + κ_i (1 - √(T/Tc_i))
    D = Σ_ij n_i n_j √(a_i α_i a_j α_j) (1 - k_ij),   B = Σ_i n_i b_i
"""

from dataclasses import dataclass
from typing import Sequence, Optional

import numpy as np

from pyeostoolbox.constants import R, OMEGA_A, OMEGA_B, SQRT2, MAX_DENSITY_FRACTION
from pyeostoolbox.dual import log, sqrt, dsum
from pyeostoolbox.eos import EquationOfState, HelmholtzEnergy, StateHD
from pyeostoolbox.errors import ParameterError
from pyeostoolbox.parameter import Parameters, PureRecord, Identifier
from pyeostoolbox.shared_fns import convert_to_numpy


@dataclass(frozen=True)
class PengRobinsonRecord:
    tc: float                # Critical temperature (K)
    pc: float                # Critical pressure (Pa)
    acentric_factor: float

    def __post_init__(self):
        if not (np.isfinite(self.tc) and self.tc > 0):
            raise ParameterError(f"Critical temperature must be positive, got {self.tc}")
        if not (np.isfinite(self.pc) and self.pc > 0):
            raise ParameterError(f"Critical pressure must be positive, got {self.pc}")
        if not np.isfinite(self.acentric_factor):
            raise ParameterError(f"Acentric factor must be finite, got {self.acentric_factor}")

    @classmethod
    def from_dict(cls, d):
        if not isinstance(d, dict) or not {'tc', 'pc', 'acentric_factor'} <= set(d):
            raise ParameterError(f"Peng-Robinson record requires tc, pc and acentric_factor, got {d}")
        extra = set(d) - {'tc', 'pc', 'acentric_factor'}
        if extra:
            raise ParameterError(f"Unknown fields in Peng-Robinson record: {sorted(extra)}")
        try:
            return cls(float(d['tc']), float(d['pc']), float(d['acentric_factor']))
        except (TypeError, ValueError) as e:
            raise ParameterError(f"Malformed Peng-Robinson record {d}: {e}") from e


class PengRobinsonParameters(Parameters):
    """ Peng-Robinson parameter set. Binary interaction parameters are k_ij"""
    model_record_cls = PengRobinsonRecord

    def _build(self):
        recs = [r.model_record for r in self.pure_records]
        self.tc = np.array([r.tc for r in recs])
        self.pc = np.array([r.pc for r in recs])
        self.acentric_factor = np.array([r.acentric_factor for r in recs])
        self.k_ij = self.binary_records
        self.a = OMEGA_A * R ** 2 * self.tc ** 2 / self.pc
        self.b = OMEGA_B * R * self.tc / self.pc
        self.kappa = 0.37464 + (1.54226 - 0.26992 * self.acentric_factor) * self.acentric_factor
        for arr in (self.tc, self.pc, self.acentric_factor, self.a, self.b, self.kappa):
            arr.flags.writeable = False

    @classmethod
    def new_simple(cls, tc: Sequence[float], pc: Sequence[float], acentric_factor: Sequence[float],
                   molarweight: Sequence[float], k_ij=None):
        """
        Parameters from plain arrays of critical data.

        Args:
            tc: Critical temperatures (K)
            pc: Critical pressures (Pa)
            acentric_factor: Acentric factors
            molarweight: Molar weights (g/mol)
            k_ij: Optional symmetric binary interaction matrix
        """
        tc, pc, omega, mw = (convert_to_numpy(x) for x in (tc, pc, acentric_factor, molarweight))
        if not (tc.size == pc.size == omega.size == mw.size):
            raise ParameterError(f"Inconsistent array lengths: tc {tc.size}, pc {pc.size}, "
                                 f"acentric_factor {omega.size}, molarweight {mw.size}")
        records = [PureRecord(Identifier(cas=str(i + 1)), mw[i], PengRobinsonRecord(tc[i], pc[i], omega[i]))
                   for i in range(tc.size)]
        return cls(records, k_ij)


class PengRobinsonContribution(HelmholtzEnergy):
    name = 'Peng-Robinson'

    def __init__(self, parameters: PengRobinsonParameters):
        self.parameters = parameters
        self._one_minus_k = 1.0 - parameters.k_ij
        self._sqrt_a = np.sqrt(parameters.a)

    def helmholtz_energy(self, state: StateHD):
        p = self.parameters
        t, v, n = state.temperature, state.volume, state.moles
        sqrt_a_alpha = self._sqrt_a * (1.0 + p.kappa * (1.0 - sqrt(t / p.tc)))
        x = n * sqrt_a_alpha
        d = (x @ self._one_minus_k) @ x
        b = n @ p.b
        ntot = dsum(n)
        return -ntot * log(1.0 - b / v) \
            - d / (2.0 * SQRT2 * b * R * t) * log((v + (1.0 + SQRT2) * b) / (v + (1.0 - SQRT2) * b))


class PengRobinson(EquationOfState):
    """
    Peng-Robinson equation of state with the Joback (or translational) ideal gas term.

    Args:
        parameters: PengRobinsonParameters
        ideal_gas: Optional ideal gas contribution replacing the default
    """

    def __init__(self, parameters: PengRobinsonParameters, ideal_gas=None):
        if not isinstance(parameters, PengRobinsonParameters):
            raise ParameterError(f"PengRobinson requires PengRobinsonParameters, got {type(parameters).__name__}")
        super().__init__(parameters, [PengRobinsonContribution(parameters)], ideal_gas)

    def subset(self, component_list: Sequence[int]):
        return PengRobinson(self.parameters.subset(component_list), self._ideal_gas_subset(component_list))

    def max_density(self, moles: np.ndarray) -> float:
        x = moles / np.sum(moles)
        return MAX_DENSITY_FRACTION / float(x @ self.parameters.b)

    def wilson_parameters(self):
        p = self.parameters
        return p.tc, p.pc, p.acentric_factor

    def critical_temperature_estimate(self, moles: np.ndarray) -> Optional[float]:
        x = moles / np.sum(moles)
        return float(x @ self.parameters.tc)
