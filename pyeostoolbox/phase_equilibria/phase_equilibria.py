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
Phase equilibria between two (vapor, liquid) or three (vapor, liquid, liquid)
states at equal temperature and pressure.
"""

import logging
from typing import List, Optional, Sequence, Union

import numpy as np
from tabulate import tabulate

from pyeostoolbox.errors import SuperCritical, TrivialSolution
from pyeostoolbox.phase_equilibria._lib_bubble_dew import bubble_dew_point
from pyeostoolbox.phase_equilibria._lib_flash import tp_flash
from pyeostoolbox.phase_equilibria._lib_heteroazeotrope import heteroazeotrope
from pyeostoolbox.phase_equilibria._lib_pure import pure_t, pure_p
from pyeostoolbox.shared_fns import SolverOptions
from pyeostoolbox.state import State
from pyeostoolbox.units import to_si, is_temperature, KELVIN, PASCAL, MOL

logger = logging.getLogger(__name__)


def _tp(temperature_or_pressure):
    """ (True, T in K) or (False, p in Pa)"""
    if is_temperature(temperature_or_pressure):
        return True, to_si(temperature_or_pressure, KELVIN, 'temperature')
    return False, to_si(temperature_or_pressure, PASCAL, 'pressure')


def _tp_init(spec_t: bool, tp_init):
    if tp_init is None:
        return None
    if spec_t:
        return to_si(tp_init, PASCAL, 'tp_init')
    return to_si(tp_init, KELVIN, 'tp_init')


class PhaseEquilibrium:
    """
    Coexisting phases. For two phases the lower density state is the vapor,
    three phase equilibria are ordered (vapor, liquid1, liquid2).
    """

    def __init__(self, states: Sequence[State]):
        states = tuple(states)
        if len(states) not in (2, 3):
            raise ValueError(f"A phase equilibrium has 2 or 3 phases, got {len(states)}")
        if len(states) == 2 and states[0]._rho > states[1]._rho:
            states = (states[1], states[0])
        self.states = states

    def __len__(self):
        return len(self.states)

    def __iter__(self):
        return iter(self.states)

    def __getitem__(self, i) -> State:
        return self.states[i]

    @property
    def vapor(self) -> State:
        return self.states[0]

    @property
    def liquid(self) -> State:
        return self.states[1]

    @property
    def liquid1(self) -> State:
        return self.states[1]

    @property
    def liquid2(self) -> State:
        if len(self.states) < 3:
            raise AttributeError("Two phase equilibrium has no second liquid")
        return self.states[2]

    @property
    def temperature(self):
        return self.vapor.temperature

    @property
    def pressure(self):
        return self.vapor.pressure()

    @property
    def phase_labels(self) -> List[str]:
        return ['vapor', 'liquid'] if len(self.states) == 2 else ['vapor', 'liquid 1', 'liquid 2']

    def __repr__(self):
        rows = []
        for label, s in zip(self.phase_labels, self.states):
            row = [label, f"{s._t:.5f}", f"{s._pressure():.5e}", f"{s._rho:.5e}"]
            if s.eos.components > 1:
                row.append(np.array2string(s._x, precision=5))
            rows.append(row)
        headers = ['phase', 'T [K]', 'p [Pa]', 'density [mol/m³]']
        if self.vapor.eos.components > 1:
            headers.append('molefracs')
        return tabulate(rows, headers=headers)

    # Pure substances ---------------------------------------------------------
    @classmethod
    def pure(cls, eos, temperature_or_pressure, initial_state: Optional['PhaseEquilibrium'] = None,
             options: SolverOptions = SolverOptions()) -> 'PhaseEquilibrium':
        """ Saturated vapor and liquid of a pure substance at given temperature or pressure"""
        if is_temperature(temperature_or_pressure):
            return cls.pure_t(eos, temperature_or_pressure, initial_state, options)
        return cls.pure_p(eos, temperature_or_pressure, initial_state, options)

    @classmethod
    def pure_t(cls, eos, temperature, initial_state: Optional['PhaseEquilibrium'] = None,
               options: SolverOptions = SolverOptions()) -> 'PhaseEquilibrium':
        t = to_si(temperature, KELVIN, 'temperature')
        initial = None if initial_state is None else initial_state.states[:2]
        return cls(pure_t(eos, t, initial, options))

    @classmethod
    def pure_p(cls, eos, pressure, initial_state: Optional['PhaseEquilibrium'] = None,
               options: SolverOptions = SolverOptions()) -> 'PhaseEquilibrium':
        p = to_si(pressure, PASCAL, 'pressure')
        initial = None if initial_state is None else initial_state.states[:2]
        return cls(pure_p(eos, p, initial, options))

    # Mixtures ----------------------------------------------------------------
    @classmethod
    def tp_flash(cls, eos, temperature, pressure, feed, initial_state: Optional['PhaseEquilibrium'] = None,
                 options: SolverOptions = SolverOptions()) -> 'PhaseEquilibrium':
        """
        Two phase split of a feed at given temperature and pressure.

        Args:
            feed: Mole numbers of the feed (quantity)
            initial_state: Previous equilibrium used instead of stability analysis
        Raises:
            NoPhaseSplit if the feed is stable
        """
        t = to_si(temperature, KELVIN, 'temperature')
        p = to_si(pressure, PASCAL, 'pressure')
        z = to_si(feed, MOL, 'feed')
        initial = None if initial_state is None else initial_state.states[:2]
        return cls(tp_flash(eos, t, p, z, initial, options))

    @classmethod
    def bubble_point(cls, eos, temperature_or_pressure, liquid_molefracs, tp_init=None,
                     vapor_molefracs=None, options: SolverOptions = SolverOptions()) -> 'PhaseEquilibrium':
        """
        Bubble point of a liquid.

        Args:
            temperature_or_pressure: Specified temperature or pressure
            liquid_molefracs: Composition of the liquid
            tp_init: Initial pressure (temperature specified) or temperature
            vapor_molefracs: Initial vapor composition
        """
        spec_t, value = _tp(temperature_or_pressure)
        return cls(bubble_dew_point(eos, spec_t, value, liquid_molefracs, True, _tp_init(spec_t, tp_init),
                                    vapor_molefracs, options))

    @classmethod
    def dew_point(cls, eos, temperature_or_pressure, vapor_molefracs, tp_init=None,
                  liquid_molefracs=None, options: SolverOptions = SolverOptions()) -> 'PhaseEquilibrium':
        """ Dew point of a vapor, arguments as in bubble_point"""
        spec_t, value = _tp(temperature_or_pressure)
        return cls(bubble_dew_point(eos, spec_t, value, vapor_molefracs, False, _tp_init(spec_t, tp_init),
                                    liquid_molefracs, options))

    @classmethod
    def heteroazeotrope(cls, eos, temperature_or_pressure, x_init, tp_init=None,
                        options: SolverOptions = SolverOptions()) -> 'PhaseEquilibrium':
        """
        Vapor in equilibrium with two liquids of a binary mixture.

        Args:
            x_init: Initial mole fractions of the first component in both liquids
        """
        spec_t, value = _tp(temperature_or_pressure)
        x_init = tuple(float(x) for x in x_init)
        if len(x_init) != 2:
            raise ValueError(f"x_init needs two liquid compositions, got {len(x_init)}")
        return cls(heteroazeotrope(eos, spec_t, value, x_init, _tp_init(spec_t, tp_init), options))

    # Per component -----------------------------------------------------------
    @staticmethod
    def vle_pure_comps(eos, temperature_or_pressure) -> List[Optional['PhaseEquilibrium']]:
        """ Pure component equilibria, None where a component has no VLE at the given condition"""
        res = []
        for i in range(eos.components):
            try:
                res.append(PhaseEquilibrium.pure(eos.subset([i]), temperature_or_pressure))
            except (SuperCritical, TrivialSolution) as e:
                logger.debug("No pure VLE for component %d: %s", i, e)
                res.append(None)
        return res

    @staticmethod
    def vapor_pressure(eos, temperature) -> list:
        """ Vapor pressure of each component, None for supercritical components"""
        to_si(temperature, KELVIN, 'temperature')
        return [None if vle is None else vle.pressure for vle in PhaseEquilibrium.vle_pure_comps(eos, temperature)]

    @staticmethod
    def boiling_temperature(eos, pressure) -> list:
        """ Boiling temperature of each component, None for supercritical components"""
        to_si(pressure, PASCAL, 'pressure')
        return [None if vle is None else vle.temperature for vle in PhaseEquilibrium.vle_pure_comps(eos, pressure)]
