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
Phase diagrams built by continuation. Each point is solved starting from the
previous converged point; a failed step ends the branch. Diagrams are lazy:
iterating one re-runs the continuation.
"""

import logging
from typing import Callable, Iterator, List, Optional

import numpy as np
import pandas as pd
from tabulate import tabulate

from pyeostoolbox.critical_point import critical_point, critical_point_binary
from pyeostoolbox.errors import EosError, IncompatibleComponents, InvalidState
from pyeostoolbox.phase_equilibria import PhaseEquilibrium
from pyeostoolbox.phase_equilibria._lib_bubble_dew import bubble_dew_point
from pyeostoolbox.phase_equilibria._lib_flash import tp_flash
from pyeostoolbox.shared_fns import SolverOptions
from pyeostoolbox.units import to_si, is_temperature, KELVIN, PASCAL, MOL, Q_

logger = logging.getLogger(__name__)


class PhaseDiagram:
    """ Sequence of phase equilibria ordered by the continuation variable"""

    def __init__(self, factory: Callable[[], Iterator[PhaseEquilibrium]]):
        self._factory = factory
        self._states = None

    def __iter__(self) -> Iterator[PhaseEquilibrium]:
        return iter(self._factory())

    @property
    def states(self) -> List[PhaseEquilibrium]:
        """ Converged points, computed on first access"""
        if self._states is None:
            self._states = [vle for vle in self._factory()]
        return self._states

    def __len__(self):
        return len(self.states)

    def __getitem__(self, i) -> PhaseEquilibrium:
        return self.states[i]

    @property
    def vapor(self):
        return [vle.vapor for vle in self.states]

    @property
    def liquid(self):
        return [vle.liquid for vle in self.states]

    def rows(self) -> Iterator[dict]:
        """ One dict of quantities per point"""
        for vle in self.states:
            row = {'temperature': vle.temperature, 'pressure': vle.pressure}
            for label, s in zip(vle.phase_labels, vle.states):
                row[f'density {label}'] = s.density
                row[f'molar enthalpy {label}'] = s.molar_enthalpy()
                row[f'molar entropy {label}'] = s.molar_entropy()
                if s.eos.components > 1:
                    for i, x in enumerate(s.molefracs):
                        row[f'x{i} {label}'] = x
            yield row

    def to_frame(self) -> pd.DataFrame:
        """ DataFrame with SI magnitudes, units in the column labels"""
        records = []
        for row in self.rows():
            rec = {}
            for key, value in row.items():
                if isinstance(value, Q_):
                    rec[f"{key} ({value.units:~P})"] = float(value.magnitude)
                else:
                    rec[key] = float(value)
            records.append(rec)
        return pd.DataFrame(records)

    def __str__(self):
        return tabulate(self.to_frame(), headers='keys', showindex=False)

    # Builders ----------------------------------------------------------------
    @classmethod
    def pure(cls, eos, min_temperature, npoints: int, critical_temperature=None,
             options: SolverOptions = SolverOptions()) -> 'PhaseDiagram':
        """
        Vapor-liquid coexistence of a pure substance from min_temperature up to
        the critical point, which is the last point of the diagram.
        """
        t_min = to_si(min_temperature, KELVIN, 'min_temperature')
        if npoints < 2:
            raise ValueError(f"npoints must be at least 2, got {npoints}")

        def factory():
            cp = critical_point(eos, None, critical_temperature, options)
            vle = None
            for t in np.linspace(t_min, cp._t, npoints)[:-1]:
                try:
                    vle = PhaseEquilibrium.pure_t(eos, Q_(t, KELVIN), vle, options)
                except EosError as e:
                    logger.debug("Pure phase diagram stopped at T = %.4f K: %s", t, e)
                    break
                yield vle
            yield PhaseEquilibrium([cp, cp])
        return cls(factory)

    @classmethod
    def binary_vle(cls, eos, temperature_or_pressure, npoints: int = 51, x_lle=None,
                   options: SolverOptions = SolverOptions()) -> 'PhaseDiagram':
        """
        Txy or pxy diagram of a binary mixture from bubble point continuation in
        the liquid mole fraction x0 of the first component.

        Args:
            x_lle: Liquid compositions (x0) of a heteroazeotrope. The diagram then
                   consists of the branch from x0 = 0 to min(x_lle) followed by the
                   branch from x0 = 1 to max(x_lle)
        """
        if eos.components != 2:
            raise IncompatibleComponents(2, eos.components)
        spec_t = is_temperature(temperature_or_pressure)
        value = to_si(temperature_or_pressure, KELVIN if spec_t else PASCAL, 'temperature_or_pressure')

        def factory():
            if x_lle is not None:
                lo, hi = sorted(float(x) for x in x_lle)
                yield from _binary_branch(eos, temperature_or_pressure, spec_t, value, 0.0, lo, npoints, options)
                yield from _binary_branch(eos, temperature_or_pressure, spec_t, value, 1.0, hi, npoints, options)
                return
            pure = PhaseEquilibrium.vle_pure_comps(eos, temperature_or_pressure)
            if pure[1] is not None:
                yield from _binary_branch(eos, temperature_or_pressure, spec_t, value, 0.0, 1.0, npoints, options,
                                          pure[0] is None)
            elif pure[0] is not None:
                yield from _binary_branch(eos, temperature_or_pressure, spec_t, value, 1.0, 0.0, npoints, options,
                                          True)
            else:
                logger.debug("Both components are supercritical, empty phase diagram")
        return cls(factory)

    @classmethod
    def lle(cls, eos, temperature_or_pressure, feed, min_tp, max_tp, npoints: int,
            initial_state: Optional[PhaseEquilibrium] = None,
            options: SolverOptions = SolverOptions()) -> 'PhaseDiagram':
        """
        Liquid-liquid diagram from tp-flash continuation of a feed.

        Args:
            temperature_or_pressure: Fixed temperature or pressure
            min_tp, max_tp: Range of the other variable (pressure or temperature)
            initial_state: Two liquids used for the first flash instead of stability analysis
        """
        spec_t = is_temperature(temperature_or_pressure)
        if spec_t:
            fixed = to_si(temperature_or_pressure, KELVIN, 'temperature')
            lo, hi = to_si(min_tp, PASCAL, 'min_tp'), to_si(max_tp, PASCAL, 'max_tp')
        else:
            fixed = to_si(temperature_or_pressure, PASCAL, 'pressure')
            lo, hi = to_si(min_tp, KELVIN, 'min_tp'), to_si(max_tp, KELVIN, 'max_tp')
        z = eos.validate_moles(to_si(feed, MOL, 'feed'))

        def factory():
            initial = None if initial_state is None else initial_state.states[:2]
            for var in np.linspace(lo, hi, npoints):
                t, p = (fixed, var) if spec_t else (var, fixed)
                try:
                    initial = tp_flash(eos, t, p, z, initial, options)
                except EosError as e:
                    logger.debug("LLE diagram stopped at T = %.4f K, p = %.6e Pa: %s", t, p, e)
                    return
                yield PhaseEquilibrium(initial)
        return cls(factory)


def _binary_branch(eos, temperature_or_pressure, spec_t: bool, value: float, x_start: float, x_end: float,
                   npoints: int, options: SolverOptions, critical_end: bool = False):
    """
    Bubble points from x0 = x_start to x_end. With critical_end the branch is
    closed by the binary critical point when the continuation breaks down.
    """
    tp_init, y_init = None, None
    last = None
    for x0 in np.linspace(x_start, x_end, npoints):
        x = np.array([x0, 1.0 - x0])
        try:
            vle = PhaseEquilibrium(bubble_dew_point(eos, spec_t, value, x, True, tp_init, y_init, options))
        except (EosError, np.linalg.LinAlgError) as e:
            logger.debug("Binary VLE branch stopped at x0 = %.6f: %s", x0, e)
            break
        last = vle
        tp_init = vle.vapor._pressure() if spec_t else vle.vapor._t
        y_init = vle.vapor._x
        yield vle
    else:
        return
    if critical_end and last is not None:
        try:
            cp = critical_point_binary(eos, temperature_or_pressure, None if spec_t else last.temperature,
                                       last.liquid._x, options)
        except EosError as e:
            logger.debug("No binary critical point closing the branch: %s", e)
            return
        yield PhaseEquilibrium([cp, cp])


class PhaseDiagramHetero:
    """ Binary phase diagram with a heteroazeotrope: two VLE branches and an optional LLE branch"""

    def __init__(self, vle1: PhaseDiagram, vle2: PhaseDiagram, lle: Optional[PhaseDiagram] = None,
                 heteroazeotrope: Optional[PhaseEquilibrium] = None):
        self.vle1 = vle1
        self.vle2 = vle2
        self.lle = lle
        self.heteroazeotrope = heteroazeotrope

    @property
    def vle(self) -> PhaseDiagram:
        """ Both VLE branches as one diagram, the second one reversed"""
        return PhaseDiagram(lambda: iter(self.vle1.states + self.vle2.states[::-1]))

    @classmethod
    def new(cls, eos, temperature_or_pressure, x_lle, tp_lim_lle=None, npoints_vle: int = 51,
            npoints_lle: int = 51, options: SolverOptions = SolverOptions()) -> 'PhaseDiagramHetero':
        """
        Args:
            x_lle: Initial liquid compositions (x0) of the heteroazeotrope
            tp_lim_lle: End of the LLE branch in the other variable (pressure at fixed
                        temperature, temperature at fixed pressure). No LLE branch if None
        """
        if eos.components != 2:
            raise IncompatibleComponents(2, eos.components)
        spec_t = is_temperature(temperature_or_pressure)
        het = PhaseEquilibrium.heteroazeotrope(eos, temperature_or_pressure, x_lle, options=options)
        x_het = sorted([het.liquid1._x[0], het.liquid2._x[0]])
        vle1 = PhaseDiagram(_branch_factory(eos, temperature_or_pressure, spec_t, 0.0, x_het[0], npoints_vle, options))
        vle2 = PhaseDiagram(_branch_factory(eos, temperature_or_pressure, spec_t, 1.0, x_het[1], npoints_vle, options))
        lle = None
        if tp_lim_lle is not None:
            feed = Q_(0.5 * (het.liquid1._x + het.liquid2._x), MOL)
            start = het.pressure if spec_t else het.temperature
            if spec_t:
                start_si, lim_si = start.m_as(PASCAL), to_si(tp_lim_lle, PASCAL, 'tp_lim_lle')
            else:
                start_si, lim_si = start.m_as(KELVIN), to_si(tp_lim_lle, KELVIN, 'tp_lim_lle')
            if start_si == lim_si:
                raise InvalidState("tp_lim_lle coincides with the heteroazeotrope")
            liquids = PhaseEquilibrium([het.liquid1, het.liquid2])
            lle = PhaseDiagram.lle(eos, temperature_or_pressure, feed, start, tp_lim_lle, npoints_lle, liquids,
                                   options)
        return cls(vle1, vle2, lle, het)


def _branch_factory(eos, temperature_or_pressure, spec_t, x_start, x_end, npoints, options):
    value = to_si(temperature_or_pressure, KELVIN if spec_t else PASCAL, 'temperature_or_pressure')
    return lambda: _binary_branch(eos, temperature_or_pressure, spec_t, value, x_start, x_end, npoints, options)
