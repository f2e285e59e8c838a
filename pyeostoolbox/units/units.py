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
Dimensioned quantities. All public inputs and outputs are pint quantities from
the registry defined here; internally everything is SI floats.
"""

import numpy as np
import pint

ureg = pint.UnitRegistry()
Q_ = ureg.Quantity

# SI units used for internal floats
KELVIN = ureg.kelvin
PASCAL = ureg.pascal
CUBIC_METER = ureg.meter ** 3
MOL = ureg.mol
MOL_PER_M3 = ureg.mol / ureg.meter ** 3
J = ureg.joule
J_PER_MOL = ureg.joule / ureg.mol
J_PER_K = ureg.joule / ureg.kelvin
J_PER_MOL_K = ureg.joule / ureg.mol / ureg.kelvin
KG = ureg.kilogram
KG_PER_MOL = ureg.kilogram / ureg.mol


def to_si(value, unit, name: str = 'value'):
    """
    Strips a quantity to its magnitude in the given unit.

    Raises TypeError for bare numbers and pint.DimensionalityError for
    quantities of the wrong dimension.
    """
    if not isinstance(value, ureg.Quantity):
        raise TypeError(f"{name} must be a dimensioned quantity in units compatible with {unit}, got {type(value).__name__}")
    m = value.m_as(unit)
    if isinstance(m, np.ndarray):
        return m.astype(float)
    return float(m)


def is_temperature(value) -> bool:
    """ True if value carries temperature dimension, False for pressure. Anything else raises"""
    if not isinstance(value, ureg.Quantity):
        raise TypeError(f"Expected a temperature or pressure quantity, got {type(value).__name__}")
    if value.check('[temperature]'):
        return True
    if value.check('[pressure]'):
        return False
    raise pint.DimensionalityError(value.units, 'kelvin or pascal')
