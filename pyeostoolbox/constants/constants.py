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


# Constants
R = 8.31446261815324  # Universal gas constant, J/(mol·K)
T0 = 298.15  # Reference temperature for ideal gas properties (K)
P0 = 1e5  # Reference pressure for ideal gas properties (Pa)
CP_TRANSLATIONAL = 2.5 * R  # Ideal gas heat capacity without Joback record, J/(mol·K)

OMEGA_A = 0.45724  # Peng-Robinson attraction constant
OMEGA_B = 0.07780  # Peng-Robinson covolume constant
SQRT2 = 2.0 ** 0.5

MAX_DENSITY_FRACTION = 0.9  # Fraction of 1/b used as maximum packing density
