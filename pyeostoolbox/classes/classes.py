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

from enum import Enum

class Contributions(Enum):  # Helmholtz energy terms included in a property
    IDEAL_GAS = 0
    RESIDUAL = 1
    TOTAL = 2

class DensityInitialization(Enum):  # Starting point of the density iteration
    VAPOR = 0
    LIQUID = 1
    NONE = 2

class Verbosity(Enum):  # Solver log output
    NONE = 0
    RESULT = 1
    ITER = 2

class IdentifierOption(Enum):  # Identifier field used to look up substances
    CAS = 0
    NAME = 1
    IUPAC_NAME = 2
    SMILES = 3
    INCHI = 4
    FORMULA = 5

class IterationStatus(Enum):  # State of a bounded iteration loop
    CONTINUE = 0
    CONVERGED = 1
    EXCEEDED = 2

class_dic = {
    "contributions": Contributions,
    "density_initialization": DensityInitialization,
    "verbosity": Verbosity,
    "search_option": IdentifierOption,
}
