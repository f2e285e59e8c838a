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

from pyeostoolbox.classes import class_dic

def validate_methods(names, variables):
    """ Converts method strings (case insensitive) to their Enum members, leaving Enum inputs untouched.
        Returns a single member when one name is passed, otherwise the list
    """
    variables = list(variables)
    for m, method in enumerate(names):
        if isinstance(variables[m], str):
            try:
                variables[m] = class_dic[method][variables[m].upper()]
            except KeyError:
                options = [e.name.lower() for e in class_dic[method]]
                raise ValueError(f"An incorrect {method} was specified: '{variables[m]}'. Options are {options}")
        elif not isinstance(variables[m], class_dic[method]):
            raise ValueError(f"{method} must be a string or {class_dic[method].__name__}, got {type(variables[m]).__name__}")
    if len(variables) == 1:
        return variables[0]
    else:
        return variables
