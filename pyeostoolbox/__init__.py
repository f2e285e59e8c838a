"""
pyeostoolbox
===================================

-----------------------------------------------------------
Helmholtz Energy Equations of State and Phase Equilibria
-----------------------------------------------------------

Thermodynamic properties from a residual Helmholtz energy model, with all
derivatives obtained exactly by evaluating the model on (hyper-)dual numbers.

Note: Functions are grouped into modules, requiring separate imports

Includes;

- Dual, hyper-dual and third order dual numbers
- Parameter records with JSON ingestion and Joback ideal gas heat capacities
- Peng-Robinson equation of state
- Thermodynamic states from (T, V, n), (T, p, n), (p, h, n), (p, s, n), (T, h, n) and (T, s, n)
- Tangent plane stability analysis
- Pure substance VLE, tp-flash, bubble and dew points and binary heteroazeotropes
- Critical points of pure substances, mixtures and binaries at fixed T or p
- Phase diagrams by continuation, exportable as pandas DataFrames

All physical inputs and outputs are pint quantities from pyeostoolbox.units.ureg
"""

submodules = [
    'classes',
    'constants',
    'critical_point',
    'cubic',
    'dual',
    'eos',
    'errors',
    'parameter',
    'phase_diagram',
    'phase_equilibria',
    'shared_fns',
    'stability',
    'state',
    'units',
    'validate'
]

__all__ = submodules

import importlib

def __dir__():
    return __all__


def __getattr__(name):
    if name in submodules:
        return importlib.import_module(f'pyeostoolbox.{name}')
    else:
        try:
            return globals()[name]
        except KeyError:
            raise AttributeError(
                f"Module 'pyeostoolbox' has no attribute '{name}'"
            )
