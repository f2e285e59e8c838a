from .phase_equilibria import PhaseEquilibrium
from ._lib_pure import vapor_pressure_lines
