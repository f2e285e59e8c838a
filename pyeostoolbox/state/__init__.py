from .state import State
from ._lib_density import solve_density, density_newton, stable_density_roots
