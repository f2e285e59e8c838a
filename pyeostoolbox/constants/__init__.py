from .constants import R, T0, P0, CP_TRANSLATIONAL, OMEGA_A, OMEGA_B, SQRT2, MAX_DENSITY_FRACTION
