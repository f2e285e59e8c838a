#!/usr/bin/env python3
"""
Validation tests for shared solver helpers and method string validation.
Run with: python3 -m pytest pyeostoolbox/tests/ -v
Or standalone: python3 pyeostoolbox/tests/test_shared_fns.py
"""

import sys
import os
import numpy as np

sys.path.insert(0, os.path.join(os.path.dirname(__file__), '..', '..'))
from pyeostoolbox.shared_fns import SolverOptions, check_convergence, solve_rachford_rice, wilson_k_values
from pyeostoolbox.classes import IterationStatus, Verbosity, DensityInitialization
from pyeostoolbox.validate import validate_methods

ATOL = 1e-10

# =============================================================================
# Rachford-Rice
# =============================================================================

def test_rachford_rice_binary():
    """z = (0.5, 0.5), K = (2, 0.5) splits into equal amounts of vapor and liquid"""
    v, x, y = solve_rachford_rice(np.array([0.5, 0.5]), np.array([2.0, 0.5]))
    assert abs(v - 0.5) < ATOL, f"Vapor fraction {v}"
    assert np.allclose(x, [1 / 3, 2 / 3], atol=ATOL), f"Liquid {x}"
    assert np.allclose(y, [2 / 3, 1 / 3], atol=ATOL), f"Vapor {y}"

def test_rachford_rice_material_balance():
    z = np.array([0.2, 0.3, 0.4, 0.1])
    k = np.array([5.0, 1.5, 0.4, 0.05])
    v, x, y = solve_rachford_rice(z, k)
    assert 0 < v < 1
    assert np.allclose((1 - v) * x + v * y, z, atol=1e-9), "Material balance violated"
    assert np.allclose(y, k * x, atol=1e-9), "Equilibrium relation violated"

def test_rachford_rice_single_phase():
    v, x, y = solve_rachford_rice(np.array([0.5, 0.5]), np.array([0.5, 0.8]))
    assert v == 0.0, "All K < 1 must give all liquid"
    v, x, y = solve_rachford_rice(np.array([0.5, 0.5]), np.array([1.5, 3.0]))
    assert v == 1.0, "All K > 1 must give all vapor"

def test_wilson_k_values():
    """K = 1 at the critical point of a component"""
    k = wilson_k_values(np.array([369.96]), np.array([4.25e6]), np.array([0.153]), 369.96, 4.25e6)
    assert abs(k[0] - 1.0) < 1e-14

# =============================================================================
# Options and loop state
# =============================================================================

def test_solver_options_defaults():
    max_iter, tol, verbosity = SolverOptions().unwrap_or(25, 1e-9)
    assert (max_iter, tol, verbosity) == (25, 1e-9, Verbosity.NONE)
    max_iter, tol, verbosity = SolverOptions(max_iter=7, tol=1e-4, verbosity='iter').unwrap_or(25, 1e-9)
    assert (max_iter, tol, verbosity) == (7, 1e-4, Verbosity.ITER)

def test_solver_options_validation():
    for kwargs in ({'max_iter': 0}, {'tol': -1.0}, {'verbosity': 'loud'}):
        try:
            SolverOptions(**kwargs)
            assert False, f"Expected ValueError for {kwargs}"
        except ValueError:
            pass

def test_check_convergence():
    assert check_convergence(1, 10, 1e-12, 1e-12, 1e-10) == IterationStatus.CONVERGED
    assert check_convergence(3, 10, 1.0, 1e-12, 1e-10) == IterationStatus.CONTINUE
    assert check_convergence(10, 10, 1.0, 1.0, 1e-10) == IterationStatus.EXCEEDED
    assert check_convergence(2, 10, np.nan, 0.0, 1e-10) == IterationStatus.EXCEEDED
    assert check_convergence(2, 10, 0.0, np.inf, 1e-10) == IterationStatus.EXCEEDED

def test_check_convergence_needs_small_step():
    # A small residual alone does not converge while the iterate still moves
    assert check_convergence(2, 10, 1e-14, 0.5, 1e-10) == IterationStatus.CONTINUE
    assert check_convergence(2, 10, 1e-14, 1e-9, 1e-10, 1e-8) == IterationStatus.CONVERGED
    assert check_convergence(2, 10, 1e-14, 1e-9, 1e-10) == IterationStatus.CONTINUE

def test_validate_methods():
    assert validate_methods(['density_initialization'], ['Vapor']) == DensityInitialization.VAPOR
    res = validate_methods(['verbosity', 'density_initialization'], ['result', DensityInitialization.LIQUID])
    assert res == [Verbosity.RESULT, DensityInitialization.LIQUID]
    try:
        validate_methods(['density_initialization'], ['gaseous'])
        assert False, "Expected ValueError"
    except ValueError:
        pass


if __name__ == '__main__':
    print("=" * 70)
    print("SHARED FUNCTIONS VALIDATION TESTS")
    print("=" * 70)

    tests = [v for k, v in globals().items() if k.startswith('test_')]
    passed = 0
    failed = 0
    errors = []

    for test in tests:
        try:
            test()
            passed += 1
            print(f"  PASS: {test.__name__}")
        except Exception as e:
            failed += 1
            errors.append((test.__name__, str(e)))
            print(f"  FAIL: {test.__name__}: {e}")

    print(f"\n{'=' * 70}")
    print(f"Results: {passed} passed, {failed} failed out of {passed + failed}")

    print("=" * 70)
    sys.exit(1 if failed > 0 else 0)
