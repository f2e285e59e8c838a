#!/usr/bin/env python3
"""
Validation tests for thermodynamic states (Peng-Robinson propane and propane/butane).
Run with: python3 -m pytest pyeostoolbox/tests/ -v
Or standalone: python3 pyeostoolbox/tests/test_state.py
"""

import sys
import os
import numpy as np
import pint

sys.path.insert(0, os.path.join(os.path.dirname(__file__), '..', '..'))
from pyeostoolbox.cubic import PengRobinsonParameters, PengRobinson
from pyeostoolbox.state import State
from pyeostoolbox.units import ureg, Q_
from pyeostoolbox.errors import InvalidState, IncompatibleComponents
from pyeostoolbox.constants import R

RTOL_FD = 1e-6  # Central differences against dual number derivatives
RTOL = 1e-8

K = ureg.kelvin
PA = ureg.pascal
BAR = ureg.bar
MOL = ureg.mol


def propane():
    return PengRobinson(PengRobinsonParameters.new_simple([369.96], [4.25e6], [0.153], [44.0962]))


def propane_butane():
    return PengRobinson(PengRobinsonParameters.new_simple([369.96, 425.2], [4.25e6, 3.8e6], [0.153, 0.199],
                                                          [44.0962, 58.123]))

# =============================================================================
# Reference values
# =============================================================================

def test_propane_vapor_density():
    """Saturated-side vapor density of propane at 300 K and 1 bar"""
    s = State.new_npt(propane(), 300 * K, 1 * BAR, density_initialization='vapor')
    rho = s.density.m_as('mol/m^3')
    assert abs(rho / 40.76 - 1.0) < 5e-3, f"Vapor density {rho} mol/m³"
    z = s.compressibility()
    assert 0.95 < z < 1.0, f"Compressibility {z}"

def test_ideal_gas_limit():
    """Residual properties vanish at low density"""
    s = State(propane(), 300 * K, Q_(1e3, 'm^3'), 1 * MOL)
    assert abs(s.compressibility() - 1.0) < 1e-4
    assert np.all(np.abs(s.ln_phi()) < 1e-4)

# =============================================================================
# Derivatives against finite differences
# =============================================================================

def test_pressure_finite_difference():
    """p = -∂A/∂V"""
    eos = propane()
    t, v, h = 300.0, 1e-3, 1e-8
    a = [State(eos, t * K, Q_(vi, 'm^3')).helmholtz_energy().m_as('J') for vi in (v - h, v + h)]
    p_fd = -(a[1] - a[0]) / (2 * h)
    p = State(eos, t * K, Q_(v, 'm^3')).pressure().m_as('Pa')
    assert abs(p_fd / p - 1.0) < RTOL_FD, f"FD {p_fd} vs dual {p}"

def test_second_volume_derivative():
    """∂²p/∂V² from Dual3 against differences of ∂p/∂V"""
    eos = propane()
    t, v, h = 300.0, 2e-4, 1e-9
    d = [State(eos, t * K, Q_(vi, 'm^3')).dp_dv().m_as('Pa/m^3') for vi in (v - h, v + h)]
    fd = (d[1] - d[0]) / (2 * h)
    exact = State(eos, t * K, Q_(v, 'm^3')).d2p_dv2().m_as('Pa/m^6')
    assert abs(fd / exact - 1.0) < 1e-5, f"FD {fd} vs dual {exact}"

def test_entropy_finite_difference():
    """S = -∂A/∂T"""
    eos = propane()
    t, v, h = 300.0, 1e-3, 1e-5
    a = [State(eos, ti * K, Q_(v, 'm^3')).helmholtz_energy().m_as('J') for ti in (t - h, t + h)]
    s = State(eos, t * K, Q_(v, 'm^3')).entropy().m_as('J/K')
    assert abs(-(a[1] - a[0]) / (2 * h) / s - 1.0) < RTOL_FD

def test_chemical_potential_finite_difference():
    eos = propane_butane()
    t, v = 320.0, 1e-3
    n = np.array([0.4, 0.6])
    h = 1e-7
    mu = State(eos, t * K, Q_(v, 'm^3'), n * MOL).chemical_potential().m_as('J/mol')
    for i in range(2):
        e = np.zeros(2)
        e[i] = h
        a = [State(eos, t * K, Q_(v, 'm^3'), (n + sgn * e) * MOL).helmholtz_energy().m_as('J') for sgn in (-1, 1)]
        fd = (a[1] - a[0]) / (2 * h)
        assert abs(fd - mu[i]) < 1e-5 * abs(mu[i]), f"Component {i}: FD {fd} vs dual {mu[i]}"

def test_gibbs_duhem():
    """Σ_i n_i ∂ln φ_i/∂n_j = 0"""
    eos = propane_butane()
    s = State.new_npt(eos, 320 * K, 20 * BAR, np.array([0.3, 0.7]) * MOL, density_initialization='liquid')
    m = s.dln_phi_dnj().m_as('1/mol')
    res = s.moles.m_as('mol') @ m
    assert np.all(np.abs(res) < 1e-10 * np.max(np.abs(m))), f"Gibbs-Duhem residual {res}"

def test_ln_phi_temperature_derivative():
    eos = propane_butane()
    n = np.array([0.5, 0.5]) * MOL
    h = 1e-4
    lp = [State.new_npt(eos, t * K, 5 * BAR, n, 'vapor').ln_phi() for t in (330 - h, 330 + h)]
    exact = State.new_npt(eos, 330 * K, 5 * BAR, n, 'vapor').dln_phi_dt().m_as('1/K')
    fd = (lp[1] - lp[0]) / (2 * h)
    assert np.allclose(fd, exact, rtol=1e-5, atol=1e-10), f"FD {fd} vs dual {exact}"

# =============================================================================
# Constructors
# =============================================================================

def test_npt_round_trip():
    eos = propane()
    for p, init in [(1 * BAR, 'vapor'), (50 * BAR, 'liquid')]:
        s = State.new_npt(eos, 300 * K, p, density_initialization=init)
        assert abs(s.pressure().m_as('Pa') / p.m_as('Pa') - 1.0) < RTOL, f"Pressure round trip {s.pressure()}"
        assert s.dp_drho().m_as('Pa*m^3/mol') > 0, "Mechanically unstable root"

def test_liquid_denser_than_vapor():
    eos = propane()
    vap = State.new_npt(eos, 300 * K, 9 * BAR, density_initialization='vapor')
    liq = State.new_npt(eos, 300 * K, 9 * BAR, density_initialization='liquid')
    assert liq.density > 5 * vap.density, f"Liquid {liq.density}, vapor {vap.density}"

def test_nph_round_trip():
    eos = propane()
    s = State.new_npt(eos, 310 * K, 2 * BAR, density_initialization='vapor')
    s2 = State.new_nph(eos, 2 * BAR, s.molar_enthalpy(), density_initialization='vapor')
    assert abs(s2.temperature.m_as('K') - 310.0) < 1e-6, f"T = {s2.temperature}"

def test_nps_round_trip():
    eos = propane()
    s = State.new_npt(eos, 280 * K, 2 * BAR, density_initialization='vapor')
    s2 = State.new_nps(eos, 2 * BAR, s.molar_entropy(), density_initialization='vapor')
    assert abs(s2.temperature.m_as('K') - 280.0) < 1e-6, f"T = {s2.temperature}"

def test_nts_round_trip():
    eos = propane()
    s = State.new_npt(eos, 300 * K, 1 * BAR, density_initialization='vapor')
    s2 = State.new_nts(eos, 300 * K, s.molar_entropy(), density_initialization='vapor')
    assert abs(s2.density.m_as('mol/m^3') / s.density.m_as('mol/m^3') - 1.0) < 1e-8

def test_from_density_and_partial_density():
    eos = propane_butane()
    s = State.from_density(eos, 300 * K, Q_(100.0, 'mol/m^3'), molefracs=[0.25, 0.75])
    assert abs(s.total_moles.m_as('mol') - 1.0) < 1e-14
    s2 = State.from_partial_density(eos, 300 * K, Q_(np.array([25.0, 75.0]), 'mol/m^3'))
    assert abs(s.pressure().m_as('Pa') / s2.pressure().m_as('Pa') - 1.0) < 1e-12

# =============================================================================
# Properties
# =============================================================================

def test_cache_idempotence():
    s = State.new_npt(propane_butane(), 300 * K, 5 * BAR, np.array([0.5, 0.5]) * MOL, 'vapor')
    first = (s.pressure().m_as('Pa'), s.c_p().m_as('J/mol/K'), tuple(s.ln_phi()))
    second = (s.pressure().m_as('Pa'), s.c_p().m_as('J/mol/K'), tuple(s.ln_phi()))
    assert first == second, "Cached values differ between calls"

def test_heat_capacities():
    s = State.new_npt(propane(), 300 * K, 1 * BAR, density_initialization='vapor')
    cv, cp = s.c_v().m_as('J/mol/K'), s.c_p().m_as('J/mol/K')
    assert cp > cv > 0, f"cp = {cp}, cv = {cv}"
    # translational ideal gas without Joback record: cv_ig = 3/2 R
    assert abs(s.c_v('ideal_gas').m_as('J/mol/K') - 1.5 * R) < 1e-8

def test_contributions_sum():
    s = State.new_npt(propane_butane(), 300 * K, 20 * BAR, np.array([0.5, 0.5]) * MOL, 'liquid')
    parts = s.pressure_contributions()
    assert parts[0][0].startswith('Ideal gas'), f"First contribution {parts[0][0]}"
    total = sum(p.m_as('Pa') for _, p in parts)
    assert abs(total / s.pressure().m_as('Pa') - 1.0) < 1e-8
    a_parts = s.helmholtz_energy_contributions()
    assert abs(sum(a.m_as('J') for _, a in a_parts) - s.helmholtz_energy().m_as('J')) < 1e-8 * abs(
        s.helmholtz_energy().m_as('J'))

def test_thermodynamic_factor_ideal_limit():
    eos = propane_butane()
    s = State(eos, 300 * K, Q_(1e4, 'm^3'), np.array([0.5, 0.5]) * MOL)
    g = s.thermodynamic_factor()
    assert g.shape == (1, 1) and abs(g[0, 0] - 1.0) < 1e-4, f"Thermodynamic factor {g}"

def test_mass_properties():
    s = State.new_npt(propane(), 300 * K, 1 * BAR, density_initialization='vapor')
    rho_m = s.mass_density().m_as('kg/m^3')
    assert abs(rho_m - s.density.m_as('mol/m^3') * 0.0440962) < 1e-10
    c = s.speed_of_sound().m_as('m/s')
    # monatomic ideal gas heat capacity without a Joback record
    assert 250 < c < 350, f"Speed of sound {c} m/s"

# =============================================================================
# Invalid input
# =============================================================================

def test_bare_numbers_rejected():
    try:
        State.new_npt(propane(), 300.0, 1 * BAR)
        assert False, "Expected TypeError"
    except TypeError:
        pass

def test_wrong_dimension_rejected():
    try:
        State.new_npt(propane(), 1 * BAR, 1 * BAR)
        assert False, "Expected DimensionalityError"
    except pint.DimensionalityError:
        pass

def test_invalid_moles():
    eos = propane_butane()
    for n in (None, np.array([1.0, -1.0]) * MOL, np.array([1.0, 1.0, 1.0]) * MOL):
        try:
            State(eos, 300 * K, Q_(1.0, 'm^3'), n)
            assert False, f"Expected InvalidState for {n}"
        except InvalidState:
            pass
    try:
        State(eos, 300 * K, Q_(1.0, "m^3"), None)
        assert False, "Expected IncompatibleComponents"
    except IncompatibleComponents as e:
        assert e.expected == 2, f"Expected 2 components, got {e.expected}"

def test_negative_pressure_rejected():
    try:
        State.new_npt(propane(), 300 * K, -1 * BAR)
        assert False, "Expected InvalidState"
    except InvalidState:
        pass


if __name__ == '__main__':
    print("=" * 70)
    print("STATE MODULE VALIDATION TESTS")
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
