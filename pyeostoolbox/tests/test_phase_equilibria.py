#!/usr/bin/env python3
"""
Validation tests for phase equilibria.
Run with: python3 -m pytest pyeostoolbox/tests/ -v
Or standalone: python3 pyeostoolbox/tests/test_phase_equilibria.py
"""

import sys
import os
import numpy as np

sys.path.insert(0, os.path.join(os.path.dirname(__file__), '..', '..'))
from pyeostoolbox.cubic import PengRobinsonParameters, PengRobinson
from pyeostoolbox.phase_equilibria import PhaseEquilibrium
from pyeostoolbox.errors import (SuperCritical, NoPhaseSplit, IncompatibleComponents, TrivialSolution,
                                 ConvergenceFailure)
from pyeostoolbox.constants import R
from pyeostoolbox.units import ureg

RTOL = 1e-6  # Equality of pressures and chemical potentials between phases

K = ureg.kelvin
PA = ureg.pascal
BAR = ureg.bar
MOL = ureg.mol


def propane():
    return PengRobinson(PengRobinsonParameters.new_simple([369.96], [4.25e6], [0.153], [44.0962]))


def propane_butane():
    return PengRobinson(PengRobinsonParameters.new_simple([369.96, 425.2], [4.25e6, 3.8e6], [0.153, 0.199],
                                                          [44.0962, 58.123]))


def propane_hexane(k_ij):
    return PengRobinson(PengRobinsonParameters.new_simple([369.96, 507.6], [4.25e6, 3.025e6], [0.153, 0.301],
                                                          [44.0962, 86.177], [[0.0, k_ij], [k_ij, 0.0]]))


def propane_twice(k_ij):
    """Two identical propane records, a symmetric binary with an azeotrope at x = 0.5"""
    return PengRobinson(PengRobinsonParameters.new_simple([369.96, 369.96], [4.25e6, 4.25e6], [0.153, 0.153],
                                                          [44.0962, 44.0962], [[0.0, k_ij], [k_ij, 0.0]]))


def _assert_equilibrium(vle):
    v, l = vle.vapor, vle.liquid
    t = v.temperature.m_as('K')
    assert abs(t - l.temperature.m_as('K')) < 1e-12, "Temperatures differ"
    pv, pl = v.pressure().m_as('Pa'), l.pressure().m_as('Pa')
    assert abs(pv / pl - 1.0) < RTOL, f"Pressures differ: {pv} vs {pl}"
    fv = np.log(v.molefracs) + v.ln_phi()
    fl = np.log(l.molefracs) + l.ln_phi()
    assert np.allclose(fv, fl, atol=1e-7), f"Fugacities differ: {fv} vs {fl}"
    assert v.density < l.density, "Vapor must be the lower density phase"

# =============================================================================
# Pure substances
# =============================================================================

def test_pure_vle_at_temperature():
    vle = PhaseEquilibrium.pure(propane(), 300 * K)
    _assert_equilibrium(vle)
    mu_v = vle.vapor.chemical_potential().m_as('J/mol')[0]
    mu_l = vle.liquid.chemical_potential().m_as('J/mol')[0]
    assert abs(mu_v - mu_l) < RTOL * R * 300, f"Chemical potentials differ: {mu_v} vs {mu_l}"
    p = vle.pressure.m_as('Pa')
    assert 0.9e6 < p < 1.1e6, f"Vapor pressure of propane at 300 K: {p} Pa"

def test_pure_vle_near_critical_densities():
    """Peng-Robinson puts the liquid to vapor density ratio of propane near 8.5 at 0.9 Tc"""
    vle = PhaseEquilibrium.pure_t(propane(), 0.9 * 369.96 * K)
    _assert_equilibrium(vle)
    ratio = (vle.liquid.density / vle.vapor.density).m_as('')
    assert 7.0 < ratio < 10.0, f"Density ratio {ratio}"

def test_pure_vle_at_pressure():
    eos = propane()
    vle = PhaseEquilibrium.pure(eos, 10 * BAR)
    _assert_equilibrium(vle)
    assert abs(vle.pressure.m_as('Pa') / 1e6 - 1.0) < 1e-8, f"Pressure {vle.pressure}"
    t = vle.temperature
    vle_t = PhaseEquilibrium.pure_t(eos, t)
    assert abs(vle_t.pressure.m_as('Pa') / 1e6 - 1.0) < 1e-6

def test_pure_vle_continuation():
    eos = propane()
    vle = PhaseEquilibrium.pure_t(eos, 300 * K)
    vle2 = PhaseEquilibrium.pure_t(eos, 305 * K, initial_state=vle)
    _assert_equilibrium(vle2)
    assert vle2.pressure > vle.pressure

def test_pure_supercritical():
    try:
        PhaseEquilibrium.pure_t(propane(), 400 * K)
        assert False, "Expected SuperCritical"
    except SuperCritical:
        pass

def test_pure_requires_one_component():
    try:
        PhaseEquilibrium.pure_t(propane_butane(), 300 * K)
        assert False, "Expected IncompatibleComponents"
    except IncompatibleComponents:
        pass

def test_vapor_pressure_and_boiling_temperature():
    eos = propane_butane()
    psat = PhaseEquilibrium.vapor_pressure(eos, 400 * K)
    assert psat[0] is None, "Propane is supercritical at 400 K"
    assert psat[1] is not None and 1e6 < psat[1].m_as('Pa') < 3.8e6, f"Butane vapor pressure {psat[1]}"
    tb = PhaseEquilibrium.boiling_temperature(eos, 1.01325 * BAR)
    assert 225 < tb[0].m_as('K') < 237, f"Propane boiling point {tb[0]}"
    assert 265 < tb[1].m_as('K') < 277, f"Butane boiling point {tb[1]}"

# =============================================================================
# Mixtures
# =============================================================================

def test_bubble_point_at_temperature():
    eos = propane_butane()
    vle = PhaseEquilibrium.bubble_point(eos, 300 * K, np.array([0.5, 0.5]))
    _assert_equilibrium(vle)
    assert np.allclose(vle.liquid.molefracs, [0.5, 0.5]), "Liquid composition must be kept"
    y = vle.vapor.molefracs
    assert y[0] > 0.5, f"Vapor must be enriched in propane: {y}"
    p = vle.pressure.m_as('Pa')
    assert 2.6e5 < p < 1.0e6, f"Bubble pressure {p}"

def test_dew_point_below_bubble_point():
    eos = propane_butane()
    z = np.array([0.5, 0.5])
    bubble = PhaseEquilibrium.bubble_point(eos, 300 * K, z)
    dew = PhaseEquilibrium.dew_point(eos, 300 * K, z)
    _assert_equilibrium(dew)
    assert np.allclose(dew.vapor.molefracs, z)
    assert dew.pressure < bubble.pressure, f"Dew {dew.pressure} above bubble {bubble.pressure}"

def test_bubble_point_at_pressure():
    eos = propane_butane()
    vle = PhaseEquilibrium.bubble_point(eos, 5 * BAR, np.array([0.5, 0.5]))
    _assert_equilibrium(vle)
    assert abs(vle.pressure.m_as('Pa') / 5e5 - 1.0) < 1e-8
    vle_t = PhaseEquilibrium.bubble_point(eos, vle.temperature, np.array([0.5, 0.5]))
    assert abs(vle_t.pressure.m_as('Pa') / 5e5 - 1.0) < 1e-6

def test_dew_point_at_pressure():
    eos = propane_butane()
    vle = PhaseEquilibrium.dew_point(eos, 5 * BAR, np.array([0.3, 0.7]))
    _assert_equilibrium(vle)
    assert np.allclose(vle.vapor.molefracs, [0.3, 0.7])

def test_tp_flash():
    eos = propane_butane()
    feed = np.array([0.5, 0.5]) * MOL
    vle = PhaseEquilibrium.tp_flash(eos, 300 * K, 5 * BAR, feed)
    _assert_equilibrium(vle)
    total = vle.vapor.moles.m_as('mol') + vle.liquid.moles.m_as('mol')
    assert np.allclose(total, [0.5, 0.5], atol=1e-12), f"Material balance {total}"
    for s in vle:
        assert abs(s.pressure().m_as('Pa') / 5e5 - 1.0) < 1e-8

def test_tp_flash_from_initial_state():
    eos = propane_butane()
    feed = np.array([0.5, 0.5]) * MOL
    vle = PhaseEquilibrium.tp_flash(eos, 300 * K, 5 * BAR, feed)
    vle2 = PhaseEquilibrium.tp_flash(eos, 302 * K, 5 * BAR, feed, initial_state=vle)
    _assert_equilibrium(vle2)
    assert vle2.vapor.total_moles > vle.vapor.total_moles, "Heating vaporizes"

def test_tp_flash_stable_feed():
    try:
        PhaseEquilibrium.tp_flash(propane_butane(), 500 * K, 1 * BAR, np.array([0.5, 0.5]) * MOL)
        assert False, "Expected NoPhaseSplit"
    except NoPhaseSplit:
        pass

def test_heteroazeotrope_requires_binary():
    try:
        PhaseEquilibrium.heteroazeotrope(propane(), 300 * K, (0.1, 0.9))
        assert False, "Expected IncompatibleComponents"
    except IncompatibleComponents:
        pass

def test_bubble_point_at_azeotrope():
    """Vapor and liquid share the composition of an azeotrope but not the density"""
    eos = propane_twice(0.05)
    vle = PhaseEquilibrium.bubble_point(eos, 300 * K, np.array([0.5, 0.5]))
    _assert_equilibrium(vle)
    assert np.allclose(vle.vapor.molefracs, [0.5, 0.5], atol=1e-6), f"Vapor {vle.vapor.molefracs}"
    assert vle.liquid.density > 2.0 * vle.vapor.density
    psat = PhaseEquilibrium.pure_t(propane(), 300 * K).pressure
    assert vle.pressure > psat, f"Positive deviation must raise the pressure: {vle.pressure} vs {psat}"

def test_heteroazeotrope():
    eos = propane_hexane(0.25)
    vle = PhaseEquilibrium.heteroazeotrope(eos, 300 * K, (0.2, 0.9))
    assert len(vle) == 3 and vle.phase_labels == ['vapor', 'liquid 1', 'liquid 2']
    x1, x2 = vle.liquid1.molefracs[0], vle.liquid2.molefracs[0]
    assert abs(x1 - x2) > 0.5, f"Liquids must be distinct: {x1} vs {x2}"
    p = [s.pressure().m_as('Pa') for s in vle]
    assert max(p) / min(p) - 1.0 < RTOL, f"Pressures differ: {p}"
    mu = [s.chemical_potential().m_as('J/mol') for s in vle]
    for m in mu[1:]:
        assert np.allclose(m, mu[0], atol=RTOL * R * 300), f"Chemical potentials differ: {mu}"
    assert vle.vapor.density < min(vle.liquid1.density, vle.liquid2.density)
    psat = PhaseEquilibrium.pure_t(propane(), 300 * K).pressure
    assert 0.5 * psat < vle.pressure < 1.1 * psat, f"Heteroazeotropic pressure {vle.pressure}"

def test_heteroazeotrope_never_returns_one_liquid_twice():
    """Starting points that collapse both liquids onto one composition are rejected"""
    for k_ij in (0.25, 0.3):
        try:
            vle = PhaseEquilibrium.heteroazeotrope(propane_hexane(k_ij), 300 * K, (0.3, 0.85))
        except (TrivialSolution, ConvergenceFailure):
            continue
        x1, x2 = vle.liquid1.molefracs[0], vle.liquid2.molefracs[0]
        assert abs(x1 - x2) > 1e-3, f"Identical liquids returned for k_ij = {k_ij}: {x1} vs {x2}"

def test_phase_equilibrium_container():
    eos = propane()
    vle = PhaseEquilibrium.pure_t(eos, 300 * K)
    flipped = PhaseEquilibrium([vle.liquid, vle.vapor])
    assert flipped.vapor.density < flipped.liquid.density, "Phases are ordered by density"
    assert len(flipped) == 2 and flipped.phase_labels == ['vapor', 'liquid']
    assert 'vapor' in repr(vle)
    try:
        PhaseEquilibrium([vle.vapor])
        assert False, "Expected ValueError"
    except ValueError:
        pass


if __name__ == '__main__':
    print("=" * 70)
    print("PHASE EQUILIBRIA MODULE VALIDATION TESTS")
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
