#!/usr/bin/env python3
"""
Validation tests for phase diagrams.
Run with: python3 -m pytest pyeostoolbox/tests/ -v
Or standalone: python3 pyeostoolbox/tests/test_phase_diagram.py
"""

import sys
import os
import numpy as np

sys.path.insert(0, os.path.join(os.path.dirname(__file__), '..', '..'))
from pyeostoolbox.cubic import PengRobinsonParameters, PengRobinson
from pyeostoolbox.phase_equilibria import PhaseEquilibrium
from pyeostoolbox.phase_diagram import PhaseDiagram, PhaseDiagramHetero
from pyeostoolbox.errors import IncompatibleComponents
from pyeostoolbox.units import ureg

RTOL_TC = 1e-4
RTOL = 1e-6

K = ureg.kelvin
BAR = ureg.bar


def propane():
    return PengRobinson(PengRobinsonParameters.new_simple([369.96], [4.25e6], [0.153], [44.0962]))


def propane_butane():
    return PengRobinson(PengRobinsonParameters.new_simple([369.96, 425.2], [4.25e6, 3.8e6], [0.153, 0.199],
                                                          [44.0962, 58.123]))


def propane_hexane(k_ij):
    return PengRobinson(PengRobinsonParameters.new_simple([369.96, 507.6], [4.25e6, 3.025e6], [0.153, 0.301],
                                                          [44.0962, 86.177], [[0.0, k_ij], [k_ij, 0.0]]))


def propane_twice(k_ij):
    return PengRobinson(PengRobinsonParameters.new_simple([369.96, 369.96], [4.25e6, 4.25e6], [0.153, 0.153],
                                                          [44.0962, 44.0962], [[0.0, k_ij], [k_ij, 0.0]]))

# =============================================================================
# Pure substances
# =============================================================================

def test_pure_phase_diagram():
    dia = PhaseDiagram.pure(propane(), 250 * K, 11)
    assert len(dia) == 11, f"Expected 11 points, got {len(dia)}"
    p = np.array([vle.pressure.m_as('Pa') for vle in dia.states])
    assert np.all(np.diff(p) > 0), f"Vapor pressure must increase with temperature: {p}"
    last = dia[-1]
    assert abs(last.temperature.m_as('K') / 369.96 - 1.0) < RTOL_TC, f"Last point {last.temperature}"
    assert last.vapor is last.liquid or abs(last.vapor._rho / last.liquid._rho - 1.0) < 1e-12, \
        "Critical point closes the diagram"
    for vle in dia.states[:-1]:
        assert vle.liquid.density > vle.vapor.density

def test_pure_phase_diagram_points_match_single_calculation():
    eos = propane()
    dia = PhaseDiagram.pure(eos, 300 * K, 5)
    vle = PhaseEquilibrium.pure_t(eos, 300 * K)
    p0 = dia[0].pressure.m_as('Pa')
    p1 = vle.pressure.m_as('Pa')
    assert abs(p0 / p1 - 1.0) < RTOL, f"{p0} vs {p1}"

def test_pure_phase_diagram_frame():
    dia = PhaseDiagram.pure(propane(), 250 * K, 11)
    df = dia.to_frame()
    assert len(df) == 11, f"Frame has {len(df)} rows"
    assert any(c.startswith('temperature') for c in df.columns), f"Columns: {list(df.columns)}"
    assert any(c.startswith('density liquid') for c in df.columns)
    assert 'temperature' in str(dia)

def test_phase_diagram_iteration_is_restartable():
    dia = PhaseDiagram.pure(propane(), 300 * K, 4)
    first = [vle.temperature.m_as('K') for vle in dia]
    second = [vle.temperature.m_as('K') for vle in dia]
    assert first == second and len(first) == 4
    assert len(dia.vapor) == 4 and len(dia.liquid) == 4

def test_pure_phase_diagram_npoints():
    try:
        PhaseDiagram.pure(propane(), 300 * K, 1)
        assert False, "Expected ValueError"
    except ValueError:
        pass

# =============================================================================
# Binary mixtures
# =============================================================================

def test_binary_vle_subcritical():
    eos = propane_butane()
    dia = PhaseDiagram.binary_vle(eos, 300 * K, 11)
    assert len(dia) == 11, f"Expected 11 points, got {len(dia)}"
    p = np.array([vle.pressure.m_as('Pa') for vle in dia.states])
    assert np.all(np.diff(p) > 0), f"Bubble pressure must increase with propane content: {p}"
    psat = PhaseEquilibrium.vapor_pressure(eos, 300 * K)
    assert abs(p[0] / psat[1].m_as('Pa') - 1.0) < 1e-5, "First point is pure butane"
    assert abs(p[-1] / psat[0].m_as('Pa') - 1.0) < 1e-5, "Last point is pure propane"
    for vle in dia.states[1:-1]:
        assert vle.vapor.molefracs[0] > vle.liquid.molefracs[0], "Vapor is enriched in propane"

def test_binary_vle_supercritical_component():
    eos = propane_butane()
    dia = PhaseDiagram.binary_vle(eos, 400 * K, 21)
    assert len(dia) >= 2, f"Expected a branch from pure butane, got {len(dia)} points"
    psat = PhaseEquilibrium.vapor_pressure(eos, 400 * K)[1].m_as('Pa')
    p = np.array([vle.pressure.m_as('Pa') for vle in dia.states])
    assert abs(p[0] / psat - 1.0) < 1e-5
    assert np.all(p[1:] > psat)

def test_binary_vle_at_pressure():
    dia = PhaseDiagram.binary_vle(propane_butane(), 5 * BAR, 6)
    t = np.array([vle.temperature.m_as('K') for vle in dia.states])
    assert len(t) == 6
    assert np.all(np.diff(t) < 0), f"Bubble temperature must fall with propane content: {t}"
    assert any(c.startswith('x0 vapor') for c in dia.to_frame().columns)

def test_binary_vle_frame():
    dia = PhaseDiagram.binary_vle(propane_butane(), 300 * K, 5)
    df = dia.to_frame()
    assert len(dia) == 5 and len(df) == 5
    x0 = [c for c in df.columns if c.startswith('x0 liquid')]
    assert len(x0) == 1 and any(c.startswith('x1 vapor') for c in df.columns), f"Columns: {list(df.columns)}"
    assert np.allclose(df[x0[0]], np.linspace(0.0, 1.0, 5))

def test_binary_vle_with_azeotrope():
    """A maximum pressure azeotrope: the vapor is richer in the first component below x0 = 0.5 only"""
    dia = PhaseDiagram.binary_vle(propane_twice(0.05), 300 * K, 11)
    assert len(dia) == 11, f"Expected 11 points, got {len(dia)}"
    p = np.array([vle.pressure.m_as('Pa') for vle in dia.states])
    assert np.argmax(p) == 5, f"Pressure maximum must sit at x0 = 0.5: {p}"
    assert np.allclose(p, p[::-1], rtol=1e-6), "Symmetric mixture gives a symmetric pxy diagram"
    mid = dia.states[5]
    assert np.allclose(mid.vapor.molefracs, mid.liquid.molefracs, atol=1e-6)
    for vle in dia.states[1:5]:
        assert vle.vapor.molefracs[0] > vle.liquid.molefracs[0]
    for vle in dia.states[6:-1]:
        assert vle.vapor.molefracs[0] < vle.liquid.molefracs[0]
    df = dia.to_frame()
    pressure = [c for c in df.columns if c.startswith('pressure')][0]
    assert len(df) == 11 and df[pressure].idxmax() == 5

# =============================================================================
# Liquid-liquid and heteroazeotropic diagrams
# =============================================================================

def test_lle_diagram():
    eos = propane_hexane(0.25)
    feed = np.array([0.5, 0.5]) * ureg.mol
    dia = PhaseDiagram.lle(eos, 300 * K, feed, 15 * BAR, 50 * BAR, 5)
    assert len(dia) == 5, f"Expected 5 points, got {len(dia)}"
    for vle, p in zip(dia.states, np.linspace(15e5, 50e5, 5)):
        x = [vle.vapor.molefracs[0], vle.liquid.molefracs[0]]
        assert abs(x[0] - x[1]) > 0.3, f"Liquids must be distinct at {p} Pa: {x}"
        for s in vle:
            assert abs(s.pressure().m_as('Pa') / p - 1.0) < RTOL
        assert vle.vapor.density.m_as('mol/m^3') > 5000.0, "Both phases are liquids"
    assert len(dia.to_frame()) == 5

def test_hetero_phase_diagram():
    eos = propane_hexane(0.25)
    dia = PhaseDiagramHetero.new(eos, 300 * K, (0.2, 0.9), tp_lim_lle=50 * BAR, npoints_vle=11, npoints_lle=5)
    het = dia.heteroazeotrope
    assert len(het) == 3
    x_het = sorted([het.liquid1.molefracs[0], het.liquid2.molefracs[0]])
    assert x_het[1] - x_het[0] > 0.5, f"Heteroazeotropic liquids {x_het}"
    p_het = het.pressure.m_as('Pa')

    assert len(dia.vle1) == 11 and len(dia.vle2) == 11
    assert abs(dia.vle1[0].liquid.molefracs[0]) < 1e-12, "First branch starts at pure n-hexane"
    assert abs(dia.vle2[0].liquid.molefracs[0] - 1.0) < 1e-12, "Second branch starts at pure propane"
    for branch, x_end in ((dia.vle1, x_het[0]), (dia.vle2, x_het[1])):
        end = branch[-1]
        assert abs(end.liquid.molefracs[0] - x_end) < 1e-10
        assert abs(end.pressure.m_as('Pa') / p_het - 1.0) < 1e-5, "Branches end at the heteroazeotrope"
    assert len(dia.vle) == 22

    assert dia.lle is not None and len(dia.lle) == 5, "LLE branch up to 50 bar"
    assert abs(dia.lle[0].pressure.m_as('Pa') / p_het - 1.0) < RTOL
    assert abs(dia.lle[-1].pressure.m_as('Pa') / 50e5 - 1.0) < RTOL
    for vle in dia.lle:
        assert abs(vle.vapor.molefracs[0] - vle.liquid.molefracs[0]) > 0.3

def test_binary_vle_requires_binary():
    try:
        PhaseDiagram.binary_vle(propane(), 300 * K)
        assert False, "Expected IncompatibleComponents"
    except IncompatibleComponents:
        pass

def test_hetero_requires_binary():
    try:
        PhaseDiagramHetero.new(propane(), 300 * K, (0.1, 0.9))
        assert False, "Expected IncompatibleComponents"
    except IncompatibleComponents:
        pass


if __name__ == '__main__':
    print("=" * 70)
    print("PHASE DIAGRAM MODULE VALIDATION TESTS")
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
