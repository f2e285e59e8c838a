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
"""
Forward-mode dual numbers for exact derivatives of Helmholtz energy functions.

Three types are provided, differing in the derivatives they carry:

    Dual       re + eps·ε                      first derivative along one direction
    HyperDual  re + e1·ε1 + e2·ε2 + e12·ε1ε2   two first derivatives and the mixed second
    Dual3      re + v1·ε + v2·ε² + v3·ε³       up to third derivative along one direction
               (v2 and v3 hold the plain 2nd and 3rd derivatives, not Taylor coefficients)

Components may be floats, numpy arrays (vector-valued numbers, e.g. mole numbers
carrying a seed vector) or dual numbers themselves, which gives mixed derivatives
of higher order by nesting. When two dual numbers of different nesting depth meet
in an operation, the shallower one is treated as a constant by the deeper one.
"""

import operator

import numpy as np

from pyeostoolbox.errors import DomainError


def depth(x) -> int:
    """ Nesting depth of x, 0 for plain floats and arrays"""
    d = 0
    while isinstance(x, DualNumber):
        d += 1
        x = x.re
    return d


def real_part(x):
    """ Strips every dual layer, returning the plain value"""
    while isinstance(x, DualNumber):
        x = x.re
    return x


_DUAL = 1
_CONST = 2


def _index(c, idx):
    # scalar components are broadcast constants over every element
    if isinstance(c, DualNumber) or np.ndim(c):
        return c[idx]
    return c


class DualNumber:
    """ Shared arithmetic. Subclasses define ORDER, _components, _product and _chain"""
    __array_ufunc__ = None  # ndarray (op) dual defers to the reflected dual operator
    __slots__ = ()
    ORDER = 0

    def _components(self):
        raise NotImplementedError

    def _product(self, other, op):
        raise NotImplementedError

    def _chain(self, derivs):
        raise NotImplementedError

    def _kind(self, other):
        if isinstance(other, DualNumber):
            d_self, d_other = depth(self), depth(other)
            if d_other < d_self:
                return _CONST
            if d_other == d_self and type(other) is type(self):
                return _DUAL
            return NotImplemented
        return _CONST

    @property
    def derivatives(self):
        return self._components()[1:]

    # Addition ---------------------------------------------------------------
    def __add__(self, other):
        kind = self._kind(other)
        if kind is NotImplemented:
            return NotImplemented
        comps = self._components()
        if kind == _DUAL:
            return type(self)(*(a + b for a, b in zip(comps, other._components())))
        return type(self)(comps[0] + other, *comps[1:])

    def __radd__(self, other):
        kind = self._kind(other)
        if kind is NotImplemented:
            return NotImplemented
        comps = self._components()
        return type(self)(other + comps[0], *comps[1:])

    def __sub__(self, other):
        kind = self._kind(other)
        if kind is NotImplemented:
            return NotImplemented
        comps = self._components()
        if kind == _DUAL:
            return type(self)(*(a - b for a, b in zip(comps, other._components())))
        return type(self)(comps[0] - other, *comps[1:])

    def __rsub__(self, other):
        kind = self._kind(other)
        if kind is NotImplemented:
            return NotImplemented
        comps = self._components()
        return type(self)(other - comps[0], *(-c for c in comps[1:]))

    def __neg__(self):
        return type(self)(*(-c for c in self._components()))

    def __pos__(self):
        return self

    # Multiplication ---------------------------------------------------------
    def __mul__(self, other):
        kind = self._kind(other)
        if kind is NotImplemented:
            return NotImplemented
        if kind == _DUAL:
            return self._product(other, operator.mul)
        return type(self)(*(c * other for c in self._components()))

    def __rmul__(self, other):
        kind = self._kind(other)
        if kind is NotImplemented:
            return NotImplemented
        return type(self)(*(other * c for c in self._components()))

    def __matmul__(self, other):
        kind = self._kind(other)
        if kind is NotImplemented:
            return NotImplemented
        if kind == _DUAL:
            return self._product(other, operator.matmul)
        return type(self)(*(c @ other for c in self._components()))

    def __rmatmul__(self, other):
        kind = self._kind(other)
        if kind is NotImplemented:
            return NotImplemented
        return type(self)(*(other @ c for c in self._components()))

    def reciprocal(self):
        inv = 1.0 / self._components()[0]
        inv2 = inv * inv
        return self._chain([inv, -inv2, 2.0 * inv2 * inv, -6.0 * inv2 * inv2][:self.ORDER + 1])

    def __truediv__(self, other):
        kind = self._kind(other)
        if kind is NotImplemented:
            return NotImplemented
        if kind == _DUAL:
            return self * other.reciprocal()
        return type(self)(*(c / other for c in self._components()))

    def __rtruediv__(self, other):
        kind = self._kind(other)
        if kind is NotImplemented:
            return NotImplemented
        return self.reciprocal() * other

    def __pow__(self, other):
        if isinstance(other, DualNumber):
            return exp(other * log(self))
        return powf(self, other)

    def __rpow__(self, other):
        return exp(self * log(other))

    # Misc -------------------------------------------------------------------
    def __getitem__(self, idx):
        return type(self)(*(_index(c, idx) for c in self._components()))

    def __lt__(self, other):
        return real_part(self) < real_part(other)

    def __le__(self, other):
        return real_part(self) <= real_part(other)

    def __gt__(self, other):
        return real_part(self) > real_part(other)

    def __ge__(self, other):
        return real_part(self) >= real_part(other)

    def __abs__(self):
        return -self if real_part(self) < 0 else self

    def __repr__(self):
        comps = ', '.join(repr(c) for c in self._components())
        return f"{type(self).__name__}({comps})"


class Dual(DualNumber):
    """ First derivative along one direction"""
    __slots__ = ('re', 'eps')
    ORDER = 1

    def __init__(self, re, eps=0.0):
        self.re = re
        self.eps = eps

    def _components(self):
        return (self.re, self.eps)

    def _product(self, other, op):
        return Dual(op(self.re, other.re), op(self.re, other.eps) + op(self.eps, other.re))

    def _chain(self, derivs):
        return Dual(derivs[0], derivs[1] * self.eps)


class HyperDual(DualNumber):
    """ First derivatives along two directions plus the mixed second derivative"""
    __slots__ = ('re', 'eps1', 'eps2', 'eps1eps2')
    ORDER = 2

    def __init__(self, re, eps1=0.0, eps2=0.0, eps1eps2=0.0):
        self.re = re
        self.eps1 = eps1
        self.eps2 = eps2
        self.eps1eps2 = eps1eps2

    def _components(self):
        return (self.re, self.eps1, self.eps2, self.eps1eps2)

    def _product(self, other, op):
        a0, a1, a2, a12 = self._components()
        b0, b1, b2, b12 = other._components()
        return HyperDual(op(a0, b0),
                         op(a0, b1) + op(a1, b0),
                         op(a0, b2) + op(a2, b0),
                         op(a0, b12) + op(a1, b2) + op(a2, b1) + op(a12, b0))

    def _chain(self, derivs):
        f0, f1, f2 = derivs[:3]
        return HyperDual(f0, f1 * self.eps1, f1 * self.eps2, f1 * self.eps1eps2 + f2 * (self.eps1 * self.eps2))


class Dual3(DualNumber):
    """ First, second and third derivative along one direction"""
    __slots__ = ('re', 'v1', 'v2', 'v3')
    ORDER = 3

    def __init__(self, re, v1=0.0, v2=0.0, v3=0.0):
        self.re = re
        self.v1 = v1
        self.v2 = v2
        self.v3 = v3

    def _components(self):
        return (self.re, self.v1, self.v2, self.v3)

    def _product(self, other, op):
        a0, a1, a2, a3 = self._components()
        b0, b1, b2, b3 = other._components()
        return Dual3(op(a0, b0),
                     op(a0, b1) + op(a1, b0),
                     op(a0, b2) + 2.0 * op(a1, b1) + op(a2, b0),
                     op(a0, b3) + 3.0 * op(a1, b2) + 3.0 * op(a2, b1) + op(a3, b0))

    def _chain(self, derivs):
        f0, f1, f2, f3 = derivs[:4]
        v1, v2, v3 = self.v1, self.v2, self.v3
        return Dual3(f0,
                     f1 * v1,
                     f1 * v2 + f2 * (v1 * v1),
                     f1 * v3 + 3.0 * f2 * (v1 * v2) + f3 * (v1 * v1 * v1))


# =============================================================================
# Generic functions (floats, arrays and dual numbers alike)
# =============================================================================
def _check_positive(function: str, x):
    if np.any(np.asarray(x) <= 0):
        raise DomainError(function, x)


def log(x):
    if isinstance(x, DualNumber):
        re = x.re
        _check_positive('log', real_part(re))
        inv = 1.0 / re
        derivs = [log(re), inv]
        if x.ORDER > 1:
            derivs.append(-inv * inv)
        if x.ORDER > 2:
            derivs.append(2.0 * inv * inv * inv)
        return x._chain(derivs)
    _check_positive('log', x)
    return np.log(x)


def exp(x):
    if isinstance(x, DualNumber):
        e = exp(x.re)
        return x._chain([e] * (x.ORDER + 1))
    return np.exp(x)


def sqrt(x):
    if isinstance(x, DualNumber):
        re = x.re
        _check_positive('sqrt', real_part(re))
        s = sqrt(re)
        derivs = [s, 0.5 / s]
        if x.ORDER > 1:
            derivs.append(-0.25 / (s * re))
        if x.ORDER > 2:
            derivs.append(0.375 / (s * re * re))
        return x._chain(derivs)
    if np.any(np.asarray(x) < 0):
        raise DomainError('sqrt', x)
    return np.sqrt(x)


def powf(x, n):
    """ x**n for a constant exponent n"""
    n = float(n)
    if isinstance(x, DualNumber):
        re = x.re
        coeff = [1.0, n, n * (n - 1.0), n * (n - 1.0) * (n - 2.0)]
        derivs = [powf(re, n)]
        for k in range(1, x.ORDER + 1):
            # zero coefficients stay exact zeros (x**2 has no third derivative, even at x = 0)
            derivs.append(0.0 if coeff[k] == 0.0 else coeff[k] * powf(re, n - k))
        return x._chain(derivs)
    xa = np.asarray(x, dtype=float)
    if not n.is_integer() and np.any(xa < 0):
        raise DomainError(f'power {n}', x)
    if n < 0 and np.any(xa == 0):
        raise DomainError(f'power {n}', x)
    return np.power(xa, n) if xa.ndim else float(xa ** n)


def dsum(x):
    """ Sum over the elements of a vector-valued number"""
    if isinstance(x, DualNumber):
        return type(x)(*(dsum(c) for c in x._components()))
    return np.sum(x)


def is_finite(x) -> bool:
    if isinstance(x, DualNumber):
        return all(is_finite(c) for c in x._components())
    return bool(np.all(np.isfinite(x)))
