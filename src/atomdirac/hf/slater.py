"""径向库仑积分
================

给定径向密度 :math:`\\rho(r)`，计算多极库仑势

.. math::

    Y^k(r) = \\frac{1}{r^{k+1}} \\int_0^r r'^k \\rho(r')\\,dr'
           + r^k \\int_r^\\infty \\frac{\\rho(r')}{r'^{k+1}}\\,dr'

核心算法：两段累积
==================

分解为向前累积 :math:`A^k(r) = \\int_0^r r'^k \\rho\\,dr'` 与向后累积
:math:`B^k(r) = \\int_r^\\infty r'^{-k-1} \\rho\\,dr'`，
在格点指标空间用累积梯形规则（被积函数乘以 :math:`dr/di`），
总复杂度 :math:`O(N)`。

对两个旋量 a、b，密度取 :math:`\\rho_{ab} = f_a f_b + g_a g_b`。

数值稳定性
==========

- 原点与 :math:`r_0` 之间的贡献忽略（束缚态在原点处按 :math:`r^\\gamma` 趋零）；
- 密度存储长度之外视为零，势一直计算到网格末端（远处为 :math:`Q/r^{k+1}`）。

References
----------
.. [Grant] Grant, I. P. (2007)
   "Relativistic Quantum Theory of Atoms and Molecules"
   Springer, Chapter 6
"""

from __future__ import annotations

import numpy as np

from ..spinor import SpinorFunction

__all__ = [
    "coulomb_potential",
    "slater_integral_radial",
    "spinor_density",
]


def _cumulative_trapz_forward(y: np.ndarray) -> np.ndarray:
    F = np.zeros_like(y)
    if y.size > 1:
        F[1:] = np.cumsum(0.5 * (y[1:] + y[:-1]))
    return F


def _cumulative_trapz_reverse(y: np.ndarray) -> np.ndarray:
    return _cumulative_trapz_forward(y[::-1])[::-1]


def coulomb_potential(density: np.ndarray, lattice, k: int = 0, size: int | None = None) -> np.ndarray:
    r"""计算多极库仑势 :math:`Y^k(r)`。

    Parameters
    ----------
    density : numpy.ndarray
        径向密度 :math:`\rho(r_i)`（已含 :math:`r^2` 因子，即 :math:`f^2+g^2` 型）。
    lattice : Lattice
        网格。
    k : int
        多极指标 (k ≥ 0)。
    size : int, optional
        输出长度，默认取整个网格。

    Returns
    -------
    numpy.ndarray
        :math:`Y^k(r_i)`，长度 ``size``。
    """
    if k < 0:
        raise ValueError(f"多极指标 k 必须非负，当前值: {k}")
    if size is None:
        size = lattice.size()
    if size > lattice.size():
        raise ValueError(f"输出长度 ({size}) 超过网格长度 ({lattice.size()})")

    rho = np.zeros(size)
    n = min(size, density.size)
    rho[:n] = density[:n]

    r = lattice.r[:size]
    dr = lattice.dr[:size]

    r_k = r**k
    A = _cumulative_trapz_forward(r_k * rho * dr)
    B = _cumulative_trapz_reverse(rho * dr / (r_k * r))
    return A / (r_k * r) + B * r_k


def spinor_density(a: SpinorFunction, b: SpinorFunction) -> np.ndarray:
    """重叠密度 :math:`f_a f_b + g_a g_b`（公共前缀）。"""
    n = min(a.size(), b.size())
    return a.f[:n] * b.f[:n] + a.g[:n] * b.g[:n]


def slater_integral_radial(a: SpinorFunction, b: SpinorFunction, lattice, k: int, size: int | None = None) -> np.ndarray:
    r"""两旋量的 Slater 径向积分 :math:`Y^k_{ab}(r)`。"""
    return coulomb_potential(spinor_density(a, b), lattice, k, size)
