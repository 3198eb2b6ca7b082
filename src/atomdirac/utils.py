from __future__ import annotations

from functools import lru_cache
from typing import BinaryIO

import numpy as np

__all__ = [
    "simpson_weights",
    "lattice_integral",
    "derivative",
    "read_exact",
]


def simpson_weights(n: int) -> np.ndarray:
    r"""格点指标空间中的复合 Simpson 权重。

    对最长的奇数长度前缀使用 :math:`(1, 4, 2, 4, \dots, 4, 1)/3`；
    若 ``n`` 为偶数，最后一个区间用梯形规则补上。奇数长度时与标准
    Simpson 公式完全一致。

    Parameters
    ----------
    n : int
        点数。

    Returns
    -------
    numpy.ndarray
        权重 :math:`w_i`，使得 :math:`\int F\,dr \approx \sum_i w_i F_i\,dr_i`。
    """
    if n < 0:
        raise ValueError("n 必须 >= 0")
    w = np.zeros(n, dtype=float)
    if n < 2:
        return w

    m = n if n % 2 == 1 else n - 1
    if m >= 3:
        w[0:m] = 2.0
        w[1:m:2] = 4.0
        w[0] = 1.0
        w[m - 1] = 1.0
        w[0:m] /= 3.0
    if m != n:
        w[n - 2] += 0.5
        w[n - 1] += 0.5
    return w


def lattice_integral(integrand: np.ndarray, dr: np.ndarray) -> float:
    r"""用 Simpson 权重计算 :math:`\int F(r)\,dr`，``dr`` 至少与被积函数等长。"""
    n = integrand.size
    if dr.size < n:
        raise ValueError(f"dr 长度 ({dr.size}) 小于被积函数长度 ({n})")
    return float(np.sum(simpson_weights(n) * integrand * dr[:n]))


@lru_cache(maxsize=64)
def _stencil(points: int, position: int) -> tuple[float, ...]:
    # 一阶导数的有限差分系数：偏移 j - position，j = 0..points-1
    offsets = np.arange(points, dtype=float) - position
    A = np.vander(offsets, points, increasing=True).T
    rhs = np.zeros(points)
    rhs[1] = 1.0
    return tuple(np.linalg.solve(A, rhs))


def derivative(y: np.ndarray, dr: np.ndarray, points: int = 6) -> np.ndarray:
    r"""固定模板的数值求导 :math:`dy/dr = (dy/di)/(dr/di)`。

    在格点指标空间使用 ``points`` 点 Lagrange 差分模板（默认 6 点），
    内部点模板为偏移 :math:`-2,\dots,3`，靠近端点时模板整体平移以保持点数。

    Parameters
    ----------
    y : numpy.ndarray
        函数值。
    dr : numpy.ndarray
        网格间距 :math:`dr/di`，长度不小于 ``y``。
    points : int
        模板点数（>=2）；超过数组长度时自动截断。

    Returns
    -------
    numpy.ndarray
        与 ``y`` 等长的导数数组。
    """
    if points < 2:
        raise ValueError("points 必须 >= 2")
    n = y.size
    if dr.size < n:
        raise ValueError(f"dr 长度 ({dr.size}) 小于函数长度 ({n})")
    dydi = np.zeros(n, dtype=float)
    if n < 2:
        return dydi

    p = min(points, n)
    centre = (p - 1) // 2

    # 内部点：统一模板，向量化
    lo, hi = centre, n - p + centre
    if hi >= lo:
        coeffs = _stencil(p, centre)
        for j, c in enumerate(coeffs):
            dydi[lo:hi + 1] += c * y[j:j + hi - lo + 1]

    # 端点：模板平移
    for i in list(range(0, min(lo, n))) + list(range(max(hi + 1, 0), n)):
        start = min(max(i - centre, 0), n - p)
        coeffs = _stencil(p, i - start)
        dydi[i] = float(np.dot(coeffs, y[start:start + p]))

    return dydi / dr[:n]


def read_exact(fp: BinaryIO, nbytes: int) -> bytes:
    """从二进制流读取恰好 ``nbytes`` 字节；不足时抛出 :class:`ValueError`。"""
    data = fp.read(nbytes)
    if len(data) != nbytes:
        raise ValueError(f"二进制记录被截断：期望 {nbytes} 字节，实际 {len(data)} 字节")
    return data
