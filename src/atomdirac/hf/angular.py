r"""相对论角动量耦合系数
========================

提供 Dirac–Hartree–Fock 交换与 MBPT 所需的角向因子：

- Wigner-3j / 6j 符号（通过 sympy 包装，支持半整数，按 ``2j`` 传参）
- 约化矩阵元 :math:`\langle\kappa_a\|C^k\|\kappa_b\rangle`
- 交换因子 :math:`\Lambda^k_{ab}` 与 k 选择规则

物理背景
========

两电子库仑相互作用的多极展开中，对闭壳层 b 求和后交换项的角向因子为

.. math::

    \Lambda^k_{ab} =
    \begin{pmatrix}
    j_a & k & j_b \\
    -\tfrac12 & 0 & \tfrac12
    \end{pmatrix}^2 \, \pi(\ell_a + \ell_b + k),

其中 :math:`\pi(x)` 在 :math:`x` 为偶数时为 1，否则为 0。

选择规则
========

1. **三角条件**: :math:`|j_a - j_b| \le k \le j_a + j_b`
2. **奇偶性**: :math:`\ell_a + \ell_b + k` 为偶数

References
----------
.. [Johnson] Johnson, W. R. (2007)
   "Atomic Structure Theory: Lectures on Atomic Physics"
   Springer, Chapter 3
"""

from __future__ import annotations

from functools import lru_cache

from sympy import Rational
from sympy.physics.wigner import wigner_3j as _sympy_wigner_3j
from sympy.physics.wigner import wigner_6j as _sympy_wigner_6j

__all__ = [
    "kappa_to_l",
    "kappa_to_two_j",
    "wigner_3j",
    "wigner_6j",
    "allowed_k_values",
    "exchange_angular_factor",
    "reduced_c_k",
]


def kappa_to_l(kappa: int) -> int:
    if kappa == 0:
        raise ValueError("kappa 不能为 0")
    return kappa if kappa > 0 else -kappa - 1


def kappa_to_two_j(kappa: int) -> int:
    if kappa == 0:
        raise ValueError("kappa 不能为 0")
    return 2 * abs(kappa) - 1


@lru_cache(maxsize=4096)
def wigner_3j(two_j1: int, two_j2: int, two_j3: int, two_m1: int, two_m2: int, two_m3: int) -> float:
    """Wigner-3j 符号，参数均为两倍角动量（整数）。

    Examples
    --------
    >>> wigner_3j(2, 0, 2, 0, 0, 0)  # (1 0 1; 0 0 0)
    -0.5773...
    """
    value = _sympy_wigner_3j(
        Rational(two_j1, 2), Rational(two_j2, 2), Rational(two_j3, 2),
        Rational(two_m1, 2), Rational(two_m2, 2), Rational(two_m3, 2),
    )
    return float(value)


@lru_cache(maxsize=4096)
def wigner_6j(two_j1: int, two_j2: int, two_j3: int, two_j4: int, two_j5: int, two_j6: int) -> float:
    """Wigner-6j 符号 {j1 j2 j3; j4 j5 j6}，参数均为两倍角动量。"""
    value = _sympy_wigner_6j(
        Rational(two_j1, 2), Rational(two_j2, 2), Rational(two_j3, 2),
        Rational(two_j4, 2), Rational(two_j5, 2), Rational(two_j6, 2),
    )
    return float(value)


def allowed_k_values(kappa_a: int, kappa_b: int) -> list[int]:
    """满足三角条件与奇偶性的多极指标 k（升序）。

    Examples
    --------
    >>> allowed_k_values(-1, -1)  # s1/2 - s1/2
    [0]
    >>> allowed_k_values(-1, 1)   # s1/2 - p1/2
    [1]
    >>> allowed_k_values(-2, -2)  # p3/2 - p3/2
    [0, 2]
    """
    two_ja = kappa_to_two_j(kappa_a)
    two_jb = kappa_to_two_j(kappa_b)
    la = kappa_to_l(kappa_a)
    lb = kappa_to_l(kappa_b)
    k_min = abs(two_ja - two_jb) // 2
    k_max = (two_ja + two_jb) // 2
    return [k for k in range(k_min, k_max + 1) if (la + lb + k) % 2 == 0]


def exchange_angular_factor(kappa_a: int, k: int, kappa_b: int) -> float:
    r"""交换因子 :math:`\Lambda^k_{ab}`（不含占据数）。

    对满壳层 b 的 :math:`2j_b+1` 个电子求和后，交换势中的权重为
    :math:`\mathrm{occ}_b\,\Lambda^k_{ab}`。
    """
    if k not in allowed_k_values(kappa_a, kappa_b):
        return 0.0
    w3j = wigner_3j(kappa_to_two_j(kappa_a), 2 * k, kappa_to_two_j(kappa_b), -1, 0, 1)
    return w3j * w3j


def reduced_c_k(kappa_a: int, k: int, kappa_b: int) -> float:
    r"""约化矩阵元 :math:`\langle\kappa_a\|C^k\|\kappa_b\rangle`。

    .. math::

        \langle\kappa_a\|C^k\|\kappa_b\rangle = (-1)^{j_a+1/2}
        \sqrt{(2j_a+1)(2j_b+1)}
        \begin{pmatrix} j_a & j_b & k \\ -\tfrac12 & \tfrac12 & 0 \end{pmatrix}
        \pi(\ell_a + \ell_b + k)
    """
    if (kappa_to_l(kappa_a) + kappa_to_l(kappa_b) + k) % 2 != 0:
        return 0.0
    two_ja = kappa_to_two_j(kappa_a)
    two_jb = kappa_to_two_j(kappa_b)
    sign = -1.0 if ((two_ja + 1) // 2) % 2 else 1.0
    w3j = wigner_3j(two_ja, two_jb, 2 * k, -1, 1, 0)
    return sign * ((two_ja + 1) * (two_jb + 1)) ** 0.5 * w3j
