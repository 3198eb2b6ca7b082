"""Dirac–Hartree–Fock 子模块

本子模块提供装饰器链底部的基础算子及其依赖：

- **库仑积分** (`slater.py`): 多极库仑势 Y^k(r)
- **角动量耦合** (`angular.py`): Wigner-3j/6j 与相对论交换因子
- **HF 算子** (`operator.py`): Dirac–Hartree–Fock 方程的 `SpinorODE` 实现

势的存储约定
============

算子内部保存 Vp = -V（对吸引的核势 Vp > 0），装饰器叠加的非局域项
遵循同一约定。
"""

from .angular import allowed_k_values, exchange_angular_factor, reduced_c_k, wigner_3j, wigner_6j
from .operator import HFOperator
from .slater import coulomb_potential, slater_integral_radial

__all__ = [
    "HFOperator",
    "coulomb_potential",
    "slater_integral_radial",
    "allowed_k_values",
    "exchange_angular_factor",
    "reduced_c_k",
    "wigner_3j",
    "wigner_6j",
]
