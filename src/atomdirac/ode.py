r"""耦合线性一阶 ODE 算子
=========================

:class:`SpinorODE` 描述旋量两分量上的线性方程组

.. math::
    \frac{df}{dr} &= w_0 = w_{f,0}\,f + w_{g,0}\,g + w_{\mathrm{const},0} \\
    \frac{dg}{dr} &= w_1 = w_{f,1}\,f + w_{g,1}\,g + w_{\mathrm{const},1}

其中 :math:`w_{\mathrm{const}}` 为非局域（交换类）项，无法写成同一点
:math:`(f, g)` 的局域函数，只能作为预先计算的附加项提供。

同一组物理项以三种等价形式暴露给外部积分器：

- :meth:`SpinorODE.get_ode_function`：导数 :math:`w`；
- :meth:`SpinorODE.get_ode_coefficients`：系数 :math:`(w_f, w_g, w_{\mathrm{const}})`；
- :meth:`SpinorODE.get_ode_jacobian`：雅可比 :math:`\partial w_i/\partial(f, g)` 与
  :math:`\partial w_i/\partial r`。

三者只能相差代数重排；任何一种形式与其他形式不一致都是实现错误。

装饰器
======

:class:`SpinorODEDecorator` 包装一个算子**实例**（而非类型），默认把全部查询原样转发；
具体装饰器只重写需要增补的查询，先委托被包装对象，再叠加自身贡献，
因此贡献按加法组合，包装顺序不影响物理结果。
"""

from __future__ import annotations

from abc import ABC, abstractmethod

import numpy as np

from .spinor import SpinorFunction

__all__ = [
    "SpinorODE",
    "SpinorODEDecorator",
]


class SpinorODE(ABC):
    """ODE 算子抽象基类，同时是网格的观察者。

    Parameters
    ----------
    lattice : Lattice
        方程所在网格（共享、只读）。
    """

    def __init__(self, lattice):
        self.lattice = lattice
        self._include_nonlocal = True
        lattice.register_observer(self)

    def alert(self) -> None:
        """网格大小已改变；默认不处理。"""

    @property
    def include_nonlocal(self) -> bool:
        """是否在三种查询形式中包含非局域项 :math:`w_{\\mathrm{const}}`。"""
        return self._include_nonlocal

    @include_nonlocal.setter
    def include_nonlocal(self, include: bool) -> None:
        self._include_nonlocal = bool(include)

    # --- 参数 ---------------------------------------------------------------

    @abstractmethod
    def set_ode_parameters(self, kappa: int, energy: float, exchange: SpinorFunction | None = None) -> None:
        """设置角量子数、能量与（可选的）非局域交换势。"""

    @abstractmethod
    def set_ode_parameters_from(self, approximation) -> None:
        """由近似轨道设置参数（交换势由该轨道计算）。"""

    @abstractmethod
    def get_exchange(self, approximation=None) -> SpinorFunction:
        """返回非局域势；``approximation`` 为空时返回当前缓存值。"""

    # --- 三种查询形式 --------------------------------------------------------

    @abstractmethod
    def get_ode_function(self, latticepoint: int, fg: SpinorFunction) -> np.ndarray:
        """返回 :math:`w = (df/dr, dg/dr)`，形状 (2,)。"""

    @abstractmethod
    def get_ode_coefficients(self, latticepoint: int, fg: SpinorFunction) -> tuple[np.ndarray, np.ndarray, np.ndarray]:
        """返回 ``(w_f, w_g, w_const)``，各为形状 (2,) 的数组。"""

    @abstractmethod
    def get_ode_jacobian(self, latticepoint: int, fg: SpinorFunction) -> tuple[np.ndarray, np.ndarray]:
        """返回 ``(jacobian, dwdr)``：``jacobian[i, 0] = dw_i/df``，``jacobian[i, 1] = dw_i/dg``。"""

    # --- 边界估计 -----------------------------------------------------------

    @abstractmethod
    def estimate_orbital_near_origin(self, numpoints: int, s: SpinorFunction) -> None:
        """填充 ``s`` 的前 ``numpoints`` 个点（原点附近的渐近解）。"""

    @abstractmethod
    def estimate_orbital_near_infinity(self, numpoints: int, s) -> None:
        """填充 ``s`` 的最后 ``numpoints`` 个点（远处的渐近解）。"""

    # --- 便利方法 -----------------------------------------------------------

    def get_derivative(self, fg) -> None:
        """用 :meth:`get_ode_function` 重新计算轨道的 ``dfdr`` 与 ``dgdr``。

        会先调用 :meth:`set_ode_parameters_from`，从而改变当前交换势。
        """
        self.set_ode_parameters_from(fg)
        n = fg.size()
        dfdr = np.empty(n)
        dgdr = np.empty(n)
        for i in range(n):
            w = self.get_ode_function(i, fg)
            dfdr[i] = w[0]
            dgdr[i] = w[1]
        fg.dfdr = dfdr
        fg.dgdr = dgdr


class SpinorODEDecorator(SpinorODE):
    """在已有算子上叠加额外项的装饰器；默认全部转发。

    Parameters
    ----------
    wrapped : SpinorODE
        被包装的算子实例（与本装饰器共享网格）。
    """

    def __init__(self, wrapped: SpinorODE):
        super().__init__(wrapped.lattice)
        self.wrapped = wrapped
        self._include_nonlocal = wrapped.include_nonlocal

    @property
    def include_nonlocal(self) -> bool:
        return self._include_nonlocal

    @include_nonlocal.setter
    def include_nonlocal(self, include: bool) -> None:
        self._include_nonlocal = bool(include)
        self.wrapped.include_nonlocal = include

    def set_ode_parameters(self, kappa, energy, exchange=None):
        self.wrapped.set_ode_parameters(kappa, energy, exchange)

    def set_ode_parameters_from(self, approximation):
        self.wrapped.set_ode_parameters_from(approximation)

    def get_exchange(self, approximation=None):
        return self.wrapped.get_exchange(approximation)

    def get_ode_function(self, latticepoint, fg):
        return self.wrapped.get_ode_function(latticepoint, fg)

    def get_ode_coefficients(self, latticepoint, fg):
        return self.wrapped.get_ode_coefficients(latticepoint, fg)

    def get_ode_jacobian(self, latticepoint, fg):
        return self.wrapped.get_ode_jacobian(latticepoint, fg)

    def estimate_orbital_near_origin(self, numpoints, s):
        self.wrapped.estimate_orbital_near_origin(numpoints, s)

    def estimate_orbital_near_infinity(self, numpoints, s):
        self.wrapped.estimate_orbital_near_infinity(numpoints, s)
