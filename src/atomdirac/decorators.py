r"""局域势装饰器
===============

在任意 :class:`~atomdirac.ode.SpinorODE` 上叠加额外的局域势
:math:`\Delta V_p(r)`（同样按 :math:`V_p = -V` 约定存储），例如有限核修正、
模型极化势或同位素场移的扰动项。贡献为

.. math::

    \Delta w_0 = \alpha\,\Delta V_p\,g, \qquad \Delta w_1 = -\alpha\,\Delta V_p\,f ,

在系数形式中进入 :math:`w_{g,0}` 与 :math:`w_{f,1}`，在雅可比形式中进入
非对角元与 :math:`\partial w/\partial r`。
"""

from __future__ import annotations

import numpy as np

from .config import PhysicalConstant
from .ode import SpinorODE, SpinorODEDecorator
from .spinor import RadialFunction
from .utils import derivative

__all__ = ["LocalPotentialDecorator"]


class LocalPotentialDecorator(SpinorODEDecorator):
    """叠加额外局域势的装饰器。

    Parameters
    ----------
    wrapped : SpinorODE
        被包装的算子。
    potential : RadialFunction or numpy.ndarray
        额外势 :math:`\\Delta V_p`；传入数组时导数由 6 点模板数值求得。
    scale : float
        整体缩放因子。
    constants : PhysicalConstant, optional
        物理常数。
    """

    def __init__(self, wrapped: SpinorODE, potential, scale: float = 1.0, constants: PhysicalConstant | None = None):
        super().__init__(wrapped)
        self.constants = constants if constants is not None else PhysicalConstant()
        self.scale = float(scale)
        self.set_potential(potential)

    def set_potential(self, potential) -> None:
        if isinstance(potential, RadialFunction):
            self.potential = potential.copy()
        else:
            values = np.asarray(potential, dtype=float)
            if values.size > self.lattice.size():
                raise ValueError(f"势长度 ({values.size}) 超过网格长度 ({self.lattice.size()})")
            self.potential = RadialFunction(values, derivative(values, self.lattice.dr))

    def _scaled(self, latticepoint: int) -> tuple[float, float]:
        if latticepoint >= self.potential.size():
            return 0.0, 0.0
        alpha = self.constants.alpha
        return (
            alpha * self.scale * self.potential.f[latticepoint],
            alpha * self.scale * self.potential.dfdr[latticepoint],
        )

    def get_ode_function(self, latticepoint, fg):
        w = self.wrapped.get_ode_function(latticepoint, fg)
        v, _ = self._scaled(latticepoint)
        w[0] += v * fg.g[latticepoint]
        w[1] -= v * fg.f[latticepoint]
        return w

    def get_ode_coefficients(self, latticepoint, fg):
        w_f, w_g, w_const = self.wrapped.get_ode_coefficients(latticepoint, fg)
        v, _ = self._scaled(latticepoint)
        w_g[0] += v
        w_f[1] -= v
        return w_f, w_g, w_const

    def get_ode_jacobian(self, latticepoint, fg):
        jacobian, dwdr = self.wrapped.get_ode_jacobian(latticepoint, fg)
        v, dv = self._scaled(latticepoint)
        jacobian[0, 1] += v
        jacobian[1, 0] -= v
        dwdr[0] += dv * fg.g[latticepoint]
        dwdr[1] -= dv * fg.f[latticepoint]
        return jacobian, dwdr
