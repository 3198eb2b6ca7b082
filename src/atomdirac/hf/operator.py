r"""Dirac–Hartree–Fock 算子
==========================

装饰器链底部的基础算子。原子单位下，以 :math:`V_p = -V`（对核吸引势为正）
存储局域势，径向 Dirac–Hartree–Fock 方程写为

.. math::

    \frac{df}{dr} &= -\frac{\kappa}{r} f
        + \left[\frac{2}{\alpha} + \alpha (E + V_p)\right] g + \alpha X_g \\
    \frac{dg}{dr} &= \frac{\kappa}{r} g - \alpha (E + V_p) f - \alpha X_f

其中 :math:`f` 为大分量、:math:`g` 为小分量（范数 :math:`\int (f^2+g^2)\,dr`），

.. math::

    V_p(r) = \frac{Z}{r} - \sum_{b\in\mathrm{core}} \mathrm{occ}_b\, Y^0_{bb}(r),
    \qquad
    X_a(r) = \sum_{b\in\mathrm{core}} \sum_k \mathrm{occ}_b \Lambda^k_{ab}\, Y^k_{ab}(r)\, b(r).

非局域交换项 :math:`X` 只在 :attr:`include_nonlocal` 为真时加入三种查询形式。
"""

from __future__ import annotations

import math

import numpy as np

from ..config import PhysicalConstant
from ..logging_config import get_logger
from ..ode import SpinorODE
from ..spinor import RadialFunction, SpinorFunction
from ..utils import derivative
from .angular import allowed_k_values, exchange_angular_factor
from .slater import coulomb_potential, slater_integral_radial, spinor_density

__all__ = ["HFOperator"]

logger = get_logger(__name__)


class HFOperator(SpinorODE):
    """Dirac–Hartree–Fock 方程（点核 + 冻结核心）。

    Parameters
    ----------
    lattice : Lattice
        网格。
    Z : float
        核电荷（> 0）。
    core : list[Orbital], optional
        产生直接势与交换势的核心轨道；为空时退化为类氢 Dirac 方程。
    constants : PhysicalConstant, optional
        物理常数。
    derivative_points : int
        势导数所用的数值差分模板点数。
    """

    def __init__(self, lattice, Z: float, core=None, constants: PhysicalConstant | None = None, derivative_points: int = 6):
        if Z <= 0:
            raise ValueError(f"核电荷 Z 必须 > 0，当前值: {Z}")
        super().__init__(lattice)
        self.Z = float(Z)
        self.constants = constants if constants is not None else PhysicalConstant()
        self.derivative_points = derivative_points
        self.core = list(core) if core is not None else []
        self.kappa = -1
        self.energy = 0.0
        self.current_exchange = SpinorFunction(self.kappa)
        self.direct_potential = RadialFunction()
        self._update_direct_potential()

    # --- 势 -----------------------------------------------------------------

    def set_core(self, core) -> None:
        """更换核心轨道并重算直接势。"""
        self.core = list(core)
        self._update_direct_potential()

    def _update_direct_potential(self) -> None:
        r = self.lattice.r
        dr = self.lattice.dr
        hartree = np.zeros(r.size)
        for b in self.core:
            hartree += b.occupancy * coulomb_potential(spinor_density(b, b), self.lattice, k=0)

        vp = self.Z / r - hartree
        dvp = -self.Z / (r * r) - derivative(hartree, dr, self.derivative_points)
        self.direct_potential = RadialFunction(vp, dvp)
        logger.debug("直接势已更新：Z=%g，核心轨道 %d 个，%d 点", self.Z, len(self.core), r.size)

    def alert(self) -> None:
        if self.direct_potential.size() != self.lattice.size():
            self._update_direct_potential()
        if self.current_exchange.size() > self.lattice.size():
            self.current_exchange.resize(self.lattice.size())

    def calculate_exchange(self, approximation: SpinorFunction) -> SpinorFunction:
        """对给定近似轨道计算非局域交换势 :math:`X_a`（含导数）。"""
        n = approximation.size()
        exchange = SpinorFunction(approximation.kappa, n)
        for b in self.core:
            m = min(n, b.size())
            for k in allowed_k_values(approximation.kappa, b.kappa):
                coefficient = b.occupancy * exchange_angular_factor(approximation.kappa, k, b.kappa)
                if coefficient == 0.0:
                    continue
                Y = slater_integral_radial(approximation, b, self.lattice, k, size=n)
                exchange.f[:m] += coefficient * Y[:m] * b.f[:m]
                exchange.g[:m] += coefficient * Y[:m] * b.g[:m]

        dr = self.lattice.dr
        exchange.dfdr = derivative(exchange.f, dr, self.derivative_points)
        exchange.dgdr = derivative(exchange.g, dr, self.derivative_points)
        return exchange

    # --- 参数 ---------------------------------------------------------------

    def set_ode_parameters(self, kappa, energy, exchange=None):
        if kappa == 0:
            raise ValueError("kappa 不能为 0")
        self.kappa = int(kappa)
        self.energy = float(energy)
        if exchange is None:
            self.current_exchange = SpinorFunction(self.kappa)
        else:
            self.current_exchange = exchange.copy()

    def set_ode_parameters_from(self, approximation):
        self.set_ode_parameters(approximation.kappa, approximation.energy, self.calculate_exchange(approximation))

    def get_exchange(self, approximation=None):
        if approximation is None:
            return self.current_exchange.copy()
        return self.calculate_exchange(approximation)

    # --- 三种查询形式 --------------------------------------------------------

    def get_ode_coefficients(self, latticepoint, fg):
        alpha = self.constants.alpha
        r = self.lattice.r[latticepoint]
        potential = self.energy + self.direct_potential.f[latticepoint]

        w_f = np.array([-self.kappa / r, -alpha * potential])
        w_g = np.array([2.0 / alpha + alpha * potential, self.kappa / r])
        w_const = np.zeros(2)
        if self.include_nonlocal and latticepoint < self.current_exchange.size():
            w_const[0] = alpha * self.current_exchange.g[latticepoint]
            w_const[1] = -alpha * self.current_exchange.f[latticepoint]
        return w_f, w_g, w_const

    def get_ode_function(self, latticepoint, fg):
        w_f, w_g, w_const = self.get_ode_coefficients(latticepoint, fg)
        return w_f * fg.f[latticepoint] + w_g * fg.g[latticepoint] + w_const

    def get_ode_jacobian(self, latticepoint, fg):
        alpha = self.constants.alpha
        r = self.lattice.r[latticepoint]
        w_f, w_g, _ = self.get_ode_coefficients(latticepoint, fg)
        jacobian = np.column_stack([w_f, w_g])

        f = fg.f[latticepoint]
        g = fg.g[latticepoint]
        dvp = self.direct_potential.dfdr[latticepoint]
        dwdr = np.array([
            self.kappa / (r * r) * f + alpha * dvp * g,
            -self.kappa / (r * r) * g - alpha * dvp * f,
        ])
        if self.include_nonlocal and latticepoint < self.current_exchange.size():
            dwdr[0] += alpha * self.current_exchange.dgdr[latticepoint]
            dwdr[1] -= alpha * self.current_exchange.dfdr[latticepoint]
        return jacobian, dwdr

    # --- 边界估计 -----------------------------------------------------------

    def estimate_orbital_near_origin(self, numpoints, s):
        r"""点核附近 :math:`f = r^\gamma`，:math:`g = f(\kappa+\gamma)/(\alpha Z)`，
        :math:`\gamma = \sqrt{\kappa^2 - (\alpha Z)^2}`。"""
        alpha_z = self.constants.alpha * self.Z
        gamma_sq = self.kappa * self.kappa - alpha_z * alpha_z
        if gamma_sq <= 0:
            raise ValueError(f"Z={self.Z:g} 对 kappa={self.kappa} 超过点核临界值")
        gamma = math.sqrt(gamma_sq)

        if s.size() < numpoints:
            s.resize(numpoints)
        r = self.lattice.r[:numpoints]
        f = r**gamma
        g = f * (self.kappa + gamma) / alpha_z
        s.f[:numpoints] = f
        s.g[:numpoints] = g
        s.dfdr[:numpoints] = gamma * f / r
        s.dgdr[:numpoints] = gamma * g / r

    def estimate_orbital_near_infinity(self, numpoints, s):
        r"""远处 :math:`f = (r/r_s)^\sigma e^{-\lambda (r - r_s)}`，
        :math:`g = -\alpha\lambda f/(2 + \alpha^2 E)`，
        :math:`\lambda = \sqrt{-2E - \alpha^2 E^2}`，:math:`\sigma = Z_{\mathrm{eff}}/\lambda`。"""
        if self.energy >= 0.0:
            raise ValueError(f"远处渐近解要求束缚态能量 (E < 0)，当前值: {self.energy}")
        alpha = self.constants.alpha
        alpha_sq = alpha * alpha
        lam = math.sqrt(-2.0 * self.energy - alpha_sq * self.energy * self.energy)

        size = s.size()
        start = max(size - numpoints, 0)
        r = self.lattice.r[start:size]
        if r.size == 0:
            return
        z_eff = max(self.direct_potential.f[size - 1] * r[-1], 0.0)
        sigma = z_eff / lam

        f = (r / r[0]) ** sigma * np.exp(-lam * (r - r[0]))
        g = -alpha * lam / (2.0 + alpha_sq * self.energy) * f
        s.f[start:size] = f
        s.g[start:size] = g
        s.dfdr[start:size] = f * (sigma / r - lam)
        s.dgdr[start:size] = g * (sigma / r - lam)
