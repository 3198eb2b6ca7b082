r"""Brueckner 轨道装饰器
=======================

:class:`BruecknerDecorator` 在 HF 算子上叠加二阶自能修正 :math:`\Sigma`，
每个 :math:`\kappa` 通道保存一个预先计算的 :class:`~atomdirac.mbpt.sigma.SigmaPotential`：

- 首次请求某通道时计算（:meth:`BruecknerDecorator.calculate_sigma`），或从
  ``"<identifier>.<kappa>.sigma"`` 读取（:meth:`BruecknerDecorator.read`）；
- 之后在装饰器生命周期内保留，仅 :meth:`BruecknerDecorator.clear_sigma` 会使其失效；
- 全局缩放 :math:`\lambda`（:attr:`BruecknerDecorator.sigma_scaling`，默认 1）。

附加的非局域项 :math:`X = -\lambda\,\Sigma a` 以与交换项相同的方式进入方程：

.. math::

    \Delta w_0 = \alpha X_g, \qquad \Delta w_1 = -\alpha X_f .
"""

from __future__ import annotations

from typing import Callable

from ..config import PhysicalConstant
from ..logging_config import get_logger
from ..ode import SpinorODE, SpinorODEDecorator
from ..spinor import SpinorFunction
from ..utils import derivative
from .sigma import SigmaCalculator, SigmaPotential

__all__ = ["BruecknerDecorator", "sigma_filename"]

logger = get_logger(__name__)


def sigma_filename(identifier: str, kappa: int) -> str:
    """Sigma 文件名 ``"<identifier>.<kappa>.sigma"``。"""
    return f"{identifier}.{kappa}.sigma"


def _aligned_sum(a: SpinorFunction, b: SpinorFunction) -> SpinorFunction:
    # 长度不同的两个旋量相加：较短者补零
    n = max(a.size(), b.size())
    ret = a.copy()
    ret.resize(n)
    other = b.copy()
    other.resize(n)
    ret += other
    return ret


class BruecknerDecorator(SpinorODEDecorator):
    """保存各 :math:`\\kappa` 通道 Sigma 的装饰器。

    Parameters
    ----------
    wrapped : SpinorODE
        被包装的算子（通常为 HF 算子或其装饰链）。
    calculator_factory : callable, optional
        ``calculator_factory(orbitals, hf_operator, hartree_y) -> SigmaCalculator``，
        在 :meth:`calculate_sigma` 未直接给出计算器时用于构造计算器。
    constants : PhysicalConstant, optional
        物理常数。
    sigma_scaling : float
        缩放因子 :math:`\\lambda`。
    sigma_stride : int
        新建 Sigma 的粗网格步长。
    use_fg, use_gg : bool
        新建 Sigma 是否包含小分量块。
    derivative_points : int
        附加项导数的差分模板点数。
    """

    def __init__(
        self,
        wrapped: SpinorODE,
        calculator_factory: Callable[..., SigmaCalculator] | None = None,
        constants: PhysicalConstant | None = None,
        sigma_scaling: float = 1.0,
        sigma_stride: int = 1,
        use_fg: bool = False,
        use_gg: bool = False,
        derivative_points: int = 6,
    ):
        super().__init__(wrapped)
        self.calculator_factory = calculator_factory
        self.constants = constants if constants is not None else PhysicalConstant()
        self.sigma_scaling = float(sigma_scaling)
        self.sigma_stride = int(sigma_stride)
        self.use_fg = use_fg
        self.use_gg = use_gg
        self.derivative_points = derivative_points
        self.sigmas: dict[int, SigmaPotential] = {}
        self.current_exchange = SpinorFunction(-1)

    # --- Sigma 存储 ---------------------------------------------------------

    def calculate_sigma(
        self,
        kappa: int,
        calculator: SigmaCalculator | None = None,
        *,
        orbitals=None,
        hartree_y=None,
        bare_hf: SpinorODE | None = None,
    ) -> None:
        """确保 ``kappa`` 通道的 Sigma 存在；已存在时不做任何事。

        未给出 ``calculator`` 时，用 ``calculator_factory(orbitals, bare_hf, hartree_y)``
        构造（``bare_hf`` 缺省为被包装的算子）。
        """
        if kappa in self.sigmas:
            return

        if calculator is None:
            if self.calculator_factory is None:
                raise ValueError("未提供 Sigma 计算器，且装饰器没有 calculator_factory")
            hf = bare_hf if bare_hf is not None else self.wrapped
            calculator = self.calculator_factory(orbitals, hf, hartree_y)

        sigma = SigmaPotential(self.lattice.size(), self.sigma_stride)
        sigma.include_lower(self.use_fg, self.use_gg)
        sigma.bind(self.lattice)
        calculator.get_second_order_sigma(kappa, sigma)
        self.sigmas[kappa] = sigma
        logger.info("Sigma 已计算: kappa=%d，%d 点", kappa, sigma.size())

    def has_sigma(self, kappa: int) -> bool:
        return kappa in self.sigmas

    def get_sigma(self, kappa: int) -> SigmaPotential | None:
        return self.sigmas.get(kappa)

    def clear_sigma(self, kappa: int | None = None) -> None:
        """删除某通道（或全部）的 Sigma。"""
        if kappa is None:
            self.sigmas.clear()
        else:
            self.sigmas.pop(kappa, None)

    def read(self, identifier: str, kappa: int) -> bool:
        """尝试读取 ``"<identifier>.<kappa>.sigma"``；失败时静默返回 ``False``。"""
        filename = sigma_filename(identifier, kappa)
        sigma = SigmaPotential()
        if sigma.read(filename):
            try:
                sigma.bind(self.lattice)
            except ValueError as exc:
                logger.warning("Sigma 文件 %s 无网格信息且无法绑定当前网格: %s", filename, exc)
                return False
            self.sigmas[kappa] = sigma
            logger.info("Sigma 已读取: %s（%d 点）", filename, sigma.size())
            return True
        return False

    def write(self, identifier: str, kappa: int) -> None:
        sigma = self.sigmas.get(kappa)
        if sigma is not None:
            sigma.write(sigma_filename(identifier, kappa))

    def write_all(self, identifier: str) -> None:
        for kappa, sigma in self.sigmas.items():
            sigma.write(sigma_filename(identifier, kappa))

    # --- 作用 ---------------------------------------------------------------

    def apply_to(self, s: SpinorFunction, include_derivative: bool = False) -> SpinorFunction:
        """附加非局域项 :math:`-\\lambda\\,\\Sigma_\\kappa s`。

        ``s`` 短于 Sigma 时补零后再作用（操作数从不截断）；网格缩短到 Sigma
        长度以下时，结果截断到网格长度。该通道没有 Sigma 时返回空旋量。
        """
        sigma = self.sigmas.get(s.kappa)
        if sigma is None:
            return SpinorFunction(s.kappa)

        operand = s
        if s.size() < sigma.size():
            operand = s.as_spinor()
            operand.resize(sigma.size())

        ret = sigma.apply_to(operand)
        if ret.size() > self.lattice.size():
            ret.resize(self.lattice.size())
        ret *= -self.sigma_scaling

        if include_derivative:
            dr = self.lattice.dr
            ret.dfdr = derivative(ret.f, dr, self.derivative_points)
            ret.dgdr = derivative(ret.g, dr, self.derivative_points)
        return ret

    # --- 装饰器接口 ----------------------------------------------------------

    def alert(self) -> None:
        # Sigma 矩阵定义在自身的粗网格上，不随网格调整
        if self.current_exchange.size() > self.lattice.size():
            self.current_exchange.resize(self.lattice.size())

    def set_ode_parameters(self, kappa, energy, exchange=None):
        # 给定的 exchange 视为完整非局域项，旧通道的 Sigma 项不再附加
        super().set_ode_parameters(kappa, energy, exchange)
        self.current_exchange = SpinorFunction(kappa)

    def set_ode_parameters_from(self, approximation):
        super().set_ode_parameters_from(approximation)
        self.current_exchange = self.apply_to(approximation, include_derivative=True)

    def get_exchange(self, approximation=None):
        ret = self.wrapped.get_exchange(approximation)
        if approximation is None:
            extra = self.current_exchange
        else:
            extra = self.apply_to(approximation, include_derivative=True)
        return _aligned_sum(ret, extra)

    def _in_range(self, latticepoint: int) -> bool:
        return self.include_nonlocal and latticepoint < self.current_exchange.size()

    def get_ode_function(self, latticepoint, fg):
        w = self.wrapped.get_ode_function(latticepoint, fg)
        if self._in_range(latticepoint):
            alpha = self.constants.alpha
            w[0] += alpha * self.current_exchange.g[latticepoint]
            w[1] -= alpha * self.current_exchange.f[latticepoint]
        return w

    def get_ode_coefficients(self, latticepoint, fg):
        w_f, w_g, w_const = self.wrapped.get_ode_coefficients(latticepoint, fg)
        if self._in_range(latticepoint):
            alpha = self.constants.alpha
            w_const[0] += alpha * self.current_exchange.g[latticepoint]
            w_const[1] -= alpha * self.current_exchange.f[latticepoint]
        return w_f, w_g, w_const

    def get_ode_jacobian(self, latticepoint, fg):
        jacobian, dwdr = self.wrapped.get_ode_jacobian(latticepoint, fg)
        if self._in_range(latticepoint):
            alpha = self.constants.alpha
            dwdr[0] += alpha * self.current_exchange.dgdr[latticepoint]
            dwdr[1] -= alpha * self.current_exchange.dfdr[latticepoint]
        return jacobian, dwdr

    def sigma_energy(self, orbital, lattice=None) -> float:
        r"""一阶能量修正 :math:`\langle a|\lambda\Sigma|a\rangle`（无 Sigma 时为 0）。"""
        if orbital.kappa not in self.sigmas:
            return 0.0
        lattice = lattice if lattice is not None else self.lattice
        extra = self.apply_to(orbital)
        return -float(extra.overlap(orbital, lattice))
