"""物理常数与数值参数
======================

所有常数以不可变数据类的形式显式传入算子与存储对象的构造函数，
不使用全局单例。

参考：CODATA 2018 精细结构常数 :math:`\\alpha = 7.2973525693\\times 10^{-3}`。
"""

from __future__ import annotations

import json
from dataclasses import asdict, dataclass, field, fields
from pathlib import Path

__all__ = [
    "FINE_STRUCTURE_CONSTANT",
    "HARTREE_TO_INV_CM",
    "PhysicalConstant",
    "NumericalConfig",
    "AtomConfig",
    "load_config",
]

FINE_STRUCTURE_CONSTANT: float = 1.0 / 137.035999084
HARTREE_TO_INV_CM: float = 219474.6313632


@dataclass(frozen=True)
class PhysicalConstant:
    r"""物理常数集合。

    Attributes
    ----------
    alpha : float
        精细结构常数 :math:`\alpha`；取 0 附近的小值可逼近非相对论极限，
        但不能为 0（方程中出现 :math:`2/\alpha`）。
    """

    alpha: float = FINE_STRUCTURE_CONSTANT

    def __post_init__(self):
        if self.alpha <= 0:
            raise ValueError(f"alpha 必须为正数，当前值: {self.alpha}")

    @property
    def alpha_squared(self) -> float:
        return self.alpha * self.alpha

    @property
    def speed_of_light(self) -> float:
        """原子单位下的光速 :math:`c = 1/\\alpha`。"""
        return 1.0 / self.alpha


@dataclass(frozen=True)
class NumericalConfig:
    """数值参数。

    Attributes
    ----------
    check_size_tolerance : float
        ``Orbital.check_size`` 的相对截断阈值（相对于 ``max|f|``）。
    derivative_points : int
        数值求导所用模板点数（Sigma 导数默认 6 点）。
    sigma_scaling : float
        Brueckner Sigma 的整体缩放因子 :math:`\\lambda`。
    max_size_iterations : int
        求解-调整长度不动点循环的最大迭代次数。
    """

    check_size_tolerance: float = 1e-10
    derivative_points: int = 6
    sigma_scaling: float = 1.0
    max_size_iterations: int = 20

    def __post_init__(self):
        if not (0.0 < self.check_size_tolerance < 1.0):
            raise ValueError("check_size_tolerance 必须位于 (0, 1)")
        if self.derivative_points < 2:
            raise ValueError("derivative_points 必须 >= 2")
        if self.max_size_iterations < 1:
            raise ValueError("max_size_iterations 必须 >= 1")


@dataclass(frozen=True)
class AtomConfig:
    """完整配置：物理常数 + 数值参数。"""

    constants: PhysicalConstant = field(default_factory=PhysicalConstant)
    numerics: NumericalConfig = field(default_factory=NumericalConfig)

    def to_dict(self) -> dict:
        return asdict(self)


def _build(cls, data: dict):
    known = {f.name for f in fields(cls)}
    unknown = set(data) - known
    if unknown:
        raise ValueError(f"{cls.__name__} 存在未知字段: {sorted(unknown)}")
    return cls(**data)


def load_config(path: str | Path) -> AtomConfig:
    """从 JSON 文件读取配置。

    文件格式::

        {
          "constants": {"alpha": 0.0072973525693},
          "numerics": {"check_size_tolerance": 1e-8}
        }

    两个段落均可省略，缺省字段取默认值。
    """
    p = Path(path)
    with p.open("r", encoding="utf-8") as f:
        data = json.load(f)

    constants = _build(PhysicalConstant, data.get("constants", {}))
    numerics = _build(NumericalConfig, data.get("numerics", {}))
    return AtomConfig(constants=constants, numerics=numerics)
