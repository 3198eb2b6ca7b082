"""atomdirac 包
=================

相对论（Dirac）径向轨道及其多体修正的数值工具。

- 径向网格（指数/等间距），调整大小时通知观察者
- 两分量旋量与轨道：Simpson 归一化、节点计数、自适应存储长度
- 耦合一阶 ODE 算子链：Dirac–Hartree–Fock 基础算子 + 装饰器（局域势、Brueckner Sigma）
- 按 kappa 通道持久化的 Sigma 算子

注：本项目所有文档与注释均使用中文，Docstring 采用 Sphinx + NumPy 风格，公式使用 ``:math:`` 标记。
"""

from atomdirac.config import AtomConfig, NumericalConfig, PhysicalConstant, load_config
from atomdirac.decorators import LocalPotentialDecorator
from atomdirac.grid import ExpLattice, Lattice, UniformLattice, trapezoid_weights
from atomdirac.hf import HFOperator
from atomdirac.mbpt import BruecknerDecorator, PolarisationSigmaCalculator, SigmaPotential
from atomdirac.ode import SpinorODE, SpinorODEDecorator
from atomdirac.orbital import DegenerateOrbitalError, Orbital, OrbitalInfo, converge_size
from atomdirac.spinor import RadialFunction, SizeMismatchError, SpinorFunction

__all__ = [
    "AtomConfig",
    "NumericalConfig",
    "PhysicalConstant",
    "load_config",
    "Lattice",
    "ExpLattice",
    "UniformLattice",
    "trapezoid_weights",
    "RadialFunction",
    "SpinorFunction",
    "SizeMismatchError",
    "Orbital",
    "OrbitalInfo",
    "DegenerateOrbitalError",
    "converge_size",
    "SpinorODE",
    "SpinorODEDecorator",
    "HFOperator",
    "LocalPotentialDecorator",
    "BruecknerDecorator",
    "SigmaPotential",
    "PolarisationSigmaCalculator",
]

__version__ = "0.1.0"
