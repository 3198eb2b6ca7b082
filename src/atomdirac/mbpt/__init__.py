"""多体微扰修正子模块

- **Sigma 算子** (`sigma.py`): 按 kappa 通道保存的非局域自能矩阵及其持久化
- **Brueckner 装饰器** (`brueckner.py`): 把 Sigma 作为附加非局域项叠加到 HF 算子上

二阶 Sigma 的实际求和引擎不在本包内，通过 ``SigmaCalculator`` 协议注入。
"""

from .brueckner import BruecknerDecorator, sigma_filename
from .sigma import PolarisationSigmaCalculator, SigmaCalculator, SigmaPotential

__all__ = [
    "BruecknerDecorator",
    "sigma_filename",
    "SigmaPotential",
    "SigmaCalculator",
    "PolarisationSigmaCalculator",
]
