r"""非局域自能算子 Sigma
========================

:class:`SigmaPotential` 保存一个 :math:`\kappa` 通道的非局域算子
:math:`\Sigma(r, r')`，定义在网格前 ``size`` 个点的粗网格
（步长 ``stride``，末点总被包含）上，作用为

.. math::

    (\Sigma s)_f(r_i) = \sum_j \left[\Sigma_{ff}(r_i, r_j) f(r_j)
                      + \Sigma_{fg}(r_i, r_j) g(r_j)\right] w_j ,

小分量同理（:math:`\Sigma_{gf} = \Sigma_{fg}^T`）。``stride > 1`` 时粗网格结果
用三次样条插值回原网格。

首次计算权重时（:meth:`SigmaPotential.bind`）保存前 ``size`` 个点的 :math:`r` 与
:math:`dr`，此后算子只使用这份副本，网格再调整（包括缩短）也不影响它。

保存的是物理算子本身（吸引时为负）；:class:`~atomdirac.mbpt.brueckner.BruecknerDecorator`
在作用时乘以 :math:`-\lambda` 转成 :math:`-V` 约定。

持久化格式为 numpy ``.npz``（写入文件对象，不追加扩展名）。
"""

from __future__ import annotations

from pathlib import Path
from typing import Protocol

import numpy as np
from scipy.interpolate import CubicSpline

from ..grid import trapezoid_weights
from ..logging_config import get_logger
from ..spinor import SizeMismatchError, SpinorFunction

__all__ = [
    "SigmaPotential",
    "SigmaCalculator",
    "PolarisationSigmaCalculator",
]

logger = get_logger(__name__)


class SigmaPotential:
    """单个 :math:`\\kappa` 通道的非局域算子矩阵。

    Parameters
    ----------
    size : int
        覆盖的网格点数。
    stride : int
        粗网格步长（>= 1）。
    """

    def __init__(self, size: int = 0, stride: int = 1):
        if size < 0:
            raise ValueError(f"size 必须 >= 0，当前值: {size}")
        if stride < 1:
            raise ValueError(f"stride 必须 >= 1，当前值: {stride}")
        self._size = int(size)
        self.stride = int(stride)
        m = self.points.size
        self.ff = np.zeros((m, m))
        self.fg: np.ndarray | None = None
        self.gg: np.ndarray | None = None
        self.r: np.ndarray | None = None
        self.dr: np.ndarray | None = None

    def size(self) -> int:
        return self._size

    @property
    def points(self) -> np.ndarray:
        """粗网格的格点指标。"""
        if self._size == 0:
            return np.zeros(0, dtype=int)
        idx = np.arange(0, self._size, self.stride)
        if idx[-1] != self._size - 1:
            idx = np.append(idx, self._size - 1)
        return idx

    def include_lower(self, use_fg: bool, use_gg: bool) -> None:
        """启用（或关闭）涉及小分量的块 :math:`\\Sigma_{fg}`、:math:`\\Sigma_{gg}`。"""
        m = self.points.size
        self.fg = np.zeros((m, m)) if use_fg else None
        self.gg = np.zeros((m, m)) if use_gg else None

    def bind(self, lattice) -> None:
        """保存网格前 ``size`` 个点的 :math:`r`、:math:`dr`（已保存时不做任何事）。"""
        if self.r is not None:
            return
        if lattice is None:
            raise ValueError("Sigma 尚未绑定网格")
        if lattice.size() < self._size:
            raise ValueError(f"网格长度 ({lattice.size()}) 小于 Sigma 长度 ({self._size})")
        self.r = np.array(lattice.r[:self._size])
        self.dr = np.array(lattice.dr[:self._size])

    def weights(self, lattice=None) -> np.ndarray:
        """粗网格上的积分权重：``stride == 1`` 时为 ``dr``，否则为梯形权重。"""
        self.bind(lattice)
        idx = self.points
        if self.stride == 1:
            return self.dr[idx].copy()
        return trapezoid_weights(self.r[idx])

    def apply_to(self, s: SpinorFunction, lattice=None) -> SpinorFunction:
        """计算 :math:`\\Sigma s`，结果长度为 ``size``。

        ``s`` 的长度不得小于 ``size``（调用方负责补零）。
        """
        if s.size() < self._size:
            raise SizeMismatchError(f"旋量长度 ({s.size()}) 小于 Sigma 长度 ({self._size})")

        idx = self.points
        w = self.weights(lattice)
        sf = s.f[idx] * w
        sg = s.g[idx] * w

        coarse_f = self.ff @ sf
        coarse_g = np.zeros_like(coarse_f)
        if self.fg is not None:
            coarse_f += self.fg @ sg
            coarse_g += self.fg.T @ sf
        if self.gg is not None:
            coarse_g += self.gg @ sg

        ret = SpinorFunction(s.kappa, self._size)
        if idx.size == self._size:
            ret.f = coarse_f
            ret.g = coarse_g
        else:
            r_coarse = self.r[idx]
            ret.f = CubicSpline(r_coarse, coarse_f)(self.r)
            ret.g = CubicSpline(r_coarse, coarse_g)(self.r)
        return ret

    # --- 持久化 -------------------------------------------------------------

    def write(self, filename: str | Path) -> None:
        arrays = {
            "size": np.array(self._size),
            "stride": np.array(self.stride),
            "ff": self.ff,
        }
        if self.fg is not None:
            arrays["fg"] = self.fg
        if self.gg is not None:
            arrays["gg"] = self.gg
        if self.r is not None:
            arrays["r"] = self.r
            arrays["dr"] = self.dr
        with open(filename, "wb") as fp:
            np.savez(fp, **arrays)

    def read(self, filename: str | Path) -> bool:
        """读取成功返回 ``True``；文件缺失或损坏返回 ``False`` 且不修改自身。"""
        try:
            with open(filename, "rb") as fp:
                with np.load(fp) as data:
                    size = int(data["size"])
                    stride = int(data["stride"])
                    ff = np.array(data["ff"], dtype=float)
                    fg = np.array(data["fg"], dtype=float) if "fg" in data.files else None
                    gg = np.array(data["gg"], dtype=float) if "gg" in data.files else None
                    r = np.array(data["r"], dtype=float) if "r" in data.files else None
                    dr = np.array(data["dr"], dtype=float) if r is not None else None
        except FileNotFoundError:
            logger.debug("Sigma 文件不存在: %s", filename)
            return False
        except (OSError, ValueError, KeyError) as exc:
            logger.warning("无法读取 Sigma 文件 %s: %s", filename, exc)
            return False

        layout = SigmaPotential(size, stride)
        m = layout.points.size
        for block in (ff, fg, gg):
            if block is not None and block.shape != (m, m):
                logger.warning("Sigma 文件 %s 中矩阵形状 %s 与粗网格 (%d, %d) 不符", filename, block.shape, m, m)
                return False

        if r is not None and (r.shape != (size,) or dr.shape != (size,)):
            logger.warning("Sigma 文件 %s 中网格长度与 size=%d 不符", filename, size)
            return False

        self._size = size
        self.stride = stride
        self.ff = ff
        self.fg = fg
        self.gg = gg
        self.r = r
        self.dr = dr
        return True

    def __repr__(self) -> str:
        return f"SigmaPotential(size={self._size}, stride={self.stride}, fg={self.fg is not None}, gg={self.gg is not None})"


class SigmaCalculator(Protocol):
    """填充某个 :math:`\\kappa` 通道 Sigma 矩阵的计算器（例如二阶 MBPT）。"""

    def get_second_order_sigma(self, kappa: int, sigma: SigmaPotential) -> None:
        ...


class PolarisationSigmaCalculator:
    r"""以 Buckingham 形式的核心极化势构造对角 Sigma：

    .. math::

        V_{\mathrm{pol}}(r) = -\frac{\alpha_d}{2 r^4}\left[1 - e^{-(r/r_c)^6}\right]

    对角元取 :math:`V_{\mathrm{pol}}(r_j)/w_j`，使 :math:`\Sigma s = V_{\mathrm{pol}}\,s`。

    Parameters
    ----------
    lattice : Lattice
        网格。
    alpha_d : float
        核心静态偶极极化率（a.u.）。
    r_c : float
        截断半径（a.u.）。
    kappa_scaling : dict[int, float], optional
        各 :math:`\kappa` 通道的附加缩放（拟合能级时使用），缺省为 1。
    """

    def __init__(self, lattice, alpha_d: float, r_c: float, kappa_scaling: dict[int, float] | None = None):
        if alpha_d < 0:
            raise ValueError(f"alpha_d 必须 >= 0，当前值: {alpha_d}")
        if r_c <= 0:
            raise ValueError(f"r_c 必须 > 0，当前值: {r_c}")
        self.lattice = lattice
        self.alpha_d = float(alpha_d)
        self.r_c = float(r_c)
        self.kappa_scaling = dict(kappa_scaling or {})

    def potential(self, r: np.ndarray) -> np.ndarray:
        cutoff = -np.expm1(-((r / self.r_c) ** 6))
        return -self.alpha_d / (2.0 * r**4) * cutoff

    def get_second_order_sigma(self, kappa: int, sigma: SigmaPotential) -> None:
        idx = sigma.points
        if idx.size == 0:
            return
        w = sigma.weights(self.lattice)
        v = self.potential(sigma.r[idx]) * self.kappa_scaling.get(kappa, 1.0)
        sigma.ff[np.diag_indices(idx.size)] = v / w
        if sigma.gg is not None:
            sigma.gg[np.diag_indices(idx.size)] = v / w
        logger.debug("极化 Sigma: kappa=%d，%d 个粗网格点", kappa, idx.size)
