r"""两分量旋量波函数
====================

相对论径向波函数写成大分量 :math:`f(r)` 与小分量 :math:`g(r)`，
连同导数 :math:`df/dr`、:math:`dg/dr` 一起保存在同一网格的前缀上。

约定
----
- 四个数组长度相同，可以小于网格长度；存储长度之外视为零（截断，不是错误）。
- 加减法要求长度一致，否则抛出 :class:`SizeMismatchError`；调用方需先对齐长度。
- 与径向函数 :math:`\chi(r)` 的逐点乘法使用 :math:`\chi` 的前缀，
  要求 :math:`\chi` 不短于旋量。
- 范数 :math:`\int (f^2 + g^2)\,dr` 使用复合 Simpson 权重。
"""

from __future__ import annotations

import struct
from numbers import Real
from typing import BinaryIO

import numpy as np

from .utils import lattice_integral, read_exact

__all__ = [
    "SizeMismatchError",
    "RadialFunction",
    "SpinorFunction",
]

_SIZE_FORMAT = "<I"


class SizeMismatchError(ValueError):
    """两个网格函数的存储长度不一致。"""


class RadialFunction:
    """单分量径向函数及其导数（例如势、密度）。"""

    def __init__(self, f: np.ndarray | None = None, dfdr: np.ndarray | None = None):
        self.f = np.zeros(0) if f is None else np.array(f, dtype=float)
        if dfdr is None:
            self.dfdr = np.zeros_like(self.f)
        else:
            self.dfdr = np.array(dfdr, dtype=float)
        if self.dfdr.shape != self.f.shape:
            raise SizeMismatchError(f"f 与 dfdr 长度不一致: {self.f.size} != {self.dfdr.size}")

    def size(self) -> int:
        return self.f.size

    def __len__(self) -> int:
        return self.f.size

    def resize(self, size: int) -> None:
        self.f = _resized(self.f, size)
        self.dfdr = _resized(self.dfdr, size)

    def copy(self) -> "RadialFunction":
        return RadialFunction(self.f.copy(), self.dfdr.copy())

    def __mul__(self, scale: float) -> "RadialFunction":
        if not isinstance(scale, Real):
            return NotImplemented
        return RadialFunction(self.f * scale, self.dfdr * scale)

    __rmul__ = __mul__


def _resized(a: np.ndarray, size: int) -> np.ndarray:
    if size < 0:
        raise ValueError(f"size 必须 >= 0，当前值: {size}")
    if size <= a.size:
        return a[:size].copy()
    out = np.zeros(size, dtype=float)
    out[:a.size] = a
    return out


class SpinorFunction:
    r"""两分量旋量函数 :math:`(f, g)` 及其导数。

    Parameters
    ----------
    kappa : int
        相对论角量子数 :math:`\kappa`。
    size : int, optional
        初始存储长度（数组置零）。
    """

    def __init__(self, kappa: int, size: int = 0):
        self.kappa = int(kappa)
        self.f = np.zeros(size, dtype=float)
        self.g = np.zeros(size, dtype=float)
        self.dfdr = np.zeros(size, dtype=float)
        self.dgdr = np.zeros(size, dtype=float)

    @classmethod
    def from_arrays(
        cls,
        kappa: int,
        f: np.ndarray,
        g: np.ndarray,
        dfdr: np.ndarray | None = None,
        dgdr: np.ndarray | None = None,
    ) -> "SpinorFunction":
        s = cls(kappa)
        s._assign(f, g, dfdr, dgdr)
        return s

    def _assign(self, f, g, dfdr=None, dgdr=None) -> None:
        f = np.array(f, dtype=float)
        g = np.array(g, dtype=float)
        dfdr = np.zeros_like(f) if dfdr is None else np.array(dfdr, dtype=float)
        dgdr = np.zeros_like(g) if dgdr is None else np.array(dgdr, dtype=float)
        if not (f.shape == g.shape == dfdr.shape == dgdr.shape) or f.ndim != 1:
            raise SizeMismatchError(
                f"f, g, dfdr, dgdr 长度必须一致: {f.shape}, {g.shape}, {dfdr.shape}, {dgdr.shape}"
            )
        self.f, self.g, self.dfdr, self.dgdr = f, g, dfdr, dgdr

    # --- 大小 ---------------------------------------------------------------

    def size(self) -> int:
        return self.f.size

    def __len__(self) -> int:
        return self.f.size

    def resize(self, size: int) -> None:
        """截断或补零到 ``size`` 个点。"""
        self.f = _resized(self.f, size)
        self.g = _resized(self.g, size)
        self.dfdr = _resized(self.dfdr, size)
        self.dgdr = _resized(self.dgdr, size)

    def copy(self):
        other = self.__class__.__new__(self.__class__)
        other.__dict__.update(self.__dict__)
        other.f = self.f.copy()
        other.g = self.g.copy()
        other.dfdr = self.dfdr.copy()
        other.dgdr = self.dgdr.copy()
        return other

    def as_spinor(self) -> "SpinorFunction":
        """仅保留旋量部分（丢弃轨道量子数等附加信息）。"""
        return SpinorFunction.from_arrays(self.kappa, self.f.copy(), self.g.copy(), self.dfdr.copy(), self.dgdr.copy())

    # --- 算术 ---------------------------------------------------------------

    def _check_same_size(self, other: "SpinorFunction") -> None:
        if self.size() != other.size():
            raise SizeMismatchError(f"旋量长度不一致: {self.size()} != {other.size()}")

    def __iadd__(self, other: "SpinorFunction"):
        if not isinstance(other, SpinorFunction):
            return NotImplemented
        self._check_same_size(other)
        self.f += other.f
        self.g += other.g
        self.dfdr += other.dfdr
        self.dgdr += other.dgdr
        return self

    def __isub__(self, other: "SpinorFunction"):
        if not isinstance(other, SpinorFunction):
            return NotImplemented
        self._check_same_size(other)
        self.f -= other.f
        self.g -= other.g
        self.dfdr -= other.dfdr
        self.dgdr -= other.dgdr
        return self

    def __imul__(self, other):
        if isinstance(other, Real):
            self.f *= other
            self.g *= other
            self.dfdr *= other
            self.dgdr *= other
            return self
        if isinstance(other, RadialFunction):
            n = self.size()
            if other.size() < n:
                raise SizeMismatchError(f"径向函数长度 ({other.size()}) 小于旋量长度 ({n})")
            chi, dchi = other.f[:n], other.dfdr[:n]
            # 乘积法则
            self.dfdr = self.dfdr * chi + self.f * dchi
            self.dgdr = self.dgdr * chi + self.g * dchi
            self.f = self.f * chi
            self.g = self.g * chi
            return self
        return NotImplemented

    def __add__(self, other):
        if not isinstance(other, SpinorFunction):
            return NotImplemented
        ret = self.copy()
        ret += other
        return ret

    def __sub__(self, other):
        if not isinstance(other, SpinorFunction):
            return NotImplemented
        ret = self.copy()
        ret -= other
        return ret

    def __mul__(self, other):
        if not isinstance(other, (Real, RadialFunction)):
            return NotImplemented
        ret = self.copy()
        ret *= other
        return ret

    def __rmul__(self, other):
        if not isinstance(other, Real):
            return NotImplemented
        return self * other

    def __neg__(self):
        return self * -1.0

    # --- 积分 ---------------------------------------------------------------

    def norm(self, lattice) -> float:
        r""":math:`\int (f^2 + g^2)\,dr`（Simpson 求积）。"""
        return lattice_integral(self.f * self.f + self.g * self.g, lattice.dr)

    def overlap(self, other: "SpinorFunction", lattice) -> float:
        r"""内积 :math:`\int (f_a f_b + g_a g_b)\,dr`，取两者的公共前缀。"""
        n = min(self.size(), other.size())
        integrand = self.f[:n] * other.f[:n] + self.g[:n] * other.g[:n]
        return lattice_integral(integrand, lattice.dr)

    # --- 二进制 -------------------------------------------------------------

    def write(self, fp: BinaryIO) -> None:
        """顺序写出：长度（uint32），随后 f, g, dfdr, dgdr（float64）。"""
        fp.write(struct.pack(_SIZE_FORMAT, self.size()))
        for a in (self.f, self.g, self.dfdr, self.dgdr):
            fp.write(np.ascontiguousarray(a, dtype="<f8").tobytes())

    def read(self, fp: BinaryIO) -> None:
        (size,) = struct.unpack(_SIZE_FORMAT, read_exact(fp, struct.calcsize(_SIZE_FORMAT)))
        arrays = [np.frombuffer(read_exact(fp, 8 * size), dtype="<f8").astype(float) for _ in range(4)]
        self._assign(*arrays)

    def __repr__(self) -> str:
        return f"{type(self).__name__}(kappa={self.kappa}, size={self.size()})"
