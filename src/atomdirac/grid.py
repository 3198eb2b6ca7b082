r"""径向网格（Lattice）
======================

网格由映射 :math:`i \mapsto r(i)` 定义，同时保存坐标数组 ``r`` 与间距数组
``dr = dr/di``。数值积分统一写为

.. math::
    \int F(r)\,dr \approx \sum_i w_i\,F(r_i)\,\mathrm{d}r_i ,

其中 :math:`w_i` 为格点指标空间中的求积权重（Simpson、梯形等）。

网格对外只读；唯一允许的修改是 :meth:`Lattice.resize`，它按映射重新生成
全部坐标并同步通知所有已注册的观察者（ODE 算子等），观察者以弱引用保存。
"""

from __future__ import annotations

import math
import weakref

import numpy as np

from .logging_config import get_logger

__all__ = [
    "Lattice",
    "ExpLattice",
    "UniformLattice",
    "trapezoid_weights",
]

logger = get_logger(__name__)


def trapezoid_weights(r: np.ndarray) -> np.ndarray:
    r"""为给定单调递增的径向网格计算梯形积分权重。

    .. math::
        \int_{r_0}^{r_{N-1}} f(r)\,\mathrm{d}r \approx \sum_{i=0}^{N-1} w_i f(r_i)

    端点权重为半步长，内部点为左右间距的平均值。

    Parameters
    ----------
    r : numpy.ndarray
        单调递增的径向坐标数组。

    Returns
    -------
    w : numpy.ndarray
        梯形积分权重（已包含步长）。
    """
    if r.ndim != 1:
        raise ValueError("r 必须是一维数组")
    if np.any(np.diff(r) <= 0):
        raise ValueError("r 必须严格单调递增")
    n = r.size
    w = np.empty_like(r, dtype=float)
    if n == 1:
        w[0] = 0.0
        return w
    dr = np.diff(r)
    w[0] = 0.5 * dr[0]
    w[1:-1] = 0.5 * (dr[1:] + dr[:-1])
    w[-1] = 0.5 * dr[-1]
    return w


class Lattice:
    """径向网格基类。

    子类只需实现 :meth:`_lattice_to_real`、:meth:`_calculate_dr` 与
    :meth:`_real_to_lattice`（映射的逆，用于按半径扩展网格）。

    Parameters
    ----------
    num_points : int
        网格点数 :math:`N \\ge 1`。
    r_min : float
        首点坐标 :math:`r_0 > 0`。
    h : float
        映射步长参数 :math:`h > 0`。
    """

    def __init__(self, num_points: int, r_min: float, h: float):
        if num_points < 1:
            raise ValueError(f"num_points 必须 >= 1，当前值: {num_points}")
        if r_min <= 0:
            raise ValueError(f"r_min 必须 > 0，当前值: {r_min}")
        if h <= 0:
            raise ValueError(f"h 必须 > 0，当前值: {h}")
        self.r_min = float(r_min)
        self.h = float(h)
        self._observers: list[weakref.ref] = []
        self._build(int(num_points))

    # --- 映射 ---------------------------------------------------------------

    def _lattice_to_real(self, i: np.ndarray) -> np.ndarray:
        raise NotImplementedError

    def _calculate_dr(self, r: np.ndarray) -> np.ndarray:
        raise NotImplementedError

    def _real_to_lattice(self, r_point: float) -> float:
        raise NotImplementedError

    def _build(self, num_points: int) -> None:
        i = np.arange(num_points, dtype=float)
        r = self._lattice_to_real(i)
        dr = self._calculate_dr(r)
        r.setflags(write=False)
        dr.setflags(write=False)
        self._r = r
        self._dr = dr

    # --- 查询 ---------------------------------------------------------------

    @property
    def r(self) -> np.ndarray:
        """坐标数组（只读视图）。"""
        return self._r

    @property
    def dr(self) -> np.ndarray:
        """间距数组 :math:`dr/di`（只读视图）。"""
        return self._dr

    def size(self) -> int:
        return self._r.size

    def __len__(self) -> int:
        return self._r.size

    def coordinate(self, i: int) -> float:
        if not 0 <= i < self._r.size:
            raise IndexError(f"格点指标越界: {i}（网格大小 {self._r.size}）")
        return float(self._r[i])

    def spacing(self, i: int) -> float:
        if not 0 <= i < self._dr.size:
            raise IndexError(f"格点指标越界: {i}（网格大小 {self._dr.size}）")
        return float(self._dr[i])

    def real_to_lattice(self, r_point: float) -> int:
        """返回第一个满足 :math:`r_i \\ge r` 的格点指标。

        若 :math:`r` 超出当前网格，则先扩展网格（会通知观察者）。
        """
        if r_point <= self.r_min:
            return 0
        index = int(math.ceil(self._real_to_lattice(r_point) - 1e-9))
        if index >= self.size():
            self.resize(index + 1)
        return index

    # --- 调整大小与观察者 ----------------------------------------------------

    def register_observer(self, observer) -> None:
        """注册观察者（弱引用）；观察者需实现 ``alert()``。"""
        for ref in self._observers:
            if ref() is observer:
                return
        self._observers.append(weakref.ref(observer))

    def unregister_observer(self, observer) -> None:
        self._observers = [ref for ref in self._observers if ref() is not None and ref() is not observer]

    def num_observers(self) -> int:
        return sum(1 for ref in self._observers if ref() is not None)

    def resize(self, num_points: int) -> None:
        """按映射重新生成 ``num_points`` 个点并通知观察者。"""
        if num_points < 1:
            raise ValueError(f"num_points 必须 >= 1，当前值: {num_points}")
        old_size = self.size()
        self._build(int(num_points))
        logger.debug("%s 大小调整: %d -> %d", type(self).__name__, old_size, num_points)
        self._notify()

    def _notify(self) -> None:
        live = []
        for ref in self._observers:
            observer = ref()
            if observer is None:
                continue
            live.append(ref)
            observer.alert()
        self._observers = live

    # --- 比较 ---------------------------------------------------------------

    def __eq__(self, other) -> bool:
        if type(self) is not type(other):
            return NotImplemented
        return self.h == other.h and self.r_min == other.r_min

    def __hash__(self) -> int:
        return hash((type(self).__name__, self.h, self.r_min))

    def __repr__(self) -> str:
        return f"{type(self).__name__}(num_points={self.size()}, r_min={self.r_min!r}, h={self.h!r})"


class ExpLattice(Lattice):
    r"""指数网格：:math:`r(i) = r_\min e^{h i}`，:math:`dr(i) = r(i)\,h`。

    小 :math:`r` 处加密，适合库仑奇点附近的相对论波函数。
    """

    def _lattice_to_real(self, i: np.ndarray) -> np.ndarray:
        return self.r_min * np.exp(self.h * i)

    def _calculate_dr(self, r: np.ndarray) -> np.ndarray:
        return r * self.h

    def _real_to_lattice(self, r_point: float) -> float:
        return math.log(r_point / self.r_min) / self.h


class UniformLattice(Lattice):
    r"""等间距网格：:math:`r(i) = r_\min + h i`，:math:`dr(i) = h`。"""

    def _lattice_to_real(self, i: np.ndarray) -> np.ndarray:
        return self.r_min + self.h * i

    def _calculate_dr(self, r: np.ndarray) -> np.ndarray:
        return np.full_like(r, self.h)

    def _real_to_lattice(self, r_point: float) -> float:
        return (r_point - self.r_min) / self.h
