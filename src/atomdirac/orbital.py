r"""轨道：带量子数的旋量波函数
==============================

:class:`Orbital` 在 :class:`~atomdirac.spinor.SpinorFunction` 基础上附加主量子数、
能量与占据数，并提供自适应数值表示所需的三个算法：

- :meth:`Orbital.renormalise`：按 Simpson 范数重新归一化；
- :meth:`Orbital.num_nodes`：忽略首尾噪声的节点计数；
- :meth:`Orbital.check_size`：检查存储长度是否恰好覆盖数值上显著的区域，
  否则按指数衰减外推（增长）或截断（缩短）。

:meth:`Orbital.check_size` 返回 ``False`` 不是错误，而是不动点循环的信号：
调用方需在新长度上重新求解，直到返回 ``True``（见 :func:`converge_size`）。

二进制记录（小端、定长字段、无版本号）::

    kappa (int32) | pqn (uint32) | occupancy (float64) |
    energy (float64) | size (uint32) | f | g | dfdr | dgdr (float64 x size)
"""

from __future__ import annotations

import math
import struct
from dataclasses import dataclass
from typing import BinaryIO, Callable

import numpy as np

from .logging_config import get_logger
from .spinor import SpinorFunction
from .utils import read_exact

__all__ = [
    "DegenerateOrbitalError",
    "OrbitalInfo",
    "Orbital",
    "converge_size",
]

logger = get_logger(__name__)

_HEADER_FORMAT = "<iId"
_ENERGY_FORMAT = "<d"

_SPECTROSCOPIC_LETTERS = "spdfghiklmnoqrtuv"

# 节点计数的首尾阈值（相对于 max|f|）
_NODE_START_THRESHOLD = 1.0e-7
_NODE_END_THRESHOLD = 1.0e-2

# 外推时衰减比的上限，保证外推收敛
_MAX_DECAY_RATIO = 0.96


class DegenerateOrbitalError(RuntimeError):
    """轨道在数值上为零函数，无法继续任何数值操作。"""


@dataclass(frozen=True, order=True)
class OrbitalInfo:
    r"""轨道标识 :math:`(n, \kappa)`，按 (pqn, kappa) 排序。"""

    pqn: int
    kappa: int

    def __post_init__(self):
        if self.kappa == 0:
            raise ValueError("kappa 不能为 0")

    @property
    def l(self) -> int:
        return self.kappa if self.kappa > 0 else -self.kappa - 1

    @property
    def l_prime(self) -> int:
        """小分量的轨道角动量（对应 :math:`-\\kappa`）。"""
        return -self.kappa if self.kappa < 0 else self.kappa - 1

    @property
    def j(self) -> float:
        return abs(self.kappa) - 0.5

    @property
    def two_j(self) -> int:
        return 2 * abs(self.kappa) - 1

    @property
    def max_num_electrons(self) -> int:
        return 2 * abs(self.kappa)

    @property
    def name(self) -> str:
        """谱学记号，例如 ``4s``、``4p``（j=l-1/2）、``4p+``（j=l+1/2）。"""
        l = self.l
        letter = _SPECTROSCOPIC_LETTERS[l] if l < len(_SPECTROSCOPIC_LETTERS) else f"[l={l}]"
        suffix = "+" if self.kappa < -1 else ""
        return f"{self.pqn}{letter}{suffix}"

    def __str__(self) -> str:
        return self.name


class Orbital(SpinorFunction):
    r"""单电子轨道。

    Parameters
    ----------
    kappa : int
        相对论角量子数（非零）。
    pqn : int
        主量子数。
    energy : float
        轨道能量（Hartree）。
    size : int
        初始存储长度。
    occupancy : float, optional
        占据数；缺省为满壳层 :math:`2|\kappa|`。
    """

    def __init__(self, kappa: int, pqn: int = 0, energy: float = 0.0, size: int = 0, occupancy: float | None = None):
        if kappa == 0:
            raise ValueError("kappa 不能为 0")
        if pqn < 0:
            raise ValueError(f"pqn 必须 >= 0，当前值: {pqn}")
        super().__init__(kappa, size)
        self.pqn = int(pqn)
        self.energy = float(energy)
        self.occupancy = 2.0 * abs(self.kappa) if occupancy is None else float(occupancy)

    @classmethod
    def from_arrays(cls, kappa, f, g, dfdr=None, dgdr=None, pqn: int = 0, energy: float = 0.0, occupancy: float | None = None):
        orbital = cls(kappa, pqn=pqn, energy=energy, occupancy=occupancy)
        orbital._assign(f, g, dfdr, dgdr)
        return orbital

    # --- 标识 ---------------------------------------------------------------

    @property
    def info(self) -> OrbitalInfo:
        return OrbitalInfo(self.pqn, self.kappa)

    @property
    def l(self) -> int:
        return self.info.l

    @property
    def j(self) -> float:
        return self.info.j

    @property
    def two_j(self) -> int:
        return self.info.two_j

    @property
    def name(self) -> str:
        return self.info.name

    def __lt__(self, other: "Orbital") -> bool:
        if not isinstance(other, Orbital):
            return NotImplemented
        return self.info < other.info

    def __repr__(self) -> str:
        return (
            f"Orbital({self.name}, kappa={self.kappa}, energy={self.energy:.10g}, "
            f"occupancy={self.occupancy:g}, size={self.size()})"
        )

    # --- 归一化与节点 --------------------------------------------------------

    def renormalise(self, lattice, norm: float = 1.0) -> None:
        r"""整体缩放 :math:`\sqrt{\mathrm{norm}/\int(f^2+g^2)dr}`；零函数保持不变。"""
        current = self.norm(lattice)
        if current <= 0.0:
            logger.warning("%s: 范数为零，跳过归一化", self.name)
            return
        scaling = math.sqrt(norm / current)
        if scaling:
            self *= scaling

    def num_nodes(self) -> int:
        """大分量 :math:`f` 的变号次数。

        忽略开头 :math:`|f| < 10^{-7}\\max|f|` 的点（起步噪声）以及末尾
        :math:`|f| < 10^{-2}\\max|f|` 的点（近似交换引起的尾部振荡）。
        """
        if self.size() == 0:
            return 0
        abs_f = np.abs(self.f)
        fmax = float(abs_f.max())
        if fmax == 0.0:
            return 0

        start = int(np.argmax(abs_f >= _NODE_START_THRESHOLD * fmax))
        end = int(np.nonzero(abs_f >= _NODE_END_THRESHOLD * fmax)[0][-1])

        segment = self.f[start:end + 1]
        segment = segment[segment != 0.0]
        return int(np.count_nonzero(segment[1:] * segment[:-1] < 0.0))

    # --- 自适应长度 ----------------------------------------------------------

    def check_size(self, lattice, tolerance: float) -> bool:
        r"""检查并调整存储长度。

        设 :math:`i` 为最后一个满足 :math:`|f_i|/\max|f| \ge \mathrm{tol}` 的点：

        - :math:`i` 为末点：函数尚未衰减，按末端衰减比外推增长，返回 ``False``；
        - :math:`i + 2 <` 长度：截断为 :math:`i + 2`，返回 ``False``；
        - 否则长度恰好合适，返回 ``True``。

        Parameters
        ----------
        lattice : Lattice
            轨道所在网格；外推超出网格时会扩展网格。
        tolerance : float
            相对截断阈值。

        Raises
        ------
        DegenerateOrbitalError
            :math:`\max|f| < 100\,\mathrm{tol}`，即数值上的零函数。
        """
        n = self.size()
        abs_f = np.abs(self.f)
        maximum = float(abs_f.max()) if n else 0.0
        if maximum < 100.0 * tolerance:
            raise DegenerateOrbitalError(f"{self.name}: 零函数（max|f| = {maximum:.3e}，tol = {tolerance:.1e}）")

        i = int(np.nonzero(abs_f / maximum >= tolerance)[0][-1])

        if i == n - 1:
            self._extend_tail(lattice, tolerance, maximum)
            logger.debug("%s: 轨道未衰减，长度 %d -> %d", self.name, n, self.size())
            return False
        if i + 2 < n:
            self.resize(i + 2)
            logger.debug("%s: 截断轨道，长度 %d -> %d", self.name, n, i + 2)
            return False
        return True

    def _extend_tail(self, lattice, tolerance: float, maximum: float) -> None:
        f, g = self.f, self.g

        # 跳过末端附近的节点，得到稳定的衰减比
        top = self.size()
        while True:
            top -= 1
            if top < 1:
                raise DegenerateOrbitalError(f"{self.name}: 无法在末端找到单调衰减区")
            f_ratio = f[top] / f[top - 1] if f[top - 1] != 0.0 else -1.0
            g_ratio = g[top] / g[top - 1] if g[top - 1] != 0.0 else f_ratio
            if f_ratio >= 0.0 and g_ratio >= 0.0:
                break

        f_ratio = min(f_ratio, _MAX_DECAY_RATIO)
        g_ratio = min(g_ratio, _MAX_DECAY_RATIO)
        log_f_ratio = math.log(max(f_ratio, 1e-300))
        log_g_ratio = math.log(max(g_ratio, 1e-300))

        r = lattice.r
        dr_max = r[top] - r[top - 1]

        # 假设步长不变估计所需长度（略有高估）
        old_size = top
        new_top = top
        f_max = abs(f[top])
        while f_max / maximum >= tolerance:
            new_top += 1
            f_max *= f_ratio

        if lattice.size() < new_top + 1:
            lattice.resize(new_top + 1)
        r = lattice.r
        self.resize(new_top + 1)
        f, g, dfdr, dgdr = self.f, self.g, self.dfdr, self.dgdr

        # 指数衰减外推：每步的衰减比按局部步长相对 dr_max 缩放
        i = old_size
        while i < new_top and abs(f[i]) / maximum > tolerance:
            step_ratio = (r[i + 1] - r[i]) / dr_max
            f[i + 1] = f[i] * f_ratio**step_ratio
            g[i + 1] = g[i] * g_ratio**step_ratio
            dfdr[i + 1] = f[i + 1] * log_f_ratio / dr_max
            dgdr[i + 1] = g[i + 1] * log_g_ratio / dr_max
            i += 1
        self.resize(i + 1)

    # --- 二进制 -------------------------------------------------------------

    def write(self, fp: BinaryIO) -> None:
        fp.write(struct.pack(_HEADER_FORMAT, self.kappa, self.pqn, self.occupancy))
        fp.write(struct.pack(_ENERGY_FORMAT, self.energy))
        super().write(fp)

    def read(self, fp: BinaryIO) -> None:
        kappa, pqn, occupancy = struct.unpack(_HEADER_FORMAT, read_exact(fp, struct.calcsize(_HEADER_FORMAT)))
        (energy,) = struct.unpack(_ENERGY_FORMAT, read_exact(fp, struct.calcsize(_ENERGY_FORMAT)))
        if kappa == 0:
            raise ValueError("二进制记录中的 kappa 为 0")
        self.kappa = kappa
        self.pqn = pqn
        self.occupancy = occupancy
        self.energy = energy
        super().read(fp)

    @classmethod
    def from_file(cls, fp: BinaryIO) -> "Orbital":
        orbital = cls(-1)
        orbital.read(fp)
        return orbital


def converge_size(
    orbital: Orbital,
    lattice,
    solve: Callable[[Orbital], None],
    tolerance: float = 1e-10,
    max_iterations: int = 20,
) -> int:
    """求解 → :meth:`Orbital.check_size` 的不动点循环。

    ``solve`` 在轨道当前长度上原地求解（外部积分器）；循环直到
    ``check_size`` 返回 ``True``。

    Returns
    -------
    int
        实际迭代次数。

    Raises
    ------
    RuntimeError
        超过 ``max_iterations`` 仍未收敛。
    """
    for iteration in range(1, max_iterations + 1):
        solve(orbital)
        if orbital.check_size(lattice, tolerance):
            logger.debug("%s: 长度在第 %d 次迭代收敛（%d 点）", orbital.name, iteration, orbital.size())
            return iteration
    raise RuntimeError(f"{orbital.name}: {max_iterations} 次迭代后轨道长度仍未收敛")
