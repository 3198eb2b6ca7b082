#!/usr/bin/env python
"""Brueckner Sigma 存储示例。

构建指数网格与类氢核心轨道，在 Dirac–Hartree–Fock 算子上叠加以核心极化势
构造的 Sigma，按 kappa 通道读取或计算并保存，最后输出价轨道的一阶能量修正。

用法::

    python examples/run_sigma_store.py --Z 11 --alpha-d 0.945 --r-c 1.4 --out out/Na
"""

import argparse
import sys
from pathlib import Path

# 添加 src 到路径
sys.path.insert(0, str(Path(__file__).parent.parent / "src"))

import numpy as np

from atomdirac.config import HARTREE_TO_INV_CM, AtomConfig, load_config
from atomdirac.grid import ExpLattice
from atomdirac.hf import HFOperator
from atomdirac.io import export_energies_json, write_orbitals
from atomdirac.logging_config import get_logger
from atomdirac.mbpt import BruecknerDecorator, PolarisationSigmaCalculator
from atomdirac.orbital import Orbital

logger = get_logger("atomdirac.examples.sigma_store")


def hydrogenic(lattice, Z, kappa, pqn, energy):
    """类氢近似轨道（仅用于示例，不是自洽解）。"""
    r = np.asarray(lattice.r)
    l = kappa if kappa > 0 else -kappa - 1
    f = r ** (l + 1) * np.exp(-Z * r / pqn)
    orbital = Orbital.from_arrays(kappa, f, -1e-3 * f, pqn=pqn, energy=energy)
    orbital.renormalise(lattice)
    return orbital


def main(argv=None):
    parser = argparse.ArgumentParser(description="Brueckner Sigma 存储示例")
    parser.add_argument("--Z", type=float, default=11.0, help="核电荷")
    parser.add_argument("--alpha-d", type=float, default=0.945, help="核心偶极极化率 (a.u.)")
    parser.add_argument("--r-c", type=float, default=1.4, help="极化势截断半径 (a.u.)")
    parser.add_argument("--n", type=int, default=1000, help="网格点数")
    parser.add_argument("--config", type=str, default=None, help="JSON 配置文件")
    parser.add_argument("--out", type=str, default="out/Na", help="输出文件前缀")
    args = parser.parse_args(argv)

    cfg = load_config(args.config) if args.config else AtomConfig()
    lattice = ExpLattice(args.n, 1e-6, 0.025)

    core = [hydrogenic(lattice, args.Z, -1, 1, -0.5 * args.Z**2)]
    hf = HFOperator(lattice, args.Z, core=core, constants=cfg.constants,
                    derivative_points=cfg.numerics.derivative_points)

    brueckner = BruecknerDecorator(
        hf,
        constants=cfg.constants,
        sigma_scaling=cfg.numerics.sigma_scaling,
        use_gg=True,
        derivative_points=cfg.numerics.derivative_points,
    )
    calculator = PolarisationSigmaCalculator(lattice, args.alpha_d, args.r_c)

    z_ion = args.Z - len(core) * 2
    valence = [
        hydrogenic(lattice, z_ion, -1, 3, -0.18),
        hydrogenic(lattice, z_ion, 1, 3, -0.11),
    ]

    Path(args.out).parent.mkdir(parents=True, exist_ok=True)
    for orbital in valence:
        if not brueckner.read(args.out, orbital.kappa):
            brueckner.calculate_sigma(orbital.kappa, calculator)

    brueckner.write_all(args.out)

    shifts = {}
    print(f"{'轨道':>6} {'E_HF (Ha)':>14} {'δE (Ha)':>14} {'δE (cm^-1)':>14}")
    for orbital in valence:
        orbital.check_size(lattice, cfg.numerics.check_size_tolerance)
        shift = brueckner.sigma_energy(orbital)
        shifts[orbital.name] = shift
        print(f"{orbital.name:>6} {orbital.energy:14.8f} {shift:14.8f} {shift * HARTREE_TO_INV_CM:14.2f}")

    write_orbitals(args.out + ".orb", core + valence)
    export_energies_json(args.out + ".json", core + valence, extra={"sigma_shift": shifts})
    logger.info("结果已写出: %s.*", args.out)


if __name__ == "__main__":
    main()
