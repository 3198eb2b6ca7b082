from __future__ import annotations

import json
import struct
from pathlib import Path
from typing import Dict, List

import numpy as np

from .orbital import Orbital
from .utils import read_exact

__all__ = [
    "write_orbitals",
    "read_orbitals",
    "export_orbitals_csv",
    "export_energies_json",
]

_COUNT_FORMAT = "<I"


def write_orbitals(out_path: str | Path, orbitals: List[Orbital]) -> None:
    """写出轨道集合二进制文件：轨道数（uint32），随后按 (pqn, kappa) 排序的轨道记录。"""
    p = Path(out_path)
    p.parent.mkdir(parents=True, exist_ok=True)
    with p.open("wb") as f:
        f.write(struct.pack(_COUNT_FORMAT, len(orbitals)))
        for orbital in sorted(orbitals, key=lambda o: o.info):
            orbital.write(f)


def read_orbitals(path: str | Path) -> List[Orbital]:
    """读取 :func:`write_orbitals` 写出的文件；记录被截断时抛出 ``ValueError``。"""
    with Path(path).open("rb") as f:
        (count,) = struct.unpack(_COUNT_FORMAT, read_exact(f, struct.calcsize(_COUNT_FORMAT)))
        return [Orbital.from_file(f) for _ in range(count)]


def export_orbitals_csv(out_dir: str | Path, lattice, orbitals: List[Orbital]) -> List[Path]:
    """导出各轨道的径向波函数至 CSV，列为 `r,f,g`，文件名为轨道记号（如 `orbital_4p+.csv`）。"""
    out = Path(out_dir)
    out.mkdir(parents=True, exist_ok=True)
    written = []
    for orbital in orbitals:
        n = orbital.size()
        data = np.column_stack([lattice.r[:n], orbital.f, orbital.g])
        fn = out / f"orbital_{orbital.name}.csv"
        np.savetxt(fn, data, delimiter=",", header="r,f,g")
        written.append(fn)
    return written


def export_energies_json(out_path: str | Path, orbitals: List[Orbital], extra: dict | None = None) -> None:
    """导出轨道能量表为 JSON（键为轨道记号）。"""
    data: Dict[str, dict] = {
        "orbitals": {
            o.name: {
                "pqn": o.pqn,
                "kappa": o.kappa,
                "occupancy": float(o.occupancy),
                "energy": float(o.energy),
                "size": o.size(),
            }
            for o in sorted(orbitals, key=lambda o: o.info)
        }
    }
    if extra:
        data.update(extra)

    p = Path(out_path)
    p.parent.mkdir(parents=True, exist_ok=True)
    with p.open("w", encoding="utf-8") as f:
        json.dump(data, f, indent=2, ensure_ascii=False)
