"""轨道单元测试：归一化、节点计数、自适应长度与二进制记录。"""

import io

import numpy as np
import pytest

from atomdirac.grid import ExpLattice, UniformLattice
from atomdirac.orbital import DegenerateOrbitalError, Orbital, OrbitalInfo, converge_size


def _hydrogen_1s(lattice, size):
    r = np.asarray(lattice.r[:size])
    f = 2.0 * r * np.exp(-r)
    return Orbital.from_arrays(-1, f, -1e-3 * f, pqn=1, energy=-0.5)


@pytest.mark.quick
def test_orbital_info_names_and_order():
    assert OrbitalInfo(4, -1).name == "4s"
    assert OrbitalInfo(4, 1).name == "4p"
    assert OrbitalInfo(4, -2).name == "4p+"
    assert OrbitalInfo(3, 2).name == "3d"
    assert OrbitalInfo(3, -3).j == 2.5
    assert OrbitalInfo(3, -3).max_num_electrons == 6
    assert OrbitalInfo(2, 1).l_prime == 0

    orbitals = [Orbital(1, 2), Orbital(-1, 3), Orbital(-2, 2), Orbital(-1, 2)]
    names = [o.name for o in sorted(orbitals)]
    assert names == ["2p+", "2s", "2p", "3s"]


@pytest.mark.quick
def test_default_occupancy_is_full_shell():
    assert Orbital(-1, 1).occupancy == 2.0
    assert Orbital(-3, 3).occupancy == 6.0
    assert Orbital(2, 3, occupancy=1.0).occupancy == 1.0
    with pytest.raises(ValueError):
        Orbital(0, 1)


@pytest.mark.quick
def test_renormalise_is_idempotent():
    lat = ExpLattice(1001, 1e-6, 0.03)
    orb = _hydrogen_1s(lat, 1001)
    orb *= 3.7
    orb.renormalise(lat)
    assert np.isclose(orb.norm(lat), 1.0, rtol=0, atol=1e-12)
    f_before = orb.f.copy()
    orb.renormalise(lat)
    assert np.allclose(orb.f, f_before, rtol=1e-12, atol=0)

    orb.renormalise(lat, norm=2.0)
    assert np.isclose(orb.norm(lat), 2.0, rtol=0, atol=1e-12)


@pytest.mark.quick
def test_renormalise_zero_orbital_is_noop():
    lat = ExpLattice(101, 1e-6, 0.1)
    orb = Orbital(-1, 1, size=101)
    orb.renormalise(lat)
    assert np.all(orb.f == 0.0)
    assert np.all(np.isfinite(orb.g))


@pytest.mark.quick
def test_num_nodes_ignores_head_and_tail_noise():
    """f = r² e^{-r}(r-1)(r-4)：两个节点；开头与尾部的微小振荡不计入。"""
    lat = ExpLattice(1200, 1e-5, 0.02)
    r = np.asarray(lat.r)
    f = r**2 * np.exp(-r) * (r - 1.0) * (r - 4.0)
    fmax = np.max(np.abs(f))

    f[:6] = 1e-12 * fmax * (-1.0) ** np.arange(6)
    tail = r > 25.0
    f[tail] = 1e-5 * fmax * (-1.0) ** np.arange(np.count_nonzero(tail))
    f[lat.real_to_lattice(0.5)] = 0.0  # 精确零不重置符号

    orb = Orbital.from_arrays(-1, f, np.zeros_like(f), pqn=3)
    assert orb.num_nodes() == 2


@pytest.mark.quick
def test_num_nodes_counts_single_sample_outer_lobe():
    f = np.array([0.2, 0.5, 1.0, 0.8, 0.4, -0.3, 1e-4, -1e-5])
    assert Orbital.from_arrays(-1, f, np.zeros_like(f), pqn=2).num_nodes() == 1

    f = np.array([0.2, 0.5, 1.0, 0.8, 0.4, 0.0, 0.3, 1e-4])
    assert Orbital.from_arrays(-1, f, np.zeros_like(f), pqn=1).num_nodes() == 0

    f = np.array([0.2, 0.5, 1.0, 0.0, -0.8, -0.3, 1e-4])
    assert Orbital.from_arrays(-1, f, np.zeros_like(f), pqn=2).num_nodes() == 1


@pytest.mark.quick
def test_num_nodes_of_empty_and_zero_orbital():
    assert Orbital(-1, 1).num_nodes() == 0
    assert Orbital(-1, 1, size=10).num_nodes() == 0


@pytest.mark.quick
def test_check_size_shrinks_then_converges():
    lat = ExpLattice(1001, 1e-6, 0.03)
    orb = _hydrogen_1s(lat, 1001)

    assert orb.check_size(lat, 1e-10) is False
    n = orb.size()
    assert n < 1001
    ratio = np.abs(orb.f) / np.max(np.abs(orb.f))
    assert ratio[n - 2] >= 1e-10
    assert ratio[n - 1] < 1e-10

    assert orb.check_size(lat, 1e-10) is True
    assert orb.size() == n


@pytest.mark.quick
def test_check_size_grows_undecayed_orbital():
    lat = ExpLattice(300, 1e-4, 0.05)
    n0 = lat.real_to_lattice(5.0)
    orb = _hydrogen_1s(lat, n0)
    f_last = orb.f[-1]

    assert orb.check_size(lat, 1e-10) is False
    assert orb.size() > n0
    assert lat.size() >= orb.size()

    tail = orb.f[n0 - 1:]
    assert tail[0] == f_last
    assert np.all(tail > 0.0)
    assert np.all(np.diff(tail) < 0.0), "外推尾部应单调衰减"
    assert np.all(orb.dfdr[n0:] < 0.0)
    assert np.all(orb.g[n0:] < 0.0)

    assert orb.check_size(lat, 1e-10) is True


@pytest.mark.quick
def test_check_size_degenerate_orbital():
    lat = ExpLattice(100, 1e-5, 0.05)
    with pytest.raises(DegenerateOrbitalError):
        Orbital(-1, 1, size=100).check_size(lat, 1e-10)

    tiny = Orbital.from_arrays(-1, np.full(100, 1e-9), np.zeros(100))
    with pytest.raises(DegenerateOrbitalError):
        tiny.check_size(lat, 1e-10)


@pytest.mark.quick
def test_converge_size_fixed_point():
    lat = ExpLattice(300, 1e-4, 0.05)
    orb = _hydrogen_1s(lat, lat.real_to_lattice(5.0))

    def solve(o):
        r = np.asarray(lat.r[:o.size()])
        o.f[:] = 2.0 * r * np.exp(-r)
        o.g[:] = -1e-3 * o.f

    iterations = converge_size(orb, lat, solve, tolerance=1e-10, max_iterations=10)
    assert 1 < iterations <= 5
    ratio = np.abs(orb.f) / np.max(np.abs(orb.f))
    assert ratio[-2] >= 1e-10
    assert ratio[-1] < 1e-10


@pytest.mark.quick
def test_converge_size_raises_when_not_converging():
    lat = UniformLattice(50, 0.1, 0.1)
    orb = Orbital(-1, 1, size=50)

    def solve(o):
        o.f[:] = 1.0

    with pytest.raises(RuntimeError):
        converge_size(orb, lat, solve, tolerance=1e-10, max_iterations=3)


@pytest.mark.quick
def test_orbital_binary_round_trip():
    lat = ExpLattice(200, 1e-5, 0.05)
    orb = _hydrogen_1s(lat, 200)
    orb.pqn = 2
    orb.kappa = -2
    orb.energy = -0.125
    orb.occupancy = 3.0

    buf = io.BytesIO()
    orb.write(buf)
    # 头部 4+4+8 字节，能量 8 字节，长度 4 字节，随后 4 个数组
    assert len(buf.getvalue()) == 28 + 4 * 8 * 200

    buf.seek(0)
    back = Orbital.from_file(buf)
    assert back.info == orb.info
    assert back.energy == orb.energy
    assert back.occupancy == orb.occupancy
    assert np.array_equal(back.f, orb.f)
    assert np.array_equal(back.g, orb.g)
    assert np.array_equal(back.dfdr, orb.dfdr)


@pytest.mark.quick
def test_orbital_copy_keeps_quantum_numbers():
    orb = Orbital.from_arrays(-2, np.ones(5), np.zeros(5), pqn=2, energy=-0.3)
    other = orb.copy()
    other.f[0] = 5.0
    assert isinstance(other, Orbital)
    assert other.pqn == 2 and other.energy == -0.3
    assert orb.f[0] == 1.0
