import gc

import numpy as np
import pytest

from atomdirac.grid import ExpLattice, UniformLattice, trapezoid_weights


class _Recorder:
    def __init__(self):
        self.sizes = []
        self.lattice = None

    def alert(self):
        self.sizes.append(self.lattice.size())


@pytest.mark.grid
@pytest.mark.quick
def test_exp_lattice_mapping():
    lat = ExpLattice(200, 1e-5, 0.05)
    i = np.arange(200)
    assert np.allclose(lat.r, 1e-5 * np.exp(0.05 * i), rtol=1e-14, atol=0)
    assert np.allclose(lat.dr, lat.r * 0.05, rtol=1e-14, atol=0)
    assert lat.size() == len(lat) == 200
    assert np.all(np.diff(lat.r) > 0)


@pytest.mark.grid
@pytest.mark.quick
def test_uniform_lattice_mapping():
    lat = UniformLattice(11, 0.1, 0.2)
    assert np.isclose(lat.coordinate(10), 2.1)
    assert np.all(lat.dr == 0.2)
    with pytest.raises(IndexError):
        lat.coordinate(11)


@pytest.mark.grid
@pytest.mark.quick
def test_lattice_arrays_are_read_only():
    lat = ExpLattice(50, 1e-4, 0.1)
    with pytest.raises(ValueError):
        lat.r[0] = 1.0


@pytest.mark.grid
@pytest.mark.quick
def test_resize_keeps_origin_and_notifies_observers():
    lat = ExpLattice(100, 1e-5, 0.05)
    obs = _Recorder()
    obs.lattice = lat
    lat.register_observer(obs)
    lat.register_observer(obs)  # 重复注册无效
    assert lat.num_observers() == 1

    r0 = lat.r[0]
    old_r = lat.r.copy()
    lat.resize(150)
    assert lat.size() == 150
    assert lat.r[0] == r0
    assert np.allclose(lat.r[:100], old_r, rtol=1e-14, atol=0)
    assert obs.sizes == [150], "观察者应在调整大小时同步收到通知"

    lat.resize(80)
    assert obs.sizes == [150, 80]


@pytest.mark.grid
@pytest.mark.quick
def test_observers_are_weak_references():
    lat = ExpLattice(100, 1e-5, 0.05)
    obs = _Recorder()
    obs.lattice = lat
    lat.register_observer(obs)
    assert lat.num_observers() == 1

    del obs
    gc.collect()
    assert lat.num_observers() == 0
    lat.resize(120)  # 已回收的观察者不应导致错误


@pytest.mark.grid
@pytest.mark.quick
def test_unregister_observer():
    lat = ExpLattice(100, 1e-5, 0.05)
    obs = _Recorder()
    obs.lattice = lat
    lat.register_observer(obs)
    lat.unregister_observer(obs)
    lat.resize(110)
    assert obs.sizes == []


@pytest.mark.grid
@pytest.mark.quick
def test_resize_rejects_empty():
    lat = ExpLattice(10, 1e-5, 0.05)
    with pytest.raises(ValueError):
        lat.resize(0)


@pytest.mark.grid
@pytest.mark.quick
def test_lattice_equality_ignores_size():
    a = ExpLattice(100, 1e-5, 0.05)
    b = ExpLattice(300, 1e-5, 0.05)
    c = ExpLattice(100, 1e-5, 0.04)
    assert a == b
    assert hash(a) == hash(b)
    assert a != c
    assert a != UniformLattice(100, 1e-5, 0.05)


@pytest.mark.grid
@pytest.mark.quick
def test_real_to_lattice_grows_lattice():
    lat = ExpLattice(100, 1e-5, 0.05)
    i = lat.real_to_lattice(1.0)
    assert lat.r[i] >= 1.0
    assert lat.r[i - 1] < 1.0

    r_far = lat.r[-1] * 10.0
    j = lat.real_to_lattice(r_far)
    assert lat.size() == j + 1
    assert lat.r[j] >= r_far * (1 - 1e-12)


@pytest.mark.grid
@pytest.mark.quick
def test_trapezoid_weights_match_explicit_sum():
    r = np.linspace(0.0, 1.0, 1001)
    w = trapezoid_weights(r)
    f = np.sin(2 * np.pi * r)
    int1 = np.sum(w * f)
    int2 = 0.5 * np.sum((f[1:] + f[:-1]) * np.diff(r))
    assert np.isclose(int1, int2, rtol=0, atol=1e-12)
