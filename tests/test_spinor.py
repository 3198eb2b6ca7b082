"""旋量函数与数值工具单元测试

覆盖 Simpson 范数、逐点乘法的乘积法则、长度不一致的加减法以及数值求导。
"""

import io

import numpy as np
import pytest
from scipy.integrate import simpson

from atomdirac.grid import ExpLattice, UniformLattice
from atomdirac.spinor import RadialFunction, SizeMismatchError, SpinorFunction
from atomdirac.utils import derivative, lattice_integral, simpson_weights


@pytest.mark.quick
def test_simpson_weights_odd_and_even():
    w5 = simpson_weights(5)
    assert np.allclose(w5, np.array([1, 4, 2, 4, 1]) / 3.0)

    w6 = simpson_weights(6)
    expected = np.array([1, 4, 2, 4, 1, 0]) / 3.0
    expected[-2] += 0.5
    expected[-1] += 0.5
    assert np.allclose(w6, expected)
    assert np.isclose(np.sum(w6), 5.0)


@pytest.mark.quick
def test_simpson_matches_scipy_on_odd_uniform_grid():
    lat = UniformLattice(101, 0.0 + 1e-3, 0.01)
    y = np.sin(lat.r) ** 2
    ours = lattice_integral(y, lat.dr)
    ref = simpson(y, x=np.asarray(lat.r))
    assert np.isclose(ours, ref, rtol=0, atol=1e-12)


@pytest.mark.quick
def test_norm_hydrogen_like_analytic():
    """f = 2 r e^{-r}，g = 0：:math:`\\int f^2 dr = 1`。"""
    lat = ExpLattice(1001, 1e-6, 0.03)
    r = np.asarray(lat.r)
    s = SpinorFunction.from_arrays(-1, 2.0 * r * np.exp(-r), np.zeros_like(r))
    assert np.isclose(s.norm(lat), 1.0, rtol=0, atol=1e-8), f"Simpson 范数误差过大: {s.norm(lat)}"


@pytest.mark.quick
def test_add_sub_require_equal_size():
    a = SpinorFunction.from_arrays(-1, np.ones(10), np.ones(10))
    b = SpinorFunction.from_arrays(-1, np.ones(8), np.ones(8))
    with pytest.raises(SizeMismatchError):
        a + b
    with pytest.raises(SizeMismatchError):
        a -= b

    b.resize(10)
    c = a - b
    assert np.allclose(c.f[:8], 0.0)
    assert np.allclose(c.f[8:], 1.0)


@pytest.mark.quick
def test_resize_truncates_and_pads():
    s = SpinorFunction.from_arrays(2, np.arange(5.0), np.arange(5.0), np.ones(5), np.ones(5))
    s.resize(8)
    assert s.size() == 8
    assert np.all(s.f[5:] == 0.0) and np.all(s.dgdr[5:] == 0.0)
    s.resize(3)
    assert np.allclose(s.f, [0.0, 1.0, 2.0])


@pytest.mark.quick
def test_scalar_multiplication_scales_all_arrays():
    s = SpinorFunction.from_arrays(-1, np.ones(4), 2 * np.ones(4), 3 * np.ones(4), 4 * np.ones(4))
    t = 2.0 * s
    assert np.allclose(t.f, 2.0) and np.allclose(t.g, 4.0)
    assert np.allclose(t.dfdr, 6.0) and np.allclose(t.dgdr, 8.0)
    u = -s
    assert np.allclose(u.g, -2.0)


@pytest.mark.quick
def test_radial_function_product_rule():
    lat = ExpLattice(400, 1e-4, 0.03)
    r = np.asarray(lat.r)
    s = SpinorFunction.from_arrays(-1, np.exp(-r), r * np.exp(-r), -np.exp(-r), (1 - r) * np.exp(-r))
    chi = RadialFunction(r**2, 2 * r)

    t = s * chi
    n = 300
    assert np.allclose(t.f[:n], r[:n] ** 2 * np.exp(-r[:n]))
    # d/dr (r^2 e^{-r}) = (2r - r^2) e^{-r}
    assert np.allclose(t.dfdr[:n], (2 * r[:n] - r[:n] ** 2) * np.exp(-r[:n]))

    short = RadialFunction(r[:100] ** 2, 2 * r[:100])
    with pytest.raises(SizeMismatchError):
        s * short


@pytest.mark.quick
def test_derivative_six_point_accuracy():
    lat = ExpLattice(500, 1e-4, 0.02)
    r = np.asarray(lat.r)
    y = np.exp(-r) * r**2
    dy = derivative(y, lat.dr)
    exact = (2 * r - r**2) * np.exp(-r)
    assert np.max(np.abs(dy - exact)) < 1e-7


@pytest.mark.quick
def test_spinor_binary_round_trip():
    rng = np.random.default_rng(0)
    s = SpinorFunction.from_arrays(3, *rng.normal(size=(4, 17)))
    buf = io.BytesIO()
    s.write(buf)
    buf.seek(0)
    t = SpinorFunction(3)
    t.read(buf)
    assert t.size() == 17
    assert np.array_equal(t.f, s.f) and np.array_equal(t.dgdr, s.dgdr)


@pytest.mark.quick
def test_spinor_read_truncated_record():
    s = SpinorFunction.from_arrays(-1, np.ones(5), np.ones(5))
    buf = io.BytesIO()
    s.write(buf)
    data = buf.getvalue()[:-3]
    with pytest.raises(ValueError):
        SpinorFunction(-1).read(io.BytesIO(data))
