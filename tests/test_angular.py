"""角动量耦合系数测试：与解析已知值比较。"""

import math

import pytest

from atomdirac.hf.angular import (
    allowed_k_values,
    exchange_angular_factor,
    kappa_to_l,
    kappa_to_two_j,
    reduced_c_k,
    wigner_3j,
    wigner_6j,
)


@pytest.mark.quick
def test_kappa_quantum_numbers():
    assert [kappa_to_l(k) for k in (-1, 1, -2, 2, -3)] == [0, 1, 1, 2, 2]
    assert [kappa_to_two_j(k) for k in (-1, 1, -2, 2, -3)] == [1, 1, 3, 3, 5]
    with pytest.raises(ValueError):
        kappa_to_l(0)


@pytest.mark.quick
def test_wigner_3j_known_values():
    # (1 0 1; 0 0 0) = -1/sqrt(3)
    assert math.isclose(wigner_3j(2, 0, 2, 0, 0, 0), -1.0 / math.sqrt(3.0), rel_tol=1e-12)
    # (1/2 1/2 0; 1/2 -1/2 0) = 1/sqrt(2)
    assert math.isclose(wigner_3j(1, 1, 0, 1, -1, 0), 1.0 / math.sqrt(2.0), rel_tol=1e-12)
    # 三角条件不满足
    assert wigner_3j(1, 1, 4, 1, -1, 0) == 0.0


@pytest.mark.quick
def test_wigner_6j_known_value():
    # {1 1/2 1/2; 0 1/2 1/2} = (-1)^{j1+j2+j3} / sqrt((2j2+1)(2j3+1)) = 1/2
    assert math.isclose(wigner_6j(2, 1, 1, 0, 1, 1), 0.5, rel_tol=1e-12)


@pytest.mark.quick
def test_allowed_k_values_selection_rules():
    assert allowed_k_values(-1, -1) == [0]
    assert allowed_k_values(-1, 1) == [1]
    assert allowed_k_values(-1, -2) == [1]
    assert allowed_k_values(-2, -2) == [0, 2]
    assert allowed_k_values(2, -3) == [2, 4]


@pytest.mark.quick
def test_exchange_angular_factor_s_shell():
    # (1/2 0 1/2; -1/2 0 1/2)^2 = 1/2：满 s 壳层（occ=2）交换恰好抵消自相互作用
    assert math.isclose(exchange_angular_factor(-1, 0, -1), 0.5, rel_tol=1e-12)
    assert exchange_angular_factor(-1, 1, -1) == 0.0


@pytest.mark.quick
def test_exchange_angular_factor_s_p():
    # (1/2 1 1/2; -1/2 0 1/2)^2 = 1/6
    assert math.isclose(exchange_angular_factor(-1, 1, 1), 1.0 / 6.0, rel_tol=1e-12)
    assert math.isclose(exchange_angular_factor(1, 1, -1), 1.0 / 6.0, rel_tol=1e-12)


@pytest.mark.quick
def test_reduced_c_k_monopole():
    r""":math:`\langle\kappa\|C^0\|\kappa\rangle = \sqrt{2j+1}`。"""
    for kappa in (-1, 1, -2, 2, -3):
        assert math.isclose(reduced_c_k(kappa, 0, kappa), math.sqrt(2 * abs(kappa)), rel_tol=1e-12)
    assert reduced_c_k(-1, 0, 1) == 0.0
