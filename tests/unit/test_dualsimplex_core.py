import pytest
import numpy as np

from dualsimplex.dualsimplex_core import ERROR_NAMES, calc_errors, hinge_der_basis, hinge_der_proportions
from dualsimplex.dualsimplex_utils import hinge


def numerical_gradient(f, a, eps=1e-6):
    grad = np.zeros_like(a)
    for idx in np.ndindex(*a.shape):
        a_p = a.copy()
        a_p[idx] += eps
        a_m = a.copy()
        a_m[idx] -= eps
        grad[idx] = (f(a_p) - f(a_m)) / (2 * eps)
    return grad


def test_hinge_der_proportions():
    h = np.array([[-1.0, 2.0], [3.0, -4.0]])
    r = np.array([[1.0, 2.0], [3.0, 4.0]])
    np.testing.assert_array_equal(hinge_der_proportions(h, r), np.array([[-1.0, -3.0], [-2.0, -4.0]]))


def test_hinge_der_proportions_finite_differences():
    rng = np.random.RandomState(0)
    left = rng.randn(3, 3)
    r = rng.randn(3, 6)
    expected = numerical_gradient(lambda a: hinge(a @ r), left)
    np.testing.assert_allclose(hinge_der_proportions(left @ r, r), expected, atol=1e-5)


def test_hinge_der_proportions_descent_direction():
    rng = np.random.RandomState(3)
    left = rng.randn(3, 3)
    r = rng.randn(3, 8)
    grad = hinge_der_proportions(left @ r, r)
    assert np.any(grad != 0)
    assert hinge((left - 1e-4 * grad) @ r) < hinge(left @ r)


def test_hinge_der_proportions_hard_zero():
    # precision is not used on this side: any strictly negative entry counts
    h = np.array([[-1e-12, 1.0]])
    r = np.array([[2.0, 3.0]])
    np.testing.assert_array_equal(hinge_der_proportions(h, r, precision=1e-6), np.array([[-2.0]]))


def test_hinge_der_proportions_shape_mismatch():
    with pytest.raises(ValueError):
        hinge_der_proportions(np.ones((2, 3)), np.ones((3, 3)))


def test_hinge_der_basis():
    s = np.array([[1.0, 2.0, 3.0], [4.0, 5.0, 6.0]])
    w = np.array([[-1.0, 1.0], [0.5, -1e-12], [-2.0, -3.0]])
    np.testing.assert_array_equal(hinge_der_basis(w, s, precision=1e-10), np.array([[-4.0, -3.0], [-10.0, -6.0]]))


def test_hinge_der_basis_finite_differences():
    rng = np.random.RandomState(1)
    omega = rng.randn(3, 3)
    s = rng.randn(3, 5)
    expected = numerical_gradient(lambda a: hinge(s.T @ a), omega)
    np.testing.assert_allclose(hinge_der_basis(s.T @ omega, s), expected, atol=1e-5)


def test_hinge_der_basis_shape_mismatch():
    with pytest.raises(ValueError):
        hinge_der_basis(np.ones((3, 3)), np.ones((3, 5)))


def error_inputs():
    return dict(
        x=np.eye(2),
        omega=np.eye(2),
        d_w=np.array([1.0, 1.0]),
        d_h=np.array([1.0, 1.0]),
        svrt=np.diag([4.0, 1.0]),
        r=np.array([[1.0, -1.0], [0.0, 2.0]]),
        s=np.array([[1.0, 0.0], [0.0, -3.0]]),
        coef_=2,
        coef_der_x=0.1,
        coef_der_omega=0.1,
        coef_hinge_h=0.5,
        coef_hinge_w=1.0,
        coef_pos_d_h=1.0,
        coef_pos_d_w=0.5,
    )


def test_calc_errors():
    errors = calc_errors(**error_inputs())
    assert tuple(errors.keys()) == ERROR_NAMES
    assert errors["deconv_error"] == pytest.approx(9.0)
    assert errors["lambda_error"] == pytest.approx(1.0)
    assert errors["beta_error"] == pytest.approx(6.0)
    assert errors["D_h_error"] == pytest.approx(2.0)
    assert errors["D_w_error"] == pytest.approx(8.0)
    assert errors["total_error"] == pytest.approx(26.0)


def test_calc_errors_ignores_step_coefficients():
    inputs = error_inputs()
    errors = calc_errors(**inputs)
    inputs.update(coef_der_x=100.0, coef_der_omega=0.0)
    assert calc_errors(**inputs) == errors


def test_calc_errors_additivity():
    rng = np.random.RandomState(4)
    for _ in range(10):
        errors = calc_errors(
            x=rng.randn(3, 3),
            omega=rng.randn(3, 3),
            d_w=rng.uniform(size=3),
            d_h=rng.uniform(size=3),
            svrt=np.diag(rng.uniform(1, 5, size=3)),
            r=rng.randn(3, 7),
            s=rng.randn(3, 9),
            coef_=1,
            coef_der_x=0.01,
            coef_der_omega=0.01,
            coef_hinge_h=rng.uniform(),
            coef_hinge_w=rng.uniform(),
            coef_pos_d_h=rng.uniform(),
            coef_pos_d_w=rng.uniform(),
        )
        parts = sum(errors[name] for name in ERROR_NAMES[:-1])
        assert errors["total_error"] == pytest.approx(parts, rel=1e-12)
