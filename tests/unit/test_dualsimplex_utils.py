import logging

import pytest
import numpy as np

from dualsimplex.dualsimplex_utils import (
    StatusBoxTqdm,
    TraceLogger,
    correct_by_norm,
    count_negative,
    hinge,
    invert,
    jump_norm,
    no_trace,
)


@pytest.mark.parametrize(
    "m, expected",
    [
        (np.array([[1.0, -2.0], [-0.5, 0.0]]), 2.5),
        (np.zeros((3, 3)), 0.0),
        (np.array([[1.0, 2.0], [3.0, 4.0]]), 0.0),
        (-np.ones((2, 3)), 6.0),
    ],
)
def test_hinge(m, expected):
    assert hinge(m) == pytest.approx(expected)


def test_hinge_non_negative():
    rng = np.random.RandomState(0)
    for _ in range(20):
        m = rng.randn(4, 5)
        assert hinge(m) >= 0
        assert (hinge(m) == 0) == bool(np.all(m >= 0))
        assert hinge(np.abs(m)) == 0


def test_hinge_increases_when_negative_entry_decreases():
    h = np.array([[1.0, -2.0], [0.5, 3.0]])
    h2 = h.copy()
    h2[0, 1] -= 0.1
    assert hinge(h2) == pytest.approx(hinge(h) + 0.1)


def test_count_negative():
    assert count_negative(np.array([[1.0, -2.0], [-0.5, 0.0]])) == 2
    assert count_negative(np.ones((3, 2))) == 0


def test_correct_by_norm():
    m = np.array([[3.0, 4.0], [0.0, 0.0], [1e-12, 0.0]])
    np.testing.assert_array_almost_equal(
        correct_by_norm(m), np.array([[0.6, 0.8], [0.0, 0.0], [1e-12, 0.0]]), decimal=12
    )


def test_correct_by_norm_unit_rows():
    rng = np.random.RandomState(1)
    m = rng.randn(5, 3)
    np.testing.assert_allclose(np.linalg.norm(correct_by_norm(m), axis=1), np.ones(5))


def test_correct_by_norm_rejects_vectors():
    with pytest.raises(ValueError):
        correct_by_norm(np.ones(3))


def test_jump_norm():
    m = np.array([[1.0, 0.3, 0.4], [1.0, 3.0, 4.0], [1.0, 0.0, 0.0]])
    expected = np.array([[1.0, 2.0, 2.0], [1.0, 1.0, 1.0], [1.0, 1.0, 1.0]])
    np.testing.assert_array_almost_equal(jump_norm(m, 1.0), expected)


def test_jump_norm_needs_two_columns():
    with pytest.raises(ValueError):
        jump_norm(np.ones((3, 1)), 1.0)


def test_invert():
    a = np.array([[2.0, 1.0], [1.0, 1.0]])
    a_inv, err_message = invert(a)
    assert err_message == ""
    np.testing.assert_array_almost_equal(a_inv, np.array([[1.0, -1.0], [-1.0, 2.0]]))


def test_invert_round_trip():
    rng = np.random.RandomState(2)
    a = rng.randn(4, 4) + 4 * np.eye(4)
    a_inv, _ = invert(a)
    a_back, err_message = invert(a_inv)
    assert err_message == ""
    np.testing.assert_allclose(a_back, a, atol=1e-10)


@pytest.mark.parametrize(
    "a",
    [
        np.array([[1.0, 2.0], [2.0, 4.0]]),
        np.zeros((3, 3)),
        np.ones((2, 3)),
        np.array([[1.0, np.nan], [0.0, 1.0]]),
    ],
)
def test_invert_failures(a):
    a_inv, err_message = invert(a)
    assert a_inv is None
    assert err_message != ""


def test_invert_condition_threshold():
    a = np.diag([1.0, 1e-8])
    assert invert(a)[0] is not None
    assert invert(a, max_condition=1e6)[0] is None


def test_status_box_logs_when_verbose_2(caplog):
    caplog.set_level(logging.INFO, logger="dualsimplex.dualsimplex_utils")
    StatusBoxTqdm(verbose=2).my_print("Iteration: 3")
    assert "Iteration: 3" in caplog.text


def test_status_box_silent():
    my_status_box = StatusBoxTqdm(verbose=0)
    my_status_box.init_bar()
    my_status_box.update_bar()
    my_status_box.update_status("ignored")
    my_status_box.close()
    assert not hasattr(my_status_box, "pbar")


def test_trace_logger(caplog):
    caplog.set_level(logging.DEBUG, logger="dualsimplex.dualsimplex_utils")
    trace = TraceLogger()
    trace("x tilde", np.eye(2))
    assert "x tilde" in caplog.text
    assert no_trace("x tilde", np.eye(2)) is None
