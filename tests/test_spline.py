import numpy as np
import pytest

from gcv_spline import fit
from gcv_spline.fitter import SplineFitter, Mode
from gcv_spline.spline import NaturalSpline, evaluate, locate_interval


@pytest.fixture
def fitted():
    rng = np.random.default_rng(11)
    x = np.sort(rng.uniform(-2, 3, 25))
    y = np.exp(-x ** 2) + 0.05 * rng.standard_normal(25)
    return x, y


def test_locate_interval():
    knots = np.array([0.0, 1.0, 2.5, 3.0, 4.0, 7.0])
    queries = [-1.0, 0.0, 0.5, 1.0, 2.0, 2.5, 3.9, 4.0, 6.9, 7.0, 10.0]
    for cursor in range(len(knots) + 2):
        for t in queries:
            assert locate_interval(knots, t, cursor) == np.searchsorted(knots, t, side='right')


@pytest.mark.parametrize("order", [1, 2, 3])
def test_high_derivatives_vanish(fitted, order):
    x, y = fitted
    spline = fit(x, y, order=order).to_spline()
    t = np.linspace(x[0] - 1, x[-1] + 1, 50)
    for nu in [2 * order, 2 * order + 1, 10]:
        assert np.all(spline(t, nu=nu) == 0)


def test_negative_derivative(fitted):
    x, y = fitted
    spline = fit(x, y).to_spline()
    with pytest.raises(ValueError):
        spline(0.0, nu=-1)


def test_order_one_is_piecewise_linear():
    x = np.array([0.0, 1.0, 3.0, 4.0])
    coef = np.array([1.0, -1.0, 2.0, 0.5])
    spline = NaturalSpline(x, coef, order=1)
    np.testing.assert_allclose(spline(x), coef)
    np.testing.assert_allclose(spline(2.0), 0.5)
    np.testing.assert_allclose(spline(0.5, nu=1), -2.0)
    # constant continuation outside the knots
    np.testing.assert_allclose(spline([-5.0, 10.0]), [1.0, 0.5])


@pytest.mark.parametrize("order, poly", [
    (2, np.polynomial.Polynomial([-1.0, 3.0])),
    (3, np.polynomial.Polynomial([1.0, -1.0, 0.5])),
    (4, np.polynomial.Polynomial([0.5, 0.0, -1.0, 0.2])),
])
@pytest.mark.parametrize("log_p", [-4, 0, 4])
def test_low_degree_polynomials_are_reproduced(order, poly, log_p):
    """
    Polynomials of degree below the order are left unchanged by any
    amount of smoothing, inside and outside the knot range.
    """
    x = np.linspace(-1, 2, 3 * order + 4)
    fitter = SplineFitter(x, order=order)
    result = fitter.fit(poly(x), mode=Mode.FIXED_P,
                        value=10.0 ** log_p / fitter.scale_)
    spline = result.to_spline()
    t = np.linspace(-2, 3, 41)
    for nu in range(order + 1):
        np.testing.assert_allclose(spline(t, nu=nu), poly.deriv(nu)(t),
                                   atol=1e-5)


def test_cursor_follows_queries(fitted):
    x, y = fitted
    spline = fit(x, y).to_spline()
    assert spline.cursor == 0
    spline.evaluate(0.5 * (x[5] + x[6]))
    assert spline.cursor == 6
    spline(np.array([x[-1] + 1.0]))
    assert spline.cursor == len(x)

    # the cursor is only a hint
    t = np.linspace(x[0], x[-1], 37)
    forward = spline(t)
    backward = spline(t[::-1])[::-1]
    np.testing.assert_array_equal(forward, backward)


def test_evaluate_function(fitted):
    x, y = fitted
    result = fit(x, y)
    value, cursor = evaluate(x, result.coef, 2, 0.3)
    assert cursor == np.searchsorted(x, 0.3, side='right')
    np.testing.assert_allclose(value, result.to_spline()(0.3))


@pytest.mark.parametrize("order", [1, 2, 3])
def test_to_ppoly(fitted, order):
    x, y = fitted
    spline = fit(x, y, order=order).to_spline()
    pp = spline.to_ppoly()
    t = np.linspace(x[0] - 2, x[-1] + 2, 200)
    for nu in range(2 * order):
        np.testing.assert_allclose(pp(t, nu), spline(t, nu=nu),
                                   rtol=1e-7, atol=1e-7)


def test_multichannel(fitted):
    x, y = fitted
    Y = np.column_stack([y, -y, np.sin(x)])
    result = fit(x, Y, mode=Mode.FIXED_P, value=1e-3)
    spline = result.to_spline()
    t = np.linspace(x[0], x[-1], 11)

    assert spline(0.5).shape == (3,)
    values = spline(t)
    assert values.shape == (11, 3)
    for j in range(3):
        single = NaturalSpline(x, result.coef[:, j])
        np.testing.assert_allclose(values[:, j], single(t))
    assert np.all(spline(t, nu=4) == 0)
    assert spline.to_ppoly()(t).shape == (11, 3)
