import numpy as np
import pytest

from gcv_spline.banded import BandedMatrix, band_factor, band_solve


def random_banded(n, h, seed=0):
    """
    Random nonsymmetric band matrix, diagonally dominant so that
    elimination without pivoting is stable.
    """
    rng = np.random.default_rng(seed)
    A = np.zeros((n, n))
    hk = min(h, n - 1)
    for k in range(-hk, hk + 1):
        A += np.diag(rng.uniform(-1, 1, n - abs(k)), k)
    A += np.diag(np.full(n, 2.0 * h + 2))
    return A


@pytest.mark.parametrize("h", [0, 1, 2, 3])
def test_dense_roundtrip(h):
    A = random_banded(15, h)
    band = BandedMatrix.from_dense(A, h)
    np.testing.assert_array_equal(band.to_dense(), A)
    assert band[3, -min(h, 3)] == A[3, 3 - min(h, 3)]


def test_out_of_matrix_cells_stay_zero():
    band = BandedMatrix.from_dense(random_banded(6, 2), 2)
    assert band[0, -1] == 0 and band[0, -2] == 0
    assert band[5, 1] == 0 and band[5, 2] == 0
    assert list(band.offsets(0)) == [0, 1, 2]
    assert list(band.offsets(4)) == [-2, -1, 0, 1]


@pytest.mark.parametrize("h", [1, 2, 3])
def test_matvec(h):
    rng = np.random.default_rng(1)
    A = random_banded(12, h)
    band = BandedMatrix.from_dense(A, h)
    x = rng.standard_normal(12)
    X = rng.standard_normal((12, 3))
    np.testing.assert_allclose(band.matvec(x), A @ x)
    np.testing.assert_allclose(band.matvec(X), A @ X)


def test_widen():
    A = random_banded(8, 1)
    wide = BandedMatrix.from_dense(A, 1).widen(3)
    assert wide.half_bandwidth == 3
    np.testing.assert_array_equal(wide.to_dense(), A)
    with pytest.raises(ValueError):
        wide.widen(2)


@pytest.mark.parametrize("n", [1, 2, 5, 40])
@pytest.mark.parametrize("h", [1, 2, 3])
def test_factor_reconstructs(n, h):
    A = random_banded(n, h, seed=n + h)
    lu = band_factor(BandedMatrix.from_dense(A, h)).to_dense()
    L = np.tril(lu, -1) + np.eye(n)
    U = np.triu(lu)
    np.testing.assert_allclose(L @ U, A, atol=1e-12)


@pytest.mark.parametrize("h", [1, 2, 3])
def test_solve_matches_dense(h):
    rng = np.random.default_rng(h)
    n = 30
    A = random_banded(n, h, seed=7)
    lu = band_factor(BandedMatrix.from_dense(A, h))

    b = rng.standard_normal(n)
    np.testing.assert_allclose(band_solve(lu, b), np.linalg.solve(A, b))

    # several right-hand sides at once
    B = rng.standard_normal((n, 4))
    np.testing.assert_allclose(band_solve(lu, B), np.linalg.solve(A, B))


def test_factor_overwrite():
    A = random_banded(10, 2)
    band = BandedMatrix.from_dense(A, 2)
    lu = band_factor(band)
    assert lu is not band
    np.testing.assert_array_equal(band.to_dense(), A)

    lu_inplace = band_factor(band, overwrite=True)
    assert lu_inplace is band
    np.testing.assert_allclose(lu_inplace.data, lu.data)
