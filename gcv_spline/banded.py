"""
Banded matrix storage and elimination.

A square matrix with half-bandwidth ``h`` is stored row by row: entry
``A[i, i + k]`` lives at ``matrix[i, k]`` for ``-h <= k <= h``.
Cells that would fall outside the matrix are kept at zero.
"""

from dataclasses import dataclass
import numpy as np


@dataclass
class BandedMatrix:
    """
    Square band matrix addressed by ``(row, offset)``.

    Parameters
    ----------
    data : np.ndarray
        Array of shape ``(n, 2 * half_bandwidth + 1)``. Column
        ``offset + half_bandwidth`` of row ``i`` holds ``A[i, i + offset]``.
    half_bandwidth : int
        Number of bands on each side of the main diagonal.
    """

    data: np.ndarray
    half_bandwidth: int

    @classmethod
    def zeros(cls, n, half_bandwidth):
        return cls(np.zeros((n, 2 * half_bandwidth + 1)), half_bandwidth)

    @classmethod
    def from_dense(cls, A, half_bandwidth):
        A = np.asarray(A, dtype=float)
        band = cls.zeros(A.shape[0], half_bandwidth)
        for i in range(band.n):
            for k in band.offsets(i):
                band[i, k] = A[i, i + k]
        return band

    @property
    def n(self):
        return self.data.shape[0]

    def __getitem__(self, index):
        row, offset = index
        return self.data[row, offset + self.half_bandwidth]

    def __setitem__(self, index, value):
        row, offset = index
        self.data[row, offset + self.half_bandwidth] = value

    def offsets(self, row):
        """
        Offsets of ``row`` that address an entry inside the matrix.
        """
        h = self.half_bandwidth
        return range(-min(h, row), min(h, self.n - 1 - row) + 1)

    def copy(self):
        return BandedMatrix(self.data.copy(), self.half_bandwidth)

    def widen(self, half_bandwidth):
        """
        Return a copy stored with a larger half-bandwidth, new bands zero.
        """
        if half_bandwidth < self.half_bandwidth:
            raise ValueError("Cannot narrow a banded matrix.")
        pad = half_bandwidth - self.half_bandwidth
        data = np.pad(self.data, ((0, 0), (pad, pad)))
        return BandedMatrix(data, half_bandwidth)

    def to_dense(self):
        A = np.zeros((self.n, self.n))
        for i in range(self.n):
            for k in self.offsets(i):
                A[i, i + k] = self[i, k]
        return A

    def matvec(self, x):
        """
        Compute ``A @ x`` where ``x`` has shape ``(n,)`` or ``(n, K)``.
        """
        x = np.asarray(x, dtype=float)
        n, h = self.n, self.half_bandwidth
        y = np.zeros_like(x)
        for k in range(-h, h + 1):
            start, stop = max(0, -k), min(n, n - k)
            if start >= stop:
                continue
            band = self.data[start:stop, k + h]
            if x.ndim > 1:
                band = band[:, None]
            y[start:stop] += band * x[start + k:stop + k]
        return y


def band_factor(matrix, overwrite=False):
    """
    LU factorization of a banded matrix without pivoting.

    On return the negative offsets hold the multipliers of the unit lower
    factor and the remaining offsets hold the upper factor, so the
    factorization fits in the storage of the original matrix. Cost is
    ``O(n * h**2)``.

    Parameters
    ----------
    matrix : BandedMatrix
        Matrix to factor.
    overwrite : bool, optional
        Factor in place instead of working on a copy.

    Returns
    -------
    BandedMatrix
        The packed factors.
    """
    e = matrix if overwrite else matrix.copy()
    n, m = e.n, e.half_bandwidth

    for i in range(n):
        di = e[i, 0]
        for k in range(1, min(m, i) + 1):
            di -= e[i, -k] * e[i - k, k]
        e[i, 0] = di

        for l in range(1, min(m, n - 1 - i) + 1):
            dl = e[i + l, -l]
            du = e[i, l]
            for k in range(1, min(m - l, i) + 1):
                du -= e[i, -k] * e[i - k, l + k]
                dl -= e[i + l, -l - k] * e[i - k, k]
            e[i, l] = du
            e[i + l, -l] = dl / di
    return e


def band_solve(lu, rhs):
    """
    Solve ``A c = rhs`` given the packed factors from `band_factor`.

    ``rhs`` may hold several right-hand sides as columns; each costs
    ``O(n * h)``.
    """
    c = np.array(rhs, dtype=float)
    n, m = lu.n, lu.half_bandwidth

    for i in range(1, n):
        for l in range(1, min(m, i) + 1):
            c[i] -= lu[i, -l] * c[i - l]

    c[n - 1] /= lu[n - 1, 0]
    for i in range(n - 2, -1, -1):
        for l in range(1, min(m, n - 1 - i) + 1):
            c[i] -= lu[i, l] * c[i + l]
        c[i] /= lu[i, 0]
    return c
