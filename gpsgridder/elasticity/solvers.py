"""
Project: GPS Gridder
Date: 10/16/26 1:15 PM

Solvers for the dense Green's function system. Solvers take ownership of the matrix and right hand
side: the solution overwrites b and A may be destroyed in the process.
"""

from abc import ABC, abstractmethod
from typing import Optional
import numpy as np
import logging

logger = logging.getLogger(__name__)

# app
from ..core.type_declarations import SvdMode, InputError, SingularSystemError, ConfigError
from ..core.data_classes import SolverOptions, Spectrum

EPS = np.finfo(float).eps


class LinearSolver(ABC):
    """Abstract base class for the exact and regularized solution strategies"""

    name = ''

    def __init__(self):
        self.n_eigenvalues = 0
        self.n_used = 0
        self.variance_explained = 1.0
        self.spectrum: Optional[Spectrum] = None

    @classmethod
    def create_instance(cls, options: SolverOptions = None) -> 'LinearSolver':
        """Determine the type of object needed and return it to the called"""
        if options is None or not options.use_svd:
            instance = GaussJordanSolver()
        else:
            instance = TruncatedSvdSolver(options.svd_mode, options.cutoff)

        return instance

    @staticmethod
    def validate_system(A: np.ndarray, b: np.ndarray) -> int:
        n2 = b.size
        if n2 == 0 or A.size == 0:
            raise InputError('Linear system is empty')
        if A.shape != (n2, n2):
            raise InputError(f'Linear system has inconsistent dimensions: A is {A.shape[0]} x {A.shape[1]} '
                             f'and b has {n2} elements')
        if not np.all(np.isfinite(A)) or not np.all(np.isfinite(b)):
            raise InputError('Linear system contains non-finite values (NaN or Inf)')
        return n2

    @abstractmethod
    def solve(self, A: np.ndarray, b: np.ndarray) -> np.ndarray:
        """solve A x = b, the solution is returned in b"""
        pass


class GaussJordanSolver(LinearSolver):
    """Gauss-Jordan elimination with full pivoting"""

    name = 'Gauss-Jordan elimination'

    def solve(self, A: np.ndarray, b: np.ndarray) -> np.ndarray:
        n2 = self.validate_system(A, b)

        logger.info('Solve linear equations by Gauss-Jordan elimination')

        tol = n2 * EPS * np.max(np.abs(A))
        # columns that have not been used as pivots yet
        free = np.ones(n2, dtype=bool)

        for _ in range(n2):
            idx = np.flatnonzero(free)
            k = int(np.argmax(np.abs(A[np.ix_(idx, idx)])))
            irow = idx[k // idx.size]
            icol = idx[k % idx.size]

            pivot = A[irow, icol]
            if not np.abs(pivot) > tol:
                raise SingularSystemError('Singular matrix: you probably have nearly duplicate data constraints. '
                                          'Preprocess (block average or median) your data to merge them, or '
                                          'solve with a truncated SVD')
            free[icol] = False

            # put the pivot on the diagonal
            if irow != icol:
                A[[irow, icol]] = A[[icol, irow]]
                b[[irow, icol]] = b[[icol, irow]]

            A[icol] /= pivot
            b[icol] /= pivot

            factors = A[:, icol].copy()
            factors[icol] = 0.0
            A -= np.outer(factors, A[icol])
            b -= factors * b[icol]

        self.n_eigenvalues = self.n_used = n2
        self.variance_explained = 1.0

        return b


class TruncatedSvdSolver(LinearSolver):
    """
    Solution by singular value decomposition keeping only the dominant eigenvalues.
    The solution is x = V diag(1/s) U' b for the retained components.
    """

    name = 'Truncated SVD'

    def __init__(self, mode: SvdMode = SvdMode.RATIO, cutoff: float = 0.0):
        super().__init__()
        self.mode = mode
        self.cutoff = cutoff
        self._u = None

    def decompose(self, A: np.ndarray) -> Spectrum:
        logger.info('Solve linear equations by SVD')

        try:
            u, s, vt = np.linalg.svd(A)
        except np.linalg.LinAlgError as e:
            raise SingularSystemError(f'SVD of the linear system did not converge: {e}')

        self._u = u
        self.spectrum = Spectrum(singular_values=s, right_vectors=vt.T)
        self.n_eigenvalues = s.size

        return self.spectrum

    def select(self, s: np.ndarray) -> int:
        """number of leading singular values to keep"""
        n2 = s.size

        if self.mode == SvdMode.RATIO:
            if self.cutoff > 1.0:
                raise ConfigError(f'Eigenvalue ratio cutoff must be in [0, 1], got {self.cutoff}')
            ratios = s / s[0] if s[0] > 0 else np.zeros_like(s)
            n_use = int(np.sum(ratios >= self.cutoff))

        elif self.mode == SvdMode.VARIANCE:
            if self.cutoff > 100.0:
                raise ConfigError(f'Variance explained cannot exceed 100%, got {self.cutoff}')
            if self.cutoff == 0:
                n_use = n2
            else:
                total = np.sum(s ** 2)
                cumulative = 100.0 * np.cumsum(s ** 2) / total if total > 0 else np.zeros_like(s)
                n_use = int(np.searchsorted(cumulative, self.cutoff * (1.0 - 1e-12))) + 1

        elif self.mode == SvdMode.COUNT:
            n_use = int(self.cutoff)
            if n_use <= 0:
                n_use = n2
        else:
            raise ValueError(f'SVD mode {self.mode} not implemented')

        n_use = min(n_use, n2)
        # never invert a zero singular value
        n_use = min(n_use, int(np.sum(s > 0)))

        return n_use

    def solve(self, A: np.ndarray, b: np.ndarray) -> np.ndarray:
        self.validate_system(A, b)

        # a decomposition is used for one solution only
        if self._u is None:
            self.decompose(A)
        u, self._u = self._u, None

        s = self.spectrum.singular_values
        vt = self.spectrum.right_vectors.T

        self.n_used = self.select(s)
        k = self.n_used

        total = np.sum(s ** 2)
        self.variance_explained = float(np.sum(s[:k] ** 2) / total) if total > 0 else 0.0

        g = u[:, :k].T @ b
        b[:] = vt[:k].T @ (g / s[:k])

        logger.info(f'[{k} of {s.size} eigen-values used to explain {self.variance_explained * 100:.2f} % '
                    f'of data variance]')

        return b
