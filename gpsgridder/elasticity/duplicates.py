"""
Project: GPS Gridder
Date: 10/16/26 10:40 AM
"""

from typing import Optional
import numpy as np
import logging

logger = logging.getLogger(__name__)

# app
from ..core.type_declarations import SingularSystemError, InputError
from ..core.data_classes import SolverOptions
from .distance import DistanceCalculator

EPS = np.finfo(float).eps


def almost_equal(a, b) -> np.ndarray:
    """strict floating point equality allowing only a few ulps of difference"""
    return np.isclose(a, b, rtol=4 * EPS, atol=0.0)


class DuplicateScanner:
    """
    Pairwise scan of the data constraints as they are ingested. Points occupying the same location are
    either identical (skipped) or conflicting (kept, but they make the exact solution singular). The scan
    also keeps track of the closest and most distant pair of constraints.
    """

    def __init__(self, distance: DistanceCalculator):
        self.distance = distance
        self.n_read = 0
        self.n_skipped = 0
        self.n_conflicting = 0
        self.r_min = np.inf
        self.r_max = -np.inf

    def scan(self, x: np.ndarray, y: np.ndarray, u: np.ndarray, v: np.ndarray) -> np.ndarray:
        """
        Compare every record against all previously accepted ones

        Returns
        -------
        kept : np.ndarray
            indices (in input order) of the accepted constraints
        """
        x = np.asarray(x, dtype=float)
        y = np.asarray(y, dtype=float)
        u = np.asarray(u, dtype=float)
        v = np.asarray(v, dtype=float)

        kept = np.zeros(x.size, dtype=int)
        n = 0

        for k in range(x.size):
            acc = kept[:n]
            r = self.distance.distance(x[acc], y[acc], x[k], y[k])
            zero = r <= EPS

            # only the pairs up to the first identical constraint are examined
            limit = n
            skip = False
            if np.any(zero):
                same = zero & almost_equal(u[k], u[acc]) & almost_equal(v[k], v[acc])
                if np.any(same):
                    limit = int(np.argmax(same))
                    skip = True

            for i in np.flatnonzero(zero[:limit]):
                logger.warning(f'Data constraint {k} and {acc[i]} occupy the same location but differ in '
                               f'observation ({u[k]:.12g}/{u[acc[i]]:.12g} vs {v[k]:.12g}/{v[acc[i]]:.12g})')
                self.n_conflicting += 1

            distinct = r[:limit][~zero[:limit]]
            if distinct.size:
                self.r_min = min(self.r_min, float(distinct.min()))
                self.r_max = max(self.r_max, float(distinct.max()))

            self.n_read += 1
            if skip:
                logger.warning(f'Data constraint {k} is identical to {acc[limit]} and will be skipped')
                self.n_skipped += 1
                continue

            kept[n] = k
            n += 1

        if n == 0:
            raise InputError('No data constraints found')

        logger.info(f'Found {n} unique data constraints')
        if self.n_skipped:
            logger.info(f'Skipped {self.n_skipped} data constraints as duplicates')
        logger.info(f'Distance between closest constraints = {self.r_min:.12g}')
        logger.info(f'Distance between distant constraints = {self.r_max:.12g}')

        return kept[:n]

    def check_solvable(self, solver: Optional[SolverOptions] = None) -> None:
        """conflicting duplicates can only be handled by a truncated SVD with a nonzero cutoff"""
        if not self.n_conflicting:
            return

        logger.info(f'Found {self.n_conflicting} data constraint duplicates with different observation values')

        if solver is None or not solver.use_svd or solver.cutoff == 0:
            raise SingularSystemError(f'Found {self.n_conflicting} data constraints that occupy the same location '
                                      f'but differ in observation. They result in a singular matrix: reconcile '
                                      f'(average or median) the duplicates before gridding or solve with a '
                                      f'truncated SVD and a nonzero cutoff')

        logger.info('Expect some eigenvalues to be identically zero')
