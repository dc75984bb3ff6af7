"""
Project: GPS Gridder
Date: 10/16/26 2:30 PM
"""

from concurrent.futures import ThreadPoolExecutor
from typing import Tuple
import numpy as np
import logging
from tqdm import tqdm

logger = logging.getLogger(__name__)

# app
from ..core.type_declarations import NormalizationMode
from ..core.data_classes import KernelParameters, NormalizationCoefficients
from .distance import DistanceCalculator
from .green_func import evaluate_greens_functions
from .normalization import denormalize


def evaluate_expansion(qx: np.ndarray, qy: np.ndarray,
                       x: np.ndarray, y: np.ndarray,
                       alpha_x: np.ndarray, alpha_y: np.ndarray,
                       kernel: KernelParameters,
                       distance: DistanceCalculator) -> Tuple[np.ndarray, np.ndarray]:
    """
    Sum the contributions of the body forces at the data constraints (equation 10 of Sandwell & Wessel,
    2016). Returns normalized u, v at the query points.
    """
    dx, dy = distance.pairwise(x, y, qx, qy)
    g_uu, g_vv, g_uv = evaluate_greens_functions(dx, dy, kernel)

    u = np.sum(alpha_x * g_uu + alpha_y * g_uv, axis=1)
    v = np.sum(alpha_y * g_vv + alpha_x * g_uv, axis=1)

    return u, v


def predict(qx, qy,
            x: np.ndarray, y: np.ndarray,
            alpha_x: np.ndarray, alpha_y: np.ndarray,
            kernel: KernelParameters,
            distance: DistanceCalculator,
            coeff: NormalizationCoefficients,
            mode: NormalizationMode,
            n_threads: int = 1,
            chunk_size: int = 1024,
            progress: bool = False) -> Tuple[np.ndarray, np.ndarray]:
    """
    Evaluate the fitted field at arbitrary locations and restore the normalization

    Parameters
    ----------
    qx, qy : np.ndarray
        Query point coordinates (1D arrays, length m)
    x, y : np.ndarray
        Data constraint coordinates (1D arrays, length n)
    alpha_x, alpha_y : np.ndarray
        Body force strengths from the linear solution
    kernel : KernelParameters
    distance : DistanceCalculator
    coeff : NormalizationCoefficients
    mode : NormalizationMode
        Normalization that was applied to the data
    n_threads : int
        Number of worker threads. Query points are split in chunks that are evaluated independently and
        written to their own slice of the output
    chunk_size : int
        Query points per chunk
    progress : bool
        Show a progress bar

    Returns
    -------
    u, v : np.ndarray
        Field at the query points (1D arrays, length m)
    """
    qx = np.asarray(qx, dtype=float).ravel()
    qy = np.asarray(qy, dtype=float).ravel()
    m = qx.size

    u = np.zeros(m)
    v = np.zeros(m)

    if m == 0:
        return u, v

    chunk_size = max(1, int(chunk_size))
    starts = range(0, m, chunk_size)

    def evaluate_chunk(start):
        stop = min(start + chunk_size, m)
        uc, vc = evaluate_expansion(qx[start:stop], qy[start:stop], x, y, alpha_x, alpha_y, kernel, distance)
        u[start:stop], v[start:stop] = denormalize(qx[start:stop], qy[start:stop], uc, vc, coeff, mode)
        return stop - start

    with tqdm(total=m, ncols=160, desc=' >> Evaluating solution', disable=not progress) as bar:
        if n_threads is None or n_threads <= 1:
            for start in starts:
                bar.update(evaluate_chunk(start))
        else:
            with ThreadPoolExecutor(max_workers=n_threads) as pool:
                for count in pool.map(evaluate_chunk, starts):
                    bar.update(count)

    return u, v
