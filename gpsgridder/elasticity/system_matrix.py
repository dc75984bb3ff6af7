"""
Project: GPS Gridder
Date: 10/16/26 11:40 AM
"""

from typing import Tuple, Optional
import numpy as np
import logging

logger = logging.getLogger(__name__)

# app
from ..core.type_declarations import ResourceError, InputError
from ..core.data_classes import KernelParameters
from .distance import DistanceCalculator
from .green_func import evaluate_greens_functions

MEM_UNITS = ('kb', 'Mb', 'Gb')


def matrix_memory(n2: int) -> float:
    """bytes needed by a square n2 x n2 matrix of doubles"""
    return float(n2) * float(n2) * np.dtype(float).itemsize


def human_readable_memory(n_bytes: float) -> str:
    mem = n_bytes / 1024.0
    unit = 0
    while mem > 1024.0 and unit < len(MEM_UNITS) - 1:
        mem /= 1024.0
        unit += 1
    return f'{mem:.1f} {MEM_UNITS[unit]}'


def allocate_system(n: int, max_bytes: Optional[float] = None) -> np.ndarray:
    """Allocate the 2n x 2n matrix, failing fast if it is larger than max_bytes"""
    n2 = 2 * n
    required = matrix_memory(n2)

    logger.info(f'Square matrix requires {human_readable_memory(required)}')

    if max_bytes is not None and required > max_bytes:
        raise ResourceError(f'A {n2} x {n2} linear system requires {human_readable_memory(required)} which exceeds '
                            f'the allowed {human_readable_memory(max_bytes)}. Decimate or block-average the data '
                            f'constraints')
    try:
        return np.empty((n2, n2), dtype=float)
    except MemoryError:
        raise ResourceError(f'Unable to allocate {human_readable_memory(required)} for the {n2} x {n2} '
                            f'linear system')


def build_system(x: np.ndarray, y: np.ndarray,
                 u: np.ndarray, v: np.ndarray,
                 kernel: KernelParameters,
                 distance: DistanceCalculator,
                 weight_u: Optional[np.ndarray] = None,
                 weight_v: Optional[np.ndarray] = None,
                 max_bytes: Optional[float] = None) -> Tuple[np.ndarray, np.ndarray]:
    """
    Build the linear system A alpha = b (equation 9 of Sandwell & Wessel, 2016)

    Parameters
    ----------
    x, y : np.ndarray
        Coordinates of the n data constraints
    u, v : np.ndarray
        Normalized residual observations
    kernel : KernelParameters
        Green's function parameters
    distance : DistanceCalculator
        Cartesian or flat Earth offsets
    weight_u, weight_v : np.ndarray, optional
        Per constraint weights. When given, row j and column i of every block are multiplied by the
        weights of constraints j and i respectively, and b by the weights of its row
    max_bytes : float, optional
        Upper limit for the matrix size

    Returns
    -------
    A : np.ndarray
        2n x 2n matrix. Rows/columns [0, n) hold the u equations/unknowns and [n, 2n) the v ones:
        [ q  w ]
        [ w  p ]
    b : np.ndarray
        (u, v) stacked, weighted observations
    """
    n = x.size
    if n == 0:
        raise InputError('Cannot build a linear system without data constraints')

    A = allocate_system(n, max_bytes)

    logger.info('Build linear system Ax = b')

    # rows j (equations) x columns i (forces), offsets of point j as measured from point i
    dx, dy = distance.pairwise(x, y, x, y)
    g_uu, g_vv, g_uv = evaluate_greens_functions(dx, dy, kernel)

    b = np.concatenate((np.asarray(u, dtype=float), np.asarray(v, dtype=float)))

    if weight_u is None or weight_v is None:
        A[:n, :n] = g_uu
        A[n:, n:] = g_vv
        A[:n, n:] = g_uv
        A[n:, :n] = g_uv
    else:
        wu = np.asarray(weight_u, dtype=float)
        wv = np.asarray(weight_v, dtype=float)
        A[:n, :n] = wu[:, np.newaxis] * g_uu * wu
        A[n:, n:] = wv[:, np.newaxis] * g_vv * wv
        A[:n, n:] = wu[:, np.newaxis] * g_uv * wv
        A[n:, :n] = wv[:, np.newaxis] * g_uv * wu
        b[:n] *= wu
        b[n:] *= wv

    return A, b
