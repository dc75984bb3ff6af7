#!/usr/bin/env python
"""
Green's functions for a thin elastic sheet

Based on:
Sandwell, D. T., and P. Wessel (2016), Interpolation of 2-D vector data using
constraints from elasticity, Geophys. Res. Lett., 43, 10,703–10,709,
doi:10.1002/2016GL070340.
"""

import numpy as np
from typing import Tuple

# app
from ..core.data_classes import KernelParameters


def evaluate_greens_functions(dx, dy, kernel: KernelParameters) -> Tuple[np.ndarray, np.ndarray, np.ndarray]:
    """
    Evaluate the Green's functions q(x), p(x) and w(x) for the offsets dx, dy

    Parameters
    ----------
    dx, dy : float or np.ndarray
        Offsets between source and target points (any broadcastable shape)
    kernel : KernelParameters
        epsilon_term holds (2*e+1)/2 and fudge_radius_sq the delta added to r²
        to prevent the singularity at r = 0

    Returns
    -------
    g_uu : np.ndarray
        Response of u to a unit force in x
    g_vv : np.ndarray
        Response of v to a unit force in y
    g_uv : np.ndarray
        Shear coupling between the two components

    Notes
    -----
    The functions are even in (dx, dy):
        g_uu = c1 ln(r²) + c2 dx²/r²
        g_vv = c1 ln(r²) + c2 dy²/r²
        g_uv = c2 dx dy/r²
    with c1 = (3 - e)/2, c2 = 1 + e and r² = dx² + dy² + fudge.
    """
    dx = np.asarray(dx, dtype=float)
    dy = np.asarray(dy, dtype=float)

    c1 = (3.0 - kernel.epsilon_term) / 2.0
    c2 = 1.0 + kernel.epsilon_term

    dx2 = dx * dx
    dy2 = dy * dy
    dr2 = dx2 + dy2 + kernel.fudge_radius_sq

    logr = c1 * np.log(dr2)
    # inverse squared radius
    idr2 = 1.0 / dr2

    g_uu = logr + c2 * dx2 * idr2
    g_vv = logr + c2 * dy2 * idr2
    g_uv = c2 * dx * dy * idr2

    return g_uu, g_vv, g_uv
