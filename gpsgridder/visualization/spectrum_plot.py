"""
Project: GPS Gridder
Date: 10/17/26 9:05 AM
"""
import os
from typing import Optional
import numpy as np
import logging
import matplotlib

if not os.environ.get('DISPLAY', None):
    matplotlib.use('Agg')

import matplotlib.pyplot as plt

logger = logging.getLogger(__name__)

# app
from ..core.data_classes import Spectrum, GridderResult


def plot_spectrum(spectrum: Spectrum, filename: Optional[str] = None, n_used: Optional[int] = None):
    """
    Singular value spectrum and cumulative variance explained of the Green's function system

    Parameters
    ----------
    spectrum : Spectrum
        Output of the SVD
    filename : str, optional
        Save the figure to this file. If None, show it
    n_used : int, optional
        Number of eigenvalues retained by the solution, marked in both panels
    """
    sv = np.sort(spectrum.singular_values)[::-1]
    i = np.arange(1, sv.size + 1)

    total = np.sum(sv ** 2)
    variance = 100.0 * np.cumsum(sv ** 2) / total if total > 0 else np.zeros_like(sv)

    fig = plt.figure(figsize=(12, 5))

    plt.subplot(1, 2, 1)
    # exactly zero eigenvalues cannot be shown in log scale
    positive = sv > 0
    plt.semilogy(i[positive], sv[positive], '*-')
    plt.ylabel('k-th singular value')
    plt.xlabel('k')
    plt.grid(True)
    plt.title('Singular Value Spectrum')

    plt.subplot(1, 2, 2)
    plt.plot(i, variance, '*-')
    plt.ylabel('variance explained (%)')
    plt.xlabel('k')
    plt.grid(True)
    plt.title('Cumulative Variance')

    if n_used:
        for k in (1, 2):
            plt.subplot(1, 2, k)
            plt.axvline(n_used, color='r', linestyle='--', label=f'k = {n_used}')
            plt.legend()

    plt.tight_layout()

    if filename:
        plt.savefig(filename)
        plt.close(fig)
        logger.info(f'Eigenvalue spectrum plot saved to {filename}')
    else:
        plt.show()

    return fig


def plot_velocity_field(result: GridderResult, observations: Optional[np.ndarray] = None,
                        filename: Optional[str] = None, subsample: int = 1):
    """
    Quiver plot of the interpolated field, with the data constraints overlaid in red when given
    (x y u v ... array)
    """
    step = max(1, int(subsample))

    if result.is_grid:
        xx, yy = np.meshgrid(result.x, result.y)
        x = xx[::step, ::step].ravel()
        y = yy[::step, ::step].ravel()
        u = result.u[::step, ::step].ravel()
        v = result.v[::step, ::step].ravel()
    else:
        x, y, u, v = result.x[::step], result.y[::step], result.u[::step], result.v[::step]

    valid = np.isfinite(u) & np.isfinite(v)

    fig, ax = plt.subplots(figsize=(10, 8))
    ax.quiver(x[valid], y[valid], u[valid], v[valid], np.hypot(u[valid], v[valid]), cmap='viridis')

    if observations is not None:
        obs = np.asarray(observations, dtype=float)
        ax.quiver(obs[:, 0], obs[:, 1], obs[:, 2], obs[:, 3], color='r')

    ax.set_xlabel('x')
    ax.set_ylabel('y')
    ax.grid(True)
    ax.set_title('Interpolated velocity field')

    if filename:
        fig.savefig(filename)
        plt.close(fig)
        logger.info(f'Velocity field plot saved to {filename}')
    else:
        plt.show()

    return fig
