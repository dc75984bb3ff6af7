"""
Project: GPS Gridder
Date: 10/16/26 11:05 AM

Removal and restoration of the mean, least squares plane and range of the observations.
"""

from typing import Tuple
import numpy as np
import logging

logger = logging.getLogger(__name__)

# app
from ..core.type_declarations import NormalizationMode
from ..core.data_classes import NormalizationCoefficients


def normalize(x: np.ndarray, y: np.ndarray, u: np.ndarray, v: np.ndarray,
              mode: NormalizationMode = NormalizationMode.TREND | NormalizationMode.RANGE) -> NormalizationCoefficients:
    """
    Remove the mean (always), the LS plane (TREND) and normalize by the largest residual (RANGE).
    u and v are overwritten with the residuals.

    Recover u(x,y) = u' * range_u + mean_u + slope_ux * (x - mean_x) + slope_uy * (y - mean_y)
    """
    n = u.size
    mean_u = np.sum(u) / n
    mean_v = np.sum(v) / n
    mean_x = mean_y = 0.0
    slope_ux = slope_uy = slope_vx = slope_vy = 0.0
    range_u = range_v = 0.0

    logger.debug(f'Normalization mode: {mode.description}')

    if mode & NormalizationMode.TREND:
        # solve for LS plane using deviations from mean x,y,u,v
        mean_x = np.sum(x) / n
        mean_y = np.sum(y) / n
        xx = x - mean_x
        yy = y - mean_y
        uu = u - mean_u
        vv = v - mean_v

        sxx = np.sum(xx * xx)
        sxu = np.sum(xx * uu)
        sxv = np.sum(xx * vv)
        sxy = np.sum(xx * yy)
        syy = np.sum(yy * yy)
        syu = np.sum(yy * uu)
        syv = np.sum(yy * vv)

        d = sxx * syy - sxy * sxy
        if d != 0.0:
            slope_ux = (sxu * syy - sxy * syu) / d
            slope_uy = (sxx * syu - sxy * sxu) / d
            slope_vx = (sxv * syy - sxy * syv) / d
            slope_vy = (sxx * syv - sxy * sxv) / d
        else:
            logger.debug('Data constraints are collinear, only removing the mean')

    # remove planes (or just means)
    u -= mean_u
    v -= mean_v
    if mode & NormalizationMode.TREND:
        u -= slope_ux * (x - mean_x) + slope_uy * (y - mean_y)
        v -= slope_vx * (x - mean_x) + slope_vy * (y - mean_y)

    if mode & NormalizationMode.RANGE:
        range_u = float(max(abs(np.min(u)), abs(np.max(u))))
        range_v = float(max(abs(np.min(v)), abs(np.max(v))))
        if range_u != 0.0:
            u *= 1.0 / range_u
        if range_v != 0.0:
            v *= 1.0 / range_v

    coeff = NormalizationCoefficients(mean_x=float(mean_x), mean_y=float(mean_y),
                                      mean_u=float(mean_u), mean_v=float(mean_v),
                                      slope_ux=float(slope_ux), slope_uy=float(slope_uy),
                                      slope_vx=float(slope_vx), slope_vy=float(slope_vy),
                                      range_u=range_u, range_v=range_v)

    logger.debug(f'2-D Normalization coefficients: uoff = {coeff.mean_u:g} uxslope = {coeff.slope_ux:g} '
                 f'xmean = {coeff.mean_x:g} uyslope = {coeff.slope_uy:g} ymean = {coeff.mean_y:g} '
                 f'urange = {coeff.range_u:g}')
    logger.debug(f'2-D Normalization coefficients: voff = {coeff.mean_v:g} vxslope = {coeff.slope_vx:g} '
                 f'xmean = {coeff.mean_x:g} vyslope = {coeff.slope_vy:g} ymean = {coeff.mean_y:g} '
                 f'vrange = {coeff.range_v:g}')

    return coeff


def denormalize(x, y, u, v, coeff: NormalizationCoefficients,
                mode: NormalizationMode = NormalizationMode.TREND | NormalizationMode.RANGE
                ) -> Tuple[np.ndarray, np.ndarray]:
    """Inverse of normalize, valid for any (x,y) and not only the data constraints"""
    u = np.array(u, dtype=float)
    v = np.array(v, dtype=float)

    if mode & NormalizationMode.RANGE:
        # a zero range means the residuals were not scaled
        if coeff.range_u != 0.0:
            u *= coeff.range_u
        if coeff.range_v != 0.0:
            v *= coeff.range_v

    u += coeff.mean_u
    v += coeff.mean_v

    if mode & NormalizationMode.TREND:
        u += coeff.slope_ux * (np.asarray(x) - coeff.mean_x) + coeff.slope_uy * (np.asarray(y) - coeff.mean_y)
        v += coeff.slope_vx * (np.asarray(x) - coeff.mean_x) + coeff.slope_vy * (np.asarray(y) - coeff.mean_y)

    return u, v
