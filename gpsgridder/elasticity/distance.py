"""
Project: GPS Gridder
Date: 10/16/26 10:02 AM

Offsets and distances between points in Cartesian or geographic (flat Earth) coordinates.
Every method broadcasts, so passing a column (m x 1) and a row (n,) returns (m x n) arrays.
"""

from abc import ABC, abstractmethod
from typing import Tuple
import numpy as np
import logging

logger = logging.getLogger(__name__)

# app
from ..core.type_declarations import CoordinateMode

# mean Earth radius (km) used for the flat Earth approximation
EARTH_RADIUS_KM = 6371.0087714
KM_PER_DEG = EARTH_RADIUS_KM * np.pi / 180.0

cosd = lambda x: np.cos(np.deg2rad(x))


class DistanceCalculator(ABC):
    """Abstract base class for the coordinate system dependent distance machinery"""

    mode = CoordinateMode.CARTESIAN

    @classmethod
    def create_instance(cls, mode: CoordinateMode = CoordinateMode.CARTESIAN) -> 'DistanceCalculator':
        """Determine the type of object needed and return it to the called"""
        if mode == CoordinateMode.CARTESIAN:
            instance = CartesianDistance()
        elif mode == CoordinateMode.GEOGRAPHIC:
            instance = FlatEarthDistance()
        else:
            raise ValueError(f'Coordinate mode {mode} not implemented')

        logger.debug(f'Distance calculator: {instance.mode.description}')
        return instance

    @abstractmethod
    def offset(self, x0, y0, x1, y1) -> Tuple[np.ndarray, np.ndarray]:
        """increments dx, dy of point 1 as measured from point 0"""
        pass

    def distance(self, x0, y0, x1, y1) -> np.ndarray:
        dx, dy = self.offset(x0, y0, x1, y1)
        return np.hypot(dx, dy)

    def pairwise(self, x_from, y_from, x_to, y_to) -> Tuple[np.ndarray, np.ndarray]:
        """offsets for all combinations: rows are the 'to' points, columns the 'from' points"""
        x_to = np.asarray(x_to, dtype=float)[:, np.newaxis]
        y_to = np.asarray(y_to, dtype=float)[:, np.newaxis]
        return self.offset(np.asarray(x_from, dtype=float), np.asarray(y_from, dtype=float), x_to, y_to)


class CartesianDistance(DistanceCalculator):

    mode = CoordinateMode.CARTESIAN

    def offset(self, x0, y0, x1, y1):
        dx = np.subtract(x1, x0, dtype=float)
        dy = np.subtract(y1, y0, dtype=float)
        return dx, dy


class FlatEarthDistance(DistanceCalculator):
    """lon/lat in degrees, offsets and distances in km"""

    mode = CoordinateMode.GEOGRAPHIC

    def offset(self, x0, y0, x1, y1):
        dlon = delta_lon(x0, x1)
        dx = dlon * cosd(0.5 * (np.add(y1, y0, dtype=float))) * KM_PER_DEG
        dy = np.subtract(y1, y0, dtype=float) * KM_PER_DEG
        return dx, dy


def delta_lon(lon0, lon1) -> np.ndarray:
    """longitude difference lon1 - lon0 taking the short way around"""
    dlon = np.subtract(lon1, lon0, dtype=float)
    adlon = np.abs(dlon)
    return np.where(adlon > 180.0, dlon - 360.0 * np.round(dlon / 360.0), dlon)


def wrap_longitudes(lon, west: float, east: float) -> np.ndarray:
    """Ensure longitudes fall in the west/east range when a 360 shift brings them inside"""
    lon = np.array(lon, dtype=float)
    lon = np.where((lon < west) & (lon + 360.0 < east), lon + 360.0, lon)
    lon = np.where((lon > east) & (lon - 360.0 > west), lon - 360.0, lon)
    return lon
