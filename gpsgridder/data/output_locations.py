"""
Project: GPS Gridder
Date: 10/16/26 3:10 PM

Where to evaluate the solution: an equidistant lattice, a lattice restricted by a mask, or a list of points.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Tuple, Optional
import numpy as np

# app
from ..core.type_declarations import Registration, ConfigError
from ..core.data_classes import coerce_enum

# relative tolerance when checking that the increments fit the region
INC_TOLERANCE = 1e-4


@dataclass(frozen=True)
class GridRegion:
    """Region, increments and registration of a lattice (-R, -I and -r)"""
    west: float
    east: float
    south: float
    north: float
    x_inc: float
    y_inc: float
    registration: Registration = Registration.GRIDLINE

    def __post_init__(self):
        object.__setattr__(self, 'registration', coerce_enum(Registration, self.registration))
        self.validate()

    def validate(self) -> None:
        if self.x_inc <= 0 or self.y_inc <= 0:
            raise ConfigError(f'Grid increments must be positive, got {self.x_inc}/{self.y_inc}')
        if self.east <= self.west or self.north <= self.south:
            raise ConfigError(f'Invalid region {self.west}/{self.east}/{self.south}/{self.north}')

        for name, span, inc in (('x', self.east - self.west, self.x_inc), ('y', self.north - self.south, self.y_inc)):
            cells = span / inc
            if abs(cells - round(cells)) > INC_TOLERANCE:
                raise ConfigError(f'The {name} range {span:g} is not a multiple of the increment {inc:g}')

    @classmethod
    def from_strings(cls, region: str, increment: str, pixel: bool = False) -> 'GridRegion':
        """parse w/e/s/n and dx[/dy]"""
        try:
            w, e, s, n = [float(r) for r in region.split('/')]
            inc = [float(i) for i in increment.split('/')]
        except ValueError:
            raise ConfigError(f'Could not parse region {region} or increment {increment}')
        if len(inc) == 1:
            inc = inc * 2
        elif len(inc) != 2:
            raise ConfigError(f'Invalid increment {increment}')

        return cls(w, e, s, n, inc[0], inc[1], Registration.PIXEL if pixel else Registration.GRIDLINE)

    @property
    def nx(self) -> int:
        return int(round((self.east - self.west) / self.x_inc)) + (1 - int(self.registration))

    @property
    def ny(self) -> int:
        return int(round((self.north - self.south) / self.y_inc)) + (1 - int(self.registration))

    @property
    def shape(self) -> Tuple[int, int]:
        return self.ny, self.nx

    @property
    def x(self) -> np.ndarray:
        offset = 0.5 * self.x_inc if self.registration == Registration.PIXEL else 0.0
        return self.west + offset + np.arange(self.nx) * self.x_inc

    @property
    def y(self) -> np.ndarray:
        offset = 0.5 * self.y_inc if self.registration == Registration.PIXEL else 0.0
        return self.south + offset + np.arange(self.ny) * self.y_inc

    def matches(self, other: 'GridRegion') -> Optional[str]:
        """return a description of the first mismatch with other, None if both lattices are the same"""
        same = lambda a, b: np.allclose(a, b, rtol=1e-9, atol=1e-12)

        if not same([self.west, self.east, self.south, self.north],
                    [other.west, other.east, other.south, other.north]):
            return 'The mask grid does not match your specified region'
        if not same([self.x_inc, self.y_inc], [other.x_inc, other.y_inc]):
            return 'The mask grid resolution does not match your specified grid spacing'
        if self.registration != other.registration:
            return 'The mask grid registration does not match your specified grid registration'
        return None


class OutputTarget(ABC):
    """Abstract base class for the output locations"""

    region: Optional[GridRegion] = None

    @abstractmethod
    def locations(self) -> Tuple[np.ndarray, np.ndarray]:
        """x, y of the points where the solution is needed"""
        pass

    @abstractmethod
    def assemble(self, u: np.ndarray, v: np.ndarray) -> Tuple[np.ndarray, np.ndarray, np.ndarray, np.ndarray]:
        """place the predicted values into the output layout, return u, v, x, y"""
        pass

    @property
    def is_grid(self) -> bool:
        return self.region is not None

    def __len__(self):
        return self.locations()[0].size


class GridTarget(OutputTarget):

    def __init__(self, region: GridRegion):
        self.region = region

    def locations(self):
        xx, yy = np.meshgrid(self.region.x, self.region.y)
        return xx.ravel(), yy.ravel()

    def assemble(self, u, v):
        return u.reshape(self.region.shape), v.reshape(self.region.shape), self.region.x, self.region.y


class MaskTarget(GridTarget):
    """Only nodes where the mask is not NaN are evaluated, the rest stay NaN"""

    def __init__(self, region: GridRegion, mask: np.ndarray):
        super().__init__(region)
        mask = np.asarray(mask, dtype=float)
        if mask.shape != region.shape:
            raise ConfigError(f'Mask grid has shape {mask.shape[0]} x {mask.shape[1]} but the region needs '
                              f'{region.ny} x {region.nx} nodes')
        self.mask = mask
        self.valid = ~np.isnan(mask).ravel()

    def check_geometry(self, requested: Optional[GridRegion]) -> None:
        if requested is None:
            return
        issue = self.region.matches(requested)
        if issue:
            raise ConfigError(issue)

    def locations(self):
        xx, yy = super().locations()
        return xx[self.valid], yy[self.valid]

    def assemble(self, u, v):
        uu = np.full(self.valid.size, np.nan)
        vv = np.full(self.valid.size, np.nan)
        uu[self.valid] = u
        vv[self.valid] = v
        return super().assemble(uu, vv)


class PointTarget(OutputTarget):

    def __init__(self, x, y):
        self.x = np.asarray(x, dtype=float).ravel()
        self.y = np.asarray(y, dtype=float).ravel()
        if self.x.size != self.y.size:
            raise ConfigError('Output locations need the same number of x and y coordinates')
        if self.x.size == 0:
            raise ConfigError('No output locations given')

    def locations(self):
        return self.x, self.y

    def assemble(self, u, v):
        return u, v, self.x, self.y
