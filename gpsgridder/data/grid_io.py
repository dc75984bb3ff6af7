#!/usr/bin/env python
"""
Grid and table output for the gridder

Grids are written to netCDF4 files with CF-style coordinate variables, one file per velocity component.
Mask grids are read from the same format: nodes holding NaN are not evaluated.
"""

import numpy as np
from typing import Optional, Tuple
import logging
from datetime import datetime
from netCDF4 import Dataset

logger = logging.getLogger(__name__)

# app
from ..core.type_declarations import ConfigError, InputError, Registration, SvdMode
from ..core.data_classes import Spectrum
from .output_locations import GridRegion, MaskTarget

COMPONENTS = {'u': 'u(x,y)', 'v': 'v(x,y)'}


def _coordinate_names(nc) -> Tuple[str, str]:
    # Common naming conventions
    for x_name, y_name in (('x', 'y'), ('lon', 'lat'), ('longitude', 'latitude')):
        if x_name in nc.variables and y_name in nc.variables:
            return x_name, y_name
    raise InputError("Grid file must have 'x'/'y', 'lon'/'lat' or 'longitude'/'latitude' coordinates")


def read_grid(filename: str) -> Tuple[GridRegion, np.ndarray]:
    """
    Read a single layer grid

    Returns
    -------
    region : GridRegion
        Region, increments and registration of the grid
    z : np.ndarray
        Node values (ny x nx, south to north), fill values as NaN
    """
    logger.info(f'Reading grid file: {filename}')

    try:
        nc = Dataset(filename, 'r')
    except (OSError, IOError) as e:
        raise InputError(f'Cannot read grid {filename}: {e}')

    with nc:
        x_name, y_name = _coordinate_names(nc)
        x = np.asarray(nc.variables[x_name][:], dtype=float)
        y = np.asarray(nc.variables[y_name][:], dtype=float)

        data_vars = [name for name, var in nc.variables.items()
                     if var.dimensions == (y_name, x_name)]
        if not data_vars:
            raise InputError(f'Grid {filename} has no variable with dimensions ({y_name}, {x_name})')

        z = np.ma.filled(np.ma.asarray(nc.variables[data_vars[0]][:], dtype=float), np.nan)
        registration = Registration(int(getattr(nc, 'node_offset', 0)))

    if x.size < 2 or y.size < 2:
        raise InputError(f'Grid {filename} needs at least 2 nodes in each direction')

    # store the grid south to north
    if y[0] > y[-1]:
        y = y[::-1]
        z = z[::-1]

    x_inc = (x[-1] - x[0]) / (x.size - 1)
    y_inc = (y[-1] - y[0]) / (y.size - 1)
    half = 0.5 if registration == Registration.PIXEL else 0.0

    region = GridRegion(west=x[0] - half * x_inc, east=x[-1] + half * x_inc,
                        south=y[0] - half * y_inc, north=y[-1] + half * y_inc,
                        x_inc=x_inc, y_inc=y_inc, registration=registration)

    return region, z


def read_mask_grid(filename: str, requested: Optional[GridRegion] = None) -> MaskTarget:
    """Mask grid with NaN at the nodes to skip. Its geometry must match the requested lattice, if given"""
    region, mask = read_grid(filename)

    target = MaskTarget(region, mask)
    target.check_geometry(requested)

    logger.info(f'Mask grid {filename} leaves {int(np.sum(target.valid))} of {target.valid.size} nodes to evaluate')

    return target


def write_grid(filename: str, region: GridRegion, z: np.ndarray,
               component: str = 'u', geographic: bool = False,
               metadata: Optional[dict] = None) -> None:
    """
    Write a single component grid to netCDF

    Parameters
    ----------
    filename : str
        Output file name (.nc extension recommended)
    region : GridRegion
        Lattice of the grid
    z : np.ndarray
        Node values (ny x nx, south to north)
    component : str
        'u' or 'v'
    geographic : bool
        Name the coordinates lon/lat instead of x/y
    metadata : dict, optional
        Additional global attributes: 'title', 'description', 'units', 'poisson_ratio', 'fudge',
        'history'
    """
    if metadata is None:
        metadata = {}

    x_name, y_name = ('lon', 'lat') if geographic else ('x', 'y')

    logger.info(f'Writing grid file: {filename}')

    with Dataset(filename, 'w', format='NETCDF4') as nc:
        nc.Conventions = 'CF-1.8'
        nc.title = metadata.get('title', f'Velocity component {COMPONENTS.get(component, component)}')
        nc.source = metadata.get('source', 'Elastic interpolation (Sandwell & Wessel 2016)')
        nc.history = metadata.get('history', f'{datetime.now().isoformat()}: Created by gpsgridder')
        nc.references = 'Sandwell & Wessel (2016) doi:10.1002/2016GL070340'
        nc.comment = metadata.get('description', f'Strain component {COMPONENTS.get(component, component)}')
        nc.node_offset = int(region.registration)

        if 'poisson_ratio' in metadata:
            nc.poisson_ratio = metadata['poisson_ratio']
        if 'fudge' in metadata:
            nc.fudge = metadata['fudge']

        nc.createDimension(y_name, region.ny)
        nc.createDimension(x_name, region.nx)

        y_var = nc.createVariable(y_name, 'f8', (y_name,))
        y_var.long_name = 'latitude' if geographic else 'y'
        y_var.actual_range = np.array([region.south, region.north])
        if geographic:
            y_var.units = 'degrees_north'
        y_var[:] = region.y

        x_var = nc.createVariable(x_name, 'f8', (x_name,))
        x_var.long_name = 'longitude' if geographic else 'x'
        x_var.actual_range = np.array([region.west, region.east])
        if geographic:
            x_var.units = 'degrees_east'
        x_var[:] = region.x

        z_var = nc.createVariable('z', 'f4', (y_name, x_name), fill_value=np.nan, zlib=True, complevel=4)
        z_var.long_name = COMPONENTS.get(component, component)
        z_var.units = metadata.get('units', '')
        z_var[:] = z


def write_component_grids(template: str, region: GridRegion, u: np.ndarray, v: np.ndarray,
                          geographic: bool = False, metadata: Optional[dict] = None) -> Tuple[str, str]:
    """Write u and v grids, the template must contain %s which is replaced by u or v"""
    if template is None or '%s' not in template:
        raise ConfigError(f'Must specify a grid file name template containing %s, got {template}')

    files = template % 'u', template % 'v'
    write_grid(files[0], region, u, 'u', geographic, metadata)
    write_grid(files[1], region, v, 'v', geographic, metadata)

    return files


def write_points(filename: Optional[str], x: np.ndarray, y: np.ndarray, u: np.ndarray, v: np.ndarray) -> None:
    """x y u v records, to stdout if filename is None"""
    table = np.column_stack((x, y, u, v))
    if filename is None:
        for row in table:
            print('\t'.join(f'{value:.12g}' for value in row))
    else:
        logger.info(f'Writing {table.shape[0]} predictions to {filename}')
        np.savetxt(filename, table, fmt='%.12g', delimiter='\t')


def export_eigenvalues(filename: str, spectrum: Spectrum, mode: SvdMode = SvdMode.RATIO) -> np.ndarray:
    """
    Save the eigenvalues (largest first) for study. In variance mode the raw eigenvalues are written,
    otherwise the ratios s(i)/s(0)
    """
    if not filename:
        raise ConfigError('Must specify a file name for the eigenvalues')

    table = spectrum.table(ratios=mode != SvdMode.VARIANCE)
    np.savetxt(filename, table, fmt=['%d', '%.12g'], delimiter='\t')

    if mode == SvdMode.VARIANCE:
        logger.info(f'Eigen-values saved to {filename}')
    else:
        logger.info(f'Eigen-value ratios s(i)/s(0) saved to {filename}')

    return table
