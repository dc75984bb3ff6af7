"""
Project: GPS Gridder
Date: 10/16/26 3:45 PM
"""

import sys
from pathlib import Path
from typing import Sequence, Union, Tuple, Optional
import numpy as np
import logging

logger = logging.getLogger(__name__)

# app
from ..core.type_declarations import InputError, WeightingMode
from ..core.data_classes import Observation


def _load_table(filename: Optional[str]) -> np.ndarray:
    if filename is None or filename == '-':
        try:
            return np.loadtxt(sys.stdin, dtype=float, comments=('#', '>'), ndmin=2)
        except ValueError as e:
            raise InputError(f'Malformed record in standard input: {e}')

    path = Path(filename)
    if not path.is_file():
        raise InputError(f'Cannot read file {filename}')

    delimiter = ',' if path.suffix.lower() == '.csv' else None
    try:
        data = np.loadtxt(filename, dtype=float, comments=('#', '>'), delimiter=delimiter, ndmin=2)
    except ValueError as e:
        raise InputError(f'Malformed record in {filename}: {e}')

    return data


def read_observations(filename: Optional[str], weighting: WeightingMode = WeightingMode.NONE) -> np.ndarray:
    """
    Read x y u v [weight_u weight_v] records, from standard input if filename is None or '-'

    Returns an (n, 6) array where the last two columns hold the weights (ones if not weighted)
    """
    logger.info(f'Reading data constraints from {filename or "standard input"}')
    data = _load_table(filename)

    return as_observation_array(data, weighting)


def read_locations(filename: str) -> Tuple[np.ndarray, np.ndarray]:
    """x y of the output locations (extra columns are ignored)"""
    logger.info(f'Reading output locations from {filename}')
    data = _load_table(filename)

    if data.size == 0:
        raise InputError(f'No output locations found in {filename}')
    if data.shape[1] < 2:
        raise InputError(f'Output locations in {filename} need at least 2 columns')

    return data[:, 0], data[:, 1]


def as_observation_array(observations: Union[np.ndarray, Sequence[Observation], Sequence[Sequence[float]]],
                         weighting: WeightingMode = WeightingMode.NONE) -> np.ndarray:
    """
    Convert observations to an (n, 6) float array x, y, u, v, weight_u, weight_v

    With WeightingMode.SIGMA the last two input columns are uncertainties and become 1/sigma, with
    WeightingMode.WEIGHT they are used as given and with WeightingMode.NONE they are ignored
    """
    if len(observations) and isinstance(observations[0], Observation):
        data = np.array([[o.x, o.y, o.u, o.v, o.weight_u, o.weight_v] for o in observations], dtype=float)
        n_cols = 6
    else:
        try:
            data = np.array(observations, dtype=float)
        except ValueError as e:
            raise InputError(f'Malformed data constraints: {e}')
        if data.ndim == 1 and data.size:
            data = data[np.newaxis, :]
        n_cols = data.shape[1] if data.ndim == 2 else 0

    if data.size == 0:
        raise InputError('No data constraints found')

    expected = 6 if weighting != WeightingMode.NONE else 4
    if data.ndim != 2 or n_cols < expected:
        raise InputError(f'Data constraints must have {expected} columns (x y u v'
                         f'{" weight_u weight_v" if expected == 6 else ""}), found {n_cols}')

    out = np.ones((data.shape[0], 6))
    out[:, :4] = data[:, :4]
    if weighting != WeightingMode.NONE:
        out[:, 4:] = data[:, 4:6]

    if not np.all(np.isfinite(out)):
        raise InputError('Data constraints contain non-finite values')

    if weighting == WeightingMode.SIGMA:
        if np.any(out[:, 4:] <= 0):
            raise InputError('Data uncertainties must be positive to compute weights')
        out[:, 4:] = 1.0 / out[:, 4:]
    elif weighting == WeightingMode.WEIGHT and np.any(out[:, 4:] <= 0):
        raise InputError('Data weights must be positive')

    return out
