#!/usr/bin/env python

"""
Project: GPS Gridder
Date: 10/17/26 10:30 AM

Interpolate GPS velocities (u, v) using the coupled Green functions of a thin elastic sheet
(Sandwell & Wessel, 2016). Output is two grids (u and v) or a table of predictions at given locations.
"""

import argparse
import sys
import logging
from typing import Optional

logger = logging.getLogger('gpsgridder.cli')

# app
from . import __version__
from .core.gridder_config import GridderConfig
from .core.gridder_engine import GpsGridder
from .core.logging_config import setup_gridder_logging
from .core.type_declarations import GridderException, ConfigError, SvdMode, FudgeMode, WeightingMode
from .data.observations import read_observations, read_locations
from .data.output_locations import GridRegion, GridTarget, PointTarget, OutputTarget
from .data.grid_io import read_mask_grid, write_component_grids, write_points

# Map verbosity to logging levels
VERBOSITY_MAP = {
    'quiet': logging.CRITICAL,  # or logging.NOTSET to disable all
    'info': logging.INFO,
    'debug': logging.DEBUG
}


def add_version_argument(parser):
    parser.add_argument('-v', '--version', action='version', version=f'%(prog)s {__version__}')
    return parser


def parse_svd_option(arg: str) -> dict:
    """[n|v]cut[/file] -> solver section"""
    mode = SvdMode.RATIO
    if arg[:1] == 'v':
        mode = SvdMode.VARIANCE
        arg = arg[1:]
    elif arg[:1] == 'n':
        mode = SvdMode.COUNT
        arg = arg[1:]

    value, _, filename = arg.partition('/')
    try:
        cutoff = float(value) if value else 0.0
    except ValueError:
        raise ConfigError(f'Invalid SVD cutoff {value}: use -C[n|v]<cut>[/<file>]')

    return {'use_svd': True, 'svd_mode': mode, 'cutoff': cutoff, 'eigenvalue_file': filename or None}


def parse_fudge_option(arg: str) -> dict:
    """d<delta_radius> or f<factor> -> kernel section"""
    modes = {'d': FudgeMode.ABSOLUTE, 'f': FudgeMode.RELATIVE}
    if arg[:1] not in modes:
        raise ConfigError('Usage error: -Fd<delta_radius> or -Ff<factor>')
    try:
        return {'fudge_mode': modes[arg[0]], 'fudge_value': float(arg[1:])}
    except ValueError:
        raise ConfigError(f'Invalid fudge value {arg[1:]}: use -Fd<delta_radius> or -Ff<factor>')


def build_config(args) -> GridderConfig:
    """options given on the command line override those of the json configuration"""
    custom = {'kernel': {}, 'output': {}}

    if args.poisson_ratio is not None:
        custom['kernel']['poisson_ratio'] = args.poisson_ratio
    if args.fudge is not None:
        custom['kernel'].update(parse_fudge_option(args.fudge))
    if args.leave_trend:
        custom['normalization'] = {'detrend': False}
    if args.geographic:
        custom['coordinates'] = {'mode': 'geographic'}
    if args.threads is not None:
        custom['output']['n_threads'] = args.threads
    if args.progress:
        custom['output']['progress'] = True
    if args.svd is not None:
        custom['solver'] = parse_svd_option(args.svd)
    if args.weights is not None:
        custom['weighting'] = {'mode': WeightingMode.WEIGHT if args.weights == 'w' else WeightingMode.SIGMA}

    config = GridderConfig(json_file=args.config, silent=args.verbosity == 'quiet')
    config.apply_custom_config(custom)

    return config


def build_target(args) -> OutputTarget:
    requested = None
    if args.region and args.increment:
        requested = GridRegion.from_strings(args.region, args.increment, args.pixel)
    elif args.region or args.increment:
        if not args.mask:
            raise ConfigError('Must specify both -R and -I to define the output grid')

    if args.nodes:
        x, y = read_locations(args.nodes)
        return PointTarget(x, y)

    if args.mask:
        if (args.region is None) != (args.increment is None):
            raise ConfigError('Must specify both -R and -I (or neither) with a mask grid')
        return read_mask_grid(args.mask, requested)

    if requested is None:
        raise ConfigError('No output locations: specify -R and -I, a mask grid (-T) or a node file (-N)')

    return GridTarget(requested)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description='Interpolate GPS velocities using the Green functions for '
                                                 'a thin elastic sheet (Sandwell & Wessel, 2016)')

    parser.add_argument('table', type=str, nargs='?', default=None,
                        help="Data constraints: x y u v [sigma_u sigma_v] records. Reads standard input if "
                             "omitted")

    parser.add_argument('-G', '--outgrid', type=str, default=None, metavar='file',
                        help="Output grid file name template, must contain %%s which is replaced by u or v. "
                             "With -N, the output table file (default is standard output)")

    parser.add_argument('-R', '--region', type=str, default=None, metavar='w/e/s/n',
                        help="Region of the output grid")

    parser.add_argument('-I', '--increment', type=str, default=None, metavar='dx[/dy]',
                        help="Grid spacing")

    parser.add_argument('-r', '--pixel', action='store_true',
                        help="Pixel node registration. Default is gridline registration")

    parser.add_argument('-N', '--nodes', type=str, default=None, metavar='file',
                        help="Evaluate the solution at the x y locations in this file instead of on a grid")

    parser.add_argument('-T', '--mask', type=str, default=None, metavar='maskgrid',
                        help="Only evaluate the solution at the nodes of this grid that are not NaN. "
                             "Region, spacing and registration are taken from the mask")

    parser.add_argument('-C', '--svd', type=str, default=None, metavar='[n|v]cut[/file]',
                        help="Solve by SVD and eliminate eigenvalues whose ratio to the largest is less than "
                             "cut. With -Cn keep the cut largest eigenvalues, with -Cv keep those that explain "
                             "cut %% of the variance. Append /file to save the eigenvalues; a negative cut "
                             "only saves the eigenvalues and exits. Default is Gauss-Jordan elimination")

    parser.add_argument('-F', '--fudge', type=str, default=None, metavar='d|f value',
                        help="Fudge term to avoid the r = 0 singularity: -Fd<delta_radius> in user units or "
                             "-Ff<factor> times the minimum distance between constraints. Default is -Ff0.01")

    parser.add_argument('-L', '--leave_trend', action='store_true',
                        help="Leave trend alone: do not remove the least squares plane from the data")

    parser.add_argument('-S', '--poisson_ratio', type=float, default=None, metavar='nu',
                        help="Poisson's ratio for the elastic sheet. Default is 0.25")

    parser.add_argument('-W', '--weights', type=str, nargs='?', const='s', default=None, choices=['s', 'w'],
                        help="Expect two extra input columns with data errors sigma_u, sigma_v. Use -Ww if "
                             "the columns already hold weights")

    parser.add_argument('-fg', '--geographic', action='store_true',
                        help="Input is lon/lat: use flat Earth distances in km")

    parser.add_argument('-P', '--threads', type=int, default=None, metavar='n',
                        help="Number of threads used to evaluate the solution. Default is 1")

    parser.add_argument('--progress', action='store_true',
                        help="Show a progress bar while evaluating the solution")

    parser.add_argument('--config', type=str, default=None, metavar='json',
                        help="Load the configuration from a json file. Command line options take precedence")

    parser.add_argument('--plot-spectrum', dest='plot_spectrum', type=str, default=None, metavar='file',
                        help="Save a plot of the singular value spectrum (requires -C)")

    parser.add_argument('--plot-field', dest='plot_field', type=str, default=None, metavar='file',
                        help="Save a quiver plot of the interpolated field")

    parser.add_argument('-verbosity', '--verbosity',
                        choices=['quiet', 'info', 'debug'], default='info',
                        help="Determine how detailed the execution messages should be. "
                             "Default is 'info'")

    add_version_argument(parser)

    return parser


def main(argv: Optional[list] = None) -> int:
    args = build_parser().parse_args(argv)

    setup_gridder_logging(level=VERBOSITY_MAP[args.verbosity])

    try:
        config = build_config(args)
        # restore the requested verbosity after the configuration
        setup_gridder_logging(level=VERBOSITY_MAP[args.verbosity])
        config.check()

        target = build_target(args)
        if target.is_grid and not args.outgrid:
            raise ConfigError('Must specify an output grid file name template with -G')

        observations = read_observations(args.table, config.weighting.mode)

        gridder = GpsGridder(config)
        result = gridder.grid(observations, target)

        if result.spectrum is not None and args.plot_spectrum:
            from .visualization.spectrum_plot import plot_spectrum
            plot_spectrum(result.spectrum, args.plot_spectrum, result.diagnostics.n_used_eigenvalues or None)

        if result.dry_run:
            return 0

        if result.is_grid:
            metadata = {'poisson_ratio': config.kernel.poisson_ratio,
                        'fudge': gridder.context.kernel.fudge_radius_sq,
                        'history': ' '.join(['gpsgridder'] + (sys.argv[1:] if argv is None else list(argv)))}
            write_component_grids(args.outgrid, target.region, result.u, result.v, config.coordinates.geographic,
                                  metadata)
        else:
            write_points(args.outgrid, result.x, result.y, result.u, result.v)

        if args.plot_field:
            from .visualization.spectrum_plot import plot_velocity_field
            plot_velocity_field(result, observations, args.plot_field)

    except GridderException as e:
        logger.error(f'{type(e).__name__}: {e}')
        return 1

    return 0


if __name__ == '__main__':
    sys.exit(main())
