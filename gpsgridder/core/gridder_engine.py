"""
Project: GPS Gridder
Date: 10/16/26 4:55 PM

Gridding engine: ties the data constraints, the Green's function system, the solver and the output
locations together.
"""

from typing import Optional, Union, Sequence
import numpy as np
import logging

logger = logging.getLogger(__name__)

# app
from ..core.gridder_config import GridderConfig
from ..core.type_declarations import ConfigError
from ..core.data_classes import (SolveContext, GridderResult, KernelParameters, Observation)
from ..elasticity.distance import DistanceCalculator, wrap_longitudes, delta_lon
from ..elasticity.duplicates import DuplicateScanner
from ..elasticity.normalization import normalize
from ..elasticity.system_matrix import build_system, matrix_memory
from ..elasticity.solvers import LinearSolver, TruncatedSvdSolver
from ..elasticity.predictor import predict
from ..data.observations import as_observation_array
from ..data.output_locations import OutputTarget, GridRegion
from ..data.grid_io import export_eigenvalues


class GpsGridder:
    """
    Interpolate (u, v) velocity observations with the coupled Green's functions of a thin elastic sheet
    (Sandwell & Wessel, 2016)
    """
    def __init__(self, config: Optional[GridderConfig] = None):
        self.config = config if config is not None else GridderConfig()
        self.distance = DistanceCalculator.create_instance(self.config.coordinates.mode)
        self.solver: Optional[LinearSolver] = None
        self.context: Optional[SolveContext] = None

    def fit(self, observations: Union[np.ndarray, Sequence[Observation]],
            region: Optional[GridRegion] = None) -> SolveContext:
        """
        Solve for the body forces at the data constraints. Returns the solve context: when the
        solver only exports the eigenvalues (negative cutoff) the body forces are left empty
        """
        self.config.check()

        solver_opts = self.config.solver
        data = as_observation_array(observations, self.config.weighting.mode)

        x, y = data[:, 0], data[:, 1]
        if self.config.coordinates.geographic and region is not None:
            x = wrap_longitudes(x, region.west, region.east)

        scanner = DuplicateScanner(self.distance)
        kept = scanner.scan(x, y, data[:, 2], data[:, 3])
        scanner.check_solvable(solver_opts)

        ctx = SolveContext(x=np.array(x[kept]), y=np.array(y[kept]),
                           u=np.array(data[kept, 2]), v=np.array(data[kept, 3]),
                           weight_u=np.array(data[kept, 4]), weight_v=np.array(data[kept, 5]),
                           normalization_mode=self.config.normalization.mode)

        diag = ctx.diagnostics
        diag.n_read = scanner.n_read
        diag.n_skipped = scanner.n_skipped
        diag.n_conflicting = scanner.n_conflicting
        diag.n_used = ctx.n
        diag.r_min = scanner.r_min
        diag.r_max = scanner.r_max

        kernel_opts = self.config.kernel
        ctx.kernel = KernelParameters.from_poisson_ratio(kernel_opts.poisson_ratio, kernel_opts.fudge_mode,
                                                         kernel_opts.fudge_value, scanner.r_min)
        logger.debug(f'Green function fudge term (added to r^2): {ctx.kernel.fudge_radius_sq:g}')

        # residuals are computed on copies, the context keeps the observations
        u = ctx.u.copy()
        v = ctx.v.copy()
        ctx.coefficients = normalize(ctx.x, ctx.y, u, v, ctx.normalization_mode)

        weighted = self.config.weighting.active
        A, b = build_system(ctx.x, ctx.y, u, v, ctx.kernel, self.distance,
                            weight_u=ctx.weight_u if weighted else None,
                            weight_v=ctx.weight_v if weighted else None,
                            max_bytes=solver_opts.max_matrix_bytes)
        diag.matrix_bytes = matrix_memory(b.size)

        self.solver = LinearSolver.create_instance(solver_opts)
        diag.solver = self.solver.name

        if isinstance(self.solver, TruncatedSvdSolver):
            ctx.spectrum = self.solver.decompose(A)
            diag.n_eigenvalues = len(ctx.spectrum)

            if solver_opts.eigenvalue_file:
                export_eigenvalues(solver_opts.eigenvalue_file, ctx.spectrum, solver_opts.svd_mode)

            if solver_opts.dry_run:
                logger.info('Negative cutoff: eigenvalues exported, no solution computed')
                self.context = ctx
                return ctx

        alpha = self.solver.solve(A, b)

        n = ctx.n
        ctx.alpha_x = alpha[:n].copy()
        ctx.alpha_y = alpha[n:].copy()
        if weighted:
            # the weighted system is solved for W^-1 alpha
            ctx.alpha_x *= ctx.weight_u
            ctx.alpha_y *= ctx.weight_v

        diag.n_eigenvalues = self.solver.n_eigenvalues
        diag.n_used_eigenvalues = self.solver.n_used
        diag.variance_explained = self.solver.variance_explained

        self.context = ctx
        return ctx

    def predict(self, target: OutputTarget) -> GridderResult:
        """Evaluate the fitted solution at the output locations"""
        ctx = self.context
        if ctx is None:
            raise ConfigError('No solution available: call fit before predict')

        result = GridderResult(diagnostics=ctx.diagnostics, spectrum=ctx.spectrum,
                               is_grid=target.is_grid, target=target)

        if self.config.solver.dry_run:
            result.dry_run = True
            return result

        qx, qy = target.locations()
        if self.config.coordinates.geographic:
            if target.region is not None:
                qx = wrap_longitudes(qx, target.region.west, target.region.east)
            # the trend plane is evaluated in the longitude frame of the data
            mean_x = ctx.coefficients.mean_x
            qx = mean_x + delta_lon(mean_x, qx)

        logger.info(f'Evaluate solution at {qx.size} output locations')

        out = self.config.output
        u, v = predict(qx, qy, ctx.x, ctx.y, ctx.alpha_x, ctx.alpha_y, ctx.kernel, self.distance,
                       ctx.coefficients, ctx.normalization_mode,
                       n_threads=out.n_threads, chunk_size=out.chunk_size, progress=out.progress)

        result.u, result.v, result.x, result.y = target.assemble(u, v)

        return result

    def grid(self, observations: Union[np.ndarray, Sequence[Observation]],
             target: OutputTarget) -> GridderResult:
        """Fit the observations and evaluate the solution at the target locations"""
        logger.info(f'Gridding with {self.config.summary()}')

        self.fit(observations, target.region)

        return self.predict(target)
