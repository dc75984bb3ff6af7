"""
Tests of the complete gridding pipeline: fit the data constraints and evaluate the solution on lattices,
masks and point lists.
"""

import numpy as np
import pytest

from gpsgridder.core.gridder_config import GridderConfig
from gpsgridder.core.gridder_engine import GpsGridder
from gpsgridder.core.data_classes import Observation
from gpsgridder.core.type_declarations import (SingularSystemError, ConfigError, ResourceError, InputError)
from gpsgridder.data.output_locations import GridRegion, GridTarget, MaskTarget, PointTarget


def field_data(n=12, seed=21):
    rng = np.random.default_rng(seed)
    x = rng.uniform(0, 10, n)
    y = rng.uniform(0, 10, n)
    u = np.sin(0.4 * x) + 0.1 * y
    v = np.cos(0.3 * y) - 0.05 * x
    return np.column_stack((x, y, u, v))


def make_gridder(**sections):
    return GpsGridder(GridderConfig(custom_config=sections, silent=True))


REGION = GridRegion(0, 10, 0, 10, 1, 1)


class TestScenarios:

    def test_unit_square_plane(self):
        """4 points with u = x, v = y predict (0.5, 0.5) at the center"""
        data = np.array([[0, 0, 0, 0],
                         [1, 0, 1, 0],
                         [0, 1, 0, 1],
                         [1, 1, 1, 1]], dtype=float)

        result = make_gridder().grid(data, PointTarget([0.5], [0.5]))

        assert result.u[0] == pytest.approx(0.5, abs=1e-6)
        assert result.v[0] == pytest.approx(0.5, abs=1e-6)
        assert result.diagnostics.n_used == 4
        assert result.diagnostics.r_min == pytest.approx(1.0)
        assert result.diagnostics.r_max == pytest.approx(np.sqrt(2.0))

    def test_plane_is_reproduced_everywhere(self):
        rng = np.random.default_rng(2)
        x = rng.uniform(-5, 5, 8)
        y = rng.uniform(-5, 5, 8)
        u = 1.5 + 0.3 * x - 0.7 * y
        v = -2.0 + 0.1 * x + 0.4 * y

        gridder = make_gridder(kernel={'fudge_mode': 'absolute', 'fudge_value': 1e-6},
                               normalization={'normalize_range': False})

        qx = rng.uniform(-8, 8, 30)
        qy = rng.uniform(-8, 8, 30)
        result = gridder.grid(np.column_stack((x, y, u, v)), PointTarget(qx, qy))

        np.testing.assert_allclose(result.u, 1.5 + 0.3 * qx - 0.7 * qy, atol=1e-8)
        np.testing.assert_allclose(result.v, -2.0 + 0.1 * qx + 0.4 * qy, atol=1e-8)

    @pytest.mark.parametrize('mode', ['cartesian', 'geographic'])
    def test_solution_honors_data(self, mode):
        data = field_data()
        if mode == 'geographic':
            # lon/lat in the South American plate
            data[:, 0] = -70.0 + 0.5 * data[:, 0]
            data[:, 1] = -35.0 + 0.5 * data[:, 1]

        gridder = make_gridder(coordinates={'mode': mode})
        result = gridder.grid(data, PointTarget(data[:, 0], data[:, 1]))

        np.testing.assert_allclose(result.u, data[:, 2], atol=1e-6)
        np.testing.assert_allclose(result.v, data[:, 3], atol=1e-6)

    def test_observation_records(self):
        data = field_data(n=5)
        records = [Observation(*row) for row in data]

        a = make_gridder().grid(records, PointTarget([5.0], [5.0]))
        b = make_gridder().grid(data, PointTarget([5.0], [5.0]))

        np.testing.assert_array_equal(a.u, b.u)
        np.testing.assert_array_equal(a.v, b.v)


class TestDuplicates:

    def test_identical_records(self):
        data = np.array([[1, 2, 3, 4], [1, 2, 3, 4]], dtype=float)
        result = make_gridder().grid(data, PointTarget([0.0], [0.0]))

        assert result.diagnostics.n_used == 1
        assert result.diagnostics.n_skipped == 1
        # a single constraint predicts a constant field
        assert result.u[0] == pytest.approx(3.0)
        assert result.v[0] == pytest.approx(4.0)

    def test_conflicting_records_exact_solve(self):
        data = np.vstack((field_data(n=6), [[5, 5, 1, 1], [5, 5, 2, 1]]))

        with pytest.raises(SingularSystemError):
            make_gridder().grid(data, PointTarget([0.0], [0.0]))

    def test_conflicting_records_truncated_svd(self):
        data = np.vstack((field_data(n=6), [[5, 5, 1, 1], [5, 5, 2, 1]]))

        gridder = make_gridder(solver={'use_svd': True, 'svd_mode': 'ratio', 'cutoff': 1e-6})
        result = gridder.grid(data, PointTarget([2.0, 5.0], [3.0, 5.0]))

        assert result.diagnostics.n_conflicting == 1
        assert np.all(np.isfinite(result.u))

        s = result.spectrum.singular_values
        assert s.min() / s.max() < 1e-10
        assert result.diagnostics.n_used_eigenvalues < s.size


class TestSolverChoice:

    def test_all_eigenvalues_match_exact_solve(self):
        data = field_data()
        target = PointTarget(np.linspace(0, 10, 15), np.linspace(10, 0, 15))

        exact = make_gridder().grid(data, target)
        svd = make_gridder(solver={'use_svd': True, 'svd_mode': 'count', 'cutoff': 0}).grid(data, target)

        assert svd.diagnostics.n_used_eigenvalues == 2 * data.shape[0]
        np.testing.assert_allclose(svd.u, exact.u, atol=1e-6)
        np.testing.assert_allclose(svd.v, exact.v, atol=1e-6)

    def test_variance_mode_reports_retained(self):
        data = field_data()
        gridder = make_gridder(solver={'use_svd': True, 'svd_mode': 'variance', 'cutoff': 90})
        result = gridder.grid(data, GridTarget(REGION))

        assert 0 < result.diagnostics.n_used_eigenvalues <= 2 * data.shape[0]
        assert result.diagnostics.variance_explained >= 0.9 - 1e-12

    def test_dry_run_exports_eigenvalues(self, tmp_path):
        data = field_data(n=7)
        filename = str(tmp_path / 'eigenvalues.txt')

        gridder = make_gridder(solver={'use_svd': True, 'cutoff': -1, 'eigenvalue_file': filename})
        result = gridder.grid(data, GridTarget(REGION))

        assert result.dry_run
        assert result.u.size == 0 and result.v.size == 0

        table = np.loadtxt(filename)
        assert table.shape == (14, 2)
        np.testing.assert_array_equal(table[:, 0], np.arange(1, 15))
        assert np.all(np.diff(table[:, 1]) <= 0)
        assert table[0, 1] == pytest.approx(1.0)

    def test_negative_cutoff_needs_eigenvalue_file(self):
        gridder = make_gridder(solver={'use_svd': True, 'cutoff': -1})
        with pytest.raises(ConfigError):
            gridder.grid(field_data(), GridTarget(REGION))

    def test_matrix_size_limit(self):
        gridder = make_gridder(solver={'max_matrix_bytes': 1000})
        with pytest.raises(ResourceError):
            gridder.grid(field_data(), GridTarget(REGION))


class TestWeights:

    @pytest.mark.parametrize('mode', ['weight', 'sigma'])
    def test_exact_solution_independent_of_weights(self, mode):
        data = field_data()
        rng = np.random.default_rng(4)
        weights = rng.uniform(0.5, 3.0, (data.shape[0], 2))
        target = PointTarget(np.linspace(0, 10, 9), np.linspace(0, 10, 9))

        plain = make_gridder().grid(data, target)
        weighted = make_gridder(weighting={'mode': mode}).grid(np.hstack((data, weights)), target)

        np.testing.assert_allclose(weighted.u, plain.u, rtol=1e-6, atol=1e-7)
        np.testing.assert_allclose(weighted.v, plain.v, rtol=1e-6, atol=1e-7)

    def test_weights_need_extra_columns(self):
        with pytest.raises(InputError):
            make_gridder(weighting={'mode': 'sigma'}).grid(field_data(), GridTarget(REGION))


class TestOutputLocations:

    def test_grid_matches_point_list(self):
        data = field_data()
        target = GridTarget(REGION)

        grid = make_gridder().grid(data, target)
        points = make_gridder().grid(data, PointTarget(*target.locations()))

        assert grid.is_grid and not points.is_grid
        assert grid.u.shape == (11, 11)
        np.testing.assert_array_equal(grid.u.ravel(), points.u)
        np.testing.assert_array_equal(grid.v.ravel(), points.v)

    def test_threads_match_serial(self):
        data = field_data()
        target = GridTarget(GridRegion(0, 10, 0, 10, 0.25, 0.25))

        serial = make_gridder(output={'chunk_size': 50}).grid(data, target)
        threaded = make_gridder(output={'chunk_size': 50, 'n_threads': 4}).grid(data, target)

        np.testing.assert_array_equal(serial.u, threaded.u)
        np.testing.assert_array_equal(serial.v, threaded.v)

    def test_mask_skips_nodes(self):
        data = field_data()
        mask = np.ones(REGION.shape)
        mask[:3, :] = np.nan
        mask[5, 5] = np.nan

        masked = make_gridder().grid(data, MaskTarget(REGION, mask))
        full = make_gridder().grid(data, GridTarget(REGION))

        skipped = np.isnan(mask)
        assert np.all(np.isnan(masked.u[skipped])) and np.all(np.isnan(masked.v[skipped]))
        np.testing.assert_allclose(masked.u[~skipped], full.u[~skipped], rtol=1e-12, atol=1e-12)
        np.testing.assert_allclose(masked.v[~skipped], full.v[~skipped], rtol=1e-12, atol=1e-12)

    def test_pixel_registration(self):
        region = GridRegion(0, 10, 0, 10, 1, 1, registration='pixel')
        result = make_gridder().grid(field_data(), GridTarget(region))

        assert result.u.shape == (10, 10)
        assert result.x[0] == pytest.approx(0.5)

    def test_predict_before_fit(self):
        with pytest.raises(ConfigError):
            make_gridder().predict(GridTarget(REGION))


class TestGeographicPoints:

    def test_longitude_frame_does_not_matter(self):
        rng = np.random.default_rng(9)
        lon = rng.uniform(350, 356, 8)
        lat = rng.uniform(10, 16, 8)
        # velocities on a plane across the dateline of the data frame
        u = 0.5 * (lon - 353) - 0.2 * (lat - 13)
        v = -0.1 * (lon - 353) + 0.3 * (lat - 13)
        data = np.column_stack((lon, lat, u, v))

        gridder = make_gridder(coordinates={'mode': 'geographic'})
        east = gridder.grid(data, PointTarget([353.0, 351.5], [13.0, 12.0]))
        west = gridder.grid(data, PointTarget([-7.0, -8.5], [13.0, 12.0]))

        np.testing.assert_allclose(west.u, east.u, atol=1e-9)
        np.testing.assert_allclose(west.v, east.v, atol=1e-9)
        assert east.u[0] == pytest.approx(0.0, abs=1e-6)
        # the output keeps the requested coordinates
        np.testing.assert_array_equal(west.x, [-7.0, -8.5])


class TestProgress:

    def test_progress_bar_closed_on_error(self, monkeypatch):
        from gpsgridder.elasticity import predictor

        bars = []

        class RecordingBar:
            def __init__(self, *args, **kwargs):
                self.closed = False
                bars.append(self)

            def update(self, n):
                pass

            def __enter__(self):
                return self

            def __exit__(self, *exc):
                self.closed = True
                return False

        def failing_expansion(*args, **kwargs):
            raise MemoryError('chunk too large')

        gridder = make_gridder(output={'progress': True})
        gridder.fit(field_data())

        monkeypatch.setattr(predictor, 'tqdm', RecordingBar)
        monkeypatch.setattr(predictor, 'evaluate_expansion', failing_expansion)

        with pytest.raises(MemoryError):
            gridder.predict(GridTarget(REGION))

        assert len(bars) == 1 and bars[0].closed
