"""
Unit tests for lattices, mask targets, point targets and the data constraint readers.
"""

import numpy as np
import pytest

from gpsgridder.core.type_declarations import ConfigError, InputError, Registration, WeightingMode
from gpsgridder.core.data_classes import Observation
from gpsgridder.data.output_locations import GridRegion, GridTarget, MaskTarget, PointTarget
from gpsgridder.data.observations import read_observations, read_locations, as_observation_array


class TestGridRegion:

    def test_gridline_nodes(self):
        region = GridRegion(-10, 10, 0, 5, 2, 1)

        assert region.nx == 11 and region.ny == 6
        assert region.shape == (6, 11)
        assert region.x[0] == -10 and region.x[-1] == pytest.approx(10)
        assert region.y[0] == 0 and region.y[-1] == pytest.approx(5)

    def test_pixel_nodes(self):
        region = GridRegion(-10, 10, 0, 5, 2, 1, Registration.PIXEL)

        assert region.shape == (5, 10)
        assert region.x[0] == pytest.approx(-9)
        assert region.y[-1] == pytest.approx(4.5)

    def test_from_strings(self):
        region = GridRegion.from_strings('-72/-60/-40/-30', '0.5', pixel=True)

        assert region.x_inc == region.y_inc == 0.5
        assert region.registration == Registration.PIXEL

        region = GridRegion.from_strings('0/10/0/4', '1/0.5')
        assert region.shape == (9, 11)

    @pytest.mark.parametrize('args', [(0, 10, 0, 10, 0, 1),
                                      (0, 10, 0, 10, 1, -1),
                                      (10, 0, 0, 10, 1, 1),
                                      (0, 10, 0, 10, 3, 1)])
    def test_invalid(self, args):
        with pytest.raises(ConfigError):
            GridRegion(*args)

    def test_unparseable(self):
        with pytest.raises(ConfigError):
            GridRegion.from_strings('0/10/0', '1')
        with pytest.raises(ConfigError):
            GridRegion.from_strings('0/10/0/10', 'a')

    def test_matches(self):
        region = GridRegion(0, 10, 0, 10, 1, 1)

        assert region.matches(GridRegion(0, 10, 0, 10, 1, 1)) is None
        assert 'region' in region.matches(GridRegion(0, 11, 0, 10, 1, 1))
        assert 'resolution' in region.matches(GridRegion(0, 10, 0, 10, 0.5, 0.5))
        assert 'registration' in region.matches(GridRegion(0, 10, 0, 10, 1, 1, Registration.PIXEL))


class TestTargets:

    def test_grid_locations_row_major(self):
        target = GridTarget(GridRegion(0, 2, 0, 1, 1, 1))
        x, y = target.locations()

        np.testing.assert_array_equal(x, [0, 1, 2, 0, 1, 2])
        np.testing.assert_array_equal(y, [0, 0, 0, 1, 1, 1])
        assert len(target) == 6

    def test_mask_target(self):
        region = GridRegion(0, 2, 0, 1, 1, 1)
        mask = np.array([[1.0, np.nan, 1.0], [np.nan, 0.0, 1.0]])
        target = MaskTarget(region, mask)

        x, y = target.locations()
        assert len(target) == 4
        np.testing.assert_array_equal(x, [0, 2, 1, 2])

        u, v, gx, gy = target.assemble(np.arange(4.0), -np.arange(4.0))
        assert u.shape == (2, 3)
        assert np.isnan(u[0, 1]) and np.isnan(v[1, 0])
        assert u[1, 1] == 2.0

    def test_mask_shape_mismatch(self):
        with pytest.raises(ConfigError):
            MaskTarget(GridRegion(0, 2, 0, 1, 1, 1), np.ones((3, 3)))

    def test_mask_geometry_mismatch(self):
        target = MaskTarget(GridRegion(0, 2, 0, 1, 1, 1), np.ones((2, 3)))

        target.check_geometry(None)
        target.check_geometry(GridRegion(0, 2, 0, 1, 1, 1))
        with pytest.raises(ConfigError):
            target.check_geometry(GridRegion(0, 4, 0, 2, 2, 1))

    def test_point_target(self):
        target = PointTarget([1, 2, 3], [4, 5, 6])
        assert not target.is_grid
        assert len(target) == 3

        with pytest.raises(ConfigError):
            PointTarget([], [])
        with pytest.raises(ConfigError):
            PointTarget([1, 2], [1])


class TestObservations:

    def test_read_table(self, tmp_path):
        filename = tmp_path / 'velocities.txt'
        filename.write_text('# lon lat ve vn\n'
                            '-70.0 -35.0 1.5 2.5\n'
                            '> segment header\n'
                            '-69.0 -34.0 1.0 2.0\n')

        data = read_observations(str(filename))

        assert data.shape == (2, 6)
        np.testing.assert_array_equal(data[:, 4:], 1.0)
        assert data[1, 2] == 1.0

    def test_read_csv_with_sigmas(self, tmp_path):
        filename = tmp_path / 'velocities.csv'
        filename.write_text('0,0,1,1,0.5,2\n1,1,2,2,0.25,4\n')

        data = read_observations(str(filename), WeightingMode.SIGMA)

        np.testing.assert_allclose(data[:, 4], [2.0, 4.0])
        np.testing.assert_allclose(data[:, 5], [0.5, 0.25])

    def test_missing_file(self, tmp_path):
        with pytest.raises(InputError):
            read_observations(str(tmp_path / 'missing.txt'))

    def test_malformed_record(self, tmp_path):
        filename = tmp_path / 'bad.txt'
        filename.write_text('0 0 1 1\n1 1 x 2\n')
        with pytest.raises(InputError):
            read_observations(str(filename))

    def test_wrong_column_count(self):
        with pytest.raises(InputError):
            as_observation_array(np.ones((3, 3)))
        with pytest.raises(InputError):
            as_observation_array(np.ones((3, 4)), WeightingMode.WEIGHT)

    def test_non_positive_weights(self):
        data = np.ones((2, 6))
        data[1, 5] = 0.0
        with pytest.raises(InputError):
            as_observation_array(data, WeightingMode.SIGMA)
        with pytest.raises(InputError):
            as_observation_array(data, WeightingMode.WEIGHT)

    def test_non_finite(self):
        data = np.ones((2, 4))
        data[0, 2] = np.nan
        with pytest.raises(InputError):
            as_observation_array(data)

    def test_empty(self):
        with pytest.raises(InputError):
            as_observation_array([])

    def test_observation_records(self):
        data = as_observation_array([Observation(0, 1, 2, 3, 0.5, 0.25)], WeightingMode.WEIGHT)
        np.testing.assert_array_equal(data, [[0, 1, 2, 3, 0.5, 0.25]])

        # weights of the records are ignored when not weighting
        data = as_observation_array([Observation(0, 1, 2, 3, 0.5, 0.25)])
        np.testing.assert_array_equal(data[:, 4:], 1.0)

    def test_read_locations(self, tmp_path):
        filename = tmp_path / 'nodes.txt'
        filename.write_text('1 2 0.5\n3 4 0.5\n')

        x, y = read_locations(str(filename))
        np.testing.assert_array_equal(x, [1, 3])
        np.testing.assert_array_equal(y, [2, 4])
