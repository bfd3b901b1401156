import numpy as np
import pytest

from tilemap_generator.config import ConfigurationError
from tilemap_generator.grid import TileGrid, normalize_values


def test_new_grid_is_filled_with_default_value():
    grid = TileGrid(6, 4)
    assert grid.width() == 6
    assert grid.height() == 4
    assert grid.shape == (4, 6)
    assert np.all(grid.snapshot() == 0.5)


def test_invalid_dimensions_are_rejected():
    with pytest.raises(ConfigurationError):
        TileGrid(0, 10)
    with pytest.raises(ConfigurationError):
        TileGrid(10, -1)


def test_value_reads_column_x_row_y():
    grid = TileGrid(3, 2)
    grid.publish(np.array([[0.0, 0.1, 0.2], [1.0, 1.1, 1.2]]))
    assert grid.value(2, 0) == pytest.approx(0.2)
    assert grid.value(0, 1) == pytest.approx(1.0)


@pytest.mark.parametrize("x, y", [(-1, 0), (0, -1), (3, 0), (0, 2)])
def test_value_out_of_range_raises(x, y):
    grid = TileGrid(3, 2)
    with pytest.raises(IndexError):
        grid.value(x, y)


def test_reset_overwrites_every_cell():
    grid = TileGrid(5, 5)
    grid.publish(np.random.default_rng(1).random((5, 5)))
    grid.reset()
    assert np.all(grid.snapshot() == 0.5)
    grid.reset(0.2)
    assert np.all(grid.snapshot() == 0.2)


def test_normalize_spans_unit_range_and_keeps_order():
    values = np.random.default_rng(42).normal(3.0, 5.0, size=(9, 13))
    grid = TileGrid(13, 9)
    grid.publish(values)

    grid.normalize()
    result = grid.snapshot()

    assert result.min() == pytest.approx(0.0)
    assert result.max() == pytest.approx(1.0)
    assert np.array_equal(np.argsort(result, axis=None), np.argsort(values, axis=None))


def test_normalize_flat_grid_is_a_no_op():
    grid = TileGrid(4, 4, fill_value=0.73)
    grid.normalize()
    result = grid.snapshot()
    assert np.all(result == 0.73)
    assert np.all(np.isfinite(result))


def test_normalize_values_returns_flat_buffer_unchanged():
    flat = np.full((2, 2), -4.0)
    assert np.array_equal(normalize_values(flat), flat)


def test_for_each_cell_rewrites_every_cell():
    grid = TileGrid(4, 3)
    grid.for_each_cell(lambda x, y, old: old + x + 10 * y)
    assert grid.value(3, 2) == pytest.approx(0.5 + 3 + 20)
    assert grid.value(0, 0) == pytest.approx(0.5)


def test_publish_rejects_mismatched_shape():
    grid = TileGrid(4, 3)
    with pytest.raises(ValueError):
        grid.publish(np.zeros((4, 3)))


def test_snapshot_is_detached_from_grid():
    grid = TileGrid(2, 2)
    snapshot = grid.snapshot()
    snapshot[0, 0] = 99.0
    assert grid.value(0, 0) == 0.5
