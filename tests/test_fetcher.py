#   Side-by-side grid aggregation
#   Copyright (C) 2025 John Kennedy
#
#   This program is free software: you can redistribute it and/or modify
#   it under the terms of the GNU General Public License as published by
#   the Free Software Foundation, either version 3 of the License, or
#   (at your option) any later version.
#
#   This program is distributed in the hope that it will be useful,
#   but WITHOUT ANY WARRANTY; without even the implied warranty of
#   MERCHANTABILITY or FITNESS FOR A PARTICULAR PURPOSE.  See the
#   GNU General Public License for more details.
#
#   You should have received a copy of the GNU General Public License
#   along with this program.  If not, see <https://www.gnu.org/licenses/>.
import pytest

import numpy as np

import sidebyside.fetcher as fetcher
import sidebyside.merger as merger
from sidebyside.errors import InternalConsistencyError

FILL = -999.0


class RecordingReader:
    """Reads rows from an array and remembers every request."""

    def __init__(self, data):
        self.data = np.asarray(data)
        self.calls = []

    def __call__(self, start, stride, stop):
        self.calls.append((start, stride, stop))
        return self.data[start:stop + 1:stride]


@pytest.fixture
def axis_merger():
    return merger.AxisMerger([np.array([1, 2, 3, 5]), np.array([2, 4, 5, 6])])


@pytest.fixture
def data_a():
    return np.array([10.0, 11.0, 12.0, 13.0])


@pytest.fixture
def data_b():
    return np.array([20.0, 21.0, 22.0, 23.0])


def naive_fetch(index_map, start, stride, stop, data, fill_value):
    out = []
    for p in range(start, stop + 1, stride):
        row = index_map.get(p)
        out.append(fill_value if row is None else data[row])
    return np.array(out)


def test_count_positions():
    assert fetcher.count_positions(0, 1, 5) == 6
    assert fetcher.count_positions(1, 2, 5) == 3
    assert fetcher.count_positions(1, 2, 6) == 3
    assert fetcher.count_positions(4, 10, 4) == 1


def test_full_range_with_fills(axis_merger, data_a):
    read = RecordingReader(data_a)
    result = fetcher.fetch_range(axis_merger.index_map(0), 0, 1, 5, read, FILL)

    assert np.all(result == np.array([10.0, 11.0, 12.0, FILL, 13.0, FILL]))
    assert read.calls == [(0, 1, 2), (3, 1, 3)]


def test_strided_request_breaks_on_stride_change(axis_merger, data_b):
    read = RecordingReader(data_b)
    result = fetcher.fetch_range(axis_merger.index_map(1), 1, 2, 5, read, FILL)

    assert np.all(result == np.array([20.0, 21.0, 23.0]))
    assert read.calls == [(0, 1, 1), (3, 1, 3)]


def test_find_runs(axis_merger):
    segments = list(fetcher.find_runs(axis_merger.index_map(1), 0, 1, 5))

    assert segments == [
        fetcher.Fill(1),
        fetcher.Run(0, 1, 0, 1),
        fetcher.Fill(1),
        fetcher.Run(1, 1, 3, 3),
    ]


def test_run_with_child_stride():
    # Child has every other merged value so its rows step by one while merged positions step by two
    axis_merger = merger.AxisMerger([np.arange(0, 20, 2), np.arange(20)])
    read = RecordingReader(np.arange(10) * 1.5)

    result = fetcher.fetch_range(axis_merger.index_map(0), 0, 4, 16, read, FILL)

    assert read.calls == [(0, 2, 8)]
    assert np.all(result == np.arange(0, 10, 2) * 1.5)


def test_entirely_missing_makes_no_reads():
    axis_merger = merger.AxisMerger([np.array([1, 2]), np.array([3, 4])])
    read = RecordingReader(np.array([1.0, 2.0]))

    result = fetcher.fetch_range(axis_merger.index_map(0), 2, 1, 3, read, FILL)

    assert np.all(result == FILL)
    assert read.calls == []


def test_empty_child_gives_all_fills():
    axis_merger = merger.AxisMerger([np.array([1, 2, 3]), np.array([])])
    read = RecordingReader(np.array([]))

    result = fetcher.fetch_range(axis_merger.index_map(1), 0, 1, 2, read, np.nan)

    assert len(result) == 3
    assert np.all(np.isnan(result))
    assert read.calls == []


def test_other_dimensions_are_filled():
    axis_merger = merger.AxisMerger([np.array([1, 3]), np.array([2])])
    data = np.arange(12.0).reshape((2, 2, 3))

    result = fetcher.fetch_range(
        axis_merger.index_map(0), 0, 1, 2, RecordingReader(data), FILL, other_shape=(2, 3)
    )

    assert result.shape == (3, 2, 3)
    assert np.all(result[0] == data[0])
    assert np.all(result[1] == FILL)
    assert np.all(result[2] == data[1])


def test_chunking_matches_naive_fetch():
    rng = np.random.default_rng(1)
    axes = [np.unique(rng.integers(0, 200, size=120)) for _ in range(3)]
    axis_merger = merger.AxisMerger(axes)
    n = axis_merger.size

    for c, axis in enumerate(axes):
        data = rng.normal(size=len(axis))
        im = axis_merger.index_map(c)
        for start, stride, stop in [(0, 1, n - 1), (3, 2, n - 1), (5, 7, n - 10), (n - 1, 1, n - 1)]:
            result = fetcher.fetch_range(im, start, stride, stop, RecordingReader(data), FILL)
            expected = naive_fetch(im, start, stride, stop, data, FILL)
            assert np.array_equal(result, expected)


def test_child_that_covers_everything_round_trips():
    axis = np.array([0.0, 1.0, 2.0, 3.0])
    axis_merger = merger.AxisMerger([axis, np.array([1.0, 2.0])])
    data = np.array([5.0, 6.0, 7.0, 8.0])
    read = RecordingReader(data)

    result = fetcher.fetch_range(axis_merger.index_map(0), 0, 1, 3, read, FILL)

    assert np.array_equal(result, data)
    assert read.calls == [(0, 1, 3)]


def test_short_read_is_an_error(axis_merger):
    def bad_read(start, stride, stop):
        return np.array([1.0])

    with pytest.raises(InternalConsistencyError):
        fetcher.fetch_range(axis_merger.index_map(0), 0, 1, 5, bad_read, FILL)


def test_read_errors_propagate(axis_merger):
    def failing_read(start, stride, stop):
        raise OSError("child went away")

    with pytest.raises(OSError, match="child went away"):
        fetcher.fetch_range(axis_merger.index_map(0), 0, 1, 5, failing_read, FILL)


def test_invalid_requests(axis_merger):
    im = axis_merger.index_map(0)
    with pytest.raises(ValueError):
        list(fetcher.find_runs(im, 0, 0, 5))
    with pytest.raises(ValueError):
        list(fetcher.find_runs(im, 0, 1, 6))
    with pytest.raises(ValueError):
        list(fetcher.find_runs(im, 4, 1, 3))
    with pytest.raises(ValueError):
        list(fetcher.find_runs(im, -1, 1, 3))
