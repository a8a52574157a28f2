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
import logging
from dataclasses import dataclass

import numpy as np

from sidebyside.errors import InternalConsistencyError

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Fill:
    """A stretch of requested positions that the child has no values for."""
    count: int


@dataclass(frozen=True)
class Run:
    """A stretch of requested positions that can be read from the child in one go."""
    child_start: int
    child_stride: int
    child_stop: int
    count: int


def count_positions(start, stride, stop):
    """Number of positions in start, start+stride, ..., up to and including stop."""
    return (stop - start) // stride + 1


def check_request(n_positions, start, stride, stop):
    if stride < 1:
        raise ValueError(f"stride must be at least 1, got {stride}")
    if start < 0 or stop >= n_positions or start > stop:
        raise ValueError(
            f"Invalid range start={start} stop={stop} for an axis with {n_positions} values"
        )


def find_runs(index_map, start, stride, stop):
    """Split a strided request on the merged axis into fills and runs on the child.

    Positions the child doesn't have become Fill segments. Everything else is
    grouped into runs: consecutive requested positions that are all present and
    whose child rows step by a constant amount. The child stride of a run is
    set by its first two positions and the run ends at the first position that
    is missing or breaks the stride. A run with only one position has stride 1.

    Parameters
    ----------
    index_map: IndexMap
        Index map for the child that owns the variable
    start: int
        First merged position
    stride: int
        Step between merged positions
    stop: int
        Last merged position (inclusive)

    Yields
    ------
    Fill or Run
        Segments in request order. Adjacent fills are combined.
    """
    check_request(len(index_map), start, stride, stop)
    index = index_map.index
    present = index_map.present

    position = start
    while position <= stop:
        # Find the first position that the child has
        n_fill = 0
        while position <= stop and not present[position]:
            n_fill += 1
            position += stride
        if n_fill > 0:
            yield Fill(n_fill)
        if position > stop:
            break

        child_start = int(index[position])
        child_stride = None
        count = 1
        next_position = position + stride
        while next_position <= stop:
            if not present[next_position]:
                break
            step = int(index[next_position]) - int(index[next_position - stride])
            if child_stride is None:
                child_stride = step
            elif step != child_stride:
                break
            count += 1
            next_position += stride

        if child_stride is None:
            child_stride = 1
        child_stop = int(index[next_position - stride])
        yield Run(child_start, child_stride, child_stop, count)

        position = next_position


def fetch_range(index_map, start, stride, stop, read, fill_value, other_shape=(), dtype=None):
    """Read values for a strided range of merged positions from one child.

    Parameters
    ----------
    index_map: IndexMap
        Index map for the child that owns the variable
    start, stride, stop: int
        Requested merged positions, stop is inclusive
    read: callable
        ``read(child_start, child_stride, child_stop)`` returns an array whose
        leading dimension covers the child rows requested.
    fill_value: scalar
        Value used where the child has no data
    other_shape: tuple
        Shape of the remaining (not merged) dimensions of the request
    dtype: np.dtype or None
        Data type of the output. Taken from the first read if None, or from
        the fill value if nothing is read.

    Returns
    -------
    np.ndarray
        Array of shape (number of requested positions,) + other_shape
    """
    other_shape = tuple(other_shape)
    expected = count_positions(start, stride, stop)

    pieces = []
    n_runs = 0
    for segment in find_runs(index_map, start, stride, stop):
        if isinstance(segment, Fill):
            pieces.append((None, segment.count))
            continue

        values = np.asarray(read(segment.child_start, segment.child_stride, segment.child_stop))
        n_runs += 1
        if values.shape != (segment.count,) + other_shape:
            raise InternalConsistencyError(
                f"Read of child rows {segment.child_start}:{segment.child_stride}:{segment.child_stop} "
                f"returned shape {values.shape}, expected {(segment.count,) + other_shape}"
            )
        if dtype is None:
            dtype = values.dtype
        pieces.append((values, segment.count))

    if dtype is None:
        dtype = np.asarray(fill_value).dtype

    out = np.empty((expected,) + other_shape, dtype=dtype)
    filled = 0
    for values, count in pieces:
        if values is None:
            out[filled:filled + count] = fill_value
        else:
            out[filled:filled + count] = values
        filled += count

    if filled != expected:
        raise InternalConsistencyError(
            f"Range {start}:{stride}:{stop} produced {filled} values, expected {expected}"
        )

    logger.debug(f"Range {start}:{stride}:{stop} needed {n_runs} reads for {expected} positions")
    return out
