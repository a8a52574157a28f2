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

import numpy as np
import pandas as pd

from sidebyside.errors import ConfigurationError

logger = logging.getLogger(__name__)


class IndexMap:
    """Lookup from merged axis positions to row indices in one child's axis.

    The map is stored as two parallel, read-only arrays: ``index`` holds the
    child-local row for every merged position and ``present`` flags the
    positions the child actually has. Where ``present`` is False the value in
    ``index`` is meaningless.
    """

    def __init__(self, index, present):
        self.index = np.asarray(index, dtype=np.int64)
        self.present = np.asarray(present, dtype=bool)
        if self.index.shape != self.present.shape:
            raise ValueError("index and present must have the same shape")
        self.index.flags.writeable = False
        self.present.flags.writeable = False

    def __len__(self):
        return len(self.index)

    def __eq__(self, other):
        if not isinstance(other, IndexMap):
            return NotImplemented
        return (
            np.array_equal(self.present, other.present) and
            np.array_equal(self.index[self.present], other.index[other.present])
        )

    def __repr__(self):
        return f"IndexMap({self.to_list()})"

    def get(self, position):
        """Return the child row for a merged position, or None if the child has no value there."""
        if self.present[position]:
            return int(self.index[position])
        return None

    def to_list(self):
        return [self.get(p) for p in range(len(self))]

    @property
    def n_present(self):
        return int(np.count_nonzero(self.present))


def check_ascending(values, child_number):
    """Check that an axis is one dimensional, free of NaNs and strictly ascending.

    Parameters
    ----------
    values: np.ndarray
        Axis values for one child
    child_number: int
        Position of the child, used in the error message

    Raises
    ------
    ConfigurationError
        If the axis can't be merged.
    """
    if values.ndim != 1:
        raise ConfigurationError(
            f"Axis of child #{child_number} must be one dimensional, got shape {values.shape}"
        )
    if values.dtype.kind == 'f' and np.any(np.isnan(values)):
        first = int(np.flatnonzero(np.isnan(values))[0])
        raise ConfigurationError(f"Axis of child #{child_number} has a NaN value at position {first}")
    if len(values) > 1:
        bad = np.flatnonzero(np.diff(values) <= 0)
        if len(bad) > 0:
            position = int(bad[0]) + 1
            raise ConfigurationError(
                f"Axis of child #{child_number} is not sorted ascending: "
                f"value {values[position]} at position {position} follows {values[position - 1]}"
            )


def merge_axes(child_axes):
    """Merge the axes of several children into one sorted axis with no duplicates.

    This is a k-way merge. A cursor is kept for each child and on each step the
    lowest value under any cursor is added to the merged axis. Every child whose
    current value equals the lowest value (exactly, with no tolerance) records
    its row and moves on. The rest record that they have no value there.

    Parameters
    ----------
    child_axes: list of array-like
        One ascending axis per child. Axes can be empty.

    Returns
    -------
    np.ndarray, list of IndexMap
        The merged axis and an index map for each child.
    """
    if len(child_axes) == 0:
        raise ConfigurationError("At least one child is needed to merge axes")

    axes = [np.asarray(a) for a in child_axes]
    for c, values in enumerate(axes):
        check_ascending(values, c)

    n_children = len(axes)
    sizes = [len(a) for a in axes]
    dtype = np.result_type(*[a.dtype for a in axes])

    # No more merged positions than the total number of values
    capacity = sum(sizes)
    merged = np.empty(capacity, dtype=dtype)
    index = np.zeros((n_children, capacity), dtype=np.int64)
    present = np.zeros((n_children, capacity), dtype=bool)

    row = [0] * n_children
    n_merged = 0
    while True:
        lowest = None
        for c in range(n_children):
            if row[c] < sizes[c]:
                value = axes[c][row[c]]
                if lowest is None or value < lowest:
                    lowest = value
        if lowest is None:
            break

        merged[n_merged] = lowest
        for c in range(n_children):
            if row[c] < sizes[c] and axes[c][row[c]] == lowest:
                index[c, n_merged] = row[c]
                present[c, n_merged] = True
                row[c] += 1
        n_merged += 1

    merged = merged[:n_merged].copy()
    merged.flags.writeable = False
    index_maps = [IndexMap(index[c, :n_merged], present[c, :n_merged]) for c in range(n_children)]

    logger.debug(f"Merged {n_children} axes of sizes {sizes} into {n_merged} values")
    return merged, index_maps


class AxisMerger:
    """The merged axis of a side-by-side dataset and the index map of each child.

    Built once from the children's axes and read-only afterwards. If any child's
    axis changes the whole thing is built again.
    """

    def __init__(self, child_axes):
        self.child_sizes = [len(a) for a in child_axes]
        self.merged_axis, self.index_maps = merge_axes(child_axes)

    def __eq__(self, other):
        if not isinstance(other, AxisMerger):
            return NotImplemented
        return (
            self.merged_axis.dtype == other.merged_axis.dtype and
            np.array_equal(self.merged_axis, other.merged_axis) and
            self.index_maps == other.index_maps
        )

    def __len__(self):
        return len(self.merged_axis)

    @property
    def size(self):
        return len(self.merged_axis)

    @property
    def n_children(self):
        return len(self.index_maps)

    def index_map(self, child_number):
        return self.index_maps[child_number]

    def coverage(self, names=None):
        """Tabulate which children have a value at each merged axis position.

        Parameters
        ----------
        names: list of str or None
            Column names for the children. Defaults to child0, child1, ...

        Returns
        -------
        pd.DataFrame
            Boolean frame indexed by merged axis value with one column per child.
        """
        if names is None:
            names = [f"child{c}" for c in range(self.n_children)]
        if len(names) != self.n_children:
            raise ValueError(f"Expected {self.n_children} names, got {len(names)}")

        df = pd.DataFrame(
            {name: im.present for name, im in zip(names, self.index_maps)},
            index=pd.Index(self.merged_axis, name="axis0"),
        )
        return df
