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
import time

import numpy as np
import xarray as xr

from sidebyside.child import nanoseconds_to_datetime
from sidebyside.errors import ConfigurationError
from sidebyside.fetcher import check_request, count_positions, fetch_range
from sidebyside.merger import AxisMerger

logger = logging.getLogger(__name__)


class SideBySideDataset:
    """A grid dataset made by putting two or more child datasets side by side.

    The aggregate has all the data variables of all the children. Its first
    axis is the union of the children's first axes and all other axes are taken
    from the first child; every child must have the same values for them.
    Global attributes also come from the first child.
    """

    def __init__(self, dataset_id, children, title=None):
        start_time = time.time()
        logger.info(f"Constructing side-by-side dataset {dataset_id}")

        if len(children) == 0:
            raise ConfigurationError(f"Dataset {dataset_id} needs at least one child")

        self.dataset_id = dataset_id
        self.children = list(children)
        self.warnings = []

        first = self.children[0]
        for c, child in enumerate(self.children[1:], start=1):
            if child.axis_names[0] != first.axis_names[0]:
                raise ConfigurationError(
                    f"Datasets #0 and #{c} are not similar: merged axis names differ "
                    f"({first.axis_names[0]} != {child.axis_names[0]})"
                )
            similar = first.similar_axes(child)
            if similar:
                raise ConfigurationError(f"Datasets #0 and #{c} are not similar: {similar}")

        # Which child owns each data variable
        self._owner = {}
        for c, child in enumerate(self.children):
            for var in child.data_variables:
                if var in self._owner:
                    raise ConfigurationError(
                        f"Data variable {var} is in datasets #{self._owner[var]} and #{c}"
                    )
                self._owner[var] = c

        for c, child in enumerate(self.children):
            logger.debug(f"child[{c}] {child.label}: {child.axis_names[0]} has {child.shape[0]} values")
        self.merger = AxisMerger([child.get_axis_values() for child in self.children])

        self.title = title if title is not None else first.attrs.get('title', dataset_id)
        self.attrs = first.attrs
        self.creation_time = time.time()

        logger.info(
            f"Side-by-side dataset {dataset_id} has {len(self.data_variables)} variables and "
            f"{self.merger.size} {self.axis_names[0]} values. "
            f"Constructed in {time.time() - start_time:.3f}s"
        )

    def __repr__(self):
        return f"SideBySideDataset({self.dataset_id!r}, {len(self.children)} children, shape={self.shape})"

    @property
    def axis_names(self):
        return self.children[0].axis_names

    @property
    def data_variables(self):
        return list(self._owner)

    @property
    def merged_axis(self):
        return self.merger.merged_axis

    @property
    def shape(self):
        return (self.merger.size,) + self.children[0].shape[1:]

    @property
    def oldest_creation_time(self):
        """When this dataset or the oldest of its children was created."""
        return min([self.creation_time] + [child.creation_time for child in self.children])

    def owner(self, var):
        """Number of the child that holds a data variable."""
        if var not in self._owner:
            raise KeyError(f"Dataset {self.dataset_id} has no variable {var}")
        return self._owner[var]

    def axis_values(self, name):
        if name == self.axis_names[0]:
            return self.merged_axis
        return self.children[0].axis_values(name)

    def axis_attrs(self, name):
        return self.children[0].axis_attrs(name)

    def variable_attrs(self, var):
        child = self.children[self.owner(var)]
        return dict(child.dataset[var].attrs)

    def missing_value(self, var):
        return self.children[self.owner(var)].missing_value(var)

    def coverage(self):
        return self.merger.coverage([child.label for child in self.children])

    def get_source_data(self, variables, constraints):
        """Get data for some variables.

        Parameters
        ----------
        variables: list of str
            Names of the data variables
        constraints: sequence of (start, stride, stop)
            One triple per axis, stop inclusive. The first is on the merged axis.

        Returns
        -------
        dict
            The requested axis values keyed by axis name followed by the data
            for each variable keyed by variable name.
        """
        if len(constraints) != len(self.axis_names):
            raise ValueError(f"Expected {len(self.axis_names)} constraints, got {len(constraints)}")
        for name, size, (start, stride, stop) in zip(self.axis_names, self.shape, constraints):
            try:
                check_request(size, start, stride, stop)
            except ValueError as e:
                raise ValueError(f"{name}: {e}") from e

        results = {}
        for name, (start, stride, stop) in zip(self.axis_names, constraints):
            results[name] = self.axis_values(name)[start:stop + 1:stride]

        start, stride, stop = constraints[0]
        other = list(constraints[1:])
        other_shape = tuple(count_positions(*c) for c in other)

        # Variables are read one at a time, each from the child that owns it.
        for var in variables:
            c = self.owner(var)
            child = self.children[c]

            def read(child_start, child_stride, child_stop, child=child, var=var):
                return child.fetch_data(var, child_start, child_stride, child_stop, other)

            results[var] = fetch_range(
                self.merger.index_map(c), start, stride, stop, read,
                fill_value=child.missing_value(var),
                other_shape=other_shape,
                dtype=child.dataset[var].dtype,
            )
        return results

    def subset(self, variables, constraints):
        """Get data for some variables as an xarray Dataset."""
        results = self.get_source_data(variables, constraints)

        coords = {}
        for name in self.axis_names:
            values = results[name]
            if name == self.axis_names[0] and self.children[0].is_time_axis:
                values = nanoseconds_to_datetime(values)
            coords[name] = xr.DataArray(values, dims=[name], attrs=self.axis_attrs(name))

        data_vars = {}
        for var in variables:
            data_vars[var] = xr.DataArray(
                data=results[var],
                dims=self.axis_names,
                attrs=self.variable_attrs(var),
            )

        return xr.Dataset(data_vars, coords=coords, attrs=self.attrs)

    def sibling(self, *args, **kwargs):
        raise NotImplementedError(f"{type(self).__name__} doesn't support sibling()")

    def update(self):
        raise NotImplementedError(
            f"{type(self).__name__} can't be updated in place. Reload it from its children."
        )

    def close(self):
        for child in self.children:
            child.close()
