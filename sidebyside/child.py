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
import os
import time
from pathlib import Path

import numpy as np
import xarray as xr

from sidebyside.errors import ConfigurationError

logger = logging.getLogger(__name__)


def datetime_to_nanoseconds(values):
    """Convert datetime64 values to int64 nanoseconds since 1970-01-01."""
    return np.asarray(values).astype('datetime64[ns]').view('i8')


def nanoseconds_to_datetime(values):
    """Convert int64 nanoseconds since 1970-01-01 back to datetime64[ns]."""
    return np.asarray(values, dtype=np.int64).view('datetime64[ns]')


def resolve_path(path, base_dir=None):
    """Work out where a child's file is.

    URLs are returned untouched. Relative paths are looked for in base_dir and
    then in the directory named by the SIDEBYSIDE_DATADIR environment variable.
    """
    path = str(path)
    if path.startswith(("http://", "https://")):
        return path

    candidate = Path(path)
    if candidate.is_absolute():
        return candidate

    search = []
    if base_dir is not None:
        search.append(Path(base_dir))
    if os.getenv("SIDEBYSIDE_DATADIR"):
        search.append(Path(os.getenv("SIDEBYSIDE_DATADIR")))

    for directory in search:
        if (directory / candidate).exists():
            return directory / candidate
    return candidate


class GridChild:
    """One of the gridded datasets that are put side by side.

    All data variables of the child must have the same dimensions in the same
    order. The first of these is the axis that gets merged with the other
    children, the rest must match across children.
    """

    def __init__(self, dataset, name=None, axis_name=None, source=None):
        self.dataset = dataset
        self.name = name
        self.source = source
        self.creation_time = time.time()

        self.data_variables = list(dataset.data_vars)
        if len(self.data_variables) == 0:
            raise ConfigurationError(f"Child {self.label} has no data variables")

        dims = dataset[self.data_variables[0]].dims
        for var in self.data_variables[1:]:
            if dataset[var].dims != dims:
                raise ConfigurationError(
                    f"Child {self.label}: variable {var} has dims {dataset[var].dims}, "
                    f"expected {dims}"
                )
        if len(dims) == 0:
            raise ConfigurationError(f"Child {self.label}: data variables have no dimensions")
        if axis_name is not None and dims[0] != axis_name:
            raise ConfigurationError(
                f"Child {self.label}: the merged axis must be the first dimension. "
                f"Expected {axis_name}, found {dims[0]}"
            )
        self.axis_names = list(dims)

    @classmethod
    def from_path(cls, path, name=None, axis_name=None, base_dir=None):
        """Open a child from a NetCDF file or an OPeNDAP URL."""
        location = resolve_path(path, base_dir=base_dir)
        if isinstance(location, Path) and not location.exists():
            raise FileNotFoundError(f"File not found: {location}")

        logger.debug(f"Opening child dataset {location}")
        dataset = xr.open_dataset(location, decode_times=True, mask_and_scale=True)
        return cls(dataset, name=name, axis_name=axis_name, source=str(location))

    @property
    def label(self):
        if self.name is not None:
            return self.name
        if self.source is not None:
            return self.source
        return "<in memory>"

    @property
    def attrs(self):
        return dict(self.dataset.attrs)

    @property
    def shape(self):
        return tuple(self.dataset.sizes[dim] for dim in self.axis_names)

    @property
    def is_time_axis(self):
        name = self.axis_names[0]
        return name in self.dataset.coords and np.issubdtype(self.dataset[name].dtype, np.datetime64)

    def axis_values(self, name):
        """Values of an axis as stored, or the row numbers if it has no coordinate variable."""
        if name in self.dataset.coords or name in self.dataset.variables:
            return self.dataset[name].values
        return np.arange(self.dataset.sizes[name])

    def axis_attrs(self, name):
        if name in self.dataset.variables:
            return dict(self.dataset[name].attrs)
        return {}

    def get_axis_values(self):
        """Numeric values of the merged axis. Times are given as int64 nanoseconds since 1970-01-01."""
        values = self.axis_values(self.axis_names[0])
        if np.issubdtype(values.dtype, np.datetime64):
            return datetime_to_nanoseconds(values)
        return values

    def missing_value(self, var):
        """The value used for missing data in a variable.

        Undecoded _FillValue or missing_value attributes come first. Floats that
        xarray has already masked use NaN.
        """
        da = self.dataset[var]
        for key in ('_FillValue', 'missing_value'):
            if key in da.attrs:
                return da.attrs[key]
        if da.dtype.kind == 'f':
            return np.nan
        for key in ('_FillValue', 'missing_value'):
            if key in da.encoding:
                return da.encoding[key]
        if da.dtype.kind in 'iu':
            return np.iinfo(da.dtype).max
        if da.dtype.kind == 'M':
            return np.datetime64('NaT')
        return ""

    def fetch_data(self, var, start, stride, stop, constraints=()):
        """Read a block of a variable.

        Parameters
        ----------
        var: str
            Name of the data variable
        start, stride, stop: int
            Rows of the merged axis, stop is inclusive
        constraints: sequence of (start, stride, stop)
            One triple for each of the remaining axes

        Returns
        -------
        np.ndarray
            The requested values with one dimension per axis.
        """
        if len(constraints) != len(self.axis_names) - 1:
            raise ValueError(
                f"Expected {len(self.axis_names) - 1} constraints for the remaining axes, "
                f"got {len(constraints)}"
            )
        selection = {self.axis_names[0]: slice(start, stop + 1, stride)}
        for dim, (s, st, e) in zip(self.axis_names[1:], constraints):
            selection[dim] = slice(s, e + 1, st)
        return self.dataset[var].isel(selection).values

    def similar_axes(self, other):
        """Describe the first difference between the non-merged axes of two children.

        Returns an empty string if names, sizes, values and units all match.
        """
        if len(self.axis_names) != len(other.axis_names):
            return f"number of axes differs ({len(self.axis_names)} != {len(other.axis_names)})"

        for name, other_name in zip(self.axis_names[1:], other.axis_names[1:]):
            if name != other_name:
                return f"axis names differ ({name} != {other_name})"
            values = self.axis_values(name)
            other_values = other.axis_values(name)
            if len(values) != len(other_values):
                return f"{name} sizes differ ({len(values)} != {len(other_values)})"
            if not np.array_equal(values, other_values):
                return f"{name} values differ"
            units = self.axis_attrs(name).get('units')
            other_units = other.axis_attrs(name).get('units')
            if units != other_units:
                return f"{name} units differ ({units} != {other_units})"
        return ""

    def close(self):
        self.dataset.close()
