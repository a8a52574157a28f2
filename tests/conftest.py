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
import pandas as pd
import xarray as xr


def make_grid(name, times, fill_value=None, dtype=float, offset=0.0, latitudes=None, lat_units='degrees_north'):
    """Make a small time/latitude/longitude dataset with one variable."""
    if latitudes is None:
        latitudes = np.array([-10.0, 10.0])
    longitudes = np.array([0.0, 120.0, 240.0])
    ntime = len(times)

    data_array = (np.arange(ntime * len(latitudes) * len(longitudes)) + offset).reshape(
        (ntime, len(latitudes), len(longitudes))
    ).astype(dtype)

    attrs = {'long_name': name, 'units': 'm s-1'}
    if fill_value is not None:
        attrs['_FillValue'] = fill_value

    ds = xr.Dataset({
        name: xr.DataArray(
            data=data_array,
            dims=['time', 'latitude', 'longitude'],
            attrs=attrs
        )
    },
        coords={
            'time': xr.DataArray(times, dims=['time'], attrs={'standard_name': 'time'}),
            'latitude': xr.DataArray(latitudes, dims=['latitude'], attrs={'units': lat_units}),
            'longitude': xr.DataArray(longitudes, dims=['longitude'], attrs={'units': 'degrees_east'}),
        },
        attrs={'title': f'{name} winds', 'project': 'NA'}
    )
    return ds


@pytest.fixture
def grid_a():
    return make_grid('x_wind', np.array([1.0, 2.0, 3.0, 5.0]))


@pytest.fixture
def grid_b():
    return make_grid('y_wind', np.array([2.0, 4.0, 5.0, 6.0]), fill_value=-999, dtype=np.int32, offset=100)


@pytest.fixture
def time_grids():
    times_a = pd.date_range(start='2000-01-01', freq='1D', periods=4).values
    times_b = pd.date_range(start='2000-01-03', freq='1D', periods=4).values
    return make_grid('x_wind', times_a), make_grid('y_wind', times_b, offset=50)


@pytest.fixture
def grid_factory():
    return make_grid
