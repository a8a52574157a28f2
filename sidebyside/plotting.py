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
import numpy as np
import matplotlib.pyplot as plt
import cartopy.crs as ccrs

LATITUDE_NAMES = ('lat', 'latitude')
LONGITUDE_NAMES = ('lon', 'longitude')


def plot_coverage(dataset, filename=None):
    """Plot which children have values along the merged axis."""
    coverage = dataset.coverage()

    plt.figure()
    plt.gcf().set_size_inches(16, 2 + 0.5 * len(coverage.columns))
    plt.pcolormesh(coverage.values.T.astype(int), cmap='Greys', vmin=0, vmax=1)
    plt.yticks(np.arange(len(coverage.columns)) + 0.5, coverage.columns)
    plt.xlabel(f"{dataset.axis_names[0]} index")
    plt.title(f"{dataset.dataset_id} coverage")
    if filename is None:
        plt.show()
    else:
        plt.savefig(filename)
    plt.close('all')


def plot_map(dataset, variable, index=0, levels=None, filename=None, coastlines=True):
    """Plot one slice along the merged axis as a map.

    The remaining axes of the dataset must be latitude then longitude.
    Coastlines need the Natural Earth shapefiles, which cartopy downloads
    on first use.
    """
    if len(dataset.axis_names) != 3 or \
            dataset.axis_names[1].lower() not in LATITUDE_NAMES or \
            dataset.axis_names[2].lower() not in LONGITUDE_NAMES:
        raise ValueError(f"Can't plot a map for axes {dataset.axis_names}")

    _, nlat, nlon = dataset.shape
    ds = dataset.subset([variable], [(index, 1, index), (0, 1, nlat - 1), (0, 1, nlon - 1)])

    plt.figure()
    plt.gcf().set_size_inches(16, 9)
    proj = ccrs.PlateCarree()
    p = ds[variable].isel({dataset.axis_names[0]: 0}).plot(
        transform=proj,
        subplot_kws={'projection': proj},
        levels=levels,
    )
    if coastlines:
        p.axes.coastlines()
    plt.title(f"{dataset.dataset_id} {variable}")
    if filename is None:
        plt.show()
    else:
        plt.savefig(filename)
    plt.close('all')
