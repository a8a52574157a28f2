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
from pathlib import Path
import os
import sys

import numpy as np

from sidebyside.config import load_config
from sidebyside.logger import setup_logger
from sidebyside.plotting import plot_coverage, plot_map
from sidebyside.registry import DatasetRegistry


if __name__ == "__main__":
    data_dir = Path(os.getenv("SIDEBYSIDE_DATADIR"))
    config_file = Path(sys.argv[1]) if len(sys.argv) > 1 else data_dir / "datasets.yaml"
    figure_dir = data_dir / "Figures"
    figure_dir.mkdir(parents=True, exist_ok=True)

    setup_logger(data_dir / "plot_side_by_side.log")

    registry = DatasetRegistry()
    failures = registry.load_all(load_config(config_file))
    for dataset_id in failures:
        print(f"Couldn't load {dataset_id}")

    for dataset_id in registry.dataset_ids():
        dataset = registry.get(dataset_id)
        plot_coverage(dataset, filename=figure_dir / f"{dataset_id}_coverage.png")

        # Maps of each variable at the last time step
        last = dataset.shape[0] - 1
        for variable in dataset.data_variables:
            try:
                plot_map(dataset, variable, index=last, levels=np.arange(-20, 20, 2),
                         filename=figure_dir / f"{dataset_id}_{variable}_{last}.png")
            except ValueError as e:
                print(f"Skipping map of {dataset_id} {variable}: {e}")
