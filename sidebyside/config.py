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
from pathlib import Path
from typing import Optional

import yaml

from sidebyside.errors import ConfigurationError

logger = logging.getLogger(__name__)

KNOWN_KEYS = {"dataset_id", "children", "title", "axis"}


@dataclass
class ChildConfig:
    path: str
    name: Optional[str] = None


@dataclass
class DatasetConfig:
    dataset_id: str
    children: list[ChildConfig]
    title: Optional[str] = None
    axis: Optional[str] = None
    base_dir: Optional[Path] = None


def parse_child(entry, dataset_id):
    if isinstance(entry, str):
        return ChildConfig(path=entry)
    if not isinstance(entry, dict) or "path" not in entry:
        raise ConfigurationError(f"Dataset {dataset_id}: each child needs a path")
    return ChildConfig(path=str(entry["path"]), name=entry.get("name"))


def parse_dataset(entry, base_dir=None):
    """Turn one entry of the datasets list into a DatasetConfig."""
    if not isinstance(entry, dict):
        raise ConfigurationError(f"Dataset entries must be mappings, got {entry!r}")
    if "dataset_id" not in entry:
        raise ConfigurationError("Dataset entry is missing dataset_id")

    dataset_id = str(entry["dataset_id"])
    children = entry.get("children")
    if not children:
        raise ConfigurationError(f"Dataset {dataset_id} has no children")
    if not isinstance(children, list):
        raise ConfigurationError(f"Dataset {dataset_id}: children must be a list")

    unknown = sorted(str(k) for k in entry if k not in KNOWN_KEYS)
    if unknown:
        logger.warning(f"Dataset {dataset_id}: ignoring unknown keys {', '.join(unknown)}")

    return DatasetConfig(
        dataset_id=dataset_id,
        children=[parse_child(c, dataset_id) for c in children],
        title=entry.get("title"),
        axis=entry.get("axis"),
        base_dir=base_dir,
    )


def load_config(path):
    """Read the side-by-side datasets defined in a YAML file.

    Parameters
    ----------
    path: str or Path
        The YAML file. Relative child paths are taken relative to its directory.

    Returns
    -------
    list of DatasetConfig
    """
    path = Path(path)
    logger.info(f"Loading dataset config from {path}")

    with open(path, "r") as file:
        try:
            config = yaml.safe_load(file)
        except yaml.YAMLError as e:
            raise ConfigurationError(f"Could not parse {path}: {e}") from e

    if not isinstance(config, dict) or "datasets" not in config:
        raise ConfigurationError(f"{path} must have a top level 'datasets' list")
    if not isinstance(config["datasets"], list):
        raise ConfigurationError(f"{path}: 'datasets' must be a list of dataset entries")

    datasets = [parse_dataset(entry, base_dir=path.parent) for entry in config["datasets"]]

    ids = [d.dataset_id for d in datasets]
    duplicates = sorted({i for i in ids if ids.count(i) > 1})
    if duplicates:
        raise ConfigurationError(f"Duplicate dataset ids in {path}: {', '.join(duplicates)}")

    logger.debug(f"Found {len(datasets)} datasets: {', '.join(ids)}")
    return datasets
