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
import threading

from sidebyside.child import GridChild
from sidebyside.dataset import SideBySideDataset

logger = logging.getLogger(__name__)


def open_children(config, opener=None):
    """Open the children of a dataset config.

    The first child holds the metadata for the whole dataset so any error
    opening it is raised. Errors opening the others are logged and the child
    is left out.

    Returns
    -------
    list of GridChild, list of str
        The children that opened and a message for each one that didn't.
    """
    if opener is None:
        opener = GridChild.from_path

    children = []
    messages = []
    for number, child_config in enumerate(config.children):
        try:
            child = opener(
                child_config.path,
                name=child_config.name,
                axis_name=config.axis,
                base_dir=config.base_dir,
            )
        except Exception as e:
            if number == 0:
                raise
            logger.exception(f"Dataset {config.dataset_id}: skipping child #{number} {child_config.path}")
            messages.append(f"child #{number} {child_config.path}: {type(e).__name__}: {e}")
            continue
        children.append(child)
    return children, messages


def build_dataset(config, opener=None):
    children, messages = open_children(config, opener=opener)
    try:
        dataset = SideBySideDataset(config.dataset_id, children, title=config.title)
    except Exception:
        for child in children:
            child.close()
        raise
    dataset.warnings.extend(messages)
    return dataset


class DatasetRegistry:
    """The live side-by-side datasets, keyed by dataset id.

    Datasets are built outside the lock and swapped in whole, so readers only
    ever see a complete dataset. A failed build leaves the old one in place.
    """

    def __init__(self, opener=None):
        self.opener = opener
        self._datasets = {}
        self._configs = {}
        self._lock = threading.Lock()

    def __contains__(self, dataset_id):
        return dataset_id in self._datasets

    def __len__(self):
        return len(self._datasets)

    def dataset_ids(self):
        return sorted(self._datasets)

    def get(self, dataset_id):
        try:
            return self._datasets[dataset_id]
        except KeyError:
            raise KeyError(f"No dataset with id {dataset_id}") from None

    def load(self, config):
        """Build a dataset from its config and publish it."""
        dataset = build_dataset(config, opener=self.opener)
        with self._lock:
            old = self._datasets.get(config.dataset_id)
            self._datasets[config.dataset_id] = dataset
            self._configs[config.dataset_id] = config
        if old is not None:
            logger.info(f"Replaced dataset {config.dataset_id}")
        else:
            logger.info(f"Loaded dataset {config.dataset_id}")
        return dataset

    def load_all(self, configs):
        """Load several datasets. Failures are logged and returned, not raised."""
        failures = {}
        for config in configs:
            try:
                self.load(config)
            except Exception as e:
                logger.exception(f"Failed to load dataset {config.dataset_id}")
                failures[config.dataset_id] = e
        return failures

    def reload(self, dataset_id):
        """Rebuild a dataset from scratch using the config it was loaded with."""
        if dataset_id not in self._configs:
            raise KeyError(f"No dataset with id {dataset_id}")
        return self.load(self._configs[dataset_id])

    def remove(self, dataset_id):
        """Unpublish a dataset and close its children."""
        with self._lock:
            dataset = self._datasets.pop(dataset_id)
            self._configs.pop(dataset_id, None)
        dataset.close()
        logger.info(f"Removed dataset {dataset_id}")
        return dataset
