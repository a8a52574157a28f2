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

import pytest

import sidebyside.config as config
from sidebyside.errors import ConfigurationError

CONFIG = """
datasets:
  - dataset_id: qs_wind
    title: QuikSCAT winds
    axis: time
    reload_every_minutes: 60
    children:
      - path: qs_x.nc
        name: x
      - qs_y.nc
  - dataset_id: sst
    children:
      - path: /data/sst.nc
"""


def write_config(tmp_path, text):
    path = tmp_path / 'datasets.yaml'
    path.write_text(text)
    return path


def test_load_config(tmp_path, caplog):
    with caplog.at_level(logging.WARNING, logger="sidebyside.config"):
        datasets = config.load_config(write_config(tmp_path, CONFIG))

    assert [d.dataset_id for d in datasets] == ['qs_wind', 'sst']

    qs = datasets[0]
    assert qs.title == 'QuikSCAT winds'
    assert qs.axis == 'time'
    assert qs.base_dir == tmp_path
    assert qs.children == [config.ChildConfig('qs_x.nc', 'x'), config.ChildConfig('qs_y.nc')]

    sst = datasets[1]
    assert sst.title is None
    assert sst.axis is None
    assert sst.children[0].path == '/data/sst.nc'

    warnings = [r for r in caplog.records if r.levelno == logging.WARNING]
    assert len(warnings) == 1
    assert "qs_wind" in warnings[0].getMessage()
    assert "reload_every_minutes" in warnings[0].getMessage()


@pytest.mark.parametrize("text, message", [
    ("other: 1\n", "datasets"),
    ("datasets:\n", "must be a list"),
    ("datasets: qs_wind\n", "must be a list"),
    ("datasets:\n  - dataset_id: a\n    children: a.nc\n", "children must be a list"),
    ("datasets:\n  - title: x\n", "dataset_id"),
    ("datasets:\n  - dataset_id: a\n", "no children"),
    ("datasets:\n  - dataset_id: a\n    children:\n      - name: x\n", "path"),
    ("datasets:\n  - dataset_id: a\n    children: [a.nc]\n  - dataset_id: a\n    children: [b.nc]\n",
     "Duplicate"),
    ("datasets: [unclosed\n", "Could not parse"),
])
def test_bad_config(tmp_path, text, message):
    with pytest.raises(ConfigurationError, match=message):
        config.load_config(write_config(tmp_path, text))
