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
"""Command line tool for side-by-side datasets.

Examples:
  # Describe every dataset in a config file
  sidebyside info datasets.yaml

  # Write all times of two variables to NetCDF
  sidebyside extract datasets.yaml qs_wind --variables x_wind y_wind \\
      --constraint 0:1:99 --constraint 0:1:179 --constraint 0:1:359 --output wind.nc
"""
import argparse
import sys

from sidebyside.config import load_config
from sidebyside.errors import ConfigurationError
from sidebyside.logger import setup_logger
from sidebyside.registry import DatasetRegistry


def parse_constraint(text):
    """Parse START:STRIDE:STOP (or START:STOP, or a single index)."""
    parts = text.split(':')
    try:
        numbers = [int(p) for p in parts]
    except ValueError:
        raise argparse.ArgumentTypeError(f"Invalid constraint {text!r}") from None
    if len(numbers) == 1:
        return numbers[0], 1, numbers[0]
    if len(numbers) == 2:
        return numbers[0], 1, numbers[1]
    if len(numbers) == 3:
        return numbers[0], numbers[1], numbers[2]
    raise argparse.ArgumentTypeError(f"Invalid constraint {text!r}")


def build_parser():
    parser = argparse.ArgumentParser(
        prog='sidebyside',
        description='Aggregate gridded datasets side by side',
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog=__doc__,
    )
    parser.add_argument('--log-file', default=None, help='Log file path')
    parser.add_argument('--verbose', action='store_true', help='Enable detailed debug logging')

    subparsers = parser.add_subparsers(dest='command', required=True)

    info = subparsers.add_parser('info', help='Describe datasets in a config file')
    info.add_argument('config', help='YAML file defining the datasets')
    info.add_argument('--dataset', default=None, help='Only describe this dataset')

    extract = subparsers.add_parser('extract', help='Write a subset of a dataset to NetCDF')
    extract.add_argument('config', help='YAML file defining the datasets')
    extract.add_argument('dataset', help='Dataset id')
    extract.add_argument('--variables', nargs='+', required=True, help='Data variables to extract')
    extract.add_argument(
        '--constraint', type=parse_constraint, action='append', default=None,
        help='START:STRIDE:STOP for each axis in order. Axes left out are taken whole.'
    )
    extract.add_argument('--output', required=True, help='Output NetCDF file')

    plot = subparsers.add_parser('plot', help='Plot the coverage of a dataset')
    plot.add_argument('config', help='YAML file defining the datasets')
    plot.add_argument('dataset', help='Dataset id')
    plot.add_argument('--output', default=None, help='Image file, shown on screen if not given')

    return parser


def load_registry(config_path, only=None):
    configs = load_config(config_path)
    if only is not None:
        configs = [c for c in configs if c.dataset_id == only]
        if not configs:
            raise ConfigurationError(f"No dataset {only} in {config_path}")
    registry = DatasetRegistry()
    failures = registry.load_all(configs)
    return registry, failures


def describe(dataset):
    lines = [
        f"Dataset {dataset.dataset_id}: {dataset.title}",
        "  axes: " + ", ".join(f"{n}[{s}]" for n, s in zip(dataset.axis_names, dataset.shape)),
        f"  variables: {', '.join(dataset.data_variables)}",
    ]
    coverage = dataset.coverage()
    for column in coverage.columns:
        lines.append(f"  {column}: {int(coverage[column].sum())} of {len(coverage)} {dataset.axis_names[0]} values")
    for warning in dataset.warnings:
        lines.append(f"  warning: {warning}")
    return "\n".join(lines)


def full_constraints(dataset, given):
    given = list(given or [])
    if len(given) > len(dataset.shape):
        raise ValueError(f"Too many constraints: dataset has {len(dataset.shape)} axes")
    for size in dataset.shape[len(given):]:
        given.append((0, 1, size - 1))
    return given


def main(argv=None):
    args = build_parser().parse_args(argv)
    logger = setup_logger(args.log_file, args.verbose)

    try:
        if args.command == 'info':
            registry, failures = load_registry(args.config, only=args.dataset)
            for dataset_id in registry.dataset_ids():
                print(describe(registry.get(dataset_id)))
            return 1 if failures else 0

        registry, failures = load_registry(args.config, only=args.dataset)
        if failures:
            return 1
        dataset = registry.get(args.dataset)

        if args.command == 'extract':
            constraints = full_constraints(dataset, args.constraint)
            ds = dataset.subset(args.variables, constraints)
            ds.to_netcdf(args.output)
            logger.info(f"Wrote {args.output}")
        elif args.command == 'plot':
            from sidebyside.plotting import plot_coverage
            plot_coverage(dataset, filename=args.output)
        return 0

    except (ConfigurationError, KeyError, ValueError) as e:
        logger.error(str(e))
        return 1


if __name__ == '__main__':
    sys.exit(main())
