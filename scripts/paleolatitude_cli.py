#!/usr/bin/env python3
"""
PaleoLatitude command-line interface

Computes the paleolatitude of a present-day site at a geologic age from the
apparent polar wander paths found in a data directory.

Usage:
    python paleolatitude_cli.py compute 52.1,5.1 --age 100 [--pm-ref-frame FRAME]
    python paleolatitude_cli.py frames [--data-dir PATH]
"""

import argparse
import logging
import os
import sys
from pathlib import Path
from typing import List, Optional, Tuple

from paleolatitude import (
    PaleolatitudeCalculator,
    PaleolatitudeError,
    PaleolatitudeRequest,
    Site,
    __version__,
)
from paleolatitude_api.datasets import load_catalog

# Configure logging
logging.basicConfig(
    level=logging.INFO,
    format='%(asctime)s - %(levelname)s - %(message)s'
)
logger = logging.getLogger(__name__)

DEFAULT_DATA_DIR = Path(os.getenv("PALEOLATITUDE_DATA_DIR", Path(__file__).parent.parent / "backend" / "data"))
DEFAULT_FRAME = os.getenv("PALEOLATITUDE_DEFAULT_FRAME", "torsvik-2012-vandervoo-2015")

HEADER = f"""This is PaleoLatitude version {__version__} (http://www.paleolatitude.org)
Source code licensed under the GNU Lesser GPL (LGPL) version 3.0"""

CITATION = """Please cite:
  Douwe J.J. van Hinsbergen, Lennart V. de Groot, Sebastiaan J. van Schaik,
  Appy Sluijs, Peter K. Bijl, Wim Spakman, Cor G. Langereis, Henk Brinkhuis:
  A Paleolatitude Calculator for Paleoclimate Studies
  In: PLoS ONE, 2015 (http://doi.org/10.1371/journal.pone.0126946)."""


def parse_site(value: str) -> Tuple[float, float]:
    """Parse a "lat,lon" argument"""
    try:
        lat, lon = (float(part) for part in value.split(","))
    except ValueError:
        raise argparse.ArgumentTypeError(f"expected LAT,LON (e.g. 52.1,5.1), got '{value}'")
    return lat, lon


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description=f"{HEADER}\n\nPaleoLatitude model command-line interface",
        epilog=f"Example invocation:\n  $ paleolatitude_cli.py compute 50.3,300 --age 120\n\n{CITATION}",
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )
    parser.add_argument("--version", action="version", version=f"PaleoLatitude {__version__}")
    parser.add_argument(
        "-v", "--verbose",
        action="store_true",
        help="Print out additional debugging information"
    )
    parser.add_argument(
        "--data-dir",
        type=Path,
        default=DEFAULT_DATA_DIR,
        help="Directory containing apwp-*.csv files and optional rotations.csv"
    )
    parser.add_argument(
        "--plate-id",
        type=int,
        default=None,
        help="Only load APWP rows for this plate id"
    )

    subparsers = parser.add_subparsers(dest="command", required=True)

    compute = subparsers.add_parser("compute", help="Compute the paleolatitude of a site")
    compute.add_argument("site", type=parse_site, help="Present-day site location as LAT,LON (for a negative latitude, give options first and end them with --)")
    compute.add_argument("--age", type=float, required=True, help="Age in Ma before present")
    compute.add_argument(
        "--pm-ref-frame",
        default=DEFAULT_FRAME,
        help=f"Paleomagnetic reference frame to use (default: {DEFAULT_FRAME})"
    )
    compute.add_argument(
        "--target-frame",
        default=None,
        help="Rotate the interpolated pole into this reference frame"
    )
    compute.add_argument(
        "--allow-extrapolation",
        action="store_true",
        help="Permit ages outside the reference frame's dated window"
    )

    subparsers.add_parser("frames", help="List available reference frames")
    return parser


def run_compute(args: argparse.Namespace) -> int:
    catalog = load_catalog(args.data_dir, args.plate_id)
    lat, lon = args.site
    request = PaleolatitudeRequest(
        site=Site(lat, lon, args.age),
        reference_frame_id=args.pm_ref_frame,
        target_frame_id=args.target_frame,
        allow_extrapolation=args.allow_extrapolation,
    )
    result = PaleolatitudeCalculator(catalog).compute(request)
    pole = result.pole_used

    print(f"Site ({result.site.latitude}, {result.site.longitude}) at {result.age} Ma")
    print(f"  reference frame:   {result.reference_frame_id}")
    if result.pole_frame_id != result.reference_frame_id:
        print(f"  rotated into:      {result.pole_frame_id}")
    print(f"  paleolatitude:     {result.paleolatitude:.2f} ± {result.confidence_interval_degrees:.2f}")
    print(f"  bounds:            [{result.paleolatitude_lower:.2f}, {result.paleolatitude_upper:.2f}]")
    print(f"  pole used:         ({pole.pole_latitude:.2f}, {pole.pole_longitude:.2f}), A95 {pole.angular_uncertainty:.2f}")
    if result.extrapolated:
        print("  (extrapolated beyond the dated window: reduced confidence)")
    print()
    print(CITATION)
    return 0


def run_frames(args: argparse.Namespace) -> int:
    catalog = load_catalog(args.data_dir, args.plate_id)
    if len(catalog) == 0:
        logger.error(f"No apwp-*.csv files found in {args.data_dir}")
        return 1
    for dataset in catalog:
        print(f"{dataset.reference_frame_id}: {dataset.min_age}-{dataset.max_age} Ma ({len(dataset)} poles)")
    return 0


def main(argv: Optional[List[str]] = None) -> int:
    args = build_parser().parse_args(argv)
    if args.verbose:
        logging.getLogger().setLevel(logging.DEBUG)

    try:
        if args.command == "compute":
            return run_compute(args)
        return run_frames(args)
    except (PaleolatitudeError, ValueError, OSError) as e:
        logger.error(f"{type(e).__name__}: {e}")
        return 1


if __name__ == "__main__":
    sys.exit(main())
