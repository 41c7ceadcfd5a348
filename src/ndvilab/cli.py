# src/ndvilab/cli.py

import argparse
import json
import logging
import sys
from typing import List, Optional

from ndvilab.exceptions import RasterError
from ndvilab.pipeline import PipelineConfig, run_pipeline
from ndvilab.raster import Reducer, SENSOR_BANDS, DEFAULT_THRESHOLD

def setup_logging(level: int = logging.INFO) -> None:
    """
    Configures the standard logging format and level for the command-line interface.

    Args:
        level (int): The logging threshold level.
    """
    logging.basicConfig(
        level=level,
        format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
    )

def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="ndvilab",
        description="Derive NDVI and a forest/non-forest map from a multi-band Landsat raster."
    )
    parser.add_argument("source", help="Path to the multi-band raster.")
    parser.add_argument(
        "--sensor",
        choices=sorted(SENSOR_BANDS),
        default="landsat8",
        help="Sensor whose red/NIR band numbers are used by default."
    )
    parser.add_argument("--nir", help="NIR band, as a 1-based number or a band name.")
    parser.add_argument("--red", help="Red band, as a 1-based number or a band name.")
    parser.add_argument("--factor", type=int, default=1, help="Aggregation block size in cells.")
    parser.add_argument(
        "--reducer",
        choices=[r.value for r in Reducer],
        default=Reducer.MEAN.value,
        help="Aggregation reducer."
    )
    parser.add_argument("--threshold", type=float, default=DEFAULT_THRESHOLD, help="Forest NDVI threshold.")
    parser.add_argument("--region", help="Polygon file restricting the analysis (e.g. land area).")
    parser.add_argument("--all-touched", action="store_true", help="Keep every cell the region touches.")
    parser.add_argument(
        "--no-align",
        action="store_true",
        help="Do not drop cells where only one of the bands has data."
    )
    parser.add_argument("-o", "--output", help="Path of the forest raster to write.")
    parser.add_argument("--ndvi-output", help="Path of the NDVI raster to write.")
    parser.add_argument("-v", "--verbose", action="store_true", help="Enable debug logging.")
    return parser

def main(argv: Optional[List[str]] = None) -> int:
    args = build_parser().parse_args(argv)
    setup_logging(logging.DEBUG if args.verbose else logging.INFO)

    overrides = {}
    if args.nir:
        overrides["nir"] = args.nir
    if args.red:
        overrides["red"] = args.red

    try:
        config = PipelineConfig.for_sensor(
            args.sensor,
            factor=args.factor,
            reducer=args.reducer,
            threshold=args.threshold,
            region_path=args.region,
            all_touched=args.all_touched,
            align_coverage=not args.no_align,
            output_path=args.output,
            ndvi_output_path=args.ndvi_output,
            **overrides
        )
        result = run_pipeline(args.source, config)
    except (RasterError, FileNotFoundError, MemoryError) as e:
        logging.error(f"ndvilab failed: {e}")
        return 1

    print(json.dumps(result.summary, indent=2))
    return 0

if __name__ == "__main__":
    sys.exit(main())
