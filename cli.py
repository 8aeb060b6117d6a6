#!/usr/bin/env python
"""
Command-line interface for ADU Planner

Usage:
    python cli.py analyze --lat 37.7749 --lon -122.4194 --output constraints.geojson
    python cli.py summarize --input response.json
"""

import argparse
import asyncio
import json
import sys
from pathlib import Path

from loguru import logger

from aduplanner.boundary import BoundaryEditSession, BuildingFootprint
from aduplanner.config import apply_env, get_config, load_env, validate_config
from aduplanner.constraints import BOUNDARY_STYLE, ConstraintLayerEngine, normalize_constraints
from aduplanner.errors import PlannerError
from aduplanner.geometry import Coordinate
from aduplanner.surface import ImageMapSurface, InMemoryMapSurface, ViewportBounds
from aduplanner.vision import (
    MapboxViewportCapture,
    StaticImageCapture,
    VisionRequestOrchestrator,
    VisionServiceClient,
    extract_constraints_payload,
)


def setup_logging(verbose: bool = False):
    """Configure logging"""
    logger.remove()
    level = "DEBUG" if verbose else "INFO"
    logger.add(
        sys.stderr,
        format="<green>{time:HH:mm:ss}</green> | <level>{level: <8}</level> | <cyan>{message}</cyan>",
        level=level
    )


def _load_config():
    load_env()
    config = apply_env(get_config())
    validate_config(config)
    return config


def _write_json(data, output: str):
    path = Path(output)
    path.parent.mkdir(parents=True, exist_ok=True)
    with open(path, "w", encoding="utf-8") as f:
        json.dump(data, f, indent=2)
    logger.info(f"✓ Wrote {path}")


def _build_orchestrator(args, config):
    """Capture the viewport once and wire an image surface, session and engine around it"""
    center = Coordinate(args.lat, args.lon)
    zoom = args.zoom or config.imagery.default_zoom
    bounds = ViewportBounds.around(center, args.radius or config.imagery.capture_radius_m)

    if args.image:
        source = StaticImageCapture.from_file(Path(args.image), config.imagery.jpeg_quality)
    else:
        source = MapboxViewportCapture(config.imagery, cache_dir=args.cache_dir)
    captured = source.capture(bounds, zoom)

    surface = ImageMapSurface(captured.image, bounds, zoom)
    session = BoundaryEditSession()
    engine = ConstraintLayerEngine(surface, analysis_config=config.analysis)
    orchestrator = VisionRequestOrchestrator(
        surface,
        session,
        engine,
        client=VisionServiceClient(config.vision),
        capture=StaticImageCapture(captured.image, config.imagery.jpeg_quality),
        default_zoom=zoom,
    )
    return orchestrator


def cmd_analyze(args):
    """Run a constraints analysis for a location"""
    setup_logging(args.verbose)

    try:
        config = _load_config()
        orchestrator = _build_orchestrator(args, config)
        result = asyncio.run(orchestrator.analyze_constraints(args.prompt))
    except (PlannerError, ValueError, OSError) as e:
        logger.error(f"Analysis failed: {e}")
        return 1

    if result is None:
        logger.error("Analysis response was discarded")
        return 1

    engine = orchestrator.engine
    session = orchestrator.session
    summary = result.summary.to_dict()
    logger.info(f"  Constraints: {summary['constraint_count']}")
    if summary["property_sqft"] is not None:
        logger.info(f"  Property Area: {summary['property_sqft']:,.0f} sq ft")
        logger.info(f"  Buildable Area: {summary['total_buildable_sqft']:,.0f} sq ft")
    if summary["estimated_buildable_sqft"] is not None:
        logger.info(f"  Estimated Buildable: {summary['estimated_buildable_sqft']:,.0f} sq ft ({summary['estimate_source']})")

    if args.output:
        _write_json(engine.to_geojson(), args.output)

    if args.overlay:
        surface = orchestrator.surface
        if session.has_boundary:
            surface.attach_polygon(session.path, BOUNDARY_STYLE)
        surface.save(Path(args.overlay))

    if args.summary:
        print(json.dumps(summary, indent=2))

    return 0


def cmd_detect_boundary(args):
    """Detect the property boundary for a location"""
    setup_logging(args.verbose)

    try:
        config = _load_config()
        orchestrator = _build_orchestrator(args, config)
        result = asyncio.run(orchestrator.detect_boundary(args.type, args.prompt))
    except (PlannerError, ValueError, OSError) as e:
        logger.error(f"Boundary detection failed: {e}")
        return 1

    if result is None:
        logger.error("Boundary response was discarded")
        return 1

    feature = orchestrator.session.to_geojson()
    if args.output:
        _write_json(feature, args.output)
    else:
        print(json.dumps(feature, indent=2))
    return 0


def cmd_summarize(args):
    """Normalize a saved vision response and print the area summary"""
    setup_logging(args.verbose)

    input_path = Path(args.input)
    if not input_path.exists():
        logger.error(f"Input file not found: {input_path}")
        return 1

    try:
        with open(input_path, "r", encoding="utf-8") as f:
            data = json.load(f)
        if isinstance(data, dict) and ("processed" in data or "raw" in data):
            data = extract_constraints_payload(data)
        constraint_set = normalize_constraints(data)
    except (PlannerError, ValueError) as e:
        logger.error(f"Failed to read response: {e}")
        return 1

    config = get_config()
    with ConstraintLayerEngine(InMemoryMapSurface(), analysis_config=config.analysis) as engine:
        summary = engine.rebuild(constraint_set)
        if args.output:
            _write_json(engine.to_geojson(), args.output)

    print(json.dumps(summary.to_dict(), indent=2))
    return 0


def cmd_footprint(args):
    """Print the ring and area of a building footprint"""
    setup_logging(args.verbose)

    try:
        footprint = BuildingFootprint(
            width_ft=args.width,
            length_ft=args.length,
            rotation_deg=args.rotation,
            center=Coordinate(args.lat, args.lon),
        )
    except PlannerError as e:
        logger.error(f"Invalid footprint: {e}")
        return 1

    print(json.dumps({
        "type": "Feature",
        "geometry": {
            "type": "Polygon",
            "coordinates": [[p.to_lng_lat() for p in footprint.ring]]
        },
        "properties": {
            "width_ft": footprint.width_ft,
            "length_ft": footprint.length_ft,
            "rotation_deg": footprint.rotation_deg,
            "area_sqft": round(footprint.area_sqft, 2),
        }
    }, indent=2))
    return 0


def _add_location_args(sub):
    sub.add_argument("--lat", type=float, required=True, help="Latitude")
    sub.add_argument("--lon", type=float, required=True, help="Longitude")
    sub.add_argument("--zoom", "-z", type=float, help="Map zoom level (default from config)")
    sub.add_argument("--radius", "-r", type=float, help="Viewport half-width in meters")
    sub.add_argument("--image", help="Use a saved satellite image instead of Mapbox tiles")
    sub.add_argument("--cache-dir", help="Tile cache directory")
    sub.add_argument("--prompt", help="Custom request text prepended to the prompt")


def main():
    parser = argparse.ArgumentParser(
        description="ADU Planner CLI",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  Analyze constraints and save an overlay:
    python cli.py analyze --lat 37.7749 --lon -122.4194 --output out.geojson --overlay out.jpg

  Detect the property boundary:
    python cli.py detect-boundary --lat 37.7749 --lon -122.4194

  Summarize a saved response:
    python cli.py summarize --input response.json

  Footprint ring for a 20x30ft ADU:
    python cli.py footprint --lat 37.7749 --lon -122.4194 --width 20 --length 30 --rotation 15
        """
    )
    parser.add_argument("-v", "--verbose", action="store_true", help="Verbose output")

    subparsers = parser.add_subparsers(dest="command", help="Commands")

    # Analyze command
    analyze_parser = subparsers.add_parser("analyze", help="Run a constraints analysis for a location")
    _add_location_args(analyze_parser)
    analyze_parser.add_argument("--output", "-o", help="Output GeoJSON file")
    analyze_parser.add_argument("--overlay", help="Output image with constraints drawn on it")
    analyze_parser.add_argument("--summary", "-s", action="store_true", help="Print summary to stdout")
    analyze_parser.set_defaults(func=cmd_analyze)

    # Detect boundary command
    detect_parser = subparsers.add_parser("detect-boundary", help="Detect the property boundary")
    _add_location_args(detect_parser)
    detect_parser.add_argument("--type", choices=["property", "constraints"], default="property",
                               help="Request type used for detection")
    detect_parser.add_argument("--output", "-o", help="Output GeoJSON file")
    detect_parser.set_defaults(func=cmd_detect_boundary)

    # Summarize command
    summarize_parser = subparsers.add_parser("summarize", help="Summarize a saved vision response")
    summarize_parser.add_argument("--input", "-i", required=True, help="Response JSON file")
    summarize_parser.add_argument("--output", "-o", help="Output GeoJSON file")
    summarize_parser.set_defaults(func=cmd_summarize)

    # Footprint command
    footprint_parser = subparsers.add_parser("footprint", help="Footprint ring and area")
    footprint_parser.add_argument("--lat", type=float, required=True, help="Center latitude")
    footprint_parser.add_argument("--lon", type=float, required=True, help="Center longitude")
    footprint_parser.add_argument("--width", type=float, required=True, help="North-south width in feet")
    footprint_parser.add_argument("--length", type=float, required=True, help="East-west length in feet")
    footprint_parser.add_argument("--rotation", type=float, default=0.0, help="Clockwise rotation in degrees")
    footprint_parser.set_defaults(func=cmd_footprint)

    args = parser.parse_args()

    if not args.command:
        parser.print_help()
        return 1

    return args.func(args)


if __name__ == "__main__":
    sys.exit(main())
