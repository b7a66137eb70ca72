#!/usr/bin/env python3
"""
Helio Movie - Command Line Interface

Build movie artifacts from a job descriptor (JSON or YAML).

Usage:
    python build_movie.py job.json
    python build_movie.py job.yaml --profiles web --output-dir movies
    python build_movie.py --profiles-list

Descriptor:
    frame_rate: 15
    width: 1024
    height: 1024
    profiles: [web, ipod]
    frames:
      - roi: {top: 0, left: 0, bottom: 2048, right: 2048, image_scale: 2.0}
        labels: [SDO, AIA, "171"]
        offset: [0, 0]
        source: images/2011_06_07_06_33_02_AIA_171.png
"""

import sys
import json
import argparse
import logging
import threading
from concurrent.futures import ThreadPoolExecutor, wait
from pathlib import Path
from typing import Optional

import yaml

# Add parent directory to path for imports
sys.path.insert(0, str(Path(__file__).parent))

from helio_movie import MovieJob, JobStatus, load_config, MovieBuildError
from helio_movie.image import ImageFilePixelSource
from helio_movie.video import MovieAssembler, PROFILES

EXIT_CODES = {
    JobStatus.COMPLETED: 0,
    JobStatus.PARTIAL: 1,
    JobStatus.FAILED: 2,
    JobStatus.CANCELLED: 2,
}


def setup_logging(verbose: bool = False, log_file: Optional[str] = None):
    """Configure logging"""
    level = logging.DEBUG if verbose else logging.INFO

    handlers = [logging.StreamHandler()]

    if log_file:
        handlers.append(logging.FileHandler(log_file))

    logging.basicConfig(
        level=level,
        format='%(asctime)s [%(levelname)s] %(name)s: %(message)s',
        datefmt='%H:%M:%S',
        handlers=handlers
    )


def print_profiles():
    """Print the available encoder profiles"""
    print("\nEncoder profiles:")
    for name, profile in PROFILES.items():
        prefix = profile.filename_prefix or '(none)'
        print(f"  {name:<6} v{profile.version}  prefix {prefix:<7} {profile.description}")


def load_descriptor(path: Path) -> dict:
    """Read a job descriptor; YAML is a superset of JSON"""
    with open(path, 'r', encoding='utf-8') as f:
        data = yaml.safe_load(f)
    if not isinstance(data, dict):
        raise ValueError(f"{path} does not contain a job descriptor")
    return data


def main():
    """Main entry point"""
    parser = argparse.ArgumentParser(
        description="Helio Movie - Build movies from solar image sequences",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  python build_movie.py job.json
  python build_movie.py job.yaml --profiles ipod --timeout 120
  python build_movie.py --profiles-list
        """
    )

    parser.add_argument('descriptor', nargs='?', type=str, help='Job descriptor file')
    parser.add_argument('--config-dir', type=str, help='Directory holding defaults.yaml')
    parser.add_argument('--output-dir', '-o', type=str, help='Where finished movies are placed')
    parser.add_argument('--source-dir', type=str, help='Base directory for relative frame sources')
    parser.add_argument('--ffmpeg', type=str, help='Path to the FFmpeg executable')
    parser.add_argument(
        '--profiles', '-p',
        nargs='+',
        choices=sorted(PROFILES),
        help='Profiles to produce (overrides the descriptor)'
    )
    parser.add_argument('--timeout', type=float, help='Seconds allowed per encoder run')
    parser.add_argument('--no-watermark', action='store_true', help='Do not label rendered frames')
    parser.add_argument('--profiles-list', action='store_true', help='List encoder profiles and exit')
    parser.add_argument('--verbose', '-v', action='store_true', help='Enable debug logging')
    parser.add_argument('--log-file', type=str, help='Also write logs to this file')

    args = parser.parse_args()
    setup_logging(args.verbose, args.log_file)
    logger = logging.getLogger('helio_movie.cli')

    if args.profiles_list:
        print_profiles()
        return 0

    if not args.descriptor:
        parser.error("a job descriptor is required")

    config = load_config(args.config_dir)
    if args.output_dir:
        config.output_dir = args.output_dir
    if args.ffmpeg:
        config.ffmpeg_path = args.ffmpeg
    if args.no_watermark:
        config.watermark = False

    descriptor_path = Path(args.descriptor)
    try:
        data = load_descriptor(descriptor_path)
        if args.profiles:
            data['profiles'] = args.profiles
        if args.timeout:
            data['timeout'] = args.timeout
        job = MovieJob.from_dict(data, default_profiles=config.default_profiles)
    except (OSError, ValueError, yaml.YAMLError, MovieBuildError) as e:
        logger.error(f"Invalid job descriptor: {e}")
        return 2

    source_dir = Path(args.source_dir) if args.source_dir else descriptor_path.parent
    try:
        assembler = MovieAssembler(ImageFilePixelSource(source_dir), config=config)
    except MovieBuildError as e:
        logger.error(str(e))
        return 2

    # Build on a worker thread so Ctrl-C can cancel the job cleanly
    cancel_event = threading.Event()
    with ThreadPoolExecutor(max_workers=1) as executor:
        future = executor.submit(assembler.build, job, cancel_event)
        try:
            while not future.done():
                wait([future], timeout=0.5)
        except KeyboardInterrupt:
            logger.warning("Interrupted, cancelling job")
            cancel_event.set()
        result = future.result()

    print(json.dumps(result.to_dict(), indent=2, default=str))
    return EXIT_CODES.get(result.status, 2)


if __name__ == "__main__":
    sys.exit(main())
