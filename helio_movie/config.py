"""
Movie pipeline configuration

Settings are read from the ``movie:`` section of ``configs/defaults.yaml``.
Missing files or keys fall back to the dataclass defaults.
"""

import os
import logging
import tempfile
from pathlib import Path
from typing import Optional, List, Union
from dataclasses import dataclass, field, fields
import yaml

logger = logging.getLogger(__name__)

DEFAULT_CONFIG_DIR = Path(__file__).parent / "configs"


@dataclass
class MovieConfig:
    """Settings shared by every movie job"""
    ffmpeg_path: Optional[str] = None
    working_root: str = field(
        default_factory=lambda: os.path.join(tempfile.gettempdir(), "helio_movie")
    )
    output_dir: str = "movies"

    # Frame naming
    frame_prefix: str = "frame"
    frame_extension: str = ".jpg"
    frame_start_index: int = 0
    frame_zero_pad: int = 0
    jpeg_quality: int = 90
    png_compress_level: int = 6

    # Encoding
    encode_timeout_seconds: float = 600.0
    poll_interval_seconds: float = 0.25
    default_profiles: List[str] = field(default_factory=lambda: ['web', 'ipod'])

    # Rendering
    watermark: bool = True


def load_config(config_dir: Optional[Union[str, Path]] = None) -> MovieConfig:
    """
    Load the movie configuration from YAML.

    Args:
        config_dir: Directory holding ``defaults.yaml`` (package configs if None)

    Returns:
        MovieConfig with file values applied over the defaults
    """
    config_dir = Path(config_dir) if config_dir is not None else DEFAULT_CONFIG_DIR
    defaults_path = config_dir / "defaults.yaml"

    if not defaults_path.exists():
        logger.debug(f"No configuration at {defaults_path}, using defaults")
        return MovieConfig()

    with open(defaults_path, 'r', encoding='utf-8') as f:
        data = yaml.safe_load(f) or {}

    section = data.get('movie', {}) or {}
    known = {f.name for f in fields(MovieConfig)}

    unknown = sorted(set(section) - known)
    if unknown:
        logger.warning(f"Ignoring unknown movie settings: {unknown}")

    values = {key: value for key, value in section.items() if key in known and value is not None}
    return MovieConfig(**values)
