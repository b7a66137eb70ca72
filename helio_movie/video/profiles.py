"""
Encoder Profiles - Fixed parameter bundles, one per distribution target

Profiles are immutable process-wide constants. Adding a target means
adding a bundle to ``PROFILES``; the invoker never branches on which
profile it was given.
"""

from dataclasses import dataclass
from enum import Enum
from types import MappingProxyType
from typing import Mapping, Tuple


class VideoCodec(Enum):
    """Supported video codecs"""
    H264 = "libx264"
    H265 = "libx265"
    VP9 = "libvpx-vp9"


class PixelFormat(Enum):
    """Common pixel formats"""
    YUV420P = "yuv420p"  # Most compatible
    YUV444P = "yuv444p"  # Higher quality


@dataclass(frozen=True)
class EncoderProfile:
    """Named encoder parameter bundle"""
    name: str
    version: str
    filename_prefix: str
    container: str
    extension: str
    codec: VideoCodec
    pixel_format: PixelFormat
    # Rate control, GOP and codec tuning flags, in command-line order
    parameters: Tuple[str, ...]
    description: str = ""

    def artifact_name(self, base_name: str) -> str:
        return f"{self.filename_prefix}{base_name}{self.extension}"


WEB_PROFILE = EncoderProfile(
    name='web',
    version='1',
    filename_prefix='',
    container='mp4',
    extension='.mp4',
    codec=VideoCodec.H264,
    pixel_format=PixelFormat.YUV420P,
    parameters=(
        '-preset', 'slow',
        '-crf', '18',
        '-profile:v', 'high',
        '-level', '4.0',
        '-movflags', '+faststart',
    ),
    description='High quality H.264 for browsers and desktop players',
)

IPOD_PROFILE = EncoderProfile(
    name='ipod',
    version='1',
    filename_prefix='ipod-',
    container='mp4',
    extension='.mp4',
    codec=VideoCodec.H264,
    pixel_format=PixelFormat.YUV420P,
    parameters=(
        '-profile:v', 'baseline',
        '-level', '3.0',
        '-b:v', '800k',
        '-bt', '200k',
        '-maxrate', '1000k',
        '-bufsize', '2000k',
        '-g', '30',
        '-keyint_min', '25',
        '-refs', '1',
        '-bf', '0',
        '-sc_threshold', '40',
        '-qmin', '10',
        '-qmax', '51',
        '-qdiff', '4',
        '-qcomp', '0.6',
        '-i_qfactor', '0.71',
        '-trellis', '1',
        '-x264-params', 'me=hex:merange=16:subme=5',
        '-movflags', '+faststart',
    ),
    description='Constrained H.264 baseline for handheld devices',
)

PROFILES: Mapping[str, EncoderProfile] = MappingProxyType({
    profile.name: profile for profile in (WEB_PROFILE, IPOD_PROFILE)
})


def get_profile(name: str) -> EncoderProfile:
    """
    Look up a profile by name.

    Raises:
        KeyError: unknown profile name
    """
    try:
        return PROFILES[name]
    except KeyError:
        raise KeyError(f"Unknown encoder profile '{name}'. Available: {sorted(PROFILES)}") from None
