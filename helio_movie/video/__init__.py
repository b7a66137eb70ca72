"""
Helio Movie Video Package
Handles frame sequencing and movie encoding
"""

from .frame_writer import Frame, FrameSequencer
from .profiles import EncoderProfile, PROFILES, WEB_PROFILE, IPOD_PROFILE, get_profile
from .ffmpeg_wrapper import FFmpegWrapper, EncodeResult
from .assembler import MovieAssembler

__all__ = [
    'Frame',
    'FrameSequencer',
    'EncoderProfile',
    'PROFILES',
    'WEB_PROFILE',
    'IPOD_PROFILE',
    'get_profile',
    'FFmpegWrapper',
    'EncodeResult',
    'MovieAssembler',
]
