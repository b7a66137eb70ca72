"""
Helio Movie Main Package
Movie assembly pipeline for solar image sequences
"""

__version__ = "0.1.0"
__author__ = "Helio Movie Project"

from .errors import (
    MovieBuildError,
    JobValidationError,
    JobCancelledError,
    DataUnavailableError,
    FrameError,
    FrameRenderError,
    FrameWriteError,
    PaddingComputationError,
    EncoderError,
    EncoderInvocationError,
    EncoderTimeoutError,
    ArtifactPublishError,
    ResourceCleanupError,
)
from .config import MovieConfig, load_config
from .jobs import FrameRequest, MovieJob, MovieBuildResult, JobStatus, BuildEvent, BuildEventType


def build_movie(job, pixel_source, config=None, cancel_event=None):
    """
    Quick build function.

    Usage:
        from helio_movie import MovieJob, build_movie
        result = build_movie(job, pixel_source)
    """
    from .video import MovieAssembler
    return MovieAssembler(pixel_source, config=config).build(job, cancel_event=cancel_event)


__all__ = [
    'MovieBuildError',
    'JobValidationError',
    'JobCancelledError',
    'DataUnavailableError',
    'FrameError',
    'FrameRenderError',
    'FrameWriteError',
    'PaddingComputationError',
    'EncoderError',
    'EncoderInvocationError',
    'EncoderTimeoutError',
    'ArtifactPublishError',
    'ResourceCleanupError',
    'MovieConfig',
    'load_config',
    'FrameRequest',
    'MovieJob',
    'MovieBuildResult',
    'JobStatus',
    'BuildEvent',
    'BuildEventType',
    'build_movie',
]


def __getattr__(name):
    """Lazy attribute access for pipeline classes."""
    _video_names = {'MovieAssembler', 'FFmpegWrapper', 'FrameSequencer', 'PROFILES'}
    if name in _video_names:
        from . import video as _video
        return getattr(_video, name)

    _image_names = {
        'RegionOfInterest', 'FrameVariantResolver', 'ImageFilePixelSource', 'ArrayPixelSource',
    }
    if name in _image_names:
        from . import image as _image
        return getattr(_image, name)

    raise AttributeError(f"module 'helio_movie' has no attribute {name!r}")
