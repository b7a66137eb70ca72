"""
Errors - Failure taxonomy for the movie assembly pipeline

Frame-level errors abort the owning job. Encoder errors are recorded
per profile. Cleanup errors are logged and never replace the job result.
"""

from typing import Optional


class MovieBuildError(Exception):
    """Base class for all movie pipeline errors"""


class JobValidationError(MovieBuildError):
    """A movie job descriptor is malformed"""


class JobCancelledError(MovieBuildError):
    """Cancellation was observed while the job was running"""


class DataUnavailableError(MovieBuildError):
    """The pixel source has no data for the requested region"""


# ── Frame errors ─────────────────────────────────────────────

class FrameError(MovieBuildError):
    """A frame could not be materialized"""

    def __init__(self, message: str, index: Optional[int] = None):
        if index is not None:
            message = f"frame {index}: {message}"
        super().__init__(message)
        self.index = index


class FrameRenderError(FrameError):
    """Source pixel data is missing or corrupt"""


class FrameWriteError(FrameError):
    """The frame file could not be written to the working directory"""


class PaddingComputationError(FrameError):
    """Invalid geometry reached the rendered variant"""


# ── Encoder errors ───────────────────────────────────────────

class EncoderError(MovieBuildError):
    """An encoder invocation did not produce its artifact"""

    def __init__(self, message: str, result=None):
        super().__init__(message)
        self.result = result


class EncoderInvocationError(EncoderError):
    """The encoder could not be launched or exited with nonzero status"""


class EncoderTimeoutError(EncoderError):
    """The encoder exceeded its allotted time and was terminated"""


class ArtifactPublishError(MovieBuildError):
    """An encoded artifact could not be moved to the output directory"""


class ResourceCleanupError(MovieBuildError):
    """The job working directory could not be removed"""
