"""
Movie Assembler - Builds movie artifacts from a job's frame requests

This module handles:
- Frame materialization into the job working directory
- One encoder invocation per requested profile
- Publishing artifacts out of the working directory
- Status reporting and unconditional cleanup
"""

import shutil
import logging
import threading
import time
from pathlib import Path
from typing import Callable, Dict, Optional

from ..config import MovieConfig, load_config
from ..errors import (
    ArtifactPublishError,
    EncoderError,
    FrameError,
    JobCancelledError,
    ResourceCleanupError,
)
from ..image.pixel_source import PixelSource
from ..image.resolver import FrameVariantResolver
from ..image.variants import RenderOptions
from ..jobs import (
    BuildEvent,
    BuildEventType,
    JobStatus,
    MovieBuildResult,
    MovieJob,
    ProfileOutcome,
)
from .ffmpeg_wrapper import FFmpegWrapper
from .frame_writer import FrameSequencer
from .profiles import EncoderProfile, get_profile

logger = logging.getLogger(__name__)


class MovieAssembler:
    """
    High-level movie assembly from frame requests.

    One assembler can serve many jobs in parallel: all per-job state
    lives in ``build()``, and each job gets its own working directory.
    """

    def __init__(
        self,
        pixel_source: PixelSource,
        config: Optional[MovieConfig] = None,
        config_dir: Optional[Path] = None,
        ffmpeg: Optional[FFmpegWrapper] = None
    ):
        """
        Initialize the movie assembler.

        Args:
            pixel_source: Supplier of decoded pixels for rendered frames
            config: Settings (loaded from ``config_dir`` when None)
            config_dir: Path to configuration directory
            ffmpeg: Encoder invoker (created from the settings when None)
        """
        self.config = config or load_config(config_dir)
        self.resolver = FrameVariantResolver(
            pixel_source,
            RenderOptions(watermark=self.config.watermark)
        )
        self.ffmpeg = ffmpeg or FFmpegWrapper(
            self.config.ffmpeg_path,
            poll_interval=self.config.poll_interval_seconds
        )

        self._progress_callback: Optional[Callable[[float, str], None]] = None
        self._status_callback: Optional[Callable[[BuildEvent], None]] = None

    def set_progress_callback(self, callback: Callable[[float, str], None]):
        """
        Set progress callback.

        Args:
            callback: Function(progress_fraction, message)
        """
        self._progress_callback = callback

    def set_status_callback(self, callback: Callable[[BuildEvent], None]):
        """
        Set the callback receiving profile completion and job abort events.

        Args:
            callback: Function(BuildEvent)
        """
        self._status_callback = callback

    def _report_progress(self, progress: float, message: str):
        if self._progress_callback:
            self._progress_callback(progress, message)
        logger.info(f"[{progress*100:.0f}%] {message}")

    def _emit(self, event: BuildEvent):
        if self._status_callback:
            self._status_callback(event)

    def _new_sequencer(self, job: MovieJob) -> FrameSequencer:
        return FrameSequencer(
            root_dir=self.config.working_root,
            job_id=job.id,
            prefix=self.config.frame_prefix,
            extension=self.config.frame_extension,
            start_index=self.config.frame_start_index,
            zero_pad=self.config.frame_zero_pad,
            quality=self.config.jpeg_quality,
            compress_level=self.config.png_compress_level,
        )

    def build(self, job: MovieJob, cancel_event: Optional[threading.Event] = None) -> MovieBuildResult:
        """
        Build every requested profile of a movie job.

        Frames are materialized first; a frame error aborts the job. Each
        profile is then encoded independently. The working directory is
        removed before returning, whatever the outcome.

        Args:
            job: The movie job
            cancel_event: Set from another thread to cancel the job

        Returns:
            MovieBuildResult with per-profile outcomes
        """
        result = MovieBuildResult(job_id=job.id, status=JobStatus.RUNNING)
        sequencer = self._new_sequencer(job)

        logger.info(
            f"Building movie {job.id}: {len(job.frames)} frames, "
            f"{job.width}x{job.height} @ {job.frame_rate}fps, profiles {list(job.profiles)}"
        )

        try:
            sequencer.open()
            self._materialize_frames(job, sequencer, result, cancel_event)
            self._encode_profiles(job, sequencer, result, cancel_event)
        except FrameError as e:
            result.status = JobStatus.FAILED
            result.error = f"{type(e).__name__}: {e}"
            logger.error(f"Job {job.id} aborted: {result.error}")
            self._emit(BuildEvent(job.id, BuildEventType.JOB_ABORTED, message=result.error))
        except JobCancelledError as e:
            result.status = JobStatus.CANCELLED
            result.error = str(e)
            logger.warning(f"Job {job.id} cancelled: {e}")
            self._emit(BuildEvent(job.id, BuildEventType.JOB_ABORTED, message=result.error))
        except Exception as e:
            result.status = JobStatus.FAILED
            result.error = f"{type(e).__name__}: {e}"
            logger.exception(f"Job {job.id} aborted by unexpected error")
            self._emit(BuildEvent(job.id, BuildEventType.JOB_ABORTED, message=result.error))
        finally:
            try:
                sequencer.release()
            except ResourceCleanupError as e:
                result.cleanup_error = str(e)
                logger.error(f"Job {job.id}: {e}")
            result.completed_at = time.time()

        if result.status == JobStatus.RUNNING:
            result.status = self._overall_status(result.outcomes)
            if result.status == JobStatus.FAILED:
                result.error = "every encoder profile failed"

        logger.info(f"Job {job.id} finished: {result.status.value} in {result.duration:.2f}s")
        return result

    def _materialize_frames(
        self,
        job: MovieJob,
        sequencer: FrameSequencer,
        result: MovieBuildResult,
        cancel_event: Optional[threading.Event]
    ):
        frames = sequencer.assign(len(job.frames))
        total = len(frames)

        for request, frame in zip(job.frames, frames):
            _check_cancelled(cancel_event, job.id)
            self.resolver.resolve(request.to_image_request(job.width, job.height), frame, sequencer)
            result.frame_count += 1
            self._report_progress(
                0.5 * result.frame_count / total,
                f"Frame {result.frame_count}/{total} written"
            )

        sequencer.verify(total)

    def _encode_profiles(
        self,
        job: MovieJob,
        sequencer: FrameSequencer,
        result: MovieBuildResult,
        cancel_event: Optional[threading.Event]
    ):
        timeout = job.timeout or self.config.encode_timeout_seconds

        for position, name in enumerate(job.profiles, start=1):
            _check_cancelled(cancel_event, job.id)
            profile = get_profile(name)

            try:
                outcome = self._encode_profile(job, sequencer, profile, timeout, cancel_event)
            except (EncoderError, ArtifactPublishError) as e:
                outcome = ProfileOutcome(
                    profile=name,
                    success=False,
                    error=str(e),
                    error_type=type(e).__name__,
                    returncode=getattr(getattr(e, 'result', None), 'returncode', None),
                )
                result.outcomes[name] = outcome
                self._emit(BuildEvent(job.id, BuildEventType.PROFILE_FAILED, name, outcome.error))
            except JobCancelledError as e:
                result.outcomes[name] = ProfileOutcome(
                    profile=name,
                    success=False,
                    error=str(e),
                    error_type=type(e).__name__,
                )
                raise
            except Exception as e:
                logger.exception(f"Job {job.id}: unexpected failure encoding {name}")
                outcome = ProfileOutcome(
                    profile=name,
                    success=False,
                    error=f"{type(e).__name__}: {e}",
                    error_type=type(e).__name__,
                )
                result.outcomes[name] = outcome
                self._emit(BuildEvent(job.id, BuildEventType.PROFILE_FAILED, name, outcome.error))
            else:
                result.outcomes[name] = outcome
                self._emit(BuildEvent(
                    job.id, BuildEventType.PROFILE_COMPLETED, name, outcome.artifact_path
                ))

            self._report_progress(
                0.5 + 0.5 * position / len(job.profiles),
                f"Profile {name}: {'done' if result.outcomes[name].success else 'failed'}"
            )

    def _encode_profile(
        self,
        job: MovieJob,
        sequencer: FrameSequencer,
        profile: EncoderProfile,
        timeout: float,
        cancel_event: Optional[threading.Event]
    ) -> ProfileOutcome:
        artifact_name = profile.artifact_name(job.name)
        encode = self.ffmpeg.encode_from_frames(
            frame_pattern=sequencer.frame_pattern(),
            output_path=sequencer.artifact_path(artifact_name),
            frame_rate=job.frame_rate,
            width=job.width,
            height=job.height,
            profile=profile,
            start_number=sequencer.start_index,
            timeout=timeout,
            cancel_event=cancel_event,
        )

        published = self._publish(job, encode.output_path)
        return ProfileOutcome(
            profile=profile.name,
            success=True,
            artifact_path=str(published),
            returncode=encode.returncode,
        )

    def _publish(self, job: MovieJob, artifact: Path) -> Path:
        """Move an artifact out of the working directory before it is removed"""
        destination_dir = Path(self.config.output_dir) / job.id
        destination = destination_dir / artifact.name
        try:
            destination_dir.mkdir(parents=True, exist_ok=True)
            shutil.move(str(artifact), str(destination))
        except OSError as e:
            raise ArtifactPublishError(f"cannot move {artifact.name} to {destination_dir}: {e}") from e

        logger.info(f"Published {destination}")
        return destination.absolute()

    @staticmethod
    def _overall_status(outcomes: Dict[str, ProfileOutcome]) -> JobStatus:
        succeeded = sum(1 for outcome in outcomes.values() if outcome.success)
        if outcomes and succeeded == len(outcomes):
            return JobStatus.COMPLETED
        if succeeded:
            return JobStatus.PARTIAL
        return JobStatus.FAILED


def _check_cancelled(cancel_event: Optional[threading.Event], job_id: str):
    if cancel_event is not None and cancel_event.is_set():
        raise JobCancelledError(f"job {job_id} cancelled")
