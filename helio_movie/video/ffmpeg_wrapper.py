"""
FFmpeg Wrapper - Python interface to FFmpeg for movie encoding

This module handles:
- FFmpeg discovery
- Command construction from an encoder profile
- Synchronous encoding with timeout and cancellation
- Exit status inspection
"""

import os
import re
import math
import time
import shlex
import shutil
import logging
import subprocess
import threading
from numbers import Real
from pathlib import Path
from typing import Optional, List, Union
from dataclasses import dataclass, field

import imageio_ffmpeg

from ..errors import EncoderInvocationError, EncoderTimeoutError, JobCancelledError
from .profiles import EncoderProfile

logger = logging.getLogger(__name__)


@dataclass
class EncodeResult:
    """Outcome of one encoder invocation"""
    profile: str
    output_path: Path
    returncode: Optional[int]
    stderr: str = ""
    duration: float = 0.0
    command: List[str] = field(default_factory=list)

    @property
    def success(self) -> bool:
        return self.returncode == 0


class FFmpegWrapper:
    """
    Runs FFmpeg over a job's frame sequence.

    Commands are argument lists and never pass through a shell. Every
    invocation blocks until FFmpeg exits, its timeout expires, or the
    job is cancelled, and its exit status is always checked.
    """

    def __init__(self, ffmpeg_path: Optional[str] = None, poll_interval: float = 0.25):
        """
        Initialize FFmpeg wrapper.

        Args:
            ffmpeg_path: Optional path to FFmpeg executable
            poll_interval: Seconds between cancellation checks while encoding

        Raises:
            EncoderInvocationError: FFmpeg could not be found
        """
        self.ffmpeg_path = ffmpeg_path or self._find_ffmpeg()
        self.poll_interval = poll_interval
        self._version: Optional[str] = None

        if not self.ffmpeg_path:
            raise EncoderInvocationError(
                "FFmpeg not found. Please install FFmpeg and add it to PATH, "
                "or provide the path explicitly."
            )

        logger.info(f"FFmpeg found: {self.ffmpeg_path}")

    def _find_ffmpeg(self) -> Optional[str]:
        """Find FFmpeg executable, preferring the system install"""
        system_ffmpeg = shutil.which('ffmpeg')
        if system_ffmpeg:
            return system_ffmpeg

        try:
            exe = imageio_ffmpeg.get_ffmpeg_exe()
        except RuntimeError as e:
            logger.debug(f"No bundled FFmpeg: {e}")
            return None

        return exe if exe and os.path.isfile(exe) else None

    @property
    def version(self) -> str:
        """FFmpeg version string (queried once)"""
        if self._version is None:
            self._version = self._get_version()
        return self._version

    def _get_version(self) -> str:
        try:
            result = subprocess.run(
                [self.ffmpeg_path, '-version'],
                capture_output=True,
                encoding='utf-8',
                errors='replace',
                timeout=10
            )
        except (OSError, subprocess.TimeoutExpired) as e:
            logger.warning(f"Could not query FFmpeg version: {e}")
            return "unknown"

        first_line = result.stdout.split('\n')[0]
        match = re.search(r'ffmpeg version (\S+)', first_line)
        return match.group(1) if match else "unknown"

    def build_command(
        self,
        frame_pattern: Union[str, Path],
        output_path: Union[str, Path],
        frame_rate: float,
        width: int,
        height: int,
        profile: EncoderProfile,
        start_number: int = 0
    ) -> List[str]:
        """
        Build the FFmpeg command for one profile.

        Paths are made absolute so no value can be read as an option,
        and numeric values are validated before formatting.

        Args:
            frame_pattern: Numeric frame pattern (e.g. "<dir>/frame%d.jpg")
            output_path: Artifact path
            frame_rate: Input frames per second
            width: Output width
            height: Output height
            profile: Encoder parameter bundle
            start_number: Index of the first frame

        Returns:
            List of command arguments
        """
        frame_rate = _positive_number('frame_rate', frame_rate)
        width = _positive_int('width', width)
        height = _positive_int('height', height)
        start_number = _non_negative_int('start_number', start_number)

        cmd = [self.ffmpeg_path, '-y', '-nostdin', '-loglevel', 'error']

        # Input: numbered image sequence
        cmd.extend([
            '-framerate', _format_number(frame_rate),
            '-start_number', str(start_number),
            '-f', 'image2',
            '-i', _absolute(frame_pattern),
        ])

        # Output geometry (even dimensions, required by yuv420p)
        cmd.extend([
            '-vf', f'scale={width}:{height},pad=ceil(iw/2)*2:ceil(ih/2)*2',
        ])

        cmd.extend(['-c:v', profile.codec.value])
        cmd.extend(['-pix_fmt', profile.pixel_format.value])
        cmd.extend(profile.parameters)

        # Frame sequences carry no audio
        cmd.append('-an')

        cmd.extend(['-f', profile.container])
        cmd.append(_absolute(output_path))

        return cmd

    @staticmethod
    def format_command(cmd: List[str]) -> str:
        """Render a command with every argument quoted as one shell token"""
        return shlex.join(cmd)

    def encode_from_frames(
        self,
        frame_pattern: Union[str, Path],
        output_path: Union[str, Path],
        frame_rate: float,
        width: int,
        height: int,
        profile: EncoderProfile,
        start_number: int = 0,
        timeout: Optional[float] = None,
        cancel_event: Optional[threading.Event] = None
    ) -> EncodeResult:
        """
        Encode a frame sequence into one artifact.

        Args:
            frame_pattern: Numeric frame pattern
            output_path: Artifact path
            frame_rate: Frames per second
            width: Output width
            height: Output height
            profile: Encoder parameter bundle
            start_number: Index of the first frame
            timeout: Seconds before FFmpeg is killed (None = unbounded)
            cancel_event: Set to abort the encode

        Returns:
            EncodeResult for a zero exit status with the artifact on disk

        Raises:
            EncoderInvocationError: launch failure, nonzero exit, or no output
            EncoderTimeoutError: FFmpeg exceeded ``timeout``
            JobCancelledError: ``cancel_event`` was set
        """
        output_path = Path(output_path).absolute()
        cmd = self.build_command(
            frame_pattern=frame_pattern,
            output_path=output_path,
            frame_rate=frame_rate,
            width=width,
            height=height,
            profile=profile,
            start_number=start_number
        )

        logger.info(f"FFmpeg command ({profile.name}): {self.format_command(cmd)}")

        result = EncodeResult(
            profile=profile.name,
            output_path=output_path,
            returncode=None,
            command=cmd
        )
        started = time.monotonic()

        try:
            process = subprocess.Popen(
                cmd,
                stdin=subprocess.DEVNULL,
                stdout=subprocess.PIPE,
                stderr=subprocess.PIPE,
                encoding='utf-8',
                errors='replace'
            )
        except OSError as e:
            result.stderr = str(e)
            logger.error(f"Failed to launch FFmpeg for {profile.name}: {e}")
            raise EncoderInvocationError(f"{profile.name}: cannot launch FFmpeg: {e}", result) from e

        deadline = started + timeout if timeout is not None else None

        while True:
            wait = self.poll_interval
            if deadline is not None:
                wait = max(0.0, min(wait, deadline - time.monotonic()))

            try:
                _, stderr = process.communicate(timeout=wait)
                break
            except subprocess.TimeoutExpired:
                pass

            if cancel_event is not None and cancel_event.is_set():
                result.stderr = self._terminate(process)
                result.duration = time.monotonic() - started
                logger.warning(f"FFmpeg for {profile.name} cancelled")
                raise JobCancelledError(f"{profile.name}: encode cancelled")

            if deadline is not None and time.monotonic() >= deadline:
                result.stderr = self._terminate(process)
                result.duration = time.monotonic() - started
                logger.error(f"FFmpeg for {profile.name} timed out after {timeout:.1f}s")
                raise EncoderTimeoutError(
                    f"{profile.name}: FFmpeg exceeded {timeout:.1f}s and was terminated",
                    result
                )

        result.returncode = process.returncode
        result.stderr = (stderr or "").strip()
        result.duration = time.monotonic() - started

        if process.returncode != 0:
            message = result.stderr or "unknown error"
            logger.error(f"FFmpeg error ({profile.name}, exit {process.returncode}): {message}")
            raise EncoderInvocationError(
                f"{profile.name}: FFmpeg exited with status {process.returncode}: {message}",
                result
            )

        if not output_path.exists():
            logger.error(f"FFmpeg reported success but {output_path} is missing")
            raise EncoderInvocationError(f"{profile.name}: FFmpeg produced no output", result)

        logger.info(f"Video encoded successfully: {output_path} ({result.duration:.2f}s)")
        return result

    def _terminate(self, process: subprocess.Popen) -> str:
        """Kill a running FFmpeg and collect what it wrote to stderr"""
        process.kill()
        try:
            _, stderr = process.communicate(timeout=5)
        except subprocess.TimeoutExpired:
            logger.error(f"FFmpeg (pid {process.pid}) did not exit after kill")
            return ""
        return (stderr or "").strip()


def _absolute(path: Union[str, Path]) -> str:
    return str(Path(path).absolute())


def _format_number(value: float) -> str:
    return str(int(value)) if float(value).is_integer() else repr(float(value))


def _positive_number(name: str, value) -> float:
    if isinstance(value, bool) or not isinstance(value, Real) or not math.isfinite(value) or value <= 0:
        raise ValueError(f"{name} must be a positive number, got {value!r}")
    return float(value)


def _positive_int(name: str, value) -> int:
    if isinstance(value, bool) or not isinstance(value, int) or value <= 0:
        raise ValueError(f"{name} must be a positive integer, got {value!r}")
    return value


def _non_negative_int(name: str, value) -> int:
    if isinstance(value, bool) or not isinstance(value, int) or value < 0:
        raise ValueError(f"{name} must be a non-negative integer, got {value!r}")
    return value
