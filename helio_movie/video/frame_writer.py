"""
Frame Writer - Job working directory and frame file sequencing

This module handles:
- Allocating a private working directory per movie job
- Sequential frame naming the encoder can address with one pattern
- Writing frame images (JPEG or PNG)
- Verifying the frame set is dense before encoding
- Removing the working directory on every exit path
"""

import re
import shutil
import logging
import tempfile
from pathlib import Path
from typing import List, Optional, Union
from dataclasses import dataclass

from PIL import Image

from ..errors import FrameWriteError, ResourceCleanupError

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Frame:
    """One slot of the movie's frame sequence"""
    index: int
    path: Path


class FrameSequencer:
    """
    Owns the working directory of one movie job.

    Frames are named ``<prefix><index><extension>`` (``frame0.jpg``,
    ``frame1.jpg``, ...) so the encoder can read them with a single
    numeric pattern. The directory is private to the job and removed by
    ``release()``, which also runs when the sequencer is used as a
    context manager.
    """

    SUPPORTED_FORMATS = {
        '.jpg': {'format': 'JPEG', 'alpha': False},
        '.jpeg': {'format': 'JPEG', 'alpha': False},
        '.png': {'format': 'PNG', 'alpha': True},
    }

    def __init__(
        self,
        root_dir: Union[str, Path],
        job_id: str,
        prefix: str = "frame",
        extension: str = ".jpg",
        start_index: int = 0,
        zero_pad: int = 0,
        quality: int = 90,
        compress_level: int = 6
    ):
        """
        Initialize the frame sequencer.

        Args:
            root_dir: Directory under which the job directory is created
            job_id: Job identifier, used as the directory name prefix
            prefix: Frame filename prefix
            extension: Frame file extension (.jpg or .png)
            start_index: Index of the first frame
            zero_pad: Digits for frame numbering (0 = no padding)
            quality: JPEG quality (1-100)
            compress_level: PNG zlib level (0-9)
        """
        extension = extension.lower()
        if extension not in self.SUPPORTED_FORMATS:
            raise ValueError(f"Unsupported frame format: {extension}")
        if not 0 <= compress_level <= 9:
            raise ValueError(f"compress_level must be 0-9, got {compress_level}")
        if start_index < 0:
            raise ValueError(f"start_index must be non-negative, got {start_index}")

        self.root_dir = Path(root_dir)
        self.job_id = job_id
        self.prefix = prefix
        self.extension = extension
        self.format_info = self.SUPPORTED_FORMATS[extension]
        self.start_index = start_index
        self.zero_pad = zero_pad
        self.quality = quality
        self.compress_level = compress_level

        self.working_dir: Optional[Path] = None
        self._frames: List[Frame] = []

    def __enter__(self) -> "FrameSequencer":
        self.open()
        return self

    def __exit__(self, exc_type, exc, tb):
        try:
            self.release()
        except ResourceCleanupError as e:
            logger.error(f"Job {self.job_id}: {e}")
        return False

    def open(self) -> Path:
        """Create the job's private working directory"""
        if self.working_dir is not None:
            return self.working_dir

        try:
            self.root_dir.mkdir(parents=True, exist_ok=True)
            self.working_dir = Path(tempfile.mkdtemp(prefix=f"{self.job_id}_", dir=self.root_dir))
        except OSError as e:
            raise FrameWriteError(f"cannot create working directory under {self.root_dir}: {e}") from e

        logger.info(f"Job {self.job_id}: working directory {self.working_dir}")
        return self.working_dir

    def _require_open(self) -> Path:
        if self.working_dir is None:
            raise FrameWriteError("working directory has not been opened")
        return self.working_dir

    def _get_filename(self, index: int) -> str:
        number = str(index).zfill(self.zero_pad) if self.zero_pad else str(index)
        return f"{self.prefix}{number}{self.extension}"

    def assign(self, count: int) -> List[Frame]:
        """
        Assign ``count`` frame slots with strictly increasing indices.

        Args:
            count: Number of frames in the movie

        Returns:
            Frames from ``start_index`` to ``start_index + count - 1``
        """
        working_dir = self._require_open()
        self._frames = [
            Frame(index=index, path=working_dir / self._get_filename(index))
            for index in range(self.start_index, self.start_index + count)
        ]
        return list(self._frames)

    def frame_pattern(self) -> str:
        """
        Get the frame pattern for FFmpeg.

        Returns:
            Absolute pattern like "/tmp/.../frame%d.jpg"
        """
        working_dir = self._require_open()
        number = f"%0{self.zero_pad}d" if self.zero_pad else "%d"
        return str(working_dir / f"{self.prefix}{number}{self.extension}")

    def get_frame_glob(self) -> str:
        return f"{self.prefix}*{self.extension}"

    def write_frame(self, frame: Frame, image: Image.Image) -> Path:
        """
        Write a frame image to its slot.

        Transparent areas are flattened onto black for formats
        without an alpha channel.

        Raises:
            FrameWriteError: the file could not be written
        """
        if self.format_info['alpha']:
            output = image if image.mode in ('RGB', 'RGBA') else image.convert('RGBA')
        else:
            output = _flatten(image)

        save_kwargs = {}
        if self.format_info['format'] == 'JPEG':
            save_kwargs['quality'] = self.quality
        else:
            save_kwargs['compress_level'] = self.compress_level

        try:
            output.save(frame.path, format=self.format_info['format'], **save_kwargs)
        except OSError as e:
            raise FrameWriteError(f"cannot write {frame.path}: {e}", index=frame.index) from e

        return frame.path

    def list_existing_frames(self) -> List[Path]:
        """List frame files in the working directory, ordered by index"""
        working_dir = self._require_open()
        pattern = re.compile(rf"^{re.escape(self.prefix)}(\d+){re.escape(self.extension)}$")
        found = []
        for path in working_dir.glob(self.get_frame_glob()):
            match = pattern.match(path.name)
            if match:
                found.append((int(match.group(1)), path))
        return [path for _, path in sorted(found)]

    def verify(self, count: int) -> List[Path]:
        """
        Check that exactly ``count`` contiguous, non-empty frames exist.

        Raises:
            FrameWriteError: a frame is missing, empty, or unexpected
        """
        expected = {
            self._get_filename(index)
            for index in range(self.start_index, self.start_index + count)
        }
        existing = self.list_existing_frames()
        names = {path.name for path in existing}

        missing = sorted(expected - names)
        if missing:
            raise FrameWriteError(f"missing frame files: {missing[:5]}")

        extra = sorted(names - expected)
        if extra:
            raise FrameWriteError(f"unexpected frame files: {extra[:5]}")

        empty = [path.name for path in existing if path.stat().st_size == 0]
        if empty:
            raise FrameWriteError(f"empty frame files: {empty[:5]}")

        return existing

    def artifact_path(self, filename: str) -> Path:
        """Path of an encoder artifact inside the working directory"""
        return self._require_open() / filename

    def release(self):
        """
        Remove the working directory and everything in it.

        Raises:
            ResourceCleanupError: the directory could not be removed
        """
        if self.working_dir is None:
            return

        working_dir = self.working_dir
        try:
            shutil.rmtree(working_dir)
        except FileNotFoundError:
            pass
        except OSError as e:
            raise ResourceCleanupError(f"cannot remove {working_dir}: {e}") from e
        finally:
            self._frames = []

        self.working_dir = None
        logger.info(f"Job {self.job_id}: removed working directory {working_dir}")


def _flatten(image: Image.Image) -> Image.Image:
    """Composite an image onto an opaque black background"""
    if image.mode == 'RGB':
        return image
    rgba = image.convert('RGBA')
    background = Image.new('RGB', rgba.size, (0, 0, 0))
    background.paste(rgba, mask=rgba.getchannel('A'))
    return background
